"""Credential masking and bounded log text."""

from __future__ import annotations

import re
import shlex

DEFAULT_LOG_TRUNCATE_LIMIT: int = 700

AUTH_BEARER_PATTERN: re.Pattern[str] = re.compile(
    r"(Authorization:\s*(?:Bearer|token))\s+\S+",
    re.IGNORECASE,
)

URL_CREDENTIAL_PATTERN: re.Pattern[str] = re.compile(
    r"(https?://)([^/\s:@]+):([^@\s]+)@",
)

URL_TOKEN_ONLY_PATTERN: re.Pattern[str] = re.compile(
    r"(https?://)([^/\s:@]{20,})@",
)

GH_TOKEN_PATTERN: re.Pattern[str] = re.compile(
    r"\b(?:gh[pousr]_[A-Za-z0-9_]+|github_pat_[A-Za-z0-9_]+)\b",
)


def truncate_log(value: str, limit: int = DEFAULT_LOG_TRUNCATE_LIMIT) -> str:
    """Truncate log text to the specified limit with ellipsis."""
    value = value.strip()
    if len(value) <= limit:
        return value
    return value[: max(0, limit - 3)] + "..."


def mask_secrets(value: str) -> str:
    """Mask bearer headers, URL userinfo and GitHub tokens without truncating."""
    if not value:
        return ""
    masked = AUTH_BEARER_PATTERN.sub(r"\1 ***", value)
    masked = URL_CREDENTIAL_PATTERN.sub(r"\1***:***@", masked)
    masked = URL_TOKEN_ONLY_PATTERN.sub(r"\1***@", masked)
    return GH_TOKEN_PATTERN.sub("***", masked)


def sanitize_log_text(value: str, limit: int = DEFAULT_LOG_TRUNCATE_LIMIT) -> str:
    """Mask sensitive values and return a bounded-length log string."""
    if not value:
        return ""
    return truncate_log(mask_secrets(value), limit)


def command_for_log(args: list[str]) -> str:
    """Return a shell-safe, credential-masked command string bounded for logging."""
    if not args:
        return ""
    return sanitize_log_text(" ".join(shlex.quote(part) for part in args))
