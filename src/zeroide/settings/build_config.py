"""JDK image and build tool settings persisted as JSON."""

from __future__ import annotations

import json
import logging as py_logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from zeroide.errors import ConfigDecodeError
from zeroide.storage import read_json, write_json_atomic

logger = py_logging.getLogger(__name__)

DEFAULT_BUILD_CONFIG_PATH = "~/.zero/build-config.json"


class BuildTool(str, Enum):
    JAVAC = "javac"
    MAVEN = "maven"
    GRADLE = "gradle"


class JDKConfiguration(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    image: str
    version: str
    is_custom: bool = Field(default=False, alias="isCustom")

    @field_validator("image")
    @classmethod
    def _validate_image(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized or any(ch.isspace() for ch in normalized):
            raise ValueError(f"Invalid JDK image: {value}")
        return normalized

    @classmethod
    def custom(cls, image: str, *, version: str = "") -> JDKConfiguration:
        return cls(id=f"custom:{image.strip()}", name=image.strip(), image=image, version=version, is_custom=True)


PREDEFINED_JDKS: tuple[JDKConfiguration, ...] = (
    JDKConfiguration(id="openjdk-21", name="OpenJDK 21", image="openjdk:21-slim", version="21"),
    JDKConfiguration(id="openjdk-17", name="OpenJDK 17", image="openjdk:17-slim", version="17"),
    JDKConfiguration(id="openjdk-11", name="OpenJDK 11", image="openjdk:11-slim", version="11"),
    JDKConfiguration(id="temurin-21", name="Eclipse Temurin 21", image="eclipse-temurin:21-jdk", version="21"),
    JDKConfiguration(id="corretto-21", name="Amazon Corretto 21", image="amazoncorretto:21", version="21"),
)


class BuildConfiguration(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    selected_jdk: JDKConfiguration = Field(default=PREDEFINED_JDKS[0], alias="selectedJDK")
    build_tool: BuildTool = Field(default=BuildTool.JAVAC, alias="buildTool")
    custom_args: list[str] = Field(default_factory=list, alias="customArgs")

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


class BuildConfigurationStore:
    """Lazily loaded build configuration file.

    A missing file yields the default configuration; a present but unreadable
    one raises :class:`ConfigDecodeError` instead of silently resetting.
    """

    def __init__(self, path: str | Path = DEFAULT_BUILD_CONFIG_PATH) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> BuildConfiguration:
        try:
            raw = read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise self._decode_error(exc) from exc
        if raw is None:
            return BuildConfiguration()
        try:
            return BuildConfiguration.model_validate(raw)
        except ValidationError as exc:
            raise self._decode_error(exc) from exc

    def save(self, configuration: BuildConfiguration) -> Path:
        logger.debug("Saving build configuration path=%s jdk=%s", self.path, configuration.selected_jdk.image)
        return write_json_atomic(self.path, configuration.to_json())

    def reset(self) -> BuildConfiguration:
        configuration = BuildConfiguration()
        self.save(configuration)
        return configuration

    def _decode_error(self, exc: Exception) -> ConfigDecodeError:
        logger.error("Build configuration unreadable path=%s error=%s", self.path, exc)
        return ConfigDecodeError(
            "Build configuration file is corrupt.",
            hint=f"Fix or delete {self.path} and retry.",
            debug_details=str(exc),
        )
