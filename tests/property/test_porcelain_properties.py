from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from zeroide.git.porcelain import parse_porcelain_status

_path = st.text(
    alphabet=st.characters(min_codepoint=33, max_codepoint=126, exclude_characters='"\\'),
    min_size=1,
    max_size=20,
)
_code = st.sampled_from(["M ", " M", "MM", "A ", " D", "D ", "AM", "??", "!!", "T ", "UU"])


@given(entries=st.lists(st.tuples(_code, _path), max_size=15))
def test_parser_never_duplicates_and_keeps_first_seen_order(entries: list[tuple[str, str]]) -> None:
    output = "\n".join(f"{code} {path}" for code, path in entries)

    status = parse_porcelain_status(output)

    for changes in (status.staged, status.unstaged):
        paths = [change.path for change in changes]
        assert len(paths) == len(set(paths))
    assert len(status.untracked) == len(set(status.untracked))

    expected_untracked: list[str] = []
    for code, path in entries:
        if code == "??" and path not in expected_untracked:
            expected_untracked.append(path)
    assert status.untracked == expected_untracked


@given(text=st.text(alphabet=st.characters(min_codepoint=32, max_codepoint=126), max_size=200))
def test_parser_accepts_arbitrary_text(text: str) -> None:
    status = parse_porcelain_status(text)

    assert status.ahead >= 0
    assert status.behind >= 0
