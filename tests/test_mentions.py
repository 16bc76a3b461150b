from __future__ import annotations

import pytest

from taskboard_core.mentions import extract_mentions


@pytest.mark.parametrize(
    "text,expected",
    [
        ("@agent please continue", ["@agent"]),
        ("thanks @agent and @bob, also @agent", ["@agent", "@bob"]),
        ("mail me@example.com", []),
        ("ping @agents", ["@agents"]),
        ("line one\n@agent on a new line", ["@agent"]),
        ("", []),
    ],
)
def test_extract_mentions(text: str, expected: list[str]) -> None:
    assert extract_mentions(text) == expected


def test_none_is_empty() -> None:
    assert extract_mentions(None) == []  # type: ignore[arg-type]
