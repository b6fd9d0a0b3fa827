#!/usr/bin/env python3
"""Escape machine-translated text before it is stored in a strings.xml file."""

from typing import List, Optional
import re

__all__ = [
    "escape_quote_chars",
    "escape_android_text",
]

_HTML_TAG_SPLIT = re.compile(r"(<[^>]+>)")
_LEADING_REFERENCE_CHARS = ("@", "?")


def _escape_character(text: str, target: str) -> str:
    """Escape occurrences of a character unless already escaped."""
    result: List[str] = []
    backslash_run = 0

    for ch in text:
        if ch == "\\":
            backslash_run += 1
            result.append(ch)
            continue

        if ch == target and backslash_run % 2 == 0:
            result.append(f"\\{target}")
        else:
            result.append(ch)
        backslash_run = 0

    return "".join(result)


def escape_quote_chars(text: str) -> str:
    """Backslash-escape apostrophes and double quotes, keeping existing escapes."""
    return _escape_character(_escape_character(text, "'"), '"')


def escape_android_text(text: Optional[str]) -> Optional[str]:
    """
    Make translated text safe for an Android ``<string>`` value.

    Apostrophes and double quotes get a backslash, real line breaks become
    ``\\n`` and a leading ``@`` or ``?`` is escaped so Android does not read
    the value as a resource reference. Text inside inline HTML tags is left
    alone.
    """
    if not text:
        return text

    value = text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\\n")

    segments = _HTML_TAG_SPLIT.split(value)
    value = "".join(
        segment if segment.startswith("<") and segment.endswith(">")
        else escape_quote_chars(segment)
        for segment in segments
        if segment
    )

    if value.startswith(_LEADING_REFERENCE_CHARS):
        value = "\\" + value
    return value
