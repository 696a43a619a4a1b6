"""
Removal of pseudo-tags that leak from DeepSeek's internal formatting,
e.g. <|DSML|invoke name="web_search">, </|DSML|parameter> or
<｜tool▁calls▁begin｜>. Both ASCII and full-width bars are handled.
"""

import re

_MARKUP = re.compile(
    r"<\s*/?\s*[|｜]\s*DSML\s*[|｜][^>]*>"
    r"|<\s*[|｜][^>]+[|｜]\s*>",
    re.IGNORECASE,
)

# A trailing fragment that may still turn into a tag once more text arrives.
_PARTIAL_TAG = re.compile(r"<\s*/?\s*(?:[|｜][^>]*)?")
MAX_PARTIAL_TAG = 64


def strip_markup(text: str) -> str:
    """
    Return text with every pseudo-tag removed.

    Applied until nothing matches, so stripping the result again is a no-op
    even when removing one tag exposes another. Text without markup is
    returned unchanged; no whitespace is trimmed.
    """
    while True:
        cleaned = _MARKUP.sub("", text)
        if cleaned == text:
            return cleaned
        text = cleaned


def clean_content(text: str | None) -> str:
    """Sanitize a complete (non-streamed) reply."""
    if not text:
        return ""
    return strip_markup(text).strip()


class MarkupStreamFilter:
    """
    Incremental strip_markup for token streams.

    A tag split across fragments ("<|DS" + "ML|...>") is held back until it
    either closes or can no longer be a tag, then released or dropped.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, fragment: str) -> str:
        text = strip_markup(self._pending + fragment)
        self._pending = ""

        start = text.rfind("<")
        if start == -1:
            return text

        tail = text[start:]
        if len(tail) <= MAX_PARTIAL_TAG and _PARTIAL_TAG.fullmatch(tail):
            self._pending = tail
            return text[:start]
        return text

    def flush(self) -> str:
        text = strip_markup(self._pending)
        self._pending = ""
        return text
