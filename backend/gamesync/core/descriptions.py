"""Description Normalization — turns provider HTML into short plain-text descriptions.

Invariants:
    - Output never contains HTML tags or undecoded entities
    - Output length <= max_length (ellipsis included)
    - Empty or whitespace-only input yields ""
"""

import html
import re

_BLOCK_CLOSE = re.compile(r"</(p|div|h[1-6]|li|tr|br)>", re.I)
_LINE_BREAK = re.compile(r"<(br|hr)\s*/?>", re.I)
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


def strip_html(text: str | None) -> str:
    if not text:
        return ""
    result = _BLOCK_CLOSE.sub(" ", text)
    result = _LINE_BREAK.sub(" ", result)
    previous = None
    while result != previous:
        previous = result
        result = _TAG.sub("", result)
    result = html.unescape(result)
    return _WHITESPACE.sub(" ", result).strip()


def truncate_text(text: str, max_length: int) -> str:
    """Cut at the last word boundary that fits, then append '...'."""
    if len(text) <= max_length:
        return text
    cut = text[: max(max_length - 3, 0)]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,.;:") + "..."


def normalize_description(text: str | None, max_length: int = 250) -> str:
    return truncate_text(strip_html(text), max_length)
