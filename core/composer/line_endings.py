"""Line-ending canonicalization for matching, and restoration afterwards."""

from __future__ import annotations

import re
from enum import Enum

_CRLF_RE = re.compile(r"\r\n")
_BARE_LF_RE = re.compile(r"(?<!\r)\n")


class LineEndingStyle(str, Enum):
    LF = "lf"
    CRLF = "crlf"


def detect(text: str) -> LineEndingStyle:
    """Predominant style: CRLF only if it strictly outnumbers bare LF."""
    crlf_count = len(_CRLF_RE.findall(text))
    lf_count = len(_BARE_LF_RE.findall(text))
    return LineEndingStyle.CRLF if crlf_count > lf_count else LineEndingStyle.LF


def normalize(text: str) -> str:
    """CRLF -> LF, then any lone CR -> LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def restore(text: str, style: LineEndingStyle) -> str:
    """Convert LF-normalized text back to ``style``."""
    if style is LineEndingStyle.CRLF:
        return text.replace("\n", "\r\n")
    return text


__all__ = ["LineEndingStyle", "detect", "normalize", "restore"]
