from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

from .config import SUMMARY_LENGTH

ELLIPSIS = "..."

_BOILERPLATE_LINK_TEXT = ("continue reading", "read more")
_WS_RE = re.compile(r"\s+")
_ANGLE_RE = re.compile(r"[<>]")


def _drop_boilerplate_links(soup: BeautifulSoup) -> None:
    doomed = []
    for a in soup.find_all("a"):
        text = a.get_text().lower()
        if any(marker in text for marker in _BOILERPLATE_LINK_TEXT):
            # The whole paragraph around a "read more" link is boilerplate
            doomed.append(a.find_parent("p") or a)
    for el in doomed:
        if not getattr(el, "decomposed", False):
            el.decompose()


def strip_html(html: Optional[str]) -> str:
    """Plain text of an HTML fragment with scripts, styles and "read more" links removed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for el in soup(["script", "style"]):
        el.decompose()
    _drop_boilerplate_links(soup)
    # Escaped markup survives as literal text; never hand angle brackets on
    text = _ANGLE_RE.sub("", soup.get_text())
    return _WS_RE.sub(" ", text).strip()


def truncate(text: str, max_len: int = SUMMARY_LENGTH) -> str:
    """Cut `text` to `max_len` at the last space and append an ellipsis."""
    if len(text) <= max_len:
        return text
    cut = text[:max_len]
    last_space = cut.rfind(" ")
    return (cut[:last_space] if last_space > 0 else cut) + ELLIPSIS


def summarize(html: Optional[str], max_len: int = SUMMARY_LENGTH) -> str:
    text = strip_html(html)
    if text == ELLIPSIS:
        return ""
    return truncate(text, max_len)
