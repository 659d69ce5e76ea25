"""
Defensive HTML extraction helpers shared by the source adapters.

Legislative portals expose no stable markup contract, so every lookup goes
through a chain of candidate selectors and falls back to the page body.
"""

import html
import re
from datetime import date
from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag

BOILERPLATE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "form", "iframe", "button")

BLOCK_TAGS = (
    "p", "div", "li", "tr", "table", "section", "article",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre",
)

MONTHS: dict[str, int] = {
    # en
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    # ro
    "ianuarie": 1, "februarie": 2, "martie": 3, "aprilie": 4, "mai": 5, "iunie": 6,
    "iulie": 7, "septembrie": 9, "octombrie": 10, "noiembrie": 11, "decembrie": 12,
    # de
    "januar": 1, "februar": 2, "märz": 3, "maerz": 3, "juni": 6, "juli": 7, "oktober": 10, "dezember": 12,
    # bg
    "януари": 1, "февруари": 2, "март": 3, "април": 4, "май": 5, "юни": 6,
    "юли": 7, "август": 8, "септември": 9, "октомври": 10, "ноември": 11, "декември": 12,
}

_NUMERIC_DATE = re.compile(r"\b(\d{1,2})\.(\d{1,2})\.(\d{4})\b")
_ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_WORD_DATE = re.compile(r"\b(\d{1,2})\.?\s+([A-Za-zÀ-žА-Яа-я]+)\s+(\d{4})\b")


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def strip_boilerplate(soup: BeautifulSoup, extra_selectors: Iterable[str] = ()) -> None:
    """Remove navigation, scripts and site chrome in place."""
    for tag in soup.find_all(BOILERPLATE_TAGS):
        tag.decompose()
    for selector in extra_selectors:
        for tag in soup.select(selector):
            tag.decompose()


def normalize_whitespace(text: str) -> str:
    """Decode leftover entities, collapse runs of spaces, keep at most one blank line."""
    text = html.unescape(text).replace("\xa0", " ").replace("\r\n", "\n").replace("\r", "\n")
    lines = [re.sub(r"[ \t\f\v]+", " ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def block_text(element: Tag) -> str:
    """Text of an element with line breaks at block boundaries only."""
    for br in element.find_all("br"):
        br.replace_with("\n")
    for tag in element.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")
    return normalize_whitespace(element.get_text())


def select_first(soup: BeautifulSoup, selectors: Iterable[str]) -> Optional[Tag]:
    """First selector match that carries any text."""
    for selector in selectors:
        element = soup.select_one(selector)
        if element is not None and element.get_text(strip=True):
            return element
    return None


def extract_body_text(
    soup: BeautifulSoup,
    selectors: Iterable[str],
    boilerplate_selectors: Iterable[str] = (),
) -> str:
    """Document body text through a selector fallback chain, ending at <body>."""
    strip_boilerplate(soup, boilerplate_selectors)
    element = select_first(soup, selectors)
    if element is None:
        element = soup.body or soup
    return block_text(element)


def select_text(soup: BeautifulSoup, selectors: Iterable[str]) -> Optional[str]:
    element = select_first(soup, selectors)
    if element is None:
        return None
    text = normalize_whitespace(element.get_text(" "))
    return text or None


def first_text_block(text: str, min_chars: int = 10, max_chars: int = 300) -> Optional[str]:
    """Heuristic title: the first line of plausible title length."""
    for line in text.split("\n"):
        line = line.strip()
        if min_chars <= len(line) <= max_chars:
            return line
    return None


def parse_date(text: Optional[str]) -> Optional[str]:
    """First recognizable date in `text` as ISO yyyy-mm-dd."""
    if not text:
        return None

    candidates: list[tuple[int, date]] = []
    for m in _ISO_DATE.finditer(text):
        parsed = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if parsed:
            candidates.append((m.start(), parsed))
    for m in _NUMERIC_DATE.finditer(text):
        parsed = _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        if parsed:
            candidates.append((m.start(), parsed))
    for m in _WORD_DATE.finditer(text):
        month = MONTHS.get(m.group(2).lower())
        if month:
            parsed = _safe_date(int(m.group(3)), month, int(m.group(1)))
            if parsed:
                candidates.append((m.start(), parsed))

    if not candidates:
        return None
    candidates.sort(key=lambda c: c[0])
    return candidates[0][1].isoformat()


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None
