"""
Legal text utilities: chunking, reassembly, section extraction, hashing.

Chunks are cut on legal-unit boundaries so every piece sent to a size-limited
API is a self-contained article/paragraph/sentence run. Section extraction
walks the jurisdiction's article headings in document order. The content hash
is the only thing the update check ever compares.
"""

import hashlib
import re
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from ..models.legislation import RawSection

# A boundary is only accepted when the chunk before it has at least this size
CHUNK_MIN_CHARS = 1000

# First body line longer than this is text, not a title
SECTION_TITLE_MAX_CHARS = 200

# Paragraph and point markers: (1), (2a), 1., 2), a), б)
PARAGRAPH_MARKER = re.compile(r"^(?:\(\d+[a-zа-я]?\)|\d+[.)]|[a-zа-я]\))(?:\s|$)")

# Article and chapter headings per jurisdiction, used for chunk boundaries
BOUNDARY_MARKERS: dict[str, tuple[str, ...]] = {
    "EU": (
        r"(?:Article|Articolul)[ \t]+\d+[a-z]*",
        r"(?:CHAPTER|CAPITOLUL|TITLE|TITLUL|SECTION|SECȚIUNEA|SECŢIUNEA)[ \t]+[IVXLC\d]+",
    ),
    "BG": (
        r"Чл\.[ \t]*\d+[а-я]*",
        r"(?:Глава|Раздел)[ \t]+[^\n]{1,20}",
    ),
    "DE": (
        r"(?:§|Section)[ \t]*\d+[a-z]*",
        r"(?:Abschnitt|Unterabschnitt|Teil)[ \t]+\d+",
    ),
    "RO": (
        r"Art(?:icolul|\.)[ \t]*\d+",
        r"(?:CAPITOLUL|Capitolul|SECȚIUNEA|SECŢIUNEA|Secțiunea|Secţiunea|TITLUL)[ \t]+[IVXLC\d]+",
    ),
}

# Article headings per jurisdiction, used for section extraction
SECTION_PATTERNS: dict[str, re.Pattern] = {
    "EU": re.compile(
        r"^[ \t]*(?P<number>(?:Article|Articolul)[ \t]+\d+[a-z]*)[ \t]*$",
        re.MULTILINE,
    ),
    "BG": re.compile(
        r"^[ \t]*(?P<number>Чл\.[ \t]*\d+[а-я]*)\.?[ \t]*",
        re.MULTILINE,
    ),
    "DE": re.compile(
        r"^[ \t]*(?P<number>(?:§|Section)[ \t]*\d+[a-z]*)[ \t]*",
        re.MULTILINE,
    ),
    "RO": re.compile(
        r"^[ \t]*(?P<number>Art(?:icolul|\.)[ \t]*\d+(?:\^\d+)?)\.?[ \t]*(?:[-–][ \t]*)?",
        re.MULTILINE,
    ),
}

_SENTENCE_END = re.compile(r"[.!?;](?:[\"'»”)]*)[ \t\n]+")

_boundary_cache: dict[str, tuple[re.Pattern, re.Pattern]] = {}


def _jurisdiction_key(jurisdiction) -> Optional[str]:
    if jurisdiction is None:
        return None
    return str(getattr(jurisdiction, "value", jurisdiction)).upper()


def _boundary_patterns(jurisdiction=None) -> tuple[re.Pattern, re.Pattern]:
    """(line-anchored boundary regex, inline marker regex) for a jurisdiction."""
    key = _jurisdiction_key(jurisdiction)
    if key not in BOUNDARY_MARKERS:
        key = "*"
    if key not in _boundary_cache:
        if key == "*":
            markers = tuple(p for group in BOUNDARY_MARKERS.values() for p in group)
        else:
            markers = BOUNDARY_MARKERS[key]
        alternatives = "|".join(markers)
        _boundary_cache[key] = (
            re.compile(rf"^[ \t]*(?:{alternatives})", re.MULTILINE),
            re.compile(rf"(?:{alternatives})"),
        )
    return _boundary_cache[key]


def _inside_marker(text: str, pos: int, marker: re.Pattern) -> Optional[re.Match]:
    """The marker match that `pos` would cut through, if any."""
    for m in marker.finditer(text, max(0, pos - 40), min(len(text), pos + 40)):
        if m.start() < pos < m.end():
            return m
    return None


def _find_cut(text: str, start: int, end: int, jurisdiction=None) -> int:
    """Absolute position to end the chunk that begins at `start`."""
    boundary, marker = _boundary_patterns(jurisdiction)
    window = text[start:end]

    # 1. nearest article/chapter heading
    best = None
    for m in boundary.finditer(window):
        if m.start() >= CHUNK_MIN_CHARS:
            best = m.start()
    if best is not None:
        return start + best

    # 2. nearest paragraph break
    idx = window.rfind("\n\n")
    if idx >= 0 and idx + 2 >= CHUNK_MIN_CHARS:
        return start + idx + 2

    # 3. nearest sentence end that does not split "Art. 5" and the like
    for m in reversed(list(_SENTENCE_END.finditer(window))):
        if m.end() < CHUNK_MIN_CHARS:
            break
        if _inside_marker(text, start + m.end(), marker) is None:
            return start + m.end()

    # 4. hard cut, moved off any marker it would split
    hit = _inside_marker(text, end, marker)
    if hit is not None:
        return hit.start() if hit.start() > start else hit.end()
    return end


def split_text(text: str, max_chars: int, jurisdiction=None) -> list[str]:
    """
    Split `text` into chunks of at most `max_chars` characters.

    Text that already fits is returned as a single chunk. Otherwise each chunk
    ends on the nearest article/chapter heading, else paragraph break, else
    sentence end, searched backwards from the window edge. A boundary is only
    accepted when it leaves at least CHUNK_MIN_CHARS characters in the chunk.
    Chunks are exact substrings: "".join(chunks) == text.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if len(text) <= max_chars:
        return [text]

    chunks: list[str] = []
    start = 0
    while len(text) - start > max_chars:
        cut = _find_cut(text, start, start + max_chars, jurisdiction)
        chunks.append(text[start:cut])
        start = cut
    chunks.append(text[start:])
    return chunks


def reassemble_chunks(chunks: Iterable[tuple[int, str]]) -> str:
    """Join (index, text) chunks in index order, separated by a blank line."""
    ordered = sorted(chunks, key=lambda chunk: chunk[0])
    return "\n\n".join(body.strip() for _, body in ordered if body.strip())


def extract_sections(text: str, jurisdiction) -> list["RawSection"]:
    """
    Find every article heading and the body that follows it.

    Returns sections in document order with a 0-based sort_order. The first
    body line becomes the title when it is shorter than
    SECTION_TITLE_MAX_CHARS, more text follows it, and it does not open
    with a paragraph or point marker.
    """
    from ..models.legislation import RawSection

    key = _jurisdiction_key(jurisdiction)
    pattern = SECTION_PATTERNS.get(key, SECTION_PATTERNS["EU"])
    matches = list(pattern.finditer(text))

    sections: list[RawSection] = []
    for i, m in enumerate(matches):
        body_end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[m.end():body_end].strip()
        number = re.sub(r"\s+", " ", m.group("number")).strip()

        title = None
        first_line, _, rest = body.partition("\n")
        first_line = first_line.strip()
        if (
            first_line
            and rest.strip()
            and len(first_line) < SECTION_TITLE_MAX_CHARS
            and not PARAGRAPH_MARKER.match(first_line)
        ):
            title = first_line
            body = rest.strip()

        sections.append(RawSection(
            section_number=number,
            title=title,
            text=body,
            sort_order=len(sections),
        ))
    return sections


def hash_content(text: str) -> str:
    """SHA-256 of the raw text, hex encoded."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
