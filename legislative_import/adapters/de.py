"""
gesetze-im-internet.de adapter (German federal law).

Acts are addressed by their URL slug (``arbschg``). The slug's index page only
links to the individual paragraphs; the full text lives on a ``BJNR<digits>``
page whose id differs per act, so it is discovered from the index links. The
official English translation (``englisch_<slug>``) is the fallback.
"""

import logging
import re
from typing import Optional

from ..errors import FetchError
from ..models.legislation import Jurisdiction, RawLegislation
from ..utils.html import extract_body_text, parse_date, parse_html, select_text
from ..utils.text import extract_sections
from .base import HtmlSourceAdapter, PriorityAct

logger = logging.getLogger(__name__)


class GesetzeImInternetAdapter(HtmlSourceAdapter):
    """Fetches German laws and ordinances by slug."""

    jurisdiction = Jurisdiction.DE
    LOG_TAG = "[GESETZE]"
    LANGUAGES = ("de", "en")
    ACCEPT_LANGUAGE = "de,en;q=0.5"

    BASE_URL = "https://www.gesetze-im-internet.de"

    FULL_PAGE_LINK = re.compile(r"(BJNR\d+)\.html")

    BODY_SELECTORS = (
        "div#paddingLR12",
        "div#container",
        "main",
    )

    BOILERPLATE_SELECTORS = (
        "div#blau",
        "div#level2",
        "div.jnnorm-hinweis",
    )

    TITLE_SELECTORS = (
        "span.jnlangue",
        "h1",
        "title",
    )

    # "(Arbeitsschutzgesetz - ArbSchG)"
    ABBREVIATION_PATTERN = re.compile(r"-\s*(?P<abbr>[A-Za-zÄÖÜäöü0-9]+)\s*\)?\s*$")

    ADOPTED_PATTERN = re.compile(r"(?:Ausfertigungsdatum|Date of issue)\s*:\s*(?P<date>[\d.]+)")
    AMENDED_PATTERN = re.compile(r"(?:Zuletzt geändert durch|last amended by)[^\n]*?(?:v\.|of)\s*(?P<date>\d{1,2}\.\s*\d{1,2}\.\s*\d{4}|\d{1,2}\s+\w+\s+\d{4})")

    PRIORITY_ACTS = (
        PriorityAct("arbschg", "Gesetz über die Durchführung von Maßnahmen des Arbeitsschutzes zur Verbesserung der Sicherheit und des Gesundheitsschutzes der Beschäftigten bei der Arbeit", "ArbSchG", "Gesetz", "ArbSchG", 1996),
        PriorityAct("asig", "Gesetz über Betriebsärzte, Sicherheitsingenieure und andere Fachkräfte für Arbeitssicherheit", "ASiG", "Gesetz", "ASiG", 1973),
        PriorityAct("arbzg", "Arbeitszeitgesetz", "ArbZG", "Gesetz", "ArbZG", 1994),
        PriorityAct("arbst_ttv_2004", "Verordnung über Arbeitsstätten", "ArbStättV", "Verordnung", "ArbStättV", 2004),
        PriorityAct("betrsichv_2015", "Verordnung über Sicherheit und Gesundheitsschutz bei der Verwendung von Arbeitsmitteln", "BetrSichV", "Verordnung", "BetrSichV", 2015),
        PriorityAct("gefstoffv_2010", "Verordnung zum Schutz vor Gefahrstoffen", "GefStoffV", "Verordnung", "GefStoffV", 2010),
        PriorityAct("arbmedvv", "Verordnung zur arbeitsmedizinischen Vorsorge", "ArbMedVV", "Verordnung", "ArbMedVV", 2008),
        PriorityAct("muschg_2018", "Gesetz zum Schutz von Müttern bei der Arbeit, in der Ausbildung und im Studium", "MuSchG", "Gesetz", "MuSchG", 2017),
        PriorityAct("jarbschg", "Gesetz zum Schutze der arbeitenden Jugend", "JArbSchG", "Gesetz", "JArbSchG", 1976),
    )

    def index_url(self, source_id: str) -> str:
        return f"{self.BASE_URL}/{source_id}/"

    def document_url(self, source_id: str, language: str) -> str:
        if language == "en":
            slug = f"englisch_{source_id}"
            return f"{self.BASE_URL}/{slug}/{slug}.html"
        return self.index_url(source_id)

    async def load_document(self, source_id: str, language: str) -> tuple[str, str]:
        if language == "en":
            return await super().load_document(source_id, language)

        index_markup = await self.fetch_html(self.index_url(source_id))
        match = self.FULL_PAGE_LINK.search(index_markup)
        if match is None:
            raise FetchError(f"No full-text page linked from {self.index_url(source_id)}")

        url = f"{self.BASE_URL}/{source_id}/{match.group(1)}.html"
        logger.debug(f"{self.LOG_TAG} Full text for {source_id} at {url}")
        return url, await self.fetch_html(url)

    @classmethod
    def parse_abbreviation(cls, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        m = cls.ABBREVIATION_PATTERN.search(text.strip())
        return m.group("abbr") if m else None

    @staticmethod
    def classify(title: str, abbreviation: Optional[str]) -> str:
        if "verordnung" in title.lower() or (abbreviation or "").endswith("V"):
            return "Verordnung"
        return "Gesetz"

    def parse_document(self, source_id: str, markup: str, url: str, language: str) -> RawLegislation:
        soup = parse_html(markup)
        markup_title = select_text(soup, self.TITLE_SELECTORS)
        abbreviation = self.parse_abbreviation(select_text(soup, ("span.jnamtabk", "h1")))
        header_text = select_text(soup, ("div.jnheader", "div#paddingLR12")) or ""

        text = extract_body_text(soup, self.BODY_SELECTORS, self.BOILERPLATE_SELECTORS)
        self.ensure_text(text, source_id, url)

        adopted = self.ADOPTED_PATTERN.search(header_text) or self.ADOPTED_PATTERN.search(text[:3000])
        amended = self.AMENDED_PATTERN.search(header_text) or self.AMENDED_PATTERN.search(text[:3000])
        date_adopted = parse_date(adopted.group("date")) if adopted else None

        priority = self.priority_act(source_id)
        title = self.resolve_title(source_id, markup_title, text)
        act_year = priority.act_year if priority else None
        if act_year is None and date_adopted:
            act_year = int(date_adopted[:4])

        return RawLegislation(
            source_id=source_id,
            source_url=url,
            title_original=title,
            act_type=priority.act_type if priority else self.classify(title, abbreviation),
            act_number=(priority.act_number if priority else None) or abbreviation or source_id,
            text_original=text,
            language_original=language,
            country_code=self.jurisdiction,
            sections=extract_sections(text, self.jurisdiction),
            date_adopted=date_adopted,
            date_last_amended=parse_date(amended.group("date")) if amended else None,
            act_year=act_year,
            act_short_name=(priority.short_name if priority else None) or abbreviation,
            metadata={
                "slug": source_id,
                "abbreviation": abbreviation,
                "fetched_language": language,
                "markup_title": markup_title,
            },
        )
