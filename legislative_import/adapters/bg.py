"""
lex.bg adapter (Bulgarian labour and OSH legislation).

Bulgarian acts are only published in Bulgarian, so there is no language
fallback. Promulgation and amendment dates are read from the State Gazette
(Държавен вестник, "ДВ") references in the document header.
"""

import logging
import re
from typing import Optional

from ..models.legislation import Jurisdiction, RawLegislation
from ..utils.html import extract_body_text, parse_date, parse_html, select_text
from ..utils.text import extract_sections
from .base import HtmlSourceAdapter, PriorityAct

logger = logging.getLogger(__name__)


class LexBgAdapter(HtmlSourceAdapter):
    """Fetches acts from lex.bg by document id."""

    jurisdiction = Jurisdiction.BG
    LOG_TAG = "[LEXBG]"
    LANGUAGES = ("bg",)
    ACCEPT_LANGUAGE = "bg,en;q=0.5"

    BASE_URL = "https://lex.bg/laws/ldoc/{source_id}"

    BODY_SELECTORS = (
        "div#DocumentContent",
        "div.boxi",
        "div.doc",
        "div.content",
        "article",
    )

    BOILERPLATE_SELECTORS = (
        "div.banner",
        "div.social",
        "div#leftbar",
        "div#rightbar",
        "div.ads",
    )

    TITLE_SELECTORS = (
        "div.TitleDocument",
        "h1",
        "title",
    )

    # "Обн. ДВ. бр.124 от 23 Декември 1997г." / "ДВ, бр. 12 от 10.02.2023 г."
    GAZETTE_PATTERN = re.compile(
        r"ДВ[.,]?\s*бр\.?\s*(?P<issue>\d+)\s+от\s+(?P<date>[^\n;,г]{6,25})",
        re.IGNORECASE,
    )

    ACT_TYPES = (
        ("кодекс", "code"),
        ("закон", "law"),
        ("наредба", "ordinance"),
        ("правилник", "regulation"),
        ("постановление", "decree"),
    )

    PRIORITY_ACTS = (
        PriorityAct("1594373121", "Кодекс на труда", "КТ", "code", "Кодекс на труда", 1986),
        PriorityAct("2134673408", "Закон за здравословни и безопасни условия на труд", "ЗЗБУТ", "law", "ЗЗБУТ", 1997),
        PriorityAct("2135523863", "Наредба № 5 от 2005 г. за минималните изисквания за безопасност и здраве при работа с машини", "Наредба № 5/2005", "ordinance", "5", 2005),
        PriorityAct("2135512455", "Наредба № 3 от 2004 г. за минималните изисквания за безопасност и здраве на работното място", "Наредба № 3/2004", "ordinance", "3", 2004),
        PriorityAct("2134827008", "Наредба № 7 от 1999 г. за минималните изисквания за здравословни и безопасни условия на труд на работните места и при използване на работното оборудване", "Наредба № 7/1999", "ordinance", "7", 1999),
        PriorityAct("2135502596", "Наредба № 13 от 2003 г. за защита на работещите от рискове, свързани с експозиция на химични агенти при работа", "Наредба № 13/2003", "ordinance", "13", 2003),
        PriorityAct("2135502597", "Наредба № 14 от 2003 г. за защита на работещите от рискове, свързани с експозиция на канцерогени и мутагени при работа", "Наредба № 14/2003", "ordinance", "14", 2003),
        PriorityAct("2135639575", "Наредба № 5 от 2009 г. за реда и начина за провеждане на задължителните предварителни и периодични медицински прегледи", "Наредба № 5/2009", "ordinance", "5", 2009),
        PriorityAct("2135512454", "Наредба № 2 от 2004 г. за минималните изисквания за здравословни и безопасни условия на труд при работа с видеодисплей", "Наредба № 2/2004", "ordinance", "2", 2004),
        PriorityAct("2134408704", "Закон за пожарната безопасност и защита на населението", "ЗПБЗН", "law", "ЗПБЗН", 1997),
    )

    def document_url(self, source_id: str, language: str) -> str:
        return self.BASE_URL.format(source_id=source_id)

    @classmethod
    def classify_title(cls, title: str) -> str:
        lowered = title.lower()
        for marker, act_type in cls.ACT_TYPES:
            if lowered.startswith(marker):
                return act_type
        return "act"

    @staticmethod
    def parse_number(title: str) -> Optional[str]:
        m = re.search(r"№\s*(\d+[а-я]?)", title)
        return m.group(1) if m else None

    @classmethod
    def parse_gazette(cls, header: str) -> dict:
        """Promulgation issue/date and the latest amendment date from the header."""
        promulgated_issue = None
        promulgated_date = None
        amended: list[str] = []
        for m in cls.GAZETTE_PATTERN.finditer(header):
            parsed = parse_date(m.group("date"))
            if not parsed:
                continue
            if promulgated_date is None:
                promulgated_issue = m.group("issue")
                promulgated_date = parsed
            else:
                amended.append(parsed)
        return {
            "gazette_issue": promulgated_issue,
            "date_promulgated": promulgated_date,
            "date_last_amended": max(amended) if amended else None,
            "amendment_count": len(amended),
        }

    def parse_document(self, source_id: str, markup: str, url: str, language: str) -> RawLegislation:
        soup = parse_html(markup)
        markup_title = select_text(soup, self.TITLE_SELECTORS)
        text = extract_body_text(soup, self.BODY_SELECTORS, self.BOILERPLATE_SELECTORS)
        self.ensure_text(text, source_id, url)

        title = self.resolve_title(source_id, markup_title, text)
        priority = self.priority_act(source_id)

        # the gazette block precedes the first article
        first_article = re.search(r"^\s*Чл\.\s*1\b", text, re.MULTILINE)
        header = text[: first_article.start()] if first_article else text[:2000]
        gazette = self.parse_gazette(header)

        act_year = priority.act_year if priority else None
        if act_year is None and gazette["date_promulgated"]:
            act_year = int(gazette["date_promulgated"][:4])

        return RawLegislation(
            source_id=source_id,
            source_url=url,
            title_original=title,
            act_type=priority.act_type if priority else self.classify_title(title),
            act_number=(priority.act_number if priority else None) or self.parse_number(title) or source_id,
            text_original=text,
            language_original=language,
            country_code=self.jurisdiction,
            sections=extract_sections(text, self.jurisdiction),
            date_adopted=gazette["date_promulgated"],
            date_last_amended=gazette["date_last_amended"],
            act_year=act_year,
            act_short_name=priority.short_name if priority else None,
            metadata={
                "ldoc_id": source_id,
                "gazette_issue": gazette["gazette_issue"],
                "amendment_count": gazette["amendment_count"],
                "markup_title": markup_title,
            },
        )
