"""
EUR-Lex adapter (EU directives and regulations).

Acts are addressed by CELEX number. The HTML rendition is requested in
Romanian first, since that is the working language and makes translation a
no-op; English is the fallback for acts without a Romanian consolidated text.
"""

import logging
import re
from typing import Optional

from ..models.legislation import Jurisdiction, RawLegislation
from ..utils.html import extract_body_text, parse_date, parse_html, select_text
from ..utils.text import extract_sections
from .base import HtmlSourceAdapter, PriorityAct

logger = logging.getLogger(__name__)


class EurLexAdapter(HtmlSourceAdapter):
    """Fetches acts from eur-lex.europa.eu by CELEX number."""

    jurisdiction = Jurisdiction.EU
    LOG_TAG = "[EURLEX]"
    LANGUAGES = ("RO", "EN")
    ACCEPT_LANGUAGE = "ro,en;q=0.8"

    BASE_URL = "https://eur-lex.europa.eu/legal-content/{language}/TXT/HTML/?uri=CELEX:{celex}"

    # sector digit, 4-digit year, type letter(s), number
    CELEX_PATTERN = re.compile(r"^(?P<sector>\d)(?P<year>\d{4})(?P<type>[A-Z]{1,2})(?P<number>\d{4})")

    ACT_TYPES = {
        "L": "directive",
        "R": "regulation",
        "D": "decision",
        "H": "recommendation",
    }

    BODY_SELECTORS = (
        "#document1",
        "div.eli-container",
        "#TexteOnly",
        "#textTabContent",
        "div.tabContent",
        "main",
    )

    BOILERPLATE_SELECTORS = (
        "#cookie-consent-banner",
        ".EurlexEmbedded",
        ".modal",
        "a.anchorarrow",
    )

    TITLE_SELECTORS = (
        "p.oj-doc-ti",
        "p.doc-ti",
        "div.eli-main-title",
        "p.title-doc-first",
        "title",
    )

    NOT_IN_FORCE = re.compile(
        r"No longer in force|Nu mai este în vigoare|Nu mai este in vigoare",
        re.IGNORECASE,
    )

    PRIORITY_ACTS = (
        PriorityAct("31989L0391", "Directiva 89/391/CEE privind punerea în aplicare de măsuri pentru promovarea îmbunătățirii securității și sănătății lucrătorilor la locul de muncă", "Directiva-cadru SSM", "directive", "89/391", 1989),
        PriorityAct("31989L0654", "Directiva 89/654/CEE privind cerințele minime de securitate și sănătate la locul de muncă", "Directiva locul de muncă", "directive", "89/654", 1989),
        PriorityAct("32009L0104", "Directiva 2009/104/CE privind cerințele minime de securitate și sănătate pentru folosirea de către lucrători a echipamentelor de muncă", "Directiva echipamente de muncă", "directive", "2009/104", 2009),
        PriorityAct("31989L0656", "Directiva 89/656/CEE privind cerințele minime de securitate și sănătate pentru utilizarea de către lucrători a echipamentelor individuale de protecție", "Directiva EIP", "directive", "89/656", 1989),
        PriorityAct("31990L0269", "Directiva 90/269/CEE privind manipularea manuală a încărcăturilor", "Directiva manipulare manuală", "directive", "90/269", 1990),
        PriorityAct("31990L0270", "Directiva 90/270/CEE privind lucrul la echipamente cu ecran de vizualizare", "Directiva ecrane", "directive", "90/270", 1990),
        PriorityAct("31992L0058", "Directiva 92/58/CEE privind semnalizarea de securitate și/sau de sănătate la locul de muncă", "Directiva semnalizare", "directive", "92/58", 1992),
        PriorityAct("31992L0085", "Directiva 92/85/CEE privind lucrătoarele gravide, care au născut de curând sau care alăptează", "Directiva maternitate", "directive", "92/85", 1992),
        PriorityAct("31994L0033", "Directiva 94/33/CE privind protecția tinerilor în muncă", "Directiva tineri", "directive", "94/33", 1994),
        PriorityAct("32003L0088", "Directiva 2003/88/CE privind anumite aspecte ale organizării timpului de lucru", "Directiva timp de lucru", "directive", "2003/88", 2003),
        PriorityAct("31998L0024", "Directiva 98/24/CE privind protecția lucrătorilor împotriva riscurilor legate de agenții chimici la locul de muncă", "Directiva agenți chimici", "directive", "98/24", 1998),
        PriorityAct("32004L0037", "Directiva 2004/37/CE privind protecția lucrătorilor împotriva riscurilor legate de expunerea la agenți cancerigeni sau mutageni", "Directiva agenți cancerigeni", "directive", "2004/37", 2004),
        PriorityAct("32003L0010", "Directiva 2003/10/CE privind expunerea lucrătorilor la riscurile generate de zgomot", "Directiva zgomot", "directive", "2003/10", 2003),
        PriorityAct("32016R0679", "Regulamentul (UE) 2016/679 privind protecția persoanelor fizice în ceea ce privește prelucrarea datelor cu caracter personal", "GDPR", "regulation", "2016/679", 2016),
        PriorityAct("32022L2555", "Directiva (UE) 2022/2555 privind măsuri pentru un nivel comun ridicat de securitate cibernetică în Uniune", "NIS2", "directive", "2022/2555", 2022),
    )

    def document_url(self, source_id: str, language: str) -> str:
        return self.BASE_URL.format(language=language, celex=source_id)

    @classmethod
    def parse_celex(cls, celex: str) -> tuple[str, str, Optional[int]]:
        """(act_type, act_number, year) derived from a CELEX number."""
        m = cls.CELEX_PATTERN.match(celex)
        if not m:
            return "act", celex, None
        year = int(m.group("year"))
        act_type = cls.ACT_TYPES.get(m.group("type"), "act")
        return act_type, f"{year}/{int(m.group('number'))}", year

    def parse_document(self, source_id: str, markup: str, url: str, language: str) -> RawLegislation:
        soup = parse_html(markup)
        markup_title = select_text(soup, self.TITLE_SELECTORS)
        in_force = self.NOT_IN_FORCE.search(soup.get_text(" ")) is None

        text = extract_body_text(soup, self.BODY_SELECTORS, self.BOILERPLATE_SELECTORS)
        self.ensure_text(text, source_id, url)

        priority = self.priority_act(source_id)
        act_type, act_number, year = self.parse_celex(source_id)
        if priority is not None:
            act_type = priority.act_type or act_type
            act_number = priority.act_number or act_number
            year = priority.act_year or year

        # "of 12 June 1989" / "din 12 iunie 1989" sits in the document title
        date_adopted = parse_date(markup_title) or parse_date(text[:1000])

        return RawLegislation(
            source_id=source_id,
            source_url=url,
            title_original=self.resolve_title(source_id, markup_title, text),
            act_type=act_type,
            act_number=act_number,
            text_original=text,
            language_original=language.lower(),
            country_code=self.jurisdiction,
            sections=extract_sections(text, self.jurisdiction),
            date_adopted=date_adopted,
            in_force=in_force,
            act_year=year,
            act_short_name=priority.short_name if priority else None,
            metadata={
                "celex": source_id,
                "fetched_language": language.lower(),
                "markup_title": markup_title,
            },
        )
