"""
legislatie.just.ro adapter (Romanian national legislation).

Acts are addressed by the portal's DetaliiDocument id. The texts are already in
the working language, so the pipeline skips translation for this jurisdiction.
Search resolves "TIP NR/AN" queries (e.g. "HG 1425/2006") through the
portal's RezultateCautare page.
"""

import logging
import re
from typing import Optional
from urllib.parse import quote_plus

from ..errors import FetchError
from ..models.legislation import Jurisdiction, RawLegislation
from ..utils.html import extract_body_text, parse_date, parse_html, select_text
from ..utils.text import extract_sections
from .base import HtmlSourceAdapter, PriorityAct, SearchParams

logger = logging.getLogger(__name__)


class LegislatieJustAdapter(HtmlSourceAdapter):
    """Fetches acts from the Romanian Ministry of Justice legislative portal."""

    jurisdiction = Jurisdiction.RO
    LOG_TAG = "[LEGISLATIE]"
    LANGUAGES = ("ro",)
    ACCEPT_LANGUAGE = "ro-RO,ro;q=0.9,en;q=0.5"

    BASE_URL = "https://legislatie.just.ro/Public/DetaliiDocument/{source_id}"
    SEARCH_URL = "https://legislatie.just.ro/Public/RezultateCautare?searchMode=simple&searchText={query}"

    # "HG 1425/2006", "Legea nr. 319/2006"
    ACT_QUERY = re.compile(
        r"^\s*(?P<type>[^\W\d_]+)\.?\s+(?:nr\.\s*)?(?P<number>\d+)\s*/\s*(?P<year>\d{4})\s*$"
    )
    DOCUMENT_LINK = re.compile(r"/Public/DetaliiDocument/(?P<id>\d+)")

    # Query abbreviations spelled the way the portal's search expects them
    SEARCH_TYPE_NAMES = {
        "HG": "Hotararea Guvernului",
        "LEGE": "Legea",
        "LEGEA": "Legea",
        "OUG": "Ordonanta de urgenta",
        "OG": "Ordonanta Guvernului",
        "ORDIN": "Ordinul",
        "OM": "Ordinul ministrului",
        "DECIZIE": "Decizia",
        "COD": "Codul",
    }

    BODY_SELECTORS = (
        "div#textdocumentleg",
        "div.act_text",
        "div#div_Formaconsolidata",
        "div.tab-content",
        "main",
    )

    BOILERPLATE_SELECTORS = (
        "div#cookie-notice",
        "div.navbar",
        "ul.breadcrumb",
        "div.social-share",
    )

    TITLE_SELECTORS = (
        "span.S_HDR",
        "div.S_HDR",
        "h1",
        "title",
    )

    # "LEGE nr. 319 din 14 iulie 2006"
    DENOMINATION = re.compile(
        r"(?P<type>LEGE|HOT[ĂA]R[ÂA]RE|ORDONAN[ȚŢT][ĂA] DE URGEN[ȚŢT][ĂA]|ORDONAN[ȚŢT][ĂA]|ORDIN|DECIZIE|COD)\s+nr\.\s*(?P<number>\d+)\s+din\s+(?P<date>\d{1,2}\s+\w+\s+\d{4})",
        re.IGNORECASE,
    )

    PUBLISHED = re.compile(r"MONITORUL OFICIAL\s+nr\.\s*(?P<issue>\d+)\s+din\s+(?P<date>\d{1,2}\s+\w+\s+\d{4})", re.IGNORECASE)
    IN_FORCE_FROM = re.compile(r"(?:Intră în vigoare|Intra in vigoare|în vigoare de la)\s*:?\s*(?P<date>\d{1,2}[. ]\w+[. ]\d{4})", re.IGNORECASE)
    # status line of a repealed act, not of a single repealed paragraph
    REPEALED = re.compile(r"^\s*(?:Act\s+)?abrogat[ăa]?\b", re.IGNORECASE | re.MULTILINE)

    ACT_TYPES = {
        "LEGE": "law",
        "HOTARARE": "government_decision",
        "ORDONANTA DE URGENTA": "emergency_ordinance",
        "ORDONANTA": "government_ordinance",
        "ORDIN": "ministerial_order",
        "DECIZIE": "decision",
        "COD": "code",
    }

    PRIORITY_ACTS = (
        PriorityAct("73751", "Legea securității și sănătății în muncă", "Legea 319/2006", "law", "319/2006", 2006),
        PriorityAct("76256", "Norme metodologice de aplicare a prevederilor Legii securității și sănătății în muncă nr. 319/2006", "HG 1425/2006", "government_decision", "1425/2006", 2006),
        PriorityAct("40802", "Codul muncii", "Codul muncii", "code", "53/2003", 2003),
        PriorityAct("81930", "Hotărârea privind supravegherea sănătății lucrătorilor", "HG 355/2007", "government_decision", "355/2007", 2007),
        PriorityAct("73788", "Legea privind apărarea împotriva incendiilor", "Legea 307/2006", "law", "307/2006", 2006),
        PriorityAct("81337", "Normele generale de apărare împotriva incendiilor", "OMAI 163/2007", "ministerial_order", "163/2007", 2007),
        PriorityAct("75449", "Cerințe minime de securitate și sănătate pentru utilizarea în muncă de către lucrători a echipamentelor de muncă", "HG 1146/2006", "government_decision", "1146/2006", 2006),
        PriorityAct("74567", "Cerințe minime pentru semnalizarea de securitate și/sau de sănătate la locul de muncă", "HG 1048/2006", "government_decision", "1048/2006", 2006),
        PriorityAct("74619", "Cerințe minime privind echipamentele individuale de protecție", "HG 1091/2006", "government_decision", "1091/2006", 2006),
        PriorityAct("75442", "Cerințe minime de securitate și sănătate pentru locul de muncă", "HG 1136/2006", "government_decision", "1136/2006", 2006),
    )

    def document_url(self, source_id: str, language: str) -> str:
        return self.BASE_URL.format(source_id=source_id)

    @classmethod
    def parse_act_query(cls, query: str) -> Optional[tuple[str, str, str]]:
        """("HG", "1425", "2006") for "HG 1425/2006", None for free text."""
        m = cls.ACT_QUERY.match(query)
        if not m:
            return None
        return m.group("type").upper(), m.group("number"), m.group("year")

    async def find_portal_id(self, act_type: str, number: str, year: str) -> Optional[str]:
        """
        DetaliiDocument id of the search result naming number/year.

        Falls back to the first result when no link text names both.
        """
        search_text = f"{self.SEARCH_TYPE_NAMES.get(act_type, act_type)} {number}/{year}"
        url = self.SEARCH_URL.format(query=quote_plus(search_text))
        soup = parse_html(await self.fetch_html(url))

        number_re = re.compile(rf"(?<!\d){number}(?!\d)")
        first: Optional[str] = None
        for link in soup.find_all("a", href=True):
            m = self.DOCUMENT_LINK.search(link["href"])
            if not m:
                continue
            first = first or m.group("id")
            label = link.get_text(" ", strip=True)
            if number_re.search(label) and year in label:
                return m.group("id")
        return first

    async def search_acts(self, params: Optional[SearchParams] = None) -> list[RawLegislation]:
        """
        Resolve a "TIP NR/AN" query through the portal search.

        Free-text queries, failed searches and empty result pages fall back
        to the curated priority list.
        """
        params = params or SearchParams()
        parsed = self.parse_act_query(params.query) if params.query else None
        if parsed is None or params.limit == 0:
            return await super().search_acts(params)

        act_type, number, year = parsed
        try:
            portal_id = await self.find_portal_id(act_type, number, year)
        except FetchError as e:
            logger.warning(f"{self.LOG_TAG} Portal search for {params.query!r} failed: {e}")
            portal_id = None

        if portal_id is None:
            logger.info(f"{self.LOG_TAG} No portal result for {params.query!r}, using curated list")
            return await super().search_acts(params)

        logger.info(f"{self.LOG_TAG} {params.query!r} resolved to DetaliiDocument/{portal_id}")
        try:
            return [await self.fetch_act(portal_id)]
        except FetchError as e:
            logger.warning(f"{self.LOG_TAG} Search skipped {portal_id}: {e}")
            return []

    @classmethod
    def normalize_type(cls, raw_type: str) -> str:
        folded = raw_type.upper()
        for src, dst in (("Ă", "A"), ("Â", "A"), ("Ț", "T"), ("Ţ", "T")):
            folded = folded.replace(src, dst)
        return cls.ACT_TYPES.get(folded, "other")

    @classmethod
    def parse_denomination(cls, text: str) -> Optional[dict]:
        m = cls.DENOMINATION.search(text)
        if not m:
            return None
        date_adopted = parse_date(m.group("date"))
        return {
            "act_type": cls.normalize_type(m.group("type")),
            "act_number": f"{m.group('number')}/{date_adopted[:4]}" if date_adopted else m.group("number"),
            "date_adopted": date_adopted,
            "act_year": int(date_adopted[:4]) if date_adopted else None,
        }

    def parse_document(self, source_id: str, markup: str, url: str, language: str) -> RawLegislation:
        soup = parse_html(markup)
        markup_title = select_text(soup, self.TITLE_SELECTORS)
        denomination_text = select_text(soup, ("span.S_DEN", "div.S_DEN")) or ""

        text = extract_body_text(soup, self.BODY_SELECTORS, self.BOILERPLATE_SELECTORS)
        self.ensure_text(text, source_id, url)

        head = text[:3000]
        denomination = self.parse_denomination(denomination_text) or self.parse_denomination(head) or {}
        published = self.PUBLISHED.search(head)
        in_force_from = self.IN_FORCE_FROM.search(head)

        priority = self.priority_act(source_id)
        title = self.resolve_title(source_id, markup_title, text)

        return RawLegislation(
            source_id=source_id,
            source_url=url,
            title_original=title,
            act_type=(priority.act_type if priority else None) or denomination.get("act_type") or "other",
            act_number=(priority.act_number if priority else None) or denomination.get("act_number") or source_id,
            text_original=text,
            language_original=language,
            country_code=self.jurisdiction,
            sections=extract_sections(text, self.jurisdiction),
            date_adopted=denomination.get("date_adopted"),
            date_in_force=parse_date(in_force_from.group("date")) if in_force_from else None,
            in_force=self.REPEALED.search(head) is None,
            act_year=(priority.act_year if priority else None) or denomination.get("act_year"),
            act_short_name=priority.short_name if priority else None,
            metadata={
                "portal_id": source_id,
                "monitorul_oficial": published.group("issue") if published else None,
                "date_published": parse_date(published.group("date")) if published else None,
                "markup_title": markup_title,
            },
        )
