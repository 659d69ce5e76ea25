"""
Tests for the source adapters.

Markup is inlined; fetch_html is replaced per test so no request leaves the
process.

Run with: pytest tests/test_adapters.py -v
"""

import asyncio

import pytest

from legislative_import.adapters import (
    EurLexAdapter,
    GesetzeImInternetAdapter,
    LegislatieJustAdapter,
    LexBgAdapter,
    SearchParams,
    get_adapter,
)
from legislative_import.errors import FetchError, NoTextFoundError, UnsupportedJurisdictionError
from legislative_import.models.legislation import Jurisdiction
from legislative_import.utils.rate_limit import RateLimiter

FILLER = "The employer shall take the measures necessary for the safety and health protection of workers. " * 4

EURLEX_PAGE = f"""
<html><head><title>EUR-Lex - 32019L1937</title><script>var x = 1;</script></head>
<body>
<div id="cookie-consent-banner">We use cookies</div>
<div id="document1">
  <p class="oj-doc-ti">Council Directive 89/391/EEC of 12 June 1989 on the introduction of measures to encourage improvements in the safety and health of workers at work</p>
  <p>Article 1</p>
  <p>Object</p>
  <p>{FILLER}</p>
  <p>Article 2</p>
  <p>Scope</p>
  <p>{FILLER}</p>
</div>
</body></html>
"""

LEXBG_PAGE = f"""
<html><body>
<div id="leftbar">Меню</div>
<div id="DocumentContent">
  <div class="TitleDocument">ЗАКОН за здравословни и безопасни условия на труд</div>
  <p>Обн. ДВ. бр.124 от 23 Декември 1997г., изм. ДВ. бр.86 от 1 Октомври 1999г., изм. ДВ, бр. 12 от 10.02.2023 г.</p>
  <p>Чл. 1. Този закон урежда правата и задълженията на държавата, работодателите и работещите.</p>
  <p>Чл. 2. Работодателят осигурява здравословни и безопасни условия на труд. {FILLER}</p>
</div>
</body></html>
"""

GESETZE_INDEX = """
<html><body><div id="paddingLR12">
<a href="index.html">Inhaltsübersicht</a>
<a href="BJNR124610996.html">Gesamtes Gesetz</a>
</div></body></html>
"""

GESETZE_FULL = f"""
<html><body>
<div id="blau">Navigation</div>
<div id="paddingLR12">
  <div class="jnheader">
    <h1><span class="jnlangue">Gesetz über die Durchführung von Maßnahmen des Arbeitsschutzes (Arbeitsschutzgesetz - ArbSchG)</span></h1>
    <p>Ausfertigungsdatum: 07.08.1996</p>
    <p>Zuletzt geändert durch Art. 2 G v. 31.5.2023 I Nr. 140</p>
  </div>
  <div class="jnnorm"><p>§ 1 Zielsetzung und Anwendungsbereich</p><p>(1) Dieses Gesetz dient dazu. {FILLER}</p></div>
  <div class="jnnorm"><p>§ 2 Begriffsbestimmungen</p><p>(1) Maßnahmen des Arbeitsschutzes sind Maßnahmen.</p></div>
</div>
</body></html>
"""

LEGISLATIE_PAGE = f"""
<html><body>
<div class="navbar">Acasă</div>
<div id="textdocumentleg">
  <div class="S_DEN">LEGE nr. 319 din 14 iulie 2006</div>
  <div class="S_HDR">a securității și sănătății în muncă</div>
  <p>Publicat în MONITORUL OFICIAL nr. 646 din 26 iulie 2006</p>
  <p>Intră în vigoare: 1 octombrie 2006</p>
  <p>Art. 1. - Prezenta lege are ca scop instituirea de măsuri privind promovarea îmbunătățirii securității.</p>
  <p>Art. 2. - Prezenta lege se aplică în toate sectoarele de activitate. {FILLER}</p>
</div>
</body></html>
"""


LEGISLATIE_SEARCH_PAGE = """
<html><body>
<div class="rezultate">
  <a href="/Public/DetaliiDocument/11111">HOTĂRÂRE nr. 1425 din 9 decembrie 2004</a>
  <a href="/Public/DetaliiDocument/99999">HOTĂRÂRE nr. 1425 din 11 octombrie 2006</a>
  <a href="/Public/DetaliiDocument/22222">HOTĂRÂRE nr. 14250 din 2006</a>
  <a href="/Public/Cautare">Căutare avansată</a>
</div>
</body></html>
"""


def make_adapter(cls, settings, pages):
    """Adapter whose fetch_html serves `pages` (url substring -> markup or exception)."""
    adapter = cls(settings=settings, rate_limiter=RateLimiter(max_concurrent=1, min_delay_ms=0))
    adapter.requested = []

    async def fetch_html(url):
        adapter.requested.append(url)
        for key, page in pages.items():
            if key in url:
                if isinstance(page, Exception):
                    raise page
                return page
        raise FetchError(f"HTTP 404 for {url}", status=404)

    adapter.fetch_html = fetch_html
    return adapter


class TestRegistry:
    """get_adapter maps jurisdictions to adapter classes."""

    @pytest.mark.parametrize("code,cls", [
        ("EU", EurLexAdapter),
        ("bg", LexBgAdapter),
        (Jurisdiction.DE, GesetzeImInternetAdapter),
        ("RO", LegislatieJustAdapter),
    ])
    def test_known_jurisdictions(self, settings, code, cls):
        assert isinstance(get_adapter(code, settings=settings), cls)

    def test_unknown_jurisdiction(self, settings):
        with pytest.raises(UnsupportedJurisdictionError):
            get_adapter("FR", settings=settings)

    def test_every_adapter_has_priority_acts(self, settings):
        for code in ("EU", "BG", "DE", "RO"):
            ids = asyncio.run(get_adapter(code, settings=settings).get_priority_acts())
            assert ids
            assert len(ids) == len(set(ids))


class TestEurLexAdapter:
    """CELEX-addressed EUR-Lex pages."""

    def test_parse_document(self, settings):
        adapter = EurLexAdapter(settings=settings)
        url = adapter.document_url("32019L1937", "EN")
        raw = adapter.parse_document("32019L1937", EURLEX_PAGE, url, "EN")

        assert raw.country_code == Jurisdiction.EU
        assert raw.title_original.startswith("Council Directive 89/391/EEC")
        assert raw.act_type == "directive"
        assert raw.act_number == "2019/1937"
        assert raw.act_year == 2019
        assert raw.language_original == "en"
        assert raw.date_adopted == "1989-06-12"
        assert raw.in_force
        assert "cookies" not in raw.text_original
        assert "var x" not in raw.text_original
        assert [s.section_number for s in raw.sections] == ["Article 1", "Article 2"]
        assert raw.sections[0].title == "Object"
        assert raw.metadata["celex"] == "32019L1937"
        assert url == "https://eur-lex.europa.eu/legal-content/EN/TXT/HTML/?uri=CELEX:32019L1937"

    def test_priority_act_uses_curated_metadata(self, settings):
        adapter = EurLexAdapter(settings=settings)
        raw = adapter.parse_document("31989L0391", EURLEX_PAGE, "u", "RO")

        assert raw.title_original.startswith("Directiva 89/391/CEE")
        assert raw.act_number == "89/391"
        assert raw.act_short_name == "Directiva-cadru SSM"

    def test_not_in_force_marker(self, settings):
        page = EURLEX_PAGE.replace("<div id=\"document1\">", "<div id=\"document1\"><p>No longer in force</p>")
        raw = EurLexAdapter(settings=settings).parse_document("32019L1937", page, "u", "EN")
        assert not raw.in_force

    def test_short_page_raises_no_text(self, settings):
        with pytest.raises(NoTextFoundError):
            EurLexAdapter(settings=settings).parse_document(
                "32019L1937", "<html><body><div id='document1'><p>Short.</p></div></body></html>", "u", "EN"
            )

    @pytest.mark.parametrize("celex,expected", [
        ("32016R0679", ("regulation", "2016/679", 2016)),
        ("31989L0391", ("directive", "1989/391", 1989)),
        ("32010D0001", ("decision", "2010/1", 2010)),
        ("garbage", ("act", "garbage", None)),
    ])
    def test_parse_celex(self, celex, expected):
        assert EurLexAdapter.parse_celex(celex) == expected

    def test_language_fallback(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {"/EN/": EURLEX_PAGE})

        raw = asyncio.run(adapter.fetch_act("32019L1937"))

        assert raw.language_original == "en"
        assert raw.metadata["fetched_language"] == "en"
        assert [u.split("/")[4] for u in adapter.requested] == ["RO", "EN"]

    def test_short_romanian_page_falls_back_to_english(self, settings):
        short = "<html><body><div id='document1'><p>Text indisponibil.</p></div></body></html>"
        adapter = make_adapter(EurLexAdapter, settings, {"/RO/": short, "/EN/": EURLEX_PAGE})

        raw = asyncio.run(adapter.fetch_act("32019L1937"))
        assert raw.language_original == "en"

    def test_all_languages_fail_raises_last_error(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {})

        with pytest.raises(FetchError) as exc:
            asyncio.run(adapter.fetch_act("32019L1937"))
        assert "/EN/" in str(exc.value)

    def test_check_for_updates(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {"/RO/": EURLEX_PAGE})
        current = asyncio.run(adapter.fetch_act("32019L1937"))

        same = asyncio.run(adapter.check_for_updates("32019L1937", current.content_hash))
        changed = asyncio.run(adapter.check_for_updates("32019L1937", "0" * 64))

        assert not same.has_changed
        assert changed.has_changed
        assert changed.new_hash == current.content_hash
        assert changed.raw.source_id == "32019L1937"

    def test_check_for_updates_failure_is_unchanged(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {"eur-lex": FetchError("HTTP 503", status=503)})

        check = asyncio.run(adapter.check_for_updates("32019L1937", "abc"))

        assert not check.has_changed
        assert check.new_hash is None

    def test_search_filters_priority_list(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {"eur-lex": EURLEX_PAGE})

        results = asyncio.run(adapter.search_acts(SearchParams(query="gdpr")))

        assert [r.source_id for r in results] == ["32016R0679"]

    def test_search_skips_failures_and_limits(self, settings):
        adapter = make_adapter(EurLexAdapter, settings, {"31989L0391": EURLEX_PAGE, "32009L0104": EURLEX_PAGE, "32003L0088": EURLEX_PAGE})

        results = asyncio.run(adapter.search_acts(SearchParams(limit=2)))

        assert [r.source_id for r in results] == ["31989L0391", "32009L0104"]


class TestLexBgAdapter:

    def test_parse_document(self, settings):
        adapter = LexBgAdapter(settings=settings)
        raw = adapter.parse_document("999", LEXBG_PAGE, adapter.document_url("999", "bg"), "bg")

        assert raw.source_url == "https://lex.bg/laws/ldoc/999"
        assert raw.title_original == "ЗАКОН за здравословни и безопасни условия на труд"
        assert raw.act_type == "law"
        assert raw.date_adopted == "1997-12-23"
        assert raw.date_last_amended == "2023-02-10"
        assert raw.act_year == 1997
        assert raw.metadata["gazette_issue"] == "124"
        assert raw.metadata["amendment_count"] == 2
        assert "Меню" not in raw.text_original
        assert [s.section_number for s in raw.sections] == ["Чл. 1", "Чл. 2"]

    def test_parse_number(self):
        assert LexBgAdapter.parse_number("НАРЕДБА № 7 от 23.09.1999 г.") == "7"
        assert LexBgAdapter.parse_number("Кодекс на труда") is None

    @pytest.mark.parametrize("title,expected", [
        ("Кодекс на труда", "code"),
        ("НАРЕДБА № 7", "ordinance"),
        ("Правилник за прилагане", "regulation"),
        ("Указ", "act"),
    ])
    def test_classify_title(self, title, expected):
        assert LexBgAdapter.classify_title(title) == expected


class TestGesetzeImInternetAdapter:

    def test_full_page_discovered_from_index(self, settings):
        adapter = make_adapter(GesetzeImInternetAdapter, settings, {
            "/arbschg/BJNR124610996.html": GESETZE_FULL,
            "/arbschg/": GESETZE_INDEX,
        })

        raw = asyncio.run(adapter.fetch_act("arbschg"))

        assert adapter.requested == [
            "https://www.gesetze-im-internet.de/arbschg/",
            "https://www.gesetze-im-internet.de/arbschg/BJNR124610996.html",
        ]
        assert raw.source_url.endswith("BJNR124610996.html")
        assert raw.language_original == "de"
        assert raw.act_short_name == "ArbSchG"
        assert raw.date_adopted == "1996-08-07"
        assert raw.date_last_amended == "2023-05-31"
        assert "Navigation" not in raw.text_original
        assert [s.section_number for s in raw.sections] == ["§ 1", "§ 2"]

    def test_missing_full_page_link_falls_back_to_english(self, settings):
        english = GESETZE_FULL.replace("Ausfertigungsdatum: 07.08.1996", "Date of issue: 07.08.1996")
        adapter = make_adapter(GesetzeImInternetAdapter, settings, {
            "englisch_arbschg": english,
            "/arbschg/": "<html><body>no links</body></html>",
        })

        raw = asyncio.run(adapter.fetch_act("arbschg"))

        assert raw.language_original == "en"
        assert raw.source_url == "https://www.gesetze-im-internet.de/englisch_arbschg/englisch_arbschg.html"
        assert raw.date_adopted == "1996-08-07"

    def test_unknown_slug_derives_metadata(self, settings):
        adapter = GesetzeImInternetAdapter(settings=settings)
        raw = adapter.parse_document("testv", GESETZE_FULL.replace("ArbSchG", "ArbStättV"), "u", "de")

        assert raw.act_number == "ArbStättV"
        assert raw.act_type == "Verordnung"
        assert raw.act_year == 1996


class TestLegislatieJustAdapter:

    def test_parse_document(self, settings):
        adapter = LegislatieJustAdapter(settings=settings)
        raw = adapter.parse_document("99999", LEGISLATIE_PAGE, adapter.document_url("99999", "ro"), "ro")

        assert raw.source_url == "https://legislatie.just.ro/Public/DetaliiDocument/99999"
        assert raw.title_original == "a securității și sănătății în muncă"
        assert raw.act_type == "law"
        assert raw.act_number == "319/2006"
        assert raw.act_year == 2006
        assert raw.date_adopted == "2006-07-14"
        assert raw.date_in_force == "2006-10-01"
        assert raw.in_force
        assert raw.metadata["monitorul_oficial"] == "646"
        assert raw.metadata["date_published"] == "2006-07-26"
        assert [s.section_number for s in raw.sections] == ["Art. 1", "Art. 2"]

    def test_priority_title(self, settings):
        raw = LegislatieJustAdapter(settings=settings).parse_document("73751", LEGISLATIE_PAGE, "u", "ro")
        assert raw.title_original == "Legea securității și sănătății în muncă"
        assert raw.act_short_name == "Legea 319/2006"

    def test_repealed_act(self, settings):
        page = LEGISLATIE_PAGE.replace("<p>Intră", "<p>Act abrogat de Legea nr. 1/2020</p><p>Intră")
        raw = LegislatieJustAdapter(settings=settings).parse_document("99999", page, "u", "ro")
        assert not raw.in_force

    @pytest.mark.parametrize("query,expected", [
        ("HG 1425/2006", ("HG", "1425", "2006")),
        ("Legea nr. 319 / 2006", ("LEGEA", "319", "2006")),
        ("oug 96/2003", ("OUG", "96", "2003")),
        ("securitatea muncii", None),
        ("HG 1425", None),
    ])
    def test_parse_act_query(self, query, expected):
        assert LegislatieJustAdapter.parse_act_query(query) == expected

    def test_search_resolves_act_through_portal(self, settings):
        adapter = make_adapter(LegislatieJustAdapter, settings, {
            "RezultateCautare": LEGISLATIE_SEARCH_PAGE,
            "DetaliiDocument/99999": LEGISLATIE_PAGE,
        })

        results = asyncio.run(adapter.search_acts(SearchParams(query="HG 1425/2006")))

        assert [r.source_id for r in results] == ["99999"]
        assert "RezultateCautare" in adapter.requested[0]
        assert "searchText=Hotararea+Guvernului+1425%2F2006" in adapter.requested[0]
        assert adapter.requested[1].endswith("/DetaliiDocument/99999")

    def test_search_takes_first_result_without_exact_match(self, settings):
        page = LEGISLATIE_SEARCH_PAGE.replace("nr. 1425 din 11 octombrie 2006", "privind normele metodologice")
        adapter = make_adapter(LegislatieJustAdapter, settings, {
            "RezultateCautare": page,
            "DetaliiDocument/11111": LEGISLATIE_PAGE,
        })

        results = asyncio.run(adapter.search_acts(SearchParams(query="HG 1425/2006")))

        assert [r.source_id for r in results] == ["11111"]

    def test_search_without_results_uses_curated_list(self, settings):
        adapter = make_adapter(LegislatieJustAdapter, settings, {
            "RezultateCautare": "<html><body><p>Nu au fost găsite rezultate.</p></body></html>",
            "DetaliiDocument/76256": LEGISLATIE_PAGE,
        })

        results = asyncio.run(adapter.search_acts(SearchParams(query="HG 1425/2006")))

        assert [r.source_id for r in results] == ["76256"]

    def test_failed_portal_search_uses_curated_list(self, settings):
        adapter = make_adapter(LegislatieJustAdapter, settings, {
            "RezultateCautare": FetchError("HTTP 503", status=503),
            "DetaliiDocument/76256": LEGISLATIE_PAGE,
        })

        results = asyncio.run(adapter.search_acts(SearchParams(query="HG 1425/2006")))

        assert [r.source_id for r in results] == ["76256"]

    def test_free_text_search_skips_portal(self, settings):
        adapter = make_adapter(LegislatieJustAdapter, settings, {"DetaliiDocument/": LEGISLATIE_PAGE})

        results = asyncio.run(adapter.search_acts(SearchParams(query="incendiilor")))

        assert [r.source_id for r in results] == ["73788", "81337"]
        assert not any("RezultateCautare" in url for url in adapter.requested)

    @pytest.mark.parametrize("raw_type,expected", [
        ("LEGE", "law"),
        ("HOTĂRÂRE", "government_decision"),
        ("ORDONANȚĂ DE URGENȚĂ", "emergency_ordinance"),
        ("ORDIN", "ministerial_order"),
        ("CIRCULARĂ", "other"),
    ])
    def test_normalize_type(self, raw_type, expected):
        assert LegislatieJustAdapter.normalize_type(raw_type) == expected
