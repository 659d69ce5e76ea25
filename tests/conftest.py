"""
Shared fixtures and in-process fakes for the pipeline tests.

The fakes stand in for the network-facing components (source adapters,
DeepL, Gemini) so pipeline behaviour can be asserted without I/O.
"""

import pytest

from legislative_import.adapters.base import UpdateCheck
from legislative_import.config import Settings
from legislative_import.errors import FetchError, StructureError, TranslateError
from legislative_import.models.legislation import (
    Jurisdiction,
    LegalDomain,
    RawLegislation,
    RawSection,
    StructuredLegislation,
    TranslatedLegislation,
    TranslationProvider,
)
from legislative_import.storage import InMemoryStore

ARTICLE_TEXT = (
    "Article 1\nSubject matter\n"
    "This Directive lays down general principles concerning the prevention of occupational risks.\n\n"
    "Article 2\nScope\n"
    "This Directive shall apply to all sectors of activity, both public and private.\n"
)


def make_raw(
    source_id: str = "A1",
    text: str = ARTICLE_TEXT,
    jurisdiction: Jurisdiction = Jurisdiction.EU,
    language: str = "en",
) -> RawLegislation:
    return RawLegislation(
        source_id=source_id,
        source_url=f"https://example.test/{source_id}",
        title_original=f"Act {source_id}",
        act_type="directive",
        act_number="89/391",
        text_original=text,
        language_original=language,
        country_code=jurisdiction,
        sections=[
            RawSection(section_number="Article 1", title="Subject matter", text="General principles.", sort_order=0),
            RawSection(section_number="Article 2", title="Scope", text="All sectors.", sort_order=1),
        ],
        act_year=1989,
    )


class FakeAdapter:
    """Adapter double driven by dictionaries of texts and errors."""

    def __init__(self, jurisdiction=Jurisdiction.EU, priority=None, texts=None, errors=None, language="en"):
        self.jurisdiction = Jurisdiction(jurisdiction)
        self.priority = list(priority or [])
        self.texts = dict(texts or {})
        self.errors = dict(errors or {})
        self.language = language
        self.fetched: list[str] = []
        self.closed = False

    async def get_priority_acts(self):
        return list(self.priority)

    async def fetch_act(self, source_id):
        self.fetched.append(source_id)
        if source_id in self.errors:
            raise self.errors[source_id]
        if source_id not in self.texts:
            raise FetchError(f"HTTP 404 for {source_id}", status=404)
        return make_raw(source_id, self.texts[source_id], self.jurisdiction, self.language)

    async def search_acts(self, params=None):
        return [await self.fetch_act(s) for s in self.priority]

    async def check_for_updates(self, source_id, last_hash):
        try:
            raw = await self.fetch_act(source_id)
        except Exception:
            return UpdateCheck(has_changed=False)
        return UpdateCheck(has_changed=raw.content_hash != last_hash, new_hash=raw.content_hash, raw=raw)

    async def close(self):
        self.closed = True


class FakeTranslator:
    """Prefixes every text with [RO] and counts characters like DeepL bills them."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.characters = 0
        self.closed = False

    async def translate(self, raw):
        if raw.source_id in self.fail_for:
            raise TranslateError("DeepL HTTP 456: quota exceeded", status=456)
        if raw.language_original.upper() == "RO":
            return TranslatedLegislation.passthrough(raw)
        self.characters += len(raw.text_original)
        return TranslatedLegislation.from_raw(
            raw,
            title_ro=f"[RO] {raw.title_original}",
            text_ro=f"[RO] {raw.text_original}",
            translation_provider=TranslationProvider.DEEPL,
            translation_characters=len(raw.text_original),
        )

    def get_characters_used(self):
        return self.characters

    async def close(self):
        self.closed = True


class FakeStructurer:
    """Returns a fixed classification and 100/50 tokens per call."""

    def __init__(self, score=8, fail_for=()):
        self.score = score
        self.fail_for = set(fail_for)
        self.calls = 0
        self.closed = False

    async def structure(self, act):
        self.calls += 1
        if act.source_id in self.fail_for:
            raise StructureError("Gemini structuring failed: 503 UNAVAILABLE")
        return StructuredLegislation.from_translated(
            act,
            domains=[LegalDomain.SSM],
            ssm_relevance_score=self.score,
            summary_ro="Rezumat.",
            structurer_model="fake",
            structurer_input_tokens=100,
            structurer_output_tokens=50,
        )

    def get_token_usage(self):
        return self.calls * 100, self.calls * 50

    async def close(self):
        self.closed = True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        deepl_api_key="test-key",
        gemini_api_key="test-key",
        retry_max=2,
        retry_base_delay_ms=0,
        translation_min_delay_ms=0,
        structurer_min_delay_ms=0,
        store_path=tmp_path / "store",
    )


@pytest.fixture
def store():
    return InMemoryStore()
