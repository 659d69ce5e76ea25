"""
Tests for the Gemini structurer and its response validation.

The Gemini client is replaced by a stub exposing the same
client.aio.models.generate_content coroutine.

Run with: pytest tests/test_structurer.py -v
"""

import asyncio
import json
from types import SimpleNamespace

import pytest

from conftest import make_raw
from legislative_import.errors import StructureError
from legislative_import.models.legislation import (
    LegalDomain,
    PlatformModule,
    ReferenceType,
    ResponsibleEntity,
    TranslatedLegislation,
)
from legislative_import.processors.schemas import MAX_KEYWORDS, clamp_score, normalize_celex
from legislative_import.processors.structurer import (
    FALLBACK_SUMMARY,
    TRUNCATION_NOTICE,
    LegislativeStructurer,
    parse_structurer_response,
)
from legislative_import.utils import rate_limit

VALID_RESPONSE = {
    "domains": ["ssm", "labor"],
    "opLegoModules": ["ssm", "instruiri"],
    "ssmRelevanceScore": 9,
    "keywords": ["evaluarea riscurilor", "angajator"],
    "summaryRo": "Directiva-cadru privind securitatea și sănătatea în muncă.",
    "obligations": [
        {
            "description": "Angajatorul evaluează riscurile.",
            "responsibleEntity": "employer",
            "sourceArticle": "Art. 6",
            "frequency": "anual",
        }
    ],
    "crossReferences": [
        {
            "targetReferenceText": "Directiva 89/654/CEE",
            "targetCelex": "31989L0654",
            "referenceType": "references",
        }
    ],
}


class StubModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def stub_client(*responses):
    models = StubModels(responses)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


def completion(text, prompt_tokens=1200, output_tokens=300):
    return SimpleNamespace(
        text=text,
        usage_metadata=SimpleNamespace(prompt_token_count=prompt_tokens, candidates_token_count=output_tokens),
    )


def translated_act(text="Articolul 1\nTextul actului."):
    return TranslatedLegislation.passthrough(make_raw(text=text, language="ro"))


class TestParseResponse:
    """Validation and clamping of untrusted classifier output."""

    def test_valid_camel_case(self):
        parsed, ok = parse_structurer_response(json.dumps(VALID_RESPONSE))

        assert ok
        assert parsed.domains == [LegalDomain.SSM, LegalDomain.LABOR]
        assert parsed.op_lego_modules == [PlatformModule.SSM, PlatformModule.INSTRUIRI]
        assert parsed.ssm_relevance_score == 9
        assert parsed.obligations[0].responsible_entity == ResponsibleEntity.EMPLOYER
        assert parsed.obligations[0].source_article == "Art. 6"
        assert parsed.cross_references[0].target_celex == "31989L0654"

    def test_snake_case_keys(self):
        parsed, ok = parse_structurer_response(json.dumps({
            "domains": ["psi"],
            "ssm_relevance_score": 4,
            "summary_ro": "Rezumat.",
        }))

        assert ok
        assert parsed.domains == [LegalDomain.PSI]
        assert parsed.ssm_relevance_score == 4
        assert parsed.summary_ro == "Rezumat."

    def test_code_fences_stripped(self):
        text = "```json\n" + json.dumps(VALID_RESPONSE) + "\n```"
        parsed, ok = parse_structurer_response(text)

        assert ok
        assert parsed.ssm_relevance_score == 9

    def test_json_inside_prose(self):
        parsed, ok = parse_structurer_response("Here is the result: " + json.dumps({"domains": ["gdpr"]}) + " Done.")

        assert ok
        assert parsed.domains == [LegalDomain.GDPR]

    @pytest.mark.parametrize("text", ["", "   ", "not json at all", "[1, 2, 3]", "{broken"])
    def test_unusable_output_falls_back(self, text):
        parsed, ok = parse_structurer_response(text)

        assert not ok
        assert parsed.domains == [LegalDomain.GENERAL]
        assert parsed.ssm_relevance_score == 5
        assert parsed.summary_ro == FALLBACK_SUMMARY
        assert parsed.obligations == []

    def test_unknown_vocabulary_dropped(self):
        parsed, ok = parse_structurer_response(json.dumps({
            "domains": ["astrology", "SSM", "ssm"],
            "opLegoModules": ["crm", "near-miss"],
            "obligations": [{"description": "Ceva.", "responsibleEntity": "ceo"}],
            "crossReferences": [{"targetReferenceText": "Legea 319/2006", "referenceType": "mentions", "targetCelex": "L319"}],
        }))

        assert ok
        assert parsed.domains == [LegalDomain.SSM]
        assert parsed.op_lego_modules == [PlatformModule.NEAR_MISS]
        assert parsed.obligations[0].responsible_entity == ResponsibleEntity.OTHER
        assert parsed.cross_references[0].reference_type == ReferenceType.REFERENCES
        assert parsed.cross_references[0].target_celex is None

    def test_empty_domains_default_to_general(self):
        parsed, _ = parse_structurer_response(json.dumps({"domains": []}))
        assert parsed.domains == [LegalDomain.GENERAL]

    def test_invalid_items_dropped(self):
        parsed, ok = parse_structurer_response(json.dumps({
            "obligations": [{"description": ""}, "text", {"description": "Instruirea lucrătorilor."}],
            "crossReferences": [{"targetCelex": "31989L0391"}],
        }))

        assert ok
        assert [o.description for o in parsed.obligations] == ["Instruirea lucrătorilor."]
        assert parsed.cross_references == []

    def test_keywords_deduplicated_and_capped(self):
        keywords = ["SSM", "ssm"] + [f"cuvânt {i}" for i in range(30)]
        parsed, _ = parse_structurer_response(json.dumps({"keywords": keywords}))

        assert len(parsed.keywords) == MAX_KEYWORDS
        assert parsed.keywords[0] == "SSM"
        assert "ssm" not in parsed.keywords


class TestClamping:

    @pytest.mark.parametrize("value,expected", [
        (7, 7), (0, 1), (-3, 1), (42, 10), ("8", 8), (6.6, 7),
        ("high", 5), (None, 5), (True, 5), ("inf", 5),
    ])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected

    def test_normalize_celex(self):
        assert normalize_celex("CELEX:31989L0391") == "31989L0391"
        assert normalize_celex(" 32016r0679 ") == "32016R0679"
        assert normalize_celex("89/391/EEC") is None


class TestLegislativeStructurer:
    """End-to-end structuring with a stubbed Gemini client."""

    def test_structure_success(self, settings):
        client, models = stub_client(completion(json.dumps(VALID_RESPONSE)))
        structurer = LegislativeStructurer(settings=settings, client=client)

        act = asyncio.run(structurer.structure(translated_act()))

        assert act.is_structured
        assert act.ssm_relevance_score == 9
        assert not act.needs_manual_review
        assert act.structurer_input_tokens == 1200
        assert act.structurer_output_tokens == 300
        assert act.obligations[0].description == "Angajatorul evaluează riscurile."
        assert structurer.get_token_usage() == (1200, 300)
        assert models.calls[0]["model"] == settings.structurer_model
        assert models.calls[0]["config"].response_mime_type == "application/json"

    def test_unparseable_response_flags_manual_review(self, settings):
        client, _ = stub_client(completion("Sorry, I cannot help with that."))
        structurer = LegislativeStructurer(settings=settings, client=client)

        act = asyncio.run(structurer.structure(translated_act()))

        assert act.needs_manual_review
        assert act.summary_ro == FALLBACK_SUMMARY
        assert act.ssm_relevance_score == 5
        # a failed parse is still billed
        assert structurer.get_token_usage() == (1200, 300)

    def test_usage_accumulates_and_resets(self, settings):
        client, _ = stub_client(completion("{}", 100, 10), completion("{}", 200, 20))
        structurer = LegislativeStructurer(settings=settings, client=client)

        asyncio.run(structurer.structure(translated_act()))
        asyncio.run(structurer.structure(translated_act()))
        assert structurer.get_token_usage() == (300, 30)
        assert structurer.estimate_cost_usd() > 0

        structurer.reset_usage()
        assert structurer.get_token_usage() == (0, 0)

    def test_api_failure_raises_structure_error(self, settings):
        errors = [RuntimeError("503 UNAVAILABLE")] * (settings.retry_max + 1)
        client, models = stub_client(*errors)
        structurer = LegislativeStructurer(settings=settings, client=client)

        with pytest.raises(StructureError):
            asyncio.run(structurer.structure(translated_act()))
        assert len(models.calls) == settings.retry_max + 1

    def test_transient_failure_retried(self, settings):
        client, models = stub_client(RuntimeError("timeout"), completion(json.dumps(VALID_RESPONSE)))
        structurer = LegislativeStructurer(settings=settings, client=client)

        act = asyncio.run(structurer.structure(translated_act()))

        assert act.ssm_relevance_score == 9
        assert len(models.calls) == 2

    def test_missing_api_key(self, settings):
        settings.gemini_api_key = None
        structurer = LegislativeStructurer(settings=settings)

        with pytest.raises(StructureError):
            asyncio.run(structurer.structure(translated_act()))

    def test_missing_api_key_fails_without_backoff(self, settings, monkeypatch):
        settings.gemini_api_key = None
        settings.retry_base_delay_ms = 100
        waits = []

        async def fake_sleep(seconds):
            waits.append(seconds)

        monkeypatch.setattr(rate_limit.asyncio, "sleep", fake_sleep)
        structurer = LegislativeStructurer(settings=settings)

        with pytest.raises(StructureError, match="GEMINI_API_KEY"):
            asyncio.run(structurer.structure(translated_act()))
        assert waits == []

    def test_prompt_contains_metadata_and_truncates(self, settings):
        settings.structurer_max_input_chars = 50
        structurer = LegislativeStructurer(settings=settings, client=object())

        message = structurer.build_user_message(translated_act("Articolul 1\n" + "x" * 500))

        assert "Identificator sursă: A1" in message
        assert "Secțiuni (2): Article 1, Article 2" in message
        assert message.endswith(TRUNCATION_NOTICE)
