"""
Tests for the LegislationStore backends.

Both backends must behave identically; every contract test runs against the
in-memory store and the JSON file store.

Run with: pytest tests/test_storage.py -v
"""

import asyncio
import json

import pytest

from conftest import make_raw
from legislative_import.errors import SaveError
from legislative_import.models.legislation import (
    CrossReference,
    Jurisdiction,
    LegalDomain,
    Obligation,
    ReferenceType,
    ResponsibleEntity,
    StructuredLegislation,
    TranslatedLegislation,
)
from legislative_import.models.run import ImportFailure, PipelineStep, RunStatus, RunType
from legislative_import.storage import (
    InMemoryStore,
    JsonFileStore,
    ProcessingStatus,
    ReviewStatus,
    processing_status_for,
)


def structured(source_id="A1", text="Article 1\nText of the act.", score=7):
    translated = TranslatedLegislation.passthrough(make_raw(source_id, text))
    return StructuredLegislation.from_translated(
        translated,
        domains=[LegalDomain.SSM, LegalDomain.LABOR],
        ssm_relevance_score=score,
        keywords=["securitate", "angajator"],
        summary_ro="Rezumat.",
        obligations=[Obligation("Evaluarea riscurilor", ResponsibleEntity.EMPLOYER, "Art. 6")],
        cross_references=[CrossReference("Directiva 89/391/CEE", ReferenceType.IMPLEMENTS, "31989L0391")],
    )


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return JsonFileStore(tmp_path / "store")


class TestActStorage:
    """Act persistence contract."""

    def test_save_and_find(self, any_store):
        saved = asyncio.run(any_store.save_act(structured(), import_batch_id="run-1"))
        found = asyncio.run(any_store.find_existing(Jurisdiction.EU, "A1"))

        assert found.id == saved.id
        assert found.review_status == ReviewStatus.UNREVIEWED
        assert found.processing_status == ProcessingStatus.PROCESSED
        assert found.import_batch_id == "run-1"
        assert found.act.obligations[0].responsible_entity == ResponsibleEntity.EMPLOYER
        assert found.act.cross_references[0].target_celex == "31989L0391"
        assert [s.section_number for s in found.act.sections] == ["Article 1", "Article 2"]

    def test_find_missing_returns_none(self, any_store):
        assert asyncio.run(any_store.find_existing(Jurisdiction.EU, "nope")) is None

    def test_key_is_country_and_source_id(self, any_store):
        asyncio.run(any_store.save_act(structured("X1")))
        assert asyncio.run(any_store.find_existing(Jurisdiction.BG, "X1")) is None

    def test_duplicate_insert_rejected(self, any_store):
        asyncio.run(any_store.save_act(structured()))
        with pytest.raises(SaveError):
            asyncio.run(any_store.save_act(structured()))

    def test_update_replaces_content(self, any_store):
        saved = asyncio.run(any_store.save_act(structured()))
        updated = asyncio.run(any_store.update_act(saved.id, structured(text="Article 1\nChanged."), ReviewStatus.NEEDS_REVISION))

        found = asyncio.run(any_store.find_existing(Jurisdiction.EU, "A1"))
        assert updated.id == saved.id
        assert found.review_status == ReviewStatus.NEEDS_REVISION
        assert found.act.text_original == "Article 1\nChanged."
        assert found.created_at == saved.created_at

    def test_update_unknown_id(self, any_store):
        with pytest.raises(SaveError):
            asyncio.run(any_store.update_act("EU-missing", structured()))

    def test_list_processed_only(self, any_store):
        asyncio.run(any_store.save_act(structured("A1")))
        unprocessed = StructuredLegislation.from_translated(TranslatedLegislation.passthrough(make_raw("A2")))
        asyncio.run(any_store.save_act(unprocessed))

        processed = asyncio.run(any_store.list_processed_acts(Jurisdiction.EU))

        assert [a.source_id for a in processed] == ["A1"]
        assert asyncio.run(any_store.list_processed_acts(Jurisdiction.DE)) == []


class TestRunLogs:
    """Run log persistence contract."""

    def test_create_and_finalize(self, any_store):
        result = asyncio.run(any_store.create_run_log("EU", RunType.INITIAL))
        assert asyncio.run(any_store.get_run_log(result.log_id)).status == RunStatus.RUNNING

        result.acts_new = 3
        result.status = RunStatus.PARTIAL
        result.errors.append(ImportFailure("A2", PipelineStep.FETCH, "HTTP 404"))
        asyncio.run(any_store.finalize_run_log(result))

        logged = asyncio.run(any_store.get_run_log(result.log_id))
        assert logged.status == RunStatus.PARTIAL
        assert logged.acts_new == 3
        assert logged.errors[0].step == PipelineStep.FETCH

    def test_list_newest_first(self, any_store):
        first = asyncio.run(any_store.create_run_log("EU", RunType.INITIAL))
        first.started_at = "2026-01-01T00:00:00+00:00"
        asyncio.run(any_store.finalize_run_log(first))
        second = asyncio.run(any_store.create_run_log("DE", RunType.UPDATE_CHECK))

        runs = asyncio.run(any_store.list_run_logs(limit=1))

        assert [r.log_id for r in runs] == [second.log_id]

    def test_unknown_log(self, any_store):
        assert asyncio.run(any_store.get_run_log("0" * 32)) is None


class TestJsonFileStore:
    """File layout specifics."""

    def test_layout_and_deterministic_id(self, tmp_path):
        store = JsonFileStore(tmp_path)
        saved = asyncio.run(store.save_act(structured("31989L0391")))

        path = tmp_path / "acts" / "EU" / "31989L0391.json"
        assert path.exists()
        assert saved.id == "EU-31989L0391"
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["act"]["summary_ro"] == "Rezumat."

    def test_unsafe_source_id_is_encoded(self, tmp_path):
        store = JsonFileStore(tmp_path)
        saved = asyncio.run(store.save_act(structured("a/b c")))

        assert (tmp_path / "acts" / "EU" / "a%2Fb%20c.json").exists()
        assert asyncio.run(store.find_existing(Jurisdiction.EU, "a/b c")) is not None

        updated = asyncio.run(store.update_act(saved.id, structured("a/b c"), ReviewStatus.NEEDS_REVISION))
        assert updated.review_status == ReviewStatus.NEEDS_REVISION

    def test_similar_source_ids_do_not_collide(self, tmp_path):
        store = JsonFileStore(tmp_path)
        asyncio.run(store.save_act(structured("a/b")))

        assert asyncio.run(store.find_existing(Jurisdiction.EU, "a_b")) is None

        asyncio.run(store.save_act(structured("a_b")))
        assert asyncio.run(store.find_existing(Jurisdiction.EU, "a_b")).source_id == "a_b"
        assert asyncio.run(store.find_existing(Jurisdiction.EU, "a/b")).source_id == "a/b"

    def test_record_for_another_source_id_is_not_returned(self, tmp_path):
        store = JsonFileStore(tmp_path)
        asyncio.run(store.save_act(structured("ABC")))
        # what a case-insensitive filesystem would serve for "abc"
        (tmp_path / "acts" / "EU" / "ABC.json").rename(tmp_path / "acts" / "EU" / "abc.json")

        assert asyncio.run(store.find_existing(Jurisdiction.EU, "abc")) is None

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path)
        asyncio.run(store.save_act(structured()))

        assert not list((tmp_path / "acts" / "EU").glob("*.tmp"))


class TestProcessingStatus:

    def test_structured_is_processed(self):
        assert processing_status_for(structured()) == ProcessingStatus.PROCESSED

    def test_translated_only(self):
        act = StructuredLegislation.from_translated(TranslatedLegislation.passthrough(make_raw()))
        assert processing_status_for(act) == ProcessingStatus.TRANSLATED
