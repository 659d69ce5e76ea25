"""
Persistence contract for imported acts and run logs.

An act is stored together with its sections and cross-references as one
record, so a write either lands completely or not at all. Records are keyed
by (country_code, source_id); that key is what makes imports idempotent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from ..config import get_import_config
from ..models.legislation import Jurisdiction, StructuredLegislation
from ..models.run import ImportResult, RunType, utc_now_iso


class ReviewStatus(str, Enum):
    """Human review state. APPROVED is only ever set by a reviewer."""
    UNREVIEWED = "unreviewed"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"


class ProcessingStatus(str, Enum):
    """Furthest pipeline stage an act went through."""
    FETCHED = "fetched"
    TRANSLATED = "translated"
    PROCESSED = "processed"


def processing_status_for(act: StructuredLegislation) -> ProcessingStatus:
    if act.is_structured:
        return ProcessingStatus.PROCESSED
    if act.text_ro:
        return ProcessingStatus.TRANSLATED
    return ProcessingStatus.FETCHED


@dataclass
class StoredAct:
    """A persisted act plus its bookkeeping columns."""
    id: str
    act: StructuredLegislation
    review_status: ReviewStatus = ReviewStatus.UNREVIEWED
    processing_status: ProcessingStatus = ProcessingStatus.FETCHED
    import_batch_id: Optional[str] = None
    import_source: str = ""
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def source_id(self) -> str:
        return self.act.source_id

    @property
    def country_code(self) -> Jurisdiction:
        return self.act.country_code

    @property
    def content_hash(self) -> str:
        return self.act.content_hash

    @classmethod
    def new(cls, act_id: str, act: StructuredLegislation, import_batch_id: Optional[str]) -> "StoredAct":
        return cls(
            id=act_id,
            act=act,
            review_status=ReviewStatus.UNREVIEWED,
            processing_status=processing_status_for(act),
            import_batch_id=import_batch_id,
            import_source=get_import_config(act.country_code).import_source,
        )

    def replace_act(self, act: StructuredLegislation, review_status: ReviewStatus) -> None:
        """Overwrite text, metadata, sections and cross-references in place."""
        self.act = act
        self.review_status = review_status
        self.processing_status = processing_status_for(act)
        self.updated_at = utc_now_iso()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "review_status": self.review_status.value,
            "processing_status": self.processing_status.value,
            "import_batch_id": self.import_batch_id,
            "import_source": self.import_source,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "act": self.act.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoredAct":
        return cls(
            id=data["id"],
            act=StructuredLegislation.from_dict(data["act"]),
            review_status=ReviewStatus(data.get("review_status", "unreviewed")),
            processing_status=ProcessingStatus(data.get("processing_status", "fetched")),
            import_batch_id=data.get("import_batch_id"),
            import_source=data.get("import_source", ""),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@runtime_checkable
class LegislationStore(Protocol):
    """What the pipelines need from a datastore."""

    async def find_existing(self, country_code: Jurisdiction, source_id: str) -> Optional[StoredAct]: ...

    async def save_act(self, act: StructuredLegislation, import_batch_id: Optional[str] = None) -> StoredAct: ...

    async def update_act(
        self,
        act_id: str,
        act: StructuredLegislation,
        review_status: ReviewStatus = ReviewStatus.NEEDS_REVISION,
    ) -> StoredAct: ...

    async def list_processed_acts(self, country_code: Jurisdiction) -> list[StoredAct]: ...

    async def create_run_log(self, jurisdiction: str, run_type: RunType) -> ImportResult: ...

    async def finalize_run_log(self, result: ImportResult) -> None: ...

    async def get_run_log(self, log_id: str) -> Optional[ImportResult]: ...

    async def list_run_logs(self, limit: int = 20) -> list[ImportResult]: ...
