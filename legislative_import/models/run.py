"""
Pipeline run models.

An ImportResult is created when a run starts, mutated additively while acts
are processed, and finalized exactly once when the run ends.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class RunType(str, Enum):
    INITIAL = "initial"
    SINGLE = "single"
    UPDATE_CHECK = "update_check"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class PipelineStep(str, Enum):
    """Stage of the import chain an error is attributed to."""
    FETCH = "fetch"
    TRANSLATE = "translate"
    STRUCTURE = "structure"
    SAVE = "save"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ImportFailure:
    """One act that could not be imported during a run."""
    source_id: str
    step: PipelineStep
    message: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "step": self.step.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportFailure":
        return cls(
            source_id=data["source_id"],
            step=PipelineStep(data["step"]),
            message=data["message"],
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class ImportResult:
    """Outcome of one pipeline run."""
    log_id: str
    jurisdiction: str
    run_type: RunType = RunType.INITIAL
    status: RunStatus = RunStatus.RUNNING
    acts_found: int = 0
    acts_new: int = 0
    acts_updated: int = 0
    acts_translated: int = 0
    acts_structured: int = 0
    acts_skipped: int = 0
    translation_characters: int = 0
    structurer_input_tokens: int = 0
    structurer_output_tokens: int = 0
    estimated_cost_eur: float = 0.0
    errors: list[ImportFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=utc_now_iso)
    completed_at: Optional[str] = None
    duration_ms: int = 0

    @property
    def structurer_tokens(self) -> int:
        return self.structurer_input_tokens + self.structurer_output_tokens

    @property
    def is_final(self) -> bool:
        return self.status != RunStatus.RUNNING

    def summary(self) -> str:
        return (
            f"{self.status.value}: {self.acts_new} new, {self.acts_updated} updated, "
            f"{self.acts_skipped} skipped, {len(self.errors)} errors. "
            f"EUR {self.estimated_cost_eur:.4f}"
        )

    def to_dict(self) -> dict:
        return {
            "log_id": self.log_id,
            "jurisdiction": self.jurisdiction,
            "run_type": self.run_type.value,
            "status": self.status.value,
            "acts_found": self.acts_found,
            "acts_new": self.acts_new,
            "acts_updated": self.acts_updated,
            "acts_translated": self.acts_translated,
            "acts_structured": self.acts_structured,
            "acts_skipped": self.acts_skipped,
            "translation_characters": self.translation_characters,
            "structurer_input_tokens": self.structurer_input_tokens,
            "structurer_output_tokens": self.structurer_output_tokens,
            "estimated_cost_eur": self.estimated_cost_eur,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_ms": self.duration_ms,
            "summary": self.summary(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportResult":
        return cls(
            log_id=data["log_id"],
            jurisdiction=data["jurisdiction"],
            run_type=RunType(data.get("run_type", "initial")),
            status=RunStatus(data.get("status", "running")),
            acts_found=data.get("acts_found", 0),
            acts_new=data.get("acts_new", 0),
            acts_updated=data.get("acts_updated", 0),
            acts_translated=data.get("acts_translated", 0),
            acts_structured=data.get("acts_structured", 0),
            acts_skipped=data.get("acts_skipped", 0),
            translation_characters=data.get("translation_characters", 0),
            structurer_input_tokens=data.get("structurer_input_tokens", 0),
            structurer_output_tokens=data.get("structurer_output_tokens", 0),
            estimated_cost_eur=data.get("estimated_cost_eur", 0.0),
            errors=[ImportFailure.from_dict(e) for e in data.get("errors", [])],
            warnings=data.get("warnings", []),
            started_at=data.get("started_at", ""),
            completed_at=data.get("completed_at"),
            duration_ms=data.get("duration_ms", 0),
        )
