"""
In-memory LegislationStore for tests and dry runs.
"""

import copy
import logging
import uuid
from typing import Optional

from ..errors import SaveError
from ..models.legislation import Jurisdiction, StructuredLegislation
from ..models.run import ImportResult, RunType
from .base import ProcessingStatus, ReviewStatus, StoredAct

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed store. Returned records are copies, like rows read from a database."""

    def __init__(self):
        self._acts: dict[tuple[str, str], StoredAct] = {}
        self._runs: dict[str, ImportResult] = {}

    @staticmethod
    def _key(country_code, source_id: str) -> tuple[str, str]:
        return Jurisdiction(country_code).value, source_id

    def __len__(self) -> int:
        return len(self._acts)

    @property
    def acts(self) -> list[StoredAct]:
        return [copy.deepcopy(a) for a in self._acts.values()]

    async def find_existing(self, country_code: Jurisdiction, source_id: str) -> Optional[StoredAct]:
        stored = self._acts.get(self._key(country_code, source_id))
        return copy.deepcopy(stored) if stored else None

    async def save_act(self, act: StructuredLegislation, import_batch_id: Optional[str] = None) -> StoredAct:
        key = self._key(act.country_code, act.source_id)
        if key in self._acts:
            raise SaveError(f"Duplicate act {key[0]}/{key[1]}: insert rejected")
        stored = StoredAct.new(uuid.uuid4().hex, copy.deepcopy(act), import_batch_id)
        self._acts[key] = stored
        logger.debug(f"[STORE] Saved {key[0]}/{key[1]} as {stored.id}")
        return copy.deepcopy(stored)

    async def update_act(
        self,
        act_id: str,
        act: StructuredLegislation,
        review_status: ReviewStatus = ReviewStatus.NEEDS_REVISION,
    ) -> StoredAct:
        for stored in self._acts.values():
            if stored.id == act_id:
                stored.replace_act(copy.deepcopy(act), review_status)
                return copy.deepcopy(stored)
        raise SaveError(f"Cannot update act {act_id}: not found in store")

    async def list_processed_acts(self, country_code: Jurisdiction) -> list[StoredAct]:
        country = Jurisdiction(country_code)
        acts = [
            a for a in self._acts.values()
            if a.country_code == country and a.processing_status == ProcessingStatus.PROCESSED
        ]
        return [copy.deepcopy(a) for a in sorted(acts, key=lambda a: a.updated_at)]

    async def create_run_log(self, jurisdiction: str, run_type: RunType) -> ImportResult:
        result = ImportResult(log_id=uuid.uuid4().hex, jurisdiction=str(jurisdiction), run_type=run_type)
        self._runs[result.log_id] = copy.deepcopy(result)
        return result

    async def finalize_run_log(self, result: ImportResult) -> None:
        self._runs[result.log_id] = copy.deepcopy(result)

    async def get_run_log(self, log_id: str) -> Optional[ImportResult]:
        run = self._runs.get(log_id)
        return copy.deepcopy(run) if run else None

    async def list_run_logs(self, limit: int = 20) -> list[ImportResult]:
        runs = sorted(self._runs.values(), key=lambda r: r.started_at, reverse=True)
        return [copy.deepcopy(r) for r in runs[:limit]]
