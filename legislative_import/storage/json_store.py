"""
File-backed LegislationStore.

Layout under the store root:

    acts/<COUNTRY>/<source_id>.json   one document per act (sections and
                                      cross-references included); the
                                      source id is percent-encoded
    runs/<log_id>.json                one document per pipeline run

Every write goes to a temporary file in the target directory followed by an
atomic rename, so a reader sees either the previous record or the new one.
"""

import asyncio
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from ..errors import SaveError
from ..models.legislation import Jurisdiction, StructuredLegislation
from ..models.run import ImportResult, RunType
from .base import ProcessingStatus, ReviewStatus, StoredAct

logger = logging.getLogger(__name__)


def _safe_name(source_id: str) -> str:
    """Reversible file name for a source id (percent-encoded, no path separators)."""
    return quote(source_id, safe="")


def _write_json_atomic(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_json(path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class JsonFileStore:
    """One JSON file per act and per run, under `root`."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.acts_dir = self.root / "acts"
        self.runs_dir = self.root / "runs"

    def _act_path(self, country_code, source_id: str) -> Path:
        return self.acts_dir / Jurisdiction(country_code).value / f"{_safe_name(source_id)}.json"

    @staticmethod
    def act_id_for(country_code, source_id: str) -> str:
        return f"{Jurisdiction(country_code).value}-{_safe_name(source_id)}"

    def _path_for_id(self, act_id: str) -> Path:
        country, _, name = act_id.partition("-")
        return self.acts_dir / country / f"{name}.json"

    async def _write(self, path: Path, data: dict) -> None:
        try:
            await asyncio.to_thread(_write_json_atomic, path, data)
        except OSError as e:
            raise SaveError(f"Store write failed for {path}: {e}") from e

    async def _load_act(self, path: Path) -> Optional[StoredAct]:
        data = await asyncio.to_thread(_read_json, path)
        return StoredAct.from_dict(data) if data else None

    # ------------------------------------------------------------------
    # Acts
    # ------------------------------------------------------------------

    async def find_existing(self, country_code: Jurisdiction, source_id: str) -> Optional[StoredAct]:
        stored = await self._load_act(self._act_path(country_code, source_id))
        # names can still collide on case-insensitive filesystems
        if stored is not None and stored.source_id != source_id:
            return None
        return stored

    async def save_act(self, act: StructuredLegislation, import_batch_id: Optional[str] = None) -> StoredAct:
        path = self._act_path(act.country_code, act.source_id)
        if path.exists():
            raise SaveError(f"Duplicate act {act.country_code.value}/{act.source_id}: insert rejected")
        stored = StoredAct.new(self.act_id_for(act.country_code, act.source_id), act, import_batch_id)
        await self._write(path, stored.to_dict())
        logger.debug(f"[STORE] Wrote {path}")
        return stored

    async def update_act(
        self,
        act_id: str,
        act: StructuredLegislation,
        review_status: ReviewStatus = ReviewStatus.NEEDS_REVISION,
    ) -> StoredAct:
        path = self._path_for_id(act_id)
        stored = await self._load_act(path)
        if stored is None:
            raise SaveError(f"Cannot update act {act_id}: not found in store")
        stored.replace_act(act, review_status)
        await self._write(path, stored.to_dict())
        return stored

    async def list_processed_acts(self, country_code: Jurisdiction) -> list[StoredAct]:
        country_dir = self.acts_dir / Jurisdiction(country_code).value
        if not country_dir.exists():
            return []
        acts = []
        for path in sorted(country_dir.glob("*.json")):
            stored = await self._load_act(path)
            if stored and stored.processing_status == ProcessingStatus.PROCESSED:
                acts.append(stored)
        return sorted(acts, key=lambda a: a.updated_at)

    # ------------------------------------------------------------------
    # Run logs
    # ------------------------------------------------------------------

    async def create_run_log(self, jurisdiction: str, run_type: RunType) -> ImportResult:
        result = ImportResult(log_id=uuid.uuid4().hex, jurisdiction=str(jurisdiction), run_type=run_type)
        await self._write(self.runs_dir / f"{result.log_id}.json", result.to_dict())
        return result

    async def finalize_run_log(self, result: ImportResult) -> None:
        await self._write(self.runs_dir / f"{result.log_id}.json", result.to_dict())

    async def get_run_log(self, log_id: str) -> Optional[ImportResult]:
        data = await asyncio.to_thread(_read_json, self.runs_dir / f"{log_id}.json")
        return ImportResult.from_dict(data) if data else None

    async def list_run_logs(self, limit: int = 20) -> list[ImportResult]:
        if not self.runs_dir.exists():
            return []
        runs = []
        for path in self.runs_dir.glob("*.json"):
            data = await asyncio.to_thread(_read_json, path)
            if data:
                runs.append(ImportResult.from_dict(data))
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return runs[:limit]
