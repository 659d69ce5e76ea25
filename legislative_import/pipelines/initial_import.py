"""
Initial import pipeline.

For one jurisdiction, walks the adapter's priority list in order and runs
fetch -> translate -> structure -> save for every act not already stored.

Idempotence is by source identity (country_code, source_id), never by
content: re-running an import skips stored acts even if their text changed.
Content changes are the update-check pipeline's job.

A failure in any stage of one act is filed in the run's error list and the
run moves on to the next act. Only a failure outside the per-act loop (for
example listing the priority acts) fails the whole run.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..adapters import get_adapter
from ..config import Settings, get_import_config, get_settings
from ..models.legislation import Jurisdiction
from ..models.run import ImportResult, RunStatus, RunType
from ..storage.base import LegislationStore, ReviewStatus
from .common import (
    RunTracker,
    StructurerFactory,
    TranslatorFactory,
    close_all,
    default_structurer_factory,
    default_translator_factory,
    transform_act,
)

logger = logging.getLogger(__name__)


class ImportPipeline:
    """Orchestrates initial and single-act imports into a LegislationStore."""

    def __init__(
        self,
        store: LegislationStore,
        settings: Optional[Settings] = None,
        adapter_factory: Callable = get_adapter,
        translator_factory: TranslatorFactory = default_translator_factory,
        structurer_factory: StructurerFactory = default_structurer_factory,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.adapter_factory = adapter_factory
        self.translator_factory = translator_factory
        self.structurer_factory = structurer_factory

    def _components(self, jurisdiction: Jurisdiction):
        config = get_import_config(jurisdiction)
        adapter = self.adapter_factory(jurisdiction, settings=self.settings)
        translator = self.translator_factory(self.settings) if config.translate_enabled else None
        structurer = self.structurer_factory(self.settings) if config.structure_enabled else None
        return config, adapter, translator, structurer

    async def run_initial_import(
        self,
        jurisdiction: Jurisdiction | str,
        limit: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ImportResult:
        jurisdiction = Jurisdiction(jurisdiction)
        config, adapter, translator, structurer = self._components(jurisdiction)

        result = await self.store.create_run_log(jurisdiction.value, RunType.INITIAL)
        tracker = RunTracker(result, self.store, self.settings)
        logger.info(f"[PIPELINE] Initial import {jurisdiction.value} started (run {result.log_id})")

        try:
            source_ids = await adapter.get_priority_acts()
            if limit is not None:
                source_ids = source_ids[:limit]
            result.acts_found = len(source_ids)

            for index, source_id in enumerate(source_ids):
                if tracker.is_cancelled(cancel_event):
                    tracker.cancel(remaining=len(source_ids) - index)
                    break

                try:
                    existing = await self.store.find_existing(jurisdiction, source_id)
                    if existing is not None:
                        result.acts_skipped += 1
                        logger.info(f"[PIPELINE] {source_id} already imported, skipping")
                        continue

                    raw = await adapter.fetch_act(source_id)
                    act = await transform_act(raw, config, translator, structurer, result)
                    await self.store.save_act(act, import_batch_id=result.log_id)
                    result.acts_new += 1
                    logger.info(f"[PIPELINE] [{index + 1}/{len(source_ids)}] {source_id} imported")
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    tracker.record_error(source_id, e)

            tracker.collect_usage(translator, structurer)
            return await tracker.finalize()

        except BaseException as e:
            tracker.collect_usage(translator, structurer)
            tracker.warn(f"Run aborted: {type(e).__name__}: {e}")
            await tracker.finalize(RunStatus.FAILED)
            raise
        finally:
            await close_all(adapter, translator, structurer)

    async def import_single_act(self, jurisdiction: Jurisdiction | str, source_id: str) -> ImportResult:
        """
        Manual (re-)import of one act, without the duplicate skip.

        An already stored act is overwritten in place and flagged
        needs_revision.
        """
        jurisdiction = Jurisdiction(jurisdiction)
        config, adapter, translator, structurer = self._components(jurisdiction)

        result = await self.store.create_run_log(jurisdiction.value, RunType.SINGLE)
        result.acts_found = 1
        tracker = RunTracker(result, self.store, self.settings)

        try:
            try:
                raw = await adapter.fetch_act(source_id)
                act = await transform_act(raw, config, translator, structurer, result)
                existing = await self.store.find_existing(jurisdiction, source_id)
                if existing is None:
                    await self.store.save_act(act, import_batch_id=result.log_id)
                    result.acts_new = 1
                else:
                    await self.store.update_act(existing.id, act, ReviewStatus.NEEDS_REVISION)
                    result.acts_updated = 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                tracker.record_error(source_id, e)

            tracker.collect_usage(translator, structurer)
            # the only act failed, so nothing was imported
            return await tracker.finalize(RunStatus.FAILED if result.errors else None)

        except BaseException as e:
            tracker.collect_usage(translator, structurer)
            tracker.warn(f"Run aborted: {type(e).__name__}: {e}")
            await tracker.finalize(RunStatus.FAILED)
            raise
        finally:
            await close_all(adapter, translator, structurer)

