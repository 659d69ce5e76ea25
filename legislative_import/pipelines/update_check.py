"""
Weekly update-check pipeline.

Re-walks every processed act of a jurisdiction, oldest updated first, and
asks the adapter whether the source text's hash changed. Only changed acts go
through translate -> structure again; the stored record is overwritten in
place and always flagged needs_revision, since an automatic re-classification
is never trusted without a reviewer.

An unreachable source counts as unchanged (the adapter reports
has_changed=False), so one dead link cannot block the run.
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional

from ..adapters import get_adapter
from ..config import COUNTRY_CONFIGS, Settings, get_import_config, get_settings
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


class UpdateCheckPipeline:
    """Detects and re-processes acts whose source text changed."""

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

    async def check_jurisdiction(
        self,
        jurisdiction: Jurisdiction | str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ImportResult:
        jurisdiction = Jurisdiction(jurisdiction)
        config = get_import_config(jurisdiction)
        adapter = self.adapter_factory(jurisdiction, settings=self.settings)
        translator = self.translator_factory(self.settings) if config.translate_enabled else None
        structurer = self.structurer_factory(self.settings) if config.structure_enabled else None

        result = await self.store.create_run_log(jurisdiction.value, RunType.UPDATE_CHECK)
        tracker = RunTracker(result, self.store, self.settings)

        try:
            stored_acts = await self.store.list_processed_acts(jurisdiction)
            result.acts_found = len(stored_acts)
            logger.info(f"[UPDATE] {jurisdiction.value}: checking {len(stored_acts)} processed act(s)")

            for index, stored in enumerate(stored_acts):
                if tracker.is_cancelled(cancel_event):
                    tracker.cancel(remaining=len(stored_acts) - index)
                    break

                try:
                    check = await adapter.check_for_updates(stored.source_id, stored.content_hash)
                    if not check.has_changed:
                        result.acts_skipped += 1
                        continue

                    logger.info(f"[UPDATE] {stored.source_id} changed, re-processing")
                    raw = check.raw if check.raw is not None else await adapter.fetch_act(stored.source_id)
                    act = await transform_act(raw, config, translator, structurer, result)
                    await self.store.update_act(stored.id, act, ReviewStatus.NEEDS_REVISION)
                    result.acts_updated += 1
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    tracker.record_error(stored.source_id, e)

            tracker.collect_usage(translator, structurer)
            return await tracker.finalize()

        except BaseException as e:
            tracker.collect_usage(translator, structurer)
            tracker.warn(f"Run aborted: {type(e).__name__}: {e}")
            await tracker.finalize(RunStatus.FAILED)
            raise
        finally:
            await close_all(adapter, translator, structurer)

    async def check_all(
        self,
        jurisdictions: Optional[Iterable[Jurisdiction | str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[ImportResult]:
        """
        Check every configured jurisdiction in sequence.

        A jurisdiction whose run fails is logged and the next one still runs.
        """
        targets = [Jurisdiction(j) for j in jurisdictions] if jurisdictions else list(COUNTRY_CONFIGS)
        results: list[ImportResult] = []
        for jurisdiction in targets:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"[UPDATE] Cancelled before {jurisdiction.value}")
                break
            try:
                results.append(await self.check_jurisdiction(jurisdiction, cancel_event))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # the failed run log is already persisted by check_jurisdiction
                logger.error(f"[UPDATE] {jurisdiction.value} update check failed: {e}")
        return results
