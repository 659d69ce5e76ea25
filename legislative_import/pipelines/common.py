"""
Run bookkeeping shared by the import and update-check pipelines.

- RunTracker: per-act error filing, cancellation, finalization and costs
- transform_act: the translate -> structure part of the chain
- default factories: a fresh translator/structurer for every run
"""

import logging
import time
from typing import Any, Callable, Optional

from ..config import ImportConfig, Settings
from ..errors import detect_error_step
from ..models.legislation import RawLegislation, StructuredLegislation, TranslatedLegislation, TranslationProvider
from ..models.run import ImportFailure, ImportResult, RunStatus, utc_now_iso
from ..processors.structurer import LegislativeStructurer
from ..processors.translator import LegislativeTranslator
from ..storage.base import LegislationStore

logger = logging.getLogger(__name__)

TranslatorFactory = Callable[[Settings], Any]
StructurerFactory = Callable[[Settings], Any]


def default_translator_factory(settings: Settings) -> LegislativeTranslator:
    return LegislativeTranslator(settings=settings)


def default_structurer_factory(settings: Settings) -> LegislativeStructurer:
    return LegislativeStructurer(settings=settings)


def estimate_run_cost_eur(
    settings: Settings,
    translation_characters: int,
    input_tokens: int,
    output_tokens: int,
) -> float:
    """Character-based DeepL estimate plus token-based Gemini estimate, in EUR."""
    translation = translation_characters * settings.deepl_cost_per_char_eur
    structuring_usd = (
        input_tokens * settings.structurer_input_cost_usd
        + output_tokens * settings.structurer_output_cost_usd
    )
    return round(translation + structuring_usd * settings.usd_to_eur, 6)


async def close_all(*resources) -> None:
    """Close every resource that has an async close()."""
    for resource in resources:
        close = getattr(resource, "close", None)
        if close is None:
            continue
        try:
            await close()
        except Exception as e:
            logger.warning(f"[PIPELINE] Failed to close {type(resource).__name__}: {e}")


async def transform_act(
    raw: RawLegislation,
    config: ImportConfig,
    translator,
    structurer,
    result: ImportResult,
) -> StructuredLegislation:
    """Translate (or pass through) and structure one fetched act."""
    if config.translate_enabled and translator is not None:
        translated = await translator.translate(raw)
        if translated.translation_provider != TranslationProvider.NONE:
            result.acts_translated += 1
    else:
        translated = TranslatedLegislation.passthrough(raw)

    if config.structure_enabled and structurer is not None:
        structured = await structurer.structure(translated)
        result.acts_structured += 1
        return structured
    return StructuredLegislation.from_translated(translated)


class RunTracker:
    """Mutates one ImportResult over a run and persists it exactly once."""

    def __init__(self, result: ImportResult, store: LegislationStore, settings: Settings):
        self.result = result
        self.store = store
        self.settings = settings
        self.cancelled = False
        self._started = time.monotonic()
        self._finalized = False

    def record_error(self, source_id: str, error: BaseException) -> ImportFailure:
        failure = ImportFailure(
            source_id=source_id,
            step=detect_error_step(error),
            message=str(error) or type(error).__name__,
        )
        self.result.errors.append(failure)
        logger.error(f"[PIPELINE] {source_id} failed at {failure.step.value}: {failure.message}")
        return failure

    def warn(self, message: str) -> None:
        self.result.warnings.append(message)
        logger.warning(f"[PIPELINE] {message}")

    def cancel(self, remaining: int) -> None:
        self.cancelled = True
        self.warn(f"Run cancelled, {remaining} act(s) not processed")

    def is_cancelled(self, cancel_event) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def collect_usage(self, translator=None, structurer=None) -> None:
        if translator is not None:
            self.result.translation_characters = translator.get_characters_used()
        if structurer is not None:
            self.result.structurer_input_tokens, self.result.structurer_output_tokens = structurer.get_token_usage()

    async def finalize(self, status: Optional[RunStatus] = None) -> ImportResult:
        if self._finalized:
            return self.result
        result = self.result
        if status is None:
            status = RunStatus.PARTIAL if (result.errors or self.cancelled) else RunStatus.COMPLETED
        result.status = status
        result.estimated_cost_eur = estimate_run_cost_eur(
            self.settings,
            result.translation_characters,
            result.structurer_input_tokens,
            result.structurer_output_tokens,
        )
        result.completed_at = utc_now_iso()
        result.duration_ms = int((time.monotonic() - self._started) * 1000)

        # a failed write leaves the tracker open so the abort path can persist FAILED
        await self.store.finalize_run_log(result)
        self._finalized = True
        logger.info(f"[PIPELINE] {result.jurisdiction} {result.run_type.value} run {result.log_id}: {result.summary()}")
        return result
