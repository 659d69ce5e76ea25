"""
Exception hierarchy for the import pipeline.

Every error raised by a pipeline stage carries the stage it belongs to so the
orchestrator can file it in the run's error list. Errors from third-party code
that reach the orchestrator untyped are classified by message content.
"""

from typing import Optional

from .models.run import PipelineStep


class LegislativeImportError(Exception):
    """Base class for all pipeline errors."""
    step: PipelineStep = PipelineStep.FETCH


class FetchError(LegislativeImportError):
    """Origin unreachable or returned an unusable page."""
    step = PipelineStep.FETCH

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def retryable(self) -> bool:
        # 4xx other than timeout/too-many-requests will not change on retry
        if self.status is None:
            return True
        return self.status >= 500 or self.status in (408, 429)


class NoTextFoundError(FetchError):
    """Extracted text is below the adapter's minimum length."""


class TranslateError(LegislativeImportError):
    step = PipelineStep.TRANSLATE

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def retryable(self) -> bool:
        if self.status is None:
            return True
        return self.status >= 500 or self.status in (408, 429)


class StructureError(LegislativeImportError):
    """Completion API failure. Unparseable responses are recovered locally."""
    step = PipelineStep.STRUCTURE


class SaveError(LegislativeImportError):
    """Persistence rejected the write."""
    step = PipelineStep.SAVE


class UnsupportedJurisdictionError(LegislativeImportError):
    """No adapter is registered for the requested jurisdiction."""


def detect_error_step(error: BaseException) -> PipelineStep:
    """Attribute an error to the pipeline stage that raised it."""
    if isinstance(error, LegislativeImportError):
        return error.step

    message = f"{type(error).__name__}: {error}"
    lowered = message.lower()
    if "deepl" in lowered or "translat" in lowered:
        return PipelineStep.TRANSLATE
    if "gemini" in lowered or "structur" in lowered:
        return PipelineStep.STRUCTURE
    if "store" in lowered or "save" in lowered or "insert" in lowered:
        return PipelineStep.SAVE
    return PipelineStep.FETCH


def is_retryable(error: BaseException) -> bool:
    """Retry policy shared by adapters and the translator."""
    return getattr(error, "retryable", True)
