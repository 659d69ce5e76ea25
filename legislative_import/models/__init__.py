"""
Data models for the legislative import pipeline.

This package contains all data models organized by domain:
- legislation: Act models along the fetch -> translate -> structure chain
- run: Pipeline run bookkeeping (ImportResult, ImportFailure)
"""

from .legislation import (
    Jurisdiction,
    TranslationProvider,
    LegalDomain,
    PlatformModule,
    ResponsibleEntity,
    ReferenceType,
    RawSection,
    TranslatedSection,
    Obligation,
    CrossReference,
    RawLegislation,
    TranslatedLegislation,
    StructuredLegislation,
)

from .run import (
    RunType,
    RunStatus,
    PipelineStep,
    ImportFailure,
    ImportResult,
)

__all__ = [
    # Act models
    "Jurisdiction",
    "TranslationProvider",
    "LegalDomain",
    "PlatformModule",
    "ResponsibleEntity",
    "ReferenceType",
    "RawSection",
    "TranslatedSection",
    "Obligation",
    "CrossReference",
    "RawLegislation",
    "TranslatedLegislation",
    "StructuredLegislation",
    # Run models
    "RunType",
    "RunStatus",
    "PipelineStep",
    "ImportFailure",
    "ImportResult",
]
