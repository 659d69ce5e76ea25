"""
Validate-and-clamp boundary models for the structurer response.

The completion API output is never deserialized straight into the domain
model. Every field passes through a `before` validator that coerces types,
filters enumerations to the known vocabulary and applies defaults, so a
misbehaving classifier can at worst produce an empty-but-valid result.

Keys are accepted in camelCase (the wire format requested in the prompt) or
snake_case.
"""

import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..models.legislation import (
    CrossReference,
    LegalDomain,
    Obligation,
    PlatformModule,
    ReferenceType,
    ResponsibleEntity,
)

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 15
MIN_SCORE = 1
MAX_SCORE = 10
DEFAULT_SCORE = 5

CELEX_PATTERN = re.compile(r"^\d{5}[A-Z]{1,2}\d{4}(?:\(\d{2}\))?$")


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, (str, int, float)):
        return None
    text = str(value).strip()
    return text or None


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _filter_enum(values: Any, enum_cls) -> list:
    """Known enum members in first-seen order; unknown values are dropped."""
    allowed = {member.value for member in enum_cls}
    result = []
    for value in _as_list(values):
        key = _clean_str(value)
        if key is None:
            continue
        key = key.lower().replace("-", "_").replace(" ", "_")
        if key in allowed and enum_cls(key) not in result:
            result.append(enum_cls(key))
    return result


def clamp_score(value: Any) -> int:
    """Coerce to an int in [1, 10]; anything unparseable becomes 5."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_SCORE
    try:
        score = round(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, score))


def normalize_celex(value: Any) -> Optional[str]:
    text = _clean_str(value)
    if text is None:
        return None
    text = text.upper().replace("CELEX:", "").replace(" ", "")
    return text if CELEX_PATTERN.match(text) else None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ObligationPayload(_WireModel):
    description: str
    responsible_entity: ResponsibleEntity = ResponsibleEntity.OTHER
    source_article: Optional[str] = None
    deadline: Optional[str] = None
    frequency: Optional[str] = None
    penalty: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value):
        text = _clean_str(value)
        if text is None:
            raise ValueError("obligation without description")
        return text

    @field_validator("responsible_entity", mode="before")
    @classmethod
    def _entity(cls, value):
        known = _filter_enum(value, ResponsibleEntity)
        return known[0] if known else ResponsibleEntity.OTHER

    @field_validator("source_article", "deadline", "frequency", "penalty", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return _clean_str(value)

    def to_domain(self) -> Obligation:
        return Obligation(
            description=self.description,
            responsible_entity=self.responsible_entity,
            source_article=self.source_article,
            deadline=self.deadline,
            frequency=self.frequency,
            penalty=self.penalty,
        )


class CrossReferencePayload(_WireModel):
    target_reference_text: str
    reference_type: ReferenceType = ReferenceType.REFERENCES
    target_celex: Optional[str] = None
    source_section: Optional[str] = None
    target_section: Optional[str] = None

    @field_validator("target_reference_text", mode="before")
    @classmethod
    def _target_text(cls, value):
        text = _clean_str(value)
        if text is None:
            raise ValueError("cross-reference without target text")
        return text

    @field_validator("reference_type", mode="before")
    @classmethod
    def _reference_type(cls, value):
        known = _filter_enum(value, ReferenceType)
        return known[0] if known else ReferenceType.REFERENCES

    @field_validator("target_celex", mode="before")
    @classmethod
    def _celex(cls, value):
        return normalize_celex(value)

    @field_validator("source_section", "target_section", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return _clean_str(value)

    def to_domain(self) -> CrossReference:
        return CrossReference(
            target_reference_text=self.target_reference_text,
            reference_type=self.reference_type,
            target_celex=self.target_celex,
            source_section=self.source_section,
            target_section=self.target_section,
        )


def _rebuild_items(values: Any, model: type[BaseModel]) -> list:
    items = []
    for raw in _as_list(values):
        if not isinstance(raw, dict):
            continue
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.debug(f"[STRUCTURER] Dropped {model.__name__}: {e.errors()[0]['msg']}")
    return items


class StructurerResponse(_WireModel):
    """The classifier's JSON object after validation and clamping."""

    domains: list[LegalDomain] = Field(default_factory=lambda: [LegalDomain.GENERAL])
    op_lego_modules: list[PlatformModule] = Field(default_factory=list)
    ssm_relevance_score: int = DEFAULT_SCORE
    keywords: list[str] = Field(default_factory=list)
    summary_ro: str = ""
    obligations: list[ObligationPayload] = Field(default_factory=list)
    cross_references: list[CrossReferencePayload] = Field(default_factory=list)

    @field_validator("domains", mode="before")
    @classmethod
    def _domains(cls, value):
        return _filter_enum(value, LegalDomain) or [LegalDomain.GENERAL]

    @field_validator("op_lego_modules", mode="before")
    @classmethod
    def _modules(cls, value):
        return _filter_enum(value, PlatformModule)

    @field_validator("ssm_relevance_score", mode="before")
    @classmethod
    def _score(cls, value):
        return clamp_score(value)

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords(cls, value):
        seen: list[str] = []
        for item in _as_list(value):
            text = _clean_str(item)
            if text and text.lower() not in {k.lower() for k in seen}:
                seen.append(text)
        return seen[:MAX_KEYWORDS]

    @field_validator("summary_ro", mode="before")
    @classmethod
    def _summary(cls, value):
        return _clean_str(value) or ""

    @field_validator("obligations", mode="before")
    @classmethod
    def _obligations(cls, value):
        return _rebuild_items(value, ObligationPayload)

    @field_validator("cross_references", mode="before")
    @classmethod
    def _cross_references(cls, value):
        return _rebuild_items(value, CrossReferencePayload)
