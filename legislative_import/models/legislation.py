"""
Legislative act data models.

One act moves through the import chain as a single linear transformation:

- RawLegislation: fetched from a source adapter, original language
- TranslatedLegislation: RawLegislation plus working-language (Romanian) text
- StructuredLegislation: TranslatedLegislation plus classifier output
  (domains, obligations, cross-references, relevance score, summary)

`content_hash` is always derived from `text_original`; it is the unit of
change detection for the update check.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from ..utils.text import hash_content


class Jurisdiction(str, Enum):
    """Supported legislative origins."""
    EU = "EU"
    BG = "BG"
    DE = "DE"
    RO = "RO"


class TranslationProvider(str, Enum):
    DEEPL = "deepl"
    NONE = "none"


class LegalDomain(str, Enum):
    """Legal-domain tags assigned by the structurer."""
    SSM = "ssm"
    PSI = "psi"
    GDPR = "gdpr"
    LABOR = "labor"
    OCCUPATIONAL_HEALTH = "occupational_health"
    ENVIRONMENTAL = "environmental"
    CONSTRUCTION = "construction"
    TRANSPORT = "transport"
    FOOD_SAFETY = "food_safety"
    NIS2 = "nis2"
    GENERAL = "general"


class PlatformModule(str, Enum):
    """Platform (OP-LEGO) modules an act is relevant for."""
    SSM = "ssm"
    PSI = "psi"
    GDPR = "gdpr"
    NIS2 = "nis2"
    MEDICINA_MUNCII = "medicina_muncii"
    INSTRUIRI = "instruiri"
    ECHIPAMENTE = "echipamente"
    NEAR_MISS = "near_miss"
    ALERTE = "alerte"
    DOCUMENTE = "documente"
    LEGISLATIE = "legislatie"
    REPORTS = "reports"


class ResponsibleEntity(str, Enum):
    """Role that has to fulfil an obligation."""
    EMPLOYER = "employer"
    EMPLOYEE = "employee"
    DESIGNATED_WORKER = "designated_worker"
    EXTERNAL_SERVICE = "external_service"
    OCCUPATIONAL_PHYSICIAN = "occupational_physician"
    AUTHORITY = "authority"
    MANUFACTURER = "manufacturer"
    OTHER = "other"


class ReferenceType(str, Enum):
    """Relationship between an act and the act it mentions."""
    IMPLEMENTS = "implements"
    AMENDS = "amends"
    REPEALS = "repeals"
    REFERENCES = "references"
    TRANSPOSES = "transposes"
    SUPPLEMENTS = "supplements"
    CITES = "cites"


@dataclass
class RawSection:
    """One article/paragraph of an act, in source document order."""
    section_number: str
    text: str
    sort_order: int
    title: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "section_number": self.section_number,
            "title": self.title,
            "text": self.text,
            "sort_order": self.sort_order,
        }


@dataclass
class TranslatedSection(RawSection):
    """A section with its working-language text next to the original."""
    text_ro: str = ""
    title_ro: Optional[str] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["text_ro"] = self.text_ro
        data["title_ro"] = self.title_ro
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TranslatedSection":
        return cls(
            section_number=data["section_number"],
            text=data.get("text", ""),
            sort_order=data.get("sort_order", 0),
            title=data.get("title"),
            text_ro=data.get("text_ro") or data.get("text", ""),
            title_ro=data.get("title_ro", data.get("title")),
        )


@dataclass
class Obligation:
    """A single duty extracted from the act."""
    description: str
    responsible_entity: ResponsibleEntity = ResponsibleEntity.OTHER
    source_article: Optional[str] = None
    deadline: Optional[str] = None
    frequency: Optional[str] = None
    penalty: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "responsible_entity": self.responsible_entity.value,
            "source_article": self.source_article,
            "deadline": self.deadline,
            "frequency": self.frequency,
            "penalty": self.penalty,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Obligation":
        return cls(
            description=data["description"],
            responsible_entity=ResponsibleEntity(data.get("responsible_entity", "other")),
            source_article=data.get("source_article"),
            deadline=data.get("deadline"),
            frequency=data.get("frequency"),
            penalty=data.get("penalty"),
        )


@dataclass
class CrossReference:
    """A detected legal relationship to another act."""
    target_reference_text: str
    reference_type: ReferenceType = ReferenceType.REFERENCES
    target_celex: Optional[str] = None
    source_section: Optional[str] = None
    target_section: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "target_reference_text": self.target_reference_text,
            "reference_type": self.reference_type.value,
            "target_celex": self.target_celex,
            "source_section": self.source_section,
            "target_section": self.target_section,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CrossReference":
        return cls(
            target_reference_text=data["target_reference_text"],
            reference_type=ReferenceType(data.get("reference_type", "references")),
            target_celex=data.get("target_celex"),
            source_section=data.get("source_section"),
            target_section=data.get("target_section"),
        )


@dataclass
class RawLegislation:
    """One fetched act before translation."""
    source_id: str
    source_url: str
    title_original: str
    act_type: str
    act_number: str
    text_original: str
    language_original: str
    country_code: Jurisdiction
    sections: list[RawSection] = field(default_factory=list)
    date_adopted: Optional[str] = None
    date_in_force: Optional[str] = None
    date_last_amended: Optional[str] = None
    in_force: bool = True
    act_year: Optional[int] = None
    act_short_name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    content_hash: str = field(init=False, default="")

    def __post_init__(self):
        self.content_hash = hash_content(self.text_original)

    def base_kwargs(self) -> dict[str, Any]:
        """Constructor arguments shared by every stage of the chain."""
        return {f.name: getattr(self, f.name) for f in fields(RawLegislation) if f.init}

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "source_url": self.source_url,
            "title_original": self.title_original,
            "act_type": self.act_type,
            "act_number": self.act_number,
            "act_year": self.act_year,
            "act_short_name": self.act_short_name,
            "text_original": self.text_original,
            "language_original": self.language_original,
            "country_code": self.country_code.value,
            "content_hash": self.content_hash,
            "date_adopted": self.date_adopted,
            "date_in_force": self.date_in_force,
            "date_last_amended": self.date_last_amended,
            "in_force": self.in_force,
            "metadata": self.metadata,
            "sections": [s.to_dict() for s in self.sections],
        }


@dataclass
class TranslatedLegislation(RawLegislation):
    """
    RawLegislation plus its working-language version.

    `sections` holds TranslatedSection instances.
    """
    title_ro: str = ""
    text_ro: str = ""
    translation_provider: TranslationProvider = TranslationProvider.NONE
    translation_characters: int = 0
    translation_cost_eur: float = 0.0

    @classmethod
    def from_raw(cls, raw: RawLegislation, **kwargs) -> "TranslatedLegislation":
        base = raw.base_kwargs()
        base.update(kwargs)
        return cls(**base)

    @classmethod
    def passthrough(cls, raw: RawLegislation) -> "TranslatedLegislation":
        """Working-language copy of an act that needs no translation."""
        return cls.from_raw(
            raw,
            title_ro=raw.title_original,
            text_ro=raw.text_original,
            sections=[
                TranslatedSection(
                    section_number=s.section_number,
                    text=s.text,
                    sort_order=s.sort_order,
                    title=s.title,
                    text_ro=s.text,
                    title_ro=s.title,
                )
                for s in raw.sections
            ],
            translation_provider=TranslationProvider.NONE,
        )

    def translated_kwargs(self) -> dict[str, Any]:
        data = self.base_kwargs()
        data.update(
            title_ro=self.title_ro,
            text_ro=self.text_ro,
            translation_provider=self.translation_provider,
            translation_characters=self.translation_characters,
            translation_cost_eur=self.translation_cost_eur,
        )
        return data

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "title_ro": self.title_ro,
            "text_ro": self.text_ro,
            "translation_provider": self.translation_provider.value,
            "translation_characters": self.translation_characters,
            "translation_cost_eur": self.translation_cost_eur,
        })
        return data


@dataclass
class StructuredLegislation(TranslatedLegislation):
    """
    TranslatedLegislation plus classifier output.

    `ssm_relevance_score` is 1-10 once structured and None when the
    structuring stage was disabled for the run.
    """
    domains: list[LegalDomain] = field(default_factory=list)
    op_lego_modules: list[PlatformModule] = field(default_factory=list)
    ssm_relevance_score: Optional[int] = None
    keywords: list[str] = field(default_factory=list)
    summary_ro: str = ""
    obligations: list[Obligation] = field(default_factory=list)
    cross_references: list[CrossReference] = field(default_factory=list)
    structurer_model: str = ""
    structurer_input_tokens: int = 0
    structurer_output_tokens: int = 0
    structurer_cost_usd: float = 0.0
    needs_manual_review: bool = False

    @classmethod
    def from_translated(cls, translated: TranslatedLegislation, **kwargs) -> "StructuredLegislation":
        base = translated.translated_kwargs()
        base.update(kwargs)
        return cls(**base)

    @property
    def is_structured(self) -> bool:
        return self.ssm_relevance_score is not None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "domains": [d.value for d in self.domains],
            "op_lego_modules": [m.value for m in self.op_lego_modules],
            "ssm_relevance_score": self.ssm_relevance_score,
            "keywords": list(self.keywords),
            "summary_ro": self.summary_ro,
            "obligations": [o.to_dict() for o in self.obligations],
            "cross_references": [c.to_dict() for c in self.cross_references],
            "structurer_model": self.structurer_model,
            "structurer_input_tokens": self.structurer_input_tokens,
            "structurer_output_tokens": self.structurer_output_tokens,
            "structurer_cost_usd": self.structurer_cost_usd,
            "needs_manual_review": self.needs_manual_review,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StructuredLegislation":
        act = cls(
            source_id=data["source_id"],
            source_url=data.get("source_url", ""),
            title_original=data.get("title_original", ""),
            act_type=data.get("act_type", ""),
            act_number=data.get("act_number", ""),
            text_original=data.get("text_original", ""),
            language_original=data.get("language_original", ""),
            country_code=Jurisdiction(data["country_code"]),
            sections=[TranslatedSection.from_dict(s) for s in data.get("sections", [])],
            date_adopted=data.get("date_adopted"),
            date_in_force=data.get("date_in_force"),
            date_last_amended=data.get("date_last_amended"),
            in_force=data.get("in_force", True),
            act_year=data.get("act_year"),
            act_short_name=data.get("act_short_name"),
            metadata=data.get("metadata", {}),
            title_ro=data.get("title_ro", ""),
            text_ro=data.get("text_ro", ""),
            translation_provider=TranslationProvider(data.get("translation_provider", "none")),
            translation_characters=data.get("translation_characters", 0),
            translation_cost_eur=data.get("translation_cost_eur", 0.0),
            domains=[LegalDomain(d) for d in data.get("domains", [])],
            op_lego_modules=[PlatformModule(m) for m in data.get("op_lego_modules", [])],
            ssm_relevance_score=data.get("ssm_relevance_score"),
            keywords=data.get("keywords", []),
            summary_ro=data.get("summary_ro", ""),
            obligations=[Obligation.from_dict(o) for o in data.get("obligations", [])],
            cross_references=[CrossReference.from_dict(c) for c in data.get("cross_references", [])],
            structurer_model=data.get("structurer_model", ""),
            structurer_input_tokens=data.get("structurer_input_tokens", 0),
            structurer_output_tokens=data.get("structurer_output_tokens", 0),
            structurer_cost_usd=data.get("structurer_cost_usd", 0.0),
            needs_manual_review=data.get("needs_manual_review", False),
        )
        return act
