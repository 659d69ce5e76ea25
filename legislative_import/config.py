"""
Pipeline configuration and environment settings.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from .models.legislation import Jurisdiction


class Settings(BaseSettings):
    """Settings loaded from environment variables / .env."""

    # Translation (DeepL)
    deepl_api_key: str | None = None
    deepl_api_url: str = "https://api-free.deepl.com/v2/translate"
    target_language: str = "RO"
    translation_chunk_chars: int = 30_000
    translation_min_delay_ms: int = 200

    # Structuring (Gemini)
    gemini_api_key: str | None = None
    structurer_model: str = "gemini-2.5-flash-lite"
    structurer_max_input_chars: int = 30_000
    structurer_max_output_tokens: int = 4096
    structurer_temperature: float = 0.1
    structurer_min_delay_ms: int = 500

    # HTTP
    http_timeout_s: int = 30
    user_agent: str = "SSM-Legislative-Import/1.0 (+https://app.s-s-m.ro)"
    retry_max: int = 3
    retry_base_delay_ms: int = 1000

    # Persistence
    store_path: Path = Path("./data/legislation")

    # Cost estimation
    deepl_cost_per_char_eur: float = 0.00002
    structurer_input_cost_usd: float = 0.0000001
    structurer_output_cost_usd: float = 0.0000004
    usd_to_eur: float = 0.92

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()


@dataclass(frozen=True)
class ImportConfig:
    """How one jurisdiction is imported."""
    jurisdiction: Jurisdiction
    language: str
    max_concurrent: int = 1
    min_delay_ms: int = 1500
    translate_enabled: bool = True
    structure_enabled: bool = True

    @property
    def import_source(self) -> str:
        return "eurlex" if self.jurisdiction == Jurisdiction.EU else f"{self.jurisdiction.value.lower()}_lex"


COUNTRY_CONFIGS: dict[Jurisdiction, ImportConfig] = {
    Jurisdiction.EU: ImportConfig(Jurisdiction.EU, language="ro", max_concurrent=2, min_delay_ms=1000),
    Jurisdiction.BG: ImportConfig(Jurisdiction.BG, language="bg", min_delay_ms=2000),
    Jurisdiction.DE: ImportConfig(Jurisdiction.DE, language="de", min_delay_ms=1500),
    # Romanian sources are already in the working language
    Jurisdiction.RO: ImportConfig(Jurisdiction.RO, language="ro", min_delay_ms=1500, translate_enabled=False),
}


def get_import_config(jurisdiction: Jurisdiction | str) -> ImportConfig:
    return COUNTRY_CONFIGS[Jurisdiction(jurisdiction)]
