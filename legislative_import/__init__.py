"""
Legislative import pipeline.

Fetches occupational safety and health legislation from EUR-Lex and the
national portals (Romania, Bulgaria, Germany), translates it into Romanian,
classifies it with an LLM and stores it for expert review.
"""

__version__ = "0.1.0"

from .config import Settings, get_settings, get_import_config
from .models import Jurisdiction, ImportResult, RunStatus, RunType
from .pipelines import ImportPipeline, UpdateCheckPipeline
from .storage import InMemoryStore, JsonFileStore

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "get_import_config",
    "Jurisdiction",
    "ImportResult",
    "RunStatus",
    "RunType",
    "ImportPipeline",
    "UpdateCheckPipeline",
    "InMemoryStore",
    "JsonFileStore",
]
