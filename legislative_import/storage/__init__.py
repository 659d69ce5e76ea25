"""
Persistence backends for imported acts and pipeline run logs.
"""

from .base import (
    LegislationStore,
    ProcessingStatus,
    ReviewStatus,
    StoredAct,
    processing_status_for,
)
from .memory import InMemoryStore
from .json_store import JsonFileStore

__all__ = [
    "LegislationStore",
    "ProcessingStatus",
    "ReviewStatus",
    "StoredAct",
    "processing_status_for",
    "InMemoryStore",
    "JsonFileStore",
]
