"""
Processing stages between fetch and persistence: translation and structuring.
"""

from .translator import LegislativeTranslator
from .structurer import LegislativeStructurer, fallback_response, parse_structurer_response
from .schemas import StructurerResponse, clamp_score, normalize_celex

__all__ = [
    "LegislativeTranslator",
    "LegislativeStructurer",
    "StructurerResponse",
    "parse_structurer_response",
    "fallback_response",
    "clamp_score",
    "normalize_celex",
]
