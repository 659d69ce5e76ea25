"""
Source adapters, one per jurisdiction.

get_adapter() is the only place that maps a Jurisdiction to an adapter class.
Adding a jurisdiction means one enum member and one ADAPTERS entry.
"""

from typing import Optional

from ..config import Settings
from ..errors import UnsupportedJurisdictionError
from ..models.legislation import Jurisdiction
from ..utils.rate_limit import RateLimiter
from .base import HtmlSourceAdapter, LegislativeAdapter, PriorityAct, SearchParams, UpdateCheck
from .bg import LexBgAdapter
from .de import GesetzeImInternetAdapter
from .eurlex import EurLexAdapter
from .ro import LegislatieJustAdapter

ADAPTERS: dict[Jurisdiction, type[HtmlSourceAdapter]] = {
    Jurisdiction.EU: EurLexAdapter,
    Jurisdiction.BG: LexBgAdapter,
    Jurisdiction.DE: GesetzeImInternetAdapter,
    Jurisdiction.RO: LegislatieJustAdapter,
}


def get_adapter(
    jurisdiction: Jurisdiction | str,
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> HtmlSourceAdapter:
    """New adapter instance (own session, own rate limiter) for a jurisdiction."""
    try:
        key = Jurisdiction(str(getattr(jurisdiction, "value", jurisdiction)).upper())
    except ValueError:
        raise UnsupportedJurisdictionError(f"Unsupported jurisdiction: {jurisdiction}") from None
    if key not in ADAPTERS:
        raise UnsupportedJurisdictionError(f"No adapter registered for {key.value}")
    return ADAPTERS[key](settings=settings, rate_limiter=rate_limiter)


__all__ = [
    "ADAPTERS",
    "get_adapter",
    "LegislativeAdapter",
    "HtmlSourceAdapter",
    "PriorityAct",
    "SearchParams",
    "UpdateCheck",
    "EurLexAdapter",
    "LexBgAdapter",
    "GesetzeImInternetAdapter",
    "LegislatieJustAdapter",
]
