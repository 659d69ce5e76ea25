"""
Shared utilities: rate limiting/retry, legal text chunking, HTML extraction.
"""

from .rate_limit import RateLimiter, with_retry
from .text import (
    CHUNK_MIN_CHARS,
    split_text,
    reassemble_chunks,
    extract_sections,
    hash_content,
)

__all__ = [
    "RateLimiter",
    "with_retry",
    "CHUNK_MIN_CHARS",
    "split_text",
    "reassemble_chunks",
    "extract_sections",
    "hash_content",
]
