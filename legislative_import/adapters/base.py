"""
Source adapter contract and shared HTTP plumbing.

Every jurisdiction implements the same four operations:

- fetch_act(source_id) -> RawLegislation
- search_acts(params) -> list[RawLegislation]
- check_for_updates(source_id, last_hash) -> UpdateCheck
- get_priority_acts() -> list[str]

HtmlSourceAdapter carries what the HTML portals have in common: one aiohttp
session and one RateLimiter per adapter instance, retried GETs, the language
fallback loop, the minimum-text guard and the title fallback chain. Markup
specifics live in each subclass's parse_document().
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol, runtime_checkable

import aiohttp
from bs4 import BeautifulSoup

from ..config import Settings, get_import_config, get_settings
from ..errors import FetchError, NoTextFoundError, is_retryable
from ..models.legislation import Jurisdiction, RawLegislation
from ..utils.html import first_text_block
from ..utils.rate_limit import RateLimiter, with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriorityAct:
    """Curated seed entry for an initial import."""
    source_id: str
    title: str
    short_name: str
    act_type: str = ""
    act_number: str = ""
    act_year: Optional[int] = None


@dataclass
class SearchParams:
    query: Optional[str] = None
    limit: Optional[int] = None


@dataclass
class UpdateCheck:
    """
    Result of re-fetching a previously imported act.

    `raw` is the freshly fetched act when the fetch succeeded, so callers can
    reuse it instead of fetching a second time.
    """
    has_changed: bool
    new_hash: Optional[str] = None
    raw: Optional[RawLegislation] = None


@runtime_checkable
class LegislativeAdapter(Protocol):
    jurisdiction: Jurisdiction

    async def fetch_act(self, source_id: str) -> RawLegislation: ...

    async def search_acts(self, params: Optional[SearchParams] = None) -> list[RawLegislation]: ...

    async def check_for_updates(self, source_id: str, last_hash: str) -> UpdateCheck: ...

    async def get_priority_acts(self) -> list[str]: ...

    async def close(self) -> None: ...


class HtmlSourceAdapter:
    """Base for adapters that scrape a legislative portal's HTML."""

    jurisdiction: ClassVar[Jurisdiction]
    LOG_TAG: ClassVar[str] = "[ADAPTER]"

    # Languages tried in order; the first that yields enough text wins
    LANGUAGES: ClassVar[tuple[str, ...]] = ()
    PRIORITY_ACTS: ClassVar[tuple[PriorityAct, ...]] = ()
    MIN_TEXT_LENGTH: ClassVar[int] = 200
    ACCEPT_LANGUAGE: ClassVar[str] = "en"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings or get_settings()
        config = get_import_config(self.jurisdiction)
        self.rate_limiter = rate_limiter or RateLimiter(
            max_concurrent=config.max_concurrent,
            min_delay_ms=config.min_delay_ms,
        )
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.http_timeout_s),
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
                    "Accept-Language": self.ACCEPT_LANGUAGE,
                },
            )
            self._owns_session = True
        return self._session

    async def _request(self, url: str) -> str:
        session = self._get_session()
        logger.debug(f"{self.LOG_TAG} GET {url}")
        try:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status} for {url}", status=response.status)
                return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Request failed for {url}: {type(e).__name__}: {e}") from e

    async def fetch_html(self, url: str) -> str:
        """GET through the rate limiter, retrying transient failures."""
        return await with_retry(
            lambda: self.rate_limiter.with_limit(lambda: self._request(url)),
            max_retries=self.settings.retry_max,
            base_delay_ms=self.settings.retry_base_delay_ms,
            should_retry=is_retryable,
        )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def document_url(self, source_id: str, language: str) -> str:
        raise NotImplementedError

    async def load_document(self, source_id: str, language: str) -> tuple[str, str]:
        """(url, markup) of the page holding the act's full text."""
        url = self.document_url(source_id, language)
        return url, await self.fetch_html(url)

    def parse_document(self, source_id: str, markup: str, url: str, language: str) -> RawLegislation:
        raise NotImplementedError

    async def fetch_act(self, source_id: str) -> RawLegislation:
        last_error: Optional[FetchError] = None
        for language in self.LANGUAGES:
            try:
                url, markup = await self.load_document(source_id, language)
                raw = self.parse_document(source_id, markup, url, language)
            except FetchError as e:
                last_error = e
                logger.warning(f"{self.LOG_TAG} {source_id} [{language}] unusable: {e}")
                continue
            logger.info(
                f"{self.LOG_TAG} Fetched {source_id} [{language}]: "
                f"{len(raw.text_original)} chars, {len(raw.sections)} sections"
            )
            return raw

        if last_error is None:
            raise FetchError(f"No languages configured for {self.jurisdiction.value} adapter")
        raise last_error

    async def get_priority_acts(self) -> list[str]:
        return [act.source_id for act in self.PRIORITY_ACTS]

    async def search_acts(self, params: Optional[SearchParams] = None) -> list[RawLegislation]:
        """
        Walk the curated priority list (no portal offers a usable search API).

        Individual fetch failures are logged and skipped.
        """
        params = params or SearchParams()
        candidates = list(self.PRIORITY_ACTS)
        if params.query:
            needle = params.query.casefold()
            candidates = [
                act for act in candidates
                if needle in act.title.casefold() or needle in act.short_name.casefold()
            ]

        results: list[RawLegislation] = []
        for act in candidates:
            if params.limit is not None and len(results) >= params.limit:
                break
            try:
                results.append(await self.fetch_act(act.source_id))
            except Exception as e:
                logger.warning(f"{self.LOG_TAG} Search skipped {act.source_id}: {e}")
        return results

    async def check_for_updates(self, source_id: str, last_hash: str) -> UpdateCheck:
        """
        Re-fetch and compare hashes.

        A failed re-fetch is reported as unchanged so one unreachable document
        never blocks an update-check run.
        """
        try:
            raw = await self.fetch_act(source_id)
        except Exception as e:
            logger.warning(f"{self.LOG_TAG} Update check for {source_id} failed, assuming unchanged: {e}")
            return UpdateCheck(has_changed=False)

        changed = raw.content_hash != last_hash
        if changed:
            logger.info(f"{self.LOG_TAG} {source_id} changed: {last_hash[:8]} -> {raw.content_hash[:8]}")
        return UpdateCheck(has_changed=changed, new_hash=raw.content_hash, raw=raw)

    # ------------------------------------------------------------------
    # Parsing helpers
    # ------------------------------------------------------------------

    def priority_act(self, source_id: str) -> Optional[PriorityAct]:
        for act in self.PRIORITY_ACTS:
            if act.source_id == source_id:
                return act
        return None

    def ensure_text(self, text: str, source_id: str, url: str) -> None:
        if len(text.strip()) < self.MIN_TEXT_LENGTH:
            raise NoTextFoundError(
                f"No text found for {source_id} at {url} ({len(text.strip())} chars)"
            )

    def resolve_title(self, source_id: str, markup_title: Optional[str], text: str) -> str:
        """Curated title, else markup title, else the first plausible text line."""
        priority = self.priority_act(source_id)
        if priority is not None and priority.title:
            return priority.title
        if markup_title:
            return markup_title
        return first_text_block(text) or source_id

    @staticmethod
    def find_link(soup: BeautifulSoup, pattern) -> Optional[str]:
        """href of the first anchor whose href matches `pattern`."""
        for link in soup.find_all("a", href=True):
            if pattern.search(link["href"]):
                return link["href"]
        return None
