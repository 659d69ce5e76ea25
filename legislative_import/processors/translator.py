"""
DeepL translator for raw acts.

The full text is chunked on legal-unit boundaries and reassembled in chunk
order. Sections are translated as standalone units, batched into as few
requests as the API limits allow, because section boundaries are exact while
chunk boundaries are not.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from ..config import Settings, get_settings
from ..errors import TranslateError, is_retryable
from ..models.legislation import (
    RawLegislation,
    TranslatedLegislation,
    TranslatedSection,
    TranslationProvider,
)
from ..utils.rate_limit import RateLimiter, with_retry
from ..utils.text import reassemble_chunks, split_text

logger = logging.getLogger(__name__)

# DeepL accepts at most 50 text entries per request
MAX_TEXTS_PER_REQUEST = 50


class LegislativeTranslator:
    """
    Translates RawLegislation into the working language.

    The billed-character counter is instance state, read with
    get_characters_used() and cleared with reset_usage().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.settings = settings or get_settings()
        self.target_language = self.settings.target_language.upper()
        self.rate_limiter = rate_limiter or RateLimiter(
            max_concurrent=1,
            min_delay_ms=self.settings.translation_min_delay_ms,
        )
        self._session = session
        self._owns_session = session is None
        self._characters_used = 0

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
    # Usage
    # ------------------------------------------------------------------

    def get_characters_used(self) -> int:
        return self._characters_used

    def estimate_cost_eur(self) -> float:
        return self._characters_used * self.settings.deepl_cost_per_char_eur

    def reset_usage(self) -> None:
        self._characters_used = 0

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def needs_translation(self, raw: RawLegislation) -> bool:
        return raw.language_original.upper() != self.target_language

    async def translate(self, raw: RawLegislation) -> TranslatedLegislation:
        if not self.needs_translation(raw):
            logger.info(f"[TRANSLATOR] {raw.source_id} already in {self.target_language}, passing through")
            return TranslatedLegislation.passthrough(raw)

        if not self.settings.deepl_api_key:
            raise TranslateError("DeepL API key is not configured")

        source_language = raw.language_original.upper()
        before = self._characters_used

        [title_ro] = await self.translate_texts([raw.title_original], source_language)

        chunks = split_text(raw.text_original, self.settings.translation_chunk_chars, raw.country_code)
        logger.info(
            f"[TRANSLATOR] {raw.source_id}: {len(raw.text_original)} chars in {len(chunks)} chunk(s), "
            f"{len(raw.sections)} sections, {source_language} -> {self.target_language}"
        )
        translated_chunks = []
        for index, chunk in enumerate(chunks):
            [translated] = await self.translate_texts([chunk], source_language)
            translated_chunks.append((index, translated))
        text_ro = reassemble_chunks(translated_chunks)

        section_texts = await self.translate_sections([s.text for s in raw.sections], source_language, raw.country_code)
        section_titles = await self.translate_sections([s.title or "" for s in raw.sections], source_language)
        sections = [
            TranslatedSection(
                section_number=section.section_number,
                text=section.text,
                sort_order=section.sort_order,
                title=section.title,
                text_ro=translated,
                title_ro=translated_title if section.title else None,
            )
            for section, translated, translated_title in zip(raw.sections, section_texts, section_titles)
        ]

        characters = self._characters_used - before
        return TranslatedLegislation.from_raw(
            raw,
            title_ro=title_ro,
            text_ro=text_ro,
            sections=sections,
            translation_provider=TranslationProvider.DEEPL,
            translation_characters=characters,
            translation_cost_eur=characters * self.settings.deepl_cost_per_char_eur,
        )

    async def translate_sections(
        self, texts: list[str], source_language: str, jurisdiction=None
    ) -> list[str]:
        """Translate section bodies, packed into requests of <=50 entries and <=chunk_chars."""
        limit = self.settings.translation_chunk_chars
        results: list[Optional[str]] = [None] * len(texts)

        batch: list[int] = []
        batch_chars = 0
        for index, text in enumerate(texts):
            if not text.strip():
                results[index] = text
                continue
            if len(text) > limit:
                # one oversized section is chunked on its own
                pieces = split_text(text, limit, jurisdiction)
                translated = [(i, (await self.translate_texts([p], source_language))[0]) for i, p in enumerate(pieces)]
                results[index] = reassemble_chunks(translated)
                continue
            if batch and (len(batch) >= MAX_TEXTS_PER_REQUEST or batch_chars + len(text) > limit):
                await self._flush(batch, texts, results, source_language)
                batch, batch_chars = [], 0
            batch.append(index)
            batch_chars += len(text)

        if batch:
            await self._flush(batch, texts, results, source_language)
        return [r if r is not None else "" for r in results]

    async def _flush(self, batch: list[int], texts: list[str], results: list, source_language: str) -> None:
        translated = await self.translate_texts([texts[i] for i in batch], source_language)
        for index, text in zip(batch, translated):
            results[index] = text

    async def translate_texts(self, texts: list[str], source_language: Optional[str] = None) -> list[str]:
        """One DeepL request (rate limited, retried) for up to 50 texts."""
        translated = await with_retry(
            lambda: self.rate_limiter.with_limit(lambda: self._request(texts, source_language)),
            max_retries=self.settings.retry_max,
            base_delay_ms=self.settings.retry_base_delay_ms,
            should_retry=is_retryable,
        )
        self._characters_used += sum(len(t) for t in texts)
        return translated

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=max(self.settings.http_timeout_s, 60)),
            )
            self._owns_session = True
        return self._session

    async def _request(self, texts: list[str], source_language: Optional[str]) -> list[str]:
        payload = {"text": texts, "target_lang": self.target_language}
        if source_language:
            payload["source_lang"] = source_language
        headers = {
            "Authorization": f"DeepL-Auth-Key {self.settings.deepl_api_key}",
            "User-Agent": self.settings.user_agent,
        }

        session = self._get_session()
        try:
            async with session.post(self.settings.deepl_api_url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise TranslateError(f"DeepL HTTP {response.status}: {body[:200]}", status=response.status)
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TranslateError(f"DeepL request failed: {type(e).__name__}: {e}") from e

        translations = data.get("translations") or []
        if len(translations) != len(texts):
            raise TranslateError(f"DeepL returned {len(translations)} translations for {len(texts)} texts")
        return [t.get("text", "") for t in translations]
