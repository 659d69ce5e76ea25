"""
Legislative Structurer Module.

Sends a translated act to Gemini and turns the JSON answer into a
StructuredLegislation: legal domains, platform modules, SSM relevance score,
keywords, Romanian summary, obligations and cross-references.

The response is untrusted input:
- optional ``` fences are stripped before parsing
- every field is validated and clamped (see schemas.py)
- unparseable output becomes a minimal fallback flagged for manual review

Only a failure of the API call itself raises (StructureError).
"""

import json
import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import LegislativeImportError, StructureError
from ..models.legislation import LegalDomain, StructuredLegislation, TranslatedLegislation
from ..utils.rate_limit import RateLimiter, with_retry
from .schemas import DEFAULT_SCORE, StructurerResponse

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = (
    "Structurarea automată nu a putut fi interpretată. "
    "Este necesară revizuirea manuală a actului."
)

TRUNCATION_NOTICE = "\n\n[... textul a fost trunchiat pentru clasificare ...]"

MAX_SECTION_NUMBERS = 150

SYSTEM_INSTRUCTION = """You are a legal analyst for a Romanian workplace health and safety (SSM) compliance platform.
You receive one legislative act (already translated to Romanian) and classify it.

Return ONLY a JSON object with these EXACT keys:
{
  "domains": [one or more of: "ssm", "psi", "gdpr", "labor", "occupational_health", "environmental", "construction", "transport", "food_safety", "nis2", "general"],
  "opLegoModules": [zero or more of: "ssm", "psi", "gdpr", "nis2", "medicina_muncii", "instruiri", "echipamente", "near_miss", "alerte", "documente", "legislatie", "reports"],
  "ssmRelevanceScore": integer 1-10 (10 = core SSM obligation for every employer),
  "keywords": [at most 15 Romanian keywords],
  "summaryRo": "3-5 sentence summary in Romanian",
  "obligations": [
    {
      "description": "the duty, in Romanian",
      "responsibleEntity": one of "employer", "employee", "designated_worker", "external_service", "occupational_physician", "authority", "manufacturer", "other",
      "sourceArticle": "article number the duty comes from, e.g. Art. 7",
      "deadline": "deadline if stated, else null",
      "frequency": "recurrence if stated (annual, monthly, ...), else null",
      "penalty": "sanction if stated, else null"
    }
  ],
  "crossReferences": [
    {
      "targetReferenceText": "the cited act as written in the text",
      "targetCelex": "CELEX number if the target is an EU act, else null",
      "referenceType": one of "implements", "amends", "repeals", "references", "transposes", "supplements", "cites",
      "sourceSection": "article of this act containing the reference, else null",
      "targetSection": "article of the target act, else null"
    }
  ]
}

Rules:
- Use only the vocabulary values listed above.
- Extract concrete obligations only; do not invent duties that are not in the text.
- Cite sourceArticle using the section numbers provided.
- No markdown, no commentary outside the JSON object."""


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if "```json" in text:
        text = text.split("```json", 1)[-1].split("```", 1)[0].strip()
    elif text.startswith("```"):
        text = text.split("```", 2)[1].strip()
    return text


def _extract_json_object(text: str) -> Optional[dict]:
    cleaned = _strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # JSON wrapped in prose
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def fallback_response() -> StructurerResponse:
    """Minimal valid structure used when the classifier output is unusable."""
    return StructurerResponse(
        domains=[LegalDomain.GENERAL],
        ssm_relevance_score=DEFAULT_SCORE,
        summary_ro=FALLBACK_SUMMARY,
    )


def parse_structurer_response(text: Optional[str]) -> tuple[StructurerResponse, bool]:
    """
    Parse and validate a raw completion.

    Returns (response, parsed_ok). Never raises: anything that is not a JSON
    object yields (fallback_response(), False).
    """
    if not text or not text.strip():
        return fallback_response(), False

    data = _extract_json_object(text)
    if data is None:
        logger.warning(f"[STRUCTURER] Unparseable response ({len(text)} chars), using fallback")
        return fallback_response(), False

    try:
        return StructurerResponse.model_validate(data), True
    except ValidationError as e:
        logger.warning(f"[STRUCTURER] Response failed validation, using fallback: {e}")
        return fallback_response(), False


def _is_transient(error: Exception) -> bool:
    if isinstance(error, LegislativeImportError):
        return False
    if isinstance(error, genai_errors.ClientError):
        return error.code in (408, 429)
    return True


class LegislativeStructurer:
    """
    Gemini-backed classifier for translated acts.

    Token counters are instance state: they grow with every call (successful
    or not, both are billed) and are only cleared by reset_usage().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[Any] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self.model_id = self.settings.structurer_model
        self.rate_limiter = rate_limiter or RateLimiter(
            max_concurrent=1,
            min_delay_ms=self.settings.structurer_min_delay_ms,
        )
        self._input_tokens = 0
        self._output_tokens = 0

    @property
    def client(self):
        if self._client is None:
            if not self.settings.gemini_api_key:
                raise StructureError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self.settings.gemini_api_key)
        return self._client

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def get_token_usage(self) -> tuple[int, int]:
        return self._input_tokens, self._output_tokens

    def estimate_cost_usd(self) -> float:
        return self._cost_usd(self._input_tokens, self._output_tokens)

    def reset_usage(self) -> None:
        self._input_tokens = 0
        self._output_tokens = 0

    def _cost_usd(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens * self.settings.structurer_input_cost_usd
            + output_tokens * self.settings.structurer_output_cost_usd
        )

    # ------------------------------------------------------------------
    # Prompt
    # ------------------------------------------------------------------

    def build_user_message(self, act: TranslatedLegislation) -> str:
        lines = [
            f"Titlu: {act.title_ro or act.title_original}",
            f"Titlu original: {act.title_original}",
            f"Tip act: {act.act_type}",
            f"Număr: {act.act_number}",
            f"Jurisdicție: {act.country_code.value}",
            f"Identificator sursă: {act.source_id}",
        ]
        if act.act_short_name:
            lines.append(f"Denumire scurtă: {act.act_short_name}")
        if act.date_adopted:
            lines.append(f"Data adoptării: {act.date_adopted}")
        if act.date_in_force:
            lines.append(f"Data intrării în vigoare: {act.date_in_force}")
        lines.append(f"În vigoare: {'da' if act.in_force else 'nu'}")

        if act.sections:
            numbers = [s.section_number for s in act.sections[:MAX_SECTION_NUMBERS]]
            more = len(act.sections) - len(numbers)
            listing = ", ".join(numbers) + (f" (+{more})" if more > 0 else "")
            lines.append(f"Secțiuni ({len(act.sections)}): {listing}")

        text = act.text_ro or act.text_original
        budget = self.settings.structurer_max_input_chars
        if len(text) > budget:
            text = text[:budget] + TRUNCATION_NOTICE

        lines.extend(["", "TEXT:", text])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    async def _generate(self, user_message: str):
        return await self.client.aio.models.generate_content(
            model=self.model_id,
            contents=user_message,
            config=types.GenerateContentConfig(
                system_instruction=SYSTEM_INSTRUCTION,
                response_mime_type="application/json",
                temperature=self.settings.structurer_temperature,
                max_output_tokens=self.settings.structurer_max_output_tokens,
            ),
        )

    async def structure(self, act: TranslatedLegislation) -> StructuredLegislation:
        user_message = self.build_user_message(act)
        logger.info(f"[STRUCTURER] Structuring {act.source_id} with {self.model_id} ({len(user_message)} chars)")

        try:
            response = await with_retry(
                lambda: self.rate_limiter.with_limit(lambda: self._generate(user_message)),
                max_retries=self.settings.retry_max,
                base_delay_ms=self.settings.retry_base_delay_ms,
                should_retry=_is_transient,
            )
        except StructureError:
            raise
        except Exception as e:
            raise StructureError(f"Gemini structuring failed: {e}") from e

        input_tokens, output_tokens = self._record_usage(response)
        parsed, ok = parse_structurer_response(getattr(response, "text", None))
        if not ok:
            logger.warning(f"[STRUCTURER] {act.source_id} flagged for manual review")

        logger.info(
            f"[STRUCTURER] {act.source_id}: score={parsed.ssm_relevance_score} "
            f"domains={[d.value for d in parsed.domains]} obligations={len(parsed.obligations)} "
            f"refs={len(parsed.cross_references)} tokens={input_tokens}/{output_tokens}"
        )

        return StructuredLegislation.from_translated(
            act,
            domains=parsed.domains,
            op_lego_modules=parsed.op_lego_modules,
            ssm_relevance_score=parsed.ssm_relevance_score,
            keywords=parsed.keywords,
            summary_ro=parsed.summary_ro,
            obligations=[o.to_domain() for o in parsed.obligations],
            cross_references=[c.to_domain() for c in parsed.cross_references],
            structurer_model=self.model_id,
            structurer_input_tokens=input_tokens,
            structurer_output_tokens=output_tokens,
            structurer_cost_usd=self._cost_usd(input_tokens, output_tokens),
            needs_manual_review=not ok,
        )

    def _record_usage(self, response) -> tuple[int, int]:
        usage = getattr(response, "usage_metadata", None)
        input_tokens = int(getattr(usage, "prompt_token_count", 0) or 0)
        output_tokens = int(getattr(usage, "candidates_token_count", 0) or 0)
        self._input_tokens += input_tokens
        self._output_tokens += output_tokens
        return input_tokens, output_tokens
