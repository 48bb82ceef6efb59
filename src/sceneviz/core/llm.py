"""Multi-provider LLM client for scene generation.

Supports:
- Google Gemini (default)
- Anthropic Claude
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sceneviz.config import LLMProviderName
from sceneviz.exceptions import (
    LLMBlockedError,
    LLMMaxRetriesError,
    LLMResponseError,
)
from sceneviz.prompts import get_user_prompt, get_visualization_system, is_complex_topic

if TYPE_CHECKING:
    from sceneviz.config import SceneVizConfig

logger = logging.getLogger(__name__)

_BLOCKED_FINISH_REASONS = {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}


def _strip_fences(text: str) -> str:
    """Remove markdown code fences if the model wraps its output."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*\n?", "", text)
        text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


# ── Abstract Base Client ──────────────────────────────────────────────

class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: str = "unknown"

    def __init__(self, config: SceneVizConfig) -> None:
        self.config = config

    @abstractmethod
    async def generate_answer(self, question: str) -> str:
        """Return the model's raw answer document (JSON text) for a question."""
        ...

    def _system_prompt(self, question: str) -> str:
        return get_visualization_system(
            question, self.config.canvas_width, self.config.canvas_height,
        )

    def _max_tokens(self, question: str) -> int:
        if is_complex_topic(question):
            return self.config.complex_output_tokens
        return self.config.max_output_tokens

    async def _retry_with_backoff(
        self,
        coro_func,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        """Retry an async operation with exponential backoff.

        Uses progressive backoff: 1s, 2s, 4s, etc.
        Handles rate limits specially with longer delays. Content blocks
        are deterministic and are raised immediately.
        """
        last_error = None
        last_error_msg = None

        for attempt in range(max_retries):
            try:
                return await coro_func()
            except LLMBlockedError:
                raise
            except Exception as e:
                last_error = e
                last_error_msg = str(e)

                # Check for rate limit errors (common across providers)
                is_rate_limit = any(x in str(e).lower() for x in [
                    "rate_limit", "rate limit", "429", "quota", "too many requests"
                ])

                if attempt >= max_retries - 1:
                    break
                if is_rate_limit:
                    delay = base_delay * (3 ** attempt) + 5
                    logger.warning(
                        "LLM rate limit hit (attempt %d/%d), waiting %.1fs: %s",
                        attempt + 1, max_retries, delay, e
                    )
                else:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        "LLM call failed (attempt %d/%d), retrying in %.1fs: %s",
                        attempt + 1, max_retries, delay, e
                    )
                await asyncio.sleep(delay)

        raise LLMMaxRetriesError(
            f"LLM call failed after {max_retries} attempts",
            attempts=max_retries,
            last_error=last_error_msg,
        ) from last_error


# ── Gemini Client ─────────────────────────────────────────────────────

class GeminiClient(BaseLLMClient):
    """Google Gemini LLM client."""

    provider = LLMProviderName.gemini.value

    def __init__(self, config: SceneVizConfig) -> None:
        super().__init__(config)
        from google import genai
        self._genai = genai
        self.client = genai.Client(api_key=config.gemini_api_key)
        self.model_name = config.gemini_model

    async def generate_answer(self, question: str) -> str:
        system = self._system_prompt(question)
        max_tokens = self._max_tokens(question)
        logger.debug("Gemini request: %d max tokens for %r", max_tokens, question)

        async def _call():
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=get_user_prompt(question),
                config=self._genai.types.GenerateContentConfig(
                    system_instruction=system,
                    temperature=self.config.temperature,
                    max_output_tokens=max_tokens,
                    top_p=0.9,
                    top_k=40,
                ),
            )
            return _strip_fences(self._response_text(response))

        return await self._retry_with_backoff(_call, self.config.llm_max_retries)

    @staticmethod
    def _response_text(response) -> str:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise LLMBlockedError("Prompt was blocked", reason=str(feedback.block_reason))

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise LLMResponseError("Gemini returned no candidates")

        reason = candidates[0].finish_reason
        reason_name = getattr(reason, "name", str(reason or ""))
        if reason_name in _BLOCKED_FINISH_REASONS:
            raise LLMBlockedError("Response was blocked", reason=reason_name)

        text = response.text
        if not text or not text.strip():
            raise LLMResponseError("Gemini returned an empty response")
        return text


# ── Claude Client ─────────────────────────────────────────────────────

class ClaudeClient(BaseLLMClient):
    """Anthropic Claude LLM client."""

    provider = LLMProviderName.claude.value

    def __init__(self, config: SceneVizConfig) -> None:
        super().__init__(config)
        import anthropic
        self.client = anthropic.AsyncAnthropic(api_key=config.claude_api_key)
        self.model_name = config.claude_model

    async def generate_answer(self, question: str) -> str:
        system = self._system_prompt(question)
        max_tokens = self._max_tokens(question)

        async def _call():
            response = await self.client.messages.create(
                model=self.model_name,
                max_tokens=max_tokens,
                temperature=self.config.temperature,
                system=system,
                messages=[{"role": "user", "content": get_user_prompt(question)}],
            )
            if response.stop_reason == "refusal":
                raise LLMBlockedError("Response was refused", reason="refusal")
            text = "".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            )
            if not text.strip():
                raise LLMResponseError("Claude returned an empty response")
            return _strip_fences(text)

        return await self._retry_with_backoff(_call, self.config.llm_max_retries)


# ── Factory ───────────────────────────────────────────────────────────

def create_llm_client(config: SceneVizConfig) -> BaseLLMClient | None:
    """Create the LLM client for the configured provider.

    Returns None when the provider has no API key; the generator then
    serves built-in fallback scenes only.
    """
    provider = LLMProviderName(config.llm_provider)

    if provider == LLMProviderName.claude:
        if not config.claude_api_key:
            logger.warning("SCENEVIZ_CLAUDE_API_KEY is not set, serving fallback scenes only")
            return None
        logger.info("Using Claude LLM provider (model: %s)", config.claude_model)
        return ClaudeClient(config)

    if not config.gemini_api_key:
        logger.warning("SCENEVIZ_GEMINI_API_KEY is not set, serving fallback scenes only")
        return None
    logger.info("Using Gemini LLM provider (model: %s)", config.gemini_model)
    return GeminiClient(config)
