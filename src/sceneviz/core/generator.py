"""Question -> Answer generation with a bounded timeout and fallbacks.

The generator never raises for model problems: timeouts, blocks, transport
failures and unrecoverable output all turn into a deterministic fallback
answer, so playback only ever receives a valid scene or none at all.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sceneviz.core.fallbacks import fallback_answer
from sceneviz.core.repair import answer_text, parse_model_output
from sceneviz.core.validation import validate_scene
from sceneviz.exceptions import GenerationTimeoutError, SceneValidationError, SceneVizError
from sceneviz.models import Answer, AnswerSource

if TYPE_CHECKING:
    from sceneviz.config import SceneVizConfig
    from sceneviz.core.llm import BaseLLMClient

logger = logging.getLogger(__name__)


class SceneGenerator:
    def __init__(self, config: SceneVizConfig, llm: BaseLLMClient | None) -> None:
        self.config = config
        self.llm = llm

    async def generate(self, question: str) -> Answer:
        """Produce an answer for ``question``; falls back on any generation failure."""
        if self.llm is None:
            return fallback_answer(question)

        try:
            raw = await self._ask(question)
            data = parse_model_output(raw)
        except SceneVizError as e:
            logger.warning("Generation failed (%s): %s", e.__class__.__name__, e.message)
            return fallback_answer(question)

        return self.build_answer(question, data)

    async def _ask(self, question: str) -> str:
        timeout = self.config.generation_timeout
        try:
            return await asyncio.wait_for(self.llm.generate_answer(question), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(
                f"Generation timed out after {timeout:.0f}s", timeout_seconds=timeout,
            ) from e

    def build_answer(self, question: str, data: dict[str, Any]) -> Answer:
        """Turn a parsed answer document into an :class:`Answer`.

        A missing visualization is a valid text-only answer; a malformed one
        is replaced by the topic's fallback scene while keeping the text.
        """
        text = answer_text(data, question)
        description = data.get("animationDescription")
        if not isinstance(description, str):
            description = None

        raw_scene = data.get("visualization")
        if not isinstance(raw_scene, dict):
            return Answer(
                text=text,
                animation_description=description,
                source=AnswerSource.text_only,
            )

        try:
            scene = validate_scene(raw_scene)
        except SceneValidationError as e:
            logger.warning("Generated visualization rejected: %s", "; ".join(e.errors))
            return fallback_answer(question, text=text)

        return Answer(
            text=text,
            visualization=scene,
            animation_description=description,
            source=AnswerSource.generated,
        )
