"""Shared initialization context used by both the MCP server and the CLI."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from sceneviz.config import SceneVizConfig
from sceneviz.core.events import EventBus
from sceneviz.core.generator import SceneGenerator
from sceneviz.core.llm import BaseLLMClient, create_llm_client
from sceneviz.core.questions import QuestionService
from sceneviz.engine.playback import PlaybackSession

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: SceneVizConfig
    llm: BaseLLMClient | None
    generator: SceneGenerator
    bus: EventBus
    questions: QuestionService
    sessions: dict[str, PlaybackSession] = field(default_factory=dict)

    def session_for(self, answer_id: str, *, seed: int | None = None) -> PlaybackSession | None:
        """Playback session for an answer's scene, created on first use.

        Returns ``None`` for text-only answers. Passing ``seed`` replaces any
        cached session so particle output is reproducible.
        """
        answer = self.questions.get_answer(answer_id)
        if answer.visualization is None:
            return None
        session = self.sessions.get(answer_id)
        if session is None or seed is not None:
            session = PlaybackSession(answer.visualization, self.config, seed=seed)
            self.sessions[answer_id] = session
        return session


@asynccontextmanager
async def app_context(config: SceneVizConfig | None = None) -> AsyncIterator[AppContext]:
    """Bootstrap all application components and yield an AppContext.

    Used by both the MCP server lifespan and the CLI commands.
    """
    config = config or SceneVizConfig()

    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    llm = create_llm_client(config)
    generator = SceneGenerator(config, llm)
    bus = EventBus(queue_size=config.subscriber_queue_size)
    questions = QuestionService(generator, bus)

    ctx = AppContext(
        config=config,
        llm=llm,
        generator=generator,
        bus=bus,
        questions=questions,
    )

    logger.info(
        "sceneviz started (LLM: %s, canvas: %dx%d)",
        llm.provider if llm else "fallback-only",
        config.canvas_width,
        config.canvas_height,
    )

    try:
        yield ctx
    finally:
        ctx.sessions.clear()
        logger.info("sceneviz stopped")
