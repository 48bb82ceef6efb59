"""Tests for the MCP tool handlers (no transport, no LLM)."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from sceneviz.bootstrap import app_context
from sceneviz.config import SceneVizConfig
from sceneviz.tools.ask import register_ask_tools
from sceneviz.tools.playback import register_playback_tools


class ToolCollector:
    """Stands in for FastMCP: records decorated tool functions by name."""

    def __init__(self) -> None:
        self.tools = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn
        return decorator


@pytest.fixture
def tools():
    collector = ToolCollector()
    register_ask_tools(collector)
    register_playback_tools(collector)
    return collector.tools


@pytest.fixture
async def app():
    async with app_context(SceneVizConfig(gemini_api_key="", claude_api_key="", particle_seed=3)) as ctx:
        yield ctx


@pytest.fixture
def ctx(app):
    ctx = MagicMock()
    ctx.request_context.lifespan_context = app
    ctx.report_progress = AsyncMock()
    return ctx


class TestAskTools:
    async def test_ask_question(self, tools, ctx):
        result = await tools["ask_question"](ctx, "How do planets orbit the sun?")
        assert result["question_id"].startswith("q_")
        assert result["answer"]["id"] == result["answer_id"]
        assert result["answer"]["source"] == "fallback"
        assert result["answer"]["visualization"]["layers"]

    async def test_ask_question_invalid(self, tools, ctx):
        result = await tools["ask_question"](ctx, "   ")
        assert result == {"error": True, "message": "User ID and question are required"}

    async def test_list_questions_limit(self, tools, ctx):
        for q in ("one", "two", "three"):
            await tools["ask_question"](ctx, q)
        result = await tools["list_questions"](ctx, limit=2)
        assert result["count"] == 2
        assert [q["question"] for q in result["questions"]] == ["two", "three"]
        assert result["questions"][0]["answer"]["questionId"] == result["questions"][0]["id"]

    async def test_get_answer_not_found(self, tools, ctx):
        result = await tools["get_answer"](ctx, "a_missing")
        assert result["error"] is True
        assert "a_missing" in result["message"]


class TestPlaybackTools:
    async def _answer_id(self, tools, ctx) -> str:
        return (await tools["ask_question"](ctx, "Newton's first law"))["answer_id"]

    async def test_resolve_frame(self, tools, ctx):
        answer_id = await self._answer_id(tools, ctx)
        result = await tools["resolve_frame"](ctx, answer_id, elapsed_ms=1500)
        frame = result["frame"]
        assert frame["elapsedMs"] == 1500
        assert frame["width"] == 800
        assert frame["layers"]

    async def test_seeded_frames_repeat(self, tools, ctx):
        answer_id = await self._answer_id(tools, ctx)
        a = await tools["resolve_frame"](ctx, answer_id, elapsed_ms=2000, seed=11)
        b = await tools["resolve_frame"](ctx, answer_id, elapsed_ms=2000, seed=11)
        assert a == b

    async def test_text_only_answer(self, tools, ctx, app):
        answer_id = await self._answer_id(tools, ctx)
        app.questions.get_answer(answer_id).visualization = None
        result = await tools["resolve_frame"](ctx, answer_id)
        assert result["frame"] is None
        svg = await tools["render_frame"](ctx, answer_id)
        assert "No visualization" in svg["svg"]

    async def test_render_svg(self, tools, ctx):
        answer_id = await self._answer_id(tools, ctx)
        result = await tools["render_frame"](ctx, answer_id, elapsed_ms=500)
        assert result["format"] == "svg"
        assert result["svg"].startswith("<svg")

    async def test_render_png(self, tools, ctx):
        answer_id = await self._answer_id(tools, ctx)
        result = await tools["render_frame"](ctx, answer_id, format="png")
        assert base64.b64decode(result["png_base64"]).startswith(b"\x89PNG")

    async def test_render_bad_format(self, tools, ctx):
        answer_id = await self._answer_id(tools, ctx)
        result = await tools["render_frame"](ctx, answer_id, format="gif")
        assert result["error"] is True
        assert "gif" in result["message"]

    async def test_reset(self, tools, ctx, app):
        answer_id = await self._answer_id(tools, ctx)
        await tools["resolve_frame"](ctx, answer_id, elapsed_ms=100)
        result = await tools["reset_playback"](ctx, answer_id)
        assert result == {"reset": True, "answer_id": answer_id}
        assert app.sessions[answer_id].playing is False

    async def test_unknown_answer(self, tools, ctx):
        result = await tools["reset_playback"](ctx, "a_nope")
        assert result["error"] is True
