"""MCP server plus the HTTP question/answer API and its event stream."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse

from sceneviz.bootstrap import AppContext, app_context
from sceneviz.config import SceneVizConfig
from sceneviz.core.questions import QuestionService
from sceneviz.exceptions import (
    AnswerNotFoundError,
    InvalidSubmissionError,
    SceneVizError,
)
from sceneviz.tools import register_all_tools

logger = logging.getLogger(__name__)

# Stateless HTTP runs the lifespan once per request; the store and event bus
# must outlive those, so they are bootstrapped once per process.
_stack = AsyncExitStack()
_app: AppContext | None = None
_app_lock: asyncio.Lock | None = None
_config: SceneVizConfig | None = None


async def get_app_context(config: SceneVizConfig | None = None) -> AppContext:
    global _app, _app_lock
    if _app_lock is None:
        _app_lock = asyncio.Lock()
    async with _app_lock:
        if _app is None:
            _app = await _stack.enter_async_context(app_context(config or _config))
    return _app


async def shutdown_app_context() -> None:
    global _app, _app_lock
    await _stack.aclose()
    _app = None
    _app_lock = None


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    yield await get_app_context()


# ── HTTP routes ───────────────────────────────────────────────────────

def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


async def submit_question(request: Request) -> Response:
    app = await get_app_context()
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error("Request body must be JSON", 400)
    if not isinstance(body, dict):
        return _error("Request body must be a JSON object", 400)

    try:
        result = await app.questions.submit(body.get("userId"), body.get("question"))
    except InvalidSubmissionError as e:
        return _error(e.message, 400)
    except SceneVizError as e:
        logger.error("Failed to process question: %s", e)
        return _error("Failed to process question", 500)
    return JSONResponse(result.model_dump(by_alias=True), status_code=201)


async def list_questions(request: Request) -> Response:
    app = await get_app_context()
    return JSONResponse([
        {
            **q.model_dump(by_alias=True, mode="json", exclude={"answer"}),
            "answer": QuestionService.answer_payload(q.answer) if q.answer else None,
        }
        for q in app.questions.list_questions()
    ])


async def get_answer(request: Request) -> Response:
    app = await get_app_context()
    try:
        answer = app.questions.get_answer(request.path_params["answer_id"])
    except AnswerNotFoundError:
        return _error("Answer not found", 404)
    return JSONResponse(QuestionService.answer_payload(answer))


async def event_stream(request: Request) -> Response:
    app = await get_app_context()
    return StreamingResponse(
        app.bus.stream(app.config.keepalive_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def register_routes(mcp: FastMCP) -> None:
    mcp.custom_route("/api/questions", methods=["POST"])(submit_question)
    mcp.custom_route("/api/questions", methods=["GET"])(list_questions)
    mcp.custom_route("/api/answers/{answer_id}", methods=["GET"])(get_answer)
    mcp.custom_route("/api/stream", methods=["GET"])(event_stream)


def create_server(config: SceneVizConfig | None = None) -> FastMCP:
    global _config
    config = _config = config or SceneVizConfig()
    mcp = FastMCP(
        config.server_name,
        lifespan=app_lifespan,
        host=config.server_host,
        port=config.server_port,
        stateless_http=True,
    )
    register_all_tools(mcp)
    register_routes(mcp)
    return mcp


def main():
    server = create_server()
    server.run(transport="streamable-http")


if __name__ == "__main__":
    main()
