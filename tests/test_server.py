"""Tests for the HTTP question API and server wiring."""

from __future__ import annotations

import httpx
import pytest
from starlette.applications import Starlette
from starlette.routing import Route

from sceneviz import server
from sceneviz.config import SceneVizConfig


@pytest.fixture
async def client():
    await server.get_app_context(SceneVizConfig(gemini_api_key="", claude_api_key=""))
    app = Starlette(routes=[
        Route("/api/questions", server.submit_question, methods=["POST"]),
        Route("/api/questions", server.list_questions, methods=["GET"]),
        Route("/api/answers/{answer_id}", server.get_answer, methods=["GET"]),
    ])
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await server.shutdown_app_context()


class TestQuestionApi:
    async def test_submit(self, client):
        resp = await client.post("/api/questions", json={"userId": "u1", "question": "Why is the sky blue?"})
        assert resp.status_code == 201
        body = resp.json()
        assert set(body) == {"questionId", "answerId"}

        answer = (await client.get(f"/api/answers/{body['answerId']}")).json()
        assert answer["questionId"] == body["questionId"]
        assert answer["visualization"]["fps"] > 0

    @pytest.mark.parametrize("payload", [{"userId": "u1"}, {"question": "q"}, {"userId": "", "question": "q"}])
    async def test_missing_fields(self, client, payload):
        resp = await client.post("/api/questions", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": "User ID and question are required"}

    async def test_invalid_json(self, client):
        resp = await client.post("/api/questions", content=b"{not json", headers={"content-type": "application/json"})
        assert resp.status_code == 400

    async def test_non_object_body(self, client):
        resp = await client.post("/api/questions", json=["a"])
        assert resp.status_code == 400

    async def test_list_embeds_answer(self, client):
        await client.post("/api/questions", json={"userId": "u1", "question": "one"})
        listed = (await client.get("/api/questions")).json()
        assert len(listed) == 1
        assert listed[0]["userId"] == "u1"
        assert listed[0]["answer"]["id"] == listed[0]["answerId"]

    async def test_answer_not_found(self, client):
        resp = await client.get("/api/answers/a_missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Answer not found"}


class TestCreateServer:
    async def test_tools_registered(self):
        mcp = server.create_server(SceneVizConfig(gemini_api_key="", claude_api_key=""))
        names = {tool.name for tool in await mcp.list_tools()}
        assert names == {
            "ask_question", "list_questions", "get_answer",
            "resolve_frame", "render_frame", "reset_playback",
        }
