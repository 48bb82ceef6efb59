"""Question tools: ask_question, list_questions, get_answer."""

from __future__ import annotations

from mcp.server.fastmcp import Context, FastMCP

from sceneviz.core.questions import QuestionService
from sceneviz.exceptions import SceneVizError


def register_ask_tools(mcp: FastMCP) -> None:

    @mcp.tool()
    async def ask_question(ctx: Context, question: str, user_id: str = "mcp") -> dict:
        """Ask a question and get a text explanation plus an animated scene.

        The answer is always produced: if the model is unavailable or returns
        an unusable scene, a built-in scene for the topic is used instead.

        Args:
            question: Natural-language question (e.g. "How do planets orbit the sun?").
            user_id: Identifier of the asking user.

        Returns:
            Question and answer ids plus the answer itself (text, scene JSON, source).
        """
        app = ctx.request_context.lifespan_context
        try:
            await ctx.report_progress(0, 100)
            result = await app.questions.submit(user_id, question)
            answer = app.questions.get_answer(result.answer_id)
            await ctx.report_progress(100, 100)
            return {
                **result.model_dump(),
                "answer": QuestionService.answer_payload(answer),
            }
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}

    @mcp.tool()
    async def list_questions(ctx: Context, limit: int = 20) -> dict:
        """List asked questions, newest last, with their answers embedded.

        Args:
            limit: Maximum results (1-100), taken from the most recent.
        """
        app = ctx.request_context.lifespan_context
        try:
            questions = app.questions.list_questions()[-min(max(limit, 1), 100):]
            return {
                "questions": [q.model_dump(by_alias=True, mode="json") for q in questions],
                "count": len(questions),
            }
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}

    @mcp.tool()
    async def get_answer(ctx: Context, answer_id: str) -> dict:
        """Get a stored answer, including its scene JSON.

        Args:
            answer_id: The answer ID returned by ask_question.
        """
        app = ctx.request_context.lifespan_context
        try:
            return QuestionService.answer_payload(app.questions.get_answer(answer_id))
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}
