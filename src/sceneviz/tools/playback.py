"""Playback tools: resolve_frame, render_frame, reset_playback."""

from __future__ import annotations

import base64

from mcp.server.fastmcp import Context, FastMCP

from sceneviz.exceptions import SceneVizError, UnsupportedFormatError
from sceneviz.renderers.raster import png_bytes
from sceneviz.renderers.svg import render_svg

_FRAME_FORMATS = ["svg", "png"]


def register_playback_tools(mcp: FastMCP) -> None:

    @mcp.tool()
    async def resolve_frame(
        ctx: Context,
        answer_id: str,
        elapsed_ms: float = 0.0,
        seed: int | None = None,
    ) -> dict:
        """Evaluate an answer's scene at a point in time.

        Args:
            answer_id: The answer whose scene to evaluate.
            elapsed_ms: Time since playback start in milliseconds.
            seed: Particle RNG seed; starts a fresh, reproducible session.

        Returns:
            Resolved props per layer in draw order, plus live particles.
        """
        app = ctx.request_context.lifespan_context
        try:
            session = app.session_for(answer_id, seed=seed)
            if session is None:
                return {"answer_id": answer_id, "frame": None, "message": "No visualization"}
            return {"answer_id": answer_id, "frame": session.frame(elapsed_ms).to_dict()}
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}

    @mcp.tool()
    async def render_frame(
        ctx: Context,
        answer_id: str,
        elapsed_ms: float = 0.0,
        format: str = "svg",
        seed: int | None = None,
    ) -> dict:
        """Render one frame of an answer's scene.

        Args:
            answer_id: The answer whose scene to render.
            elapsed_ms: Time since playback start in milliseconds.
            format: svg (markup in "svg") or png (base64 in "png_base64").
            seed: Particle RNG seed; starts a fresh, reproducible session.
        """
        app = ctx.request_context.lifespan_context
        try:
            if format not in _FRAME_FORMATS:
                raise UnsupportedFormatError(format, _FRAME_FORMATS)
            session = app.session_for(answer_id, seed=seed)
            frame = session.frame(elapsed_ms) if session is not None else None
            if format == "png":
                encoded = base64.b64encode(png_bytes(frame)).decode("ascii")
                return {"answer_id": answer_id, "format": "png", "png_base64": encoded}
            return {"answer_id": answer_id, "format": "svg", "svg": render_svg(frame)}
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}

    @mcp.tool()
    async def reset_playback(ctx: Context, answer_id: str) -> dict:
        """Restart an answer's playback: springs, particles and clock are discarded.

        Args:
            answer_id: The answer whose playback session to reset.
        """
        app = ctx.request_context.lifespan_context
        try:
            session = app.session_for(answer_id)
            if session is not None:
                session.reset()
            return {"reset": session is not None, "answer_id": answer_id}
        except SceneVizError as e:
            return {"error": True, "message": str(e)}
        except Exception as e:
            return {"error": True, "message": f"Unexpected error: {e}"}
