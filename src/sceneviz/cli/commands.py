"""Async command handlers for each CLI subcommand."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from sceneviz.bootstrap import AppContext, app_context
from sceneviz.cli.output import Printer, spinner
from sceneviz.core.questions import QuestionService
from sceneviz.core.validation import validate_scene
from sceneviz.engine.playback import PlaybackSession
from sceneviz.exceptions import SceneValidationError, SceneVizError
from sceneviz.models import Scene
from sceneviz.renderers import export


# ── Dispatcher ────────────────────────────────────────────────────────

async def dispatch(args: argparse.Namespace) -> int:
    """Bootstrap the app, create a printer, and route to the right handler."""
    printer = Printer(json_mode=getattr(args, "json", False))

    try:
        async with app_context() as ctx:
            handler = _HANDLERS.get(args.command)
            if handler is None:
                printer.error(f"Unknown command: {args.command}")
                return 1
            return await handler(args, ctx, printer)
    except SceneValidationError as e:
        printer.validation_errors(e.errors)
        return 1
    except SceneVizError as e:
        printer.error(str(e))
        return 1
    except Exception as e:
        printer.error(f"Unexpected error: {e}")
        return 1


def load_scene_file(path: str) -> Scene | None:
    """Read a scene, or an answer document wrapping one.

    Returns ``None`` for an answer whose visualization is null (text-only).
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SceneValidationError(f"{path} is not valid JSON", [str(e)]) from e
    if isinstance(data, dict) and "visualization" in data and "layers" not in data:
        data = data["visualization"]
        if data is None:
            return None
    return validate_scene(data)


# ── Individual commands ───────────────────────────────────────────────

async def cmd_ask(
    args: argparse.Namespace,
    ctx: AppContext,
    printer: Printer,
) -> int:
    printer.info(f"Asking: {args.question}")

    with spinner("Generating answer"):
        result = await ctx.questions.submit(args.user, args.question)

    answer = QuestionService.answer_payload(ctx.questions.get_answer(result.answer_id))
    printer.answer(answer)

    if args.save:
        Path(args.save).write_text(json.dumps(answer, indent=2), encoding="utf-8")
        printer.success(f"Answer saved to {args.save}")

    if args.render:
        session = ctx.session_for(result.answer_id)
        with spinner("Rendering"):
            fmt = export(session, args.render, at_ms=args.at)
        printer.success(f"Rendered {fmt} to {args.render}")
    return 0


async def cmd_validate(
    args: argparse.Namespace,
    ctx: AppContext,
    printer: Printer,
) -> int:
    scene = load_scene_file(args.file)
    if scene is None:
        printer.success("Text-only answer (no visualization)")
        return 0
    printer.scene_summary(scene.to_wire())
    return 0


async def cmd_resolve(
    args: argparse.Namespace,
    ctx: AppContext,
    printer: Printer,
) -> int:
    scene = load_scene_file(args.file)
    if scene is None:
        printer.warn("No visualization")
        return 0
    session = PlaybackSession(scene, ctx.config, seed=args.seed)
    printer.frame(session.frame(args.at).to_dict())
    return 0


async def cmd_render(
    args: argparse.Namespace,
    ctx: AppContext,
    printer: Printer,
) -> int:
    scene = load_scene_file(args.file)
    session = PlaybackSession(scene, ctx.config, seed=args.seed) if scene is not None else None

    with spinner(f"Rendering {args.output}"):
        fmt = export(session, args.output, fmt=args.format, at_ms=args.at, fps=args.fps)

    printer.success(f"Rendered {fmt} to {args.output}")
    return 0


# ── Handler registry ──────────────────────────────────────────────────

_HANDLERS = {
    "ask": cmd_ask,
    "validate": cmd_validate,
    "resolve": cmd_resolve,
    "render": cmd_render,
}
