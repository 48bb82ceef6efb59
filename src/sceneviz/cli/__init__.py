"""CLI entry point for sceneviz."""

from __future__ import annotations

import argparse
import asyncio
import sys


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sceneviz",
        description="Ask questions, get animated 2D explanations from the CLI or an MCP server.",
    )
    parser.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    # ── ask ──────────────────────────────────────────────────────
    ask = sub.add_parser("ask", help="Ask a question and generate a visualization")
    ask.add_argument("question", help="Natural-language question")
    ask.add_argument("--user", default="cli", help="User ID recorded with the question")
    ask.add_argument("--save", metavar="FILE", help="Write the answer document (JSON) to FILE")
    ask.add_argument("--render", metavar="FILE", help="Export the scene to FILE (.svg, .png or .gif)")
    ask.add_argument("--at", type=float, default=0.0, help="Frame time in ms for svg/png export")

    # ── validate ─────────────────────────────────────────────────
    validate = sub.add_parser("validate", help="Check a scene or answer JSON file")
    validate.add_argument("file", help="Scene JSON, or an answer document with a visualization")

    # ── resolve ──────────────────────────────────────────────────
    resolve = sub.add_parser("resolve", help="Print resolved layer props at a time")
    resolve.add_argument("file", help="Scene JSON, or an answer document with a visualization")
    resolve.add_argument("--at", type=float, required=True, help="Elapsed time in ms")
    resolve.add_argument("--seed", type=int, default=None, help="Particle RNG seed")

    # ── render ───────────────────────────────────────────────────
    render = sub.add_parser("render", help="Export a scene to svg, png or gif")
    render.add_argument("file", help="Scene JSON, or an answer document with a visualization")
    render.add_argument("--output", "-o", required=True, help="Output path (.svg, .png or .gif)")
    render.add_argument("--format", "-f", choices=["svg", "png", "gif"], default=None,
                        help="Output format (default: from the output suffix)")
    render.add_argument("--at", type=float, default=0.0, help="Frame time in ms for svg/png")
    render.add_argument("--fps", type=float, default=None, help="GIF frame rate (default: scene fps)")
    render.add_argument("--seed", type=int, default=None, help="Particle RNG seed")

    # ── serve ────────────────────────────────────────────────────
    serve = sub.add_parser("serve", help="Start the MCP server and HTTP API")
    serve.add_argument(
        "--transport",
        choices=["streamable-http", "stdio", "sse"],
        default="streamable-http",
        help="MCP transport (default: streamable-http)",
    )

    return parser


def cli_main() -> None:
    """Entry point for the ``sceneviz`` console script."""
    parser = _build_parser()
    args = parser.parse_args()

    # --verbose → DEBUG logging
    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)

    # serve hands off to the MCP server
    if args.command == "serve":
        from sceneviz.server import create_server
        server = create_server()
        server.run(transport=args.transport)
        return

    # Everything else runs through the async dispatcher
    from sceneviz.cli.commands import dispatch

    try:
        exit_code = asyncio.run(dispatch(args))
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(exit_code)
