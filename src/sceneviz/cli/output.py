"""Terminal formatting: ANSI colors, JSON mode, and a spinner."""

from __future__ import annotations

import json
import sys
import threading
from contextlib import contextmanager
from typing import Any


# ── ANSI helpers ──────────────────────────────────────────────────────

_IS_TTY = sys.stdout.isatty()


def _sgr(code: str) -> str:
    return f"\033[{code}m" if _IS_TTY else ""


BOLD = _sgr("1")
DIM = _sgr("2")
RED = _sgr("31")
GREEN = _sgr("32")
YELLOW = _sgr("33")
CYAN = _sgr("36")
RESET = _sgr("0")


# ── Spinner ───────────────────────────────────────────────────────────

@contextmanager
def spinner(message: str):
    """Show a simple spinner on stderr while work is happening."""
    if not sys.stderr.isatty():
        sys.stderr.write(f"{message}...\n")
        sys.stderr.flush()
        yield
        return

    frames = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
    stop = threading.Event()

    def _spin():
        i = 0
        while not stop.is_set():
            sys.stderr.write(f"\r{CYAN}{frames[i % len(frames)]}{RESET} {message}")
            sys.stderr.flush()
            i += 1
            stop.wait(0.08)
        sys.stderr.write(f"\r{' ' * (len(message) + 4)}\r")
        sys.stderr.flush()

    t = threading.Thread(target=_spin, daemon=True)
    t.start()
    try:
        yield
    finally:
        stop.set()
        t.join()


# ── Printer ───────────────────────────────────────────────────────────

class Printer:
    """Unified output: human-friendly ANSI or machine-readable JSON."""

    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode

    # ── Low-level ─────────────────────────────────────────────────

    def _print_json(self, data: Any) -> None:
        print(json.dumps(data, default=str))

    def _write(self, text: str) -> None:
        print(text)

    # ── Status messages ───────────────────────────────────────────

    def success(self, message: str) -> None:
        if self.json_mode:
            self._print_json({"status": "success", "message": message})
        else:
            self._write(f"{GREEN}{BOLD}✓{RESET} {message}")

    def error(self, message: str) -> None:
        if self.json_mode:
            self._print_json({"status": "error", "message": message})
        else:
            self._write(f"{RED}{BOLD}✗{RESET} {RED}{message}{RESET}")

    def info(self, message: str) -> None:
        if self.json_mode:
            return  # info is suppressed in JSON mode
        self._write(f"{DIM}{message}{RESET}")

    def warn(self, message: str) -> None:
        if self.json_mode:
            return
        self._write(f"{YELLOW}⚠ {message}{RESET}")

    # ── Answer ────────────────────────────────────────────────────

    def answer(self, answer: dict) -> None:
        if self.json_mode:
            self._print_json(answer)
            return

        source = answer.get("source", "?")
        color = {"generated": GREEN, "fallback": YELLOW}.get(source, DIM)
        self._write("")
        self._write(f"{BOLD}Answer {CYAN}{answer.get('id', '')}{RESET}  {color}{source}{RESET}")
        self._write(f"  {answer.get('text', '')}")
        scene = answer.get("visualization")
        if scene:
            self._write(
                f"  Scene     : {scene.get('id', '?')} "
                f"({len(scene.get('layers', []))} layers, "
                f"{len(scene.get('particleSystems', []))} particle systems, "
                f"{scene.get('durationMs', 0) / 1000:.1f}s @ {scene.get('fps', '?')} fps)"
            )
        else:
            self._write(f"  {DIM}No visualization{RESET}")
        if answer.get("animationDescription"):
            self._write(f"  Animation : {answer['animationDescription']}")
        self._write("")

    # ── Scene validation ──────────────────────────────────────────

    def scene_summary(self, scene: dict) -> None:
        if self.json_mode:
            self._print_json({"valid": True, "scene": scene})
            return

        self._write(f"{GREEN}{BOLD}✓{RESET} Valid scene {CYAN}{scene.get('id', '?')}{RESET}")
        self._write(f"  Duration  : {scene['durationMs'] / 1000:.1f}s @ {scene['fps']} fps")
        for layer in scene.get("layers", []):
            count = len(layer.get("animations", []))
            self._write(f"  {layer['id']:20} {DIM}{layer.get('type', '?'):10}{RESET} {count} animation(s)")
        for system in scene.get("particleSystems", []):
            self._write(f"  {system.get('id', '?'):20} {DIM}{'particles':10}{RESET}")

    def validation_errors(self, errors: list[str]) -> None:
        if self.json_mode:
            self._print_json({"valid": False, "errors": errors})
            return

        self._write(f"{RED}{BOLD}✗{RESET} {RED}Invalid visualization{RESET}")
        for error in errors:
            self._write(f"  - {error}")

    # ── Frame ─────────────────────────────────────────────────────

    def frame(self, frame: dict) -> None:
        if self.json_mode:
            self._print_json(frame)
            return

        self._write(f"\n{BOLD}Frame at {frame['elapsedMs']:.0f} ms{RESET}\n")
        for layer in frame["layers"]:
            props = ", ".join(
                f"{k}={v:.2f}" if isinstance(v, float) else f"{k}={v}"
                for k, v in layer["props"].items()
            )
            self._write(f"  {CYAN}{layer['id']:20}{RESET} {DIM}{layer['type']:8}{RESET} {props}")
        if frame["particles"]:
            self._write(f"  {len(frame['particles'])} live particle(s)")
        self._write("")
