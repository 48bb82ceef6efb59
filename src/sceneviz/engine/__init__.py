"""Deterministic playback engine: easing, motion solvers, physics and the evaluator."""

from sceneviz.engine.evaluator import resolve
from sceneviz.engine.playback import Frame, PlaybackSession

__all__ = ["Frame", "PlaybackSession", "resolve"]
