"""Renderer backends and file export."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sceneviz.exceptions import UnsupportedFormatError

if TYPE_CHECKING:
    from sceneviz.engine.playback import PlaybackSession

SUPPORTED_FORMATS = ["svg", "png", "gif"]


def output_format(path: str | Path, fmt: str | None = None) -> str:
    fmt = (fmt or Path(path).suffix.lstrip(".")).lower()
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(fmt or "<none>", SUPPORTED_FORMATS)
    return fmt


def export(
    session: PlaybackSession | None,
    path: str | Path,
    *,
    fmt: str | None = None,
    at_ms: float = 0.0,
    fps: float | None = None,
) -> str:
    """Write a single frame (svg/png) or the whole timeline (gif) to ``path``.

    A ``None`` session (text-only answer) writes the placeholder.
    """
    from sceneviz.renderers.raster import export_gif, placeholder_image, save_png
    from sceneviz.renderers.svg import render_svg

    fmt = output_format(path, fmt)
    if fmt == "gif":
        if session is None:
            placeholder_image().convert("RGB").save(path, format="GIF")
        else:
            export_gif(session, path, fps=fps)
        return fmt

    frame = session.frame(at_ms) if session is not None else None
    if fmt == "svg":
        Path(path).write_text(render_svg(frame), encoding="utf-8")
    else:
        save_png(frame, path)
    return fmt
