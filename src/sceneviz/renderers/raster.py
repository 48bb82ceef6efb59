"""Immediate-mode raster backend (Pillow): PNG frames and animated GIFs."""

from __future__ import annotations

import io
import logging
import math
import re
from typing import TYPE_CHECKING

from PIL import Image, ImageColor, ImageDraw, ImageFont

from sceneviz.renderers.shapes import Shape, ShapeKind, Transform, build_shape
from sceneviz.renderers.svg import PLACEHOLDER_TEXT

if TYPE_CHECKING:
    from pathlib import Path

    from sceneviz.engine.playback import Frame, ParticleSprite, PlaybackSession

logger = logging.getLogger(__name__)

_CIRCLE_SEGMENTS = 48
_FALLBACK_RGB = (0, 0, 0)


def _rgba(color: str | None, opacity: float) -> tuple[int, int, int, int] | None:
    if not color or color == "none":
        return None
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        logger.debug("Unparseable colour %r", color)
        rgb = _FALLBACK_RGB
    alpha = rgb[3] if len(rgb) == 4 else 255
    return rgb[0], rgb[1], rgb[2], int(alpha * max(0.0, min(1.0, opacity)))


def _font(size: float) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=max(1.0, size))


def _ring(x: float, y: float, r: float, t: Transform) -> list[tuple[float, float]]:
    return [
        t.apply(x + r * math.cos(2 * math.pi * i / _CIRCLE_SEGMENTS),
                y + r * math.sin(2 * math.pi * i / _CIRCLE_SEGMENTS))
        for i in range(_CIRCLE_SEGMENTS)
    ]


def _dashed(draw: ImageDraw.ImageDraw, points, fill, width: int) -> None:
    loop = points + points[:1]
    for i, segment in enumerate(zip(loop, loop[1:])):
        if i % 2 == 0:
            draw.line(list(segment), fill=fill, width=width)


_PATH_TOKEN = re.compile(r"[MmLlHhVvZzCcSsQqTtAa]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
# Arguments per command; curves keep only their end point.
_PATH_ARITY = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}


def path_outlines(d: str) -> list[tuple[list[tuple[float, float]], bool]]:
    """Flatten an SVG path string into ``(points, closed)`` polylines.

    Curve and arc segments become straight lines to their end point.
    Malformed input yields whatever subpaths parsed before the error.
    """
    outlines: list[tuple[list[tuple[float, float]], bool]] = []
    current: list[tuple[float, float]] = []
    x = y = 0.0
    command = None
    tokens = _PATH_TOKEN.findall(d)
    i = 0
    while i < len(tokens):
        if tokens[i].isalpha():
            command = tokens[i]
            i += 1
        if command is None:
            break
        upper, relative = command.upper(), command.islower()
        if upper == "Z":
            if len(current) > 1:
                outlines.append((current, True))
                x, y = current[0]
                current = []
            command = None
            continue

        arity = _PATH_ARITY[upper]
        args = tokens[i:i + arity]
        if len(args) < arity or any(a.isalpha() for a in args):
            logger.debug("Truncated path command %r in %r", command, d)
            break
        values = [float(a) for a in args]
        i += arity

        if upper == "H":
            x = values[0] + (x if relative else 0.0)
        elif upper == "V":
            y = values[0] + (y if relative else 0.0)
        else:
            dx, dy = values[-2], values[-1]
            x, y = (x + dx, y + dy) if relative else (dx, dy)

        if upper == "M":
            if len(current) > 1:
                outlines.append((current, False))
            current = [(x, y)]
            # Extra coordinate pairs after a move are implicit line-tos.
            command = "l" if relative else "L"
        else:
            current.append((x, y))

    if len(current) > 1:
        outlines.append((current, False))
    return outlines


def draw_shape(draw: ImageDraw.ImageDraw, shape: Shape) -> None:
    style, t = shape.style, shape.transform
    fill = _rgba(style.fill, style.opacity)
    stroke = _rgba(style.stroke, style.opacity)
    width = max(1, round(style.stroke_width))

    if shape.kind in (ShapeKind.circle, ShapeKind.orbit):
        ring = _ring(shape.x, shape.y, shape.r, t)
        if style.dashed:
            _dashed(draw, ring, stroke or fill, width)
        else:
            draw.polygon(ring, fill=fill, outline=stroke, width=width)

    elif shape.kind == ShapeKind.rect:
        x, y, w, h = shape.x, shape.y, shape.width, shape.height
        if t.is_identity:
            draw.rounded_rectangle(
                [x, y, x + w, y + h], radius=shape.corner_radius,
                fill=fill, outline=stroke, width=width,
            )
        else:
            corners = [t.apply(px, py) for px, py in ((x, y), (x + w, y), (x + w, y + h), (x, y + h))]
            draw.polygon(corners, fill=fill, outline=stroke, width=width)

    elif shape.kind == ShapeKind.text:
        anchor = {"left": "lm", "right": "rm"}.get(shape.align, "mm")
        font = _font(shape.font_size * max(t.scale_x, t.scale_y))
        draw.text(
            t.apply(shape.x, shape.y), shape.text, font=font, anchor=anchor,
            fill=fill, stroke_width=width if stroke else 0, stroke_fill=stroke,
        )

    elif shape.kind == ShapeKind.polygon:
        draw.polygon([t.apply(x, y) for x, y in shape.points], fill=fill, outline=stroke, width=width)

    elif shape.kind == ShapeKind.line:
        draw.line([t.apply(shape.x1, shape.y1), t.apply(shape.x2, shape.y2)], fill=stroke, width=width)

    elif shape.kind == ShapeKind.arrow:
        colour = stroke or fill
        draw.line([t.apply(shape.x1, shape.y1), t.apply(shape.x2, shape.y2)], fill=colour, width=width)
        draw.polygon([t.apply(x, y) for x, y in shape.head], fill=colour)

    else:
        outlines = path_outlines(shape.d)
        if not outlines:
            # Nothing drawable; mark the anchor so the layer is still visible.
            x, y = t.apply(shape.x, shape.y)
            draw.rectangle([x - 2, y - 2, x + 2, y + 2], fill=fill or stroke)
            logger.debug("svgPath %r has no drawable segments", shape.d)
            return
        for points, closed in outlines:
            pts = [t.apply(shape.x + px, shape.y + py) for px, py in points]
            if closed and len(pts) > 2:
                draw.polygon(pts, fill=fill, outline=stroke, width=width)
                continue
            # Open subpaths still fill as if closed.
            if fill and len(pts) > 2:
                draw.polygon(pts, fill=fill)
            if stroke:
                draw.line(pts, fill=stroke, width=width, joint="curve")


def draw_particle(draw: ImageDraw.ImageDraw, sprite: ParticleSprite) -> None:
    fill = _rgba(sprite.color, sprite.opacity)
    x, y, s = sprite.x, sprite.y, sprite.size
    if sprite.shape == "square":
        draw.rectangle([x - s, y - s, x + s, y + s], fill=fill)
    elif sprite.shape == "triangle":
        draw.polygon([(x, y - s), (x - s, y + s), (x + s, y + s)], fill=fill)
    elif sprite.shape == "star":
        pts = []
        for i in range(10):
            radius = s if i % 2 == 0 else s / 2
            angle = math.pi / 5 * i - math.pi / 2
            pts.append((x + radius * math.cos(angle), y + radius * math.sin(angle)))
        draw.polygon(pts, fill=fill)
    else:
        draw.ellipse([x - s, y - s, x + s, y + s], fill=fill)


def placeholder_image(width: int = 800, height: int = 500, message: str = PLACEHOLDER_TEXT) -> Image.Image:
    image = Image.new("RGBA", (width, height), "#f5f5f5")
    draw = ImageDraw.Draw(image)
    draw.text((width / 2, height / 2), message, font=_font(18), anchor="mm", fill="#888888")
    return image


def render_image(frame: Frame | None) -> Image.Image:
    """Paint ``frame`` onto a fresh RGBA image; ``None`` gives the placeholder."""
    if frame is None:
        return placeholder_image()

    image = Image.new("RGBA", (frame.width, frame.height), _rgba(frame.background, 1.0) or "white")
    # Each layer is drawn on its own overlay so per-shape opacity composites correctly.
    for layer in frame.layers:
        overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
        draw_shape(ImageDraw.Draw(overlay), build_shape(layer.type, layer.props))
        image = Image.alpha_composite(image, overlay)

    if frame.particles:
        overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for sprite in frame.particles:
            draw_particle(draw, sprite)
        image = Image.alpha_composite(image, overlay)
    return image


def png_bytes(frame: Frame | None) -> bytes:
    buffer = io.BytesIO()
    render_image(frame).save(buffer, format="PNG")
    return buffer.getvalue()


def save_png(frame: Frame | None, path: str | Path) -> None:
    render_image(frame).save(path, format="PNG")


def export_gif(session: PlaybackSession, path: str | Path, fps: float | None = None) -> int:
    """Sample ``session`` at ``fps`` over the scene duration into a looping GIF.

    Returns the number of frames written. The session is reset first.
    """
    fps = fps or session.scene.fps
    step = 1000 / fps
    count = max(1, math.ceil(session.scene.duration_ms / step))

    session.reset()
    images = [render_image(session.frame(i * step)).convert("RGB") for i in range(count)]
    images[0].save(
        path,
        format="GIF",
        save_all=True,
        append_images=images[1:],
        duration=max(1, round(step)),
        loop=0,
    )
    logger.info("Wrote %d GIF frames to %s", count, path)
    return count
