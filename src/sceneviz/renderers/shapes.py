"""Tagged shape variants built from resolved layer props.

Both renderer backends dispatch on :class:`ShapeKind`; neither inspects
prop names directly. Unknown layer types become a :class:`Rect` so a
scene never fails to draw.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

ARROW_HEAD_LENGTH = 10.0
ARROW_HEAD_ANGLE = 0.3  # radians either side of the shaft
DEFAULT_TRIANGLE = [(400.0, 150.0), (325.0, 300.0), (475.0, 300.0)]

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


class ShapeKind(str, Enum):
    circle = "circle"
    rect = "rect"
    text = "text"
    polygon = "polygon"
    line = "line"
    arrow = "arrow"
    orbit = "orbit"
    path = "path"


@dataclass
class Style:
    fill: str | None = "#000"
    stroke: str | None = None
    stroke_width: float = 1.0
    opacity: float = 1.0
    dashed: bool = False


@dataclass
class Transform:
    """Rotation (degrees) and scale, both pivoting on ``(cx, cy)``."""

    cx: float = 0.0
    cy: float = 0.0
    rotation: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self.rotation == 0 and self.scale_x == 1 and self.scale_y == 1

    def apply(self, x: float, y: float) -> tuple[float, float]:
        dx = (x - self.cx) * self.scale_x
        dy = (y - self.cy) * self.scale_y
        theta = math.radians(self.rotation)
        cos, sin = math.cos(theta), math.sin(theta)
        return self.cx + dx * cos - dy * sin, self.cy + dx * sin + dy * cos


@dataclass
class Circle:
    x: float
    y: float
    r: float
    style: Style = field(default_factory=Style)
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.circle


@dataclass
class Orbit:
    x: float
    y: float
    r: float
    style: Style = field(default_factory=lambda: Style(fill=None, stroke="#999", dashed=True))
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.orbit


@dataclass
class Rect:
    x: float  # top-left
    y: float
    width: float
    height: float
    corner_radius: float = 0.0
    style: Style = field(default_factory=Style)
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.rect


@dataclass
class Text:
    x: float  # anchor point, centred
    y: float
    text: str
    font_size: float = 16.0
    font_family: str = "Arial"
    font_weight: str = ""
    align: str = "center"
    style: Style = field(default_factory=Style)
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.text


@dataclass
class Polygon:
    points: list[tuple[float, float]]
    style: Style = field(default_factory=Style)
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.polygon


@dataclass
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    style: Style = field(default_factory=lambda: Style(fill=None, stroke="#000"))
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.line


@dataclass
class Arrow:
    x1: float
    y1: float
    x2: float
    y2: float
    style: Style = field(default_factory=lambda: Style(fill="#000", stroke=None, stroke_width=2.0))
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.arrow

    @property
    def head(self) -> list[tuple[float, float]]:
        """Tip plus the two barb points of the triangular head."""
        angle = math.atan2(self.y2 - self.y1, self.x2 - self.x1)
        return [
            (self.x2, self.y2),
            (
                self.x2 - ARROW_HEAD_LENGTH * math.cos(angle - ARROW_HEAD_ANGLE),
                self.y2 - ARROW_HEAD_LENGTH * math.sin(angle - ARROW_HEAD_ANGLE),
            ),
            (
                self.x2 - ARROW_HEAD_LENGTH * math.cos(angle + ARROW_HEAD_ANGLE),
                self.y2 - ARROW_HEAD_LENGTH * math.sin(angle + ARROW_HEAD_ANGLE),
            ),
        ]


@dataclass
class Path:
    d: str
    x: float = 0.0
    y: float = 0.0
    style: Style = field(default_factory=Style)
    transform: Transform = field(default_factory=Transform)
    kind: ShapeKind = ShapeKind.path


Shape = Union[Circle, Orbit, Rect, Text, Polygon, Line, Arrow, Path]


# ── Prop helpers ──────────────────────────────────────────────────────

def _num(props: dict[str, Any], *keys: str, default: float = 0.0) -> float:
    for key in keys:
        value = props.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and math.isfinite(value):
            return float(value)
    return default


def _style(props: dict[str, Any], base: Style) -> Style:
    opacity = _num(props, "opacity", default=1.0)
    fill = props.get("fill", base.fill)
    if fill is not None and not isinstance(fill, str):
        fill = base.fill
    if fill == "none":
        fill = None
    return Style(
        fill=fill,
        stroke=props.get("stroke") if isinstance(props.get("stroke"), str) else base.stroke,
        stroke_width=_num(props, "strokeWidth", default=base.stroke_width),
        opacity=min(1.0, max(0.0, opacity)),
        dashed=bool(props.get("dashed", base.dashed or "strokeDasharray" in props)),
    )


def _transform(props: dict[str, Any], cx: float, cy: float) -> Transform:
    scale = _num(props, "scale", default=1.0)
    return Transform(
        cx=cx,
        cy=cy,
        rotation=_num(props, "rotation", default=0.0),
        scale_x=_num(props, "scaleX", default=scale),
        scale_y=_num(props, "scaleY", default=scale),
    )


def parse_points(raw: Any) -> list[tuple[float, float]] | None:
    """Accept ``[{x, y}]``, ``[[x, y]]``, flat ``[x0, y0, x1, y1]`` or ``"x,y x,y"``."""
    if isinstance(raw, str):
        raw = [float(n) for n in _NUMBER_RE.findall(raw)]
    if not isinstance(raw, (list, tuple)) or not raw:
        return None

    points: list[tuple[float, float]] = []
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in raw):
        if len(raw) % 2:
            return None
        points = [(float(raw[i]), float(raw[i + 1])) for i in range(0, len(raw), 2)]
    else:
        for item in raw:
            if isinstance(item, dict) and "x" in item and "y" in item:
                points.append((float(item["x"]), float(item["y"])))
            elif isinstance(item, (list, tuple)) and len(item) >= 2:
                points.append((float(item[0]), float(item[1])))
            else:
                return None
    return points if len(points) >= 2 else None


def _arrow_endpoints(props: dict[str, Any]) -> tuple[float, float, float, float]:
    if any(k in props for k in ("x1", "startX")):
        return (
            _num(props, "x1", "startX"), _num(props, "y1", "startY"),
            _num(props, "x2", "endX"), _num(props, "y2", "endY"),
        )
    x, y = _num(props, "x"), _num(props, "y")
    if "dx" in props or "dy" in props:
        return x, y, x + _num(props, "dx"), y + _num(props, "dy")
    length = _num(props, "length", default=50.0)
    angle = math.radians(_num(props, "angle"))
    return x, y, x + length * math.cos(angle), y + length * math.sin(angle)


# ── Builder ───────────────────────────────────────────────────────────

def build_shape(layer_type: str, props: dict[str, Any]) -> Shape:
    """Map a layer's ``type`` and resolved ``props`` to a shape variant."""
    kind = (layer_type or "").lower()

    if kind in ("circle", "orbit"):
        x, y = _num(props, "x", "cx", "centerX"), _num(props, "y", "cy", "centerY")
        r = max(0.0, _num(props, "r", "radius", default=10.0))
        if kind == "orbit":
            base = Orbit(x, y, r)
            return Orbit(x, y, r, style=_style(props, base.style), transform=_transform(props, x, y))
        return Circle(x, y, r, style=_style(props, Style()), transform=_transform(props, x, y))

    if kind == "text":
        x, y = _num(props, "x"), _num(props, "y")
        content = props.get("text", props.get("content", props.get("label", "")))
        return Text(
            x, y, str(content),
            font_size=_num(props, "fontSize", default=16.0),
            font_family=str(props.get("fontFamily", "Arial")),
            font_weight=str(props.get("fontWeight", "")),
            align=str(props.get("textAlign", "center")),
            style=_style(props, Style()),
            transform=_transform(props, x, y),
        )

    if kind == "polygon":
        points = parse_points(props.get("points"))
        if points is None:
            logger.debug("Polygon without usable points; drawing default triangle")
            points = list(DEFAULT_TRIANGLE)
        cx = sum(p[0] for p in points) / len(points)
        cy = sum(p[1] for p in points) / len(points)
        return Polygon(points, style=_style(props, Style()), transform=_transform(props, cx, cy))

    if kind == "line":
        x1, y1 = _num(props, "x1", "startX", "x"), _num(props, "y1", "startY", "y")
        x2, y2 = _num(props, "x2", "endX"), _num(props, "y2", "endY")
        base = Line(x1, y1, x2, y2)
        return Line(
            x1, y1, x2, y2,
            style=_style(props, base.style),
            transform=_transform(props, (x1 + x2) / 2, (y1 + y2) / 2),
        )

    if kind == "arrow":
        x1, y1, x2, y2 = _arrow_endpoints(props)
        base = Arrow(x1, y1, x2, y2)
        style = _style(props, base.style)
        if style.stroke is None:
            style.stroke = style.fill
        return Arrow(
            x1, y1, x2, y2,
            style=style,
            transform=_transform(props, (x1 + x2) / 2, (y1 + y2) / 2),
        )

    if kind in ("svgpath", "path", "svg"):
        d = props.get("d", props.get("path"))
        if isinstance(d, str) and d.strip():
            x, y = _num(props, "x"), _num(props, "y")
            return Path(d.strip(), x, y, style=_style(props, Style()), transform=_transform(props, x, y))

    # rect and every unknown type
    x, y = _num(props, "x"), _num(props, "y")
    width = max(0.0, _num(props, "width", "w", default=50.0))
    height = max(0.0, _num(props, "height", "h", default=50.0))
    if kind != "rect":
        logger.debug("Unknown layer type %r drawn as rect", layer_type)
    return Rect(
        x, y, width, height,
        corner_radius=_num(props, "cornerRadius"),
        style=_style(props, Style()),
        transform=_transform(props, x + width / 2, y + height / 2),
    )
