"""SVG backend: immediate documents and a retained, patchable document.

``render_svg`` rebuilds the whole document for one frame. ``SvgDocument``
keeps one element per layer, returned as a handle when the element is
created, and moves it between frames with attribute patches. Both go
through the same element builder and serializer, so they emit identical
markup for the same frame.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape, quoteattr

from sceneviz.renderers.shapes import Shape, ShapeKind, Style, Transform, build_shape

if TYPE_CHECKING:
    from sceneviz.engine.playback import Frame, ParticleSprite

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "No visualization"


def _n(value: float) -> str:
    """Compact number formatting: at most 2 decimals, no trailing zeros."""
    if not math.isfinite(value):
        return "0"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _points(points: list[tuple[float, float]]) -> str:
    return " ".join(f"{_n(x)},{_n(y)}" for x, y in points)


@dataclass
class SvgElement:
    """One node of the retained tree. Attribute order is irrelevant; output sorts it."""

    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    text: str | None = None
    children: list[SvgElement] = field(default_factory=list)

    def same_structure(self, other: SvgElement) -> bool:
        return (
            self.tag == other.tag
            and len(self.children) == len(other.children)
            and all(a.same_structure(b) for a, b in zip(self.children, other.children))
        )

    def to_string(self) -> str:
        attrs = "".join(f" {k}={quoteattr(v)}" for k, v in sorted(self.attrs.items()))
        if self.text is None and not self.children:
            return f"<{self.tag}{attrs}/>"
        inner = escape(self.text or "") + "".join(c.to_string() for c in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"


@dataclass
class AttributePatch:
    layer_id: str
    path: tuple[int, ...]  # child indices below the layer element
    name: str
    value: str | None  # None removes the attribute


# ── Element building ──────────────────────────────────────────────────

def _paint(style: Style, *, fill: bool = True) -> dict[str, str]:
    attrs = {"fill": (style.fill or "none") if fill else "none"}
    if style.stroke:
        attrs["stroke"] = style.stroke
        attrs["stroke-width"] = _n(style.stroke_width)
    if style.dashed:
        attrs["stroke-dasharray"] = "5,5"
    if style.opacity < 1:
        attrs["opacity"] = _n(style.opacity)
    return attrs


def _transform_attr(t: Transform) -> dict[str, str]:
    if t.is_identity:
        return {}
    parts = [f"translate({_n(t.cx)} {_n(t.cy)})"]
    if t.rotation:
        parts.append(f"rotate({_n(t.rotation)})")
    if t.scale_x != 1 or t.scale_y != 1:
        parts.append(f"scale({_n(t.scale_x)} {_n(t.scale_y)})")
    parts.append(f"translate({_n(-t.cx)} {_n(-t.cy)})")
    return {"transform": " ".join(parts)}


def shape_element(shape: Shape) -> SvgElement:
    if shape.kind in (ShapeKind.circle, ShapeKind.orbit):
        attrs = {"cx": _n(shape.x), "cy": _n(shape.y), "r": _n(shape.r)}
        attrs.update(_paint(shape.style))
        el = SvgElement("circle", attrs)

    elif shape.kind == ShapeKind.rect:
        attrs = {
            "x": _n(shape.x), "y": _n(shape.y),
            "width": _n(shape.width), "height": _n(shape.height),
        }
        if shape.corner_radius:
            attrs["rx"] = _n(shape.corner_radius)
        attrs.update(_paint(shape.style))
        el = SvgElement("rect", attrs)

    elif shape.kind == ShapeKind.text:
        anchor = {"left": "start", "right": "end"}.get(shape.align, "middle")
        attrs = {
            "x": _n(shape.x), "y": _n(shape.y),
            "font-size": _n(shape.font_size),
            "font-family": shape.font_family,
            "text-anchor": anchor,
            "dominant-baseline": "middle",
        }
        if shape.font_weight:
            attrs["font-weight"] = shape.font_weight
        attrs.update(_paint(shape.style))
        el = SvgElement("text", attrs, text=shape.text)

    elif shape.kind == ShapeKind.polygon:
        attrs = {"points": _points(shape.points)}
        attrs.update(_paint(shape.style))
        el = SvgElement("polygon", attrs)

    elif shape.kind == ShapeKind.line:
        attrs = {"x1": _n(shape.x1), "y1": _n(shape.y1), "x2": _n(shape.x2), "y2": _n(shape.y2)}
        attrs.update(_paint(shape.style, fill=False))
        el = SvgElement("line", attrs)

    elif shape.kind == ShapeKind.arrow:
        shaft = {"x1": _n(shape.x1), "y1": _n(shape.y1), "x2": _n(shape.x2), "y2": _n(shape.y2)}
        shaft.update(_paint(shape.style, fill=False))
        head = {"points": _points(shape.head), "fill": shape.style.stroke or shape.style.fill or "#000"}
        group = {"opacity": _n(shape.style.opacity)} if shape.style.opacity < 1 else {}
        shaft.pop("opacity", None)
        el = SvgElement("g", group, children=[SvgElement("line", shaft), SvgElement("polygon", head)])

    else:
        attrs = {"d": shape.d}
        if shape.x or shape.y:
            attrs["transform"] = f"translate({_n(shape.x)} {_n(shape.y)})"
        attrs.update(_paint(shape.style))
        el = SvgElement("path", attrs)
        if not shape.transform.is_identity:
            return SvgElement("g", _transform_attr(shape.transform), children=[el])
        return el

    el.attrs.update(_transform_attr(shape.transform))
    return el


def particle_element(sprite: ParticleSprite) -> SvgElement:
    x, y, s = sprite.x, sprite.y, sprite.size
    paint = {"fill": sprite.color}
    if sprite.opacity < 1:
        paint["opacity"] = _n(max(0.0, sprite.opacity))

    if sprite.shape == "square":
        attrs = {"x": _n(x - s), "y": _n(y - s), "width": _n(2 * s), "height": _n(2 * s)}
        return SvgElement("rect", {**attrs, **paint})
    if sprite.shape == "triangle":
        pts = [(x, y - s), (x - s, y + s), (x + s, y + s)]
        return SvgElement("polygon", {"points": _points(pts), **paint})
    if sprite.shape == "star":
        pts = []
        for i in range(10):
            radius = s if i % 2 == 0 else s / 2
            angle = math.pi / 5 * i - math.pi / 2
            pts.append((x + radius * math.cos(angle), y + radius * math.sin(angle)))
        return SvgElement("polygon", {"points": _points(pts), **paint})
    return SvgElement("circle", {"cx": _n(x), "cy": _n(y), "r": _n(s), **paint})


def _root(width: int, height: int, background: str) -> SvgElement:
    return SvgElement(
        "svg",
        {
            "xmlns": "http://www.w3.org/2000/svg",
            "width": str(width),
            "height": str(height),
            "viewBox": f"0 0 {width} {height}",
        },
        children=[SvgElement("rect", {"width": "100%", "height": "100%", "fill": background})],
    )


def placeholder_svg(width: int = 800, height: int = 500, message: str = PLACEHOLDER_TEXT) -> str:
    root = _root(width, height, "#f5f5f5")
    root.children.append(SvgElement("text", {
        "x": _n(width / 2), "y": _n(height / 2),
        "text-anchor": "middle", "dominant-baseline": "middle",
        "font-family": "Arial", "font-size": "18", "fill": "#888",
    }, text=message))
    return root.to_string()


def render_svg(frame: Frame | None) -> str:
    """Immediate mode: build the whole document for ``frame``."""
    if frame is None:
        return placeholder_svg()
    root = _root(frame.width, frame.height, frame.background)
    for layer in frame.layers:
        el = shape_element(build_shape(layer.type, layer.props))
        el.attrs["id"] = layer.id
        root.children.append(el)
    root.children.append(SvgElement("g", {"id": "particles"}, children=[
        particle_element(p) for p in frame.particles
    ]))
    return root.to_string()


# ── Retained mode ─────────────────────────────────────────────────────

class SvgDocument:
    """Retained SVG tree patched in place from successive frames.

    Layer elements are created once and kept as handles keyed by layer id.
    Particles are transient and rebuilt every frame.
    """

    def __init__(self, width: int = 800, height: int = 500, background: str = "#fffaf0") -> None:
        self.root = _root(width, height, background)
        self.handles: dict[str, SvgElement] = {}
        self._particles = SvgElement("g", {"id": "particles"})
        self._order: list[str] = []

    @classmethod
    def from_frame(cls, frame: Frame) -> SvgDocument:
        doc = cls(frame.width, frame.height, frame.background)
        doc.apply(frame)
        return doc

    def create(self, layer_id: str, element: SvgElement) -> SvgElement:
        element.attrs["id"] = layer_id
        self.handles[layer_id] = element
        return element

    def apply(self, frame: Frame) -> list[AttributePatch]:
        """Bring the tree in line with ``frame``; returns the attribute patches applied."""
        patches: list[AttributePatch] = []
        order = []
        for layer in frame.layers:
            fresh = shape_element(build_shape(layer.type, layer.props))
            fresh.attrs["id"] = layer.id
            handle = self.handles.get(layer.id)
            if handle is None or not handle.same_structure(fresh):
                self.create(layer.id, fresh)
            else:
                patches.extend(_patch(layer.id, (), handle, fresh))
            order.append(layer.id)

        for stale in set(self.handles) - set(order):
            del self.handles[stale]
        if order != self._order:
            self._order = order
            logger.debug("Layer order changed: %s", order)

        self._particles.children = [particle_element(p) for p in frame.particles]
        return patches

    def to_string(self) -> str:
        root = SvgElement(self.root.tag, dict(self.root.attrs), children=list(self.root.children))
        root.children.extend(self.handles[layer_id] for layer_id in self._order)
        root.children.append(self._particles)
        return root.to_string()


def _patch(
    layer_id: str, path: tuple[int, ...], handle: SvgElement, fresh: SvgElement,
) -> list[AttributePatch]:
    patches = []
    for name, value in fresh.attrs.items():
        if handle.attrs.get(name) != value:
            handle.attrs[name] = value
            patches.append(AttributePatch(layer_id, path, name, value))
    for name in [n for n in handle.attrs if n not in fresh.attrs]:
        del handle.attrs[name]
        patches.append(AttributePatch(layer_id, path, name, None))
    if handle.text != fresh.text:
        handle.text = fresh.text
        patches.append(AttributePatch(layer_id, path, "#text", fresh.text))
    for i, (child, new_child) in enumerate(zip(handle.children, fresh.children)):
        patches.extend(_patch(layer_id, path + (i,), child, new_child))
    return patches
