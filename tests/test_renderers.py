"""Tests for shape building and the SVG and raster backends."""

from __future__ import annotations

import pytest

from sceneviz.engine.playback import Frame, PlaybackSession, ResolvedLayer
from sceneviz.exceptions import UnsupportedFormatError
from sceneviz.renderers import export, output_format
from sceneviz.renderers.raster import _rgba, export_gif, path_outlines, png_bytes, render_image
from sceneviz.renderers.shapes import (
    DEFAULT_TRIANGLE,
    ShapeKind,
    Transform,
    build_shape,
    parse_points,
)
from sceneviz.renderers.svg import PLACEHOLDER_TEXT, SvgDocument, render_svg


def _frame(*layers: tuple[str, str, dict]) -> Frame:
    return Frame(
        elapsed_ms=0, width=800, height=500, background="#fff",
        layers=[ResolvedLayer(id, type_, props, i) for i, (id, type_, props) in enumerate(layers)],
    )


class TestShapes:
    def test_circle_aliases(self):
        shape = build_shape("circle", {"cx": 5, "cy": 6, "radius": 7})
        assert (shape.kind, shape.x, shape.y, shape.r) == (ShapeKind.circle, 5, 6, 7)

    def test_orbit_is_dashed_ring(self):
        shape = build_shape("orbit", {"x": 1, "y": 2, "r": 3})
        assert shape.style.dashed and shape.style.fill is None

    def test_fill_none(self):
        assert build_shape("rect", {"fill": "none"}).style.fill is None

    def test_unknown_type_is_rect(self):
        shape = build_shape("hexagon", {"x": 1, "y": 2})
        assert (shape.kind, shape.width, shape.height) == (ShapeKind.rect, 50, 50)

    @pytest.mark.parametrize("props,end", [
        ({"x1": 0, "y1": 0, "x2": 10, "y2": 0}, (10, 0)),
        ({"startX": 1, "startY": 1, "endX": 4, "endY": 5}, (4, 5)),
        ({"x": 0, "y": 0, "dx": 3, "dy": 4}, (3, 4)),
        ({"x": 0, "y": 0, "length": 10, "angle": 90}, (0, 10)),
    ])
    def test_arrow_forms(self, props, end):
        shape = build_shape("arrow", props)
        assert (shape.x2, shape.y2) == pytest.approx(end)

    def test_arrow_stroke_follows_fill(self):
        assert build_shape("arrow", {"x2": 5, "fill": "#f00"}).style.stroke == "#f00"

    def test_arrow_head_tip(self):
        shape = build_shape("arrow", {"x1": 0, "y1": 0, "x2": 100, "y2": 0})
        tip, left, right = shape.head
        assert tip == (100, 0)
        assert left[0] < 100 and right[0] < 100
        assert left[1] == pytest.approx(-right[1])

    def test_polygon_fallback_triangle(self):
        assert build_shape("polygon", {"points": "bogus"}).points == DEFAULT_TRIANGLE

    @pytest.mark.parametrize("raw,count", [
        ([{"x": 0, "y": 0}, {"x": 1, "y": 1}], 2),
        ([[0, 0], [1, 1], [2, 0]], 3),
        ([0, 0, 1, 1], 2),
        ("0,0 10,0 10,10", 3),
    ])
    def test_parse_points(self, raw, count):
        assert len(parse_points(raw)) == count

    @pytest.mark.parametrize("raw", [None, [], [0, 0, 1], [{"x": 0, "y": 0}], ["a", "b"]])
    def test_parse_points_rejects(self, raw):
        assert parse_points(raw) is None

    def test_svg_path(self):
        shape = build_shape("svgPath", {"d": "M0 0 L10 10"})
        assert shape.kind == ShapeKind.path
        assert build_shape("svgPath", {}).kind == ShapeKind.rect

    def test_transform_rotates_about_centre(self):
        t = Transform(cx=10, cy=10, rotation=90)
        assert t.apply(20, 10) == pytest.approx((10, 20))
        assert Transform().is_identity


class TestSvg:
    def test_placeholder(self):
        assert PLACEHOLDER_TEXT in render_svg(None)

    def test_layer_ids_and_escaping(self):
        svg = render_svg(_frame(("label", "text", {"x": 1, "y": 2, "text": "a < b"})))
        assert 'id="label"' in svg
        assert "a &lt; b" in svg

    def test_arrow_group(self):
        svg = render_svg(_frame(("a", "arrow", {"x1": 0, "y1": 0, "x2": 10, "y2": 0})))
        assert '<g id="a"><line' in svg
        assert "<polygon" in svg

    def test_retained_matches_immediate(self, orbit_scene):
        session = PlaybackSession(orbit_scene)
        doc = SvgDocument.from_frame(session.frame(0))
        for t in (0, 1000, 4500):
            frame = session.frame(t)
            doc.apply(frame)
            assert doc.to_string() == render_svg(frame)

    def test_patches(self, orbit_scene):
        session = PlaybackSession(orbit_scene)
        doc = SvgDocument.from_frame(session.frame(0))
        planet = doc.handles["planet"]

        frame = session.frame(2000)
        patches = doc.apply(frame)
        assert {p.name for p in patches} == {"cx", "cy"}
        assert all(p.layer_id == "planet" for p in patches)
        assert doc.handles["planet"] is planet
        assert doc.apply(frame) == []

    def test_replaced_and_removed_layers(self):
        doc = SvgDocument.from_frame(_frame(("a", "circle", {}), ("b", "rect", {})))
        old = doc.handles["a"]
        frame = _frame(("a", "rect", {}))
        doc.apply(frame)
        assert doc.handles["a"] is not old
        assert set(doc.handles) == {"a"}
        assert doc.to_string() == render_svg(frame)

    def test_particles(self, particle_scene):
        frame = PlaybackSession(particle_scene, seed=2).frame(1000)
        assert frame.particles
        assert render_svg(frame).count("<circle") == len(frame.particles)


class TestRaster:
    def test_rgba(self):
        assert _rgba("#ff0000", 0.5) == (255, 0, 0, 127)
        assert _rgba("not-a-colour", 1.0) == (0, 0, 0, 255)
        assert _rgba("none", 1.0) is None

    def test_render_image(self, orbit_scene):
        image = render_image(PlaybackSession(orbit_scene).frame(0))
        assert image.size == (800, 500)
        assert image.getpixel((400, 250))[:3] == (255, 215, 0)

    def test_path_outlines(self):
        assert path_outlines("M0 0 L100 0 L100 100 Z") == [([(0, 0), (100, 0), (100, 100)], True)]
        # Relative moves, implicit line-tos, H/V and a curve reduced to its end point.
        assert path_outlines("m10 10 20 0 v20 h-20 C0 0 0 0 5 5") == [
            ([(10, 10), (30, 10), (30, 30), (10, 30), (5, 5)], False),
        ]
        assert path_outlines("M0 0 L10") == []

    def test_svg_path_is_filled(self):
        frame = _frame(("tri", "svgPath", {"d": "M0 0 L100 0 L100 100 Z", "x": 100, "y": 100, "fill": "#ff0000"}))
        image = render_image(frame)
        assert image.getpixel((180, 120))[:3] == (255, 0, 0)
        assert image.getpixel((120, 180))[:3] == (255, 255, 255)

    def test_open_svg_path_is_stroked(self):
        frame = _frame(("line", "svgPath", {"d": "M0 50 H200", "stroke": "#0000ff", "strokeWidth": 4, "fill": "none"}))
        image = render_image(frame)
        assert image.getpixel((100, 50))[:3] == (0, 0, 255)
        assert image.getpixel((100, 60))[:3] == (255, 255, 255)

    def test_placeholder_png(self):
        assert png_bytes(None).startswith(b"\x89PNG")

    def test_export_gif(self, fade_scene, tmp_path):
        path = tmp_path / "fade.gif"
        assert export_gif(PlaybackSession(fade_scene), path, fps=4) == 20
        assert path.read_bytes().startswith(b"GIF8")


class TestExport:
    @pytest.mark.parametrize("path,fmt,expected", [
        ("a.SVG", None, "svg"), ("a.png", None, "png"), ("a", "gif", "gif"), ("a.png", "svg", "svg"),
    ])
    def test_output_format(self, path, fmt, expected):
        assert output_format(path, fmt) == expected

    @pytest.mark.parametrize("path", ["a", "a.jpg"])
    def test_unsupported(self, path):
        with pytest.raises(UnsupportedFormatError):
            output_format(path)

    def test_text_only_export(self, tmp_path):
        path = tmp_path / "none.svg"
        assert export(None, path) == "svg"
        assert PLACEHOLDER_TEXT in path.read_text()
