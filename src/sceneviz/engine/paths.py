"""Path and motion solvers.

All solvers are pure functions of ``(points, progress)``. Positions are
returned as ``(x, y)`` tuples; :func:`follow_path` additionally reports the
tangent angle (radians) so callers can orient a shape along its path.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from sceneviz.models import PathType, Point

logger = logging.getLogger(__name__)

Vec = tuple[float, float]

_PATH_ALIASES = {
    "linear": PathType.linear,
    "bezier": PathType.bezier,
    "catmull-rom": PathType.catmull_rom,
    "catmullrom": PathType.catmull_rom,
    "catmull_rom": PathType.catmull_rom,
    "spline": PathType.catmull_rom,
}


@dataclass(frozen=True)
class PathSample:
    x: float
    y: float
    angle: float | None = None  # radians, None when the tangent is degenerate


def _xy(p: Point | Vec) -> Vec:
    if isinstance(p, Point):
        return p.x, p.y
    return float(p[0]), float(p[1])


def _heading(dx: float, dy: float) -> float | None:
    if dx == 0 and dy == 0:
        return None
    return math.atan2(dy, dx)


# ── Orbit ─────────────────────────────────────────────────────────────

def orbit(progress: float, center_x: float, center_y: float, radius: float) -> Vec:
    angle = progress * 2 * math.pi
    return center_x + math.cos(angle) * radius, center_y + math.sin(angle) * radius


# ── Polyline ──────────────────────────────────────────────────────────

def _linear_segment(pts: Sequence[Vec], t: float) -> tuple[int, float]:
    n = len(pts)
    scaled = t * (n - 1)
    index = min(max(int(math.floor(scaled)), 0), n - 2)
    return index, scaled - index


def linear_path(points: Sequence[Point | Vec], t: float) -> Vec:
    pts = [_xy(p) for p in points]
    if len(pts) == 1:
        return pts[0]
    i, local = _linear_segment(pts, t)
    (x0, y0), (x1, y1) = pts[i], pts[i + 1]
    return x0 + (x1 - x0) * local, y0 + (y1 - y0) * local


def linear_tangent(points: Sequence[Point | Vec], t: float) -> Vec:
    pts = [_xy(p) for p in points]
    if len(pts) < 2:
        return 0.0, 0.0
    i, _ = _linear_segment(pts, t)
    return pts[i + 1][0] - pts[i][0], pts[i + 1][1] - pts[i][1]


# ── Bezier ────────────────────────────────────────────────────────────

def bezier(points: Sequence[Point | Vec], t: float) -> Vec:
    """Quadratic (3 points) or cubic (4 points) Bernstein evaluation.

    Any other arity is a configuration error and degrades to the polyline.
    """
    pts = [_xy(p) for p in points]
    u = 1 - t
    if len(pts) == 3:
        (x0, y0), (x1, y1), (x2, y2) = pts
        return (
            u * u * x0 + 2 * u * t * x1 + t * t * x2,
            u * u * y0 + 2 * u * t * y1 + t * t * y2,
        )
    if len(pts) == 4:
        (x0, y0), (x1, y1), (x2, y2), (x3, y3) = pts
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return a * x0 + b * x1 + c * x2 + d * x3, a * y0 + b * y1 + c * y2 + d * y3
    logger.debug("Bezier path needs 3 or 4 points, got %d; using linear", len(pts))
    return linear_path(pts, t)


def bezier_tangent(points: Sequence[Point | Vec], t: float) -> Vec:
    pts = [_xy(p) for p in points]
    u = 1 - t
    if len(pts) == 3:
        (x0, y0), (x1, y1), (x2, y2) = pts
        return 2 * u * (x1 - x0) + 2 * t * (x2 - x1), 2 * u * (y1 - y0) + 2 * t * (y2 - y1)
    if len(pts) == 4:
        (x0, y0), (x1, y1), (x2, y2), (x3, y3) = pts
        a, b, c = 3 * u * u, 6 * u * t, 3 * t * t
        return (
            a * (x1 - x0) + b * (x2 - x1) + c * (x3 - x2),
            a * (y1 - y0) + b * (y2 - y1) + c * (y3 - y2),
        )
    return linear_tangent(pts, t)


# ── Catmull-Rom ───────────────────────────────────────────────────────

def _cardinal(p0: float, p1: float, p2: float, p3: float, t: float, s: float) -> float:
    t2 = t * t
    t3 = t2 * t
    m1 = s * (p2 - p0)
    m2 = s * (p3 - p1)
    return (
        (2 * t3 - 3 * t2 + 1) * p1
        + (t3 - 2 * t2 + t) * m1
        + (-2 * t3 + 3 * t2) * p2
        + (t3 - t2) * m2
    )


def _cardinal_derivative(
    p0: float, p1: float, p2: float, p3: float, t: float, s: float
) -> float:
    t2 = t * t
    m1 = s * (p2 - p0)
    m2 = s * (p3 - p1)
    return (
        (6 * t2 - 6 * t) * p1
        + (3 * t2 - 4 * t + 1) * m1
        + (-6 * t2 + 6 * t) * p2
        + (3 * t2 - 2 * t) * m2
    )


def _spline_controls(points: Sequence[Point | Vec], closed: bool) -> list[Vec]:
    pts = [_xy(p) for p in points]
    if closed and len(pts) >= 2:
        # Wrap the first two points to the tail.
        return [*pts, pts[0], pts[1]]
    return pts


def _spline_segment(pts: Sequence[Vec], t: float) -> tuple[int, float]:
    segments = len(pts) - 3
    scaled = t * segments
    index = min(max(int(math.floor(scaled)), 0), segments - 1)
    return index, scaled - index


def catmull_rom(
    points: Sequence[Point | Vec],
    t: float,
    alpha: float = 0.5,
    closed: bool = False,
) -> Vec:
    """Evaluate a cardinal spline through ``points`` with ``tension = 1 - alpha``.

    The first and last control points only shape the tangents, so an open
    curve runs from ``points[1]`` to ``points[-2]``. Closed paths append
    ``points[0]`` and ``points[1]``. Fewer than four control points fall back
    to the polyline.
    """
    pts = _spline_controls(points, closed)
    if len(pts) < 4:
        return linear_path(pts, t)
    i, local = _spline_segment(pts, t)
    p0, p1, p2, p3 = pts[i : i + 4]
    tension = 1 - alpha
    s = (1 - tension) / 2
    return (
        _cardinal(p0[0], p1[0], p2[0], p3[0], local, s),
        _cardinal(p0[1], p1[1], p2[1], p3[1], local, s),
    )


def catmull_rom_tangent(
    points: Sequence[Point | Vec],
    t: float,
    alpha: float = 0.5,
    closed: bool = False,
) -> Vec:
    pts = _spline_controls(points, closed)
    if len(pts) < 4:
        return linear_tangent(pts, t)
    i, local = _spline_segment(pts, t)
    p0, p1, p2, p3 = pts[i : i + 4]
    tension = 1 - alpha
    s = (1 - tension) / 2
    return (
        _cardinal_derivative(p0[0], p1[0], p2[0], p3[0], local, s),
        _cardinal_derivative(p0[1], p1[1], p2[1], p3[1], local, s),
    )


# ── Dispatch ──────────────────────────────────────────────────────────

def parse_path_type(name: str | None) -> PathType | None:
    if not name:
        return PathType.linear
    return _PATH_ALIASES.get(name.strip().lower())


def follow_path(
    path_type: str | None,
    points: Sequence[Point | Vec],
    t: float,
    *,
    closed: bool = False,
    alpha: float = 0.5,
) -> PathSample | None:
    """Sample a path of the given type at progress ``t``.

    Returns None when the path cannot be evaluated at all (unknown type or
    no points); callers keep the authored value in that case.
    """
    kind = parse_path_type(path_type)
    if kind is None:
        logger.debug("Unknown path type '%s'", path_type)
        return None
    if not points:
        return None

    if kind == PathType.bezier:
        x, y = bezier(points, t)
        dx, dy = bezier_tangent(points, t)
    elif kind == PathType.catmull_rom:
        x, y = catmull_rom(points, t, alpha=alpha, closed=closed)
        dx, dy = catmull_rom_tangent(points, t, alpha=alpha, closed=closed)
    else:
        pts = [_xy(p) for p in points]
        if closed and len(pts) >= 2:
            pts.append(pts[0])
        x, y = linear_path(pts, t)
        dx, dy = linear_tangent(pts, t)
    return PathSample(x, y, _heading(dx, dy))


def path_end(path_type: str | None, points: Sequence[Point | Vec]) -> PathSample | None:
    """Terminal sample: the last authored point, heading along the last segment.

    Splines end on ``points[-1]`` here even though their curve stops at
    ``points[-2]``.
    """
    if parse_path_type(path_type) is None or not points:
        return None
    pts = [_xy(p) for p in points]
    x, y = pts[-1]
    angle = _heading(x - pts[-2][0], y - pts[-2][1]) if len(pts) >= 2 else None
    return PathSample(x, y, angle)
