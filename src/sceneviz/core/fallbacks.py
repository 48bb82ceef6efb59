"""Built-in scenes used when generation fails.

Templates are chosen by topic keywords; the wording and colour variant are
picked from a stable hash of the question so the same question always gets
the same fallback.
"""

from __future__ import annotations

import logging
import zlib
from typing import Any

from sceneviz.core.validation import validate_scene
from sceneviz.models import Answer, AnswerSource

logger = logging.getLogger(__name__)

Template = dict[str, Any]


def _fade(start: float, end: float, to: float = 1) -> dict:
    return {"property": "opacity", "start": start, "end": end, "from": 0, "to": to}


def _move(prop: str, start: float, end: float, frm: float, to: float) -> dict:
    return {"property": prop, "start": start, "end": end, "from": frm, "to": to}


def _layer(layer_id: str, layer_type: str, props: dict, *animations: dict) -> dict:
    return {"id": layer_id, "type": layer_type, "props": props, "animations": list(animations)}


def _label(layer_id: str, x: float, y: float, text: str, fill: str, start: float, size: int = 14) -> dict:
    return _layer(
        layer_id, "text",
        {"x": x, "y": y, "text": text, "fill": fill, "fontSize": size},
        _fade(start, start + 1000),
    )


def _arrow(layer_id: str, x1: float, y1: float, x2: float, y2: float, stroke: str, start: float, width: int = 3) -> dict:
    return _layer(
        layer_id, "arrow",
        {"x1": x1, "y1": y1, "x2": x2, "y2": y2, "stroke": stroke, "strokeWidth": width},
        _fade(start, start + 1000),
    )


# ── Templates ─────────────────────────────────────────────────────────

def _photosynthesis(question: str, variant: int) -> Template:
    texts = [
        "Photosynthesis converts sunlight, water, and CO2 into glucose and oxygen through chloroplasts in plant leaves.",
        "Plants use sunlight energy to combine water and carbon dioxide, producing glucose for energy and releasing oxygen as a byproduct.",
        "In the chloroplasts of leaves, solar energy powers the conversion of CO2 and H2O into glucose sugar, releasing O2 into the atmosphere.",
    ]
    return {
        "text": texts[variant],
        "animationDescription": "Sun provides energy, CO2 enters the leaf, water rises from the roots, glucose and oxygen are produced.",
        "visualization": {
            "duration": 12000,
            "fps": 30,
            "layers": [
                _layer("sun", "circle", {"x": 120, "y": 80, "r": 40, "fill": "#FFD700"},
                       _fade(0, 1500), _move("scale", 1500, 3000, 1, 1.3)),
                _layer("sun_rays", "line",
                       {"x1": 160, "y1": 120, "x2": 280, "y2": 180, "stroke": "#FFD700", "strokeWidth": 3},
                       _fade(1000, 2000)),
                _layer("leaf", "rect", {"x": 280, "y": 180, "width": 100, "height": 80, "fill": "#228B22", "rx": 15},
                       _fade(500, 1500)),
                _layer("co2_molecule", "circle", {"x": 80, "y": 220, "r": 12, "fill": "#FF6B6B"},
                       _fade(2000, 3000), _move("x", 3000, 6000, 80, 280)),
                _arrow("co2_arrow", 120, 220, 240, 220, "#FF6B6B", 2500),
                _layer("water_molecule", "circle", {"x": 330, "y": 380, "r": 10, "fill": "#4ECDC4"},
                       _fade(2500, 3500), _move("y", 4000, 7000, 380, 260)),
                _arrow("water_arrow", 330, 340, 330, 280, "#4ECDC4", 3500),
                _layer("glucose", "circle", {"x": 450, "y": 220, "r": 15, "fill": "#FFA500"},
                       _fade(7000, 8500), _move("x", 8500, 11000, 450, 600)),
                _arrow("glucose_arrow", 480, 220, 560, 220, "#FFA500", 8000),
                _layer("oxygen", "circle", {"x": 400, "y": 140, "r": 8, "fill": "#87CEEB"},
                       _fade(7500, 9000), _move("y", 9000, 11500, 140, 60)),
                _arrow("oxygen_arrow", 400, 120, 400, 80, "#87CEEB", 8500),
                _label("co2_label", 80, 190, "CO2", "#FF6B6B", 2000),
                _label("oxygen_label", 400, 120, "O2", "#87CEEB", 7500),
            ],
        },
    }


def _solar_system(question: str, variant: int) -> Template:
    texts = [
        "The solar system consists of the Sun at the center with planets orbiting around it. Inner planets orbit faster than outer planets due to gravitational physics.",
        "Our solar system showcases planetary motion where celestial bodies follow elliptical orbits determined by gravitational forces and Newton's laws.",
        "Planets in our solar system demonstrate Kepler's laws of motion, with orbital speed inversely related to distance from the Sun.",
    ]
    orbit = {"property": "orbit", "centerX": 400, "centerY": 250}
    return {
        "text": texts[variant],
        "animationDescription": "The Sun with Earth and Mars orbiting at different speeds along visible orbital paths.",
        "visualization": {
            "duration": 15000,
            "fps": 30,
            "layers": [
                _layer("sun", "circle", {"x": 400, "y": 250, "r": 45, "fill": "#FFD700"},
                       _fade(0, 1000), _move("scale", 5000, 6000, 1, 1.1), _move("scale", 6000, 7000, 1.1, 1)),
                _layer("earth_orbit", "orbit",
                       {"centerX": 400, "centerY": 250, "radius": 90, "stroke": "#4169E1",
                        "strokeWidth": 2, "strokeDasharray": "5,5", "fill": "none"},
                       _fade(1000, 2000, 0.5)),
                _layer("mars_orbit", "orbit",
                       {"centerX": 400, "centerY": 250, "radius": 140, "stroke": "#CD853F",
                        "strokeWidth": 2, "strokeDasharray": "8,8", "fill": "none"},
                       _fade(1500, 2500, 0.5)),
                _layer("earth", "circle", {"x": 490, "y": 250, "r": 15, "fill": "#4169E1"},
                       _fade(2000, 3000), {**orbit, "radius": 90, "start": 3000, "end": 12000}),
                _layer("mars", "circle", {"x": 540, "y": 250, "r": 12, "fill": "#CD853F"},
                       _fade(2500, 3500), {**orbit, "radius": 140, "start": 3500, "end": 15000}),
                _label("earth_label", 320, 250, "Earth", "#4169E1", 4000, size=12),
                _label("mars_label", 260, 250, "Mars", "#CD853F", 4500, size=12),
                _label("sun_label", 400, 320, "Sun", "#FFD700", 1000, size=16),
            ],
        },
    }


def _newton(question: str, variant: int) -> Template:
    texts = [
        "Newton's laws describe how objects move. Inertia, F=ma, and action-reaction forces govern all motion in the universe.",
        "Sir Isaac Newton's three laws of motion explain the relationship between forces and movement in our physical world.",
        "Newton's fundamental laws demonstrate that objects resist changes in motion unless acted upon by external forces.",
    ]
    return {
        "text": texts[variant],
        "animationDescription": "An orbiting planet, a falling ball and a pushed block with force arrows for each of Newton's laws.",
        "visualization": {
            "duration": 12000,
            "fps": 30,
            "layers": [
                _layer("ground", "rect", {"x": 100, "y": 400, "width": 600, "height": 50, "fill": "#8B4513"},
                       _fade(0, 500)),
                _layer("planet1", "circle", {"x": 260, "y": 150, "r": 20, "fill": "#4169E1"},
                       _fade(500, 1500),
                       {"property": "orbit", "centerX": 200, "centerY": 150, "radius": 60,
                        "start": 1500, "end": 8000}),
                _layer("orbit_path", "orbit",
                       {"centerX": 200, "centerY": 150, "radius": 60, "stroke": "#4169E1",
                        "strokeWidth": 2, "strokeDasharray": "3,3", "fill": "none"},
                       _fade(1000, 2000, 0.4)),
                _layer("falling_ball", "circle", {"x": 500, "y": 80, "r": 15, "fill": "#FF6B6B"},
                       _fade(2000, 3000), _move("y", 3000, 6000, 80, 350)),
                _arrow("gravity_arrow", 500, 120, 500, 180, "#FF6B6B", 2500, width=4),
                _arrow("force_arrow", 190, 300, 250, 300, "#E74C3C", 6000, width=4),
                _arrow("reaction_arrow", 250, 320, 190, 320, "#9B59B6", 6500, width=4),
                _layer("block", "rect", {"x": 180, "y": 280, "width": 40, "height": 40, "fill": "#34495E"},
                       _fade(5500, 6500), _move("x", 7000, 9000, 180, 280)),
                _label("law1_label", 120, 120, "1st Law: Inertia", "#4169E1", 1500),
                _label("law2_label", 450, 50, "2nd Law: F=ma", "#FF6B6B", 3000),
                _label("law3_label", 200, 350, "3rd Law: Action-Reaction", "#E74C3C", 6000),
            ],
        },
    }


_GENERIC_COLORS = [
    ("#FF6B6B", "#4ECDC4"),
    ("#6C5CE7", "#FDCB6E"),
    ("#00B894", "#E17055"),
]


def _generic(question: str, variant: int) -> Template:
    texts = [
        f'Here is an explanation about "{question}". This demonstrates the key concepts with visual elements.',
        f'Understanding "{question}" becomes clearer with this animated demonstration of the core principles.',
        f"Let's explore \"{question}\" through this step-by-step visual animation showing the fundamental concepts.",
    ]
    primary, secondary = _GENERIC_COLORS[variant]
    return {
        "text": texts[variant],
        "animationDescription": "Key elements moving into relation with each other, joined by an arrow and a label.",
        "visualization": {
            "duration": 10000,
            "fps": 30,
            "layers": [
                _layer("element1", "circle", {"x": 150, "y": 200, "r": 30, "fill": primary},
                       _fade(0, 1000), _move("x", 1000, 4000, 150, 400),
                       _move("scale", 2000, 3000, 1, 1.2), _move("scale", 3000, 4000, 1.2, 1)),
                _layer("element2", "rect", {"x": 500, "y": 180, "width": 80, "height": 80, "fill": secondary},
                       _fade(1500, 2500), _move("y", 3000, 6000, 180, 300)),
                _arrow("connection_arrow", 430, 200, 480, 200, "#666", 4000),
                _layer("motion_path", "line",
                       {"x1": 150, "y1": 200, "x2": 400, "y2": 200, "stroke": primary,
                        "strokeWidth": 2, "strokeDasharray": "5,5"},
                       _fade(1000, 2000, 0.5)),
                _layer("concept_label", "text",
                       {"x": 300, "y": 350, "text": "Key Concept", "fill": "#333", "fontSize": 16,
                        "textAnchor": "middle"},
                       _fade(5000, 6000)),
            ],
        },
    }


_TOPICS = [
    (("photosynthesis", "plant", "chloroplast"), _photosynthesis),
    (("solar", "planet", "orbit", "sun"), _solar_system),
    (("newton", "motion", "force", "gravity"), _newton),
]


def topic_of(question: str) -> str:
    q = question.lower()
    for keywords, builder in _TOPICS:
        if any(k in q for k in keywords):
            return builder.__name__.lstrip("_")
    return "generic"


def variant_of(question: str, count: int = 3) -> int:
    return zlib.crc32(question.strip().lower().encode("utf-8")) % count


def fallback_template(question: str) -> Template:
    q = question.lower()
    variant = variant_of(question)
    for keywords, builder in _TOPICS:
        if any(k in q for k in keywords):
            return builder(question, variant)
    return _generic(question, variant)


def fallback_answer(question: str, text: str | None = None) -> Answer:
    """Deterministic answer for ``question`` with a built-in scene.

    ``text`` overrides the template wording (e.g. a generated explanation
    whose visualization was unusable).
    """
    template = fallback_template(question)
    scene = validate_scene(template["visualization"])
    scene.id = f"fallback_{topic_of(question)}_{variant_of(question)}"
    logger.info("Using %s fallback scene for question", topic_of(question))
    return Answer(
        text=text or template["text"],
        visualization=scene,
        animation_description=template["animationDescription"],
        source=AnswerSource.fallback,
    )
