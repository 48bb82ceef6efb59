"""Shared test fixtures."""

from __future__ import annotations

import json

import pytest

from sceneviz.config import SceneVizConfig
from sceneviz.core.validation import validate_scene
from sceneviz.models import Scene


@pytest.fixture
def config() -> SceneVizConfig:
    return SceneVizConfig(
        gemini_api_key="test-key",
        llm_max_retries=2,
        generation_timeout=5.0,
        particle_seed=7,
    )


@pytest.fixture
def fade_scene() -> Scene:
    return validate_scene(FADE_SCENE)


@pytest.fixture
def orbit_scene() -> Scene:
    return validate_scene(ORBIT_SCENE)


@pytest.fixture
def particle_scene() -> Scene:
    return validate_scene(PARTICLE_SCENE)


FADE_SCENE = {
    "id": "fade",
    "durationMs": 5000,
    "fps": 30,
    "layers": [
        {
            "id": "dot",
            "type": "circle",
            "props": {"x": 50, "y": 100, "r": 10, "fill": "#ff0000", "opacity": 0},
            "animations": [
                {"property": "opacity", "start": 0, "end": 1000, "from": 0, "to": 1},
            ],
        }
    ],
}

ORBIT_SCENE = {
    "id": "orbit",
    "durationMs": 8000,
    "fps": 30,
    "layers": [
        {"id": "sun", "type": "circle", "props": {"x": 400, "y": 250, "r": 40, "fill": "#FFD700"}},
        {
            "id": "planet",
            "type": "circle",
            "props": {"x": 500, "y": 250, "r": 10, "fill": "#4169E1"},
            "animations": [
                {
                    "property": "orbit",
                    "start": 0,
                    "end": 8000,
                    "centerX": 400,
                    "centerY": 250,
                    "radius": 100,
                    "loop": True,
                }
            ],
        },
    ],
}

PARTICLE_SCENE = {
    "id": "sparks",
    "durationMs": 3000,
    "fps": 10,
    "layers": [{"id": "bg", "type": "rect", "props": {"x": 0, "y": 0, "width": 800, "height": 500}}],
    "particleSystems": [
        {
            "id": "sparks",
            "x": 400,
            "y": 250,
            "emissionRate": 5,
            "particleLife": 1000,
            "spread": 20,
            "velocity": 50,
            "colors": ["#ff0", "#f80"],
            "gravity": 20,
        }
    ],
}

ANSWER_JSON = json.dumps({
    "text": "The dot fades in.",
    "visualization": FADE_SCENE,
    "animationDescription": "A red dot fades in.",
})
