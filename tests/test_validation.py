"""Tests for scene boundary validation."""

from __future__ import annotations

import copy
import logging

import pytest

from sceneviz.core.validation import check_scene_shape, validate_scene
from sceneviz.engine.evaluator import resolve
from sceneviz.exceptions import SceneValidationError
from tests.conftest import FADE_SCENE, PARTICLE_SCENE


class TestShape:
    def test_valid_scene(self):
        assert check_scene_shape(FADE_SCENE) == []

    @pytest.mark.parametrize("field", ["durationMs", "fps", "layers"])
    def test_missing_required_field(self, field):
        raw = copy.deepcopy(FADE_SCENE)
        del raw[field]
        with pytest.raises(SceneValidationError) as exc:
            validate_scene(raw)
        assert exc.value.errors

    def test_empty_layers_rejected(self):
        with pytest.raises(SceneValidationError):
            validate_scene({"durationMs": 1000, "fps": 30, "layers": []})

    def test_non_positive_numbers_rejected(self):
        errors = check_scene_shape({"durationMs": 0, "fps": -1, "layers": [{}]})
        assert len(errors) == 2

    def test_not_an_object(self):
        assert check_scene_shape(["nope"]) == ["visualization must be an object"]

    def test_error_dict(self):
        with pytest.raises(SceneValidationError) as exc:
            validate_scene({})
        data = exc.value.to_dict()
        assert data["error"] == "SceneValidationError"
        assert len(data["details"]["errors"]) == 3


class TestNormalization:
    def test_duration_alias_and_generated_id(self):
        scene = validate_scene({"duration": 2000, "fps": 24, "layers": [{"type": "circle"}]})
        assert scene.duration_ms == 2000
        assert scene.id.startswith("vis_")

    def test_layer_defaults(self):
        scene = validate_scene({"durationMs": 1000, "fps": 30, "layers": [{}]})
        layer = scene.layers[0]
        assert (layer.id, layer.type, layer.props) == ("layer_0", "circle", {"x": 300, "y": 300})

    def test_duplicate_ids_renamed(self):
        scene = validate_scene({"durationMs": 1000, "fps": 30, "layers": [{"id": "a"}, {"id": "a"}]})
        assert [l.id for l in scene.layers] == ["a", "a_1"]

    @pytest.mark.parametrize("ids,expected", [
        (["a_2", "a", "a"], ["a_2", "a", "a_3"]),
        (["a", "a", "a_1"], ["a", "a_1", "a_1_2"]),
        ([None, "layer_0"], ["layer_0", "layer_0_1"]),
    ])
    def test_renamed_ids_stay_unique(self, ids, expected):
        layers = [{"id": layer_id} if layer_id else {} for layer_id in ids]
        scene = validate_scene({"durationMs": 1000, "fps": 30, "layers": layers})
        assert [l.id for l in scene.layers] == expected
        assert len(resolve(scene, 0)) == len(ids)

    def test_bad_animation_dropped(self, caplog):
        raw = copy.deepcopy(FADE_SCENE)
        raw["layers"][0]["animations"].append({"start": 0, "to": 1})  # no property
        with caplog.at_level(logging.WARNING):
            scene = validate_scene(raw)
        assert len(scene.layers[0].animations) == 1
        assert "dropping animation" in caplog.text

    def test_non_list_animations_ignored(self):
        scene = validate_scene({"durationMs": 1000, "fps": 30, "layers": [{"id": "a", "animations": "x"}]})
        assert scene.layers[0].animations == []

    def test_bad_particle_system_dropped(self):
        raw = copy.deepcopy(PARTICLE_SCENE)
        raw["particleSystems"].append({"particleLife": -5})
        scene = validate_scene(raw)
        assert [s.id for s in scene.particle_systems] == ["sparks"]

    def test_particle_system_default_id(self):
        raw = copy.deepcopy(PARTICLE_SCENE)
        del raw["particleSystems"][0]["id"]
        assert validate_scene(raw).particle_systems[0].id == "particles_0"

    def test_overlap_warning(self, caplog):
        raw = copy.deepcopy(FADE_SCENE)
        raw["layers"][0]["animations"].append({"property": "opacity", "start": 500, "end": 1500, "to": 0.5})
        with caplog.at_level(logging.WARNING):
            validate_scene(raw)
        assert "overlap" in caplog.text

    def test_extra_layer_fields_kept(self):
        scene = validate_scene({"durationMs": 1000, "fps": 30, "layers": [{"id": "a", "label": "Sun"}]})
        assert scene.layers[0].model_extra == {"label": "Sun"}
