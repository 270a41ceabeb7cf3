"""Unit tests for physics bundles and YAML difficulty presets."""

import pytest
import yaml

from moonlander.src.difficulty import DifficultyPreset, available_difficulties
from moonlander.src.physics_config import AutopilotTuning, PhysicsParams


class TestPhysicsParams:
    def test_defaults(self):
        p = PhysicsParams()
        assert p.gravity == 22.0
        assert p.main_thrust_accel == 42.0
        assert p.twr() == pytest.approx(42.0 / 22.0)
        limits = p.safety_limits()
        assert (limits.vx, limits.vy, limits.angle) == (32.0, 42.0, 0.2)

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="gravity"):
            PhysicsParams(gravity=-1.0)
        with pytest.raises(ValueError, match="angular_damping"):
            PhysicsParams(angular_damping=1.5)

    def test_scaled(self):
        p = PhysicsParams().scaled({"gravity": 1.1, "safe_vx": 0.5})
        assert p.gravity == pytest.approx(24.2)
        assert p.safe_vx == pytest.approx(16.0)
        assert p.main_thrust_accel == 42.0

    def test_scaled_unknown_field(self):
        with pytest.raises(ValueError, match="Unknown field 'gravty'"):
            PhysicsParams().scaled({"gravty": 2.0})

    def test_scaled_out_of_range(self):
        with pytest.raises(ValueError, match="angular_damping"):
            PhysicsParams().scaled({"angular_damping": 2.0})

    def test_dict_round_trip_ignores_unknown(self):
        d = PhysicsParams(gravity=10.0).to_dict()
        d["comment"] = "ignored"
        assert PhysicsParams.from_dict(d) == PhysicsParams(gravity=10.0)

    def test_zero_gravity_twr(self):
        assert PhysicsParams(gravity=0.0).twr() == float("inf")

    def test_tuning_defaults_and_scaling(self):
        t = AutopilotTuning()
        assert t.to_dict() == {
            "glide_altitude": 140.0,
            "base_margin": 6.0,
            "margin_velocity_gain": 0.12,
            "final_approach_vy": 10.0,
            "cruise_vy": 30.0,
        }
        assert t.scaled({"cruise_vy": 0.5}).cruise_vy == pytest.approx(15.0)
        with pytest.raises(ValueError):
            AutopilotTuning(glide_altitude=0.0)


class TestBuiltinPresets:
    def test_available(self):
        assert available_difficulties() == ["easy", "hard", "normal"]

    @pytest.mark.parametrize("name", ["easy", "normal", "hard"])
    def test_loads(self, name):
        preset = DifficultyPreset.load(name)
        assert preset.name == name
        assert preset.label == name.title()
        assert preset.fuel > 0
        assert name.title() in preset.describe()

    def test_normal_is_base_physics(self):
        preset = DifficultyPreset.load("normal")
        assert preset.physics_params() == PhysicsParams()
        assert preset.autopilot_tuning() == AutopilotTuning()
        assert preset.fuel == 100.0
        assert preset.pad_range_frac == (0.3, 0.7)

    def test_easy_centred_pad(self):
        preset = DifficultyPreset.load("easy")
        assert preset.pad_centered
        opts = preset.terrain_options(960.0)
        assert opts.pad_center_x == 480.0
        assert opts.pad_segments == 6
        assert opts.pad_range_frac is None

    def test_hard_scaling(self):
        preset = DifficultyPreset.load("hard")
        params = preset.physics_params()
        tuning = preset.autopilot_tuning()
        assert params.gravity == pytest.approx(24.2)
        assert params.safe_angle == pytest.approx(0.16)
        assert tuning.base_margin == pytest.approx(9.0)
        assert tuning.final_approach_vy == pytest.approx(8.0)
        assert tuning.cruise_vy == 30.0

    def test_missing_builtin(self):
        with pytest.raises(FileNotFoundError, match="Available"):
            DifficultyPreset.load("nightmare")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DifficultyPreset.load(str(tmp_path / "nope.yaml"))


class TestPresetValidation:
    def test_custom_file(self, tmp_path):
        path = tmp_path / "windy.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "fuel": 80,
                    "pad_segments": 3,
                    "physics_scale": {"gravity": 1.2},
                }
            )
        )
        preset = DifficultyPreset.load(str(path))
        assert preset.name == "windy"
        assert preset.label == "windy"
        assert preset.physics_params().gravity == pytest.approx(26.4)
        assert "middle third" in preset.describe()

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys"):
            DifficultyPreset.from_dict({"fuel": 1, "pad_segments": 2, "wind": 3})

    def test_required_keys(self):
        with pytest.raises(ValueError, match="fuel and pad_segments"):
            DifficultyPreset.from_dict({"fuel": 100})

    def test_negative_fuel(self):
        with pytest.raises(ValueError, match="fuel"):
            DifficultyPreset.from_dict({"fuel": -1, "pad_segments": 2})

    def test_conflicting_placement(self):
        with pytest.raises(ValueError, match="both"):
            DifficultyPreset.from_dict(
                {
                    "fuel": 100,
                    "pad_segments": 2,
                    "pad_center": "center",
                    "pad_range_frac": [0.2, 0.8],
                }
            )

    def test_bad_pad_center(self):
        with pytest.raises(ValueError, match="pad_center"):
            DifficultyPreset.from_dict(
                {"fuel": 100, "pad_segments": 2, "pad_center": "left"}
            )

    def test_malformed_range(self):
        with pytest.raises(ValueError, match="pad_range_frac"):
            DifficultyPreset.from_dict(
                {"fuel": 100, "pad_segments": 2, "pad_range_frac": [0.2]}
            )

    def test_bad_scale_fails_at_load(self):
        with pytest.raises(ValueError, match="Unknown field"):
            DifficultyPreset.from_dict(
                {"fuel": 100, "pad_segments": 2, "autopilot_scale": {"kp": 2.0}}
            )
        with pytest.raises(ValueError, match="out of range"):
            DifficultyPreset.from_dict(
                {"fuel": 100, "pad_segments": 2, "physics_scale": {"gravity": -1}}
            )
