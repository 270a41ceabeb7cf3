"""YAML difficulty presets for the pad lander.

A preset fixes everything that varies between difficulty levels:
starting fuel, pad width and placement, and multiplicative scale factors
applied to the base physics and autopilot constants. The scaled bundles
are derived once per episode and never change mid-flight.

Preset files are YAML with these keys:

  label:            display name (optional, defaults to the file stem)
  fuel:             starting fuel
  pad_segments:     pad width in terrain segments
  pad_center:       "center" to put the pad under the spawn point
  pad_range_frac:   [fmin, fmax] fractional band for a random pad centre
  physics_scale:    {PhysicsParams field: factor}
  autopilot_scale:  {AutopilotTuning field: factor}

pad_center and pad_range_frac are mutually exclusive. With neither, the
terrain generator picks a random spot in the middle third.

Usage:
    preset = DifficultyPreset.load("hard")            # builtin name
    preset = DifficultyPreset.load("path/to/x.yaml")  # file path
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from moonlander.src.physics_config import AutopilotTuning, PhysicsParams
from moonlander.src.terrain import TerrainOptions

# Builtin presets: moonlander/src/ -> moonlander/difficulties/
_DIFFICULTIES_DIR = Path(__file__).parent.parent / "difficulties"

DEFAULT_DIFFICULTY = "normal"

_KNOWN_KEYS = {
    "label",
    "fuel",
    "pad_segments",
    "pad_center",
    "pad_range_frac",
    "physics_scale",
    "autopilot_scale",
}


@dataclass(frozen=True)
class DifficultyPreset:
    """One difficulty level.

    Attributes:
        name: Preset identifier (builtin name or file stem).
        label: Human-readable name.
        fuel: Starting fuel for each craft.
        pad_segments: Requested pad width in segments.
        pad_centered: Place the pad under the spawn point.
        pad_range_frac: Optional (fmin, fmax) band for the pad centre.
        physics_scale: Factors applied to the base PhysicsParams.
        autopilot_scale: Factors applied to the base AutopilotTuning.
    """

    name: str
    label: str
    fuel: float
    pad_segments: int
    pad_centered: bool = False
    pad_range_frac: tuple[float, float] | None = None
    physics_scale: dict[str, float] = field(default_factory=dict)
    autopilot_scale: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any], name: str = "") -> DifficultyPreset:
        """Build and validate a preset from a parsed YAML dict.

        Raises:
            ValueError: Unknown keys, conflicting pad placement, malformed
                pad range, or scale factors that push a parameter out of
                its valid range.
        """
        unknown = set(d) - _KNOWN_KEYS
        if unknown:
            raise ValueError(
                f"Unknown keys {sorted(unknown)} in difficulty '{name}'. "
                f"Valid keys: {sorted(_KNOWN_KEYS)}."
            )
        if "fuel" not in d or "pad_segments" not in d:
            raise ValueError(f"Difficulty '{name}' must set fuel and pad_segments")

        fuel = float(d["fuel"])
        if fuel < 0:
            raise ValueError(f"fuel must be >= 0, got {fuel}")

        pad_center = d.get("pad_center")
        if pad_center is not None and pad_center != "center":
            raise ValueError(f"pad_center must be 'center', got {pad_center!r}")

        range_frac = d.get("pad_range_frac")
        if range_frac is not None:
            if pad_center is not None:
                raise ValueError(
                    f"Difficulty '{name}' sets both pad_center and pad_range_frac"
                )
            if not isinstance(range_frac, list) or len(range_frac) != 2:
                raise ValueError(
                    f"pad_range_frac must be [fmin, fmax], got {range_frac}"
                )
            range_frac = (float(range_frac[0]), float(range_frac[1]))

        preset = cls(
            name=name,
            label=str(d.get("label", name)),
            fuel=fuel,
            pad_segments=int(d["pad_segments"]),
            pad_centered=pad_center == "center",
            pad_range_frac=range_frac,
            physics_scale={
                k: float(v) for k, v in (d.get("physics_scale") or {}).items()
            },
            autopilot_scale={
                k: float(v) for k, v in (d.get("autopilot_scale") or {}).items()
            },
        )
        # Derive once so bad scale factors fail at load time.
        preset.physics_params()
        preset.autopilot_tuning()
        return preset

    @classmethod
    def load(cls, name_or_path: str) -> DifficultyPreset:
        """Load a preset by builtin name or file path.

        Resolution order:
          1. Absolute path or .yaml/.yml extension -> file path.
          2. Otherwise -> builtin name under moonlander/difficulties/.
          3. Neither exists -> FileNotFoundError listing the builtins.
        """
        path = Path(name_or_path)

        if path.is_absolute() or path.suffix in (".yaml", ".yml"):
            if not path.exists():
                raise FileNotFoundError(f"Difficulty file not found: {path}")
            name = path.stem
        else:
            path = _DIFFICULTIES_DIR / f"{name_or_path}.yaml"
            if not path.exists():
                raise FileNotFoundError(
                    f"No builtin difficulty '{name_or_path}'. "
                    f"Available: {available_difficulties()}"
                )
            name = name_or_path

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data, name=name)

    def physics_params(self) -> PhysicsParams:
        return PhysicsParams().scaled(self.physics_scale)

    def autopilot_tuning(self) -> AutopilotTuning:
        return AutopilotTuning().scaled(self.autopilot_scale)

    def terrain_options(self, world_width: float) -> TerrainOptions:
        if self.pad_centered:
            # Spawn is at the horizontal centre of the world.
            return TerrainOptions(
                pad_segments=self.pad_segments, pad_center_x=world_width * 0.5
            )
        return TerrainOptions(
            pad_segments=self.pad_segments, pad_range_frac=self.pad_range_frac
        )

    def describe(self) -> str:
        """One-line summary for printing at the start of a run."""
        if self.pad_centered:
            placement = "centred"
        elif self.pad_range_frac is not None:
            placement = f"in {list(self.pad_range_frac)}"
        else:
            placement = "middle third"
        parts = [
            f"{self.label}: fuel={self.fuel:g}",
            f"pad={self.pad_segments} segs {placement}",
        ]
        if self.physics_scale:
            parts.append(f"physics x{self.physics_scale}")
        if self.autopilot_scale:
            parts.append(f"autopilot x{self.autopilot_scale}")
        return ", ".join(parts)


def available_difficulties() -> list[str]:
    """Names of the builtin presets."""
    if not _DIFFICULTIES_DIR.exists():
        return []
    return [
        p.stem
        for p in sorted(_DIFFICULTIES_DIR.glob("*.yaml"))
        if not p.stem.startswith("_")
    ]
