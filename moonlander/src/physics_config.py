"""Physics and autopilot configuration bundles for the pad lander.

Both bundles are derived once per difficulty by scaling fixed base
constants, then stay read-only for the whole episode. Units are screen
units: pixels, seconds, radians. The y axis points DOWN, so gravity is a
positive acceleration and a descending craft has positive vy.

Base constants (the unscaled "normal" tuning):

  - gravity 22 px/s^2 against a main engine of 42 px/s^2 gives a level
    craft a net braking authority of -20 px/s^2.
  - angular damping is a per-frame factor at a 60 Hz reference, applied
    as damping ** (dt * 60) by the integrator.
  - air damping is applied once per tick, independent of dt.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import ClassVar


# --- Base constants (unscaled) ---
GRAVITY = 22.0
MAIN_THRUST_ACCEL = 42.0
ROTATIONAL_ACCEL = 2.6
FUEL_BURN_RATE_MAIN = 26.0
FUEL_BURN_RATE_ROTATION = 6.0
ANGULAR_DAMPING = 0.995
AIR_DAMPING = 0.0005

SAFE_VX = 32.0
SAFE_VY = 42.0
SAFE_ANGLE = 0.2  # ~11.5 deg


@dataclass(frozen=True)
class SafetyLimits:
    """Touchdown limits. A landing must satisfy all three."""

    vx: float
    vy: float
    angle: float


def _scaled(bundle, factors: dict[str, float]):
    """Return a copy of a frozen bundle with named fields multiplied."""
    names = {f.name for f in fields(bundle)}
    changes = {}
    for name, factor in factors.items():
        if name not in names:
            raise ValueError(
                f"Unknown field '{name}' for {type(bundle).__name__}. "
                f"Valid fields: {sorted(names)}"
            )
        changes[name] = getattr(bundle, name) * float(factor)
    return replace(bundle, **changes)


def _check_ranges(bundle) -> None:
    for name, (lo, hi) in bundle.RANGES.items():
        value = getattr(bundle, name)
        if not (lo <= value <= hi):
            raise ValueError(f"{name}={value} is out of range [{lo}, {hi}]")


@dataclass(frozen=True)
class PhysicsParams:
    """Per-difficulty physics bundle consumed by the integrator and the judge.

    Attributes:
        gravity: Downward acceleration in px/s^2.
        main_thrust_accel: Acceleration along the nose vector while the
            main engine burns, px/s^2.
        rotational_accel: Angular acceleration while a rotation key is
            held, rad/s^2.
        fuel_burn_rate_main: Fuel units per second of main engine burn.
        fuel_burn_rate_rotation: Fuel units per second of rotation.
        angular_damping: Per-frame (60 Hz) multiplicative decay of the
            angular velocity. 1.0 = free spin.
        air_damping: Fraction of velocity removed each tick.
        safe_vx: Max |vx| at touchdown, px/s.
        safe_vy: Max |vy| at touchdown, px/s.
        safe_angle: Max |angle| at touchdown, rad.
    """

    gravity: float = GRAVITY
    main_thrust_accel: float = MAIN_THRUST_ACCEL
    rotational_accel: float = ROTATIONAL_ACCEL
    fuel_burn_rate_main: float = FUEL_BURN_RATE_MAIN
    fuel_burn_rate_rotation: float = FUEL_BURN_RATE_ROTATION
    angular_damping: float = ANGULAR_DAMPING
    air_damping: float = AIR_DAMPING
    safe_vx: float = SAFE_VX
    safe_vy: float = SAFE_VY
    safe_angle: float = SAFE_ANGLE

    # Valid ranges: {name: (min, max)}. Wide enough for any sane preset,
    # narrow enough to reject sign errors and typos in YAML files.
    RANGES: ClassVar[dict[str, tuple[float, float]]] = {
        "gravity": (0.0, 200.0),
        "main_thrust_accel": (0.0, 400.0),
        "rotational_accel": (0.0, 50.0),
        "fuel_burn_rate_main": (0.0, 1000.0),
        "fuel_burn_rate_rotation": (0.0, 1000.0),
        "angular_damping": (0.0, 1.0),
        "air_damping": (0.0, 0.5),
        "safe_vx": (0.0, 500.0),
        "safe_vy": (0.0, 500.0),
        "safe_angle": (0.0, 3.14159),
    }

    def __post_init__(self):
        _check_ranges(self)

    def scaled(self, factors: dict[str, float]) -> PhysicsParams:
        """New bundle with each named field multiplied by its factor."""
        return _scaled(self, factors)

    def safety_limits(self) -> SafetyLimits:
        return SafetyLimits(vx=self.safe_vx, vy=self.safe_vy, angle=self.safe_angle)

    def twr(self) -> float:
        """Thrust-to-weight ratio of a level craft. > 1 means it can hover."""
        if self.gravity == 0:
            return float("inf")
        return self.main_thrust_accel / self.gravity

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: dict) -> PhysicsParams:
        """Build from a dict, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in d.items() if k in names})


@dataclass(frozen=True)
class AutopilotTuning:
    """Per-difficulty autopilot knobs.

    Attributes:
        glide_altitude: Altitude (px) below which tilt authority fades
            linearly to zero.
        base_margin: Constant safety margin (px) added to the stopping
            distance before deciding to burn.
        margin_velocity_gain: Extra margin per px/s of descent speed (s).
        final_approach_vy: Target descent speed in the last few pixels.
        cruise_vy: Target descent speed everywhere else.
    """

    glide_altitude: float = 140.0
    base_margin: float = 6.0
    margin_velocity_gain: float = 0.12
    final_approach_vy: float = 10.0
    cruise_vy: float = 30.0

    RANGES: ClassVar[dict[str, tuple[float, float]]] = {
        "glide_altitude": (1.0, 2000.0),
        "base_margin": (0.0, 500.0),
        "margin_velocity_gain": (0.0, 10.0),
        "final_approach_vy": (0.0, 200.0),
        "cruise_vy": (0.0, 500.0),
    }

    def __post_init__(self):
        _check_ranges(self)

    def scaled(self, factors: dict[str, float]) -> AutopilotTuning:
        return _scaled(self, factors)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
