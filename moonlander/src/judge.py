"""Ground contact detection and landing classification.

Called once per tick after integration while the episode is playing.
Contact means the bottom of the craft (y + radius) has reached the
ground under its x. On contact the craft is pinned to the surface and
the touchdown is classified against the safety limits:

  landed   - on the pad AND level enough AND slow enough on both axes
  crashed  - anything else, with every failed check reported in order

A crash is an outcome, not an error: it comes back as data.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from moonlander.src.dynamics import Vehicle
from moonlander.src.physics_config import SafetyLimits
from moonlander.src.terrain import Terrain, height_at


class GameState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    LANDED = "landed"
    CRASHED = "crashed"

    @property
    def is_terminal(self) -> bool:
        return self in (GameState.LANDED, GameState.CRASHED)


# Crash reasons, in the order they are reported.
MISSED_PAD = "missed pad"
BAD_ANGLE = "bad angle"
TOO_FAST_H = "too fast (h)"
TOO_FAST_V = "too fast (v)"


@dataclass(frozen=True)
class JudgeResult:
    state: GameState
    reasons: tuple[str, ...] = ()

    @property
    def contact(self) -> bool:
        return self.state.is_terminal

    def describe(self) -> str:
        """Reasons as one readable phrase, e.g. 'missed pad, bad angle'."""
        return ", ".join(self.reasons)


def classify_touchdown(
    x: float,
    angle: float,
    vx: float,
    vy: float,
    terrain: Terrain,
    limits: SafetyLimits,
) -> JudgeResult:
    """Pure classification of a touchdown state. No contact test, no mutation."""
    on_pad = terrain.pad.x1 <= x <= terrain.pad.x2
    angle_ok = abs(angle) <= limits.angle
    vx_ok = abs(vx) <= limits.vx
    vy_ok = abs(vy) <= limits.vy

    if on_pad and angle_ok and vx_ok and vy_ok:
        return JudgeResult(GameState.LANDED)

    reasons = []
    if not on_pad:
        reasons.append(MISSED_PAD)
    if not angle_ok:
        reasons.append(BAD_ANGLE)
    if not vx_ok:
        reasons.append(TOO_FAST_H)
    if not vy_ok:
        reasons.append(TOO_FAST_V)
    return JudgeResult(GameState.CRASHED, tuple(reasons))


def evaluate(vehicle: Vehicle, terrain: Terrain, limits: SafetyLimits) -> JudgeResult:
    """Check for ground contact and settle the vehicle if it touched down.

    Returns PLAYING with no reasons when airborne. On contact the vehicle
    is pinned to the ground; a successful landing also zeroes its linear
    and angular velocity.
    """
    ground_y = height_at(terrain, vehicle.x)
    if vehicle.y + vehicle.radius < ground_y:
        return JudgeResult(GameState.PLAYING)

    vehicle.y = ground_y - vehicle.radius

    result = classify_touchdown(
        vehicle.x, vehicle.angle, vehicle.vx, vehicle.vy, terrain, limits
    )
    if result.state is GameState.LANDED:
        vehicle.vx = 0.0
        vehicle.vy = 0.0
        vehicle.omega = 0.0
    return result
