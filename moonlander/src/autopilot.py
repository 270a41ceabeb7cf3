"""Heuristic autopilot for the pad lander.

Two decoupled loops, evaluated once per tick before integration:

  - Lateral: a PD law on horizontal error picks a desired tilt, and a
    dead-banded bang-bang rotation command chases it.
  - Vertical: a stopping-distance ("suicide burn") test decides when the
    main engine must fire, behind a hysteresis latch so thrust does not
    chatter at the decision boundary.

The latch is the only memory and lives in an explicit AutopilotState
owned by the caller, so several simulated craft can each run their own
autopilot. Given the same vehicle, terrain, tuning, physics and latch,
the output is fully deterministic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from moonlander.src.dynamics import ControlInput, Vehicle, angle_diff
from moonlander.src.physics_config import AutopilotTuning, PhysicsParams
from moonlander.src.terrain import Terrain, altitude


# --- Lateral gains ---
KP_X = 0.0012  # rad per px of horizontal error
KD_VX = 0.0045  # rad per px/s of horizontal velocity
MAX_TILT = 0.6  # ~34 deg
ANGLE_DEADBAND = 0.02

MIN_PAD_HALF = 8.0
NEAR_PAD_FRAC = 0.7  # "over the pad" = within 70% of its half-width
NEAR_PAD_TILT_GAIN = 0.6
LOW_ALT = 60.0
LOW_ALT_MAX_TILT = 0.22
FLARE_ALT = 22.0  # no lateral correction below this

# --- Vertical thresholds ---
FINAL_APPROACH_ALT = 18.0
TILTED_ANGLE = 0.35
TILTED_MIN_ALT = 30.0
WEAK_BRAKING = -2.0  # a_on at or above this counts as weak braking
RELEASE_VY_SLACK = 1.0
RELEASE_ALT = 8.0
EMERGENCY_ALT = 28.0


@dataclass
class AutopilotState:
    """Memory carried between ticks. Reset at the start of every episode."""

    burning: bool = False

    def reset(self) -> None:
        self.burning = False


def desired_tilt(
    vehicle: Vehicle, terrain: Terrain, tuning: AutopilotTuning, alt: float
) -> float:
    """Tilt (rad) the craft should hold to steer onto the pad centre."""
    pad = terrain.pad
    pad_half = max(MIN_PAD_HALF, pad.half_width)
    ex = pad.center - vehicle.x  # + means the pad is to the right

    tilt = KP_X * ex + KD_VX * (-vehicle.vx)
    tilt = max(-MAX_TILT, min(MAX_TILT, tilt))

    # Less tilt near the ground keeps thrust pointed down where it matters.
    tilt_scale = max(0.0, min(1.0, alt / tuning.glide_altitude))
    tilt *= tilt_scale

    if abs(ex) < pad_half * NEAR_PAD_FRAC:
        tilt *= NEAR_PAD_TILT_GAIN
    if alt < LOW_ALT:
        tilt = max(-LOW_ALT_MAX_TILT, min(LOW_ALT_MAX_TILT, tilt))
    if alt < FLARE_ALT:
        tilt = 0.0
    return tilt


def braking_accel(angle: float, params: PhysicsParams) -> float:
    """Vertical acceleration while thrusting at this angle. < 0 brakes."""
    return params.gravity - params.main_thrust_accel * max(0.0, math.cos(angle))


def stopping_distance(vy: float, v_final: float, a_on: float) -> float:
    """Distance covered braking from vy down to v_final at constant a_on.

    Only meaningful for a_on < 0 and vy > v_final; callers guard both.
    """
    return (v_final * v_final - vy * vy) / (2.0 * a_on)


def burn_required(
    vehicle: Vehicle,
    tuning: AutopilotTuning,
    params: PhysicsParams,
    alt: float,
    v_final: float,
) -> bool:
    """Stopping-distance test: must the engine fire now to stop in time?"""
    a_on = braking_accel(vehicle.angle, params)
    vy = vehicle.vy
    if a_on >= 0 or vy <= v_final:
        return False

    s_stop = stopping_distance(vy, v_final, a_on)
    margin = tuning.base_margin + tuning.margin_velocity_gain * vy
    need = s_stop + margin >= alt

    # Heavily tilted and high up with little braking: level out first
    # rather than waste fuel on a mostly sideways burn.
    tilted = abs(vehicle.angle) > TILTED_ANGLE and alt > TILTED_MIN_ALT
    if tilted and a_on >= WEAK_BRAKING:
        need = False
    return need


def compute_control(
    vehicle: Vehicle,
    terrain: Terrain,
    tuning: AutopilotTuning,
    params: PhysicsParams,
    memory: AutopilotState,
) -> ControlInput:
    """Decide this tick's left/right/thrust.

    Updates memory.burning in place. Returns all-false, leaving the latch
    untouched, once the tank is empty.
    """
    if vehicle.fuel <= 0:
        return ControlInput()

    alt = altitude(terrain, vehicle.x, vehicle.bottom)

    # --- Lateral: chase the desired tilt with a dead band ---
    tilt = desired_tilt(vehicle, terrain, tuning, alt)
    ang_err = angle_diff(tilt, vehicle.angle)
    right = ang_err > ANGLE_DEADBAND
    left = ang_err < -ANGLE_DEADBAND

    # --- Vertical: suicide burn with hysteresis ---
    v_final = tuning.final_approach_vy if alt < FINAL_APPROACH_ALT else tuning.cruise_vy
    vy = vehicle.vy

    if memory.burning:
        if vy <= v_final + RELEASE_VY_SLACK or alt < RELEASE_ALT:
            memory.burning = False
    else:
        emergency = alt < EMERGENCY_ALT and vy > v_final
        if emergency or burn_required(vehicle, tuning, params, alt, v_final):
            memory.burning = True

    return ControlInput(left=left, right=right, thrust=memory.burning)
