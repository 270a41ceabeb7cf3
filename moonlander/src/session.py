"""Simulation session: owns one episode's state and runs the tick loop.

A Session holds all per-simulation state (difficulty, terrain, vehicle,
game state, autopilot latch) so several independent simulations can run
side by side, e.g. batch autopilot evaluation.

Per tick, in this order:
  1. autopilot (if enabled) reads last tick's settled state -> control
  2. dynamics integrate one step with that control
  3. judge checks ground contact and settles the outcome

State machine:
  playing -> landed | crashed   (terminal)
  playing <-> paused            (no physics while paused)
  any state -> playing          only via reset()/restart()/set_difficulty()
"""

from __future__ import annotations

import math

import numpy as np

from moonlander.src.autopilot import AutopilotState, compute_control
from moonlander.src.difficulty import DEFAULT_DIFFICULTY, DifficultyPreset
from moonlander.src.dynamics import ControlInput, integrate, make_vehicle
from moonlander.src.judge import GameState, JudgeResult, evaluate
from moonlander.src.terrain import altitude, generate_terrain

WORLD_WIDTH = 960.0
WORLD_HEIGHT = 600.0

# Frame hitches are capped here before reaching the integrator.
MAX_DT = 0.033

LOW_ALTITUDE_WARNING = 60.0


class Session:
    """One simulated craft over a sequence of episodes.

    Args:
        difficulty: Builtin preset name, YAML path, or a DifficultyPreset.
        width: World width in px.
        height: World height in px.
        seed: Seed for the session's NumPy generator. Terrain and spawn
            drift are drawn from it, so equal seeds replay equal episodes.
        autopilot: Start with the autopilot engaged.
    """

    def __init__(
        self,
        difficulty: str | DifficultyPreset = DEFAULT_DIFFICULTY,
        width: float = WORLD_WIDTH,
        height: float = WORLD_HEIGHT,
        seed: int | None = None,
        autopilot: bool = False,
    ):
        self.width = float(width)
        self.height = float(height)
        self.rng = np.random.default_rng(seed)
        self.autopilot_enabled = autopilot
        self.autopilot_state = AutopilotState()
        self.terrain = None
        self._apply_difficulty(difficulty)
        self.reset(new_terrain=True)

    def _apply_difficulty(self, difficulty: str | DifficultyPreset) -> None:
        if isinstance(difficulty, DifficultyPreset):
            self.preset = difficulty
        else:
            self.preset = DifficultyPreset.load(difficulty)
        self.params = self.preset.physics_params()
        self.tuning = self.preset.autopilot_tuning()
        self.limits = self.params.safety_limits()

    # --- Episode lifecycle ---

    def reset(self, new_terrain: bool = True) -> None:
        """Start a new episode with a fresh craft.

        Terrain is regenerated when asked or when none exists yet. The
        control record and the autopilot latch never carry over.
        """
        if new_terrain or self.terrain is None:
            self.terrain = generate_terrain(
                self.width,
                self.height,
                self.preset.terrain_options(self.width),
                rng=self.rng,
            )
        self.vehicle = make_vehicle(self.width, self.preset.fuel, rng=self.rng)
        self.state = GameState.PLAYING
        self.reasons: tuple[str, ...] = ()
        self.control = ControlInput()
        self.autopilot_state.reset()
        self.elapsed = 0.0
        self.ticks = 0

    def restart(self) -> None:
        """Fly again over the same terrain."""
        self.reset(new_terrain=False)

    def set_difficulty(self, difficulty: str | DifficultyPreset) -> None:
        """Switch preset, disengage the autopilot and start on new terrain."""
        self._apply_difficulty(difficulty)
        self.autopilot_enabled = False
        self.reset(new_terrain=True)

    def toggle_pause(self) -> GameState:
        if self.state is GameState.PLAYING:
            self.state = GameState.PAUSED
        elif self.state is GameState.PAUSED:
            self.state = GameState.PLAYING
        return self.state

    def toggle_autopilot(self) -> bool:
        self.autopilot_enabled = not self.autopilot_enabled
        self.control = ControlInput()
        return self.autopilot_enabled

    # --- Tick ---

    def tick(self, dt: float, control: ControlInput | None = None) -> JudgeResult:
        """Advance one frame.

        Args:
            dt: Elapsed frame time in seconds. Capped at MAX_DT.
            control: Manual input for this frame. Ignored while the
                autopilot is engaged. None = no keys held.

        Returns:
            The judge's verdict for this tick. While paused or after the
            episode has ended, nothing moves and the current state is
            returned unchanged.
        """
        if self.state is not GameState.PLAYING:
            return JudgeResult(self.state, self.reasons)

        dt = min(dt, MAX_DT)

        if self.autopilot_enabled:
            control = compute_control(
                self.vehicle,
                self.terrain,
                self.tuning,
                self.params,
                self.autopilot_state,
            )
        elif control is None:
            control = ControlInput()
        self.control = control

        integrate(self.vehicle, control, self.params, dt, self.width)
        if dt > 0:
            self.elapsed += dt
            self.ticks += 1

        result = evaluate(self.vehicle, self.terrain, self.limits)
        if result.state.is_terminal:
            self.state = result.state
            self.reasons = result.reasons
        return result

    # --- Read-only views for hosts ---

    @property
    def altitude(self) -> float:
        return altitude(self.terrain, self.vehicle.x, self.vehicle.bottom)

    @property
    def done(self) -> bool:
        return self.state.is_terminal

    def telemetry(self) -> dict:
        """HUD values as plain data. Formatting is the host's job."""
        v = self.vehicle
        alt = self.altitude
        return {
            "fuel": v.fuel,
            "speed": v.speed,
            "vx": v.vx,
            "vy": v.vy,
            "altitude": alt,
            "angle_deg": math.degrees(v.angle),
            "speed_ok": v.speed <= math.hypot(self.limits.vx, self.limits.vy),
            "vx_ok": abs(v.vx) <= self.limits.vx,
            "angle_ok": abs(v.angle) <= self.limits.angle,
            "low_altitude": alt < LOW_ALTITUDE_WARNING,
            "state": self.state.value,
            "autopilot": self.autopilot_enabled,
        }
