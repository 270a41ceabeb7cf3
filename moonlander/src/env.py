"""Headless Gymnasium environment around a pad lander Session.

Lets external agents (scripted policies, RL code, the autopilot itself)
fly the craft through the standard reset()/step() interface. There is no
renderer: drawing belongs to the host application, not the simulation.

Spaces:
  - Action: MultiBinary(3) = (left, right, thrust), one frame of keys.
  - Observation: Box(8,) float32 in raw screen units:
      [0] x position (px)          [4] angle (rad, (-pi, pi])
      [1] y position (px, down)    [5] angular velocity (rad/s)
      [2] vx (px/s)                [6] fuel
      [3] vy (px/s, + = falling)   [7] altitude above ground (px)

Each step advances the session by a fixed FRAME_DT.

Reward: a potential-based shaping term (closer to the pad centre, slower,
more level = higher potential), a small fuel penalty per step, and +100
for a landing / -100 for a crash on the terminal step.
"""

from __future__ import annotations

import math

import numpy as np

import gymnasium as gym
from gymnasium import spaces
from gymnasium.utils import EzPickle

from moonlander.src.autopilot import compute_control
from moonlander.src.difficulty import DEFAULT_DIFFICULTY
from moonlander.src.dynamics import ControlInput
from moonlander.src.judge import GameState
from moonlander.src.session import WORLD_HEIGHT, WORLD_WIDTH, Session
from moonlander.src.terrain import segment_tuples

FPS = 60
FRAME_DT = 1.0 / FPS

LANDED_REWARD = 100.0
CRASHED_REWARD = -100.0
FUEL_PENALTY = 0.03  # per unit of fuel burned


class PadLanderEnv(gym.Env, EzPickle):
    """Pad lander as a Gymnasium environment.

    Args:
        difficulty: Preset name or YAML path used at construction. Can be
            changed per episode with reset(options={"difficulty": ...}).
        autopilot: If True, the built-in autopilot flies and actions
            passed to step() are ignored. Useful for batch evaluation
            through the same interface as learned policies.
        render_mode: Accepted for API compatibility. No modes are
            supported.
        width, height: World size in px.
    """

    metadata = {"render_modes": [], "render_fps": FPS}

    def __init__(
        self,
        difficulty: str = DEFAULT_DIFFICULTY,
        autopilot: bool = False,
        render_mode: str | None = None,
        width: float = WORLD_WIDTH,
        height: float = WORLD_HEIGHT,
    ):
        EzPickle.__init__(self, difficulty, autopilot, render_mode, width, height)

        self._difficulty = difficulty
        self._autopilot = autopilot
        self._width = width
        self._height = height
        self.render_mode = render_mode

        self.session: Session | None = None
        self.prev_shaping = None

        low = np.array(
            [0.0, -np.inf, -np.inf, -np.inf, -math.pi, -np.inf, 0.0, 0.0],
            dtype=np.float32,
        )
        high = np.array(
            [width, np.inf, np.inf, np.inf, math.pi, np.inf, np.inf, np.inf],
            dtype=np.float32,
        )
        self.observation_space = spaces.Box(low, high, dtype=np.float32)
        self.action_space = spaces.MultiBinary(3)

    def reset(self, *, seed: int | None = None, options: dict | None = None):
        """Start a new episode.

        Options:
            difficulty: switch preset for this and later episodes.
            new_terrain: False keeps the previous episode's terrain
                (default True). Ignored on the first reset, and
                whenever difficulty changes: a new preset always gets
                new terrain.

        Returns:
            (observation, info)
        """
        super().reset(seed=seed)
        options = options or {}

        changed = "difficulty" in options
        if changed:
            self._difficulty = options["difficulty"]

        if self.session is None or seed is not None or changed:
            # The session draws terrain and spawn drift from its own
            # generator, seeded from np_random so env seeds stay reproducible.
            previous = self.session
            self.session = Session(
                difficulty=self._difficulty,
                width=self._width,
                height=self._height,
                seed=int(self.np_random.integers(0, 2**31 - 1)),
                autopilot=self._autopilot,
            )
            keep_terrain = not options.get("new_terrain", True)
            if previous is not None and not changed and keep_terrain:
                self.session.terrain = previous.terrain
                self.session.restart()
        else:
            self.session.reset(new_terrain=options.get("new_terrain", True))

        self.prev_shaping = self._shaping()
        return self._get_obs(), self._get_info()

    def step(self, action):
        """Advance one frame with the given (left, right, thrust) keys.

        Returns:
            (observation, reward, terminated, truncated, info). truncated is
            always False; wrap with TimeLimit for a step budget.
        """
        assert self.session is not None, "You forgot to call reset()"
        session = self.session

        if session.done:
            gym.logger.warn(
                "Calling step() after the episode has terminated. "
                "Call reset() to start a new episode."
            )
            return self._get_obs(), 0.0, True, False, self._get_info()

        fuel_before = session.vehicle.fuel
        control = None if self._autopilot else ControlInput.from_array(action)
        result = session.tick(FRAME_DT, control)

        shaping = self._shaping()
        reward = shaping - self.prev_shaping
        self.prev_shaping = shaping
        reward -= FUEL_PENALTY * (fuel_before - session.vehicle.fuel)

        terminated = result.state.is_terminal
        if result.state is GameState.LANDED:
            reward = LANDED_REWARD
        elif result.state is GameState.CRASHED:
            reward = CRASHED_REWARD

        return self._get_obs(), float(reward), terminated, False, self._get_info()

    def autopilot_action(self) -> np.ndarray:
        """What the autopilot would press right now, as a MultiBinary action.

        Advances the env's own autopilot latch, so call it once per step,
        just like the controller inside the session would.
        """
        assert self.session is not None, "You forgot to call reset()"
        s = self.session
        control = compute_control(
            s.vehicle, s.terrain, s.tuning, s.params, s.autopilot_state
        )
        return control.as_array()

    def render(self):
        gym.logger.warn(
            "PadLanderEnv is headless and has no render modes. "
            "Draw from env.unwrapped.session in the host application."
        )

    def _shaping(self) -> float:
        s = self.session
        v = s.vehicle
        pad = s.terrain.pad
        dx = (v.x - pad.center) / s.width
        dy = (pad.y - v.bottom) / s.height
        return (
            -100.0 * math.hypot(dx, dy)
            - 10.0 * v.speed / max(s.limits.vy, 1.0)
            - 100.0 * abs(v.angle) / math.pi
        )

    def _get_obs(self) -> np.ndarray:
        s = self.session
        obs = np.append(s.vehicle.as_array(), s.altitude).astype(np.float32)
        return obs

    def _get_info(self) -> dict:
        s = self.session
        outcome = s.state.value if s.state.is_terminal else None
        return {
            "outcome": outcome,
            "reasons": list(s.reasons),
            "difficulty": s.preset.name,
            "pad": s.terrain.pad.to_dict(),
            "terrain_segments": [list(seg) for seg in segment_tuples(s.terrain)],
            "fuel": s.vehicle.fuel,
            "autopilot": s.autopilot_enabled,
        }
