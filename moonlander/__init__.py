"""Pad lander: a 2D lunar-lander simulation with a heuristic autopilot.

The core (terrain, dynamics, landing judge, autopilot) lives in
moonlander.src and has no I/O. Session runs the tick loop; PadLanderEnv
exposes it through the Gymnasium API for headless agents.

Registration makes the env available via:
    gym.make("PadLander-v0", difficulty="hard")
"""

from gymnasium.envs.registration import register

from moonlander.src.physics_config import AutopilotTuning, PhysicsParams

register(
    id="PadLander-v0",
    entry_point="moonlander.src.env:PadLanderEnv",
    # No max_episode_steps here. Callers wrap with TimeLimit if desired.
)
