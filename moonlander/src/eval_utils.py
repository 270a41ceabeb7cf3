"""Batch evaluation of the pad lander autopilot.

Runs headless episodes, one Session per episode, and reduces each to a
flat row of metrics. Rows from many seeds and difficulties go into a
pandas DataFrame for summaries, CSV export and plots.

Also provides run_episode(), a generic env + policy loop that collects a
trajectory in memory, for driving PadLanderEnv with any policy.

Outcomes:
  landed   - touched down within limits
  crashed  - touched down outside limits (see "reasons")
  timeout  - still flying after max_steps ticks
"""

from __future__ import annotations

import os
from typing import Callable

import numpy as np
import pandas as pd

from moonlander.src.difficulty import DifficultyPreset
from moonlander.src.env import FRAME_DT
from moonlander.src.judge import GameState
from moonlander.src.session import Session

VALID_OUTCOMES = ("landed", "crashed", "timeout")

# 60 s of simulated flight at 60 Hz.
DEFAULT_MAX_STEPS = 3600


def run_episode(
    env,
    policy_fn: Callable[[np.ndarray], np.ndarray],
    seed: int = 42,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> dict:
    """Run one episode of a policy in an env and collect the trajectory.

    Args:
        env: A PadLanderEnv (or wrapped one).
        policy_fn: Callable(obs) -> action.
        seed: Seed for env.reset().
        max_steps: Step budget before the episode counts as a timeout.

    Returns:
        Dict with states (T+1, 8), actions (T, 3), rewards (T,) arrays and
        metadata (outcome, reasons, seed, n_steps, total_reward).
    """
    obs, info = env.reset(seed=seed)

    states = [obs.copy()]
    actions = []
    rewards = []
    outcome = "timeout"
    total_reward = 0.0

    for _ in range(max_steps):
        action = np.asarray(policy_fn(obs))
        obs, reward, terminated, truncated, info = env.step(action)

        states.append(obs.copy())
        actions.append(action.copy())
        rewards.append(reward)
        total_reward += reward

        if terminated or truncated:
            if info["outcome"] is not None:
                outcome = info["outcome"]
            break

    return {
        "states": np.array(states, dtype=np.float32),
        "actions": np.array(actions, dtype=np.int8).reshape(-1, 3),
        "rewards": np.array(rewards, dtype=np.float32),
        "metadata": {
            "outcome": outcome,
            "reasons": info.get("reasons", []),
            "difficulty": info.get("difficulty"),
            "pad": info.get("pad"),
            "seed": seed,
            "n_steps": len(actions),
            "total_reward": float(total_reward),
        },
    }


def run_autopilot_episode(
    difficulty: str | DifficultyPreset,
    seed: int,
    max_steps: int = DEFAULT_MAX_STEPS,
    dt: float = FRAME_DT,
) -> dict:
    """Fly one episode on autopilot and return a flat metrics dict.

    Args:
        difficulty: Preset name, YAML path, or DifficultyPreset.
        seed: Session seed (terrain and spawn drift).
        max_steps: Tick budget before the episode counts as a timeout.
        dt: Fixed frame time per tick.
    """
    session = Session(difficulty=difficulty, seed=seed, autopilot=True)
    fuel_start = session.vehicle.fuel
    pad = session.terrain.pad

    thrust_ticks = 0
    rotate_ticks = 0
    max_vy = session.vehicle.vy
    touchdown = None

    for _ in range(max_steps):
        result = session.tick(dt)
        if session.control.thrust:
            thrust_ticks += 1
        if session.control.left or session.control.right:
            rotate_ticks += 1
        max_vy = max(max_vy, session.vehicle.vy)
        if result.state.is_terminal:
            touchdown = result
            break

    v = session.vehicle
    if touchdown is None:
        outcome = "timeout"
    else:
        outcome = touchdown.state.value

    steps = session.ticks
    metrics = {
        "difficulty": session.preset.name,
        "seed": seed,
        "outcome": outcome,
        "reasons": "; ".join(session.reasons),
        "steps": steps,
        "sim_time": session.elapsed,
        "fuel_start": fuel_start,
        "fuel_remaining": v.fuel,
        "fuel_used": fuel_start - v.fuel,
        "thrust_duty_cycle": thrust_ticks / steps if steps else 0.0,
        "rotate_duty_cycle": rotate_ticks / steps if steps else 0.0,
        "max_descent_speed": max_vy,
        "pad_x1": pad.x1,
        "pad_x2": pad.x2,
        "pad_width": pad.x2 - pad.x1,
        "landing_x_error": v.x - pad.center if touchdown is not None else None,
    }

    # Touchdown kinematics. A successful landing zeroes the velocity, so
    # the values recorded here come from the crash state or are None.
    for key in ("touchdown_vx", "touchdown_vy", "touchdown_angle"):
        metrics[key] = None
    if touchdown is not None:
        metrics["touchdown_angle"] = v.angle
        if touchdown.state is GameState.CRASHED:
            metrics["touchdown_vx"] = v.vx
            metrics["touchdown_vy"] = v.vy

    return metrics


def evaluate_autopilot(
    difficulties: list[str],
    n_episodes: int,
    seed: int = 0,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> pd.DataFrame:
    """Run n_episodes per difficulty and collect one row per episode.

    Seeds are seed, seed + 1, ... within every difficulty, so each preset
    sees the same sequence of session seeds.
    """
    rows = []
    for name in difficulties:
        preset = DifficultyPreset.load(name)
        for i in range(n_episodes):
            row = run_autopilot_episode(preset, seed=seed + i, max_steps=max_steps)
            row["episode_idx"] = i
            rows.append(row)
    return pd.DataFrame(rows)


def compute_summary(df: pd.DataFrame) -> dict:
    """Aggregate outcome rates and fuel stats from evaluate_autopilot() rows."""
    n = len(df)
    if n == 0:
        return {"n_episodes": 0}

    summary = {"n_episodes": n}
    for oc in VALID_OUTCOMES:
        count = int((df["outcome"] == oc).sum())
        summary[f"n_{oc}"] = count
        summary[f"{oc}_pct"] = 100.0 * count / n

    summary["mean_steps"] = float(df["steps"].mean())
    summary["mean_fuel_used"] = float(df["fuel_used"].mean())
    summary["mean_thrust_duty_cycle"] = float(df["thrust_duty_cycle"].mean())

    landed = df[df["outcome"] == "landed"]
    if len(landed) > 0:
        summary["mean_landing_x_error"] = float(landed["landing_x_error"].abs().mean())
        summary["mean_fuel_remaining_landed"] = float(landed["fuel_remaining"].mean())
    return summary


def summarize_by_difficulty(df: pd.DataFrame) -> dict[str, dict]:
    """compute_summary() per difficulty, in first-seen order."""
    return {
        name: compute_summary(group)
        for name, group in df.groupby("difficulty", sort=False)
    }


def plot_eval_summary(df: pd.DataFrame, output_dir: str) -> list[str]:
    """Save summary plots as PNGs in output_dir. Returns the file paths.

    Produces:
      1. outcome_counts.png - bar chart of outcome counts
      2. fuel_by_outcome.png - fuel used per outcome (box plot)
      3. difficulty_breakdown.png - outcome rates per difficulty, only
         when more than one difficulty was evaluated
    """
    import matplotlib

    matplotlib.use("Agg")  # headless
    import matplotlib.pyplot as plt

    os.makedirs(output_dir, exist_ok=True)
    colors = {"landed": "#4CAF50", "crashed": "#F44336", "timeout": "#FFC107"}
    saved = []

    # --- Outcome counts ---
    fig, ax = plt.subplots(figsize=(6, 4))
    counts = {oc: int((df["outcome"] == oc).sum()) for oc in VALID_OUTCOMES}
    shown = {k: v for k, v in counts.items() if v > 0}
    bars = ax.bar(list(shown), list(shown.values()), color=[colors[k] for k in shown])
    for bar, count in zip(bars, shown.values()):
        ax.text(
            bar.get_x() + bar.get_width() / 2,
            bar.get_height() + 0.5,
            str(count),
            ha="center",
            va="bottom",
            fontweight="bold",
        )
    ax.set_ylabel("Episodes")
    ax.set_title(f"Autopilot outcomes (n={len(df)})")
    fig.tight_layout()
    path = os.path.join(output_dir, "outcome_counts.png")
    fig.savefig(path, dpi=150)
    plt.close(fig)
    saved.append(path)

    # --- Fuel used by outcome ---
    groups, labels, box_colors = [], [], []
    for oc in VALID_OUTCOMES:
        grp = df.loc[df["outcome"] == oc, "fuel_used"].tolist()
        if grp:
            groups.append(grp)
            labels.append(f"{oc}\n(n={len(grp)})")
            box_colors.append(colors[oc])
    if groups:
        fig, ax = plt.subplots(figsize=(7, 4))
        bp = ax.boxplot(groups, patch_artist=True)
        ax.set_xticks(range(1, len(labels) + 1))
        ax.set_xticklabels(labels)
        for patch, color in zip(bp["boxes"], box_colors):
            patch.set_facecolor(color)
            patch.set_alpha(0.6)
        ax.set_ylabel("Fuel used")
        ax.set_title("Fuel Used by Outcome")
        fig.tight_layout()
        path = os.path.join(output_dir, "fuel_by_outcome.png")
        fig.savefig(path, dpi=150)
        plt.close(fig)
        saved.append(path)

    # --- Per-difficulty breakdown ---
    per_difficulty = summarize_by_difficulty(df)
    if len(per_difficulty) > 1:
        fig, ax = plt.subplots(figsize=(8, 4))
        names = list(per_difficulty)
        x = np.arange(len(names))
        width = 0.25
        for i, oc in enumerate(VALID_OUTCOMES):
            pcts = [per_difficulty[n].get(f"{oc}_pct", 0.0) for n in names]
            ax.bar(x + (i - 1) * width, pcts, width, label=oc.title(), color=colors[oc])
        ax.set_xticks(x)
        ax.set_xticklabels(names)
        ax.set_ylabel("Percentage")
        ax.set_title("Outcome Rates by Difficulty")
        ax.set_ylim(0, 105)
        ax.legend()
        fig.tight_layout()
        path = os.path.join(output_dir, "difficulty_breakdown.png")
        fig.savefig(path, dpi=150)
        plt.close(fig)
        saved.append(path)

    return saved
