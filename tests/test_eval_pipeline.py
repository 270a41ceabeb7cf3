"""Integration test: batch autopilot evaluation.

Runs eval_autopilot.py end to end on a few headless episodes and checks
that metrics.csv, summary.json and the plots come out with the right
structure. Also covers the eval_utils helpers it is built on.
"""

import json
import subprocess
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from moonlander.src.env import PadLanderEnv
from moonlander.src.eval_utils import (
    VALID_OUTCOMES,
    compute_summary,
    evaluate_autopilot,
    plot_eval_summary,
    run_autopilot_episode,
    run_episode,
    summarize_by_difficulty,
)

EXPECTED_COLUMNS = [
    "difficulty",
    "seed",
    "outcome",
    "reasons",
    "steps",
    "sim_time",
    "fuel_start",
    "fuel_remaining",
    "fuel_used",
    "thrust_duty_cycle",
    "rotate_duty_cycle",
    "max_descent_speed",
    "pad_x1",
    "pad_x2",
    "pad_width",
    "landing_x_error",
    "touchdown_vx",
    "touchdown_vy",
    "touchdown_angle",
    "episode_idx",
]


def run_script(
    args: list[str], cwd: Path, timeout: int = 300
) -> subprocess.CompletedProcess:
    """Run a script as subprocess from the repo root."""
    result = subprocess.run(
        [sys.executable] + args,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    if result.returncode != 0:
        print(f"STDOUT:\n{result.stdout}")
        print(f"STDERR:\n{result.stderr}")
    return result


class TestEvalUtils:
    """In-process evaluation helpers."""

    def test_timeout_episode(self):
        m = run_autopilot_episode("easy", seed=0, max_steps=5)
        assert m["outcome"] == "timeout"
        assert m["steps"] == 5
        assert m["landing_x_error"] is None
        assert m["fuel_start"] == 300.0
        assert m["fuel_used"] == pytest.approx(m["fuel_start"] - m["fuel_remaining"])

    def test_full_episode_ends(self):
        m = run_autopilot_episode("normal", seed=1)
        assert m["outcome"] in ("landed", "crashed")
        assert m["fuel_remaining"] >= 0
        assert 0.0 <= m["thrust_duty_cycle"] <= 1.0
        assert m["landing_x_error"] is not None
        if m["outcome"] == "crashed":
            assert m["reasons"]

    def test_evaluate_and_summarize(self):
        df = evaluate_autopilot(["easy", "hard"], n_episodes=2, seed=0)
        assert len(df) == 4
        assert list(df.columns) == EXPECTED_COLUMNS
        assert set(df["outcome"]) <= set(VALID_OUTCOMES)

        summary = compute_summary(df)
        assert summary["n_episodes"] == 4
        total = sum(summary[f"{oc}_pct"] for oc in VALID_OUTCOMES)
        assert total == pytest.approx(100.0)

        by_diff = summarize_by_difficulty(df)
        assert list(by_diff) == ["easy", "hard"]
        assert by_diff["easy"]["n_episodes"] == 2

    def test_empty_summary(self):
        assert compute_summary(pd.DataFrame()) == {"n_episodes": 0}

    def test_plots(self, tmp_output):
        df = evaluate_autopilot(["easy", "normal"], n_episodes=2, max_steps=600)
        paths = plot_eval_summary(df, str(tmp_output))
        names = {Path(p).name for p in paths}
        assert {"outcome_counts.png", "fuel_by_outcome.png"} <= names
        assert "difficulty_breakdown.png" in names
        for p in paths:
            assert Path(p).stat().st_size > 0

    def test_run_episode_with_policy(self):
        env = PadLanderEnv(difficulty="easy")
        traj = run_episode(env, lambda obs: env.autopilot_action(), seed=4)
        n = traj["metadata"]["n_steps"]
        assert traj["states"].shape == (n + 1, 8)
        assert traj["actions"].shape == (n, 3)
        assert traj["rewards"].shape == (n,)
        assert traj["metadata"]["outcome"] in VALID_OUTCOMES
        assert traj["metadata"]["difficulty"] == "easy"
        assert np.isfinite(traj["metadata"]["total_reward"])


class TestEvalScript:
    """eval_autopilot.py end to end."""

    def test_writes_outputs(self, repo_root, tmp_output):
        result = run_script(
            [
                "moonlander/scripts/eval_autopilot.py",
                "--difficulties",
                "easy,normal",
                "--episodes",
                "2",
                "--seed",
                "7",
                "--output-dir",
                str(tmp_output),
                "--plot",
            ],
            cwd=repo_root,
        )
        assert result.returncode == 0, f"Eval failed:\n{result.stderr}"
        assert "Summary" in result.stdout

        df = pd.read_csv(tmp_output / "metrics.csv")
        assert len(df) == 4
        assert list(df.columns) == EXPECTED_COLUMNS
        assert list(df["seed"]) == [7, 8, 7, 8]

        with open(tmp_output / "summary.json") as f:
            summary = json.load(f)
        assert summary["overall"]["n_episodes"] == 4
        assert set(summary["by_difficulty"]) == {"easy", "normal"}
        assert summary["episodes_per_difficulty"] == 2
        assert (tmp_output / "outcome_counts.png").exists()

    def test_unknown_difficulty_fails(self, repo_root, tmp_output):
        result = run_script(
            [
                "moonlander/scripts/eval_autopilot.py",
                "--difficulties",
                "nightmare",
                "--output-dir",
                str(tmp_output),
            ],
            cwd=repo_root,
        )
        assert result.returncode == 1
        assert "ERROR" in result.stdout
        assert not (tmp_output / "metrics.csv").exists()

    def test_bad_episode_count_fails(self, repo_root, tmp_output):
        result = run_script(
            [
                "moonlander/scripts/eval_autopilot.py",
                "--episodes",
                "0",
                "--output-dir",
                str(tmp_output),
            ],
            cwd=repo_root,
        )
        assert result.returncode == 1
        assert "ERROR" in result.stdout
