#!/usr/bin/env python
"""Batch-evaluate the pad lander autopilot across difficulties and seeds.

Flies N headless autopilot episodes per difficulty, writes one row per
episode to metrics.csv plus an aggregate summary.json, and prints a
summary table. Optionally saves summary plots.

Usage:
    # 50 episodes on each builtin difficulty
    python moonlander/scripts/eval_autopilot.py --episodes 50 \
        --output-dir /tmp/autopilot-eval

    # One custom preset, with plots
    python moonlander/scripts/eval_autopilot.py \
        --difficulties path/to/windy.yaml --episodes 20 \
        --output-dir /tmp/autopilot-eval --plot
"""

import os
import sys
import json
import argparse
from pathlib import Path

REPO_ROOT = str(Path(__file__).parent.parent.parent)
sys.path.insert(0, REPO_ROOT)

from moonlander.src.difficulty import DifficultyPreset, available_difficulties
from moonlander.src.eval_utils import (
    DEFAULT_MAX_STEPS,
    compute_summary,
    evaluate_autopilot,
    plot_eval_summary,
    summarize_by_difficulty,
)


def _print_summary(name: str, summary: dict) -> None:
    n = summary["n_episodes"]
    print(f"\n  [{name}] episodes: {n}")
    for oc in ("landed", "crashed", "timeout"):
        count = summary[f"n_{oc}"]
        if oc == "landed" or count > 0:
            print(f"    {oc.title():<9} {count}/{n} ({summary[f'{oc}_pct']:.0f}%)")
    print(f"    Mean steps:        {summary['mean_steps']:>8.1f}")
    print(f"    Mean fuel used:    {summary['mean_fuel_used']:>8.1f}")
    print(f"    Mean thrust duty:  {summary['mean_thrust_duty_cycle']:>8.2f}")
    if "mean_landing_x_error" in summary:
        print(f"    Mean |x error|:    {summary['mean_landing_x_error']:>8.1f} px")


def main():
    parser = argparse.ArgumentParser(
        description="Batch-evaluate the autopilot on headless episodes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--difficulties",
        type=str,
        default=None,
        help="Comma-separated preset names or YAML paths "
        "(default: all builtin presets)",
    )
    parser.add_argument(
        "--episodes", type=int, default=20, help="Episodes per difficulty"
    )
    parser.add_argument("--seed", type=int, default=0, help="Base session seed")
    parser.add_argument(
        "--max-steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help=f"Tick budget per episode (default: {DEFAULT_MAX_STEPS})",
    )
    parser.add_argument(
        "--output-dir", type=str, required=True, help="Directory for outputs"
    )
    parser.add_argument(
        "--plot", action="store_true", help="Also save summary plots (PNG)"
    )

    args = parser.parse_args()

    if args.episodes <= 0:
        print(f"ERROR: --episodes must be positive, got {args.episodes}")
        sys.exit(1)

    if args.difficulties:
        names = [d.strip() for d in args.difficulties.split(",") if d.strip()]
    else:
        names = available_difficulties()

    # Fail fast on bad preset names before flying anything.
    for name in names:
        try:
            preset = DifficultyPreset.load(name)
        except (FileNotFoundError, ValueError) as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        print(f"  {preset.describe()}")

    print(
        f"Evaluating autopilot: {args.episodes} episodes x {len(names)} "
        f"difficulties (seed {args.seed})"
    )
    df = evaluate_autopilot(
        names, args.episodes, seed=args.seed, max_steps=args.max_steps
    )

    os.makedirs(args.output_dir, exist_ok=True)
    csv_path = os.path.join(args.output_dir, "metrics.csv")
    df.to_csv(csv_path, index=False)
    print(f"\nSaved {len(df)} rows to {csv_path}")

    summary = {
        "overall": compute_summary(df),
        "by_difficulty": summarize_by_difficulty(df),
        "episodes_per_difficulty": args.episodes,
        "seed": args.seed,
        "max_steps": args.max_steps,
    }
    summary_path = os.path.join(args.output_dir, "summary.json")
    with open(summary_path, "w") as f:
        json.dump(summary, f, indent=2)

    print(f"\n{'='*60}")
    print("Summary")
    print(f"{'='*60}")
    for name, s in summary["by_difficulty"].items():
        _print_summary(name, s)

    if args.plot:
        paths = plot_eval_summary(df, args.output_dir)
        print(f"\n  Saved {len(paths)} plots to {args.output_dir}/")

    print("\nDone.")


if __name__ == "__main__":
    main()
