"""Procedural terrain for the pad lander.

The ground is a 1-D piecewise-linear heightfield: SEGMENTS + 1 evenly
spaced samples across the world width, with one run of consecutive
samples flattened into a landing pad. Screen coordinates, y DOWN, so a
larger y is lower ground.

Generation, in order:
  1. Rough samples: y = lerp(min_y, max_y, u * 0.88) keeps the ground off
     the bottom margin.
  2. Pad centre index from the placement option (explicit x, fractional
     range, or a random spot in the middle third).
  3. Pad height lerp(min_y, max_y, 0.7..0.9) so pads sit on low plateaus.
  4. Flatten the pad samples, then clamp the sample just outside each pad
     edge to [pad_y - PAD_RISE, pad_y + PAD_DROP] so there is no wall
     next to the pad.

Height lookup buckets x straight into its segment index (the samples are
evenly spaced) and evaluates the precomputed slope, so it is O(1).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


SEGMENTS = 22  # number of segments across the world width
BOTTOM_MARGIN = 40.0
MIN_Y_FRAC = 0.45  # highest ground sits at 45% of the world height
ROUGHNESS_SPAN = 0.88

PAD_Y_FRAC = (0.7, 0.9)
PAD_RISE = 20.0  # neighbour may sit at most this much above the pad
PAD_DROP = 30.0  # neighbour may sit at most this much below the pad


@dataclass(frozen=True)
class Segment:
    x1: float
    y1: float
    x2: float
    y2: float
    slope: float


@dataclass(frozen=True)
class Pad:
    """The flat landing target. x1 < x2, both on sample points."""

    x1: float
    x2: float
    y: float
    start_idx: int
    end_idx: int

    @property
    def center(self) -> float:
        return 0.5 * (self.x1 + self.x2)

    @property
    def half_width(self) -> float:
        return 0.5 * (self.x2 - self.x1)

    def to_dict(self) -> dict:
        return {"x1": self.x1, "x2": self.x2, "y": self.y}


@dataclass(frozen=True, eq=False)
class Terrain:
    """Immutable heightfield for one episode.

    Attributes:
        width: World width in px. Heights are defined on [0, width).
        height: World height in px.
        points: (N, 2) read-only float array of (x, y) samples, x ascending.
        segments: N - 1 segments between consecutive samples.
        pad: The flattened landing pad.
    """

    width: float
    height: float
    points: np.ndarray
    segments: tuple[Segment, ...]
    pad: Pad


@dataclass(frozen=True)
class TerrainOptions:
    """Pad placement and size.

    At most one of pad_center_x / pad_range_frac should be set. If both
    are, the explicit centre wins. If neither, the pad lands somewhere in
    the middle third of the map.
    """

    pad_segments: int | None = None
    pad_center_x: float | None = None
    pad_range_frac: tuple[float, float] | None = None


def _clamp(v, lo, hi):
    return max(lo, min(hi, v))


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def build_terrain(
    points,
    pad_start: int,
    pad_end: int,
    width: float,
    height: float,
) -> Terrain:
    """Build a Terrain from explicit samples.

    The samples between pad_start and pad_end (inclusive) must already be
    flat; the pad height is read from pad_start.

    Args:
        points: Sequence of (x, y) pairs, x ascending and evenly spaced.
        pad_start: Index of the first pad sample.
        pad_end: Index of the last pad sample, > pad_start.
        width: World width.
        height: World height.
    """
    pts = np.array(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2 or len(pts) < 2:
        raise ValueError(f"points must be (N>=2, 2), got shape {pts.shape}")
    if not (0 <= pad_start < pad_end < len(pts)):
        raise ValueError(
            f"pad range [{pad_start}, {pad_end}] invalid for {len(pts)} points"
        )
    pts.flags.writeable = False

    segments = []
    for i in range(len(pts) - 1):
        x1, y1 = pts[i]
        x2, y2 = pts[i + 1]
        segments.append(
            Segment(
                x1=float(x1),
                y1=float(y1),
                x2=float(x2),
                y2=float(y2),
                slope=float((y2 - y1) / (x2 - x1)),
            )
        )

    pad = Pad(
        x1=float(pts[pad_start, 0]),
        x2=float(pts[pad_end, 0]),
        y=float(pts[pad_start, 1]),
        start_idx=pad_start,
        end_idx=pad_end,
    )
    return Terrain(
        width=float(width),
        height=float(height),
        points=pts,
        segments=tuple(segments),
        pad=pad,
    )


def _pad_center_index(
    options: TerrainOptions, step: float, rng: np.random.Generator
) -> int:
    if options.pad_center_x is not None:
        # Halves round up.
        idx = math.floor(options.pad_center_x / step + 0.5)
        return _clamp(idx, 1, SEGMENTS - 1)

    if options.pad_range_frac is not None:
        fmin = _clamp(options.pad_range_frac[0] or 0.0, 0.0, 1.0)
        fmax = _clamp(options.pad_range_frac[1] or 1.0, 0.0, 1.0)
        imin = math.floor(fmin * SEGMENTS)
        imax = max(imin + 1, math.floor(fmax * SEGMENTS))
        idx = math.floor(imin + rng.random() * (imax - imin))
        return _clamp(idx, 1, SEGMENTS - 1)

    return math.floor(SEGMENTS * (0.35 + rng.random() * 0.3))


def generate_terrain(
    width: float,
    height: float,
    options: TerrainOptions | None = None,
    rng: np.random.Generator | None = None,
) -> Terrain:
    """Generate a random heightfield with a flat pad.

    All option values are clamped rather than rejected: pad width ends up
    in [1, SEGMENTS - 2] segments and the pad never starts on the first
    sample. A pad pushed against the right edge may come out narrower.

    Args:
        width: World width in px.
        height: World height in px.
        options: Pad placement and width. None = random defaults.
        rng: NumPy generator. Pass np.random.default_rng(seed) for
            reproducible terrain.
    """
    if options is None:
        options = TerrainOptions()
    if rng is None:
        rng = np.random.default_rng()

    min_y = height * MIN_Y_FRAC
    max_y = height - BOTTOM_MARGIN
    step = width / SEGMENTS

    xs = [i * step for i in range(SEGMENTS + 1)]
    ys = [_lerp(min_y, max_y, rng.random() * ROUGHNESS_SPAN) for _ in xs]

    if options.pad_segments is not None:
        desired = int(options.pad_segments)
    else:
        desired = 3 + int(rng.integers(0, 2))
    pad_segments = _clamp(desired, 1, SEGMENTS - 2)

    center_idx = _pad_center_index(options, step, rng)
    lo_frac, hi_frac = PAD_Y_FRAC
    pad_y = _lerp(min_y, max_y, lo_frac + rng.random() * (hi_frac - lo_frac))

    n = len(xs)
    start = _clamp(center_idx - pad_segments // 2, 1, n - 2)
    end = _clamp(start + pad_segments, start + 1, n - 1)

    for i in range(start, end + 1):
        ys[i] = pad_y

    if start - 1 >= 0:
        ys[start - 1] = _clamp(ys[start - 1], pad_y - PAD_RISE, pad_y + PAD_DROP)
    if end + 1 < n:
        ys[end + 1] = _clamp(ys[end + 1], pad_y - PAD_RISE, pad_y + PAD_DROP)

    return build_terrain(list(zip(xs, ys)), start, end, width, height)


def height_at(terrain: Terrain, x: float) -> float:
    """Ground height (screen y) under world x.

    x is clamped to [0, width - 1]; any x maps to a defined height.
    Continuous at segment boundaries because neighbouring segments share
    their endpoint samples.
    """
    segs = terrain.segments
    xi = _clamp(x, 0.0, terrain.width - 1)
    idx = min(int(xi / terrain.width * len(segs)), len(segs) - 1)
    s = segs[idx]
    return s.y1 + s.slope * (xi - s.x1)


def altitude(terrain: Terrain, x: float, bottom_y: float) -> float:
    """Clearance between a body's lowest point and the ground, floored at 0."""
    return max(0.0, height_at(terrain, x) - bottom_y)


def segment_tuples(terrain: Terrain) -> list[tuple[float, float, float, float]]:
    """Terrain as (x1, y1, x2, y2) tuples, for info dicts and renderers."""
    return [(s.x1, s.y1, s.x2, s.y2) for s in terrain.segments]
