"""Shared fixtures for unit and integration tests."""

import pytest
from pathlib import Path

from moonlander.src.physics_config import AutopilotTuning, PhysicsParams
from moonlander.src.terrain import build_terrain

# Flat test world: 22 segments of 40 px, ground at y = 500 everywhere,
# pad on samples 10..14 (x 400..560, centre 480).
FLAT_WIDTH = 880.0
FLAT_HEIGHT = 600.0
FLAT_GROUND_Y = 500.0
FLAT_PAD_START = 10
FLAT_PAD_END = 14


@pytest.fixture
def repo_root():
    """Return the repo root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_output(tmp_path):
    """Return a clean temporary output directory."""
    return tmp_path / "test_output"


@pytest.fixture
def flat_terrain():
    """Level ground with a known pad, for hand-placed vehicles."""
    points = [(i * 40.0, FLAT_GROUND_Y) for i in range(23)]
    return build_terrain(
        points, FLAT_PAD_START, FLAT_PAD_END, FLAT_WIDTH, FLAT_HEIGHT
    )


@pytest.fixture
def params():
    return PhysicsParams()


@pytest.fixture
def tuning():
    return AutopilotTuning()
