"""Shared helpers for the timetable tests.

The modules live at the project root, so the root is put on ``sys.path``
before any test imports them.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from models import DEFAULT_DAYS, Demand, GridConfig, Period


def make_config(days=5, periods=6, **kwargs):
    """Grid with the first ``days`` weekdays and periods numbered 1..periods."""
    return GridConfig(
        days=list(DEFAULT_DAYS[:days]),
        periods=[Period(i + 1, f"{7 + i:02d}:00", f"{7 + i:02d}:50") for i in range(periods)],
        **kwargs,
    )


def all_periods(config):
    return [p.number for p in config.periods]


def lessons_of(grid, teacher=None, subject=None):
    """Coordinates of occupied cells in a grid, optionally filtered."""
    return [
        coord for coord, cell in grid.occupied()
        if (teacher is None or cell.teacher_id == teacher)
        and (subject is None or cell.subject == subject)
    ]


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def ana_math():
    return Demand("Ana", "6A", "Math", 3)
