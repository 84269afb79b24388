"""Tests for the grid configuration helpers in :mod:`models`."""

import pytest

from conftest import make_config
from models import GridConfig, GridConfigError, Period, WeeklyGrid, default_config
from solver import generate_timetable


def test_default_config_is_mon_to_fri_with_nine_periods():
    cfg = default_config()
    assert cfg.days == ["Mon", "Tue", "Wed", "Thu", "Fri"]
    assert [p.number for p in cfg.periods] == list(range(1, 10))
    assert cfg.periods[0].start == "07:00"
    assert cfg.periods[-1].end == "14:50"
    cfg.validate()


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"days": []}, "weekdays"),
        ({"periods": []}, "periods"),
        ({"max_lessons_per_subject_per_day": 0}, "cap"),
        ({"days": ["Mon", "Mon"]}, "repeats a weekday"),
        ({"periods": [Period(1), Period(1)]}, "repeats a period"),
    ],
)
def test_invalid_config_is_rejected(kwargs, message):
    with pytest.raises(GridConfigError) as excinfo:
        GridConfig(**kwargs).validate()
    assert message in str(excinfo.value)


def test_generate_refuses_empty_grid_before_scheduling():
    """An empty grid is a configuration error, not a pile of conflicts."""
    with pytest.raises(GridConfigError):
        generate_timetable([{"teacher": "Ana", "class": "6A", "subject": "Math", "lessons": 3}], GridConfig(days=[]))


def test_coordinates_follow_day_then_period_order():
    cfg = make_config(days=2, periods=3)
    assert cfg.coordinates() == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]


def test_day_and_period_lookup():
    cfg = make_config(days=5, periods=6)
    assert cfg.day_index("wed") == 2
    assert cfg.day_index(" Fri ") == 4
    assert cfg.day_index("Sat") is None
    assert cfg.period_index(6) == 5
    assert cfg.period_index(7) is None
    assert cfg.slot_label((1, 0)) == "Tue P1"


def test_empty_grid_has_one_cell_per_coordinate():
    cfg = make_config(days=3, periods=4)
    grid = WeeklyGrid.empty("6A", cfg)
    assert len(grid.cells) == 12
    assert all(cell.is_empty for cell in grid.cells.values())
    assert list(grid.occupied()) == []
