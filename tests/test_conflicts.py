"""Tests for the conflict analyzer and its reason codes."""

from availability import TeacherOccupancy, build_availability
from conflicts import (
    CLASS_EXHAUSTED,
    DAILY_CAP,
    NO_COMMON_SLOT,
    REASON_MESSAGES,
    TEACHER_EXHAUSTED,
    analyze_conflicts,
    explain_shortfall,
    reason_message,
)
from conftest import make_config
from models import Block, BlockScope, CellState, Demand, WeeklyGrid
from solver import generate_timetable


def test_every_reason_has_a_message():
    for code in (TEACHER_EXHAUSTED, CLASS_EXHAUSTED, NO_COMMON_SLOT, DAILY_CAP):
        assert reason_message(code) == REASON_MESSAGES[code]
    assert reason_message(TEACHER_EXHAUSTED).startswith("Teacher availability exhausted")
    assert reason_message("something_else") == "something_else"


def test_full_class_reports_class_exhausted():
    cfg = make_config(days=1, periods=1)
    result = generate_timetable(
        [
            {"teacher": "Zeca", "class": "6A", "subject": "Art", "lessons": 1},
            {"teacher": "Ana", "class": "6A", "subject": "Math", "lessons": 1},
        ],
        cfg,
    )
    [conflict] = result.analysis.conflicts
    assert conflict.demand.teacher_id == "Zeca"
    assert conflict.reasons == [CLASS_EXHAUSTED]
    assert conflict.suggestions == []


def test_both_sides_free_but_never_together():
    cfg = make_config(days=1, periods=2)
    availability = build_availability(cfg, [
        Block(BlockScope.CLASS, "Mon", [1], target="6A"),
        Block(BlockScope.TEACHER, "Mon", [2], target="Ana"),
    ])
    grid = WeeklyGrid.empty("6A", cfg)
    grid.cell((0, 0)).state = CellState.BLOCKED
    demand = Demand("Ana", "6A", "Math", 1)

    reasons = explain_shortfall(demand, grid, TeacherOccupancy(), availability, cfg)
    assert reasons == [TEACHER_EXHAUSTED, NO_COMMON_SLOT]


def test_nothing_left_on_either_side_lists_both():
    cfg = make_config(days=1, periods=1)
    availability = build_availability(cfg)
    grid = WeeklyGrid.empty("6A", cfg)
    cell = grid.cell((0, 0))
    cell.state, cell.teacher_id, cell.subject = CellState.OCCUPIED, "Ana", "Math"
    occupancy = TeacherOccupancy()
    occupancy.occupy("Ana", (0, 0), "6A")

    reasons = explain_shortfall(Demand("Ana", "6A", "Math", 2), grid, occupancy, availability, cfg)
    assert reasons == [TEACHER_EXHAUSTED, CLASS_EXHAUSTED]


def test_common_free_slot_means_daily_cap():
    cfg = make_config(days=1, periods=3)
    availability = build_availability(cfg)
    grid = WeeklyGrid.empty("6A", cfg)
    reasons = explain_shortfall(Demand("Ana", "6A", "Math", 3), grid, TeacherOccupancy(), availability, cfg)
    assert reasons == [DAILY_CAP]


def test_fully_placed_demands_are_not_reported():
    cfg = make_config(days=1, periods=2)
    availability = build_availability(cfg)
    demands = [Demand("Ana", "6A", "Math", 1), Demand("Bia", "6A", "Art", 2)]
    grids = {"6A": WeeklyGrid.empty("6A", cfg)}
    analysis = analyze_conflicts(demands, [1, 1], grids, TeacherOccupancy(), availability, cfg)
    assert [c.demand.teacher_id for c in analysis.conflicts] == ["Bia"]
    assert analysis.conflicts[0].required == 2
    assert analysis.conflicts[0].shortfall == 1
    assert analysis.unplaced_lessons == 1
