"""Tests for the block merging done by :mod:`availability`."""

import pytest

from availability import TeacherOccupancy, build_availability
from conftest import make_config
from models import AreaBlock, Block, BlockScope, KnowledgeArea


def test_general_block_applies_to_every_class(config):
    av = build_availability(config, [Block(BlockScope.GENERAL, "Mon", [1, 2], reason="Assembly")])
    assert av.class_blocked("6A", 0, 0)
    assert av.class_blocked("7B", 0, 1)
    assert not av.class_blocked("6A", 0, 2)
    assert not av.teacher_blocked("Ana", 0, 0)
    assert av.class_block_reason("7B", (0, 0)) == "Assembly"


def test_class_block_only_hits_its_class(config):
    av = build_availability(config, [Block(BlockScope.CLASS, "Tue", [3], target="6A")])
    assert av.class_blocked("6A", 1, 2)
    assert not av.class_blocked("7B", 1, 2)
    assert av.class_block_reason("6A", (1, 2)) == "Class block"


def test_teacher_block_only_hits_its_teacher(config):
    av = build_availability(config, [Block(BlockScope.TEACHER, "Wed", [1], target="Carlos", reason="Course")])
    assert av.teacher_blocked("Carlos", 2, 0)
    assert not av.teacher_blocked("Ana", 2, 0)
    assert not av.class_blocked("6A", 2, 0)
    assert av.teacher_block_reason("Carlos", (2, 0)) == "Course"


def test_area_block_applies_to_every_member(config):
    areas = [KnowledgeArea("exact", "Exact Sciences", ["Ana", "Carlos"])]
    av = build_availability(config, [], areas, [AreaBlock("exact", "Fri", [1], reason="Planning")])
    assert av.teacher_blocked("Ana", 4, 0)
    assert av.teacher_blocked("Carlos", 4, 0)
    assert not av.teacher_blocked("Bia", 4, 0)
    assert av.teacher_block_reason("Ana", (4, 0)) == "Planning"


def test_area_without_members_blocks_nobody(config):
    areas = [KnowledgeArea("languages", "Languages", [])]
    av = build_availability(config, [], areas, [AreaBlock("languages", "Mon", [1])])
    assert not av.teacher_blocked("Ana", 0, 0)
    # Block for an area that does not exist at all
    av = build_availability(config, [], [], [AreaBlock("ghost", "Mon", [1])])
    assert not av.teacher_blocked("Ana", 0, 0)


def test_unknown_day_or_period_is_ignored(config):
    av = build_availability(config, [
        Block(BlockScope.GENERAL, "Sun", [1]),
        Block(BlockScope.GENERAL, "Mon", [42, 2]),
    ])
    assert av.class_free("6A") == set(config.coordinates()) - {(0, 1)}


def test_unknown_scope_and_missing_target_are_ignored(config):
    av = build_availability(config, [
        Block("room", "Mon", [1], target="Lab"),
        Block(BlockScope.CLASS, "Mon", [1]),
    ])
    assert not av.class_blocked("6A", 0, 0)
    assert len(av.pair_free("Ana", "6A")) == len(config.coordinates())


def test_first_block_reason_wins(config):
    av = build_availability(config, [
        Block(BlockScope.GENERAL, "Mon", [1], reason="Assembly"),
        Block(BlockScope.CLASS, "Mon", [1], target="6A", reason="Trip"),
    ])
    assert av.class_block_reason("6A", (0, 0)) == "Assembly"


def test_day_names_are_case_insensitive(config):
    av = build_availability(config, [Block(BlockScope.TEACHER, "thu", [2], target="Ana")])
    assert av.teacher_blocked("Ana", 3, 1)


def test_pair_free_excludes_both_sides():
    cfg = make_config(days=1, periods=3)
    av = build_availability(cfg, [
        Block(BlockScope.CLASS, "Mon", [1], target="6A"),
        Block(BlockScope.TEACHER, "Mon", [3], target="Ana"),
    ])
    assert av.pair_free("Ana", "6A") == [(0, 1)]


def test_teacher_occupancy_refuses_double_booking():
    occ = TeacherOccupancy()
    occ.occupy("Ana", (0, 0), "6A")
    assert occ.is_busy("Ana", (0, 0))
    assert not occ.is_busy("Ana", (0, 1))
    assert occ.busy_slots("Ana") == {(0, 0)}
    with pytest.raises(ValueError):
        occ.occupy("Ana", (0, 0), "7B")


def test_block_targets_and_area_members_are_trimmed(config):
    av = build_availability(
        config,
        [
            Block(BlockScope.TEACHER, "Mon", [1], target="Ana "),
            Block(BlockScope.CLASS, "Mon", [2], target=" 6A"),
        ],
        [KnowledgeArea("exact ", "Exact Sciences", [" Carlos", "Carlos  ", "  "])],
        [AreaBlock("exact", "Tue", [1])],
    )
    assert av.teacher_blocked("Ana", 0, 0)
    assert av.class_blocked("6A", 0, 1)
    assert av.teacher_blocked("Carlos", 1, 0)
    assert not av.teacher_blocked("", 1, 0)
