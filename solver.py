"""
TIMETABLE SOLVER
================
Puts every lesson into the weekly grid, one lesson at a time.
Rules:
1. A teacher can't be in two classes at once.
2. A class can't have two lessons at once.
3. Blocked slots stay empty.
4. One subject shouldn't pile up on one day (daily cap), and its lessons
   should spread across different days.

This is a one-pass greedy placement: the hardest demands go first, and once a
lesson is placed it stays there. Anything that doesn't fit is reported by the
conflict analyzer, with swap suggestions, instead of failing the whole run.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from availability import Availability, TeacherOccupancy, build_availability, is_slot_free
from conflicts import analyze_conflicts
from demands import normalize_demands
from models import (
    AreaBlock,
    Block,
    CellState,
    Coordinate,
    Demand,
    GridConfig,
    KnowledgeArea,
    ScheduleResult,
    WeeklyGrid,
)
from swaps import suggest_swaps

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# GRIDS
# ---------------------------------------------------------------------------


def build_empty_grids(
    class_ids: Iterable[str],
    config: GridConfig,
    availability: Availability,
) -> Dict[str, WeeklyGrid]:
    """One grid per class, blocked cells already marked with their reason."""
    grids: Dict[str, WeeklyGrid] = {}
    for class_id in class_ids:
        if class_id in grids:
            continue
        grid = WeeklyGrid.empty(class_id, config)
        for coord, cell in grid.cells.items():
            reason = availability.class_block_reason(class_id, coord)
            if reason is not None:
                cell.state = CellState.BLOCKED
                cell.reason = reason
        grids[class_id] = grid
    return grids


# ---------------------------------------------------------------------------
# ORDERING: most constrained first
# ---------------------------------------------------------------------------


def scarcity(demand: Demand, availability: Availability) -> float:
    """Lessons needed per slot open to this teacher+class. No slots = infinite."""
    free = len(availability.pair_free(demand.teacher_id, demand.class_id))
    if free == 0:
        return math.inf
    return demand.weekly_periods / free


def order_demands(demands: Sequence[Demand], availability: Availability) -> List[int]:
    """
    Indices of demands in placement order: scarcity descending, then teacher,
    class and subject. Stable, so repeated triples keep their input order.
    """
    keys = {i: scarcity(dm, availability) for i, dm in enumerate(demands)}
    return sorted(
        range(len(demands)),
        key=lambda i: (-keys[i], demands[i].teacher_id, demands[i].class_id, demands[i].subject),
    )


# ---------------------------------------------------------------------------
# PLACEMENT
# ---------------------------------------------------------------------------


def choose_slot(
    demand: Demand,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
    subject_day_counts: Dict[Tuple[str, str, int], int],
) -> Tuple[Optional[Coordinate], bool]:
    """
    Pick the next slot for one lesson of demand.
    Returns (coord, relaxed). coord is None when nothing is left; relaxed is
    True when the only option was a day already at the daily cap.
    """
    cap = config.max_lessons_per_subject_per_day
    # (lessons of this subject already that day, day_idx, earliest free period)
    within_cap = []
    over_cap = []
    for d in range(config.num_days):
        first = None
        for p in range(config.num_periods):
            if is_slot_free(demand, (d, p), grid, occupancy, availability):
                first = p
                break
        if first is None:
            continue
        count = subject_day_counts.get((demand.class_id, demand.subject, d), 0)
        candidate = (count, d, first)
        if count < cap:
            within_cap.append(candidate)
        else:
            over_cap.append(candidate)

    if within_cap:
        _, d, p = min(within_cap)
        return (d, p), False
    if over_cap and config.relax_daily_cap:
        _, d, p = min(over_cap)
        return (d, p), True
    return None, False


def place_lesson(
    demand: Demand,
    coord: Coordinate,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    subject_day_counts: Dict[Tuple[str, str, int], int],
) -> None:
    cell = grid.cell(coord)
    cell.state = CellState.OCCUPIED
    cell.teacher_id = demand.teacher_id
    cell.subject = demand.subject
    cell.reason = ""
    occupancy.occupy(demand.teacher_id, coord, demand.class_id)
    key = (demand.class_id, demand.subject, coord[0])
    subject_day_counts[key] = subject_day_counts.get(key, 0) + 1


def schedule_demands(
    demands: Sequence[Demand],
    config: GridConfig,
    availability: Availability,
    occupancy: TeacherOccupancy,
    class_ids: Iterable[str] = (),
) -> Tuple[Dict[str, WeeklyGrid], List[int], int]:
    """
    Place all demands into fresh grids, recording teacher slots in occupancy.
    Returns (grids, placed count per demand, number of cap-relaxed placements).
    """
    all_classes = list(class_ids) + [dm.class_id for dm in demands]
    grids = build_empty_grids(all_classes, config, availability)
    placed = [0] * len(demands)
    relaxed = 0
    subject_day_counts: Dict[Tuple[str, str, int], int] = {}

    for i in order_demands(demands, availability):
        demand = demands[i]
        grid = grids[demand.class_id]
        while placed[i] < demand.weekly_periods:
            coord, over_cap = choose_slot(demand, grid, occupancy, availability, config, subject_day_counts)
            if coord is None:
                logger.debug(
                    "No slot left for %s/%s/%s after %d of %d lessons",
                    demand.teacher_id, demand.class_id, demand.subject, placed[i], demand.weekly_periods,
                )
                break
            place_lesson(demand, coord, grid, occupancy, subject_day_counts)
            placed[i] += 1
            if over_cap:
                relaxed += 1
                logger.debug(
                    "Relaxed daily cap for %s in %s on %s",
                    demand.subject, demand.class_id, config.days[coord[0]],
                )
    return grids, placed, relaxed


def generate_timetable(
    records: Iterable,
    config: GridConfig,
    blocks: Iterable[Block] = (),
    areas: Iterable[KnowledgeArea] = (),
    area_blocks: Iterable[AreaBlock] = (),
    class_ids: Iterable[str] = (),
) -> ScheduleResult:
    """
    Full run: normalize -> availability -> schedule -> conflicts -> swaps.
    Raises GridConfigError before doing anything if the grid is unusable.
    class_ids adds classes that should get a grid even without demands.
    """
    config.validate()
    demands = normalize_demands(records)
    availability = build_availability(config, blocks, areas, area_blocks)
    occupancy = TeacherOccupancy()
    grids, placed, relaxed = schedule_demands(demands, config, availability, occupancy, class_ids)
    analysis = analyze_conflicts(demands, placed, grids, occupancy, availability, config)
    suggest_swaps(analysis, grids, occupancy, availability, config)

    logger.info(
        "Timetable generated: %d classes, %d/%d lessons placed, %d conflicts, %d cap relaxations",
        len(grids), sum(placed), sum(dm.weekly_periods for dm in demands),
        analysis.total_conflicts, relaxed,
    )
    return ScheduleResult(
        config=config,
        demands=demands,
        grids=grids,
        placed=placed,
        analysis=analysis,
        relaxed_placements=relaxed,
    )


def invert_to_teacher_timetable(
    grids: Dict[str, WeeklyGrid],
) -> Dict[str, Dict[Coordinate, Tuple[str, str]]]:
    """
    "Inverts" the class grids: for each teacher, (day, period) -> (class, subject).
    Like flipping a class schedule to see it from the teacher's perspective.
    """
    teacher_schedules: Dict[str, Dict[Coordinate, Tuple[str, str]]] = {}
    for class_id in sorted(grids):
        for coord, cell in grids[class_id].occupied():
            teacher_schedules.setdefault(cell.teacher_id, {})[coord] = (class_id, cell.subject)
    return {t: teacher_schedules[t] for t in sorted(teacher_schedules)}
