"""
CONFLICT ANALYZER
=================
Compares what each demand asked for with what the solver managed to place,
and explains every shortfall from the final grid:

- Is there still a slot where both the teacher and the class are free?
  Then the daily subject cap was what stopped the placement.
- Otherwise, whichever side (teacher or class) has the larger share of the
  week already used up is the one reported as exhausted first.
"""

import logging
from typing import Dict, List, Sequence, Set

from availability import Availability, TeacherOccupancy
from models import ConflictAnalysis, ConflictRecord, Coordinate, Demand, GridConfig, WeeklyGrid

logger = logging.getLogger(__name__)

TEACHER_EXHAUSTED = "teacher_availability_exhausted"
CLASS_EXHAUSTED = "class_availability_exhausted"
NO_COMMON_SLOT = "no_common_free_slot"
DAILY_CAP = "daily_subject_cap"

REASON_MESSAGES = {
    TEACHER_EXHAUSTED: "Teacher availability exhausted: the teacher has no remaining free slot compatible with this class.",
    CLASS_EXHAUSTED: "Class availability exhausted: the class has no remaining free slot.",
    NO_COMMON_SLOT: "Teacher and class still have free slots, but never at the same time.",
    DAILY_CAP: "The daily limit for this subject prevented further placement this week.",
}


def reason_message(code: str) -> str:
    return REASON_MESSAGES.get(code, code)


def teacher_free_slots(
    teacher_id: str,
    occupancy: TeacherOccupancy,
    availability: Availability,
) -> Set[Coordinate]:
    busy = occupancy.busy_slots(teacher_id)
    return {c for c in availability.teacher_free(teacher_id) if c not in busy}


def class_free_slots(grid: WeeklyGrid, availability: Availability) -> Set[Coordinate]:
    return {
        c for c in availability.class_free(grid.class_id)
        if grid.cell(c).is_empty
    }


def explain_shortfall(
    demand: Demand,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
) -> List[str]:
    """Reason codes for a demand that is still short, most important first."""
    total = len(config.coordinates())
    teacher_free = teacher_free_slots(demand.teacher_id, occupancy, availability)
    class_free = class_free_slots(grid, availability)

    if teacher_free & class_free:
        return [DAILY_CAP]

    teacher_used = 1 - len(teacher_free) / total
    class_used = 1 - len(class_free) / total
    if teacher_used >= class_used:
        reasons = [TEACHER_EXHAUSTED]
        if not class_free:
            reasons.append(CLASS_EXHAUSTED)
    else:
        reasons = [CLASS_EXHAUSTED]
        if not teacher_free:
            reasons.append(TEACHER_EXHAUSTED)
    if teacher_free and class_free:
        reasons.append(NO_COMMON_SLOT)
    return reasons


def analyze_conflicts(
    demands: Sequence[Demand],
    placed: Sequence[int],
    grids: Dict[str, WeeklyGrid],
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
) -> ConflictAnalysis:
    """One ConflictRecord per demand that got fewer lessons than it asked for, in demand order."""
    analysis = ConflictAnalysis()
    for demand, count in zip(demands, placed):
        if count >= demand.weekly_periods:
            continue
        reasons = explain_shortfall(demand, grids[demand.class_id], occupancy, availability, config)
        analysis.conflicts.append(ConflictRecord(demand=demand, placed=count, reasons=reasons))
        logger.debug(
            "Conflict %s/%s/%s: %d of %d placed (%s)",
            demand.teacher_id, demand.class_id, demand.subject, count, demand.weekly_periods, ", ".join(reasons),
        )
    return analysis
