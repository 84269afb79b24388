"""
SWAP SUGGESTIONS
================
For each conflict, look for one lesson in the same class that could move to
another free slot, so that the slot it leaves behind fits the lesson that
didn't get placed.

Nothing is moved here. Suggestions are advice for a person to apply by hand,
and a conflict with no suggestion is a normal outcome.
"""

import logging
from typing import Dict, List, Optional

from availability import Availability, TeacherOccupancy
from models import (
    ConflictAnalysis,
    ConflictRecord,
    Coordinate,
    GridConfig,
    ScheduleCell,
    SlotRef,
    SwapSuggestion,
    WeeklyGrid,
)

logger = logging.getLogger(__name__)


def _count_after_move(
    grid: WeeklyGrid,
    subject: str,
    day: int,
    origin: Coordinate,
    destination: Coordinate,
    added_subject: Optional[str],
) -> int:
    """
    Lessons of subject on day once the lesson at origin sits at destination
    and added_subject (if any) takes the origin cell.
    """
    count = grid.count_subject_on_day(subject, day)
    if grid.cell(origin).subject == subject:
        if origin[0] == day:
            count -= 1
        if destination[0] == day:
            count += 1
    if added_subject == subject and origin[0] == day:
        count += 1
    return count


def origin_fits_conflict(
    conflict: ConflictRecord,
    coord: Coordinate,
    cell: ScheduleCell,
    occupancy: TeacherOccupancy,
    availability: Availability,
) -> bool:
    """Would the conflicted teacher be free at coord once the lesson there moves away?"""
    demand = conflict.demand
    if cell.teacher_id == demand.teacher_id:
        return False
    if availability.teacher_blocked(demand.teacher_id, *coord):
        return False
    return not occupancy.is_busy(demand.teacher_id, coord)


def find_destination(
    conflict: ConflictRecord,
    origin: Coordinate,
    cell: ScheduleCell,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
) -> Optional[Coordinate]:
    """
    First slot (grid order) where the lesson at origin could legally go
    instead. The moved subject must stay within the daily cap after the move;
    so must the conflicted subject, unless the cap may be relaxed.
    """
    cap = config.max_lessons_per_subject_per_day
    added = None if config.relax_daily_cap else conflict.demand.subject
    for coord in config.coordinates():
        if coord == origin:
            continue
        if not grid.cell(coord).is_empty:
            continue
        if availability.class_blocked(grid.class_id, *coord):
            continue
        if availability.teacher_blocked(cell.teacher_id, *coord):
            continue
        if occupancy.is_busy(cell.teacher_id, coord):
            continue
        if _count_after_move(grid, cell.subject, coord[0], origin, coord, added) > cap:
            continue
        if added is not None and _count_after_move(grid, added, origin[0], origin, coord, added) > cap:
            continue
        return coord
    return None


def suggestions_for_conflict(
    conflict: ConflictRecord,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
) -> List[SwapSuggestion]:
    demand = conflict.demand
    found: List[SwapSuggestion] = []
    for origin, cell in grid.occupied():
        if len(found) >= config.max_suggestions:
            break
        if not origin_fits_conflict(conflict, origin, cell, occupancy, availability):
            continue
        destination = find_destination(conflict, origin, cell, grid, occupancy, availability, config)
        if destination is None:
            continue
        rationale = (
            f"Move {cell.subject} ({cell.teacher_id}) from {config.slot_label(origin)} "
            f"to {config.slot_label(destination)} to free {config.slot_label(origin)} "
            f"for {demand.subject} ({demand.teacher_id})"
        )
        found.append(SwapSuggestion(
            origin=SlotRef(grid.class_id, *origin),
            teacher_id=cell.teacher_id,
            subject=cell.subject,
            destination=SlotRef(grid.class_id, *destination),
            rationale=rationale,
        ))
    return found


def suggest_swaps(
    analysis: ConflictAnalysis,
    grids: Dict[str, WeeklyGrid],
    occupancy: TeacherOccupancy,
    availability: Availability,
    config: GridConfig,
) -> ConflictAnalysis:
    """Fill in suggestions on every conflict of analysis (in place) and return it."""
    if config.max_suggestions <= 0:
        return analysis
    for conflict in analysis.conflicts:
        grid = grids[conflict.demand.class_id]
        conflict.suggestions = suggestions_for_conflict(conflict, grid, occupancy, availability, config)
        if not conflict.suggestions:
            logger.debug(
                "No single-move repair for %s/%s/%s",
                conflict.demand.teacher_id, conflict.demand.class_id, conflict.demand.subject,
            )
    return analysis
