"""
AVAILABILITY ENGINE
===================
Merges every kind of block into two questions the scheduler can ask fast:
- "Is class X blocked at (day, period)?"   -> general + class blocks
- "Is teacher T blocked at (day, period)?" -> teacher blocks + area blocks of
  every knowledge area T belongs to

Built once per run, together with the TeacherOccupancy index the scheduler
fills in. Blocks naming a day or period outside the grid are
ignored; a knowledge area with no teachers blocks nobody.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from models import AreaBlock, Block, BlockScope, Coordinate, Demand, GridConfig, KnowledgeArea, WeeklyGrid

logger = logging.getLogger(__name__)


class Availability:
    """Precomputed blocked-coordinate sets with the reason of the first block."""

    def __init__(self, config: GridConfig) -> None:
        self.config = config
        self._general: Dict[Coordinate, str] = {}
        self._by_class: Dict[str, Dict[Coordinate, str]] = {}
        self._by_teacher: Dict[str, Dict[Coordinate, str]] = {}

    # -- building ----------------------------------------------------------

    def _resolve(self, day: str, periods: Iterable[int]) -> List[Coordinate]:
        d = self.config.day_index(day)
        if d is None:
            logger.debug("Ignoring block on unknown day %r", day)
            return []
        coords = []
        for number in periods:
            try:
                p = self.config.period_index(int(number))
            except (TypeError, ValueError):
                p = None
            if p is None:
                logger.debug("Ignoring block on unknown period %r of %s", number, day)
                continue
            coords.append((d, p))
        return coords

    @staticmethod
    def _mark(target: Dict[Coordinate, str], coords: List[Coordinate], reason: str) -> None:
        for coord in coords:
            target.setdefault(coord, reason)

    def add_block(self, block: Block) -> None:
        try:
            scope = BlockScope(block.scope)
        except ValueError:
            logger.warning("Ignoring block with unknown scope %r", block.scope)
            return
        coords = self._resolve(block.day, block.periods)
        target = (block.target or "").strip()
        if scope == BlockScope.GENERAL:
            self._mark(self._general, coords, block.reason or "General block")
        elif not target:
            logger.debug("Ignoring %s block without a target", scope.value)
        elif scope == BlockScope.CLASS:
            self._mark(self._by_class.setdefault(target, {}), coords, block.reason or "Class block")
        else:
            self._mark(self._by_teacher.setdefault(target, {}), coords, block.reason or "Teacher block")

    def add_area_block(self, block: AreaBlock, members: List[str]) -> None:
        if not members:
            logger.debug("Area %s has no teachers; block on %s has no effect", block.area_id, block.day)
            return
        coords = self._resolve(block.day, block.periods)
        for teacher in members:
            self._mark(self._by_teacher.setdefault(teacher, {}), coords, block.reason or "Area block")

    # -- queries -----------------------------------------------------------

    def class_blocked(self, class_id: str, day: int, period: int) -> bool:
        coord = (day, period)
        return coord in self._general or coord in self._by_class.get(class_id, ())

    def teacher_blocked(self, teacher_id: str, day: int, period: int) -> bool:
        return (day, period) in self._by_teacher.get(teacher_id, ())

    def class_block_reason(self, class_id: str, coord: Coordinate) -> Optional[str]:
        if coord in self._general:
            return self._general[coord]
        return self._by_class.get(class_id, {}).get(coord)

    def teacher_block_reason(self, teacher_id: str, coord: Coordinate) -> Optional[str]:
        return self._by_teacher.get(teacher_id, {}).get(coord)

    def class_free(self, class_id: str) -> Set[Coordinate]:
        return {c for c in self.config.coordinates() if not self.class_blocked(class_id, *c)}

    def teacher_free(self, teacher_id: str) -> Set[Coordinate]:
        return {c for c in self.config.coordinates() if not self.teacher_blocked(teacher_id, *c)}

    def pair_free(self, teacher_id: str, class_id: str) -> List[Coordinate]:
        """Coordinates blocked for neither, in grid order."""
        return [
            c for c in self.config.coordinates()
            if not self.class_blocked(class_id, *c) and not self.teacher_blocked(teacher_id, *c)
        ]


def build_availability(
    config: GridConfig,
    blocks: Iterable[Block] = (),
    areas: Iterable[KnowledgeArea] = (),
    area_blocks: Iterable[AreaBlock] = (),
) -> Availability:
    """Build the predicates for one run."""
    availability = Availability(config)
    for block in blocks:
        availability.add_block(block)

    members: Dict[str, List[str]] = {}
    for area in areas:
        area_members = members.setdefault(area.area_id.strip(), [])
        for teacher in area.teachers:
            name = (teacher or "").strip()
            if name and name not in area_members:
                area_members.append(name)
    for block in area_blocks:
        availability.add_area_block(block, members.get(block.area_id.strip(), []))
    return availability


class TeacherOccupancy:
    """
    teacher_id -> (day_idx, period_idx) -> class_id, across all classes.
    Owned by one scheduling run and passed around explicitly.
    """

    def __init__(self) -> None:
        self._slots: Dict[str, Dict[Coordinate, str]] = {}

    def is_busy(self, teacher_id: str, coord: Coordinate) -> bool:
        return coord in self._slots.get(teacher_id, ())

    def occupy(self, teacher_id: str, coord: Coordinate, class_id: str) -> None:
        slots = self._slots.setdefault(teacher_id, {})
        if coord in slots:
            raise ValueError(f"Teacher {teacher_id} is already busy at {coord} in {slots[coord]}")
        slots[coord] = class_id

    def busy_slots(self, teacher_id: str) -> Set[Coordinate]:
        return set(self._slots.get(teacher_id, ()))


def is_slot_free(
    demand: Demand,
    coord: Coordinate,
    grid: WeeklyGrid,
    occupancy: TeacherOccupancy,
    availability: Availability,
) -> bool:
    """Can one lesson of demand go at coord right now?"""
    d, p = coord
    if availability.class_blocked(demand.class_id, d, p):
        return False
    if availability.teacher_blocked(demand.teacher_id, d, p):
        return False
    if not grid.cell(coord).is_empty:
        return False
    return not occupancy.is_busy(demand.teacher_id, coord)
