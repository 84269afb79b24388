"""
DATA MODELS
===========
Little boxes that hold the timetable inputs and outputs.

Inputs: who teaches what to whom and how often (Demand), when nobody may be
scheduled (Block / AreaBlock), and which teachers share a knowledge area.
Outputs: one WeeklyGrid per class, plus the conflict report.

Coordinates are (day_idx, period_idx) pairs, both 0-based positions in
GridConfig.days and GridConfig.periods.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

Coordinate = Tuple[int, int]


class GridConfigError(ValueError):
    """The grid configuration leaves no coordinate to schedule into."""


class BlockScope(str, Enum):
    GENERAL = "general"
    TEACHER = "teacher"
    CLASS = "class"


class CellState(str, Enum):
    EMPTY = "empty"
    BLOCKED = "blocked"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class Period:
    """
    One numbered lesson period.
    - number: Label shown to people (1, 2, 3...). Blocks refer to this.
    - start / end: Display times, e.g. "07:00" / "07:50"
    """

    number: int
    start: str = ""
    end: str = ""

    @property
    def label(self) -> str:
        if self.start and self.end:
            return f"{self.number} ({self.start}-{self.end})"
        return str(self.number)


DEFAULT_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri"]

DEFAULT_PERIODS = [
    Period(1, "07:00", "07:50"),
    Period(2, "07:50", "08:40"),
    Period(3, "08:40", "09:30"),
    Period(4, "09:50", "10:40"),
    Period(5, "10:40", "11:30"),
    Period(6, "11:30", "12:20"),
    Period(7, "12:20", "13:10"),
    Period(8, "13:10", "14:00"),
    Period(9, "14:00", "14:50"),
]


@dataclass
class GridConfig:
    """
    School-wide grid settings.
    - days: Ordered weekdays, e.g. ["Mon", "Tue", "Wed", "Thu", "Fri"]
    - periods: Ordered periods with display times
    - max_lessons_per_subject_per_day: Daily cap of one subject in one class
    - relax_daily_cap: Allow going over the cap when nothing else is left
    - max_suggestions: Swap suggestions per conflict
    """

    days: List[str] = field(default_factory=lambda: list(DEFAULT_DAYS))
    periods: List[Period] = field(default_factory=lambda: list(DEFAULT_PERIODS))
    max_lessons_per_subject_per_day: int = 2
    relax_daily_cap: bool = True
    max_suggestions: int = 3

    def validate(self) -> None:
        """Raise GridConfigError if scheduling cannot even start."""
        if not self.days:
            raise GridConfigError("Grid configuration has no weekdays.")
        if not self.periods:
            raise GridConfigError("Grid configuration has no lesson periods.")
        if self.max_lessons_per_subject_per_day < 1:
            raise GridConfigError("Daily subject cap must be at least 1.")
        if len(set(self.days)) != len(self.days):
            raise GridConfigError("Grid configuration repeats a weekday.")
        numbers = [p.number for p in self.periods]
        if len(set(numbers)) != len(numbers):
            raise GridConfigError("Grid configuration repeats a period number.")

    @property
    def num_days(self) -> int:
        return len(self.days)

    @property
    def num_periods(self) -> int:
        return len(self.periods)

    def coordinates(self) -> List[Coordinate]:
        """Every (day_idx, period_idx) in day order, then period order."""
        return [(d, p) for d in range(len(self.days)) for p in range(len(self.periods))]

    def day_index(self, day: str) -> Optional[int]:
        """Position of a day name (case-insensitive), or None if unknown."""
        wanted = str(day).strip().lower()
        for i, name in enumerate(self.days):
            if name.lower() == wanted:
                return i
        return None

    def period_index(self, number: int) -> Optional[int]:
        """Position of a period number, or None if unknown."""
        for i, period in enumerate(self.periods):
            if period.number == number:
                return i
        return None

    def slot_label(self, coord: Coordinate) -> str:
        d, p = coord
        return f"{self.days[d]} P{self.periods[p].number}"


def default_config() -> GridConfig:
    return GridConfig()


@dataclass(frozen=True)
class Demand:
    """
    One teacher teaching one subject to one class, weekly_periods times a week.
    """

    teacher_id: str
    class_id: str
    subject: str
    weekly_periods: int


@dataclass
class Block:
    """
    Nobody may be scheduled at (day, periods) for this scope.
    - scope: general (everyone), teacher or class
    - target: Teacher or class name; empty for general
    - day: Day name as in GridConfig.days
    - periods: Period numbers (not indices)
    """

    scope: BlockScope
    day: str
    periods: List[int]
    target: str = ""
    reason: str = ""


@dataclass
class KnowledgeArea:
    """A named group of teachers, e.g. "Exact Sciences"."""

    area_id: str
    name: str = ""
    teachers: List[str] = field(default_factory=list)


@dataclass
class AreaBlock:
    """Like Block, but for every teacher in a KnowledgeArea at once."""

    area_id: str
    day: str
    periods: List[int]
    reason: str = ""


@dataclass
class ScheduleCell:
    state: CellState = CellState.EMPTY
    teacher_id: str = ""
    subject: str = ""
    reason: str = ""

    @property
    def is_empty(self) -> bool:
        return self.state == CellState.EMPTY

    @property
    def is_blocked(self) -> bool:
        return self.state == CellState.BLOCKED

    @property
    def is_occupied(self) -> bool:
        return self.state == CellState.OCCUPIED


@dataclass
class WeeklyGrid:
    """One class's week: exactly one ScheduleCell per coordinate."""

    class_id: str
    cells: Dict[Coordinate, ScheduleCell] = field(default_factory=dict)

    @classmethod
    def empty(cls, class_id: str, config: GridConfig) -> "WeeklyGrid":
        return cls(class_id, {coord: ScheduleCell() for coord in config.coordinates()})

    def cell(self, coord: Coordinate) -> ScheduleCell:
        return self.cells[coord]

    def occupied(self) -> Iterator[Tuple[Coordinate, ScheduleCell]]:
        """Occupied cells in coordinate order."""
        for coord in sorted(self.cells):
            cell = self.cells[coord]
            if cell.is_occupied:
                yield coord, cell

    def count_subject_on_day(self, subject: str, day_idx: int) -> int:
        return sum(
            1 for (d, _), cell in self.cells.items()
            if d == day_idx and cell.is_occupied and cell.subject == subject
        )


@dataclass(frozen=True)
class SlotRef:
    class_id: str
    day: int
    period: int

    @property
    def coord(self) -> Coordinate:
        return (self.day, self.period)


@dataclass
class SwapSuggestion:
    """
    Advisory single move: take the lesson at origin, put it at destination,
    and the origin cell is free for the conflicted demand.
    """

    origin: SlotRef
    teacher_id: str
    subject: str
    destination: SlotRef
    rationale: str = ""


@dataclass
class ConflictRecord:
    demand: Demand
    placed: int
    reasons: List[str] = field(default_factory=list)
    suggestions: List[SwapSuggestion] = field(default_factory=list)

    @property
    def required(self) -> int:
        return self.demand.weekly_periods

    @property
    def shortfall(self) -> int:
        return self.required - self.placed


@dataclass
class ConflictAnalysis:
    """The whole conflict report of one run."""

    conflicts: List[ConflictRecord] = field(default_factory=list)

    @property
    def total_conflicts(self) -> int:
        return len(self.conflicts)

    @property
    def unplaced_lessons(self) -> int:
        return sum(c.shortfall for c in self.conflicts)


@dataclass
class ScheduleResult:
    """
    Everything one run produces.
    - grids: class_id -> WeeklyGrid
    - placed: one count per normalized demand, same order as demands
    - relaxed_placements: lessons placed by going over the daily cap
    """

    config: GridConfig
    demands: List[Demand]
    grids: Dict[str, WeeklyGrid]
    placed: List[int]
    analysis: ConflictAnalysis
    relaxed_placements: int = 0

