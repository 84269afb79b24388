"""
TABLE VIEWS
===========
Turns grids and the conflict report into pandas DataFrames for the app.
Rows = days, columns = periods.
"""

from typing import Dict, List, Tuple

import pandas as pd

from conflicts import reason_message
from models import ConflictAnalysis, Coordinate, GridConfig, WeeklyGrid

FREE = "Free"


def period_columns(config: GridConfig) -> List[str]:
    return [f"P{p.label}" for p in config.periods]


def grid_rows(grid: WeeklyGrid, config: GridConfig) -> List[List[str]]:
    """Day name followed by one text per period."""
    rows = []
    for d, day in enumerate(config.days):
        row = [day]
        for p in range(config.num_periods):
            cell = grid.cell((d, p))
            if cell.is_occupied:
                row.append(f"{cell.subject} ({cell.teacher_id})")
            elif cell.is_blocked:
                row.append(f"[{cell.reason}]")
            else:
                row.append(FREE)
        rows.append(row)
    return rows


def teacher_rows(
    slots: Dict[Coordinate, Tuple[str, str]],
    config: GridConfig,
) -> List[List[str]]:
    rows = []
    for d, day in enumerate(config.days):
        row = [day]
        for p in range(config.num_periods):
            if (d, p) in slots:
                class_id, subject = slots[(d, p)]
                row.append(f"{class_id}: {subject}")
            else:
                row.append(FREE)
        rows.append(row)
    return rows


def grid_to_frame(grid: WeeklyGrid, config: GridConfig) -> pd.DataFrame:
    return pd.DataFrame(grid_rows(grid, config), columns=["Day"] + period_columns(config))


def teacher_to_frame(slots: Dict[Coordinate, Tuple[str, str]], config: GridConfig) -> pd.DataFrame:
    return pd.DataFrame(teacher_rows(slots, config), columns=["Day"] + period_columns(config))


def conflicts_to_frame(analysis: ConflictAnalysis) -> pd.DataFrame:
    rows = [
        {
            "Teacher": c.demand.teacher_id,
            "Class": c.demand.class_id,
            "Subject": c.demand.subject,
            "Required": c.required,
            "Placed": c.placed,
            "Missing": c.shortfall,
            "Reasons": " ".join(reason_message(r) for r in c.reasons),
            "Suggestions": len(c.suggestions),
        }
        for c in analysis.conflicts
    ]
    return pd.DataFrame(
        rows,
        columns=["Teacher", "Class", "Subject", "Required", "Placed", "Missing", "Reasons", "Suggestions"],
    )
