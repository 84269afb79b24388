"""
HEATMAPS
========
Teacher load and day congestion, computed from the class grids.
Uses pandas Styler for cell coloring.
"""

from typing import Dict, List

import pandas as pd
from pandas.io.formats.style import Styler

from models import GridConfig, WeeklyGrid


def _color_scale(val: float, low_rgb: str = "#22c55e", mid_rgb: str = "#eab308", high_rgb: str = "#ef4444") -> str:
    """Value 0-1 -> green (light) to red (overloaded)."""
    if val <= 0:
        return f"background-color: {low_rgb}; color: white;"
    if val >= 1:
        return f"background-color: {high_rgb}; color: white;"
    if val < 0.5:
        return f"background-color: {mid_rgb}; color: black;"
    return f"background-color: {high_rgb}; color: white;"


def teacher_load(grids: Dict[str, WeeklyGrid]) -> Dict[str, Dict[int, int]]:
    """Teacher -> day_idx -> lessons that day."""
    load: Dict[str, Dict[int, int]] = {}
    for grid in grids.values():
        for (d, _), cell in grid.occupied():
            days = load.setdefault(cell.teacher_id, {})
            days[d] = days.get(d, 0) + 1
    return load


def day_congestion(grids: Dict[str, WeeklyGrid], config: GridConfig) -> Dict[int, int]:
    """Day_idx -> lessons across all classes."""
    totals = {d: 0 for d in range(config.num_days)}
    for grid in grids.values():
        for (d, _), _cell in grid.occupied():
            totals[d] += 1
    return totals


def render_teacher_load_heatmap(load: Dict[str, Dict[int, int]], days: List[str]) -> Styler:
    """Rows=teachers, Cols=days. Darker = more lessons."""
    teachers = sorted(load)
    data = [[load[t].get(d, 0) for d in range(len(days))] for t in teachers]
    df = pd.DataFrame(data, index=teachers, columns=days)
    max_val = df.max().max() if not df.empty else 0

    def _style(val):
        if pd.isna(val):
            return ""
        return _color_scale(val / max_val if max_val else 0)

    return df.style.map(_style).set_caption("Teacher Load (darker = more lessons)")


def render_day_congestion_heatmap(totals: Dict[int, int], days: List[str]) -> Styler:
    """One row, one column per day."""
    row = [totals.get(d, 0) for d in range(len(days))]
    df = pd.DataFrame([row], index=["Lessons"], columns=days)
    max_val = max(row) if row else 0

    def _style(val):
        return _color_scale(val / max_val if max_val else 0)

    return df.style.map(_style).set_caption("Day Congestion")
