"""
UI FORMS — st.form() to prevent screen jump while typing
========================================================
Forms batch inputs: no rerun until Submit. Layout stays fixed.
One form for blocks (general / teacher / class), one for knowledge areas and
one for area blocks.
"""

from typing import Callable, List

import streamlit as st

from models import AreaBlock, Block, BlockScope, GridConfig, KnowledgeArea

SCOPE_LABELS = {
    BlockScope.GENERAL: "Whole school",
    BlockScope.TEACHER: "One teacher",
    BlockScope.CLASS: "One class",
}


def parse_names(text: str) -> List[str]:
    """'Ana, Carlos,,Bia' -> ['Ana', 'Carlos', 'Bia']"""
    return [s.strip() for s in text.split(",") if s.strip()]


def render_block_form(
    config: GridConfig,
    teachers: List[str],
    classes: List[str],
    on_save: Callable[[Block], None],
) -> None:
    """Add one block. Target list depends on the chosen scope."""
    scope = st.radio(
        "Applies to",
        list(SCOPE_LABELS),
        format_func=lambda s: SCOPE_LABELS[s],
        horizontal=True,
        key="block_scope",
    )
    with st.form("block_form", clear_on_submit=True):
        target = ""
        if scope == BlockScope.TEACHER:
            target = st.selectbox("Teacher", teachers, key="block_teacher") if teachers else st.text_input("Teacher")
        elif scope == BlockScope.CLASS:
            target = st.selectbox("Class", classes, key="block_class") if classes else st.text_input("Class")
        day = st.selectbox("Day", config.days, key="block_day")
        periods = st.multiselect(
            "Periods",
            [p.number for p in config.periods],
            format_func=lambda n: next(p.label for p in config.periods if p.number == n),
            key="block_periods",
        )
        reason = st.text_input("Reason", placeholder="e.g. Staff meeting")
        submitted = st.form_submit_button("Add block")

    if submitted:
        if not periods:
            st.warning("Pick at least one period.")
            return
        if scope != BlockScope.GENERAL and not target:
            st.warning("Pick who the block applies to.")
            return
        on_save(Block(scope=scope, target=target or "", day=day, periods=sorted(periods), reason=reason.strip()))


def render_area_form(on_save: Callable[[KnowledgeArea], None]) -> None:
    with st.form("area_form", clear_on_submit=True):
        area_id = st.text_input("Area code", placeholder="e.g. exact")
        name = st.text_input("Area name", placeholder="e.g. Exact Sciences")
        members = st.text_input("Teachers (comma-separated)", placeholder="Ana, Carlos")
        submitted = st.form_submit_button("Save area")

    if submitted:
        if not area_id.strip():
            st.warning("Area code is required.")
            return
        on_save(KnowledgeArea(area_id=area_id.strip(), name=name.strip(), teachers=parse_names(members)))


def render_area_block_form(
    config: GridConfig,
    areas: List[KnowledgeArea],
    on_save: Callable[[AreaBlock], None],
) -> None:
    if not areas:
        st.info("Add a knowledge area first.")
        return
    with st.form("area_block_form", clear_on_submit=True):
        area_id = st.selectbox(
            "Area",
            [a.area_id for a in areas],
            format_func=lambda a_id: next((a.name or a.area_id) for a in areas if a.area_id == a_id),
        )
        day = st.selectbox("Day", config.days, key="area_block_day")
        periods = st.multiselect("Periods", [p.number for p in config.periods], key="area_block_periods")
        reason = st.text_input("Reason", placeholder="e.g. Area planning")
        submitted = st.form_submit_button("Add area block")

    if submitted:
        if not periods:
            st.warning("Pick at least one period.")
            return
        on_save(AreaBlock(area_id=area_id, day=day, periods=sorted(periods), reason=reason.strip()))
