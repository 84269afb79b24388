"""
SCHOOL TIMETABLE GENERATOR
==========================
- Assignments: who teaches what to which class, how many lessons a week
- Blocks: slots nobody (or one teacher / class / knowledge area) can use
- Generate: greedy timetable + conflict report + swap suggestions
- All inputs persisted to disk; each generation is a fresh run
"""

import json
import logging
import time
from datetime import datetime, timedelta

import pandas as pd
import streamlit as st

from conflicts import reason_message
from demands import demand_to_record, normalize_demands, summarize_by_class, summarize_by_subject, summarize_by_teacher
from heatmaps import day_congestion, render_day_congestion_heatmap, render_teacher_load_heatmap, teacher_load
from models import Demand, GridConfig, GridConfigError, Period
from pdf_export import export_class_timetables_pdf, export_teacher_timetables_pdf
from solver import generate_timetable, invert_to_teacher_timetable
from storage import (
    BackupFormatError,
    append_history,
    load_area_blocks, save_area_blocks,
    load_areas, save_areas,
    load_assignments_table,
    load_backup,
    load_blocks, save_blocks,
    load_config, save_config,
    load_demands, save_demands,
    load_history,
    result_to_dict,
)
from ui_forms import parse_names, render_area_block_form, render_area_form, render_block_form
from views import conflicts_to_frame, grid_to_frame, teacher_to_frame

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# PAGE CONFIG
# ---------------------------------------------------------------------------

st.set_page_config(page_title="School Timetable Generator", page_icon="📅", layout="wide")

ANIMATION_CSS = """
<style>
    .main .block-container { padding-top: 2rem; }

    /* Notification slot */
    #notification-slot {
        min-height: 52px;
        margin-bottom: 8px;
    }

    /* Toast */
    .toast-item {
        padding: 10px 14px;
        background: #18181b;
        border-radius: 8px;
        box-shadow: 0 4px 12px rgba(0,0,0,0.4);
        font-size: 13px;
        color: #e4e4e7;
        max-width: 300px;
        margin-bottom: 6px;
        display: flex;
        align-items: center;
        justify-content: space-between;
        gap: 10px;
        animation: toastFadeIn 0.3s ease;
    }
    @keyframes toastFadeIn {
        from { opacity: 0; transform: translateY(-10px); }
        to { opacity: 1; transform: translateY(0); }
    }
    .toast-msg { flex: 1; }
    .toast-countdown { font-size: 11px; color: #71717a; min-width: 24px; }
</style>
"""

st.markdown(ANIMATION_CSS, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# SESSION STATE — Load from disk
# ---------------------------------------------------------------------------

def _init_session():
    if "initialized" not in st.session_state:
        st.session_state.demands = load_demands()
        st.session_state.blocks = load_blocks()
        st.session_state.areas = load_areas()
        st.session_state.area_blocks = load_area_blocks()
        st.session_state.config = load_config()
        st.session_state.initialized = True
    if "result" not in st.session_state:
        st.session_state.result = None
    if "notifications" not in st.session_state:
        st.session_state.notifications = []  # List of {msg, until, id}


_init_session()


def _inputs_changed() -> None:
    """Any edit makes the last generated timetable stale."""
    st.session_state.result = None


# ---------------------------------------------------------------------------
# DEMO DATA — Predefined for quick testing
# ---------------------------------------------------------------------------

def _get_demo_demands():
    return [
        Demand("Ana", "6A", "Math", 5),
        Demand("Ana", "7B", "Math", 5),
        Demand("Bruno", "6A", "Portuguese", 5),
        Demand("Bruno", "7B", "Portuguese", 5),
        Demand("Carlos", "6A", "Science", 3),
        Demand("Carlos", "7B", "Science", 3),
        Demand("Daniela", "6A", "History", 2),
        Demand("Daniela", "7B", "History", 2),
        Demand("Eduardo", "6A", "Physical Education", 2),
        Demand("Eduardo", "7B", "Physical Education", 2),
        Demand("Fernanda", "6A", "English", 2),
        Demand("Fernanda", "7B", "English", 2),
    ]


def _load_demo_data() -> bool:
    """Add demo assignments that are not there yet. Returns True if any was added."""
    existing = set(st.session_state.demands)
    added = [d for d in _get_demo_demands() if d not in existing]
    if added:
        st.session_state.demands.extend(added)
        save_demands(st.session_state.demands)
        append_history("demo", "Demo Data", f"Loaded {len(added)} demo assignments", "")
        _inputs_changed()
    return bool(added)


# ---------------------------------------------------------------------------
# NOTIFICATIONS — Stackable, smooth countdown via fragment
# ---------------------------------------------------------------------------

def show_toast(msg: str, duration_sec: int = 3) -> None:
    """Add a notification. Stackable, new ones don't replace old."""
    uid = f"n_{time.time()}_{id(msg)}"
    st.session_state.notifications.append({
        "msg": msg,
        "until": time.time() + duration_sec,
        "id": uid,
    })


@st.fragment(run_every=timedelta(seconds=1))
def _notification_ticker():
    """Runs every second. Removes expired toasts, countdown ticks smoothly."""
    now = time.time()
    notifications = st.session_state.get("notifications", [])
    active = [n for n in notifications if n["until"] > now]
    if len(active) != len(notifications):
        st.session_state.notifications = active

    for n in active:
        remaining = max(0, int(n["until"] - now))
        st.markdown(
            f'<div class="toast-item">'
            f'<span class="toast-msg">{n["msg"]}</span>'
            f'<span class="toast-countdown">{remaining}s</span>'
            f'</div>',
            unsafe_allow_html=True,
        )


# ---------------------------------------------------------------------------
# SIDEBAR — Config (persisted)
# ---------------------------------------------------------------------------

st.sidebar.title("⚙️ School Setup")
cfg: GridConfig = st.session_state.config

with st.sidebar.form("sidebar_config", clear_on_submit=False):
    st.markdown("**📆 Days & Periods**")
    days_input = st.text_input("Days (comma-separated)", value=",".join(cfg.days), key="sb_days")
    periods_input = st.text_area(
        "Periods (one per line: number,start,end)",
        value="\n".join(f"{p.number},{p.start},{p.end}" for p in cfg.periods),
        height=200,
        key="sb_periods",
    )
    st.markdown("**📏 Rules**")
    cap = st.number_input(
        "Max lessons of one subject per day",
        min_value=1,
        max_value=10,
        value=cfg.max_lessons_per_subject_per_day,
        key="sb_cap",
    )
    relax = st.checkbox(
        "Go over the daily limit when nothing else fits",
        value=cfg.relax_daily_cap,
        key="sb_relax",
    )
    max_sugg = st.number_input(
        "Swap suggestions per conflict",
        min_value=0,
        max_value=10,
        value=cfg.max_suggestions,
        key="sb_sugg",
    )
    if st.form_submit_button("Apply Config"):
        periods = []
        for line in periods_input.strip().split("\n"):
            parts = [x.strip() for x in line.split(",")]
            try:
                number = int(parts[0])
            except ValueError:
                continue
            start = parts[1] if len(parts) > 1 else ""
            end = parts[2] if len(parts) > 2 else ""
            periods.append(Period(number, start, end))
        new_cfg = GridConfig(
            days=parse_names(days_input),
            periods=periods,
            max_lessons_per_subject_per_day=int(cap),
            relax_daily_cap=bool(relax),
            max_suggestions=int(max_sugg),
        )
        try:
            new_cfg.validate()
        except GridConfigError as exc:
            st.error(str(exc))
        else:
            st.session_state.config = new_cfg
            save_config(new_cfg)
            _inputs_changed()
            show_toast("Config saved")
            st.rerun()

st.sidebar.markdown("---")
with st.sidebar.expander("🧪 Demo / Testing"):
    if st.button("Load Demo Data", key="demo_btn"):
        if _load_demo_data():
            show_toast("Demo data loaded successfully")
        else:
            show_toast("Demo data already present (no duplicates added)")
        st.rerun()

st.sidebar.markdown("---")
if st.sidebar.button("🗑️ Clear all data"):
    st.session_state.demands = []
    st.session_state.blocks = []
    st.session_state.areas = []
    st.session_state.area_blocks = []
    save_demands([])
    save_blocks([])
    save_areas([])
    save_area_blocks([])
    _inputs_changed()
    append_history("clear", "All", "All assignments, blocks and areas cleared", "")
    show_toast("All data cleared")
    st.rerun()


# ---------------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------------

st.title("📅 School Timetable Generator")
st.markdown("*Assignments and blocks in, weekly timetable and conflict report out.*")

st.markdown('<div id="notification-slot"></div>', unsafe_allow_html=True)
_notification_ticker()

tabs = st.tabs([
    "📝 Assignments",
    "⛔ Blocks & Areas",
    "📋 Class Timetables",
    "👨‍🏫 Teacher Timetables",
    "⚠️ Conflicts",
    "🔥 Insights",
    "📄 Export",
    "🕓 History",
])
tab1, tab2, tab3, tab4, tab5, tab6, tab7, tab8 = tabs


# ----- TAB 1: Assignments -----
with tab1:
    st.header("Lesson assignments")
    st.caption("One row per teacher, class and subject. Rows with 0 lessons are ignored.")

    current = pd.DataFrame(
        [demand_to_record(d) for d in st.session_state.demands],
        columns=["teacher", "class", "subject", "lessons"],
    )
    edited = st.data_editor(
        current,
        num_rows="dynamic",
        use_container_width=True,
        hide_index=True,
        column_config={
            "teacher": st.column_config.TextColumn("Teacher"),
            "class": st.column_config.TextColumn("Class"),
            "subject": st.column_config.TextColumn("Subject"),
            "lessons": st.column_config.NumberColumn("Lessons / week", min_value=0, step=1),
        },
        key="demand_editor",
    )
    if st.button("💾 Save assignments", type="primary"):
        records = edited.astype(object).where(pd.notna(edited), None).to_dict(orient="records")
        st.session_state.demands = normalize_demands(records)
        save_demands(st.session_state.demands)
        _inputs_changed()
        append_history("edit", "Assignments", f"Saved {len(st.session_state.demands)} assignments", "")
        show_toast("Assignments saved")
        st.rerun()

    with st.expander("📥 Import"):
        sheet = st.file_uploader("Spreadsheet (CSV or Excel)", type=["csv", "xlsx", "xls"], key="upl_sheet")
        if sheet is not None and st.button("Import spreadsheet"):
            try:
                imported = load_assignments_table(sheet, filename=sheet.name)
            except ValueError as exc:
                st.error(f"Could not read {sheet.name}: {exc}")
            else:
                st.session_state.demands = imported
                save_demands(imported)
                _inputs_changed()
                append_history("import", "Assignments", f"Imported {len(imported)} assignments from {sheet.name}", "")
                show_toast(f"{len(imported)} assignments imported")
                st.rerun()

        backup = st.file_uploader("Backup (JSON)", type=["json"], key="upl_backup")
        if backup is not None and st.button("Restore backup"):
            try:
                data = load_backup(backup, st.session_state.config)
            except BackupFormatError as exc:
                st.error(str(exc))
            else:
                st.session_state.demands = data.demands
                st.session_state.blocks = data.blocks
                st.session_state.areas = data.areas
                st.session_state.area_blocks = data.area_blocks
                save_demands(data.demands)
                save_blocks(data.blocks)
                save_areas(data.areas)
                save_area_blocks(data.area_blocks)
                _inputs_changed()
                append_history(
                    "import", "Backup", f"Restored backup version {data.version}",
                    f"{len(data.demands)} assignments, {len(data.blocks)} blocks, {len(data.areas)} areas",
                )
                show_toast("Backup restored")
                st.rerun()

    if st.session_state.demands:
        st.subheader("Summary")
        c1, c2, c3 = st.columns(3)
        with c1:
            st.markdown("**By teacher**")
            st.dataframe(pd.DataFrame([
                {"Teacher": s.teacher_id, "Lessons": s.total_lessons, "Classes": ", ".join(s.classes)}
                for s in summarize_by_teacher(st.session_state.demands)
            ]), hide_index=True, use_container_width=True)
        with c2:
            st.markdown("**By class**")
            st.dataframe(pd.DataFrame([
                {"Class": s.class_id, "Lessons": s.total_lessons, "Subjects": ", ".join(s.subjects)}
                for s in summarize_by_class(st.session_state.demands)
            ]), hide_index=True, use_container_width=True)
        with c3:
            st.markdown("**By subject**")
            st.dataframe(pd.DataFrame([
                {"Subject": s.subject, "Lessons": s.total_lessons, "Teachers": ", ".join(s.teachers)}
                for s in summarize_by_subject(st.session_state.demands)
            ]), hide_index=True, use_container_width=True)


# ----- TAB 2: Blocks & Areas -----
with tab2:
    teachers = sorted({d.teacher_id for d in st.session_state.demands})
    classes = sorted({d.class_id for d in st.session_state.demands})

    st.header("Blocks")

    def _on_block_save(block):
        st.session_state.blocks.append(block)
        save_blocks(st.session_state.blocks)
        _inputs_changed()
        append_history("add", "Block", f"Blocked {block.day} {block.periods} ({block.scope.value} {block.target})", block.reason)
        show_toast("Block added")
        st.rerun()

    render_block_form(st.session_state.config, teachers, classes, _on_block_save)

    for i, b in enumerate(st.session_state.blocks):
        c1, c2 = st.columns([5, 1])
        with c1:
            who = b.target or "everyone"
            st.markdown(f"**{b.day}** periods {', '.join(map(str, b.periods))} — {b.scope.value}: {who}"
                        + (f" — *{b.reason}*" if b.reason else ""))
        with c2:
            if st.button("🗑️ Delete", key=f"blk_del_{i}"):
                st.session_state.blocks.pop(i)
                save_blocks(st.session_state.blocks)
                _inputs_changed()
                show_toast("Block removed")
                st.rerun()

    st.markdown("---")
    st.header("Knowledge areas")

    def _on_area_save(area):
        areas = [a for a in st.session_state.areas if a.area_id != area.area_id]
        areas.append(area)
        st.session_state.areas = areas
        save_areas(areas)
        _inputs_changed()
        append_history("add", f"Area {area.area_id}", f"Saved area {area.name or area.area_id}", ", ".join(area.teachers))
        show_toast("Area saved")
        st.rerun()

    render_area_form(_on_area_save)
    for i, a in enumerate(st.session_state.areas):
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(f"**{a.name or a.area_id}** — {', '.join(a.teachers) or 'no teachers'}")
        with c2:
            if st.button("🗑️ Delete", key=f"area_del_{i}"):
                removed = st.session_state.areas.pop(i)
                st.session_state.area_blocks = [b for b in st.session_state.area_blocks if b.area_id != removed.area_id]
                save_areas(st.session_state.areas)
                save_area_blocks(st.session_state.area_blocks)
                _inputs_changed()
                show_toast("Area removed")
                st.rerun()

    st.subheader("Area blocks")

    def _on_area_block_save(block):
        st.session_state.area_blocks.append(block)
        save_area_blocks(st.session_state.area_blocks)
        _inputs_changed()
        show_toast("Area block added")
        st.rerun()

    render_area_block_form(st.session_state.config, st.session_state.areas, _on_area_block_save)
    for i, b in enumerate(st.session_state.area_blocks):
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(f"**{b.area_id}** — {b.day} periods {', '.join(map(str, b.periods))}"
                        + (f" — *{b.reason}*" if b.reason else ""))
        with c2:
            if st.button("🗑️ Delete", key=f"area_blk_del_{i}"):
                st.session_state.area_blocks.pop(i)
                save_area_blocks(st.session_state.area_blocks)
                _inputs_changed()
                st.rerun()


# ----- TAB 3: Class Timetables (generate here) -----
with tab3:
    st.header("Class timetables")
    if not st.session_state.demands:
        st.info("Add assignments first.")
    elif st.button("🚀 Generate Timetable", type="primary"):
        with st.spinner("Placing lessons..."):
            try:
                result = generate_timetable(
                    st.session_state.demands,
                    st.session_state.config,
                    blocks=st.session_state.blocks,
                    areas=st.session_state.areas,
                    area_blocks=st.session_state.area_blocks,
                )
            except GridConfigError as exc:
                st.error(f"Invalid grid configuration: {exc}")
                result = None
        if result is not None:
            st.session_state.result = result
            analysis = result.analysis
            append_history(
                "generate", "Timetable",
                f"Generated timetable for {len(result.grids)} classes",
                f"{analysis.total_conflicts} conflicts, {analysis.unplaced_lessons} lessons not placed",
            )
            if analysis.total_conflicts:
                show_toast(f"Generated with {analysis.total_conflicts} conflicts")
            else:
                show_toast("Timetable generated")

    result = st.session_state.result
    if result is not None:
        for class_id in sorted(result.grids):
            st.caption(f"Class {class_id}")
            st.dataframe(grid_to_frame(result.grids[class_id], result.config), use_container_width=True, hide_index=True)


# ----- TAB 4: Teacher Timetables -----
with tab4:
    st.header("Teacher timetables")
    result = st.session_state.result
    if result is None:
        st.info("Generate a timetable first.")
    else:
        by_teacher = invert_to_teacher_timetable(result.grids)
        if by_teacher:
            teacher = st.selectbox("Teacher", list(by_teacher), key="tt_teacher")
            st.dataframe(teacher_to_frame(by_teacher[teacher], result.config), use_container_width=True, hide_index=True)


# ----- TAB 5: Conflicts -----
with tab5:
    st.header("Conflicts")
    result = st.session_state.result
    if result is None:
        st.info("Generate a timetable first.")
    else:
        analysis = result.analysis
        c1, c2, c3 = st.columns(3)
        c1.metric("Conflicts", analysis.total_conflicts)
        c2.metric("Lessons not placed", analysis.unplaced_lessons)
        c3.metric("Over the daily limit", result.relaxed_placements)
        if not analysis.conflicts:
            st.success("Every lesson was placed.")
        else:
            st.dataframe(conflicts_to_frame(analysis), use_container_width=True, hide_index=True)
            for c in analysis.conflicts:
                dm = c.demand
                with st.expander(f"{dm.teacher_id} — {dm.subject} in {dm.class_id}: {c.shortfall} missing"):
                    for code in c.reasons:
                        st.markdown(f"- {reason_message(code)}")
                    if c.suggestions:
                        st.markdown("**Possible swaps**")
                        for s in c.suggestions:
                            st.markdown(f"- {s.rationale}")
                    else:
                        st.caption("No single move frees a slot for this lesson.")


# ----- TAB 6: Insights (Heatmaps) -----
with tab6:
    st.header("🔥 Insights")
    result = st.session_state.result
    if result is None:
        st.info("Generate a timetable first.")
    else:
        cfg = result.config
        heatmap_type = st.selectbox("Heatmap", ["Teacher load", "Day congestion"], key="heatmap_sel")
        if heatmap_type == "Teacher load":
            st.dataframe(render_teacher_load_heatmap(teacher_load(result.grids), cfg.days), use_container_width=True)
            st.caption("Rows = teachers, Cols = days. Darker = more lessons.")
        else:
            st.dataframe(render_day_congestion_heatmap(day_congestion(result.grids, cfg), cfg.days), use_container_width=True)
            st.caption("Total lessons per day across all classes.")


# ----- TAB 7: Export -----
with tab7:
    st.header("Export")
    result = st.session_state.result
    if result is None:
        st.info("Generate a timetable first.")
    else:
        class_pdf = export_class_timetables_pdf(result.grids, result.config)
        teacher_pdf = export_teacher_timetables_pdf(invert_to_teacher_timetable(result.grids), result.config)
        col1, col2, col3 = st.columns(3)
        with col1:
            if st.download_button(
                "📥 Class Timetables PDF",
                data=class_pdf,
                file_name="class_timetables.pdf",
                mime="application/pdf",
                key="dl_class",
            ):
                append_history("export", "PDF", "Exported class timetables PDF", "")
        with col2:
            if st.download_button(
                "📥 Teacher Timetables PDF",
                data=teacher_pdf,
                file_name="teacher_timetables.pdf",
                mime="application/pdf",
                key="dl_teacher",
            ):
                append_history("export", "PDF", "Exported teacher timetables PDF", "")
        with col3:
            if st.download_button(
                "📥 Timetable JSON",
                data=json.dumps(result_to_dict(result), indent=2, ensure_ascii=False),
                file_name="timetable.json",
                mime="application/json",
                key="dl_json",
            ):
                append_history("export", "JSON", "Exported timetable JSON", "")


# ----- TAB 8: History -----
with tab8:
    st.header("🕓 History")
    history = load_history()
    if history:
        for entry in history:
            ts = entry.get("ts", "")
            try:
                ts_fmt = datetime.fromisoformat(ts).strftime("%Y-%m-%d %H:%M")
            except (ValueError, TypeError):
                ts_fmt = ts
            icon = {"add": "➕", "edit": "✏️", "import": "📥", "generate": "🚀", "export": "📤", "clear": "🗑️"}.get(entry.get("action", ""), "•")
            with st.expander(f"{icon} {ts_fmt} — {entry.get('summary', '')}"):
                st.markdown(f"**Action:** {entry.get('action', '')} | **Target:** {entry.get('target', '')}")
                if entry.get("details"):
                    st.caption(entry["details"])
    else:
        st.info("No activity yet.")
