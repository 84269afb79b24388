"""
STORAGE — File-based persistence
================================
All inputs saved to disk as JSON. Refresh -> everything still there.
Also reads the school's spreadsheets (CSV / Excel) and full JSON backups.

The data directory is ./data next to this file, or $TIMETABLE_DATA_DIR.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Union

import pandas as pd

from demands import demand_to_record, normalize_demands
from models import (
    AreaBlock,
    Block,
    BlockScope,
    Demand,
    GridConfig,
    KnowledgeArea,
    Period,
    ScheduleResult,
    default_config,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("TIMETABLE_DATA_DIR", Path(__file__).parent / "data"))

DEMANDS_FILE = "demands.json"
BLOCKS_FILE = "blocks.json"
AREAS_FILE = "areas.json"
AREA_BLOCKS_FILE = "area_blocks.json"
CONFIG_FILE = "config.json"
HISTORY_FILE = "history.json"

# Backup files name weekdays in Portuguese; position i maps to config.days[i].
BACKUP_DAY_KEYS = ["segunda", "terca", "quarta", "quinta", "sexta", "sabado", "domingo"]
BACKUP_SCOPES = {"geral": BlockScope.GENERAL, "docente": BlockScope.TEACHER, "turma": BlockScope.CLASS}


class BackupFormatError(ValueError):
    """The uploaded file is not a usable backup."""


def _path(name: str) -> Path:
    return Path(DATA_DIR) / name


def _ensure_data_dir() -> None:
    """Create data directory if it doesn't exist."""
    Path(DATA_DIR).mkdir(parents=True, exist_ok=True)


def _read_json(name: str, default: Any) -> Any:
    _ensure_data_dir()
    path = _path(name)
    if not path.exists():
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupted %s", path)
        return default


def _write_json(name: str, data: Any) -> None:
    _ensure_data_dir()
    with open(_path(name), "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# DICT <-> OBJECT
# ---------------------------------------------------------------------------


def config_to_dict(config: GridConfig) -> dict:
    return {
        "days": list(config.days),
        "periods": [{"number": p.number, "start": p.start, "end": p.end} for p in config.periods],
        "max_lessons_per_subject_per_day": config.max_lessons_per_subject_per_day,
        "relax_daily_cap": config.relax_daily_cap,
        "max_suggestions": config.max_suggestions,
    }


def dict_to_config(d: dict) -> GridConfig:
    base = default_config()
    periods = d.get("periods")
    return GridConfig(
        days=[str(x) for x in d.get("days", base.days)],
        periods=[
            Period(int(p["number"]), str(p.get("start", "")), str(p.get("end", "")))
            for p in periods
        ] if periods is not None else base.periods,
        max_lessons_per_subject_per_day=int(d.get("max_lessons_per_subject_per_day", base.max_lessons_per_subject_per_day)),
        relax_daily_cap=bool(d.get("relax_daily_cap", base.relax_daily_cap)),
        max_suggestions=int(d.get("max_suggestions", base.max_suggestions)),
    )


def block_to_dict(b: Block) -> dict:
    return {
        "scope": BlockScope(b.scope).value,
        "target": b.target,
        "day": b.day,
        "periods": list(b.periods),
        "reason": b.reason,
    }


def dict_to_block(d: dict) -> Block:
    return Block(
        scope=BlockScope(d["scope"]),
        target=d.get("target", "") or "",
        day=d["day"],
        periods=[int(p) for p in d.get("periods", [])],
        reason=d.get("reason", "") or "",
    )


def area_to_dict(a: KnowledgeArea) -> dict:
    return {"area_id": a.area_id, "name": a.name, "teachers": list(a.teachers)}


def dict_to_area(d: dict) -> KnowledgeArea:
    return KnowledgeArea(area_id=str(d["area_id"]), name=d.get("name", ""), teachers=list(d.get("teachers", [])))


def area_block_to_dict(b: AreaBlock) -> dict:
    return {"area_id": b.area_id, "day": b.day, "periods": list(b.periods), "reason": b.reason}


def dict_to_area_block(d: dict) -> AreaBlock:
    return AreaBlock(
        area_id=str(d["area_id"]),
        day=d["day"],
        periods=[int(p) for p in d.get("periods", [])],
        reason=d.get("reason", "") or "",
    )


# ---------------------------------------------------------------------------
# LOAD / SAVE
# ---------------------------------------------------------------------------


def load_config() -> GridConfig:
    """Load grid config from disk, or the default grid."""
    data = _read_json(CONFIG_FILE, None)
    if data is None:
        return default_config()
    try:
        return dict_to_config(data)
    except (KeyError, TypeError, ValueError):
        logger.warning("Invalid grid config on disk, using defaults")
        return default_config()


def save_config(config: GridConfig) -> None:
    _write_json(CONFIG_FILE, config_to_dict(config))


def load_demands() -> List[Demand]:
    return normalize_demands(_read_json(DEMANDS_FILE, []))


def save_demands(demands: List[Demand]) -> None:
    _write_json(DEMANDS_FILE, [demand_to_record(d) for d in demands])


def load_blocks() -> List[Block]:
    try:
        return [dict_to_block(d) for d in _read_json(BLOCKS_FILE, [])]
    except (KeyError, ValueError):
        return []


def save_blocks(blocks: List[Block]) -> None:
    _write_json(BLOCKS_FILE, [block_to_dict(b) for b in blocks])


def load_areas() -> List[KnowledgeArea]:
    try:
        return [dict_to_area(d) for d in _read_json(AREAS_FILE, [])]
    except KeyError:
        return []


def save_areas(areas: List[KnowledgeArea]) -> None:
    _write_json(AREAS_FILE, [area_to_dict(a) for a in areas])


def load_area_blocks() -> List[AreaBlock]:
    try:
        return [dict_to_area_block(d) for d in _read_json(AREA_BLOCKS_FILE, [])]
    except (KeyError, ValueError):
        return []


def save_area_blocks(blocks: List[AreaBlock]) -> None:
    _write_json(AREA_BLOCKS_FILE, [area_block_to_dict(b) for b in blocks])


def load_history() -> List[dict]:
    """Load activity history. Newest first."""
    return _read_json(HISTORY_FILE, [])


def append_history(action: str, target: str, summary: str, details: str = "") -> None:
    """Append one history entry. Keeps last 500 entries."""
    history = load_history()
    entry = {
        "ts": datetime.now().isoformat(),
        "action": action,
        "target": target,
        "summary": summary,
        "details": details,
    }
    history.insert(0, entry)
    _write_json(HISTORY_FILE, history[:500])


# ---------------------------------------------------------------------------
# SPREADSHEETS AND BACKUPS
# ---------------------------------------------------------------------------


def load_assignments_table(source: Union[str, Path, IO], filename: Optional[str] = None) -> List[Demand]:
    """
    Read an assignment spreadsheet (CSV or Excel) into demands.
    Columns: teacher/class/subject/lessons or docente/turma/disciplina/aulas
    (case-insensitive).
    """
    name = str(filename or getattr(source, "name", source)).lower()
    if name.endswith((".xlsx", ".xls")):
        df = pd.read_excel(source)
    else:
        df = pd.read_csv(source)
    df.columns = [str(c).strip().lower() for c in df.columns]
    df = df.astype(object).where(pd.notna(df), None)
    return normalize_demands(df.to_dict(orient="records"))


@dataclass
class BackupData:
    demands: List[Demand] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    areas: List[KnowledgeArea] = field(default_factory=list)
    area_blocks: List[AreaBlock] = field(default_factory=list)
    version: str = ""


def _backup_day(day: Any, config: GridConfig) -> str:
    key = str(day).strip().lower()
    if key in BACKUP_DAY_KEYS:
        idx = BACKUP_DAY_KEYS.index(key)
        if idx < len(config.days):
            return config.days[idx]
    return str(day)


def _backup_entries(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """The dict entries of one backup section; anything else is skipped."""
    raw = data.get(key) or []
    if not isinstance(raw, list):
        logger.warning("Skipping backup section %s: expected a list, got %s", key, type(raw).__name__)
        return []
    entries = []
    for item in raw:
        if isinstance(item, dict):
            entries.append(item)
        else:
            logger.warning("Skipping malformed %s entry %r", key, item)
    return entries


def _backup_periods(raw: Dict[str, Any]) -> List[int]:
    """Period numbers of a backup block. Raises ValueError/TypeError if malformed."""
    periods = raw.get("aulas", [])
    if not isinstance(periods, list):
        raise TypeError(f"aulas must be a list, got {type(periods).__name__}")
    return [int(p) for p in periods]


def parse_backup(data: Dict[str, Any], config: GridConfig) -> BackupData:
    """
    Pick the scheduling inputs out of a parsed backup dict.
    Malformed entries are logged and skipped; a backup with nothing usable
    left raises BackupFormatError.
    """
    if not isinstance(data, dict) or not data.get("version"):
        raise BackupFormatError("Backup file has no version field.")

    out = BackupData(version=str(data["version"]))
    out.demands = normalize_demands(_backup_entries(data, "atribuicoes"))

    for raw in _backup_entries(data, "bloqueios"):
        scope = BACKUP_SCOPES.get(str(raw.get("tipo", "")).lower())
        if scope is None:
            logger.warning("Skipping backup block with unknown type %r", raw.get("tipo"))
            continue
        try:
            periods = _backup_periods(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping backup block with bad periods: %s", exc)
            continue
        out.blocks.append(Block(
            scope=scope,
            target=str(raw.get("entidade", "") or "").strip(),
            day=_backup_day(raw.get("dia", ""), config),
            periods=periods,
            reason=raw.get("motivo", "") or "",
        ))

    for raw in _backup_entries(data, "areasConhecimento"):
        members = raw.get("docentes", [])
        if not isinstance(members, list):
            logger.warning("Skipping knowledge area %r: docentes is not a list", raw.get("id"))
            continue
        out.areas.append(KnowledgeArea(
            area_id=str(raw.get("id", "")).strip(),
            name=raw.get("nome", "") or "",
            teachers=[str(t).strip() for t in members if str(t).strip()],
        ))

    for raw in _backup_entries(data, "bloqueiosArea"):
        try:
            periods = _backup_periods(raw)
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping area block with bad periods: %s", exc)
            continue
        out.area_blocks.append(AreaBlock(
            area_id=str(raw.get("areaId", "")).strip(),
            day=_backup_day(raw.get("dia", ""), config),
            periods=periods,
            reason=raw.get("motivo", "") or "",
        ))

    if not (out.demands or out.blocks or out.areas or out.area_blocks):
        raise BackupFormatError("Backup file has no assignments, blocks or knowledge areas.")
    return out


def load_backup(source: Union[str, Path, IO], config: GridConfig) -> BackupData:
    """Read a JSON backup from a path or an open file."""
    try:
        if isinstance(source, (str, Path)):
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            data = json.load(source)
    except json.JSONDecodeError as exc:
        raise BackupFormatError(f"Not a valid JSON file: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise BackupFormatError(f"Backup file is not UTF-8 text: {exc}") from exc
    return parse_backup(data, config)


# ---------------------------------------------------------------------------
# RESULT EXPORT
# ---------------------------------------------------------------------------


def result_to_dict(result: ScheduleResult) -> dict:
    """JSON-serializable view of one run: grids plus conflict report."""
    config = result.config
    grids = {}
    for class_id in sorted(result.grids):
        cells = []
        for (d, p), cell in sorted(result.grids[class_id].cells.items()):
            cells.append({
                "day": config.days[d],
                "period": config.periods[p].number,
                "state": cell.state.value,
                "teacher": cell.teacher_id,
                "subject": cell.subject,
                "reason": cell.reason,
            })
        grids[class_id] = cells

    conflicts = []
    for c in result.analysis.conflicts:
        conflicts.append({
            "teacher": c.demand.teacher_id,
            "class": c.demand.class_id,
            "subject": c.demand.subject,
            "required": c.required,
            "placed": c.placed,
            "shortfall": c.shortfall,
            "reasons": list(c.reasons),
            "suggestions": [
                {
                    "origin": {
                        "class": s.origin.class_id,
                        "day": config.days[s.origin.day],
                        "period": config.periods[s.origin.period].number,
                        "teacher": s.teacher_id,
                        "subject": s.subject,
                    },
                    "destination": {
                        "class": s.destination.class_id,
                        "day": config.days[s.destination.day],
                        "period": config.periods[s.destination.period].number,
                    },
                    "rationale": s.rationale,
                }
                for s in c.suggestions
            ],
        })

    return {
        "config": config_to_dict(config),
        "grids": grids,
        "analysis": {
            "total_conflicts": result.analysis.total_conflicts,
            "unplaced_lessons": result.analysis.unplaced_lessons,
            "conflicts": conflicts,
        },
    }
