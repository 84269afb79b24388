"""
DEMAND NORMALIZER
=================
Turns raw assignment records ("Ana teaches Math to 6A, 3 lessons a week")
into Demand objects the scheduler can place.

Records can be Demand objects or dicts. Dict keys can be English
(teacher / class / subject / lessons) or the ones used by the school's
assignment spreadsheet and backups (docente / turma / disciplina / aulas).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from models import Demand

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    "teacher_id": ("teacher_id", "teacher", "docente"),
    "class_id": ("class_id", "class", "turma"),
    "subject": ("subject", "disciplina"),
    "weekly_periods": ("weekly_periods", "lessons", "aulas"),
}


def _pick(record: Mapping[str, Any], field_name: str) -> Any:
    for key in FIELD_ALIASES[field_name]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _to_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or not number.is_integer():  # NaN or fractional
        return None
    return int(number)


def record_to_demand(record: Union[Demand, Mapping[str, Any]]) -> Optional[Demand]:
    """One raw record -> Demand, or None if it carries no scheduling obligation."""
    if isinstance(record, Demand):
        return record if record.weekly_periods > 0 else None
    if not isinstance(record, Mapping):
        logger.debug("Dropping assignment that is not a record: %r", record)
        return None

    teacher = str(_pick(record, "teacher_id") or "").strip()
    class_id = str(_pick(record, "class_id") or "").strip()
    subject = str(_pick(record, "subject") or "").strip()
    count = _to_count(_pick(record, "weekly_periods"))
    if not teacher or not class_id or not subject:
        logger.debug("Dropping assignment with missing names: %r", record)
        return None
    if count is None or count <= 0:
        logger.debug("Dropping assignment %s/%s/%s with count %r", teacher, class_id, subject, count)
        return None
    return Demand(teacher_id=teacher, class_id=class_id, subject=subject, weekly_periods=count)


def normalize_demands(records: Iterable[Union[Demand, Mapping[str, Any]]]) -> List[Demand]:
    """
    Keep input order. Drop records with count <= 0.
    Repeated (teacher, class, subject) triples are NOT merged: each one is
    scheduled on its own, so the weekly obligation adds up.
    """
    demands = []
    for record in records:
        demand = record_to_demand(record)
        if demand is not None:
            demands.append(demand)
    return demands


def demand_to_record(demand: Demand) -> Dict[str, Any]:
    return {
        "teacher": demand.teacher_id,
        "class": demand.class_id,
        "subject": demand.subject,
        "lessons": demand.weekly_periods,
    }


# ---------------------------------------------------------------------------
# SUMMARIES: totals per teacher, subject and class
# ---------------------------------------------------------------------------


@dataclass
class TeacherSummary:
    teacher_id: str
    total_lessons: int = 0
    subjects: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)


@dataclass
class SubjectSummary:
    subject: str
    total_lessons: int = 0
    teachers: List[str] = field(default_factory=list)


@dataclass
class ClassSummary:
    class_id: str
    total_lessons: int = 0
    teachers: List[str] = field(default_factory=list)
    subjects: List[str] = field(default_factory=list)


def _add_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def summarize_by_teacher(demands: List[Demand]) -> List[TeacherSummary]:
    out: Dict[str, TeacherSummary] = {}
    for dm in demands:
        s = out.setdefault(dm.teacher_id, TeacherSummary(dm.teacher_id))
        s.total_lessons += dm.weekly_periods
        _add_unique(s.subjects, dm.subject)
        _add_unique(s.classes, dm.class_id)
    return [out[k] for k in sorted(out)]


def summarize_by_subject(demands: List[Demand]) -> List[SubjectSummary]:
    out: Dict[str, SubjectSummary] = {}
    for dm in demands:
        s = out.setdefault(dm.subject, SubjectSummary(dm.subject))
        s.total_lessons += dm.weekly_periods
        _add_unique(s.teachers, dm.teacher_id)
    return [out[k] for k in sorted(out)]


def summarize_by_class(demands: List[Demand]) -> List[ClassSummary]:
    out: Dict[str, ClassSummary] = {}
    for dm in demands:
        s = out.setdefault(dm.class_id, ClassSummary(dm.class_id))
        s.total_lessons += dm.weekly_periods
        _add_unique(s.teachers, dm.teacher_id)
        _add_unique(s.subjects, dm.subject)
    return [out[k] for k in sorted(out)]
