"""
Device name -> employee matching.

Biometric devices export progressively-qualified names:

    "rosel"          last name only, when unique
    "cabarliza a"    last name + first initial
    "robinios je"    last name + two letters when the initials collide

A NameIndex maps every plausible normalized pattern of every employee to the
list of candidate employees. It is built once per upload and never mutated.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.employee import Employee
from app.models.schedule import EmployeeSchedule
from app.services.attendance_file_parser import normalize_name

logger = logging.getLogger(__name__)


def normalize_lookup_key(raw_name: str) -> str:
    """Lowercase, drop commas, collapse whitespace ("Doe, John" -> "doe john")."""
    return " ".join(raw_name.replace(",", "").lower().split())


def name_patterns(last_name: str, first_name: str, middle_name: Optional[str] = None) -> List[str]:
    """All lookup patterns for one employee, most specific first."""
    last = normalize_name(last_name or "")
    first = normalize_name(first_name or "")
    middle = normalize_name(middle_name or "")

    patterns = [
        f"{last} {first[:2]}",
        f"{last} {first}",
        f"{first} {last}",
    ]
    if middle:
        patterns += [
            f"{last} {first} {middle}",
            f"{first} {middle} {last}",
            f"{first} {middle[0]} {last}",
            f"{last} {first} {middle[0]}",
        ]
    if " " in first:
        first_word = first.split(" ")[0]
        patterns += [f"{last} {first_word}", f"{first_word} {last}"]
    patterns += [f"{last} {first[:1]}", last]

    seen = set()
    unique = []
    for pattern in patterns:
        pattern = pattern.strip()
        if pattern and pattern not in seen:
            seen.add(pattern)
            unique.append(pattern)
    return unique


def shift_bucket(hour: int) -> str:
    """Bucket an hour of day into morning / afternoon / night."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    return "night"


@dataclass(frozen=True)
class NameIndex:
    patterns: Mapping[str, Tuple[Employee, ...]]
    start_hours: Mapping[int, int]  # employee id -> active schedule start hour

    def candidates(self, key: str) -> Tuple[Employee, ...]:
        return self.patterns.get(key, ())

    def __len__(self) -> int:
        return len(self.patterns)


def build_name_index(employees: Iterable[Employee], schedules: Iterable[EmployeeSchedule] = ()) -> NameIndex:
    """Build an immutable pattern index from employees and their active schedules."""
    index: Dict[str, List[Employee]] = {}
    for employee in employees:
        for pattern in name_patterns(employee.last_name, employee.first_name, employee.middle_name):
            index.setdefault(pattern, []).append(employee)

    start_hours: Dict[int, int] = {}
    for schedule in schedules:
        start_hours.setdefault(schedule.employee_id, schedule.scheduled_time_in.hour)

    return NameIndex(
        patterns=MappingProxyType({k: tuple(v) for k, v in index.items()}),
        start_hours=MappingProxyType(start_hours),
    )


def load_name_index(db: Session) -> NameIndex:
    """Build the index from the employee directory."""
    employees = db.query(Employee).filter(Employee.active == True).order_by(Employee.id).all()  # noqa: E712
    schedules = (
        db.query(EmployeeSchedule)
        .filter(EmployeeSchedule.is_active == True)  # noqa: E712
        .order_by(EmployeeSchedule.id)
        .all()
    )
    index = build_name_index(employees, schedules)
    logger.info("Built name index: %d employees, %d patterns", len(employees), len(index))
    return index


def _match_by_shift(candidates: Iterable[Employee], index: NameIndex, scans: List) -> Optional[Employee]:
    """Prefer the candidate whose schedule starts in the same bucket as the earliest scan."""
    if not scans:
        return None
    earliest = min(s.scanned_at for s in scans)
    bucket = shift_bucket(earliest.hour)
    for employee in candidates:
        start_hour = index.start_hours.get(employee.id)
        if start_hour is not None and shift_bucket(start_hour) == bucket:
            return employee
    return None


def _disambiguate(candidates: Tuple[Employee, ...], key: str, index: NameIndex, scans: List) -> Employee:
    parts = key.split(" ")
    suffix = parts[1] if len(parts) > 1 else ""

    by_shift = _match_by_shift(candidates, index, scans)
    if by_shift is not None:
        return by_shift

    if len(suffix) == 1:
        # The bare initial belongs to the alphabetically-first colliding name
        return min(candidates, key=lambda e: ((e.first_name or "").strip().lower()[:2], e.id or 0))

    return candidates[0]


def match_employee(index: NameIndex, raw_name: str, scans: Optional[List] = None) -> Optional[Employee]:
    """
    Resolve a device name to one employee.

    Args:
        index: Name index for the current batch
        raw_name: Name as exported (normalized or not)
        scans: The name's scans, used to disambiguate by shift

    Returns:
        The matched Employee, or None
    """
    key = normalize_lookup_key(raw_name)
    candidates = index.candidates(key)
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    chosen = _disambiguate(candidates, key, index, scans or [])
    logger.debug("Name %r matched %d employees, chose id=%s", key, len(candidates), chosen.id)
    return chosen
