"""Turn a flat list of shifts into the people x days grid rendered by the calendar."""

from __future__ import annotations

import calendar
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidParameter
from .shift_display import ShiftDisplayConfig
from .upstream import RawShift

_YM_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}")
MIN_YEAR = 2000
MAX_YEAR = 2100
UNKNOWN_FIRST_NAME = "Unknown"


class Person(BaseModel):
    id: str
    name: str


class MonthShifts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ym: str
    people: List[Person] = Field(default_factory=list)
    rows: List[List[Optional[List[str]]]] = Field(default_factory=list)
    codes: List[str] = Field(default_factory=list)
    shift_names: Dict[str, str] = Field(default_factory=dict, alias="shiftNames")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def is_valid_ym(ym: str) -> bool:
    if not _YM_PATTERN.fullmatch(ym):
        return False
    year, month = (int(part) for part in ym.split("-"))
    return MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12


def parse_ym(ym: str) -> Tuple[int, int]:
    if not is_valid_ym(ym):
        raise InvalidParameter("Invalid ym format. Expected YYYY-MM")
    year, month = ym.split("-")
    return int(year), int(month)


def days_in_month(ym: str) -> int:
    year, month = parse_ym(ym)
    return calendar.monthrange(year, month)[1]


def month_bounds(ym: str) -> Tuple[str, str]:
    """First and last calendar date of ``ym`` as ``YYYY-MM-DD`` strings."""
    return f"{ym}-01", f"{ym}-{days_in_month(ym):02d}"


def person_for(shift: RawShift) -> Person:
    first = shift.first_name or UNKNOWN_FIRST_NAME
    last = shift.last_name or ""
    person_id = str(shift.user_id) if shift.user_id is not None else f"{first}_{last}"
    return Person(id=person_id, name=f"{first} {last}".strip())


def day_of_month(start_time: str) -> Optional[int]:
    """Day component of ``YYYY-MM-DD HH:MM:SS``; None when it cannot be read."""
    date_part = start_time.split()
    if not date_part:
        return None
    fields = date_part[0].split("-")
    if len(fields) != 3:
        return None
    try:
        return int(fields[2])
    except ValueError:
        return None


def build_month_shifts(
    ym: str,
    shifts: Iterable[RawShift],
    display_config: ShiftDisplayConfig,
) -> MonthShifts:
    records = list(shifts)
    people_by_id: Dict[str, Person] = {}
    codes: Set[str] = set()
    shift_names: Dict[str, str] = {}
    resolved: List[Tuple[str, str]] = []

    for shift in records:
        person = person_for(shift)
        people_by_id.setdefault(person.id, person)
        code = display_config.extract_shift_code(shift.alias)
        resolved.append((person.id, code))
        if code:
            codes.add(code)
            shift_names[code] = display_config.resolve_label(code, shift.alias)

    people = sorted(people_by_id.values(), key=lambda person: person.id)
    row_index = {person.id: index for index, person in enumerate(people)}
    total_days = days_in_month(ym)
    rows: List[List[Optional[List[str]]]] = [[None] * total_days for _ in people]

    for shift, (person_id, code) in zip(records, resolved):
        day = day_of_month(shift.start_time)
        if day is None or not 1 <= day <= total_days:
            continue
        row = rows[row_index[person_id]]
        cell = row[day - 1]
        if cell is None:
            row[day - 1] = [code]
        else:
            cell.append(code)

    return MonthShifts(
        ym=ym,
        people=people,
        rows=rows,
        codes=sorted(codes),
        shift_names=shift_names,
    )


__all__ = [
    "MonthShifts",
    "Person",
    "build_month_shifts",
    "day_of_month",
    "days_in_month",
    "is_valid_ym",
    "month_bounds",
    "parse_ym",
    "person_for",
]
