"""
Exam date assignment.

Given the subjects of one timetable and a date range, give every subject an
exam date:

- every calendar day between start and end (both inclusive) is a candidate,
  minus Sundays and/or Saturdays if excluded
- subjects are grouped by name (lowercased, stripped); a group shares one date
- groups take the candidate dates in order, one date per group, in the order
  their first subject appears in the input
- more groups than dates -> CapacityError, nothing is returned

This module is pure: no I/O, no logging, no clock.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Union

from examtimetable.errors import CapacityError, InvalidInputError
from examtimetable.model import EligibleDate, ScheduleEntry, Subject, SubjectGroup

DateLike = Union[date, str]

# date.weekday(): Monday == 0
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
SATURDAY = 5
SUNDAY = 6

ISO_DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: DateLike) -> date:
    """
    Accept a date, a datetime (truncated) or an ISO 'YYYY-MM-DD' string.
    Raises InvalidInputError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), ISO_DATE_FORMAT).date()
        except ValueError:
            raise InvalidInputError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from None
    raise InvalidInputError(f"Invalid date: {value!r} (expected a date or YYYY-MM-DD string)")


def format_date(day: date) -> str:
    """
    Render a date as 'DD.MM.YYYY'.
    """
    return f"{day.day:02d}.{day.month:02d}.{day.year:04d}"


def enumerate_eligible_dates(
    start_date: DateLike,
    end_date: DateLike,
    exclude_sundays: bool,
    exclude_saturdays: bool,
) -> tuple[EligibleDate, ...]:
    """
    All days from start_date to end_date (inclusive) that are not excluded.

    start_date > end_date gives an empty tuple, not an error.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)

    out: list[EligibleDate] = []
    for offset in range((end - start).days + 1):
        current = start + timedelta(days=offset)
        weekday = current.weekday()

        if exclude_sundays and weekday == SUNDAY:
            continue
        if exclude_saturdays and weekday == SATURDAY:
            continue

        out.append(EligibleDate(date=format_date(current), day=WEEKDAY_NAMES[weekday]))

    return tuple(out)


def normalize_name(name: str) -> str:
    # internal whitespace is left alone: "Data  Structures" != "Data Structures"
    return name.lower().strip()


def _as_subject(item: Union[Subject, Mapping[str, Any]]) -> Subject:
    if isinstance(item, Subject):
        return item
    return Subject.from_dict(item)


def group_subjects(subjects: Iterable[Union[Subject, Mapping[str, Any]]]) -> tuple[SubjectGroup, ...]:
    """
    Partition subjects by normalized name.

    Groups come out in the order their first member appears in the input,
    members keep their input order. Repeated ids are not removed.
    """
    keys: list[str] = []
    members: dict[str, list[Subject]] = {}

    for item in subjects:
        subject = _as_subject(item)
        key = normalize_name(subject.name)
        if key not in members:
            keys.append(key)
            members[key] = []
        members[key].append(subject)

    return tuple(SubjectGroup(key=k, members=tuple(members[k])) for k in keys)


def generate_schedule(
    subjects: Iterable[Union[Subject, Mapping[str, Any]]],
    start_date: DateLike,
    end_date: DateLike,
    exclude_sundays: bool = True,
    exclude_saturdays: bool = False,
) -> list[ScheduleEntry]:
    """
    Assign one exam date per subject group, in order.

    Returns one ScheduleEntry per input subject. Raises CapacityError if there
    are more groups than eligible dates, InvalidInputError for bad dates.
    """
    available = enumerate_eligible_dates(start_date, end_date, exclude_sundays, exclude_saturdays)
    groups = group_subjects(subjects)

    if len(groups) > len(available):
        raise CapacityError(groups=len(groups), available=len(available))

    schedule: list[ScheduleEntry] = []
    for group, slot in zip(groups, available):
        for subject in group.members:
            schedule.append(ScheduleEntry(subject_id=subject.id, date=slot.date, day=slot.day, subject=subject))

    return schedule
