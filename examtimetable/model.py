"""
Central data model definitions used across the project.

This module defines the canonical structure of subjects, timetables and
schedule results so that:
- the scheduler, the storage layer and the renderers share the same field names
- JSON files written by storage.py can be read back without guessing
- the scheduler's output is an explicit type instead of loose dicts
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional, Tuple


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class Subject:
    """
    One subject of the library, as stored in subjects.json.
    """

    id: str
    code: str
    name: str
    department: str
    year: str
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Subject":
        """
        Build a Subject from a JSON-like mapping.

        Accepts both snake_case and the camelCase keys of the web payloads
        ("createdAt"). Only id and name are needed by the scheduler, so the
        other fields default to "".
        """
        created = data.get("created_at", data.get("createdAt"))
        return cls(
            id=_text(data.get("id")),
            code=_text(data.get("code")),
            name="" if data.get("name") is None else str(data.get("name")),
            department=_text(data.get("department")),
            year=_text(data.get("year")),
            created_at=None if created is None else str(created),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EligibleDate:
    """
    A calendar day that survived the weekday exclusions.

    date is rendered as DD.MM.YYYY, day is the English weekday name.
    """

    date: str
    day: str


@dataclass(frozen=True)
class SubjectGroup:
    """
    Subjects sharing one normalized name; they are examined on the same date.
    """

    key: str
    members: Tuple[Subject, ...]


@dataclass(frozen=True)
class ScheduleEntry:
    """
    One scheduled exam: exactly one per input subject.

    The full subject is embedded so that renderers can group by date and
    department without looking anything up.
    """

    subject_id: str
    date: str
    day: str
    subject: Subject

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "date": self.date,
            "day": self.day,
            "subject": self.subject.to_dict(),
        }


@dataclass(frozen=True)
class Timetable:
    """
    Header of one generated timetable (what goes on top of the circular).

    start_date / end_date are ISO dates (YYYY-MM-DD) as entered by the user.
    """

    id: str
    academic_year: str
    semester: str
    exam_type: str
    start_date: str
    end_date: str
    exam_duration: str
    reference_number: Optional[str] = None
    exclude_sundays: bool = True
    exclude_saturdays: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Timetable":
        ref = data.get("reference_number")
        return cls(
            id=_text(data.get("id")),
            academic_year=_text(data.get("academic_year")),
            semester=_text(data.get("semester")),
            exam_type=_text(data.get("exam_type")),
            start_date=_text(data.get("start_date")),
            end_date=_text(data.get("end_date")),
            exam_duration=_text(data.get("exam_duration")),
            reference_number=None if ref is None else str(ref),
            exclude_sundays=bool(data.get("exclude_sundays", True)),
            exclude_saturdays=bool(data.get("exclude_saturdays", False)),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TimetableSubject:
    """
    Join row: which subject is examined on which date in which timetable.
    """

    id: str
    timetable_id: str
    subject_id: str
    exam_date: str
    day: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimetableSubject":
        return cls(
            id=_text(data.get("id")),
            timetable_id=_text(data.get("timetable_id")),
            subject_id=_text(data.get("subject_id")),
            exam_date=_text(data.get("exam_date")),
            day=_text(data.get("day")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SubjectStats:
    """
    Library statistics: total plus counts per department and per year.
    """

    total: int = 0
    by_department: dict[str, int] = field(default_factory=dict)
    by_year: dict[str, int] = field(default_factory=dict)
