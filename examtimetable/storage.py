"""
Persistent storage for the subject library and generated timetables.

This module manages three JSON files inside the data directory:

    subjects.json              the subject library
    timetables.json            one header record per generated timetable
    timetable_subjects.json    one row per scheduled subject (exam date + day)

Design rationale:
- the library is edited independently of any timetable
- a timetable only references subjects by id; reading it back joins the rows
  with the current library
- generate_timetable() writes nothing unless scheduling succeeded

The data directory is, in order: the data_dir argument, the
EXAMTIMETABLE_DATA_DIR environment variable, or data/ inside the package.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections import Counter
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from examtimetable.errors import ValidationError
from examtimetable.model import ScheduleEntry, Subject, SubjectStats, Timetable, TimetableSubject
from examtimetable.scheduler import ISO_DATE_FORMAT, generate_schedule

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "EXAMTIMETABLE_DATA_DIR"

SUBJECTS_FILE = "subjects.json"
TIMETABLES_FILE = "timetables.json"
TIMETABLE_SUBJECTS_FILE = "timetable_subjects.json"

# column sizes of the subjects table
MAX_CODE_LEN = 20
MAX_DEPARTMENT_LEN = 10
MAX_YEAR_LEN = 10


def default_data_dir() -> Path:
    """
    Return the data directory used when no explicit one is given.

    Using a function instead of a constant makes testing easier,
    because tests can set the environment variable per test.
    """
    env = os.environ.get(DATA_DIR_ENV, "").strip()
    if env:
        return Path(env)
    return Path(__file__).resolve().parent / "data"


def _data_dir(data_dir: str | Path | None) -> Path:
    return Path(data_dir) if data_dir is not None else default_data_dir()


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _new_id() -> str:
    return uuid.uuid4().hex


def _read_list(path: Path) -> list[dict[str, Any]]:
    """
    Load a JSON list of records.

    First run (missing file) -> []. A corrupt file is logged and also read as [],
    so the application keeps working; the next save overwrites it.
    """
    if not path.exists():
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring unreadable data file %s: %s", path, exc)
        return []

    if not isinstance(data, list):
        logger.warning("Ignoring data file %s: expected a JSON list", path)
        return []
    return [x for x in data if isinstance(x, dict)]


def _write_list(path: Path, records: Iterable[Mapping[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [dict(r) for r in records]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


def _clean_subject_fields(code: Any, name: Any, department: Any, year: Any) -> dict[str, str]:
    """
    Strip all fields, upper-case the department and check required/length rules.
    Raises ValidationError listing every problem at once.
    """
    fields = {
        "code": "" if code is None else str(code).strip(),
        "name": "" if name is None else str(name).strip(),
        "department": "" if department is None else str(department).strip().upper(),
        "year": "" if year is None else str(year).strip(),
    }

    problems: list[str] = [f"{k} is required" for k, v in fields.items() if not v]
    if len(fields["code"]) > MAX_CODE_LEN:
        problems.append(f"code is longer than {MAX_CODE_LEN} characters")
    if len(fields["department"]) > MAX_DEPARTMENT_LEN:
        problems.append(f"department is longer than {MAX_DEPARTMENT_LEN} characters")
    if len(fields["year"]) > MAX_YEAR_LEN:
        problems.append(f"year is longer than {MAX_YEAR_LEN} characters")

    if problems:
        raise ValidationError("Invalid subject data: " + "; ".join(problems))
    return fields


def load_subjects(data_dir: str | Path | None = None) -> list[Subject]:
    """
    Load the subject library (insertion order). Missing or invalid file -> [].
    """
    records = _read_list(_data_dir(data_dir) / SUBJECTS_FILE)
    return [Subject.from_dict(r) for r in records if str(r.get("id", "")).strip()]


def save_subjects(subjects: Iterable[Subject], data_dir: str | Path | None = None) -> None:
    _write_list(_data_dir(data_dir) / SUBJECTS_FILE, (s.to_dict() for s in subjects))


def create_subjects(records: Iterable[Mapping[str, Any]], data_dir: str | Path | None = None) -> list[Subject]:
    """
    Validate and append several subjects at once (bulk import).

    All records are validated before anything is written: one bad record
    rejects the whole batch.
    """
    created: list[Subject] = []
    for r in records:
        fields = _clean_subject_fields(r.get("code"), r.get("name"), r.get("department"), r.get("year"))
        created.append(Subject(id=_new_id(), created_at=_now(), **fields))

    if created:
        subjects = load_subjects(data_dir)
        subjects.extend(created)
        save_subjects(subjects, data_dir)
        logger.info("Added %d subject(s) to the library", len(created))

    return created


def create_subject(
    code: str, name: str, department: str, year: str, data_dir: str | Path | None = None
) -> Subject:
    """
    Validate and append one subject to the library.
    """
    record = {"code": code, "name": name, "department": department, "year": year}
    return create_subjects([record], data_dir)[0]


def delete_subject(subject_id: str, data_dir: str | Path | None = None) -> bool:
    """
    Remove a subject by id. Returns False if there was nothing to remove.
    """
    sid = (subject_id or "").strip()
    subjects = load_subjects(data_dir)
    kept = [s for s in subjects if s.id != sid]
    if len(kept) == len(subjects):
        return False

    save_subjects(kept, data_dir)
    logger.info("Deleted subject %s", sid)
    return True


def get_subjects_by_ids(ids: Iterable[str], data_dir: str | Path | None = None) -> list[Subject]:
    """
    Look up subjects in the order of ids; unknown ids are skipped.
    """
    by_id = {s.id: s for s in load_subjects(data_dir)}
    out: list[Subject] = []
    for sid in ids:
        subject = by_id.get(str(sid).strip())
        if subject is None:
            logger.warning("Unknown subject id %s", sid)
            continue
        out.append(subject)
    return out


def filter_subjects(
    subjects: Iterable[Subject],
    departments: Optional[Iterable[str]] = None,
    years: Optional[Iterable[str]] = None,
) -> list[Subject]:
    """
    Keep subjects of the given departments and years (None = no filter).
    Department matching ignores case.
    """
    dept_set = {d.strip().upper() for d in departments} if departments else None
    year_set = {y.strip() for y in years} if years else None

    out: list[Subject] = []
    for s in subjects:
        if dept_set is not None and s.department.upper() not in dept_set:
            continue
        if year_set is not None and s.year not in year_set:
            continue
        out.append(s)
    return out


def subject_stats(subjects: Iterable[Subject]) -> SubjectStats:
    """
    Count subjects in total, per department and per year (keys sorted).
    """
    items = list(subjects)
    by_dept = Counter(s.department for s in items)
    by_year = Counter(s.year for s in items)
    return SubjectStats(
        total=len(items),
        by_department=dict(sorted(by_dept.items())),
        by_year=dict(sorted(by_year.items())),
    )


# ---------------------------------------------------------------------------
# Timetables
# ---------------------------------------------------------------------------


def _iso_date(value: Any, label: str) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = "" if value is None else str(value).strip()
    try:
        return datetime.strptime(text, ISO_DATE_FORMAT).date().isoformat()
    except ValueError:
        raise ValidationError(f"Invalid {label}: {text!r} (expected YYYY-MM-DD)") from None


def _build_timetable(
    academic_year: str,
    semester: str,
    exam_type: str,
    start_date: Any,
    end_date: Any,
    exam_duration: str,
    reference_number: Optional[str],
    exclude_sundays: bool,
    exclude_saturdays: bool,
) -> Timetable:
    header = {
        "academic_year": (academic_year or "").strip(),
        "semester": (semester or "").strip(),
        "exam_type": (exam_type or "").strip(),
        "exam_duration": (exam_duration or "").strip(),
    }
    missing = [k for k, v in header.items() if not v]
    if missing:
        raise ValidationError("Invalid timetable data: " + ", ".join(missing) + " required")

    ref = (reference_number or "").strip() or None
    return Timetable(
        id=_new_id(),
        start_date=_iso_date(start_date, "start date"),
        end_date=_iso_date(end_date, "end date"),
        reference_number=ref,
        exclude_sundays=bool(exclude_sundays),
        exclude_saturdays=bool(exclude_saturdays),
        created_at=_now(),
        **header,
    )


def list_timetables(data_dir: str | Path | None = None) -> list[Timetable]:
    records = _read_list(_data_dir(data_dir) / TIMETABLES_FILE)
    return [Timetable.from_dict(r) for r in records if str(r.get("id", "")).strip()]


def get_timetable(timetable_id: str, data_dir: str | Path | None = None) -> Optional[Timetable]:
    tid = (timetable_id or "").strip()
    for t in list_timetables(data_dir):
        if t.id == tid:
            return t
    return None


def _append_timetable(timetable: Timetable, data_dir: str | Path | None) -> None:
    records = [t.to_dict() for t in list_timetables(data_dir)]
    records.append(timetable.to_dict())
    _write_list(_data_dir(data_dir) / TIMETABLES_FILE, records)


def create_timetable(
    academic_year: str,
    semester: str,
    exam_type: str,
    start_date: Any,
    end_date: Any,
    exam_duration: str,
    reference_number: Optional[str] = None,
    exclude_sundays: bool = True,
    exclude_saturdays: bool = False,
    data_dir: str | Path | None = None,
) -> Timetable:
    """
    Validate and store a timetable header without any scheduled subjects.
    """
    timetable = _build_timetable(
        academic_year,
        semester,
        exam_type,
        start_date,
        end_date,
        exam_duration,
        reference_number,
        exclude_sundays,
        exclude_saturdays,
    )
    _append_timetable(timetable, data_dir)
    return timetable


def save_timetable_subjects(rows: Iterable[TimetableSubject], data_dir: str | Path | None = None) -> None:
    path = _data_dir(data_dir) / TIMETABLE_SUBJECTS_FILE
    records = _read_list(path)
    records.extend(r.to_dict() for r in rows)
    _write_list(path, records)


def get_timetable_subjects(
    timetable_id: str, data_dir: str | Path | None = None
) -> list[tuple[TimetableSubject, Subject]]:
    """
    Rows of one timetable joined with their subjects, in stored order.

    Rows whose subject was deleted from the library since are skipped.
    """
    tid = (timetable_id or "").strip()
    by_id = {s.id: s for s in load_subjects(data_dir)}

    out: list[tuple[TimetableSubject, Subject]] = []
    for r in _read_list(_data_dir(data_dir) / TIMETABLE_SUBJECTS_FILE):
        row = TimetableSubject.from_dict(r)
        if row.timetable_id != tid:
            continue
        subject = by_id.get(row.subject_id)
        if subject is None:
            logger.warning("Timetable %s references missing subject %s", tid, row.subject_id)
            continue
        out.append((row, subject))
    return out


def generate_timetable(
    subjects: Iterable[Subject],
    academic_year: str,
    semester: str,
    exam_type: str,
    start_date: Any,
    end_date: Any,
    exam_duration: str,
    reference_number: Optional[str] = None,
    exclude_sundays: bool = True,
    exclude_saturdays: bool = False,
    data_dir: str | Path | None = None,
) -> tuple[Timetable, list[ScheduleEntry]]:
    """
    Schedule the subjects and persist the timetable with one row per subject.

    Scheduling runs before anything is written: a CapacityError leaves the
    data directory untouched.
    """
    timetable = _build_timetable(
        academic_year,
        semester,
        exam_type,
        start_date,
        end_date,
        exam_duration,
        reference_number,
        exclude_sundays,
        exclude_saturdays,
    )

    schedule = generate_schedule(
        list(subjects),
        timetable.start_date,
        timetable.end_date,
        exclude_sundays=timetable.exclude_sundays,
        exclude_saturdays=timetable.exclude_saturdays,
    )

    _append_timetable(timetable, data_dir)
    save_timetable_subjects(
        (
            TimetableSubject(
                id=_new_id(),
                timetable_id=timetable.id,
                subject_id=entry.subject_id,
                exam_date=entry.date,
                day=entry.day,
            )
            for entry in schedule
        ),
        data_dir,
    )
    logger.info("Generated timetable %s with %d scheduled subject(s)", timetable.id, len(schedule))
    return timetable, schedule
