"""
iCalendar (.ics) export.

Every scheduled exam becomes one all-day event, so a timetable can be imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Union

from examtimetable.model import ScheduleEntry, Subject, TimetableSubject

logger = logging.getLogger(__name__)

ScheduledItem = Union[ScheduleEntry, tuple[TimetableSubject, Subject]]


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _ics_date(dd_mm_yyyy: str) -> datetime:
    """
    Parse an exam date 'DD.MM.YYYY'. Raises ValueError for invalid dates.
    """
    return datetime.strptime(dd_mm_yyyy.strip(), "%d.%m.%Y")


def _unpack(item: ScheduledItem) -> tuple[str, str, Subject]:
    """
    Return (uid seed, exam date, subject) for a schedule entry or a stored row.
    """
    if isinstance(item, ScheduleEntry):
        return item.subject_id, item.date, item.subject
    row, subject = item
    return row.id or row.subject_id, row.exam_date, subject


def export_schedule_to_ics(items: Iterable[ScheduledItem], out_path: str | Path) -> int:
    """
    Export scheduled exams to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//ExamTimetable//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for item in items:
        seed, exam_date, subject = _unpack(item)

        try:
            day = _ics_date(exam_date)
        except ValueError:
            logger.warning("Skipping %s: invalid exam date %r", subject.code or seed, exam_date)
            continue

        dtstart = day.strftime("%Y%m%d")
        # all-day events end on the following day (exclusive)
        dtend = (day + timedelta(days=1)).strftime("%Y%m%d")

        summary = f"{subject.code} {subject.name}".strip() or "Exam"
        description = f"Department: {subject.department}\nYear: {subject.year}"

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(f'{seed}-{dtstart}')}@examtimetable")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART;VALUE=DATE:{dtstart}")
        lines.append(f"DTEND;VALUE=DATE:{dtend}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        lines.append(f"DESCRIPTION:{_ics_escape(description)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
