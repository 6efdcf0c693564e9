"""
Exception types shared by the scheduler, the subject library and the importers.

The CLI and the interactive wizard catch ExamTimetableError subclasses and turn
them into user messages; anything else is a bug and propagates.
"""

from __future__ import annotations


class ExamTimetableError(Exception):
    """Base class for all expected failures of this package."""


class SchedulingError(ExamTimetableError):
    """Raised by the scheduler core."""


class CapacityError(SchedulingError):
    """
    The eligible dates ran out before every subject group got one.

    No partial schedule exists when this is raised.
    """

    def __init__(self, groups: int, available: int) -> None:
        self.groups = groups
        self.available = available
        super().__init__(
            f"Not enough available dates for all subjects ({groups} subject groups, {available} available dates)"
        )


class InvalidInputError(SchedulingError, ValueError):
    """A start/end date could not be interpreted as a calendar date."""


class ValidationError(ExamTimetableError, ValueError):
    """Invalid subject or timetable fields."""


class ImportFormatError(ExamTimetableError):
    """The uploaded spreadsheet could not be turned into subjects."""
