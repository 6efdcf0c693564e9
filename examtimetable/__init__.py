"""
Exam timetable generator: subject library, date assignment and printable circulars.
"""

from examtimetable.errors import CapacityError, InvalidInputError
from examtimetable.scheduler import enumerate_eligible_dates, generate_schedule, group_subjects

__all__ = [
    "CapacityError",
    "InvalidInputError",
    "enumerate_eligible_dates",
    "generate_schedule",
    "group_subjects",
]
