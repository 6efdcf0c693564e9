"""
Unit tests for the JSON storage of subjects and timetables.

Storage contract:
- Missing/invalid file -> empty list
- Subject fields are stripped, departments upper-cased, required fields enforced
- generate_timetable() stores nothing when scheduling fails
- Timetable rows are joined with the current subject library on read
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from examtimetable import storage
from examtimetable.errors import CapacityError, InvalidInputError, ValidationError


class _TempDirTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()


class TestSubjects(_TempDirTestCase):
    def test_load_missing_file_returns_empty(self) -> None:
        self.assertEqual(storage.load_subjects(self.data_dir), [])

    def test_load_corrupt_file_returns_empty(self) -> None:
        (self.data_dir / storage.SUBJECTS_FILE).write_text("{not json", encoding="utf-8")
        with self.assertLogs("examtimetable.storage", level="WARNING"):
            self.assertEqual(storage.load_subjects(self.data_dir), [])

    def test_load_non_list_returns_empty(self) -> None:
        (self.data_dir / storage.SUBJECTS_FILE).write_text('{"a": 1}', encoding="utf-8")
        with self.assertLogs("examtimetable.storage", level="WARNING"):
            self.assertEqual(storage.load_subjects(self.data_dir), [])

    def test_create_normalizes_and_persists(self) -> None:
        s = storage.create_subject(" CS3401 ", " Algorithms ", "cse", " II ", self.data_dir)
        self.assertEqual((s.code, s.name, s.department, s.year), ("CS3401", "Algorithms", "CSE", "II"))
        self.assertTrue(s.id)
        self.assertTrue(s.created_at)

        data = json.loads((self.data_dir / storage.SUBJECTS_FILE).read_text(encoding="utf-8"))
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["id"], s.id)
        self.assertEqual(storage.load_subjects(self.data_dir), [s])

    def test_create_rejects_missing_fields(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            storage.create_subject("CS1", "  ", "CSE", "", self.data_dir)
        self.assertIn("name is required", str(ctx.exception))
        self.assertIn("year is required", str(ctx.exception))
        self.assertEqual(storage.load_subjects(self.data_dir), [])

    def test_create_rejects_too_long_fields(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_subject("X" * 21, "Name", "CSE", "II", self.data_dir)
        with self.assertRaises(ValidationError):
            storage.create_subject("CS1", "Name", "COMPUTERSCIENCE", "II", self.data_dir)

    def test_bulk_create_is_all_or_nothing(self) -> None:
        records = [
            {"code": "CS1", "name": "A", "department": "CSE", "year": "I"},
            {"code": "CS2", "name": "", "department": "CSE", "year": "I"},
        ]
        with self.assertRaises(ValidationError):
            storage.create_subjects(records, self.data_dir)
        self.assertEqual(storage.load_subjects(self.data_dir), [])

    def test_bulk_create_appends_in_order(self) -> None:
        storage.create_subject("CS0", "Zero", "CSE", "I", self.data_dir)
        created = storage.create_subjects(
            [
                {"code": "CS1", "name": "One", "department": "cse", "year": "I"},
                {"code": "EC1", "name": "Two", "department": "ece", "year": "II"},
            ],
            self.data_dir,
        )
        self.assertEqual(len(created), 2)
        self.assertEqual([s.code for s in storage.load_subjects(self.data_dir)], ["CS0", "CS1", "EC1"])

    def test_delete(self) -> None:
        a = storage.create_subject("CS1", "A", "CSE", "I", self.data_dir)
        b = storage.create_subject("CS2", "B", "CSE", "I", self.data_dir)
        self.assertTrue(storage.delete_subject(a.id, self.data_dir))
        self.assertFalse(storage.delete_subject(a.id, self.data_dir))
        self.assertEqual(storage.load_subjects(self.data_dir), [b])

    def test_get_by_ids_keeps_requested_order(self) -> None:
        a = storage.create_subject("CS1", "A", "CSE", "I", self.data_dir)
        b = storage.create_subject("CS2", "B", "CSE", "I", self.data_dir)
        with self.assertLogs("examtimetable.storage", level="WARNING"):
            found = storage.get_subjects_by_ids([b.id, "missing", a.id], self.data_dir)
        self.assertEqual(found, [b, a])

    def test_filter_and_stats(self) -> None:
        storage.create_subjects(
            [
                {"code": "CS1", "name": "A", "department": "CSE", "year": "II"},
                {"code": "CS2", "name": "B", "department": "CSE", "year": "III"},
                {"code": "EC1", "name": "C", "department": "ECE", "year": "II"},
            ],
            self.data_dir,
        )
        subjects = storage.load_subjects(self.data_dir)

        self.assertEqual([s.code for s in storage.filter_subjects(subjects, ["cse"])], ["CS1", "CS2"])
        self.assertEqual([s.code for s in storage.filter_subjects(subjects, None, ["II"])], ["CS1", "EC1"])
        self.assertEqual([s.code for s in storage.filter_subjects(subjects, ["ECE"], ["III"])], [])

        stats = storage.subject_stats(subjects)
        self.assertEqual(stats.total, 3)
        self.assertEqual(stats.by_department, {"CSE": 2, "ECE": 1})
        self.assertEqual(stats.by_year, {"II": 2, "III": 1})

    def test_env_var_sets_default_data_dir(self) -> None:
        with mock.patch.dict(os.environ, {storage.DATA_DIR_ENV: str(self.data_dir)}):
            self.assertEqual(storage.default_data_dir(), self.data_dir)
            storage.create_subject("CS1", "A", "CSE", "I")
        self.assertTrue((self.data_dir / storage.SUBJECTS_FILE).exists())


class TestTimetables(_TempDirTestCase):
    HEADER = {
        "academic_year": "2025-26",
        "semester": "ODD",
        "exam_type": "Internal Assessment I",
        "exam_duration": "08:00 AM - 09:30 AM",
    }

    def _library(self):
        return storage.create_subjects(
            [
                {"code": "CS1", "name": "Data Structures", "department": "CSE", "year": "II"},
                {"code": "IT1", "name": "data structures ", "department": "IT", "year": "II"},
                {"code": "CS2", "name": "Algorithms", "department": "CSE", "year": "II"},
            ],
            self.data_dir,
        )

    def test_generate_persists_header_and_rows(self) -> None:
        subjects = self._library()
        timetable, schedule = storage.generate_timetable(
            subjects,
            start_date="2025-03-03",
            end_date="2025-03-09",
            reference_number=" CIT/COE/01 ",
            data_dir=self.data_dir,
            **self.HEADER,
        )

        self.assertEqual(len(schedule), 3)
        self.assertEqual(timetable.reference_number, "CIT/COE/01")
        self.assertTrue(timetable.exclude_sundays)
        self.assertFalse(timetable.exclude_saturdays)
        self.assertEqual(storage.get_timetable(timetable.id, self.data_dir), timetable)
        self.assertEqual(storage.list_timetables(self.data_dir), [timetable])

        rows = storage.get_timetable_subjects(timetable.id, self.data_dir)
        self.assertEqual([(r.exam_date, r.day, s.code) for r, s in rows], [
            ("03.03.2025", "Monday", "CS1"),
            ("03.03.2025", "Monday", "IT1"),
            ("04.03.2025", "Tuesday", "CS2"),
        ])

    def test_generate_honors_flags_as_given(self) -> None:
        subjects = self._library()
        # Sunday 2025-03-09 only: allowed when Sundays are not excluded
        timetable, schedule = storage.generate_timetable(
            subjects[:1],
            start_date="2025-03-09",
            end_date="2025-03-09",
            exclude_sundays=False,
            data_dir=self.data_dir,
            **self.HEADER,
        )
        self.assertFalse(timetable.exclude_sundays)
        self.assertEqual(schedule[0].day, "Sunday")

    def test_capacity_error_writes_nothing(self) -> None:
        subjects = self._library()
        with self.assertRaises(CapacityError):
            storage.generate_timetable(
                subjects,
                start_date="2025-03-03",
                end_date="2025-03-03",
                data_dir=self.data_dir,
                **self.HEADER,
            )
        self.assertEqual(storage.list_timetables(self.data_dir), [])
        self.assertFalse((self.data_dir / storage.TIMETABLE_SUBJECTS_FILE).exists())

    def test_invalid_header_rejected(self) -> None:
        header = dict(self.HEADER, exam_type="  ")
        with self.assertRaises(ValidationError):
            storage.create_timetable(start_date="2025-03-03", end_date="2025-03-09", data_dir=self.data_dir, **header)
        with self.assertRaises(ValidationError):
            storage.create_timetable(start_date="03.03.2025", end_date="2025-03-09", data_dir=self.data_dir, **self.HEADER)
        with self.assertRaises(ValidationError):
            storage.create_timetable(start_date="20250303", end_date="2025-03-09", data_dir=self.data_dir, **self.HEADER)

    def test_inverted_range_with_subjects_is_capacity_error(self) -> None:
        subjects = self._library()
        with self.assertRaises(CapacityError):
            storage.generate_timetable(
                subjects, start_date="2025-03-09", end_date="2025-03-03", data_dir=self.data_dir, **self.HEADER
            )

    def test_validation_error_is_not_scheduling_error(self) -> None:
        self.assertFalse(issubclass(ValidationError, InvalidInputError))

    def test_create_timetable_without_rows(self) -> None:
        t = storage.create_timetable(
            start_date="2025-03-03", end_date="2025-03-09", data_dir=self.data_dir, **self.HEADER
        )
        self.assertIsNone(t.reference_number)
        self.assertEqual(storage.get_timetable_subjects(t.id, self.data_dir), [])
        self.assertIsNone(storage.get_timetable("unknown", self.data_dir))

    def test_rows_of_deleted_subjects_are_skipped(self) -> None:
        subjects = self._library()
        timetable, _ = storage.generate_timetable(
            subjects, start_date="2025-03-03", end_date="2025-03-09", data_dir=self.data_dir, **self.HEADER
        )
        storage.delete_subject(subjects[0].id, self.data_dir)

        with self.assertLogs("examtimetable.storage", level="WARNING"):
            rows = storage.get_timetable_subjects(timetable.id, self.data_dir)
        self.assertEqual([s.code for _, s in rows], ["IT1", "CS2"])

    def test_rows_are_scoped_to_their_timetable(self) -> None:
        subjects = self._library()
        t1, _ = storage.generate_timetable(
            subjects[:1], start_date="2025-03-03", end_date="2025-03-09", data_dir=self.data_dir, **self.HEADER
        )
        t2, _ = storage.generate_timetable(
            subjects[1:], start_date="2025-03-10", end_date="2025-03-16", data_dir=self.data_dir, **self.HEADER
        )
        self.assertEqual(len(storage.get_timetable_subjects(t1.id, self.data_dir)), 1)
        self.assertEqual(len(storage.get_timetable_subjects(t2.id, self.data_dir)), 2)
        self.assertEqual([t.id for t in storage.list_timetables(self.data_dir)], [t1.id, t2.id])


if __name__ == "__main__":
    unittest.main()
