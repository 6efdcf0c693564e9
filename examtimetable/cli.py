"""
CLI (Command Line Interface).

This module provides terminal commands for staff and for testing, e.g.:

    examtimetable subjects list [--department CSE] [--year II]
    examtimetable subjects add <code> <name> <department> <year>
    examtimetable subjects remove <subject_id>
    examtimetable subjects import <file.xlsx>
    examtimetable subjects stats
    examtimetable generate --start 2025-03-03 --end 2025-03-15 ...
    examtimetable timetables list
    examtimetable timetables show <timetable_id>
    examtimetable pdf <timetable_id> <file.pdf>
    examtimetable ics <timetable_id> <file.ics>
    examtimetable interactive

Note:
- The step-by-step wizard lives in examtimetable/interactive.py
- This CLI prints plain text (no rich formatting)
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from examtimetable import storage
from examtimetable.errors import CapacityError, ExamTimetableError
from examtimetable.excel_import import parse_subjects_workbook
from examtimetable.export_ics import export_schedule_to_ics
from examtimetable.export_pdf import build_circular

logger = logging.getLogger(__name__)

CAPACITY_HINT = "Please widen the date range or exclude fewer days."


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _cmd_subjects_list(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    """
    List library subjects, optionally filtered by department and year.
    """
    subjects = storage.filter_subjects(storage.load_subjects(data_dir), args.department, args.year)
    if not subjects:
        print("No subjects.")
        return 0

    for s in subjects:
        print(f"{s.id} | {s.code} | {s.name} | {s.department} | {s.year}")
    print(f"{len(subjects)} subject(s)")
    return 0


def _cmd_subjects_add(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    subject = storage.create_subject(args.code, args.name, args.department, args.year, data_dir)
    print(f"Added: {subject.code} {subject.name} ({subject.id})")
    return 0


def _cmd_subjects_remove(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    sid = (args.subject_id or "").strip()
    if not sid:
        print("Please provide a subject id.")
        return 1

    if not storage.delete_subject(sid, data_dir):
        print(f"Not found: {sid}")
        return 1

    print(f"Removed: {sid}")
    return 0


def _cmd_subjects_import(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    """
    Import subjects from an .xlsx file into the library.
    """
    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}")
        return 1

    records = parse_subjects_workbook(path)
    if not records:
        print("No subjects found in file.")
        return 0

    created = storage.create_subjects(records, data_dir)
    print(f"Imported {len(created)} subject(s) from: {path}")
    return 0


def _cmd_subjects_stats(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    stats = storage.subject_stats(storage.load_subjects(data_dir))
    print(f"Total subjects: {stats.total}")
    if stats.by_department:
        print("Departments:")
        for dept, n in stats.by_department.items():
            print(f"  {dept}: {n}")
    if stats.by_year:
        print("Years:")
        for year, n in stats.by_year.items():
            print(f"  {year}: {n}")
    return 0


def _cmd_generate(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    """
    Select subjects, assign exam dates and store the timetable.
    """
    if args.subject:
        subjects = storage.get_subjects_by_ids(args.subject, data_dir)
    else:
        subjects = storage.filter_subjects(storage.load_subjects(data_dir), args.department, args.year)

    if not subjects:
        print("No subjects selected.")
        return 1

    timetable, schedule = storage.generate_timetable(
        subjects,
        academic_year=args.academic_year,
        semester=args.semester,
        exam_type=args.exam_type,
        start_date=args.start,
        end_date=args.end,
        exam_duration=args.duration,
        reference_number=args.reference,
        exclude_sundays=not args.include_sundays,
        exclude_saturdays=args.exclude_saturdays,
        data_dir=data_dir,
    )

    print(f"Timetable created: {timetable.id}")
    for entry in schedule:
        s = entry.subject
        print(f"{entry.date} {entry.day:<9} | {s.department} | {s.code} {s.name}")
    return 0


def _cmd_timetables_list(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    timetables = storage.list_timetables(data_dir)
    if not timetables:
        print("No timetables.")
        return 0

    for t in timetables:
        print(f"{t.id} | {t.academic_year} {t.semester} | {t.exam_type} | {t.start_date} - {t.end_date}")
    return 0


def _cmd_timetables_show(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    timetable = storage.get_timetable(args.timetable_id, data_dir)
    if timetable is None:
        print(f"Timetable not found: {args.timetable_id}")
        return 1

    print(f"{timetable.exam_type} | {timetable.academic_year} {timetable.semester}")
    print(f"Dates: {timetable.start_date} - {timetable.end_date} | Duration: {timetable.exam_duration}")
    rows = storage.get_timetable_subjects(timetable.id, data_dir)
    if not rows:
        print("No scheduled subjects.")
        return 0

    for row, s in rows:
        print(f"{row.exam_date} {row.day:<9} | {s.department} | {s.code} {s.name}")
    return 0


def _cmd_pdf(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    """
    Render the printable circular of a stored timetable.
    """
    timetable = storage.get_timetable(args.timetable_id, data_dir)
    if timetable is None:
        print(f"Timetable not found: {args.timetable_id}")
        return 1

    rows = storage.get_timetable_subjects(timetable.id, data_dir)
    n = build_circular(timetable, rows, args.out)
    print(f"Wrote circular with {n} exams to: {args.out}")
    return 0


def _cmd_ics(args: argparse.Namespace, data_dir: Optional[Path]) -> int:
    timetable = storage.get_timetable(args.timetable_id, data_dir)
    if timetable is None:
        print(f"Timetable not found: {args.timetable_id}")
        return 1

    rows = storage.get_timetable_subjects(timetable.id, data_dir)
    n = export_schedule_to_ics(rows, args.out)
    print(f"Exported {n} exams to: {args.out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="examtimetable", description="Exam timetable generator")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding the JSON data files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress messages")
    sub = parser.add_subparsers(dest="command", required=True)

    p_subjects = sub.add_parser("subjects", help="Manage the subject library")
    sub_subjects = p_subjects.add_subparsers(dest="action", required=True)

    p_list = sub_subjects.add_parser("list", help="List subjects")
    p_list.add_argument("--department", action="append", help="Filter by department (repeatable)")
    p_list.add_argument("--year", action="append", help="Filter by year (repeatable)")

    p_add = sub_subjects.add_parser("add", help="Add a subject")
    p_add.add_argument("code", type=str, help="Subject code (e.g. CS3401)")
    p_add.add_argument("name", type=str, help="Subject name")
    p_add.add_argument("department", type=str, help="Department code (e.g. CSE)")
    p_add.add_argument("year", type=str, help="Year of study (e.g. II)")

    p_remove = sub_subjects.add_parser("remove", help="Remove a subject by id")
    p_remove.add_argument("subject_id", type=str)

    p_import = sub_subjects.add_parser("import", help="Import subjects from an .xlsx file")
    p_import.add_argument("file", type=str)

    sub_subjects.add_parser("stats", help="Subject counts per department and year")

    p_gen = sub.add_parser("generate", help="Generate and store a timetable")
    p_gen.add_argument("--start", required=True, help="First exam day (YYYY-MM-DD)")
    p_gen.add_argument("--end", required=True, help="Last exam day (YYYY-MM-DD)")
    p_gen.add_argument("--include-sundays", action="store_true", help="Allow exams on Sundays")
    p_gen.add_argument("--exclude-saturdays", action="store_true", help="No exams on Saturdays")
    p_gen.add_argument("--academic-year", required=True, help="e.g. 2025-26")
    p_gen.add_argument("--semester", required=True, help="e.g. ODD")
    p_gen.add_argument("--exam-type", required=True, help="e.g. Internal Assessment I")
    p_gen.add_argument("--duration", required=True, help="e.g. 08:00 AM - 09:30 AM")
    p_gen.add_argument("--reference", default=None, help="Circular reference number")
    p_gen.add_argument("--department", action="append", help="Only subjects of this department (repeatable)")
    p_gen.add_argument("--year", action="append", help="Only subjects of this year (repeatable)")
    p_gen.add_argument("--subject", action="append", help="Explicit subject id (repeatable, overrides filters)")

    p_tt = sub.add_parser("timetables", help="Show stored timetables")
    sub_tt = p_tt.add_subparsers(dest="action", required=True)
    sub_tt.add_parser("list", help="List timetables")
    p_show = sub_tt.add_parser("show", help="Show one timetable with its exam dates")
    p_show.add_argument("timetable_id", type=str)

    p_pdf = sub.add_parser("pdf", help="Write the printable circular (.pdf)")
    p_pdf.add_argument("timetable_id", type=str)
    p_pdf.add_argument("out", type=str, help="Output file path (e.g. circular.pdf)")

    p_ics = sub.add_parser("ics", help="Export exam dates to .ics")
    p_ics.add_argument("timetable_id", type=str)
    p_ics.add_argument("out", type=str, help="Output file path (e.g. exams.ics)")

    sub.add_parser("interactive", help="Step-by-step timetable wizard")

    return parser


COMMANDS = {
    ("subjects", "list"): _cmd_subjects_list,
    ("subjects", "add"): _cmd_subjects_add,
    ("subjects", "remove"): _cmd_subjects_remove,
    ("subjects", "import"): _cmd_subjects_import,
    ("subjects", "stats"): _cmd_subjects_stats,
    ("generate", None): _cmd_generate,
    ("timetables", "list"): _cmd_timetables_list,
    ("timetables", "show"): _cmd_timetables_show,
    ("pdf", None): _cmd_pdf,
    ("ics", None): _cmd_ics,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "interactive":
        from examtimetable.interactive import run_interactive

        run_interactive(args.data_dir)
        raise SystemExit(0)

    action = getattr(args, "action", None)
    logger.debug("command=%s action=%s data_dir=%s", args.command, action, args.data_dir)
    handler = COMMANDS.get((args.command, action))
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, args.data_dir)
    except CapacityError as exc:
        print(f"Error: {exc}")
        print(CAPACITY_HINT)
        code = 1
    except ExamTimetableError as exc:
        print(f"Error: {exc}")
        code = 1

    raise SystemExit(code)
