"""
Interactive timetable wizard.

Walks through the same steps as the web form:

    1. Basic information (academic year, semester, exam type, reference)
    2. Departments and years
    3. Subjects
    4. Exam settings (date range, excluded weekdays, duration)
    5. Preview -> save -> optional PDF circular

Nothing is stored before the preview is confirmed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from examtimetable import storage
from examtimetable.errors import CapacityError, ExamTimetableError, InvalidInputError
from examtimetable.export_pdf import build_circular
from examtimetable.model import ScheduleEntry, Subject
from examtimetable.scheduler import generate_schedule, parse_date

SEMESTERS = ("ODD", "EVEN")
EXAM_TYPES = ("Internal Assessment I", "Internal Assessment II", "Model Exam", "Semester Exam")

PromptFn = Callable[[str], str]


@dataclass
class WizardState:
    academic_year: str = ""
    semester: str = ""
    exam_type: str = ""
    reference_number: Optional[str] = None
    departments: list[str] = field(default_factory=list)
    years: list[str] = field(default_factory=list)
    subjects: list[Subject] = field(default_factory=list)
    start_date: str = ""
    end_date: str = ""
    exclude_sundays: bool = True
    exclude_saturdays: bool = False
    exam_duration: str = ""


class Wizard:
    def __init__(
        self,
        data_dir: str | Path | None = None,
        prompt_fn: Optional[PromptFn] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.data_dir = data_dir
        self.console = console or Console()
        self._prompt_fn = prompt_fn or (lambda msg: self.console.input(escape(msg)))
        self.state = WizardState()

    # -- helpers -------------------------------------------------------------

    def _println(self, msg: str = "") -> None:
        self.console.print(msg)

    def _prompt(self, msg: str) -> str:
        return self._prompt_fn(msg).strip()

    def _ask_required(self, msg: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        while True:
            answer = self._prompt(f"{msg}{suffix}: ") or default
            if answer:
                return answer
            self._println("[red]A value is required.[/]")

    def _ask_choice(self, msg: str, choices: tuple[str, ...]) -> str:
        for i, c in enumerate(choices, start=1):
            self._println(escape(f"  [{i}] {c}"))
        while True:
            pick = self._prompt(f"{msg} (number or text): ")
            if pick.isdigit():
                if 1 <= int(pick) <= len(choices):
                    return choices[int(pick) - 1]
                self._println(f"[red]Invalid number: {escape(pick)} (1-{len(choices)})[/]")
                continue
            if pick:
                return pick
            self._println("[red]Please choose one option.[/]")

    def _ask_yes_no(self, msg: str, default: bool) -> bool:
        hint = "[Y/n]" if default else "[y/N]"
        answer = self._prompt(f"{msg} {hint}: ").lower()
        if not answer:
            return default
        return answer.startswith("y")

    def _ask_date(self, msg: str) -> str:
        while True:
            text = self._prompt(f"{msg} (YYYY-MM-DD): ")
            try:
                return parse_date(text).isoformat()
            except InvalidInputError as exc:
                self._println(f"[red]{escape(str(exc))}[/]")

    # -- steps ---------------------------------------------------------------

    def step_basic_information(self) -> None:
        self._println("\n[bold]Step 1/5: Basic information[/]")
        s = self.state
        s.academic_year = self._ask_required("Academic year", default="2025-26")
        s.semester = self._ask_choice("Semester", SEMESTERS)
        s.exam_type = self._ask_choice("Exam type", EXAM_TYPES)
        s.reference_number = self._prompt("Reference number [blank = default]: ") or None

    def step_departments(self, library: list[Subject]) -> None:
        self._println("\n[bold]Step 2/5: Departments and years[/]")
        stats = storage.subject_stats(library)

        table = Table(title="Subject library", box=box.SIMPLE)
        table.add_column("Department")
        table.add_column("Subjects", justify="right")
        for dept, n in stats.by_department.items():
            table.add_row(dept, str(n))
        self.console.print(table)

        depts = self._prompt("Departments, comma separated [blank = all]: ")
        years = self._prompt(f"Years ({', '.join(stats.by_year)}), comma separated [blank = all]: ")
        self.state.departments = [d.strip().upper() for d in depts.split(",") if d.strip()]
        self.state.years = [y.strip() for y in years.split(",") if y.strip()]

    def step_subjects(self, library: list[Subject]) -> bool:
        """
        Pick subjects among those matching the department/year filters.
        Returns False if nothing matches.
        """
        self._println("\n[bold]Step 3/5: Subjects[/]")
        matches = storage.filter_subjects(library, self.state.departments or None, self.state.years or None)
        if not matches:
            self._println("No subjects match the selected departments and years.")
            return False

        table = Table(title="Matching subjects", box=box.SIMPLE)
        table.add_column("#", justify="right")
        table.add_column("Code")
        table.add_column("Name")
        table.add_column("Dept")
        table.add_column("Year")
        for i, subj in enumerate(matches, start=1):
            table.add_row(str(i), subj.code, subj.name, subj.department, subj.year)
        self.console.print(table)

        while True:
            pick = self._prompt("Numbers to include, comma separated [blank = all]: ")
            if not pick:
                self.state.subjects = matches
                return True

            chosen: list[Subject] = []
            seen: set[int] = set()
            ok = True
            for part in pick.split(","):
                part = part.strip()
                if not part.isdigit() or not (1 <= int(part) <= len(matches)):
                    self._println(f"[red]Invalid number: {escape(repr(part))}[/]")
                    ok = False
                    break
                # repeated numbers select a subject once
                if int(part) in seen:
                    continue
                seen.add(int(part))
                chosen.append(matches[int(part) - 1])
            if ok and chosen:
                self.state.subjects = chosen
                return True

    def step_settings(self) -> None:
        self._println("\n[bold]Step 4/5: Exam settings[/]")
        s = self.state
        while True:
            s.start_date = self._ask_date("Start date")
            s.end_date = self._ask_date("End date")
            if s.start_date <= s.end_date:
                break
            self._println("[red]The end date must not be before the start date.[/]")
        s.exclude_sundays = self._ask_yes_no("Exclude Sundays?", default=True)
        s.exclude_saturdays = self._ask_yes_no("Exclude Saturdays?", default=False)
        s.exam_duration = self._ask_required("Exam duration", default="08:00 AM - 09:30 AM")

    def preview(self) -> list[ScheduleEntry]:
        """
        Compute the schedule without storing it. Raises CapacityError.
        """
        s = self.state
        schedule = generate_schedule(s.subjects, s.start_date, s.end_date, s.exclude_sundays, s.exclude_saturdays)

        table = Table(title=f"{s.exam_type} ({s.academic_year} {s.semester})", box=box.SIMPLE)
        table.add_column("Date")
        table.add_column("Day")
        table.add_column("Dept")
        table.add_column("Subject")
        for entry in schedule:
            table.add_row(entry.date, entry.day, entry.subject.department, f"{entry.subject.code} {entry.subject.name}")
        self.console.print(table)
        return schedule

    def step_preview_and_save(self) -> bool:
        """
        Show the schedule and store it on confirmation.

        Returns False when the dates do not suffice (caller goes back to settings).
        """
        self._println("\n[bold]Step 5/5: Preview[/]")
        try:
            self.preview()
        except CapacityError as exc:
            self._println(f"[red]{escape(str(exc))}[/]")
            self._println("Please widen the date range or exclude fewer days.")
            return False

        if not self._ask_yes_no("Save this timetable?", default=True):
            self._println("Discarded.")
            return True

        s = self.state
        timetable, schedule = storage.generate_timetable(
            s.subjects,
            academic_year=s.academic_year,
            semester=s.semester,
            exam_type=s.exam_type,
            start_date=s.start_date,
            end_date=s.end_date,
            exam_duration=s.exam_duration,
            reference_number=s.reference_number,
            exclude_sundays=s.exclude_sundays,
            exclude_saturdays=s.exclude_saturdays,
            data_dir=self.data_dir,
        )
        self._println(f"Saved timetable {timetable.id} ({len(schedule)} exams).")

        out = self._prompt("Write PDF circular to [blank = skip]: ")
        if out:
            rows = storage.get_timetable_subjects(timetable.id, self.data_dir)
            build_circular(timetable, rows, out)
            self._println(f"Circular written to: {out}")
        return True

    def run(self) -> None:
        library = storage.load_subjects(self.data_dir)
        if not library:
            self._println("The subject library is empty. Add or import subjects first.")
            return

        self._println("[bold]=== Exam timetable wizard ===[/]")
        self.step_basic_information()
        self.step_departments(library)
        if not self.step_subjects(library):
            return

        while True:
            self.step_settings()
            if self.step_preview_and_save():
                return


def run_interactive(
    data_dir: str | Path | None = None,
    prompt_fn: Optional[PromptFn] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Run the wizard; library errors are shown instead of raised.
    """
    wizard = Wizard(data_dir=data_dir, prompt_fn=prompt_fn, console=console)
    try:
        wizard.run()
    except ExamTimetableError as exc:
        wizard.console.print(f"[red]Error: {escape(str(exc))}[/]")
    except (KeyboardInterrupt, EOFError):
        wizard.console.print("\nBye.")
