"""
Printable exam circular (.pdf).

Layout (A4 portrait):
- institution header, reference number and issue date
- CIRCULAR title and the announcement paragraph
- one table: DATE column + one column per department, one row per exam date,
  each cell lists code and name of that department's subjects on that date
- notes, copy-to list and signature block

Grouping by date and department lives in group_rows_by_date(); the rest of
this module only lays things out.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from examtimetable.model import Subject, Timetable, TimetableSubject

logger = logging.getLogger(__name__)

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

BORDER_COL = colors.black
HEADER_BG = colors.HexColor("#D9E1F2")


@dataclass
class CircularSettings:
    """
    Fixed texts printed on every circular.
    """

    institution: str = "CHENNAI INSTITUTE OF TECHNOLOGY"
    subtitle: str = "(Autonomous)"
    affiliation: str = "Autonomous Institution, Affiliated to Anna University, Chennai"
    office: str = "OFFICE OF THE CONTROLLER OF EXAMINATIONS"
    default_reference: str = "CIT/COE/2025-26/ODD/04"
    reporting_time: str = "07:45 AM"
    signatory: str = "Dr. A. PRINCIPAL, M.E., Ph.D.,"
    signatory_title: str = "Principal"


def _exam_date_key(value: str) -> tuple[int, str]:
    # DD.MM.YYYY sorts wrong as text; unparseable dates go last
    try:
        return datetime.strptime(value, "%d.%m.%Y").date().toordinal(), value
    except ValueError:
        return date.max.toordinal() + 1, value


def group_rows_by_date(
    rows: Iterable[tuple[TimetableSubject, Subject]],
) -> tuple[list[str], list[str], dict[str, dict[str, list[Subject]]]]:
    """
    Group scheduled subjects by exam date, then department.

    Returns (dates sorted chronologically, departments sorted, grouping).
    Subjects inside one cell keep their input order.
    """
    grouped: dict[str, dict[str, list[Subject]]] = defaultdict(lambda: defaultdict(list))
    departments: set[str] = set()

    for row, subject in rows:
        grouped[row.exam_date][subject.department].append(subject)
        departments.add(subject.department)

    dates = sorted(grouped.keys(), key=_exam_date_key)
    plain = {d: dict(by_dept) for d, by_dept in grouped.items()}
    return dates, sorted(departments), plain


# ── Style helpers ──────────────────────────────────────────────────────────────
def _s(name: str, **kw) -> ParagraphStyle:
    return ParagraphStyle(name, parent=getSampleStyleSheet()["Normal"], fontName=FONT_REGULAR, **kw)


def _sb(name: str, **kw) -> ParagraphStyle:
    return ParagraphStyle(name, parent=getSampleStyleSheet()["Normal"], fontName=FONT_BOLD, **kw)


def _header(timetable: Timetable, settings: CircularSettings, issued: date) -> list:
    story: list = [
        Paragraph(escape(settings.institution), _sb("IN", fontSize=16, leading=20, alignment=TA_CENTER)),
        Paragraph(escape(settings.subtitle), _s("SUB", fontSize=12, leading=15, alignment=TA_CENTER)),
        Paragraph(escape(settings.affiliation), _s("AFF", fontSize=10, leading=13, alignment=TA_CENTER)),
        Spacer(1, 0.3 * cm),
        Paragraph(escape(settings.office), _sb("OFF", fontSize=14, leading=18, alignment=TA_CENTER)),
        Spacer(1, 0.4 * cm),
    ]

    ref = timetable.reference_number or settings.default_reference
    ref_tbl = Table(
        [[
            Paragraph(f"REF: {escape(ref)}", _s("REF", fontSize=10)),
            Paragraph(f"DATE: {issued.strftime('%d/%m/%Y')}", _s("DT", fontSize=10, alignment=TA_RIGHT)),
        ]],
        colWidths=["60%", "40%"],
    )
    ref_tbl.setStyle(TableStyle([
        ("LEFTPADDING",  (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
    ]))
    story.append(ref_tbl)
    story.append(HRFlowable(width="100%", thickness=1, color=BORDER_COL, spaceBefore=6, spaceAfter=12))
    story.append(Paragraph("CIRCULAR", _sb("CT", fontSize=14, leading=18, alignment=TA_CENTER)))
    story.append(Spacer(1, 0.3 * cm))
    return story


def _announcement(timetable: Timetable, departments: list[str]) -> Paragraph:
    text = (
        f"The {escape(timetable.exam_type)} Exam for {escape(', '.join(departments))} students starts from "
        f"{escape(timetable.start_date)} onwards. All the students are hereby informed to take the exams "
        "seriously. The marks secured in these tests will be considered for awarding the internal marks. "
        "The schedule for the exams is as follows."
    )
    return Paragraph(text, _s("ANN", fontSize=10, leading=14, alignment=TA_JUSTIFY))


def _schedule_table(
    dates: list[str], departments: list[str], grouped: dict[str, dict[str, list[Subject]]], width: float
) -> Table:
    hdr = _sb("TH", fontSize=10, alignment=TA_CENTER)
    date_style = _sb("TDD", fontSize=9, alignment=TA_CENTER)
    code_style = _sb("TDC", fontSize=8, leading=10, alignment=TA_LEFT)
    name_style = _s("TDN", fontSize=7, leading=9, alignment=TA_LEFT)

    data = [[Paragraph("DATE", hdr)] + [Paragraph(escape(d), hdr) for d in departments]]
    for exam_date in dates:
        row: list = [Paragraph(escape(exam_date), date_style)]
        for dept in departments:
            cell: list = []
            for subject in grouped.get(exam_date, {}).get(dept, []):
                cell.append(Paragraph(escape(subject.code), code_style))
                cell.append(Paragraph(escape(subject.name), name_style))
            row.append(cell or "")
        data.append(row)

    col_w = width / (len(departments) + 1)
    tbl = Table(data, colWidths=[col_w] * (len(departments) + 1), repeatRows=1)
    tbl.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, 0), HEADER_BG),
        ("GRID",          (0, 0), (-1, -1), 0.5, BORDER_COL),
        ("VALIGN",        (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING",    (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return tbl


def _footer(timetable: Timetable, settings: CircularSettings) -> list:
    note = _s("NT", fontSize=9, leading=12)
    bold = _sb("NB", fontSize=10, leading=13)
    sign = _sb("SG", fontSize=10, leading=13, leftIndent=10 * cm)

    return [
        Spacer(1, 0.8 * cm),
        Paragraph("Note:", bold),
        Paragraph(f"1. Exam Duration: {escape(timetable.exam_duration)}", note),
        Paragraph(
            f"2. Students should be available inside the respective exam halls at {escape(settings.reporting_time)}.",
            note,
        ),
        Paragraph(
            "3. Seating arrangement will be displayed in the notice board just before the day of first Exam.", note
        ),
        Spacer(1, 0.6 * cm),
        Paragraph("Copy To:", note),
        Paragraph(
            "1. The head of the department&nbsp;&nbsp;&nbsp; 2. To be read in all classes.&nbsp;&nbsp;&nbsp; "
            "3. Main notice board&nbsp;&nbsp;&nbsp; 4. File copy.",
            note,
        ),
        Spacer(1, 1.5 * cm),
        Paragraph(escape(settings.signatory), sign),
        Paragraph(escape(settings.signatory_title), sign),
        Paragraph(escape(settings.institution), sign),
        Paragraph(escape(settings.subtitle.upper()), sign),
    ]


def build_circular(
    timetable: Timetable,
    rows: Iterable[tuple[TimetableSubject, Subject]],
    out_path: str | Path,
    settings: Optional[CircularSettings] = None,
    issued: Optional[date] = None,
) -> int:
    """
    Write the circular PDF for one timetable. Returns the number of scheduled rows rendered.
    """
    settings = settings or CircularSettings()
    issued = issued or date.today()
    rows = list(rows)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    dates, departments, grouped = group_rows_by_date(rows)

    doc = SimpleDocTemplate(
        str(out),
        pagesize=A4,
        leftMargin=1.8 * cm,
        rightMargin=1.8 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=f"{timetable.exam_type} timetable",
    )

    story = _header(timetable, settings, issued)
    story.append(_announcement(timetable, departments))
    story.append(Spacer(1, 0.5 * cm))
    if dates:
        story.append(_schedule_table(dates, departments, grouped, doc.width))
    else:
        story.append(Paragraph("No exams scheduled.", _s("EMPTY", fontSize=10, alignment=TA_CENTER)))
    story.extend(_footer(timetable, settings))

    doc.build(story)
    logger.info("Wrote circular for timetable %s to %s", timetable.id, out)
    return len(rows)
