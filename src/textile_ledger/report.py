from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from textile_ledger.errors import EmptyReport
from textile_ledger.identity import is_owner
from textile_ledger.paths import report_path
from textile_ledger.records import DETAIL_FIELDS, TextileRecord, short_id

REPORT_TITLE = "Daily Production Ledger"
HEADER = ["Log Date", "Batch"] + [label for _attr, _key, label in DETAIL_FIELDS] + ["Operator"]

# Relative widths; the four detail columns share what is left.
_COL_FRACS = [0.12, 0.07, 0.16, 0.16, 0.16, 0.21, 0.12]

_HEAD_FILL = colors.Color(79 / 255, 70 / 255, 229 / 255)
_TITLE_INK = colors.Color(30 / 255, 41 / 255, 59 / 255)
_META_INK = colors.Color(100 / 255, 116 / 255, 139 / 255)


def operator_label(record: TextileRecord, identity: str) -> str:
    return "Me" if is_owner(record, identity) else record.created_by


def report_rows(records: Sequence[TextileRecord], identity: str) -> list[list[str]]:
    """One row per record, in the order given (the view's flat, filtered order)."""
    return [
        [r.entry_date, short_id(r)]
        + [getattr(r, attr) for attr, _key, _label in DETAIL_FIELDS]
        + [operator_label(r, identity)]
        for r in records
    ]


def default_report_path(today: Optional[datetime] = None) -> Path:
    return report_path((today or datetime.now()).date())


def _cell_style() -> ParagraphStyle:
    styles = getSampleStyleSheet()
    return ParagraphStyle(
        "LedgerCell",
        parent=styles["BodyText"],
        fontSize=8,
        leading=10,
        wordWrap="LTR",
    )


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\n", "<br/>")


def _make_table(rows: list[list[str]], doc_width: float) -> Table:
    cell = _cell_style()
    data: list[list] = [HEADER]
    for row in rows:
        data.append([Paragraph(_escape(v), cell) for v in row])

    t = Table(
        data,
        colWidths=[doc_width * f for f in _COL_FRACS],
        hAlign="LEFT",
        repeatRows=1,
        splitByRow=1,
    )
    t.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 8),
                ("BACKGROUND", (0, 0), (-1, 0), _HEAD_FILL),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 3),
                ("RIGHTPADDING", (0, 0), (-1, -1), 3),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    return t


def export_report_pdf(
    records: Sequence[TextileRecord],
    identity: str,
    out_pdf: Optional[Path] = None,
    *,
    generated: Optional[datetime] = None,
) -> Path:
    """Write the visible entries as a grid table PDF and return its path.

    The store is not touched; callers pass whatever the current view shows.
    """
    if not records:
        raise EmptyReport()

    generated = generated or datetime.now()
    out_pdf = Path(out_pdf) if out_pdf else default_report_path(generated)
    out_pdf.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        str(out_pdf),
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=14 * mm,
        bottomMargin=14 * mm,
        title=REPORT_TITLE,
    )
    styles = getSampleStyleSheet()
    title = ParagraphStyle("LedgerTitle", parent=styles["Title"], fontSize=20, leading=24,
                           textColor=_TITLE_INK, alignment=0)
    meta = ParagraphStyle("LedgerMeta", parent=styles["Normal"], fontSize=10, textColor=_META_INK)

    story = [
        Paragraph(REPORT_TITLE, title),
        Paragraph(f"Generated: {generated.strftime('%Y-%m-%d %H:%M:%S')}", meta),
        Paragraph(f"User ID: {_escape(identity)}", meta),
        Spacer(1, 6 * mm),
        _make_table(report_rows(records, identity), doc.width),
    ]
    doc.build(story)
    return out_pdf
