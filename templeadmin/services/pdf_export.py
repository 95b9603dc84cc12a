"""PDF rendering for tax registrations, built on reportlab."""

import io
from decimal import Decimal
from typing import Any, Iterable, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, PageBreak, Paragraph, SimpleDocTemplate, Spacer

MARGIN = 12.7  # mm, half an inch


def _value(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def _money(value: Optional[Any]) -> str:
    return f"Rs. {Decimal(str(value or 0)):.2f}"


def outstanding_for(row: Any) -> Decimal:
    """Stored outstanding amount, or tax minus paid floored at zero."""
    outstanding = _value(row, "outstanding_amount")
    if outstanding is not None:
        return Decimal(str(outstanding))
    tax = Decimal(str(_value(row, "tax_amount") or 0))
    paid = Decimal(str(_value(row, "amount_paid") or 0))
    return max(Decimal("0"), tax - paid)


def _registration_story(row: Any, temple_id: Any, styles) -> list:
    story = [
        Paragraph("Tax Registration", styles["Title"]),
        Paragraph(
            escape(
                f"Temple ID: {temple_id} | Ref: {_value(row, 'reference_number') or '-'}"
                f" | ID: {_value(row, 'id')}"
            ),
            styles["Normal"],
        ),
        Spacer(1, 4),
        HRFlowable(width="100%"),
        Spacer(1, 6),
    ]

    created = _value(row, "created_at")
    fields = [
        ("Name", _value(row, "name")),
        ("Father Name", _value(row, "father_name")),
        ("Mobile", _value(row, "mobile_number")),
        ("Aadhaar", _value(row, "aadhaar_number")),
        ("Village", _value(row, "village")),
        ("Address", _value(row, "address")),
        ("Subdivision", _value(row, "subdivision")),
        ("Year", _value(row, "year")),
        ("Reference No", _value(row, "reference_number")),
        ("Tax Amount", _money(_value(row, "tax_amount"))),
        ("Amount Paid", _money(_value(row, "amount_paid"))),
        ("Outstanding", _money(outstanding_for(row))),
        ("Created", created.strftime("%Y-%m-%d %H:%M") if created else None),
    ]
    for label, value in fields:
        text = "-" if value is None or value == "" else str(value)
        story.append(Paragraph(f"{label}: <b>{escape(text)}</b>", styles["Normal"]))
        story.append(Spacer(1, 4))
    return story


def _build(stories: list) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN * mm,
        rightMargin=MARGIN * mm,
        topMargin=MARGIN * mm,
        bottomMargin=MARGIN * mm,
        title="Tax Registration",
    )
    doc.build(stories)
    return buffer.getvalue()


def render_tax_registration(row: Any, temple_id: Any) -> bytes:
    """Render one registration onto a single A4 page."""
    styles = getSampleStyleSheet()
    return _build(_registration_story(row, temple_id, styles))


def render_tax_registrations(rows: Iterable[Any], temple_id: Any) -> bytes:
    """Render registrations one per page.

    Raises:
        ValueError: ``rows`` is empty
    """
    styles = getSampleStyleSheet()
    story = []
    for index, row in enumerate(rows):
        if index:
            story.append(PageBreak())
        story.extend(_registration_story(row, temple_id, styles))
    if not story:
        raise ValueError("No records to export.")
    return _build(story)
