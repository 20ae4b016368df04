"""
Complaint PDF rendering.

Lays out a complaint letter, and optionally a bill summary with the
overpriced items, as an A4 PDF using reportlab.
"""

import io
import logging
from datetime import datetime
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

PDF_TITLE = "FORMAL COMPLAINT - MEDICAL BILL OVERCHARGING"
MAX_SUMMARY_ITEMS = 10


def _build_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='ComplaintTitle',
        parent=styles['Heading1'],
        fontSize=16,
        alignment=TA_CENTER,
        spaceAfter=12,
    ))
    styles.add(ParagraphStyle(
        name='RightAlign',
        parent=styles['Normal'],
        alignment=TA_RIGHT,
    ))
    styles.add(ParagraphStyle(
        name='Body',
        parent=styles['Normal'],
        fontSize=11,
        leading=15,
    ))
    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading2'],
        fontSize=13,
        spaceBefore=12,
        spaceAfter=6,
    ))
    return styles


def _format_money(currency: str, amount: float) -> str:
    return f"{currency} {amount:,.2f}"


def render_complaint_pdf(
    complaint_text: str,
    items: Optional[Sequence[dict]] = None,
    total_charged: Optional[float] = None,
    total_savings: Optional[float] = None,
    currency: str = "INR",
) -> bytes:
    """
    Render a complaint letter as a PDF.

    Args:
        complaint_text: Letter body (plain text, newlines preserved).
        items: Line items with ``name``, ``charged_price``, ``standard_price``
            and ``is_overpriced``; only overpriced ones are listed.
        total_charged: Bill total for the summary section.
        total_savings: Potential savings for the summary section.
        currency: Currency label.

    Returns:
        bytes: PDF document.

    Raises:
        ValueError: If complaint_text is empty.
    """
    if not complaint_text or not complaint_text.strip():
        raise ValueError("Complaint text is required")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.7 * inch,
        leftMargin=0.7 * inch,
        topMargin=0.7 * inch,
        bottomMargin=0.7 * inch,
        title="Complaint Letter",
    )
    styles = _build_styles()

    story = [
        Paragraph(PDF_TITLE, styles['ComplaintTitle']),
        Paragraph(f"Date: {datetime.now().strftime('%d %B %Y')}", styles['RightAlign']),
        Spacer(1, 0.3 * inch),
    ]

    for paragraph in complaint_text.strip().split("\n\n"):
        html = escape(paragraph).replace("\n", "<br/>")
        story.append(Paragraph(html, styles['Body']))
        story.append(Spacer(1, 0.12 * inch))

    if items is not None and total_charged is not None and total_savings is not None:
        story.append(Paragraph("Bill Summary", styles['SectionHeader']))
        story.append(Paragraph(
            f"Total Charged: {_format_money(currency, total_charged)}", styles['Body']
        ))
        story.append(Paragraph(
            f"<b>Total Potential Savings: {_format_money(currency, total_savings)}</b>",
            styles['Body'],
        ))

        overpriced = [item for item in items if item.get("is_overpriced", True)]
        if overpriced:
            story.append(Paragraph("Overpriced Items", styles['SectionHeader']))
            table_data = [["Service", "Charged", "Standard"]]
            for item in overpriced[:MAX_SUMMARY_ITEMS]:
                table_data.append([
                    Paragraph(escape(str(item.get("name", ""))), styles['Normal']),
                    _format_money(currency, float(item.get("charged_price") or 0)),
                    _format_money(currency, float(item.get("standard_price") or 0)),
                ])

            items_table = Table(table_data, colWidths=[3.5 * inch, 1.5 * inch, 1.5 * inch])
            items_table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#edf2f7')),
                ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
                ('FONTSIZE', (0, 0), (-1, -1), 10),
                ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
                ('VALIGN', (0, 0), (-1, -1), 'TOP'),
                ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#e2e8f0')),
            ]))
            story.append(items_table)

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    logger.info(f"Rendered complaint PDF ({len(pdf_bytes)} bytes)")
    return pdf_bytes
