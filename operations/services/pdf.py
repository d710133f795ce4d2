"""Render clinical reports to PDF with reportlab."""
from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND = colors.HexColor('#0b3d60')

TYPE_TITLES = {
    'medical': 'Medical Report',
    'prescription': 'Prescription',
    'discharge': 'Discharge Summary',
    'lab': 'Lab Report',
}

SECTIONS = (
    ('chief_complaint', 'Chief Complaint'),
    ('diagnosis', 'Diagnosis'),
    ('findings', 'Findings'),
    ('treatment', 'Treatment'),
    ('advice', 'Advice'),
    ('notes', 'Notes'),
)


def _p(text, style) -> Paragraph:
    return Paragraph(escape(str(text or '')).replace('\n', '<br/>'), style)


def render_report_pdf(report: dict) -> bytes:
    """Build the PDF for a report given as a plain dict.

    Expected keys: ``report_type``, ``title``, ``patient`` (dict with
    ``name``/``age``/``gender``), ``doctor`` (dict with ``name``,
    ``title``, ``registration``), ``created_at``, the clinical section
    fields and ``prescription_items``.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=report.get('title') or 'Report')
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ReportTitle', parent=styles['Heading1'], fontSize=18,
                                 textColor=BRAND, spaceAfter=12)
    heading = ParagraphStyle('Section', parent=styles['Heading3'], textColor=BRAND, spaceBefore=10)
    body = styles['BodyText']

    elements = [
        _p(settings.REPORT_HOSPITAL_NAME, styles['Title']),
        _p(TYPE_TITLES.get(report.get('report_type'), 'Report'), title_style),
    ]

    patient = report.get('patient') or {}
    doctor = report.get('doctor') or {}
    info = [
        ['Title:', report.get('title') or ''],
        ['Patient:', patient.get('name') or 'N/A'],
        ['Age / Gender:', f"{patient.get('age', 'N/A')} / {patient.get('gender') or 'N/A'}"],
        ['Doctor:', f"{doctor.get('name') or ''}, {doctor.get('title') or ''}".strip(', ')],
        ['Registration:', doctor.get('registration') or ''],
        ['Date:', report.get('created_at') or ''],
    ]
    info_table = Table(info, colWidths=[1.6 * inch, 4.8 * inch])
    info_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#eef3f7')),
    ]))
    elements += [info_table, Spacer(1, 0.2 * inch)]

    for field, label in SECTIONS:
        if report.get(field):
            elements += [_p(label, heading), _p(report[field], body)]

    items = report.get('prescription_items') or []
    if items:
        rows = [['Medicine', 'Dosage', 'Frequency', 'Duration', 'Instructions']]
        rows += [
            [i.get('name', ''), i.get('dosage', ''), i.get('frequency', ''),
             i.get('duration', ''), i.get('instructions', '')]
            for i in items
        ]
        rx = Table(rows, colWidths=[1.6 * inch, 1 * inch, 1.2 * inch, 1 * inch, 1.8 * inch], repeatRows=1)
        rx.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), BRAND),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        elements += [_p('Prescription', heading), rx]

    if report.get('follow_up_date'):
        elements += [Spacer(1, 0.2 * inch), _p(f"Follow-up on {report['follow_up_date']}", body)]

    doc.build(elements)
    return buffer.getvalue()
