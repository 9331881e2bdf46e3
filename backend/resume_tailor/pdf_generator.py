import logging
from io import BytesIO
from pathlib import Path
from typing import List
from xml.sax.saxutils import escape

import matplotlib
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, ListFlowable, ListItem
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from resume_tailor import config
from resume_tailor.models import GeneratedResume
from resume_tailor.resume_formatter import ResumeFormatter

logger = logging.getLogger(__name__)

PAGE_WIDTH = letter[0]
SIDE_MARGIN = 0.75 * inch
CONTENT_WIDTH = PAGE_WIDTH - 2 * SIDE_MARGIN
DATE_COLUMN_WIDTH = 1.9 * inch

ACCENT = colors.HexColor('#1f2937')
MUTED = colors.HexColor('#4b5563')

FONT_FAMILY = 'DejaVuSans'
FONT_BOLD = 'DejaVuSans-Bold'
FONT_FILES = {
    FONT_FAMILY: 'DejaVuSans.ttf',
    FONT_BOLD: 'DejaVuSans-Bold.ttf',
    'DejaVuSans-Oblique': 'DejaVuSans-Oblique.ttf',
    'DejaVuSans-BoldOblique': 'DejaVuSans-BoldOblique.ttf',
}


def font_dir() -> Path:
    if config.PDF_FONT_DIR:
        return Path(config.PDF_FONT_DIR)
    return Path(matplotlib.get_data_path()) / 'fonts' / 'ttf'


def register_fonts() -> None:
    """
    Register the DejaVu Sans family with ReportLab. The built-in Type1 fonts
    only cover Latin-1, so names like "Łukasz" would render as boxes.
    """
    registered = set(pdfmetrics.getRegisteredFontNames())
    if registered.issuperset(FONT_FILES):
        return

    directory = font_dir()
    for name, filename in FONT_FILES.items():
        pdfmetrics.registerFont(TTFont(name, str(directory / filename)))
    # lets <b> and <i> markup resolve to the matching TTF faces
    pdfmetrics.registerFontFamily(
        FONT_FAMILY,
        normal=FONT_FAMILY,
        bold=FONT_BOLD,
        italic='DejaVuSans-Oblique',
        boldItalic='DejaVuSans-BoldOblique',
    )
    logger.info(f"Registered PDF fonts from {directory}")


def _styles() -> dict:
    styles = getSampleStyleSheet()
    regular = {'fontName': FONT_FAMILY}
    bold = {'fontName': FONT_BOLD}
    return {
        'name': ParagraphStyle('ResumeName', parent=styles['Title'], **bold, fontSize=20, alignment=TA_CENTER,
                               spaceAfter=4, textColor=ACCENT),
        'title': ParagraphStyle('ResumeTitle', parent=styles['Normal'], **regular, fontSize=12, alignment=TA_CENTER,
                                spaceAfter=4, textColor=MUTED),
        'contact': ParagraphStyle('ResumeContact', parent=styles['Normal'], **regular, fontSize=9.5, alignment=TA_CENTER,
                                  spaceAfter=12, textColor=MUTED),
        'section': ParagraphStyle('ResumeSection', parent=styles['Heading2'], **bold, fontSize=12.5, spaceBefore=10,
                                  spaceAfter=6, textColor=ACCENT),
        'body': ParagraphStyle('ResumeBody', parent=styles['Normal'], **regular, fontSize=10, leading=13.5, spaceAfter=4),
        'entry': ParagraphStyle('ResumeEntry', parent=styles['Normal'], **regular, fontSize=10.5, leading=13),
        'date': ParagraphStyle('ResumeDate', parent=styles['Normal'], **regular, fontSize=9.5, alignment=TA_RIGHT,
                               textColor=MUTED),
        'sub': ParagraphStyle('ResumeSub', parent=styles['Normal'], **regular, fontSize=10, textColor=MUTED, spaceAfter=3),
        'bullet': ParagraphStyle('ResumeBullet', parent=styles['Normal'], **regular, fontSize=10, leading=13.5),
    }


def _heading_row(left: str, right: str, styles: dict) -> Table:
    """One-row table: bold heading on the left, date range flush right."""
    table = Table(
        [[Paragraph(f"<b>{escape(left)}</b>", styles['entry']), Paragraph(escape(right), styles['date'])]],
        colWidths=[CONTENT_WIDTH - DATE_COLUMN_WIDTH, DATE_COLUMN_WIDTH],
    )
    table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ('RIGHTPADDING', (0, 0), (-1, -1), 0),
        ('TOPPADDING', (0, 0), (-1, -1), 2),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 1),
    ]))
    return table


def _bullets(items: List[str], styles: dict) -> ListFlowable:
    return ListFlowable(
        [ListItem(Paragraph(escape(item), styles['bullet']), leftIndent=12) for item in items],
        bulletType='bullet',
        start='•',
        leftIndent=12,
        bulletFontSize=8,
        bulletFontName=FONT_FAMILY,
    )


def build_resume_pdf(resume: GeneratedResume) -> bytes:
    """Render a generated resume as a single-column letter-size PDF."""
    register_fonts()
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, topMargin=0.6*inch, bottomMargin=0.6*inch,
                            leftMargin=SIDE_MARGIN, rightMargin=SIDE_MARGIN,
                            title=f"{resume.personalInfo.name} - Resume".strip(" -"))
    styles = _styles()
    story = []

    # Header
    personal = resume.personalInfo
    if personal.name:
        story.append(Paragraph(escape(personal.name), styles['name']))
    if resume.professionalTitle:
        story.append(Paragraph(escape(resume.professionalTitle), styles['title']))
    contact = ResumeFormatter.contact_line(personal)
    if contact:
        story.append(Paragraph(escape(contact), styles['contact']))

    # Summary
    if resume.professionalSummary:
        story.append(Paragraph("Professional Summary", styles['section']))
        story.append(Paragraph(escape(resume.professionalSummary), styles['body']))

    # Experience
    if resume.workExperiences:
        story.append(Paragraph("Professional Experience", styles['section']))
        for exp in resume.workExperiences:
            dates = ResumeFormatter.format_date_range(exp.startDate, exp.endDate, exp.isCurrent)
            story.append(_heading_row(exp.position, dates, styles))
            story.append(Paragraph(f"<i>{escape(exp.company)}</i>", styles['sub']))
            if exp.achievements:
                story.append(_bullets(exp.achievements, styles))
            story.append(Spacer(1, 0.08*inch))

    # Skills
    if resume.technicalSkills:
        story.append(Paragraph("Technical Skills", styles['section']))
        story.append(_bullets(resume.technicalSkills, styles))

    # Education
    if resume.educations:
        story.append(Paragraph("Education", styles['section']))
        for edu in resume.educations:
            dates = ResumeFormatter.format_date_range(edu.startDate, edu.endDate)
            story.append(_heading_row(edu.degree, dates, styles))
            story.append(Paragraph(f"<i>{escape(edu.university)}</i>", styles['sub']))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    logger.info(f"Built resume PDF ({len(pdf_bytes)} bytes, {len(resume.workExperiences)} roles)")
    return pdf_bytes
