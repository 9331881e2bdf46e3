import logging
from io import BytesIO

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_TAB_ALIGNMENT
from docx.shared import Inches, Pt, RGBColor

from resume_tailor.models import GeneratedResume
from resume_tailor.resume_formatter import ResumeFormatter

logger = logging.getLogger(__name__)

FONT_NAME = "Calibri"
SIDE_MARGIN = Inches(0.75)
MUTED = RGBColor(0x4B, 0x55, 0x63)


def _tight(p, before=0, after=0):
    p.paragraph_format.space_before = Pt(before)
    p.paragraph_format.space_after = Pt(after)


def _run(paragraph, text: str, *, size: float = 10.5, bold: bool = False, italic: bool = False, color=None):
    run = paragraph.add_run(text)
    run.font.name = FONT_NAME
    run.font.size = Pt(size)
    run.bold = bold
    run.italic = italic
    if color is not None:
        run.font.color.rgb = color
    return run


def _section_heading(doc, title: str):
    p = doc.add_paragraph()
    _tight(p, before=10, after=3)
    _run(p, title, size=12.5, bold=True)


def _heading_with_dates(doc, left: str, right: str, content_width):
    # dates sit on a right tab stop at the text margin
    p = doc.add_paragraph()
    _tight(p, before=4)
    p.paragraph_format.tab_stops.add_tab_stop(content_width, WD_TAB_ALIGNMENT.RIGHT)
    _run(p, left, bold=True)
    if right:
        _run(p, f"\t{right}", size=9.5, color=MUTED)


def _bullet(doc, text: str):
    p = doc.add_paragraph(style="List Bullet")
    _tight(p, after=1)
    _run(p, text, size=10)


def build_resume_docx(resume: GeneratedResume) -> bytes:
    """Render a generated resume as a .docx document with the same layout as the PDF."""
    doc = Document()
    for sec in doc.sections:
        sec.top_margin = Inches(0.6)
        sec.bottom_margin = Inches(0.6)
        sec.left_margin = SIDE_MARGIN
        sec.right_margin = SIDE_MARGIN
    section = doc.sections[0]
    content_width = section.page_width - section.left_margin - section.right_margin

    # --- HEADER ---
    personal = resume.personalInfo
    if personal.name:
        p = doc.add_paragraph()
        _tight(p)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _run(p, personal.name, size=20, bold=True)

    if resume.professionalTitle:
        p = doc.add_paragraph()
        _tight(p, after=2)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _run(p, resume.professionalTitle, size=12, color=MUTED)

    contact = ResumeFormatter.contact_line(personal)
    if contact:
        p = doc.add_paragraph()
        _tight(p, after=6)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _run(p, contact, size=9.5, color=MUTED)

    # --- SUMMARY ---
    if resume.professionalSummary:
        _section_heading(doc, "Professional Summary")
        p = doc.add_paragraph()
        _tight(p, after=2)
        _run(p, resume.professionalSummary, size=10)

    # --- EXPERIENCE ---
    if resume.workExperiences:
        _section_heading(doc, "Professional Experience")
        for exp in resume.workExperiences:
            dates = ResumeFormatter.format_date_range(exp.startDate, exp.endDate, exp.isCurrent)
            _heading_with_dates(doc, exp.position, dates, content_width)
            p = doc.add_paragraph()
            _tight(p, after=2)
            _run(p, exp.company, size=10, italic=True, color=MUTED)
            for achievement in exp.achievements:
                _bullet(doc, achievement)

    # --- SKILLS ---
    if resume.technicalSkills:
        _section_heading(doc, "Technical Skills")
        for skill in resume.technicalSkills:
            _bullet(doc, skill)

    # --- EDUCATION ---
    if resume.educations:
        _section_heading(doc, "Education")
        for edu in resume.educations:
            dates = ResumeFormatter.format_date_range(edu.startDate, edu.endDate)
            _heading_with_dates(doc, edu.degree, dates, content_width)
            p = doc.add_paragraph()
            _tight(p, after=2)
            _run(p, edu.university, size=10, italic=True, color=MUTED)

    buffer = BytesIO()
    doc.save(buffer)
    docx_bytes = buffer.getvalue()
    logger.info(f"Built resume DOCX ({len(docx_bytes)} bytes, {len(resume.workExperiences)} roles)")
    return docx_bytes
