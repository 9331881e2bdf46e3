"""
Resume Content Formatter
Shared text helpers for the PDF and DOCX exporters
"""

import re
from datetime import date, datetime
from typing import Optional, Union
import logging

from resume_tailor.models import GeneratedResume, PersonalInfo

logger = logging.getLogger(__name__)

DateLike = Union[str, date, None]


class ResumeFormatter:
    """Helper class for formatting resume content"""

    @staticmethod
    def format_month_year(value: DateLike) -> str:
        """
        Render an ISO date as "Mon YYYY".

        Unparseable strings are returned unchanged so that a hand-edited
        resume still exports.
        """
        if not value:
            return ""
        if isinstance(value, date):
            return value.strftime("%b %Y")

        text = str(value).strip()
        # "2021-03-01", "2021-03-01T00:00:00" and "2021-03" all render as "Mar 2021"
        for fmt, width in (("%Y-%m-%d", 10), ("%Y-%m", 7)):
            try:
                return datetime.strptime(text[:width], fmt).strftime("%b %Y")
            except ValueError:
                continue

        logger.debug(f"Leaving unrecognised date as-is: {text!r}")
        return text

    @staticmethod
    def format_date_range(start: DateLike, end: DateLike, is_current: bool = False) -> str:
        start_text = ResumeFormatter.format_month_year(start)
        end_text = "Present" if is_current or not end else ResumeFormatter.format_month_year(end)
        if not start_text:
            return end_text
        return f"{start_text} - {end_text}"

    @staticmethod
    def contact_line(info: PersonalInfo) -> str:
        parts = [info.email, info.phone, info.location]
        return " | ".join(p.strip() for p in parts if p and p.strip())

    @staticmethod
    def export_filename(resume: GeneratedResume, extension: str, fallback: Optional[str] = None) -> str:
        """Build a download filename like ``Jane_Doe_Resume.pdf``."""
        base = resume.personalInfo.name or fallback or "resume"
        safe = re.sub(r"[^A-Za-z0-9]+", "_", base).strip("_") or "resume"
        return f"{safe}_Resume.{extension}"
