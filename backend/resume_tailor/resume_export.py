import logging
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from resume_tailor.dependencies import get_current_active_user
from resume_tailor.docx_generator import build_resume_docx
from resume_tailor.models import GeneratedResume
from resume_tailor.models_db import User
from resume_tailor.pdf_generator import build_resume_pdf
from resume_tailor.resume_formatter import ResumeFormatter

logger = logging.getLogger(__name__)
router = APIRouter()


class ExportFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"


MEDIA_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

BUILDERS = {
    ExportFormat.PDF: build_resume_pdf,
    ExportFormat.DOCX: build_resume_docx,
}


def export_resume_response(resume: GeneratedResume, export_format: ExportFormat) -> Response:
    """Render the resume in the requested format as an attachment response."""
    try:
        content = BUILDERS[export_format](resume)
    except Exception as e:
        logger.error(f"Error building {export_format.value} export: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate {export_format.value.upper()}")

    filename = ResumeFormatter.export_filename(resume, export_format.value)
    return Response(
        content=content,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/export/{export_format}")
async def export_resume(
    export_format: ExportFormat,
    resume: GeneratedResume,
    current_user: User = Depends(get_current_active_user),
):
    """Download a generated (possibly user-edited) resume as PDF or DOCX."""
    logger.info(f"User {current_user.id} exporting resume as {export_format.value}")
    return export_resume_response(resume, export_format)
