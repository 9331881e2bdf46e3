"""
Job History API
Generation runs tied to a job posting, plus browsing, notes and downloads of
the resumes produced for each posting
"""

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resume_tailor.cost_estimator import calculate_generation_cost
from resume_tailor.db import get_db
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.errors import BadRequest
from resume_tailor.models import (
    AIProvider,
    BulkDeleteRequest,
    GeneratedResume,
    GenerateForJobRequest,
    GenerateForJobResponse,
    JobHistoryNoteUpdate,
    JobHistoryOut,
    JobHistoryPage,
    ResumeRecordOut,
)
from resume_tailor.models_db import User, JobHistory, ResumeHistory
from resume_tailor.resume_export import ExportFormat, export_resume_response
from resume_tailor.resume_generator import GenerationResult, generate_resume

logger = logging.getLogger(__name__)
router = APIRouter()

PER_PAGE_OPTIONS = (10, 25, 50, 100)
DEFAULT_PER_PAGE = 50


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


async def _get_entry(db: AsyncSession, user: User, entry_id: str) -> JobHistory:
    result = await db.execute(
        select(JobHistory)
        .where(JobHistory.id == entry_id, JobHistory.user_id == user.id)
        .options(selectinload(JobHistory.resumes))
        .execution_options(populate_existing=True)
    )
    entry = result.scalars().first()
    if not entry:
        raise HTTPException(status_code=404, detail="Job history entry not found")
    return entry


async def _get_resume_record(db: AsyncSession, user: User, record_id: str) -> ResumeHistory:
    result = await db.execute(
        select(ResumeHistory)
        .join(JobHistory, ResumeHistory.job_history_id == JobHistory.id)
        .where(ResumeHistory.id == record_id, JobHistory.user_id == user.id)
    )
    record = result.scalars().first()
    if not record:
        raise HTTPException(status_code=404, detail="Resume not found")
    return record


async def save_resume_record(
    db: AsyncSession,
    entry_id: str,
    job_description: str,
    generation: GenerationResult,
) -> Tuple[Optional[str], float]:
    """
    Store a generated resume under its job entry.

    The resume has already been produced, so a failed write is logged and
    reported as a missing record id instead of failing the request.
    """
    cost = calculate_generation_cost(
        len(job_description),
        len(generation.resume.workExperiences),
        generation.provider,
    )
    record = ResumeHistory(
        job_history_id=entry_id,
        resume_data=generation.resume.model_dump(),
        generation_cost=Decimal(str(cost)),
        ai_provider=generation.provider.value,
    )
    try:
        db.add(record)
        await db.commit()
    except Exception as e:
        logger.error(f"Failed to save resume history for job entry {entry_id}: {e}", exc_info=True)
        await db.rollback()
        return None, cost

    logger.info(f"Saved resume {record.id} for job entry {entry_id} (${cost:.2f}, {generation.provider.value})")
    return record.id, cost


def _generation_response(entry_id: str, record_id: Optional[str], cost: float,
                         generation: GenerationResult) -> GenerateForJobResponse:
    return GenerateForJobResponse(
        job_history_id=entry_id,
        resume_record_id=record_id,
        ai_provider=generation.provider,
        generation_cost=cost,
        resume=generation.resume,
    )


@router.post("/history/generate", response_model=GenerateForJobResponse)
async def generate_for_job(
    request: GenerateForJobRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Record a job posting, generate a resume for it and keep the result.
    The job entry is saved even when generation fails.
    """
    company_name = _clean(request.company_name)
    role = _clean(request.role)
    job_description = _clean(request.job_description)
    if not company_name:
        raise BadRequest("Company name is required")
    if not role:
        raise BadRequest("Role is required")
    if not job_description:
        raise BadRequest()

    entry = JobHistory(
        user_id=current_user.id,
        company_name=company_name,
        role=role,
        job_description=job_description,
        note=_clean(request.note),
    )
    db.add(entry)
    await db.commit()
    entry_id = entry.id
    logger.info(f"Created job history entry {entry_id} for {role} at {company_name}")

    generation = await generate_resume(db, current_user, job_description)
    record_id, cost = await save_resume_record(db, entry_id, job_description, generation)
    return _generation_response(entry_id, record_id, cost, generation)


@router.post("/history/{entry_id}/regenerate", response_model=GenerateForJobResponse)
async def regenerate_for_job(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Generate another resume for an existing job entry."""
    entry = await _get_entry(db, current_user, entry_id)
    job_description = entry.job_description
    generation = await generate_resume(db, current_user, job_description)
    record_id, cost = await save_resume_record(db, entry_id, job_description, generation)
    return _generation_response(entry_id, record_id, cost, generation)


@router.get("/history", response_model=JobHistoryPage)
async def list_history(
    page: int = Query(1, ge=1),
    per_page: int = DEFAULT_PER_PAGE,
    search: Optional[str] = None,
    created_on: Optional[date] = Query(None, alias="date"),
    company: Optional[str] = None,
    ai_provider: Optional[AIProvider] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    List the caller's job entries newest first, with their resumes.
    """
    if per_page not in PER_PAGE_OPTIONS:
        raise HTTPException(status_code=400, detail=f"per_page must be one of {list(PER_PAGE_OPTIONS)}")

    query = select(JobHistory).where(JobHistory.user_id == current_user.id)

    search = _clean(search)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            JobHistory.company_name.ilike(pattern),
            JobHistory.role.ilike(pattern),
            JobHistory.job_description.ilike(pattern),
            JobHistory.note.ilike(pattern),
        ))
    if created_on:
        day_start = datetime.combine(created_on, time.min, tzinfo=timezone.utc)
        query = query.where(
            JobHistory.created_at >= day_start,
            JobHistory.created_at < day_start + timedelta(days=1),
        )
    company = _clean(company)
    if company:
        query = query.where(JobHistory.company_name.ilike(f"%{company}%"))
    if ai_provider:
        query = query.where(JobHistory.resumes.any(ResumeHistory.ai_provider == ai_provider.value))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total_items = total_result.scalar_one()

    result = await db.execute(
        query.options(selectinload(JobHistory.resumes))
        .order_by(JobHistory.created_at.desc(), JobHistory.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    items = result.scalars().all()

    return JobHistoryPage(
        items=[JobHistoryOut.model_validate(item) for item in items],
        page=page,
        per_page=per_page,
        total_items=total_items,
        total_pages=math.ceil(total_items / per_page),
    )


@router.post("/history/delete")
async def bulk_delete_history(
    request: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete several of the caller's job entries; ids of other users are ignored."""
    try:
        result = await db.execute(
            select(JobHistory)
            .where(JobHistory.id.in_(request.ids), JobHistory.user_id == current_user.id)
            .options(selectinload(JobHistory.resumes))
        )
        entries = result.scalars().all()
        for entry in entries:
            await db.delete(entry)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Error bulk deleting job history: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete job history")

    logger.info(f"Deleted {len(entries)} job history entries for user {current_user.id}")
    return {"deleted": len(entries)}


@router.get("/history/resumes/{record_id}", response_model=ResumeRecordOut)
async def get_resume_record(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await _get_resume_record(db, current_user, record_id)


@router.get("/history/resumes/{record_id}/download")
async def download_resume_record(
    record_id: str,
    export_format: ExportFormat = Query(ExportFormat.PDF, alias="format"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Download a stored resume as PDF or DOCX."""
    record = await _get_resume_record(db, current_user, record_id)
    resume = GeneratedResume.model_validate(record.resume_data)
    return export_resume_response(resume, export_format)


@router.get("/history/{entry_id}", response_model=JobHistoryOut)
async def get_history_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await _get_entry(db, current_user, entry_id)


@router.patch("/history/{entry_id}", response_model=JobHistoryOut)
async def update_history_note(
    entry_id: str,
    request: JobHistoryNoteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Replace the note on a job entry; a blank note clears it."""
    entry = await _get_entry(db, current_user, entry_id)
    entry.note = _clean(request.note)
    await db.commit()
    return await _get_entry(db, current_user, entry_id)


@router.delete("/history/{entry_id}", status_code=204)
async def delete_history_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Delete a job entry and every resume generated for it."""
    entry = await _get_entry(db, current_user, entry_id)
    await db.delete(entry)
    await db.commit()
    logger.info(f"Deleted job history entry {entry_id}")
