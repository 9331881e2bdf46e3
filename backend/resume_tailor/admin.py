import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resume_tailor.db import get_db
from resume_tailor.dependencies import get_admin_user
from resume_tailor.models import AdminUserSummary, AdminUserDetail, JobHistoryOut, ProfileOut
from resume_tailor.models_db import User, Profile, WorkExperience, Education, UserSettings, JobHistory, ResumeHistory
from resume_tailor.settings import settings_to_out

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


def _count(model, *criteria):
    return select(func.count(model.id)).where(*criteria).correlate(Profile).scalar_subquery()


@router.get("/users", response_model=List[AdminUserSummary])
async def list_users(
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin_user: User = Depends(get_admin_user)
):
    """
    Every profile, newest first, with how much each user has stored and generated.
    """
    work_count = _count(WorkExperience, WorkExperience.profile_id == Profile.id)
    education_count = _count(Education, Education.profile_id == Profile.id)
    job_count = _count(JobHistory, JobHistory.user_id == Profile.user_id)
    resume_count = (
        select(func.count(ResumeHistory.id))
        .join(JobHistory, ResumeHistory.job_history_id == JobHistory.id)
        .where(JobHistory.user_id == Profile.user_id)
        .correlate(Profile)
        .scalar_subquery()
    )

    query = select(
        Profile,
        work_count.label("work_experience_count"),
        education_count.label("education_count"),
        job_count.label("job_application_count"),
        resume_count.label("resume_count"),
    ).order_by(Profile.created_at.desc())

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Profile.name.ilike(pattern), Profile.email.ilike(pattern)))

    try:
        result = await db.execute(query)
        rows = result.all()
    except Exception as e:
        logger.error(f"Error listing users for admin: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve users.")

    return [
        AdminUserSummary(
            profile_id=row.Profile.id,
            user_id=row.Profile.user_id,
            name=row.Profile.name,
            email=row.Profile.email,
            created_at=row.Profile.created_at,
            work_experience_count=row.work_experience_count or 0,
            education_count=row.education_count or 0,
            job_application_count=row.job_application_count or 0,
            resume_count=row.resume_count or 0,
        )
        for row in rows
    ]


@router.get("/users/{profile_id}", response_model=AdminUserDetail)
async def get_user_detail(
    profile_id: str,
    db: AsyncSession = Depends(get_db),
    admin_user: User = Depends(get_admin_user)
):
    """
    Full picture of one user: profile, job history with resumes, settings
    (keys masked) and the total estimated generation spend.
    """
    result = await db.execute(
        select(Profile)
        .where(Profile.id == profile_id)
        .options(selectinload(Profile.work_experiences), selectinload(Profile.educations))
    )
    profile = result.scalars().first()
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    history_result = await db.execute(
        select(JobHistory)
        .where(JobHistory.user_id == profile.user_id)
        .options(selectinload(JobHistory.resumes))
        .order_by(JobHistory.created_at.desc())
    )
    job_history = history_result.scalars().all()

    settings_result = await db.execute(select(UserSettings).where(UserSettings.user_id == profile.user_id))
    settings = settings_result.scalars().first()

    total_cost = sum(
        float(resume.generation_cost or 0)
        for entry in job_history
        for resume in entry.resumes
    )

    logger.info(f"Admin {admin_user.id} viewed profile {profile_id}")
    return AdminUserDetail(
        profile=ProfileOut.model_validate(profile),
        job_history=[JobHistoryOut.model_validate(entry) for entry in job_history],
        settings=settings_to_out(settings) if settings else None,
        total_generation_cost=round(total_cost, 2),
    )
