import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resume_tailor.db import get_db
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.models import (
    ProfileOut,
    ProfileUpdate,
    WorkExperienceIn,
    WorkExperienceOut,
    EducationIn,
    EducationOut,
)
from resume_tailor.models_db import User, Profile, WorkExperience, Education

logger = logging.getLogger(__name__)
router = APIRouter()

PROFILE_NOT_FOUND = "Profile not found. Please complete your profile first."


async def load_profile(db: AsyncSession, user: User, with_children: bool = False) -> Optional[Profile]:
    query = select(Profile).where(Profile.user_id == user.id)
    if with_children:
        query = query.options(
            selectinload(Profile.work_experiences),
            selectinload(Profile.educations),
        ).execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalars().first()


async def _require_profile(db: AsyncSession, user: User) -> Profile:
    profile = await load_profile(db, user)
    if not profile:
        raise HTTPException(status_code=404, detail=PROFILE_NOT_FOUND)
    return profile


async def _owned_row(db: AsyncSession, model, row_id: str, profile: Profile):
    # rows belonging to another profile are reported as missing
    result = await db.execute(select(model).where(model.id == row_id, model.profile_id == profile.id))
    row = result.scalars().first()
    if not row:
        raise HTTPException(status_code=404, detail=f"{model.__name__} not found")
    return row


@router.get("/profile", response_model=ProfileOut)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await load_profile(db, current_user, with_children=True)
    if not profile:
        raise HTTPException(status_code=404, detail=PROFILE_NOT_FOUND)
    return profile


@router.put("/profile", response_model=ProfileOut)
async def upsert_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Create the caller's profile or update its personal details."""
    try:
        profile = await load_profile(db, current_user)
        if profile is None:
            profile = Profile(user_id=current_user.id)
            db.add(profile)
            logger.info(f"Creating profile for user {current_user.id}")

        for field, value in payload.model_dump().items():
            setattr(profile, field, value.strip())

        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving profile for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save profile")

    return await load_profile(db, current_user, with_children=True)


# --- Work experiences ---

@router.post("/profile/work-experiences", response_model=WorkExperienceOut, status_code=201)
async def add_work_experience(
    payload: WorkExperienceIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    work = WorkExperience(profile_id=profile.id, **payload.model_dump())
    db.add(work)
    await db.commit()
    await db.refresh(work)
    logger.info(f"Added work experience {work.id} to profile {profile.id}")
    return work


@router.put("/profile/work-experiences/{work_id}", response_model=WorkExperienceOut)
async def update_work_experience(
    work_id: str,
    payload: WorkExperienceIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    work = await _owned_row(db, WorkExperience, work_id, profile)
    for field, value in payload.model_dump().items():
        setattr(work, field, value)
    await db.commit()
    await db.refresh(work)
    return work


@router.delete("/profile/work-experiences/{work_id}", status_code=204)
async def delete_work_experience(
    work_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    work = await _owned_row(db, WorkExperience, work_id, profile)
    await db.delete(work)
    await db.commit()
    logger.info(f"Deleted work experience {work_id} from profile {profile.id}")


# --- Educations ---

@router.post("/profile/educations", response_model=EducationOut, status_code=201)
async def add_education(
    payload: EducationIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    education = Education(profile_id=profile.id, **payload.model_dump())
    db.add(education)
    await db.commit()
    await db.refresh(education)
    logger.info(f"Added education {education.id} to profile {profile.id}")
    return education


@router.put("/profile/educations/{education_id}", response_model=EducationOut)
async def update_education(
    education_id: str,
    payload: EducationIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    education = await _owned_row(db, Education, education_id, profile)
    for field, value in payload.model_dump().items():
        setattr(education, field, value)
    await db.commit()
    await db.refresh(education)
    return education


@router.delete("/profile/educations/{education_id}", status_code=204)
async def delete_education(
    education_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await _require_profile(db, current_user)
    education = await _owned_row(db, Education, education_id, profile)
    await db.delete(education)
    await db.commit()
    logger.info(f"Deleted education {education_id} from profile {profile.id}")
