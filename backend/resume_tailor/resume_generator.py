import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor import llm_providers
from resume_tailor.db import get_db
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.errors import (
    ResumeServiceError,
    BadRequest,
    NotFound,
    InvalidProviderResponse,
    InternalError,
)
from resume_tailor.models import (
    AIProvider,
    GeneratedResume,
    GeneratedWorkExperience,
    GeneratedEducation,
    GenerateResumeRequest,
    PersonalInfo,
)
from resume_tailor.models_db import User, Profile, WorkExperience, Education, UserSettings
from resume_tailor.prompts import build_resume_prompt, format_date

logger = logging.getLogger(__name__)
router = APIRouter()

REQUIRED_KEYS = {
    "professionalTitle": str,
    "professionalSummary": str,
    "workExperiences": list,
    "technicalSkills": list,
}

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


@dataclass
class GenerationContext:
    profile: Profile
    work_experiences: List[WorkExperience]
    educations: List[Education]
    settings: Optional[UserSettings]


@dataclass
class GenerationResult:
    resume: GeneratedResume
    provider: AIProvider


# --- Response parsing ---

def extract_json_from_content(content: str) -> str:
    """Strip code fences and cut the text down to the outermost {...} span."""
    content = _FENCE_RE.sub("", content or "")

    json_start = content.find("{")
    json_end = content.rfind("}")
    if json_start != -1 and json_end > json_start:
        return content[json_start:json_end + 1]

    return content.strip()


def parse_ai_content(content: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(extract_json_from_content(content))
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse AI response: {(content or '')[:200]!r}")
        raise InvalidProviderResponse(details=str(e)) from e

    if not isinstance(parsed, dict):
        raise InvalidProviderResponse(details="AI response is not a JSON object")

    for key, expected_type in REQUIRED_KEYS.items():
        if not isinstance(parsed.get(key), expected_type):
            raise InvalidProviderResponse(details=f"AI response is missing '{key}'")

    return parsed


def _achievement_text(item: Any) -> str:
    # some prompt variants answer with {"description": ..., "details": [...]}
    if isinstance(item, dict):
        return str(item.get("description") or "").strip()
    if item is None:
        return ""
    return str(item).strip()


def _achievements_at(ai_work: List[Any], index: int) -> List[str]:
    if index >= len(ai_work) or not isinstance(ai_work[index], dict):
        return []
    achievements = ai_work[index].get("achievements")
    if not isinstance(achievements, list):
        return []
    return [text for text in (_achievement_text(a) for a in achievements) if text]


def merge_generated_resume(
    ai_content: Dict[str, Any],
    profile: Profile,
    work_experiences: Sequence[WorkExperience],
    educations: Sequence[Education],
) -> GeneratedResume:
    """
    Combine the provider's text with stored records.

    Company, position and dates always come from storage; achievements at
    index i of the provider's workExperiences belong to stored experience i.
    """
    ai_work = ai_content.get("workExperiences") or []

    mapped_work = [
        GeneratedWorkExperience(
            company=work.company,
            position=work.position,
            startDate=format_date(work.start_date),
            endDate=format_date(work.end_date) or None,
            isCurrent=bool(work.is_current),
            achievements=_achievements_at(ai_work, index),
        )
        for index, work in enumerate(work_experiences)
    ]

    mapped_education = [
        GeneratedEducation(
            university=edu.university,
            degree=edu.degree,
            startDate=format_date(edu.start_date),
            endDate=format_date(edu.end_date),
        )
        for edu in educations
    ]

    skills = [str(s).strip() for s in ai_content.get("technicalSkills") or [] if s is not None and str(s).strip()]

    return GeneratedResume(
        professionalTitle=ai_content["professionalTitle"].strip(),
        professionalSummary=ai_content["professionalSummary"].strip(),
        workExperiences=mapped_work,
        technicalSkills=skills,
        personalInfo=PersonalInfo(
            name=profile.name,
            email=profile.email,
            phone=profile.phone,
            location=profile.location,
        ),
        educations=mapped_education,
    )


# --- Data loading ---

async def load_generation_context(db: AsyncSession, user: User) -> GenerationContext:
    result = await db.execute(select(Profile).where(Profile.user_id == user.id))
    profile = result.scalars().first()
    if not profile:
        raise NotFound()

    work_result = await db.execute(
        select(WorkExperience)
        .where(WorkExperience.profile_id == profile.id)
        .order_by(WorkExperience.start_date.desc())
    )
    edu_result = await db.execute(
        select(Education)
        .where(Education.profile_id == profile.id)
        .order_by(Education.start_date.desc())
    )
    settings_result = await db.execute(select(UserSettings).where(UserSettings.user_id == user.id))

    return GenerationContext(
        profile=profile,
        work_experiences=list(work_result.scalars().all()),
        educations=list(edu_result.scalars().all()),
        settings=settings_result.scalars().first(),
    )


async def generate_resume(db: AsyncSession, user: User, job_description: str) -> GenerationResult:
    """
    Produce a tailored resume for the user. Every failure leaves this function
    as a ResumeServiceError; nothing is persisted here.
    """
    try:
        if not job_description or not job_description.strip():
            raise BadRequest()

        context = await load_generation_context(db, user)
        provider, api_key = llm_providers.resolve_provider(context.settings)

        prompt = build_resume_prompt(
            job_description.strip(),
            context.profile,
            context.work_experiences,
            context.educations,
        )
        content = await llm_providers.invoke_provider(provider, api_key, prompt)

        resume = merge_generated_resume(
            parse_ai_content(content),
            context.profile,
            context.work_experiences,
            context.educations,
        )
        logger.info(
            f"Generated resume for user {user.id} via {provider.value} "
            f"({len(resume.workExperiences)} work experiences)"
        )
        return GenerationResult(resume=resume, provider=provider)

    except ResumeServiceError:
        raise
    except Exception as e:
        logger.error(f"Error in resume generation: {e}", exc_info=True)
        raise InternalError(details=str(e)) from e


@router.post("/generate-resume", response_model=GeneratedResume)
async def generate_resume_endpoint(
    request: GenerateResumeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Generate a tailored resume from the stored profile and a job description.
    The caller is responsible for saving the result.
    """
    result = await generate_resume(db, current_user, request.jobDescription)
    return result.resume
