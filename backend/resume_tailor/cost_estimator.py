"""
Generation cost estimates.

Both figures are rough USD approximations shown to the user; they are not
derived from the provider's billing data.
"""
import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.db import get_db
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.llm_providers import coerce_provider
from resume_tailor.models import AIProvider, CostEstimate
from resume_tailor.models_db import User, Profile, WorkExperience, UserSettings

logger = logging.getLogger(__name__)
router = APIRouter()

# flat per-generation price before length and profile size scaling
ESTIMATE_BASE_COST = {
    AIProvider.OPENAI: 0.15,
    AIProvider.ANTHROPIC: 0.12,
}

# USD per 1K input tokens; output is billed at OUTPUT_RATE_MULTIPLIER x this
INPUT_RATE_PER_1K = {
    AIProvider.OPENAI: 0.03,
    AIProvider.ANTHROPIC: 0.015,
}
OUTPUT_RATE_MULTIPLIER = 2
CHARS_PER_TOKEN = 4
CHARS_PER_WORK_EXPERIENCE = 200
ESTIMATED_OUTPUT_TOKENS = 2000

LOW_COST_THRESHOLD = 0.10
MEDIUM_COST_THRESHOLD = 0.25


def _round_cents(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_estimated_cost(job_description_length: int, profile_complexity: int, provider: AIProvider) -> float:
    """
    Pre-generation estimate.

    ``profile_complexity`` is the number of stored work experiences. Both
    multipliers are floored at 1 so short postings never estimate below base.
    """
    provider = AIProvider(provider)
    length_multiplier = max(1.0, job_description_length / 1000)
    complexity_multiplier = max(1.0, profile_complexity / 5)
    return _round_cents(ESTIMATE_BASE_COST[provider] * length_multiplier * complexity_multiplier)


def calculate_generation_cost(job_description_length: int, work_experience_count: int, provider: AIProvider) -> float:
    """Token-based cost recorded with each generated resume."""
    provider = AIProvider(provider)
    input_tokens = math.ceil((job_description_length + work_experience_count * CHARS_PER_WORK_EXPERIENCE) / CHARS_PER_TOKEN)
    rate = INPUT_RATE_PER_1K[provider]

    input_cost = (input_tokens / 1000) * rate
    output_cost = (ESTIMATED_OUTPUT_TOKENS / 1000) * (rate * OUTPUT_RATE_MULTIPLIER)
    return _round_cents(input_cost + output_cost)


def cost_level(cost: float) -> str:
    if cost < LOW_COST_THRESHOLD:
        return "low"
    if cost < MEDIUM_COST_THRESHOLD:
        return "medium"
    return "high"


@router.get("/cost-estimate", response_model=CostEstimate)
async def get_cost_estimate(
    job_description_length: int = Query(..., ge=0),
    provider: Optional[AIProvider] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Estimate the cost of a generation for the caller's profile. Without an
    explicit provider the user's preferred provider is used.
    """
    if provider is None:
        result = await db.execute(select(UserSettings.preferred_ai).where(UserSettings.user_id == current_user.id))
        provider = coerce_provider(result.scalar_one_or_none()) or AIProvider.OPENAI

    count_result = await db.execute(
        select(func.count(WorkExperience.id))
        .join(Profile, WorkExperience.profile_id == Profile.id)
        .where(Profile.user_id == current_user.id)
    )
    work_count = count_result.scalar_one() or 0

    estimated = calculate_estimated_cost(job_description_length, work_count, provider)
    return CostEstimate(
        provider=provider,
        job_description_length=job_description_length,
        work_experience_count=work_count,
        estimated_cost=estimated,
        cost_level=cost_level(estimated),
    )
