import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.api_key_validator import validate_api_key
from resume_tailor.db import get_db
from resume_tailor.dependencies import get_current_active_user
from resume_tailor.llm_providers import coerce_provider
from resume_tailor.models import AIProvider, SettingsOut, SettingsUpdate, ValidateKeyRequest, ValidationResult
from resume_tailor.models_db import User, UserSettings

logger = logging.getLogger(__name__)
router = APIRouter()


def mask_api_key(key: Optional[str]) -> Optional[str]:
    """Show just enough of a key to recognise it, e.g. ``sk-...9f3a``."""
    if not key:
        return None
    if len(key) <= 10:
        return "*" * len(key)
    return f"{key[:3]}...{key[-4:]}"


def settings_to_out(settings: Optional[UserSettings]) -> SettingsOut:
    if settings is None:
        return SettingsOut()
    return SettingsOut(
        preferred_ai=coerce_provider(settings.preferred_ai) or AIProvider.OPENAI,
        openai_key=mask_api_key(settings.openai_key),
        anthropic_key=mask_api_key(settings.anthropic_key),
        has_openai_key=bool(settings.openai_key),
        has_anthropic_key=bool(settings.anthropic_key),
    )


async def get_user_settings(db: AsyncSession, user: User) -> Optional[UserSettings]:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user.id))
    return result.scalars().first()


@router.get("/settings", response_model=SettingsOut)
async def read_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Get the caller's AI settings with keys masked."""
    return settings_to_out(await get_user_settings(db, current_user))


@router.put("/settings", response_model=SettingsOut)
async def update_settings(
    payload: SettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Create or update the caller's AI settings. A key that is sent blank is
    cleared; a key that is not sent at all is left unchanged.
    """
    try:
        settings = await get_user_settings(db, current_user)
        if settings is None:
            settings = UserSettings(user_id=current_user.id)
            db.add(settings)

        if "openai_key" in payload.model_fields_set:
            settings.openai_key = payload.openai_key
        if "anthropic_key" in payload.model_fields_set:
            settings.anthropic_key = payload.anthropic_key
        settings.preferred_ai = payload.preferred_ai.value

        await db.commit()
        await db.refresh(settings)
        logger.info(f"Saved settings for user {current_user.id} (preferred: {settings.preferred_ai})")
        return settings_to_out(settings)
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving settings for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save settings")


@router.post("/settings/validate-key", response_model=ValidationResult)
async def validate_key(
    payload: ValidateKeyRequest,
    current_user: User = Depends(get_current_active_user),
):
    """Check an API key against the provider before saving it."""
    result = await validate_api_key(payload.provider, payload.api_key.strip())
    if not result.is_valid:
        logger.info(f"{payload.provider.value} key rejected for user {current_user.id}: {result.error}")
    return result
