"""
Live checks of user-supplied provider API keys.

Each check makes one small request straight to the provider and reports the
outcome as a ValidationResult; network problems are reported, never raised.
"""
import logging
from typing import Optional

import httpx

from resume_tailor import config
from resume_tailor.models import AIProvider, ValidationResult

logger = logging.getLogger(__name__)

VALIDATION_TIMEOUT_SECONDS = 15.0
NETWORK_ERROR_MESSAGE = "Network error - please check your connection"

OPENAI_GPT4_COST = 0.15
OPENAI_GPT35_COST = 0.05
ANTHROPIC_COST = 0.12
ANTHROPIC_MODEL_LABEL = "Claude-3"


def _anthropic_valid() -> ValidationResult:
    return ValidationResult(is_valid=True, model=ANTHROPIC_MODEL_LABEL, estimated_cost=ANTHROPIC_COST)


async def _request(method: str, url: str, client: Optional[httpx.AsyncClient], **kwargs) -> httpx.Response:
    if client is not None:
        return await client.request(method, url, **kwargs)
    async with httpx.AsyncClient(timeout=VALIDATION_TIMEOUT_SECONDS) as owned:
        return await owned.request(method, url, **kwargs)


async def validate_openai_key(api_key: str, client: Optional[httpx.AsyncClient] = None) -> ValidationResult:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    try:
        response = await _request("GET", f"{config.OPENAI_API_URL}/models", client, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"OpenAI key validation failed to connect: {e}")
        return ValidationResult(is_valid=False, error=NETWORK_ERROR_MESSAGE)

    if response.is_success:
        try:
            models = response.json().get("data") or []
        except ValueError:
            models = []
        has_gpt4 = any("gpt-4" in str(m.get("id", "")) for m in models if isinstance(m, dict))
        return ValidationResult(
            is_valid=True,
            model="GPT-4" if has_gpt4 else "GPT-3.5",
            estimated_cost=OPENAI_GPT4_COST if has_gpt4 else OPENAI_GPT35_COST,
        )

    try:
        message = (response.json().get("error") or {}).get("message")
    except (ValueError, AttributeError):
        message = None
    return ValidationResult(is_valid=False, error=message or f"Invalid API key ({response.status_code})")


async def validate_anthropic_key(api_key: str, client: Optional[httpx.AsyncClient] = None) -> ValidationResult:
    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": config.ANTHROPIC_VERSION,
    }
    # cheapest possible request: one token from the small model
    payload = {
        "model": config.ANTHROPIC_MODEL,
        "max_tokens": 1,
        "messages": [{"role": "user", "content": "Hi"}],
    }
    try:
        response = await _request("POST", f"{config.ANTHROPIC_API_URL}/messages", client, headers=headers, json=payload)
    except httpx.HTTPError as e:
        logger.warning(f"Anthropic key validation failed to connect: {e}")
        return ValidationResult(is_valid=False, error=NETWORK_ERROR_MESSAGE)

    if response.is_success:
        return _anthropic_valid()

    if response.status_code == 401:
        return ValidationResult(is_valid=False, error="Invalid API key - please check your key")
    if response.status_code == 429:
        return ValidationResult(is_valid=False, error="Rate limit exceeded - key is valid but quota reached")
    if response.status_code == 400:
        # a malformed-request error still proves the key authenticated
        try:
            error_type = (response.json().get("error") or {}).get("type")
        except (ValueError, AttributeError):
            return ValidationResult(is_valid=False, error=f"Validation error ({response.status_code})")
        if error_type != "authentication_error":
            return _anthropic_valid()

    return ValidationResult(is_valid=False, error="Invalid API key")


async def validate_api_key(provider: AIProvider, api_key: str,
                           client: Optional[httpx.AsyncClient] = None) -> ValidationResult:
    logger.info(f"Validating {provider.value} API key")
    if provider == AIProvider.OPENAI:
        return await validate_openai_key(api_key, client)
    return await validate_anthropic_key(api_key, client)
