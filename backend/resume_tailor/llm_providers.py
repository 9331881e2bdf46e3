"""
LLM provider integrations.

Two providers are supported: OpenAI chat completions (bearer token) and
Anthropic messages (x-api-key + anthropic-version). Both are driven through
their LangChain chat models with a single non-streaming request and no retries.
"""
import asyncio
import logging
from typing import List, Optional, Tuple

import anthropic
import httpx
import openai
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_openai import ChatOpenAI

from resume_tailor import config
from resume_tailor.errors import (
    ResumeServiceError,
    MissingConfiguration,
    InvalidApiKey,
    QuotaExceeded,
    NetworkError,
    ProviderTimeout,
    InternalError,
)
from resume_tailor.models import AIProvider
from resume_tailor.models_db import UserSettings
from resume_tailor.prompts import SYSTEM_PROMPT, ANTHROPIC_SUFFIX
from resume_tailor.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

OPENAI_TEMPERATURE = 0.4


def coerce_provider(value: Optional[str]) -> Optional[AIProvider]:
    try:
        return AIProvider(value) if value else None
    except ValueError:
        logger.warning(f"Unknown preferred provider '{value}', ignoring preference")
        return None


def resolve_provider(settings: Optional[UserSettings]) -> Tuple[AIProvider, str]:
    """
    Pick the provider and key to call.

    The preferred provider is used when its key exists; otherwise whichever
    provider has a key (OpenAI first). No key at all is a configuration error.
    """
    if settings is None:
        raise MissingConfiguration("Settings not found. Please configure your AI settings first.")

    keys = {
        AIProvider.OPENAI: settings.openai_key,
        AIProvider.ANTHROPIC: settings.anthropic_key,
    }
    preferred = coerce_provider(settings.preferred_ai)

    if preferred is not None and keys[preferred]:
        return preferred, keys[preferred]

    for provider in (AIProvider.OPENAI, AIProvider.ANTHROPIC):
        if keys[provider]:
            if preferred is not None:
                logger.warning(
                    f"Preferred provider {preferred.value} has no API key; falling back to {provider.value}"
                )
            return provider, keys[provider]

    raise MissingConfiguration()


def anthropic_base_url() -> str:
    # the SDK appends /v1/messages itself
    url = config.ANTHROPIC_API_URL
    return url[:-len("/v1")] if url.endswith("/v1") else url


def build_chat_model(provider: AIProvider, api_key: str) -> BaseChatModel:
    if provider == AIProvider.OPENAI:
        return ChatOpenAI(
            model=config.OPENAI_MODEL,
            api_key=api_key,
            base_url=config.OPENAI_API_URL,
            temperature=OPENAI_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
            timeout=config.LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )
    return ChatAnthropic(
        model=config.ANTHROPIC_MODEL,
        api_key=api_key,
        base_url=anthropic_base_url(),
        max_tokens=config.LLM_MAX_TOKENS,
        timeout=config.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )


def build_messages(provider: AIProvider, prompt: str) -> List[BaseMessage]:
    if provider == AIProvider.OPENAI:
        return [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
    # the messages endpoint gets a single user turn with the rules appended
    return [HumanMessage(content=f"{prompt}{ANTHROPIC_SUFFIX}")]


def map_provider_error(error: Exception) -> ResumeServiceError:
    """Translate SDK / transport exceptions into the caller-facing taxonomy."""
    if isinstance(error, ResumeServiceError):
        return error

    details = str(error) or type(error).__name__

    # timeouts subclass the connection errors, so they are checked first
    if isinstance(error, (openai.APITimeoutError, anthropic.APITimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ProviderTimeout(details=details)
    if isinstance(error, (openai.AuthenticationError, anthropic.AuthenticationError,
                          openai.PermissionDeniedError, anthropic.PermissionDeniedError)):
        return InvalidApiKey(details=details)
    if isinstance(error, (openai.RateLimitError, anthropic.RateLimitError)):
        return QuotaExceeded(details=details)
    if isinstance(error, (openai.APIConnectionError, anthropic.APIConnectionError, httpx.TransportError)):
        return NetworkError(details=details)
    if isinstance(error, (openai.APIStatusError, anthropic.APIStatusError)) and error.status_code == 429:
        return QuotaExceeded(details=details)
    return InternalError(details=details)


async def invoke_provider(provider: AIProvider, api_key: str, prompt: str) -> str:
    """Send the prompt to the provider and return its raw text reply."""
    chain = build_chat_model(provider, api_key) | StrOutputParser()
    messages = build_messages(provider, prompt)

    logger.info(f"Calling {provider.value} for resume generation ({len(prompt)} prompt chars)")
    with tracer.start_as_current_span("llm.generate_resume") as span:
        span.set_attribute("llm.provider", provider.value)
        span.set_attribute("llm.prompt_chars", len(prompt))
        try:
            content = await asyncio.wait_for(chain.ainvoke(messages), timeout=config.LLM_TIMEOUT_SECONDS)
        except Exception as e:
            mapped = map_provider_error(e)
            span.set_attribute("llm.error", type(mapped).__name__)
            logger.error(f"{provider.value} request failed: {type(e).__name__}: {mapped.message}")
            raise mapped from e
        span.set_attribute("llm.response_chars", len(content))
        return content
