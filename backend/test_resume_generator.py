import asyncio
import json

import httpx
import openai
import pytest
from langchain_core.runnables import RunnableLambda

from conftest import ai_payload
from resume_tailor import config, llm_providers
from resume_tailor.errors import InvalidProviderResponse
from resume_tailor.models import AIProvider
from resume_tailor.resume_generator import (
    extract_json_from_content,
    parse_ai_content,
    merge_generated_resume,
    generate_resume,
)

JOB_DESCRIPTION = "We are hiring a Senior Backend Engineer with Python, FastAPI and PostgreSQL experience."


# --- Response parsing ---

def test_extract_json_strips_code_fences():
    content = "```json\n{\"professionalTitle\": \"Engineer\"}\n```"
    assert extract_json_from_content(content) == '{"professionalTitle": "Engineer"}'


def test_extract_json_ignores_surrounding_prose():
    content = 'Here is your resume:\n{"a": {"b": 1}}\nGood luck!'
    assert json.loads(extract_json_from_content(content)) == {"a": {"b": 1}}


def test_parse_ai_content_rejects_non_json():
    with pytest.raises(InvalidProviderResponse) as exc_info:
        parse_ai_content("I'm sorry, I can't help with that.")
    assert exc_info.value.status_code == 502


def test_parse_ai_content_requires_core_keys():
    payload = ai_payload()
    del payload["technicalSkills"]
    with pytest.raises(InvalidProviderResponse):
        parse_ai_content(json.dumps(payload))


def test_parse_ai_content_rejects_wrong_types():
    payload = ai_payload()
    payload["workExperiences"] = "none"
    with pytest.raises(InvalidProviderResponse):
        parse_ai_content(json.dumps(payload))


# --- Merge ---

async def test_merge_uses_stored_records_for_identity(profile):
    works = await profile.awaitable_attrs.work_experiences
    edus = await profile.awaitable_attrs.educations
    payload = ai_payload()
    payload["workExperiences"][0]["company"] = "Hallucinated Inc"

    resume = merge_generated_resume(payload, profile, works, edus)

    assert [w.company for w in resume.workExperiences] == ["Acme Corp", "Globex"]
    assert resume.workExperiences[0].isCurrent is True
    assert resume.workExperiences[0].endDate is None
    assert resume.workExperiences[1].startDate == "2017-06-01"
    assert resume.workExperiences[1].endDate == "2021-02-01"
    assert resume.personalInfo.name == "Jane Doe"
    assert resume.personalInfo.location == "Berlin, Germany"
    assert resume.educations[0].university == "TU Berlin"
    assert resume.educations[0].endDate == "2017-05-01"


async def test_merge_pads_missing_ai_entries_with_empty_achievements(profile):
    works = await profile.awaitable_attrs.work_experiences
    resume = merge_generated_resume(ai_payload(achievement_counts=(6,)), profile, works, [])

    assert len(resume.workExperiences) == 2
    assert len(resume.workExperiences[0].achievements) == 6
    assert resume.workExperiences[1].achievements == []


async def test_merge_drops_extra_ai_entries(profile):
    works = await profile.awaitable_attrs.work_experiences
    resume = merge_generated_resume(ai_payload(achievement_counts=(6, 6, 6)), profile, works, [])
    assert len(resume.workExperiences) == 2


async def test_merge_flattens_structured_achievements(profile):
    works = await profile.awaitable_attrs.work_experiences
    payload = ai_payload(achievement_counts=(0, 0))
    payload["workExperiences"][0]["achievements"] = [
        {"description": "Led the billing rewrite", "details": ["Python"]},
        "  Cut latency by 40%  ",
        None,
    ]
    resume = merge_generated_resume(payload, profile, works, [])
    assert resume.workExperiences[0].achievements == ["Led the billing rewrite", "Cut latency by 40%"]


# --- generate_resume ---

async def test_generate_resume_uses_preferred_provider(db_session, user, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai", anthropic_key="sk-ant", preferred_ai="anthropic")

    result = await generate_resume(db_session, user, JOB_DESCRIPTION)

    assert result.provider == AIProvider.ANTHROPIC
    assert fake_llm.calls == [(AIProvider.ANTHROPIC, "sk-ant")]
    assert result.resume.professionalTitle.startswith("Senior Backend Engineer")


async def test_generate_resume_falls_back_when_preferred_key_missing(db_session, user, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai", preferred_ai="anthropic")

    result = await generate_resume(db_session, user, JOB_DESCRIPTION)

    assert result.provider == AIProvider.OPENAI
    assert fake_llm.calls == [(AIProvider.OPENAI, "sk-openai")]


# --- HTTP endpoint ---

async def test_generate_endpoint_returns_merged_resume(auth_client, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 200
    data = response.json()
    assert data["personalInfo"]["email"] == "jane@example.com"
    assert [w["company"] for w in data["workExperiences"]] == ["Acme Corp", "Globex"]
    assert all(len(w["achievements"]) == 6 for w in data["workExperiences"])
    assert data["technicalSkills"][0] == "Languages: Python, SQL"
    assert data["educations"][0]["degree"] == "BSc Computer Science"


async def test_generate_endpoint_accepts_fenced_reply(auth_client, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")
    fake_llm.reply_with(f"```json\n{json.dumps(ai_payload())}\n```")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 200
    assert response.json()["professionalSummary"]


async def test_generate_endpoint_rejects_unparseable_reply(auth_client, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")
    fake_llm.reply_with("Sorry, I cannot do that.")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 502
    assert response.json()["error"] == "Invalid response from AI service - unable to parse JSON"


@pytest.mark.parametrize("job_description", ["", "   \n\t "])
async def test_generate_endpoint_requires_job_description(auth_client, profile, make_settings, fake_llm, job_description):
    await make_settings(openai_key="sk-openai")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": job_description})

    assert response.status_code == 400
    assert response.json()["error"] == "Job description is required"
    assert fake_llm.calls == []


async def test_generate_endpoint_without_profile(auth_client, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 404
    assert response.json()["error"] == "Profile not found. Please complete your profile first."
    assert fake_llm.calls == []


async def test_generate_endpoint_without_settings(auth_client, profile, fake_llm):
    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 400
    assert "Settings not found" in response.json()["error"]
    assert fake_llm.calls == []


async def test_generate_endpoint_without_any_key(auth_client, profile, make_settings, fake_llm):
    await make_settings(preferred_ai="anthropic")

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 400
    assert "No API key configured" in response.json()["error"]
    assert fake_llm.calls == []


async def test_generate_endpoint_requires_authentication(client):
    response = await client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})
    assert response.status_code == 401
    assert response.json()["error"] == "Not authenticated"


async def test_generate_endpoint_maps_rate_limit(auth_client, profile, make_settings, monkeypatch):
    await make_settings(openai_key="sk-openai")
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    def rate_limited(_):
        raise openai.RateLimitError("quota", response=httpx.Response(429, request=request), body=None)

    monkeypatch.setattr(llm_providers, "build_chat_model", lambda provider, key: RunnableLambda(rate_limited))

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 429
    assert "quota" in response.json()["error"].lower()


async def test_generate_endpoint_times_out(auth_client, profile, make_settings, monkeypatch):
    await make_settings(openai_key="sk-openai")

    async def slow(_):
        await asyncio.sleep(5)
        return "{}"

    monkeypatch.setattr(config, "LLM_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(llm_providers, "build_chat_model", lambda provider, key: RunnableLambda(slow))

    response = await auth_client.post("/api/generate-resume", json={"jobDescription": JOB_DESCRIPTION})

    assert response.status_code == 504
