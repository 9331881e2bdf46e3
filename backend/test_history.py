import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from conftest import ai_payload
from resume_tailor.models_db import User, JobHistory, ResumeHistory

JOB = {
    "company_name": "Initech",
    "role": "Backend Engineer",
    "job_description": "Initech is looking for a Python engineer to build FastAPI services on AWS.",
    "note": "Referred by Sam",
}

STORED_RESUME = {
    "professionalTitle": "Backend Engineer",
    "professionalSummary": "Summary",
    "workExperiences": [],
    "technicalSkills": ["Python"],
    "personalInfo": {"name": "Jane Doe", "email": "jane@example.com", "phone": "", "location": ""},
    "educations": [],
}


async def _add_entry(db_session, user, company, role="Engineer", description="Python role", note=None,
                     created_at=None, providers=()):
    entry = JobHistory(
        user_id=user.id,
        company_name=company,
        role=role,
        job_description=description,
        note=note,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db_session.add(entry)
    await db_session.flush()
    for provider in providers:
        db_session.add(ResumeHistory(
            job_history_id=entry.id,
            resume_data=STORED_RESUME,
            generation_cost=Decimal("0.08"),
            ai_provider=provider,
        ))
    await db_session.commit()
    return entry


# --- Generation with history ---

async def test_generate_for_job_persists_entry_and_resume(auth_client, db_session, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")

    response = await auth_client.post("/api/history/generate", json=JOB)

    assert response.status_code == 200
    data = response.json()
    assert data["ai_provider"] == "openai"
    assert data["resume_record_id"]
    # ceil((74 + 2*200)/4) = 119 input tokens at 0.03/1K plus 2000 output tokens at 0.06/1K
    assert data["generation_cost"] == 0.12
    assert [w["company"] for w in data["resume"]["workExperiences"]] == ["Acme Corp", "Globex"]

    detail = await auth_client.get(f"/api/history/{data['job_history_id']}")
    assert detail.status_code == 200
    body = detail.json()
    assert body["company_name"] == "Initech"
    assert body["note"] == "Referred by Sam"
    assert len(body["resumes"]) == 1
    assert body["resumes"][0]["id"] == data["resume_record_id"]
    assert body["resumes"][0]["resume_data"]["personalInfo"]["name"] == "Jane Doe"


async def test_generate_for_job_records_provider_actually_used(auth_client, profile, make_settings, fake_llm):
    await make_settings(anthropic_key="sk-ant", preferred_ai="openai")

    response = await auth_client.post("/api/history/generate", json=JOB)

    assert response.status_code == 200
    assert response.json()["ai_provider"] == "anthropic"


@pytest.mark.parametrize("field, message", [
    ("company_name", "Company name is required"),
    ("role", "Role is required"),
    ("job_description", "Job description is required"),
])
async def test_generate_for_job_validates_fields(auth_client, db_session, profile, make_settings, fake_llm, field, message):
    await make_settings(openai_key="sk-openai")

    response = await auth_client.post("/api/history/generate", json={**JOB, field: "  "})

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert fake_llm.calls == []
    count = await db_session.execute(select(func.count(JobHistory.id)))
    assert count.scalar_one() == 0


async def test_generate_for_job_keeps_resume_when_record_write_fails(auth_client, db_session, profile,
                                                                   make_settings, fake_llm, monkeypatch):
    await make_settings(openai_key="sk-openai")
    original_commit = db_session.commit
    calls = {"n": 0}

    async def failing_second_commit():
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("disk full")
        await original_commit()

    monkeypatch.setattr(db_session, "commit", failing_second_commit)

    response = await auth_client.post("/api/history/generate", json=JOB)

    assert response.status_code == 200
    data = response.json()
    assert data["resume_record_id"] is None
    assert data["resume"]["professionalTitle"]


async def test_generation_failure_keeps_job_entry(auth_client, db_session, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")
    fake_llm.reply_with("not json at all")

    response = await auth_client.post("/api/history/generate", json=JOB)

    assert response.status_code == 502
    entries = await db_session.execute(select(func.count(JobHistory.id)))
    assert entries.scalar_one() == 1
    resumes = await db_session.execute(select(func.count(ResumeHistory.id)))
    assert resumes.scalar_one() == 0


async def test_regenerate_adds_newest_resume_first(auth_client, profile, make_settings, fake_llm):
    await make_settings(openai_key="sk-openai")
    first = (await auth_client.post("/api/history/generate", json=JOB)).json()

    fake_llm.reply_with(json.dumps(ai_payload(title="Platform Engineer | Go")))
    second = await auth_client.post(f"/api/history/{first['job_history_id']}/regenerate")

    assert second.status_code == 200
    assert second.json()["job_history_id"] == first["job_history_id"]

    detail = (await auth_client.get(f"/api/history/{first['job_history_id']}")).json()
    assert [r["id"] for r in detail["resumes"]] == [second.json()["resume_record_id"], first["resume_record_id"]]
    assert detail["resumes"][0]["resume_data"]["professionalTitle"] == "Platform Engineer | Go"


# --- Listing ---

async def test_list_is_paginated_newest_first(auth_client, db_session, user):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for i in range(12):
        await _add_entry(db_session, user, f"Company {i:02d}", created_at=base + timedelta(hours=i))

    response = await auth_client.get("/api/history", params={"per_page": 10})
    data = response.json()
    assert data["total_items"] == 12
    assert data["total_pages"] == 2
    assert data["items"][0]["company_name"] == "Company 11"
    assert len(data["items"]) == 10

    page_two = (await auth_client.get("/api/history", params={"per_page": 10, "page": 2})).json()
    assert [i["company_name"] for i in page_two["items"]] == ["Company 01", "Company 00"]


async def test_list_defaults_to_fifty_per_page(auth_client):
    data = (await auth_client.get("/api/history")).json()
    assert data["per_page"] == 50
    assert data["items"] == []
    assert data["total_items"] == 0


async def test_list_rejects_unsupported_page_size(auth_client):
    response = await auth_client.get("/api/history", params={"per_page": 7})
    assert response.status_code == 400


async def test_list_filters(auth_client, db_session, user):
    await _add_entry(db_session, user, "Initech", role="Data Engineer", note="call back friday",
                     created_at=datetime(2026, 3, 5, 10, tzinfo=timezone.utc), providers=["openai"])
    await _add_entry(db_session, user, "Umbrella", role="SRE", description="Kubernetes heavy",
                     created_at=datetime(2026, 3, 6, 9, tzinfo=timezone.utc), providers=["anthropic"])

    async def companies(**params):
        data = (await auth_client.get("/api/history", params=params)).json()
        return [item["company_name"] for item in data["items"]]

    assert await companies(search="kubernetes") == ["Umbrella"]
    assert await companies(search="FRIDAY") == ["Initech"]
    assert await companies(company="init") == ["Initech"]
    assert await companies(date="2026-03-06") == ["Umbrella"]
    assert await companies(ai_provider="openai") == ["Initech"]
    assert await companies(search="engineer", ai_provider="anthropic") == []


async def test_list_only_shows_own_entries(auth_client, db_session, user):
    stranger = User(external_id="someone_else", email="other@example.com")
    db_session.add(stranger)
    await db_session.commit()
    await _add_entry(db_session, stranger, "Secret Co")
    await _add_entry(db_session, user, "Mine Inc")

    data = (await auth_client.get("/api/history")).json()
    assert [i["company_name"] for i in data["items"]] == ["Mine Inc"]


# --- Notes, deletes, downloads ---

async def test_update_note(auth_client, db_session, user):
    entry = await _add_entry(db_session, user, "Initech", note="old")

    response = await auth_client.patch(f"/api/history/{entry.id}", json={"note": "Phone screen on Monday"})
    assert response.status_code == 200
    assert response.json()["note"] == "Phone screen on Monday"

    cleared = await auth_client.patch(f"/api/history/{entry.id}", json={"note": "   "})
    assert cleared.json()["note"] is None


async def test_delete_cascades_to_resumes(auth_client, db_session, user):
    entry = await _add_entry(db_session, user, "Initech", providers=["openai", "anthropic"])

    response = await auth_client.delete(f"/api/history/{entry.id}")
    assert response.status_code == 204

    assert (await auth_client.get(f"/api/history/{entry.id}")).status_code == 404
    remaining = await db_session.execute(select(func.count(ResumeHistory.id)))
    assert remaining.scalar_one() == 0


async def test_bulk_delete_ignores_other_users(auth_client, db_session, user):
    stranger = User(external_id="someone_else", email="other@example.com")
    db_session.add(stranger)
    await db_session.commit()
    mine_a = await _add_entry(db_session, user, "A", providers=["openai"])
    mine_b = await _add_entry(db_session, user, "B")
    theirs = await _add_entry(db_session, stranger, "C")

    response = await auth_client.post("/api/history/delete", json={"ids": [mine_a.id, mine_b.id, theirs.id]})

    assert response.status_code == 200
    assert response.json() == {"deleted": 2}
    left = (await db_session.execute(select(JobHistory.company_name))).scalars().all()
    assert left == ["C"]


async def test_bulk_delete_requires_ids(auth_client):
    response = await auth_client.post("/api/history/delete", json={"ids": []})
    assert response.status_code == 422


async def test_resume_record_get_and_download(auth_client, db_session, user):
    entry = await _add_entry(db_session, user, "Initech", providers=["openai"])
    record = (await db_session.execute(select(ResumeHistory))).scalars().first()

    response = await auth_client.get(f"/api/history/resumes/{record.id}")
    assert response.status_code == 200
    assert response.json()["job_history_id"] == entry.id
    assert response.json()["ai_provider"] == "openai"

    pdf = await auth_client.get(f"/api/history/resumes/{record.id}/download")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    word = await auth_client.get(f"/api/history/resumes/{record.id}/download", params={"format": "docx"})
    assert word.status_code == 200
    assert word.content.startswith(b"PK")


async def test_resume_record_of_other_user_is_hidden(auth_client, db_session):
    stranger = User(external_id="someone_else", email="other@example.com")
    db_session.add(stranger)
    await db_session.commit()
    await _add_entry(db_session, stranger, "Secret Co", providers=["openai"])
    record = (await db_session.execute(select(ResumeHistory))).scalars().first()

    assert (await auth_client.get(f"/api/history/resumes/{record.id}")).status_code == 404
    assert (await auth_client.get(f"/api/history/resumes/{record.id}/download")).status_code == 404
