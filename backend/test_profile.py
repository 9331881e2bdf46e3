from datetime import date

from sqlalchemy import select, func

from resume_tailor.models_db import User, Profile, WorkExperience

PERSONAL = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "+1 555 0100",
    "location": "Berlin, Germany",
}


async def test_get_profile_missing(auth_client):
    response = await auth_client.get("/api/profile")
    assert response.status_code == 404
    assert response.json()["error"] == "Profile not found. Please complete your profile first."


async def test_upsert_profile_creates_then_updates(auth_client, db_session):
    created = await auth_client.put("/api/profile", json=PERSONAL)
    assert created.status_code == 200
    assert created.json()["name"] == "Jane Doe"
    assert created.json()["work_experiences"] == []

    updated = await auth_client.put("/api/profile", json={**PERSONAL, "location": "  Munich  "})
    assert updated.json()["id"] == created.json()["id"]
    assert updated.json()["location"] == "Munich"

    count = await db_session.execute(select(func.count(Profile.id)))
    assert count.scalar_one() == 1


async def test_upsert_profile_requires_name(auth_client):
    response = await auth_client.put("/api/profile", json={**PERSONAL, "name": ""})
    assert response.status_code == 422


async def test_profile_lists_children_newest_first(auth_client, profile):
    data = (await auth_client.get("/api/profile")).json()
    assert [w["company"] for w in data["work_experiences"]] == ["Acme Corp", "Globex"]
    assert data["work_experiences"][0]["is_current"] is True
    assert data["educations"][0]["university"] == "TU Berlin"


async def test_work_experience_crud(auth_client, profile, db_session):
    created = await auth_client.post("/api/profile/work-experiences", json={
        "company": "Initrode",
        "position": "Intern",
        "start_date": "2016-01-01",
        "end_date": "2016-06-30",
    })
    assert created.status_code == 201
    work_id = created.json()["id"]

    updated = await auth_client.put(f"/api/profile/work-experiences/{work_id}", json={
        "company": "Initrode",
        "position": "Junior Engineer",
        "start_date": "2016-01-01",
        "end_date": "2016-12-31",
        "is_current": True,
    })
    assert updated.status_code == 200
    assert updated.json()["position"] == "Junior Engineer"
    # a current role never carries an end date
    assert updated.json()["end_date"] is None

    data = (await auth_client.get("/api/profile")).json()
    assert [w["company"] for w in data["work_experiences"]] == ["Acme Corp", "Globex", "Initrode"]

    deleted = await auth_client.delete(f"/api/profile/work-experiences/{work_id}")
    assert deleted.status_code == 204
    remaining = await db_session.execute(select(func.count(WorkExperience.id)))
    assert remaining.scalar_one() == 2


async def test_work_experience_rejects_inverted_dates(auth_client, profile):
    response = await auth_client.post("/api/profile/work-experiences", json={
        "company": "Initrode",
        "position": "Intern",
        "start_date": "2016-06-01",
        "end_date": "2016-01-01",
    })
    assert response.status_code == 422


async def test_education_crud(auth_client, profile):
    created = await auth_client.post("/api/profile/educations", json={
        "university": "MIT",
        "degree": "MSc Computer Science",
        "start_date": "2018-09-01",
        "end_date": "2020-06-01",
    })
    assert created.status_code == 201
    education_id = created.json()["id"]

    updated = await auth_client.put(f"/api/profile/educations/{education_id}", json={
        "university": "MIT",
        "degree": "MEng Computer Science",
        "start_date": "2018-09-01",
        "end_date": "2020-06-01",
    })
    assert updated.json()["degree"] == "MEng Computer Science"

    data = (await auth_client.get("/api/profile")).json()
    assert [e["university"] for e in data["educations"]] == ["MIT", "TU Berlin"]

    assert (await auth_client.delete(f"/api/profile/educations/{education_id}")).status_code == 204
    assert (await auth_client.delete(f"/api/profile/educations/{education_id}")).status_code == 404


async def test_children_require_profile(auth_client):
    response = await auth_client.post("/api/profile/educations", json={
        "university": "MIT",
        "degree": "MSc",
        "start_date": "2018-09-01",
        "end_date": "2020-06-01",
    })
    assert response.status_code == 404


async def test_cannot_touch_another_users_rows(auth_client, profile, db_session):
    stranger = User(external_id="someone_else", email="other@example.com")
    db_session.add(stranger)
    await db_session.flush()
    other_profile = Profile(user_id=stranger.id, name="Other", email="other@example.com", phone="", location="")
    db_session.add(other_profile)
    await db_session.flush()
    foreign = WorkExperience(profile_id=other_profile.id, company="Hidden", position="Dev",
                             start_date=date(2020, 1, 1), is_current=True)
    db_session.add(foreign)
    await db_session.commit()

    response = await auth_client.delete(f"/api/profile/work-experiences/{foreign.id}")
    assert response.status_code == 404
    assert (await db_session.get(WorkExperience, foreign.id)) is not None
