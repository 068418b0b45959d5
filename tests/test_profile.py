"""
Tests for the candidate profile endpoints and profile calculations.
"""
from datetime import date
from types import SimpleNamespace

import pytest

import profile_service
from database import db
from models import Accomplishment, Candidate, CandidateSkill, Skill, WorkExperience
from profile_service import (
    calculate_profile_completion, calculate_total_experience, identify_missing_sections,
)

PROFILE = {
    "first_name": "Jane",
    "last_name": "Doe",
    "title": "Backend Engineer",
    "about": "Backend engineer with eight years of experience building APIs and data pipelines.",
    "location": "Berlin",
    "years_of_experience": "8",
    "currency": "eur",
    "work_experience": [
        {
            "title": "Senior Engineer",
            "company": "Acme",
            "employment_type": "full_time",
            "start_date": "2021-01-01",
            "is_current": True,
            "end_date": "2019-01-01",
        },
        {
            "title": "Engineer",
            "company": "Initech",
            "start_date": "2018-01-01",
            "end_date": "2020-12-31",
        },
    ],
    "accomplishments": [
        {"title": "Cut build times in half", "description": "Moved CI to cached Docker layers",
         "temp_work_experience_index": 1},
        {"title": "Dropped: no description"},
    ],
    "education": [
        {"degree_diploma": "BSc Computer Science", "university_school": "TU Berlin", "start_date": "2014-10"},
        {"grade": "A"},
    ],
    "certificates": [{"name": "AWS Solutions Architect", "issue_date": "2022-03-01"}],
    "projects": [{"name": "Open data portal", "technologies": ["Python", "PostgreSQL"]}],
    "awards": [{"title": "Engineer of the Year", "date": "2022"}],
    "volunteering": [{"role": "Mentor", "institution": "Code Club"}],
    "candidate_skills": [
        {"skill_name": "Python", "proficiency": 80},
        {"skill_name": "python", "proficiency": 90},
        {"skill_name": "PostgreSQL", "proficiency": 150},
        {"skill_name": "Docker"},
    ],
}

EXPERIENCE_URL = "/api/candidate/profile/edit-profile/experience"


@pytest.fixture
def profile(client, candidate_headers):
    response = client.post("/api/candidate/profile/create-profile",
                           json={"profileData": PROFILE}, headers=candidate_headers)
    assert response.status_code == 201
    return response.get_json()["data"]


class TestUpsertProfile:
    def test_create_profile(self, profile, candidate_user):
        assert profile["is_update"] is False
        assert profile["skills_created"] == 3
        assert profile["uploaded_cvs"] == []

        candidate = profile["candidate"]
        assert candidate["first_name"] == "Jane"
        assert candidate["years_of_experience"] == 8
        assert candidate["currency"] == "EUR"
        assert candidate["profile_completion_percentage"] == 90

        stored = db.session.get(Candidate, candidate_user.id)
        assert len(stored.work_experiences) == 2
        assert len(stored.educations) == 1
        assert len(stored.accomplishments) == 1

    def test_current_role_has_no_end_date(self, profile, candidate_user):
        current = WorkExperience.query.filter_by(candidate_id=candidate_user.id, company="Acme").one()
        assert current.is_current is True
        assert current.end_date is None

    def test_accomplishment_linked_by_index(self, profile, candidate_user):
        accomplishment = Accomplishment.query.one()
        assert accomplishment.work_experience.company == "Initech"

    def test_skills_are_deduplicated_and_clamped(self, profile, candidate_user):
        links = {link.skill.name: link for link in CandidateSkill.query.filter_by(candidate_id=candidate_user.id)}
        assert set(links) == {"python", "PostgreSQL", "Docker"}
        assert links["python"].proficiency == 90
        assert links["PostgreSQL"].proficiency == 100
        assert links["Docker"].proficiency == 60

    def test_update_replaces_sections_and_keeps_skills(self, client, candidate_headers, profile, candidate_user):
        update = dict(PROFILE, title="Staff Engineer", work_experience=PROFILE["work_experience"][:1],
                      accomplishments=[], candidate_skills=[], education=[])

        response = client.post("/api/candidate/profile/create-profile", json=update, headers=candidate_headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["is_update"] is True
        assert data["skills_created"] == 0
        assert data["candidate"]["title"] == "Staff Engineer"
        assert data["candidate"]["profile_completion_percentage"] == 85

        assert WorkExperience.query.filter_by(candidate_id=candidate_user.id).count() == 1
        assert Accomplishment.query.count() == 0
        assert CandidateSkill.query.filter_by(candidate_id=candidate_user.id).count() == 3

    def test_skill_failure_still_saves_profile(self, client, candidate_headers, candidate_user, monkeypatch):
        def broken_sync(candidate, skills):
            raise RuntimeError("skill catalogue unavailable")

        monkeypatch.setattr(profile_service, "sync_candidate_skills", broken_sync)

        response = client.post("/api/candidate/profile/create-profile",
                               json={"profileData": PROFILE}, headers=candidate_headers)

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["skills_created"] == 0
        assert data["candidate"]["profile_completion_percentage"] == 85
        assert WorkExperience.query.filter_by(candidate_id=candidate_user.id).count() == 2
        assert CandidateSkill.query.count() == 0

    @pytest.mark.parametrize("key, value", [
        ("skills", "python"),
        ("candidate_skills", {"skill_name": "Python"}),
        ("education", 5),
        ("work_experience", {"title": "Engineer"}),
        ("accomplishments", "Led migration"),
    ])
    def test_sections_must_be_lists(self, client, candidate_headers, candidate_user, key, value):
        response = client.post("/api/candidate/profile/create-profile",
                               json={"profileData": dict(PROFILE, **{key: value})}, headers=candidate_headers)

        assert response.status_code == 400
        assert [d["field"] for d in response.get_json()["details"]] == [key]
        assert db.session.get(Candidate, candidate_user.id) is None
        assert Skill.query.count() == 0

    def test_names_are_required(self, client, candidate_headers):
        response = client.post("/api/candidate/profile/create-profile",
                               json={"first_name": "Jane"}, headers=candidate_headers)

        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "First name and last name are required"
        assert body["details"] == [{"field": "last_name", "message": "Last name is required"}]

    def test_invalid_experience_is_rejected(self, client, candidate_headers):
        payload = dict(PROFILE, work_experience=[
            {"title": "Engineer", "company": "Acme", "start_date": "2022-01-01", "end_date": "2020-01-01"},
        ])
        response = client.post("/api/candidate/profile/create-profile", json=payload, headers=candidate_headers)

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "work_experience[0].end_date"
        assert Candidate.query.count() == 0


class TestSections:
    def test_replace_education(self, client, candidate_headers, profile):
        url = "/api/candidate/profile/create-profile/education"
        response = client.post(url, headers=candidate_headers, json={"education": [
            {"degree_diploma": "MSc", "university_school": "ETH", "start_date": "2016-09-01"},
            {"degree_diploma": "BSc", "university_school": "TU Berlin", "start_date": "2012-09-01"},
        ]})

        assert response.status_code == 200
        assert [e["degree_diploma"] for e in response.get_json()["education"]] == ["MSc", "BSc"]
        assert len(client.get(url, headers=candidate_headers).get_json()["education"]) == 2

    def test_sections_need_a_profile(self, client, candidate_headers):
        response = client.get("/api/candidate/profile/create-profile/education", headers=candidate_headers)
        assert response.status_code == 404

    def test_replace_experiences(self, client, candidate_headers, profile):
        response = client.post("/api/candidate/profile/create-profile/experience", headers=candidate_headers, json={
            "experiences": [{"title": "CTO", "company": "Startup", "start_date": "2023-05-01", "is_current": True}],
            "accomplishments": [{"title": "Raised seed round", "description": "Closed 2M",
                                 "temp_work_experience_index": 0}],
        })

        assert response.status_code == 200
        experiences = response.get_json()["experiences"]
        assert len(experiences) == 1
        assert experiences[0]["accomplishments"][0]["title"] == "Raised seed round"

    def test_replace_experiences_validation(self, client, candidate_headers, profile):
        response = client.post("/api/candidate/profile/create-profile/experience", headers=candidate_headers,
                               json={"experiences": [{"title": "CTO"}]})
        assert response.status_code == 400
        assert WorkExperience.query.count() == 2

    def test_replace_skills(self, client, candidate_headers, profile):
        url = "/api/candidate/profile/create-profile/skills"
        response = client.post(url, headers=candidate_headers,
                               json={"skills": [{"skill_name": "Rust", "proficiency": 40},
                                                {"skill_name": "Go", "proficiency": 70}]})

        assert response.status_code == 200
        assert [s["skill_name"] for s in response.get_json()["skills"]] == ["Go", "Rust"]

    def test_skills_must_be_a_list(self, client, candidate_headers, profile):
        response = client.post("/api/candidate/profile/create-profile/skills", headers=candidate_headers,
                               json={"skills": "Python"})
        assert response.status_code == 400


class TestSingleExperience:
    def test_add_get_update_delete(self, client, candidate_headers, profile):
        response = client.post(f"{EXPERIENCE_URL}/add", headers=candidate_headers, json={
            "title": "Consultant", "company": "Self", "start_date": "2017-01-01", "end_date": "2017-12-31",
            "accomplishments": [{"title": "Delivered three audits"}],
        })
        assert response.status_code == 201
        experience = response.get_json()["experience"]
        assert experience["accomplishments"][0]["title"] == "Delivered three audits"

        url = f"{EXPERIENCE_URL}/{experience['id']}"
        assert client.get(url, headers=candidate_headers).get_json()["experience"]["company"] == "Self"

        response = client.put(url, headers=candidate_headers, json={
            "title": "Lead Consultant", "company": "Self", "start_date": "2017-01-01",
            "accomplishments": [],
        })
        assert response.status_code == 200
        updated = response.get_json()["experience"]
        assert updated["title"] == "Lead Consultant"
        assert updated["accomplishments"] == []

        assert client.delete(url, headers=candidate_headers).status_code == 200
        assert client.get(url, headers=candidate_headers).status_code == 404

    def test_other_candidates_experience_is_hidden(self, client, profile, make_user, auth_headers, candidate_user):
        experience = WorkExperience.query.filter_by(candidate_id=candidate_user.id).first()
        other = make_user(email="other@example.com")

        response = client.get(f"{EXPERIENCE_URL}/{experience.id}", headers=auth_headers(other))
        assert response.status_code == 404

    def test_list_and_replace_via_edit_endpoint(self, client, candidate_headers, profile):
        assert len(client.get(EXPERIENCE_URL, headers=candidate_headers).get_json()["experiences"]) == 2

        response = client.put(EXPERIENCE_URL, headers=candidate_headers, json={"experiences": []})
        assert response.status_code == 200
        assert response.get_json()["experiences"] == []


class TestBasicInfo:
    URL = "/api/candidate/profile/edit-profile/basic-info"

    def test_get_includes_account_fields(self, client, candidate_headers, profile):
        data = client.get(self.URL, headers=candidate_headers).get_json()["data"]
        assert data["email"] == "jane@example.com"
        assert data["title"] == "Backend Engineer"

    def test_partial_update(self, client, candidate_headers, profile):
        response = client.put(self.URL, headers=candidate_headers,
                              json={"title": "Principal Engineer", "github_url": "https://github.com/jane"})

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["title"] == "Principal Engineer"
        assert data["github_url"] == "https://github.com/jane"
        assert data["first_name"] == "Jane"

    def test_invalid_update(self, client, candidate_headers, profile):
        response = client.put(self.URL, headers=candidate_headers, json={"github_url": "not a url"})
        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "github_url"

    def test_empty_update(self, client, candidate_headers, profile):
        response = client.put(self.URL, headers=candidate_headers, json={})
        assert response.status_code == 400

    def test_update_recomputes_completion(self, client, candidate_headers, profile):
        # name and title, location
        data = client.put(self.URL, headers=candidate_headers, json={"title": "Principal Engineer"}).get_json()["data"]
        assert data["profile_completion_percentage"] == 40

        data = client.put(self.URL, headers=candidate_headers, json={
            "phone1": "+49 30 1234567",
            "professional_summary": "Builds reliable APIs",
            "experience_level": "senior",
        }).get_json()["data"]
        assert data["profile_completion_percentage"] == 100

    def test_personal_and_availability_details(self, client, candidate_headers, profile):
        response = client.put(self.URL, headers=candidate_headers, json={
            "gender": "female",
            "date_of_birth": "1990-05-01",
            "country": "Germany",
            "notice_period": 30,
            "open_to_relocation": True,
            "work_availability": "contract",
            "work_authorization": "citizen",
            "salary_visibility": "range_only",
        })

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["date_of_birth"] == "1990-05-01"
        assert data["country"] == "Germany"
        assert data["notice_period"] == 30
        assert data["open_to_relocation"] is True
        assert data["willing_to_travel"] is False
        assert data["work_authorization"] == "citizen"

    def test_non_finite_numbers_are_rejected(self, client, candidate_headers, profile):
        response = client.put(self.URL, headers=candidate_headers, data='{"years_of_experience": NaN}',
                              content_type="application/json")

        assert response.status_code == 400
        assert response.get_json()["details"][0]["field"] == "years_of_experience"


class TestDisplayProfile:
    def test_display(self, client, candidate_headers, profile):
        response = client.get("/api/candidate/profile/display-profile", headers=candidate_headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        stats = data["profile_stats"]
        assert stats["completion_percentage"] == 90
        assert stats["missing_sections"] == ["Resume/CV"]
        assert stats["work_experience_count"] == 2
        assert stats["skills_count"] == 3
        assert [e["company"] for e in data["work_experiences"]] == ["Acme", "Initech"]
        assert data["skills"][0]["skill_name"] == "PostgreSQL"

    def test_display_without_profile(self, client, candidate_headers):
        response = client.get("/api/candidate/profile/display-profile", headers=candidate_headers)
        assert response.status_code == 404


class TestCalculations:
    def test_total_experience(self):
        experiences = [
            SimpleNamespace(start_date=date(2020, 1, 1), end_date=date(2021, 7, 1)),
            SimpleNamespace(start_date=date(2023, 6, 1), end_date=None),
        ]
        assert calculate_total_experience(experiences, today=date(2024, 6, 1)) == 2.5

    def test_total_experience_ignores_undated(self):
        experiences = [SimpleNamespace(start_date=None, end_date=None)]
        assert calculate_total_experience(experiences) == 0

    def test_completion_and_missing_sections(self):
        data = {
            "candidate": {"first_name": "Jane", "last_name": "Doe", "title": "Engineer", "about": "short"},
            "work_experiences": [{}],
            "skills": [{}, {}],
        }
        assert calculate_profile_completion(data) == 20
        assert identify_missing_sections(data) == ["About", "Education", "Skills", "Resume/CV"]

    def test_empty_profile(self):
        assert calculate_profile_completion({}) == 0
