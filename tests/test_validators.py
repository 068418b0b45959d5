"""
Unit tests for payload validators.
"""
from datetime import date

from models import JobStatus, JobType, ProficiencyLevel, RequiredLevel, SalaryType
from validators import (
    validate_basic_info, validate_create_job, validate_experience,
    validate_experience_list, validate_update_job,
)

TODAY = date(2024, 6, 1)

VALID_JOB = {
    "title": "Senior Python Developer",
    "description": "We are looking for an experienced Python developer to build and run our public APIs.",
    "job_type": "full_time",
    "experience_level": "senior",
    "remote_type": "hybrid",
    "salary_min": 80000,
    "salary_max": 120000,
    "currency": "eur",
    "custom_company_name": "Acme Corp",
    "custom_company_email": "jobs@acme.com",
    "custom_company_phone": "+1 555 123 4567",
    "skills": [
        {"skill_name": "Python", "required_level": "must_have", "proficiency_level": "expert", "years_required": 5},
        {"skill_name": "Docker"},
    ],
}


def fields(errors):
    return {e["field"] for e in errors}


class TestCreateJob:
    def test_valid_payload_is_cleaned(self):
        cleaned, errors = validate_create_job(VALID_JOB, today=TODAY)

        assert errors == []
        assert cleaned["job_type"] == JobType.FULL_TIME
        assert cleaned["status"] == JobStatus.DRAFT
        assert cleaned["salary_type"] == SalaryType.ANNUAL
        assert cleaned["currency"] == "EUR"
        assert cleaned["priority_level"] == 1
        assert cleaned["skills"][0]["required_level"] == RequiredLevel.MUST_HAVE
        assert cleaned["skills"][1]["proficiency_level"] == ProficiencyLevel.INTERMEDIATE
        assert cleaned["skills"][1]["weight"] == 1.0

    def test_all_problems_are_reported(self):
        payload = dict(VALID_JOB, title="Dev", description="Too short", job_type="permanent",
                       custom_company_email="nope", skills=[])

        _, errors = validate_create_job(payload, today=TODAY)

        assert {"title", "description", "job_type", "custom_company_email", "skills"} <= fields(errors)

    def test_salary_range(self):
        _, errors = validate_create_job(dict(VALID_JOB, salary_min=150000), today=TODAY)
        assert "salary_max" in fields(errors)

        _, errors = validate_create_job(dict(VALID_JOB, salary_max=20_000_000), today=TODAY)
        assert "salary_max" in fields(errors)

    def test_non_finite_salaries(self):
        _, errors = validate_create_job(dict(VALID_JOB, salary_min=float("nan"), salary_max=float("-inf")),
                                        today=TODAY)
        assert {"salary_min", "salary_max"} <= fields(errors)

    def test_deadline_must_not_be_past(self):
        _, errors = validate_create_job(dict(VALID_JOB, application_deadline="2024-05-31"), today=TODAY)
        assert "application_deadline" in fields(errors)

        cleaned, errors = validate_create_job(dict(VALID_JOB, application_deadline="2024-06-01"), today=TODAY)
        assert errors == []
        assert cleaned["application_deadline"] == date(2024, 6, 1)

        _, errors = validate_create_job(dict(VALID_JOB, application_deadline="01/07/2024"), today=TODAY)
        assert "application_deadline" in fields(errors)

    def test_skill_entries_are_checked(self):
        skills = [{"skill_name": "Python", "weight": 20, "required_level": "sometimes"}]
        _, errors = validate_create_job(dict(VALID_JOB, skills=skills), today=TODAY)

        assert fields(errors) == {"skills[0].weight", "skills[0].required_level"}

    def test_too_many_skills(self):
        skills = [{"skill_name": f"Skill {i}"} for i in range(21)]
        _, errors = validate_create_job(dict(VALID_JOB, skills=skills), today=TODAY)
        assert "skills" in fields(errors)

    def test_company_phone_length(self):
        _, errors = validate_create_job(dict(VALID_JOB, custom_company_phone="12345"), today=TODAY)
        assert "custom_company_phone" in fields(errors)


class TestUpdateJob:
    def test_update_allows_short_title_and_no_skills(self):
        payload = dict(VALID_JOB, title="Dev", description="Short text")
        payload.pop("skills")
        payload.pop("custom_company_email")

        cleaned, errors = validate_update_job(payload, today=TODAY)

        assert errors == []
        assert cleaned["skills"] is None

    def test_update_allows_past_deadline(self):
        _, errors = validate_update_job(dict(VALID_JOB, application_deadline="2020-01-01"), today=TODAY)
        assert errors == []


class TestExperience:
    def test_required_fields(self):
        errors = validate_experience({"employment_type": "full_time"})
        assert fields(errors) == {"title", "company", "start_date"}

    def test_end_before_start(self):
        errors = validate_experience({
            "title": "Engineer", "company": "Acme",
            "start_date": "2022-01-01", "end_date": "2021-01-01",
        })
        assert fields(errors) == {"end_date"}

    def test_current_role_ignores_end_date(self):
        errors = validate_experience({
            "title": "Engineer", "company": "Acme", "is_current": True,
            "start_date": "2022-01-01", "end_date": "2021-01-01",
        })
        assert errors == []

    def test_invalid_employment_type(self):
        errors = validate_experience({
            "title": "Engineer", "company": "Acme", "start_date": "2022-01-01", "employment_type": "gig",
        })
        assert fields(errors) == {"employment_type"}

    def test_list_prefixes_fields(self):
        errors = validate_experience_list(
            [{"title": "Engineer", "company": "Acme", "start_date": "2022-01-01"}, {}],
            [{"description": "untitled"}],
        )
        assert "experiences[1].title" in fields(errors)
        assert "accomplishments[0].title" in fields(errors)
        assert not any(f.startswith("experiences[0]") for f in fields(errors))

    def test_list_must_be_a_list(self):
        assert fields(validate_experience_list({"title": "x"})) == {"experiences"}


class TestBasicInfo:
    def test_only_supplied_fields_are_returned(self):
        cleaned, errors = validate_basic_info({"title": "  Lead Engineer ", "location": ""})

        assert errors == []
        assert cleaned == {"title": "Lead Engineer", "location": None}

    def test_invalid_values(self):
        _, errors = validate_basic_info({
            "first_name": "   ",
            "last_name": "x" * 101,
            "github_url": "github.com/jane",
            "experience_level": "guru",
            "years_of_experience": 70,
        })
        assert fields(errors) == {"first_name", "last_name", "github_url", "experience_level", "years_of_experience"}

    def test_salary_expectations(self):
        _, errors = validate_basic_info({"expected_salary_min": 90000, "expected_salary_max": 50000})
        assert "expected_salary_min" in fields(errors)

    def test_urls_and_currency_are_cleaned(self):
        cleaned, errors = validate_basic_info({
            "linkedin_url": "https://www.linkedin.com/in/jane",
            "portfolio_url": "",
            "currency": "gbp",
        })
        assert errors == []
        assert cleaned["linkedin_url"] == "https://www.linkedin.com/in/jane"
        assert cleaned["portfolio_url"] is None
        assert cleaned["currency"] == "GBP"

    def test_personal_details(self):
        cleaned, errors = validate_basic_info({
            "date_of_birth": "1990-05-01",
            "availability_date": "",
            "gender": "prefer_not_to_say",
            "notice_period": "60",
            "willing_to_travel": 1,
            "visa_assistance_needed": "",
        }, today=TODAY)

        assert errors == []
        assert cleaned == {
            "date_of_birth": date(1990, 5, 1),
            "availability_date": None,
            "gender": "prefer_not_to_say",
            "notice_period": 60,
            "willing_to_travel": True,
            "visa_assistance_needed": False,
        }

    def test_invalid_personal_details(self):
        _, errors = validate_basic_info({
            "date_of_birth": "2030-01-01",
            "availability_date": "soon",
            "gender": "robot",
            "notice_period": 400,
            "salary_visibility": "public",
            "work_authorization": ["citizen"],
        }, today=TODAY)

        assert fields(errors) == {
            "date_of_birth", "availability_date", "gender", "notice_period",
            "salary_visibility", "work_authorization",
        }

    def test_non_finite_numbers(self):
        _, errors = validate_basic_info({"years_of_experience": float("nan"),
                                         "expected_salary_max": float("inf")})
        assert fields(errors) == {"years_of_experience", "expected_salary_max"}
