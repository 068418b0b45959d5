"""
Tests for the skill catalogue and candidate skill syncing.
"""
import pytest

from database import db
from models import Candidate, CandidateSkill, Skill
from skills import (
    dedupe_skills, get_or_create_skills, infer_skill_category, list_active_skills,
    sync_candidate_skills,
)
from utils import extract_skills_from_text


@pytest.fixture
def candidate(candidate_user):
    candidate = Candidate(user=candidate_user, first_name="Jane", last_name="Doe")
    db.session.add(candidate)
    db.session.commit()
    return candidate


class TestCategories:
    @pytest.mark.parametrize("name, category", [
        ("Python", "programming"),
        ("Node.js", "programming"),
        ("PostgreSQL", "database"),
        ("Docker", "devops"),
        ("Figma", "design"),
        ("Machine Learning", "analytics"),
        ("Scrum", "management"),
        ("Underwater Basket Weaving", "other"),
    ])
    def test_infer_category(self, name, category):
        assert infer_skill_category(name) == category

    def test_short_names_need_whole_words(self):
        # "go" inside "mongodb" must not count as a programming language
        assert infer_skill_category("MongoDB") == "database"
        assert infer_skill_category("Google Ads") == "other"


class TestDedupe:
    def test_keeps_most_proficient_entry(self):
        entries = dedupe_skills([
            {"skill_name": "Python", "proficiency": 70},
            {"skill_name": "python ", "proficiency": 90, "skill_source": "cv_skills_section"},
            {"name": "Docker"},
            {"skill_name": "   "},
            "not a dict",
        ])

        by_name = {entry["skill_name"].lower(): entry for entry in entries}
        assert set(by_name) == {"python", "docker"}
        assert by_name["python"]["proficiency"] == 90
        assert by_name["python"]["skill_source"] == "cv_skills_section"


class TestCatalogue:
    def test_get_or_create_is_case_insensitive(self, app):
        db.session.add(Skill(name="Python", category="programming"))
        db.session.commit()

        resolved = get_or_create_skills(["PYTHON", "Kubernetes", "kubernetes", ""])
        db.session.commit()

        assert set(resolved) == {"python", "kubernetes"}
        assert resolved["python"].name == "Python"
        assert resolved["kubernetes"].category == "devops"
        assert Skill.query.count() == 2

    def test_explicit_category(self, app):
        resolved = get_or_create_skills(["Negotiation"], category="soft")
        assert resolved["negotiation"].category == "soft"

    def test_list_active_skills(self, app):
        db.session.add_all([
            Skill(name="Redis", category="database"),
            Skill(name="Django", category="programming"),
            Skill(name="COBOL", category="programming", is_active=False),
        ])
        db.session.commit()

        names = [skill.name for skill in list_active_skills()]
        assert names == ["Redis", "Django"]


class TestSyncCandidateSkills:
    def test_links_are_replaced(self, candidate):
        sync_candidate_skills(candidate, [{"skill_name": "Python"}, {"skill_name": "Go"}])
        db.session.commit()

        created = sync_candidate_skills(candidate, [
            {"skill_name": "python", "proficiency": 150, "years_of_experience": 80},
            {"skill_name": "SQL", "source_title": "x" * 300},
        ])
        db.session.commit()

        assert created == 2
        links = {link.skill.name: link for link in CandidateSkill.query.filter_by(candidate_id=candidate.user_id)}
        assert set(links) == {"Python", "SQL"}
        assert links["Python"].proficiency == 100
        assert links["Python"].years_of_experience == 50
        assert links["SQL"].proficiency == 60
        assert links["SQL"].skill_source == "manual"
        assert len(links["SQL"].source_title) == 200
        # catalogue entries are kept even when unlinked
        assert Skill.query.filter_by(name="Go").count() == 1

    def test_empty_list_clears_links(self, candidate):
        sync_candidate_skills(candidate, [{"skill_name": "Python"}])
        db.session.commit()

        assert sync_candidate_skills(candidate, []) == 0
        db.session.commit()
        assert CandidateSkill.query.count() == 0


class TestTextExtraction:
    def test_whole_word_matching(self):
        found = extract_skills_from_text("Built APIs in Python and Django, deployed with Docker on AWS.")
        assert {"Python", "Django", "Docker", "AWS"} <= set(found)
        assert "R" not in found
        assert "Go" not in found

    def test_empty_text(self):
        assert extract_skills_from_text("") == []
