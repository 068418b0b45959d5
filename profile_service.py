"""
Candidate profile operations.

A profile is the candidate row plus its sections: work experience (with
accomplishments), education, certificates, projects, awards, volunteering,
skills and uploaded CVs. `upsert_profile` writes the whole aggregate in one
transaction; the section functions replace or edit one part of it.
"""
import logging
from datetime import date, datetime

from database import db
from exceptions import NotFound, ValidationFailed
from models import (
    Accomplishment, Award, Candidate, CandidateSkill, Certificate, Education,
    EmploymentType, Project, User, Volunteering, WorkExperience,
)
from resume_service import ordered_resumes, primary_resume
from skills import sync_candidate_skills
from utils import clean_str, months_between, parse_date, to_number, truncate
from validators import error, validate_basic_info, validate_experience, validate_experience_list

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ('years_of_experience', 'expected_salary_min', 'expected_salary_max')
ACCOMPLISHMENT_TITLE_LENGTH = 300
COMPLETION_AFTER_SAVE = 75
COMPLETION_WITH_SKILLS = 90
COMPLETION_WITHOUT_SKILLS = 85

# Column groups per section model; `required` names the field without which
# an entry is skipped.
SECTION_FIELDS = {
    Education: {
        'text': ('degree_diploma', 'university_school', 'field_of_study', 'grade',
                 'activities_societies', 'media_url'),
        'dates': ('start_date', 'end_date'),
        'lists': ('skill_ids',),
        'required': ('degree_diploma', 'university_school'),
    },
    Certificate: {
        'text': ('name', 'issuing_authority', 'credential_id', 'credential_url', 'description', 'media_url'),
        'dates': ('issue_date', 'expiry_date'),
        'required': ('name',),
    },
    Project: {
        'text': ('name', 'description', 'role', 'url', 'repository_url'),
        'dates': ('start_date', 'end_date'),
        'flags': ('is_current', 'is_confidential'),
        'lists': ('responsibilities', 'technologies', 'tools', 'methodologies', 'media_urls', 'skills_gained'),
        'required': ('name',),
    },
    Award: {
        'text': ('title', 'offered_by', 'associated_with', 'description', 'media_url'),
        'dates': ('date',),
        'lists': ('skill_ids',),
        'required': ('title',),
    },
    Volunteering: {
        'text': ('role', 'institution', 'cause', 'description', 'media_url'),
        'dates': ('start_date', 'end_date'),
        'flags': ('is_current',),
        'required': ('role',),
    },
}

PAYLOAD_SECTIONS = (
    ('education', Education),
    ('certificates', Certificate),
    ('projects', Project),
    ('awards', Award),
    ('volunteering', Volunteering),
)
LIST_KEYS = ('work_experience', 'accomplishments', 'skills', 'candidate_skills') + \
    tuple(key for key, _ in PAYLOAD_SECTIONS)


def get_candidate(user_id):
    candidate = db.session.get(Candidate, user_id)
    if not candidate:
        raise NotFound('Candidate profile not found')
    return candidate


# Payload to column mapping

def _section_fields(model, item):
    columns = SECTION_FIELDS[model]
    fields = {}
    for name in columns.get('text', ()):
        fields[name] = clean_str(item.get(name))
    for name in columns.get('dates', ()):
        fields[name] = parse_date(item.get(name))
    for name in columns.get('flags', ()):
        fields[name] = bool(item.get(name))
    for name in columns.get('lists', ()):
        value = item.get(name)
        fields[name] = value if isinstance(value, list) else []
    if model is Project:
        fields['can_share_details'] = bool(item.get('can_share_details', True))
    return fields

def _build_section(model, item, candidate):
    if not isinstance(item, dict):
        return None
    fields = _section_fields(model, item)
    if not any(fields.get(name) for name in SECTION_FIELDS[model]['required']):
        logger.debug(f"Skipping {model.__name__} entry without {SECTION_FIELDS[model]['required']}")
        return None
    return model(candidate=candidate, **fields)

def _experience_fields(item):
    is_current = bool(item.get('is_current'))
    employment_type = item.get('employment_type') or EmploymentType.FULL_TIME.value
    skill_ids = item.get('skill_ids')
    return {
        'title': clean_str(item.get('title')),
        'company': clean_str(item.get('company')),
        'employment_type': EmploymentType(employment_type),
        'is_current': is_current,
        'start_date': parse_date(item.get('start_date')),
        'end_date': None if is_current else parse_date(item.get('end_date')),
        'location': clean_str(item.get('location')),
        'description': clean_str(item.get('description')),
        'job_source': clean_str(item.get('job_source')),
        'skill_ids': skill_ids if isinstance(skill_ids, list) else [],
        'media_url': clean_str(item.get('media_url')),
    }

def _build_accomplishment(item, candidate, experience=None, require_description=True):
    if not isinstance(item, dict):
        return None
    title = clean_str(item.get('title'))
    description = clean_str(item.get('description'))
    if not title or (require_description and not description):
        return None
    return Accomplishment(
        candidate=candidate,
        work_experience=experience,
        title=truncate(title, ACCOMPLISHMENT_TITLE_LENGTH),
        description=description,
    )

def _add_experiences(candidate, experiences, accomplishments):
    """Insert experiences in payload order and link accomplishments by index"""
    by_index = {}
    for i, item in enumerate(experiences):
        experience = WorkExperience(candidate=candidate, **_experience_fields(item))
        db.session.add(experience)
        by_index[i] = experience
        for nested in item.get('accomplishments') or []:
            accomplishment = _build_accomplishment(nested, candidate, experience, require_description=False)
            if accomplishment:
                db.session.add(accomplishment)

    for item in accomplishments or []:
        if not isinstance(item, dict):
            continue
        index = item.get('temp_work_experience_index', item.get('work_experience_index'))
        experience = by_index.get(index) if isinstance(index, int) else None
        accomplishment = _build_accomplishment(item, candidate, experience)
        if accomplishment:
            db.session.add(accomplishment)
    return by_index

def _apply_basic_fields(candidate, data):
    for field in Candidate.BASIC_FIELDS:
        if field not in data:
            continue
        value = data.get(field)
        if field in NUMERIC_FIELDS:
            number = to_number(value)
            value = int(number) if number is not None else None
        else:
            value = clean_str(value)
        setattr(candidate, field, value)
    candidate.currency = (candidate.currency or 'USD').upper()

def _clear_sections(candidate):
    candidate.accomplishments.clear()
    candidate.work_experiences.clear()
    candidate.educations.clear()
    candidate.certificates.clear()
    candidate.projects.clear()
    candidate.awards.clear()
    candidate.volunteering.clear()
    db.session.flush()

def _skill_entries(profile_data):
    entries = profile_data.get('candidate_skills')
    if isinstance(entries, list) and entries:
        return entries
    entries = []
    for skill in profile_data.get('skills') or []:
        if isinstance(skill, str):
            entries.append({'skill_name': skill})
        elif isinstance(skill, dict):
            entries.append(skill)
    return entries


# Whole profile

def upsert_profile(user_id, profile_data):
    """Create or fully replace a candidate profile.

    Returns a dict with the saved candidate, whether it was an update, the
    number of skills linked and the candidate's uploaded CVs.
    """
    if not isinstance(profile_data, dict):
        raise ValidationFailed('Profile data is required')

    missing = [error(field, f"{field.replace('_', ' ').capitalize()} is required")
               for field in ('first_name', 'last_name') if not clean_str(profile_data.get(field))]
    if missing:
        raise ValidationFailed('First name and last name are required', details=missing)

    shape_errors = [
        error(key, f"{key.replace('_', ' ').capitalize()} must be a list")
        for key in LIST_KEYS
        if profile_data.get(key) not in (None, '') and not isinstance(profile_data.get(key), list)
    ]
    if shape_errors:
        raise ValidationFailed('Validation failed', details=shape_errors)

    experiences = profile_data.get('work_experience') or []
    experience_errors = []
    for i, item in enumerate(experiences):
        experience_errors.extend(validate_experience(item, f"work_experience[{i}]."))
    if experience_errors:
        raise ValidationFailed('Validation failed', details=experience_errors)

    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')

    candidate = user.candidate
    is_update = candidate is not None

    try:
        if candidate is None:
            candidate = Candidate(user=user)
            db.session.add(candidate)

        _apply_basic_fields(candidate, profile_data)
        candidate.profile_completion_percentage = COMPLETION_AFTER_SAVE
        primary = primary_resume(user_id)
        if primary:
            candidate.resume_url = primary.resume_url

        if is_update:
            _clear_sections(candidate)

        _add_experiences(candidate, experiences, profile_data.get('accomplishments'))
        for key, model in PAYLOAD_SECTIONS:
            for item in profile_data.get(key) or []:
                row = _build_section(model, item, candidate)
                if row is not None:
                    db.session.add(row)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Profile {'updated' if is_update else 'created'} for candidate {user_id}")

    skills_created = 0
    entries = _skill_entries(profile_data)
    if entries:
        try:
            skills_created = sync_candidate_skills(candidate, entries)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Skill processing failed for candidate {user_id}: {e}")
            skills_created = 0

    candidate = db.session.get(Candidate, user_id)
    candidate.profile_completion_percentage = (
        COMPLETION_WITH_SKILLS if skills_created else COMPLETION_WITHOUT_SKILLS
    )
    db.session.commit()

    return {
        'candidate': candidate.to_dict(),
        'is_update': is_update,
        'skills_created': skills_created,
        'uploaded_cvs': [resume.to_dict() for resume in ordered_resumes(user_id)],
    }


# Section replacement

def list_education(user_id):
    get_candidate(user_id)
    rows = Education.query.filter_by(candidate_id=user_id).order_by(Education.start_date.desc()).all()
    return [row.to_dict() for row in rows]

def replace_education(user_id, items):
    if not isinstance(items, list):
        raise ValidationFailed('Validation failed', details=[error('education', 'Education must be a list')])
    candidate = get_candidate(user_id)
    try:
        candidate.educations.clear()
        db.session.flush()
        for item in items:
            row = _build_section(Education, item, candidate)
            if row is not None:
                db.session.add(row)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return list_education(user_id)

def list_work_experiences(user_id):
    get_candidate(user_id)
    rows = WorkExperience.query.filter_by(candidate_id=user_id) \
        .order_by(WorkExperience.start_date.desc()).all()
    return [row.to_dict(include_accomplishments=True) for row in rows]

def replace_work_experiences(user_id, experiences, accomplishments=None):
    errors = validate_experience_list(experiences, accomplishments)
    if errors:
        raise ValidationFailed('Validation failed', details=errors)
    candidate = get_candidate(user_id)
    try:
        candidate.accomplishments.clear()
        candidate.work_experiences.clear()
        db.session.flush()
        _add_experiences(candidate, experiences, accomplishments)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"Replaced work experience for candidate {user_id}: {len(experiences)} entries")
    return list_work_experiences(user_id)

def list_skills(user_id):
    get_candidate(user_id)
    rows = CandidateSkill.query.filter_by(candidate_id=user_id) \
        .order_by(CandidateSkill.proficiency.desc()).all()
    return [row.to_dict() for row in rows]

def replace_skills(user_id, skills):
    if not isinstance(skills, list):
        raise ValidationFailed('Validation failed', details=[error('skills', 'Skills must be a list')])
    candidate = get_candidate(user_id)
    try:
        sync_candidate_skills(candidate, skills)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return list_skills(user_id)


# Single work experience

def _owned_experience(user_id, experience_id):
    experience = WorkExperience.query.filter_by(id=experience_id, candidate_id=user_id).first()
    if not experience:
        raise NotFound('Experience not found')
    return experience

def get_experience(user_id, experience_id):
    return _owned_experience(user_id, experience_id).to_dict(include_accomplishments=True)

def add_experience(user_id, data):
    errors = validate_experience(data or {})
    if errors:
        raise ValidationFailed('Validation failed', details=errors)
    candidate = get_candidate(user_id)
    try:
        by_index = _add_experiences(candidate, [data], None)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return by_index[0].to_dict(include_accomplishments=True)

def update_experience(user_id, experience_id, data):
    errors = validate_experience(data or {})
    if errors:
        raise ValidationFailed('Validation failed', details=errors)
    experience = _owned_experience(user_id, experience_id)
    try:
        for field, value in _experience_fields(data).items():
            setattr(experience, field, value)
        if 'accomplishments' in data:
            for accomplishment in list(experience.accomplishments):
                db.session.delete(accomplishment)
            for item in data.get('accomplishments') or []:
                accomplishment = _build_accomplishment(item, experience.candidate, experience,
                                                       require_description=False)
                if accomplishment:
                    db.session.add(accomplishment)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(experience)
    return experience.to_dict(include_accomplishments=True)

def delete_experience(user_id, experience_id):
    experience = _owned_experience(user_id, experience_id)
    try:
        db.session.delete(experience)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"Deleted experience {experience_id} of candidate {user_id}")


# Basic info

def get_basic_info(user_id):
    candidate = get_candidate(user_id)
    data = candidate.to_dict()
    data['email'] = candidate.user.email
    data['profile_image_url'] = candidate.user.profile_image_url
    return data

def update_basic_info(user_id, data):
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')
    cleaned, errors = validate_basic_info(data)
    if errors:
        raise ValidationFailed('Validation failed', details=errors)
    if not cleaned:
        raise ValidationFailed('No valid fields to update')

    candidate = get_candidate(user_id)
    for field, value in cleaned.items():
        setattr(candidate, field, value)
    candidate.profile_completion_percentage = calculate_basic_completion(candidate)
    candidate.updated_at = datetime.utcnow()
    db.session.commit()
    logger.info(f"Updated basic info for candidate {user_id}: {sorted(cleaned)}")
    return get_basic_info(user_id)

def calculate_basic_completion(candidate):
    """Share of the five basic-info groups that are filled in, as a percentage"""
    checks = [
        bool(candidate.first_name and candidate.last_name and candidate.title),
        bool(candidate.phone1 or candidate.linkedin_url),
        bool(candidate.location),
        bool(candidate.bio or candidate.professional_summary),
        bool(candidate.years_of_experience and candidate.experience_level),
    ]
    return round(sum(checks) / len(checks) * 100)


# Display

def calculate_total_experience(experiences, today=None):
    """Total years across work experiences, one decimal"""
    today = today or date.today()
    total_months = sum(
        months_between(experience.start_date, experience.end_date or today)
        for experience in experiences
    )
    return round(total_months / 12, 1)

def calculate_profile_completion(data):
    """Share of the ten profile sections that are filled in, as a percentage"""
    candidate = data.get('candidate') or {}
    checks = [
        bool(candidate.get('first_name') and candidate.get('last_name') and candidate.get('title')),
        len(candidate.get('about') or '') > 50,
        len(data.get('work_experiences') or []) > 0,
        len(data.get('educations') or []) > 0,
        len(data.get('skills') or []) >= 3,
        len(data.get('projects') or []) > 0,
        len(data.get('certificates') or []) > 0,
        len(data.get('awards') or []) > 0,
        len(data.get('volunteering') or []) > 0,
        len(data.get('cv_documents') or []) > 0,
    ]
    return round(sum(checks) / len(checks) * 100)

def identify_missing_sections(data):
    candidate = data.get('candidate') or {}
    missing = []
    if len(candidate.get('about') or '') < 50:
        missing.append('About')
    if not data.get('work_experiences'):
        missing.append('Work Experience')
    if not data.get('educations'):
        missing.append('Education')
    if len(data.get('skills') or []) < 3:
        missing.append('Skills')
    if not data.get('cv_documents'):
        missing.append('Resume/CV')
    return missing

def build_profile_display(user_id, today=None):
    candidate = get_candidate(user_id)
    experiences = WorkExperience.query.filter_by(candidate_id=user_id) \
        .order_by(WorkExperience.start_date.desc()).all()

    candidate_data = candidate.to_dict()
    candidate_data['email'] = candidate.user.email
    candidate_data['profile_image_url'] = candidate.user.profile_image_url

    data = {
        'candidate': candidate_data,
        'work_experiences': [row.to_dict(include_accomplishments=True) for row in experiences],
        'educations': list_education(user_id),
        'certificates': [row.to_dict() for row in Certificate.query.filter_by(candidate_id=user_id)
                         .order_by(Certificate.issue_date.desc()).all()],
        'projects': [row.to_dict() for row in Project.query.filter_by(candidate_id=user_id)
                     .order_by(Project.start_date.desc()).all()],
        'awards': [row.to_dict() for row in Award.query.filter_by(candidate_id=user_id)
                   .order_by(Award.date.desc()).all()],
        'volunteering': [row.to_dict() for row in Volunteering.query.filter_by(candidate_id=user_id)
                         .order_by(Volunteering.start_date.desc()).all()],
        'skills': list_skills(user_id),
        'cv_documents': [resume.to_dict() for resume in ordered_resumes(user_id)],
    }
    data['profile_stats'] = {
        'completion_percentage': calculate_profile_completion(data),
        'total_experience_years': calculate_total_experience(experiences, today),
        'work_experience_count': len(data['work_experiences']),
        'education_count': len(data['educations']),
        'skills_count': len(data['skills']),
        'projects_count': len(data['projects']),
        'certificates_count': len(data['certificates']),
        'awards_count': len(data['awards']),
        'volunteering_count': len(data['volunteering']),
        'cv_documents_count': len(data['cv_documents']),
        'missing_sections': identify_missing_sections(data),
        'last_updated': candidate.updated_at.isoformat() if candidate.updated_at else None,
    }
    return data
