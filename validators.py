"""
Payload validation for the profile and job endpoints.

Validators collect every problem instead of stopping at the first one and
return them as a list of {'field', 'message'} dicts, which the routes send
back under `details` with a 400 response.
"""
import re
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from models import (
    EmploymentType, ExperienceLevel, JobStatus, JobType, ProficiencyLevel,
    RemoteType, RequiredLevel, SalaryType, enum_values,
)
from utils import clean_str, parse_date, to_number, validate_email, validate_url

MAX_SALARY = 10_000_000
MAX_JOB_SKILLS = 20

URL_FIELDS = ('personal_website', 'portfolio_url', 'github_url', 'linkedin_url')
TEXT_FIELDS = (
    'additional_name', 'title', 'current_position', 'industry', 'bio', 'about',
    'professional_summary', 'pronouns', 'country', 'city', 'location', 'address',
    'phone1', 'phone2',
)
FLAG_FIELDS = ('open_to_relocation', 'willing_to_travel', 'visa_assistance_needed', 'security_clearance')
BASIC_CHOICES = {
    'gender': ('male', 'female', 'other', 'prefer_not_to_say'),
    'experience_level': tuple(enum_values(ExperienceLevel)),
    'availability_status': ('available', 'open_to_opportunities', 'not_looking'),
    'remote_preference': ('remote_only', 'hybrid', 'onsite', 'flexible'),
    'work_availability': tuple(enum_values(EmploymentType)),
    'salary_visibility': ('confidential', 'range_only', 'exact', 'negotiable'),
    'work_authorization': ('citizen', 'permanent_resident', 'work_visa', 'requires_sponsorship', 'other'),
}
BASIC_NUMBERS = (
    ('years_of_experience', 0, 50),
    ('notice_period', 0, 365),
    ('expected_salary_min', 0, MAX_SALARY),
    ('expected_salary_max', 0, MAX_SALARY),
)


def error(field: str, message: str) -> Dict[str, str]:
    return {'field': field, 'message': message}

def _label(field: str) -> str:
    return field.replace('_', ' ').capitalize()


# Field helpers. Each appends to `errors` and returns the cleaned value.

def _text(errors, data, field, max_length, min_length=0, required=False):
    value = clean_str(data.get(field))
    if value is None:
        if required:
            errors.append(error(field, f"{_label(field)} is required"))
        return None
    if len(value) < min_length:
        errors.append(error(field, f"{_label(field)} must be at least {min_length} characters"))
    elif len(value) > max_length:
        errors.append(error(field, f"{_label(field)} must be at most {max_length} characters"))
    return value

def _choice(errors, data, field, enum_class, default=None, required=False):
    value = data.get(field)
    if value in (None, ''):
        if required:
            errors.append(error(field, f"{_label(field)} is required"))
        return default
    try:
        return enum_class(value)
    except ValueError:
        allowed = ', '.join(enum_values(enum_class))
        errors.append(error(field, f"{_label(field)} must be one of: {allowed}"))
        return None

def _number(errors, data, field, low, high, default=None, integer=True):
    raw = data.get(field)
    if raw in (None, ''):
        return default
    number = to_number(raw)
    if number is None or (integer and int(number) != number):
        kind = 'a whole number' if integer else 'a number'
        errors.append(error(field, f"{_label(field)} must be {kind}"))
        return None
    if number < low or number > high:
        errors.append(error(field, f"{_label(field)} must be between {low} and {high}"))
        return None
    return int(number) if integer else float(number)


# Work experience

def validate_experience(data: Dict, prefix: str = '') -> List[Dict[str, str]]:
    """Validate one work experience entry"""
    errors = []
    if not isinstance(data, dict):
        return [error(prefix.rstrip('.') or 'experience', 'Experience must be an object')]

    for field in ('title', 'company', 'start_date'):
        if not clean_str(data.get(field)):
            errors.append(error(f"{prefix}{field}", f"{_label(field)} is required"))

    employment_type = data.get('employment_type')
    if employment_type and employment_type not in enum_values(EmploymentType):
        errors.append(error(f"{prefix}employment_type", "Invalid employment type"))

    start = parse_date(data.get('start_date'))
    if data.get('start_date') and not start:
        errors.append(error(f"{prefix}start_date", "Invalid start date"))

    if not data.get('is_current') and data.get('end_date'):
        end = parse_date(data.get('end_date'))
        if not end:
            errors.append(error(f"{prefix}end_date", "Invalid end date"))
        elif start and end < start:
            errors.append(error(f"{prefix}end_date", "End date cannot be before start date"))

    for i, accomplishment in enumerate(data.get('accomplishments') or []):
        errors.extend(validate_accomplishment(accomplishment, f"{prefix}accomplishments[{i}]."))

    return errors

def validate_accomplishment(data: Dict, prefix: str = '') -> List[Dict[str, str]]:
    if not isinstance(data, dict) or not clean_str(data.get('title')):
        return [error(f"{prefix}title", "Accomplishment title is required")]
    return []

def validate_experience_list(experiences, accomplishments=None) -> List[Dict[str, str]]:
    """Validate the payload of a full experience replacement"""
    if not isinstance(experiences, list):
        return [error('experiences', 'Experiences must be a list')]

    errors = []
    for i, experience in enumerate(experiences):
        errors.extend(validate_experience(experience, f"experiences[{i}]."))
    for i, accomplishment in enumerate(accomplishments or []):
        errors.extend(validate_accomplishment(accomplishment, f"accomplishments[{i}]."))
    return errors


# Basic info

def validate_basic_info(data: Dict, today: Optional[date] = None) -> Tuple[Dict, List[Dict[str, str]]]:
    """Validate a partial basic-info update.

    Only keys present in `data` are checked and returned, so callers can
    apply the cleaned dict directly onto the candidate.
    """
    today = today or date.today()
    errors = []
    cleaned = {}

    for field in ('first_name', 'last_name'):
        if field in data:
            value = clean_str(data.get(field))
            if not value:
                errors.append(error(field, f"{_label(field)} cannot be empty"))
            elif len(value) > 100:
                errors.append(error(field, f"{_label(field)} must be at most 100 characters"))
            else:
                cleaned[field] = value

    for field in TEXT_FIELDS:
        if field in data:
            cleaned[field] = clean_str(data.get(field))

    for field in URL_FIELDS:
        if field in data:
            url = clean_str(data.get(field))
            if url and not validate_url(url):
                errors.append(error(field, f"Invalid {field.replace('_', ' ')} URL"))
            else:
                cleaned[field] = url

    for field, allowed in BASIC_CHOICES.items():
        if field in data:
            value = data.get(field) or None
            if value is not None and value not in allowed:
                errors.append(error(field, f"Invalid {field.replace('_', ' ')}"))
            else:
                cleaned[field] = value

    for field in FLAG_FIELDS:
        if field in data:
            cleaned[field] = bool(data.get(field))

    if 'date_of_birth' in data:
        birth_date = _optional_date(errors, data, 'date_of_birth')
        if birth_date and birth_date > today:
            errors.append(error('date_of_birth', 'Date of birth cannot be in the future'))
        elif birth_date or data.get('date_of_birth') in (None, ''):
            cleaned['date_of_birth'] = birth_date

    if 'availability_date' in data:
        available_from = _optional_date(errors, data, 'availability_date')
        if available_from or data.get('availability_date') in (None, ''):
            cleaned['availability_date'] = available_from

    for field, low, high in BASIC_NUMBERS:
        if field in data:
            number = _number(errors, data, field, low, high)
            if number is not None or data.get(field) in (None, ''):
                cleaned[field] = number

    salary_min = cleaned.get('expected_salary_min')
    salary_max = cleaned.get('expected_salary_max')
    if salary_min and salary_max and salary_min > salary_max:
        errors.append(error('expected_salary_min', 'Minimum salary cannot be greater than maximum salary'))

    if 'currency' in data:
        currency = (clean_str(data.get('currency')) or 'USD').upper()
        if not re.fullmatch(r'[A-Z]{3}', currency):
            errors.append(error('currency', 'Currency must be a 3-letter code'))
        else:
            cleaned['currency'] = currency

    return cleaned, errors

def _optional_date(errors, data, field):
    value = data.get(field)
    if value in (None, ''):
        return None
    parsed = parse_date(value)
    if not parsed:
        errors.append(error(field, f"Invalid {field.replace('_', ' ')}"))
    return parsed


# Jobs

def validate_create_job(data: Dict, today: Optional[date] = None) -> Tuple[Dict, List[Dict[str, str]]]:
    return _validate_job(data, today or date.today(), creating=True)

def validate_update_job(data: Dict, today: Optional[date] = None) -> Tuple[Dict, List[Dict[str, str]]]:
    return _validate_job(data, today or date.today(), creating=False)

def _validate_job(data, today, creating):
    errors = []
    if not isinstance(data, dict):
        return {}, [error('body', 'Request body must be a JSON object')]

    cleaned = {
        'title': _text(errors, data, 'title', 200, 5 if creating else 1, required=True),
        'description': _text(errors, data, 'description', 10000, 50 if creating else 1, required=True),
        'requirements': _text(errors, data, 'requirements', 5000),
        'responsibilities': _text(errors, data, 'responsibilities', 5000),
        'benefits': _text(errors, data, 'benefits', 3000 if creating else 5000),
        'location': _text(errors, data, 'location', 200),
        'job_type': _choice(errors, data, 'job_type', JobType, required=True),
        'experience_level': _choice(errors, data, 'experience_level', ExperienceLevel, required=True),
        'remote_type': _choice(errors, data, 'remote_type', RemoteType, required=True),
        'salary_type': _choice(errors, data, 'salary_type', SalaryType, default=SalaryType.ANNUAL),
        'status': _choice(errors, data, 'status', JobStatus, default=JobStatus.DRAFT),
        'salary_min': _number(errors, data, 'salary_min', 0, MAX_SALARY),
        'salary_max': _number(errors, data, 'salary_max', 0, MAX_SALARY),
        'priority_level': _number(errors, data, 'priority_level', 1, 5, default=1),
        'equity_offered': bool(data.get('equity_offered', False)),
        'ai_skills_required': bool(data.get('ai_skills_required', False)),
    }

    if cleaned['salary_min'] is not None and cleaned['salary_max'] is not None \
            and cleaned['salary_min'] > cleaned['salary_max']:
        errors.append(error('salary_max', 'Maximum salary must be greater than or equal to minimum salary'))

    currency = (clean_str(data.get('currency')) or 'USD').upper()
    if not re.fullmatch(r'[A-Z]{3}', currency):
        errors.append(error('currency', 'Currency must be a 3-letter code'))
    cleaned['currency'] = currency

    cleaned['application_deadline'] = _deadline(errors, data.get('application_deadline'), today, creating)
    cleaned.update(_custom_company(errors, data, creating))

    skills = data.get('skills')
    if skills is None and not creating:
        cleaned['skills'] = None
    else:
        cleaned['skills'] = _job_skills(errors, skills, required=creating)

    return cleaned, errors

def _deadline(errors, value, today, must_be_future):
    if not value:
        return None
    try:
        deadline = datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        errors.append(error('application_deadline', 'Application deadline must be a date in YYYY-MM-DD format'))
        return None
    # The deadline runs until the end of that day
    if must_be_future and deadline < today:
        errors.append(error('application_deadline', 'Application deadline must be in the future'))
    return deadline

def _custom_company(errors, data, creating):
    name = _text(errors, data, 'custom_company_name', 200, 2 if creating else 1, required=True)

    email = clean_str(data.get('custom_company_email'))
    if not email:
        if creating:
            errors.append(error('custom_company_email', 'Company email is required'))
    elif not validate_email(email):
        errors.append(error('custom_company_email', 'Invalid company email'))

    phone = clean_str(data.get('custom_company_phone'))
    if not phone:
        if creating:
            errors.append(error('custom_company_phone', 'Company phone is required'))
    elif not 10 <= len(phone) <= 20:
        errors.append(error('custom_company_phone', 'Company phone must be between 10 and 20 characters'))

    website = clean_str(data.get('custom_company_website'))
    if website and not validate_url(website):
        errors.append(error('custom_company_website', 'Invalid company website URL'))

    return {
        'custom_company_name': name,
        'custom_company_email': email,
        'custom_company_phone': phone,
        'custom_company_website': website,
    }

def _job_skills(errors, skills, required):
    if not isinstance(skills, list):
        errors.append(error('skills', 'Skills must be a list'))
        return []
    if required and not skills:
        errors.append(error('skills', 'At least one skill is required'))
        return []
    if len(skills) > MAX_JOB_SKILLS:
        errors.append(error('skills', f'Maximum {MAX_JOB_SKILLS} skills allowed'))
        return []

    cleaned = []
    for i, item in enumerate(skills):
        prefix = f"skills[{i}]."
        if not isinstance(item, dict):
            errors.append(error(f"skills[{i}]", 'Skill must be an object'))
            continue
        item_errors = []
        name = clean_str(item.get('skill_name'))
        if not name:
            item_errors.append(error(f"{prefix}skill_name", 'Skill name is required'))
        elif len(name) > 100:
            item_errors.append(error(f"{prefix}skill_name", 'Skill name must be at most 100 characters'))

        required_level = _choice(item_errors, item, 'required_level', RequiredLevel, default=RequiredLevel.REQUIRED)
        proficiency_level = _choice(item_errors, item, 'proficiency_level', ProficiencyLevel,
                                    default=ProficiencyLevel.INTERMEDIATE)
        years_required = _number(item_errors, item, 'years_required', 0, 50, default=0)
        weight = _number(item_errors, item, 'weight', 0.1, 10, default=1.0, integer=False)

        for problem in item_errors:
            if not problem['field'].startswith(prefix):
                problem['field'] = prefix + problem['field']
        errors.extend(item_errors)

        if not item_errors:
            cleaned.append({
                'skill_name': name,
                'required_level': required_level,
                'proficiency_level': proficiency_level,
                'years_required': years_required,
                'weight': weight,
            })
    return cleaned
