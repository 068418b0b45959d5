import logging
import json
import re
import PyPDF2
import docx
from datetime import date
from io import BytesIO
from flask import current_app
from openai import OpenAI

from exceptions import ExtractionError, ValidationFailed
from models import EmploymentType, enum_values
from skills import dedupe_skills
from utils import (
    clean_str, duration_in_years, extract_skills_from_text, get_file_extension,
    log_processing_time, months_between, parse_date, to_number,
)

logger = logging.getLogger(__name__)

CV_EXTENSIONS = {'.pdf', '.docx'}

# Proficiency assigned to skills found in each CV section
SOURCE_PROFICIENCY = {
    'work_experience': 70,
    'education': 60,
    'project': 65,
    'certificate': 75,
    'award': 80,
}

SYSTEM_PROMPT = """You are an expert CV/Resume parser. Extract the candidate's information from the CV text and return ONLY a JSON object with this structure:

{
  "basic_info": {
    "first_name": "", "last_name": "", "additional_name": "",
    "title": "Professional headline", "current_position": "", "industry": "",
    "bio": "Short professional summary", "about": "Longer about section",
    "location": "", "phone1": "", "phone2": "",
    "personal_website": "", "github_url": "", "linkedin_url": "", "portfolio_url": "",
    "years_of_experience": 0
  },
  "work_experiences": [
    {"title": "", "company": "", "employment_type": "full_time|part_time|contract|internship|freelance|volunteer",
     "is_current": false, "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD or null",
     "location": "", "description": ""}
  ],
  "educations": [
    {"degree_diploma": "", "university_school": "", "field_of_study": "",
     "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD or null", "grade": ""}
  ],
  "certificates": [
    {"name": "", "issuing_authority": "", "issue_date": "YYYY-MM-DD", "expiry_date": null,
     "credential_id": "", "credential_url": "", "description": ""}
  ],
  "projects": [
    {"name": "", "description": "", "start_date": "YYYY-MM-DD", "end_date": null, "is_current": false,
     "role": "", "responsibilities": [], "technologies": [], "tools": [], "methodologies": [],
     "url": "", "repository_url": "", "skills_gained": []}
  ],
  "skills": [{"name": "", "category": "", "proficiency": 60}],
  "awards": [{"title": "", "offered_by": "", "associated_with": "", "date": "YYYY-MM-DD", "description": ""}],
  "volunteering": [
    {"role": "", "institution": "", "cause": "", "start_date": "YYYY-MM-DD", "end_date": null,
     "is_current": false, "description": ""}
  ],
  "accomplishments": [{"title": "", "description": "", "work_experience_index": 0}]
}

Use null or empty arrays when information is not available. Dates must use YYYY-MM-DD; use the first day of the month when only month and year are known. Proficiency is a number from 0 to 100."""


def extract_text_from_pdf(data: bytes) -> str:
    """Extract text from PDF bytes"""
    try:
        pdf_reader = PyPDF2.PdfReader(BytesIO(data))
        text = ""

        for page in pdf_reader.pages:
            text += (page.extract_text() or "") + "\n"

        return text.strip()

    except Exception as e:
        logger.error(f"Error extracting text from PDF: {e}")
        return ""

def extract_text_from_docx(data: bytes) -> str:
    """Extract text from DOCX bytes"""
    try:
        document = docx.Document(BytesIO(data))
        return "\n".join(paragraph.text for paragraph in document.paragraphs).strip()

    except Exception as e:
        logger.error(f"Error extracting text from DOCX: {e}")
        return ""

def extract_text_from_txt(data: bytes) -> str:
    try:
        return data.decode('utf-8').strip()
    except UnicodeDecodeError:
        return data.decode('latin-1').strip()

def extract_text(data: bytes, filename: str) -> str:
    """Extract text from an uploaded document based on its extension"""
    extension = get_file_extension(filename)

    if extension == '.pdf':
        return extract_text_from_pdf(data)
    elif extension == '.docx':
        return extract_text_from_docx(data)
    elif extension == '.txt':
        return extract_text_from_txt(data)
    else:
        raise ValidationFailed(f"Unsupported file format: {extension or 'unknown'}")


def _openai_client():
    client = current_app.extensions.get('openai_client')
    if client is None:
        api_key = current_app.config.get('OPENAI_API_KEY')
        if not api_key:
            raise ExtractionError('AI extraction is not configured', status_code=500)
        client = OpenAI(api_key=api_key)
        current_app.extensions['openai_client'] = client
    return client

def call_llm(cv_text: str) -> str:
    """Send CV text to the model and return the raw response text"""
    user_prompt = f"Please parse this CV and extract the structured information:\n\n{cv_text}"
    try:
        response = _openai_client().chat.completions.create(
            model=current_app.config['OPENAI_MODEL'],
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt}
            ],
            response_format={"type": "json_object"},
        )
    except ExtractionError:
        raise
    except Exception as e:
        logger.error(f"Error parsing CV with AI: {e}")
        raise ExtractionError('Failed to process CV')

    return response.choices[0].message.content or ''

def parse_llm_json(text: str) -> dict:
    """Decode the model output, tolerating markdown code fences"""
    cleaned = re.sub(r'```(?:json)?\n?', '', text or '').strip()
    try:
        result = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse AI response: {text[:200] if text else ''}")
        raise ExtractionError('Invalid AI response format')
    if not isinstance(result, dict):
        raise ExtractionError('Invalid AI response format')
    return result


def _list(value):
    return value if isinstance(value, list) else []

def _dicts(value):
    return [item for item in _list(value) if isinstance(item, dict)]

def _strings(value):
    return [str(item).strip() for item in _list(value) if item and str(item).strip()]

def calculate_years_of_experience(work_experiences, today=None) -> int:
    today = today or date.today()
    total_months = 0
    for experience in work_experiences:
        start = parse_date(experience.get('start_date'))
        end = None if experience.get('is_current') else parse_date(experience.get('end_date'))
        end = end or today
        total_months += months_between(start, end)
    return round(total_months / 12)

def _skill(name, source, proficiency, years, source_type=None, **source_fields):
    entry = {
        'skill_name': name,
        'skill_source': source,
        'proficiency': proficiency,
        'years_of_experience': years,
        'source_type': source_type or source,
    }
    entry.update(source_fields)
    return entry

def build_candidate_skills(raw: dict, today=None) -> list:
    """Collect skills mentioned in each CV section with their origin"""
    skills = []

    for exp in _dicts(raw.get('work_experiences')):
        end = None if exp.get('is_current') else exp.get('end_date')
        years = duration_in_years(exp.get('start_date'), end, today)
        names = (extract_skills_from_text(exp.get('title') or '')
                 + extract_skills_from_text(exp.get('description') or '')
                 + extract_skills_from_text(exp.get('company') or ''))
        for name in names:
            skills.append(_skill(name, 'work_experience', SOURCE_PROFICIENCY['work_experience'], years,
                                 source_title=exp.get('title'), source_company=exp.get('company')))

    for edu in _dicts(raw.get('educations')):
        years = duration_in_years(edu.get('start_date'), edu.get('end_date'), today)
        names = (extract_skills_from_text(edu.get('field_of_study') or '')
                 + extract_skills_from_text(edu.get('degree_diploma') or ''))
        for name in names:
            skills.append(_skill(name, 'education', SOURCE_PROFICIENCY['education'], years,
                                 source_title=edu.get('degree_diploma'),
                                 source_institution=edu.get('university_school')))

    for project in _dicts(raw.get('projects')):
        years = duration_in_years(project.get('start_date'), project.get('end_date'), today)
        names = (_strings(project.get('technologies'))
                 + _strings(project.get('tools'))
                 + _strings(project.get('skills_gained'))
                 + extract_skills_from_text(project.get('description') or ''))
        for name in names:
            skills.append(_skill(name, 'project', SOURCE_PROFICIENCY['project'], years,
                                 source_title=project.get('name')))

    for cert in _dicts(raw.get('certificates')):
        years = duration_in_years(cert.get('issue_date'), None, today)
        names = (extract_skills_from_text(cert.get('name') or '')
                 + extract_skills_from_text(cert.get('description') or ''))
        for name in names:
            skills.append(_skill(name, 'certificate', SOURCE_PROFICIENCY['certificate'], years,
                                 source_title=cert.get('name'),
                                 source_authority=cert.get('issuing_authority')))

    for award in _dicts(raw.get('awards')):
        names = (extract_skills_from_text(award.get('title') or '')
                 + extract_skills_from_text(award.get('description') or ''))
        for name in names:
            skills.append(_skill(name, 'award', SOURCE_PROFICIENCY['award'], 0,
                                 source_title=award.get('title'),
                                 source_authority=award.get('offered_by')))

    # Skills section of the CV
    for item in _list(raw.get('skills')):
        if isinstance(item, dict):
            name = item.get('name') or ''
            proficiency = to_number(item.get('proficiency')) or 60
        else:
            name = str(item or '')
            proficiency = 60
        skills.append(_skill(name, 'cv_skills_section', proficiency, 0, source_type='direct',
                             source_title='Skills Section'))

    skills = [
        skill for skill in skills
        if skill['skill_name'] and len(skill['skill_name'].strip()) > 1 and len(skill['skill_name']) <= 100
    ]
    return dedupe_skills(skills)

def normalize_extraction(raw: dict, today=None) -> dict:
    """Map the model output onto the create-profile payload"""
    basic = raw.get('basic_info') if isinstance(raw.get('basic_info'), dict) else {}
    work_experiences = _dicts(raw.get('work_experiences'))

    data = {}
    for field in ('first_name', 'last_name', 'additional_name', 'title', 'current_position',
                  'industry', 'bio', 'location', 'phone1', 'phone2', 'linkedin_url',
                  'github_url', 'portfolio_url', 'personal_website'):
        data[field] = clean_str(basic.get(field)) or ''
    data['about'] = clean_str(basic.get('about')) or data['bio']
    data['years_of_experience'] = (to_number(basic.get('years_of_experience'))
                                   or calculate_years_of_experience(work_experiences, today))

    employment_types = enum_values(EmploymentType)
    data['work_experience'] = [{
        'title': exp.get('title'),
        'company': exp.get('company'),
        'employment_type': exp.get('employment_type') if exp.get('employment_type') in employment_types else 'full_time',
        'is_current': bool(exp.get('is_current')),
        'start_date': exp.get('start_date'),
        'end_date': None if exp.get('is_current') else exp.get('end_date'),
        'location': exp.get('location'),
        'description': exp.get('description'),
    } for exp in work_experiences]

    data['education'] = [{
        'degree_diploma': edu.get('degree_diploma'),
        'university_school': edu.get('university_school'),
        'field_of_study': edu.get('field_of_study'),
        'start_date': edu.get('start_date'),
        'end_date': edu.get('end_date'),
        'grade': edu.get('grade'),
    } for edu in _dicts(raw.get('educations'))]

    data['certificates'] = [{
        'name': cert.get('name'),
        'issuing_authority': cert.get('issuing_authority'),
        'issue_date': cert.get('issue_date'),
        'expiry_date': cert.get('expiry_date'),
        'credential_id': cert.get('credential_id'),
        'credential_url': cert.get('credential_url'),
        'description': cert.get('description'),
    } for cert in _dicts(raw.get('certificates'))]

    data['projects'] = [{
        'name': project.get('name'),
        'description': project.get('description'),
        'start_date': project.get('start_date'),
        'end_date': project.get('end_date'),
        'is_current': bool(project.get('is_current')),
        'role': project.get('role'),
        'responsibilities': _strings(project.get('responsibilities')),
        'technologies': _strings(project.get('technologies')),
        'tools': _strings(project.get('tools')),
        'methodologies': _strings(project.get('methodologies')),
        'skills_gained': _strings(project.get('skills_gained')),
        'url': project.get('url'),
        'repository_url': project.get('repository_url'),
    } for project in _dicts(raw.get('projects'))]

    data['awards'] = [{
        'title': award.get('title'),
        'offered_by': award.get('offered_by'),
        'associated_with': award.get('associated_with'),
        'date': award.get('date'),
        'description': award.get('description'),
    } for award in _dicts(raw.get('awards'))]

    data['volunteering'] = [{
        'role': vol.get('role'),
        'institution': vol.get('institution'),
        'cause': vol.get('cause'),
        'start_date': vol.get('start_date'),
        'end_date': vol.get('end_date'),
        'is_current': bool(vol.get('is_current')),
        'description': vol.get('description'),
    } for vol in _dicts(raw.get('volunteering'))]

    data['accomplishments'] = [{
        'title': clean_str(acc.get('title')),
        'description': clean_str(acc.get('description')),
        'temp_work_experience_index': acc.get('work_experience_index'),
    } for acc in _dicts(raw.get('accomplishments'))
        if clean_str(acc.get('title')) and clean_str(acc.get('description'))]

    data['candidate_skills'] = build_candidate_skills(raw, today)
    data['skills'] = [skill['skill_name'] for skill in data['candidate_skills']]
    return data

def validate_extraction(raw: dict) -> dict:
    basic = raw.get('basic_info') if isinstance(raw.get('basic_info'), dict) else {}
    errors = []
    if not clean_str(basic.get('first_name')):
        errors.append('First name not found')
    if not clean_str(basic.get('last_name')):
        errors.append('Last name not found')
    if not _dicts(raw.get('work_experiences')) and not _dicts(raw.get('educations')):
        errors.append('No work experience or education information found')

    return {
        'is_valid': bool(clean_str(basic.get('first_name')) and clean_str(basic.get('last_name'))),
        'errors': errors,
    }

@log_processing_time
def process_cv(file):
    """Extract profile fields from an uploaded CV (PDF or DOCX)"""
    filename = file.filename or ''
    extension = get_file_extension(filename)
    if extension not in CV_EXTENSIONS:
        raise ValidationFailed('Only PDF and DOCX files are allowed')

    data = file.read()
    if len(data) > current_app.config['MAX_RESUME_SIZE']:
        raise ValidationFailed('File size must be less than 10MB')

    cv_text = extract_text(data, filename)
    if not cv_text:
        raise ValidationFailed('No text could be extracted from the file')

    logger.info(f"Processing CV {filename} ({len(data)} bytes, {len(cv_text)} characters)")
    raw = parse_llm_json(call_llm(cv_text))
    extracted = normalize_extraction(raw)
    validation = validate_extraction(raw)

    logger.info(f"CV processed: {len(extracted['candidate_skills'])} skills, "
                f"{len(extracted['work_experience'])} work experiences")
    return {
        'extractedData': extracted,
        'validation': validation,
        'fileInfo': {
            'name': filename,
            'size': len(data),
            'type': file.mimetype,
        },
    }
