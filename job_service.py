"""
Job postings created by MIS staff on behalf of employers, and the company
directory they pick from.
"""
import re
import logging
from datetime import datetime

from database import db
from exceptions import Forbidden, NotFound, ValidationFailed
from models import (
    Company, CreatorType, Job, JobSkill, JobStatus, MisUser, User, UserRole,
    VerificationStatus, enum_values,
)
from skills import get_or_create_skills
from utils import clean_str, validate_email, validate_url
from validators import error, validate_create_job, validate_update_job

logger = logging.getLogger(__name__)

JOB_FIELDS = (
    'title', 'description', 'requirements', 'responsibilities', 'benefits',
    'job_type', 'experience_level', 'location', 'remote_type',
    'salary_min', 'salary_max', 'currency', 'salary_type', 'equity_offered',
    'ai_skills_required', 'application_deadline', 'status', 'priority_level',
    'custom_company_name', 'custom_company_email', 'custom_company_phone',
    'custom_company_website',
)
MAX_PAGE_SIZE = 100


def ensure_mis_user(user_id):
    """Return the MIS profile of a user, creating it on first use"""
    user = db.session.get(User, user_id)
    if not user or user.role != UserRole.MIS:
        raise Forbidden('Only MIS users can manage job postings')

    if user.mis_user is None:
        user.mis_user = MisUser(
            access_level='admin',
            job_posting_permissions=True,
            can_post_for_all_companies=True,
            max_active_jobs=100,
        )
        db.session.flush()
        logger.info(f"Created MIS profile for user {user_id}")
    return user.mis_user

def _apply_job_fields(job, cleaned):
    for field in JOB_FIELDS:
        setattr(job, field, cleaned[field])

def _set_job_skills(job, skills):
    job.skills.clear()
    db.session.flush()
    resolved = get_or_create_skills((item['skill_name'] for item in skills), category='other')
    for item in skills:
        job.skills.append(JobSkill(
            skill=resolved[item['skill_name'].lower()],
            required_level=item['required_level'],
            proficiency_level=item['proficiency_level'],
            years_required=item['years_required'],
            weight=item['weight'],
        ))

def _owned_job(job_id, user_id):
    job = db.session.get(Job, job_id)
    if not job:
        raise NotFound('Job not found')
    if job.creator_id != user_id:
        raise Forbidden('You do not have access to this job')
    return job


def create_job(data, creator_id):
    cleaned, errors = validate_create_job(data)
    if errors:
        raise ValidationFailed('Validation failed', details=errors)

    try:
        ensure_mis_user(creator_id)
        job = Job(creator_id=creator_id, creator_type=CreatorType.MIS_USER, company_id=None)
        _apply_job_fields(job, cleaned)
        if job.status == JobStatus.PUBLISHED:
            job.published_at = datetime.utcnow()
        db.session.add(job)
        _set_job_skills(job, cleaned['skills'])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Job {job.id} '{job.title}' created by MIS user {creator_id} ({job.status.value})")
    return job.to_dict()

def get_job(job_id, user_id):
    return _owned_job(job_id, user_id).to_dict()

def list_jobs(creator_id, page=1, limit=10):
    page = max(1, page or 1)
    limit = min(max(1, limit or 10), MAX_PAGE_SIZE)

    pagination = Job.query.filter_by(creator_id=creator_id) \
        .order_by(Job.created_at.desc(), Job.id.desc()) \
        .paginate(page=page, per_page=limit, error_out=False)

    return {
        'jobs': [job.to_dict() for job in pagination.items],
        'total': pagination.total,
        'page': page,
        'total_pages': pagination.pages,
    }

def update_job(job_id, data, user_id):
    cleaned, errors = validate_update_job(data)
    if errors:
        raise ValidationFailed('Validation failed', details=errors)

    job = _owned_job(job_id, user_id)
    was_published = job.status == JobStatus.PUBLISHED
    # status is changed through update_job_status unless sent explicitly
    if data.get('status') in (None, ''):
        cleaned['status'] = job.status
    try:
        _apply_job_fields(job, cleaned)
        if job.status == JobStatus.PUBLISHED and not was_published:
            job.published_at = datetime.utcnow()
        if cleaned['skills'] is not None:
            _set_job_skills(job, cleaned['skills'])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Job {job_id} updated by user {user_id}")
    return job.to_dict()

def update_job_status(job_id, status, user_id):
    try:
        new_status = JobStatus(status)
    except ValueError:
        raise ValidationFailed('Invalid status', details=[
            error('status', f"Status must be one of: {', '.join(enum_values(JobStatus))}")
        ])

    job = Job.query.filter_by(id=job_id, creator_id=user_id).first()
    if not job:
        raise NotFound('Job not found')

    job.status = new_status
    if new_status == JobStatus.PUBLISHED and not job.published_at:
        job.published_at = datetime.utcnow()
    db.session.commit()
    logger.info(f"Job {job_id} status changed to {new_status.value}")
    return job.to_dict(include_skills=False)


# Companies

def list_verified_companies():
    return Company.query.filter_by(verification_status=VerificationStatus.VERIFIED) \
        .order_by(Company.name).all()

def list_companies():
    return Company.query.order_by(Company.name).all()

def _unique_slug(name):
    base = re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-') or 'company'
    slug = base
    suffix = 2
    while Company.query.filter_by(slug=slug).first():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug

def create_company(data):
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')

    errors = []
    name = clean_str(data.get('name'))
    email = clean_str(data.get('email'))
    website = clean_str(data.get('website') or data.get('website_url'))
    if not name:
        errors.append(error('name', 'Company name is required'))
    elif len(name) > 200:
        errors.append(error('name', 'Company name must be at most 200 characters'))
    if email and not validate_email(email):
        errors.append(error('email', 'Invalid company email'))
    if website and not validate_url(website):
        errors.append(error('website', 'Invalid company website URL'))
    if errors:
        raise ValidationFailed('Validation failed', details=errors)

    company = Company(
        name=name,
        slug=_unique_slug(name),
        email=email,
        contact=clean_str(data.get('contact')),
        website_url=website,
        industry=clean_str(data.get('industry')),
        verification_status=VerificationStatus.PENDING,
    )
    db.session.add(company)
    db.session.commit()
    logger.info(f"Company '{name}' created")
    return company.to_dict()
