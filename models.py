from datetime import datetime
from database import db
from sqlalchemy import Enum
import enum

class UserRole(enum.Enum):
    CANDIDATE = "candidate"
    EMPLOYER = "employer"
    MIS = "mis"
    AGENCY = "agency"

class UserStatus(enum.Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    SUSPENDED = "suspended"

class EmploymentType(enum.Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"
    VOLUNTEER = "volunteer"

class JobType(enum.Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"

class JobStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    PAUSED = "paused"
    CLOSED = "closed"
    ARCHIVED = "archived"

class ExperienceLevel(enum.Enum):
    ENTRY = "entry"
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    PRINCIPAL = "principal"

class RemoteType(enum.Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"

class SalaryType(enum.Enum):
    ANNUAL = "annual"
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    DAILY = "daily"
    HOURLY = "hourly"

class CreatorType(enum.Enum):
    EMPLOYER = "employer"
    MIS_USER = "mis_user"

class RequiredLevel(enum.Enum):
    NICE_TO_HAVE = "nice_to_have"
    PREFERRED = "preferred"
    REQUIRED = "required"
    MUST_HAVE = "must_have"

class ProficiencyLevel(enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

class VerificationStatus(enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


def enum_values(enum_class):
    return [member.value for member in enum_class]

def _iso(value):
    return value.isoformat() if value else None

def _value(member):
    return member.value if member else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100))
    role = db.Column(Enum(UserRole), nullable=False)
    status = db.Column(Enum(UserStatus), default=UserStatus.PENDING_VERIFICATION, nullable=False)

    # Email verification
    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    email_verification_token = db.Column(db.String(12))
    otp_expires_at = db.Column(db.DateTime)

    is_first_login = db.Column(db.Boolean, default=True, nullable=False)
    profile_image_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    candidate = db.relationship('Candidate', backref='user', uselist=False, cascade='all, delete-orphan')
    mis_user = db.relationship('MisUser', backref='user', uselist=False, cascade='all, delete-orphan')

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0]

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.display_name,
            'role': _value(self.role),
            'status': _value(self.status),
            'email_verified': self.email_verified,
            'profile_image_url': self.profile_image_url,
            'created_at': _iso(self.created_at),
        }


class Candidate(db.Model):
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), primary_key=True)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    additional_name = db.Column(db.String(100))
    title = db.Column(db.String(200))
    current_position = db.Column(db.String(200))
    industry = db.Column(db.String(100))
    bio = db.Column(db.Text)
    about = db.Column(db.Text)
    location = db.Column(db.String(200))
    phone1 = db.Column(db.String(30))
    phone2 = db.Column(db.String(30))

    # Links
    linkedin_url = db.Column(db.String(512))
    github_url = db.Column(db.String(512))
    portfolio_url = db.Column(db.String(512))
    personal_website = db.Column(db.String(512))

    # Preferences
    years_of_experience = db.Column(db.Integer)
    experience_level = db.Column(db.String(20))
    availability_status = db.Column(db.String(30))
    remote_preference = db.Column(db.String(20))
    expected_salary_min = db.Column(db.Integer)
    expected_salary_max = db.Column(db.Integer)
    currency = db.Column(db.String(3), default='USD')
    salary_visibility = db.Column(db.String(20))

    # Personal details
    gender = db.Column(db.String(30))
    date_of_birth = db.Column(db.Date)
    pronouns = db.Column(db.String(50))
    professional_summary = db.Column(db.Text)
    country = db.Column(db.String(100))
    city = db.Column(db.String(100))
    address = db.Column(db.String(300))

    # Availability
    availability_date = db.Column(db.Date)
    work_availability = db.Column(db.String(20))
    notice_period = db.Column(db.Integer)
    open_to_relocation = db.Column(db.Boolean, default=False)
    willing_to_travel = db.Column(db.Boolean, default=False)
    visa_assistance_needed = db.Column(db.Boolean, default=False)
    security_clearance = db.Column(db.Boolean, default=False)
    work_authorization = db.Column(db.String(30))

    resume_url = db.Column(db.String(512))
    profile_completion_percentage = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    work_experiences = db.relationship('WorkExperience', backref='candidate', lazy=True, cascade='all, delete-orphan')
    accomplishments = db.relationship('Accomplishment', backref='candidate', lazy=True, cascade='all, delete-orphan')
    educations = db.relationship('Education', backref='candidate', lazy=True, cascade='all, delete-orphan')
    certificates = db.relationship('Certificate', backref='candidate', lazy=True, cascade='all, delete-orphan')
    projects = db.relationship('Project', backref='candidate', lazy=True, cascade='all, delete-orphan')
    awards = db.relationship('Award', backref='candidate', lazy=True, cascade='all, delete-orphan')
    volunteering = db.relationship('Volunteering', backref='candidate', lazy=True, cascade='all, delete-orphan')
    candidate_skills = db.relationship('CandidateSkill', backref='candidate', lazy=True, cascade='all, delete-orphan')
    resumes = db.relationship('Resume', backref='candidate', lazy=True, cascade='all, delete-orphan')

    BASIC_FIELDS = (
        'first_name', 'last_name', 'additional_name', 'title', 'current_position',
        'industry', 'bio', 'about', 'location', 'phone1', 'phone2',
        'linkedin_url', 'github_url', 'portfolio_url', 'personal_website',
        'years_of_experience', 'experience_level', 'availability_status',
        'remote_preference', 'expected_salary_min', 'expected_salary_max', 'currency',
    )

    # Edited through the basic-info endpoint only
    DETAIL_FIELDS = (
        'gender', 'date_of_birth', 'pronouns', 'professional_summary', 'country', 'city',
        'address', 'availability_date', 'work_availability', 'notice_period',
        'open_to_relocation', 'willing_to_travel', 'visa_assistance_needed',
        'security_clearance', 'salary_visibility', 'work_authorization',
    )

    def to_dict(self):
        data = {'user_id': self.user_id}
        for field in self.BASIC_FIELDS:
            data[field] = getattr(self, field)
        for field in self.DETAIL_FIELDS:
            value = getattr(self, field)
            data[field] = _iso(value) if field in ('date_of_birth', 'availability_date') else value
        data.update({
            'resume_url': self.resume_url,
            'profile_completion_percentage': self.profile_completion_percentage,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        })
        return data


class WorkExperience(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    company = db.Column(db.String(200), nullable=False)
    employment_type = db.Column(Enum(EmploymentType), default=EmploymentType.FULL_TIME)
    is_current = db.Column(db.Boolean, default=False)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    location = db.Column(db.String(200))
    description = db.Column(db.Text)
    job_source = db.Column(db.String(100))
    skill_ids = db.Column(db.JSON)
    media_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    accomplishments = db.relationship('Accomplishment', backref='work_experience', lazy=True, cascade='all, delete')

    def to_dict(self, include_accomplishments=False):
        data = {
            'id': self.id,
            'title': self.title,
            'company': self.company,
            'employment_type': _value(self.employment_type),
            'is_current': self.is_current,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'location': self.location,
            'description': self.description,
            'job_source': self.job_source,
            'skill_ids': self.skill_ids or [],
            'media_url': self.media_url,
        }
        if include_accomplishments:
            data['accomplishments'] = [a.to_dict() for a in self.accomplishments]
        return data


class Accomplishment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    work_experience_id = db.Column(db.Integer, db.ForeignKey('work_experience.id'))
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'work_experience_id': self.work_experience_id,
            'title': self.title,
            'description': self.description,
        }


class Education(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    degree_diploma = db.Column(db.String(200))
    university_school = db.Column(db.String(200))
    field_of_study = db.Column(db.String(200))
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    grade = db.Column(db.String(50))
    activities_societies = db.Column(db.Text)
    skill_ids = db.Column(db.JSON)
    media_url = db.Column(db.String(512))

    def to_dict(self):
        return {
            'id': self.id,
            'degree_diploma': self.degree_diploma,
            'university_school': self.university_school,
            'field_of_study': self.field_of_study,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'grade': self.grade,
            'activities_societies': self.activities_societies,
            'skill_ids': self.skill_ids or [],
            'media_url': self.media_url,
        }


class Certificate(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    issuing_authority = db.Column(db.String(200))
    issue_date = db.Column(db.Date)
    expiry_date = db.Column(db.Date)
    credential_id = db.Column(db.String(200))
    credential_url = db.Column(db.String(512))
    description = db.Column(db.Text)
    media_url = db.Column(db.String(512))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'issuing_authority': self.issuing_authority,
            'issue_date': _iso(self.issue_date),
            'expiry_date': _iso(self.expiry_date),
            'credential_id': self.credential_id,
            'credential_url': self.credential_url,
            'description': self.description,
            'media_url': self.media_url,
        }


class Project(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, default=False)
    role = db.Column(db.String(200))

    # Free-form lists
    responsibilities = db.Column(db.JSON)
    technologies = db.Column(db.JSON)
    tools = db.Column(db.JSON)
    methodologies = db.Column(db.JSON)
    media_urls = db.Column(db.JSON)
    skills_gained = db.Column(db.JSON)

    is_confidential = db.Column(db.Boolean, default=False)
    can_share_details = db.Column(db.Boolean, default=True)
    url = db.Column(db.String(512))
    repository_url = db.Column(db.String(512))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'is_current': self.is_current,
            'role': self.role,
            'responsibilities': self.responsibilities or [],
            'technologies': self.technologies or [],
            'tools': self.tools or [],
            'methodologies': self.methodologies or [],
            'media_urls': self.media_urls or [],
            'skills_gained': self.skills_gained or [],
            'is_confidential': self.is_confidential,
            'can_share_details': self.can_share_details,
            'url': self.url,
            'repository_url': self.repository_url,
        }


class Award(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    offered_by = db.Column(db.String(200))
    associated_with = db.Column(db.String(200))
    date = db.Column(db.Date)
    description = db.Column(db.Text)
    media_url = db.Column(db.String(512))
    skill_ids = db.Column(db.JSON)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'offered_by': self.offered_by,
            'associated_with': self.associated_with,
            'date': _iso(self.date),
            'description': self.description,
            'media_url': self.media_url,
            'skill_ids': self.skill_ids or [],
        }


class Volunteering(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    role = db.Column(db.String(200), nullable=False)
    institution = db.Column(db.String(200))
    cause = db.Column(db.String(200))
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, default=False)
    description = db.Column(db.Text)
    media_url = db.Column(db.String(512))

    def to_dict(self):
        return {
            'id': self.id,
            'role': self.role,
            'institution': self.institution,
            'cause': self.cause,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'is_current': self.is_current,
            'description': self.description,
            'media_url': self.media_url,
        }


class Skill(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    category = db.Column(db.String(50), default='other')
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
        }


class CandidateSkill(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    skill_id = db.Column(db.Integer, db.ForeignKey('skill.id'), nullable=False)
    skill_source = db.Column(db.String(50), default='manual')
    proficiency = db.Column(db.Integer, default=60)  # 0-100
    years_of_experience = db.Column(db.Float, default=0)

    # Where the skill was picked up
    source_title = db.Column(db.String(200))
    source_company = db.Column(db.String(200))
    source_institution = db.Column(db.String(200))
    source_authority = db.Column(db.String(200))
    source_type = db.Column(db.String(50), default='manual')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    skill = db.relationship('Skill', lazy='joined')

    __table_args__ = (db.UniqueConstraint('candidate_id', 'skill_id'),)

    def to_dict(self):
        return {
            'id': self.id,
            'skill_id': self.skill_id,
            'skill_name': self.skill.name if self.skill else None,
            'category': self.skill.category if self.skill else None,
            'skill_source': self.skill_source,
            'proficiency': self.proficiency,
            'years_of_experience': self.years_of_experience,
            'source_title': self.source_title,
            'source_company': self.source_company,
            'source_institution': self.source_institution,
            'source_authority': self.source_authority,
            'source_type': self.source_type,
        }


class Resume(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.user_id'), nullable=False)
    resume_url = db.Column(db.String(512), nullable=False)
    storage_path = db.Column(db.String(512))
    original_filename = db.Column(db.String(255))
    file_size = db.Column(db.Integer)
    file_type = db.Column(db.String(100))
    is_primary = db.Column(db.Boolean, default=False)
    is_allow_fetch = db.Column(db.Boolean, default=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'resume_url': self.resume_url,
            'original_filename': self.original_filename,
            'file_size': self.file_size,
            'file_type': self.file_type,
            'is_primary': self.is_primary,
            'is_allow_fetch': self.is_allow_fetch,
            'uploaded_at': _iso(self.uploaded_at),
        }


class MisUser(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    access_level = db.Column(db.String(20), default='admin')
    job_posting_permissions = db.Column(db.Boolean, default=True)
    can_post_for_all_companies = db.Column(db.Boolean, default=True)
    max_active_jobs = db.Column(db.Integer, default=100)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Company(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), unique=True, nullable=False)
    email = db.Column(db.String(120))
    contact = db.Column(db.String(30))
    website_url = db.Column(db.String(512))
    logo_url = db.Column(db.String(512))
    industry = db.Column(db.String(100))
    verification_status = db.Column(Enum(VerificationStatus), default=VerificationStatus.PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'email': self.email,
            'contact': self.contact,
            'website_url': self.website_url,
            'logo_url': self.logo_url,
            'industry': self.industry,
            'verification_status': _value(self.verification_status),
            'created_at': _iso(self.created_at),
        }


class Job(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    creator_type = db.Column(Enum(CreatorType), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    requirements = db.Column(db.Text)
    responsibilities = db.Column(db.Text)
    benefits = db.Column(db.Text)
    job_type = db.Column(Enum(JobType), nullable=False)
    experience_level = db.Column(Enum(ExperienceLevel), nullable=False)
    location = db.Column(db.String(200))
    remote_type = db.Column(Enum(RemoteType), nullable=False)

    # Compensation
    salary_min = db.Column(db.Integer)
    salary_max = db.Column(db.Integer)
    currency = db.Column(db.String(3), default='USD')
    salary_type = db.Column(Enum(SalaryType), default=SalaryType.ANNUAL)
    equity_offered = db.Column(db.Boolean, default=False)

    ai_skills_required = db.Column(db.Boolean, default=False)
    application_deadline = db.Column(db.Date)
    status = db.Column(Enum(JobStatus), default=JobStatus.DRAFT, nullable=False)
    published_at = db.Column(db.DateTime)
    priority_level = db.Column(db.Integer, default=1)
    views_count = db.Column(db.Integer, default=0)
    applications_count = db.Column(db.Integer, default=0)

    # Posting company, either a registered one or free-form details
    company_id = db.Column(db.Integer, db.ForeignKey('company.id'))
    custom_company_name = db.Column(db.String(200))
    custom_company_email = db.Column(db.String(120))
    custom_company_phone = db.Column(db.String(30))
    custom_company_website = db.Column(db.String(512))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    skills = db.relationship('JobSkill', backref='job', lazy=True, cascade='all, delete-orphan')
    company = db.relationship('Company')

    def to_dict(self, include_skills=True):
        data = {
            'id': self.id,
            'creator_id': self.creator_id,
            'creator_type': _value(self.creator_type),
            'title': self.title,
            'description': self.description,
            'requirements': self.requirements,
            'responsibilities': self.responsibilities,
            'benefits': self.benefits,
            'job_type': _value(self.job_type),
            'experience_level': _value(self.experience_level),
            'location': self.location,
            'remote_type': _value(self.remote_type),
            'salary_min': self.salary_min,
            'salary_max': self.salary_max,
            'currency': self.currency,
            'salary_type': _value(self.salary_type),
            'equity_offered': self.equity_offered,
            'ai_skills_required': self.ai_skills_required,
            'application_deadline': _iso(self.application_deadline),
            'status': _value(self.status),
            'published_at': _iso(self.published_at),
            'priority_level': self.priority_level,
            'views_count': self.views_count,
            'applications_count': self.applications_count,
            'company_id': self.company_id,
            'custom_company_name': self.custom_company_name,
            'custom_company_email': self.custom_company_email,
            'custom_company_phone': self.custom_company_phone,
            'custom_company_website': self.custom_company_website,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if include_skills:
            data['skills'] = [s.to_dict() for s in self.skills]
        return data


class JobSkill(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('job.id'), nullable=False)
    skill_id = db.Column(db.Integer, db.ForeignKey('skill.id'), nullable=False)
    required_level = db.Column(Enum(RequiredLevel), default=RequiredLevel.REQUIRED)
    proficiency_level = db.Column(Enum(ProficiencyLevel), default=ProficiencyLevel.INTERMEDIATE)
    years_required = db.Column(db.Integer, default=0)
    weight = db.Column(db.Float, default=1.0)

    skill = db.relationship('Skill', lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'skill_id': self.skill_id,
            'skill_name': self.skill.name if self.skill else None,
            'required_level': _value(self.required_level),
            'proficiency_level': _value(self.proficiency_level),
            'years_required': self.years_required,
            'weight': self.weight,
        }
