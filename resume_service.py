import logging
from datetime import datetime

from flask import current_app

from database import db
from exceptions import NotFound, ValidationFailed
from models import Candidate, Resume, User
from storage import build_object_path, get_storage, path_from_url
from utils import clean_filename, get_file_extension

logger = logging.getLogger(__name__)

PDF_TYPE = 'application/pdf'
IMAGE_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp'}


def ordered_resumes(candidate_id):
    """Primary CV first, then newest first"""
    return Resume.query.filter_by(candidate_id=candidate_id) \
        .order_by(Resume.is_primary.desc(), Resume.uploaded_at.desc(), Resume.id.desc()).all()

def primary_resume(candidate_id):
    return Resume.query.filter_by(candidate_id=candidate_id, is_primary=True).first()

def _get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')
    return user

def _read_upload(file, max_size, too_large_message):
    data = file.read()
    if not data:
        raise ValidationFailed('File is empty')
    if len(data) > max_size:
        raise ValidationFailed(too_large_message)
    return data

def _remove_quietly(bucket, path):
    try:
        get_storage().remove(bucket, path)
    except Exception as e:
        logger.warning(f"Could not delete {bucket}/{path} from storage: {e}")

def _owned_resume(user_id, resume_id):
    resume = Resume.query.filter_by(id=resume_id, candidate_id=user_id).first()
    if not resume:
        raise NotFound('CV not found')
    return resume


def upload_resume(user_id, file, is_primary=False, allow_fetch=True):
    """Store a PDF CV and record it for the candidate.

    The first CV always becomes primary. A primary CV demotes the others and
    its URL is copied onto the candidate.
    """
    if file is None or not file.filename:
        raise ValidationFailed('No file provided')
    if file.mimetype != PDF_TYPE and get_file_extension(file.filename) != '.pdf':
        raise ValidationFailed('Only PDF files are allowed')
    data = _read_upload(file, current_app.config['MAX_RESUME_SIZE'], 'File size must be less than 10MB')

    user = _get_user(user_id)
    bucket = current_app.config['RESUME_BUCKET']
    path = build_object_path('resumes', user_id, file.filename)
    url = get_storage().upload(bucket, path, data, PDF_TYPE)

    try:
        candidate = user.candidate
        if candidate is None:
            candidate = Candidate(user=user, profile_completion_percentage=0)
            db.session.add(candidate)
            db.session.flush()

        make_primary = is_primary or Resume.query.filter_by(candidate_id=user_id).count() == 0
        if make_primary:
            Resume.query.filter_by(candidate_id=user_id, is_primary=True).update({'is_primary': False})

        resume = Resume(
            candidate=candidate,
            resume_url=url,
            storage_path=path,
            original_filename=clean_filename(file.filename),
            file_size=len(data),
            file_type=PDF_TYPE,
            is_primary=make_primary,
            is_allow_fetch=allow_fetch,
        )
        db.session.add(resume)
        if make_primary:
            candidate.resume_url = url
        db.session.commit()
    except Exception:
        db.session.rollback()
        _remove_quietly(bucket, path)
        raise

    logger.info(f"Stored CV {path} for candidate {user_id} (primary={make_primary})")
    return resume.to_dict()

def list_resumes(user_id):
    return [resume.to_dict() for resume in ordered_resumes(user_id)]

def set_primary_resume(user_id, resume_id):
    resume = _owned_resume(user_id, resume_id)
    try:
        Resume.query.filter_by(candidate_id=user_id).update({'is_primary': False})
        resume.is_primary = True
        resume.candidate.resume_url = resume.resume_url
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return resume.to_dict()

def delete_resume(user_id, resume_id):
    """Delete a CV, promoting the newest remaining one when it was primary"""
    resume = _owned_resume(user_id, resume_id)
    bucket = current_app.config['RESUME_BUCKET']
    path = resume.storage_path or path_from_url(bucket, resume.resume_url)
    candidate = resume.candidate
    was_primary = resume.is_primary
    new_primary = None

    try:
        db.session.delete(resume)
        db.session.flush()
        if was_primary:
            new_primary = Resume.query.filter_by(candidate_id=user_id) \
                .order_by(Resume.uploaded_at.desc(), Resume.id.desc()).first()
            if new_primary:
                new_primary.is_primary = True
                candidate.resume_url = new_primary.resume_url
            else:
                candidate.resume_url = None
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if path:
        _remove_quietly(bucket, path)
    logger.info(f"Deleted CV {resume_id} of candidate {user_id}")
    return {'deleted_id': resume_id, 'new_primary_id': new_primary.id if new_primary else None}


def upload_profile_image(user_id, file):
    if file is None or not file.filename:
        raise ValidationFailed('No file provided')
    if file.mimetype not in IMAGE_TYPES:
        raise ValidationFailed('Only JPEG, PNG, GIF and WebP images are allowed')
    data = _read_upload(file, current_app.config['MAX_IMAGE_SIZE'], 'Image size must be less than 5MB')

    user = _get_user(user_id)
    bucket = current_app.config['IMAGE_BUCKET']
    path = build_object_path('profile-images', user_id, file.filename)
    url = get_storage().upload(bucket, path, data, file.mimetype, upsert=True)

    old_path = path_from_url(bucket, user.profile_image_url)
    user.profile_image_url = url
    if user.candidate:
        user.candidate.updated_at = datetime.utcnow()
    db.session.commit()

    if old_path and old_path != path:
        _remove_quietly(bucket, old_path)
    return url

def delete_profile_image(user_id):
    user = _get_user(user_id)
    if not user.profile_image_url:
        raise ValidationFailed('No profile image to delete')

    bucket = current_app.config['IMAGE_BUCKET']
    path = path_from_url(bucket, user.profile_image_url)
    user.profile_image_url = None
    if user.candidate:
        user.candidate.updated_at = datetime.utcnow()
    db.session.commit()

    if path:
        _remove_quietly(bucket, path)
