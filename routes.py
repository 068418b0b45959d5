import logging
from datetime import datetime
from flask import request, jsonify, g

import auth
import cv_parser
import job_service
import profile_service
import resume_service
from auth import jwt_required
from exceptions import ValidationFailed
from models import User, UserRole
from skills import list_active_skills
from database import db

logger = logging.getLogger(__name__)

CANDIDATE = UserRole.CANDIDATE
MIS = UserRole.MIS


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')
    return data

def _form_flag(name, default=False):
    value = request.form.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


def register_routes(app):
    @app.route('/api/test', methods=['GET'])
    def api_test():
        """Health check"""
        return jsonify({
            'success': True,
            'message': 'API is working',
            'timestamp': datetime.utcnow().isoformat()
        })

    # Authentication

    @app.route('/api/auth/register', methods=['POST'])
    def api_register():
        data = _json_body()
        user, email_sent = auth.register_user(
            data.get('email'), data.get('password'), data.get('role'), data.get('name')
        )
        message = 'OTP sent to email' if email_sent else \
            'Account created but the verification email could not be sent. Please request a new code.'
        return jsonify({
            'success': True,
            'message': message,
            'email_sent': email_sent,
            'user': {
                'id': user.id,
                'email': user.email,
                'role': user.role.value,
                'status': user.status.value,
            }
        }), 201

    @app.route('/api/auth/verify-otp', methods=['POST'])
    def api_verify_otp():
        data = _json_body()
        auth.verify_otp(data.get('email'), data.get('otp'))
        return jsonify({'success': True, 'message': 'Email verified successfully'})

    @app.route('/api/auth/resend-otp', methods=['POST'])
    def api_resend_otp():
        data = _json_body()
        email_sent = auth.resend_otp(data.get('email'))
        return jsonify({
            'success': email_sent,
            'message': 'OTP sent to email' if email_sent else 'Failed to send verification email'
        }), 200 if email_sent else 502

    @app.route('/api/auth/login', methods=['POST'])
    def api_login():
        data = _json_body()
        token, user = auth.authenticate(data.get('email'), data.get('password'))
        return jsonify({
            'success': True,
            'message': 'Login successful',
            'token': token,
            'user': user
        })

    @app.route('/api/auth/me', methods=['GET'])
    @jwt_required()
    def api_me():
        user = db.session.get(User, g.user_id)
        if not user:
            return jsonify({'success': False, 'error': 'User not found'}), 404
        return jsonify({'success': True, 'user': user.to_dict()})

    # Candidate profile

    @app.route('/api/candidate/profile/create-profile', methods=['POST'])
    @jwt_required(CANDIDATE)
    def api_create_profile():
        data = _json_body()
        result = profile_service.upsert_profile(g.user_id, data.get('profileData', data))
        return jsonify({
            'success': True,
            'message': 'Profile updated successfully' if result['is_update'] else 'Profile created successfully',
            'data': result
        }), 200 if result['is_update'] else 201

    @app.route('/api/candidate/profile/create-profile/education', methods=['GET', 'POST'])
    @jwt_required(CANDIDATE)
    def api_profile_education():
        if request.method == 'POST':
            education = profile_service.replace_education(g.user_id, _json_body().get('education'))
        else:
            education = profile_service.list_education(g.user_id)
        return jsonify({'success': True, 'education': education})

    @app.route('/api/candidate/profile/create-profile/experience', methods=['GET', 'POST'])
    @jwt_required(CANDIDATE)
    def api_profile_experience():
        if request.method == 'POST':
            data = _json_body()
            experiences = profile_service.replace_work_experiences(
                g.user_id, data.get('experiences'), data.get('accomplishments')
            )
        else:
            experiences = profile_service.list_work_experiences(g.user_id)
        return jsonify({'success': True, 'experiences': experiences})

    @app.route('/api/candidate/profile/create-profile/skills', methods=['GET', 'POST'])
    @jwt_required(CANDIDATE)
    def api_profile_skills():
        if request.method == 'POST':
            skills = profile_service.replace_skills(g.user_id, _json_body().get('skills'))
        else:
            skills = profile_service.list_skills(g.user_id)
        return jsonify({'success': True, 'skills': skills})

    @app.route('/api/candidate/profile/display-profile', methods=['GET'])
    @jwt_required(CANDIDATE)
    def api_display_profile():
        return jsonify({'success': True, 'data': profile_service.build_profile_display(g.user_id)})

    @app.route('/api/candidate/profile/edit-profile/basic-info', methods=['GET', 'PUT'])
    @jwt_required(CANDIDATE)
    def api_basic_info():
        if request.method == 'PUT':
            data = profile_service.update_basic_info(g.user_id, _json_body())
            return jsonify({'success': True, 'message': 'Basic information updated successfully', 'data': data})
        return jsonify({'success': True, 'data': profile_service.get_basic_info(g.user_id)})

    @app.route('/api/candidate/profile/edit-profile/experience', methods=['GET', 'PUT'])
    @jwt_required(CANDIDATE)
    def api_edit_experiences():
        if request.method == 'PUT':
            data = _json_body()
            experiences = profile_service.replace_work_experiences(
                g.user_id, data.get('experiences'), data.get('accomplishments')
            )
            return jsonify({'success': True, 'message': 'Experience updated successfully',
                            'experiences': experiences})
        return jsonify({'success': True, 'experiences': profile_service.list_work_experiences(g.user_id)})

    @app.route('/api/candidate/profile/edit-profile/experience/add', methods=['POST'])
    @jwt_required(CANDIDATE)
    def api_add_experience():
        experience = profile_service.add_experience(g.user_id, _json_body())
        return jsonify({'success': True, 'message': 'Experience added successfully',
                        'experience': experience}), 201

    @app.route('/api/candidate/profile/edit-profile/experience/<int:experience_id>',
               methods=['GET', 'PUT', 'DELETE'])
    @jwt_required(CANDIDATE)
    def api_experience_detail(experience_id):
        if request.method == 'PUT':
            experience = profile_service.update_experience(g.user_id, experience_id, _json_body())
            return jsonify({'success': True, 'message': 'Experience updated successfully',
                            'experience': experience})
        if request.method == 'DELETE':
            profile_service.delete_experience(g.user_id, experience_id)
            return jsonify({'success': True, 'message': 'Experience deleted successfully'})
        return jsonify({'success': True, 'experience': profile_service.get_experience(g.user_id, experience_id)})

    # CV documents and profile image

    @app.route('/api/candidate/profile/upload-cv', methods=['POST', 'GET', 'DELETE'])
    @jwt_required(CANDIDATE)
    def api_upload_cv():
        if request.method == 'GET':
            return jsonify({'success': True, 'cvDocuments': resume_service.list_resumes(g.user_id)})

        if request.method == 'DELETE':
            resume_id = request.args.get('id', type=int)
            if not resume_id:
                raise ValidationFailed('CV id is required')
            result = resume_service.delete_resume(g.user_id, resume_id)
            return jsonify({'success': True, 'message': 'CV deleted successfully', **result})

        cv_document = resume_service.upload_resume(
            g.user_id,
            request.files.get('file'),
            is_primary=_form_flag('is_primary'),
            allow_fetch=_form_flag('is_allow_fetch', default=True),
        )
        return jsonify({'success': True, 'message': 'CV uploaded successfully', 'cvDocument': cv_document}), 201

    @app.route('/api/candidate/cv/set-primary', methods=['POST'])
    @jwt_required(CANDIDATE)
    def api_set_primary_cv():
        resume_id = _json_body().get('resume_id')
        if not isinstance(resume_id, int) or isinstance(resume_id, bool):
            raise ValidationFailed('resume_id is required')
        cv_document = resume_service.set_primary_resume(g.user_id, resume_id)
        return jsonify({'success': True, 'message': 'Primary CV updated', 'cvDocument': cv_document})

    @app.route('/api/candidate/profile/upload-profile-image', methods=['POST', 'DELETE'])
    @jwt_required(CANDIDATE)
    def api_profile_image():
        if request.method == 'DELETE':
            resume_service.delete_profile_image(g.user_id)
            return jsonify({'success': True, 'message': 'Profile image deleted successfully'})

        url = resume_service.upload_profile_image(g.user_id, request.files.get('file'))
        return jsonify({'success': True, 'message': 'Profile image uploaded successfully',
                        'profile_image_url': url})

    # AI extraction

    @app.route('/api/ai/process-cv', methods=['POST'])
    @jwt_required(CANDIDATE)
    def api_process_cv():
        file = request.files.get('file')
        if file is None or not file.filename:
            raise ValidationFailed('No file provided')
        result = cv_parser.process_cv(file)
        return jsonify({'success': True, 'message': 'CV processed successfully', **result})

    # Skills

    @app.route('/api/skills', methods=['GET'])
    @jwt_required(MIS, UserRole.EMPLOYER, CANDIDATE)
    def api_skills():
        skills = list_active_skills()
        return jsonify({'success': True, 'skills': [skill.to_dict() for skill in skills]})

    # Jobs

    @app.route('/api/jobs', methods=['POST'])
    @app.route('/api/jobs/create', methods=['POST'])
    @jwt_required(MIS)
    def api_create_job():
        job = job_service.create_job(_json_body(), g.user_id)
        return jsonify({'success': True, 'message': 'Job created successfully', 'job': job}), 201

    @app.route('/api/jobs', methods=['GET'])
    @jwt_required(MIS)
    def api_list_jobs():
        result = job_service.list_jobs(
            g.user_id,
            page=request.args.get('page', 1, type=int),
            limit=request.args.get('limit', 10, type=int),
        )
        return jsonify({'success': True, **result})

    @app.route('/api/jobs/<int:job_id>', methods=['GET'])
    @jwt_required(MIS)
    def api_get_job(job_id):
        return jsonify({'success': True, 'job': job_service.get_job(job_id, g.user_id)})

    @app.route('/api/jobs/<int:job_id>/edit', methods=['PUT'])
    @jwt_required(MIS)
    def api_edit_job(job_id):
        job = job_service.update_job(job_id, _json_body(), g.user_id)
        return jsonify({'success': True, 'message': 'Job updated successfully', 'job': job})

    @app.route('/api/jobs/<int:job_id>/status', methods=['PATCH'])
    @jwt_required(MIS)
    def api_job_status(job_id):
        job = job_service.update_job_status(job_id, _json_body().get('status'), g.user_id)
        return jsonify({'success': True, 'message': f"Job status updated to {job['status']}", 'job': job})

    # Companies

    @app.route('/api/companies', methods=['GET'])
    @jwt_required(MIS)
    def api_companies():
        companies = job_service.list_companies()
        return jsonify({'success': True, 'companies': [c.to_dict() for c in companies]})

    @app.route('/api/companies/verified', methods=['GET'])
    @jwt_required(MIS)
    def api_verified_companies():
        companies = job_service.list_verified_companies()
        return jsonify({'success': True, 'companies': [c.to_dict() for c in companies]})

    @app.route('/api/companies/create', methods=['POST'])
    @jwt_required(MIS)
    def api_create_company():
        company = job_service.create_company(_json_body())
        return jsonify({'success': True, 'message': 'Company created successfully', 'company': company}), 201
