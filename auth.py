"""
Account registration, email verification and JWT authentication.

Registration stores the account as `pending_verification` together with a
short-lived numeric code that is e-mailed to the user. Verifying the code
activates the account, after which `authenticate` issues an HS256 token that
protected routes check through the `jwt_required` decorator.
"""
import hmac
import logging
import re
import secrets
from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import current_app, g, request
from werkzeug.security import check_password_hash, generate_password_hash

from database import db
from exceptions import Forbidden, NotFound, ServiceError, Unauthorized, ValidationFailed, Conflict
from mailer import send_otp_email
from models import User, UserRole, UserStatus, enum_values
from utils import validate_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def hash_password(password):
    return generate_password_hash(password)

def verify_password(password_hash, password):
    return check_password_hash(password_hash, password)

def generate_otp(length=6):
    """Numeric code of exactly `length` digits without a leading zero"""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))

def normalize_email(email):
    return (email or '').strip().lower()

def _require_strings(**fields):
    """Reject JSON values of the wrong type before any string handling"""
    for field, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise ValidationFailed(f"{field.capitalize()} must be a string")


def _jwt_secret():
    secret = current_app.config.get('JWT_SECRET')
    if not secret:
        logger.error("JWT_SECRET is not configured")
        raise ServiceError('Server configuration error')
    return secret

def create_access_token(user):
    now = datetime.utcnow()
    payload = {
        'user_id': user.id,
        'email': user.email,
        'role': user.role.value,
        'name': user.display_name,
        'iat': now,
        'exp': now + timedelta(hours=current_app.config['JWT_EXPIRES_HOURS']),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=current_app.config['JWT_ALGORITHM'])

def decode_access_token(token):
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[current_app.config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        raise Unauthorized('Token expired')
    except jwt.InvalidTokenError:
        raise Unauthorized('Invalid token')

def jwt_required(*roles):
    """Protect a view with a bearer token, optionally limited to some roles.

    The decoded payload is stored on `g.current_user` and the numeric user
    id on `g.user_id`.
    """
    allowed = [role.value if isinstance(role, UserRole) else role for role in roles]

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get('Authorization', '')
            if not auth_header.startswith('Bearer '):
                raise Unauthorized('Authorization token required')

            payload = decode_access_token(auth_header[len('Bearer '):].strip())
            if 'user_id' not in payload:
                raise Unauthorized('Invalid token')
            if allowed and payload.get('role') not in allowed:
                raise Forbidden(f"Insufficient permissions. {' or '.join(allowed)} role required.")

            g.current_user = payload
            g.user_id = int(payload['user_id'])
            return func(*args, **kwargs)
        return wrapper
    return decorator


def _issue_otp(user):
    config = current_app.config
    otp = generate_otp(config['OTP_LENGTH'])
    user.email_verification_token = otp
    user.otp_expires_at = datetime.utcnow() + timedelta(minutes=config['OTP_TTL_MINUTES'])
    return otp

def register_user(email, password, role, name=None):
    """Create a pending account and e-mail its verification code.

    Returns (user, email_sent).
    """
    _require_strings(email=email, password=password, role=role, name=name)
    email = normalize_email(email)
    if not email or not password or not role:
        raise ValidationFailed('Email, password and role are required')
    if not validate_email(email):
        raise ValidationFailed('Invalid email format')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if role not in enum_values(UserRole):
        raise ValidationFailed(f"Role must be one of: {', '.join(enum_values(UserRole))}")

    if User.query.filter_by(email=email).first():
        raise Conflict('Email already registered')

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=(name or '').strip() or None,
        role=UserRole(role),
        status=UserStatus.PENDING_VERIFICATION,
        email_verified=False,
    )
    otp = _issue_otp(user)
    db.session.add(user)
    db.session.commit()
    logger.info(f"Registered {user.role.value} account {email}")

    email_sent = send_otp_email(email, otp)
    if not email_sent:
        logger.warning(f"Verification code for {email} could not be delivered")
    return user, email_sent

def verify_otp(email, otp):
    _require_strings(email=email, otp=otp)
    email = normalize_email(email)
    otp = (otp or '').strip()
    if not validate_email(email):
        raise ValidationFailed('Invalid email format')
    if len(otp) != current_app.config['OTP_LENGTH'] or not re.fullmatch(r'[0-9]+', otp):
        raise ValidationFailed(f"Verification code must be {current_app.config['OTP_LENGTH']} digits")

    user = User.query.filter_by(email=email).first()
    if not user:
        raise NotFound('User not found')
    if user.email_verified:
        raise ValidationFailed('Email already verified')
    if not user.email_verification_token:
        raise ValidationFailed('Invalid verification code')
    if user.otp_expires_at and user.otp_expires_at < datetime.utcnow():
        raise ValidationFailed('Verification code expired')
    if not hmac.compare_digest(user.email_verification_token, otp):
        raise ValidationFailed('Invalid verification code')

    user.email_verified = True
    user.email_verification_token = None
    user.otp_expires_at = None
    user.status = UserStatus.ACTIVE
    db.session.commit()
    logger.info(f"Email verified for {email}")
    return user

def resend_otp(email):
    _require_strings(email=email)
    email = normalize_email(email)
    user = User.query.filter_by(email=email).first()
    if not user:
        raise NotFound('User not found')
    if user.email_verified:
        raise ValidationFailed('Email already verified')

    otp = _issue_otp(user)
    db.session.commit()
    return send_otp_email(email, otp)

def authenticate(email, password):
    """Check credentials and return (token, user summary)"""
    _require_strings(email=email, password=password)
    email = normalize_email(email)
    if not email or not password:
        raise ValidationFailed('Email and password are required')

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(user.password_hash, password):
        raise Unauthorized('Invalid email or password')
    if not user.email_verified:
        raise Forbidden('Email not verified')
    if user.status == UserStatus.SUSPENDED:
        raise Forbidden('Account suspended')

    is_first_login = bool(user.is_first_login)
    has_profile = False
    if user.role == UserRole.CANDIDATE:
        has_profile = user.candidate is not None
        if is_first_login:
            user.is_first_login = False
            db.session.commit()

    token = create_access_token(user)
    summary = {
        'id': user.id,
        'email': user.email,
        'name': user.display_name,
        'role': user.role.value,
        'status': user.status.value,
        'is_first_login': is_first_login,
        'has_profile': has_profile,
    }
    return token, summary
