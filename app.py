import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from database import db
from exceptions import ServiceError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        db.session.rollback()
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        logger.warning(f"Integrity error: {e.orig}")
        return jsonify({'success': False, 'error': 'Conflicting or duplicate data'}), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'success': False, 'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception(f"Unhandled error: {e}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def seed_default_mis_user(app):
    """Create the configured back-office account if it does not exist yet"""
    email = (app.config.get('DEFAULT_MIS_EMAIL') or '').strip().lower()
    password = app.config.get('DEFAULT_MIS_PASSWORD')
    if not email or not password:
        return

    from auth import hash_password
    from models import MisUser, User, UserRole, UserStatus

    if User.query.filter_by(email=email).first():
        return

    user = User(
        email=email,
        password_hash=hash_password(password),
        name='MIS Admin',
        role=UserRole.MIS,
        status=UserStatus.ACTIVE,
        email_verified=True,
        is_first_login=False,
    )
    user.mis_user = MisUser(access_level='admin')
    db.session.add(user)
    db.session.commit()
    logger.info(f"Default MIS user created: {email}")


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    # CORS is limited to the `/api/*` namespace
    CORS(app, resources={r"/api/*": {"origins": app.config["ALLOWED_ORIGINS"]}})
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    db.init_app(app)

    if app.config["STORAGE_BACKEND"] == "local":
        os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    register_error_handlers(app)

    from routes import register_routes
    register_routes(app)

    with app.app_context():
        import models  # noqa: F401

        db.create_all()
        seed_default_mis_user(app)

    return app
