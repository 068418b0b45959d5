import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Application configuration read from the environment"""

    SECRET_KEY = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///recruitment.db")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "*")

    # Authentication
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))
    OTP_LENGTH = 6
    OTP_TTL_MINUTES = int(os.environ.get("OTP_TTL_MINUTES", "10"))

    # Outgoing mail
    MAIL_ENABLED = _env_bool("MAIL_ENABLED", "true")
    SMTP_SERVER = os.environ.get("SMTP_SERVER", "smtp.gmail.com")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    EMAIL_USER = os.environ.get("EMAIL_USER", "")
    EMAIL_PASSWORD = os.environ.get("EMAIL_PASSWORD", "")
    MAIL_FROM = os.environ.get("MAIL_FROM", "")

    # Object storage
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "local")
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    RESUME_BUCKET = os.environ.get("RESUME_BUCKET", "resumes")
    IMAGE_BUCKET = os.environ.get("IMAGE_BUCKET", "images")
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    PUBLIC_UPLOAD_URL = os.environ.get("PUBLIC_UPLOAD_URL", "/uploads")

    # Upload limits
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request size
    MAX_RESUME_SIZE = 10 * 1024 * 1024
    MAX_IMAGE_SIZE = 5 * 1024 * 1024

    # AI extraction
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")

    # Seeded back-office account, skipped when either value is empty
    DEFAULT_MIS_EMAIL = os.environ.get("DEFAULT_MIS_EMAIL", "")
    DEFAULT_MIS_PASSWORD = os.environ.get("DEFAULT_MIS_PASSWORD", "")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
    MAIL_ENABLED = False
    STORAGE_BACKEND = "local"
    PUBLIC_UPLOAD_URL = "http://localhost/uploads"
    OPENAI_API_KEY = "test-key"
    DEFAULT_MIS_EMAIL = ""
    DEFAULT_MIS_PASSWORD = ""
