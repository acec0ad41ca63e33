"""
Configuration settings for the university magazine portal.
Supports both development and production environments via environment variables.
"""
import os
from pathlib import Path
from typing import Optional

# Load environment variables from .env file if it exists
from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# Paths
# ============================================================================
BASE_DIR = Path(__file__).parent
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(BASE_DIR / "uploads")))
LOG_FILE = Path(os.getenv("LOG_FILE", str(BASE_DIR / "logs" / "app.log")))

# Create directories (skip in read-only containers; app will still start)
try:
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
except OSError:
    pass

# ============================================================================
# Database Configuration (PostgreSQL)
# ============================================================================
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "university_magazine")

_raw_url = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)
# SQLAlchemy 2 loads dialect "postgresql", not "postgres"; normalize Heroku-style URLs
if _raw_url.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + _raw_url[len("postgres://"):]
else:
    DATABASE_URL = _raw_url
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

# ============================================================================
# Security Configuration
# ============================================================================
SECRET_KEY = os.getenv("JWT_SECRET", os.getenv("SECRET_KEY", "default_secret_for_development"))
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
MIN_PASSWORD_LENGTH = 8

# CORS Settings - the SPA origin plus any extra comma separated origins
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CORS_ORIGINS = [FRONTEND_URL] + [
    o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",")
    if o.strip() and o.strip() != FRONTEND_URL
]
CORS_ALLOW_CREDENTIALS = True
CORS_EXPOSE_HEADERS = ["Content-Disposition"]

# Trusted Hosts
TRUSTED_HOSTS = os.getenv("TRUSTED_HOSTS", "localhost,127.0.0.1").split(",")

# Rate Limiting
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "3000"))

# ============================================================================
# Upload Settings
# ============================================================================
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))
ALLOWED_UPLOAD_MIME_TYPES = {
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/jpg",
}

# ============================================================================
# Academic Calendar Defaults (used until an administrator saves settings)
# ============================================================================
DEFAULT_ACADEMIC_YEAR = os.getenv("DEFAULT_ACADEMIC_YEAR", "2024-2025")
DEFAULT_SUBMISSION_DEADLINE = os.getenv("DEFAULT_SUBMISSION_DEADLINE", "2025-05-25")
DEFAULT_FINAL_EDIT_DEADLINE = os.getenv("DEFAULT_FINAL_EDIT_DEADLINE", "2025-06-23")
DEFAULT_PUBLICATION_DATE = os.getenv("DEFAULT_PUBLICATION_DATE", "2025-04-01")

# ============================================================================
# Email Configuration (SMTP)
# ============================================================================
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_USE_SSL = os.getenv("SMTP_USE_SSL", "false").lower() == "true"
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", SMTP_USER)
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "University Magazine")

# ============================================================================
# Application Settings
# ============================================================================
APP_NAME = os.getenv("APP_NAME", "University Magazine Portal API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ENVIRONMENT = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development"))  # development, staging, production
PORT = int(os.getenv("PORT", "5001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ============================================================================
# Global Instances (initialized at startup)
# ============================================================================
# Database instance (initialized in app.py)
db: Optional[object] = None
