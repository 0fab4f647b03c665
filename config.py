import os
from dotenv import load_dotenv
load_dotenv()


def _flag(name, default="0"):
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///ats.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # run queued jobs inline instead of pushing them to Redis
    RQ_SYNC = _flag("RQ_SYNC")
    RQ_QUEUE = os.getenv("RQ_QUEUE", "events")
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "noreply@example.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Recruitment Team")
    UID_DOMAIN = os.getenv("UID_DOMAIN", "example.local")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
    RATING_MIN = int(os.getenv("RATING_MIN", "1"))
    RATING_MAX = int(os.getenv("RATING_MAX", "10"))
    WTF_CSRF_ENABLED = _flag("WTF_CSRF_ENABLED")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RQ_SYNC = True
    SENDGRID_API_KEY = None
    WTF_CSRF_ENABLED = False
