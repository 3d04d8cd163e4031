"""Application configuration loaded from the environment (.env supported)."""
import os
from dotenv import load_dotenv

load_dotenv()  # Searches for .env in current dir and parents

MONGODB_URI = os.getenv("MONGODB_URI")
DB_NAME = os.getenv("DB_NAME", "expense_tracker")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_URL_PREFIX = "/uploads"
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(2 * 1024 * 1024)))  # 2MB
UPLOAD_ENDPOINT_PATH = "/api/users"  # Registration is the only multipart route

RATE_LIMIT = os.getenv("RATE_LIMIT", "30/minute")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

REPORT_LOCALE = os.getenv("REPORT_LOCALE", "pt-BR")
FAMILY_CODE_ATTEMPTS = int(os.getenv("FAMILY_CODE_ATTEMPTS", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
