import os
from urllib.parse import quote_plus
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _database_url() -> str:
    # DATABASE_URL wins; otherwise build an asyncpg URL from the individual parts
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    DB_USER = os.getenv("DB_USER")
    DB_PASSWORD = os.getenv("DB_PASSWORD")
    DB_HOST = os.getenv("DB_HOST")
    DB_PORT = os.getenv("DB_PORT")
    DB_NAME = os.getenv("DB_NAME")
    if all([DB_USER, DB_PASSWORD, DB_HOST, DB_PORT, DB_NAME]):
        encoded_password = quote_plus(DB_PASSWORD)
        return f"postgresql+asyncpg://{DB_USER}:{encoded_password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

    return "sqlite+aiosqlite:///./resume_tailor.db"


# Database
DATABASE_URL = _database_url()
SQL_ECHO = _env_bool("SQL_ECHO")

# Auth provider (tokens are issued by the hosted auth service; we only verify them)
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
AUTH_ISSUER_URL = (os.getenv("AUTH_ISSUER_URL") or "").rstrip("/") or None
AUTH_AUDIENCE = os.getenv("AUTH_AUDIENCE")

# Comma-separated allow-list of admin emails
ADMIN_EMAILS = {
    email.strip().lower()
    for email in os.getenv("ADMIN_EMAILS", "").split(",")
    if email.strip()
}

# LLM providers
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4500"))
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307")
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1").rstrip("/")
ANTHROPIC_API_URL = os.getenv("ANTHROPIC_API_URL", "https://api.anthropic.com/v1").rstrip("/")
ANTHROPIC_VERSION = "2023-06-01"

# PDF export; defaults to the DejaVu fonts bundled with matplotlib
PDF_FONT_DIR = os.getenv("PDF_FONT_DIR")

# HTTP
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Observability
ENABLE_TELEMETRY = _env_bool("ENABLE_TELEMETRY")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
