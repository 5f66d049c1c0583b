import os
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

# Load .env file if it exists (for local development)
env_path = os.path.join(os.path.dirname(__file__), "..", ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)
    logger.info("Loaded .env file for local development")
else:
    logger.info("No .env file found, using environment variables")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "").strip() or "gpt-4o-mini"
# "0" switches the provider to plain-text output parsed line by line
OPENAI_STRUCTURED_OUTPUT = os.getenv("OPENAI_STRUCTURED_OUTPUT", "1").strip() != "0"

# Optional: set this if the API runs on a different origin than the viewer
PUBLIC_API_ORIGIN = os.getenv("PUBLIC_API_ORIGIN", "").strip().rstrip("/")

APP_ENV = os.getenv("APP_ENV", "development").strip().lower()

HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "30"))
USER_AGENT = "PlotlinesBot/1.0"

# Comma-separated list of allowed origins for CORS (e.g., "https://app.example.com,https://www.example.com").
_allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "").strip()
if _allowed_origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _allowed_origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = ["*"]

def is_dev() -> bool:
    return APP_ENV != "production"

def has_all_keys() -> bool:
    keys_present = bool(OPENAI_API_KEY)
    if not keys_present:
        logger.warning("Missing API keys: OPENAI_API_KEY")
    return keys_present
