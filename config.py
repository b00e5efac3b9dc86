import os
import logging
from dotenv import load_dotenv

load_dotenv()

# --- CONFIGURATION ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/game_club.db")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "3000"))

# comma separated, "*" allows every origin
FRONTEND_URLS = [o.strip() for o in os.getenv("FRONTEND_URL", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "app.log")

# when unset, the api is open
API_SECRET_KEY = os.getenv("API_SECRET_KEY") or None

RATE_LIMIT = os.getenv("RATE_LIMIT", "60/minute")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false"

API_VERSION = "1.0.0"


def is_development() -> bool:
    return ENVIRONMENT == "development"


def setup_logging():
    """
    Configures the process-wide log handlers. Called once at startup,
    every module then logs through logging.getLogger(__name__).
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
