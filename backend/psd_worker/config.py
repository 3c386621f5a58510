import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


logging.basicConfig(stream=sys.stdout, level=logging.INFO)
logger = logging.getLogger(__name__)

APP_DIR = Path(__file__).resolve().parent
BACKEND_DIR = APP_DIR.parent
BASE_DIR = BACKEND_DIR.parent


# Load environment variables from .env file
load_dotenv(BASE_DIR / ".env")


def get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={value!r}, using {default}")
        return default


def get_list_env(name: str, default: str) -> List[str]:
    value = os.getenv(name, default)
    return [item.strip() for item in value.split(",") if item.strip()]


def normalize_private_key(key: Optional[str]) -> str:
    """Env files usually carry the PEM key on one line with escaped newlines."""
    return (key or "").replace("\\n", "\n")


ENV = os.getenv("ENV", "development")
VERSION = "0.1.0"
SERVICE_NAME = "Photopea Worker"

HOST = os.getenv("HOST", "0.0.0.0")
PORT = get_int_env("PORT", 3000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATA_DIR = Path(os.getenv("DATA_DIR", BACKEND_DIR / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/psd_worker.db")

# Photopea
PHOTOPEA_URL = os.getenv("PHOTOPEA_URL", "https://www.photopea.com")
NAVIGATION_TIMEOUT_MS = get_int_env("NAVIGATION_TIMEOUT_MS", 60000)
READY_TIMEOUT_MS = get_int_env("READY_TIMEOUT_MS", 60000)
READY_POLL_INTERVAL_MS = get_int_env("READY_POLL_INTERVAL_MS", 500)
RENDER_TIMEOUT_MS = get_int_env("RENDER_TIMEOUT_MS", 60000)
BLOCKED_RESOURCE_TYPES = get_list_env("BLOCKED_RESOURCE_TYPES", "font,stylesheet,media")

# Browser
HEADLESS = get_bool_env("HEADLESS", True)

# Google Drive
GOOGLE_CLIENT_EMAIL = os.getenv("GOOGLE_CLIENT_EMAIL")
GOOGLE_PRIVATE_KEY = normalize_private_key(os.getenv("GOOGLE_PRIVATE_KEY"))
GOOGLE_DRIVE_FOLDER_ID = os.getenv("GOOGLE_DRIVE_FOLDER_ID")
GOOGLE_DRIVE_SCOPES = get_list_env(
    "GOOGLE_DRIVE_SCOPES", "https://www.googleapis.com/auth/drive.file"
)

# HTTP
MAX_REQUEST_BYTES = get_int_env("MAX_REQUEST_BYTES", 50 * 1024 * 1024)
WORKER_API_KEY = os.environ.get("WORKER_API_KEY")
