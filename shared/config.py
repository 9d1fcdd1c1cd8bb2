import os
from pathlib import Path

from dotenv import load_dotenv

from shared.constants import (
    DEFAULT_API_URL,
    DEFAULT_CONFIG_DIR,
    DEFAULT_DATA_DIR,
    DEFAULT_LIKE_SYNC_INTERVAL,
    DEFAULT_PORT,
    DATABASE_FILENAME,
)

load_dotenv()

# App Configuration
APP_NAME = "Revify"
VERSION = "1.0.0"

# Client
API_URL = os.getenv("REVIFY_API_URL", DEFAULT_API_URL).rstrip("/")
CONFIG_DIR = Path(os.getenv("REVIFY_CONFIG_DIR", DEFAULT_CONFIG_DIR)).expanduser()
LIKE_SYNC_INTERVAL = int(os.getenv("REVIFY_LIKE_SYNC_INTERVAL", DEFAULT_LIKE_SYNC_INTERVAL))

# Server
PORT = int(os.getenv("PORT", DEFAULT_PORT))
DATA_DIR = Path(os.getenv("REVIFY_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()
DATABASE_PATH = Path(os.getenv("REVIFY_DATABASE_PATH", str(DATA_DIR / DATABASE_FILENAME))).expanduser()
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "REVIFY_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5500",
    ).split(",")
    if origin.strip()
]

# Storage Settings (cloud asset host)
STORAGE_PROVIDER = os.getenv("REVIFY_STORAGE_PROVIDER", "local")
LOCAL_STORAGE_PATH = Path(os.getenv("LOCAL_STORAGE_PATH", str(DATA_DIR / "media"))).expanduser()
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL")


def storage_credentials() -> dict:
    """Credentials dict for the configured storage provider."""
    if STORAGE_PROVIDER == "r2":
        return {
            "account_id": R2_ACCOUNT_ID,
            "access_key_id": R2_ACCESS_KEY_ID,
            "secret_access_key": R2_SECRET_ACCESS_KEY,
            "bucket": R2_BUCKET_NAME,
            "public_url": R2_PUBLIC_URL,
        }
    return {"base_path": str(LOCAL_STORAGE_PATH)}
