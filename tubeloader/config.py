import os
from dotenv import load_dotenv

load_dotenv()

# --------------------------------------------------
# App
# --------------------------------------------------
APP_NAME = os.getenv("APP_NAME", "Bulk YouTube Uploader")
API_PREFIX = "/api"

ENV = os.getenv("ENV", "local")  # local | production
IS_PROD = ENV == "production"

PORT = int(os.getenv("PORT", 3000))
BASE_URL = os.getenv("BASE_URL", "").rstrip("/") or None

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --------------------------------------------------
# Session / Google OAuth
# --------------------------------------------------
SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")
SESSION_MAX_AGE_SECONDS = 60 * 60 * 24 * 7

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

OAUTH_SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]

# --------------------------------------------------
# Upload pipeline
# --------------------------------------------------
MAX_CONCURRENT_UPLOADS = int(os.getenv("MAX_CONCURRENT_UPLOADS", 2))
MAX_BULK_ITEMS = int(os.getenv("MAX_BULK_ITEMS", 25))
STATUS_LIMIT = int(os.getenv("STATUS_LIMIT", 100))

STAGING_DIR = os.getenv("STAGING_DIR", os.path.join(os.getcwd(), "tmp"))

# 0 disables the timeout (downloads may take arbitrarily long)
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", 0))

if MAX_CONCURRENT_UPLOADS < 1:
    raise RuntimeError("MAX_CONCURRENT_UPLOADS must be at least 1")

if MAX_BULK_ITEMS < 1:
    raise RuntimeError("MAX_BULK_ITEMS must be at least 1")
