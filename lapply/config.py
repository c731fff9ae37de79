import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lapply.db")

# Firebase Configuration (dashboard + admin authentication)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Comma-separated list of emails allowed to use /admin endpoints
ADMIN_EMAILS = [
    email.strip().lower() for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()
]

# Public base URL of the web app (cancel-by-link page, LIFF redirects)
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")

# LINE Messaging API
LINE_API_BASE = os.getenv("LINE_API_BASE", "https://api.line.me/v2/bot")
LINE_REQUEST_TIMEOUT = float(os.getenv("LINE_REQUEST_TIMEOUT", "10"))
LINE_PUSH_MAX_RETRIES = int(os.getenv("LINE_PUSH_MAX_RETRIES", "3"))

# Slot capacity compare-and-swap retries under contention
SLOT_CAS_MAX_ATTEMPTS = int(os.getenv("SLOT_CAS_MAX_ATTEMPTS", "5"))

# Max reminders / step deliveries processed per dispatcher run
DISPATCH_BATCH_SIZE = int(os.getenv("DISPATCH_BATCH_SIZE", "100"))

# Display timezone for LINE messages
DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "Asia/Tokyo")
