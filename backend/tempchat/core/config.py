# tempchat/core/config.py

import base64
import os
import secrets
from pathlib import Path

# =========================
# STORAGE
# =========================

DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'tempchat.db'}")
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10 MB

# =========================
# SESSIONS / AUTH
# =========================

# Fernet key (urlsafe base64, 32 bytes). Without one every restart logs everybody out.
SESSION_SECRET = os.getenv("SESSION_SECRET", "")
SESSION_SECRET_IS_EPHEMERAL = not SESSION_SECRET
if SESSION_SECRET_IS_EPHEMERAL:
    SESSION_SECRET = base64.urlsafe_b64encode(secrets.token_bytes(32)).decode()

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(60 * 60 * 24 * 7)))  # 7 days
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "chat-session")
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"

# Implicit admin account, privileged whether or not it exists in the users table.
# Disabled while ADMIN_PASSWORD is unset.
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or None

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6

# =========================
# DELIVERY
# =========================

STREAM_TICK_SECONDS = float(os.getenv("STREAM_TICK_SECONDS", "1.0"))
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "1.5"))

# =========================
# GIPHY
# =========================

# Server-side key for the GIF picker proxy. The /api/giphy routes answer 500 while unset.
GIPHY_API_KEY = os.getenv("GIPHY_API_KEY", "")
GIPHY_API_URL = os.getenv("GIPHY_API_URL", "https://api.giphy.com/v1/gifs")
GIPHY_TIMEOUT_SECONDS = float(os.getenv("GIPHY_TIMEOUT_SECONDS", "10"))

# =========================
# HTTP
# =========================

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10/minute")
POST_RATE_LIMIT = os.getenv("POST_RATE_LIMIT", "60/minute")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
