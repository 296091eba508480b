# localpress/config.py
import os

from dotenv import load_dotenv

load_dotenv()


def _env_true(v) -> bool:
    return str(v).lower() in {"1", "true", "yes", "y"}


# ===============================
# DATABASE
# ===============================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./localpress.db")
SQL_ECHO = _env_true(os.getenv("SQL_ECHO", "0"))

# ===============================
# AUTH
# ===============================
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-please-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days
TOKEN_COOKIE_NAME = "localpress_token"

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")
COOKIE_SECURE = _env_true(os.getenv("COOKIE_SECURE", "0"))

# ===============================
# SITE / EMAIL
# ===============================
SITE_NAME = os.getenv("SITE_NAME", "Spring-Ford Press")
SITE_URL = os.getenv("SITE_URL", "https://www.springford.press").rstrip("/")

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "admin@dpjmedia.com")
SENDGRID_FROM_NAME = os.getenv("SENDGRID_FROM_NAME", SITE_NAME)

FORMSPREE_ENDPOINT = os.getenv("FORMSPREE_ENDPOINT")

# ===============================
# PAYMENTS
# ===============================
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
MIN_AMOUNT_CENTS = 500  # $5
MAX_AMOUNT_CENTS = 100_000  # $1000

# ===============================
# MISC
# ===============================
GEOLOCATION_URL = os.getenv("GEOLOCATION_URL", "https://ipapi.co")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "8"))

# 0 turns the background publisher off
PUBLISH_INTERVAL_SECONDS = int(os.getenv("PUBLISH_INTERVAL_SECONDS", "30"))

AVATAR_DIR = os.getenv("AVATAR_DIR", "./storage/avatars")
LOG_LEVEL = os.getenv("LOCALPRESS_LOG_LEVEL", "INFO")
