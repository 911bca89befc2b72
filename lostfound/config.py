import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lostfound.db")

JWT_SECRET = os.getenv("JWT_SECRET", "your_really_long_secret_key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "").rstrip("/")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")

# Feed and matching windows
CLOSED_FEED_GRACE_DAYS = 7
MATCH_WINDOW_DAYS = 30
MATCH_LIMIT = 5
MATCH_DESCRIPTION_PREFIX = 100

DEFAULT_PICKUP_INSTRUCTIONS = "Please visit the Main Office."


def notification_mode() -> str:
    # read per call so the mode can be flipped without a restart
    return os.getenv("NOTIFICATION_MODE", "both").strip().lower()


def is_testing() -> bool:
    return os.getenv("TESTING") == "1"
