import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


API_URL = os.getenv("CARTSMART_API_URL", "http://localhost:5000").rstrip("/")
SESSION_COOKIE = os.getenv("CARTSMART_SESSION_COOKIE")
USER_ID = _int_env("CARTSMART_USER_ID", 0)
PAGE_SIZE = _int_env("CARTSMART_PAGE_SIZE", 10)
REQUEST_TIMEOUT = _int_env("CARTSMART_REQUEST_TIMEOUT", 30)
