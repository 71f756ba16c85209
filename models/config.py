import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _get_float(key: str) -> Optional[float]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


@dataclass
class Config:
    """Configuration model - runtime settings read from the environment"""
    # Document store config
    def _build_redis_url() -> str:
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            return redis_url
        host = os.getenv("REDIS_HOST")
        if host:
            port = os.getenv("REDIS_PORT", "6379")
            db = os.getenv("REDIS_DB", "0")
            password = os.getenv("REDIS_PASSWORD", "")
            auth = f":{password}@" if password else ""
            return f"redis://{auth}{host}:{port}/{db}"
        return "redis://localhost:6379/0"

    REDIS_URL: str = _build_redis_url()
    KEY_PREFIX: str = os.getenv("KEY_PREFIX", "crm:")
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "redis")  # redis | memory

    # Session config
    TENANT_ID: str = os.getenv("TENANT_ID", "")
    ADMIN_NAME: str = os.getenv("ADMIN_NAME", "Admin")
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")

    # Green API config
    GREEN_API_HOST: str = os.getenv("GREEN_API_HOST", "api.green-api.com")
    GREEN_API_COUNTRY_CODE: str = os.getenv("GREEN_API_COUNTRY_CODE", "91")
    GREEN_API_CHAT_SUFFIX: str = os.getenv("GREEN_API_CHAT_SUFFIX", "@c.us")
    GREEN_API_TIMEOUT: Optional[float] = _get_float("GREEN_API_TIMEOUT")  # None = no timeout

    # Runtime config
    STATUS_INTERVAL: int = int(os.getenv("STATUS_INTERVAL", "60"))  # seconds
    DEFAULT_TZ: str = os.getenv("DEFAULT_TZ", "UTC")  # applied to naive timestamps
    LOG_LEVEL: str = _get_log_level()
