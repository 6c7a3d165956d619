"""
Oasis Configuration
Database, token and server settings read from the environment
"""

import os
import re
from datetime import timedelta
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TOKEN_LIFETIME = "7d"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or malformed"""


def parse_duration(value: str) -> timedelta:
    """
    Parse a token lifetime such as "7d", "12h", "30m" or "3600"
    Plain numbers are seconds.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class Settings:
    """
    Process-wide settings
    JWT_SECRET_KEY has no fallback: the app refuses to start without it.
    """

    def __init__(self):
        self.mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        self.mongo_db_name = os.getenv("MONGO_DB_NAME", "oasis_elearning")

        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY")
        if not self.jwt_secret_key:
            raise ConfigurationError("JWT_SECRET_KEY must be set")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expires_in = parse_duration(os.getenv("JWT_EXPIRES_IN", DEFAULT_TOKEN_LIFETIME))

        self.cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
