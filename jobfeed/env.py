import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .logger import get_logger

DEFAULT_DB_PATH = "data/jobfeed.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_PAGE_SIZE = 100


def load_env(env_path: Optional[Path] = None) -> bool:
    """Load .env from the working directory if present.

    Variables already set in the environment win over the file.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        get_logger().warning("Invalid integer in environment, using default", variable=name, value=raw, default=default)
        return default
    if value < 1:
        get_logger().warning("Non-positive integer in environment, using default", variable=name, value=raw, default=default)
        return default
    return value


class Settings:
    """Runtime settings read from the environment."""

    def __init__(self):
        self.db_path = Path(os.getenv("JOBFEED_DB_PATH") or DEFAULT_DB_PATH)
        self.log_level = (os.getenv("JOBFEED_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
        self.log_dir = Path(os.getenv("JOBFEED_LOG_DIR") or DEFAULT_LOG_DIR)
        self.page_size = _int_env("JOBFEED_PAGE_SIZE", DEFAULT_PAGE_SIZE)
        self.max_page_size = _int_env("JOBFEED_MAX_PAGE_SIZE", DEFAULT_MAX_PAGE_SIZE)
        if self.page_size > self.max_page_size:
            self.page_size = self.max_page_size

    def as_dict(self) -> dict:
        return {
            "db_path": str(self.db_path),
            "log_level": self.log_level,
            "log_dir": str(self.log_dir),
            "page_size": self.page_size,
            "max_page_size": self.max_page_size,
        }


def get_settings() -> Settings:
    return Settings()
