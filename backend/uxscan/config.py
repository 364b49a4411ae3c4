from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Where `uxscan` / `python -m uxscan.main` serves the API
    host: str = "0.0.0.0"
    port: int = 8000

    # Browser / capture
    page_load_timeout: int = 60000  # milliseconds
    max_frames: int = 10
    jpeg_quality: int = 40
    max_frame_width: int = 1440  # wider frames are downscaled before upload

    # Scan speed: wait between scroll and next capture
    default_delay: int = 1000  # milliseconds
    max_delay: int = 10000  # milliseconds

    # Gemini call ceiling (single attempt, no retry)
    audit_timeout: int = 180  # seconds

    # Optional frame persistence; empty disables writes
    audit_dir: str = ""

    # How often the API checks whether the client hung up
    disconnect_poll_interval: float = 0.25  # seconds

    class Config:
        # Look for .env in the repo root (two levels up from backend/uxscan/)
        # In deployment env vars are injected directly, .env is optional
        _env_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file = _env_path if os.path.exists(_env_path) else None
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
