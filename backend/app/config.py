"""
Application configuration from environment variables.
Loads .env from the backend directory so secrets are found regardless of cwd.
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to backend/ (parent of app/): load explicitly so values are set even when run from repo root
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    from dotenv import load_dotenv
    load_dotenv(_ENV_FILE, override=False)
else:
    # Fallback: try backend/.env relative to cwd (e.g. when running from repo root)
    import os
    _cwd_env = Path(os.getcwd()) / "backend" / ".env"
    if _cwd_env.exists():
        from dotenv import load_dotenv
        load_dotenv(_cwd_env, override=False)


class Settings(BaseSettings):
    """Load and validate config from env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database: sqlite for local runs and tests, postgresql for production
    database_url: str = "sqlite:///./lms_dev.db"

    # Environment: set ENV=production in production; used to enforce SECRET_KEY and cookie flags.
    env: str = ""

    # JWT carried in an httpOnly cookie. In production (ENV=production), SECRET_KEY must be set.
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7
    auth_cookie_name: str = "token"

    # Single pass mark used by scoring, the retake gate, certificate eligibility and analytics.
    pass_threshold_percent: int = 40
    # Minutes allowed for a course test when the course does not set one.
    default_test_time_limit: int = 20
    # Attempt append: retries after a duplicate attempt_number (concurrent submit).
    attempt_append_retries: int = 5

    # Test-taking client: seconds between a violation warning and the restart.
    violation_restart_delay_seconds: int = 2

    # CORS: comma-separated origins
    cors_origins: str = "http://localhost:5173"

    debug: bool = False

    @field_validator("pass_threshold_percent")
    @classmethod
    def _threshold_in_range(cls, v: int) -> int:
        if v < 0 or v > 100:
            raise ValueError("pass_threshold_percent must be between 0 and 100")
        return v

    @property
    def is_production(self) -> bool:
        return (self.env or "").strip().lower() == "production"


settings = Settings()
