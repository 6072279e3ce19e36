from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file next to the repo, dev JWT secret).
    - Every value can be overridden with a `PORTALE_*` environment variable.
    """

    model_config = SettingsConfigDict(env_prefix="PORTALE_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str = "dev-secret-change-me"
    jwt_access_ttl_minutes: int = 60 * 24

    upload_dir: str | None = None
    notification_retention_days: int = 30

    # Optional first super_admin, created at startup when no user exists yet.
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "portale.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"

    def resolved_upload_dir(self) -> Path:
        if self.upload_dir:
            return Path(self.upload_dir)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "uploads"


@lru_cache
def get_settings() -> Settings:
    return Settings()
