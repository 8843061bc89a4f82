"""Pulseboard — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── Remote backend (tier 1) ──
    api_base_url: str = "http://localhost:8000"
    api_session_cookie: Optional[str] = None
    tier_timeout_seconds: float = 5.0

    # ── Local fallback cache (tier 3) ──
    cache_path: str = "./.pulseboard_cache.json"

    # ── Mock data ──
    mock_seed: Optional[int] = None
    mock_platforms: str = "instagram,twitter,facebook,linkedin"
    mock_history_days: int = 90
    default_user_email: str = "user@example.com"
    default_user_password: str = "password123"

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    metrics_refresh_hour: int = 3  # Daily refresh at 3 AM

    @property
    def effective_database_url(self) -> str:
        """Return the configured async URL, otherwise fall back to SQLite."""
        if self.database_url:
            url = self.database_url
            if url.startswith("postgresql://"):
                return url.replace("postgresql://", "postgresql+asyncpg://", 1)
            if url.startswith("sqlite:///"):
                return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
            return url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite+aiosqlite:////tmp/pulseboard.db"
        return "sqlite+aiosqlite:///./pulseboard.db"

    @property
    def mock_platform_list(self) -> list[str]:
        return [p.strip().lower() for p in self.mock_platforms.split(",") if p.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
