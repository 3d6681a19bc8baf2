from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "DesiA11y Scanner"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True

    # ── Database ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./a11y_scans.db"

    # ── Browser ─────────────────────────────────
    CHROMEDRIVER_PATH: Optional[str] = None
    CHROME_BINARY: Optional[str] = None
    NAVIGATION_TIMEOUT_SECONDS: int = 60
    POOLED_NAVIGATION_TIMEOUT_SECONDS: int = 20  # batch scans trade completeness for throughput
    BROWSER_POOL_ENABLED: bool = False
    BROWSER_POOL_SIZE: int = 3

    # ── Checkers ────────────────────────────────
    AXE_SCRIPT_PATH: Optional[str] = None
    AXE_SCRIPT_URL: str = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"
    LIGHTHOUSE_BINARY: str = "lighthouse"
    LIGHTHOUSE_TIMEOUT_SECONDS: int = 180

    # ── Background scans ────────────────────────
    SCAN_WORKER_COUNT: int = 3
    SCAN_QUEUE_MAX_SIZE: int = 500
    SHUTDOWN_TIMEOUT_SECONDS: float = 60.0
    SHUTDOWN_POLL_INTERVAL_SECONDS: float = 1.0

    # ── Discovery ───────────────────────────────
    SITEMAP_MAX_URLS: int = 50
    SITEMAP_TIMEOUT_SECONDS: float = 10.0

    # ── Reports ─────────────────────────────────
    BRAND_NAME: str = "DesiA11y"
    DASHBOARD_URL: str = "http://localhost:3000"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
