"""
Application settings.

This is the ONLY module that reads environment variables. A local `.env`
is loaded first if present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./shop.db"
    database_echo: bool = False
    # Create missing tables on startup (local dev / tests)
    create_tables: bool = True

    # Outgoing mail. With no host configured, messages are only logged.
    smtp_host: Optional[str] = None
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    admin_email: Optional[str] = None

    password_schemes: List[str] = field(default_factory=lambda: ["bcrypt"])
    log_level: str = "INFO"
    port: int = 8000

    @property
    def mail_enabled(self) -> bool:
        return bool(self.smtp_host)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _getbool(name: str, default: bool) -> bool:
    return (_getenv(name, "true" if default else "false") or "").lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    load_dotenv(override=False)

    smtp_user = _getenv("EMAIL_USER")
    schemes = [s.strip() for s in (_getenv("PASSWORD_SCHEMES", "bcrypt") or "bcrypt").split(",") if s.strip()]

    return Settings(
        database_url=_getenv("DATABASE_URL", "sqlite:///./shop.db") or "",
        database_echo=_getbool("DATABASE_ECHO", False),
        create_tables=_getbool("CREATE_TABLES", True),
        smtp_host=_getenv("SMTP_HOST"),
        smtp_port=int(_getenv("SMTP_PORT", "465") or 465),
        smtp_user=smtp_user,
        smtp_password=_getenv("EMAIL_PASS"),
        admin_email=_getenv("ADMIN_EMAIL") or smtp_user,
        password_schemes=schemes,
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        port=int(_getenv("PORT", "8000") or 8000),
    )
