# leadsheets/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = ROOT / ".env"

DEFAULT_APP_NAME = "SmartSheetConnect"
DEFAULT_ORGANIZATION = "Your Organization"
DEFAULT_NOTIFICATION_EMAIL = "info@lifesavertech.ca"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

GOOGLE_CREDENTIAL_VARS = ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN")


def _as_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in ("1", "true", "yes", "y", "on")


def _as_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, default)).strip())
    except Exception:
        return default


def _as_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, default)).strip())
    except Exception:
        return default


def _as_str(name: str, *fallbacks: str) -> str | None:
    """First non-blank value among `name` and `fallbacks`, stripped."""
    for key in (name, *fallbacks):
        val = (os.getenv(key) or "").strip()
        if val:
            return val
    return None


def _parse_origins(raw: str | None) -> list[str]:
    """
    Accepts:  'https://a.example,https://b.example'
    Returns:  ['https://a.example', 'https://b.example']
    """
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


@dataclass(frozen=True)
class Settings:
    # App
    env: str = "development"
    app_name: str = DEFAULT_APP_NAME
    host: str = "localhost"
    port: int = 5000
    tz: str = "America/New_York"
    allowed_origins: list[str] = field(default_factory=list)

    # Spreadsheet destination
    organization_name: str = DEFAULT_ORGANIZATION
    spreadsheet_id: str | None = None
    persist_spreadsheet_id: bool = True
    env_file: Path = DEFAULT_ENV_FILE

    # Google OAuth (credential triple + bootstrap)
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_refresh_token: str | None = None
    google_token_uri: str = DEFAULT_TOKEN_URI
    google_redirect_uri: str | None = None
    google_http_timeout: float = 10.0

    # Notifications
    notification_email: str = DEFAULT_NOTIFICATION_EMAIL
    email_dry_run: bool = False
    slack_webhook_url: str | None = None
    slack_timeout: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_dir: Path = ROOT / "logs"

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def spreadsheet_title(self) -> str:
        return f"{self.app_name} - {self.organization_name} - Website Form Leads"

    def missing_google_credentials(self) -> list[str]:
        values = (self.google_client_id, self.google_client_secret, self.google_refresh_token)
        return [name for name, val in zip(GOOGLE_CREDENTIAL_VARS, values) if not (val or "").strip()]

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        """
        Load `.env` (if present) into the process env, then build Settings.
        Values already exported in the environment win over the file.
        """
        path = Path(env_file or os.getenv("ENV_FILE") or DEFAULT_ENV_FILE)
        load_dotenv(path)

        env = _as_str("ENV", "NODE_ENV") or "development"
        origins = _parse_origins(os.getenv("ALLOWED_ORIGINS"))
        if not origins and env.lower() != "production":
            origins = ["*"]

        return cls(
            env=env,
            app_name=_as_str("APP_NAME") or DEFAULT_APP_NAME,
            host=_as_str("HOST") or "localhost",
            port=_as_int("PORT", 5000),
            tz=_as_str("TZ") or "America/New_York",
            allowed_origins=origins,
            organization_name=_as_str("ORGANIZATION_NAME", "COMPANY_NAME") or DEFAULT_ORGANIZATION,
            spreadsheet_id=_as_str("SPREADSHEET_ID"),
            persist_spreadsheet_id=_as_bool("PERSIST_SPREADSHEET_ID", True),
            env_file=path,
            google_client_id=_as_str("GOOGLE_CLIENT_ID"),
            google_client_secret=_as_str("GOOGLE_CLIENT_SECRET"),
            google_refresh_token=_as_str("GOOGLE_REFRESH_TOKEN"),
            google_token_uri=_as_str("GOOGLE_TOKEN_URI") or DEFAULT_TOKEN_URI,
            google_redirect_uri=_as_str("GOOGLE_OAUTH_REDIRECT_URI"),
            google_http_timeout=_as_float("GOOGLE_HTTP_TIMEOUT", 10.0),
            notification_email=_as_str("NOTIFICATION_EMAIL") or DEFAULT_NOTIFICATION_EMAIL,
            email_dry_run=_as_bool("EMAIL_DRY_RUN", False),
            slack_webhook_url=_as_str("SLACK_WEBHOOK_URL"),
            slack_timeout=_as_float("SLACK_TIMEOUT", 5.0),
            log_level=(_as_str("LOG_LEVEL") or "INFO").upper(),
            log_dir=Path(_as_str("LOG_DIR") or ROOT / "logs"),
        )
