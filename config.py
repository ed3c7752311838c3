"""
Runtime settings for the proctoring portal.

Everything is read from environment variables (a local ``.env`` file is
honoured through python-dotenv). Settings are resolved once at process start
and handed to ``create_app``.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

# Names of the options exposed to the browser, in the order the client SDK expects them.
WEB_CONFIG_KEYS = (
    ("apiKey", "FIREBASE_API_KEY"),
    ("authDomain", "FIREBASE_AUTH_DOMAIN"),
    ("projectId", "FIREBASE_PROJECT_ID"),
    ("storageBucket", "FIREBASE_STORAGE_BUCKET"),
    ("messagingSenderId", "FIREBASE_MESSAGING_SENDER_ID"),
    ("appId", "FIREBASE_APP_ID"),
    ("measurementId", "FIREBASE_MEASUREMENT_ID"),
)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    database_name: str = "proctoring"
    service_account: Optional[str] = None
    web_config: Tuple[Tuple[str, Optional[str]], ...] = ()
    admin_emails: FrozenSet[str] = field(default_factory=frozenset)
    secret_key: str = "dev-secret-key-change-me"
    jwt_exp_min: int = 60
    require_admin_session: bool = False
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"
    port: int = 5000
    templates_dir: Path = BASE_DIR / "templates"
    script_templates_dir: Path = BASE_DIR / "config_templates"

    def web_options(self) -> dict:
        return dict(self.web_config)


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _coerce_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _coerce_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build ``Settings`` from the process environment.

    ``env_file`` points at an alternative dotenv file; variables already set in
    the environment always win over the file.
    """
    load_dotenv(dotenv_path=env_file)

    service_account = os.getenv("FIREBASE_SERVICE_ACCOUNT")
    if not service_account:
        local_key = BASE_DIR / "serviceAccountKey.json"
        if local_key.exists():
            service_account = str(local_key)

    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        database_name=os.getenv("DATABASE_NAME", "proctoring"),
        service_account=service_account or None,
        web_config=tuple((key, os.getenv(env_name) or None) for key, env_name in WEB_CONFIG_KEYS),
        admin_emails=frozenset(email.lower() for email in _split_csv(os.getenv("ADMIN_EMAILS"))),
        secret_key=os.getenv("SECRET_KEY", "dev-secret-key-change-me"),
        jwt_exp_min=_coerce_int(os.getenv("JWT_EXP_MIN"), 60),
        require_admin_session=_coerce_bool(os.getenv("REQUIRE_ADMIN_SESSION"), False),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")) or ("*",),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        port=_coerce_int(os.getenv("PORT"), 5000),
    )
