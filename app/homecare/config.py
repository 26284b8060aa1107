"""
Environment-driven settings. Values come from the process environment, which
create_app() first fills from a .env file via python-dotenv.
"""
import os
from dataclasses import dataclass

PRODUCTION_ENVS = ("prod", "production")


@dataclass(frozen=True)
class StorageSettings:
    backend: str  # "local" or "s3"
    local_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    storage: StorageSettings
    login_rate_limit: int
    login_rate_window_seconds: int

    @property
    def is_production(self) -> bool:
        return self.env.lower() in PRODUCTION_ENVS


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw.isdigit() else default


def load_settings() -> Settings:
    return Settings(
        secret_key=_env("SECRET_KEY", "change-me"),
        env=_env("ENV", "development"),
        database_url=_env("DATABASE_URL", "sqlite:///homecare.db"),
        storage=StorageSettings(
            backend=_env("STORAGE_BACKEND", "local").lower(),
            local_root=_env("STORAGE_LOCAL_ROOT"),
            s3_endpoint=_env("S3_ENDPOINT"),
            s3_region=_env("S3_REGION", "nyc3"),
            s3_bucket=_env("S3_BUCKET"),
            s3_access_key_id=_env("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
        ),
        login_rate_limit=_env_int("LOGIN_RATE_LIMIT", 5),
        login_rate_window_seconds=_env_int("LOGIN_RATE_WINDOW_SECONDS", 300),
    )


def load_config() -> dict:
    """Flask config mapping for the current environment."""
    settings = load_settings()
    st = settings.storage
    return {
        "SECRET_KEY": settings.secret_key,
        "ENV": settings.env,
        "DATABASE_URL": settings.database_url,
        "STORAGE_BACKEND": st.backend,
        "STORAGE_LOCAL_ROOT": st.local_root,
        "S3_ENDPOINT": st.s3_endpoint,
        "S3_REGION": st.s3_region,
        "S3_BUCKET": st.s3_bucket,
        "S3_ACCESS_KEY_ID": st.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": st.s3_secret_access_key,
        "LOGIN_RATE_LIMIT": settings.login_rate_limit,
        "LOGIN_RATE_WINDOW_SECONDS": settings.login_rate_window_seconds,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": settings.is_production,
        # application documents are capped at 10MB per request
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
