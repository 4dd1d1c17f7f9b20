import os
from functools import lru_cache
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

TRUE_VALUES = ("1", "true", "yes", "on")


class Settings(BaseModel):
    storage_backend: str = "memory"
    database_url: str = "sqlite:///./homestyle.db"
    secret_key: str = "supersecretkey"
    algorithm: str = "HS256"
    session_max_age_minutes: int = 60 * 24 * 7
    session_cookie_name: str = "session"
    session_cookie_secure: bool = False
    seed_data: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000

    model_config = {"frozen": True}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from environment variables (``os.environ`` by default)."""
    env = os.environ if environ is None else environ

    database_url = env.get("DATABASE_URL")
    backend = env.get("STORAGE_BACKEND") or ("database" if database_url else "memory")
    origins = [o.strip() for o in env.get("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        storage_backend=backend.lower(),
        database_url=database_url or "sqlite:///./homestyle.db",
        secret_key=env.get("SECRET_KEY", "supersecretkey"),
        session_max_age_minutes=int(env.get("SESSION_MAX_AGE_MINUTES", 60 * 24 * 7)),
        session_cookie_name=env.get("SESSION_COOKIE_NAME", "session"),
        session_cookie_secure=env.get("SESSION_COOKIE_SECURE", "false").lower() in TRUE_VALUES,
        seed_data=env.get("SEED_DATA", "true").lower() in TRUE_VALUES,
        cors_origins=origins or ["*"],
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        port=int(env.get("PORT", 8000)),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
