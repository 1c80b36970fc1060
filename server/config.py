# server/config.py

import os
import logging
import secrets
from dataclasses import dataclass, field
from dotenv import load_dotenv


load_dotenv()

logger = logging.getLogger(__name__)


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """
    Runtime configuration read from the environment (and .env).
    The storage backend is Mongo when a MONGODB_URI is present, SQL otherwise.
    """
    app_env: str = "development"
    jwt_secret_key: str | None = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    database_url: str = "sqlite:///./data/app.db"
    mongodb_uri: str | None = None
    mongodb_db: str = "weather_dashboard"
    openai_api_key: str | None = None
    insight_model: str = "gpt-4o-mini"
    static_dir: str = "dist"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            app_env=os.getenv("APP_ENV", "development").strip().lower(),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY") or None,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24))),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./data/app.db"),
            mongodb_uri=os.getenv("MONGODB_URI") or None,
            mongodb_db=os.getenv("MONGODB_DB", "weather_dashboard"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            insight_model=os.getenv("INSIGHT_MODEL", "gpt-4o-mini"),
            static_dir=os.getenv("STATIC_DIR", "dist"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def use_mongo(self) -> bool:
        return bool(self.mongodb_uri)

    def resolve_secret(self) -> str:
        """
        Returns the token signing secret.
        Production refuses to start without one; development falls back
        to a random secret that only lives as long as the process.
        """
        if self.jwt_secret_key:
            return self.jwt_secret_key
        if self.is_production:
            raise RuntimeError("JWT_SECRET_KEY must be set when APP_ENV=production")
        logger.warning("JWT_SECRET_KEY not set, using an ephemeral secret (tokens reset on restart)")
        self.jwt_secret_key = secrets.token_urlsafe(32)
        return self.jwt_secret_key
