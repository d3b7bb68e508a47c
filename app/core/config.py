from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    All config comes from .env file (or the process environment).
    Loaded once at startup and frozen; business code receives plain values
    from create_app(), it never reads the environment itself.
    """

    # ── Database ──────────────────────────────────────────
    DATABASE_URL: str               # asyncpg — used by SqlAlchemyAuthStore
    DB_CREATE_TABLES: bool = False  # run metadata.create_all on startup

    # ── JWT ───────────────────────────────────────────────
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # ── Session cookie ────────────────────────────────────
    # Independent of the token's own exp claim
    COOKIE_EXPIRE_DAYS: int = 3

    # ── Credentials ───────────────────────────────────────
    BCRYPT_ROUNDS: int = 12
    OTP_EXPIRE_MINUTES: int = 10

    # ── Rate limiting (auth endpoints only) ───────────────
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_MAX_REQUESTS: int = 5
    TRUST_PROXY_HEADERS: bool = False

    # ── Outbound calls (DB + email) ───────────────────────
    DEPENDENCY_TIMEOUT_SECONDS: float = 10.0

    # ── Email (Brevo / Sendinblue) ────────────────────────
    SENDINBLUE_API_KEY: str = ""
    EMAIL_FROM: str = "no-reply@studynotion.dev"
    EMAIL_FROM_NAME: str = "StudyNotion"

    # ── CORS ──────────────────────────────────────────────
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # ── App ───────────────────────────────────────────────
    APP_ENV: str = "production"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @property
    def origins_list(self) -> list[str]:
        """Splits comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
