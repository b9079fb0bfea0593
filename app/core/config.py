from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


def _first_present(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


class Settings(BaseSettings):
    """
    All config comes from the environment / .env file.
    Change values in .env and they apply everywhere.
    """

    # ── Database ──────────────────────────────────────────
    DATABASE_URL: str                     # asyncpg, used by FastAPI
    DATABASE_SYNC_URL: str | None = None  # psycopg2, used only by Alembic
    DB_AUTO_CREATE: bool = False          # create tables on startup (dev / tests)

    # ── Session JWT ───────────────────────────────────────
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_SECONDS: int = 60 * 60 * 24 * 7
    SESSION_COOKIE_NAME: str = "session"

    # ── OTP ───────────────────────────────────────────────
    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 300
    OTP_MAX_ATTEMPTS: int = 5
    OTP_HASH_ROUNDS: int = 10

    # ── Email (Brevo / Sendinblue) ────────────────────────
    SENDINBLUE_API_KEY: str | None = None
    EMAIL_FROM: str = "no-reply@example.com"
    EMAIL_FROM_NAME: str = "First Movers"

    # ── OAuth ─────────────────────────────────────────────
    GITHUB_CLIENT_ID: str | None = None
    GITHUB_CLIENT_SECRET: str | None = None
    GITHUB_REDIRECT_URI: str | None = None
    OAUTH_STATE_SECRET: str | None = None
    OAUTH_STATE_MAX_AGE_SECONDS: int = 600

    # ── Auth bypass (tests / service-to-service) ──────────
    ALLOW_UNAUTHENTICATED: bool = False
    BYPASS_USER_ID: str | None = None
    BYPASS_USER_EMAIL: str | None = None
    TEST_USER_ID: str | None = None
    TEST_USER_EMAIL: str | None = None

    # ── CORS ──────────────────────────────────────────────
    CORS_ALLOWED_ORIGINS: str = ""

    # ── App ───────────────────────────────────────────────
    APP_ENV: str = "production"
    APP_URL: str = "http://localhost:3000"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

    @property
    def origins_list(self) -> list[str]:
        """Allow-list in production, wildcard everywhere else."""
        if not self.is_production:
            return ["*"]
        return [o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def otp_ttl_seconds(self) -> int:
        return self.OTP_TTL_SECONDS if self.OTP_TTL_SECONDS > 0 else 300

    @property
    def otp_max_attempts(self) -> int:
        return self.OTP_MAX_ATTEMPTS if self.OTP_MAX_ATTEMPTS > 0 else 5

    @property
    def bypass_user_id(self) -> str | None:
        return _first_present(self.BYPASS_USER_ID, self.TEST_USER_ID)

    @property
    def bypass_user_email(self) -> str | None:
        return _first_present(self.BYPASS_USER_EMAIL, self.TEST_USER_EMAIL)

    @property
    def state_secret(self) -> str:
        return self.OAUTH_STATE_SECRET or self.JWT_SECRET


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Single instance used across the entire app
settings = get_settings()
