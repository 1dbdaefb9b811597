"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Document store (case/event/activity/user documents)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "caseops"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # PII store (relational patient API reached over HTTP)
    PII_API_URL: str = "http://localhost:8080"
    PII_API_TIMEOUT_SECONDS: float = 10.0

    # Per-lookup bound for enrichment joins (PII + identity)
    ENRICHMENT_TIMEOUT_SECONDS: float = 5.0

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Local calendar day used for date-range filters and the month grid
    DEFAULT_TIMEZONE: str = "UTC"

    # List page size (events, cases, users, activity log)
    PAGE_SIZE: int = 10

    # Google Calendar (best-effort mirror of console events)
    GOOGLE_CALENDAR_ENABLED: bool = False
    GOOGLE_CALENDAR_ID: str = "primary"
    GOOGLE_CALENDAR_TIMEOUT_SECONDS: float = 10.0
    GOOGLE_CALENDAR_EVENT_MINUTES: int = 60

    # Creator ids whose identity document was removed, mapped to their email.
    # JSON object in the environment, e.g. '{"uid123": "admin@example.com"}'
    LEGACY_IDENTITY_EMAILS: dict[str, str] = {}

    # Enriched event collection is reloaded once it is older than this
    EVENT_REPOSITORY_TTL_SECONDS: int = 60

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
