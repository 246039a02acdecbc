# app/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through), nothing is read from a file here.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_PROD: str = ""
    DATABASE_URL_LOCAL: str = "sqlite:///./fundraiser.db"

    # --- Auth ---
    JWT_SECRET: str = "change-me"
    INTERNAL_API_KEY: str = ""

    # --- Stripe ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_VERSION: str = "2023-10-16"
    STRIPE_MAX_NETWORK_RETRIES: int = 2

    # --- Resend (outbound email) ---
    RESEND_API_KEY: str = ""
    RESEND_FROM_DOMAIN: str = "example.org"
    RESEND_FROM_NAME: str = "Fundraising MVP"
    EMAIL_EVENTS_WEBHOOK_SECRET: str = ""

    # Public site used for donate links and checkout redirects
    FRONTEND_URL: str = ""

    # --- Drip outreach ---
    SCHEDULER_ENABLED: bool = False
    DRIP_SWEEP_INTERVAL_MINUTES: int = 15
    DRIP_SEND_MAX_WORKERS: int = 8
    DRIP_SEND_TIMEOUT_SECONDS: float = 60.0
    DEFAULT_ORG_TIME_ZONE: str = "America/Los_Angeles"
    MAIL_OUTBOX_BATCH_SIZE: int = 50
    MAIL_OUTBOX_INTERVAL_SECONDS: int = 60

    # --- Payment webhook ---
    WEBHOOK_TIMEOUT_SECONDS: float = 20.0

    # --- Rollups ---
    ROLLUP_TIME_ZONE: str = "America/Los_Angeles"
    ROLLUP_HOUR: int = 2

    # --- Dynamic Properties ---
    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )

    @property
    def EMAIL_FROM(self) -> str:
        return f"{self.RESEND_FROM_NAME} <no-reply@{self.RESEND_FROM_DOMAIN}>"


# Create a single instance of the settings
settings = Settings()
