from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.exceptions import ConfigurationError
from src.shared import constants

REQUIRED_ENV_VARS = [
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_ENDPOINT",
]


class LoggingSettings(BaseSettings):
    """
    Settings needed before anything else is configured.
    Has no required fields so the logger can always be imported.
    """

    LOG_LEVEL: str = Field(validation_alias="LOG_LEVEL", default="INFO")
    ENVIRONMENT: str = Field(validation_alias="ENVIRONMENT", default="dev")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class WorkerSettings(BaseSettings):
    """
    Centralized configuration for the fulfillment worker.
    Reads from environment variables and .env file.
    """

    # --- Cloudflare R2 (S3 compatible) ---
    R2_ACCOUNT_ID: str = Field(validation_alias="R2_ACCOUNT_ID")
    R2_ACCESS_KEY_ID: str = Field(validation_alias="R2_ACCESS_KEY_ID")
    R2_SECRET_ACCESS_KEY: SecretStr = Field(validation_alias="R2_SECRET_ACCESS_KEY")
    R2_ENDPOINT: str = Field(validation_alias="R2_ENDPOINT")
    R2_BUCKET_NAME: str = Field(validation_alias="R2_BUCKET_NAME", default="comics")
    R2_ORDERS_BUCKET: str = Field(validation_alias="R2_ORDERS_BUCKET", default="orders")

    # --- Watermark API ---
    API_URL: str = Field(validation_alias="API_URL", default="http://localhost:1234")
    WATERMARK_TIMEOUT_SECONDS: float = Field(validation_alias="WATERMARK_TIMEOUT_SECONDS", default=300.0)

    # --- Pub/Sub ---
    PROJECT_ID: str = Field(
        validation_alias=AliasChoices("GOOGLE_CLOUD_PROJECT", "GCP_PROJECT_ID"),
        default="garage-comics",
        description="Google Cloud Project hosting the Pub/Sub topics",
    )
    ORDERS_QUEUE: str = Field(validation_alias="ORDERS_QUEUE", default="orders")
    CONFIRMATION_EMAILS_QUEUE: str = Field(validation_alias="CONFIRMATION_EMAILS_QUEUE", default="confirmation_emails")
    ORDER_CONFIRMATIONS_QUEUE: str = Field(validation_alias="ORDER_CONFIRMATIONS_QUEUE", default="confirmations")
    QUEUE_RETRY_LIMIT: int = Field(validation_alias="QUEUE_RETRY_LIMIT", default=constants.DEFAULT_RETRY_LIMIT)
    QUEUE_MAX_DELIVERY_ATTEMPTS: int = Field(
        validation_alias="QUEUE_MAX_DELIVERY_ATTEMPTS", default=constants.MIN_DELIVERY_ATTEMPTS
    )

    # --- Email ---
    FROM_EMAIL: str = Field(validation_alias="FROM_EMAIL", default="hola@garagecomics.mx")
    GMAIL_TOKEN: SecretStr | None = Field(validation_alias="GMAIL_TOKEN", default=None)

    # --- Local files ---
    WORKER_TMP_DIR: str = Field(validation_alias="WORKER_TMP_DIR", default="tmp")
    PRESIGNED_URL_EXPIRY_HOURS: int = Field(
        validation_alias="PRESIGNED_URL_EXPIRY_HOURS", default=constants.PRESIGNED_URL_EXPIRY_HOURS
    )
    STALE_FILE_MAX_AGE_MINUTES: int = Field(
        validation_alias="STALE_FILE_MAX_AGE_MINUTES", default=constants.STALE_FILE_MAX_AGE_MINUTES
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore undefined env vars in .env
    )

    @field_validator(*REQUIRED_ENV_VARS, mode="before")
    @classmethod
    def _reject_empty(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("QUEUE_MAX_DELIVERY_ATTEMPTS")
    @classmethod
    def _clamp_delivery_attempts(cls, value: int) -> int:
        # Pub/Sub only accepts 5..100 for dead-letter policies
        return max(constants.MIN_DELIVERY_ATTEMPTS, min(value, constants.MAX_DELIVERY_ATTEMPTS))

    @property
    def queue_names(self) -> list[str]:
        return [self.ORDERS_QUEUE, self.CONFIRMATION_EMAILS_QUEUE, self.ORDER_CONFIRMATIONS_QUEUE]

    @property
    def presigned_url_expiry_seconds(self) -> int:
        return self.PRESIGNED_URL_EXPIRY_HOURS * 60 * 60

    @property
    def stale_file_max_age_seconds(self) -> int:
        return self.STALE_FILE_MAX_AGE_MINUTES * 60


def load_settings(env_file: str | None = ".env") -> WorkerSettings:
    """
    Builds WorkerSettings, converting validation failures into a ConfigurationError
    that names every missing or invalid variable.
    """
    try:
        return WorkerSettings(_env_file=env_file)
    except ValidationError as e:
        missing = []
        for error in e.errors():
            loc = error.get("loc") or ("<unknown>",)
            name = str(loc[0])
            if name not in missing:
                missing.append(name)
        raise ConfigurationError(
            f"Missing or invalid required environment variable(s): {', '.join(missing)}",
            original_error=e,
            missing=missing,
        ) from e


# Singleton instance (safe at import time)
log_settings = LoggingSettings()
