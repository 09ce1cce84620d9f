"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Slack Web API
    slack_bot_token: str = Field(default="", alias="SLACK_BOT_TOKEN")
    slack_api_base: str = Field(default="https://slack.com/api", alias="SLACK_API_BASE")
    slack_request_timeout_seconds: float = Field(
        default=30.0, alias="SLACK_REQUEST_TIMEOUT_SECONDS"
    )

    # Gemini Image Generation
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-3-pro-image-preview", alias="GEMINI_MODEL")
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_API_BASE"
    )
    gemini_request_timeout_seconds: float = Field(
        default=180.0, alias="GEMINI_REQUEST_TIMEOUT_SECONDS"
    )

    # Files
    output_dir: str = Field(default="./generated-images", alias="OUTPUT_DIR")
    template_dir: str = Field(default=".", alias="TEMPLATE_DIR")
    public_image_prefix: str = Field(default="/images/", alias="PUBLIC_IMAGE_PREFIX")

    # Job pipeline
    max_concurrent_jobs: int = Field(default=20, ge=1, alias="MAX_CONCURRENT_JOBS")
    seen_events_capacity: int = Field(default=100, ge=1, alias="SEEN_EVENTS_CAPACITY")
    generation_max_attempts: int = Field(default=3, ge=1, alias="GENERATION_MAX_ATTEMPTS")
    generation_base_delay_seconds: float = Field(
        default=2.0, ge=0, alias="GENERATION_BASE_DELAY_SECONDS"
    )
    generation_jitter_seconds: float = Field(default=1.0, ge=0, alias="GENERATION_JITTER_SECONDS")
    generation_timeout_seconds: float = Field(
        default=120.0, gt=0, alias="GENERATION_TIMEOUT_SECONDS"
    )
    mention_persona: str = Field(default="tmai", alias="MENTION_PERSONA")

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with a clear error message if the Slack or Gemini credentials
        are missing. Validation is skipped in test environments.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if not self.slack_bot_token:
            missing.append(
                "SLACK_BOT_TOKEN: Bot User OAuth Token from your Slack app's OAuth & Permissions page"
            )

        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY: Create a key at https://aistudio.google.com/apikey")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            error_msg += "\nPlease update your .env file and restart."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if settings.app_env == "production":
        # JSON output for production (log aggregation)
        processors = [
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
