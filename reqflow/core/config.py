from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "reqflow"
    version: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DATABASE_DSN: str = "sqlite:////tmp/reqflow.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Used to build absolute links in outbound emails
    APP_BASE_URL: str = "http://localhost:5173"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # SMTP relay; an empty host turns sending into a logged no-op
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_FROM_NAME: str = "Requisitions"

    # Email queue
    EMAIL_QUEUE_BATCH_SIZE: int = 10

    # Item code counters
    ITEM_CODE_DEFAULT_PREFIX: str = "ITEM"
    ITEM_CODE_DEFAULT_PADDING: int = 3
    SEQUENCE_MAX_ATTEMPTS: int = 3
    SEQUENCE_RETRY_BACKOFF_SECONDS: float = 0.05


settings = Settings()
