"""App settings."""

from pydantic_settings import BaseSettings

from constants import (
    CREDENTIAL_ENCRYPTION_KEY,
    DATABASE_CONNECTION_STRING,
    DATABASE_NAME,
    DEFAULT_MODEL,
    ENVIRONMENT,
    IS_LOCAL,
    LOGGING_LEVEL,
    OPENROUTER_API_URL,
    OPENROUTER_REFERER,
)


class Settings(BaseSettings):
    """API settings configuration."""

    # API settings
    api_title: str = "Kronos AI"
    api_version: str = "1.0.0"
    api_description: str = "Multi-conversation chat backend relaying to OpenRouter"
    host: str = "0.0.0.0"
    port: int = 8000
    is_local: bool = IS_LOCAL
    environment: str = ENVIRONMENT

    # Database settings
    database_connection_string: str = DATABASE_CONNECTION_STRING
    database_name: str = DATABASE_NAME

    # Credential settings
    credential_encryption_key: str = CREDENTIAL_ENCRYPTION_KEY

    # OpenRouter settings
    openrouter_api_url: str = OPENROUTER_API_URL
    openrouter_referer: str = OPENROUTER_REFERER
    openrouter_app_title: str = "Kronos AI"
    chat_max_tokens: int = 4000
    chat_temperature: float = 0.7

    # Timeouts in seconds
    upstream_connect_timeout: float = 10.0
    upstream_read_timeout: float = 120.0
    catalog_timeout: float = 10.0

    # Chat defaults
    default_model: str = DEFAULT_MODEL
    default_conversation_title: str = "New Conversation"

    # Logging
    logging_level: int = LOGGING_LEVEL


settings = Settings()
