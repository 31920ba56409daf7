from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # Dialect sqlglot uses when classifying generated statements
    SQL_DIALECT: str = "postgres"

    QUERY_TEMPERATURE: float = 0.1
    QUERY_MAX_OUTPUT_TOKENS: int = 1024
    PREVIEW_ROW_LIMIT: int = 10

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DATABASE_URL")
    @classmethod
    def use_async_driver(cls, value: str) -> str:
        # Plain postgres URLs (the usual DATABASE_URL form) need the asyncpg driver
        for prefix in ("postgres://", "postgresql://"):
            if value.startswith(prefix):
                return "postgresql+asyncpg://" + value[len(prefix):]
        return value


# Create a single instance of the settings to use everywhere
settings = Settings()
