from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WRPC_", env_file=".env", extra="ignore")

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # True for production (structured JSON), False for dev (colored)

    # Client
    client_timeout: float = 30.0  # seconds, per request


@lru_cache
def get_settings() -> Settings:
    return Settings()
