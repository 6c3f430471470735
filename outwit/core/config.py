from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Outwit Open"
    debug: bool = False
    log_level: str = "INFO"

    # Database (async driver URL)
    database_url: str = "postgresql+asyncpg://localhost:5432/outwit_open"

    # JWT: tokens are issued by the auth service, we only verify them
    secret_key: str = "change-me"
    algorithm: str = "HS256"

    # CORS: comma-separated origins
    cors_origins: str = "*"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
