import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Explicitly load .env file before defining Settings
env_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
load_dotenv(env_path)


class Settings(BaseSettings):
    PROJECT_NAME: str = "LifeHub"
    API_V1_STR: str = "/api/v1"

    # Database
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./lifehub.db"

    # Security
    SECRET_KEY: str = "YOUR_SECRET_KEY_HERE"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080

    # Share links
    SHARE_LINK_SECRET: str = "YOUR_SHARE_LINK_SECRET_HERE"
    SHARE_LINK_BASE_URL: str = "http://localhost:8899"
    SHARE_TOKEN_LENGTH: int = 32

    # Comma separated string in env, parsed to list. Empty means "*".
    BACKEND_CORS_ORIGINS_STR: str = ""

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True)

    @property
    def BACKEND_CORS_ORIGINS(self) -> List[str]:
        if not self.BACKEND_CORS_ORIGINS_STR:
            return ["*"]
        # Handle potential quote wrapping from env file parsing
        raw_str = self.BACKEND_CORS_ORIGINS_STR.strip('"\'')
        return [o.strip() for o in raw_str.split(",") if o.strip()]


class SeedSettings(BaseSettings):
    """
    Settings for the population script (``python -m lifehub.populate``).
    """
    BASE_URL: str = "http://127.0.0.1:8899"
    API_PREFIX: str = "/api/v1"
    DEFAULT_PASSWORD: str = "Password123!"
    TIMEOUT_SECONDS: float = 10.0
    DATA_FILE: str = "db.json"

    model_config = SettingsConfigDict(case_sensitive=True, env_prefix="SEED_")


settings = Settings()
