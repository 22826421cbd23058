from typing import Optional
from urllib.parse import quote_plus
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Basic configuration ---
    APP_NAME: str = "mongo-uow"
    APP_ENV: str = "development"  # development, production, testing

    # --- Document store (MongoDB) ---
    MONGO_HOST: str = "localhost"
    MONGO_PORT: int = 27017
    MONGO_USER: Optional[str] = None
    MONGO_PASSWORD: Optional[str] = None
    MONGO_DB: str = "app_db"
    MONGO_REPLICA_SET: Optional[str] = None  # Transactions need a replica set or mongos

    @property
    def MONGO_URL(self) -> str:
        # Build MongoDB connection URL
        auth = ""
        if self.MONGO_USER:
            safe_password = quote_plus(self.MONGO_PASSWORD or "")
            auth = f"{quote_plus(self.MONGO_USER)}:{safe_password}@"
        url = f"mongodb://{auth}{self.MONGO_HOST}:{self.MONGO_PORT}/{self.MONGO_DB}"
        if self.MONGO_REPLICA_SET:
            url += f"?replicaSet={self.MONGO_REPLICA_SET}"
        return url

    # --- Unit of work ---
    USE_TRANSACTIONS: bool = True  # Default for get_repository(with_transaction=None)

    # --- Repository cache ---
    CACHE_MAX_ENTRIES: int = 10000
    CACHE_TTL_SECONDS: Optional[float] = None  # None disables expiry

    # --- Repositories ---
    DEFAULT_PAGE_SIZE: int = 10
    SOFT_DELETE: bool = True

    # --- Logging ---
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # --- Pydantic ---
    # Load env from project root .env; priority: env vars > .env > defaults
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


# Singleton settings instance
settings = Settings()
