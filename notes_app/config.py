from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Notes App settings.

    All values are loaded from environment variables.
    A .env file in the project directory is also supported.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Managed backend ---
    BACKEND_URL: str = "http://localhost:4000"
    BACKEND_API_KEY: str = ""
    BACKEND_OUTPUTS_PATH: str = "backend_outputs.json"  # Generated client config, wins over URL/key
    BACKEND_TIMEOUT: float = 30.0

    # --- Storage ---
    STORAGE_KEY_PREFIX: str = "notes"
    SIGNED_URL_EXPIRES_IN: int = 900  # seconds

    # --- JWT ---
    JWT_SECRET: str = "change-this-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- CORS ---
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def cors_origins(self) -> list[str]:
        """Split the comma-separated CORS origin list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings singleton."""
    return Settings()
