from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """
    Connection and page settings, read from the environment or a .env file.

    DATABASE_URL wins when set; otherwise the URL is assembled from the DB_* values.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: Optional[str] = None
    DB_DRIVER: str = "postgresql+psycopg2"
    DB_HOST: str = "localhost"
    DB_PORT: Optional[int] = None
    DB_USER: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_NAME: str = "lampdb"

    PAGE_TITLE: str = "Visit Counter Test Page"
    LOG_LEVEL: str = "INFO"

    # Uniquement pour la création des tables au démarrage, jamais par requête
    SCHEMA_RETRY_ATTEMPTS: int = 5
    SCHEMA_RETRY_WAIT_SECONDS: float = 2

    SERVER_SOFTWARE: str = "Uvicorn"
    PORT: str = "8000"
    CONTAINER_NAME: str = "Visit Counter"

    def sqlalchemy_url(self) -> URL:
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)
        return URL.create(
            self.DB_DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    def database_name(self) -> str:
        return self.sqlalchemy_url().database or self.DB_NAME
