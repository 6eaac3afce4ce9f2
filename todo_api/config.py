from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    database_url: str

    # Security
    SECRET_KEY: str = "change-me-to-a-long-random-secret-value"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Blob storage (local disk)
    STORAGE_DIR: str = "./storage"
    STORAGE_PREFIX: str = ""
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Subtask traversal
    DEFAULT_SUBTASK_DEPTH: int = 3
    MAX_SUBTASK_DEPTH: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    AUTO_CREATE_TABLES: bool = True
    CORS_ORIGIN_REGEX: str = "https?://.*"

    class Config:
        env_file = ".env"
        frozen = True

settings = Settings()
