"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Pawsitive Petsitting"
    app_version: str = "1.0.0"
    debug: bool = True
    public_base_url: str = "http://localhost:5173"  # used for ?session= join links

    # Remote document store
    storage_type: str = "firestore"  # memory, local, firestore
    local_storage_path: str = "./data/sessions"
    firebase_credentials_path: Optional[str] = None
    firebase_project_id: Optional[str] = None
    firestore_database: str = "petdatabase"
    firestore_collection: str = "sessions"

    # Sync engine timings (seconds)
    sync_debounce_seconds: float = 1.0
    sync_notice_seconds: float = 3.0

    # LLM Provider settings (daily summaries)
    llm_provider: str = "gemini"  # "openai" or "gemini"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set

    # Twilio (activity SMS)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/pawsitive.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
