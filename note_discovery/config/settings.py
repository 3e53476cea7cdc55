"""Application settings and configuration management."""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = Field(default="Note Discovery")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    workers: int = Field(default=1)

    # Search Configuration
    fuzzy_threshold: float = Field(default=0.3, gt=0.0, le=1.0)
    title_weight: float = Field(default=1.0, ge=0.0)
    description_weight: float = Field(default=0.6, ge=0.0)
    tags_weight: float = Field(default=0.6, ge=0.0)
    subject_weight: float = Field(default=0.3, ge=0.0)
    author_weight: float = Field(default=0.3, ge=0.0)
    field_penalty: float = Field(default=0.05, ge=0.0, le=1.0)
    max_results: int = Field(default=50)
    max_query_length: int = Field(default=200)

    # Corpus
    corpus_path: Optional[str] = Field(default=None)  # JSON export; packaged sample when unset
    corpus_ttl_seconds: Optional[float] = Field(default=300.0)
    corpus_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Ledger
    ledger_lock_timeout_seconds: float = Field(default=2.0, gt=0.0)
    ledger_max_attempts: int = Field(default=3, ge=1)
    starting_credits: int = Field(default=0, ge=0)  # balance a new account opens with

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080", "http://localhost:5173"]
    )

    # Identity is resolved upstream and forwarded in this header
    user_id_header: str = Field(default="X-User-Id")

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NOTE_DISCOVERY_",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    def field_weights(self) -> Dict[str, float]:
        return {
            "title": self.title_weight,
            "description": self.description_weight,
            "tags": self.tags_weight,
            "subject": self.subject_weight,
            "author": self.author_weight,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
