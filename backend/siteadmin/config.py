"""
Application configuration using pydantic-settings.
Loads environment variables from the .env file.
"""
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_prompts() -> dict:
    """Load prompts from prompts.yaml file."""
    prompts_path = Path(__file__).parent.parent / "prompts.yaml"
    if prompts_path.exists():
        with open(prompts_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    return {}


class Settings(BaseSettings):
    """Settings loaded from .env"""

    # Database
    database_path: str = "./data/site.db"

    # JSON stores (AI settings, chat history)
    storage_dir: str = "./data/storage"

    # Authentication
    app_password: str
    jwt_secret: str
    jwt_expiration_hours: int = 24
    admin_actor_id: int = 1

    # Gemini
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout: int = 20

    # Blog
    blog_page_size: int = 10
    blog_related_limit: int = 3
    blog_keep_original_publish_date: bool = False

    # Chat history
    chat_history_max_entries: int = Field(40, ge=1)

    # HTTP rate limiting
    rate_limit_enabled: bool = True
    login_rate_limit: str = "5/minute"
    ai_rate_limit: str = "20/minute"

    # Logging
    log_level: str = "INFO"
    log_file: str = "./data/app.log"

    # Security
    cors_origins: str = "http://localhost:8000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        """Validate JWT_SECRET on init"""
        super().__init__(**kwargs)

        if len(self.jwt_secret) < 32:
            raise ValueError(
                f"JWT_SECRET must be at least 32 characters long. "
                f"Current length: {len(self.jwt_secret)}"
            )

    @property
    def ai_settings_path(self) -> Path:
        return Path(self.storage_dir) / "ai" / "settings.json"

    @property
    def chat_history_dir(self) -> Path:
        return Path(self.storage_dir) / "ai" / "chat"


# Global configuration instance
settings = Settings()

# Prompt templates from the YAML file
prompts = load_prompts()
