"""Configuration management for JobSprint Autofill."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Matching Configuration
    similarity_threshold: float = Field(0.6, ge=0.0, le=1.0, description="Minimum (exclusive) Jaccard score for a match")
    min_question_length: int = Field(3, description="Prompts shorter than this are skipped")
    max_question_length: int = Field(300, description="Cleaned prompts are truncated to this length")
    
    # Session Defaults
    auto_playback: bool = Field(False, description="Apply matches without asking for approval")
    auto_proceed: bool = Field(False, description="Click a Next/Continue control once a form is done")
    auto_proceed_delay: float = Field(2.0, ge=0.0, description="Visible delay before auto-proceed in seconds")
    
    # Knowledge Base Configuration
    knowledge_base_path: str = Field("./data/qa_database.json", description="JSON knowledge base location")
    
    # Browser Configuration
    browser_headless: bool = Field(True, description="Run browser in headless mode")
    browser_user_data_dir: Optional[str] = Field(None, description="Browser user data directory")
    
    # Application Configuration
    debug: bool = Field(False, description="Enable debug mode")
    log_level: str = Field("INFO", description="Logging level")
    event_history_size: int = Field(500, description="Session events kept per session")


# Global settings instance
settings = Settings()
