#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


def _split_csv(value: str) -> List[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings"""

    # ========== API Keys ==========
    openai_api_key: str = ""
    google_api_key: str = ""  # Gemini
    anthropic_api_key: str = ""
    deepseek_api_key: str = ""

    # ========== Endpoints ==========
    openai_base_url: str = "https://api.openai.com/v1"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    deepseek_base_url: str = "https://api.deepseek.com/v1"

    # ========== Models ==========
    openai_model: str = "gpt-4o"
    openai_image_model: str = "dall-e-3"
    gemini_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    anthropic_model: str = "claude-sonnet-4-20250514"
    deepseek_model: str = "deepseek-chat"

    # ========== Fallback Order ==========
    # Comma-separated, first entry is tried first
    text_provider_order: str = "openai,gemini,anthropic,deepseek"
    image_provider_order: str = "gemini,openai"

    # ========== Deadlines & Retries ==========
    outline_timeout: float = 120.0
    chapter_timeout: float = 180.0
    image_timeout: float = 120.0
    max_retries: int = 2
    retry_base_delay: float = 1.0
    chapter_delay: float = 0.5  # Pause between chapters (rate-limit politeness)

    # ========== Sampling ==========
    temperature: float = 0.7
    max_tokens: int = 8192

    # ========== Publishing ==========
    publisher_name: str = "School of Standard Publisher"
    default_author: str = "Anonymous"
    book_language: str = "en"

    # ========== Persistence ==========
    run_store_enabled: bool = True  # SQLite mirror of runs and chapters
    data_dir: Path = BASE_DIR / "data"
    database_path: Optional[Path] = None
    snapshot_dir: Optional[Path] = None

    # ========== Server ==========
    log_level: str = "INFO"
    cors_origins: str = ""  # Empty = use default dev origins

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.database_path is None:
            self.database_path = self.data_dir / "ebooks.db"
        if self.snapshot_dir is None:
            self.snapshot_dir = self.data_dir / "snapshots"
        for dir_path in [self.data_dir, self.snapshot_dir]:
            dir_path.mkdir(exist_ok=True, parents=True)

    def get_text_provider_order(self) -> List[str]:
        """Fallback order for outline and chapter generation"""
        return _split_csv(self.text_provider_order)

    def get_image_provider_order(self) -> List[str]:
        """Fallback order for cover generation"""
        return _split_csv(self.image_provider_order)

    def get_cors_origins(self) -> list:
        """Get CORS origins as a list. Falls back to dev defaults if empty."""
        if self.cors_origins:
            return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        # Dev defaults
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8000",
            "http://127.0.0.1:8000",
        ]

    def get_api_key(self, provider: str) -> str:
        """API key for a provider name, empty string when unset"""
        return {
            "openai": self.openai_api_key,
            "gemini": self.google_api_key,
            "anthropic": self.anthropic_api_key,
            "deepseek": self.deepseek_api_key,
        }.get(provider, "")


# Global settings instance
settings = Settings()
