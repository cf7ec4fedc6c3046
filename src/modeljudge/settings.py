"""
Configuration settings for Model Judge
"""

from pydantic_settings import BaseSettings
from typing import Dict, List, Optional


PLACEHOLDER_KEYS = (
    "your_openai_key_here",
    "your_gemini_key_here",
    "sk-...",
    "...",
)


class Settings(BaseSettings):
    """Model Judge configuration settings"""

    # Server Configuration
    server_port: int = 3000
    server_host: str = "0.0.0.0"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Provider API Keys
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None

    # Provider Models
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-2.5-flash"
    request_timeout: float = 60.0
    max_tokens: int = 1024
    temperature: float = 0.7

    # Judging
    judge_strategy: str = "length"  # length, llm
    judge_model: str = "gpt-4o-mini"
    no_answer_prefix: str = "no answer from"
    not_configured_marker: str = "not configured yet"

    # Persistence
    database_url: str = "sqlite:///./modeljudge.db"
    history_limit: int = 50

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    verification_token_ttl_minutes: int = 60 * 24
    reset_token_ttl_minutes: int = 60

    # Email
    app_name: str = "AI Model Judge"
    public_base_url: str = "http://localhost:3000"
    frontend_url: str = "http://localhost:5500"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_use_ssl: bool = True
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None

    # Verdict Logging
    persist_verdicts: bool = True
    verdict_log_file: str = "data/logs/verdicts.jsonl"
    max_verdicts_in_memory: int = 1000

    class Config:
        env_prefix = "MODELJUDGE_"
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get the API key for a provider, ignoring template placeholders"""
        key = getattr(self, f"{provider.lower()}_api_key", None)
        if not key or key in PLACEHOLDER_KEYS:
            return None
        return key

    def api_key_summary(self) -> Dict[str, str]:
        """Masked key status per provider (safe for logging)"""
        summary = {}
        for provider in ("openai", "gemini"):
            key = self.get_api_key(provider)
            if not key:
                summary[provider] = "Not set"
            elif len(key) > 12:
                summary[provider] = key[:8] + "..." + key[-4:]
            else:
                summary[provider] = "***"
        return summary


# Global settings instance
settings = Settings()
