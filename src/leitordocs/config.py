"""Application configuration using Pydantic Settings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGIN = "http://localhost:5173"
SECRET_FILE_ENV_VARS = (
    "SUPABASE_JWT_SECRET",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_ANON_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "OPENROUTER_API_KEY",
    "ANTHROPIC_API_KEY",
)

AIProviderName = Literal["gemini", "openai", "nexus", "anthropic"]


def _load_secret_file_env_vars() -> None:
    """Allow secrets to be sourced from *_FILE env vars (Docker secrets)."""
    for env_var in SECRET_FILE_ENV_VARS:
        file_var = f"{env_var}_FILE"
        file_path = os.getenv(file_var)
        if not file_path:
            continue
        try:
            value = Path(file_path).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise RuntimeError(f"Failed to read {file_var} at {file_path}") from exc
        if not value:
            raise ValueError(f"{file_var} is empty")
        os.environ[env_var] = value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Application -----
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False

    # ----- Auth -----
    auth_provider: Literal["supabase", "dev"] = "supabase"  # Use "dev" for local testing

    # ----- Supabase -----
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_timeout_seconds: float = 10.0

    # ----- Gemini (OpenAI-compatible endpoint) -----
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # ----- OpenAI -----
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # ----- OpenRouter ("nexus" in the UI) -----
    openrouter_api_key: str = ""
    openrouter_model: str = "google/gemini-2.0-flash-001"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    # ----- Anthropic -----
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"

    # ----- AI Provider Selection -----
    default_ai_provider: AIProviderName = "gemini"
    ai_max_tokens: int = 1024

    # ----- CSRF -----
    csrf_cookie_name: str = "csrf_token"
    csrf_header_name: str = "x-csrf-token"
    csrf_token_ttl_seconds: int = 3600
    csrf_exempt_paths_str: str = Field(
        default="/api/health,/metrics", alias="csrf_exempt_paths"
    )

    # ----- Uploads & analysis -----
    upload_max_size_mb: int = 20
    upload_worker_limit: int = 8
    analysis_cache_ttl_seconds: int = 3600
    analysis_cache_max_entries: int = 5000
    default_monthly_credits: int = 2500
    default_company: str = "enia-marcia-joias"

    # ----- CORS -----
    # Can be set as JSON list or comma-separated string
    cors_origins_str: str = Field(default=DEFAULT_CORS_ORIGIN, alias="cors_origins")

    @property
    def cors_origins(self) -> list[str]:
        """Parse cors_origins from comma-separated string or JSON list."""
        v = self.cors_origins_str
        if not v:
            return [DEFAULT_CORS_ORIGIN]
        # Try JSON first
        if v.startswith("["):
            import json

            raw = json.loads(v)
            if not isinstance(raw, list) or not all(isinstance(origin, str) for origin in raw):
                raise ValueError("CORS_ORIGINS must be a JSON list of strings")
            return raw
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @property
    def csrf_exempt_paths(self) -> frozenset[str]:
        return frozenset(p.strip() for p in self.csrf_exempt_paths_str.split(",") if p.strip())

    @property
    def upload_max_size_bytes(self) -> int:
        return self.upload_max_size_mb * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Ensure secure settings in production environment."""
        if self.is_production:
            if self.app_debug:
                raise ValueError("APP_DEBUG must be false in production!")
            # Dev auth is not allowed in production
            if self.auth_provider == "dev":
                raise ValueError(
                    "AUTH_PROVIDER=dev is not allowed in production! "
                    "Use AUTH_PROVIDER=supabase with proper Supabase configuration."
                )
            if not self.supabase_jwt_secret:
                raise ValueError("SUPABASE_JWT_SECRET must be set in production!")
            if not self.supabase_url or not self.supabase_service_role_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in production!"
                )
            if any(origin in {"*", DEFAULT_CORS_ORIGIN} for origin in self.cors_origins):
                raise ValueError("CORS_ORIGINS must be restricted in production!")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    _load_secret_file_env_vars()
    return Settings()
