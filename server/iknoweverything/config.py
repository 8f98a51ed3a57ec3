from functools import lru_cache
from pydantic import AliasChoices, AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


SYSTEM_INSTRUCTION = (
    "You are IKnowEverything, an intelligent AI assistant with vast knowledge and logical "
    "thinking capabilities. You understand and can discuss any topic with depth and accuracy. "
    "You think logically, provide comprehensive answers, and help users with any questions or "
    "tasks they have. You are knowledgeable, helpful, and can engage in meaningful "
    "conversations on any subject."
)


class Settings(BaseSettings):
    server_port: int = 8000
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./iknoweverything.db"

    allowed_origins: List[AnyHttpUrl] = [
        "http://localhost:5173",
        "http://localhost:8080",
    ]  # type: ignore
    allowed_origin_regex: Optional[str] = None

    # Gemini
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    gemini_model: str = "gemini-1.5-flash-latest"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_max_output_tokens: int = 2000
    gemini_temperature: float = 0.7
    gemini_timeout_seconds: float = 60.0
    gemini_max_attempts: int = 3
    gemini_backoff_seconds: float = 0.8
    system_instruction: str = SYSTEM_INSTRUCTION

    # Number of stored messages replayed to the model as context
    history_limit: int = 20

    # Tokens are issued by the auth platform and signed with its JWT secret
    jwt_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_JWT_SECRET", "JWT_SECRET"),
    )
    jwt_audience: str = "authenticated"

    chat_rate_limit: int = 30
    chat_rate_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=("../.env", ".env"),
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
