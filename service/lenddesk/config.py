from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # OpenAI
    openai_api_key: str = ""
    openai_chat_model: str = "gpt-4o"

    # Anthropic (Claude)
    anthropic_api_key: str = ""
    anthropic_chat_model: str = "claude-sonnet-4-20250514"

    # Chat advisor
    chat_provider: str = "openai"  # "openai" | "anthropic"
    session_store_backend: str = "memory"  # "memory" | "supabase"
    chat_session_ttl_minutes: int = 120
    chat_rate_limit: str = "30/minute"

    # LinkedIn
    linkedin_client_id: str = ""
    linkedin_client_secret: str = ""
    linkedin_api_base_url: str = "https://api.linkedin.com/v2"
    linkedin_oauth_base_url: str = "https://www.linkedin.com/oauth/v2"
    app_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 30.0

    # Contact import
    import_batch_size: int = 10

    # People Data Labs (enrichment)
    pdl_api_key: str = ""
    pdl_base_url: str = "https://api.peopledatalabs.com/v5"

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
