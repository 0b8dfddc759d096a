from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/creators.db"
    app_password: str = "changeme"
    secret_key: str = "dev-secret-key-change-in-production"
    cors_origins: list[str] = ["http://localhost:3000"]

    # LLM providers: Anthropic is used when its key is set, otherwise OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    llm_timeout_seconds: float = 30.0

    # Platform OAuth session store: "memory" or "redis"
    token_store: str = "memory"
    redis_url: str = "redis://localhost:6379"
    platform_token_ttl_seconds: int = 3600

    instagram_client_id: str = ""
    instagram_client_secret: str = ""
    instagram_redirect_uri: str = "http://localhost:3000/callback/instagram"

    tiktok_client_key: str = ""
    tiktok_client_secret: str = ""
    tiktok_redirect_uri: str = "http://localhost:3000/callback/tiktok"

    youtube_client_id: str = ""
    youtube_client_secret: str = ""
    youtube_redirect_uri: str = "http://localhost:3000/callback/youtube"
    youtube_api_key: str = ""

    # Server-side geocoding for location updates without coordinates
    geocoding_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_user_agent: str = "local-creator-network/0.1"

    # Matching
    default_search_radius: int = 50
    match_analysis_concurrency: int = 4
    match_candidate_timeout_seconds: float = 60.0
    match_generation_timeout_seconds: float = 300.0

    # Scheduler
    resync_interval_hours: int = 24
    token_purge_interval_minutes: int = 15

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
