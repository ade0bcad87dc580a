from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./kormo.db"

    # JWT issued by the identity provider (HS256 shared secret)
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    jwt_audience: str = ""  # e.g. "authenticated"; empty = audience not checked

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Gemini: API key mode when gemini_api_key is set, otherwise Vertex AI
    gemini_api_key: str = ""
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC
    gemini_model: str = "gemini-flash-lite-latest"

    # Redis (optional hot tier for the analysis cache; empty = DB only)
    redis_url: str = ""  # e.g. redis://localhost:6379/0

    # Analysis cache TTL in seconds (1 day)
    analysis_cache_ttl_seconds: int = 86400

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
