"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Anthropic (server-held credential, used only by the insight proxy)
    anthropic_api_key: str = ""
    insight_model: str = "claude-haiku-4-5"
    insight_max_tokens: int = 300
    llm_timeout_seconds: int = 60

    # Met Museum collection API
    met_api_base_url: str = "https://collectionapi.metmuseum.org/public/collection/v1"
    met_timeout_seconds: int = 30

    # Insight proxy, as seen from the gallery client
    insight_proxy_url: str = "http://localhost:8000/api/gemini"
    insight_timeout_seconds: int = 60

    # Gallery
    page_size: int = 21
    favorites_key: str = "met_gallery_favorites_v1"
    favorites_path: str = ".meteyes/storage.json"
    default_search: str = "sunflowers"

    # Insight cache (per process)
    insight_cache_ttl_seconds: int = 1800       # 30 minutes
    insight_cache_maxsize: int = 100

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"
    rate_limit_per_minute: int = 30

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key.strip())

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",")]


settings = Settings()
