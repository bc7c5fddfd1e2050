"""Application configuration pulled from environment variables via pydantic."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_secret

logger = get_tagged_logger(__name__, tag="config")

DEFAULT_PROVIDER_TTL_SECONDS = {
    "traffic": 300,
    "weather": 600,
    "air_quality": 600,
    "health": 1800,
    "crime": 1800,
    "market": 3600,
}


class Settings(BaseSettings):
    """Environment-driven configuration for the civic assistant service."""
    model_config = SettingsConfigDict(env_prefix="CIVIC_", env_file=".env", extra="ignore")

    environment: str = "development"  # options: development, production
    log_level: str = "INFO"
    api_prefix: str = ""

    city_name: str = "Indianapolis, Indiana"
    assistant_name: str = "Orpheus"

    # GENERAL backend: generate-content style endpoint that accepts a bearer token.
    # Google's public generativelanguage host wants an OAuth token or the
    # x-goog-api-key header, so point this at a bearer-accepting gateway.
    general_base_url: str = ""
    general_model: str = "models/gemma-3-27b-it"
    general_api_key: str | None = None
    general_options: dict = Field(
        default_factory=lambda: {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 2048,
        }
    )

    # LIVE backend: search-grounded chat-completions endpoint
    live_base_url: str = "https://api.perplexity.ai"
    live_model: str = "llama-3.1-sonar-small-128k-online"
    live_api_key: str | None = None
    live_options: dict = Field(
        default_factory=lambda: {
            "max_tokens": 2048,
            "temperature": 0.7,
        }
    )

    provider_backend: str = "general"  # options: general, live
    upstream_timeout_seconds: float = 30.0

    rate_limit_max_calls: int = 20
    rate_limit_window_seconds: float = 60.0
    chat_rate_limit_max_calls: int = 20
    trust_forwarded_for: bool = False

    snapshot_ttl_seconds: int = 300
    provider_ttl_seconds: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_PROVIDER_TTL_SECONDS))
    coordinate_precision: int = 2
    aggregation_max_workers: int = 12
    aggregation_timeout_seconds: float = 35.0

    history_turns: int = 5
    max_user_message_chars: int = 4000
    max_upload_bytes: int = 10 * 1024 * 1024

    @field_validator("general_base_url", "live_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("provider_ttl_seconds", mode="after")
    @classmethod
    def fill_missing_ttls(cls, v: dict[str, int]) -> dict[str, int]:
        """Keep reference TTLs for domains an override does not mention."""
        return {**DEFAULT_PROVIDER_TTL_SECONDS, **v}

    @field_validator("provider_backend", mode="after")
    @classmethod
    def check_provider_backend(cls, v: str) -> str:
        """Only the two configured upstreams can serve provider fetches."""
        v = v.lower()
        if v not in ("general", "live"):
            raise ValueError(f"provider_backend must be 'general' or 'live', got '{v}'")
        return v

    @property
    def is_production(self) -> bool:
        """True when running with production error/introspection behaviour."""
        return self.environment.lower() == "production"

    def redacted(self) -> dict:
        """Settings as a dict with API keys masked, for startup logging."""
        data = self.model_dump()
        data["general_api_key"] = mask_secret(self.general_api_key)
        data["live_api_key"] = mask_secret(self.live_api_key)
        return data


settings = Settings()


if __name__ == "__main__":
    import json
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {json.dumps(settings.redacted(), indent=4)}")
