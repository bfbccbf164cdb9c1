"""Centralized settings for the zupo CLI."""
from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "ZUPO_"}

    # Empty string means "not configured"; the Google providers refuse to start
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_PLACES_API_KEY", "ZUPO_API_KEY"),
    )

    places_base_url: str = "https://places.googleapis.com/v1"
    routes_base_url: str = "https://routes.googleapis.com"
    user_agent: str = "zupo/0.1.0"

    # HTTP
    timeout_s: float = 10.0
    http_tries: int = 3              # attempts on timeout / connection error
    http_backoff_s: float = 0.8      # doubled after each failed attempt
    max_response_bytes: int = 1_048_576

    # Route search fan-out; 1 = one waypoint search at a time
    route_search_workers: int = 4


settings = Settings()
