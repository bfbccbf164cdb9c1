from __future__ import annotations

from typing import Tuple

from zupo.config import Settings
from zupo.providers.base import DirectionsProvider, PlacesProvider


def build_providers(
    name: str,
    settings: Settings,
) -> Tuple[DirectionsProvider, PlacesProvider]:
    """
    Build the (directions, places) pair for a provider name:
      "google" -> Routes API + Places API (needs an API key)
      "mock"   -> offline deterministic data
    """
    token = (name or "google").strip().lower()

    # Local imports to avoid circular imports
    from zupo.providers.google import GooglePlacesProvider, GoogleRoutesProvider
    from zupo.providers.http import HTTPClient
    from zupo.providers.mock import MockDirectionsProvider, MockPlacesProvider

    if token == "mock":
        return MockDirectionsProvider(), MockPlacesProvider()

    if token == "google":
        http = HTTPClient(
            api_key=settings.api_key,
            user_agent=settings.user_agent,
            timeout_s=settings.timeout_s,
            tries=settings.http_tries,
            backoff_s=settings.http_backoff_s,
            max_response_bytes=settings.max_response_bytes,
        )
        return (
            GoogleRoutesProvider(http, base_url=settings.routes_base_url),
            GooglePlacesProvider(http, base_url=settings.places_base_url),
        )

    raise ValueError(f"Unknown provider: '{name}' (supported: google, mock)")
