from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from zupo.core.models import (
    AutocompleteRequest,
    DetailsRequest,
    NearbySearchRequest,
    Place,
    SearchRequest,
    Suggestion,
    TravelMode,
)


class DirectionsProvider(ABC):
    """Compute a route between two free-text locations."""

    @abstractmethod
    def compute_route(self, origin: str, destination: str, mode: TravelMode) -> str:
        """Return the route's encoded polyline; raise ProviderError if there is none."""
        raise NotImplementedError


class PlaceSearchProvider(ABC):
    """Text search for places, optionally biased to a circle."""

    @abstractmethod
    def search(self, request: SearchRequest) -> List[Place]:
        raise NotImplementedError


class PlacesProvider(PlaceSearchProvider):
    """The rest of the Places surface: nearby search, autocomplete, details."""

    @abstractmethod
    def nearby(self, request: NearbySearchRequest) -> List[Place]:
        raise NotImplementedError

    @abstractmethod
    def autocomplete(self, request: AutocompleteRequest) -> List[Suggestion]:
        """Suggestions in API order, at most ``request.limit`` of them."""
        raise NotImplementedError

    @abstractmethod
    def details(self, request: DetailsRequest) -> Place:
        raise NotImplementedError
