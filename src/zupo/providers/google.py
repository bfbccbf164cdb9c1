"""Google Routes API + Places API (New) providers."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from zupo.contracts.route_contract import GeoPoint
from zupo.core.models import (
    AutocompleteRequest,
    DetailsRequest,
    NearbySearchRequest,
    Place,
    SearchRequest,
    Suggestion,
    TravelMode,
)
from zupo.errors import ProviderError
from zupo.providers.base import DirectionsProvider, PlacesProvider
from zupo.providers.http import HTTPClient

log = logging.getLogger(__name__)

ROUTE_FIELD_MASK = "routes.polyline.encodedPolyline"

_PLACE_FIELDS = (
    "id",
    "displayName",
    "formattedAddress",
    "shortFormattedAddress",
    "types",
    "primaryType",
    "primaryTypeDisplayName",
    "location",
    "rating",
    "userRatingCount",
    "priceLevel",
    "websiteUri",
    "googleMapsUri",
    "businessStatus",
    "editorialSummary",
)

SEARCH_FIELD_MASK = ",".join(f"places.{f}" for f in _PLACE_FIELDS)
NEARBY_FIELD_MASK = SEARCH_FIELD_MASK
AUTOCOMPLETE_FIELD_MASK = "suggestions.placePrediction,suggestions.queryPrediction"

_DETAILS_FIELDS = _PLACE_FIELDS + (
    "nationalPhoneNumber",
    "internationalPhoneNumber",
    "currentOpeningHours",
    "regularOpeningHours",
)

# Places API rejects larger page sizes
MAX_RESULT_COUNT = 20


class GoogleRoutesProvider(DirectionsProvider):
    """POST /directions/v2:computeRoutes, asking only for the encoded polyline."""

    def __init__(self, http: HTTPClient, base_url: str = "https://routes.googleapis.com"):
        self.http = http
        self.base_url = base_url.rstrip("/")

    def compute_route(self, origin: str, destination: str, mode: TravelMode) -> str:
        body = {
            "origin": {"address": origin},
            "destination": {"address": destination},
            "travelMode": mode.value,
            "polylineEncoding": "ENCODED_POLYLINE",
        }
        log.debug("computeRoutes %r -> %r (%s)", origin, destination, mode.value)
        result = self.http.post_json(
            f"{self.base_url}/directions/v2:computeRoutes", body, ROUTE_FIELD_MASK
        )

        polyline = _first_polyline(result)
        if not polyline:
            raise ProviderError(0, "no route found between origin and destination")
        return polyline


def _first_polyline(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    routes = result.get("routes")
    if not isinstance(routes, list) or not routes:
        return None
    first = routes[0] if isinstance(routes[0], dict) else {}
    polyline = first.get("polyline")
    if not isinstance(polyline, dict):
        return None
    encoded = polyline.get("encodedPolyline")
    return encoded if isinstance(encoded, str) else None


def _circle(center: GeoPoint, radius: Optional[float]) -> Dict[str, Any]:
    circle: Dict[str, Any] = {
        "center": {"latitude": center.latitude, "longitude": center.longitude},
    }
    if radius is not None:
        circle["radius"] = radius
    return {"circle": circle}


def _add_locale(body: Dict[str, Any], language: Optional[str], region: Optional[str]) -> None:
    if language:
        body["languageCode"] = language
    if region:
        body["regionCode"] = region


def build_search_body(req: SearchRequest) -> Dict[str, Any]:
    """Map a SearchRequest onto a places:searchText request body."""
    body: Dict[str, Any] = {"textQuery": req.query}

    if req.included_type:
        body["includedType"] = req.included_type
    if req.min_rating is not None:
        body["minRating"] = req.min_rating
    if req.price_levels:
        body["priceLevels"] = list(req.price_levels)
    if req.open_now:
        body["openNow"] = True
    if req.center is not None:
        body["locationBias"] = _circle(req.center, req.radius)
    if req.limit is not None:
        body["maxResultCount"] = min(req.limit, MAX_RESULT_COUNT)
    _add_locale(body, req.language, req.region)

    return body


def build_nearby_body(req: NearbySearchRequest) -> Dict[str, Any]:
    """Map a NearbySearchRequest onto a places:searchNearby request body."""
    # Nearby search restricts to the circle rather than biasing towards it
    body: Dict[str, Any] = {"locationRestriction": _circle(req.center, req.radius)}

    if req.included_types:
        body["includedTypes"] = list(req.included_types)
    if req.excluded_types:
        body["excludedTypes"] = list(req.excluded_types)
    if req.limit is not None:
        body["maxResultCount"] = min(req.limit, MAX_RESULT_COUNT)
    _add_locale(body, req.language, req.region)

    return body


def build_autocomplete_body(req: AutocompleteRequest) -> Dict[str, Any]:
    body: Dict[str, Any] = {"input": req.input}

    if req.session_token:
        body["sessionToken"] = req.session_token
    if req.center is not None:
        body["locationBias"] = _circle(req.center, req.radius)
    _add_locale(body, req.language, req.region)

    return body


def details_field_mask(req: DetailsRequest) -> str:
    fields = list(_DETAILS_FIELDS)
    if req.include_reviews:
        fields.append("reviews")
    if req.include_photos:
        fields.append("photos")
    return ",".join(fields)


def _object_or_empty(result: Any, what: str) -> Dict[str, Any]:
    # An empty body or {} is a valid "nothing found"
    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ProviderError(0, f"failed to parse {what} response: expected a JSON object")
    return result


class GooglePlacesProvider(PlacesProvider):
    """
    Places API (New):
      POST /places:searchText
      POST /places:searchNearby
      POST /places:autocomplete
      GET  /places/{id}
    """

    def __init__(self, http: HTTPClient, base_url: str = "https://places.googleapis.com/v1"):
        self.http = http
        self.base_url = base_url.rstrip("/")

    def search(self, request: SearchRequest) -> List[Place]:
        result = self.http.post_json(
            f"{self.base_url}/places:searchText", build_search_body(request), SEARCH_FIELD_MASK
        )
        return self._places(result, "search")

    def nearby(self, request: NearbySearchRequest) -> List[Place]:
        result = self.http.post_json(
            f"{self.base_url}/places:searchNearby", build_nearby_body(request), NEARBY_FIELD_MASK
        )
        return self._places(result, "nearby")

    def autocomplete(self, request: AutocompleteRequest) -> List[Suggestion]:
        result = self.http.post_json(
            f"{self.base_url}/places:autocomplete",
            build_autocomplete_body(request),
            AUTOCOMPLETE_FIELD_MASK,
        )
        data = _object_or_empty(result, "autocomplete")
        try:
            suggestions = [Suggestion.model_validate(s) for s in data.get("suggestions") or []]
        except PydanticValidationError as e:
            raise ProviderError(0, f"failed to parse autocomplete response: {e}") from e

        # The endpoint has no page size, so the limit is applied here
        if request.limit is not None:
            suggestions = suggestions[: request.limit]
        return suggestions

    def details(self, request: DetailsRequest) -> Place:
        params: Dict[str, str] = {}
        _add_locale(params, request.language, request.region)

        result = self.http.get_json(
            f"{self.base_url}/places/{quote(request.place_id, safe='')}",
            details_field_mask(request),
            params=params,
        )
        if not isinstance(result, dict):
            raise ProviderError(0, "failed to parse details response: expected a JSON object")
        try:
            return Place.model_validate(result)
        except PydanticValidationError as e:
            raise ProviderError(0, f"failed to parse details response: {e}") from e

    @staticmethod
    def _places(result: Any, what: str) -> List[Place]:
        data = _object_or_empty(result, what)
        try:
            return [Place.model_validate(p) for p in data.get("places") or []]
        except PydanticValidationError as e:
            raise ProviderError(0, f"failed to parse {what} response: {e}") from e
