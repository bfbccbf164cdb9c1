from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from zupo.contracts.route_contract import GeoPoint, Waypoint
from zupo.core.models import (
    AutocompleteRequest,
    DetailsRequest,
    NearbySearchRequest,
    Place,
    RouteRequest,
    RouteSearchOutcome,
    SearchRequest,
    Suggestion,
    WaypointSearchResult,
)
from zupo.core.route import decode_polyline, sample_waypoints
from zupo.errors import ProviderError, ValidationError
from zupo.providers.base import DirectionsProvider, PlaceSearchProvider, PlacesProvider

log = logging.getLogger(__name__)


def _require(value: str, field: str, message: str) -> None:
    # Only the empty string is rejected; whitespace goes to the API as typed
    if not value:
        raise ValidationError(field, message)


def _check_coords(point: GeoPoint) -> None:
    if not -90.0 <= point.latitude <= 90.0:
        raise ValidationError("lat", "latitude must be between -90 and 90")
    if not -180.0 <= point.longitude <= 180.0:
        raise ValidationError("lng", "longitude must be between -180 and 180")


def text_search(request: SearchRequest, places: PlaceSearchProvider) -> List[Place]:
    _require(request.query, "query", "query is required")
    if request.center is not None and not request.center.in_bounds():
        raise ValidationError(
            "location",
            f"({request.center.latitude}, {request.center.longitude}) is outside "
            "latitude [-90, 90] / longitude [-180, 180]",
        )
    return places.search(request)


def nearby_search(request: NearbySearchRequest, places: PlacesProvider) -> List[Place]:
    _check_coords(request.center)
    if request.radius <= 0:
        raise ValidationError("radius", "radius must be positive")
    return places.nearby(request)


def autocomplete(request: AutocompleteRequest, places: PlacesProvider) -> List[Suggestion]:
    _require(request.input, "input", "input is required")
    if request.center is not None:
        _check_coords(request.center)
    return places.autocomplete(request)


def place_details(request: DetailsRequest, places: PlacesProvider) -> Place:
    _require(request.place_id, "place_id", "place_id is required")
    return places.details(request)


def _search_waypoint(
    request: RouteRequest,
    waypoint: Waypoint,
    places: PlaceSearchProvider,
) -> WaypointSearchResult:
    search_req = SearchRequest(
        query=request.query,
        center=waypoint.point,
        radius=request.search_radius,
        limit=request.results_per_waypoint,
        language=request.language,
        region=request.region,
    )
    try:
        found = places.search(search_req)
    except Exception as e:
        # One bad waypoint must not sink the route: record it as "no places"
        log.warning("waypoint %d search failed: %s: %s", waypoint.index, type(e).__name__, e)
        found = []
    return WaypointSearchResult(waypoint=waypoint.point, waypoint_index=waypoint.index, places=found)


def run_route_search(
    request: RouteRequest,
    directions: DirectionsProvider,
    places: PlaceSearchProvider,
    max_workers: Optional[int] = None,
) -> RouteSearchOutcome:
    """
    Find places along the route from ``request.origin`` to ``request.destination``.

    The route is fetched and decoded first; both steps are fatal on failure.
    Waypoint searches then run on up to *max_workers* threads (default: one
    per waypoint). A failed waypoint search yields an empty place list for
    that waypoint and never raises.
    """
    _require(request.query, "query", "query is required")
    _require(request.origin, "from", "origin is required")
    _require(request.destination, "to", "destination is required")

    polyline = directions.compute_route(request.origin, request.destination, request.travel_mode)

    # decode_polyline never raises; a corrupt polyline just decodes short
    path = decode_polyline(polyline)
    if not path:
        raise ProviderError(0, "route returned no path points")

    waypoints = [
        Waypoint(index=i, point=p)
        for i, p in enumerate(sample_waypoints(path, request.max_waypoints))
    ]
    log.debug("route %d points -> %d waypoints", len(path), len(waypoints))

    slots: List[Optional[WaypointSearchResult]] = [None] * len(waypoints)
    if waypoints:
        workers = max(1, min(max_workers or len(waypoints), len(waypoints)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(_search_waypoint, request, wp, places): wp.index for wp in waypoints}
            for fut in as_completed(futures):
                slots[futures[fut]] = fut.result()

    return RouteSearchOutcome(
        origin=request.origin,
        destination=request.destination,
        travel_mode=request.travel_mode.label,
        waypoints=slots,
    )
