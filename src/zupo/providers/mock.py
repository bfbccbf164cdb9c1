from __future__ import annotations

import math
from typing import List, Optional

from zupo.contracts.route_contract import GeoPoint
from zupo.core.models import (
    AutocompleteRequest,
    DetailsRequest,
    DisplayName,
    FormattedText,
    LocalizedText,
    NearbySearchRequest,
    OpeningHours,
    Place,
    PlacePrediction,
    QueryPrediction,
    SearchRequest,
    StructuredFormat,
    Suggestion,
    TravelMode,
)
from zupo.errors import ProviderError
from zupo.providers.base import DirectionsProvider, PlacesProvider

# (38.5, -120.2) -> (40.7, -120.95) -> (43.252, -126.453)
SAMPLE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


class MockDirectionsProvider(DirectionsProvider):
    """Same route for every request, so the pipeline runs without an API key."""

    def __init__(self, polyline: str = SAMPLE_POLYLINE):
        self.polyline = polyline

    def compute_route(self, origin: str, destination: str, mode: TravelMode) -> str:
        return self.polyline


def _mock_id(lat: float, lon: float) -> str:
    return f"mock-{lat:.5f},{lon:.5f}"


class MockPlacesProvider(PlacesProvider):
    """
    Deterministic fake places scattered around the search center.
    Names, ratings and offsets vary with the query and the location.
    """

    def search(self, request: SearchRequest) -> List[Place]:
        return self._scatter(
            request.query,
            request.center or GeoPoint(0.0, 0.0),
            request.radius or 1000.0,
            request.limit or 5,
        )

    def nearby(self, request: NearbySearchRequest) -> List[Place]:
        label = request.included_types[0].replace("_", " ") if request.included_types else "place"
        places = self._scatter(label, request.center, request.radius, request.limit or 10)
        if request.included_types:
            places = [p.model_copy(update={"types": list(request.included_types)}) for p in places]
        return places

    def autocomplete(self, request: AutocompleteRequest) -> List[Suggestion]:
        text = request.input.strip()
        out: List[Suggestion] = [
            Suggestion(query_prediction=QueryPrediction(text=FormattedText(text=f"{text} near me")))
        ]
        for p in self._scatter(text, request.center or GeoPoint(0.0, 0.0), request.radius or 5000.0, 4):
            out.append(
                Suggestion(
                    place_prediction=PlacePrediction(
                        place=f"places/{p.id}",
                        place_id=p.id,
                        text=FormattedText(text=f"{p.name}, {p.address}"),
                        structured_format=StructuredFormat(
                            main_text=FormattedText(text=p.name),
                            secondary_text=FormattedText(text=p.address),
                        ),
                        types=["establishment"],
                    )
                )
            )
        if request.limit is not None:
            out = out[: request.limit]
        return out

    def details(self, request: DetailsRequest) -> Place:
        center = _parse_mock_id(request.place_id)
        if center is None:
            raise ProviderError(404, f"place '{request.place_id}' not found")

        place = self._scatter("Mock place", center, 1.0, 1)[0]
        return place.model_copy(
            update={
                "id": request.place_id,
                "location": center,
                "formatted_address": f"{center.latitude:.4f}, {center.longitude:.4f}",
                "business_status": "OPERATIONAL",
                "international_phone_number": "+1 555-0100",
                "editorial_summary": LocalizedText(text="A place that exists only offline."),
                "current_opening_hours": OpeningHours(
                    open_now=True,
                    weekday_descriptions=["Monday: 8:00 AM – 6:00 PM", "Tuesday: 8:00 AM – 6:00 PM"],
                ),
            }
        )

    @staticmethod
    def _scatter(label: str, center: GeoPoint, radius_m: float, count: int) -> List[Place]:
        count = min(count, 20)

        # ~111 km per degree of latitude
        spread_deg = radius_m / 111_000.0
        geo = math.sin((center.latitude + center.longitude) * 10)

        out: List[Place] = []
        for i in range(count):
            angle = (i / max(count, 1)) * math.tau + geo
            frac = 0.3 + 0.6 * ((i * 7 + len(label)) % 10) / 10
            lat = center.latitude + spread_deg * frac * math.sin(angle)
            lon = center.longitude + spread_deg * frac * math.cos(angle)
            rating = round(3.0 + 2.0 * abs(math.sin(lat * 100 + i)), 1)

            out.append(
                Place(
                    id=_mock_id(lat, lon),
                    display_name=DisplayName(text=f"{label.title()} #{i + 1}", language_code="en"),
                    short_formatted_address=f"{lat:.4f}, {lon:.4f}",
                    location=GeoPoint(round(lat, 6), round(lon, 6)),
                    rating=min(rating, 5.0),
                    user_rating_count=10 + (i * 37) % 400,
                )
            )
        return out


def _parse_mock_id(place_id: str) -> Optional[GeoPoint]:
    if not place_id.startswith("mock-"):
        return None
    try:
        lat, lon = (float(x) for x in place_id[len("mock-"):].split(","))
    except ValueError:
        return None
    return GeoPoint(lat, lon)
