from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from zupo.contracts.route_contract import GeoPoint
from zupo.errors import ValidationError


class TravelMode(str, Enum):
    DRIVE = "DRIVE"
    WALK = "WALK"
    BICYCLE = "BICYCLE"
    TWO_WHEELER = "TWO_WHEELER"
    TRANSIT = "TRANSIT"

    @classmethod
    def parse(cls, text: str) -> "TravelMode":
        try:
            return cls(text.strip().upper())
        except ValueError:
            raise ValidationError(
                "mode",
                f"invalid travel mode '{text}': use DRIVE, WALK, BICYCLE, TWO_WHEELER, or TRANSIT",
            ) from None

    @property
    def label(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Places API wire records
# ---------------------------------------------------------------------------

class _WireModel(BaseModel):
    # Places API speaks camelCase; unknown fields are kept so --json stays lossless
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class DisplayName(_WireModel):
    text: str
    language_code: Optional[str] = None


class LocalizedText(_WireModel):
    text: Optional[str] = None
    language_code: Optional[str] = None


class OpeningHours(_WireModel):
    open_now: Optional[bool] = None
    weekday_descriptions: Optional[List[str]] = None


class AuthorAttribution(_WireModel):
    display_name: str = ""
    uri: Optional[str] = None
    photo_uri: Optional[str] = None


class Review(_WireModel):
    author_attribution: Optional[AuthorAttribution] = None
    rating: Optional[float] = None
    relative_publish_time_description: Optional[str] = None
    text: Optional[LocalizedText] = None
    original_text: Optional[LocalizedText] = None


class Photo(_WireModel):
    name: str
    width_px: Optional[int] = None
    height_px: Optional[int] = None
    author_attributions: Optional[List[AuthorAttribution]] = None


class Place(_WireModel):
    id: str = ""
    display_name: Optional[DisplayName] = None
    formatted_address: Optional[str] = None
    short_formatted_address: Optional[str] = None
    types: Optional[List[str]] = None
    primary_type: Optional[str] = None
    primary_type_display_name: Optional[DisplayName] = None
    location: Optional[GeoPoint] = None
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    price_level: Optional[str] = None
    website_uri: Optional[str] = None
    google_maps_uri: Optional[str] = None
    business_status: Optional[str] = None
    editorial_summary: Optional[LocalizedText] = None

    # Only requested by place details
    national_phone_number: Optional[str] = None
    international_phone_number: Optional[str] = None
    current_opening_hours: Optional[OpeningHours] = None
    regular_opening_hours: Optional[OpeningHours] = None
    reviews: Optional[List[Review]] = None
    photos: Optional[List[Photo]] = None

    @property
    def name(self) -> str:
        return self.display_name.text if self.display_name else "Unknown"

    @property
    def address(self) -> str:
        return self.short_formatted_address or self.formatted_address or ""

    @property
    def phone(self) -> Optional[str]:
        return self.international_phone_number or self.national_phone_number


# ---------------------------------------------------------------------------
# Autocomplete wire records
# ---------------------------------------------------------------------------

class TextMatch(_WireModel):
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None


class FormattedText(_WireModel):
    text: str
    matches: Optional[List[TextMatch]] = None


class StructuredFormat(_WireModel):
    main_text: Optional[FormattedText] = None
    secondary_text: Optional[FormattedText] = None


class PlacePrediction(_WireModel):
    place: Optional[str] = None
    place_id: Optional[str] = None
    text: Optional[FormattedText] = None
    structured_format: Optional[StructuredFormat] = None
    types: Optional[List[str]] = None


class QueryPrediction(_WireModel):
    text: Optional[FormattedText] = None
    structured_format: Optional[StructuredFormat] = None


class Suggestion(_WireModel):
    place_prediction: Optional[PlacePrediction] = None
    query_prediction: Optional[QueryPrediction] = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SearchRequest(BaseModel):
    query: str
    center: Optional[GeoPoint] = None
    radius: Optional[float] = Field(default=None, gt=0)  # metres, only meaningful with a center
    limit: Optional[int] = Field(default=None, ge=1)
    language: Optional[str] = None  # BCP-47, e.g. "en"
    region: Optional[str] = None    # CLDR, e.g. "US"

    included_type: Optional[str] = None
    min_rating: Optional[float] = None
    price_levels: List[str] = Field(default_factory=list)
    open_now: bool = False


class NearbySearchRequest(BaseModel):
    center: GeoPoint
    radius: float = 1000.0
    included_types: List[str] = Field(default_factory=list)
    excluded_types: List[str] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, ge=1)
    language: Optional[str] = None
    region: Optional[str] = None


class AutocompleteRequest(BaseModel):
    input: str
    session_token: Optional[str] = None
    center: Optional[GeoPoint] = None
    radius: Optional[float] = Field(default=None, gt=0)
    limit: Optional[int] = Field(default=None, ge=1)  # applied client-side
    language: Optional[str] = None
    region: Optional[str] = None


class DetailsRequest(BaseModel):
    place_id: str
    include_reviews: bool = False
    include_photos: bool = False
    language: Optional[str] = None
    region: Optional[str] = None


class RouteRequest(BaseModel):
    query: str
    origin: str
    destination: str
    travel_mode: TravelMode = TravelMode.DRIVE
    search_radius: float = Field(default=1000.0, gt=0)
    max_waypoints: int = Field(default=5, ge=0)
    results_per_waypoint: int = Field(default=5, ge=1)
    language: Optional[str] = None
    region: Optional[str] = None


# ---------------------------------------------------------------------------
# Route search outcome
# ---------------------------------------------------------------------------

class WaypointSearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    waypoint: GeoPoint
    waypoint_index: int
    # Empty both when nothing matched and when the search failed
    places: List[Place] = Field(default_factory=list)


class RouteSearchOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    origin: str = Field(alias="from")
    destination: str = Field(alias="to")
    travel_mode: str
    waypoints: List[WaypointSearchResult] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


PRICE_LEVELS = {
    0: "PRICE_LEVEL_FREE",
    1: "PRICE_LEVEL_INEXPENSIVE",
    2: "PRICE_LEVEL_MODERATE",
    3: "PRICE_LEVEL_EXPENSIVE",
    4: "PRICE_LEVEL_VERY_EXPENSIVE",
}

PRICE_LEVEL_DISPLAY = {
    "PRICE_LEVEL_FREE": "Free",
    "PRICE_LEVEL_INEXPENSIVE": "$",
    "PRICE_LEVEL_MODERATE": "$$",
    "PRICE_LEVEL_EXPENSIVE": "$$$",
    "PRICE_LEVEL_VERY_EXPENSIVE": "$$$$",
}
