"""Unit tests for route search orchestration and text search."""

import logging
import threading
import time

import pytest

from zupo.contracts.route_contract import GeoPoint
from zupo.core.engine import autocomplete, nearby_search, place_details, run_route_search, text_search
from zupo.core.models import (
    AutocompleteRequest,
    DetailsRequest,
    DisplayName,
    NearbySearchRequest,
    Place,
    RouteRequest,
    SearchRequest,
    Suggestion,
    TravelMode,
)
from zupo.core.route import decode_polyline, sample_waypoints
from zupo.errors import ProviderError, ValidationError
from zupo.providers.base import DirectionsProvider, PlaceSearchProvider, PlacesProvider

POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


class StubDirections(DirectionsProvider):
    def __init__(self, polyline=POLYLINE, error=None):
        self.polyline = polyline
        self.error = error
        self.calls = []

    def compute_route(self, origin, destination, mode):
        self.calls.append((origin, destination, mode))
        if self.error is not None:
            raise self.error
        return self.polyline


class StubPlaces(PlaceSearchProvider):
    """Returns two places per search; raises for centers listed in ``fail_at``."""

    def __init__(self, fail_at=(), slow_at=()):
        self.fail_at = set(fail_at)
        self.slow_at = set(slow_at)
        self.requests = []
        self._lock = threading.Lock()

    def search(self, request):
        with self._lock:
            self.requests.append(request)
        if request.center in self.slow_at:
            time.sleep(0.05)
        if request.center in self.fail_at:
            raise ProviderError(500, "boom")
        tag = f"{request.center.latitude:.5f},{request.center.longitude:.5f}"
        return [
            Place(id=f"{tag}-a", display_name=DisplayName(text="A")),
            Place(id=f"{tag}-b", display_name=DisplayName(text="B")),
        ]


def _request(**overrides):
    fields = dict(
        query="coffee",
        origin="Sacramento",
        destination="Eureka",
        travel_mode=TravelMode.DRIVE,
        search_radius=1500.0,
        max_waypoints=5,
        results_per_waypoint=3,
        language="en",
        region="US",
    )
    fields.update(overrides)
    return RouteRequest(**fields)


def _expected_waypoints(n=5):
    return sample_waypoints(decode_polyline(POLYLINE), n)


class TestRouteSearch:
    """Test the route search pipeline end to end with stub providers."""

    def test_one_failing_waypoint_yields_empty_slot(self):
        """A single failed waypoint search leaves an empty list at its index only."""
        wps = _expected_waypoints()
        places = StubPlaces(fail_at=[wps[2]])

        outcome = run_route_search(_request(), StubDirections(), places)

        assert len(outcome.waypoints) == 5
        assert [w.waypoint_index for w in outcome.waypoints] == [0, 1, 2, 3, 4]
        assert outcome.waypoints[2].places == []
        for i in (0, 1, 3, 4):
            assert len(outcome.waypoints[i].places) == 2
            assert outcome.waypoints[i].waypoint == wps[i]

    def test_order_is_by_index_not_completion(self):
        """A slow first waypoint still ends up first."""
        wps = _expected_waypoints()
        places = StubPlaces(slow_at=[wps[0]])

        outcome = run_route_search(_request(), StubDirections(), places, max_workers=5)

        assert [w.waypoint_index for w in outcome.waypoints] == [0, 1, 2, 3, 4]
        assert [w.waypoint for w in outcome.waypoints] == wps

    def test_sequential_and_parallel_agree(self):
        """One worker and many workers produce the same outcome."""
        wps = _expected_waypoints()
        one = run_route_search(_request(), StubDirections(), StubPlaces(fail_at=[wps[1]]), max_workers=1)
        many = run_route_search(_request(), StubDirections(), StubPlaces(fail_at=[wps[1]]), max_workers=8)
        assert one == many

    def test_every_waypoint_failing_still_returns_outcome(self):
        """Even if all searches fail the call succeeds with empty lists."""
        places = StubPlaces(fail_at=_expected_waypoints())
        outcome = run_route_search(_request(), StubDirections(), places)
        assert len(outcome.waypoints) == 5
        assert all(w.places == [] for w in outcome.waypoints)

    def test_search_requests_carry_bias_and_passthrough_options(self):
        """Each search uses the waypoint as center plus radius, limit, language, region."""
        places = StubPlaces()
        run_route_search(_request(), StubDirections(), places, max_workers=1)

        wps = _expected_waypoints()
        assert [r.center for r in places.requests] == wps
        for r in places.requests:
            assert r.query == "coffee"
            assert r.radius == 1500.0
            assert r.limit == 3
            assert r.language == "en"
            assert r.region == "US"

    def test_outcome_labels(self):
        """Outcome carries origin, destination and the travel mode label."""
        directions = StubDirections()
        outcome = run_route_search(
            _request(travel_mode=TravelMode.TWO_WHEELER), directions, StubPlaces()
        )
        assert outcome.origin == "Sacramento"
        assert outcome.destination == "Eureka"
        assert outcome.travel_mode == "TWO_WHEELER"
        assert directions.calls == [("Sacramento", "Eureka", TravelMode.TWO_WHEELER)]

    @pytest.mark.parametrize(
        "field,overrides",
        [
            ("query", {"query": ""}),
            ("from", {"origin": ""}),
            ("to", {"destination": ""}),
        ],
    )
    def test_validation_happens_before_any_provider_call(self, field, overrides):
        """Empty query/from/to fail fast without touching providers."""
        directions = StubDirections()
        places = StubPlaces()

        with pytest.raises(ValidationError) as exc:
            run_route_search(_request(**overrides), directions, places)

        assert exc.value.field == field
        assert directions.calls == []
        assert places.requests == []

    def test_whitespace_input_is_passed_through(self):
        """Only empty strings are rejected; blank text reaches the providers unchanged."""
        directions = StubDirections()
        places = StubPlaces()

        run_route_search(_request(query="   ", origin=" "), directions, places, max_workers=1)

        assert directions.calls[0][0] == " "
        assert all(r.query == "   " for r in places.requests)

    def test_no_route_is_fatal(self):
        """Directions failure aborts before any waypoint search."""
        directions = StubDirections(error=ProviderError(0, "no route found between origin and destination"))
        places = StubPlaces()

        with pytest.raises(ProviderError, match="no route found"):
            run_route_search(_request(), directions, places)

        assert places.requests == []

    def test_empty_polyline_is_fatal(self):
        """A route that decodes to zero points is a provider error."""
        places = StubPlaces()

        with pytest.raises(ProviderError, match="route returned no path points"):
            run_route_search(_request(), StubDirections(polyline=""), places)

        assert places.requests == []

    def test_zero_waypoints_uses_every_path_point(self):
        """max_waypoints = 0 searches around each decoded point."""
        places = StubPlaces()
        outcome = run_route_search(_request(max_waypoints=0), StubDirections(), places)

        assert [w.waypoint for w in outcome.waypoints] == list(decode_polyline(POLYLINE))

    def test_failed_waypoint_is_logged(self, caplog):
        """Swallowed waypoint errors still show up in the log."""
        wps = _expected_waypoints()
        with caplog.at_level(logging.WARNING, logger="zupo.core.engine"):
            run_route_search(_request(), StubDirections(), StubPlaces(fail_at=[wps[3]]))

        assert "waypoint 3 search failed" in caplog.text


class TestTextSearch:
    """Test single text search validation."""

    def test_delegates_to_provider(self):
        """A valid request goes straight to the provider."""
        places = StubPlaces()
        req = SearchRequest(query="pizza", center=GeoPoint(48.2, 16.37), radius=500.0)

        found = text_search(req, places)

        assert len(found) == 2
        assert places.requests == [req]

    def test_empty_query_rejected(self):
        """No query, no request."""
        places = StubPlaces()
        with pytest.raises(ValidationError) as exc:
            text_search(SearchRequest(query=""), places)
        assert exc.value.field == "query"
        assert places.requests == []

    @pytest.mark.parametrize("lat,lng", [(91.0, 0.0), (-90.5, 0.0), (0.0, 180.1), (0.0, -181.0)])
    def test_out_of_range_center_rejected(self, lat, lng):
        """Explicit centers must be real coordinates."""
        places = StubPlaces()
        with pytest.raises(ValidationError) as exc:
            text_search(SearchRequest(query="pizza", center=GeoPoint(lat, lng)), places)
        assert exc.value.field == "location"
        assert places.requests == []


class StubPlacesApi(PlacesProvider):
    """Records every call and answers with canned data."""

    def __init__(self):
        self.calls = []

    def search(self, request):
        self.calls.append(("search", request))
        return []

    def nearby(self, request):
        self.calls.append(("nearby", request))
        return [Place(id="n1", display_name=DisplayName(text="Near"))]

    def autocomplete(self, request):
        self.calls.append(("autocomplete", request))
        return [Suggestion()]

    def details(self, request):
        self.calls.append(("details", request))
        return Place(id=request.place_id)


class TestNearbySearch:
    """Test nearby search validation."""

    def test_delegates_to_provider(self):
        """Valid coordinates and radius go to the provider."""
        api = StubPlacesApi()
        req = NearbySearchRequest(center=GeoPoint(48.2, 16.37), radius=300.0)

        assert [p.id for p in nearby_search(req, api)] == ["n1"]
        assert api.calls == [("nearby", req)]

    @pytest.mark.parametrize(
        "lat,lng,field",
        [(91.0, 0.0, "lat"), (-90.1, 0.0, "lat"), (0.0, 180.5, "lng"), (0.0, -181.0, "lng")],
    )
    def test_bad_coordinates(self, lat, lng, field):
        """Latitude is checked before longitude, each under its own field."""
        api = StubPlacesApi()
        with pytest.raises(ValidationError) as exc:
            nearby_search(NearbySearchRequest(center=GeoPoint(lat, lng)), api)
        assert exc.value.field == field
        assert api.calls == []

    @pytest.mark.parametrize("radius", [0.0, -5.0])
    def test_radius_must_be_positive(self, radius):
        """Zero or negative radius is rejected."""
        api = StubPlacesApi()
        with pytest.raises(ValidationError) as exc:
            nearby_search(NearbySearchRequest(center=GeoPoint(0.0, 0.0), radius=radius), api)
        assert exc.value.field == "radius"
        assert exc.value.message == "radius must be positive"
        assert api.calls == []


class TestAutocomplete:
    """Test autocomplete validation."""

    def test_empty_input_rejected(self):
        """Empty input is a validation error on 'input'."""
        api = StubPlacesApi()
        with pytest.raises(ValidationError) as exc:
            autocomplete(AutocompleteRequest(input=""), api)
        assert exc.value.field == "input"
        assert api.calls == []

    def test_bias_center_checked(self):
        """An optional bias center must be a real coordinate."""
        api = StubPlacesApi()
        with pytest.raises(ValidationError) as exc:
            autocomplete(AutocompleteRequest(input="caf", center=GeoPoint(100.0, 0.0)), api)
        assert exc.value.field == "lat"

    def test_delegates_to_provider(self):
        """Valid input goes to the provider."""
        api = StubPlacesApi()
        req = AutocompleteRequest(input="caf")
        assert len(autocomplete(req, api)) == 1
        assert api.calls == [("autocomplete", req)]


class TestPlaceDetails:
    """Test place details validation."""

    def test_empty_place_id_rejected(self):
        """Empty place IDs never reach the provider."""
        api = StubPlacesApi()
        with pytest.raises(ValidationError) as exc:
            place_details(DetailsRequest(place_id=""), api)
        assert exc.value.field == "place_id"
        assert exc.value.message == "place_id is required"
        assert api.calls == []

    def test_delegates_to_provider(self):
        """A place ID is looked up as given."""
        api = StubPlacesApi()
        assert place_details(DetailsRequest(place_id="ChIJ123"), api).id == "ChIJ123"
