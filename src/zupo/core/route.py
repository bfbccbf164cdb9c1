"""Route geometry: polyline decoding and arc-length waypoint sampling."""
from __future__ import annotations

from bisect import bisect_left
from math import atan2, cos, radians, sin, sqrt
from typing import List, Optional, Sequence, Tuple

from zupo.contracts.route_contract import GeoPoint, Path


# ---------------------------------------------------------------------------
# Geo helpers
# ---------------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0

_POLYLINE_OFFSET = 63
_POLYLINE_SCALE = 1e5


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in metres between two WGS-84 points."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [a.latitude, a.longitude, b.latitude, b.longitude])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    h = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(h), sqrt(1 - h))


def _interpolate_point(a: GeoPoint, b: GeoPoint, frac: float) -> GeoPoint:
    """Linear interpolation in degree space (frac in [0,1])."""
    return GeoPoint(
        latitude=a.latitude + frac * (b.latitude - a.latitude),
        longitude=a.longitude + frac * (b.longitude - a.longitude),
    )


def _read_delta(data: bytes, pos: int) -> Tuple[Optional[int], int]:
    """Read one zig-zag varint starting at *pos*.

    Returns ``(delta, next_pos)``; ``delta`` is None when the input ends
    before the terminating 5-bit group.
    """
    result = 0
    shift = 0
    while pos < len(data):
        b = data[pos] - _POLYLINE_OFFSET
        pos += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            return (~(result >> 1) if result & 1 else result >> 1), pos
    return None, pos


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def decode_polyline(encoded: str) -> Path:
    """
    Decode a Google encoded polyline into points.

    Lenient on bad input: decoding stops at the first incomplete
    latitude/longitude pair and the points decoded so far are returned.
    Nothing is raised, so a corrupted provider response looks like a
    shorter route.
    """
    data = encoded.encode("utf-8")
    points: List[GeoPoint] = []
    lat = lng = 0
    pos = 0

    while pos < len(data):
        dlat, pos = _read_delta(data, pos)
        if dlat is None:
            break
        dlng, pos = _read_delta(data, pos)
        if dlng is None:
            break
        lat += dlat
        lng += dlng
        points.append(GeoPoint(latitude=lat / _POLYLINE_SCALE, longitude=lng / _POLYLINE_SCALE))

    return tuple(points)


def cumulative_distances(path: Sequence[GeoPoint]) -> List[float]:
    """Running along-path distance in metres, one entry per point."""
    cum: List[float] = [0.0]
    for i in range(1, len(path)):
        cum.append(cum[-1] + haversine_m(path[i - 1], path[i]))
    return cum


def sample_waypoints(path: Sequence[GeoPoint], count: int) -> List[GeoPoint]:
    """
    Pick *count* points evenly spaced by distance along *path*.

    Waypoint ``i`` sits at ``total * (i + 0.5) / count`` metres from the
    start, i.e. in the middle of each of *count* equal-length stretches, so
    no waypoint lands exactly on the origin or destination.

    Parameters
    ----------
    path : sequence of GeoPoint
        Decoded route, in travel order.
    count : int
        Number of waypoints wanted.

    Returns
    -------
    list of GeoPoint
        The path itself when it has at most one point or *count* is 0; a
        single point when every point of the path coincides.
    """
    if len(path) <= 1 or count == 0:
        return list(path)

    cum = cumulative_distances(path)
    total_dist = cum[-1]
    if total_dist == 0:
        return [path[0]]

    last_seg = len(path) - 2
    waypoints: List[GeoPoint] = []
    for i in range(count):
        target_d = total_dist * (i + 0.5) / count

        # Segment seg -> seg+1 contains target_d
        seg = min(max(bisect_left(cum, target_d) - 1, 0), last_seg)

        seg_len = cum[seg + 1] - cum[seg]
        if seg_len == 0:
            waypoints.append(path[seg])
            continue

        frac = (target_d - cum[seg]) / seg_len
        waypoints.append(_interpolate_point(path[seg], path[seg + 1], frac))

    return waypoints
