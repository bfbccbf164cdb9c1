from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from zupo.config import Settings, settings
from zupo.contracts.route_contract import GeoPoint
from zupo.core.engine import autocomplete, nearby_search, place_details, run_route_search, text_search
from zupo.core.models import (
    PRICE_LEVEL_DISPLAY,
    PRICE_LEVELS,
    AutocompleteRequest,
    DetailsRequest,
    NearbySearchRequest,
    Place,
    RouteRequest,
    RouteSearchOutcome,
    SearchRequest,
    Suggestion,
    TravelMode,
)
from zupo.errors import MissingApiKeyError, ValidationError, ZupoError
from zupo.providers.factory import build_providers

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Request model field -> the flag a user typed
_FLAG_NAMES = {
    "search_radius": "radius",
    "results_per_waypoint": "limit",
    "max_waypoints": "max-waypoints",
}


def _stars(rating: float) -> str:
    full = int(rating)
    half = 1 if rating - full >= 0.5 else 0
    empty = max(0, 5 - full - half)
    return "★" * full + "⯪" * half + "☆" * empty + f" {rating:.1f}"


def _price(level: Optional[str]) -> str:
    return PRICE_LEVEL_DISPLAY.get(level, level) if level else ""


def _places_table(places: List[Place], title: Optional[str] = None) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Rating", style="yellow")
    table.add_column("Price")
    table.add_column("Address", style="dim")

    for j, p in enumerate(places, start=1):
        rating = _stars(p.rating) if p.rating is not None else ""
        if rating and p.user_rating_count:
            rating += f" ({p.user_rating_count})"
        table.add_row(str(j), escape(p.name), rating, _price(p.price_level), escape(p.address))
    return table


def render_places(console: Console, places: List[Place], title: str) -> None:
    if not places:
        console.print(f"[dim]{escape(title)}: no places found.[/dim]")
        return
    console.print(_places_table(places, title=title))


def render_route(console: Console, outcome: RouteSearchOutcome) -> None:
    console.print(
        f"[bold]Route[/bold] [cyan]{escape(outcome.origin)}[/cyan] [dim]→[/dim] "
        f"[cyan]{escape(outcome.destination)}[/cyan] [dim]({outcome.travel_mode}) "
        f"{'─' * 20} {len(outcome.waypoints)} waypoints[/dim]"
    )
    console.print()

    for wp in outcome.waypoints:
        console.print(
            f"  [bold yellow]Waypoint {wp.waypoint_index + 1}:[/bold yellow] "
            f"({wp.waypoint.latitude:.4f}, {wp.waypoint.longitude:.4f})"
        )
        if not wp.places:
            console.print("    [dim]No places found near this waypoint.[/dim]")
        else:
            console.print(_places_table(wp.places))
        console.print()


def render_place_details(console: Console, place: Place) -> None:
    rule = "[dim]" + "━" * 60 + "[/dim]"
    console.print(rule)
    console.print(f"  [bold cyan]{escape(place.name)}[/bold cyan]")
    if place.primary_type_display_name is not None:
        console.print(f"  [dim]{escape(place.primary_type_display_name.text)}[/dim]")
    console.print(rule)

    if place.rating is not None:
        console.print(
            f"  [bold]Rating:[/bold] {_stars(place.rating)} "
            f"[dim]({place.user_rating_count or 0} reviews)[/dim]"
        )
    if place.price_level:
        console.print(f"  [bold]Price:[/bold] {_price(place.price_level)}")
    if place.business_status:
        status = "[green]Open[/green]" if place.business_status == "OPERATIONAL" else f"[red]{escape(place.business_status)}[/red]"
        console.print(f"  [bold]Status:[/bold] {status}")
    if place.formatted_address:
        console.print(f"  [bold]Address:[/bold] {escape(place.formatted_address)}")
    if place.location is not None:
        console.print(f"  [bold]Location:[/bold] {place.location.latitude}, {place.location.longitude}")
    if place.phone:
        console.print(f"  [bold]Phone:[/bold] {escape(place.phone)}")
    if place.website_uri:
        console.print(f"  [bold]Website:[/bold] [underline]{escape(place.website_uri)}[/underline]")
    if place.google_maps_uri:
        console.print(f"  [bold]Maps:[/bold] [underline]{escape(place.google_maps_uri)}[/underline]")

    if place.editorial_summary is not None and place.editorial_summary.text:
        console.print()
        console.print("  [bold]Summary[/bold]")
        console.print(f"  {escape(place.editorial_summary.text)}")

    current = place.current_opening_hours
    if current is not None and current.open_now is not None:
        console.print()
        state = "[green]Open now[/green]" if current.open_now else "[red]Closed[/red]"
        console.print(f"  [bold]Hours:[/bold] {state}")
    hours = current or place.regular_opening_hours
    if hours is not None:
        for line in hours.weekday_descriptions or []:
            console.print(f"    [dim]{escape(line)}[/dim]")

    if place.reviews:
        console.print()
        console.print(f"  [bold]Reviews[/bold] [dim]({len(place.reviews)})[/dim]")
        for review in place.reviews:
            author = review.author_attribution.display_name if review.author_attribution else "Anonymous"
            stars = _stars(review.rating) if review.rating is not None else ""
            when = review.relative_publish_time_description or ""
            console.print(f"    [cyan]{escape(author)}[/cyan] {stars} [dim]{escape(when)}[/dim]")
            if review.text is not None and review.text.text:
                console.print(f"      {escape(review.text.text)}")

    if place.photos:
        console.print()
        console.print(f"  [bold]Photos[/bold] [dim]({len(place.photos)})[/dim]")
        for photo in place.photos:
            size = f"{photo.width_px}x{photo.height_px}" if photo.width_px and photo.height_px else ""
            console.print(f"    [dim]{escape(photo.name)} {size}[/dim]")


def render_suggestions(console: Console, suggestions: List[Suggestion]) -> None:
    if not suggestions:
        console.print("[yellow]No suggestions found.[/yellow]")
        return

    console.print(f"[bold]Suggestions[/bold] [dim]({len(suggestions)}) {'─' * 40}[/dim]")
    console.print()

    for i, s in enumerate(suggestions, start=1):
        if s.place_prediction is not None:
            pred = s.place_prediction
            fmt = pred.structured_format
            main = fmt.main_text.text if fmt and fmt.main_text else None
            secondary = fmt.secondary_text.text if fmt and fmt.secondary_text else None
            text = pred.text.text if pred.text else "?"

            console.print(f"  [dim]{i:>2}.[/dim] [bold cyan]{escape(main or text)}[/bold cyan]")
            if secondary:
                console.print(f"      [dim]{escape(secondary)}[/dim]")
            if pred.types:
                console.print(f"      [dim]{escape(', '.join(pred.types))}[/dim]")
            if pred.place_id:
                console.print(f"      [dim]ID: {escape(pred.place_id)}[/dim]")
        elif s.query_prediction is not None:
            text = s.query_prediction.text.text if s.query_prediction.text else "?"
            console.print(f"  [dim]{i:>2}.[/dim] [yellow]{escape(text)}[/yellow] [dim](query)[/dim]")


def _print_json(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _dump(model: BaseModel) -> Any:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _build_request(cls: Type[M], **fields: Any) -> M:
    """Construct a request model; out-of-range values become a zupo ValidationError."""
    try:
        return cls(**fields)
    except PydanticValidationError as e:
        err = e.errors()[0]
        loc = str(err["loc"][0]) if err.get("loc") else cls.__name__
        raise ValidationError(_FLAG_NAMES.get(loc, loc.replace("_", "-")), err["msg"]) from None


def _parse_price_levels(text: Optional[str]) -> List[str]:
    if not text:
        return []
    out: List[str] = []
    for tok in text.split(","):
        tok = tok.strip()
        if not tok:
            continue
        try:
            out.append(PRICE_LEVELS[int(tok)])
        except (ValueError, KeyError):
            raise ValidationError("price-level", f"'{tok}' is not a price level (0-4)") from None
    return out


def _comma_list(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [tok.strip() for tok in text.split(",") if tok.strip()]


def _explicit_center(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise ValidationError("location", "--lat and --lng must be given together")
    return GeoPoint(lat, lng)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="zupo",
        description="Search Google Places, including along a route.",
        epilog="Environment:\n  GOOGLE_PLACES_API_KEY    API key for Google Places (required for --provider google)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("--api-key", help="Google Places API key (or set GOOGLE_PLACES_API_KEY)")
    ap.add_argument("--json", action="store_true", help="Output JSON instead of text")
    ap.add_argument("--no-color", action="store_true", help="Disable colored output")
    ap.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    ap.add_argument("--provider", choices=["google", "mock"], default="google")
    ap.add_argument("--base-url", help="Override Places API base URL")
    ap.add_argument("--routes-base-url", help="Override Routes API base URL")
    ap.add_argument("--debug", action="store_true")

    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("search", help="Search for places by text query")
    sp.add_argument("-q", "--query", required=True, help='e.g. "coffee shops in Vienna"')
    sp.add_argument("--type", dest="included_type", help="Place type filter, e.g. restaurant")
    sp.add_argument("--min-rating", type=float, help="Minimum rating (0.0-5.0)")
    sp.add_argument("--price-level", help="Comma-separated price levels, 0=Free .. 4=$$$$")
    sp.add_argument("--open-now", action="store_true")
    sp.add_argument("--lat", type=float, help="Latitude for location bias")
    sp.add_argument("--lng", type=float, help="Longitude for location bias")
    sp.add_argument("--radius", type=float, default=1000.0, help="Bias radius in metres")
    sp.add_argument("-l", "--limit", type=int, default=10, help="Maximum results (1-20)")
    sp.add_argument("--lang", help="BCP-47 language code, e.g. en")
    sp.add_argument("--region", help="CLDR region code, e.g. US")

    np_ = sub.add_parser("nearby", help="Find places within a circle")
    np_.add_argument("--lat", type=float, required=True)
    np_.add_argument("--lng", type=float, required=True)
    np_.add_argument("--radius", type=float, default=1000.0, help="Radius in metres")
    np_.add_argument("--include-type", help="Comma-separated place types to include")
    np_.add_argument("--exclude-type", help="Comma-separated place types to exclude")
    np_.add_argument("-l", "--limit", type=int, default=10, help="Maximum results (1-20)")
    np_.add_argument("--lang", help="BCP-47 language code")
    np_.add_argument("--region", help="CLDR region code")

    ac = sub.add_parser("autocomplete", help="Place and query suggestions for partial input")
    ac.add_argument("-i", "--input", required=True, help="Partial text, e.g. 'cafe cen'")
    ac.add_argument("--session-token", help="Groups autocomplete calls into one billing session")
    ac.add_argument("--lat", type=float, help="Latitude for location bias")
    ac.add_argument("--lng", type=float, help="Longitude for location bias")
    ac.add_argument("--radius", type=float, help="Bias radius in metres")
    ac.add_argument("-l", "--limit", type=int, default=5, help="Maximum suggestions")
    ac.add_argument("--lang", help="BCP-47 language code")
    ac.add_argument("--region", help="CLDR region code")

    dp = sub.add_parser("details", help="Full details for one place")
    dp.add_argument("--place-id", required=True, help="Place ID from search, nearby or autocomplete")
    dp.add_argument("--reviews", action="store_true", help="Include reviews")
    dp.add_argument("--photos", action="store_true", help="Include photo references")
    dp.add_argument("--lang", help="BCP-47 language code")
    dp.add_argument("--region", help="CLDR region code")

    rp = sub.add_parser("route", help="Search for places along a route")
    rp.add_argument("-q", "--query", required=True, help="What to search for along the route")
    rp.add_argument("--from", dest="origin", required=True, help="Origin address or place name")
    rp.add_argument("--to", dest="destination", required=True, help="Destination address or place name")
    rp.add_argument("--mode", default="DRIVE", help="DRIVE, WALK, BICYCLE, TWO_WHEELER, TRANSIT")
    rp.add_argument("--radius", type=float, default=1000.0, help="Search radius around each waypoint (m)")
    rp.add_argument("--max-waypoints", type=int, default=5, help="Waypoints to sample along the route")
    rp.add_argument("-l", "--limit", type=int, default=5, help="Maximum results per waypoint")
    rp.add_argument("--workers", type=int, help="Parallel waypoint searches")
    rp.add_argument("--lang", help="BCP-47 language code")
    rp.add_argument("--region", help="CLDR region code")

    return ap


def _effective_settings(args: argparse.Namespace) -> Settings:
    update = {}
    if args.api_key:
        update["api_key"] = args.api_key
    if args.timeout is not None:
        update["timeout_s"] = args.timeout
    if args.base_url:
        update["places_base_url"] = args.base_url
    if args.routes_base_url:
        update["routes_base_url"] = args.routes_base_url
    if getattr(args, "workers", None):
        update["route_search_workers"] = args.workers
    return settings.model_copy(update=update)


def _cmd_search(args: argparse.Namespace, cfg: Settings, console: Console) -> None:
    center = _explicit_center(args.lat, args.lng)
    req = _build_request(
        SearchRequest,
        query=args.query,
        center=center,
        radius=args.radius if center is not None else None,
        limit=args.limit,
        language=args.lang,
        region=args.region,
        included_type=args.included_type,
        min_rating=args.min_rating,
        price_levels=_parse_price_levels(args.price_level),
        open_now=args.open_now,
    )
    _, places = build_providers(args.provider, cfg)
    found = text_search(req, places)
    if args.json:
        _print_json({"places": [_dump(p) for p in found]})
    else:
        render_places(console, found, "Search Results")


def _cmd_nearby(args: argparse.Namespace, cfg: Settings, console: Console) -> None:
    req = _build_request(
        NearbySearchRequest,
        center=GeoPoint(args.lat, args.lng),
        radius=args.radius,
        included_types=_comma_list(args.include_type),
        excluded_types=_comma_list(args.exclude_type),
        limit=args.limit,
        language=args.lang,
        region=args.region,
    )
    _, places = build_providers(args.provider, cfg)
    found = nearby_search(req, places)
    if args.json:
        _print_json({"places": [_dump(p) for p in found]})
    else:
        render_places(console, found, "Nearby Places")


def _cmd_autocomplete(args: argparse.Namespace, cfg: Settings, console: Console) -> None:
    center = _explicit_center(args.lat, args.lng)
    req = _build_request(
        AutocompleteRequest,
        input=args.input,
        session_token=args.session_token,
        center=center,
        radius=args.radius if center is not None else None,
        limit=args.limit,
        language=args.lang,
        region=args.region,
    )
    _, places = build_providers(args.provider, cfg)
    suggestions = autocomplete(req, places)
    if args.json:
        _print_json({"suggestions": [_dump(s) for s in suggestions]})
    else:
        render_suggestions(console, suggestions)


def _cmd_details(args: argparse.Namespace, cfg: Settings, console: Console) -> None:
    req = DetailsRequest(
        place_id=args.place_id,
        include_reviews=args.reviews,
        include_photos=args.photos,
        language=args.lang,
        region=args.region,
    )
    _, places = build_providers(args.provider, cfg)
    place = place_details(req, places)
    if args.json:
        _print_json(_dump(place))
    else:
        render_place_details(console, place)


def _cmd_route(args: argparse.Namespace, cfg: Settings, console: Console) -> None:
    req = _build_request(
        RouteRequest,
        query=args.query,
        origin=args.origin,
        destination=args.destination,
        travel_mode=TravelMode.parse(args.mode),
        search_radius=args.radius,
        max_waypoints=args.max_waypoints,
        results_per_waypoint=args.limit,
        language=args.lang,
        region=args.region,
    )
    directions, places = build_providers(args.provider, cfg)
    outcome = run_route_search(req, directions, places, max_workers=cfg.route_search_workers)
    if args.json:
        _print_json(outcome.to_dict())
    else:
        render_route(console, outcome)


_COMMANDS = {
    "search": _cmd_search,
    "nearby": _cmd_nearby,
    "autocomplete": _cmd_autocomplete,
    "details": _cmd_details,
    "route": _cmd_route,
}


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [zupo] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    console = Console(no_color=args.no_color, highlight=False)
    try:
        _COMMANDS[args.command](args, _effective_settings(args), console)
    except (ValidationError, MissingApiKeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except ZupoError as e:
        log.debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
