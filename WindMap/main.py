"""Wind map for Oceanside Marina: refreshes wind and buoy feeds and writes a Leaflet page."""
import argparse
import json
import logging
import os
import signal
import sys
from typing import Optional, Tuple

from dotenv import load_dotenv

from cache_store import CacheStore, JsonFileStore, KeyValueStore
from feed_provider import ConfigurationError
from feed_service import DEFAULT_TTL_MILLIS, DisabledFeedService, FeedService
from map_layout import OCEANSIDE_MARINA, NOAA_BUOY_46224, calculate_map
from map_page import write_page
from ndbc_provider import DEFAULT_PROXY, NdbcBuoyProvider, buoy_from_record
from openweather_provider import OpenWeatherProvider, forecast_from_payload
from scheduler import DEFAULT_INTERVAL_SECONDS, RefreshScheduler
from wind_data import MapViewState, PipelineResult

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_OUTPUT = os.path.join(BASE_DIR, "wind-map.html")
DEFAULT_CACHE_FILE = os.path.join(BASE_DIR, "wind-map-cache.json")
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "wind-map.log")

WIND_CACHE_KEY = "windData"
BUOY_CACHE_KEY = "buoyData"
MAP_POSITION_KEY = "mapPosition"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Marina wind map")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="HTML file to write")
    parser.add_argument("--cache-file", default=DEFAULT_CACHE_FILE)
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--refresh", type=float, default=DEFAULT_INTERVAL_SECONDS, help="Seconds between refreshes")
    parser.add_argument("--cache-ttl", type=int, default=DEFAULT_TTL_MILLIS // 1000, help="Cache TTL in seconds")
    parser.add_argument("--max-retries", type=int, default=1)
    parser.add_argument("--retry-delay", type=float, default=2.0)
    parser.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--center", help="Initial map center as LAT,LNG (saved for next time)")
    parser.add_argument("--zoom", type=int, help="Initial map zoom (saved for next time)")
    parser.add_argument("--once", action="store_true", help="Refresh once, write the page and exit")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def load_config() -> Tuple[Optional[str], float, float, str]:
    """
    Read configuration from the environment (and .env).

    The API key is returned as-is, possibly None; a missing key only
    disables the forecast pipeline.

    Returns:
        (api_key, lat, lon, buoy_proxy_template)
    """
    load_dotenv()
    api_key = os.getenv("OPENWEATHER_API_KEY")
    lat = os.getenv("WINDMAP_LAT", str(OCEANSIDE_MARINA.lat))
    lon = os.getenv("WINDMAP_LON", str(OCEANSIDE_MARINA.lng))
    proxy = os.getenv("WINDMAP_BUOY_PROXY", DEFAULT_PROXY)

    try:
        lat_val = float(lat)
        lon_val = float(lon)
    except ValueError as exc:
        raise SystemExit(f"Invalid coordinates: {exc}") from exc
    if not -90 <= lat_val <= 90 or not -180 <= lon_val <= 180:
        raise SystemExit(f"Invalid coordinates: {lat_val}, {lon_val}")

    logging.info("Configuration loaded: lat=%s lon=%s buoy proxy=%s", lat_val, lon_val, proxy or "(direct)")
    return api_key, lat_val, lon_val, proxy


def build_forecast_service(
    api_key: Optional[str],
    lat: float,
    lon: float,
    cache: CacheStore,
    args: argparse.Namespace
) -> FeedService:
    try:
        provider = OpenWeatherProvider(api_key=api_key, lat=lat, lon=lon, timeout=args.timeout)
    except ConfigurationError as err:
        logging.error("Configuration error: %s", err)
        return DisabledFeedService(
            "wind",
            str(err),
            cache=cache,
            cache_key=WIND_CACHE_KEY,
            normalize=forecast_from_payload,
            ttl_millis=args.cache_ttl * 1000,
        )
    service = FeedService(
        name="wind",
        provider=provider,
        cache=cache,
        cache_key=WIND_CACHE_KEY,
        normalize=forecast_from_payload,
        ttl_millis=args.cache_ttl * 1000,
        max_retries=args.max_retries,
        retry_delay_seconds=args.retry_delay,
    )
    logging.info("Wind service ready (cache ttl=%ss)", args.cache_ttl)
    return service


def build_buoy_service(proxy: str, cache: CacheStore, args: argparse.Namespace) -> FeedService:
    provider = NdbcBuoyProvider(station_id=NOAA_BUOY_46224.id, proxy_template=proxy, timeout=args.timeout)
    service = FeedService(
        name="buoy",
        provider=provider,
        cache=cache,
        cache_key=BUOY_CACHE_KEY,
        normalize=buoy_from_record,
        ttl_millis=args.cache_ttl * 1000,
        max_retries=args.max_retries,
        retry_delay_seconds=args.retry_delay,
    )
    logging.info("Buoy service ready (station=%s)", NOAA_BUOY_46224.id)
    return service


def parse_center(text: str) -> Tuple[float, float]:
    try:
        lat, lng = (float(part) for part in text.split(","))
    except ValueError as exc:
        raise SystemExit(f"Invalid --center '{text}', expected LAT,LNG") from exc
    return lat, lng


def load_view_state(store: KeyValueStore) -> Optional[MapViewState]:
    """Saved map position, or None if there is none or it is corrupt."""
    raw = store.get_item(MAP_POSITION_KEY)
    if raw is None:
        return None
    try:
        return MapViewState.from_dict(json.loads(raw))
    except ValueError as e:
        logging.error("Failed to restore map position: %s", e)
        return None


def save_view_state(store: KeyValueStore, state: MapViewState) -> None:
    store.set_item(MAP_POSITION_KEY, json.dumps(state.to_dict()))
    logging.info("Map position saved: center=%s zoom=%s", state.center, state.zoom)


def resolve_view_state(store: KeyValueStore, args: argparse.Namespace) -> Optional[MapViewState]:
    """CLI --center/--zoom override (and persist) the stored position."""
    saved = load_view_state(store)
    if args.center is None and args.zoom is None:
        return saved
    default_center = saved.center if saved else (OCEANSIDE_MARINA.lat, OCEANSIDE_MARINA.lng)
    default_zoom = saved.zoom if saved else 14
    center = parse_center(args.center) if args.center else default_center
    zoom = args.zoom if args.zoom is not None else default_zoom
    try:
        state = MapViewState.from_dict({"center": list(center), "zoom": zoom})
    except ValueError as exc:
        raise SystemExit(f"Invalid map position: {exc}") from exc
    save_view_state(store, state)
    return state


class WindMapRunner:
    """Keeps the latest pipeline results and rewrites the page when they change."""

    def __init__(
        self,
        forecast_service: FeedService,
        buoy_service: FeedService,
        output: str,
        view: Optional[MapViewState] = None
    ):
        self.forecast_service = forecast_service
        self.buoy_service = buoy_service
        self.output = output
        self.view = view
        self.forecast = PipelineResult.empty()
        self.buoy = PipelineResult.empty()

    def refresh_forecast(self) -> PipelineResult:
        self.forecast = self.forecast_service.refresh()
        logging.info("Wind: status=%s", self.forecast.status)
        self.render()
        return self.forecast

    def refresh_buoy(self) -> PipelineResult:
        self.buoy = self.buoy_service.refresh()
        logging.info("Buoy: status=%s", self.buoy.status)
        self.render()
        return self.buoy

    def render(self) -> str:
        map_view = calculate_map(self.forecast, self.buoy, self.view)
        return write_page(map_view, self.output)


def build_scheduler(runner: WindMapRunner, refresh_seconds: float) -> RefreshScheduler:
    scheduler = RefreshScheduler()
    scheduler.add_task("wind", runner.refresh_forecast, refresh_seconds)
    scheduler.add_task("buoy", runner.refresh_buoy, refresh_seconds)
    return scheduler


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    api_key, lat, lon, proxy = load_config()

    store = JsonFileStore(args.cache_file)
    cache = CacheStore(store)
    runner = WindMapRunner(
        forecast_service=build_forecast_service(api_key, lat, lon, cache, args),
        buoy_service=build_buoy_service(proxy, cache, args),
        output=args.output,
        view=resolve_view_state(store, args),
    )

    if args.once:
        runner.refresh_forecast()
        runner.refresh_buoy()
        return

    scheduler = build_scheduler(runner, max(args.refresh, 1.0))

    def signal_handler(signum, frame):
        logging.info("Received signal %s, shutting down", signum)
        scheduler.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        scheduler.run_forever()
    finally:
        logging.info("Wind map stopped; last page at %s", runner.output)


if __name__ == "__main__":
    main()
