"""
External data collaborator: weather, flight status, airport info and live
tracking.

Live data comes from OpenWeatherMap (weather) and AviationStack (the flight
kinds) when an API key is configured. Without a key, or when the upstream call
fails in any way, a deterministic mock payload derived from (kind, key) is
returned instead. Payloads say which one they are in ``source``. Live payloads
are cached in Valkey when a cache is configured.

Nothing here raises into the workflows except for caller mistakes (unknown
kind, blank key).
"""

import hashlib
import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

import requests

from ..cache.client import PayloadCache
from ..cache.utils import CacheKeyPrefix, TTLPreset, build_key
from ..exceptions import ValidationError
from ..models.enums import ExternalDataKind
from ..utils.config import AeroDeskConfig
from .common import Clock

logger = logging.getLogger(__name__)

SOURCE_LIVE = "live"
SOURCE_MOCK = "mock"

USER_AGENT = "AeroDesk/0.1"

WEATHER_DESCRIPTIONS = ["clear sky", "few clouds", "scattered clouds", "light rain", "mist", "light snow"]
FLIGHT_STATUSES = ["scheduled", "active", "landed", "delayed"]
TIMEZONES = ["UTC", "Europe/London", "America/New_York", "Asia/Tokyo", "Asia/Kolkata", "Australia/Sydney"]


class UpstreamError(Exception):
    """The live source returned nothing usable."""


def mock_rng(kind: ExternalDataKind, key: str) -> random.Random:
    """Random generator seeded from (kind, key), stable across processes."""
    digest = hashlib.sha256(f"{kind.value}:{key.upper()}".encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


class ExternalDataService:
    """Fetches external payloads with cache-aside and mock fallback."""

    def __init__(
        self,
        config: AeroDeskConfig,
        cache: Optional[PayloadCache] = None,
        session: Optional[requests.Session] = None,
        clock: Clock = datetime.now,
    ):
        """
        Initialize the service.

        Args:
            config: API keys, endpoints and HTTP timeout
            cache: Optional Valkey payload cache
            session: HTTP session; a new one is created when omitted
            clock: Source of ``fetched_at`` timestamps
        """
        self.config = config
        self.cache = cache
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = config.external_api_timeout_seconds
        self.clock = clock

        self._live: Dict[ExternalDataKind, Callable[[str], Dict[str, Any]]] = {
            ExternalDataKind.WEATHER: self._live_weather,
            ExternalDataKind.FLIGHT_STATUS: self._live_flight_status,
            ExternalDataKind.AIRPORT_INFO: self._live_airport_info,
            ExternalDataKind.LIVE_TRACKING: self._live_tracking,
        }
        self._mock: Dict[ExternalDataKind, Callable[[str], Dict[str, Any]]] = {
            ExternalDataKind.WEATHER: self._mock_weather,
            ExternalDataKind.FLIGHT_STATUS: self._mock_flight_status,
            ExternalDataKind.AIRPORT_INFO: self._mock_airport_info,
            ExternalDataKind.LIVE_TRACKING: self._mock_tracking,
        }

    def fetch(self, kind: Union[str, ExternalDataKind], key: str) -> Dict[str, Any]:
        """
        Fetch one payload.

        Args:
            kind: weather, flight_status, airport_info or live_tracking
            key: City for weather, flight number or airport code otherwise

        Returns:
            Envelope with ``kind``, ``key``, ``source`` (live or mock),
            ``fetched_at`` and the ``data`` itself

        Raises:
            ValidationError: Unknown kind or blank key
        """
        try:
            kind = ExternalDataKind(kind)
        except ValueError as e:
            raise ValidationError(f"unknown external data kind '{kind}'", operation="fetch_external") from e
        key = (key or "").strip()
        if not key:
            raise ValidationError("lookup key is required", operation="fetch_external", entity_id=kind.value)

        cache_key = build_key(CacheKeyPrefix.for_kind(kind), key)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {cache_key}")
                return cached

        if self.has_live_source(kind):
            try:
                payload = self._envelope(kind, key, SOURCE_LIVE, self._live[kind](key))
            except (requests.RequestException, UpstreamError, ValueError, KeyError, IndexError, TypeError) as e:
                logger.warning(f"Live {kind.value} lookup for '{key}' failed, using mock data: {e}")
            else:
                if self.cache is not None:
                    self.cache.set(cache_key, payload, self.cache_ttl(kind))
                return payload

        return self._envelope(kind, key, SOURCE_MOCK, self._mock[kind](key))

    def cache_ttl(self, kind: ExternalDataKind) -> int:
        """Weather follows EXTERNAL_CACHE_TTL_SECONDS; flight data uses the presets."""
        if kind == ExternalDataKind.WEATHER:
            return self.config.external_cache_ttl_seconds
        return TTLPreset.for_kind(kind)

    def has_live_source(self, kind: ExternalDataKind) -> bool:
        if kind == ExternalDataKind.WEATHER:
            return bool(self.config.weather_api_key)
        return bool(self.config.aviationstack_api_key)

    def _envelope(self, kind: ExternalDataKind, key: str, source: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "kind": kind.value,
            "key": key,
            "source": source,
            "fetched_at": self.clock().isoformat(),
            "data": data,
        }

    # Live sources

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _aviationstack(self, resource: str, **params: Any) -> Dict[str, Any]:
        url = f"{self.config.aviationstack_api_url.rstrip('/')}/{resource}"
        body = self._get_json(url, {"access_key": self.config.aviationstack_api_key, **params})
        if "error" in body:
            raise UpstreamError(body["error"].get("message", "AviationStack error"))
        results = body.get("data") or []
        if not results:
            raise UpstreamError(f"no {resource} match {params}")
        return results[0]

    def _live_weather(self, city: str) -> Dict[str, Any]:
        body = self._get_json(
            self.config.weather_api_url,
            {"q": city, "appid": self.config.weather_api_key, "units": "metric"},
        )
        return {
            "city": body.get("name", city),
            "temperature": body["main"]["temp"],
            "description": body["weather"][0]["description"],
            "humidity": body["main"]["humidity"],
            "wind_speed": body.get("wind", {}).get("speed"),
        }

    def _live_flight_status(self, flight_number: str) -> Dict[str, Any]:
        flight = self._aviationstack("flights", flight_iata=flight_number.upper(), limit=1)
        departure = flight.get("departure") or {}
        arrival = flight.get("arrival") or {}
        return {
            "flight_number": flight_number.upper(),
            "status": flight.get("flight_status"),
            "departure_airport": departure.get("iata"),
            "arrival_airport": arrival.get("iata"),
            "scheduled_departure": departure.get("scheduled"),
            "scheduled_arrival": arrival.get("scheduled"),
            "gate": departure.get("gate"),
            "delay_minutes": departure.get("delay") or 0,
        }

    def _live_airport_info(self, code: str) -> Dict[str, Any]:
        airport = self._aviationstack("airports", search=code.upper(), limit=1)
        return {
            "iata_code": airport.get("iata_code"),
            "airport_name": airport.get("airport_name"),
            "country": airport.get("country_name"),
            "timezone": airport.get("timezone"),
            "latitude": float(airport["latitude"]),
            "longitude": float(airport["longitude"]),
        }

    def _live_tracking(self, flight_number: str) -> Dict[str, Any]:
        flight = self._aviationstack("flights", flight_iata=flight_number.upper(), flight_status="active", limit=1)
        live = flight.get("live")
        if not live:
            raise UpstreamError(f"no live position for {flight_number}")
        return {
            "flight_number": flight_number.upper(),
            "latitude": live["latitude"],
            "longitude": live["longitude"],
            "altitude": live.get("altitude"),
            "speed": live.get("speed_horizontal"),
            "direction": live.get("direction"),
            "is_ground": live.get("is_ground", False),
        }

    # Mock sources

    def _mock_weather(self, city: str) -> Dict[str, Any]:
        rng = mock_rng(ExternalDataKind.WEATHER, city)
        return {
            "city": city,
            "temperature": round(rng.uniform(-5.0, 35.0), 1),
            "description": rng.choice(WEATHER_DESCRIPTIONS),
            "humidity": rng.randint(30, 95),
            "wind_speed": round(rng.uniform(0.0, 20.0), 1),
        }

    def _mock_flight_status(self, flight_number: str) -> Dict[str, Any]:
        rng = mock_rng(ExternalDataKind.FLIGHT_STATUS, flight_number)
        status = rng.choice(FLIGHT_STATUSES)
        return {
            "flight_number": flight_number.upper(),
            "status": status,
            "departure_airport": None,
            "arrival_airport": None,
            "scheduled_departure": None,
            "scheduled_arrival": None,
            "gate": f"{rng.choice('ABCDG')}{rng.randint(1, 30)}",
            "delay_minutes": rng.choice([15, 30, 45, 60]) if status == "delayed" else 0,
        }

    def _mock_airport_info(self, code: str) -> Dict[str, Any]:
        rng = mock_rng(ExternalDataKind.AIRPORT_INFO, code)
        return {
            "iata_code": code.upper(),
            "airport_name": f"{code.upper()} International Airport",
            "country": None,
            "timezone": rng.choice(TIMEZONES),
            "latitude": round(rng.uniform(-60.0, 70.0), 4),
            "longitude": round(rng.uniform(-180.0, 180.0), 4),
        }

    def _mock_tracking(self, flight_number: str) -> Dict[str, Any]:
        rng = mock_rng(ExternalDataKind.LIVE_TRACKING, flight_number)
        return {
            "flight_number": flight_number.upper(),
            "latitude": round(rng.uniform(-60.0, 70.0), 4),
            "longitude": round(rng.uniform(-180.0, 180.0), 4),
            "altitude": rng.randint(3000, 12500),
            "speed": rng.randint(650, 950),
            "direction": rng.randint(0, 359),
            "is_ground": False,
        }
