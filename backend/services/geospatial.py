"""Geospatial lookups (reverse and forward geocoding) for the location dialogs.

Two providers are supported: the Bing Maps Locations REST API and
OpenStreetMap Nominatim. Both return results in the same `LocationSet` shape
so the dialogs never depend on which one is configured.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import threading
import time
from typing import Any, Dict, List, Optional

import requests

from domain.models import Address, Location, LocationSet, Point
from settings import settings

logger = logging.getLogger(__name__)

_session = requests.Session()
_last_request_ts: float = 0.0
_lock = threading.Lock()

FALLBACK_UA = "location-dialog/0.1 (contact: example@example.com)"
MAX_QUERY_RESULTS = 5


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


def _round_coord(value: float, decimals: int = 4) -> float:
    """Round coordinates before caching to limit key diversity (~10m)."""
    return round(value, decimals)


def _throttled_get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
    min_interval: float = 0.0,
) -> requests.Response:
    """Perform a GET request with a simple global rate limit."""
    global _last_request_ts
    with _lock:
        now = time.time()
        delta = now - _last_request_ts
        if delta < min_interval:
            time.sleep(min_interval - delta)
        _last_request_ts = time.time()
    return _session.get(url, params=params, headers=headers, timeout=timeout)


class GeocodeCache:
    """SQLite cache for raw reverse geocoding payloads, keyed by provider and rounded point."""

    def __init__(self, db_path: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self.db_path = db_path or settings.GEOCODE_CACHE_PATH
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.GEOCODE_CACHE_TTL_SECONDS
        )
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        self._db_lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self) -> None:
        with self._db_lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS geocodes (
                    provider TEXT NOT NULL,
                    lat REAL NOT NULL,
                    lon REAL NOT NULL,
                    fetched_at INTEGER NOT NULL,
                    response_json TEXT NOT NULL,
                    PRIMARY KEY (provider, lat, lon)
                )
                """
            )
            self._conn.commit()

    def get(self, provider: str, lat: float, lon: float) -> Optional[Any]:
        """Return the cached payload, or None when missing, expired or unreadable."""
        lat_r, lon_r = _round_coord(lat), _round_coord(lon)
        try:
            with self._db_lock:
                row = self._conn.execute(
                    "SELECT fetched_at, response_json FROM geocodes WHERE provider=? AND lat=? AND lon=?",
                    (provider, lat_r, lon_r),
                ).fetchone()
            if not row:
                logger.debug("geocode cache miss %s %s,%s", provider, lat_r, lon_r)
                return None
            fetched_at, response_json = row
            if self.ttl_seconds > 0 and time.time() - (fetched_at or 0) > self.ttl_seconds:
                logger.debug("geocode cache expired %s %s,%s", provider, lat_r, lon_r)
                return None
            logger.debug("geocode cache hit %s %s,%s", provider, lat_r, lon_r)
            return json.loads(response_json)
        except Exception as exc:
            logger.warning("geocode cache read failed for %s,%s: %s", lat_r, lon_r, exc)
            return None

    def put(self, provider: str, lat: float, lon: float, payload: Any) -> None:
        """Upsert a raw payload."""
        lat_r, lon_r = _round_coord(lat), _round_coord(lon)
        try:
            with self._db_lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO geocodes (provider, lat, lon, fetched_at, response_json) VALUES (?, ?, ?, ?, ?)",
                    (provider, lat_r, lon_r, int(time.time()), json.dumps(payload)),
                )
                self._conn.commit()
        except Exception as exc:
            logger.warning("geocode cache write failed for %s,%s: %s", lat_r, lon_r, exc)

    def close(self) -> None:
        self._conn.close()


class GeoSpatialService:
    """Base class for geocoding providers.

    Subclasses implement the raw HTTP calls and the payload parsing; caching of
    reverse lookups is handled here.
    """

    provider = "base"

    def __init__(self, cache: Optional[GeocodeCache] = None, timeout: Optional[float] = None):
        self.cache = cache
        self.timeout = timeout if timeout is not None else settings.GEOSPATIAL_TIMEOUT

    def get_locations_by_point(self, lat: float, lon: float) -> Optional[LocationSet]:
        """Reverse geocode a coordinate pair into address candidates."""
        payload = self.cache.get(self.provider, lat, lon) if self.cache else None
        if payload is None:
            payload = self._fetch_by_point(lat, lon)
            result = self._parse(payload)
            # only cache lookups that produced something usable
            if result and result.locations and self.cache:
                self.cache.put(self.provider, lat, lon, payload)
            return result
        return self._parse(payload)

    def get_locations_by_query(self, query: str) -> Optional[LocationSet]:
        """Forward geocode free-form address text."""
        if not query or not query.strip():
            return None
        return self._parse(self._fetch_by_query(query.strip()))

    def _fetch_by_point(self, lat: float, lon: float) -> Any:
        raise NotImplementedError

    def _fetch_by_query(self, query: str) -> Any:
        raise NotImplementedError

    def _parse(self, payload: Any) -> Optional[LocationSet]:
        raise NotImplementedError

    def _get(self, url: str, params: Dict[str, Any], headers: Optional[Dict[str, str]] = None,
             min_interval: float = 0.0) -> Any:
        logger.debug("GET %s (%s)", url, self.provider)
        try:
            resp = _throttled_get(
                url,
                params=params,
                headers=headers or {},
                timeout=self.timeout,
                min_interval=min_interval,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            logger.error("%s geocoding request failed: %s - %s", self.provider, url, exc)
            raise
        return resp.json()


class BingGeoSpatialService(GeoSpatialService):
    """Bing Maps Locations API client."""

    provider = "bing"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        cache: Optional[GeocodeCache] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(cache=cache, timeout=timeout)
        self.api_key = api_key or settings.BING_MAPS_API_KEY
        if not self.api_key:
            raise ValueError("BING_MAPS_API_KEY is required for the Bing geospatial service")
        self.base_url = (base_url or settings.BING_MAPS_BASE_URL).rstrip("/")

    def _fetch_by_point(self, lat: float, lon: float) -> Any:
        return self._get(f"{self.base_url}/{lat},{lon}", params={"key": self.api_key})

    def _fetch_by_query(self, query: str) -> Any:
        return self._get(
            self.base_url,
            params={"q": query, "maxResults": str(MAX_QUERY_RESULTS), "key": self.api_key},
        )

    def _parse(self, payload: Any) -> Optional[LocationSet]:
        if not payload:
            return None
        resource_sets = payload.get("resourceSets") or []
        if not resource_sets:
            return None
        first = resource_sets[0] or {}
        locations = [Location.from_dict(r) for r in first.get("resources") or []]
        return LocationSet(
            estimated_total=int(first.get("estimatedTotal", len(locations)) or 0),
            locations=locations,
        )


def _osm_address(item: Dict[str, Any]) -> Optional[Address]:
    address = item.get("address")
    if not isinstance(address, dict) or not address:
        return None
    street = " ".join(
        str(p) for p in (address.get("house_number"), address.get("road") or address.get("street")) if p
    )
    locality = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("hamlet")
    )
    return Address(
        address_line=street or None,
        admin_district=address.get("state"),
        admin_district2=address.get("county"),
        country_region=address.get("country"),
        formatted_address=item.get("display_name"),
        locality=locality,
        postal_code=address.get("postcode"),
    )


def _osm_location(item: Dict[str, Any]) -> Location:
    point = None
    if item.get("lat") is not None and item.get("lon") is not None:
        point = Point.from_lat_lon(float(item["lat"]), float(item["lon"]))
    bbox = item.get("boundingbox")
    return Location(
        name=item.get("name") or item.get("display_name"),
        entity_type=item.get("addresstype") or item.get("type"),
        address=_osm_address(item),
        point=point,
        bbox=[float(b) for b in bbox] if bbox else None,
    )


class NominatimGeoSpatialService(GeoSpatialService):
    """OpenStreetMap Nominatim client with the shared rate limit and headers."""

    provider = "nominatim"

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        cache: Optional[GeocodeCache] = None,
        timeout: Optional[float] = None,
        min_interval: Optional[float] = None,
    ):
        super().__init__(cache=cache, timeout=timeout)
        base = base_url or settings.NOMINATIM_BASE_URL
        if base.endswith("/reverse"):
            base = base.rsplit("/", 1)[0]
        self.base_url = base.rstrip("/")
        self.min_interval = (
            min_interval if min_interval is not None else settings.NOMINATIM_MIN_INTERVAL
        )
        ua = user_agent or settings.NOMINATIM_USER_AGENT
        if ua is None:
            logger.warning(
                "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
                "This may violate Nominatim usage policy."
            )
            ua = FALLBACK_UA
        logger.debug("Nominatim User-Agent: %s", _redact_email(ua))
        self.headers = {"User-Agent": ua}
        if settings.NOMINATIM_REFERER:
            self.headers["Referer"] = settings.NOMINATIM_REFERER

    def _fetch_by_point(self, lat: float, lon: float) -> Any:
        params = {
            "format": "jsonv2",
            "lat": str(lat),
            "lon": str(lon),
            "zoom": "18",
            "addressdetails": "1",
        }
        return self._get(f"{self.base_url}/reverse", params, self.headers, self.min_interval)

    def _fetch_by_query(self, query: str) -> Any:
        params = {
            "format": "jsonv2",
            "q": query,
            "addressdetails": "1",
            "limit": str(MAX_QUERY_RESULTS),
        }
        return self._get(f"{self.base_url}/search", params, self.headers, self.min_interval)

    def _parse(self, payload: Any) -> Optional[LocationSet]:
        if not payload:
            return None
        # /reverse answers with a single object, /search with a list
        items: List[Dict[str, Any]] = payload if isinstance(payload, list) else [payload]
        locations = [_osm_location(item) for item in items if isinstance(item, dict) and "error" not in item]
        return LocationSet(estimated_total=len(locations), locations=locations)


_default_service: Optional[GeoSpatialService] = None


def create_geospatial_service(provider: Optional[str] = None) -> GeoSpatialService:
    """Build the configured provider; Bing is preferred when an API key is present."""
    name = (provider or settings.GEOSPATIAL_PROVIDER or "").lower()
    if not name:
        name = "bing" if settings.BING_MAPS_API_KEY else "nominatim"
    cache = GeocodeCache() if settings.GEOCODE_CACHE_ENABLED else None
    if name == "bing":
        return BingGeoSpatialService(cache=cache)
    if name == "nominatim":
        return NominatimGeoSpatialService(cache=cache)
    raise ValueError(f"Unknown geospatial provider: {name}")


def get_default_geospatial_service() -> GeoSpatialService:
    global _default_service
    if _default_service is None:
        _default_service = create_geospatial_service()
    return _default_service
