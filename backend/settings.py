import os
from pathlib import Path

from dotenv import load_dotenv

# Basic settings helper to read environment configuration.
# Values from backend/.env (optional) are loaded before anything reads the environment.
load_dotenv(Path(__file__).resolve().parent / ".env")

BASE_DIR = Path(__file__).resolve().parent


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self) -> None:
        # "bing", "nominatim" or empty to pick Bing when a key is configured
        self.GEOSPATIAL_PROVIDER: str = (os.getenv("GEOSPATIAL_PROVIDER") or "").strip().lower()
        self.GEOSPATIAL_TIMEOUT: float = float(os.getenv("GEOSPATIAL_TIMEOUT", "5.0"))

        self.BING_MAPS_API_KEY: str | None = os.getenv("BING_MAPS_API_KEY")
        self.BING_MAPS_BASE_URL: str = os.getenv(
            "BING_MAPS_BASE_URL", "https://dev.virtualearth.net/REST/v1/Locations"
        )

        self.NOMINATIM_BASE_URL: str = os.getenv(
            "NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org"
        )
        self.NOMINATIM_USER_AGENT: str | None = os.getenv("NOMINATIM_USER_AGENT")
        self.NOMINATIM_REFERER: str | None = os.getenv("NOMINATIM_REFERER")
        self.NOMINATIM_MIN_INTERVAL: float = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.1"))

        self.GEOCODE_CACHE_ENABLED: bool = _as_bool(os.getenv("GEOCODE_CACHE_ENABLED"), True)
        self.GEOCODE_CACHE_PATH: str = os.getenv(
            "GEOCODE_CACHE_PATH", str(BASE_DIR / "data" / "geocode_cache.sqlite")
        )
        self.GEOCODE_CACHE_TTL_SECONDS: int = int(
            os.getenv("GEOCODE_CACHE_TTL_SECONDS", str(180 * 24 * 3600))
        )

        # Optional JSON file with localized dialog strings
        self.LOCATION_RESOURCES_PATH: str | None = os.getenv("LOCATION_RESOURCES_PATH")


settings = Settings()
