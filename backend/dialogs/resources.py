"""
Localizable strings for the location dialogs.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from settings import settings

logger = logging.getLogger(__name__)

DEFAULT_STRINGS: Dict[str, str] = {
    "cancel_command": "cancel",
    "help_command": "help",
    "reset_command": "reset",
    "other_command": "other",
    "yes": "yes",
    "no": "no",
    "cancel_prompt": "OK, cancelled.",
    "reset_prompt": "OK, let's start over.",
    "help_message": (
        "Say or type a valid address when asked, and I will try to find it. "
        "You can provide the full address (street, city, region, postal code, country) or a part of it. "
        "Say or type 'reset' to start over, or 'cancel' to exit without providing an address."
    ),
    "location_not_found": "I could not find this address. Please try again.",
    "confirm_address": "OK, I will use {address}. Is that correct? Enter 'yes' or 'no'.",
    "multiple_results_found": (
        "I found these results. Type or say a number to choose the address, "
        "or enter 'other' to select another address."
    ),
    "selected_location": "the selected location",
    "invalid_option": "Didn't get that. Choose a location or cancel.",
    "ask_for_prefix": "Please provide the {field}.",
    "street_address": "street address",
    "locality": "city or locality",
    "region": "state or region",
    "postal_code": "zip or postal code",
    "country": "country",
}


class LocationResourceManager:
    """Looks up dialog strings, with per-key overrides for localization."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        unknown = set(overrides or {}) - set(DEFAULT_STRINGS)
        if unknown:
            raise KeyError(f"Unknown resource keys: {', '.join(sorted(unknown))}")
        self._strings = {**DEFAULT_STRINGS, **(overrides or {})}

    @classmethod
    def from_file(cls, path: str) -> "LocationResourceManager":
        with open(Path(path), "r", encoding="utf-8") as f:
            return cls(json.load(f))

    @classmethod
    def default(cls) -> "LocationResourceManager":
        """Default strings, or the JSON overrides named by LOCATION_RESOURCES_PATH."""
        if settings.LOCATION_RESOURCES_PATH:
            logger.debug("Loading location resources from %s", settings.LOCATION_RESOURCES_PATH)
            return cls.from_file(settings.LOCATION_RESOURCES_PATH)
        return cls()

    def __getitem__(self, key: str) -> str:
        return self._strings[key]

    def get(self, key: str, **kwargs: str) -> str:
        text = self._strings[key]
        return text.format(**kwargs) if kwargs else text

    def matches(self, key: str, text: Optional[str]) -> bool:
        """Case-insensitive comparison of user text with a command string."""
        if not text:
            return False
        return text.strip().lower() == self._strings[key].strip().lower()
