"""
Core domain models for the location dialog.
These are framework-agnostic and shared by the dialogs and the geospatial services.
"""
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Dict, List, Optional


class LocationOptions(IntFlag):
    """Options used to customize the location picker experience."""
    NONE = 0
    # Use the channel's native location widget when the channel has one (e.g. Facebook)
    USE_NATIVE_CONTROL = 1
    # Fill in address fields from the geocoder when only coordinates are known
    REVERSE_GEOCODE = 2
    SKIP_FAVORITES = 4
    SKIP_FINAL_CONFIRMATION = 8


class LocationRequiredFields(IntFlag):
    """Address fields the user is asked for when missing."""
    NONE = 0
    STREET_ADDRESS = 1
    LOCALITY = 2
    REGION = 4
    COUNTRY = 8
    POSTAL_CODE = 16


@dataclass
class Point:
    """A geo point as returned by the geocoder: coordinates are [lat, lon]."""
    coordinates: List[float] = field(default_factory=list)
    type: str = "Point"

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None and len(self.coordinates) >= 2

    @classmethod
    def from_lat_lon(cls, lat: float, lon: float) -> "Point":
        return cls(coordinates=[lat, lon])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        return cls(
            coordinates=[float(c) for c in data.get("coordinates") or []],
            type=data.get("type") or "Point",
        )


@dataclass
class Address:
    """Address shape used by the geocoder."""
    address_line: Optional[str] = None
    admin_district: Optional[str] = None
    admin_district2: Optional[str] = None
    country_region: Optional[str] = None
    formatted_address: Optional[str] = None
    locality: Optional[str] = None
    postal_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Address":
        return cls(
            address_line=data.get("addressLine"),
            admin_district=data.get("adminDistrict"),
            admin_district2=data.get("adminDistrict2"),
            country_region=data.get("countryRegion"),
            formatted_address=data.get("formattedAddress"),
            locality=data.get("locality"),
            postal_code=data.get("postalCode"),
        )


@dataclass
class Location:
    """
    A location picked by the user or returned by the geocoder.

    Either the address or the point (or both) may be missing.
    """
    name: Optional[str] = None
    entity_type: Optional[str] = None
    address: Optional[Address] = None
    point: Optional[Point] = None
    confidence: Optional[str] = None
    bbox: Optional[List[float]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        address = data.get("address")
        point = data.get("point")
        return cls(
            name=data.get("name"),
            entity_type=data.get("entityType"),
            address=Address.from_dict(address) if address else None,
            point=Point.from_dict(point) if point else None,
            confidence=data.get("confidence"),
            bbox=data.get("bbox"),
        )


@dataclass
class LocationSet:
    """A set of geocoder candidates, best match first."""
    estimated_total: int = 0
    locations: List[Location] = field(default_factory=list)


@dataclass
class LocationDialogResponse:
    """Result of a location retriever dialog."""
    location: Optional[Location] = None
    message: Optional[str] = None  # raw user text that ended the child dialog


@dataclass
class PostalAddress:
    formatted_address: Optional[str] = None
    country: Optional[str] = None
    locality: Optional[str] = None
    postal_code: Optional[str] = None
    region: Optional[str] = None
    street_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "@type": "PostalAddress",
            "formattedAddress": self.formatted_address,
            "addressCountry": self.country,
            "addressLocality": self.locality,
            "postalCode": self.postal_code,
            "addressRegion": self.region,
            "streetAddress": self.street_address,
        }


@dataclass
class GeoCoordinates:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "@type": "GeoCoordinates",
            "latitude": self.latitude,
            "longitude": self.longitude,
            "elevation": self.elevation,
            "name": self.name,
        }


@dataclass
class Place:
    """
    Standardized place record returned to the caller once the dialog completes.
    """
    type: Optional[str] = None
    name: Optional[str] = None
    address: Optional[PostalAddress] = None
    geo: Optional[GeoCoordinates] = None

    def get_postal_address(self) -> Optional[PostalAddress]:
        return self.address

    def get_geo_coordinates(self) -> Optional[GeoCoordinates]:
        return self.geo

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as a Place entity payload (schema.org naming)."""
        return {
            "@type": "Place",
            "type": self.type,
            "name": self.name,
            "address": self.address.to_dict() if self.address else None,
            "geo": self.geo.to_dict() if self.geo else None,
        }
