import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from domain.models import Address, Location, LocationSet, Point  # noqa: E402


class FakeGeoService:
    """Stands in for a geospatial provider; both lookups are MagicMocks."""

    def __init__(self, by_point=None, by_query=None):
        self.get_locations_by_point = MagicMock(return_value=by_point)
        self.get_locations_by_query = MagicMock(return_value=by_query)


def redmond_location(name: str = "1 Microsoft Way, Redmond, WA 98052") -> Location:
    return Location(
        name=name,
        entity_type="Address",
        address=Address(
            address_line="1 Microsoft Way",
            admin_district="WA",
            admin_district2="King Co.",
            country_region="United States",
            formatted_address=name,
            locality="Redmond",
            postal_code="98052",
        ),
        point=Point.from_lat_lon(47.64, -122.13),
    )


@pytest.fixture
def redmond():
    return redmond_location()


@pytest.fixture
def geo_service(redmond):
    return FakeGeoService(
        by_point=LocationSet(estimated_total=1, locations=[redmond]),
        by_query=LocationSet(estimated_total=1, locations=[redmond]),
    )
