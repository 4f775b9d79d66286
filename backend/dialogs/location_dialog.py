"""
Dialog that retrieves a location from the user and returns it as a `Place`.

Usage from a parent dialog:

    dialog = LocationDialog(
        channel_id,
        "Hi, where would you like me to ship your widget?",
        LocationOptions.USE_NATIVE_CONTROL | LocationOptions.REVERSE_GEOCODE,
        LocationRequiredFields.STREET_ADDRESS | LocationRequiredFields.POSTAL_CODE,
    )
    context.call(dialog, self.after_location)

The parent's resume handler receives a `Place`, or None if the user cancelled.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from dialogs.base import LocationDialogBase
from dialogs.context import AwaitableResult, DialogContext
from dialogs.required_fields import LocationRequiredFieldsDialog
from dialogs.resources import LocationResourceManager
from dialogs.retrievers import create_location_retriever_dialog
from domain.models import (
    Address,
    GeoCoordinates,
    Location,
    LocationOptions,
    LocationRequiredFields,
    Place,
    PostalAddress,
)
from services.geospatial import GeoSpatialService, get_default_geospatial_service

logger = logging.getLogger(__name__)


class LocationDialog(LocationDialogBase):
    is_root_dialog = True

    def __init__(
        self,
        channel_id: str,
        prompt: str,
        options: LocationOptions = LocationOptions.NONE,
        required_fields: LocationRequiredFields = LocationRequiredFields.NONE,
        resource_manager: Optional[LocationResourceManager] = None,
        geospatial_service: Optional[GeoSpatialService] = None,
    ):
        super().__init__(resource_manager)
        self.channel_id = channel_id
        self.prompt = prompt
        self.options = LocationOptions(options)
        self.required_fields = LocationRequiredFields(required_fields)
        self.geospatial_service = geospatial_service
        self.required_dialog_called = False

    async def start(self, context: DialogContext) -> None:
        self.required_dialog_called = False

        dialog = create_location_retriever_dialog(
            self.channel_id,
            self.prompt,
            LocationOptions.USE_NATIVE_CONTROL in self.options,
            self.resource_manager,
            geospatial_service=self.geospatial_service,
            skip_final_confirmation=LocationOptions.SKIP_FINAL_CONFIRMATION in self.options,
        )
        context.call(dialog, self.resume_after_child_dialog)

    async def resume_after_child_dialog_internal(
        self, context: DialogContext, result: AwaitableResult
    ) -> None:
        response = await result
        location = response.location if response is not None else None
        if location is None:
            context.done(None)
            return

        await self._try_reverse_geocode_address(location)

        if not self.required_dialog_called and self.required_fields != LocationRequiredFields.NONE:
            self.required_dialog_called = True
            required_dialog = LocationRequiredFieldsDialog(location, self.required_fields, self.resource_manager)
            context.call(required_dialog, self.resume_after_child_dialog)
        else:
            context.done(create_place(location))

    async def _try_reverse_geocode_address(self, location: Location) -> None:
        """Fill in the address of a point-only location from the reverse geocoder."""
        if (
            LocationOptions.REVERSE_GEOCODE not in self.options
            or location.address is not None
            or location.point is None
            or not location.point.has_coordinates
        ):
            return

        lat, lon = location.point.coordinates[0], location.point.coordinates[1]
        service = self.geospatial_service or get_default_geospatial_service()
        results = await asyncio.to_thread(service.get_locations_by_point, lat, lon)
        geocoded = results.locations[0] if results and results.locations else None
        if geocoded is None or geocoded.address is None:
            logger.debug("no reverse geocoding result for %s,%s", lat, lon)
            return

        # Street level results are not reliable; copy everything else.
        location.address = Address(
            country_region=geocoded.address.country_region,
            admin_district=geocoded.address.admin_district,
            admin_district2=geocoded.address.admin_district2,
            locality=geocoded.address.locality,
            postal_code=geocoded.address.postal_code,
        )


def create_place(location: Location) -> Place:
    place = Place(type=location.entity_type, name=location.name)

    if location.address is not None:
        place.address = PostalAddress(
            formatted_address=location.address.formatted_address,
            country=location.address.country_region,
            locality=location.address.locality,
            postal_code=location.address.postal_code,
            region=location.address.admin_district,
            street_address=location.address.address_line,
        )

    if location.point is not None and location.point.has_coordinates:
        place.geo = GeoCoordinates(
            latitude=location.point.coordinates[0],
            longitude=location.point.coordinates[1],
        )

    return place
