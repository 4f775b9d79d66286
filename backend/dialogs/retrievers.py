"""
Child dialogs that get a location from the user.

Channels with a native location picker (Facebook) share coordinates directly;
everywhere else the user types an address which is forward geocoded and
confirmed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from dialogs.base import LocationDialogBase
from dialogs.context import AwaitableResult, DialogContext, Message
from dialogs.resources import LocationResourceManager
from domain.models import Location, LocationDialogResponse
from services.geospatial import GeoSpatialService, get_default_geospatial_service

logger = logging.getLogger(__name__)

NATIVE_LOCATION_CHANNELS = {"facebook"}
MAX_LOCATION_CHOICES = 5


def _describe_location(location: Location, resource_manager: LocationResourceManager) -> str:
    if location.address and location.address.formatted_address:
        return location.address.formatted_address
    if location.name:
        return location.name
    if location.point and location.point.has_coordinates:
        lat, lon = location.point.coordinates[0], location.point.coordinates[1]
        return f"({lat:.4f}, {lon:.4f})"
    return resource_manager["selected_location"]


class _RetrieverDialog(LocationDialogBase):
    def __init__(self, prompt: str, resource_manager: Optional[LocationResourceManager] = None):
        super().__init__(resource_manager)
        self.prompt = prompt

    async def _handle_command_text(self, context: DialogContext, text: str, resume) -> bool:
        """Handle cancel/help/reset typed at a prompt. Returns True when handled."""
        command = self.match_command(text)
        if command is None:
            return False
        if command == "help":
            await context.post(self.resource_manager["help_message"])
            context.wait(resume)
        else:
            context.done(LocationDialogResponse(message=text))
        return True


class NativeLocationRetrieverDialog(_RetrieverDialog):
    """Uses the channel's location widget; the result only carries a point."""

    async def start(self, context: DialogContext) -> None:
        await context.post(self.prompt)
        context.wait(self._message_received)

    async def _message_received(self, context: DialogContext, result: AwaitableResult) -> None:
        message: Message = await result

        if message.location is not None and message.location.has_coordinates:
            context.done(LocationDialogResponse(location=Location(point=message.location), message=message.text))
            return

        if await self._handle_command_text(context, message.text or "", self._message_received):
            return

        await context.post(self.prompt)
        context.wait(self._message_received)


class RichLocationRetrieverDialog(_RetrieverDialog):
    """Asks for an address as text, looks it up and lets the user pick and confirm."""

    def __init__(
        self,
        prompt: str,
        resource_manager: Optional[LocationResourceManager] = None,
        geospatial_service: Optional[GeoSpatialService] = None,
        skip_final_confirmation: bool = False,
    ):
        super().__init__(prompt, resource_manager)
        self.geospatial_service = geospatial_service
        self.skip_final_confirmation = skip_final_confirmation
        self.locations: List[Location] = []
        self.selected: Optional[Location] = None

    async def start(self, context: DialogContext) -> None:
        self.locations = []
        self.selected = None
        await context.post(self.prompt)
        context.wait(self._address_received)

    async def _address_received(self, context: DialogContext, result: AwaitableResult) -> None:
        message: Message = await result
        text = (message.text or "").strip()

        if message.location is not None and message.location.has_coordinates:
            context.done(LocationDialogResponse(location=Location(point=message.location), message=text))
            return
        if await self._handle_command_text(context, text, self._address_received):
            return

        service = self.geospatial_service or get_default_geospatial_service()
        location_set = await asyncio.to_thread(service.get_locations_by_query, text)
        self.locations = list(location_set.locations[:MAX_LOCATION_CHOICES]) if location_set else []
        logger.debug("address %r matched %d locations", text, len(self.locations))

        if not self.locations:
            await context.post(self.resource_manager["location_not_found"])
            context.wait(self._address_received)
        elif len(self.locations) == 1:
            await self._select(context, self.locations[0])
        else:
            lines = [self.resource_manager["multiple_results_found"]]
            lines.extend(
                f"{i}. {_describe_location(loc, self.resource_manager)}"
                for i, loc in enumerate(self.locations, start=1)
            )
            await context.post("\n".join(lines))
            context.wait(self._choice_received)

    async def _choice_received(self, context: DialogContext, result: AwaitableResult) -> None:
        message: Message = await result
        text = (message.text or "").strip()

        if await self._handle_command_text(context, text, self._choice_received):
            return
        if self.resource_manager.matches("other_command", text):
            await self.start(context)
            return

        try:
            index = int(text)
        except ValueError:
            index = 0
        if 1 <= index <= len(self.locations):
            await self._select(context, self.locations[index - 1])
            return

        await context.post(self.resource_manager["invalid_option"])
        context.wait(self._choice_received)

    async def _select(self, context: DialogContext, location: Location) -> None:
        if self.skip_final_confirmation:
            context.done(LocationDialogResponse(location=location))
            return
        self.selected = location
        await context.post(self.resource_manager.get("confirm_address", address=_describe_location(location, self.resource_manager)))
        context.wait(self._confirmation_received)

    async def _confirmation_received(self, context: DialogContext, result: AwaitableResult) -> None:
        message: Message = await result
        text = (message.text or "").strip()

        if await self._handle_command_text(context, text, self._confirmation_received):
            return
        if self.resource_manager.matches("yes", text):
            context.done(LocationDialogResponse(location=self.selected, message=text))
        elif self.resource_manager.matches("no", text):
            await self.start(context)
        else:
            await context.post(self.resource_manager["invalid_option"])
            context.wait(self._confirmation_received)


def create_location_retriever_dialog(
    channel_id: str,
    prompt: str,
    use_native_control: bool,
    resource_manager: Optional[LocationResourceManager] = None,
    geospatial_service: Optional[GeoSpatialService] = None,
    skip_final_confirmation: bool = False,
) -> LocationDialogBase:
    """Pick the native picker when asked for and supported by the channel."""
    if use_native_control and (channel_id or "").lower() in NATIVE_LOCATION_CHANNELS:
        return NativeLocationRetrieverDialog(prompt, resource_manager)
    return RichLocationRetrieverDialog(
        prompt,
        resource_manager,
        geospatial_service=geospatial_service,
        skip_final_confirmation=skip_final_confirmation,
    )
