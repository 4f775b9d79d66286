from __future__ import annotations

from typing import List, Optional, Tuple

from dialogs.base import LocationDialogBase
from dialogs.context import AwaitableResult, DialogContext, Message
from dialogs.resources import LocationResourceManager
from domain.models import Address, Location, LocationDialogResponse, LocationRequiredFields

# (flag, Address attribute, resource key), in the order the user is asked
FIELD_ORDER: List[Tuple[LocationRequiredFields, str, str]] = [
    (LocationRequiredFields.STREET_ADDRESS, "address_line", "street_address"),
    (LocationRequiredFields.LOCALITY, "locality", "locality"),
    (LocationRequiredFields.REGION, "admin_district", "region"),
    (LocationRequiredFields.POSTAL_CODE, "postal_code", "postal_code"),
    (LocationRequiredFields.COUNTRY, "country_region", "country"),
]


class LocationRequiredFieldsDialog(LocationDialogBase):
    """Asks the user for every required address field that is still empty."""

    def __init__(
        self,
        location: Location,
        required_fields: LocationRequiredFields,
        resource_manager: Optional[LocationResourceManager] = None,
    ):
        super().__init__(resource_manager)
        self.location = location
        self.required_fields = LocationRequiredFields(required_fields)
        self._pending: List[Tuple[str, str]] = []

    def missing_fields(self) -> List[Tuple[str, str]]:
        address = self.location.address
        return [
            (attr, key)
            for flag, attr, key in FIELD_ORDER
            if flag in self.required_fields and not (address and getattr(address, attr))
        ]

    async def start(self, context: DialogContext) -> None:
        self._pending = self.missing_fields()
        await self._ask_next(context)

    async def _ask_next(self, context: DialogContext) -> None:
        if not self._pending:
            context.done(LocationDialogResponse(location=self.location))
            return
        _, key = self._pending[0]
        await context.post(self.resource_manager.get("ask_for_prefix", field=self.resource_manager[key]))
        context.wait(self._field_received)

    async def _field_received(self, context: DialogContext, result: AwaitableResult) -> None:
        message: Message = await result
        text = (message.text or "").strip()

        command = self.match_command(text)
        if command == "help":
            await context.post(self.resource_manager["help_message"])
            await self._ask_next(context)
            return
        if command is not None:
            context.done(LocationDialogResponse(message=text))
            return
        if not text:
            await self._ask_next(context)
            return

        attr, _ = self._pending.pop(0)
        if self.location.address is None:
            self.location.address = Address()
        setattr(self.location.address, attr, text)
        await self._ask_next(context)
