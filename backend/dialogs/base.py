from __future__ import annotations

import logging
from typing import Any, Optional

from dialogs.context import AwaitableResult, DialogContext
from dialogs.resources import LocationResourceManager
from domain.models import LocationDialogResponse

logger = logging.getLogger(__name__)

SPECIAL_COMMANDS = ("cancel", "help", "reset")
# Commands a child hands up to its caller; help is answered by the child itself
HANDED_UP_COMMANDS = ("cancel", "reset")


class LocationDialogBase:
    """
    Shared behaviour of the location dialogs: resource lookup and handling of
    the cancel and reset commands typed while a child dialog is active.
    """

    # Root dialogs restart on reset; child dialogs hand the command up instead.
    is_root_dialog = False

    def __init__(self, resource_manager: Optional[LocationResourceManager] = None):
        self.resource_manager = resource_manager or LocationResourceManager.default()

    async def start(self, context: DialogContext) -> None:
        raise NotImplementedError

    def match_command(self, text: Optional[str]) -> Optional[str]:
        for command in SPECIAL_COMMANDS:
            if self.resource_manager.matches(f"{command}_command", text):
                return command
        return None

    def is_special_command_response(self, response: Any) -> bool:
        return (
            isinstance(response, LocationDialogResponse)
            and response.location is None
            and self.match_command(response.message) in HANDED_UP_COMMANDS
        )

    async def resume_after_child_dialog(self, context: DialogContext, result: AwaitableResult) -> None:
        response = await result

        if self.is_special_command_response(response):
            await self._handle_special_command(context, response)
            return

        await self.resume_after_child_dialog_internal(context, AwaitableResult(response))

    async def resume_after_child_dialog_internal(
        self, context: DialogContext, result: AwaitableResult
    ) -> None:
        raise NotImplementedError

    async def _handle_special_command(self, context: DialogContext, response: LocationDialogResponse) -> None:
        command = self.match_command(response.message)
        logger.debug("%s received special command %s", type(self).__name__, command)

        if not self.is_root_dialog:
            context.done(response)
        elif command == "cancel":
            await context.post(self.resource_manager["cancel_prompt"])
            context.done(None)
        else:
            await context.post(self.resource_manager["reset_prompt"])
            await self.start(context)
