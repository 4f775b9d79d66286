"""
Host dialog contract used by the location dialogs.

The real bot host owns the dialog stack and persists it between turns; the
dialogs here only rely on `call`, `done`, `wait` and `post`. `DialogStack`
is a small in-memory host used by the tests and the console script.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Union

from domain.models import Point

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """An inbound user message."""
    text: Optional[str] = None
    # Set when the channel's native picker shared a location
    location: Optional[Point] = None


class AwaitableResult:
    """Wraps a child dialog result (or failure) so the resume handler can `await` it."""

    def __init__(self, value: Any = None, error: Optional[BaseException] = None):
        self._value = value
        self._error = error

    async def _get(self) -> Any:
        if self._error is not None:
            raise self._error
        return self._value

    def __await__(self):
        return self._get().__await__()


ResumeHandler = Callable[["DialogContext", AwaitableResult], Awaitable[None]]


class Dialog(Protocol):
    async def start(self, context: "DialogContext") -> None:
        ...


class DialogContext(Protocol):
    def call(self, dialog: Dialog, resume: ResumeHandler) -> None:
        ...

    def done(self, value: Any) -> None:
        ...

    def wait(self, resume: ResumeHandler) -> None:
        ...

    async def post(self, text: str) -> None:
        ...


@dataclass
class _Frame:
    dialog: Dialog
    resume: Optional[ResumeHandler] = None  # parent's handler, run when this dialog is done
    waiting: Optional[ResumeHandler] = None


class DialogStack:
    """In-memory dialog host: runs one step at a time and keeps outbound messages."""

    def __init__(self) -> None:
        self._frames: List[_Frame] = []
        self._action: Optional[tuple] = None
        self.outbox: List[str] = []
        self.completed = False
        self.result: Any = None

    @property
    def depth(self) -> int:
        return len(self._frames)

    def _set_action(self, action: tuple) -> None:
        if self._action is not None:
            raise RuntimeError(f"dialog step already ended with {self._action[0]!r}")
        self._action = action

    def call(self, dialog: Dialog, resume: ResumeHandler) -> None:
        self._set_action(("call", (dialog, resume)))

    def done(self, value: Any) -> None:
        self._set_action(("done", value))

    def wait(self, resume: ResumeHandler) -> None:
        self._set_action(("wait", resume))

    async def post(self, text: str) -> None:
        logger.debug("bot: %s", text)
        self.outbox.append(text)

    async def begin(self, dialog: Dialog) -> None:
        """Start a root dialog."""
        self._frames = [_Frame(dialog)]
        self.completed = False
        self.result = None
        await self._run(dialog.start(self))

    async def send(self, message: Union[Message, str]) -> None:
        """Deliver a user message to the dialog currently waiting for input."""
        if isinstance(message, str):
            message = Message(text=message)
        if not self._frames or self._frames[-1].waiting is None:
            raise RuntimeError("no dialog is waiting for a message")
        frame = self._frames[-1]
        handler, frame.waiting = frame.waiting, None
        await self._run(handler(self, AwaitableResult(message)))

    async def _run(self, step: Awaitable[None]) -> None:
        self._action = None
        await step
        while self._action is not None:
            kind, arg = self._action
            self._action = None
            if kind == "call":
                dialog, resume = arg
                self._frames.append(_Frame(dialog, resume=resume))
                await dialog.start(self)
            elif kind == "done":
                frame = self._frames.pop()
                if not self._frames:
                    self.completed = True
                    self.result = arg
                    return
                await frame.resume(self, AwaitableResult(arg))
            else:
                self._frames[-1].waiting = arg
                return
        raise RuntimeError("dialog step ended without call, wait or done")
