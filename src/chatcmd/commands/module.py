from __future__ import annotations

from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from ..logging import get_logger
from ..model import IncomingMessage
from ..transport import EntityLookup, MessageSource, Transport
from .configuration import CommandConfiguration
from .dispatch import Dispatcher
from .events import DispatchOutcome, FailureEvent, Invoked
from .tree import CommandGroup, Container

logger = get_logger(__name__)

DEFAULT_FAILURE_BUFFER = 64


class CommandModule:
    """A built command tree bound to a configuration and collaborators.

    Every failed dispatch is returned to the caller and also published to the
    streams handed out by ``subscribe_failures``.
    """

    def __init__(
        self,
        commands: CommandGroup | Container,
        *,
        configuration: CommandConfiguration | None = None,
        lookup: EntityLookup | None = None,
        transport: Transport | None = None,
        failure_buffer: int = DEFAULT_FAILURE_BUFFER,
    ) -> None:
        root = commands.build() if isinstance(commands, CommandGroup) else commands
        self.dispatcher = Dispatcher(root, configuration)
        self.lookup = lookup
        self.transport = transport
        self.failure_buffer = failure_buffer
        self._subscribers: list[MemoryObjectSendStream[FailureEvent]] = []
        self._source: MessageSource | None = None

    @property
    def root(self) -> Container:
        return self.dispatcher.root

    @property
    def configuration(self) -> CommandConfiguration:
        return self.dispatcher.configuration

    async def handle_message(
        self, message: IncomingMessage, *, additional_context: Any = None
    ) -> DispatchOutcome | None:
        outcome = await self.dispatcher.dispatch_message(
            message,
            lookup=self.lookup,
            transport=self.transport,
            additional_context=additional_context,
        )
        if outcome is not None and not isinstance(outcome, Invoked):
            self._publish(outcome)
        return outcome

    def subscribe_failures(self) -> MemoryObjectReceiveStream[FailureEvent]:
        send, receive = anyio.create_memory_object_stream(self.failure_buffer)
        self._subscribers.append(send)
        return receive

    def _publish(self, failure: FailureEvent) -> None:
        for send in list(self._subscribers):
            try:
                send.send_nowait(failure)
            except anyio.WouldBlock:
                logger.warning(
                    "commands.failure_dropped",
                    kind=str(failure.kind),
                    command=failure.command_name,
                )
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._subscribers.remove(send)

    def close(self) -> None:
        for send in self._subscribers:
            send.close()
        self._subscribers.clear()

    def add_to(self, source: MessageSource) -> None:
        """Start handling messages from ``source``."""
        if self._source is source:
            raise RuntimeError("command module is already attached to this source")
        if self._source is not None:
            self.remove()
        source.set_message_handler(self.handle_message)
        self._source = source
        logger.info("commands.attached", source=type(source).__name__)

    def remove(self) -> None:
        if self._source is None:
            return
        self._source.set_message_handler(None)
        logger.info("commands.detached", source=type(self._source).__name__)
        self._source = None
