"""Per-message invocation state, handler context and the failure taxonomy."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal

from ..model import Channel, EntityId, IncomingMessage, Member, MentionKind, Role
from ..transport import (
    EntityLookup,
    MessageRef,
    RenderedMessage,
    SendOptions,
    Transport,
)

if TYPE_CHECKING:
    from .configuration import CommandConfiguration
    from .tree import ArgumentSpec, CommandNode, Leaf


class FailureKind(StrEnum):
    UNSPECIFIED = "unspecified"
    NO_COMMAND_FOUND = "no_command_found"
    BAD_ARGUMENT_COUNT = "bad_argument_count"
    BAD_ARGUMENTS = "bad_arguments"


@dataclass(slots=True)
class RootInvocation:
    """Everything known about one incoming message while it is dispatched.

    The ``known_*`` lists only ever grow; mention converters read them and the
    pre-fetcher appends to them.
    """

    message: IncomingMessage
    configuration: CommandConfiguration
    prefix: str
    root_command_name: str
    raw_arguments: str
    lookup: EntityLookup | None = None
    transport: Transport | None = None
    additional_context: Any = None
    known_members: list[Member] = field(default_factory=list)
    known_roles: list[Role] = field(default_factory=list)
    known_channels: list[Channel] = field(default_factory=list)

    def _known_list(self, kind: MentionKind) -> list[Any]:
        match kind:
            case "member":
                return self.known_members
            case "role":
                return self.known_roles
            case "channel":
                return self.known_channels

    def known(self, kind: MentionKind) -> tuple[Any, ...]:
        return tuple(self._known_list(kind))

    def known_ids(self, kind: MentionKind) -> set[EntityId]:
        return {entity.id for entity in self._known_list(kind)}

    def remember(self, kind: MentionKind, entities: Iterable[Any]) -> None:
        self._known_list(kind).extend(entities)


@dataclass(frozen=True, slots=True)
class CommandEvent:
    """First argument of every command handler."""

    root: RootInvocation
    command_name: str
    arguments: str
    path: tuple[str, ...] = ()

    @property
    def message(self) -> IncomingMessage:
        return self.root.message

    @property
    def prefix(self) -> str:
        return self.root.prefix

    @property
    def root_command_name(self) -> str:
        return self.root.root_command_name

    @property
    def root_arguments(self) -> str:
        return self.root.raw_arguments

    @property
    def additional_context(self) -> Any:
        return self.root.additional_context

    async def send(
        self, text: str, *, options: SendOptions | None = None
    ) -> MessageRef | None:
        transport = self.root.transport
        if transport is None:
            raise RuntimeError("no transport configured for this dispatch")
        return await transport.send(
            channel_id=self.message.channel_id,
            message=RenderedMessage(text=text),
            options=options,
        )

    async def reply(self, text: str, *, notify: bool = True) -> MessageRef | None:
        reply_to = MessageRef(
            channel_id=self.message.channel_id,
            message_id=self.message.message_id,
        )
        return await self.send(
            text, options=SendOptions(reply_to=reply_to, notify=notify)
        )


@dataclass(frozen=True, slots=True)
class FailedArgument:
    command: Leaf
    argument: ArgumentSpec | None
    reason: str
    remaining: str


@dataclass(frozen=True, slots=True)
class Unspecified:
    root: RootInvocation
    command_name: str
    raw_arguments: str
    path: tuple[str, ...] = ()
    kind: Literal[FailureKind.UNSPECIFIED] = field(
        default=FailureKind.UNSPECIFIED, init=False
    )


@dataclass(frozen=True, slots=True)
class NoCommandFound:
    root: RootInvocation
    command_name: str
    raw_arguments: str
    path: tuple[str, ...] = ()
    kind: Literal[FailureKind.NO_COMMAND_FOUND] = field(
        default=FailureKind.NO_COMMAND_FOUND, init=False
    )


@dataclass(frozen=True, slots=True)
class BadArgumentCount:
    root: RootInvocation
    command_name: str
    raw_arguments: str
    path: tuple[str, ...] = ()
    kind: Literal[FailureKind.BAD_ARGUMENT_COUNT] = field(
        default=FailureKind.BAD_ARGUMENT_COUNT, init=False
    )


@dataclass(frozen=True, slots=True)
class BadArguments:
    root: RootInvocation
    command_name: str
    raw_arguments: str
    path: tuple[str, ...] = ()
    failures: tuple[FailedArgument, ...] = ()
    kind: Literal[FailureKind.BAD_ARGUMENTS] = field(
        default=FailureKind.BAD_ARGUMENTS, init=False
    )


type FailureEvent = Unspecified | NoCommandFound | BadArgumentCount | BadArguments


@dataclass(frozen=True, slots=True)
class Invoked:
    event: CommandEvent
    node: CommandNode
    result: Any = None


type DispatchOutcome = Invoked | FailureEvent
