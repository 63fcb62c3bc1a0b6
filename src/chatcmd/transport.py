from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from .model import Channel, EntityId, IncomingMessage, Member, Role


@dataclass(frozen=True, slots=True)
class MessageRef:
    channel_id: EntityId
    message_id: EntityId
    raw: Any | None = field(default=None, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    text: str
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SendOptions:
    reply_to: MessageRef | None = None
    notify: bool = True


class Transport(Protocol):
    async def send(
        self,
        *,
        channel_id: EntityId,
        message: RenderedMessage,
        options: SendOptions | None = None,
    ) -> MessageRef | None: ...


class EntityLookup(Protocol):
    async def fetch_member(
        self, server_id: EntityId | None, member_id: EntityId
    ) -> Member: ...

    async def fetch_role(
        self, server_id: EntityId | None, role_id: EntityId
    ) -> Role: ...

    async def fetch_channel(
        self, server_id: EntityId | None, channel_id: EntityId
    ) -> Channel: ...


type MessageHandler = Callable[[IncomingMessage], Awaitable[Any]]


class MessageSource(Protocol):
    def set_message_handler(self, handler: MessageHandler | None) -> None: ...
