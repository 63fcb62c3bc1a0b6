from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from chatcmd.commands.configuration import CommandConfiguration
from chatcmd.commands.events import RootInvocation
from chatcmd.model import Channel, IncomingMessage, Member, Mentions, Role
from chatcmd.transport import MessageRef, RenderedMessage, SendOptions


def make_message(
    text: str,
    *,
    members: Iterable[str] = (),
    roles: Iterable[str] = (),
    channels: Iterable[str] = (),
    server_id: str | None = "guild-1",
    channel_id: str = "chan-1",
    message_id: str = "msg-1",
) -> IncomingMessage:
    return IncomingMessage(
        text=text,
        channel_id=channel_id,
        message_id=message_id,
        server_id=server_id,
        author_id="author-1",
        mentions=Mentions(
            members=tuple(members), roles=tuple(roles), channels=tuple(channels)
        ),
    )


def make_invocation(
    text: str = "",
    *,
    configuration: CommandConfiguration | None = None,
    members: Iterable[Member] = (),
    roles: Iterable[Role] = (),
    channels: Iterable[Channel] = (),
    lookup: Any = None,
    message: IncomingMessage | None = None,
) -> RootInvocation:
    return RootInvocation(
        message=message or make_message(text),
        configuration=configuration or CommandConfiguration(),
        prefix="/",
        root_command_name="test",
        raw_arguments=text,
        lookup=lookup,
        known_members=list(members),
        known_roles=list(roles),
        known_channels=list(channels),
    )


class FakeLookup:
    """Answers lookups from id -> name tables and records every call."""

    def __init__(
        self,
        *,
        members: dict[str, str] | None = None,
        roles: dict[str, str] | None = None,
        channels: dict[str, str] | None = None,
    ) -> None:
        self.members = members or {}
        self.roles = roles or {}
        self.channels = channels or {}
        self.calls: list[tuple[str, str]] = []

    def _name(self, table: dict[str, str], entity_id: str) -> str:
        try:
            return table[entity_id]
        except KeyError:
            raise LookupError(f"unknown id {entity_id}") from None

    async def fetch_member(self, server_id: str | None, member_id: str) -> Member:
        self.calls.append(("member", member_id))
        return Member(id=member_id, name=self._name(self.members, member_id))

    async def fetch_role(self, server_id: str | None, role_id: str) -> Role:
        self.calls.append(("role", role_id))
        return Role(id=role_id, name=self._name(self.roles, role_id))

    async def fetch_channel(self, server_id: str | None, channel_id: str) -> Channel:
        self.calls.append(("channel", channel_id))
        return Channel(id=channel_id, name=self._name(self.channels, channel_id))


class FakeTransport:
    def __init__(self) -> None:
        self.send_calls: list[dict[str, Any]] = []

    async def send(
        self,
        *,
        channel_id: str,
        message: RenderedMessage,
        options: SendOptions | None = None,
    ) -> MessageRef | None:
        self.send_calls.append(
            {"channel_id": channel_id, "message": message, "options": options}
        )
        return MessageRef(
            channel_id=channel_id, message_id=f"sent-{len(self.send_calls)}"
        )


class FakeSource:
    def __init__(self) -> None:
        self.handler: Any = None
        self.set_calls = 0

    def set_message_handler(self, handler: Any) -> None:
        self.set_calls += 1
        self.handler = handler
