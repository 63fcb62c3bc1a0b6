"""Msgspec models for the JSON "message created" notification."""

from __future__ import annotations

import msgspec

from .model import IncomingMessage, Mentions

__all__ = [
    "ChatMessage",
    "ChatMessageCreated",
    "MentionRef",
    "MessageMentions",
    "decode_message_created",
    "to_incoming",
]


class MentionRef(msgspec.Struct, forbid_unknown_fields=False):
    id: str | int


class MessageMentions(msgspec.Struct, forbid_unknown_fields=False):
    users: list[MentionRef] = msgspec.field(default_factory=list)
    roles: list[MentionRef] = msgspec.field(default_factory=list)
    channels: list[MentionRef] = msgspec.field(default_factory=list)


class ChatMessage(msgspec.Struct, forbid_unknown_fields=False, rename="camel"):
    id: str
    channel_id: str
    content: str = ""
    server_id: str | None = None
    created_by: str | None = None
    mentions: MessageMentions | None = None


class ChatMessageCreated(msgspec.Struct, forbid_unknown_fields=False, rename="camel"):
    message: ChatMessage
    server_id: str | None = None


_DECODER = msgspec.json.Decoder(ChatMessageCreated)


def _ids(refs: list[MentionRef]) -> tuple[str, ...]:
    return tuple(str(ref.id) for ref in refs)


def to_incoming(event: ChatMessageCreated) -> IncomingMessage:
    message = event.message
    mentions = message.mentions or MessageMentions()
    return IncomingMessage(
        text=message.content,
        channel_id=message.channel_id,
        message_id=message.id,
        server_id=event.server_id or message.server_id,
        author_id=message.created_by,
        mentions=Mentions(
            members=_ids(mentions.users),
            roles=_ids(mentions.roles),
            channels=_ids(mentions.channels),
        ),
        raw=event,
    )


def decode_message_created(data: bytes | str) -> IncomingMessage:
    return to_incoming(_DECODER.decode(data))
