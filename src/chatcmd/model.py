"""Collaborator data the command core reads: messages, mentions, entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

type EntityId = str
type MentionKind = Literal["member", "role", "channel"]

MENTION_KINDS: tuple[MentionKind, ...] = ("member", "role", "channel")


class Entity(Protocol):
    @property
    def id(self) -> EntityId: ...

    @property
    def name(self) -> str: ...


@dataclass(frozen=True, slots=True)
class Member:
    id: EntityId
    name: str
    raw: Any | None = field(default=None, compare=False, hash=False, repr=False)


@dataclass(frozen=True, slots=True)
class Role:
    id: EntityId
    name: str
    raw: Any | None = field(default=None, compare=False, hash=False, repr=False)


@dataclass(frozen=True, slots=True)
class Channel:
    id: EntityId
    name: str
    raw: Any | None = field(default=None, compare=False, hash=False, repr=False)


@dataclass(frozen=True, slots=True)
class Mentions:
    """Mention references in the order they appear in the message."""

    members: tuple[EntityId, ...] = ()
    roles: tuple[EntityId, ...] = ()
    channels: tuple[EntityId, ...] = ()

    def of_kind(self, kind: MentionKind) -> tuple[EntityId, ...]:
        match kind:
            case "member":
                return self.members
            case "role":
                return self.roles
            case "channel":
                return self.channels


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    text: str
    channel_id: EntityId
    message_id: EntityId
    server_id: EntityId | None = None
    author_id: EntityId | None = None
    mentions: Mentions = field(default_factory=Mentions)
    raw: Any | None = field(default=None, compare=False, hash=False, repr=False)
