"""Stable public API for bot authors."""

from __future__ import annotations

from .commands import (
    Arg,
    ArgumentSpec,
    BadArgumentCount,
    BadArguments,
    CommandConfiguration,
    CommandDeclarationError,
    CommandEvent,
    CommandGroup,
    CommandModule,
    Converter,
    ConverterRegistry,
    FailureEvent,
    FailureKind,
    Invoked,
    NoCommandFound,
    Pattern,
    Rest,
    SplitPolicy,
    Unspecified,
)
from .commands.converters import (
    Byte,
    Char,
    HashId,
    Int,
    Long,
    SByte,
    Short,
    UInt,
    ULong,
    UShort,
    token_converter,
)
from .commands.help import render_help
from .commands.pipeline import render_arguments
from .config import ConfigError
from .logging import get_logger, setup_logging
from .model import Channel, IncomingMessage, Member, Mentions, Role
from .schemas import decode_message_created
from .settings import CommandSettings, load_settings
from .transport import (
    EntityLookup,
    MessageRef,
    MessageSource,
    RenderedMessage,
    SendOptions,
    Transport,
)

__all__ = [
    # Declarations
    "Arg",
    "ArgumentSpec",
    "CommandDeclarationError",
    "CommandGroup",
    "Pattern",
    "Rest",
    # Runtime
    "CommandConfiguration",
    "CommandEvent",
    "CommandModule",
    "Invoked",
    "SplitPolicy",
    # Failures
    "BadArgumentCount",
    "BadArguments",
    "FailureEvent",
    "FailureKind",
    "NoCommandFound",
    "Unspecified",
    # Converters
    "Byte",
    "Char",
    "Converter",
    "ConverterRegistry",
    "HashId",
    "Int",
    "Long",
    "SByte",
    "Short",
    "UInt",
    "ULong",
    "UShort",
    "render_arguments",
    "token_converter",
    # Collaborators
    "Channel",
    "EntityLookup",
    "IncomingMessage",
    "Member",
    "Mentions",
    "MessageRef",
    "MessageSource",
    "RenderedMessage",
    "Role",
    "SendOptions",
    "Transport",
    "decode_message_created",
    # Ambient
    "CommandSettings",
    "ConfigError",
    "get_logger",
    "load_settings",
    "render_help",
    "setup_logging",
]
