"""Discord adapter built on Pycord."""

from .bridge import (
    DiscordEntityLookup,
    DiscordMessageSource,
    DiscordTransport,
    attach_commands,
    incoming_from_discord,
)

__all__ = [
    "DiscordEntityLookup",
    "DiscordMessageSource",
    "DiscordTransport",
    "attach_commands",
    "incoming_from_discord",
]
