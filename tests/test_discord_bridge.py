"""Tests for the Discord adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from chatcmd.commands.module import CommandModule
from chatcmd.commands.tree import CommandGroup
from chatcmd.discord.bridge import (
    DiscordEntityLookup,
    DiscordMessageSource,
    DiscordTransport,
    attach_commands,
    incoming_from_discord,
)
from chatcmd.model import Channel, IncomingMessage, Member, Role
from chatcmd.transport import MessageRef, RenderedMessage, SendOptions


def make_discord_message(*, author_is_bot: bool = False) -> MagicMock:
    message = MagicMock()
    message.id = 100
    message.clean_content = "/hug @John #general"
    message.channel.id = 200
    message.guild.id = 300
    message.author.id = 400
    message.author.bot = author_is_bot
    message.mentions = [MagicMock(id=2), MagicMock(id=3)]
    message.role_mentions = [MagicMock(id=10)]
    message.channel_mentions = [MagicMock(id=20)]
    return message


def test_incoming_from_discord() -> None:
    raw = make_discord_message()
    message = incoming_from_discord(raw)

    assert message.text == "/hug @John #general"
    assert message.channel_id == "200"
    assert message.message_id == "100"
    assert message.server_id == "300"
    assert message.author_id == "400"
    assert message.mentions.members == ("2", "3")
    assert message.mentions.roles == ("10",)
    assert message.mentions.channels == ("20",)
    assert message.raw is raw


def test_incoming_mentions_follow_text_order() -> None:
    raw = make_discord_message()
    raw.clean_content = "/hug @Ann @John"
    raw.raw_mentions = [3, 2, 3]
    raw.raw_role_mentions = []
    raw.raw_channel_mentions = [20]

    mentions = incoming_from_discord(raw).mentions
    assert mentions.members == ("3", "2")
    assert mentions.roles == ("10",)
    assert mentions.channels == ("20",)


def test_incoming_from_direct_message() -> None:
    raw = make_discord_message()
    raw.guild = None
    assert incoming_from_discord(raw).server_id is None


@pytest.mark.anyio
async def test_lookup_uses_cache_then_api() -> None:
    bot = MagicMock()
    guild = MagicMock()
    bot.get_guild.return_value = guild
    guild.get_member.return_value = MagicMock(id=2, display_name="John")

    lookup = DiscordEntityLookup(bot)
    assert await lookup.fetch_member("300", "2") == Member(id="2", name="John")
    guild.get_member.assert_called_once_with(2)

    guild.get_member.return_value = None
    guild.fetch_member = AsyncMock(return_value=MagicMock(id=3, display_name="Ann"))
    assert await lookup.fetch_member("300", "3") == Member(id="3", name="Ann")
    guild.fetch_member.assert_awaited_once_with(3)


@pytest.mark.anyio
async def test_lookup_roles_and_channels() -> None:
    bot = MagicMock()
    guild = MagicMock()
    bot.get_guild.return_value = None
    bot.fetch_guild = AsyncMock(return_value=guild)
    guild.get_role.return_value = None
    admins = MagicMock(id=10)
    admins.name = "Admins"
    guild.fetch_roles = AsyncMock(return_value=[admins])
    general = MagicMock(id=20)
    general.name = "general"
    bot.get_channel.return_value = general

    lookup = DiscordEntityLookup(bot)
    assert await lookup.fetch_role("300", "10") == Role(id="10", name="Admins")
    assert await lookup.fetch_channel("300", "20") == Channel(id="20", name="general")
    with pytest.raises(LookupError):
        await lookup.fetch_role("300", "11")
    with pytest.raises(LookupError):
        await lookup.fetch_role(None, "10")


@pytest.mark.anyio
async def test_transport_sends_replies() -> None:
    bot = MagicMock()
    channel = MagicMock(spec=discord.TextChannel)
    sent = MagicMock(id=9)
    sent.channel.id = 200
    channel.send = AsyncMock(return_value=sent)
    bot.get_channel.return_value = channel

    transport = DiscordTransport(bot)
    ref = await transport.send(
        channel_id="200",
        message=RenderedMessage(text="hi"),
        options=SendOptions(
            reply_to=MessageRef(channel_id="200", message_id="100"), notify=False
        ),
    )

    assert ref == MessageRef(channel_id="200", message_id="9")
    kwargs = channel.send.await_args.kwargs
    assert kwargs["content"] == "hi"
    assert kwargs["reference"].message_id == 100
    assert kwargs["mention_author"] is False


@pytest.mark.anyio
async def test_transport_rejects_non_messageable_channels() -> None:
    bot = MagicMock()
    bot.get_channel.return_value = object()
    transport = DiscordTransport(bot)
    ref = await transport.send(channel_id="1", message=RenderedMessage(text="x"))
    assert ref is None


@pytest.mark.anyio
async def test_message_source_skips_bots() -> None:
    bot = MagicMock()
    source = DiscordMessageSource(bot)
    bot.event.assert_called_once()
    handler = AsyncMock()

    await source.on_message(make_discord_message())
    handler.assert_not_awaited()

    source.set_message_handler(handler)
    await source.on_message(make_discord_message(author_is_bot=True))
    handler.assert_not_awaited()

    await source.on_message(make_discord_message())
    handler.assert_awaited_once()
    (incoming,) = handler.await_args.args
    assert isinstance(incoming, IncomingMessage)


def test_attach_commands_builds_a_module() -> None:
    bot = MagicMock()
    module = attach_commands(bot, CommandGroup())
    assert isinstance(module, CommandModule)
    assert isinstance(module.lookup, DiscordEntityLookup)
    assert isinstance(module.transport, DiscordTransport)
    bot.event.assert_called_once()
