"""Run a command module on a Pycord client."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import discord

from ..commands.configuration import CommandConfiguration
from ..commands.module import CommandModule
from ..commands.tree import CommandGroup, Container
from ..logging import get_logger
from ..model import Channel, EntityId, IncomingMessage, Member, Mentions, Role
from ..transport import MessageHandler, MessageRef, RenderedMessage, SendOptions

logger = get_logger(__name__)


def _text_order(
    raw_ids: Iterable[int], resolved: Iterable[discord.abc.Snowflake]
) -> tuple[EntityId, ...]:
    # the resolved lists are unordered; raw ids follow the message text
    ordered = dict.fromkeys(str(entity_id) for entity_id in raw_ids)
    ordered.update(dict.fromkeys(str(entity.id) for entity in resolved))
    return tuple(ordered)


def incoming_from_discord(message: discord.Message) -> IncomingMessage:
    """Build the core's view of a Discord message.

    ``clean_content`` renders mentions as ``@name`` / ``#name``, which is the
    form the mention converters match against.
    """
    guild = message.guild
    return IncomingMessage(
        text=message.clean_content,
        channel_id=str(message.channel.id),
        message_id=str(message.id),
        server_id=str(guild.id) if guild is not None else None,
        author_id=str(message.author.id),
        mentions=Mentions(
            members=_text_order(message.raw_mentions, message.mentions),
            roles=_text_order(message.raw_role_mentions, message.role_mentions),
            channels=_text_order(
                message.raw_channel_mentions, message.channel_mentions
            ),
        ),
        raw=message,
    )


class DiscordEntityLookup:
    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot

    async def _guild(self, server_id: EntityId | None) -> discord.Guild:
        if server_id is None:
            raise LookupError("guild entities need a server id")
        guild = self._bot.get_guild(int(server_id))
        if guild is None:
            guild = await self._bot.fetch_guild(int(server_id))
        return guild

    async def fetch_member(
        self, server_id: EntityId | None, member_id: EntityId
    ) -> Member:
        if server_id is None:
            user = self._bot.get_user(int(member_id))
            if user is None:
                user = await self._bot.fetch_user(int(member_id))
            return Member(id=str(user.id), name=user.display_name, raw=user)
        guild = await self._guild(server_id)
        member = guild.get_member(int(member_id))
        if member is None:
            member = await guild.fetch_member(int(member_id))
        return Member(id=str(member.id), name=member.display_name, raw=member)

    async def fetch_role(self, server_id: EntityId | None, role_id: EntityId) -> Role:
        guild = await self._guild(server_id)
        role = guild.get_role(int(role_id))
        if role is None:
            roles = await guild.fetch_roles()
            role = next((item for item in roles if item.id == int(role_id)), None)
        if role is None:
            raise LookupError(f"unknown role {role_id} in guild {server_id}")
        return Role(id=str(role.id), name=role.name, raw=role)

    async def fetch_channel(
        self, server_id: EntityId | None, channel_id: EntityId
    ) -> Channel:
        channel = self._bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self._bot.fetch_channel(int(channel_id))
        name = getattr(channel, "name", None) or str(channel.id)
        return Channel(id=str(channel.id), name=name, raw=channel)


class DiscordTransport:
    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot

    async def send(
        self,
        *,
        channel_id: EntityId,
        message: RenderedMessage,
        options: SendOptions | None = None,
    ) -> MessageRef | None:
        channel = self._bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(int(channel_id))
            except discord.HTTPException as e:
                logger.error(
                    "discord.fetch_channel_error", channel_id=channel_id, error=str(e)
                )
                return None
        if not isinstance(channel, discord.abc.Messageable):
            logger.error(
                "discord.not_messageable",
                channel_id=channel_id,
                channel_type=type(channel).__name__,
            )
            return None

        kwargs: dict[str, Any] = {"content": message.text}
        if options is not None and options.reply_to is not None:
            kwargs["reference"] = discord.MessageReference(
                message_id=int(options.reply_to.message_id),
                channel_id=int(options.reply_to.channel_id),
            )
            kwargs["mention_author"] = options.notify
        try:
            sent = await channel.send(**kwargs)
        except discord.HTTPException as e:
            logger.error("discord.send_error", channel_id=channel_id, error=str(e))
            return None
        return MessageRef(
            channel_id=str(sent.channel.id), message_id=str(sent.id), raw=sent
        )


class DiscordMessageSource:
    """Feeds ``on_message`` events of a client to one message handler."""

    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot
        self._handler: MessageHandler | None = None
        bot.event(self.on_message)

    def set_message_handler(self, handler: MessageHandler | None) -> None:
        self._handler = handler

    async def on_message(self, message: discord.Message) -> None:
        if self._handler is None:
            return
        if message.author.bot or message.author == self._bot.user:
            return
        await self._handler(incoming_from_discord(message))


def attach_commands(
    bot: discord.Client,
    commands: CommandGroup | Container,
    *,
    configuration: CommandConfiguration | None = None,
    failure_buffer: int = 64,
) -> CommandModule:
    module = CommandModule(
        commands,
        configuration=configuration,
        lookup=DiscordEntityLookup(bot),
        transport=DiscordTransport(bot),
        failure_buffer=failure_buffer,
    )
    module.add_to(DiscordMessageSource(bot))
    return module
