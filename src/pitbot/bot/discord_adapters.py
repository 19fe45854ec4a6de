"""
discord_adapters.py
===================

Discord-backed implementations of the engine's outward ports.

- :class:`DiscordPitRole` is the ``SuspensionFlag``: the pit role in the configured guild.
- :class:`DiscordNotifier` is the ``Notifier``: user DMs and the log channel.

Discord API failures are translated into :class:`ExternalStateError` and
:class:`NotificationDeliveryError` here so the engine never sees discord
exceptions.
"""

from __future__ import annotations

from typing import List, Set, Union

import discord

from pitbot.configuration.pit_settings import PitSettings
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.errors import ExternalStateError, NotificationDeliveryError
from pitbot.util.logger import get_logger

logger = get_logger("discord_adapters")


def _resolve_guild(bot: discord.Bot, settings: PitSettings) -> discord.Guild:
    guild = bot.get_guild(settings.guild_id)
    if guild is None:
        raise ExternalStateError(
            f"Guild {settings.guild_id} is not available",
            error_code="GUILD_UNAVAILABLE",
            details={"guild_id": settings.guild_id},
        )
    return guild


class DiscordPitRole:
    """Pit role of the configured guild, seen as a suspension flag."""

    def __init__(self, bot: discord.Bot, settings: PitSettings) -> None:
        self.bot = bot
        self.settings = settings

    def _role(self, guild: discord.Guild) -> discord.Role:
        role = guild.get_role(self.settings.pit_role_id)
        if role is None:
            raise ExternalStateError(
                f"Pit role {self.settings.pit_role_id} does not exist",
                error_code="ROLE_MISSING",
                details={"role_id": self.settings.pit_role_id},
            )
        return role

    async def _member(self, guild: discord.Guild, user_id: UserID) -> discord.Member | None:
        member = guild.get_member(user_id.to_int())
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id.to_int())
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            raise ExternalStateError(f"Could not fetch member {user_id}: {exc}") from exc

    async def is_flagged(self, user_id: UserID) -> bool | None:
        guild = _resolve_guild(self.bot, self.settings)
        member = await self._member(guild, user_id)
        if member is None:
            return None
        return any(role.id == self.settings.pit_role_id for role in member.roles)

    async def set_flagged(self, user_id: UserID, flagged: bool, reason: str | None = None) -> None:
        guild = _resolve_guild(self.bot, self.settings)
        role = self._role(guild)
        member = await self._member(guild, user_id)
        if member is None:
            raise ExternalStateError(f"User {user_id} is not a member of {guild.name}", error_code="NOT_A_MEMBER")

        # Audit log reasons are capped at 512 characters.
        audit_reason = (reason or "")[:512] or None
        try:
            if flagged:
                await member.add_roles(role, reason=audit_reason)
            else:
                await member.remove_roles(role, reason=audit_reason)
        except discord.Forbidden as exc:
            raise ExternalStateError(
                "Missing MANAGE_ROLES permission or the pit role is above the bot's top role",
                error_code="FORBIDDEN",
                details={"user_id": str(user_id)},
            ) from exc
        except discord.HTTPException as exc:
            raise ExternalStateError(f"Discord rejected the role change: {exc}", error_code="HTTP_ERROR") from exc

    async def flagged_user_ids(self) -> Set[UserID]:
        guild = _resolve_guild(self.bot, self.settings)
        return {UserID(member.id) for member in self._role(guild).members}


class DiscordNotifier:
    """Sends DMs to users and posts to the configured log channel."""

    def __init__(self, bot: discord.Bot, settings: PitSettings) -> None:
        self.bot = bot
        self.settings = settings

    async def send_dm(self, user_id: UserID, embed: discord.Embed) -> None:
        try:
            user = self.bot.get_user(user_id.to_int()) or await self.bot.fetch_user(user_id.to_int())
            await user.send(embed=embed)
        except discord.Forbidden as exc:
            raise NotificationDeliveryError(
                f"User {user_id} does not accept DMs", error_code="DM_CLOSED", details={"user_id": str(user_id)}
            ) from exc
        except discord.HTTPException as exc:
            raise NotificationDeliveryError(f"Failed to DM user {user_id}: {exc}", error_code="HTTP_ERROR") from exc

    async def send_log(self, embed: discord.Embed | None = None, content: str | None = None) -> None:
        channel = self.bot.get_channel(self.settings.log_channel_id)
        if channel is None:
            raise NotificationDeliveryError(
                f"Log channel {self.settings.log_channel_id} is not available", error_code="CHANNEL_MISSING"
            )
        try:
            await channel.send(content=content, embed=embed)
        except discord.HTTPException as exc:
            raise NotificationDeliveryError(f"Failed to post to log channel: {exc}", error_code="HTTP_ERROR") from exc


def is_moderator(member: Union[discord.User, discord.Member], settings: PitSettings) -> bool:
    """True for the configured owner and members holding a configured moderator role."""
    if settings.owner_id is not None and member.id == settings.owner_id:
        return True
    if not isinstance(member, discord.Member):
        return False
    moderator_roles = set(settings.moderator_role_ids)
    return any(role.id in moderator_roles for role in member.roles)


def moderator_ids(guild: discord.Guild, settings: PitSettings) -> List[UserID]:
    """Every member holding one of the moderator roles, without duplicates."""
    found: dict[int, UserID] = {}
    for role_id in settings.moderator_role_ids:
        role = guild.get_role(role_id)
        if role is None:
            logger.debug("[ADAPTERS] Moderator role %s not found in %s", role_id, guild.name)
            continue
        for member in role.members:
            found.setdefault(member.id, UserID(member.id))
    return list(found.values())
