"""Shared state of a running bot: guild configuration, chat client and database."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .chat import (
    Channel,
    ChatClient,
    DiscordUser,
    Guild,
    LookupFailed,
    Member,
    Message,
    Role,
    display_name_by_id,
)
from .database import Database, RecordNotFound
from .records import Race, User

log = logging.getLogger(__name__)

ADMIN_ROLE_NAME = "Admin"
BOT_ROLE_NAME = "Bot"
CASTER_ROLE_NAME = "Caster"
TEAM_CAPTAIN_ROLE_NAME = "Team Captain"
EVERYONE_ROLE_NAME = "@everyone"
GENERAL_CHANNEL_NAME = "matches"


@dataclass(frozen=True)
class GuildConfig:
    """IDs of the guild, its special roles and the channel for match announcements."""

    guild_id: str
    admin_role_id: str
    bot_role_id: str
    caster_role_id: str
    everyone_role_id: str
    general_channel_id: str
    team_captain_role_id: str = ""


def resolve_guild_config(
    guild_name: str,
    guilds: Iterable[Guild],
    roles: Iterable[Role],
    channels: Iterable[Channel],
) -> GuildConfig:
    """Find the IDs the bot needs; raise LookupFailed if a required one is missing."""
    guild_id = next((guild.id for guild in guilds if guild.name == guild_name), None)
    if guild_id is None:
        raise LookupFailed(f'Failed to find the ID of the "{guild_name}" Discord server.')

    role_ids = {role.name: role.id for role in roles}
    for required in (ADMIN_ROLE_NAME, BOT_ROLE_NAME, CASTER_ROLE_NAME, EVERYONE_ROLE_NAME):
        if not role_ids.get(required):
            raise LookupFailed(f'Failed to find the role of "{required}".')

    general_id = next(
        (channel.id for channel in channels if channel.name == GENERAL_CHANNEL_NAME), None
    )
    if general_id is None:
        raise LookupFailed(f'Failed to find the "{GENERAL_CHANNEL_NAME}" channel.')

    return GuildConfig(
        guild_id=guild_id,
        admin_role_id=role_ids[ADMIN_ROLE_NAME],
        bot_role_id=role_ids[BOT_ROLE_NAME],
        caster_role_id=role_ids[CASTER_ROLE_NAME],
        everyone_role_id=role_ids[EVERYONE_ROLE_NAME],
        general_channel_id=general_id,
        team_captain_role_id=role_ids.get(TEAM_CAPTAIN_ROLE_NAME, ""),
    )


@dataclass
class BotContext:
    """Everything a command handler needs to do its work."""

    client: ChatClient
    db: Database
    guild: GuildConfig
    on_time_confirmed: Optional[Callable[[Race], None]] = None

    def send(self, channel_id: str, text: str) -> None:
        """Post a message; a failure to deliver is logged rather than raised."""
        try:
            self.client.send_message(channel_id, text)
        except Exception as err:
            log.error('Failed to send "%s" to "%s": %s', text, channel_id, err)

    def members(self) -> list[Member]:
        return self.client.guild_members(self.guild.guild_id)

    def ensure_user(self, author: DiscordUser) -> User:
        """Return the stored user for ``author``, creating or renaming it as needed."""
        username = display_name_by_id(self.members(), author.id)
        users = self.db.users
        if users.exists(author.id):
            user = users.get_by_discord_id(author.id)
            if user.username != username:
                user.username = username
                users.set_username(author.id, username)
            return user

        user = User(discord_id=author.id, username=author.username)
        users.insert(user)
        return user

    def is_admin(self, message: Message) -> bool:
        """Whether the author holds the admin role; tells the channel when not."""
        try:
            member = self.client.guild_member(self.guild.guild_id, message.author.id)
        except Exception as err:
            msg = f"Failed to get the presence for the user: {err}"
            log.error(msg)
            self.send(message.channel_id, msg)
            return False
        if self.guild.admin_role_id not in member.roles:
            self.send(message.channel_id, "Only admins can perform this command.")
            return False
        return True

    def increment_active_racer(self, race: Race) -> None:
        """Pass the turn to the other racer and store it."""
        race.active_racer = 1 if race.active_racer >= 2 else race.active_racer + 1
        try:
            self.db.races.set_active_racer(race.channel_id, race.active_racer)
        except Exception as err:
            msg = f'Failed to set the active racer for race "{race.name()}": {err}'
            log.error(msg)
            self.send(race.channel_id, msg)

    def race_for_channel(self, channel_id: str) -> Optional[Race]:
        """The race held in a channel, or None if the channel is not a race channel."""
        try:
            return self.db.get_race(channel_id)
        except RecordNotFound:
            return None