"""Chat-service records, the client interface the bot talks through, and member lookups."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol


class LookupFailed(LookupError):
    """Raised when a member or role that must exist cannot be found."""


@dataclass(frozen=True)
class DiscordUser:
    """An account on the chat service."""

    id: str
    username: str
    discriminator: str = ""

    def mention(self) -> str:
        return f"<@{self.id}>"


@dataclass
class Member:
    """A user's membership in a guild: a server nickname and a set of role IDs."""

    user: DiscordUser
    nick: str = ""
    roles: list[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.nick or self.user.username


@dataclass(frozen=True)
class Role:
    id: str
    name: str


@dataclass(frozen=True)
class Channel:
    id: str
    name: str


@dataclass(frozen=True)
class Guild:
    id: str
    name: str


@dataclass(frozen=True)
class Message:
    """A message posted in a channel."""

    channel_id: str
    author: DiscordUser
    content: str


class ChatClient(Protocol):
    """The operations the bot needs from the chat service."""

    def send_message(self, channel_id: str, text: str) -> None:
        """Post ``text`` to a channel."""

    def user_guilds(self) -> list[Guild]:
        """Return the guilds the bot belongs to."""

    def guild_members(self, guild_id: str) -> list[Member]:
        """Return the members of a guild."""

    def guild_member(self, guild_id: str, user_id: str) -> Member:
        """Return one member of a guild."""

    def guild_roles(self, guild_id: str) -> list[Role]:
        """Return the roles defined in a guild."""

    def guild_channels(self, guild_id: str) -> list[Channel]:
        """Return the channels of a guild."""

    def channel(self, channel_id: str) -> Channel:
        """Return a channel by its ID."""


def display_name_by_id(members: Iterable[Member], user_id: str) -> str:
    """Return the nickname (or else the username) of the member with ``user_id``."""
    for member in members:
        if member.user.id == user_id:
            return member.display_name
    raise LookupFailed(f"Failed to find a Discord member matching ID: {user_id}")


def user_by_id(members: Iterable[Member], user_id: str) -> Optional[DiscordUser]:
    return next((m.user for m in members if m.user.id == user_id), None)


def user_by_name(members: Iterable[Member], name: str) -> Optional[DiscordUser]:
    """Find a user by nickname, or by username for members without a nickname."""
    return next((m.user for m in members if m.display_name == name), None)


def role_id_by_name(roles: Iterable[Role], name: str) -> str:
    for role in roles:
        if role.name == name:
            return role.id
    raise LookupFailed(f"Failed to find a Discord role matching name: {name}")


def team_captain(
    members: Iterable[Member], captain_role_id: str, team_role_id: str
) -> Optional[DiscordUser]:
    """Return the first member holding both the captain role and the team's role."""
    return next(
        (
            m.user
            for m in members
            if captain_role_id in m.roles and team_role_id in m.roles
        ),
        None,
    )