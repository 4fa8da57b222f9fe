"""Commands with which racers set their stream URL and timezone."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone as dt_timezone
from functools import lru_cache
from typing import Optional, Sequence
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from .chat import Message, user_by_name
from .context import BotContext
from .formatting import timezone_label
from .records import User

log = logging.getLogger(__name__)

_SCHEME = re.compile(r"[a-z][a-z0-9+.-]*:", re.IGNORECASE)

_TZ_HINT = (
    "The submitted timezone has to exactly match the TZ column of the "
    "list of tz database time zones."
)


def _valid_request_uri(url: str) -> bool:
    """Whether ``url`` is an absolute URI or an absolute path."""
    if not url or any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        return False
    if _SCHEME.match(url) is None:
        return url.startswith("/")
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return " " not in parts.netloc


def normalize_stream_url(url: str) -> str:
    """Lower-case a stream URL, complete a lazily typed Twitch address and validate it.

    Raises ValueError if the result is not a full URL.
    """
    url = url.lower()
    if url.startswith("http://"):
        url = url.replace("http://", "https://")
    if url.startswith("https://twitch.tv/"):
        url = url.replace("twitch.tv", "www.twitch.tv")
    if url.startswith("twitch.tv/"):
        url = "https://www." + url
    if url.startswith("www.twitch.tv/"):
        url = "https://" + url
    if url.endswith("/"):
        url = url[:-1]
    if not _valid_request_uri(url):
        raise ValueError(f"not a valid URL: {url!r}")
    return url


@lru_cache(maxsize=None)
def _zones_by_abbreviation() -> dict[str, tuple[str, ...]]:
    """Map each alphabetic zone abbreviation to the zones that use it in winter or summer."""
    year = datetime.now(dt_timezone.utc).year
    samples = (
        datetime(year, 1, 1, 12, tzinfo=dt_timezone.utc),
        datetime(year, 7, 1, 12, tzinfo=dt_timezone.utc),
    )
    index: dict[str, set[str]] = defaultdict(set)
    for name in available_timezones():
        try:
            zone = ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            continue
        for sample in samples:
            abbreviation = sample.astimezone(zone).tzname()
            if abbreviation and abbreviation.isalpha():
                index[abbreviation.upper()].add(name)
    return {key: tuple(sorted(names)) for key, names in index.items()}


def timezone_choices(abbreviation: str) -> list[str]:
    """Named zones that use ``abbreviation``, leaving out those named after it."""
    key = abbreviation.upper()
    zones = _zones_by_abbreviation().get(key, ())
    return [zone for zone in zones if not zone.startswith(key)]


def _is_zone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def _report(ctx: BotContext, channel_id: str, prefix: str, err: Exception) -> None:
    msg = f"{prefix}: {err}"
    log.error(msg)
    ctx.send(channel_id, msg)


def _author_user(ctx: BotContext, message: Message) -> Optional[User]:
    try:
        return ctx.ensure_user(message.author)
    except Exception as err:
        _report(ctx, message.channel_id, "Failed to get the user from the database", err)
        return None


def command_stream(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!stream [url]``: set the author's stream, or show the current one."""
    if not args:
        _print_stream(ctx, message)
        return
    user = _author_user(ctx, message)
    if user is None:
        return

    try:
        stream_url = normalize_stream_url(args[0])
    except ValueError:
        ctx.send(message.channel_id, "That is not a valid URL.")
        return

    try:
        ctx.db.users.set_stream_url(message.author.id, stream_url)
    except Exception as err:
        _report(ctx, message.channel_id, "Failed to update the stream", err)
        return

    ctx.send(
        message.channel_id,
        f"The stream for **{user.username}** has been set to: <{stream_url}>",
    )


def _print_stream(ctx: BotContext, message: Message) -> None:
    user = _author_user(ctx, message)
    if user is None:
        return
    msg = f"{message.author.mention()}, your stream is "
    if user.stream_url is not None:
        msg += f"currently set to: <{user.stream_url}>\n\n"
    else:
        msg += "**not currently set**.\n\n"
    msg += "Set your stream with: `!stream [url]`\n"
    msg += "e.g. `!stream https://www.twitch.tv/willy`"
    ctx.send(message.channel_id, msg)


def command_timezone(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!timezone [timezone]``: set the author's timezone, or show the current one."""
    if not args:
        _print_timezone(ctx, message)
        return
    user = _author_user(ctx, message)
    if user is None:
        return

    new_timezone = args[0]
    abbreviation = new_timezone.upper()
    if abbreviation in _zones_by_abbreviation():
        msg = (
            "That is not specific enough. Please use `!timezone [timezone]` and select "
            f"from the following list of timezones inside {abbreviation}:\n"
        )
        msg += "```\n"
        msg += "".join(zone + "\n" for zone in timezone_choices(abbreviation))
        msg += "```"
        ctx.send(message.channel_id, msg)
        return

    if not _is_zone(new_timezone):
        msg = f"That is not a valid timezone. {_TZ_HINT}\n"
        msg += "e.g. `!timezone America/New_York`"
        ctx.send(message.channel_id, msg)
        return

    try:
        ctx.db.users.set_timezone(message.author.id, new_timezone)
    except Exception as err:
        _report(ctx, message.channel_id, "Failed to update the timezone", err)
        return

    ctx.send(
        message.channel_id,
        f"The timezone for **{user.username}** has been set to: "
        f"**{timezone_label(new_timezone)}**",
    )


def _print_timezone(ctx: BotContext, message: Message) -> None:
    user = _author_user(ctx, message)
    if user is None:
        return
    msg = f"{message.author.mention()}, your timezone is "
    if user.timezone is not None:
        msg += f"currently set to: **{timezone_label(user.timezone)}**\n\n"
    else:
        msg += "**not currently set**.\n\n"
    msg += "Set your timezone with: `!timezone [timezone]`\n"
    msg += "e.g. `!timezone America/New_York`\n"
    msg += _TZ_HINT
    ctx.send(message.channel_id, msg)


def command_set_timezone(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!settimezone [username] [timezone]``: an admin sets another user's timezone."""
    if not ctx.is_admin(message):
        return
    if len(args) != 2:
        msg = "Set another user's timezone with: `!settimezone [username] [timezone]`\n"
        msg += "e.g. `!settimezone Willy America/New_York`\n"
        msg += _TZ_HINT
        ctx.send(message.channel_id, msg)
        return

    username = args[0]
    try:
        members = ctx.members()
    except Exception as err:
        _report(ctx, message.channel_id, "Failed to get the Discord guild members", err)
        return

    target = user_by_name(members, username)
    if target is None:
        msg = f'Failed to find "{username}" in the Discord server.'
        log.error(msg)
        ctx.send(message.channel_id, msg)
        return

    command_timezone(ctx, replace(message, author=target), list(args[1:]))