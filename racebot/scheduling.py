"""Commands for agreeing on a match time and for reporting a race's status."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone as dt_timezone, tzinfo
from typing import Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from .chat import Message
from .context import BotContext
from .formatting import format_date, schedule_message, scheduled_time, timezone_label
from .records import Race, RaceState, User
from .util import float_to_string

log = logging.getLogger(__name__)

ALERT_LEAD = timedelta(minutes=5)

_RACE_CHANNEL_ONLY = "You can only use that command in a race channel."


def _zone(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return dt_timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone: {name}") from None


def _aware(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return datetime.now(dt_timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=dt_timezone.utc)
    return moment


def _utc_offset(name: str, now: datetime) -> timedelta:
    return now.astimezone(_zone(name)).utcoffset() or timedelta(0)


def parse_time(text: str, timezone: str, now: Optional[datetime] = None) -> datetime:
    """Read a time typed by a racer in ``timezone`` and return it in UTC.

    Missing parts default to the racer's current day at midnight; the racer's
    current UTC offset is applied.
    """
    now = _aware(now)
    offset = _utc_offset(timezone, now)
    default = now.astimezone(_zone(timezone)).replace(
        tzinfo=None, hour=0, minute=0, second=0, microsecond=0
    )
    try:
        parsed = date_parser.parse(text, default=default)
    except (ValueError, OverflowError) as err:
        raise ValueError(str(err)) from None
    if parsed.tzinfo is not None:
        return parsed.astimezone(dt_timezone.utc)
    return parsed.replace(tzinfo=dt_timezone.utc) - offset


def alert_delay(race: Race, now: Optional[datetime] = None) -> timedelta:
    """How long to wait before the five-minute warning for a scheduled race."""
    if race.datetime_scheduled is None:
        raise ValueError(f'race "{race.name()}" has no scheduled time')
    remaining = _aware(race.datetime_scheduled) - _aware(now)
    if remaining < ALERT_LEAD:
        return timedelta(0)
    return remaining - ALERT_LEAD


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


def _channel_race(ctx: BotContext, message: Message) -> Optional[Race]:
    try:
        race = ctx.race_for_channel(message.channel_id)
    except Exception as err:
        _report(ctx, message.channel_id, "Failed to get the race from the database", err)
        return None
    if race is None:
        ctx.send(message.channel_id, _RACE_CHANNEL_ONLY)
    return race


def _racer_number(race: Race, discord_id: str) -> Optional[int]:
    if race.racer1 is not None and race.racer1.discord_id == discord_id:
        return 1
    if race.racer2 is not None and race.racer2.discord_id == discord_id:
        return 2
    return None


def _racer_names(race: Race) -> str:
    return f'"{race.racer1.username}" and "{race.racer2.username}"'


def command_time(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!time [date & time]``: suggest a time, or show the current one."""
    channel = message.channel_id
    if not args:
        _announce_schedule(ctx, message)
        return
    # Catch people typing "!time ok" instead of "!timeok".
    if list(args) == ["ok"]:
        command_time_ok(ctx, message, args)
        return

    user = _author_user(ctx, message)
    if user is None:
        return
    race = _channel_race(ctx, message)
    if race is None:
        return

    racer_num = _racer_number(race, message.author.id)
    if racer_num is None:
        ctx.send(channel, f"Only {_racer_names(race)} can schedule a time for this match.")
        return
    if race.state != RaceState.INITIAL:
        ctx.send(
            channel,
            "The race has already been scheduled. To delete this time and start over, "
            "use the `!timedelete` command.",
        )
        return
    if user.timezone is None:
        ctx.send(
            channel,
            "You must specify a timezone with the `!timezone` command before you can "
            "suggest a time for the match.",
        )
        return
    if user.stream_url is None:
        ctx.send(
            channel,
            "You must specify a stream URL with the `!stream` command before you can "
            "suggest a time for the match.",
        )
        return

    now = datetime.now(dt_timezone.utc)
    try:
        when = parse_time(" ".join(args), user.timezone, now)
    except ValueError as err:
        ctx.send(channel, f"Failed to parse the time: {err}")
        return
    if when < now:
        ctx.send(channel, "You must schedule a date in the future.")
        return

    try:
        ctx.db.races.set_datetime_scheduled(channel, when, racer_num)
    except Exception as err:
        _report(ctx, channel, "Failed to update the scheduled time", err)
        return

    proposer, other = (race.racer1, race.racer2) if racer_num == 1 else (race.racer2, race.racer1)
    same_zone = (
        proposer.timezone is not None
        and other.timezone is not None
        and _utc_offset(proposer.timezone, now) == _utc_offset(other.timezone, now)
    )

    msg = (
        f"{proposer.mention()} has suggested that the match be scheduled at: *"
        f"{format_date(when, proposer.timezone_or_utc())}*\n"
    )
    if not same_zone and other.timezone is not None:
        msg += f"{other.mention()}, this is equal to: *{format_date(when, other.timezone)}*\n"
        msg += "If"
    else:
        msg += f"{other.mention()}, if"
    msg += (
        " this time is good for you, please use the `!timeok` command. Otherwise, "
        "suggest a new time with: `!time [date & time]`"
    )
    ctx.send(channel, msg)


def _announce_schedule(ctx: BotContext, message: Message) -> None:
    user = _author_user(ctx, message)
    if user is None:
        return
    race = _channel_race(ctx, message)
    if race is None:
        return
    ctx.send(message.channel_id, schedule_message(race, user))


def command_time_ok(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!timeok``: the other racer accepts the suggested time."""
    channel = message.channel_id
    user = _author_user(ctx, message)
    if user is None:
        return
    race = _channel_race(ctx, message)
    if race is None:
        return

    racer_num = _racer_number(race, message.author.id)
    if racer_num is None:
        ctx.send(channel, f"Only {_racer_names(race)} can confirm the time for this match.")
        return
    if race.state != RaceState.INITIAL:
        ctx.send(channel, "Both racers have already agreed to a time, so you cannot confirm.")
        return
    if race.datetime_scheduled is None:
        ctx.send(
            channel,
            "No-one has suggested a time for the match yet, so you cannot confirm it.",
        )
        return
    if racer_num == race.active_racer:
        ctx.send(channel, "The other racer needs to confirm the time, not you.")
        return
    if user.timezone is None:
        ctx.send(
            channel,
            "You must specify a timezone with the `!timezone` command before you can "
            "confirm the time for the match.",
        )
        return
    if user.stream_url is None:
        ctx.send(
            channel,
            "You must specify a stream URL with the `!stream` command before you can "
            "confirm the time for the match.",
        )
        return

    race.state = RaceState.SCHEDULED
    try:
        ctx.db.races.set_state(channel, race.state)
    except Exception as err:
        _report(ctx, channel, f'Failed to set the state for race "{race.name()}"', err)
        return
    log.info('Race "%s" is now in state: %s', race.name(), race.state.value)

    msg = (
        "The race time has been confirmed. I will notify you 5 minutes before the match begins.\n"
        "(To delete this time and start over, use the `!timedelete` command.)"
    )
    ctx.send(channel, msg)

    if ctx.on_time_confirmed is not None:
        ctx.on_time_confirmed(race)


def command_time_delete(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!timedelete``: drop an agreed time so the racers can pick a new one."""
    channel = message.channel_id
    race = _channel_race(ctx, message)
    if race is None:
        return

    if _racer_number(race, message.author.id) is None:
        ctx.send(channel, f"Only {_racer_names(race)} can reschedule this match.")
        return
    if race.state == RaceState.INITIAL:
        ctx.send(
            channel,
            "There is no need to reschedule until both racers have already agreed to a time.",
        )
        return

    try:
        ctx.db.races.unset_datetime_scheduled(channel)
    except Exception as err:
        _report(ctx, channel, "Failed to unset the scheduled time", err)
        return

    race.state = RaceState.INITIAL
    try:
        ctx.db.races.set_state(channel, race.state)
    except Exception as err:
        _report(ctx, channel, "Failed to set the state", err)
        return

    ctx.send(
        channel,
        "The currently scheduled time has been deleted. Please suggest a new time with "
        "the `!time` command.",
    )


def command_status(ctx: BotContext, message: Message, args: Sequence[str]) -> None:
    """``!status``: describe where the race in this channel stands."""
    race = _channel_race(ctx, message)
    if race is None:
        return
    announce_status(ctx, message, race, False)


def announce_status(
    ctx: BotContext, message: Message, race: Race, should_ping: bool
) -> None:
    """Post the status of ``race`` to its channel; only early states have a report."""
    if race.state == RaceState.INITIAL:
        _status_initial(ctx, race, should_ping)
    elif race.state == RaceState.SCHEDULED:
        # Default to the first racer's timezone.
        ctx.send(race.channel_id, schedule_message(race, race.racer1))


def _status_initial(ctx: BotContext, race: Race, should_ping: bool) -> None:
    racer1, racer2 = race.racer1, race.racer2
    if racer1 is None or racer2 is None:
        missing = 1 if racer1 is None else 2
        raise RuntimeError(
            f'Failed to print the status of race "{race.name()}" since racer {missing} was nil.'
        )

    def shown(racer: User) -> str:
        return racer.mention() if should_ping else racer.username

    msg = ""
    for racer in (racer1, racer2):
        if racer.timezone is not None:
            msg += f"{shown(racer)} has a timezone of: {timezone_label(racer.timezone)}\n"
        else:
            msg += (
                f"{shown(racer)}, your timezone is **not currently set**. "
                "Please set one with: `!timezone [timezone]`\n"
            )

    if racer1.timezone is not None and racer2.timezone is not None:
        now = datetime.now(dt_timezone.utc)
        offset1 = _utc_offset(racer1.timezone, now)
        offset2 = _utc_offset(racer2.timezone, now)
        if offset1 == offset2:
            msg += "You both are in **the same timezone**. Great!\n"
        else:
            hours = abs((offset1 - offset2).total_seconds()) / 3600
            msg += f"You are **{float_to_string(hours)} hours** away from each other.\n"
    msg += "\n"

    for racer in (racer1, racer2):
        if racer.stream_url is not None:
            msg += f"{shown(racer)} has a stream of: <{racer.stream_url}>\n"
        else:
            msg += (
                f"{shown(racer)}, your stream is **not currently set**. "
                "Please set one with: `!stream [url]`\n"
            )
    msg += "\n"

    if race.datetime_scheduled is not None:
        waiting_on = racer2 if race.active_racer == 1 else racer1
        msg += scheduled_time(race, waiting_on)
        msg += (
            f"We are currently waiting on {waiting_on.username} "
            "to confirm that this time is good."
        )
    else:
        msg += "Please discuss the times that each of you are available to play this week.\n"
        msg += "You can suggest a time to your opponent with something like: `!time 6pm sat`\n"
        msg += "If they accept with `!timeok`, then the match will be officially scheduled."

    ctx.send(race.channel_id, msg)