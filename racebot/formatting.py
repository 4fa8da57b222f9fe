"""Text of the messages the bot posts about timezones, schedules and matches."""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone, tzinfo
from typing import Optional

import humanize

from .records import Race, RaceState, Ruleset, User
from .util import language_name

_DAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)

_CHARACTER_STATES = (RaceState.BANNING_CHARACTERS, RaceState.PICKING_CHARACTERS)
_BUILD_STATES = (RaceState.BANNING_BUILDS, RaceState.PICKING_BUILDS)


def _zone(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return dt_timezone.utc
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone: {name}") from None


def _local(moment: datetime, name: str) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)
    return moment.astimezone(_zone(name))


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(dt_timezone.utc)


def timezone_abbreviation(timezone: str, now: Optional[datetime] = None) -> str:
    """Short name of ``timezone`` in effect at ``now`` (default: the current time)."""
    return _local(_now(now), timezone).tzname() or ""


def timezone_gmt(timezone: str, now: Optional[datetime] = None) -> str:
    """Whole-hour offset from GMT, e.g. ``GMT+2``; partial hours are truncated."""
    offset = _local(_now(now), timezone).utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    hours = int(seconds / 3600)
    sign = "+" if seconds >= 0 else ""
    return f"GMT{sign}{hours}"


def timezone_label(timezone: str, now: Optional[datetime] = None) -> str:
    short = timezone_abbreviation(timezone, now)
    gmt = timezone_gmt(timezone, now)
    return f"`{timezone} ({short} / {gmt})`"


def format_date(moment: datetime, timezone: str) -> str:
    """Render a moment in a racer's timezone, e.g. ``Monday, January 1st @ 3:04 PM (UTC)``."""
    local = _local(moment, timezone)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    date_text = (
        f"{_DAY_NAMES[local.weekday()]}, {_MONTH_NAMES[local.month - 1]} "
        f"{humanize.ordinal(local.day)}"
    )
    time_text = f"{hour}:{local.minute:02d} {meridiem}"
    return f"{date_text} @ {time_text} ({timezone_abbreviation(timezone)})"


def _plural(count: int, word: str) -> str:
    return word if count == 1 else word + "s"


def bans_remaining(race: Race) -> str:
    left = race.racer1_bans + race.racer2_bans
    return f"**{left} {_plural(left, 'ban')} to go.**\n"


def picks_remaining(race: Race, best_of: int) -> str:
    if race.state in _CHARACTER_STATES:
        chosen = race.characters
    elif race.state in _BUILD_STATES:
        chosen = race.builds
    else:
        raise ValueError(f"no picks are made in race state {race.state.value!r}")
    left = best_of - len(chosen)
    return f"**{left} {_plural(left, 'pick')} to go.**\n"


def remaining_things(race: Race) -> str:
    """List the remaining characters or builds, numbered, in two columns."""
    if race.state in _CHARACTER_STATES:
        thing, remaining = "characters", race.characters_remaining
    elif race.state in _BUILD_STATES:
        thing, remaining = "builds", race.builds_remaining
    else:
        raise ValueError(f"nothing is remaining in race state {race.state.value!r}")
    if not remaining:
        raise ValueError(f"there are no {thing} remaining")

    numbered = [f"{number} - {name}" for number, name in enumerate(remaining, start=1)]
    split = (len(numbered) - 1) // 2 + 1
    first, second = numbered[:split], numbered[split:]
    width = max(len(line) for line in first) + 6  # at least 6 spaces between columns
    lines = [line.ljust(width) for line in first]
    for row, line in enumerate(second):
        lines[row] += line

    body = "".join(line + "\n" for line in lines)
    return f"Current {thing} remaining:\n\n```\n{body}```"


def next_message(race: Race) -> str:
    racer = {1: race.racer1, 2: race.racer2}.get(race.active_racer)
    mention = racer.mention() if racer is not None else ""
    return f"{mention}, you're next!\n\n"


def scheduled_time(race: Race, user: User) -> str:
    if race.datetime_scheduled is None:
        return "This match is not scheduled yet."
    verb = "proposed" if race.state == RaceState.INITIAL else "currently scheduled"
    when = format_date(race.datetime_scheduled, user.timezone_or_utc())
    return f"The {verb} time for the match is: *{when}*\n"


def schedule_message(race: Race, user: User) -> str:
    msg = scheduled_time(race, user)
    if race.state != RaceState.INITIAL:
        msg += "Both racers have agreed to this time.\n"
        msg += "To delete this time and start over, use the `!timedelete` command."
    else:
        msg += "You can suggest a new time with: `!time [date & time]`\n"
        msg += "e.g. `!time 6pm sat`"
    return msg


def _caster_stream(cast) -> str:
    return (cast.caster.stream_url if cast.caster is not None else None) or ""


def _caster_username(cast) -> str:
    return cast.caster.username if cast.caster is not None else ""


def _caster_mention(cast) -> str:
    return cast.caster.mention() if cast.caster is not None else ""


def match_description(race: Race) -> str:
    # The code block keeps underscores in usernames from being read as formatting.
    msg = f"```\n{race.tournament_name}\n{race.name()}\n```\n"
    approved = [c for c in race.casts if c.r1_permission and c.r2_permission]
    for cast in approved:
        msg += (
            f"`{_caster_username(cast)}` has volunteered to cast the match in "
            f"{language_name(cast.language)} at:\n<{_caster_stream(cast)}>\n"
        )
    if not approved:
        racer1 = race.racer1.username if race.racer1 is not None else ""
        racer2 = race.racer2.username if race.racer2 is not None else ""
        msg += "No-one has volunteered to cast this match. You can watch both racers here:\n"
        msg += f"<https://kadgar.net/live/{racer1}/{racer2}>"
    return msg


def beginning_alert(race: Race) -> str:
    msg = (
        f"{race.racer1.mention()} and {race.racer2.mention()}"
        " - the race is scheduled to start in 5 minutes.\n\n"
    )
    for cast in race.casts:
        msg += (
            f"{_caster_mention(cast)}, you are scheduled to cast this match in "
            f"{language_name(cast.language)} in 5 minutes at: <{_caster_stream(cast)}>\n\n"
        )
    return msg


def match_summary(race: Race, best_of: int, ruleset: Ruleset, intro: str = "") -> str:
    """The summary posted once all characters (and builds) have been chosen."""
    seeded = ruleset == Ruleset.SEEDED
    msg = intro
    msg += "```\n+---------------+\n| Match Summary |\n+---------------+\n```\n\n"
    msg += f"**Racer 1: **{race.racer1.mention()} - <{race.racer1.stream_url or ''}>\n"
    msg += f"**Racer 2: **{race.racer2.mention()} - <{race.racer2.stream_url or ''}>\n"
    for cast in race.casts:
        msg += (
            f"**{language_name(cast.language)} Caster:** {_caster_mention(cast)}"
            f" - <{_caster_stream(cast)}>\n"
        )
    msg += "\n"

    for number in range(1, best_of + 1):
        msg += f"**Round {number}**:\n"
        msg += f"- Character: *{race.characters[number - 1]}*\n"
        if seeded:
            msg += f"- Build: *{race.builds[number - 1]}*\n"
        msg += "\n"

    msg += "If I made a mistake, you can use `!randchar` "
    if seeded:
        msg += "or `!randbuild` "
    msg += "to manually get random characters"
    if seeded:
        msg += " and builds"
    msg += ".\n"
    msg += "When the race is over, please use the `!score [score]` command to report the results.\n"
    msg += "e.g. `!score 3-2`\n\n"
    msg += "Good luck and have fun!"
    return msg