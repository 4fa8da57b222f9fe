# racebot

`racebot` holds the command handlers, message texts and storage for a chat
bot that runs head-to-head tournament races. Each match has its own
channel. In that channel the two racers set their timezones and stream
links and agree on a start time. A MySQL/MariaDB database keeps the
users, races and casters.

## Commands

`racebot.dispatch.handle_message(ctx, message)` reacts to one incoming
message. It handles these commands, and the command name is not
case-sensitive:

| Command | Handler | What it does |
| --- | --- | --- |
| `!time [date & time]` | `scheduling.command_time` | Suggests a start time. Without arguments it shows the current proposal. `!time ok` is treated as `!timeok`. |
| `!timeok` | `scheduling.command_time_ok` | The other racer accepts the suggested time, and the race becomes `scheduled`. |
| `!timedelete` | `scheduling.command_time_delete` | Clears an agreed time, and the race goes back to `initial`. |
| `!status` | `scheduling.command_status` | Reports the timezones, streams and schedule of the race in this channel. |
| `!stream [url]` | `profile.command_stream` | Sets the author's stream URL, or shows the current one. |
| `!timezone [timezone]` | `profile.command_timezone` | Sets the author's IANA timezone, or shows the current one. |
| `!settimezone [username] [timezone]` | `profile.command_set_timezone` | Lets an admin set another member's timezone. |

An unknown `!command` gets the reply "That is not a valid command.".
`handle_message` also ignores the bot's own messages and answers when the
bot is mentioned. For both of these it needs the client to have a
`user_id` attribute. Only one command handler runs at a time.

## Useful functions

- `racebot.parse_command`-style splitting: `dispatch.parse_command("!Time 6pm sat")`
  returns `("time", ["6pm", "sat"])`. For a message that is not a command
  it returns `None`.
- `scheduling.parse_time(text, timezone, now)` reads a time that a racer
  typed in their own zone and returns it in UTC.
  `scheduling.alert_delay(race, now)` returns how long to wait before the
  five-minute warning.
- `profile.normalize_stream_url(url)` lower-cases the URL, fills in a
  Twitch address that was typed short, and raises `ValueError` if the
  result is not a full URL. `profile.timezone_choices("EST")` lists the
  named zones that use that abbreviation.
- `racebot.formatting` builds message texts. Examples are timezone
  labels such as `` `America/New_York (EST / GMT-5)` ``, dates such as
  `Saturday, March 3rd @ 6:00 PM (EST)`, the count of bans and picks
  left, the two-column list of characters or builds still available, the
  match description, the start alert and the match summary.
- `racebot.util` has the comma-list encoding used in the database
  (`join_list`, `split_list`), `float_to_string`, `random_int`,
  `random_element` and `language_name`.

## Storage

`racebot.database.Database` wraps a DB-API connection and provides
`users` (`UserTable`), `races` (`RaceTable`) and `casts` (`CastTable`).
`Database.get_race(channel_id)` loads a race together with its racers and
casters. A lookup that finds no row raises `RecordNotFound`.

`connect_from_env(env)` opens a MySQL connection with PyMySQL. It is
configured by these variables:

| Variable | Meaning |
| --- | --- |
| `DB_HOST` | database host, default `localhost` |
| `DB_PORT` | database port, default `3306` |
| `DB_USER`, `DB_PASS`, `DB_NAME` | credentials and schema, all required |

`racebot.settings.load_match_settings(env)` reads `TOURNAMENT_TYPE`
(`banPick` or `veto`) and the counts `NUM_CHARACTER_BANS`,
`NUM_BUILD_BANS`, `NUM_CHARACTER_VETOS` and `NUM_BUILD_VETOS`. It returns
a `MatchSettings`. If a value is blank or invalid, it raises
`ConfigError`.

## Wiring it up

The chat connection comes from outside the package. Any object that has
the methods of `racebot.chat.ChatClient` will do: `send_message`,
`user_guilds`, `guild_members`, `guild_member`, `guild_roles`,
`guild_channels` and `channel`.

```python
import os

from racebot.chat import Message
from racebot.context import BotContext, resolve_guild_config
from racebot.database import connect_from_env
from racebot.dispatch import handle_message

client = ...  # your ChatClient implementation
db = connect_from_env(os.environ)

guilds = client.user_guilds()
guild_id = next(g.id for g in guilds if g.name == "My Server")
config = resolve_guild_config(
    "My Server", guilds, client.guild_roles(guild_id), client.guild_channels(guild_id)
)
ctx = BotContext(client=client, db=db, guild=config)

# call for every message the client receives:
handle_message(ctx, Message(channel_id="1", author=some_user, content="!status"))
```

`resolve_guild_config` needs the roles `Admin`, `Bot`, `Caster` and
`@everyone` and a channel named `matches`. If any of these is missing, it
raises `LookupFailed`.

## What the package does not do

- It has no connection to a chat service and no program to start. You
  provide the client and the event loop.
- It does not create race channels or read tournament brackets. The
  races must already be in the database.
- It does not wake up at match time. `BotContext.on_time_confirmed` is
  called when a time is agreed, and `alert_delay` says how long to wait.
  The timer and the start announcement are left to the caller.
- It has no commands for the ban, pick or veto phases. Only their
  message texts are in `racebot.formatting`.