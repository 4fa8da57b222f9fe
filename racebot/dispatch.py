"""Routing of incoming chat messages to command handlers."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

from .chat import Message
from .context import BotContext
from .profile import command_set_timezone, command_stream, command_timezone
from .scheduling import command_status, command_time, command_time_delete, command_time_ok

log = logging.getLogger(__name__)

Handler = Callable[[BotContext, Message, Sequence[str]], None]

COMMANDS: dict[str, Handler] = {
    "time": command_time,
    "timeok": command_time_ok,
    "timedelete": command_time_delete,
    "status": command_status,
    "stream": command_stream,
    "timezone": command_timezone,
    "settimezone": command_set_timezone,
}

# Commands run one at a time so that reads and writes of a race do not interleave.
_command_lock = threading.Lock()


def parse_command(content: str) -> Optional[tuple[str, list[str]]]:
    """Split ``!name arg ...`` into a lower-cased name and its arguments.

    Returns None when the message is not a command.
    """
    head, *args = content.split(" ")
    if not head.startswith("!"):
        return None
    return head[1:].lower(), args


def handle_message(ctx: BotContext, message: Message) -> None:
    """React to one message.

    The chat client's ``user_id``, when it has one, identifies the bot's own account.
    """
    try:
        channel_name = ctx.client.channel(message.channel_id).name
    except Exception as err:
        log.error('Failed to get the channel name for the channel ID of "%s": %s',
                  message.channel_id, err)
        channel_name = ""
    author = message.author
    log.info("[#%s] <%s#%s> %s", channel_name, author.username, author.discriminator,
             message.content)

    bot_id = getattr(ctx.client, "user_id", "") or ""
    if bot_id and author.id == bot_id:
        return

    content = message.content
    if bot_id and (f"<@{bot_id}>" in content or f"<@!{bot_id}>" in content):
        ctx.send(message.channel_id, "ping me again\nI DARE YOU")
        return

    if content.lower() == "hello willy":
        ctx.send(message.channel_id, "hello buttface, idgaf")
        return

    parsed = parse_command(content)
    if parsed is None:
        return
    name, args = parsed

    handler = COMMANDS.get(name)
    if handler is None:
        ctx.send(message.channel_id, "That is not a valid command.")
        return

    with _command_lock:
        handler(ctx, message, args)