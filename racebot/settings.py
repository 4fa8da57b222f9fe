"""Match configuration read from environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .records import TournamentType

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ConfigError(ValueError):
    """Raised when the match configuration is missing or malformed."""


@dataclass(frozen=True)
class MatchSettings:
    tournament_type: TournamentType
    num_character_bans: int
    num_build_bans: int
    num_character_vetos: int
    num_build_vetos: int


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name) or ""
    if not value:
        raise ConfigError(
            f'The "{name}" environment variable is blank. Set it in the ".env" file.'
        )
    return value


def _required_int(env: Mapping[str, str], name: str) -> int:
    value = _required(env, name)
    if not _INTEGER.fullmatch(value):
        raise ConfigError(f'The "{name}" environment variable is not a number.')
    return int(value)


def load_match_settings(env: Optional[Mapping[str, str]] = None) -> MatchSettings:
    """Read the tournament type and ban/veto counts from ``env`` (default: os.environ)."""
    if env is None:
        env = os.environ
    type_name = _required(env, "TOURNAMENT_TYPE")
    try:
        tournament_type = TournamentType(type_name)
    except ValueError:
        raise ConfigError(
            f'The "TOURNAMENT_TYPE" environment variable is set to "{type_name}", '
            "which is an invalid value."
        ) from None
    return MatchSettings(
        tournament_type=tournament_type,
        num_character_bans=_required_int(env, "NUM_CHARACTER_BANS"),
        num_build_bans=_required_int(env, "NUM_BUILD_BANS"),
        num_character_vetos=_required_int(env, "NUM_CHARACTER_VETOS"),
        num_build_vetos=_required_int(env, "NUM_BUILD_VETOS"),
    )