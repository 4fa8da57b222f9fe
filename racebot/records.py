"""Domain records: races, racers, casts and the enumerations that describe them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class RaceState(str, Enum):
    """Lifecycle of a race."""

    INITIAL = "initial"
    SCHEDULED = "scheduled"
    VETO_CHARACTERS = "vetoCharacters"
    BANNING_CHARACTERS = "banningCharacters"
    PICKING_CHARACTERS = "pickingCharacters"
    BANNING_BUILDS = "banningBuilds"
    PICKING_BUILDS = "pickingBuilds"
    VETO_BUILDS = "vetoBuilds"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


class Ruleset(str, Enum):
    SEEDED = "seeded"
    UNSEEDED = "unseeded"
    TEAM = "team"


class TournamentType(str, Enum):
    BAN_PICK = "banPick"
    VETO = "veto"


@dataclass
class User:
    """A racer or caster as stored in the database."""

    discord_id: str
    username: str
    timezone: Optional[str] = None
    stream_url: Optional[str] = None
    caster_always_ok: bool = False

    def mention(self) -> str:
        return f"<@{self.discord_id}>"

    def timezone_or_utc(self) -> str:
        return self.timezone if self.timezone is not None else "UTC"


@dataclass
class Cast:
    """A caster's offer to cast a race."""

    caster_id: int
    r1_permission: bool = False
    r2_permission: bool = False
    language: str = ""
    caster: Optional[User] = None


@dataclass
class Race:
    """A match between two racers, held in its own chat channel."""

    tournament_name: str = ""
    racer1_id: int = 0
    racer1_challonge_id: float = 0.0
    racer1: Optional[User] = None
    racer2_id: int = 0
    racer2_challonge_id: float = 0.0
    racer2: Optional[User] = None
    channel_id: str = ""
    channel_name: str = ""
    challonge_url: str = ""
    challonge_match_id: str = ""
    bracket_round: str = ""
    state: RaceState = RaceState.INITIAL
    datetime_scheduled: Optional[datetime] = None
    first_picker: int = 0
    active_racer: int = 0
    characters_remaining: list[str] = field(default_factory=list)
    characters: list[str] = field(default_factory=list)
    builds_remaining: list[str] = field(default_factory=list)
    builds: list[str] = field(default_factory=list)
    racer1_bans: int = 0
    racer2_bans: int = 0
    racer1_vetos: int = 0
    racer2_vetos: int = 0
    num_voted: int = 0
    casts: list[Cast] = field(default_factory=list)

    def name(self) -> str:
        if self.racer1 is None or self.racer2 is None:
            return "unknown"
        return f"{self.racer1.username}-vs-{self.racer2.username}"