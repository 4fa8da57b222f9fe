"""Storage of users, races and casts in a SQL database."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from .records import Cast, Race, RaceState, User
from .util import join_list, split_list


class RecordNotFound(LookupError):
    """Raised when a query that must return a row returns none."""


def _to_db_datetime(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def _from_db_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _racer_column(racer_num: int, suffix: str) -> str:
    if racer_num not in (1, 2):
        raise ValueError(f"racer number must be 1 or 2, not {racer_num}")
    return f"racer{racer_num}_{suffix}"


class _Executor:
    """Runs statements on a DB-API connection, adapting the placeholder style."""

    def __init__(self, connection: Any, placeholder: str) -> None:
        self.connection = connection
        self.placeholder = placeholder

    def _sql(self, query: str) -> str:
        return query.replace("%s", self.placeholder)

    def execute(self, query: str, params: Sequence[Any] = ()) -> None:
        cursor = self.connection.cursor()
        try:
            cursor.execute(self._sql(query), tuple(params))
        finally:
            cursor.close()
        self.connection.commit()

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[tuple]:
        cursor = self.connection.cursor()
        try:
            cursor.execute(self._sql(query), tuple(params))
            return list(cursor.fetchall())
        finally:
            cursor.close()

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> tuple:
        rows = self.fetch_all(query, params)
        if not rows:
            raise RecordNotFound("no rows in result set")
        return rows[0]


_USER_COLUMNS = "discord_id, username, timezone, stream_url, caster_always_ok"


def _user_from_row(row: tuple) -> User:
    discord_id, username, tz, stream_url, caster_always_ok = row
    return User(
        discord_id=str(discord_id),
        username=username,
        timezone=tz,
        stream_url=stream_url,
        caster_always_ok=bool(caster_always_ok),
    )


class UserTable:
    """The tournament_users table."""

    def __init__(self, executor: _Executor) -> None:
        self._db = executor

    def exists(self, discord_id: str) -> bool:
        rows = self._db.fetch_all(
            "SELECT id FROM tournament_users WHERE discord_id = %s", (discord_id,)
        )
        return bool(rows)

    def insert(self, user: User) -> None:
        self._db.execute(
            "INSERT INTO tournament_users (discord_id, username) VALUES (%s, %s)",
            (user.discord_id, user.username),
        )

    def get_by_discord_id(self, discord_id: str) -> User:
        row = self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM tournament_users WHERE discord_id = %s",
            (discord_id,),
        )
        return _user_from_row(row)

    def get_by_id(self, user_id: int) -> User:
        row = self._db.fetch_one(
            f"SELECT {_USER_COLUMNS} FROM tournament_users WHERE id = %s", (user_id,)
        )
        return _user_from_row(row)

    def _set(self, column: str, discord_id: str, value: Any) -> None:
        self._db.execute(
            f"UPDATE tournament_users SET {column} = %s WHERE discord_id = %s",
            (value, discord_id),
        )

    def set_username(self, discord_id: str, username: str) -> None:
        self._set("username", discord_id, username)

    def set_timezone(self, discord_id: str, timezone: str) -> None:
        self._set("timezone", discord_id, timezone)

    def set_stream_url(self, discord_id: str, stream_url: str) -> None:
        self._set("stream_url", discord_id, stream_url)

    def set_caster_always_ok(self, discord_id: str, ok: bool) -> None:
        self._set("caster_always_ok", discord_id, 1 if ok else 0)


class RaceTable:
    """The tournament_races table."""

    def __init__(self, executor: _Executor) -> None:
        self._db = executor

    def insert(self, racer1_discord_id: str, racer2_discord_id: str, race: Race) -> None:
        self._db.execute(
            """
            INSERT INTO tournament_races (
                tournament_name, racer1, racer1_challonge_id, racer2, racer2_challonge_id,
                channel_id, channel_name, challonge_url, challonge_match_id, bracket_round,
                state, characters_remaining, builds_remaining,
                racer1_bans, racer2_bans, racer1_vetos, racer2_vetos
            ) VALUES (
                %s,
                (SELECT id FROM tournament_users WHERE discord_id = %s),
                %s,
                (SELECT id FROM tournament_users WHERE discord_id = %s),
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
            )
            """,
            (
                race.tournament_name,
                racer1_discord_id,
                race.racer1_challonge_id,
                racer2_discord_id,
                race.racer2_challonge_id,
                race.channel_id,
                race.channel_name,
                race.challonge_url,
                race.challonge_match_id,
                race.bracket_round,
                RaceState(race.state).value,
                join_list(race.characters_remaining),
                join_list(race.builds_remaining),
                race.racer1_bans,
                race.racer2_bans,
                race.racer1_vetos,
                race.racer2_vetos,
            ),
        )

    def delete(self, channel_id: str) -> None:
        self._db.execute("DELETE FROM tournament_races WHERE channel_id = %s", (channel_id,))

    def get(self, channel_id: str) -> Race:
        row = self._db.fetch_one(
            """
            SELECT
                tournament_name, racer1, racer2, channel_id, channel_name,
                challonge_url, challonge_match_id, bracket_round, state,
                datetime_scheduled, first_picker, active_racer,
                characters_remaining, characters, builds_remaining, builds,
                racer1_bans, racer2_bans, racer1_vetos, racer2_vetos, num_voted
            FROM tournament_races
            WHERE channel_id = %s
            """,
            (channel_id,),
        )
        (
            tournament_name, racer1, racer2, channel, channel_name,
            challonge_url, challonge_match_id, bracket_round, state,
            scheduled, first_picker, active_racer,
            characters_remaining, characters, builds_remaining, builds,
            racer1_bans, racer2_bans, racer1_vetos, racer2_vetos, num_voted,
        ) = row
        return Race(
            tournament_name=tournament_name,
            racer1_id=int(racer1),
            racer2_id=int(racer2),
            channel_id=str(channel),
            channel_name=channel_name,
            challonge_url=challonge_url,
            challonge_match_id=str(challonge_match_id),
            bracket_round=str(bracket_round),
            state=RaceState(state),
            datetime_scheduled=_from_db_datetime(scheduled),
            first_picker=int(first_picker or 0),
            active_racer=int(active_racer or 0),
            characters_remaining=split_list(characters_remaining or ""),
            characters=split_list(characters or ""),
            builds_remaining=split_list(builds_remaining or ""),
            builds=split_list(builds or ""),
            racer1_bans=int(racer1_bans or 0),
            racer2_bans=int(racer2_bans or 0),
            racer1_vetos=int(racer1_vetos or 0),
            racer2_vetos=int(racer2_vetos or 0),
            num_voted=int(num_voted or 0),
        )

    def all_scheduled(self) -> list[str]:
        """Channel IDs of scheduled races that have a time, soonest first."""
        rows = self._db.fetch_all(
            """
            SELECT channel_id FROM tournament_races
            WHERE state = 'scheduled' AND datetime_scheduled IS NOT NULL
            ORDER BY datetime_scheduled ASC
            """
        )
        return [str(row[0]) for row in rows]

    def next_scheduled(self, now: datetime) -> str:
        """Channel ID of the next scheduled race after ``now``."""
        row = self._db.fetch_one(
            """
            SELECT channel_id FROM tournament_races
            WHERE state = 'scheduled' AND datetime_scheduled > %s
            ORDER BY datetime_scheduled ASC
            LIMIT 1
            """,
            (_to_db_datetime(now),),
        )
        return str(row[0])

    def _set(self, column: str, channel_id: str, value: Any) -> None:
        self._db.execute(
            f"UPDATE tournament_races SET {column} = %s WHERE channel_id = %s",
            (value, channel_id),
        )

    def set_state(self, channel_id: str, state: RaceState) -> None:
        self._set("state", channel_id, RaceState(state).value)

    def set_datetime_scheduled(
        self, channel_id: str, when: datetime, active_racer: int
    ) -> None:
        """Store a suggested time; ``active_racer`` is the racer who suggested it."""
        self._db.execute(
            "UPDATE tournament_races SET datetime_scheduled = %s, active_racer = %s "
            "WHERE channel_id = %s",
            (_to_db_datetime(when), active_racer, channel_id),
        )

    def unset_datetime_scheduled(self, channel_id: str) -> None:
        self._db.execute(
            "UPDATE tournament_races SET datetime_scheduled = NULL WHERE channel_id = %s",
            (channel_id,),
        )

    def set_active_racer(self, channel_id: str, active_racer: int) -> None:
        self._set("active_racer", channel_id, active_racer)

    def set_characters_remaining(self, channel_id: str, characters: Sequence[str]) -> None:
        self._set("characters_remaining", channel_id, join_list(characters))

    def set_characters(self, channel_id: str, characters: Sequence[str]) -> None:
        self._set("characters", channel_id, join_list(characters))

    def set_builds_remaining(self, channel_id: str, builds: Sequence[str]) -> None:
        self._set("builds_remaining", channel_id, join_list(builds))

    def set_builds(self, channel_id: str, builds: Sequence[str]) -> None:
        self._set("builds", channel_id, join_list(builds))

    def set_bans(self, channel_id: str, racer_num: int, bans: int) -> None:
        self._set(_racer_column(racer_num, "bans"), channel_id, bans)

    def set_vetos(self, channel_id: str, racer_num: int, vetos: int) -> None:
        self._set(_racer_column(racer_num, "vetos"), channel_id, vetos)

    def set_num_voted(self, channel_id: str, num_voted: int) -> None:
        self._set("num_voted", channel_id, num_voted)

    def set_score(self, channel_id: str, score: str) -> None:
        self._set("score", channel_id, score)

    def set_first_picker(self, channel_id: str, first_picker: int) -> None:
        self._set("first_picker", channel_id, first_picker)


class CastTable:
    """The tournament_casts table."""

    def __init__(self, executor: _Executor) -> None:
        self._db = executor

    def insert(self, channel_id: str, caster_discord_id: str, language: str) -> None:
        self._db.execute(
            """
            INSERT INTO tournament_casts (race_id, caster, language) VALUES (
                (SELECT id FROM tournament_races WHERE channel_id = %s),
                (SELECT id FROM tournament_users WHERE discord_id = %s),
                %s
            )
            """,
            (channel_id, caster_discord_id, language),
        )

    def delete(self, channel_id: str, caster_discord_id: str) -> None:
        self._db.execute(
            """
            DELETE FROM tournament_casts
            WHERE race_id = (SELECT id FROM tournament_races WHERE channel_id = %s)
              AND caster = (SELECT id FROM tournament_users WHERE discord_id = %s)
            """,
            (channel_id, caster_discord_id),
        )

    def get_all(self, channel_id: str) -> list[Cast]:
        rows = self._db.fetch_all(
            """
            SELECT caster, r1_permission, r2_permission, language
            FROM tournament_casts
            WHERE race_id = (SELECT id FROM tournament_races WHERE channel_id = %s)
            """,
            (channel_id,),
        )
        return [
            Cast(
                caster_id=int(caster),
                r1_permission=bool(r1),
                r2_permission=bool(r2),
                language=language,
            )
            for caster, r1, r2, language in rows
        ]

    def set_permission(self, channel_id: str, caster_discord_id: str, racer_num: int) -> None:
        column = _racer_column(racer_num, "permission").replace("racer", "r", 1)
        self._db.execute(
            f"""
            UPDATE tournament_casts SET {column} = 1
            WHERE race_id = (SELECT id FROM tournament_races WHERE channel_id = %s)
              AND caster = (SELECT id FROM tournament_users WHERE discord_id = %s)
            """,
            (channel_id, caster_discord_id),
        )


class Database:
    """All tables of the bot's database over one DB-API connection."""

    def __init__(self, connection: Any, placeholder: str = "%s") -> None:
        self.connection = connection
        executor = _Executor(connection, placeholder)
        self.users = UserTable(executor)
        self.races = RaceTable(executor)
        self.casts = CastTable(executor)

    def get_race(self, channel_id: str) -> Race:
        """Load a race together with its racers and casters."""
        race = self.races.get(channel_id)
        race.racer1 = self.users.get_by_id(race.racer1_id)
        race.racer2 = self.users.get_by_id(race.racer2_id)
        race.casts = self.casts.get_all(race.channel_id)
        for cast in race.casts:
            cast.caster = self.users.get_by_id(cast.caster_id)
        return race

    def close(self) -> None:
        self.connection.close()


def connect_from_env(env: Optional[Mapping[str, str]] = None) -> Database:
    """Open a MySQL connection configured by DB_* environment variables."""
    if env is None:
        env = os.environ
    host = env.get("DB_HOST") or "localhost"
    port = env.get("DB_PORT") or "3306"
    user = env.get("DB_USER") or ""
    if not user:
        raise ValueError(
            'the "DB_USER" environment variable is blank; set it in the ".env" file'
        )
    password = env.get("DB_PASS") or ""
    if not password:
        raise ValueError(
            'the "DB_PASS" environment variable is blank; set it in the ".env" file'
        )
    name = env.get("DB_NAME") or ""
    if not name:
        raise ValueError(
            'the "DB_NAME" environment variable is blank; set it in the ".env" file'
        )

    import pymysql

    connection = pymysql.connect(
        host=host, port=int(port), user=user, password=password, database=name
    )
    return Database(connection)