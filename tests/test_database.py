import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from racebot.database import Database, RecordNotFound, connect_from_env
from racebot.records import Race, RaceState, User

SCHEMA = """
CREATE TABLE tournament_users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    discord_id TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL,
    timezone TEXT,
    stream_url TEXT,
    caster_always_ok INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE tournament_races (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_name TEXT NOT NULL,
    racer1 INTEGER NOT NULL,
    racer1_challonge_id REAL,
    racer2 INTEGER NOT NULL,
    racer2_challonge_id REAL,
    channel_id TEXT NOT NULL UNIQUE,
    channel_name TEXT NOT NULL,
    challonge_url TEXT NOT NULL,
    challonge_match_id TEXT NOT NULL,
    bracket_round TEXT NOT NULL,
    state TEXT NOT NULL,
    datetime_scheduled TEXT,
    first_picker INTEGER NOT NULL DEFAULT 0,
    active_racer INTEGER NOT NULL DEFAULT 0,
    characters_remaining TEXT NOT NULL DEFAULT '',
    characters TEXT NOT NULL DEFAULT '',
    builds_remaining TEXT NOT NULL DEFAULT '',
    builds TEXT NOT NULL DEFAULT '',
    racer1_bans INTEGER NOT NULL DEFAULT 0,
    racer2_bans INTEGER NOT NULL DEFAULT 0,
    racer1_vetos INTEGER NOT NULL DEFAULT 0,
    racer2_vetos INTEGER NOT NULL DEFAULT 0,
    num_voted INTEGER NOT NULL DEFAULT 0,
    score TEXT
);
CREATE TABLE tournament_casts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    race_id INTEGER,
    caster INTEGER,
    r1_permission INTEGER NOT NULL DEFAULT 0,
    r2_permission INTEGER NOT NULL DEFAULT 0,
    language TEXT NOT NULL
);
"""


@pytest.fixture
def db():
    connection = sqlite3.connect(":memory:")
    connection.executescript(SCHEMA)
    database = Database(connection, placeholder="?")
    yield database
    connection.close()


def _add_race(db, channel_id="chan1", state=RaceState.INITIAL):
    for discord_id, name in (("d1", "alice"), ("d2", "bob")):
        if not db.users.exists(discord_id):
            db.users.insert(User(discord_id=discord_id, username=name))
    race = Race(
        tournament_name="Cup",
        racer1_challonge_id=11.0,
        racer2_challonge_id=22.0,
        channel_id=channel_id,
        channel_name="alice-vs-bob",
        challonge_url="cup",
        challonge_match_id="m1",
        bracket_round="1",
        state=state,
        characters_remaining=["Isaac", "Eve", "Cain"],
        builds_remaining=["B1", "B2"],
    )
    db.races.insert("d1", "d2", race)
    return race


def test_user_insert_exists_and_get(db):
    assert not db.users.exists("d1")
    db.users.insert(User(discord_id="d1", username="alice"))
    assert db.users.exists("d1")
    user = db.users.get_by_discord_id("d1")
    assert user == User(discord_id="d1", username="alice")


def test_user_missing_raises(db):
    with pytest.raises(RecordNotFound):
        db.users.get_by_discord_id("nobody")
    with pytest.raises(RecordNotFound):
        db.users.get_by_id(999)


def test_user_setters_round_trip(db):
    db.users.insert(User(discord_id="d1", username="alice"))
    db.users.set_username("d1", "alicia")
    db.users.set_timezone("d1", "Europe/Paris")
    db.users.set_stream_url("d1", "https://www.twitch.tv/alicia")
    db.users.set_caster_always_ok("d1", True)
    user = db.users.get_by_discord_id("d1")
    assert user.username == "alicia"
    assert user.timezone == "Europe/Paris"
    assert user.stream_url == "https://www.twitch.tv/alicia"
    assert user.caster_always_ok is True


def test_race_insert_and_get_round_trip(db):
    original = _add_race(db)
    race = db.races.get("chan1")
    assert race.tournament_name == original.tournament_name
    assert race.channel_name == original.channel_name
    assert race.state is RaceState.INITIAL
    assert race.characters_remaining == original.characters_remaining
    assert race.builds_remaining == original.builds_remaining
    assert race.characters == []
    assert race.datetime_scheduled is None
    assert race.racer1_id == db.users.get_by_discord_id("d1") and True
    assert db.users.get_by_id(race.racer1_id).username == "alice"


def test_race_missing_raises(db):
    with pytest.raises(RecordNotFound):
        db.races.get("nope")


def test_race_setters_round_trip(db):
    _add_race(db)
    db.races.set_state("chan1", RaceState.SCHEDULED)
    db.races.set_active_racer("chan1", 2)
    db.races.set_first_picker("chan1", 1)
    db.races.set_characters("chan1", ["Isaac"])
    db.races.set_characters_remaining("chan1", ["Eve", "Cain"])
    db.races.set_builds("chan1", ["B1"])
    db.races.set_builds_remaining("chan1", [])
    db.races.set_bans("chan1", 1, 2)
    db.races.set_vetos("chan1", 2, 3)
    db.races.set_num_voted("chan1", 1)
    race = db.races.get("chan1")
    assert race.state is RaceState.SCHEDULED
    assert race.active_racer == 2
    assert race.first_picker == 1
    assert race.characters == ["Isaac"]
    assert race.characters_remaining == ["Eve", "Cain"]
    assert race.builds == ["B1"]
    assert race.builds_remaining == []
    assert (race.racer1_bans, race.racer2_vetos) == (2, 3)
    assert race.num_voted == 1


def test_set_score_stored(db):
    _add_race(db)
    db.races.set_score("chan1", "3-2")
    row = db.connection.execute(
        "SELECT score FROM tournament_races WHERE channel_id = 'chan1'"
    ).fetchone()
    assert row[0] == "3-2"


def test_invalid_racer_number(db):
    _add_race(db)
    with pytest.raises(ValueError):
        db.races.set_bans("chan1", 3, 1)
    with pytest.raises(ValueError):
        db.casts.set_permission("chan1", "d1", 0)


def test_datetime_scheduled_round_trip(db):
    _add_race(db)
    when = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    db.races.set_datetime_scheduled("chan1", when, 1)
    race = db.races.get("chan1")
    assert race.datetime_scheduled == when
    assert race.active_racer == 1
    db.races.unset_datetime_scheduled("chan1")
    assert db.races.get("chan1").datetime_scheduled is None


def test_scheduled_queries_order(db):
    _add_race(db, "late", RaceState.SCHEDULED)
    _add_race(db, "early", RaceState.SCHEDULED)
    _add_race(db, "open", RaceState.INITIAL)
    base = datetime(2030, 5, 1, tzinfo=timezone.utc)
    db.races.set_datetime_scheduled("late", base + timedelta(days=2), 1)
    db.races.set_datetime_scheduled("early", base + timedelta(days=1), 1)
    db.races.set_datetime_scheduled("open", base, 1)
    assert db.races.all_scheduled() == ["early", "late"]
    assert db.races.next_scheduled(base) == "early"
    assert db.races.next_scheduled(base + timedelta(days=1, hours=1)) == "late"
    with pytest.raises(RecordNotFound):
        db.races.next_scheduled(base + timedelta(days=3))


def test_race_delete(db):
    _add_race(db)
    db.races.delete("chan1")
    with pytest.raises(RecordNotFound):
        db.races.get("chan1")


def test_casts_lifecycle(db):
    _add_race(db)
    db.users.insert(User(discord_id="c1", username="caster"))
    db.casts.insert("chan1", "c1", "fr")
    casts = db.casts.get_all("chan1")
    assert len(casts) == 1
    assert casts[0].language == "fr"
    assert (casts[0].r1_permission, casts[0].r2_permission) == (False, False)
    db.casts.set_permission("chan1", "c1", 2)
    assert db.casts.get_all("chan1")[0].r2_permission is True
    assert db.casts.get_all("chan1")[0].r1_permission is False
    db.casts.delete("chan1", "c1")
    assert db.casts.get_all("chan1") == []


def test_get_race_fills_racers_and_casters(db):
    _add_race(db)
    db.users.insert(User(discord_id="c1", username="caster"))
    db.casts.insert("chan1", "c1", "en")
    race = db.get_race("chan1")
    assert race.racer1.username == "alice"
    assert race.racer2.username == "bob"
    assert race.name() == "alice-vs-bob"
    assert [cast.caster.discord_id for cast in race.casts] == ["c1"]


def test_close_closes_connection(db):
    db.close()
    with pytest.raises(sqlite3.ProgrammingError):
        db.connection.execute("SELECT 1")


@pytest.mark.parametrize(
    "env, missing",
    [
        ({"DB_PASS": "password", "DB_NAME": "db"}, "DB_USER"),
        ({"DB_USER": "user", "DB_NAME": "db"}, "DB_PASS"),
        ({"DB_USER": "user", "DB_PASS": "password"}, "DB_NAME"),
    ],
)
def test_connect_from_env_requires_settings(env, missing):
    with pytest.raises(ValueError, match=missing):
        connect_from_env(env)