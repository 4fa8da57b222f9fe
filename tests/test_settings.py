import pytest

from racebot.records import TournamentType
from racebot.settings import ConfigError, load_match_settings


@pytest.fixture
def env():
    return {
        "TOURNAMENT_TYPE": "veto",
        "NUM_CHARACTER_BANS": "2",
        "NUM_BUILD_BANS": "1",
        "NUM_CHARACTER_VETOS": "3",
        "NUM_BUILD_VETOS": "4",
    }


def test_loads_all_values(env):
    settings = load_match_settings(env)
    assert settings.tournament_type is TournamentType.VETO
    assert settings.num_character_bans == 2
    assert settings.num_build_bans == 1
    assert settings.num_character_vetos == 3
    assert settings.num_build_vetos == 4


def test_ban_pick_type(env):
    env["TOURNAMENT_TYPE"] = "banPick"
    assert load_match_settings(env).tournament_type is TournamentType.BAN_PICK


@pytest.mark.parametrize(
    "name",
    [
        "TOURNAMENT_TYPE",
        "NUM_CHARACTER_BANS",
        "NUM_BUILD_BANS",
        "NUM_CHARACTER_VETOS",
        "NUM_BUILD_VETOS",
    ],
)
def test_blank_value_is_an_error(env, name):
    env[name] = ""
    with pytest.raises(ConfigError, match=f'"{name}" environment variable is blank'):
        load_match_settings(env)


def test_missing_value_is_an_error(env):
    del env["NUM_BUILD_VETOS"]
    with pytest.raises(ConfigError, match="NUM_BUILD_VETOS"):
        load_match_settings(env)


def test_invalid_tournament_type(env):
    env["TOURNAMENT_TYPE"] = "swiss"
    with pytest.raises(ConfigError, match="which is an invalid value"):
        load_match_settings(env)


@pytest.mark.parametrize("bad", ["two", "1.5", " 3", "3x"])
def test_non_number_is_an_error(env, bad):
    env["NUM_CHARACTER_BANS"] = bad
    with pytest.raises(ConfigError, match="is not a number"):
        load_match_settings(env)


def test_signed_numbers_are_accepted(env):
    env["NUM_BUILD_BANS"] = "-1"
    env["NUM_BUILD_VETOS"] = "+5"
    settings = load_match_settings(env)
    assert settings.num_build_bans == -1
    assert settings.num_build_vetos == 5