from pathlib import Path

import pytest

from drivetime.config import ConfigError, load_config, parse_calendar_ids


def test_defaults_without_config_file(tmp_path: Path):
    cfg = load_config(str(tmp_path / "missing.yaml"), environ={})

    assert cfg.buffer_minutes == 10
    assert cfg.lookahead_hours == 48
    assert cfg.log_level == "INFO"
    assert cfg.calendar_ids == ["primary"]
    assert cfg.schedule.poll_minutes == 5
    assert cfg.schedule.backup_minutes == 60
    assert cfg.missing_required() == ["home_address", "GOOGLE_MAPS_API_KEY"]


def test_yaml_values_are_loaded(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        """
home_address: "123 Main St, San Jose, CA"
buffer_minutes: 15
calendar_ids: "primary, work@example.com ,"
lookahead_hours: 24
log_level: debug
timezone: America/Phoenix
schedule:
  poll_minutes: 10
""",
        encoding="utf-8",
    )

    cfg = load_config(str(cfg_path), environ={"GOOGLE_MAPS_API_KEY": "AIzaKey"})

    assert cfg.home_address == "123 Main St, San Jose, CA"
    assert cfg.buffer_minutes == 15
    assert cfg.calendar_ids == ["primary", "work@example.com"]
    assert cfg.lookahead_hours == 24
    assert cfg.log_level == "DEBUG"
    assert cfg.timezone == "America/Phoenix"
    assert cfg.schedule.poll_minutes == 10
    assert cfg.missing_required() == []


def test_environment_overrides_file(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("home_address: Somewhere\nbuffer_minutes: 15\n", encoding="utf-8")

    cfg = load_config(
        str(cfg_path),
        environ={
            "DRIVETIME_HOME_ADDRESS": "Elsewhere",
            "DRIVETIME_BUFFER_MINUTES": "5",
            "DRIVETIME_CALENDAR_IDS": "a,b",
            "DRIVETIME_LOG_LEVEL": "warn",
            "GOOGLE_CREDENTIALS_JSON": "/tmp/creds.json",
            "GOOGLE_TOKEN_JSON": "/tmp/token.json",
        },
    )

    assert cfg.home_address == "Elsewhere"
    assert cfg.buffer_minutes == 5
    assert cfg.calendar_ids == ["a", "b"]
    assert cfg.log_level == "WARN"
    assert cfg.google.credentials_path == "/tmp/creds.json"
    assert cfg.google.token_path == "/tmp/token.json"


def test_non_integer_buffer_is_a_config_error(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("buffer_minutes: soon\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="buffer_minutes"):
        load_config(str(cfg_path), environ={})


def test_non_mapping_file_is_a_config_error(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(str(cfg_path), environ={})


def test_parse_calendar_ids_accepts_lists_and_strings():
    assert parse_calendar_ids(["a", " b ", ""]) == ["a", "b"]
    assert parse_calendar_ids(" a , ,b") == ["a", "b"]
    assert parse_calendar_ids(None) == []
