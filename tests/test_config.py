"""
Tests for configuration loading.
"""

import json

from checkin import CheckinConfig


def test_defaults_written_when_file_missing(tmp_path):
    path = tmp_path / "checkin_config.json"

    config = CheckinConfig(str(path))

    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == CheckinConfig.DEFAULT_CONFIG
    assert config.dedup_by_origin is True
    assert config.is_admin_enabled() is False
    assert config.get("artifact", "qr_size") == 400
    assert config.get("artifact", "missing") is None


def test_file_values_merge_over_defaults(make_config):
    config = make_config({"scanning": {"dedup_by_origin": False}, "board_name": "Fastnacht"})

    assert config.dedup_by_origin is False
    assert config.get("scanning", "trust_forwarded_for") is False
    assert config.get("board_name") == "Fastnacht"
    # Defaults are never mutated by a merge
    assert CheckinConfig.DEFAULT_CONFIG["scanning"]["dedup_by_origin"] is True


def test_env_overrides_keep_declared_types(make_config, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", "1234")
    monkeypatch.setenv("DEDUP_BY_ORIGIN", "off")
    monkeypatch.setenv("QR_SIZE", "300")

    config = make_config()

    assert config.admin_password == "1234"
    assert config.is_admin_enabled() is True
    assert config.dedup_by_origin is False
    assert config.get("artifact", "qr_size") == 300


def test_invalid_env_value_is_ignored(make_config, monkeypatch):
    monkeypatch.setenv("QR_SIZE", "huge")

    assert make_config().get("artifact", "qr_size") == 400


def test_invalid_values_fall_back_to_defaults(make_config):
    config = make_config(
        {
            "scanning": {"dedup_by_origin": "sometimes"},
            "admin": {"password": 42, "header": ""},
            "artifact": {"qr_size": -1, "margin": -3},
            "cache": {"leaderboard_ttl": -5},
        }
    )

    assert config.dedup_by_origin is True
    assert config.is_admin_enabled() is False
    assert config.get("admin", "header") == "X-Admin-Password"
    assert config.get("artifact", "qr_size") == 400
    assert config.get("artifact", "margin") == 2
    assert config.get("cache", "leaderboard_ttl") == 30


def test_admin_open_is_explicit(make_config, monkeypatch):
    assert make_config().admin_open is False
    assert make_config({"admin": {"open": "yes"}}).admin_open is False

    monkeypatch.setenv("ADMIN_OPEN", "true")
    config = make_config()

    assert config.admin_open is True
    assert config.is_admin_enabled() is False


def test_broken_json_uses_defaults(tmp_path):
    path = tmp_path / "checkin_config.json"
    path.write_text("{not json", encoding="utf-8")

    config = CheckinConfig(str(path))

    assert config.get("board_name") == "Check-in Leaderboard"


def test_save_config_round_trips(make_config):
    config = make_config()
    config.config["board_name"] = "Renamed"

    assert config.save_config() is True
    assert CheckinConfig(str(config.config_path)).get("board_name") == "Renamed"
