"""Unit tests for mock WSAA configuration loading."""

import json

import pytest

from afip_ta.mock_server.config import MockWSAAConfig, load_mock_config


class TestMockWSAAConfig:
    def test_defaults(self):
        config = MockWSAAConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.endpoint_path == "/ws/services/LoginCms"
        assert config.ticket_lifetime_hours == 12
        assert config.reject_repeat_login is True

    @pytest.mark.parametrize(
        "field, value",
        [
            ("port", 0),
            ("endpoint_path", "ws/services/LoginCms"),
            ("ticket_lifetime_hours", 0),
            ("log_level", "LOUD"),
            ("response_delay_ms", -1),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            MockWSAAConfig(**{field: value})


class TestLoadMockConfig:
    """Test file and environment precedence."""

    def test_missing_default_file_uses_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)

        assert load_mock_config() == MockWSAAConfig()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_mock_config(tmp_path / "nope.json")

    def test_file_values(self, tmp_path):
        path = tmp_path / "mock.json"
        path.write_text(json.dumps({"port": 9999, "reject_repeat_login": False}), encoding="utf-8")

        config = load_mock_config(path)

        assert config.port == 9999
        assert config.reject_repeat_login is False

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "mock.json"
        path.write_text(json.dumps({"port": 9999}), encoding="utf-8")
        monkeypatch.setenv("MOCK_WSAA_PORT", "7777")
        monkeypatch.setenv("MOCK_WSAA_TICKET_LIFETIME_HOURS", "0.5")

        config = load_mock_config(path)

        assert config.port == 7777
        assert config.ticket_lifetime_hours == 0.5

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "mock.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(ValueError) as exc_info:
            load_mock_config(path)

        assert "Failed to parse configuration file" in str(exc_info.value)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "mock.json"
        path.write_text(json.dumps({"port": 123456}), encoding="utf-8")

        with pytest.raises(ValueError) as exc_info:
            load_mock_config(path)

        assert "Configuration validation failed" in str(exc_info.value)
