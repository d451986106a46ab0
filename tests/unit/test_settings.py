"""Unit tests for configuration settings."""

import os

import pytest
from pydantic import ValidationError

from sxm.config.settings import (
    Settings,
    get_test_settings,
    load_settings_from_file,
    validate_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's SXM_* variables and .env file."""
    for key in list(os.environ):
        if key.startswith("SXM_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.mark.unit
class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.broker_host == "broker.hivemq.com"
        assert settings.broker_port == 8884
        assert settings.broker_path == "/mqtt"
        assert settings.room_id == "room_uuid"
        assert settings.device_id is None
        assert settings.client_id_suffix == "_capore"
        assert settings.status_interval == 0.2
        assert settings.tick_interval == pytest.approx(1 / 60)
        assert settings.broker_url == "wss://broker.hivemq.com:8884/mqtt"

    def test_environment_variables_use_prefix(self, monkeypatch):
        monkeypatch.setenv("SXM_ROOM_ID", "table-7")
        monkeypatch.setenv("SXM_BROKER_PORT", "443")
        settings = Settings()
        assert settings.room_id == "table-7"
        assert settings.broker_port == 443

    def test_log_level_is_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_broker_path_is_made_absolute(self):
        assert Settings(broker_path="ws").broker_path == "/ws"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"broker_port": 0},
            {"environment": "moon"},
            {"log_level": "LOUD"},
            {"room_id": "room/#"},
            {"room_id": ""},
            {"status_interval": 0.0},
            {"tick_rate_hz": -1.0},
            {"tilt_threshold_degrees": -5.0},
            {"filter_min_cutoff": 0.0},
            {"reconnect_min_delay": 10, "reconnect_max_delay": 5},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ValidationError):
            Settings(**kwargs)

    def test_with_broker_address(self):
        settings = Settings().with_broker_address("mqtt.example.org:1884")
        assert settings.broker_host == "mqtt.example.org"
        assert settings.broker_port == 1884

    def test_with_broker_address_without_port_keeps_port(self):
        settings = Settings(broker_port=9001).with_broker_address("mqtt.example.org")
        assert settings.broker_host == "mqtt.example.org"
        assert settings.broker_port == 9001

    def test_with_broker_address_rejects_bad_port(self):
        with pytest.raises(ValueError):
            Settings().with_broker_address("host:not-a-port")

    def test_with_overrides_skips_none(self):
        settings = Settings(room_id="a")
        assert settings.with_overrides(room_id=None) is settings
        assert settings.with_overrides(room_id="b").room_id == "b"

    def test_masked_dump_hides_password(self):
        dump = Settings(broker_username="u", broker_password="hunter2").masked_dump()
        assert dump["broker_password"] == "********"
        assert dump["broker_username"] == "u"

    def test_component_configs(self):
        settings = Settings(filter_beta=0.5, tilt_threshold_degrees=7.0)
        assert settings.get_filter_config() == {
            "freq": 60.0, "min_cutoff": 1.0, "beta": 0.5, "d_cutoff": 1.0,
        }
        assert settings.get_classifier_config()["tilt_threshold"] == 7.0

    def test_logging_config_includes_file_handlers(self, tmp_path):
        settings = Settings(log_file=str(tmp_path / "sxm.log"))
        config = settings.get_logging_config()
        assert {"console", "file", "structured"} <= set(config["handlers"])

    def test_test_settings(self):
        settings = get_test_settings()
        assert settings.is_testing
        assert settings.device_id == "test-device"
        assert not settings.broker_use_tls

    def test_load_settings_from_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("SXM_ROOM_ID=from-file\nSXM_STATUS_INTERVAL=0.5\n")
        settings = load_settings_from_file(str(env_file))
        assert settings.room_id == "from-file"
        assert settings.status_interval == 0.5


@pytest.mark.unit
class TestValidateSettings:
    def test_defaults_have_no_issues(self):
        assert validate_settings(Settings()) == []

    def test_production_issues(self):
        settings = Settings(environment="production", debug=True, broker_use_tls=False)
        issues = validate_settings(settings)
        assert any("Debug" in issue for issue in issues)
        assert any("TLS" in issue for issue in issues)
        assert any("Room id" in issue for issue in issues)

    def test_username_without_password(self):
        issues = validate_settings(Settings(broker_username="user"))
        assert any("password" in issue for issue in issues)

    def test_status_faster_than_tick(self):
        issues = validate_settings(Settings(status_interval=0.001))
        assert any("Status interval" in issue for issue in issues)
