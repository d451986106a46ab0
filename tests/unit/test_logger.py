"""Unit tests for logging configuration."""

import contextvars
import json
import logging

import pytest

from sxm.config.settings import get_test_settings
from sxm.logger import (
    ColoredFormatter,
    DeviceContextFilter,
    StructuredFormatter,
    build_logging_config,
    get_device_context,
    set_device_context,
)


def make_record(msg="hello %s", args=("world",), level=logging.INFO, **extra):
    record = logging.LogRecord("sxm.test", level, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestFormatters:
    def test_structured_formatter_emits_json(self):
        line = StructuredFormatter().format(make_record(device_id="phone-1"))
        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "sxm.test"
        assert entry["device_id"] == "phone-1"

    def test_colored_formatter_does_not_mutate_record(self):
        record = make_record(level=logging.WARNING)
        text = ColoredFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in text
        assert record.levelname == "WARNING"


@pytest.mark.unit
class TestDeviceContextFilter:
    def test_static_context(self):
        record = make_record()
        assert DeviceContextFilter(device_id="d1", room_id="r1").filter(record)
        assert record.device_id == "d1"
        assert record.room_id == "r1"

    def test_explicit_extra_is_kept(self):
        record = make_record(device_id="from-extra")
        DeviceContextFilter(device_id="d1").filter(record)
        assert record.device_id == "from-extra"

    def test_context_variables(self):
        def check():
            set_device_context(device_id="ctx-device", room_id="ctx-room")
            assert get_device_context() == {"device_id": "ctx-device", "room_id": "ctx-room"}
            record = make_record()
            DeviceContextFilter().filter(record)
            return record.device_id

        assert contextvars.copy_context().run(check) == "ctx-device"


@pytest.mark.unit
class TestLoggingConfig:
    def test_console_only_without_log_file(self):
        config = build_logging_config(get_test_settings())
        assert set(config["handlers"]) == {"console"}
        assert config["loggers"][""]["level"] == "DEBUG"

    def test_file_handlers_with_log_file(self, tmp_path):
        settings = get_test_settings().with_overrides(log_file=str(tmp_path / "logs" / "sxm.log"))
        config = build_logging_config(settings)
        assert config["handlers"]["structured"]["filename"].endswith("sxm.json")
        assert config["loggers"][""]["handlers"] == ["console", "file", "structured"]
