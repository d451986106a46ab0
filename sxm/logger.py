"""
Logging configuration for the SXM telemetry client
"""

import contextvars
import json
import logging
import logging.config
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

from sxm.config.settings import Settings

_device_id_var: contextvars.ContextVar = contextvars.ContextVar('device_id', default=None)
_room_id_var: contextvars.ContextVar = contextvars.ContextVar('room_id', default=None)

_RESERVED_RECORD_KEYS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
])


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Format log record with colors."""
        # Other handlers share the record; color a copy.
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter for log files."""

    def format(self, record):
        """Format log record as structured JSON."""
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class DeviceContextFilter(logging.Filter):
    """Filter to add the device/room context to log records."""

    def __init__(self, device_id: Optional[str] = None, room_id: Optional[str] = None):
        super().__init__()
        self.device_id = device_id
        self.room_id = room_id

    def filter(self, record):
        """Add device context to log record."""
        device_id = _device_id_var.get() or self.device_id
        room_id = _room_id_var.get() or self.room_id

        if device_id and not hasattr(record, 'device_id'):
            record.device_id = device_id
        if room_id and not hasattr(record, 'room_id'):
            record.room_id = room_id

        return True


def set_device_context(device_id: Optional[str] = None, room_id: Optional[str] = None) -> None:
    """Set the device context picked up by ``DeviceContextFilter``."""
    if device_id is not None:
        _device_id_var.set(device_id)
    if room_id is not None:
        _room_id_var.set(room_id)


def get_device_context() -> Dict[str, Optional[str]]:
    """Get the current device context."""
    return {
        'device_id': _device_id_var.get(),
        'room_id': _room_id_var.get(),
    }


def setup_logging(settings: Settings, device_id: Optional[str] = None) -> None:
    """Setup application logging configuration."""

    # Create log directory if file logging is enabled
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

    # Build logging configuration
    config = build_logging_config(settings)

    # Apply configuration
    logging.config.dictConfig(config)

    # Set up root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    # Add device context filter to all handlers
    context_filter = DeviceContextFilter(device_id=device_id, room_id=settings.room_id)
    for handler in root_logger.handlers:
        handler.addFilter(context_filter)

    configure_third_party_loggers(settings)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured - Level: %s, File: %s", settings.log_level, settings.log_file)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Build logging configuration dictionary."""

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'console': {
                '()': ColoredFormatter,
                'format': settings.log_format,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'file': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'structured': {
                '()': StructuredFormatter
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': settings.log_level,
                'formatter': 'console',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {  # Root logger
                'level': settings.log_level,
                'handlers': ['console'],
            },
            'paho': {
                'level': 'DEBUG' if settings.debug else 'WARNING',
                'handlers': [],
                'propagate': True
            },
        }
    }

    # Add file handler if log file is specified
    if settings.log_file:
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': settings.log_level,
            'formatter': 'file',
            'filename': settings.log_file,
            'maxBytes': settings.log_max_size,
            'backupCount': settings.log_backup_count,
            'encoding': 'utf-8'
        }

        # Add structured log handler for JSON logs
        structured_log_file = str(Path(settings.log_file).with_suffix('.json'))
        config['handlers']['structured'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': settings.log_level,
            'formatter': 'structured',
            'filename': structured_log_file,
            'maxBytes': settings.log_max_size,
            'backupCount': settings.log_backup_count,
            'encoding': 'utf-8'
        }

        config['loggers']['']['handlers'].extend(['file', 'structured'])

    return config


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def configure_third_party_loggers(settings: Settings) -> None:
    """Configure third-party library loggers."""

    # Suppress noisy loggers in production
    if settings.is_production:
        logging.getLogger('asyncio').setLevel(logging.WARNING)

    # paho logs every PINGREQ/PINGRESP at DEBUG
    if settings.debug and settings.is_development:
        logging.getLogger('paho.mqtt').setLevel(logging.DEBUG)
    else:
        logging.getLogger('paho.mqtt').setLevel(logging.WARNING)
