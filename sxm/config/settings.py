"""
Pydantic settings for the SXM telemetry client
"""

from typing import List, Optional, Dict, Any
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support (prefix ``SXM_``)."""

    # Application settings
    app_name: str = Field(default="SXM Telemetry", description="Application name")
    environment: str = Field(default="development", description="Environment (development, testing, staging, production)")
    debug: bool = Field(default=False, description="Debug mode")

    # Broker settings
    broker_host: str = Field(default="broker.hivemq.com", description="MQTT broker host")
    broker_port: int = Field(default=8884, description="MQTT broker websocket port")
    broker_path: str = Field(default="/mqtt", description="MQTT websocket path")
    broker_username: Optional[str] = Field(default=None, description="MQTT username")
    broker_password: Optional[str] = Field(default=None, description="MQTT password")
    broker_use_tls: bool = Field(default=True, description="Connect over TLS (wss)")
    broker_keepalive: int = Field(default=60, description="MQTT keepalive in seconds")
    reconnect_min_delay: int = Field(default=1, description="Minimum reconnect backoff in seconds")
    reconnect_max_delay: int = Field(default=30, description="Maximum reconnect backoff in seconds")

    # Session settings
    room_id: str = Field(default="room_uuid", description="Room (touch table) identifier")
    device_id: Optional[str] = Field(default=None, description="Device identifier; generated per process when unset")
    client_id_suffix: str = Field(default="_capore", description="Suffix appended to the device id to form the MQTT client id")
    topic_namespace: str = Field(default="sxm", description="Root segment of every topic")
    status_interval: float = Field(default=0.2, description="Periodic status interval in seconds")
    tick_rate_hz: float = Field(default=60.0, description="Classifier update rate in Hz")

    # Classifier settings
    tilt_threshold_degrees: float = Field(default=5.0, description="Tilt threshold in degrees")
    acceleration_threshold: float = Field(default=1.0, description="Peak acceleration threshold (m/s^2)")
    rotation_threshold: float = Field(default=2.0, description="Peak rotation rate threshold (deg/s)")

    # Filter settings
    filter_frequency: float = Field(default=60.0, description="Expected sensor sampling rate in Hz")
    filter_min_cutoff: float = Field(default=1.0, description="One-euro minimum cutoff in Hz")
    filter_beta: float = Field(default=0.0, description="One-euro speed coefficient")
    filter_d_cutoff: float = Field(default=1.0, description="One-euro derivative cutoff in Hz")

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Max log file size in bytes (10MB)")
    log_backup_count: int = Field(default=5, description="Number of log backup files")

    model_config = SettingsConfigDict(
        env_prefix="SXM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_environments = ["development", "testing", "staging", "production"]
        if v not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level setting."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("broker_port")
    @classmethod
    def validate_port(cls, v):
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("broker_host", "room_id", "topic_namespace")
    @classmethod
    def validate_topic_segment(cls, v):
        """Reject empty values and MQTT wildcard characters."""
        if not v:
            raise ValueError("Value must not be empty")
        if any(ch in v for ch in "+#"):
            raise ValueError("Value must not contain MQTT wildcards")
        return v

    @field_validator("broker_path")
    @classmethod
    def validate_broker_path(cls, v):
        """Websocket paths are absolute."""
        return v if v.startswith("/") else f"/{v}"

    @field_validator("broker_keepalive", "reconnect_min_delay", "reconnect_max_delay")
    @classmethod
    def validate_positive_seconds(cls, v):
        """Validate second-based timing settings."""
        if v < 1:
            raise ValueError("Value must be at least 1 second")
        return v

    @field_validator("status_interval", "tick_rate_hz", "filter_frequency", "filter_min_cutoff", "filter_d_cutoff")
    @classmethod
    def validate_positive(cls, v):
        """Validate strictly positive rates and intervals."""
        if v <= 0:
            raise ValueError("Value must be greater than 0")
        return v

    @field_validator("tilt_threshold_degrees", "acceleration_threshold", "rotation_threshold", "filter_beta")
    @classmethod
    def validate_non_negative(cls, v):
        """Validate thresholds and coefficients."""
        if v < 0:
            raise ValueError("Value must be non-negative")
        return v

    @model_validator(mode="after")
    def validate_reconnect_window(self):
        """Minimum reconnect delay must not exceed the maximum."""
        if self.reconnect_min_delay > self.reconnect_max_delay:
            raise ValueError("reconnect_min_delay must not exceed reconnect_max_delay")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def tick_interval(self) -> float:
        """Classifier tick interval in seconds."""
        return 1.0 / self.tick_rate_hz

    @property
    def broker_url(self) -> str:
        """Websocket URL of the broker."""
        scheme = "wss" if self.broker_use_tls else "ws"
        return f"{scheme}://{self.broker_host}:{self.broker_port}{self.broker_path}"

    def with_broker_address(self, address: str) -> "Settings":
        """Return a copy pointing at ``host[:port]``.

        An empty address returns the settings unchanged.
        """
        if not address:
            return self
        host, _, port = address.partition(":")
        return self.with_overrides(broker_host=host, broker_port=int(port) if port else None)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a validated copy with ``overrides`` applied; ``None`` values are skipped."""
        update = {key: value for key, value in overrides.items() if value is not None}
        if not update:
            return self
        return self.__class__(**{**self.model_dump(), **update})

    def masked_dump(self) -> Dict[str, Any]:
        """Settings as a dict with secrets masked."""
        data = self.model_dump()
        if data.get("broker_password"):
            data["broker_password"] = "********"
        return data

    def get_filter_config(self) -> Dict[str, float]:
        """Keyword arguments for ``OneEuroFilter`` / ``Vector3Filter``."""
        return {
            "freq": self.filter_frequency,
            "min_cutoff": self.filter_min_cutoff,
            "beta": self.filter_beta,
            "d_cutoff": self.filter_d_cutoff,
        }

    def get_classifier_config(self) -> Dict[str, float]:
        """Keyword arguments for ``Device``."""
        return {
            "tilt_threshold": self.tilt_threshold_degrees,
            "acceleration_threshold": self.acceleration_threshold,
            "rotation_threshold": self.rotation_threshold,
        }

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        from sxm.logger import build_logging_config

        return build_logging_config(self)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_test_settings() -> Settings:
    """Get settings for testing."""
    return Settings(
        environment="testing",
        debug=True,
        broker_host="localhost",
        broker_port=9001,
        broker_use_tls=False,
        room_id="test-room",
        device_id="test-device",
        log_level="DEBUG",
    )


def load_settings_from_file(file_path: str) -> Settings:
    """Load settings from a specific file."""
    return Settings(_env_file=file_path)


def validate_settings(settings: Settings) -> List[str]:
    """Validate settings and return list of issues."""
    issues = []

    if settings.is_production:
        if settings.debug:
            issues.append("Debug mode should be disabled in production")

        if not settings.broker_use_tls:
            issues.append("TLS should be enabled in production")

        if settings.room_id == "room_uuid":
            issues.append("Room id should be set explicitly in production")

    if settings.broker_username and not settings.broker_password:
        issues.append("Broker username is set but broker password is empty")

    if settings.status_interval < 1.0 / settings.tick_rate_hz:
        issues.append("Status interval is shorter than the classifier tick interval")

    return issues
