"""Configuration models using Pydantic for validation."""
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
import os

from logstash_exporter.naming import is_valid_metric_name


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    namespace: str = "logstash"
    max_depth: int = Field(default=64, gt=0)
    field_markers: List[str] = Field(default_factory=lambda: ["patterns_per_field"])

    @field_validator('namespace')
    @classmethod
    def validate_namespace(cls, v):
        """Namespace is the first segment of every metric name."""
        if not is_valid_metric_name(v):
            raise ValueError(f"Invalid metric namespace '{v}'")
        return v


class WebConfig(BaseModel):
    """HTTP server configuration."""
    listen_address: str = ":9304"
    telemetry_path: str = "/metrics"

    @field_validator('telemetry_path')
    @classmethod
    def validate_telemetry_path(cls, v):
        if not v.startswith("/"):
            raise ValueError(f"Telemetry path must start with '/', got '{v}'")
        return v

    def bind(self) -> Tuple[str, int]:
        """Split listen_address into (host, port); an empty host binds all interfaces."""
        return split_listen_address(self.listen_address)


class LogstashConfig(BaseModel):
    """Upstream Logstash targets."""
    hosts: List[str] = Field(default_factory=lambda: ["localhost:9600"])
    timeout_s: float = Field(default=5.0, gt=0)

    @field_validator('hosts')
    @classmethod
    def validate_hosts(cls, v):
        """Validate upstream targets."""
        if not v:
            raise ValueError("At least one Logstash host must be defined")

        if len(v) != len(set(v)):
            raise ValueError("Logstash hosts must be unique")

        return v


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    web: WebConfig = Field(default_factory=WebConfig)
    logstash: LogstashConfig = Field(default_factory=LogstashConfig)


def split_listen_address(address: str) -> Tuple[str, int]:
    """Parse "host:port" or ":port" into a bindable (host, port) pair."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"Listen address must be host:port, got '{address}'")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in listen address '{address}'")
    return (host.strip("[]") or "0.0.0.0"), port_number


def load_config(config_path: Optional[str] = None, overrides: Optional[dict] = None) -> Config:
    """
    Load and validate configuration.

    Args:
        config_path: Optional YAML file
        overrides: Nested dict applied on top of the file (command-line flags)

    Environment variables LOGSTASH_HOSTS (comma separated) and LOG_LEVEL
    override the file; command-line overrides win over both.
    """
    import yaml

    raw_config = {}
    if config_path:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_hosts := os.getenv('LOGSTASH_HOSTS'):
        raw_config.setdefault('logstash', {})['hosts'] = [
            h.strip() for h in env_hosts.split(",") if h.strip()
        ]

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    for section, values in (overrides or {}).items():
        raw_config.setdefault(section, {}).update(values)

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
