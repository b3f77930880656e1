"""
Configuration management for batchwire.

Configuration lives in ``$BATCHWIRE_HOME/config.yaml`` (default
``~/.config/batchwire``). An optional env file named by ``env_file`` is
loaded into the process environment before values are read, and
``BATCHWIRE_DATABASE_URL`` overrides ``database_url``.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from batchwire.errors import ConfigError

DATABASE_URL_ENV = "BATCHWIRE_DATABASE_URL"
LOG_FORMATS = ("structured", "pretty")


def get_batchwire_home() -> Path:
    """Return the batchwire home directory."""
    home = os.environ.get("BATCHWIRE_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/batchwire").expanduser()


@dataclass
class BatchwireConfig:
    """Process configuration for triggers, executor and logging."""
    watch_dir: str = "dropfolder"
    file_pattern: str = "*.txt"
    database_url: str = "sqlite:///batchwire.db"
    record_table: str = "external_batch_job_execution"
    ready_status: str = "READY"
    consumed_status: str = "CONSUMED"
    poll_period_ms: int = 5000
    initial_delay_ms: int = 2000
    max_workers: int = 4
    chunk_size: int = 5
    history_dir: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchwireConfig":
        """
        Build a config from parsed YAML.

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {unknown}")
        config = cls(**data)
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration values."""
        for key in ("poll_period_ms", "max_workers", "chunk_size"):
            value = getattr(self, key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{key} must be a positive integer, got {value!r}")
        if not isinstance(self.initial_delay_ms, int) or self.initial_delay_ms < 0:
            raise ConfigError(f"initial_delay_ms must be a non-negative integer, got {self.initial_delay_ms!r}")
        if self.ready_status == self.consumed_status:
            raise ConfigError("ready_status and consumed_status must differ")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
        if not self.file_pattern:
            raise ConfigError("file_pattern is required")

    @property
    def watch_path(self) -> Path:
        return Path(self.watch_dir).expanduser()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[Path] = None) -> BatchwireConfig:
    """
    Load configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to $BATCHWIRE_HOME/config.yaml

    Returns:
        BatchwireConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the config is empty or invalid
    """
    if config_path is None:
        config_path = get_batchwire_home() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"batchwire config.yaml not found at {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")
    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    env_file = data.get("env_file")
    if env_file:
        env_path = Path(env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        data["database_url"] = database_url

    return BatchwireConfig.from_dict(data)
