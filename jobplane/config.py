"""
Configuration management for jobplane.

Config lives at $JOBPLANE_HOME/config.yaml (default ~/.config/jobplane).
An optional env_file is loaded into the process environment.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv


class ConfigError(Exception):
    """Configuration validation error."""
    pass


REQUIRED_KEYS = ("database_path", "directory_path")


@dataclass
class JobplaneConfig:
    """
    Attributes:
        database_path: SQLite job database
        directory_path: YAML/JSON file with queues, clusters and flavours
        runtime_timeout_s: Upper bound for one runtime call
        log_level: DEBUG, INFO, WARNING, ERROR
        log_format: "pretty" or "structured"
        log_file: Optional log file
        env_file: Optional dotenv file loaded at startup
        admins: Users allowed to stop/delete any job
    """
    database_path: str
    directory_path: str
    runtime_timeout_s: float = 30.0
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None
    admins: tuple[str, ...] = ("root",)

    @property
    def database(self) -> Path:
        return Path(self.database_path).expanduser()

    @property
    def directory(self) -> Path:
        return Path(self.directory_path).expanduser()

    @property
    def log_path(self) -> Optional[Path]:
        return Path(self.log_file).expanduser() if self.log_file else None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["admins"] = list(self.admins)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobplaneConfig":
        missing = [k for k in REQUIRED_KEYS if not data.get(k)]
        if missing:
            raise ConfigError(f"Missing required config keys: {missing}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {unknown}")

        kwargs = dict(data)
        if "admins" in kwargs:
            kwargs["admins"] = tuple(kwargs["admins"] or ())
        if "runtime_timeout_s" in kwargs:
            try:
                kwargs["runtime_timeout_s"] = float(kwargs["runtime_timeout_s"])
            except (TypeError, ValueError):
                raise ConfigError(
                    f"runtime_timeout_s must be a number, got {kwargs['runtime_timeout_s']!r}"
                )
        if kwargs.get("log_format", "pretty") not in ("pretty", "structured"):
            raise ConfigError("log_format must be 'pretty' or 'structured'")
        return cls(**kwargs)


def get_jobplane_home() -> Path:
    """Config home: $JOBPLANE_HOME or ~/.config/jobplane."""
    home = os.environ.get("JOBPLANE_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/jobplane").expanduser()


def default_config(home: Path) -> JobplaneConfig:
    """Config written by `jobplane init`."""
    return JobplaneConfig(
        database_path=str(home / "jobs.db"),
        directory_path=str(home / "directory.yaml"),
        env_file=str(home / ".env"),
    )


def load_config(config_path: Optional[Path] = None) -> JobplaneConfig:
    """
    Load jobplane configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to $JOBPLANE_HOME/config.yaml

    Returns:
        JobplaneConfig instance

    Raises:
        FileNotFoundError: If the config file is missing
        ConfigError: If config is invalid
    """
    if config_path is None:
        config_path = get_jobplane_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"jobplane config.yaml not found at {config_path}. Run 'jobplane init' first."
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not data:
        raise ConfigError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping")

    config = JobplaneConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    return config
