"""Service settings from ``.env``, the environment and an optional TOML file."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
import logging
import os
import sys
import tomllib

from dotenv import load_dotenv

from .config_parser import parse_port, parse_typed_value

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Settings field -> environment variable
_ENV_VARS = {
    "access_key": "ACCESS_KEY",
    "master_access_key": "MASTER_ACCESS_KEY",
    "host": "HOST",
    "port": "PORT",
    "data_dir": "ELO_BOARD_DATA_DIR",
    "leaderboard_file": "ELO_BOARD_LEADERBOARD_FILE",
    "log_file": "ELO_BOARD_LOG_FILE",
    "log_level": "LOG_LEVEL",
}


@dataclass
class Settings:
    access_key: str | None = None
    master_access_key: str | None = None
    host: str = "0.0.0.0"
    port: int = 3000
    data_dir: Path = Path(".")
    leaderboard_file: str = "leaderboard.json"
    log_file: str = "logs.log"
    log_level: str = "INFO"

    @property
    def leaderboard_path(self) -> Path:
        return Path(self.data_dir) / self.leaderboard_file

    @property
    def log_path(self) -> Path:
        return Path(self.data_dir) / self.log_file


def _load_toml(config_path: str | Path | None) -> dict[str, Any]:
    """Return the ``[server]`` table of the config file, if there is one."""
    if config_path is None:
        config_path = os.getenv("ELO_BOARD_CONFIG") or Path.cwd() / "config.toml"
        if not Path(config_path).exists():
            return {}
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return {key: parse_typed_value(val) for key, val in data.get("server", {}).items()}


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build :class:`Settings`; environment beats TOML, TOML beats defaults.

    Parameters
    ----------
    config_path:
        Optional TOML file. Without it ``ELO_BOARD_CONFIG`` or
        ``./config.toml`` is used when present.
    environ:
        Mapping to read variables from. Defaults to ``os.environ`` after
        loading ``.env`` (existing variables win over the file).
    """
    if environ is None:
        load_dotenv(override=False)
        environ = os.environ

    values = _load_toml(config_path)
    for field_name, var in _ENV_VARS.items():
        if environ.get(var):
            values[field_name] = environ[var]

    unknown = set(values) - set(_ENV_VARS)
    if unknown:
        logging.getLogger(__name__).warning("Ignoring unknown settings: %s", sorted(unknown))
        for key in unknown:
            del values[key]

    if "port" in values:
        values["port"] = parse_port(values["port"])
    if "data_dir" in values:
        values["data_dir"] = Path(values["data_dir"])
    return Settings(**values)


def configure_logging(level: str = "INFO") -> None:
    """Send diagnostics to stdout with a single formatted handler."""
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
