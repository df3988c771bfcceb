"""
Configuration loading: storage credentials, config files and build variables.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "ARTIFACT_UPLOADER_"


class ConfigError(ValueError):
    """Raised when the uploader configuration is missing or invalid."""


@dataclass(frozen=True)
class StorageSettings:
    """Connection settings for the object store.

    Loaded once per process and passed explicitly to every gateway. The
    dataclass is picklable so it can travel with an upload task to a worker.
    """
    server_url: str
    access_key: str
    secret_key: str
    region: Optional[str] = None

    def __repr__(self) -> str:
        return (f"StorageSettings(server_url={self.server_url!r}, "
                f"access_key={self.access_key!r}, region={self.region!r})")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str],
                     env: Optional[Mapping[str, str]] = None) -> "StorageSettings":
        """Build settings from a config mapping, with environment overrides.

        Args:
            mapping: Values loaded from the config file
            env: Environment to read ARTIFACT_UPLOADER_* overrides from,
                defaults to os.environ

        Returns:
            StorageSettings instance

        Raises:
            ConfigError: If the server URL or a key is missing
        """
        env = os.environ if env is None else env

        def lookup(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name.upper()) or mapping.get(name) or None

        values = {name: lookup(name)
                  for name in ("server_url", "access_key", "secret_key", "region")}
        missing = [name for name in ("server_url", "access_key", "secret_key")
                   if not values[name]]
        if missing:
            raise ConfigError(f"Missing storage settings: {', '.join(missing)}")

        return cls(**values)


def load_config(config_file: Optional[Path] = None) -> dict:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to config file

    Returns:
        Dictionary of configuration values

    Raises:
        ConfigError: If the file cannot be read or is not a JSON object
    """
    if not config_file:
        return {}

    try:
        with open(config_file) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Error loading config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")

    logger.debug(f"Loaded configuration from {config_file}")
    return data


def expand_macros(text: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    """Replace $VAR and ${VAR} references with build variables.

    Unknown variables are left as written.
    """
    if text is None:
        return None
    return Template(text).safe_substitute(env)
