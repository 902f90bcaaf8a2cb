"""
Loads configuration from the INI file and the environment and validates it.
"""

import configparser
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from cinemana_cli.exceptions import ConfigurationError
from cinemana_cli.models.config import DownloadConfig

log = logging.getLogger(__name__)

# Environment variable -> config key
ENV_KEYS = {
    "BASE_URL": "base_url",
    "OUTPUT_DIR": "output_dir",
    "DEFAULT_QUALITY": "quality",
    "CONCURRENCY": "max_workers",
    "LOG_LEVEL": "log_level",
    "RETRY_COUNT": "retry_count",
    "TIMEOUT": "timeout",
    "SAVE_METADATA": "save_metadata",
    "OVERWRITE": "overwrite",
    "SERIES_EP_ENDPOINT": "series_ep_endpoint",
    "SERIES_EP_SEASON_PARAM": "series_ep_season_param",
    "DISCOVER_LANGS": "discover_langs",
    "DISCOVER_LEVELS": "discover_levels",
    "USER_AGENT": "user_agent",
    "FFMPEG_PATH": "ffmpeg_path",
}

_BOOL_KEYS = {
    name
    for name, info in DownloadConfig.model_fields.items()
    if info.annotation is bool
}
_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigManager:
    """
    Builds a ``DownloadConfig`` from, in increasing precedence: model defaults,
    the optional INI file, environment variables and command-line options.
    """

    def __init__(
        self,
        config_file_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config_file_path = config_file_path
        self._environ = os.environ if environ is None else environ
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: Optional[dict[str, Any]] = None) -> DownloadConfig:
        """
        Loads and merges every configuration source, then validates the result.

        Raises:
            ConfigurationError: If the INI file cannot be parsed or validation fails.
        """
        settings: dict[str, Any] = {}
        settings.update(self._get_file_settings())
        settings.update(self._get_env_settings())
        if cli_options:
            settings.update({k: v for k, v in cli_options.items() if v is not None})

        # Overwrite default flips the skip default, as long as nobody set it explicitly.
        if settings.get("overwrite") is True and "skip_existing" not in settings:
            settings["skip_existing"] = False

        try:
            return DownloadConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def _get_file_settings(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file, if one exists."""
        if not self.config_file_path.is_file():
            return {}
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        known_keys = DownloadConfig.get_ini_keys()
        section = self._parser["DEFAULT"]
        settings = {}
        for key, value in section.items():
            if key not in known_keys:
                log.debug(f"Ignoring unknown configuration key '{key}'.")
                continue
            settings[key] = self._coerce(key, value)
        return settings

    def _get_env_settings(self) -> dict[str, Any]:
        settings = {}
        for env_name, key in ENV_KEYS.items():
            value = self._environ.get(env_name)
            if value is None or value == "":
                continue
            settings[key] = self._coerce(key, value)
        return settings

    @staticmethod
    def _coerce(key: str, value: str) -> Any:
        if key in _BOOL_KEYS:
            return value.strip().lower() in _TRUE_VALUES
        return value

    def get_config_as_dict(self) -> dict[str, Any]:
        """Returns the merged settings for display, without validation."""
        return {**self._get_file_settings(), **self._get_env_settings()}

    def save_config(self, config: DownloadConfig) -> None:
        """Writes every INI-backed setting of ``config`` to the config file."""
        parser = configparser.ConfigParser(interpolation=None)
        parser["DEFAULT"] = {}
        for key in sorted(DownloadConfig.get_ini_keys()):
            value = getattr(config, key)
            if isinstance(value, bool):
                parser["DEFAULT"][key] = "true" if value else "false"
            elif isinstance(value, list):
                parser["DEFAULT"][key] = ",".join(map(str, value))
            elif value is not None:
                parser["DEFAULT"][key] = str(value)
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
