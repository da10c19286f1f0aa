"""
Configuration loader module.

Loads ``config/collabsync.json`` into ClientSettings and applies
COLLABSYNC_* environment overrides on top:

    COLLABSYNC_ENDPOINT_URL         endpoint_url
    COLLABSYNC_SUBSCRIPTION_URL     subscription_url
    COLLABSYNC_INDEX_PATH           index_path
    COLLABSYNC_CLEAR_INDEX_ON_LOGOUT clear_index_on_logout
    COLLABSYNC_LOG_LEVEL            log_level
    COLLABSYNC_LOG_FILE             log_file
    COLLABSYNC_REQUEST_TIMEOUT      timeouts.request_timeout
    COLLABSYNC_CONNECT_TIMEOUT      timeouts.connect_timeout
    COLLABSYNC_KEEPALIVE_TIMEOUT    timeouts.keepalive_timeout
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from collabsync.domain.config import ClientSettings


logger = logging.getLogger(__name__)

ENV_PREFIX = "COLLABSYNC_"
DEFAULT_CONFIG_FILE = "collabsync.json"

_TOP_LEVEL_KEYS = (
    "endpoint_url",
    "subscription_url",
    "index_path",
    "clear_index_on_logout",
    "log_level",
    "log_file",
)
_TIMEOUT_KEYS = ("request_timeout", "connect_timeout", "keepalive_timeout")


class ConfigLoader:
    """
    Load and validate client settings.

    A missing config file is not an error: defaults apply and environment
    overrides still take effect.
    """

    def __init__(self, config_dir: str | Path = "config", env: Mapping[str, str] | None = None):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing collabsync.json
            env: Environment mapping to read overrides from (os.environ if None)
        """
        self.config_dir = Path(config_dir)
        self._env = os.environ if env is None else env
        logger.info("ConfigLoader initialized with directory: %s", self.config_dir)

    def _load_json_file(self, filepath: Path) -> dict[str, Any]:
        """
        Load and parse a JSON file.

        Returns:
            Parsed JSON object, or an empty dict if the file does not exist

        Raises:
            ValueError: If the file is empty, malformed or not a JSON object
        """
        if not filepath.exists():
            logger.debug("Config not found, using defaults: %s", filepath)
            return {}

        content = filepath.read_text(encoding="utf-8")
        if not content.strip():
            raise ValueError(f"Configuration file is empty: {filepath}")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}"
            ) from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a JSON object: {filepath}")
        return data

    def _env_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key in _TOP_LEVEL_KEYS:
            value = self._env.get(ENV_PREFIX + key.upper())
            if value is not None:
                overrides[key] = value

        timeouts = {}
        for key in _TIMEOUT_KEYS:
            value = self._env.get(ENV_PREFIX + key.upper())
            if value is not None:
                timeouts[key] = value
        if timeouts:
            overrides["timeouts"] = timeouts

        if overrides:
            logger.debug("Environment overrides: %s", ", ".join(sorted(overrides)))
        return overrides

    def load_settings(self, filename: str = DEFAULT_CONFIG_FILE) -> ClientSettings:
        """
        Load client settings.

        Args:
            filename: Config file name inside config_dir

        Returns:
            Validated ClientSettings

        Raises:
            ValueError: If the file or an override is invalid
        """
        data = self._load_json_file(self.config_dir / filename)

        overrides = self._env_overrides()
        timeouts = overrides.pop("timeouts", None)
        data.update(overrides)
        if timeouts:
            data["timeouts"] = {**(data.get("timeouts") or {}), **timeouts}

        try:
            settings = ClientSettings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid collabsync configuration: {e}") from e

        logger.info("Loaded settings (endpoint=%s)", settings.endpoint_url)
        return settings
