# src/py2teamspeak/services/configuration_service.py
"""
YAML configuration for py2teamspeak.

File layout::

    connection:
      host: ts.example.org
      port: 10011
      timeout: 5.0
      encoding: utf-8
      banner_lines: 2
    logging:
      level: INFO

Every key is optional; missing keys fall back to ConnectionConfig defaults.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..core.errors import ConfigurationError, ErrorCodes
from ..models.connection import ConnectionConfig

_CONNECTION_KEYS = ('host', 'port', 'timeout', 'encoding', 'banner_lines')
_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigurationService:
    """
    Loads and saves connection settings from a YAML file.

    Attributes:
        config_path: Path of the YAML file (may not exist yet)
        logger: Logger instance
    """

    DEFAULT_LOG_LEVEL = 'INFO'

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.logger = logging.getLogger(__name__)
        self._data: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """
        Read the YAML file.

        A missing path or file yields an empty configuration.

        Raises:
            ConfigurationError: If the file is not valid YAML or not a mapping
        """
        self._data = {}

        if self.config_path is None:
            return self._data

        if not self.config_path.exists():
            self.logger.info(f"No configuration file at {self.config_path}, using defaults")
            return self._data

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {self.config_path}",
                error_code=ErrorCodes.CONFIG_INVALID,
                cause=e
            )
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read {self.config_path}",
                error_code=ErrorCodes.CONFIG_NOT_FOUND,
                cause=e
            )

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Top level of {self.config_path} must be a mapping",
                error_code=ErrorCodes.CONFIG_INVALID
            )

        self._data = data
        self.logger.debug(f"Loaded configuration from {self.config_path}")
        return self._data

    def get_connection_config(self, **overrides: Any) -> ConnectionConfig:
        """
        Build a ConnectionConfig from the loaded file.

        Args:
            **overrides: Values taking precedence over the file
                         (``None`` values are ignored)

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        section = self._data.get('connection') or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'connection' must be a mapping", setting_name='connection')

        unknown = set(section) - set(_CONNECTION_KEYS)
        if unknown:
            raise ConfigurationError(
                f"Unknown connection settings: {', '.join(sorted(unknown))}",
                setting_name='connection',
                error_code=ErrorCodes.CONFIG_INVALID
            )

        values = dict(section)
        values.update({key: value for key, value in overrides.items() if value is not None})

        config = ConnectionConfig(**values)
        valid, errors = config.validate()
        if not valid:
            raise ConfigurationError(
                "; ".join(errors),
                setting_name='connection',
                error_code=ErrorCodes.CONFIG_INVALID
            )
        return config

    def get_log_level(self) -> str:
        section = self._data.get('logging') or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'logging' must be a mapping", setting_name='logging')
        level = str(section.get('level', self.DEFAULT_LOG_LEVEL)).upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {level}", setting_name='logging.level')
        return level

    def save(self, config: ConnectionConfig, log_level: Optional[str] = None) -> None:
        """
        Write a ConnectionConfig (and optional log level) to the YAML file.

        Raises:
            ConfigurationError: If no path is set or the file cannot be written
        """
        if self.config_path is None:
            raise ConfigurationError("No configuration path set",
                                     error_code=ErrorCodes.CONFIG_SAVE_ERROR)

        data: Dict[str, Any] = {
            'connection': {key: getattr(config, key) for key in _CONNECTION_KEYS}
        }
        if log_level:
            data['logging'] = {'level': log_level.upper()}

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot write {self.config_path}",
                error_code=ErrorCodes.CONFIG_SAVE_ERROR,
                cause=e
            )

        self._data = data
        self.logger.info(f"Wrote configuration to {self.config_path}")
