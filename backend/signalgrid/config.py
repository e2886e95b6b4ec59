"""
Configuration Management

Centralized configuration loaded from YAML files.
Each *.yaml file in the config directory becomes a top-level section
named after the file stem. Supports dot-notation access and reloading.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "SIGNALGRID_CONFIG_DIR"


class ConfigManager:
    """
    Manage engine configuration from YAML files

    Provides:
    - Load all config files on startup
    - Dot notation access: config.get('engine.controller.defaultCycle.green')
    - Reload capability
    - Default values for missing keys
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: $SIGNALGRID_CONFIG_DIR,
                then backend/config next to the package)
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        elif os.environ.get(CONFIG_DIR_ENV):
            self.config_dir = Path(os.environ[CONFIG_DIR_ENV])
        else:
            self.config_dir = Path(__file__).parent.parent / "config"

        self.configs: Dict[str, Any] = {}
        self._load_all_configs()

    def _load_all_configs(self):
        """Load all configuration files from config directory"""
        if not self.config_dir.exists():
            logger.info("[CONFIG] No config directory at %s, using defaults", self.config_dir)
            return

        for yaml_file in sorted(self.config_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r') as f:
                    self.configs[yaml_file.stem] = yaml.safe_load(f) or {}
                logger.info("[CONFIG] Loaded: %s", yaml_file.name)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("[CONFIG] Failed to load %s: %s", yaml_file.name, e)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        Examples:
            config.get('engine.controller.redFloor')
            config.get('engine.flow.historyCapacity', 100)

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value: Any = self.configs
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.get(f'engine.{name}', {})
        return section if isinstance(section, dict) else {}

    def get_controller_config(self) -> Dict[str, Any]:
        """Get intersection controller configuration section"""
        return self._section('controller')

    def get_emergency_config(self) -> Dict[str, Any]:
        """Get emergency coordinator configuration section"""
        return self._section('emergency')

    def get_prediction_config(self) -> Dict[str, Any]:
        """Get forecaster configuration section"""
        return self._section('prediction')

    def get_flow_config(self) -> Dict[str, Any]:
        """Get flow analyzer configuration section"""
        return self._section('flow')

    def get_scheduler_config(self) -> Dict[str, Any]:
        """Get deferred scheduler configuration section"""
        return self._section('scheduler')

    def reload(self):
        """Reload all configuration files"""
        logger.info("[CONFIG] Reloading configuration...")
        self.configs.clear()
        self._load_all_configs()

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value


# Global configuration instance, created on first use
_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = ConfigManager()
    return _config


def init_config(config_dir: Optional[str] = None) -> ConfigManager:
    """Initialize the global configuration from a specific directory"""
    global _config
    _config = ConfigManager(config_dir)
    return _config
