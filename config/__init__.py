"""
Configuration Module for the Supplier Template Engine.

Settings are layered:
    1. config/settings.yaml shipped with the package (every key documented)
    2. An override file, given explicitly or through $INVOICE_TEMPLATES_CONFIG,
       deep-merged over the packaged settings
    3. Runtime overrides set with ConfigurationManager.set()

Code reading a key always passes its own default, so a missing key never
breaks the engine.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

ENV_VAR = "INVOICE_TEMPLATES_CONFIG"
PACKAGED_SETTINGS = Path(__file__).parent / "settings.yaml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    """
    Read one settings file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is not a YAML mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _resolve_paths(data: Dict[str, Any], base_dir: Path) -> None:
    # Relative entries under `paths` are relative to the file that set them
    for key, value in (data.get('paths') or {}).items():
        if value and not Path(value).is_absolute():
            data['paths'][key] = str(base_dir / value)


class ConfigurationManager:
    """
    Process-wide settings of the template engine.

    Attributes:
        config_path (Path): Override file in use, None for packaged settings only.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("annotator.min_zone_size")
        0.01
        >>> config.set("feedback.ewma_alpha", 0.3)
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Args:
            config_path: Override file; defaults to $INVOICE_TEMPLATES_CONFIG.
                         Ignored once the singleton is initialized.
        """
        if self._initialized:
            return

        config_path = config_path or os.environ.get(ENV_VAR)
        self.config_path = Path(config_path) if config_path else None
        self._overrides: Dict[str, Any] = {}
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Load packaged settings, then merge the override file.

        Raises:
            FileNotFoundError: If a settings file doesn't exist.
            ValueError: If a settings file is not a mapping.
            yaml.YAMLError: If a settings file is invalid.
        """
        config = _read_yaml(PACKAGED_SETTINGS)
        _resolve_paths(config, Path.cwd())

        if self.config_path is not None:
            override = _read_yaml(self.config_path)
            _resolve_paths(override, self.config_path.parent)
            config = _deep_merge(config, override)

        self._config = _deep_merge(config, self._overrides)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example:
            >>> config.get("extraction.fallback.window")
            80
            >>> config.get("nonexistent.key", "default_value")
            'default_value'
        """
        value = self._config
        try:
            for part in key.split('.'):
                value = value[part]
        except (KeyError, TypeError):
            return default
        return default if value is None and default is not None else value

    def set(self, key: str, value: Any) -> None:
        """Override one key for the rest of the process (kept across reload)."""
        override: Dict[str, Any] = value
        for part in reversed(key.split('.')):
            override = {part: override}
        self._overrides = _deep_merge(self._overrides, override)
        self._config = _deep_merge(self._config, override)

    def get_all(self) -> Dict[str, Any]:
        return dict(self._config)

    def reload(self) -> None:
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (tests, or after changing $INVOICE_TEMPLATES_CONFIG)."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shorthand for ConfigurationManager().get(key, default)."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config', 'ENV_VAR']
