"""
Configuration File Loader
==========================

Load toggler options from external YAML or JSON files.

The file holds the same nested option names accepted by
``ThemeController.start`` (``i18n``, ``storage``, ``classes`` ...).
"""

# ============================================================================
# MODULE OVERVIEW
# ============================================================================
# Purpose:
#   config_loader.py
#
# Connected modules (direct imports):
#   config, error_handling
# ============================================================================

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .config import TogglerConfig
from .error_handling import ConfigurationError

logger = logging.getLogger("theme_toggler.config_loader")


# ============================================================================
# CLASSES
# ============================================================================

class ConfigLoader:
    """Load and validate configuration from files"""

    SUPPORTED_FORMATS = ('.yaml', '.yml', '.json')

    @classmethod
    def load_options(cls, filepath: Path) -> Dict[str, Any]:
        """
        Read the raw option dict from a file

        Raises:
            ConfigurationError: If file not found, unsupported or invalid
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise ConfigurationError(
                f"Configuration file not found: {filepath}",
                context={"filepath": str(filepath)}
            )

        if filepath.suffix not in cls.SUPPORTED_FORMATS:
            raise ConfigurationError(
                f"Unsupported config format: {filepath.suffix}. "
                f"Supported: {', '.join(cls.SUPPORTED_FORMATS)}",
                context={"filepath": str(filepath), "suffix": filepath.suffix}
            )

        try:
            with filepath.open('r', encoding='utf-8') as f:
                if filepath.suffix == '.json':
                    data = json.load(f)
                else:  # YAML
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to parse config file: {e}",
                context={"filepath": str(filepath), "error": str(e)}
            )

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Config file must contain a mapping at top level",
                context={"filepath": str(filepath)}
            )

        logger.debug("Loaded options from %s", filepath)
        return data

    @classmethod
    def load_from_file(cls, filepath: Path) -> TogglerConfig:
        """
        Load configuration from file

        Args:
            filepath: Path to config file (.yaml, .yml, or .json)

        Returns:
            TogglerConfig instance

        Raises:
            ConfigurationError: If file not found or invalid
        """
        return TogglerConfig.from_dict(cls.load_options(filepath))

    @classmethod
    def save_to_file(cls, config: TogglerConfig, filepath: Path):
        """
        Save configuration to file

        Args:
            config: TogglerConfig to save
            filepath: Path to save to (.yaml or .json)
        """
        filepath = Path(filepath)
        data = config.to_dict()
        # Widget handles are not serializable; only selector strings survive
        if not isinstance(data["root"], (str, type(None))):
            data["root"] = None

        filepath.parent.mkdir(parents=True, exist_ok=True)

        try:
            with filepath.open('w', encoding='utf-8') as f:
                if filepath.suffix == '.json':
                    json.dump(data, f, indent=2, ensure_ascii=False)
                else:  # YAML
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        except (OSError, TypeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to save config file: {e}",
                context={"filepath": str(filepath), "error": str(e)}
            )

    @classmethod
    def find_config_file(cls, search_paths: list[Path], stem: str = "theme_toggler") -> Optional[Path]:
        """
        Search for config file in multiple locations

        Args:
            search_paths: List of directories to search
            stem: File name without extension

        Returns:
            Path to first config file found, or None
        """
        for search_path in search_paths:
            for ext in cls.SUPPORTED_FORMATS:
                config_file = Path(search_path) / f"{stem}{ext}"
                if config_file.exists():
                    return config_file

        return None
