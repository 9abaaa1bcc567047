import os
import yaml
from typing import Dict, Any, Optional, List

from alnfeat.features.readers import FEATURE_FORMATS
from alnfeat.parallel.task_manager import POOL_TYPES

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "log_level": "INFO",
    "alignments": None,
    "query_features": None,
    "target_features": None,
    "feature_format": "bed",
    "feature_types": None,
    "max_indel_size": None,
    "output_file": None,
    "output_format": "tsv",
    "rejects_file": None,
    "workers": 1,
    "batch_size": 1000,
    "pool_type": "process",
    "progress": False,
}

# Input files checked for existence when set
INPUT_FILES: List[str] = ["alignments", "query_features", "target_features"]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
OUTPUT_FORMATS = ("tsv", "json")


class ConfigurationError(Exception):
    """Custom exception for configuration errors."""
    pass


class Config:
    """
    Manages configuration settings for a run.

    Settings come from the defaults, then an optional YAML file, then explicit
    overrides (typically command-line options). Only overrides that are not
    None replace earlier values.
    """
    def __init__(self):
        self._settings: Dict[str, Any] = DEFAULT_CONFIG.copy()

    def load(self, config_file: Optional[str] = None,
             overrides: Optional[Dict[str, Any]] = None,
             require_features: bool = True):
        """
        Loads configuration from a file and overrides, then validates it.

        Args:
            config_file: Optional path to a YAML configuration file.
            overrides: Values that replace file settings when not None.
            require_features: Whether at least one feature file is required.

        Raises:
            ConfigurationError: If the file is missing or unparseable, or the
                resulting settings are invalid.
        """
        # 1. Load from config file if specified
        if config_file:
            if not os.path.exists(config_file):
                raise ConfigurationError(f"Config file not found: {config_file}")
            try:
                with open(config_file, 'r') as f:
                    file_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Error parsing config file {config_file}: {e}")
            if file_config:
                if not isinstance(file_config, dict):
                    raise ConfigurationError(f"Config file {config_file} must contain a mapping")
                unknown = sorted(set(file_config) - set(DEFAULT_CONFIG))
                if unknown:
                    raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
                self._settings.update(file_config)

        # 2. Override with explicitly provided values
        if overrides:
            self._settings.update({key: value for key, value in overrides.items() if value is not None})

        # 3. Validate
        self._validate(require_features)

    def _validate(self, require_features: bool):
        """Checks required parameters, file existence and value ranges."""
        if self._settings.get("alignments") is None:
            raise ConfigurationError("Missing required configuration parameters: alignments")
        if require_features and not (self._settings.get("query_features") or self._settings.get("target_features")):
            raise ConfigurationError(
                "Missing required configuration parameters: query_features or target_features")

        for param in INPUT_FILES:
            filepath = self._settings.get(param)
            if filepath and not os.path.exists(filepath):
                raise ConfigurationError(f"Required file not found: {param} = {filepath}")

        self._check_choice("feature_format", FEATURE_FORMATS)
        self._check_choice("output_format", OUTPUT_FORMATS)
        self._check_choice("pool_type", POOL_TYPES)
        self._settings["log_level"] = str(self._settings["log_level"]).upper()
        self._check_choice("log_level", LOG_LEVELS)

        max_indel_size = self._settings.get("max_indel_size")
        if max_indel_size is not None:
            self._settings["max_indel_size"] = self._check_int("max_indel_size", minimum=0)
        self._settings["workers"] = self._check_int("workers", minimum=1)
        self._settings["batch_size"] = self._check_int("batch_size", minimum=1)

        progress = self._settings.get("progress")
        if not isinstance(progress, bool):
            raise ConfigurationError(f"progress must be true or false, got {progress!r}")

        feature_types = self._settings.get("feature_types")
        if isinstance(feature_types, str):
            self._settings["feature_types"] = [t for t in feature_types.split(',') if t]

    def _check_choice(self, key: str, choices):
        value = self._settings.get(key)
        if value not in choices:
            raise ConfigurationError(f"Invalid value for {key}: {value!r} (choose from {', '.join(choices)})")

    def _check_int(self, key: str, minimum: int) -> int:
        value = self._settings.get(key)
        if isinstance(value, bool):
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")
        if number != value and not isinstance(value, str):
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")
        if number < minimum:
            raise ConfigurationError(f"{key} must be >= {minimum}, got {number}")
        return number

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieves a configuration value."""
        return self._settings.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Retrieves all configuration settings."""
        return self._settings.copy()
