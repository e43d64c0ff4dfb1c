"""
Configuration management for the check-in leaderboard.
Supports both JSON file configuration and environment variable overrides.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Tuple


def _to_bool(value: str) -> bool:
    """
    Convert an environment variable string to a boolean.

    @param value: String value from environment variable
    @return: True for "true", "1", "yes", "on" (case-insensitive), else False
    """
    return value.strip().lower() in ("true", "1", "yes", "on")


class CheckinConfig:
    """Configuration management for the check-in leaderboard."""

    DEFAULT_CONFIG = {
        "board_name": "Check-in Leaderboard",
        "scanning": {
            "dedup_by_origin": True,  # one credited scan per (entry, origin)
            "trust_forwarded_for": False,
        },
        "admin": {
            "password": "",
            "open": False,  # with no password, allow admin routes for everyone
            "header": "X-Admin-Password",
        },
        "artifact": {
            "qr_size": 400,
            "margin": 2,
            "name_height": 60,
            "padding": 20,
            "show_name": True,
            "font_path": "",
            "font_size": 32,
        },
        "cache": {
            "leaderboard_ttl": 30,
        },
        "database": {
            "busy_timeout": 5.0,
        },
    }

    ENV_MAPPINGS: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
        "BOARD_NAME": (("board_name",), str),
        # Scanning
        "DEDUP_BY_ORIGIN": (("scanning", "dedup_by_origin"), _to_bool),
        "TRUST_FORWARDED_FOR": (("scanning", "trust_forwarded_for"), _to_bool),
        # Admin
        "ADMIN_PASSWORD": (("admin", "password"), str),
        "ADMIN_HEADER": (("admin", "header"), str),
        "ADMIN_OPEN": (("admin", "open"), _to_bool),
        # Artifact
        "QR_SIZE": (("artifact", "qr_size"), int),
        "QR_MARGIN": (("artifact", "margin"), int),
        "QR_NAME_HEIGHT": (("artifact", "name_height"), int),
        "QR_PADDING": (("artifact", "padding"), int),
        "QR_SHOW_NAME": (("artifact", "show_name"), _to_bool),
        "QR_FONT_PATH": (("artifact", "font_path"), str),
        "QR_FONT_SIZE": (("artifact", "font_size"), int),
        # Storage
        "LEADERBOARD_CACHE_TTL": (("cache", "leaderboard_ttl"), int),
        "DB_BUSY_TIMEOUT": (("database", "busy_timeout"), float),
    }

    def __init__(
        self,
        config_path: str = "checkin_config.json",
    ) -> None:
        """Initialize configuration from file, environment variables, or defaults."""
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._apply_env_overrides()
        self._validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from JSON file or create default.

        @return: Dictionary containing the loaded configuration
        """
        config = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    loaded_config = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                print(f"Error loading config from {self.config_path}: {e}")
                print("Using default configuration")
                return config

            if isinstance(loaded_config, dict):
                self._deep_merge(config, loaded_config)
            else:
                print(f"Config file {self.config_path} is not a JSON object, ignoring it")
        else:
            self._create_default_config()

        return config

    def _deep_merge(
        self,
        base_dict: Dict[str, Any],
        update_dict: Dict[str, Any],
    ) -> None:
        """
        Recursively merge dictionaries.

        @param base_dict: Base dictionary to merge into
        @param update_dict: Dictionary with updates to merge
        """
        for key, value in update_dict.items():
            if (
                key in base_dict
                and isinstance(base_dict[key], dict)
                and isinstance(value, dict)
            ):
                self._deep_merge(base_dict[key], value)
            else:
                base_dict[key] = value

    def _apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to configuration.

        Values that cannot be converted to the declared type are ignored
        with a warning.
        """
        for env_var, (config_path, converter) in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is None:
                continue

            try:
                converted_value = converter(env_value)
            except ValueError:
                print(f"Warning: Ignoring invalid value for {env_var}: {env_value!r}")
                continue

            self._set_nested_config(config_path, converted_value)

    def _set_nested_config(self, path: Tuple[str, ...], value: Any) -> None:
        """
        Set a nested configuration value using a path tuple.

        @param path: Tuple representing the nested path (e.g., ("admin", "password"))
        @param value: Value to set
        """
        current = self.config
        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def _create_default_config(self) -> None:
        """
        Create a default configuration file.

        Writes the default configuration to the configured file path.
        """
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.DEFAULT_CONFIG, f, indent=2)
            print(f"Created default configuration file: {self.config_path}")
        except IOError as e:
            print(f"Could not create config file {self.config_path}: {e}")

    def _validate_positive(self, section: str, key: str) -> None:
        value = self.config[section][key]
        default = self.DEFAULT_CONFIG[section][key]

        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            print(f"Warning: Invalid {key}, using {default}")
            self.config[section][key] = default

    def _validate_config(self) -> None:
        """
        Validate configuration values.

        Checks configuration values for validity and sets defaults for invalid values.
        """
        for section in ("scanning", "admin", "artifact", "cache", "database"):
            if not isinstance(self.config.get(section), dict):
                print(f"Warning: Invalid {section} section, using defaults")
                self.config[section] = copy.deepcopy(self.DEFAULT_CONFIG[section])

        for key in ("dedup_by_origin", "trust_forwarded_for"):
            if not isinstance(self.config["scanning"].get(key), bool):
                default = self.DEFAULT_CONFIG["scanning"][key]
                print(f"Warning: Invalid {key}, using {default}")
                self.config["scanning"][key] = default

        if not isinstance(self.config["admin"].get("password"), str):
            print("Warning: admin password must be a string, ignoring it")
            self.config["admin"]["password"] = ""

        if not isinstance(self.config["admin"].get("open"), bool):
            print("Warning: Invalid admin open flag, using False")
            self.config["admin"]["open"] = False

        header = self.config["admin"].get("header")
        if not isinstance(header, str) or not header.strip():
            print("Warning: Invalid admin header, using 'X-Admin-Password'")
            self.config["admin"]["header"] = "X-Admin-Password"

        for key in ("qr_size", "name_height", "padding", "font_size"):
            self._validate_positive("artifact", key)
        self._validate_positive("database", "busy_timeout")

        margin = self.config["artifact"].get("margin")
        if isinstance(margin, bool) or not isinstance(margin, int) or margin < 0:
            print("Warning: Invalid margin, using 2")
            self.config["artifact"]["margin"] = 2

        ttl = self.config["cache"].get("leaderboard_ttl")
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
            print("Warning: Invalid leaderboard_ttl, using 30")
            self.config["cache"]["leaderboard_ttl"] = 30

    def get(
        self,
        *keys: str,
    ) -> Any:
        """
        Get nested configuration value.

        @param keys: Variable arguments representing nested keys to traverse
        @return: Configuration value at the specified path, None if not found
        """
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return None
        return value

    @property
    def dedup_by_origin(self) -> bool:
        """Whether repeat scans from the same origin are ignored."""
        return self.get("scanning", "dedup_by_origin") is True

    @property
    def admin_password(self) -> str:
        return self.get("admin", "password") or ""

    @property
    def admin_open(self) -> bool:
        """Whether admin routes are open to everyone when no password is set."""
        return self.get("admin", "open") is True

    def is_admin_enabled(self) -> bool:
        """
        Check if the privileged mode is active.

        @return: True when an admin password is configured
        """
        return bool(self.admin_password)

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        @return: True if saved successfully, False on error
        """
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.config, f, indent=2)
            return True
        except IOError as e:
            print(f"Could not save config file {self.config_path}: {e}")
            return False
