"""
Configuration service for SnapInk application.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/snapink/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from snapink.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "snapink"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    # Suggested folder for the "Save as" dialog
    "default_save_folder": str(Path.home() / "Pictures" / "SnapInk"),
    # Global hotkeys, one "modifier+key" chord per action
    "hotkeys": {
        "Copy": "ctrl+c",
        "Save": "ctrl+s",
        "Take": "ctrl+t",
        "None": "ctrl+n",
        "Pen": "ctrl+p",
        "Crop": "ctrl+x",
        "Undo": "ctrl+z",
        "Redo": "ctrl+y",
    },
    "pen": {
        # Linear RGB, 0.0 - 1.0 per channel
        "color": [0.9, 0.3, 0.24],
        "size": 1,
    },
    "capture": {
        "display": 0,
        # Seconds before the grab; the settle margin is added on top
        "delay": 0.0,
    },
    # Maximum number of undo checkpoints kept per session (null = unbounded)
    "history_limit": 50,
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/snapink/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def path(self) -> Path:
        """Path of the backing config file."""
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any default keys the file was missing
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Export Settings ──────────────────────────────────────────────────

    @property
    def default_save_folder(self) -> str:
        """Get the default save folder for snapshots."""
        return self.get("default_save_folder", DEFAULT_CONFIG["default_save_folder"])

    # ─── Hotkey Settings ──────────────────────────────────────────────────

    @property
    def hotkeys(self) -> Dict[str, str]:
        """Get all hotkey configurations, keyed by action label."""
        return dict(self.get("hotkeys", DEFAULT_CONFIG["hotkeys"]))

    def set_hotkeys(self, hotkeys: Dict[str, str]) -> None:
        """Replace the hotkey configuration (in memory only)."""
        self.set("hotkeys", dict(hotkeys))

    # ─── Pen Settings ─────────────────────────────────────────────────────

    @property
    def pen_color(self) -> Tuple[float, float, float]:
        """Get the pen color as linear RGB floats."""
        pen = self.get("pen", DEFAULT_CONFIG["pen"])
        red, green, blue = pen.get("color", DEFAULT_CONFIG["pen"]["color"])
        return (float(red), float(green), float(blue))

    @property
    def pen_size(self) -> int:
        """Get the pen radius in pixels."""
        pen = self.get("pen", DEFAULT_CONFIG["pen"])
        return int(pen.get("size", DEFAULT_CONFIG["pen"]["size"]))

    # ─── Capture Settings ─────────────────────────────────────────────────

    @property
    def capture_display(self) -> int:
        """Get the index of the display to capture."""
        capture = self.get("capture", DEFAULT_CONFIG["capture"])
        return int(capture.get("display", 0))

    @property
    def capture_delay(self) -> float:
        """Get the selected capture delay in seconds."""
        capture = self.get("capture", DEFAULT_CONFIG["capture"])
        return float(capture.get("delay", 0.0))

    # ─── History Settings ─────────────────────────────────────────────────

    @property
    def history_limit(self) -> Optional[int]:
        """Get the maximum undo depth, or None for unbounded history."""
        limit = self.get("history_limit", DEFAULT_CONFIG["history_limit"])
        if limit is None:
            return None
        limit = int(limit)
        if limit < 1:
            self._logger.warning(
                f"history_limit must be at least 1, got {limit}. Using 1."
            )
            return 1
        return limit
