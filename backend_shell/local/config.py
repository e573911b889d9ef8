import json
import shlex
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

import backend_shell.settings as default_settings

log = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a setting holds a value the application cannot use."""


class MergedSettings:
    """
    Merges default settings with JSON/env overrides.

    This class provides a unified, attribute-based access point for all
    application configuration. It follows a clear precedence:
    1. Base values from `settings.py`.
    2. Overrides from `.env` file (handled by `python-dotenv` in settings.py).
    3. Overrides from `overrides.json` for settings in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        """
        Initializes the settings object by loading defaults and overrides.

        :param overrides_path: Alternative overrides file, mostly for tests.
        """
        self._load_defaults()
        if overrides_path is not None:
            self.OVERRIDES_JSON_PATH = Path(overrides_path)
        self._load_overrides()

    def _load_defaults(self) -> None:
        """
        Loads all uppercase attributes from the settings.py module as defaults.
        """
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def _load_overrides(self) -> None:
        """
        Loads and applies settings from the `overrides.json` file.

        It will only apply overrides for keys that are explicitly listed in
        the `MODIFIABLE_SETTINGS` set in `settings.py`.
        """
        if not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)

            log.info(f"Loading runtime configuration overrides from {self.OVERRIDES_JSON_PATH}")
            for key, value in overrides.items():
                if hasattr(self, key):
                    if key not in self.MODIFIABLE_SETTINGS:
                        log.warning(
                            f"Attempted to override non-modifiable setting '{key}'. Ignoring."
                        )
                        continue

                    # Coerce path strings back to Path objects if necessary
                    original_value = getattr(self, key)
                    if isinstance(original_value, Path):
                        setattr(self, key, Path(value))
                    else:
                        setattr(self, key, value)
                    log.debug(f"Overridden setting: {key} = {value}")
                else:
                    log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
        except (json.JSONDecodeError, IOError) as e:
            log.error(
                f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}"
            )

    def get(self, item: str, default: Any = None) -> Any:
        """Provides dictionary-like access to settings with a default value."""
        return getattr(self, item, default)

    def set(self, key: str, value: Any) -> None:
        """
        Updates a modifiable setting in memory, coercing it to the type of the default.

        :param key: The setting name.
        :param value: The new value, usually a string typed at the console.
        :raises ConfigurationError: If the key is not modifiable or the value cannot be coerced.
        """
        if key not in self.MODIFIABLE_SETTINGS:
            raise ConfigurationError(f"Setting '{key}' is not modifiable.")
        original_value = getattr(self, key, None)
        try:
            if isinstance(original_value, bool):
                new_value = str(value).lower() in ('true', '1', 't', 'yes', 'y')
            elif isinstance(original_value, (list, tuple)):
                # Argument vectors loaded from overrides.json stay vectors.
                new_value = shlex.split(value) if isinstance(value, str) else list(value)
            elif original_value is not None:
                new_value = type(original_value)(value)
            else:
                new_value = value
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Could not convert value '{value}' for key '{key}': {e}") from e
        setattr(self, key, new_value)

    def modifiable_items(self) -> Dict[str, Any]:
        """Returns the current value of every modifiable setting."""
        return {key: getattr(self, key, None) for key in sorted(self.MODIFIABLE_SETTINGS)}

    def backend_arguments(self) -> List[str]:
        """Splits the BACKEND_ARGS string into an argument vector."""
        raw = self.BACKEND_ARGS
        if isinstance(raw, (list, tuple)):
            return [str(arg) for arg in raw]
        try:
            return shlex.split(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid BACKEND_ARGS '{raw}': {e}") from e

    def launch_timeout(self) -> Optional[float]:
        """Returns the backend deadline in seconds, or None when disabled."""
        try:
            timeout = float(self.BACKEND_LAUNCH_TIMEOUT)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid BACKEND_LAUNCH_TIMEOUT '{self.BACKEND_LAUNCH_TIMEOUT}': {e}"
            ) from e
        return timeout if timeout > 0 else None

    def save_overrides(self, overrides_to_save: Dict[str, Any]) -> None:
        """
        Saves the provided dictionary of settings to the overrides JSON file.

        Only keys present in `MODIFIABLE_SETTINGS` are persisted.

        :param overrides_to_save: A dictionary of settings to persist.
        """
        filtered_overrides = {
            key: str(value) if isinstance(value, Path) else value
            for key, value in overrides_to_save.items()
            if key in self.MODIFIABLE_SETTINGS
        }

        if not filtered_overrides:
            log.warning("No modifiable settings provided to save.")
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('w') as f:
                json.dump(filtered_overrides, f, indent=4)
            log.info(
                f"Configuration overrides saved to {self.OVERRIDES_JSON_PATH}"
            )
        except IOError as e:
            log.error(
                f"Failed to write to overrides file '{self.OVERRIDES_JSON_PATH}': {e}"
            )

# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
