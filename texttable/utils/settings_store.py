#!/usr/bin/env python3
"""
JSON settings persistence.

Settings live in a single JSON object that is rewritten as a whole on
every save (last write wins). Loading is permissive: missing keys and
malformed files fall back to defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .config import ConfigManager, config as default_config
from .credentials import mask_api_key

logger = logging.getLogger(__name__)

KEY_API_KEY = "ApiKey"
KEY_DARK_MODE = "IsDarkMode"
KEY_SHOW_TOOLBAR = "ShowToolbar"
KEY_DRIVE_CREDENTIALS = "GoogleDriveCredentials"

ENV_API_KEY = "OPENAI_API_KEY"


class SettingsStore:
    """
    Reads and writes the application settings file.

    Attributes:
        settings_path: Location of settings.json
        api_key: In-memory API key ("" when unset)
        is_dark_mode: UI dark mode preference
        show_toolbar: UI toolbar preference
        google_drive_credentials: Opaque credential string
    """

    def __init__(
        self,
        settings_path: Optional[Path] = None,
        config_manager: Optional[ConfigManager] = None
    ):
        """
        Initialize store and load the settings file.

        Args:
            settings_path: Path to settings.json (default from configuration)
            config_manager: Configuration source for defaults
        """
        self.config = config_manager or default_config
        self.settings_path = Path(settings_path) if settings_path else self.config.get_settings_path()
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)

        self._reset_defaults()
        self.default_model: Optional[str] = None
        self.load_settings()

    def _reset_defaults(self) -> None:
        self.api_key = ""
        self.is_dark_mode = False
        self.show_toolbar = True
        self.google_drive_credentials = ""

    def load_settings(self) -> None:
        """Load settings from disk, falling back to defaults on any problem."""
        self._reset_defaults()

        if not self.settings_path.exists():
            logger.info(f"Settings file does not exist: {self.settings_path}")
            return

        try:
            data = self._read_file()
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading settings, using defaults: {e}")
            return

        api_key = data.get(KEY_API_KEY)
        if isinstance(api_key, str) and api_key.strip():
            self.api_key = api_key

        dark_mode = data.get(KEY_DARK_MODE)
        if isinstance(dark_mode, bool):
            self.is_dark_mode = dark_mode

        show_toolbar = data.get(KEY_SHOW_TOOLBAR)
        if isinstance(show_toolbar, bool):
            self.show_toolbar = show_toolbar

        credentials = data.get(KEY_DRIVE_CREDENTIALS)
        if isinstance(credentials, str):
            self.google_drive_credentials = credentials

        logger.info(
            f"Loaded settings from {self.settings_path} "
            f"(api key: {mask_api_key(self.api_key)}, dark mode: {self.is_dark_mode}, "
            f"toolbar: {self.show_toolbar})"
        )

    def get_api_key(self) -> str:
        """
        Resolve the API key.

        Lookup order: memory, settings file, OPENAI_API_KEY environment
        variable, configuration default. The first non-empty value wins
        and is cached in memory.

        Returns:
            str: The API key, or "" when no source has one
        """
        if self.api_key:
            return self.api_key

        if self.settings_path.exists():
            try:
                api_key = self._read_file().get(KEY_API_KEY)
                if isinstance(api_key, str) and api_key:
                    logger.info("Found API key in settings file")
                    self.api_key = api_key
                    return api_key
            except (OSError, ValueError) as e:
                logger.warning(f"Error reading settings file: {e}")

        env_api_key = os.getenv(ENV_API_KEY)
        if env_api_key:
            logger.info(f"Found API key in {ENV_API_KEY} environment variable")
            self.api_key = env_api_key
            return env_api_key

        configured = self.config.get_configured_api_key()
        if configured:
            logger.info("Found API key in configuration")
            self.api_key = configured
            return configured

        logger.info("No API key found in any source")
        return ""

    def save_api_key(self, api_key: str) -> None:
        """
        Persist an API key together with the current preferences.

        Raises:
            OSError: If the settings file cannot be written
        """
        self.api_key = api_key or ""
        self.save_settings()
        logger.info(f"API key saved ({mask_api_key(self.api_key)})")

    def clear_api_key(self) -> None:
        """
        Forget the API key in memory, in the settings file and in the
        OPENAI_API_KEY environment variable.
        """
        self.api_key = ""

        if self.settings_path.exists():
            try:
                data = self._read_file()
                data.pop(KEY_API_KEY, None)
                self._write_file(data)
                logger.info("API key cleared from settings file")
            except (OSError, ValueError) as e:
                logger.warning(f"Error clearing API key from settings: {e}")

        os.environ.pop(ENV_API_KEY, None)
        logger.info("API key has been completely cleared")

    def toggle_dark_mode(self) -> bool:
        """Flip dark mode, save, and return the new value."""
        self.is_dark_mode = not self.is_dark_mode
        self.save_settings()
        return self.is_dark_mode

    def toggle_toolbar(self) -> bool:
        """Flip toolbar visibility, save, and return the new value."""
        self.show_toolbar = not self.show_toolbar
        self.save_settings()
        return self.show_toolbar

    def save_google_drive_credentials(self, credentials: str) -> None:
        """
        Persist the Google Drive credential string.

        Raises:
            ValueError: If credentials is blank
        """
        if not credentials or not credentials.strip():
            raise ValueError("Credentials cannot be empty")
        self.google_drive_credentials = credentials
        self.save_settings()

    def get_default_model(self) -> str:
        """Model chosen for this process, or the configured default."""
        return self.default_model or self.config.get_default_model()

    def save_default_model(self, model: str) -> None:
        """
        Select the model for this process.

        The settings file schema has no model entry, so the choice is kept
        in memory only.

        Raises:
            ValueError: If model is blank
        """
        if not model or not model.strip():
            raise ValueError("Model name cannot be empty.")
        self.default_model = model.strip()

    def as_dict(self) -> Dict[str, Any]:
        """Settings as written to disk."""
        return {
            KEY_API_KEY: self.api_key,
            KEY_DARK_MODE: self.is_dark_mode,
            KEY_SHOW_TOOLBAR: self.show_toolbar,
            KEY_DRIVE_CREDENTIALS: self.google_drive_credentials,
        }

    def save_settings(self) -> None:
        """
        Write all settings to disk.

        Raises:
            OSError: If the settings file cannot be written
        """
        try:
            self._write_file(self.as_dict())
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            raise

    def _read_file(self) -> Dict[str, Any]:
        """
        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not a JSON object
        """
        with open(self.settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected JSON object, got {type(data).__name__}")
        return data

    def _write_file(self, data: Dict[str, Any]) -> None:
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.settings_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
