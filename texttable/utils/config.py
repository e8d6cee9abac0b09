#!/usr/bin/env python3
"""
Shared configuration utility for the TextTable converter.

Provides flexible .env file discovery and typed access to the
application's configuration values.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv
from typing import Optional

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env.texttable"
APP_DIR_NAME = "TextTableConverter"


class ConfigManager:
    """
    Centralized configuration management for the TextTable converter.

    Features:
    - Flexible .env file discovery (current dir + up to 2 parent dirs)
    - Application defaults for the OpenAI client and settings file
    """

    def __init__(self):
        self._env_loaded = False
        self._env_path: Optional[Path] = None
        self.load_environment()

    def load_environment(self) -> bool:
        """
        Search for and load the .env.texttable file.

        Search order:
        1. Current working directory
        2. One level up (parent directory)
        3. Two levels up (grandparent directory)

        Returns:
            bool: True if the file was found and loaded, False otherwise
        """
        if self._env_loaded:
            return True

        search_paths = [
            Path.cwd(),
            Path.cwd().parent,
            Path.cwd().parent.parent
        ]

        for search_path in search_paths:
            env_file = search_path / ENV_FILE_NAME
            if env_file.exists() and env_file.is_file():
                logger.info(f"Loading {ENV_FILE_NAME} from: {env_file}")
                load_dotenv(env_file, override=True)
                self._env_path = env_file
                self._env_loaded = True
                return True

        logger.debug(f"No {ENV_FILE_NAME} file found in current directory or up to 2 parent directories")
        return False

    def get_configured_api_key(self) -> str:
        """
        Application-default OpenAI API key.

        This is the last source in the API key lookup chain, after the
        settings file and the OPENAI_API_KEY environment variable.

        Returns:
            str: The configured key, or "" when none is configured
        """
        return os.getenv("texttable_openai_api_key", "")

    def get_default_model(self) -> str:
        """
        Get the default OpenAI chat model.

        Returns:
            str: Model name (default: gpt-4o-mini)
        """
        return os.getenv("texttable_default_model", "gpt-4o-mini")

    def get_settings_dir(self) -> Path:
        """
        Directory holding settings.json.

        Uses texttable_settings_dir when set, otherwise
        <APPDATA or ~/.config>/TextTableConverter.

        Returns:
            Path: Settings directory (not created here)
        """
        configured = os.getenv("texttable_settings_dir")
        if configured:
            return Path(configured)
        base = os.getenv("APPDATA") or str(Path.home() / ".config")
        return Path(base) / APP_DIR_NAME

    def get_settings_path(self) -> Path:
        """Full path of the settings file."""
        return self.get_settings_dir() / "settings.json"

    def get_request_timeout(self) -> float:
        """OpenAI request timeout in seconds."""
        return self.get_env_float("texttable_request_timeout", 60.0)

    def get_max_retries(self) -> int:
        """Maximum OpenAI call attempts."""
        return self.get_env_int("texttable_max_retries", 3)

    def get_budget_usd(self) -> Optional[float]:
        """Spend at which a budget warning is logged, or None."""
        value = os.getenv("texttable_budget_usd")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid texttable_budget_usd in .env, budget disabled")
            return None

    def print_config_summary(self) -> None:
        """Print a summary of current configuration for debugging."""
        from .credentials import mask_api_key

        print("\n=== Configuration Summary ===")
        print(f"Environment file: {self._env_path or 'Not found'}")
        print(f"Environment loaded: {self._env_loaded}")
        print(f"Settings file: {self.get_settings_path()}")
        print(f"Default model: {self.get_default_model()}")
        print(f"Request timeout: {self.get_request_timeout()}s")
        print(f"Max retries: {self.get_max_retries()}")

        # Don't print the actual API keys for security
        print(f"OPENAI_API_KEY: {mask_api_key(os.getenv('OPENAI_API_KEY'))}")
        print(f"Configured API key: {mask_api_key(self.get_configured_api_key())}")
        print("==============================\n")

    def get_env_string(self, key: str, default: str = None) -> str:
        """Environment variable as a string, or default when unset."""
        return os.getenv(key, default)

    def get_env_int(self, key: str, default: int) -> int:
        """Environment variable as an int; default when unset or not an integer."""
        return self._get_env_number(key, default, int)

    def get_env_float(self, key: str, default: float) -> float:
        """Environment variable as a float; default when unset or not a number."""
        return self._get_env_number(key, default, float)

    def _get_env_number(self, key: str, default, cast):
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return cast(value)
        except ValueError:
            logger.warning(f"Invalid {cast.__name__} value for {key}, using default {default}")
            return default


# Global singleton instance for easy import
config = ConfigManager()


def get_default_model() -> str:
    """Convenience function to get the default OpenAI model."""
    return config.get_default_model()


def get_settings_path() -> Path:
    """Convenience function to get the settings file path."""
    return config.get_settings_path()


def get_env_string(key: str, default: str = None) -> str:
    """Convenience function for reading a string setting from the environment."""
    return config.get_env_string(key, default)


if __name__ == "__main__":
    config.print_config_summary()
