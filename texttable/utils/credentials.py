#!/usr/bin/env python3
"""
API credential holder.

The CredentialHolder is the only place an API key is stored or replaced.
Services receive the holder and read the current credential from it; a
rejected key always leaves the holder empty.
"""

import base64
import hashlib
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk-"
MIN_API_KEY_LENGTH = 32


@dataclass(frozen=True)
class ApiCredential:
    """
    An accepted API key and its fingerprint.

    Attributes:
        key: The raw API key
        fingerprint: Base64 SHA-256 digest of the key
    """
    key: str = field(repr=False)
    fingerprint: str = ""

    @classmethod
    def from_key(cls, key: str) -> "ApiCredential":
        return cls(key=key, fingerprint=hash_api_key(key))

    def masked(self) -> str:
        """Key with everything but the last 4 characters hidden."""
        return mask_api_key(self.key)


def hash_api_key(api_key: str) -> str:
    """Base64-encoded SHA-256 digest of an API key."""
    digest = hashlib.sha256(api_key.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def mask_api_key(api_key: Optional[str]) -> str:
    """Mask an API key for display and logging."""
    if not api_key:
        return "Not set"
    visible = api_key[-4:] if len(api_key) > 8 else ""
    return f"{'*' * max(len(api_key) - len(visible), 0)}{visible}"


def is_valid_api_key(api_key: Optional[str]) -> bool:
    """
    Check the basic shape of an API key.

    A valid key is non-blank, at least MIN_API_KEY_LENGTH characters long
    and starts with API_KEY_PREFIX.
    """
    return (
        bool(api_key)
        and bool(api_key.strip())
        and len(api_key) >= MIN_API_KEY_LENGTH
        and api_key.startswith(API_KEY_PREFIX)
    )


class CredentialHolder:
    """Holds at most one accepted API credential."""

    def __init__(self):
        self._credential: Optional[ApiCredential] = None
        self.lock = Lock()

    @property
    def current(self) -> Optional[ApiCredential]:
        """The active credential, or None."""
        with self.lock:
            return self._credential

    @property
    def is_set(self) -> bool:
        return self.current is not None

    def set(self, api_key: str) -> ApiCredential:
        """
        Validate and store an API key, replacing any previous one.

        Args:
            api_key: Key to store

        Returns:
            The stored credential

        Raises:
            ValueError: If the key is malformed; the holder is left empty
        """
        with self.lock:
            self._credential = None
            if not is_valid_api_key(api_key):
                logger.warning("Rejected malformed API key, credential cleared")
                raise ValueError(
                    f"Invalid API key: expected a key starting with '{API_KEY_PREFIX}' "
                    f"of at least {MIN_API_KEY_LENGTH} characters"
                )
            self._credential = ApiCredential.from_key(api_key)
            logger.info(f"API key set ({self._credential.masked()})")
            return self._credential

    def clear(self) -> None:
        """Forget the active credential."""
        with self.lock:
            had_credential = self._credential is not None
            self._credential = None
        if had_credential:
            logger.info("API key cleared from memory")
