#!/usr/bin/env python3
"""
Single-flight guard and cancellation tokens.

At most one operation may be in flight per logical slot (for example
"convert" or "file"). A second request for a busy slot is rejected
instead of racing the first one into the same state.
"""

import logging
from contextlib import contextmanager
from threading import Event, Lock
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class OperationCancelledError(Exception):
    """Raised when work is abandoned because its token was cancelled."""


class OperationInProgressError(RuntimeError):
    """Raised when a slot is already held by another operation."""

    def __init__(self, key: str):
        super().__init__(f"Operation '{key}' is already in progress")
        self.key = key


class CancellationToken:
    """Cooperative cancellation flag shared between caller and worker."""

    def __init__(self):
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            OperationCancelledError: If cancel() has been called
        """
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")


class SingleFlightGuard:
    """Per-key, non-blocking mutual exclusion with cancellation."""

    def __init__(self):
        self.lock = Lock()
        self._in_flight: Dict[str, CancellationToken] = {}

    def try_acquire(self, key: str) -> Optional[CancellationToken]:
        """
        Claim a slot.

        Args:
            key: Slot name

        Returns:
            A fresh CancellationToken, or None if the slot is busy
        """
        with self.lock:
            if key in self._in_flight:
                logger.info(f"Slot '{key}' busy, request rejected")
                return None
            token = CancellationToken()
            self._in_flight[key] = token
            return token

    def release(self, key: str) -> None:
        """Free a slot. Releasing a free slot is a no-op."""
        with self.lock:
            self._in_flight.pop(key, None)

    def in_flight(self, key: str) -> bool:
        with self.lock:
            return key in self._in_flight

    def active_keys(self) -> List[str]:
        """Slots currently held."""
        with self.lock:
            return list(self._in_flight)

    def cancel(self, key: str) -> bool:
        """
        Cancel the operation holding a slot.

        Returns:
            True if an operation was signalled
        """
        with self.lock:
            token = self._in_flight.get(key)
        if token is None:
            return False
        token.cancel()
        logger.info(f"Cancellation requested for '{key}'")
        return True

    def cancel_all(self) -> int:
        """Cancel every in-flight operation; returns how many were signalled."""
        with self.lock:
            tokens = list(self._in_flight.values())
        for token in tokens:
            token.cancel()
        return len(tokens)

    @contextmanager
    def slot(self, key: str) -> Iterator[CancellationToken]:
        """
        Hold a slot for the duration of a with-block.

        Raises:
            OperationInProgressError: If the slot is busy
        """
        token = self.try_acquire(key)
        if token is None:
            raise OperationInProgressError(key)
        try:
            yield token
        finally:
            self.release(key)
