#!/usr/bin/env python3
"""Tests for the single-flight guard and cancellation tokens."""

import threading

import pytest
from texttable.utils.single_flight import (
    CancellationToken,
    OperationCancelledError,
    OperationInProgressError,
    SingleFlightGuard,
)


class TestCancellationToken:
    """Test cooperative cancellation."""

    def test_not_cancelled_initially(self):
        token = CancellationToken()
        assert token.is_cancelled is False
        token.raise_if_cancelled()

    def test_cancel(self):
        """Test cancel() makes raise_if_cancelled raise."""
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled is True
        with pytest.raises(OperationCancelledError):
            token.raise_if_cancelled()


class TestSingleFlightGuard:
    """Test per-key non-blocking exclusion."""

    def test_acquire_and_release(self):
        guard = SingleFlightGuard()
        token = guard.try_acquire("convert")
        assert token is not None
        assert guard.in_flight("convert")
        guard.release("convert")
        assert not guard.in_flight("convert")

    def test_busy_slot_rejected(self):
        """Test a second acquire of the same key returns None."""
        guard = SingleFlightGuard()
        guard.try_acquire("convert")
        assert guard.try_acquire("convert") is None

    def test_independent_keys(self):
        """Test different keys do not block each other."""
        guard = SingleFlightGuard()
        assert guard.try_acquire("convert") is not None
        assert guard.try_acquire("file") is not None
        assert sorted(guard.active_keys()) == ["convert", "file"]

    def test_release_free_slot_is_noop(self):
        guard = SingleFlightGuard()
        guard.release("missing")
        assert guard.active_keys() == []

    def test_fresh_token_after_release(self):
        """Test a cancelled token does not leak into the next acquisition."""
        guard = SingleFlightGuard()
        first = guard.try_acquire("convert")
        guard.cancel("convert")
        guard.release("convert")
        second = guard.try_acquire("convert")
        assert first.is_cancelled
        assert not second.is_cancelled

    def test_cancel_signals_token(self):
        guard = SingleFlightGuard()
        token = guard.try_acquire("convert")
        assert guard.cancel("convert") is True
        assert token.is_cancelled

    def test_cancel_free_slot(self):
        assert SingleFlightGuard().cancel("convert") is False

    def test_cancel_all(self):
        """Test every in-flight token is signalled."""
        guard = SingleFlightGuard()
        tokens = [guard.try_acquire("a"), guard.try_acquire("b")]
        assert guard.cancel_all() == 2
        assert all(token.is_cancelled for token in tokens)

    def test_slot_context_manager(self):
        """Test slot() holds the key for the with-block."""
        guard = SingleFlightGuard()
        with guard.slot("file") as token:
            assert isinstance(token, CancellationToken)
            assert guard.in_flight("file")
        assert not guard.in_flight("file")

    def test_slot_busy_raises(self):
        guard = SingleFlightGuard()
        with guard.slot("file"):
            with pytest.raises(OperationInProgressError, match="'file' is already in progress"):
                with guard.slot("file"):
                    pass

    def test_slot_released_on_error(self):
        """Test the slot is freed when the block raises."""
        guard = SingleFlightGuard()
        with pytest.raises(RuntimeError):
            with guard.slot("file"):
                raise RuntimeError("boom")
        assert not guard.in_flight("file")

    def test_concurrent_acquire_single_winner(self):
        """Test only one of many racing threads gets the slot."""
        guard = SingleFlightGuard()
        barrier = threading.Barrier(8)
        winners = []

        def worker():
            barrier.wait()
            if guard.try_acquire("convert") is not None:
                winners.append(threading.get_ident())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
