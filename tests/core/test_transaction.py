"""
Tests for the rollback guard.
"""

import signal
from unittest.mock import MagicMock

import pytest

from sdkmanage.core.transaction import (
    Interrupted,
    Transaction,
    install_signal_handlers,
    signals_blocked,
)


class TestTransaction:
    """Test Transaction commit/rollback behavior."""

    def test_commit_disarms(self):
        """Test committed transactions run no undo actions."""
        undo = MagicMock()

        with Transaction("test") as txn:
            txn.on_rollback("undo", undo)
            txn.commit()

        undo.assert_not_called()
        assert txn.committed
        assert not txn.rolled_back

    def test_exception_rolls_back_in_reverse_order(self):
        """Test undo actions run last-registered first."""
        order = []

        with pytest.raises(RuntimeError):
            with Transaction("test") as txn:
                txn.on_rollback("first", order.append, 1)
                txn.on_rollback("second", order.append, 2)
                raise RuntimeError("boom")

        assert order == [2, 1]
        assert txn.rolled_back

    def test_keyboard_interrupt_rolls_back(self):
        """Test interrupts unwind through the guard."""
        undo = MagicMock()

        with pytest.raises(KeyboardInterrupt):
            with Transaction("test") as txn:
                txn.on_rollback("undo", undo, "arg")
                raise KeyboardInterrupt

        undo.assert_called_once_with("arg")

    def test_missing_commit_rolls_back(self, caplog):
        """Test leaving the block normally without commit still rolls back."""
        undo = MagicMock()

        with Transaction("forgetful") as txn:
            txn.on_rollback("undo", undo)

        undo.assert_called_once()
        assert "without commit" in caplog.text

    def test_failing_step_does_not_stop_rollback(self, caplog):
        """Test every undo action runs even if one fails."""
        later = MagicMock()

        with pytest.raises(ValueError):
            with Transaction("test") as txn:
                txn.on_rollback("later", later)
                txn.on_rollback("broken", MagicMock(side_effect=OSError("nope")))
                raise ValueError

        later.assert_called_once()
        assert "broken" in caplog.text

    def test_rollback_runs_once(self):
        """Test rollback() is idempotent."""
        undo = MagicMock()
        txn = Transaction("test")
        txn.on_rollback("undo", undo)

        txn.rollback()
        txn.rollback()

        undo.assert_called_once()

    def test_signals_ignored_during_rollback(self):
        """Test SIGINT is ignored while undo actions run."""
        seen = []

        def record():
            seen.append(signal.getsignal(signal.SIGINT))

        txn = Transaction("test")
        txn.on_rollback("record", record)
        previous = signal.getsignal(signal.SIGINT)

        txn.rollback()

        assert seen == [signal.SIG_IGN]
        assert signal.getsignal(signal.SIGINT) == previous


class TestSignals:
    """Test signal helpers."""

    def test_signals_blocked_restores_handlers(self):
        """Test handlers are restored after the block."""
        previous = signal.getsignal(signal.SIGTERM)

        with signals_blocked():
            assert signal.getsignal(signal.SIGTERM) == signal.SIG_IGN

        assert signal.getsignal(signal.SIGTERM) == previous

    def test_sigterm_raises_interrupted(self):
        """Test SIGTERM becomes a KeyboardInterrupt after installation."""
        previous = signal.getsignal(signal.SIGTERM)
        try:
            install_signal_handlers()
            handler = signal.getsignal(signal.SIGTERM)
            with pytest.raises(KeyboardInterrupt) as exc_info:
                handler(signal.SIGTERM, None)
            assert isinstance(exc_info.value, Interrupted)
            assert exc_info.value.signum == signal.SIGTERM
        finally:
            signal.signal(signal.SIGTERM, previous)
            signal.signal(signal.SIGHUP, signal.SIG_DFL)
