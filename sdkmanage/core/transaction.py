"""
Rollback guard for transactional install workflows.

A workflow opens a Transaction, registers an undo action for every piece of
shared state it creates, and commits once the last step succeeded. Leaving
the ``with`` block any other way (exception, KeyboardInterrupt raised by a
signal, SystemExit) runs the undo actions in reverse order.

Usage:
    from sdkmanage.core.transaction import Transaction

    with Transaction("install tooling foo") as txn:
        txn.on_rollback(f"remove {tooling_dir}", fs.remove_tree, tooling_dir)
        fs.makedirs(tooling_dir)
        fs.unpack(archive, tooling_dir)
        txn.commit()
"""

import logging
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)

# Signals that must not interrupt an ongoing rollback
ROLLBACK_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP")
    if hasattr(signal, name)
)


class Interrupted(KeyboardInterrupt):
    """Raised from a signal handler installed by install_signal_handlers()."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Interrupted by signal {signum}")


def _raise_interrupted(signum, frame):
    raise Interrupted(signum)


def install_signal_handlers() -> None:
    """
    Turn SIGTERM and SIGHUP into KeyboardInterrupt-style exceptions.

    SIGINT already raises KeyboardInterrupt. With these handlers installed
    any external cancellation unwinds through open transactions.
    """
    if threading.current_thread() is not threading.main_thread():
        return
    for name in ("SIGTERM", "SIGHUP"):
        if hasattr(signal, name):
            signal.signal(getattr(signal, name), _raise_interrupted)


@contextmanager
def signals_blocked():
    """Ignore interrupting signals for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {}
    for signum in ROLLBACK_SIGNALS:
        previous[signum] = signal.signal(signum, signal.SIG_IGN)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@dataclass
class RollbackAction:
    """A single registered undo step."""

    description: str
    func: Callable[..., Any]
    args: Tuple[Any, ...]


class Transaction:
    """
    Rollback guard disarmed only by an explicit commit().

    Attributes:
        name: Human readable description used in log messages
        committed: Whether commit() was called
        rolled_back: Whether rollback actions were executed
    """

    def __init__(self, name: str):
        self.name = name
        self.committed = False
        self.rolled_back = False
        self._actions: List[RollbackAction] = []

    def __enter__(self) -> "Transaction":
        logger.debug(f"Begin: {self.name}")
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None and not self.committed:
            logger.warning(f"{self.name}: finished without commit, rolling back")
        if not self.committed:
            self.rollback()
        return False

    def on_rollback(self, description: str, func: Callable[..., Any], *args) -> None:
        """Register an undo action; actions run last-registered first."""
        self._actions.append(RollbackAction(description, func, args))

    def commit(self) -> None:
        """Disarm the guard: registered actions will not run."""
        self.committed = True
        self._actions.clear()
        logger.debug(f"Committed: {self.name}")

    def rollback(self) -> None:
        """Run all registered undo actions, shielded from interrupts."""
        if self.rolled_back:
            return
        self.rolled_back = True
        if not self._actions:
            return

        logger.info(f"Rolling back: {self.name}")
        with signals_blocked():
            while self._actions:
                action = self._actions.pop()
                try:
                    logger.debug(f"Rollback: {action.description}")
                    action.func(*action.args)
                except Exception as e:
                    logger.warning(f"Rollback step '{action.description}' failed: {e}")
