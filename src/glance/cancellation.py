# SPDX-License-Identifier: AGPL-3.0-or-later
"""Cooperative cancellation shared by the dispatcher and every analyzer loop."""

from __future__ import annotations

from threading import Event


class OperationCancelled(RuntimeError):
    """Raised when a summary request observes a cancelled token."""


class CancellationToken:
    """Thread-safe flag polled at every iteration boundary of a bounded loop."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = Event()

    @classmethod
    def none(cls) -> "CancellationToken":
        """Return a fresh token nobody holds a reference to cancel."""

        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation was cancelled")


__all__ = ["CancellationToken", "OperationCancelled"]
