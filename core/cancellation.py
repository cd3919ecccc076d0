"""
Cooperative cancellation for long-running analyses.
"""

import threading


class CancellationToken:
    """Thread-safe flag checked between pair tests and between windows."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"


def is_cancelled(token) -> bool:
    """True when an optional token has been cancelled."""
    return token is not None and token.is_cancelled
