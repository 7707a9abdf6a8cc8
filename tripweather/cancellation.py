"""Cancellation token shared by all tasks of one resolution pass."""
from __future__ import annotations

from tripweather.errors import StaleRequestError


class CancellationToken:
    """Flag a resolution pass as superseded.

    Task cancellation stops awaiting coroutines, but work already handed to a
    worker thread still returns. Tasks check the token after every await so a
    late answer from a superseded pass is dropped instead of published.
    """

    def __init__(self, label: str = "pass") -> None:
        self.label = label
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Raise StaleRequestError if the owning pass was superseded."""
        if self._cancelled:
            raise StaleRequestError(f"{self.label} was superseded")

    def __repr__(self) -> str:
        return f"CancellationToken({self.label!r}, cancelled={self._cancelled})"
