"""
Cooperative cancellation for long-running indexing walks.
"""


class CancellationToken:
    """Flag polled by an indexing walk between files.

    Cancelling never interrupts the file being processed; the walk stops
    the next time it checks ``cancelled``.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled
