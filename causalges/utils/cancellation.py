import threading


class CancellationToken:
    """
    Cooperative interruption flag shared between a caller and a running search.

    The search polls ``cancelled`` inside its long-running loops and stops at the next check. Cancelling never
    interrupts a graph mutation that is already being applied.

    Examples
    --------
    >>> from causalges import CancellationToken
    >>> token = CancellationToken()
    >>> token.cancelled
    False
    >>> token.cancel()
    >>> token.cancelled
    True
    """
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self):
        return 'CancellationToken(cancelled=%s)' % self.cancelled
