import threading

__all__ = ['AtomicNonce']


class AtomicNonce:
    """
    Integer counter with atomic fetch-and-increment.

    Shared by every coroutine (or thread) building transactions for one account,
    so each caller receives a distinct value.
    """

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def fetch_add(self, delta: int = 1) -> int:
        with self._lock:
            value = self._value
            self._value += delta
            return value

    def store(self, value: int):
        with self._lock:
            self._value = value

    def load(self) -> int:
        with self._lock:
            return self._value
