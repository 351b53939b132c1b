import threading


class OneShotLatch:
    """A check-and-set flag: ``try_trigger`` returns True exactly once."""

    __slots__ = ("_triggered", "_lock")

    def __init__(self) -> None:
        self._triggered = False
        self._lock = threading.Lock()

    @property
    def triggered(self) -> bool:
        return self._triggered

    def try_trigger(self) -> bool:
        with self._lock:
            if self._triggered:
                return False

            self._triggered = True
            return True
