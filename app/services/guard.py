import threading

from app.core.errors import ReentrancyError


class NonReentrantLock:
    """Serializes ledger commands and rejects re-entry from the owning thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def held(self) -> bool:
        return self._owner is not None

    def __enter__(self) -> "NonReentrantLock":
        if self._owner == threading.get_ident():
            raise ReentrancyError("Reentrant ledger call rejected")
        self._lock.acquire()
        self._owner = threading.get_ident()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._owner = None
        self._lock.release()


ledger_lock = NonReentrantLock()
