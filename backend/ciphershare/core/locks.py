import threading
import weakref
from contextlib import contextmanager

# Guards check-then-write sequences within this process. Cross-process
# safety comes from the unique constraints on the sharing tables.
_registry_lock = threading.Lock()
# Entries disappear once no thread holds or waits on the lock
_locks: "weakref.WeakValueDictionary[tuple, _KeyedLock]" = weakref.WeakValueDictionary()

# Serializes appends to the audit hash chain, from the tail read to the commit
_audit_chain_lock = threading.RLock()


class _KeyedLock:
    # threading.Lock cannot be weakly referenced, so wrap it
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.Lock()


def _lock_for(namespace: str, key: int) -> _KeyedLock:
    with _registry_lock:
        entry = _locks.get((namespace, key))
        if entry is None:
            entry = _KeyedLock()
            _locks[(namespace, key)] = entry
        return entry


@contextmanager
def _hold(namespace: str, key: int):
    entry = _lock_for(namespace, key)
    with entry.lock:
        yield


@contextmanager
def file_lock(file_id: int):
    """Serializes grant/request writes on one file."""
    with _hold("file", file_id):
        yield


@contextmanager
def owner_lock(owner_id: int):
    """Serializes file-name changes inside one owner's namespace."""
    with _hold("owner", owner_id):
        yield


@contextmanager
def audit_chain_lock():
    """
    Held around log_event(commit=False) and the caller's commit, so two
    transactions never link to the same previous entry.
    """
    with _audit_chain_lock:
        yield


def registered_lock_count() -> int:
    with _registry_lock:
        return len(_locks)
