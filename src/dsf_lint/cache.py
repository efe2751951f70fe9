"""Thread-safe memoizing cache shared by the resolvers of one run."""

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)


class _Slot:
    """One cache entry, possibly still being computed by another thread."""

    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None


class ReferenceCache:
    """Key/value store with an atomic compute-if-absent primitive.

    The first caller for a key runs the factory; concurrent callers for the
    same key wait for that computation instead of starting their own. A
    failing factory is not cached. With ``max_entries`` set, the least
    recently used entries are evicted and ``on_evict`` is called once per
    evicted entry; errors raised by the callback are logged and dropped.
    """

    def __init__(self, max_entries: int | None = None,
                 on_evict: Callable[[Hashable, Any], None] | None = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.on_evict = on_evict
        self._lock = threading.Lock()
        self._entries: OrderedDict[Hashable, _Slot] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for slot in self._entries.values() if slot.done.is_set() and slot.error is None)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            slot = self._entries.get(key)
        return slot is not None and slot.done.is_set() and slot.error is None

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return a completed value without computing it."""
        with self._lock:
            slot = self._entries.get(key)
        if slot is None or not slot.done.is_set() or slot.error is not None:
            return default
        return slot.value

    def get_or_compute(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        """Return the cached value for key, computing it at most once."""
        with self._lock:
            slot = self._entries.get(key)
            owner = slot is None
            if owner:
                slot = _Slot()
                self._entries[key] = slot
                self._misses += 1
            else:
                self._hits += 1
                self._entries.move_to_end(key)

        if not owner:
            slot.done.wait()
            if slot.error is not None:
                raise slot.error
            return slot.value

        try:
            slot.value = factory()
        except BaseException as e:
            slot.error = e
            with self._lock:
                if self._entries.get(key) is slot:
                    del self._entries[key]
            slot.done.set()
            raise

        slot.done.set()
        self._notify(self._evict_overflow())
        return slot.value

    def invalidate(self, key: Hashable) -> bool:
        """Drop one completed entry. Returns True if an entry was removed."""
        with self._lock:
            slot = self._entries.get(key)
            if slot is None or not slot.done.is_set():
                return False
            del self._entries[key]
        self._notify([(key, slot)])
        return True

    def clear(self) -> None:
        """Drop all completed entries, firing the eviction callback for each."""
        with self._lock:
            removed = [(key, slot) for key, slot in self._entries.items() if slot.done.is_set()]
            for key, _ in removed:
                del self._entries[key]
        self._notify(removed)

    def stats(self) -> dict[str, int]:
        """Return cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_overflow(self) -> list[tuple[Hashable, _Slot]]:
        if self.max_entries is None:
            return []
        evicted = []
        with self._lock:
            while len(self._entries) > self.max_entries:
                victim = next((k for k, s in self._entries.items() if s.done.is_set()), None)
                if victim is None:
                    break
                evicted.append((victim, self._entries.pop(victim)))
        return evicted

    def _notify(self, removed: list[tuple[Hashable, _Slot]]) -> None:
        for key, slot in removed:
            if slot.error is not None:
                continue
            with self._lock:
                self._evictions += 1
            if self.on_evict is None:
                continue
            try:
                self.on_evict(key, slot.value)
            except Exception as e:
                logger.warning(f"Eviction callback failed for {key!r}: {e}")
