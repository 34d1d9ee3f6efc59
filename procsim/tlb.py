"""Translation lookaside buffer with FIFO or LRU replacement."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

log = logging.getLogger(__name__)

POLICIES = ("FIFO", "LRU")


@dataclass
class TlbEntry:
    """A cached page-to-frame mapping."""

    page: int
    frame: int
    last_access: int


class Tlb:
    """A bounded page-to-frame map evicting by FIFO or LRU order."""

    def __init__(self, capacity: int, policy: str) -> None:
        if policy not in POLICIES:
            raise ValueError(f"unknown TLB replacement policy: {policy!r}")
        self.capacity = capacity
        self.policy = policy
        self._entries: List[TlbEntry] = []
        self._clock = 0
        self._lock = threading.Lock()

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def lookup(self, page: int) -> Optional[int]:
        """Return the frame mapped to *page*, or None on a miss."""
        log.debug("Buscando pagina %d en TLB", page)
        frame = None
        with self._lock:
            for entry in self._entries:
                if entry.page == page:
                    frame = entry.frame
                    entry.last_access = self._tick()
        return frame

    def insert(self, page: int, frame: int) -> None:
        """Add a mapping, evicting a victim when the TLB is full."""
        if self.capacity <= 0:
            return
        with self._lock:
            entry = TlbEntry(page, frame, self._tick())
            if len(self._entries) >= self.capacity:
                if self.policy == "FIFO":
                    victim = self._entries[0]
                else:
                    victim = min(self._entries, key=lambda e: e.last_access)
                self._entries.remove(victim)
            self._entries.append(entry)

    def clear(self) -> None:
        """Drop every mapping."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)