"""Write-back page cache with CLOCK or CLOCK-M replacement."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Tuple, Union

from procsim.mmu import Mmu

log = logging.getLogger(__name__)

POLICIES = ("CLOCK", "CLOCK-M")


class CacheError(RuntimeError):
    """Raised when the cache cannot complete an access."""


class CacheDisabledError(CacheError):
    """Raised when the cache is used while it has no entries configured."""


class PageMemory(Protocol):
    """Main memory as seen by the cache: whole pages at physical addresses."""

    def read_page(self, pid: int, physical_address: int) -> Optional[bytes]:
        """Return the page containing *physical_address*, or None on failure."""
        ...

    def write_page(self, pid: int, physical_address: int, content: bytes) -> None:
        """Store a whole page starting at *physical_address*."""
        ...


@dataclass
class CacheEntry:
    """A cached page with its reference and dirty bits."""

    page: int
    frame: int
    content: bytearray
    modified: bool = False
    used: bool = True


class PageCache:
    """A bounded set of cached pages, written back to memory on eviction."""

    def __init__(
        self,
        capacity: int,
        policy: str,
        page_size: int,
        memory: PageMemory,
        mmu: Mmu,
        delay_ms: int = 0,
    ) -> None:
        if capacity > 0 and policy not in POLICIES:
            raise ValueError(f"unknown cache replacement policy: {policy!r}")
        if page_size <= 0:
            raise ValueError(f"invalid page size: {page_size}")
        self.capacity = capacity
        self.policy = policy
        self.page_size = page_size
        self.memory = memory
        self.mmu = mmu
        self.delay_ms = delay_ms
        self._entries: List[CacheEntry] = []
        self._pointer = 0
        self._lock = threading.RLock()

    @property
    def enabled(self) -> bool:
        """True when the cache has room for at least one page."""
        return self.capacity > 0

    @property
    def entries(self) -> Tuple[CacheEntry, ...]:
        """The cached entries in clock order."""
        return tuple(self._entries)

    def _find(self, page: int) -> Optional[CacheEntry]:
        return next((entry for entry in self._entries if entry.page == page), None)

    def _pause(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000)

    def _chunks(self, address: int, size: int) -> Iterator[Tuple[int, int, int, int, int]]:
        """Yield (address, page, offset, count, done) for each page touched."""
        done = 0
        while done < size:
            current = address + done
            page, offset = divmod(current, self.page_size)
            count = min(size - done, self.page_size - offset)
            yield current, page, offset, count, done
            done += count

    def _fetch_page(self, pid: int, physical_address: int) -> bytearray:
        content = self.memory.read_page(pid, physical_address)
        if content is None:
            raise CacheError(f"memory returned no page for PID {pid} at {physical_address}")
        return bytearray(bytes(content)[: self.page_size].ljust(self.page_size, b"\0"))

    def lookup(self, page: int) -> Optional[int]:
        """Return the frame of a cached page and mark it used, or None on a miss."""
        with self._lock:
            entry = self._find(page)
            if entry is None:
                return None
            entry.used = True
            return entry.frame

    def _miss(self, pid: int, page: int) -> None:
        log.info("PID: %d - Cache Miss - Pagina: %d", pid, page)
        physical = self.mmu.translate(pid, page * self.page_size)
        frame = physical // self.page_size
        content = self._fetch_page(pid, physical)
        self.add(pid, page, frame, content, False)

    def read(self, pid: int, logical_address: int, size: int) -> bytes:
        """Read *size* bytes starting at a logical address through the cache."""
        if not self.enabled:
            log.error("La cache no esta activada")
            raise CacheDisabledError("the cache is not enabled")

        result = bytearray()
        for _, page, offset, count, _ in self._chunks(logical_address, size):
            if self.lookup(page) is None:
                self._miss(pid, page)
                self._pause()
                self.lookup(page)
            else:
                log.info("PID: %d - Cache Hit - Pagina: %d", pid, page)

            with self._lock:
                entry = self._find(page)
                if entry is None:
                    raise CacheError(f"page {page} missing from cache after load")
                result += entry.content[offset : offset + count]
                entry.used = True
            self._pause()

        data = bytes(result)
        log.info("PID: %d - Accion: LEER - Valor: %s", pid, data.decode(errors="replace"))
        return data

    def write(self, pid: int, logical_address: int, data: Union[str, bytes]) -> bool:
        """Write *data* at a logical address; False when the cache is disabled."""
        if not self.enabled:
            return False
        raw = data.encode() if isinstance(data, str) else bytes(data)

        for current, page, offset, count, done in self._chunks(logical_address, len(raw)):
            fragment = raw[done : done + count]
            if self.lookup(page) is not None:
                with self._lock:
                    entry = self._find(page)
                    if entry is not None:
                        entry.content[offset : offset + count] = fragment
                        entry.modified = True
                        entry.used = True
                        log.debug(
                            "PID: %d - Escribiendo en caché (Hit) %d bytes en página %d offset %d",
                            pid, count, page, offset,
                        )
            else:
                physical = self.mmu.translate(pid, current)
                frame = physical // self.page_size
                content = self._fetch_page(pid, physical)
                content[offset : offset + count] = fragment
                self.add(pid, page, frame, content, True)
                log.info("PID: %d - Cache Miss - Página: %d", pid, page)
            self._pause()

        log.info(
            "PID: %d - Acción: ESCRIBIR - Dirección lógica: %d - Valor: %s",
            pid, logical_address, raw.decode(errors="replace"),
        )
        return True

    def add(self, pid: int, page: int, frame: int, content: bytes, modified: bool) -> None:
        """Cache a page, evicting (and writing back if dirty) a victim when full."""
        if not self.enabled:
            raise CacheDisabledError("the cache is not enabled")
        page_content = bytearray(bytes(content)[: self.page_size].ljust(self.page_size, b"\0"))
        entry = CacheEntry(page, frame, page_content, modified, True)
        with self._lock:
            if len(self._entries) >= self.capacity:
                index = self.find_victim()
                victim = self._entries[index]
                if victim.modified:
                    log.info(
                        "PID: %d - Memory Update - Página: %d - Frame: %d",
                        pid, victim.page, victim.frame,
                    )
                    self.memory.write_page(pid, victim.frame * self.page_size, bytes(victim.content))
                del self._entries[index]
            self._entries.append(entry)
        log.info("PID: %d - Cache Add - Pagina: %d", pid, page)

    def _take(self) -> int:
        victim = self._pointer % len(self._entries)
        self._advance()
        return victim

    def _advance(self) -> None:
        self._pointer = (self._pointer + 1) % max(self.capacity, 1)

    def find_victim(self) -> int:
        """Return the index of the entry the clock hand chooses to replace."""
        with self._lock:
            if not self._entries:
                raise CacheError("no entries to evict")
            modified_aware = self.policy == "CLOCK-M"
            while True:
                for sweep in (0, 1):
                    for _ in range(len(self._entries)):
                        entry = self._entries[self._pointer % len(self._entries)]
                        if modified_aware:
                            if sweep == 0 and not entry.used and not entry.modified:
                                return self._take()
                            if sweep == 1:
                                if not entry.used and entry.modified:
                                    return self._take()
                                entry.used = False
                        else:
                            if not entry.used:
                                return self._take()
                            entry.used = False
                        self._advance()
                log.debug("No se encontró víctima en 2 vueltas, repitiendo búsqueda")

    def flush(self, pid: int) -> None:
        """Write every dirty page back to memory and empty the cache."""
        with self._lock:
            for entry in self._entries:
                if entry.modified:
                    log.info(
                        "PID: %d - Memory Update - Página: %d - Frame: %d",
                        pid, entry.page, entry.frame,
                    )
                    self.memory.write_page(pid, entry.frame * self.page_size, bytes(entry.content))
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)