"""Logical-to-physical address translation with multi-level page tables."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

from procsim.tlb import Tlb

log = logging.getLogger(__name__)


class TranslationError(LookupError):
    """Raised when memory cannot supply a frame for a page."""


class FrameSource(Protocol):
    """Something that knows which frame holds a process page."""

    def frame(self, pid: int, page: int) -> Optional[int]:
        """Return the frame for *page* of *pid*, or None if unavailable."""
        ...


def level_entry(
    logical_address: int,
    level: int,
    entries_per_table: int,
    levels: int,
    page_size: int,
) -> int:
    """Index into the page table at *level* (0 is the outermost) for an address."""
    if page_size <= 0 or entries_per_table <= 0:
        raise ValueError("page size and entries per table must be positive")
    if not 0 <= level < levels:
        raise ValueError(f"level {level} outside 0..{levels - 1}")
    page = logical_address // page_size
    return (page // entries_per_table ** (levels - level - 1)) % entries_per_table


class Mmu:
    """Translates logical addresses, consulting a TLB before memory."""

    def __init__(self, page_size: int, frame_source: FrameSource, tlb: Optional[Tlb] = None) -> None:
        if page_size <= 0:
            raise ValueError(f"invalid page size: {page_size}")
        self.page_size = page_size
        self.frame_source = frame_source
        self.tlb = tlb

    def split(self, logical_address: int) -> Tuple[int, int]:
        """Return (page number, offset) of a logical address."""
        if logical_address < 0:
            raise ValueError(f"negative logical address: {logical_address}")
        return divmod(logical_address, self.page_size)

    def _request_frame(self, pid: int, page: int) -> int:
        frame = self.frame_source.frame(pid, page)
        if frame is None or frame < 0:
            raise TranslationError(f"no frame for PID {pid} page {page}")
        log.info("PID: %d - OBTENER MARCO - Página: %d - Marco: %d", pid, page, frame)
        return frame

    def translate(self, pid: int, logical_address: int) -> int:
        """Return the physical address for *logical_address* of process *pid*."""
        page, offset = self.split(logical_address)

        if self.tlb is not None and self.tlb.capacity > 0:
            frame = self.tlb.lookup(page)
            if frame is not None:
                log.info("PID: %d - TLB HIT - Pagina: %d", pid, page)
            else:
                frame = self._request_frame(pid, page)
                self.tlb.insert(page, frame)
                log.info("PID: %d - TLB MISS - Pagina: %d", pid, page)
        else:
            frame = self._request_frame(pid, page)

        return frame * self.page_size + offset