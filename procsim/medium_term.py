"""Medium-term scheduling: suspending processes blocked for too long."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, List, Optional, Protocol

from procsim.pcb import Pcb, State, remove_by_pid, state_name

log = logging.getLogger(__name__)


class SwapMemory(Protocol):
    """The memory module as seen by the medium-term scheduler."""

    def suspend(self, pid: int) -> None:
        """Move a process's pages out to swap."""
        ...


class MediumTermScheduler:
    """Tracks BLOCKED processes and swaps out those blocked past the limit."""

    def __init__(self, suspension_ms: int, memory: SwapMemory) -> None:
        if suspension_ms < 0:
            raise ValueError(f"negative suspension time: {suspension_ms}")
        self.suspension_ms = suspension_ms
        self.memory = memory
        self.blocked: Deque[Pcb] = deque()
        self.suspended_blocked: Deque[Pcb] = deque()
        self.lock = threading.RLock()

    def block(self, pcb: Pcb) -> float:
        """Start the blocked timer of *pcb* and queue it; returns when it falls due."""
        with pcb.lock:
            pcb.blocked_since = pcb.clock()
            since = pcb.blocked_since
        with self.lock:
            self.blocked.append(pcb)
        return since + self.suspension_ms

    def unblock(self, pid: int) -> Optional[Pcb]:
        """Take a process out of the blocked or suspended-blocked queue."""
        with self.lock:
            pcb = remove_by_pid(self.blocked, pid)
            if pcb is None:
                pcb = remove_by_pid(self.suspended_blocked, pid)
        if pcb is not None:
            with pcb.lock:
                pcb.blocked_since = None
        return pcb

    def suspend_if_blocked(self, pcb: Pcb) -> bool:
        """Suspend *pcb* if it is still BLOCKED; True when it was suspended."""
        with pcb.lock:
            suspended = False
            if pcb.state is State.BLOCKED:
                with self.lock:
                    remove_by_pid(self.blocked, pcb.pid)
                    previous = pcb.change_state(State.SUSP_BLOCKED)
                    log.info(
                        "(%d) Pasa del estado %s al estado %s",
                        pcb.pid, state_name(previous), state_name(pcb.state),
                    )
                    self.suspended_blocked.append(pcb)
                    self.memory.suspend(pcb.pid)
                log.info("PID %d pasa a susp blocked por exceder tiempo", pcb.pid)
                pcb.blocked_since = None
                suspended = True
            pcb.suspension_check = False
            return suspended

    def due(self, now: Optional[float] = None) -> List[Pcb]:
        """Blocked processes whose time is up, marked as being checked.

        *now* defaults to each process's own clock. A process is returned once
        until suspend_if_blocked has looked at it.
        """
        with self.lock:
            candidates = list(self.blocked)
        result = []
        for pcb in candidates:
            with pcb.lock:
                if pcb.blocked_since is None or pcb.suspension_check:
                    continue
                current = pcb.clock() if now is None else now
                if current - pcb.blocked_since >= self.suspension_ms:
                    pcb.suspension_check = True
                    result.append(pcb)
        return result