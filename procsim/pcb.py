"""Process control blocks: states, per-state metrics and burst estimates."""

from __future__ import annotations

import logging
import threading
import time
from enum import IntEnum
from typing import Callable, Dict, MutableSequence, Optional

log = logging.getLogger(__name__)

Clock = Callable[[], float]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class State(IntEnum):
    """Lifecycle states of a process."""

    NEW = 0
    READY = 1
    EXEC = 2
    BLOCKED = 3
    SUSP_READY = 4
    SUSP_BLOCKED = 5
    EXIT = 6


# The order in which the final metrics are reported.
_METRICS_ORDER = (
    State.NEW,
    State.READY,
    State.EXEC,
    State.BLOCKED,
    State.SUSP_BLOCKED,
    State.SUSP_READY,
    State.EXIT,
)


def state_name(state: int) -> str:
    """Return the display name of a state; unknown values give DESCONOCIDO."""
    try:
        return State(state).name
    except ValueError:
        return "DESCONOCIDO"


def remove_by_pid(queue: MutableSequence["Pcb"], pid: int) -> Optional["Pcb"]:
    """Remove every PCB with *pid* from *queue*, keeping the others in order.

    Returns the last matching PCB, or None when there was none.
    """
    found: Optional[Pcb] = None
    remaining = []
    for pcb in list(queue):
        if pcb.pid == pid:
            found = pcb
        else:
            remaining.append(pcb)
    queue.clear()
    queue.extend(remaining)
    return found


class Pcb:
    """A process as the kernel tracks it."""

    def __init__(self, pid: int, size: int, estimate: float, clock: Clock = _monotonic_ms) -> None:
        self.pid = pid
        self.size = size
        self.pc = 0
        self.state = State.NEW
        self.estimate = float(estimate)
        self.previous_burst = 0.0
        self.accumulated_burst = 0.0
        self.blocked_since: Optional[float] = None
        self.suspension_check = False
        self.lock = threading.RLock()
        self._clock = clock
        self._state_started: Optional[float] = clock()
        self.state_counts: Dict[State, int] = {state: 0 for state in State}
        self.state_times: Dict[State, int] = {state: 0 for state in State}
        self.state_counts[State.NEW] += 1
        log.info("%d Se crea el proceso - Estado: NEW", pid)

    @property
    def clock(self) -> Clock:
        """The millisecond clock this PCB measures time with."""
        return self._clock

    def elapsed(self) -> int:
        """Milliseconds spent in the current state; 0 once in EXIT."""
        if self._state_started is None:
            return 0
        return int(self._clock() - self._state_started)

    def change_state(self, new_state: State) -> State:
        """Move to *new_state*, updating the metrics; returns the previous state."""
        with self.lock:
            previous = self.state
            self.state_times[previous] += self.elapsed()
            self.state = State(new_state)
            self.state_counts[self.state] += 1
            self._state_started = None if self.state is State.EXIT else self._clock()
            return previous

    def update_estimate(self, alpha: float, burst_complete: bool) -> float:
        """Fold the burst just finished into the estimate; returns the estimate."""
        with self.lock:
            if burst_complete:
                real = float(self.elapsed())
                self.previous_burst = real
                log.debug(
                    "Se actualizo la estimacion de PID %d - Rafaga completa %.2f - Estimacion previa %.2f",
                    self.pid, real, self.estimate,
                )
                self.estimate = alpha * real + (1 - alpha) * self.estimate
                log.debug("Nueva estimacion %.2f", self.estimate)
            return self.estimate

    def metrics_line(self) -> str:
        """The per-state counts and times, in the kernel's report format."""
        parts = " ".join(
            f"{state.name} ({self.state_counts[state]}|{int(self.state_times[state])})"
            for state in _METRICS_ORDER
        )
        return f"## ({self.pid}) - Métricas: {parts}"

    def __repr__(self) -> str:
        return f"Pcb(pid={self.pid}, state={self.state.name}, pc={self.pc}, size={self.size})"