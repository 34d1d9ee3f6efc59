"""Long-term scheduling: admission of new and suspended processes into memory."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, MutableSequence, Optional, Protocol, Union

from procsim.pcb import Pcb, State, state_name
from procsim.scheduling import Algorithm

log = logging.getLogger(__name__)


class AdmissionMemory(Protocol):
    """The memory module as seen by the long-term scheduler."""

    def request_space(self, pid: int, size: int) -> bool:
        """Reserve room for a process; True when memory accepted it."""
        ...

    def notify_unsuspend(self, pid: int) -> None:
        """Bring a suspended process back from swap."""
        ...


def parse_long_term(name: str) -> Algorithm:
    """Return the long-term algorithm named *name*: FIFO or PMCP."""
    if name == Algorithm.FIFO.value:
        return Algorithm.FIFO
    if name == Algorithm.PMCP.value:
        return Algorithm.PMCP
    log.info("Algoritmo de planificación invalido: %s", name)
    raise ValueError(f"invalid long-term scheduling algorithm: {name!r}")


def insert_by_size(queue: MutableSequence[Pcb], pcb: Pcb) -> None:
    """Insert *pcb* before the first queued process that is strictly larger."""
    position = next(
        (index for index, queued in enumerate(queue) if pcb.size < queued.size),
        len(queue),
    )
    queue.insert(position, pcb)


class LongTermScheduler:
    """Holds NEW and SUSP_READY processes and moves them to READY when memory allows."""

    def __init__(self, algorithm: Union[Algorithm, str], memory: AdmissionMemory) -> None:
        if isinstance(algorithm, str):
            algorithm = parse_long_term(algorithm)
        if algorithm not in (Algorithm.FIFO, Algorithm.PMCP):
            log.warning("No hay un algoritmo adecuado en planificador largo plazo")
            raise ValueError(f"{algorithm.value} is not a long-term algorithm")
        self.algorithm = algorithm
        self.memory = memory
        self.new: Deque[Pcb] = deque()
        self.suspended_ready: Deque[Pcb] = deque()
        self.ready: Deque[Pcb] = deque()
        self.processes_in_memory = 0
        self.lock = threading.RLock()

    def push_new(self, pcb: Pcb) -> None:
        """Queue a NEW process according to the admission algorithm."""
        with self.lock:
            if self.algorithm is Algorithm.FIFO:
                self.new.append(pcb)
                log.debug("Proceso cargado segun FIFO")
            else:
                insert_by_size(self.new, pcb)
                log.debug("Proceso cargado segun PMCP")

    def push_suspended_ready(self, pcb: Pcb) -> None:
        """Queue a process that finished its I/O while swapped out."""
        with self.lock:
            self.suspended_ready.append(pcb)

    def _request(self, pcb: Pcb) -> bool:
        if self.memory.request_space(pcb.pid, pcb.size):
            self.processes_in_memory += 1
            log.debug("Habia suficiente espacio")
            return True
        log.debug("No había suficiente espacio")
        return False

    def _make_ready(self, pcb: Pcb) -> None:
        previous = pcb.change_state(State.READY)
        log.info(
            "(%d) Pasa del estado %s al estado %s",
            pcb.pid, state_name(previous), state_name(pcb.state),
        )
        self.ready.append(pcb)

    def admit(self) -> Optional[Pcb]:
        """Try to admit one process into READY; returns it, or None.

        Suspended-ready processes go first; while one is waiting for room,
        no NEW process is considered.
        """
        with self.lock:
            if self.suspended_ready:
                pcb = self.suspended_ready[0]
                if not self._request(pcb):
                    return None
                self.suspended_ready.popleft()
                self.memory.notify_unsuspend(pcb.pid)
                self._make_ready(pcb)
                return pcb

            if not self.new:
                log.debug("la cola de new esta vacia")
                return None
            pcb = self.new[0]
            if not self._request(pcb):
                return None
            self.new.popleft()
            self._make_ready(pcb)
            log.debug("El planificador LP tomo el PID %d", pcb.pid)
            return pcb

    def release(self) -> int:
        """Account for a process leaving memory; returns how many remain."""
        with self.lock:
            if self.processes_in_memory <= 0:
                raise RuntimeError("no process is in memory")
            self.processes_in_memory -= 1
            return self.processes_in_memory