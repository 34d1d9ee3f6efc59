"""Short-term scheduling: algorithm choice, SJF selection and SRT preemption."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Deque, Optional

from procsim.pcb import Pcb

log = logging.getLogger(__name__)


class Algorithm(Enum):
    """Scheduling algorithms known to the kernel."""

    FIFO = "FIFO"
    PMCP = "PMCP"  # smallest process first, long term only
    SJF = "SJF"
    SRT = "SRT"


def parse_short_term(name: str) -> Algorithm:
    """Return the algorithm named *name*; raise ValueError for unknown names."""
    try:
        return Algorithm(name)
    except ValueError:
        log.error("Algoritmo inválido: %s", name)
        raise ValueError(f"invalid scheduling algorithm: {name!r}") from None


def pick_shortest(queue: Deque[Pcb]) -> Optional[Pcb]:
    """Remove and return the PCB with the smallest estimate (first on ties)."""
    if not queue:
        return None
    shortest = min(queue, key=lambda pcb: pcb.estimate)
    queue.remove(shortest)
    log.debug("Asigna PCB menor a PID: %d con estimacion %f", shortest.pid, shortest.estimate)
    return shortest


def select_next(queue: Deque[Pcb], algorithm: Algorithm) -> Optional[Pcb]:
    """Take the next process to run from the ready queue, or None if empty."""
    if not queue:
        log.debug("la cola de ready estaba vacia")
        return None
    if algorithm is Algorithm.FIFO:
        return queue.popleft()
    if algorithm in (Algorithm.SJF, Algorithm.SRT):
        return pick_shortest(queue)
    log.error("Proceso mas chico primero no es un algoritmo valido de pcp")
    raise ValueError(f"{algorithm.value} is not a short-term algorithm")


def remaining_estimate(running: Pcb, elapsed: float) -> float:
    """Estimated time the running process still needs, never below zero."""
    remaining = running.estimate - (running.accumulated_burst + elapsed)
    if remaining < 0:
        log.debug("La estimacion restante fue menor a 0")
        return 0.0
    return remaining


def should_preempt(running: Pcb, newcomer: Pcb, elapsed: float) -> bool:
    """True when *newcomer* is expected to finish before *running* does."""
    remaining = remaining_estimate(running, elapsed)
    preempt = newcomer.estimate < remaining
    if preempt:
        log.debug(
            "SRT: desalojando PID %d (restante: %.2f) por PID %d (estimación: %.2f)",
            running.pid, remaining, newcomer.pid, newcomer.estimate,
        )
    return preempt