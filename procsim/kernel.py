"""The kernel: process table, schedulers, CPUs, I/O devices and syscalls."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Hashable, List, Optional, Protocol, Tuple

from procsim.devices import BlockedIo, Device, DeviceRegistry
from procsim.kernel_config import KernelConfig
from procsim.long_term import LongTermScheduler
from procsim.medium_term import MediumTermScheduler
from procsim.pcb import Pcb, State, state_name
from procsim.scheduling import Algorithm, parse_short_term, select_next, should_preempt

log = logging.getLogger(__name__)


class MemoryService(Protocol):
    """The memory module as the kernel talks to it."""

    def request_space(self, pid: int, size: int) -> bool:
        """Reserve room for a process; True when memory accepted it."""
        ...

    def init_process(self, pid: int, size: int, path: str) -> None:
        """Load the instruction file of a new process."""
        ...

    def notify_unsuspend(self, pid: int) -> None:
        """Bring a suspended process back from swap."""
        ...

    def suspend(self, pid: int) -> None:
        """Move a process's pages out to swap."""
        ...

    def request_dump(self, pid: int) -> None:
        """Ask memory to dump the memory of a process."""
        ...

    def finish(self, pid: int) -> bool:
        """Release a finished process; True when memory confirmed."""
        ...


class CpuLink(Protocol):
    """The dispatch and interrupt channels of one connected CPU."""

    def dispatch(self, pid: int, pc: int) -> None:
        """Hand a process to the CPU."""
        ...

    def interrupt(self) -> None:
        """Send an interrupt to the CPU."""
        ...


class _IoLink(Protocol):
    def request(self, pid: int, duration: int, cpu_id: int, device: str) -> None:
        ...


@dataclass
class _WaitingInit:
    pid: int
    size: int
    path: str


def _log_transition(pcb: Pcb, previous: State) -> None:
    log.info(
        "(%d) Pasa del estado %s al estado %s",
        pcb.pid, state_name(previous), state_name(pcb.state),
    )


class Kernel:
    """Ties the process table, schedulers, CPUs and devices together.

    Every method runs to completion; callers drive admission and dispatch
    by calling admit(), dispatch() and retry_waiting() when work is pending.
    """

    def __init__(self, config: KernelConfig, memory: MemoryService) -> None:
        self.config = config
        self.memory = memory
        self.algorithm = parse_short_term(config.short_term_algorithm)
        self.long_term = LongTermScheduler(config.long_term_algorithm, memory)
        self.medium_term = MediumTermScheduler(config.suspension_ms, memory)
        self.ready: Deque[Pcb] = self.long_term.ready
        self.devices = DeviceRegistry()
        self.pcbs: Dict[int, Pcb] = {}
        self.exec: Dict[int, int] = {}
        self.cpus: Dict[int, CpuLink] = {}
        self.free_cpus: List[int] = []
        self.waiting: Deque[_WaitingInit] = deque()
        self.lock = threading.RLock()
        self._next_pid = 0

    # -- helpers ---------------------------------------------------------

    def _new_pcb(self, size: int) -> Pcb:
        pcb = Pcb(self._next_pid, size, self.config.initial_estimate)
        self._next_pid += 1
        self.pcbs[pcb.pid] = pcb
        return pcb

    def _require(self, pid: int) -> Pcb:
        pcb = self.pcbs.get(pid)
        if pcb is None:
            log.error("Error para obtener PCB NULL")
            raise KeyError(f"no process with PID {pid}")
        return pcb

    def _free_cpu(self, cpu_id: int) -> None:
        if cpu_id not in self.free_cpus:
            self.free_cpus.append(cpu_id)
        log.debug("La cola de CPUs libres tiene un tamaño de %d", len(self.free_cpus))

    def _interrupt(self, cpu_id: int) -> bool:
        link = self.cpus.get(cpu_id)
        if link is None:
            log.error("No se encontro el socket_interrupt para CPU ID %d", cpu_id)
            return False
        link.interrupt()
        return True

    def _delete(self, pcb: Pcb) -> None:
        self.exec.pop(pcb.pid, None)
        self.pcbs.pop(pcb.pid, None)

    def _running(self) -> Optional[Pcb]:
        return next((pcb for pcb in self.pcbs.values() if pcb.state is State.EXEC), None)

    def _check_preemption(self, newcomer: Pcb) -> bool:
        if self.algorithm is not Algorithm.SRT:
            return False
        running = self._running()
        if running is None:
            return False
        with running.lock:
            elapsed = float(running.elapsed())
            preempt = should_preempt(running, newcomer, elapsed)
            running.accumulated_burst += elapsed
        if not preempt:
            return False

        cpu_id = self.exec.get(running.pid)
        if cpu_id is None:
            log.error("chequear_sjf: no existe exec para PID %d", running.pid)
            return False
        link = self.cpus.get(cpu_id)
        if link is None:
            log.error("No se encontró socket de interrupción para CPU %d", cpu_id)
            return False

        previous = running.change_state(State.READY)
        _log_transition(running, previous)
        link.interrupt()
        log.info("## (%d) - Desalojado por algoritmo SJF/SRT", running.pid)
        self.exec.pop(running.pid, None)
        self.ready.append(running)
        self._free_cpu(cpu_id)
        return True

    def _make_ready(self, pcb: Pcb) -> None:
        previous = pcb.change_state(State.READY)
        _log_transition(pcb, previous)
        self.ready.append(pcb)
        self._check_preemption(pcb)

    def _block(self, pcb: Pcb, pc: int, cpu_id: int) -> None:
        pcb.pc = pc
        pcb.update_estimate(self.config.alpha, True)
        previous = pcb.change_state(State.BLOCKED)
        _log_transition(pcb, previous)
        self.medium_term.block(pcb)
        self.exec.pop(pcb.pid, None)

    def _start(self, pid: int, size: int, path: str) -> None:
        pcb = self._require(pid)
        self.long_term.push_new(pcb)
        self.memory.init_process(pid, size, path)
        log.debug("Se va a iniciar el proceso (%s), tamanio [%d]", path, size)

    # -- processes -------------------------------------------------------

    def create_process(self, size: int, path: str) -> int:
        """Create a process in NEW and have memory load its instructions."""
        with self.lock:
            pcb = self._new_pcb(size)
            self.long_term.push_new(pcb)
            self.memory.init_process(pcb.pid, size, path)
            log.debug("Proceso inicial (%s), tamanio [%d]", path, size)
            return pcb.pid

    # -- connections -----------------------------------------------------

    def register_cpu(self, cpu_id: int, link: CpuLink) -> None:
        """Record a connected CPU and mark it free."""
        with self.lock:
            self.cpus[cpu_id] = link
            self._free_cpu(cpu_id)

    def register_io(self, name: str, link: Hashable) -> Device:
        """Record a connected instance of device *name*."""
        with self.lock:
            return self.devices.register(name, link)

    def disconnect_io(self, link: Hashable) -> List[int]:
        """Drop a device instance; processes it can no longer serve finish.

        Returns the PIDs sent to EXIT.
        """
        with self.lock:
            finished = []
            for pid in self.devices.disconnect(link):
                pcb = self.pcbs.get(pid)
                if pcb is None:
                    continue
                self.medium_term.unblock(pid)
                previous = pcb.change_state(State.EXIT)
                _log_transition(pcb, previous)
                self._delete(pcb)
                finished.append(pid)
            return finished

    # -- scheduling ------------------------------------------------------

    def admit(self) -> Optional[int]:
        """Try to move one process into READY; returns its PID, or None."""
        with self.lock:
            pcb = self.long_term.admit()
            if pcb is None:
                return None
            self._check_preemption(pcb)
            return pcb.pid

    def dispatch(self) -> List[Tuple[int, int]]:
        """Send READY processes to free CPUs; returns (pid, cpu_id) pairs."""
        with self.lock:
            sent = []
            while self.free_cpus and self.ready:
                pcb = select_next(self.ready, self.algorithm)
                if pcb is None:
                    break
                cpu_id = self.free_cpus.pop(0)
                link = self.cpus.get(cpu_id)
                if link is None:
                    log.error("No se encontró el socket dispatch para CPU %d", cpu_id)
                    self.ready.appendleft(pcb)
                    continue
                if pcb.state is State.BLOCKED:
                    self._free_cpu(cpu_id)
                    continue
                previous = pcb.change_state(State.EXEC)
                _log_transition(pcb, previous)
                link.dispatch(pcb.pid, pcb.pc)
                self.exec[pcb.pid] = cpu_id
                log.info("Envie el proceso PID=%d a CPU - PC=%d", pcb.pid, pcb.pc)
                sent.append((pcb.pid, cpu_id))
            return sent

    # -- syscalls --------------------------------------------------------

    def syscall_io(self, pid: int, pc: int, device: str, duration: int, cpu_id: int) -> State:
        """Block a process on a device; returns the state it ends up in."""
        with self.lock:
            log.info(
                "Recibi syscall IO - PID %d - PC %d - Dispositivo [%s] - Tiempo %d",
                pid, pc, device, duration,
            )
            target = self.devices.get(device)
            if target is None:
                log.debug("Dispositivo IO [%s] no esta conectado. Enviando proceso a EXIT", device)
                pcb = self.pcbs.get(pid)
                if pcb is None:
                    log.error("No se encontro PCB con PID %d al intentar finalizar por IO null", pid)
                    self._interrupt(cpu_id)
                    return State.EXIT
                previous = pcb.change_state(State.EXIT)
                _log_transition(pcb, previous)
                self._interrupt(cpu_id)
                return pcb.state

            pcb = self._require(pid)
            self._block(pcb, pc, cpu_id)
            if not self._interrupt(cpu_id):
                return pcb.state

            instance = target.acquire()
            if instance is None:
                log.info("Dispositivo ocupado, mando PID: %d a cola bloqueados", pid)
                target.waiting.append(BlockedIo(pid, duration))
            else:
                instance.pid = pid
                instance.link.request(pid, duration, cpu_id, device)
            self._free_cpu(cpu_id)
            return pcb.state

    def io_finished(self, link: Hashable, pid: int, device: str, cpu_id: int) -> Optional[Pcb]:
        """Wake a process whose I/O ended and hand the instance to the next waiter."""
        with self.lock:
            pcb = self.pcbs.get(pid)
            if pcb is None:
                log.error("FINALIZA_IO: No se encontró el PCB del PID %d", pid)
                return None

            if pcb.state is State.SUSP_BLOCKED:
                self.medium_term.unblock(pid)
                previous = pcb.change_state(State.SUSP_READY)
                _log_transition(pcb, previous)
                self.long_term.push_suspended_ready(pcb)
            elif pcb.state is State.BLOCKED:
                self.medium_term.unblock(pid)
                self._make_ready(pcb)
                log.info("## (%d) finalizó IO y pasa a READY", pid)

            target = self.devices.get(device)
            if target is None:
                return pcb
            target.release(link)

            if target.waiting:
                free = target.acquire()
                if free is None:
                    log.error("No quedan instancias del dispositivo [%s]", device)
                    return pcb
                following = target.waiting.popleft()
                free.pid = following.pid
                free.link.request(following.pid, following.duration, cpu_id, device)
                log.debug("Despierto proceso PID %d para usar dispositivo %s", following.pid, device)

            pcb.blocked_since = None
            return pcb

    def syscall_dump(self, pid: int, pc: int, cpu_id: int) -> None:
        """Block a process while memory dumps it."""
        with self.lock:
            pcb = self._require(pid)
            self._block(pcb, pc, cpu_id)
            self._interrupt(cpu_id)
            self._free_cpu(cpu_id)
            self.memory.request_dump(pid)

    def dump_finished(self, pid: int, ok: bool) -> Optional[State]:
        """Resume a process after its dump, or finish it if the dump failed."""
        with self.lock:
            pcb = self.pcbs.get(pid)
            if pcb is None:
                log.error("Error para obtener PCB NULL")
                return None
            self.medium_term.unblock(pid)
            if ok:
                log.debug("El dump memory se llevo a cabo correctamente")
                self._make_ready(pcb)
            else:
                log.error("No se logró llevar a cabo el MEMORY DUMP")
                previous = pcb.change_state(State.EXIT)
                _log_transition(pcb, previous)
                self._delete(pcb)
            pcb.blocked_since = None
            return pcb.state

    def syscall_init(self, size: int, path: str) -> int:
        """Create a process on behalf of a running one; returns its PID.

        When memory has no room the request waits for retry_waiting().
        """
        with self.lock:
            pcb = self._new_pcb(size)
            if self.memory.request_space(pcb.pid, size):
                self._start(pcb.pid, size, path)
            else:
                self.waiting.append(_WaitingInit(pcb.pid, size, path))
            return pcb.pid

    def syscall_exit(self, pid: int) -> str:
        """Finish a process, free its CPU and return its metrics line."""
        with self.lock:
            pcb = self._require(pid)
            pcb.update_estimate(self.config.alpha, True)
            if self.memory.finish(pid):
                log.info("## (%d) - Finaliza el proceso", pid)
            if self.long_term.processes_in_memory > 0:
                self.long_term.release()
            metrics = pcb.metrics_line()
            log.info("%s", metrics)
            cpu_id = self.exec.pop(pid, None)
            self._delete(pcb)
            if cpu_id is not None:
                self._free_cpu(cpu_id)
            return metrics

    def cpu_interrupted(self, pid: int, pc: int) -> bool:
        """Store the program counter a CPU reported on interruption."""
        with self.lock:
            pcb = self.pcbs.get(pid)
            if pcb is None:
                return False
            pcb.pc = pc
            return True

    def suspend_if_blocked(self, pid: int) -> bool:
        """Swap a process out if it is still BLOCKED; True when it was."""
        with self.lock:
            pcb = self.pcbs.get(pid)
            if pcb is None:
                return False
            return self.medium_term.suspend_if_blocked(pcb)

    def retry_waiting(self) -> Optional[int]:
        """Retry the oldest init request that found no room; returns its PID if started."""
        with self.lock:
            if not self.waiting:
                return None
            waiting = self.waiting.popleft()
            pcb = self.pcbs.get(waiting.pid)
            if pcb is not None and self.memory.request_space(waiting.pid, waiting.size):
                self._start(waiting.pid, waiting.size, waiting.path)
                return waiting.pid
            self.waiting.append(waiting)
            return None