# procsim

`procsim` models the moving parts of a small teaching operating system: a
kernel that owns process control blocks and schedules them over one or more
CPUs, blocks them on I/O devices and suspends them to swap, together with the
memory-side pieces a CPU needs: address translation through a TLB and a
write-back page cache.

Every outside party (memory, CPUs, device instances) is reached through a
small protocol object, so the pieces can be driven directly from Python or
exercised with in-memory fakes.

## What is inside

| Module | Purpose |
| --- | --- |
| `procsim.tlb` | `Tlb` with FIFO or LRU replacement (`lookup`, `insert`, `clear`). |
| `procsim.mmu` | `Mmu` address translation over a `FrameSource`, optionally through a `Tlb`; `level_entry` for multi-level page tables. |
| `procsim.cache` | `PageCache`, a write-back page cache with CLOCK or CLOCK-M replacement over a `PageMemory`. |
| `procsim.pcb` | `Pcb` and `State`: per-state counters and times, burst estimation, `state_name`, `remove_by_pid`. |
| `procsim.scheduling` | Short-term selection: FIFO, SJF and SRT (`parse_short_term`, `select_next`, `pick_shortest`, `should_preempt`). |
| `procsim.long_term` | `LongTermScheduler`: admission from NEW and SUSP_READY, FIFO or smallest-process-first (`PMCP`). |
| `procsim.medium_term` | `MediumTermScheduler`: suspends processes blocked for too long. |
| `procsim.devices` | `DeviceRegistry` of I/O devices, their instances and wait queues. |
| `procsim.kernel_config` | `KernelConfig` and `load_kernel_config`. |
| `procsim.kernel` | `Kernel`, which ties the process table, schedulers, CPUs, devices and syscalls together. |

## A taste

Working out the page-table index of a logical address at each level of a
three-level table with four entries per table and 64-byte pages:

```python
from procsim.mmu import level_entry

[level_entry(1000, level, 4, 3, 64) for level in range(3)]
# [0, 3, 3]
```

Translating through a TLB, with a frame source that maps every page to the
frame after it:

```python
from procsim.mmu import Mmu
from procsim.tlb import Tlb

class Frames:
    def frame(self, pid, page):
        return page + 1

mmu = Mmu(64, Frames(), Tlb(4, "LRU"))
mmu.translate(0, 130)   # page 2, offset 2 -> frame 3 -> 194
```

Running a process through the kernel with fake memory and a fake CPU:

```python
from procsim.kernel import Kernel
from procsim.kernel_config import KernelConfig

class Memory:
    def request_space(self, pid, size): return True
    def init_process(self, pid, size, path): pass
    def notify_unsuspend(self, pid): pass
    def suspend(self, pid): pass
    def request_dump(self, pid): pass
    def finish(self, pid): return True

class Cpu:
    def dispatch(self, pid, pc): print("run", pid, "at", pc)
    def interrupt(self): print("interrupt")

config = KernelConfig(
    memory_ip="127.0.0.1", memory_port="8002", dispatch_port="8001",
    interrupt_port="8004", io_port="8003", long_term_algorithm="FIFO",
    short_term_algorithm="SRT", suspension_ms=4500, alpha=0.5,
    initial_estimate=10000, log_level="INFO",
)
kernel = Kernel(config, Memory())
pid = kernel.create_process(64, "program.txt")   # 0, in NEW
kernel.register_cpu(1, Cpu())
kernel.admit()                                   # 0, now READY
kernel.dispatch()                                # [(0, 1)], now EXEC
print(kernel.syscall_exit(pid))                  # the metrics line
```

The kernel never blocks or spawns threads of its own: callers drive it by
calling `admit()`, `dispatch()`, `retry_waiting()` and, for blocked
processes that `medium_term.due()` reports, `suspend_if_blocked(pid)`.

## Scheduling rules

* **Long term** admits a process only when memory confirms there is room.
  Suspended-ready processes are always considered before new ones, and while
  one of them is waiting for room no new process is admitted. With `PMCP`
  the NEW queue is kept ordered by process size.
* **Short term** hands a READY process to a free CPU. `SJF` and `SRT` pick
  the lowest burst estimate (the first one on ties); under `SRT` a process
  entering READY preempts the running one when its estimate is below the
  running process's remaining estimate. Estimates follow
  `alpha * last_burst + (1 - alpha) * previous_estimate`.
* **Medium term** moves a process from BLOCKED to SUSP_BLOCKED once it has
  been blocked at least the configured suspension time, and tells memory to
  swap it out.

An I/O syscall on a device that is not connected sends the process to EXIT.
When the last instance of a device disconnects, the process it was serving
and every process waiting for it are sent to EXIT.

When a process ends, `syscall_exit` returns its metrics line, giving for
every state how many times it was entered and how many milliseconds were
spent in it.

## Configuration

The kernel reads a `KEY=VALUE` file; blank lines and lines starting with `#`
are ignored:

```
IP_MEMORIA=127.0.0.1
PUERTO_MEMORIA=8002
PUERTO_ESCUCHA_DISPATCH=8001
PUERTO_ESCUCHA_INTERRUPT=8004
PUERTO_ESCUCHA_IO=8003
ALGORITMO_INGRESO_A_READY=FIFO
ALGORITMO_CORTO_PLAZO=SRT
TIEMPO_SUSPENSION=4500
ALFA=0.5
ESTIMACION_INICIAL=10000
LOG_LEVEL=INFO
```

Load it with `procsim.kernel_config.load_kernel_config(path)`. A missing key
or a number that does not parse raises `ValueError`.

## What it does not do

* There is no instruction set and no CPU instruction cycle: nothing here
  fetches, decodes or executes a program. The kernel only sees a CPU through
  the `CpuLink` protocol.
* There is no networking. The ports in the configuration are read and kept,
  but the package opens no sockets, runs no server and defines no wire
  format; connecting the protocol objects to real connections is left to the
  caller.
* There is no memory module: frames, page contents, swap and dumps come from
  whatever implements `FrameSource`, `PageMemory` and `MemoryService`.
* There is no command-line program.