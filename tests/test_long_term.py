import pytest

from procsim.long_term import LongTermScheduler, insert_by_size, parse_long_term
from procsim.pcb import Pcb, State
from procsim.scheduling import Algorithm


class FakeMemory:
    def __init__(self, accept=True):
        self.accept = accept
        self.requests = []
        self.unsuspended = []

    def request_space(self, pid, size):
        self.requests.append((pid, size))
        return self.accept

    def notify_unsuspend(self, pid):
        self.unsuspended.append(pid)


def make(pid, size=64):
    return Pcb(pid, size, 100, clock=lambda: 0.0)


def test_parse_long_term_known_names():
    assert parse_long_term("FIFO") is Algorithm.FIFO
    assert parse_long_term("PMCP") is Algorithm.PMCP


@pytest.mark.parametrize("name", ["SJF", "SRT", "LIFO", ""])
def test_parse_long_term_rejects_others(name):
    with pytest.raises(ValueError):
        parse_long_term(name)


def test_scheduler_rejects_short_term_algorithm():
    with pytest.raises(ValueError):
        LongTermScheduler(Algorithm.SJF, FakeMemory())


def test_insert_by_size_keeps_ascending_order():
    queue = [make(0, 10), make(1, 30)]
    insert_by_size(queue, make(2, 20))
    assert [pcb.pid for pcb in queue] == [0, 2, 1]


def test_insert_by_size_places_equal_sizes_after():
    queue = [make(0, 10)]
    insert_by_size(queue, make(1, 10))
    insert_by_size(queue, make(2, 5))
    assert [pcb.pid for pcb in queue] == [2, 0, 1]


def test_pmcp_push_orders_new_queue():
    scheduler = LongTermScheduler("PMCP", FakeMemory())
    for pid, size in [(0, 50), (1, 20), (2, 40)]:
        scheduler.push_new(make(pid, size))
    assert [pcb.size for pcb in scheduler.new] == sorted([50, 20, 40])


def test_fifo_admits_in_arrival_order():
    memory = FakeMemory()
    scheduler = LongTermScheduler("FIFO", memory)
    first, second = make(0, 50), make(1, 10)
    scheduler.push_new(first)
    scheduler.push_new(second)
    admitted = scheduler.admit()
    assert admitted is first
    assert first.state is State.READY
    assert list(scheduler.ready) == [first]
    assert list(scheduler.new) == [second]
    assert scheduler.processes_in_memory == 1
    assert memory.requests == [(0, 50)]


def test_admit_denied_leaves_process_new():
    scheduler = LongTermScheduler("FIFO", FakeMemory(accept=False))
    pcb = make(3)
    scheduler.push_new(pcb)
    assert scheduler.admit() is None
    assert pcb.state is State.NEW
    assert list(scheduler.new) == [pcb]
    assert scheduler.processes_in_memory == 0


def test_admit_empty_returns_none():
    scheduler = LongTermScheduler("FIFO", FakeMemory())
    assert scheduler.admit() is None
    assert not scheduler.ready


def test_suspended_ready_has_priority():
    memory = FakeMemory()
    scheduler = LongTermScheduler("FIFO", memory)
    fresh, suspended = make(0), make(1)
    suspended.change_state(State.SUSP_READY)
    scheduler.push_new(fresh)
    scheduler.push_suspended_ready(suspended)
    assert scheduler.admit() is suspended
    assert suspended.state is State.READY
    assert memory.unsuspended == [1]
    assert list(scheduler.new) == [fresh]


def test_waiting_suspended_blocks_new_admission():
    memory = FakeMemory(accept=False)
    scheduler = LongTermScheduler("FIFO", memory)
    fresh, suspended = make(0), make(1)
    scheduler.push_new(fresh)
    scheduler.push_suspended_ready(suspended)
    assert scheduler.admit() is None
    assert memory.requests == [(1, suspended.size)]
    assert list(scheduler.new) == [fresh]
    assert memory.unsuspended == []


def test_release_counts_down_and_refuses_underflow():
    scheduler = LongTermScheduler("FIFO", FakeMemory())
    scheduler.push_new(make(0))
    scheduler.push_new(make(1))
    scheduler.admit()
    scheduler.admit()
    assert scheduler.release() == 1
    assert scheduler.release() == 0
    with pytest.raises(RuntimeError):
        scheduler.release()