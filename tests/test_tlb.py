import pytest

from procsim.tlb import Tlb, TlbEntry


def test_miss_on_empty_tlb():
    tlb = Tlb(4, "FIFO")
    assert tlb.lookup(3) is None
    assert len(tlb) == 0


def test_insert_then_hit():
    tlb = Tlb(4, "LRU")
    tlb.insert(3, 17)
    assert tlb.lookup(3) == 17
    assert len(tlb) == 1


def test_fifo_evicts_oldest_insert_even_if_used():
    tlb = Tlb(2, "FIFO")
    tlb.insert(1, 10)
    tlb.insert(2, 20)
    tlb.lookup(1)
    tlb.insert(3, 30)
    assert len(tlb) == 2
    assert tlb.lookup(1) is None
    assert tlb.lookup(2) == 20
    assert tlb.lookup(3) == 30


def test_lru_evicts_least_recently_used():
    tlb = Tlb(2, "LRU")
    tlb.insert(1, 10)
    tlb.insert(2, 20)
    tlb.lookup(1)
    tlb.insert(3, 30)
    assert tlb.lookup(2) is None
    assert tlb.lookup(1) == 10
    assert tlb.lookup(3) == 30


def test_size_never_exceeds_capacity():
    tlb = Tlb(3, "LRU")
    for page in range(10):
        tlb.insert(page, page + 100)
        assert len(tlb) <= 3
    assert len(tlb) == 3


def test_clear_empties_the_tlb():
    tlb = Tlb(2, "FIFO")
    tlb.insert(1, 10)
    tlb.clear()
    assert len(tlb) == 0
    assert tlb.lookup(1) is None


def test_zero_capacity_stores_nothing():
    tlb = Tlb(0, "FIFO")
    tlb.insert(1, 10)
    assert len(tlb) == 0


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        Tlb(2, "CLOCK")


def test_entry_fields():
    entry = TlbEntry(page=2, frame=5, last_access=1)
    assert (entry.page, entry.frame, entry.last_access) == (2, 5, 1)