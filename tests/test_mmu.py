import pytest

from procsim.mmu import Mmu, TranslationError, level_entry
from procsim.tlb import Tlb


class FakeFrames:
    def __init__(self, table):
        self.table = table
        self.calls = []

    def frame(self, pid, page):
        self.calls.append((pid, page))
        return self.table.get(page)


PAGE = 64


def test_split_keeps_address_reconstructible():
    mmu = Mmu(PAGE, FakeFrames({}))
    for address in (0, 1, 63, 64, 200, 4095):
        page, offset = mmu.split(address)
        assert page * PAGE + offset == address
        assert 0 <= offset < PAGE


def test_split_rejects_negative_address():
    with pytest.raises(ValueError):
        Mmu(PAGE, FakeFrames({})).split(-1)


def test_invalid_page_size_is_rejected():
    with pytest.raises(ValueError):
        Mmu(0, FakeFrames({}))


def test_translate_without_tlb_keeps_offset_and_uses_frame():
    frames = FakeFrames({3: 7})
    mmu = Mmu(PAGE, frames)
    physical = mmu.translate(1, 3 * PAGE + 5)
    assert physical % PAGE == 5
    assert physical // PAGE == 7
    assert frames.calls == [(1, 3)]


def test_translate_worked_example():
    mmu = Mmu(PAGE, FakeFrames({0: 2}))
    assert mmu.translate(0, 10) == 138


def test_missing_frame_raises():
    with pytest.raises(TranslationError):
        Mmu(PAGE, FakeFrames({})).translate(1, 0)


def test_tlb_hit_avoids_memory_request():
    frames = FakeFrames({2: 9})
    tlb = Tlb(4, "FIFO")
    mmu = Mmu(PAGE, frames, tlb)
    first = mmu.translate(1, 2 * PAGE + 1)
    second = mmu.translate(1, 2 * PAGE + 1)
    assert first == second
    assert frames.calls == [(1, 2)]
    assert tlb.lookup(2) == 9


def test_disabled_tlb_always_asks_memory():
    frames = FakeFrames({2: 9})
    mmu = Mmu(PAGE, frames, Tlb(0, "LRU"))
    mmu.translate(1, 2 * PAGE)
    mmu.translate(1, 2 * PAGE)
    assert len(frames.calls) == 2


def test_level_entries_rebuild_page_number():
    entries, levels, page_size = 4, 3, 8
    for address in (0, 27 * 8, 63 * 8 + 3, 100 * 8):
        page = address // page_size
        indices = [level_entry(address, lvl, entries, levels, page_size) for lvl in range(levels)]
        assert all(0 <= index < entries for index in indices)
        rebuilt = sum(index * entries ** (levels - lvl - 1) for lvl, index in enumerate(indices))
        assert rebuilt == page % entries ** levels


def test_level_entry_worked_example():
    assert [level_entry(27, lvl, 4, 3, 1) for lvl in range(3)] == [1, 2, 3]


def test_level_entry_rejects_level_out_of_range():
    with pytest.raises(ValueError):
        level_entry(0, 3, 4, 3, 8)