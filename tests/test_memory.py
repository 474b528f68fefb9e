import pytest

from sfinterp.costs import Cost, CostCounters
from sfinterp.errors import AsmRuntimeError
from sfinterp.isa import MSize, VSize
from sfinterp.memory import (
    HEAP_MIN,
    STACK_MAX,
    Memory,
    Temperature,
    is_aligned,
    is_heap,
    is_stack,
)


def test_region_predicates():
    assert is_stack(MSize.EIGHT, STACK_MAX - 8)
    assert not is_stack(MSize.EIGHT, STACK_MAX - 4)
    assert is_heap(MSize.EIGHT, HEAP_MIN)
    assert not is_heap(MSize.EIGHT, HEAP_MIN - 8)
    assert is_aligned(MSize.FOUR, 12)
    assert not is_aligned(MSize.FOUR, 6)


def test_temperature_first_access_is_cold():
    temp = Temperature()
    assert temp.on_access(16) == 0


def test_temperature_rises_and_decays():
    temp = Temperature()
    temp.on_access(16)
    temp.advance_tick()
    assert temp.on_access(20) == Temperature.INC
    fresh = Temperature()
    fresh.on_access(0)
    for _ in range(3):
        fresh.advance_tick()
    assert fresh.on_access(0) == 23


def test_temperature_freeze_and_remove():
    temp = Temperature()
    temp.on_access(8)
    temp.freeze(8)
    temp.advance_tick()
    assert temp.on_access(8) == 0
    assert temp.remove(8) == 1
    assert temp.remove(8) == 0


def test_stack_store_load_round_trip():
    mem = Memory()
    mem.store(MSize.EIGHT, 64, 123456789)
    value, _ = mem.load(MSize.EIGHT, 64)
    assert value == 123456789


def test_little_endian_layout():
    mem = Memory()
    mem.store(MSize.EIGHT, 0, 0x0102030405060708)
    value, _ = mem.load(MSize.ONE, 0)
    assert value == 0x08


def test_store_truncates_to_size():
    mem = Memory()
    mem.store(MSize.ONE, 0, 0x1FF)
    value, _ = mem.load(MSize.ONE, 0)
    assert value == 0xFF


def test_unaligned_access_rejected():
    mem = Memory()
    with pytest.raises(AsmRuntimeError, match="not aligned"):
        mem.load(MSize.FOUR, 2)


def test_gap_access_rejected():
    mem = Memory()
    with pytest.raises(AsmRuntimeError, match="between 102400 and 204800"):
        mem.store(MSize.EIGHT, STACK_MAX, 1)


def test_load_cost_includes_temperature():
    mem = Memory()
    _, first = mem.load(MSize.EIGHT, 0)
    mem.advance_time()
    _, second = mem.load(MSize.EIGHT, 0)
    assert first == Cost.STACK
    assert second == pytest.approx(Cost.STACK + Cost.PER_TEMP * Temperature.INC)


def test_cool_resets_temperature():
    mem = Memory()
    mem.store(MSize.EIGHT, 0, 1)
    mem.advance_time()
    mem.cool(0)
    mem.advance_time()
    _, cost = mem.load(MSize.EIGHT, 0)
    assert cost == Cost.STACK


def test_cool_unaligned_rejected():
    mem = Memory()
    with pytest.raises(AsmRuntimeError, match="multiple of 8"):
        mem.cool(4)


def test_counters_updated():
    counters = CostCounters()
    mem = Memory(counters)
    mem.load(MSize.EIGHT, 0)
    addr, _ = mem.malloc(8)
    mem.store(MSize.EIGHT, addr, 1)
    assert counters["load_stack"] == Cost.STACK
    assert counters["store_heap"] == Cost.HEAP
    assert counters["malloc"] == Cost.MALLOC


def test_malloc_first_fit_addresses():
    mem = Memory()
    first, cost = mem.malloc(16)
    second, _ = mem.malloc(8)
    assert first == HEAP_MIN
    assert second == HEAP_MIN + 16
    assert cost == Cost.MALLOC


def test_heap_memory_is_zeroed_and_round_trips():
    mem = Memory()
    addr, _ = mem.malloc(16)
    assert mem.load(MSize.EIGHT, addr + 8)[0] == 0
    mem.store(MSize.FOUR, addr + 4, 99)
    assert mem.load(MSize.FOUR, addr + 4)[0] == 99


@pytest.mark.parametrize("size,message", [(0, "should not be 0"), (12, "multiple of 8")])
def test_malloc_invalid_sizes(size, message):
    mem = Memory()
    with pytest.raises(AsmRuntimeError, match=message):
        mem.malloc(size)


def test_heap_access_outside_block_rejected():
    mem = Memory()
    addr, _ = mem.malloc(8)
    with pytest.raises(AsmRuntimeError, match="non-allocated memory"):
        mem.load(MSize.EIGHT, addr + 8)


def test_access_after_free_rejected():
    mem = Memory()
    addr, _ = mem.malloc(8)
    assert mem.free(addr) == Cost.FREE
    with pytest.raises(AsmRuntimeError, match="non-allocated memory"):
        mem.load(MSize.EIGHT, addr)


def test_free_non_allocated_rejected():
    mem = Memory()
    addr, _ = mem.malloc(16)
    with pytest.raises(AsmRuntimeError, match="freeing non-allocated"):
        mem.free(addr + 8)


def test_free_coalesces_neighbours():
    mem = Memory()
    a, _ = mem.malloc(8)
    b, _ = mem.malloc(8)
    c, _ = mem.malloc(8)
    mem.free(a)
    mem.free(b)
    d, _ = mem.malloc(16)
    assert d == a
    mem.free(d)
    mem.free(c)
    e, _ = mem.malloc(24)
    assert e == HEAP_MIN


def test_alloced_size_tracking():
    mem = Memory()
    a, _ = mem.malloc(16)
    mem.malloc(8)
    mem.free(a)
    assert mem.alloced_size == 8
    assert mem.max_alloced_size == 16 + 8


def test_free_forgets_temperature():
    mem = Memory()
    addr, _ = mem.malloc(8)
    mem.store(MSize.EIGHT, addr, 5)
    mem.free(addr)
    again, _ = mem.malloc(8)
    mem.advance_time()
    cost = mem.store(MSize.EIGHT, again, 5)
    assert again == addr
    assert cost == Cost.HEAP


def test_vector_round_trip_with_mask():
    mem = Memory()
    mem.vstore(VSize.V4, 32, [1, 2, 3, 4])
    mem.vstore(VSize.V4, 32, [None, 20, None, 40])
    values, _ = mem.vload(VSize.V4, 32, [True, True, False, True])
    assert values == [1, 20, None, 40]


def test_vector_cost_and_counters():
    counters = CostCounters()
    mem = Memory(counters)
    _, cost = mem.vload(VSize.V2, 0, [True, True])
    assert cost == Cost.VSTACK
    assert counters["vload_stack"] == Cost.VSTACK


def test_vector_heap_access():
    mem = Memory()
    addr, _ = mem.malloc(16)
    cost = mem.vstore(VSize.V2, addr, [7, 8])
    values, _ = mem.vload(VSize.V2, addr, [True, True])
    assert values == [7, 8]
    assert cost == Cost.VHEAP


def test_vector_unaligned_rejected():
    mem = Memory()
    with pytest.raises(AsmRuntimeError, match="not aligned"):
        mem.vload(VSize.V2, 4, [True, True])