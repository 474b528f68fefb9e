"""Stack and heap memory with a per-line temperature model."""

import bisect
from dataclasses import dataclass

from .costs import Cost, CostCounters
from .errors import AsmRuntimeError
from .isa import MSize

STACK_MIN = 0
STACK_MAX = 102400
HEAP_MIN = 204800
HEAP_MAX = (1 << 64) - 1 - 7

_GAP = "accessing address between 102400 and 204800"


def is_stack(size, addr):
    return addr + size.nbytes() <= STACK_MAX


def is_heap(size, addr):
    return HEAP_MIN <= addr and addr + size.nbytes() <= HEAP_MAX


def is_aligned(size, addr):
    return addr % size.nbytes() == 0


@dataclass
class _TempEntry:
    last_fetched: int
    temp: int


class Temperature:
    """Tracks how recently each 8-byte memory line was accessed."""

    LINE_SIZE = 8
    MIN_TEMP = 0
    MAX_TEMP = 200
    INC = 25
    DEC = 1

    def __init__(self):
        self._entries = {}
        self.current_tick = 0

    def on_access(self, addr):
        """Record an access and return the line's temperature before it."""
        line = addr - addr % self.LINE_SIZE
        entry = self._entries.get(line)
        if entry is None:
            entry = _TempEntry(self.current_tick, 0)
            self._entries[line] = entry
            old = 0
        else:
            passed = self.current_tick - entry.last_fetched
            # the access itself prevents cooling during its own tick
            old = max(0, entry.temp - (passed - 1) * self.DEC)
        entry.temp = min(entry.temp + self.INC, self.MAX_TEMP)
        entry.last_fetched = self.current_tick
        return old

    def advance_tick(self):
        self.current_tick += 1

    def freeze(self, addr):
        entry = self._entries.get(addr)
        if entry is not None:
            entry.temp = 0

    def remove(self, addr):
        """Forget ``addr``; return the number of entries removed."""
        return 1 if self._entries.pop(addr, None) is not None else 0


class Memory:
    """Byte-addressed stack plus a first-fit heap allocator."""

    def __init__(self, counters=None):
        self.counters = counters if counters is not None else CostCounters()
        self.temperature = Temperature()
        self._stack = bytearray(STACK_MAX)
        self._starts = []
        self._blocks = {}
        self._freed = [(HEAP_MIN, HEAP_MAX)]
        self._alloced_size = 0
        self._max_alloced_size = 0

    @property
    def alloced_size(self):
        return self._alloced_size

    @property
    def max_alloced_size(self):
        return self._max_alloced_size

    def _find_block(self, addr):
        index = bisect.bisect_right(self._starts, addr) - 1
        if index < 0:
            raise AsmRuntimeError("accessing non-allocated memory")
        start = self._starts[index]
        end, data = self._blocks[start]
        if end <= addr:
            raise AsmRuntimeError("accessing non-allocated memory")
        return start, data

    def _read(self, addr, nbytes):
        if is_stack(MSize(nbytes), addr):
            return int.from_bytes(self._stack[addr:addr + nbytes], "little")
        start, data = self._find_block(addr)
        offset = addr - start
        return int.from_bytes(data[offset:offset + nbytes], "little")

    def _write(self, addr, nbytes, val):
        raw = (val & ((1 << (8 * nbytes)) - 1)).to_bytes(nbytes, "little")
        if is_stack(MSize(nbytes), addr):
            self._stack[addr:addr + nbytes] = raw
            return
        start, data = self._find_block(addr)
        offset = addr - start
        data[offset:offset + nbytes] = raw

    def _scalar_access(self, size, addr, stack_counter, heap_counter):
        if not is_aligned(size, addr):
            raise AsmRuntimeError("address not aligned")
        old = self.temperature.on_access(addr)
        if is_stack(size, addr):
            base, counter = Cost.STACK, stack_counter
        elif is_heap(size, addr):
            base, counter = Cost.HEAP, heap_counter
        else:
            raise AsmRuntimeError(_GAP)
        return base, counter, old

    def load(self, size, addr):
        """Load ``size`` bytes at ``addr``; return ``(value, cost)``."""
        base, counter, old = self._scalar_access(size, addr, "load_stack", "load_heap")
        value = self._read(addr, size.nbytes())
        self.counters.add(counter, base)
        self.counters.add("temp", Cost.PER_TEMP * old)
        return value, base + Cost.PER_TEMP * old

    def store(self, size, addr, val):
        """Store the low ``size`` bytes of ``val`` at ``addr``; return the cost."""
        base, counter, old = self._scalar_access(size, addr, "store_stack", "store_heap")
        self._write(addr, size.nbytes(), val)
        self.counters.add(counter, base)
        self.counters.add("temp", Cost.PER_TEMP * old)
        return base + Cost.PER_TEMP * old

    def _lane_cost(self, lane_addr):
        temperature = self.temperature.on_access(lane_addr)
        if is_stack(MSize.EIGHT, lane_addr):
            return Cost.VSTACK + Cost.PER_TEMP * temperature
        if is_heap(MSize.EIGHT, lane_addr):
            return Cost.VHEAP + Cost.PER_TEMP * temperature
        raise AsmRuntimeError(_GAP)

    def _vector_counters(self, addr, max_cost, stack_counter, heap_counter):
        if is_stack(MSize.EIGHT, addr):
            self.counters.add(stack_counter, Cost.VSTACK)
            self.counters.add("vtemp", max_cost - Cost.VSTACK)
        else:
            self.counters.add(heap_counter, Cost.VHEAP)
            self.counters.add("vtemp", max_cost - Cost.VHEAP)

    def vload(self, size, addr, mask):
        """Load 8-byte lanes where ``mask`` is true; return ``(values, cost)``.

        Lanes that are masked out come back as ``None``.
        """
        if not is_aligned(MSize.EIGHT, addr):
            raise AsmRuntimeError("address not aligned")
        results = [None] * size.lanes()
        max_cost = 0.0
        for lane, enabled in enumerate(mask[:size.lanes()]):
            if not enabled:
                continue
            lane_addr = addr + 8 * lane
            cost = self._lane_cost(lane_addr)
            results[lane] = self._read(lane_addr, 8)
            max_cost = max(max_cost, cost)
        self._vector_counters(addr, max_cost, "vload_stack", "vload_heap")
        return results, max_cost

    def vstore(self, size, addr, values):
        """Store 8-byte lanes; a ``None`` value leaves its lane untouched."""
        if not is_aligned(MSize.EIGHT, addr):
            raise AsmRuntimeError("address not aligned")
        max_cost = 0.0
        for lane, val in enumerate(values[:size.lanes()]):
            if val is None:
                continue
            lane_addr = addr + 8 * lane
            cost = self._lane_cost(lane_addr)
            self._write(lane_addr, 8, val)
            max_cost = max(max_cost, cost)
        self._vector_counters(addr, max_cost, "vstore_stack", "vstore_heap")
        return max_cost

    def malloc(self, size):
        """Allocate ``size`` zeroed bytes; return ``(address, cost)``."""
        if size == 0:
            raise AsmRuntimeError("allocation size should not be 0")
        if size % 8 != 0:
            raise AsmRuntimeError("allocation size should be multiple of 8")
        for index, (start, end) in enumerate(self._freed):
            if end - start < size:
                continue
            del self._freed[index]
            bisect.insort(self._freed, (start + size, end))
            bisect.insort(self._starts, start)
            self._blocks[start] = (start + size, bytearray(size))
            self._alloced_size += size
            self._max_alloced_size = max(self._max_alloced_size, self._alloced_size)
            self.counters.add("malloc", Cost.MALLOC)
            return start, Cost.MALLOC
        raise AsmRuntimeError("out-of-memory")

    def free(self, addr):
        """Release the block starting at ``addr``; return the cost."""
        if addr not in self._blocks:
            raise AsmRuntimeError("freeing non-allocated address")
        end, _ = self._blocks.pop(addr)
        self._starts.remove(addr)
        size = end - addr
        for line in range(addr, end, 8):
            self.temperature.remove(line)

        start = addr
        index = bisect.bisect_left(self._freed, (addr, end))
        if index > 0 and self._freed[index - 1][1] == start:
            start = self._freed[index - 1][0]
            del self._freed[index - 1]
            index -= 1
        if index < len(self._freed) and self._freed[index][0] == end:
            end = self._freed[index][1]
            del self._freed[index]
        bisect.insort(self._freed, (start, end))

        self._alloced_size -= size
        self.counters.add("free", Cost.FREE)
        return Cost.FREE

    def cool(self, addr):
        if not is_aligned(MSize.EIGHT, addr):
            raise AsmRuntimeError("an address being cooled should be multiple of 8")
        self.temperature.freeze(addr)

    def advance_time(self):
        self.temperature.advance_tick()