"""Cost model and per-category cost counters."""


class Cost:
    """Cost of each kind of instruction."""

    MALLOC = 8.0
    FREE = 8.0
    STACK = 2.0
    HEAP = 4.0
    VSTACK = 2.8
    VHEAP = 4.8
    PER_TEMP = 0.1
    COOL = 10.0

    RET = 1.0
    BRUNCOND = 1.0
    BRCOND_TRUE = 4.0
    BRCOND_FALSE = 1.0
    SWITCH = 2.0

    MULDIV = 1.0
    LOGICAL = 2.8
    ADDSUB = 3.2
    COMP = 1.0

    TERNARY = 1.2

    CALL = 2.0
    PER_ARG = 1.0

    ASSERT = 0.0


COUNTER_NAMES = (
    "ret",
    "bruncond",
    "brcond_true",
    "brcond_false",
    "switch",
    "call",
    "call_arg",
    "malloc",
    "free",
    "load_stack",
    "load_heap",
    "store_stack",
    "store_heap",
    "temp",
    "vload_stack",
    "vload_heap",
    "vstore_stack",
    "vstore_heap",
    "vtemp",
    "cool",
    "muldiv",
    "logical",
    "addsub",
    "comp",
    "ternary",
    "read",
    "write",
)


class CostCounters:
    """Running totals of cost, broken down by category."""

    def __init__(self):
        self._totals = dict.fromkeys(COUNTER_NAMES, 0.0)

    def add(self, name, amount):
        if name not in self._totals:
            raise KeyError(name)
        self._totals[name] += amount

    def __getitem__(self, name):
        return self._totals[name]

    def ranked(self):
        """Return ``(name, amount)`` pairs, largest amount first, ties by name descending."""
        return sorted(
            self._totals.items(),
            key=lambda item: (item[1], item[0]),
            reverse=True,
        )