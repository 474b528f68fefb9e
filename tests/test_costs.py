import pytest

from sfinterp.costs import COUNTER_NAMES, Cost, CostCounters


def test_fresh_counters_are_zero():
    counters = CostCounters()
    ranked = counters.ranked()
    assert {name for name, _ in ranked} == set(COUNTER_NAMES)
    assert all(amount == 0.0 for _, amount in ranked)


def test_add_accumulates():
    counters = CostCounters()
    counters.add("malloc", Cost.MALLOC)
    counters.add("malloc", Cost.MALLOC)
    assert counters["malloc"] == Cost.MALLOC * 2


def test_ranked_descending():
    counters = CostCounters()
    counters.add("addsub", Cost.ADDSUB)
    counters.add("comp", Cost.COMP)
    counters.add("malloc", Cost.MALLOC)
    top = [name for name, _ in counters.ranked()[:3]]
    assert top == ["malloc", "addsub", "comp"]
    amounts = [amount for _, amount in counters.ranked()]
    assert amounts == sorted(amounts, reverse=True)


def test_ties_ordered_by_name_descending():
    counters = CostCounters()
    counters.add("ret", Cost.RET)
    counters.add("write", Cost.RET)
    top = [name for name, _ in counters.ranked()[:2]]
    assert top == ["write", "ret"]


def test_unknown_counter_rejected():
    counters = CostCounters()
    with pytest.raises(KeyError):
        counters.add("nonsense", 1.0)