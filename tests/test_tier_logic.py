import pytest

from tierrank_py.models import Item
from tierrank_py.tier_logic import assign, move_item, reorder_within


@pytest.fixture
def sample_tiers():
    return {
        "S": [Item("sigma", "Sigma")],
        "A": [Item("alpha", "Alpha"), Item("beta", "Beta")],
        "unranked": [Item("omega", "Omega")],
    }


def ids(items):
    return [item.id for item in items]


def test_move_item_between_tiers(sample_tiers):
    moved = move_item(sample_tiers, "beta", "S")
    assert ids(moved["A"]) == ["alpha"]
    assert ids(moved["S"]) == ["sigma", "beta"]
    # input untouched
    assert ids(sample_tiers["A"]) == ["alpha", "beta"]
    assert ids(sample_tiers["S"]) == ["sigma"]


def test_move_item_creates_missing_target(sample_tiers):
    moved = move_item(sample_tiers, "omega", "B")
    assert ids(moved["B"]) == ["omega"]
    assert moved["unranked"] == []


def test_move_item_no_ops_return_original(sample_tiers):
    assert move_item(sample_tiers, "alpha", "A") is sample_tiers
    assert move_item(sample_tiers, "missing", "S") is sample_tiers
    assert move_item(sample_tiers, "", "S") is sample_tiers
    assert move_item(sample_tiers, "alpha", "") is sample_tiers


def test_reorder_within_tier():
    tiers = {"S": [Item("s1", "First"), Item("s2", "Second"), Item("s3", "Third")]}
    reordered = reorder_within(tiers, "S", 0, 2)
    assert ids(reordered["S"]) == ["s2", "s3", "s1"]
    assert ids(tiers["S"]) == ["s1", "s2", "s3"]


def test_reorder_ignores_out_of_bounds(sample_tiers):
    assert reorder_within(sample_tiers, "A", 1, 5) is sample_tiers
    assert reorder_within(sample_tiers, "A", -1, 0) is sample_tiers
    assert reorder_within(sample_tiers, "Z", 0, 0) is sample_tiers


def test_assign(sample_tiers):
    assigned = assign(sample_tiers, "omega", "S")
    assert ids(assigned["S"]) == ["sigma", "omega"]
