import pytest

from tierrank_py.constants import UNRANKED_TIER_ID
from tierrank_py.ledger import VoteLedger
from tierrank_py.models import Item, Metrics, Mode, RefinementContext
from tierrank_py.ranker import (
    adjusted_refined_cuts,
    bottom_cluster_start,
    cleared_tiers,
    finalize_tiers,
    merge_cuts_prefer_refined,
    quick_tier_pass,
    select_refined_cuts,
)
from tierrank_py.scheduler import refinement_pairs


def ids(items):
    return [item.id for item in items]


@pytest.fixture
def sample_dataset():
    alpha = Item("alpha", "Alpha")
    beta = Item("beta", "Beta")
    gamma = Item("gamma", "Gamma")
    delta = Item("delta", "Delta")
    ledger = VoteLedger.from_counts(
        {"alpha": (6, 1), "beta": (4, 3), "gamma": (2, 1), "delta": (0, 1)}
    )
    base_tiers = {
        "S": [alpha],
        "A": [beta],
        "B": [gamma],
        "C": [],
        UNRANKED_TIER_ID: [delta],
    }
    return [alpha, beta, gamma, delta], ledger, ["S", "A", "B", "C"], base_tiers


def uniform_pool(count):
    return [Item(f"item{i:02d}", f"Item {i:02d}") for i in range(count)]


def make_metrics(item_id, ub, lb=0.0):
    return Metrics(item_id, 0, 10, 0.0, lb, ub, item_id)


def test_quick_pass_tiers_rankable_pool(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    result = quick_tier_pass(pool, ledger, tier_order, base_tiers)

    assert ids(result.tiers["S"]) == ["alpha"]
    assert ids(result.tiers["A"]) == ["beta"]
    assert ids(result.tiers["B"]) == ["gamma"]
    assert result.tiers["C"] == []
    assert ids(result.tiers[UNRANKED_TIER_ID]) == ["delta"]

    artifacts = result.artifacts
    assert artifacts is not None
    assert artifacts.mode is Mode.QUICK
    assert artifacts.tier_names == ["S", "A", "B", "C"]
    assert ids(artifacts.rankable) == ["alpha", "beta", "gamma"]
    assert ids(artifacts.undersampled) == ["delta"]
    assert artifacts.provisional_cuts == [1, 2]
    assert [f.index for f in artifacts.frontier] == [1, 2]
    assert artifacts.warm_up_comparisons == 8


def test_quick_pass_suggests_distinct_pairs(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    result = quick_tier_pass(pool, ledger, tier_order, base_tiers)

    assert 0 < len(result.suggested_pairs) <= 6
    keys = {tuple(sorted((a.id, b.id))) for a, b in result.suggested_pairs}
    assert len(keys) == len(result.suggested_pairs)
    for a, b in result.suggested_pairs:
        assert a.id != b.id
        assert {a.id, b.id} <= {"alpha", "beta", "gamma"}


def test_quick_pass_does_not_mutate_base_tiers(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    snapshot = {name: ids(members) for name, members in base_tiers.items()}
    quick_tier_pass(pool, ledger, tier_order, base_tiers)
    assert {name: ids(members) for name, members in base_tiers.items()} == snapshot


def test_quick_pass_empty_pool_returns_input(sample_dataset):
    _, ledger, tier_order, base_tiers = sample_dataset
    result = quick_tier_pass([], ledger, tier_order, base_tiers)
    assert result.tiers is base_tiers
    assert result.artifacts is None
    assert result.suggested_pairs == []


def test_quick_pass_blank_tier_names_returns_input(sample_dataset):
    pool, ledger, _, base_tiers = sample_dataset
    result = quick_tier_pass(pool, ledger, ["", "   "], base_tiers)
    assert result.tiers is base_tiers
    assert result.artifacts is None


def test_quick_pass_all_undersampled(sample_dataset):
    pool, _, tier_order, base_tiers = sample_dataset
    ledger = VoteLedger.from_counts({"alpha": (1, 0), "delta": (0, 1)})
    result = quick_tier_pass(pool, ledger, tier_order, base_tiers)

    assert result.artifacts is None
    assert result.suggested_pairs == []
    for name in tier_order:
        assert result.tiers[name] == []
    # prior from the S tier keeps alpha first
    assert ids(result.tiers[UNRANKED_TIER_ID])[0] == "alpha"
    assert sorted(ids(result.tiers[UNRANKED_TIER_ID])) == ["alpha", "beta", "delta", "gamma"]


def test_quick_pass_minimum_comparisons(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    result = quick_tier_pass(pool, ledger, tier_order, base_tiers, minimum_comparisons=1)
    assert result.tiers[UNRANKED_TIER_ID] == []
    assert len(result.artifacts.rankable) == 4


def test_quick_pass_scrubs_stale_membership(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    outsider = Item("outsider", "Outsider")
    base_tiers = dict(base_tiers)
    base_tiers["Archive"] = [pool[1], outsider]
    base_tiers[UNRANKED_TIER_ID] = [pool[3], Item("parked", "Parked")]

    result = quick_tier_pass(pool, ledger, tier_order, base_tiers)

    assert ids(result.tiers["Archive"]) == ["outsider"]
    assert ids(result.tiers[UNRANKED_TIER_ID]) == ["parked", "delta"]
    placed = [item.id for members in result.tiers.values() for item in members]
    assert len(placed) == len(set(placed))


def test_cleared_tiers_always_has_unranked():
    item = Item("a")
    tiers = cleared_tiers({"S": [item]}, [item], ["S", "A"])
    assert tiers == {"S": [], "A": [], UNRANKED_TIER_ID: []}


def test_merge_cuts_prefer_refined():
    assert merge_cuts_prefer_refined([2, 5, 8], 3, 10) == [2, 5]
    assert merge_cuts_prefer_refined([3], 3, 10) == [3, 7]
    assert merge_cuts_prefer_refined([5], 4, 20) == [5, 10, 15]


def test_bottom_cluster_start():
    items = [Item(str(i)) for i in range(6)]
    metrics = {item.id: make_metrics(item.id, 0.1) for item in items}
    assert bottom_cluster_start(items, metrics) is None

    metrics["4"] = make_metrics("4", 0.3)
    assert bottom_cluster_start(items, metrics) == 4
    assert bottom_cluster_start(items[:1], metrics) is None


def test_adjusted_refined_cuts_pulls_last_cut_to_bottom_cluster():
    items = [Item(str(i)) for i in range(6)]
    metrics = {item.id: make_metrics(item.id, 0.9) for item in items}
    for weak in ("2", "3", "5"):
        metrics[weak] = make_metrics(weak, 0.1)
    metrics["4"] = make_metrics("4", 0.3)
    primary = [2, 3]

    refined = adjusted_refined_cuts(primary, [2, 4], 3, items, metrics)

    assert refined == [2, 4]
    assert primary == [2, 3]


def test_adjusted_refined_cuts_without_primary_uses_quantiles():
    items = [Item(str(i)) for i in range(6)]
    metrics = {item.id: make_metrics(item.id, 0.9) for item in items}
    assert adjusted_refined_cuts([], [2, 4], 3, items, metrics) == [2, 4]


def refinement_context(**overrides):
    values = dict(
        quant_cuts=[1, 2],
        refined_cuts=[1, 3],
        primary_cuts=[1, 3],
        total_comparisons=20,
        required_comparisons=10,
        churn=0.05,
        item_count=6,
    )
    values.update(overrides)
    return RefinementContext(**values)


def test_select_refined_cuts_accepts_low_churn():
    assert select_refined_cuts(refinement_context()) == [1, 3]


def test_select_refined_cuts_waits_for_warm_up():
    assert select_refined_cuts(refinement_context(total_comparisons=5)) == [1, 2]


def test_select_refined_cuts_small_pools_trust_refinement():
    assert select_refined_cuts(refinement_context(churn=0.9, item_count=16)) == [1, 3]


def test_select_refined_cuts_falls_back_on_high_churn_for_large_pools():
    context = refinement_context(churn=0.5, item_count=20, total_comparisons=100, required_comparisons=30)
    assert select_refined_cuts(context) == [1, 2]


def test_select_refined_cuts_hard_threshold():
    assert select_refined_cuts(refinement_context(churn=0.2, item_count=40)) == [1, 3]
    assert select_refined_cuts(refinement_context(churn=0.3, item_count=40)) == [1, 2]


def test_select_refined_cuts_needs_primary_cuts():
    assert select_refined_cuts(refinement_context(primary_cuts=[])) == [1, 2]


def test_finalize_tiers_adopts_confidence_gap_cuts():
    pool = [Item(name, name.upper()) for name in "abcdef"]
    ledger = VoteLedger.from_counts(
        {"a": (9, 1), "b": (9, 1), "c": (9, 1), "d": (1, 9), "e": (1, 9), "f": (1, 9)}
    )
    tier_order = ["S", "A", "B"]
    base = {"S": [], "A": [], "B": [], UNRANKED_TIER_ID: list(pool)}

    quick = quick_tier_pass(pool, ledger, tier_order, base)
    assert quick.artifacts.provisional_cuts == [2, 4]

    tiers, artifacts = finalize_tiers(quick.artifacts, ledger, tier_order, base)

    assert ids(tiers["S"]) == ["a", "b"]
    assert ids(tiers["A"]) == ["c"]
    assert ids(tiers["B"]) == ["d", "e", "f"]
    assert tiers[UNRANKED_TIER_ID] == []
    assert artifacts.mode is Mode.DONE
    assert artifacts.provisional_cuts == [2, 3]
    assert ids(artifacts.rankable) == ["a", "b", "c", "d", "e", "f"]


def test_finalize_tiers_keeps_quantile_cuts_without_separation():
    pool = uniform_pool(20)
    ledger = VoteLedger.from_counts({item.id: (2, 2) for item in pool})
    tier_order = ["S", "A", "B", "C"]
    base = {name: [] for name in tier_order}
    base[UNRANKED_TIER_ID] = list(pool)

    quick = quick_tier_pass(pool, ledger, tier_order, base)
    tiers, artifacts = finalize_tiers(quick.artifacts, ledger, tier_order, base)

    assert artifacts.provisional_cuts == [5, 10, 15]
    assert ids(tiers["S"]) == [f"item{i:02d}" for i in range(5)]
    assert ids(tiers["C"]) == [f"item{i:02d}" for i in range(15, 20)]
    assert all(len(tiers[name]) == 5 for name in tier_order)


def test_finalize_tiers_rebuilds_unranked(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    quick = quick_tier_pass(pool, ledger, tier_order, base_tiers)
    tiers, artifacts = finalize_tiers(quick.artifacts, ledger, tier_order, base_tiers)

    assert ids(tiers[UNRANKED_TIER_ID]) == ["delta"]
    ranked = [item.id for name in tier_order for item in tiers[name]]
    assert sorted(ranked) == ["alpha", "beta", "gamma"]
    assert ranked == ids(artifacts.rankable)
    assert refinement_pairs(artifacts, ledger, 6) == []


def test_finalize_tiers_without_rankable_is_a_no_op(sample_dataset):
    pool, ledger, tier_order, base_tiers = sample_dataset
    quick = quick_tier_pass(pool, ledger, tier_order, base_tiers)
    empty = quick.artifacts
    empty.rankable = []
    tiers, artifacts = finalize_tiers(empty, ledger, tier_order, base_tiers)
    assert tiers is base_tiers
    assert artifacts is empty
