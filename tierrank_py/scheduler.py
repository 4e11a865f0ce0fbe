import logging
from math import floor
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from .constants import UNRANKED_TIER_ID, Tun
from .ledger import VoteLedger
from .metrics import build_priors, metrics_dictionary, ordered_items
from .models import Artifacts, Item, Metrics, Mode, Pair

logger = logging.getLogger(__name__)

RNG = Callable[[], float]
PairKey = Tuple[str, str]


def seeded_rng(seed: Optional[int] = None) -> RNG:
    """A replayable RNG: a callable returning floats in [0, 1)."""
    generator = np.random.default_rng(seed)
    return lambda: float(generator.random())


def pair_key(item_a: Item, item_b: Item) -> PairKey:
    """Create a consistent key for a comparison regardless of order"""
    return (item_a.id, item_b.id) if item_a.id < item_b.id else (item_b.id, item_a.id)


def pick_pair(pool: Sequence[Item], rng: RNG) -> Optional[Pair]:
    """Two distinct random items; a colliding second index steps to the next slot."""
    if len(pool) < 2:
        return None
    n = len(pool)
    i = int(floor(rng() * n))
    j = int(floor(rng() * n))
    if j == i:
        j = (j + 1) % n
    return pool[i], pool[j]


def pairings(pool: Sequence[Item], rng: RNG) -> List[Pair]:
    """Every unordered pair of the pool, Fisher-Yates shuffled with `rng`."""
    if len(pool) < 2:
        return []
    combinations = [
        (pool[i], pool[j]) for i in range(len(pool) - 1) for j in range(i + 1, len(pool))
    ]
    if len(combinations) <= 1:
        return combinations

    idx = len(combinations) - 1
    while idx > 0:
        swap = int(floor(rng() * (idx + 1)))
        combinations[idx], combinations[swap] = combinations[swap], combinations[idx]
        idx -= 1
    return combinations


# Refinement suggestions


def _adjacent_ties(
    ordered: Sequence[Item], metrics: Mapping[str, Metrics], epsilon: float
) -> List[Pair]:
    pairs = []
    for upper, lower in zip(ordered, ordered[1:]):
        upper_metrics = metrics.get(upper.id)
        lower_metrics = metrics.get(lower.id)
        if upper_metrics is None or lower_metrics is None:
            continue
        delta = upper_metrics.wilson_lb - lower_metrics.wilson_ub
        if 0 <= delta <= epsilon:
            pairs.append((upper, lower))
    return pairs


def top_boundary_comparisons(
    ordered: Sequence[Item], metrics: Mapping[str, Metrics], epsilon: float
) -> List[Pair]:
    """Adjacent items whose intervals only just separate."""
    if len(ordered) < 2:
        return []
    return _adjacent_ties(ordered, metrics, epsilon)


def bottom_boundary_comparisons(
    ordered: Sequence[Item], metrics: Mapping[str, Metrics], epsilon: float
) -> List[Pair]:
    """Near-ties among the last few items, restricted to clearly weak ones."""
    if len(ordered) < 2:
        return []
    width = min(Tun.max_bottom_tie_width, len(ordered))
    tail = list(ordered[len(ordered) - width:])
    pairs = []
    for upper, lower in zip(tail, tail[1:]):
        upper_metrics = metrics.get(upper.id)
        if upper_metrics is None or upper_metrics.wilson_ub > Tun.ub_bottom_ceil:
            continue
        pairs.extend(_adjacent_ties([upper, lower], metrics, epsilon))
    return pairs


def forced_boundary_pairs(
    ordered: Sequence[Item],
    metrics: Mapping[str, Metrics],
    limit: int,
    seen: Set[PairKey],
) -> List[Pair]:
    results: List[Pair] = []
    candidates = top_boundary_comparisons(ordered, metrics, Tun.eps_tie_top)
    candidates += bottom_boundary_comparisons(ordered, metrics, Tun.eps_tie_bottom)
    for pair in candidates:
        key = pair_key(*pair)
        if key not in seen:
            seen.add(key)
            results.append(pair)
        if len(results) >= limit:
            break
    return results


def frontier_candidate_pairs(
    artifacts: Artifacts,
    metrics: Mapping[str, Metrics],
    seen: Set[PairKey],
) -> List[Pair]:
    """Cross the windows around every cut, closest intervals first."""
    candidates = []
    for boundary in artifacts.frontier:
        upper_band = artifacts.rankable[boundary.upper_range[0]:boundary.upper_range[1]]
        lower_band = artifacts.rankable[boundary.lower_range[0]:boundary.lower_range[1]]
        for upper in upper_band:
            for lower in lower_band:
                if upper.id == lower.id:
                    continue
                upper_metrics = metrics.get(upper.id)
                lower_metrics = metrics.get(lower.id)
                if upper_metrics is None or lower_metrics is None:
                    continue
                key = pair_key(upper, lower)
                if key in seen:
                    continue
                seen.add(key)
                closeness = abs(upper_metrics.wilson_lb - lower_metrics.wilson_ub)
                min_comparisons = min(upper_metrics.comparisons, lower_metrics.comparisons)
                candidates.append((closeness, min_comparisons, upper.id + lower.id, (upper, lower)))

    candidates.sort(key=lambda c: c[:3])
    return [c[3] for c in candidates]


def refinement_pairs(artifacts: Artifacts, ledger: VoteLedger, limit: int) -> List[Pair]:
    """Pairs whose outcome would most sharpen the current tier boundaries."""
    if (
        artifacts.mode is Mode.DONE
        or not artifacts.rankable
        or not artifacts.frontier
        or limit <= 0
    ):
        return []

    metrics = metrics_dictionary(artifacts.rankable, ledger, Tun.z_quick)
    ordered = ordered_items(artifacts.rankable, metrics)

    seen: Set[PairKey] = set()
    results = forced_boundary_pairs(ordered, metrics, limit, seen)
    if len(results) >= limit:
        return results[:limit]

    candidates = frontier_candidate_pairs(artifacts, metrics, seen)
    return results + candidates[: limit - len(results)]


# Warm start


class WarmStartQueueBuilder:
    """Collects pairs until every item has been queued `target` times."""

    def __init__(self, pool: Sequence[Item], target: int) -> None:
        self.target = target
        self.queue: List[Pair] = []
        self.counts: Dict[str, int] = {item.id: 0 for item in pool}
        self.seen: Set[PairKey] = set()

    @property
    def is_satisfied(self) -> bool:
        return all(count >= self.target for count in self.counts.values())

    def needs_more(self, item: Item) -> bool:
        return self.counts.get(item.id, 0) < self.target

    def enqueue(self, first: Item, second: Item) -> None:
        if first.id == second.id:
            return
        key = pair_key(first, second)
        if key in self.seen:
            return
        if self.needs_more(first) or self.needs_more(second):
            self.queue.append((first, second))
            self.seen.add(key)
            self.counts[first.id] = self.counts.get(first.id, 0) + 1
            self.counts[second.id] = self.counts.get(second.id, 0) + 1

    def enqueue_boundary_pairs(
        self,
        tier_order: Sequence[str],
        tiers_by_name: Mapping[str, List[Item]],
        width: int,
    ) -> bool:
        for upper_tail, lower_head in _boundary_bands(tier_order, tiers_by_name, width):
            for upper in upper_tail:
                for lower in lower_head:
                    self.enqueue(upper, lower)
                    if self.is_satisfied:
                        return True
        return self.is_satisfied

    def enqueue_unranked(self, unranked: Sequence[Item], anchors: Sequence[Item]) -> bool:
        if not anchors:
            return self.is_satisfied
        for item in unranked:
            # at most two anchors are tried per unranked item
            for anchor in anchors[:2]:
                self.enqueue(item, anchor)
                if self.is_satisfied:
                    return True
        return self.is_satisfied

    def enqueue_adjacent_pairs(self, tiers_by_name: Mapping[str, List[Item]]) -> bool:
        for members in tiers_by_name.values():
            for first, second in zip(members, members[1:]):
                self.enqueue(first, second)
                if self.is_satisfied:
                    return True
        return self.is_satisfied

    def enqueue_fallback(self, pool: Sequence[Item], rng: RNG) -> None:
        if self.is_satisfied:
            return
        for first, second in pairings(pool, rng):
            self.enqueue(first, second)
            if self.is_satisfied:
                return


def _boundary_bands(
    tier_order: Sequence[str],
    tiers_by_name: Mapping[str, List[Item]],
    width: int,
):
    """(tail of upper tier, head of lower tier) for each adjacent non-empty pair."""
    for name, next_name in zip(tier_order, tier_order[1:]):
        upper = tiers_by_name.get(name)
        lower = tiers_by_name.get(next_name)
        if not upper or not lower:
            continue
        yield upper[max(0, len(upper) - width):], lower[:width]


def prepare_warm_start(
    pool: Sequence[Item],
    tier_order: Sequence[str],
    current_tiers: Mapping[str, Sequence[Item]],
    metrics: Mapping[str, Metrics],
) -> Tuple[Dict[str, List[Item]], List[Item], List[Item]]:
    """
    Split the pool by current tier. Returns (tiers_by_name, unranked, anchors):
    pool members of each tier in ranked order, pool items without a named tier,
    and the items on either side of each tier boundary (the whole pool when
    no boundary exists).
    """
    pool_by_id = {item.id: item for item in pool}
    tiers_by_name: Dict[str, List[Item]] = {}
    accounted: Set[str] = set()

    for name in tier_order:
        members = [pool_by_id[i.id] for i in current_tiers.get(name, []) if i.id in pool_by_id]
        tiers_by_name[name] = ordered_items(members, metrics)
        accounted.update(item.id for item in members)

    unranked = [
        pool_by_id[i.id] for i in current_tiers.get(UNRANKED_TIER_ID, []) if i.id in pool_by_id
    ]
    accounted.update(item.id for item in unranked)
    unranked += [item for item in pool if item.id not in accounted]

    width = max(1, Tun.frontier_width)
    anchors: List[Item] = []
    for upper_tail, lower_head in _boundary_bands(tier_order, tiers_by_name, width):
        anchors.extend(upper_tail)
        anchors.extend(lower_head)
    if not anchors:
        anchors = list(pool)

    return tiers_by_name, unranked, anchors


def initial_comparison_queue_warm_start(
    pool: Sequence[Item],
    ledger: VoteLedger,
    tier_order: Sequence[str],
    current_tiers: Mapping[str, Sequence[Item]],
    target_per_item: int,
    rng: Optional[RNG] = None,
) -> List[Pair]:
    """
    Build the opening comparison queue from existing tier placements: tier
    boundaries first, then unranked items against boundary anchors, then
    neighbours within a tier, then shuffled pairings of the whole pool.
    """
    if len(pool) < 2 or target_per_item <= 0:
        return []

    priors = build_priors(current_tiers, tier_order)
    metrics = metrics_dictionary(pool, ledger, Tun.z_quick, priors)
    tiers_by_name, unranked, anchors = prepare_warm_start(pool, tier_order, current_tiers, metrics)

    builder = WarmStartQueueBuilder(pool, target_per_item)
    width = max(1, Tun.frontier_width)

    if builder.enqueue_boundary_pairs(tier_order, tiers_by_name, width):
        logger.debug("warm start satisfied by boundary pairs (%d)", len(builder.queue))
    elif builder.enqueue_unranked(unranked, anchors):
        logger.debug("warm start satisfied after unranked anchors (%d)", len(builder.queue))
    elif builder.enqueue_adjacent_pairs(tiers_by_name):
        logger.debug("warm start satisfied after adjacent pairs (%d)", len(builder.queue))
    else:
        builder.enqueue_fallback(pool, rng or seeded_rng())
        logger.debug("warm start used shuffled fallback (%d)", len(builder.queue))
    return builder.queue
