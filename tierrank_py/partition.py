from math import ceil, floor
from typing import Dict, List, Mapping, Sequence

import numpy as np

from .constants import Tun
from .models import Frontier, Item, Metrics


def _round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def quantile_cuts(count: int, tier_count: int) -> List[int]:
    """
    Cut indices splitting `count` ordered items into `tier_count` equal groups.
    Every cut lies strictly inside (0, count).
    """
    if tier_count <= 1 or count <= 1:
        return []
    cuts = set()
    for i in range(1, tier_count):
        position = _round_half_up(i * count / tier_count)
        if 0 < position < count:
            cuts.add(position)
    return sorted(cuts)


def drop_cuts(
    ordered: Sequence[Item],
    metrics: Mapping[str, Metrics],
    tier_count: int,
    overlap_eps: float,
) -> List[int]:
    """
    Cut where neighbouring confidence intervals separate. Each boundary is scored
    by the interval gap weighted by how well sampled the two neighbours are.
    """
    if tier_count <= 1 or len(ordered) < 2:
        return []

    scored = []
    for i in range(len(ordered) - 1):
        upper = metrics.get(ordered[i].id)
        lower = metrics.get(ordered[i + 1].id)
        if upper is None or lower is None:
            continue

        gap = max(0.0, upper.wilson_lb - lower.wilson_ub + overlap_eps)
        if gap <= 0:
            continue

        min_comparisons = min(upper.comparisons, lower.comparisons)
        max_comparisons = max(upper.comparisons, lower.comparisons)
        confidence = min_comparisons + Tun.conf_bonus_beta * max_comparisons
        score = gap * float(np.log1p(max(confidence, 0)))
        if score > 0:
            scored.append((i + 1, score))

    # stable sort keeps the earlier boundary first among equal scores
    scored.sort(key=lambda x: x[1], reverse=True)
    top = [index for index, _ in scored[: tier_count - 1]]
    return sorted(set(top))


def tier_map_for_cuts(
    ordered: Sequence[Item], cuts: Sequence[int], tier_count: int
) -> Dict[str, int]:
    """Map item id to its 1-based tier number under the given cuts."""
    tiers: Dict[str, int] = {}
    tier_index = 0
    cursor = 0
    for index, item in enumerate(ordered):
        while cursor < len(cuts) and index >= cuts[cursor]:
            tier_index += 1
            cursor += 1
        tiers[item.id] = min(tier_index + 1, tier_count)
    return tiers


def churn_fraction(
    old_map: Mapping[str, int],
    new_map: Mapping[str, int],
    universe: Sequence[Item],
) -> float:
    """Share of `universe` whose tier differs between the two maps."""
    if not universe:
        return 0.0
    moved = sum(1 for item in universe if old_map.get(item.id, 0) != new_map.get(item.id, 0))
    return moved / len(universe)


def build_frontier(ordered_count: int, cuts: Sequence[int], width: int) -> List[Frontier]:
    return [
        Frontier(
            index=cut,
            upper_range=(max(0, cut - width), cut),
            lower_range=(cut, min(ordered_count, cut + width)),
        )
        for cut in cuts
    ]


def warm_up_comparisons(rankable_count: int, tier_count: int) -> int:
    """Comparisons to collect before refined cuts may override quantile cuts."""
    return max(int(ceil(1.5 * rankable_count)), 2 * tier_count)
