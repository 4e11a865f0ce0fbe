import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .constants import UNRANKED_TIER_ID, Tun
from .ledger import VoteLedger
from .metrics import build_priors, metrics_dictionary, ordered_items
from .models import (
    Artifacts,
    Item,
    Metrics,
    Mode,
    Prior,
    QuickResult,
    RefinementContext,
    Tiers,
)
from .partition import (
    build_frontier,
    churn_fraction,
    drop_cuts,
    quantile_cuts,
    tier_map_for_cuts,
    warm_up_comparisons,
)
from .scheduler import refinement_pairs

logger = logging.getLogger(__name__)


def normalized_tier_names(tier_order: Sequence[str]) -> List[str]:
    names = [name.strip() for name in tier_order]
    return [name for name in names if name and name != UNRANKED_TIER_ID]


def operative_tier_names(tier_names: Sequence[str]) -> List[str]:
    """The tiers that actually receive ranked items."""
    if len(tier_names) < 2:
        return list(tier_names)
    return list(tier_names[: Tun.maximum_tier_count])


def cleared_tiers(base: Mapping[str, Sequence[Item]], pool: Sequence[Item], tier_names: Sequence[str]) -> Tiers:
    """
    Copy `base` with every named tier emptied and pool items removed from all
    other buckets, so a pass can rebuild placements without stale membership.
    """
    pool_ids = {item.id for item in pool}
    updated: Tiers = {name: list(members) for name, members in base.items()}
    for name in tier_names:
        updated[name] = []
    for name, members in updated.items():
        if name not in tier_names:
            updated[name] = [item for item in members if item.id not in pool_ids]
    updated.setdefault(UNRANKED_TIER_ID, [])
    return updated


def partition_by_comparisons(
    pool: Sequence[Item], ledger: VoteLedger, minimum_comparisons: int
) -> Tuple[List[Item], List[Item]]:
    """Split the pool into (rankable, undersampled)."""
    rankable: List[Item] = []
    undersampled: List[Item] = []
    for item in pool:
        if ledger.total_for(item.id) >= minimum_comparisons:
            rankable.append(item)
        else:
            undersampled.append(item)
    return rankable, undersampled


def assign_by_cuts(
    ordered: Sequence[Item], cuts: Sequence[int], tier_names: Sequence[str], tiers: Tiers
) -> None:
    tier_index = 0
    cursor = 0
    for index, item in enumerate(ordered):
        while cursor < len(cuts) and index >= cuts[cursor]:
            tier_index += 1
            cursor += 1
        name = tier_names[min(tier_index, len(tier_names) - 1)]
        tiers.setdefault(name, []).append(item)


def sort_tier_members(tiers: Tiers, metrics: Mapping[str, Metrics], tier_names: Sequence[str]) -> None:
    for name in tier_names:
        if name in tiers:
            tiers[name] = ordered_items(tiers[name], metrics)


def append_unranked(
    tiers: Tiers,
    undersampled: Sequence[Item],
    ledger: VoteLedger,
    z: float,
    priors: Optional[Mapping[str, Prior]] = None,
) -> None:
    """Append undersampled items to "unranked", best first."""
    if not undersampled:
        return
    metrics = metrics_dictionary(undersampled, ledger, z, priors)
    tiers[UNRANKED_TIER_ID] = tiers.get(UNRANKED_TIER_ID, []) + ordered_items(undersampled, metrics)


def suggested_pair_limit(artifacts: Artifacts) -> int:
    cuts_needed = max(len(artifacts.tier_names) - 1, 1)
    return max(Tun.max_suggested_pairs, cuts_needed)


def quick_tier_pass(
    pool: Sequence[Item],
    ledger: VoteLedger,
    tier_order: Sequence[str],
    base_tiers: Tiers,
    minimum_comparisons: int = Tun.minimum_comparisons_per_item,
) -> QuickResult:
    """
    Coarse first-pass tiering. Items with enough comparisons are split into the
    named tiers by quantile cuts over prior-smoothed metrics; the rest are
    parked in "unranked".
    """
    tier_names = normalized_tier_names(tier_order)
    if not pool or not tier_names:
        return QuickResult(base_tiers, None, [])

    rankable, undersampled = partition_by_comparisons(pool, ledger, minimum_comparisons)
    tiers = cleared_tiers(base_tiers, pool, tier_names)
    priors = build_priors(base_tiers, tier_order)

    if not rankable:
        logger.debug("quick pass: no rankable items, %d undersampled", len(undersampled))
        append_unranked(tiers, undersampled, ledger, Tun.z_quick, priors)
        return QuickResult(tiers, None, [])

    metrics = metrics_dictionary(rankable, ledger, Tun.z_quick, priors)
    ordered = ordered_items(rankable, metrics)
    operative_names = operative_tier_names(tier_names)
    tier_count = len(operative_names)

    cuts = quantile_cuts(len(ordered), tier_count)
    assign_by_cuts(ordered, cuts, operative_names, tiers)
    sort_tier_members(tiers, metrics, operative_names)
    append_unranked(tiers, undersampled, ledger, Tun.z_quick, priors)

    artifacts = Artifacts(
        mode=Mode.QUICK,
        tier_names=operative_names,
        rankable=ordered,
        undersampled=undersampled,
        provisional_cuts=cuts,
        frontier=build_frontier(len(ordered), cuts, Tun.frontier_width),
        warm_up_comparisons=warm_up_comparisons(len(ordered), tier_count),
    )
    logger.debug(
        "quick pass: %d rankable, %d undersampled, cuts=%s",
        len(rankable),
        len(undersampled),
        cuts,
    )

    suggested = refinement_pairs(artifacts, ledger, suggested_pair_limit(artifacts))
    return QuickResult(tiers, artifacts, suggested)


# Refinement


def average_comparisons(artifacts: Artifacts, ledger: VoteLedger) -> float:
    if not artifacts.rankable:
        return 0.0
    return sum(ledger.total_for(item.id) for item in artifacts.rankable) / len(artifacts.rankable)


def total_comparisons(ordered: Sequence[Item], metrics: Mapping[str, Metrics]) -> int:
    return sum(metrics[item.id].comparisons for item in ordered if item.id in metrics)


def bottom_cluster_start(ordered: Sequence[Item], metrics: Mapping[str, Metrics]) -> Optional[int]:
    """Global index of the first tail item whose upper bound is not clearly low."""
    n = len(ordered)
    if n < 2:
        return None
    width = min(Tun.max_bottom_tie_width, n)
    for offset, item in enumerate(ordered[n - width:]):
        m = metrics.get(item.id)
        if m is not None and m.wilson_ub > Tun.ub_bottom_ceil:
            return n - width + offset
    return None


def merge_cuts_prefer_refined(primary: Sequence[int], tier_count: int, item_count: int) -> List[int]:
    """Top up confidence-gap cuts with quantile cuts until every boundary exists."""
    needed = tier_count - 1
    if len(primary) >= needed:
        return list(primary[:needed])
    merged = sorted(set(primary) | set(quantile_cuts(item_count, tier_count)))
    return merged[:needed]


def adjusted_refined_cuts(
    primary_cuts: Sequence[int],
    quant_cuts: Sequence[int],
    tier_count: int,
    ordered: Sequence[Item],
    metrics: Mapping[str, Metrics],
) -> List[int]:
    if not primary_cuts:
        return list(quant_cuts)

    refined = merge_cuts_prefer_refined(primary_cuts, tier_count, len(ordered))
    if refined and len(refined) >= tier_count - 1:
        start = bottom_cluster_start(ordered, metrics)
        if start is not None:
            previous_cut = refined[-2] if len(refined) > 1 else 0
            if previous_cut < start < len(ordered):
                adjusted = refined[:-1] + [start]
                refined = sorted(set(adjusted))

    return refined or list(quant_cuts)


def select_refined_cuts(context: RefinementContext) -> List[int]:
    """
    Hysteresis gate. Refined cuts replace quantile cuts only after the warm-up
    target, and then only for small pools or when few items would move.
    """
    decisions = context.total_comparisons
    required = max(context.required_comparisons, 1)
    if decisions < required:
        return list(context.quant_cuts)

    ramp = min(1.0, decisions / required)
    soft_ok = context.churn <= Tun.hysteresis_max_churn_soft
    hard_ok = context.churn <= Tun.hysteresis_max_churn_hard * ramp
    small_n = context.item_count <= Tun.small_pool_size
    can_use_refined = bool(context.primary_cuts) and (small_n or soft_ok or hard_ok)

    if not can_use_refined or not context.refined_cuts:
        return list(context.quant_cuts)
    return list(context.refined_cuts)


class RefinementComputation:
    """Intermediate values of one refinement step."""

    def __init__(self, artifacts: Artifacts, ledger: VoteLedger, tier_count: int, required_comparisons: int) -> None:
        self.average_comparisons = average_comparisons(artifacts, ledger)
        self.z = Tun.z_refine_early if self.average_comparisons < 3.0 else Tun.z_std
        self.metrics: Dict[str, Metrics] = metrics_dictionary(artifacts.rankable, ledger, self.z)
        self.ordered: List[Item] = ordered_items(artifacts.rankable, self.metrics)
        self.total_comparisons = total_comparisons(self.ordered, self.metrics)
        self.quant_cuts = quantile_cuts(len(self.ordered), tier_count)
        self.overlap_eps = Tun.soft_overlap_eps if self.total_comparisons >= required_comparisons else 0.0
        self.primary_cuts = drop_cuts(self.ordered, self.metrics, tier_count, self.overlap_eps)
        self.refined_cuts = adjusted_refined_cuts(
            self.primary_cuts, self.quant_cuts, tier_count, self.ordered, self.metrics
        )

        quant_map = tier_map_for_cuts(self.ordered, self.quant_cuts, tier_count)
        refined_map = tier_map_for_cuts(self.ordered, self.refined_cuts, tier_count)
        self.churn = churn_fraction(quant_map, refined_map, self.ordered)

    def context(self, required_comparisons: int) -> RefinementContext:
        return RefinementContext(
            quant_cuts=self.quant_cuts,
            refined_cuts=self.refined_cuts,
            primary_cuts=self.primary_cuts,
            total_comparisons=self.total_comparisons,
            required_comparisons=required_comparisons,
            churn=self.churn,
            item_count=len(self.ordered),
        )


def finalize_tiers(
    artifacts: Artifacts,
    ledger: VoteLedger,
    tier_order: Sequence[str],
    base_tiers: Tiers,
) -> Tuple[Tiers, Artifacts]:
    """
    Re-tier the rankable items from observed votes only, keeping the quantile
    layout unless the confidence-gap layout passes the churn gate.
    """
    if not artifacts.rankable:
        return base_tiers, artifacts

    tier_names = normalized_tier_names(tier_order)
    tiers = cleared_tiers(base_tiers, artifacts.rankable + artifacts.undersampled, tier_names)
    tier_count = len(artifacts.tier_names)
    required = artifacts.warm_up_comparisons

    computation = RefinementComputation(artifacts, ledger, tier_count, required)
    cuts = select_refined_cuts(computation.context(required))
    logger.debug(
        "refinement: z=%.2f total=%d/%d churn=%.3f primary=%s quant=%s chosen=%s",
        computation.z,
        computation.total_comparisons,
        required,
        computation.churn,
        computation.primary_cuts,
        computation.quant_cuts,
        cuts,
    )

    assign_by_cuts(computation.ordered, cuts, artifacts.tier_names, tiers)
    sort_tier_members(tiers, computation.metrics, artifacts.tier_names)
    append_unranked(tiers, artifacts.undersampled, ledger, Tun.z_std)

    updated = Artifacts(
        mode=Mode.DONE,
        tier_names=artifacts.tier_names,
        rankable=computation.ordered,
        undersampled=artifacts.undersampled,
        provisional_cuts=cuts,
        frontier=build_frontier(len(computation.ordered), cuts, Tun.frontier_width),
        warm_up_comparisons=artifacts.warm_up_comparisons,
    )
    return tiers, updated
