from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .constants import PRIOR_BOTTOM, PRIOR_MEANS, PRIOR_TOP, Tun
from .ledger import VoteLedger
from .models import Item, Metrics, Prior


def _wilson_center_margin(wins: float, total: float, z: float):
    p = wins / total
    z2 = z * z
    denominator = 1 + z2 / total
    center = p + z2 / (2 * total)
    margin = z * np.sqrt((p * (1 - p) + z2 / (4 * total)) / total)
    return center, margin, denominator


def wilson_lower_bound(wins: float, total: float, z: float) -> float:
    """Lower end of the Wilson score interval for wins/total."""
    if total <= 0:
        return 0.0
    center, margin, denominator = _wilson_center_margin(wins, total, z)
    return float(max(0.0, (center - margin) / denominator))


def wilson_upper_bound(wins: float, total: float, z: float) -> float:
    """Upper end of the Wilson score interval for wins/total."""
    if total <= 0:
        return 0.0
    center, margin, denominator = _wilson_center_margin(wins, total, z)
    return float(min(1.0, (center + margin) / denominator))


def prior_mean_for_tier(name: str, index: int, total: int) -> float:
    """
    Implied win rate for a tier. Conventional letters use fixed means, anything
    else is interpolated linearly from the top of the list to the bottom.
    """
    if name in PRIOR_MEANS:
        return PRIOR_MEANS[name]
    denominator = max(1, total - 1)
    return PRIOR_TOP - (PRIOR_TOP - PRIOR_BOTTOM) * index / denominator


def build_priors(
    current_tiers: Mapping[str, Sequence[Item]],
    tier_order: Sequence[str],
    strength: float = Tun.prior_strength,
) -> Dict[str, Prior]:
    priors: Dict[str, Prior] = {}
    for index, name in enumerate(tier_order):
        members = current_tiers.get(name)
        if not members:
            continue
        mean = prior_mean_for_tier(name, index, len(tier_order))
        alpha = max(0.0, mean * strength)
        beta = max(0.0, (1 - mean) * strength)
        for item in members:
            priors[item.id] = Prior(alpha, beta)
    return priors


def name_key(item: Item) -> str:
    trimmed = item.name.strip() if item.name else ""
    return (trimmed or item.id).lower()


def metrics_dictionary(
    items: Sequence[Item],
    ledger: VoteLedger,
    z: float,
    priors: Optional[Mapping[str, Prior]] = None,
) -> Dict[str, Metrics]:
    """
    Compute per-item metrics. With priors the Wilson bounds are taken on the
    smoothed counts; wins, comparisons and win rate always report raw counts.
    """
    metrics: Dict[str, Metrics] = {}
    for item in items:
        record = ledger.record(item.id)
        if priors is not None:
            prior = priors.get(item.id) or Prior(0.0, 0.0)
            effective_wins = record.wins + prior.alpha
            effective_total = effective_wins + record.losses + prior.beta
        else:
            effective_wins = record.wins
            effective_total = record.total

        metrics[item.id] = Metrics(
            id=item.id,
            wins=record.wins,
            comparisons=record.total,
            win_rate=record.win_rate,
            wilson_lb=wilson_lower_bound(effective_wins, effective_total, z),
            wilson_ub=wilson_upper_bound(effective_wins, effective_total, z),
            name_key=name_key(item),
        )
    return metrics


def ordered_items(items: Sequence[Item], metrics: Mapping[str, Metrics]) -> List[Item]:
    """Canonical ranking: best first, fully tie-broken down to the id."""
    known = [item for item in items if item.id in metrics]
    unknown = [item for item in items if item.id not in metrics]

    def sort_key(item: Item):
        m = metrics[item.id]
        return (-m.wilson_lb, -m.comparisons, -m.wins, m.name_key, item.id)

    return sorted(known, key=sort_key) + sorted(unknown, key=lambda item: item.id)


def metrics_frame(
    items: Sequence[Item],
    ledger: VoteLedger,
    z: float = Tun.z_std,
    priors: Optional[Mapping[str, Prior]] = None,
) -> pd.DataFrame:
    """Metrics in ranked order, one row per item."""
    metrics = metrics_dictionary(items, ledger, z, priors)
    ordered = ordered_items(items, metrics)
    return pd.DataFrame(
        {
            "Item": [item.label for item in ordered],
            "Wins": [metrics[item.id].wins for item in ordered],
            "Comparisons": [metrics[item.id].comparisons for item in ordered],
            "WinRate": [metrics[item.id].win_rate for item in ordered],
            "CI_Lower": [metrics[item.id].wilson_lb for item in ordered],
            "CI_Upper": [metrics[item.id].wilson_ub for item in ordered],
        },
        columns=["Item", "Wins", "Comparisons", "WinRate", "CI_Lower", "CI_Upper"],
    )

