from .constants import DEFAULT_TIER_ORDER, UNRANKED_TIER_ID, Tun
from .ledger import VoteLedger
from .metrics import (
    build_priors,
    metrics_dictionary,
    ordered_items,
    wilson_lower_bound,
    wilson_upper_bound,
)
from .models import Artifacts, Frontier, Item, Metrics, Mode, Prior, QuickResult, VoteRecord
from .partition import churn_fraction, drop_cuts, quantile_cuts, tier_map_for_cuts
from .ranker import finalize_tiers, quick_tier_pass, select_refined_cuts
from .scheduler import (
    initial_comparison_queue_warm_start,
    pairings,
    pick_pair,
    refinement_pairs,
    seeded_rng,
)
from .tier_logic import assign, move_item, reorder_within

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_TIER_ORDER",
    "UNRANKED_TIER_ID",
    "Tun",
    "VoteLedger",
    "build_priors",
    "metrics_dictionary",
    "ordered_items",
    "wilson_lower_bound",
    "wilson_upper_bound",
    "Artifacts",
    "Frontier",
    "Item",
    "Metrics",
    "Mode",
    "Prior",
    "QuickResult",
    "VoteRecord",
    "churn_fraction",
    "drop_cuts",
    "quantile_cuts",
    "tier_map_for_cuts",
    "finalize_tiers",
    "quick_tier_pass",
    "select_refined_cuts",
    "initial_comparison_queue_warm_start",
    "pairings",
    "pick_pair",
    "refinement_pairs",
    "seeded_rng",
    "assign",
    "move_item",
    "reorder_within",
]
