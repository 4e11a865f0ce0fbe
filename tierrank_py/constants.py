from typing import List

UNRANKED_TIER_ID = "unranked"

DEFAULT_TIER_ORDER: List[str] = ["S", "A", "B", "C", "D", "F"]


class Tun:
    """Tunable constants for the head-to-head engine."""

    maximum_tier_count = 20
    minimum_comparisons_per_item = 2
    frontier_width = 2
    z_quick = 1.0
    z_std = 1.28
    z_refine_early = 1.0
    soft_overlap_eps = 0.01
    conf_bonus_beta = 0.1
    max_suggested_pairs = 6
    hysteresis_max_churn_soft = 0.12
    hysteresis_max_churn_hard = 0.25
    small_pool_size = 16
    eps_tie_top = 0.012
    eps_tie_bottom = 0.01
    max_bottom_tie_width = 4
    ub_bottom_ceil = 0.2
    prior_strength = 6.0


# Prior win-rate means for the conventional tier letters
PRIOR_MEANS = {
    "S": 0.85,
    "A": 0.75,
    "B": 0.65,
    "C": 0.55,
    "D": 0.45,
    "E": 0.40,
    "F": 0.35,
}
PRIOR_TOP = 0.85
PRIOR_BOTTOM = 0.35
