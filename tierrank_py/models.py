from enum import Enum
from typing import Dict, List, Optional, Tuple


class Item:
    """A rankable thing. Two items are the same item when their ids match."""

    def __init__(self, id: str, name: str = "") -> None:
        self.id: str = id
        self.name: str = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Item({self.id!r}, {self.name!r})"

    @property
    def label(self) -> str:
        name = self.name.strip() if self.name else ""
        return name or self.id


Tiers = Dict[str, List[Item]]
Pair = Tuple[Item, Item]


class VoteRecord:
    def __init__(self, wins: int = 0, losses: int = 0) -> None:
        self.wins: int = wins
        self.losses: int = losses

    @property
    def total(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        total = self.total
        return 0.0 if total == 0 else self.wins / total

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VoteRecord):
            return NotImplemented
        return (self.wins, self.losses) == (other.wins, other.losses)

    def __repr__(self) -> str:
        return f"VoteRecord(wins={self.wins}, losses={self.losses})"


class Prior:
    """Beta pseudo-counts implied by an item's current tier."""

    def __init__(self, alpha: float, beta: float) -> None:
        self.alpha: float = alpha
        self.beta: float = beta

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Prior):
            return NotImplemented
        return (self.alpha, self.beta) == (other.alpha, other.beta)

    def __repr__(self) -> str:
        return f"Prior(alpha={self.alpha:.3f}, beta={self.beta:.3f})"


class Metrics:
    def __init__(
        self,
        id: str,
        wins: int,
        comparisons: int,
        win_rate: float,
        wilson_lb: float,
        wilson_ub: float,
        name_key: str,
    ) -> None:
        self.id = id
        self.wins = wins
        self.comparisons = comparisons
        self.win_rate = win_rate
        self.wilson_lb = wilson_lb
        self.wilson_ub = wilson_ub
        self.name_key = name_key

    def __repr__(self) -> str:
        return (
            f"Metrics({self.id!r}, wins={self.wins}, comparisons={self.comparisons}, "
            f"lb={self.wilson_lb:.3f}, ub={self.wilson_ub:.3f})"
        )


class Mode(Enum):
    QUICK = "quick"
    DONE = "done"


class Frontier:
    """Index windows immediately above and below one tier cut (half-open)."""

    def __init__(
        self,
        index: int,
        upper_range: Tuple[int, int],
        lower_range: Tuple[int, int],
    ) -> None:
        self.index = index
        self.upper_range = upper_range
        self.lower_range = lower_range

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frontier):
            return NotImplemented
        return (self.index, self.upper_range, self.lower_range) == (
            other.index,
            other.upper_range,
            other.lower_range,
        )

    def __repr__(self) -> str:
        return f"Frontier({self.index}, upper={self.upper_range}, lower={self.lower_range})"


class Artifacts:
    """Frozen outcome of one ranking pass."""

    def __init__(
        self,
        mode: Mode,
        tier_names: List[str],
        rankable: List[Item],
        undersampled: List[Item],
        provisional_cuts: List[int],
        frontier: List[Frontier],
        warm_up_comparisons: int,
    ) -> None:
        self.mode = mode
        self.tier_names = list(tier_names)
        self.rankable = list(rankable)
        self.undersampled = list(undersampled)
        self.provisional_cuts = list(provisional_cuts)
        self.frontier = list(frontier)
        self.warm_up_comparisons = warm_up_comparisons

    def __repr__(self) -> str:
        return (
            f"Artifacts(mode={self.mode.value}, tiers={len(self.tier_names)}, "
            f"rankable={len(self.rankable)}, undersampled={len(self.undersampled)}, "
            f"cuts={self.provisional_cuts})"
        )


class QuickResult:
    def __init__(
        self,
        tiers: Tiers,
        artifacts: Optional[Artifacts],
        suggested_pairs: List[Pair],
    ) -> None:
        self.tiers = tiers
        self.artifacts = artifacts
        self.suggested_pairs = suggested_pairs


class RefinementContext:
    """Everything the churn gate needs to pick between quantile and refined cuts."""

    def __init__(
        self,
        quant_cuts: List[int],
        refined_cuts: List[int],
        primary_cuts: List[int],
        total_comparisons: int,
        required_comparisons: int,
        churn: float,
        item_count: int,
    ) -> None:
        self.quant_cuts = quant_cuts
        self.refined_cuts = refined_cuts
        self.primary_cuts = primary_cuts
        self.total_comparisons = total_comparisons
        self.required_comparisons = required_comparisons
        self.churn = churn
        self.item_count = item_count
