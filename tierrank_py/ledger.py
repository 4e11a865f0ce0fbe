import logging
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .models import Item, VoteRecord

logger = logging.getLogger(__name__)


class VoteLedger:
    """Win/loss records keyed by item id. The only mutable state of a session."""

    def __init__(self, records: Optional[Mapping[str, VoteRecord]] = None) -> None:
        self._records: Dict[str, VoteRecord] = dict(records) if records else {}

    @classmethod
    def from_counts(cls, counts: Mapping[str, Tuple[int, int]]) -> "VoteLedger":
        """Build a ledger from {id: (wins, losses)}."""
        return cls({item_id: VoteRecord(w, l) for item_id, (w, l) in counts.items()})

    def vote(self, item_a: Item, item_b: Item, winner: Item) -> None:
        """Record that `winner` beat the other member of the pair."""
        if item_a.id == item_b.id:
            raise ValueError(f"Cannot compare '{item_a.id}' with itself")
        if winner.id == item_a.id:
            loser = item_b
        elif winner.id == item_b.id:
            loser = item_a
        else:
            raise ValueError(
                f"Winner '{winner.id}' is not part of the pair ('{item_a.id}', '{item_b.id}')"
            )

        self._ensure(winner.id).wins += 1
        self._ensure(loser.id).losses += 1
        logger.debug("vote: %s beat %s", winner.id, loser.id)

    def _ensure(self, item_id: str) -> VoteRecord:
        record = self._records.get(item_id)
        if record is None:
            record = VoteRecord()
            self._records[item_id] = record
        return record

    def get(self, item_id: str) -> Optional[VoteRecord]:
        return self._records.get(item_id)

    def record(self, item_id: str) -> VoteRecord:
        """The stored record, or a detached zero record for unseen items."""
        return self._records.get(item_id) or VoteRecord()

    def total_for(self, item_id: str) -> int:
        record = self._records.get(item_id)
        return record.total if record else 0

    def total_votes(self) -> int:
        return sum(record.wins for record in self._records.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"VoteLedger({self._records!r})"
