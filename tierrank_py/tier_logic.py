from typing import Optional

from .models import Item, Tiers


def move_item(tiers: Tiers, item_id: str, target_tier: str) -> Tiers:
    """
    Move the item with `item_id` to the end of `target_tier`.
    Returns a new mapping, or `tiers` itself when nothing would change.
    """
    if not item_id or not target_tier:
        return tiers

    source: Optional[str] = None
    found: Optional[Item] = None
    for name, members in tiers.items():
        for item in members:
            if item.id == item_id:
                source, found = name, item
                break
        if found is not None:
            break

    if found is None or source == target_tier:
        return tiers

    updated = dict(tiers)
    updated[source] = [item for item in tiers[source] if item.id != item_id]
    updated[target_tier] = list(tiers.get(target_tier, [])) + [found]
    return updated


def reorder_within(tiers: Tiers, tier_name: str, from_index: int, to_index: int) -> Tiers:
    """Move one member of a tier to a new position; out-of-range indices are a no-op."""
    members = tiers.get(tier_name)
    if members is None:
        return tiers
    if not (0 <= from_index < len(members) and 0 <= to_index < len(members)):
        return tiers

    reordered = list(members)
    item = reordered.pop(from_index)
    reordered.insert(to_index, item)
    updated = dict(tiers)
    updated[tier_name] = reordered
    return updated


def assign(tiers: Tiers, item_id: str, tier_name: str) -> Tiers:
    """Quick assignment of an item into a tier."""
    return move_item(tiers, item_id, tier_name)
