from math import ceil
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .constants import UNRANKED_TIER_ID
from .models import Item, Tiers
from .tier_logic import assign


def read_input(data_input: str) -> pd.DataFrame:
    """
    Reads .csv into a dataframe, or splits a comma-separated string into a dataframe.
    Returns DataFrame with 'Item' and optionally 'Id' and 'Tier' columns.
    """
    if os.path.exists(data_input) and data_input.endswith(".csv"):
        try:
            df = pd.read_csv(data_input, dtype=str, na_filter=False)
            if "Item" not in df.columns:
                # no header row: first column is the item, second an optional tier
                df = pd.read_csv(data_input, header=None, dtype=str, na_filter=False)
                if df.shape[1] >= 2:
                    df = df.iloc[:, :2]
                    df.columns = ["Item", "Tier"]
                else:
                    df.columns = ["Item"]
        except pd.errors.EmptyDataError:
            return pd.DataFrame(columns=["Item"])
        return df

    if not os.path.exists(data_input) and data_input.endswith(".csv"):
        raise FileNotFoundError(data_input)

    items = [item.strip() for item in data_input.split(",") if item.strip()]
    return pd.DataFrame({"Item": items})


def parse_input(
    df: pd.DataFrame, tier_order: Sequence[str]
) -> Tuple[List[Item], Tiers]:
    """
    Build the item pool and the starting tier board. Rows with a known 'Tier'
    start in that tier; everything else starts in "unranked".
    """
    names = [str(name).strip() for name in df["Item"].tolist()]
    ids = [str(i).strip() for i in df["Id"].tolist()] if "Id" in df.columns else names
    placements = [str(t).strip() for t in df["Tier"].tolist()] if "Tier" in df.columns else [""] * len(names)

    items: List[Item] = []
    starting_tier: Dict[str, str] = {}
    for item_id, name, tier in zip(ids, names, placements):
        # first row wins for duplicate ids
        if not item_id or item_id in starting_tier:
            continue
        starting_tier[item_id] = tier
        items.append(Item(item_id, name))

    tiers: Tiers = {name: [] for name in tier_order}
    tiers[UNRANKED_TIER_ID] = list(items)
    for item in items:
        if starting_tier[item.id] in tier_order:
            tiers = assign(tiers, item.id, starting_tier[item.id])
    return items, tiers


def determine_queries(items: Sequence[Item], args_queries: Optional[int]) -> int:
    """
    Determine the number of queries based on the list length and user input.
    """
    if args_queries is not None:
        return args_queries

    list_length = len(items)
    if list_length == 0:
        return 0

    return int(ceil(list_length * np.log(list_length) + 1))


def export_tiers(
    tiers: Tiers, tier_order: Sequence[str], format: str = "csv"
) -> Union[pd.DataFrame, Dict[str, Any], str]:
    """Export a tier board in various formats"""
    names = list(tier_order) + [UNRANKED_TIER_ID]

    if format == "json":
        return {
            "tiers": {name: [item.label for item in tiers.get(name, [])] for name in tier_order},
            "unranked": [item.label for item in tiers.get(UNRANKED_TIER_ID, [])],
            "metadata": {
                "tier_order": list(tier_order),
                "total_items": sum(len(tiers.get(name, [])) for name in names),
            },
        }
    elif format == "markdown":
        lines = ["| Tier | Items |", "|------|-------|"]
        for name in names:
            members = ", ".join(item.label for item in tiers.get(name, []))
            lines.append(f"| {name} | {members} |")
        return "\n".join(lines)
    elif format == "csv":
        rows = [
            (name, position, item.id, item.label)
            for name in names
            for position, item in enumerate(tiers.get(name, []), 1)
        ]
        return pd.DataFrame(rows, columns=["Tier", "Position", "Id", "Item"])
    else:
        raise ValueError(f"Unknown format: {format}")
