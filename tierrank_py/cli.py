import click
import json
import logging
import sys
from typing import List, Optional, Set

import pandas as pd

from .constants import DEFAULT_TIER_ORDER, Tun
from .ledger import VoteLedger
from .metrics import metrics_frame
from .models import Item, Pair, Tiers
from .ranker import finalize_tiers, quick_tier_pass
from .scheduler import (
    PairKey,
    initial_comparison_queue_warm_start,
    pair_key,
    pick_pair,
    seeded_rng,
)
from .tierlist import determine_queries, export_tiers, parse_input, read_input


class Config:
    def __init__(
        self,
        input,
        output,
        tiers,
        queries,
        target,
        seed,
        verbose,
        format="csv",
    ):
        self.input = input
        self.output = output
        self.tiers = tiers
        self.queries = queries
        self.target = target
        self.seed = seed
        self.verbose = verbose
        self.format = format

    @property
    def tier_order(self) -> List[str]:
        return self.tiers.split() if self.tiers else list(DEFAULT_TIER_ORDER)


class Session:
    """One rater working through a pool in the terminal."""

    def __init__(self, pool: List[Item], tier_order: List[str], tiers: Tiers, config: Config) -> None:
        self.pool = pool
        self.tier_order = tier_order
        self.base_tiers = tiers
        self.ledger = VoteLedger()
        self.rng = seeded_rng(config.seed)
        self.budget = determine_queries(pool, config.queries)
        self.target = config.target
        self.asked = 0
        self.skipped: Set[PairKey] = set()
        self.stopped = False

    def ask_question(self, item_a: Item, item_b: Item) -> str:
        while True:
            response = input(
                f"Is '{click.style(item_a.label, fg='green')}' better than "
                f"'{click.style(item_b.label, fg='green')}'? "
            ).strip()
            if response in ["1", "2", "s", "q"]:
                return response
            elif response == "p":
                self.print_estimates()
            else:
                print("Invalid input. Please enter 1, 2, s, p, or q.")

    def print_estimates(self) -> None:
        frame = metrics_frame(self.pool, self.ledger, Tun.z_std)
        print("\nCurrent estimates:")
        for _, row in frame.iterrows():
            print(
                f"{row['Item']}: {row['Wins']}/{row['Comparisons']} wins, "
                f"interval = [{row['CI_Lower']:.3f}, {row['CI_Upper']:.3f}]"
            )

    def run_queue(self, queue: List[Pair]) -> None:
        for item_a, item_b in queue:
            if self.asked >= self.budget:
                self.stopped = True
                return
            print(f"\nComparison {self.asked + 1}/{self.budget}")
            response = self.ask_question(item_a, item_b)
            if response == "1":
                self.ledger.vote(item_a, item_b, item_a)
                self.asked += 1
            elif response == "2":
                self.ledger.vote(item_a, item_b, item_b)
                self.asked += 1
            elif response == "s":
                print("Skipping...")
                self.skipped.add(pair_key(item_a, item_b))
            else:
                print("Quitting...")
                self.stopped = True
                return

    def next_pairs(self) -> List[Pair]:
        quick = quick_tier_pass(self.pool, self.ledger, self.tier_order, self.base_tiers)
        if quick.artifacts is None:
            pair = pick_pair(self.pool, self.rng)
            candidates = [pair] if pair else []
        else:
            candidates = quick.suggested_pairs
        return [p for p in candidates if pair_key(*p) not in self.skipped]

    def run(self) -> Tiers:
        queue = initial_comparison_queue_warm_start(
            self.pool, self.ledger, self.tier_order, self.base_tiers, self.target, self.rng
        )
        self.run_queue(queue)
        while not self.stopped:
            queue = self.next_pairs()
            if not queue:
                print("\nTier boundaries are settled!")
                break
            self.run_queue(queue)
        return self.finish()

    def finish(self) -> Tiers:
        quick = quick_tier_pass(self.pool, self.ledger, self.tier_order, self.base_tiers)
        if quick.artifacts is None:
            return quick.tiers
        tiers, _ = finalize_tiers(quick.artifacts, self.ledger, self.tier_order, self.base_tiers)
        return tiers


@click.command()
@click.option(
    "--input",
    "input_file",
    required=True,
    help="input: a CSV file of items to tier, one per line, with an optional starting tier (eg. both 'Akira' and 'Akira, A' are valid), or a comma-separated list.",
)
@click.option(
    "--output",
    required=False,
    help="output file: a file to write the final tiers to. Default: printing to stdout.",
)
@click.option(
    "--tiers",
    default=" ".join(DEFAULT_TIER_ORDER),
    show_default=True,
    help="Tier names from best to worst; space-separated.",
)
@click.option(
    "--queries",
    default=None,
    type=int,
    help="Maximum number of questions to ask the user; defaults to N*log(N) comparisons.",
)
@click.option(
    "--target",
    default=Tun.minimum_comparisons_per_item,
    type=int,
    show_default=True,
    help="Comparisons per item to queue before refining tier boundaries.",
)
@click.option(
    "--seed",
    default=None,
    type=int,
    help="Random seed for a reproducible question order.",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Log ranking decisions (cuts, churn) while comparing.",
)
@click.option(
    "--format",
    type=click.Choice(["csv", "json", "markdown"]),
    default="csv",
    help="Output format for the tiers",
)
def main(
    input_file: str,
    output: Optional[str],
    tiers: str,
    queries: Optional[int],
    target: int,
    seed: Optional[int],
    verbose: bool,
    format: str,
) -> None:
    config: Config = Config(
        input_file,
        output,
        tiers,
        queries,
        target,
        seed,
        verbose,
        format,
    )
    if config.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(message)s")

    try:
        df: pd.DataFrame = read_input(input_file)
    except FileNotFoundError:
        print("Input file not found.")
        return

    tier_order = config.tier_order
    pool, board = parse_input(df, tier_order)
    if len(pool) < 2:
        print("Need at least two items to compare.")
        return

    session = Session(pool, tier_order, board, config)
    print(f"Number of queries: {session.budget}")
    print("Comparison commands: 1=first is better, 2=second is better, p=print estimates, s=skip question, q=quit")

    final_tiers = session.run()
    result = export_tiers(final_tiers, tier_order, config.format)

    if not config.output:
        if config.format == "json":
            print(json.dumps(result, indent=2))
        elif config.format == "markdown":
            print(result)
        else:
            result.to_csv(sys.stdout, index=False)
    else:
        if config.format == "json":
            with open(config.output, "w") as f:
                json.dump(result, f, indent=2)
        elif config.format == "markdown":
            with open(config.output, "w") as f:
                f.write(str(result))
        else:
            result.to_csv(config.output, index=False)


if __name__ == "__main__":
    main()
