"""
Book of War Trial Runner

Runs dockets of matchups in parallel for cost assessment:
- A docket is one candidate type against a list of opponents
- Each matchup is a series of independent games giving a win ratio
- Identical contenders score 0.5 without any games

The signed sum of (ratio - 0.5) over a docket says whether the candidate
is too strong (> 0) or too weak (< 0) for its cost; its square is the
"normalized error" minimized by the roster search.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from concurrent.futures import ProcessPoolExecutor, as_completed
import random
import time

from bookofwar.autoscale import plan_docket_workers
from bookofwar.config import SimConfig
from bookofwar.runner import play_many_games
from bookofwar.units import UnitType

# Expected win ratio for a balanced matchup
EVEN_RATIO = 0.5


@dataclass
class DocketResult:
    """Win ratios of one candidate against a list of opponents."""
    candidate: UnitType
    opponents: list[UnitType]
    ratios: list[float]
    games_played: int = 0
    elapsed_seconds: float = 0.0

    @property
    def sum_error(self) -> float:
        """Signed error; positive means the candidate is underpriced."""
        return sum(r - EVEN_RATIO for r in self.ratios)

    @property
    def normalized_error(self) -> float:
        return self.sum_error ** 2

    @property
    def wins(self) -> int:
        """Opponents beaten at least half the time (self-matches never count)."""
        return sum(1 for opponent, r in zip(self.opponents, self.ratios)
                   if r >= EVEN_RATIO and not self.candidate.same_type(opponent))

    @property
    def percents(self) -> list[int]:
        return [int(r * 100 + 0.5) for r in self.ratios]


@dataclass
class WinTable:
    """One docket per row unit against a shared column list."""
    rows: list[DocketResult]
    columns: list[UnitType]
    elapsed_seconds: float = 0.0

    @property
    def percent_matrix(self) -> list[list[int]]:
        return [row.percents for row in self.rows]

    @property
    def total_normalized_error(self) -> float:
        return sum(row.normalized_error for row in self.rows)

    @property
    def max_error_row(self) -> Optional[DocketResult]:
        if not self.rows:
            return None
        return max(self.rows, key=lambda row: abs(row.sum_error))


def assess_matchup(
    candidate: UnitType,
    opponent: UnitType,
    config: SimConfig,
    seed: Optional[int] = None,
) -> float:
    """Win ratio of candidate vs. opponent over the configured trial count."""
    if candidate.same_type(opponent):
        return EVEN_RATIO
    trials = config.trials_per_matchup
    stats = play_many_games(candidate, opponent, trials, config, seed=seed)
    return stats['first_wins'] / trials


def _assess_matchup_worker(args: tuple) -> tuple[int, float]:
    """Worker function to run one matchup series (for multiprocessing)."""
    index, candidate, opponent, config, seed = args
    return index, assess_matchup(candidate, opponent, config, seed=seed)


def run_docket(
    candidate: UnitType,
    opponents: list[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> DocketResult:
    """Assess a candidate against each opponent.

    Args:
        candidate: Unit type under assessment
        opponents: Opponent types (one matchup each)
        config: Settings snapshot given to every worker
        n_workers: Parallel workers (None = sized from the docket, 1 = in-process)
        seed: Seed for the coordinator's generator (per-task seeds derive from it)
        rng: Coordinator generator shared with the caller (overrides seed)

    Returns:
        DocketResult with one ratio per opponent, in opponent order
    """
    start_time = time.time()
    if rng is None and seed is not None:
        rng = random.Random(seed)

    ratios = [EVEN_RATIO] * len(opponents)
    tasks = []
    for i, opponent in enumerate(opponents):
        if candidate.same_type(opponent):
            continue
        task_seed = rng.randint(0, 2**31) if rng is not None else None
        tasks.append((i, candidate, opponent, config, task_seed))

    if n_workers is None:
        n_workers = plan_docket_workers(len(tasks), config.trials_per_matchup).workers

    if n_workers > 1 and len(tasks) > 1:
        with ProcessPoolExecutor(max_workers=min(n_workers, len(tasks))) as executor:
            futures = [executor.submit(_assess_matchup_worker, t) for t in tasks]
            for future in as_completed(futures):
                index, ratio = future.result()
                ratios[index] = ratio
    else:
        for task in tasks:
            index, ratio = _assess_matchup_worker(task)
            ratios[index] = ratio

    return DocketResult(
        candidate=candidate,
        opponents=list(opponents),
        ratios=ratios,
        games_played=len(tasks) * config.trials_per_matchup,
        elapsed_seconds=time.time() - start_time,
    )


def build_win_table(
    row_types: list[UnitType],
    column_types: list[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> WinTable:
    """Run one docket per row type against all column types."""
    start_time = time.time()
    rng = random.Random(seed) if seed is not None else None

    rows = []
    for i, row_type in enumerate(row_types):
        result = run_docket(row_type, column_types, config, n_workers=n_workers, rng=rng)
        rows.append(result)
        if verbose:
            print(f"  [{i + 1}/{len(row_types)}] {row_type.label}: "
                  f"sum error {result.sum_error:+.2f} ({result.elapsed_seconds:.1f}s)",
                  flush=True)

    return WinTable(rows=rows, columns=list(column_types),
                    elapsed_seconds=time.time() - start_time)
