"""
Worker sizing for parallel docket evaluation.

A docket runs one task per opponent, so it never needs more workers than
it has matchups, nor more than the machine has CPUs. Dockets with too few
games in total run in-process: starting a pool costs more than it saves.
"""

import multiprocessing as mp
from dataclasses import dataclass
from typing import Optional

# Below this many games a docket is played in-process
MIN_PARALLEL_GAMES = 200


@dataclass
class WorkerPlan:
    """How one docket will be spread over processes."""
    workers: int
    tasks: int
    games: int  # total games in the docket

    @property
    def parallel(self) -> bool:
        return self.workers > 1

    @property
    def tasks_per_worker(self) -> float:
        return self.tasks / self.workers if self.workers else 0.0


def cpu_ceiling(max_workers: Optional[int] = None) -> int:
    """Usable worker ceiling: the CPU count, or a lower explicit cap."""
    cpus = mp.cpu_count()
    if max_workers is not None:
        cpus = min(cpus, max_workers)
    return max(1, cpus)


def plan_docket_workers(
    n_tasks: int,
    trials_per_matchup: int,
    max_workers: Optional[int] = None,
    min_parallel_games: int = MIN_PARALLEL_GAMES,
) -> WorkerPlan:
    """
    Choose a worker count for a docket of n_tasks matchups.

    Args:
        n_tasks: Matchups that need simulating (self-matches excluded)
        trials_per_matchup: Games in each matchup series
        max_workers: Optional cap below the CPU count
        min_parallel_games: Smallest docket worth a process pool

    Returns:
        WorkerPlan with 1 worker for small dockets, else one worker per
        task up to the CPU ceiling
    """
    games = n_tasks * trials_per_matchup
    if n_tasks <= 1 or games < min_parallel_games:
        return WorkerPlan(workers=1, tasks=n_tasks, games=games)
    workers = min(n_tasks, cpu_ceiling(max_workers))
    return WorkerPlan(workers=workers, tasks=n_tasks, games=games)
