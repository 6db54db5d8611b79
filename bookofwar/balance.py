"""
Book of War Cost Balancer

Searches for point costs that make unit types break even (50% wins) against
a comparison base:

- bisect_cost: single-unit binary search on the signed docket error
- hill_climb_roster: preferred-value steps over a whole roster, keeping
  only steps that lower the roster's total normalized error
- find_leader_cost: bisection for a Solo embedded as a leader in each of
  a list of hosts, with the budget doubled to cover the leader

The searches take an error oracle so they can be driven by real dockets
or by any cost -> error function.
"""

from __future__ import annotations
import random
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

from bookofwar import preferred
from bookofwar.config import SimConfig
from bookofwar.tournament import run_docket
from bookofwar.units import UnitType

# Signed error of a candidate record at its cost (> 0 means too cheap)
ErrorOracle = Callable[[UnitType], float]

# Signed error per roster entry for a whole roster
RosterOracle = Callable[[list[UnitType]], list[float]]

# Hard limit on accepted hill-climbing steps
MAX_CLIMB_STEPS = 1000


def bisect_cost(
    unit_type: UnitType,
    oracle: ErrorOracle,
    ceiling: int = 1000,
    use_preferred: bool = False,
    verbose: bool = False,
) -> int:
    """Find the cost where the oracle's error crosses zero.

    Brackets the crossing by doubling an upper bound (up to the ceiling),
    then bisects. Of the final bracket, the cost with the smaller absolute
    error wins (the lower cost on ties).

    Args:
        unit_type: Record to price (its own cost is ignored)
        oracle: Signed error for a priced record
        ceiling: Highest cost ever tried
        use_preferred: Snap the result to the closest preferred value
        verbose: Print each trial cost

    Returns:
        Balanced cost in 1..ceiling
    """
    def error_at(cost: int) -> float:
        err = oracle(unit_type.with_cost(cost))
        if verbose:
            print(f"    {unit_type.label} @ {cost}: error {err:+.3f}", flush=True)
        return err

    # Loses even at minimum cost
    low, low_err = 1, error_at(1)
    if low_err <= 0 or ceiling <= 1:
        return 1

    # Bracket: low_err > 0 >= high_err
    high = min(2, ceiling)
    high_err = error_at(high)
    while high_err > 0 and high < ceiling:
        low, low_err = high, high_err
        high = min(high * 2, ceiling)
        high_err = error_at(high)
    if high_err > 0:
        return ceiling

    while high - low > 1:
        mid = (low + high) // 2
        err = error_at(mid)
        if err > 0:
            low, low_err = mid, err
        else:
            high, high_err = mid, err

    cost = low if abs(low_err) <= abs(high_err) else high
    if use_preferred:
        cost = min(preferred.closest(cost), ceiling)
    return cost


def docket_oracle(
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    rng: Optional[random.Random] = None,
) -> ErrorOracle:
    """Oracle scoring a record by its docket against fixed opponents."""
    def oracle(candidate: UnitType) -> float:
        return run_docket(candidate, list(opponents), config, n_workers=n_workers, rng=rng).sum_error
    return oracle


def find_balanced_cost(
    unit_type: UnitType,
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> int:
    """Balanced cost of one unit type against the opponents."""
    rng = random.Random(seed) if seed is not None else None
    oracle = docket_oracle(opponents, config, n_workers=n_workers, rng=rng)
    return bisect_cost(
        unit_type, oracle,
        ceiling=config.cost_ceiling,
        use_preferred=config.use_preferred_values,
        verbose=verbose,
    )


def balance_units(
    candidates: Sequence[UnitType],
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> list[tuple[str, int]]:
    """Balanced (name, cost) for each candidate in turn."""
    rng = random.Random(seed) if seed is not None else None
    results = []
    for unit_type in candidates:
        start = time.time()
        oracle = docket_oracle(opponents, config, n_workers=n_workers, rng=rng)
        cost = bisect_cost(
            unit_type, oracle,
            ceiling=config.cost_ceiling,
            use_preferred=config.use_preferred_values,
            verbose=verbose,
        )
        results.append((unit_type.name, cost))
        if verbose:
            print(f"  {unit_type.name}: {cost} ({format_duration(time.time() - start)})", flush=True)
    return results


def _total_error(errors: Sequence[float], adjustable: Sequence[int]) -> float:
    return sum(errors[i] ** 2 for i in adjustable)


def hill_climb_roster(
    roster: Sequence[UnitType],
    adjustable: Sequence[int],
    roster_oracle: RosterOracle,
    ceiling: int = 1000,
    rng: Optional[random.Random] = None,
    max_steps: int = MAX_CLIMB_STEPS,
    verbose: bool = False,
) -> list[UnitType]:
    """Step roster costs along preferred values to lower total error.

    Each pass visits the adjustable entries in shuffled order and tries one
    preferred-value step in the error-reducing direction. A step is kept
    only if the roster's summed normalized error drops; any kept step
    restarts the pass. Stops after a pass with no change.

    Args:
        roster: Current records (costs are the starting point)
        adjustable: Indexes into roster that may change cost
        roster_oracle: Signed error per roster entry
        ceiling: Highest cost ever tried
        rng: Shuffle source
        max_steps: Limit on accepted steps
        verbose: Print each accepted step

    Returns:
        New roster list with adjusted costs
    """
    if rng is None:
        rng = random.Random()
    roster = list(roster)
    errors = roster_oracle(roster)
    best = _total_error(errors, adjustable)
    steps = 0

    changed = True
    while changed and steps < max_steps:
        changed = False
        order = list(adjustable)
        rng.shuffle(order)
        for idx in order:
            unit_type = roster[idx]
            err = errors[idx]
            if err == 0:
                continue
            if err > 0:
                new_cost = min(preferred.inc(unit_type.cost), ceiling)
            else:
                new_cost = preferred.dec(unit_type.cost)
            if new_cost == unit_type.cost:
                continue

            trial = list(roster)
            trial[idx] = unit_type.with_cost(new_cost)
            trial_errors = roster_oracle(trial)
            total = _total_error(trial_errors, adjustable)
            if total < best:
                if verbose:
                    print(f"  {unit_type.name}: {unit_type.cost} -> {new_cost} "
                          f"(total error {best:.3f} -> {total:.3f})", flush=True)
                roster, errors, best = trial, trial_errors, total
                steps += 1
                changed = True
                break

    return roster


def roster_docket_oracle(
    adjustable: Sequence[int],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    rng: Optional[random.Random] = None,
) -> RosterOracle:
    """Roster oracle: each adjustable entry plays a docket vs. the whole roster."""
    adjustable = set(adjustable)

    def oracle(roster: list[UnitType]) -> list[float]:
        errors = []
        for i, unit_type in enumerate(roster):
            if i in adjustable:
                errors.append(run_docket(unit_type, roster, config,
                                         n_workers=n_workers, rng=rng).sum_error)
            else:
                errors.append(0.0)
        return errors
    return oracle


def balance_roster(
    roster: Sequence[UnitType],
    adjustable: Sequence[int],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> list[tuple[str, int]]:
    """Hill-climb a roster with real dockets; returns (name, cost) per entry."""
    rng = random.Random(seed) if seed is not None else random.Random()
    oracle = roster_docket_oracle(adjustable, config, n_workers=n_workers, rng=rng)
    result = hill_climb_roster(roster, adjustable, oracle,
                               ceiling=config.cost_ceiling, rng=rng, verbose=verbose)
    return [(t.name, t.cost) for t in result]


def leader_oracle(
    hosts: Sequence[UnitType],
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    rng: Optional[random.Random] = None,
) -> ErrorOracle:
    """Oracle embedding a candidate leader into every host (doubled budget)."""
    leader_config = config.with_doubled_budget()

    def oracle(leader: UnitType) -> float:
        total = 0.0
        for host in hosts:
            led = host.with_leader(leader)
            total += run_docket(led, list(opponents), leader_config,
                                n_workers=n_workers, rng=rng).sum_error
        return total
    return oracle


def find_leader_cost(
    leader: UnitType,
    hosts: Sequence[UnitType],
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> int:
    """Balanced cost of a Solo when led into battle by each host."""
    assert leader.is_solo
    rng = random.Random(seed) if seed is not None else None
    oracle = leader_oracle(hosts, opponents, config, n_workers=n_workers, rng=rng)
    return bisect_cost(
        leader, oracle,
        ceiling=config.cost_ceiling,
        use_preferred=config.use_preferred_values,
        verbose=verbose,
    )


def balance_leaders(
    leaders: Sequence[UnitType],
    hosts: Sequence[UnitType],
    opponents: Sequence[UnitType],
    config: SimConfig,
    n_workers: Optional[int] = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> list[tuple[str, int]]:
    """Leader cost for each Solo in turn."""
    rng = random.Random(seed) if seed is not None else None
    results = []
    for leader in leaders:
        oracle = leader_oracle(hosts, opponents, config, n_workers=n_workers, rng=rng)
        cost = bisect_cost(leader, oracle, ceiling=config.cost_ceiling,
                           use_preferred=config.use_preferred_values, verbose=verbose)
        results.append((leader.name, cost))
        if verbose:
            print(f"  {leader.name}: {cost}", flush=True)
    return results


# ============================================================================
# REPORTS
# ============================================================================

def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds/60:.1f}m"
    else:
        return f"{seconds/3600:.1f}h"


def generate_cost_report(
    entries: Sequence[tuple[str, int]],
    config: SimConfig,
    title: str,
    elapsed: float,
) -> str:
    """Human-readable report of resolved costs."""
    lines = []
    lines.append("=" * 70)
    lines.append(title.upper())
    lines.append("=" * 70)
    lines.append("")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"Budget: {config.budget_min}-{config.budget_max}")
    lines.append(f"Trials per Matchup: {config.trials_per_matchup}")
    lines.append(f"Preferred Values: {'yes' if config.use_preferred_values else 'no'}")
    lines.append(f"Total Time: {format_duration(elapsed)}")
    lines.append("")
    lines.append("-" * 70)

    width = max((len(name) for name, _ in entries), default=4)
    for name, cost in entries:
        lines.append(f"{name:<{width}}  {cost:>5}")

    lines.append("=" * 70)
    return '\n'.join(lines)
