"""
Book of War Game Runner

Utilities for playing single games and short series between two unit types.
Each game gets fresh in-play Units built from the (immutable) type records.
"""

import random
from typing import Optional

from bookofwar.battle import Battle, GameResult, GameLogCallback
from bookofwar.config import SimConfig
from bookofwar.units import Unit, UnitType


def print_log(msg: str) -> None:
    print(msg, flush=True)


def play_game(
    type1: UnitType,
    type2: UnitType,
    config: Optional[SimConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    verbose: bool = False,
    log_callback: Optional[GameLogCallback] = None,
) -> GameResult:
    """Play one game between two unit types.

    Args:
        type1: First-named side (winner index 0)
        type2: Second-named side (winner index 1)
        config: Simulation settings (defaults if None)
        seed: Random seed for reproducibility (ignored if rng given)
        rng: Random source shared with the caller
        verbose: Print the game narration
        log_callback: Narration sink (overrides verbose printing)

    Returns:
        GameResult for the game
    """
    if log_callback is None and verbose:
        log_callback = print_log

    battle = Battle(config, rng=rng, seed=seed, log_callback=log_callback)
    return battle.play(Unit.from_type(type1), Unit.from_type(type2))


def play_many_games(
    type1: UnitType,
    type2: UnitType,
    n_games: int,
    config: Optional[SimConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    verbose: bool = False,
) -> dict:
    """Play many games and collect statistics.

    Returns dict with:
        - first_wins: games won by type1
        - second_wins: games won by type2
        - avg_turns: average game length in turns
        - games_played: count
    """
    if rng is None:
        rng = random.Random(seed) if seed is not None else random.Random()
    battle = Battle(config, rng=rng)

    first_wins = 0
    second_wins = 0
    total_turns = 0

    for i in range(n_games):
        result = battle.play(Unit.from_type(type1), Unit.from_type(type2))
        if result.winner == 0:
            first_wins += 1
        else:
            second_wins += 1
        total_turns += result.turns

        if verbose and (i + 1) % 100 == 0:
            print(f"Completed {i + 1}/{n_games} games", flush=True)

    return {
        'first_wins': first_wins,
        'second_wins': second_wins,
        'avg_turns': total_turns / n_games if n_games > 0 else 0,
        'games_played': n_games,
    }
