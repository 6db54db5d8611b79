#!/usr/bin/env python3
"""
Book of War Cost Balancer

Simulates battles between catalog unit types to estimate win rates and
derive balanced point costs.

Modes:
    game     One narrated game between two units (--unit1, --unit2)
    table    Win-percentage table
    balance  Binary-search cost for each assessed unit vs. the base units
    roster   Hill-climb costs of all assessed units together
    leaders  Binary-search cost of each Solo as an embedded leader

Usage:
    python -m bookofwar.cli --mode table [options]
"""

import argparse
import json
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from bookofwar.balance import (
    balance_units, balance_roster, balance_leaders,
    generate_cost_report, format_duration,
)
from bookofwar.catalog import Catalog, CatalogError
from bookofwar.config import ConfigError, SimConfig
from bookofwar.runner import play_game
from bookofwar.tournament import WinTable, build_win_table

DEFAULT_UNITS_FILE = 'data/UnitTypes.csv'
DEFAULT_SOLOS_FILE = 'data/SoloTypes.csv'

MODES = ('game', 'table', 'balance', 'roster', 'leaders')


def format_win_table(table: WinTable) -> str:
    """Plain-text win table: percents, wins, and sum error per row."""
    lines = []
    width = max((len(r.candidate.label) for r in table.rows), default=4)
    header = ' ' * width + ' ' + ''.join(f"{c.abbreviation:>5}" for c in table.columns)
    header += '   Wins  SumErr'
    lines.append(header)
    lines.append('-' * len(header))

    for row in table.rows:
        cells = ''.join(f"{p:>5}" for p in row.percents)
        lines.append(f"{row.candidate.label:<{width}} {cells}   "
                     f"{row.wins:>4}  {row.sum_error:+.2f}")

    lines.append('')
    lines.append(f"Total normalized error: {table.total_normalized_error:.3f}")
    worst = table.max_error_row
    if worst is not None:
        lines.append(f"Max error unit: {worst.candidate.label} ({worst.sum_error:+.2f})")
    return '\n'.join(lines)


def win_table_to_dict(table: WinTable) -> dict:
    return {
        'columns': [c.label for c in table.columns],
        'rows': [
            {
                'unit': row.candidate.label,
                'percents': row.percents,
                'wins': row.wins,
                'sum_error': row.sum_error,
            }
            for row in table.rows
        ],
        'total_normalized_error': table.total_normalized_error,
        'max_error_unit': table.max_error_row.candidate.label if table.rows else None,
    }


def build_config(args: argparse.Namespace) -> SimConfig:
    """Settings from command-line flags (unset flags keep defaults)."""
    changes = {}
    if args.trials is not None:
        changes['trials_per_matchup'] = args.trials
    if args.base_units is not None:
        changes['base_units'] = args.base_units
    if args.budget_min is not None:
        changes['budget_min'] = args.budget_min
    if args.budget_max is not None:
        changes['budget_max'] = args.budget_max
    if args.charge_bonus:
        changes['use_charge_bonus'] = True
    if args.shield_bonus:
        changes['use_shield_bonus'] = True
    if args.range_penalty:
        changes['use_range_penalty'] = True
    if args.preferred:
        changes['use_preferred_values'] = True
    if args.silver_weapons:
        changes['use_silver_weapons'] = True
    if args.vs_assessed:
        changes['table_base_to_base'] = False
    return SimConfig(**changes).validate()


def run_mode(args: argparse.Namespace, config: SimConfig, catalog: Catalog) -> Optional[dict]:
    """Run the selected mode; returns JSON-ready results (None for a game)."""
    start = time.time()
    n_workers = args.workers
    verbose = not args.quiet

    if args.mode == 'game':
        if args.unit1 is None or args.unit2 is None:
            raise ConfigError("game mode needs --unit1 and --unit2")
        type1 = catalog.select(args.unit1)
        type2 = catalog.select(args.unit2)
        result = play_game(type1, type2, config, seed=args.seed, verbose=True)
        return {
            'mode': 'game',
            'units': [type1.name, type2.name],
            'winner': (type1, type2)[result.winner].name,
            'turns': result.turns,
            'terrain': result.terrain,
            'weather': result.weather,
            'budget': result.budget,
        }

    base = catalog.base_units(config.base_units)
    assessed = catalog.assessed_units(config.base_units)

    if args.mode == 'table':
        rows = base if config.table_base_to_base else assessed
        table = build_win_table(rows, base, config, n_workers=n_workers,
                                seed=args.seed, verbose=verbose)
        print()
        print(format_win_table(table))
        print(f"\nTime: {format_duration(time.time() - start)}")
        return {'mode': 'table', **win_table_to_dict(table)}

    if args.mode == 'balance':
        if not assessed:
            raise ConfigError("no units after the base units to balance")
        entries = balance_units(assessed, base, config, n_workers=n_workers,
                                seed=args.seed, verbose=verbose)
        title = 'Balanced Unit Costs'
    elif args.mode == 'roster':
        roster = list(catalog.units)
        adjustable = list(range(config.base_units, len(roster)))
        if not adjustable:
            raise ConfigError("no units after the base units to balance")
        entries = balance_roster(roster, adjustable, config, n_workers=n_workers,
                                 seed=args.seed, verbose=verbose)[config.base_units:]
        title = 'Roster Unit Costs'
    else:
        if not catalog.solos:
            raise ConfigError("leaders mode needs a solos file with at least one entry")
        entries = balance_leaders(catalog.solos, base, base, config, n_workers=n_workers,
                                  seed=args.seed, verbose=verbose)
        title = 'Leader Costs'

    print()
    print(generate_cost_report(entries, config, title, time.time() - start))

    if args.pdf:
        from bookofwar.costsheet import write_cost_sheet
        write_cost_sheet(entries, args.pdf, title)
        print(f"Cost sheet written to {args.pdf}")

    return {
        'mode': args.mode,
        'costs': [{'name': name, 'cost': cost} for name, cost in entries],
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Book of War Cost Balancer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument('--mode', choices=MODES, default='table',
                        help='What to run (default: table)')
    parser.add_argument('--units', type=str, default=DEFAULT_UNITS_FILE,
                        help=f'Unit catalog CSV (default: {DEFAULT_UNITS_FILE})')
    parser.add_argument('--solos', type=str, default=None,
                        help=f'Solo catalog CSV (e.g. {DEFAULT_SOLOS_FILE})')
    parser.add_argument('--trials', type=int, default=None,
                        help='Games per matchup (default: 1000)')
    parser.add_argument('--base-units', type=int, default=None,
                        help='Leading catalog entries used as the base (default: 3)')
    parser.add_argument('--vs-assessed', action='store_true',
                        help='Table rows are the assessed units instead of the base')
    parser.add_argument('--workers', type=int, default=None,
                        help='Parallel workers (default: one per matchup, up to the CPU count)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed')
    parser.add_argument('--budget-min', type=int, default=None,
                        help='Lowest game budget (default: 50)')
    parser.add_argument('--budget-max', type=int, default=None,
                        help='Budget ceiling, exclusive (default: 100)')
    parser.add_argument('--charge-bonus', action='store_true',
                        help='Mounted charge bonus on first contact')
    parser.add_argument('--shield-bonus', action='store_true',
                        help='Shields defend against missiles and pikes')
    parser.add_argument('--range-penalty', action='store_true',
                        help='-1 to hit beyond half range')
    parser.add_argument('--preferred', action='store_true',
                        help='Round costs to preferred values')
    parser.add_argument('--silver-weapons', action='store_true',
                        help='Weak troops buy silver weapons (no SilverToHit immunity)')
    parser.add_argument('--unit1', type=int, default=None,
                        help='First unit number for game mode (1-based)')
    parser.add_argument('--unit2', type=int, default=None,
                        help='Second unit number for game mode (1-based)')
    parser.add_argument('--pdf', type=str, default=None,
                        help='Write a PDF cost sheet to this path')
    parser.add_argument('--json', type=str, default=None,
                        help='Write results as JSON to this path')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test run (few trials)')
    parser.add_argument('--quiet', action='store_true',
                        help='Suppress progress output')

    args = parser.parse_args(argv)

    # Quick mode for testing
    if args.quick and args.trials is None:
        args.trials = 20

    try:
        config = build_config(args)
        catalog = Catalog.load(args.units, args.solos)
        if not args.quiet and args.mode != 'game':
            print("=" * 70)
            print(f"BOOK OF WAR: {args.mode.upper()}")
            print("=" * 70)
            print(f"Units: {len(catalog.units)}, Solos: {len(catalog.solos)}, "
                  f"Base: {config.base_units}, Trials: {config.trials_per_matchup}")
        result = run_mode(args, config, catalog)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except (CatalogError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json and result is not None:
        result['generated'] = datetime.now().isoformat()
        result['config'] = config.to_dict()
        with open(Path(args.json), 'w') as f:
            json.dump(result, f, indent=2)
        if not args.quiet:
            print(f"Results written to {args.json}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
