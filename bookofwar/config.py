"""
Simulation configuration.

One frozen record of budget, trial and rule-toggle settings. Workers get
their own copy (``snapshot``) so nothing mutable crosses a process.
"""

from __future__ import annotations
from dataclasses import dataclass, replace, asdict


class ConfigError(ValueError):
    """Invalid settings or unit-set selection; raised before any simulation."""


@dataclass(frozen=True)
class SimConfig:
    """Settings for games, trials and cost searches."""
    # Budget band for buying figures
    budget_min: int = 50
    budget_max: int = 100
    pack_budget_to_max: bool = False  # Round budget to a multiple of the pricier unit

    # Trials
    trials_per_matchup: int = 1000
    base_units: int = 3  # Catalog entries counted as the comparison base
    table_base_to_base: bool = True

    # Rule toggles
    use_range_penalty: bool = False
    use_charge_bonus: bool = False
    use_shield_bonus: bool = False
    use_damage_ceiling: bool = True  # Cap per-hit damage at target health
    use_optional_morale_mods: bool = False
    use_silver_weapons: bool = False  # Troops under 4 health buy silver at +1 cost, +2 with missiles

    # Search
    use_preferred_values: bool = False
    cost_ceiling: int = 1000

    # Tuned constants
    pike_flanking_chance: float = 0.20
    terrain_multiplier: float = 1.00
    max_turns: int = 1000

    def validate(self) -> SimConfig:
        """Check settings; returns self so calls can chain.

        Raises:
            ConfigError: on any out-of-range setting.
        """
        if self.budget_min < 1:
            raise ConfigError(f"budget_min must be at least 1, got {self.budget_min}")
        if self.budget_max <= self.budget_min:
            raise ConfigError(
                f"budget_max ({self.budget_max}) must exceed budget_min ({self.budget_min})"
            )
        if self.trials_per_matchup < 1:
            raise ConfigError(f"trials_per_matchup must be positive, got {self.trials_per_matchup}")
        if self.base_units < 1:
            raise ConfigError(f"base_units must be positive, got {self.base_units}")
        if self.cost_ceiling < 1:
            raise ConfigError(f"cost_ceiling must be positive, got {self.cost_ceiling}")
        if not 0.0 <= self.pike_flanking_chance <= 1.0:
            raise ConfigError("pike_flanking_chance must be within [0, 1]")
        if self.terrain_multiplier <= 0:
            raise ConfigError("terrain_multiplier must be positive")
        if self.max_turns < 1:
            raise ConfigError("max_turns must be positive")
        return self

    def snapshot(self, **changes) -> SimConfig:
        """Independent copy, optionally with changed fields."""
        return replace(self, **changes)

    def with_doubled_budget(self) -> SimConfig:
        """Budget band doubled (room for an embedded leader)."""
        return replace(self, budget_min=self.budget_min * 2, budget_max=self.budget_max * 2)

    def to_dict(self) -> dict:
        return asdict(self)
