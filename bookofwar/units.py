"""
Book of War Unit Definitions

Unit types are immutable catalog records; a Unit is the mutable in-play
formation built from one type for a single game.

Solos are not a subclass: the record carries a ``kind`` tag and the
capability flags below are derived from it (and from specials) when asked.

| Capability      | Unit                  | Solo  |
|-----------------|-----------------------|-------|
| auto_hits       | no                    | yes   |
| small_target    | no                    | yes   |
| gets_saves      | no                    | yes   |
| fearless        | Fearless special only | yes   |
| sweepable       | yes                   | no    |
| requires_control| Animated / Conjured   | same  |
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from typing import Literal, Optional

from bookofwar.specials import SpecialAbility, parse_specials, format_specials

UnitKind = Literal['unit', 'solo']
Alignment = Literal['Lawful', 'Neutral', 'Chaotic']

# Conversion from internal width units to inches
WIDTH_UNITS_PER_INCH = 4

# Charges granted at game start
BREATH_CHARGES = 3
WHIRLWIND_CHARGES = 1


def parse_alignment(code: str) -> Alignment:
    """Parse an alignment code (first letter L / C, anything else Neutral)."""
    code = code.strip()
    if code.startswith('L'):
        return 'Lawful'
    if code.startswith('C'):
        return 'Chaotic'
    return 'Neutral'


@dataclass(frozen=True)
class UnitType:
    """Catalog statistics for one unit type."""
    name: str
    cost: int
    move: int
    armor: int
    health: int
    attacks: int
    damage: int
    rate: int
    range: int
    width: int
    alignment: Alignment = 'Neutral'
    specials: tuple[SpecialAbility, ...] = ()
    kind: UnitKind = 'unit'
    leader: Optional[UnitType] = None

    @classmethod
    def from_row(cls, row: list[str], kind: UnitKind = 'unit') -> UnitType:
        """Build a type from a 12-column catalog row.

        Raises:
            ValueError: on a wrong column count, non-integer stats, or bad specials.
        """
        if len(row) != 12:
            raise ValueError(f"Expected 12 fields, got {len(row)}")
        name = row[0].strip()
        if not name:
            raise ValueError("Unit name is empty")
        stats = [int(s) for s in row[1:10]]
        unit_type = cls(
            name, *stats,
            alignment=parse_alignment(row[10]),
            specials=parse_specials(row[11]),
            kind=kind,
        )
        if unit_type.cost < 1:
            raise ValueError(f"{name}: cost must be at least 1")
        if unit_type.health < 1:
            raise ValueError(f"{name}: health must be at least 1")
        if unit_type.width < 1:
            raise ValueError(f"{name}: width must be at least 1")
        return unit_type

    def to_row(self) -> list[str]:
        """Inverse of from_row (leader is not serialized)."""
        return [
            self.name, str(self.cost), str(self.move), str(self.armor),
            str(self.health), str(self.attacks), str(self.damage),
            str(self.rate), str(self.range), str(self.width),
            self.alignment[0], format_specials(self.specials),
        ]

    # ------------------------------------------------------------------
    # Specials
    # ------------------------------------------------------------------

    def get_special(self, special_type: str) -> SpecialAbility | None:
        for s in self.specials:
            if s.type == special_type:
                return s
        return None

    def has_special(self, special_type: str) -> bool:
        return self.get_special(special_type) is not None

    def special_param(self, special_type: str) -> int:
        s = self.get_special(special_type)
        return 0 if s is None else s.param

    @property
    def breath_type(self) -> str | None:
        for s in self.specials:
            if s.is_breath_weapon:
                return s.type
        return None

    @property
    def is_caster(self) -> bool:
        return any(s.is_spell_casting for s in self.specials)

    # ------------------------------------------------------------------
    # Capability flags
    # ------------------------------------------------------------------

    @property
    def is_solo(self) -> bool:
        return self.kind == 'solo'

    @property
    def auto_hits(self) -> bool:
        return self.is_solo

    @property
    def small_target(self) -> bool:
        return self.is_solo

    @property
    def gets_saves(self) -> bool:
        return self.is_solo

    @property
    def sweepable(self) -> bool:
        return not self.is_solo

    @property
    def fearless(self) -> bool:
        return self.is_solo or self.has_special('Fearless')

    @property
    def requires_control(self) -> bool:
        return any(s.is_control_required for s in self.specials)

    @property
    def has_missiles(self) -> bool:
        return self.range > 0

    # ------------------------------------------------------------------
    # Snapshots for search
    # ------------------------------------------------------------------

    def with_cost(self, cost: int) -> UnitType:
        """Copy of this type at a different cost."""
        return replace(self, cost=cost)

    def with_leader(self, leader: Optional[UnitType]) -> UnitType:
        """Copy of this type with an embedded leader."""
        assert leader is None or leader.is_solo
        return replace(self, leader=leader)

    def same_type(self, other: UnitType) -> bool:
        """Check if two records describe the same contender."""
        if self.name != other.name:
            return False
        my_leader = self.leader.name if self.leader else None
        other_leader = other.leader.name if other.leader else None
        return my_leader == other_leader

    @property
    def abbreviation(self) -> str:
        """Short label: first letter plus the letter after the first space."""
        s = self.name[0]
        for i in range(1, len(self.name) - 1):
            if self.name[i] == ' ' and len(s) < 2:
                s += self.name[i + 1]
        return s

    @property
    def label(self) -> str:
        if self.leader is not None:
            return f"{self.name} w/ {self.leader.name}"
        return self.name


def plural(n: int) -> str:
    return '' if n == 1 else 's'


@dataclass
class Unit:
    """One formation of figures in play."""
    type: UnitType
    figures: int = 0
    files: int = 0
    damage_taken: int = 0
    figs_lost_in_turn: int = 0
    charges: int = 0
    routed: bool = False
    visible: bool = True
    fear_saved: bool = False
    leader: Optional[Unit] = None
    host: Optional[Unit] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_type(cls, unit_type: UnitType) -> Unit:
        """Fresh in-play snapshot of a type (and of its embedded leader)."""
        unit = cls(unit_type)
        if unit_type.leader is not None:
            unit.leader = cls(unit_type.leader, host=unit)
        return unit

    # Type statistics
    @property
    def name(self) -> str:
        return self.type.name

    @property
    def cost(self) -> int:
        return self.type.cost

    @property
    def move(self) -> int:
        return self.type.move

    @property
    def armor(self) -> int:
        return self.type.armor

    @property
    def health(self) -> int:
        return self.type.health

    @property
    def attacks(self) -> int:
        return self.type.attacks

    @property
    def damage(self) -> int:
        return self.type.damage

    @property
    def rate(self) -> int:
        return self.type.rate

    @property
    def range(self) -> int:
        return self.type.range

    @property
    def alignment(self) -> Alignment:
        return self.type.alignment

    def has_special(self, special_type: str) -> bool:
        return self.type.has_special(special_type)

    def special_param(self, special_type: str) -> int:
        return self.type.special_param(special_type)

    @property
    def has_missiles(self) -> bool:
        return self.type.has_missiles

    @property
    def fly_move(self) -> int:
        return self.type.special_param('Flight')

    # In-play status
    @property
    def is_beaten(self) -> bool:
        return self.figures == 0 or self.routed

    @property
    def has_leader(self) -> bool:
        return self.leader is not None and not self.leader.is_beaten

    @property
    def is_totally_beaten(self) -> bool:
        """Base formation gone and no active leader left."""
        return self.is_beaten and not self.has_leader

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_figures(self, figures: int) -> None:
        assert figures >= 0
        self.figures = figures
        self.files = min(self.files, figures)
        self.routed = False
        self.damage_taken = 0
        self.figs_lost_in_turn = 0
        self.fear_saved = False

    def set_files(self, files: int) -> None:
        assert 0 < files <= self.figures
        self.files = files

    def refresh_charges(self) -> None:
        """Set special charges for the start of a game."""
        if self.type.breath_type is not None:
            self.charges = BREATH_CHARGES
        elif self.has_special('Spells'):
            self.charges = self.special_param('Spells')
        elif self.has_special('Whirlwind'):
            self.charges = WHIRLWIND_CHARGES
        else:
            self.charges = 0

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def fig_width(self) -> float:
        """Figure width in inches."""
        return self.type.width / WIDTH_UNITS_PER_INCH

    @property
    def fig_length(self) -> float:
        """Figure length in inches (double width for mounts)."""
        if self.has_special('Mounts'):
            return 2 * self.fig_width
        return self.fig_width

    @property
    def ranks(self) -> int:
        """Effective ranks (a half-full back row counts)."""
        if self.files < 1:
            return 0
        ranks = self.figures // self.files
        backrow = self.figures % self.files
        if backrow * 2 >= self.files and self.files > 1:
            ranks += 1
        return ranks

    @property
    def total_width(self) -> float:
        return self.files * self.fig_width

    @property
    def total_length(self) -> float:
        return self.ranks * self.fig_length

    @property
    def perimeter(self) -> float:
        return 2 * (self.total_width + self.total_length)

    # ------------------------------------------------------------------
    # Losses
    # ------------------------------------------------------------------

    def remove_figures(self, lost: int) -> int:
        """Remove up to `lost` figures; returns the number actually removed."""
        lost = min(lost, self.figures)
        self.figures -= lost
        self.figs_lost_in_turn += lost
        if self.figures < self.files:
            self.files = self.figures
        return lost

    def take_damage(self, points: int) -> int:
        """Accumulate damage against health; returns figures killed."""
        assert points >= 0
        self.damage_taken += points
        killed = self.damage_taken // self.health
        self.damage_taken %= self.health
        killed = self.remove_figures(killed)
        if self.figures == 0:
            self.damage_taken = 0
        return killed

    def clear_figs_lost_in_turn(self) -> None:
        self.figs_lost_in_turn = 0

    def rout(self) -> None:
        """Morale failure: the whole formation leaves the field."""
        self.routed = True
        self.figures = 0
        self.files = 0

    def regenerate(self) -> None:
        if self.damage_taken > 0:
            self.damage_taken -= 1

    def __str__(self) -> str:
        ranks = self.ranks
        return (f"{self.name} ({self.figures} fig{plural(self.figures)}, "
                f"{ranks} rank{plural(ranks)})")


def solo_type(unit_type: UnitType) -> UnitType:
    """Re-tag a record as a Solo."""
    return replace(unit_type, kind='solo')


def frontage_files(figures: int) -> int:
    """Files for a formation: at most 5 until 15 figures, then about 2:1."""
    if figures < 1:
        return 0
    if figures < 15:
        return min(5, figures)
    return min(figures, int(math.sqrt(2 * figures) + 0.5))
