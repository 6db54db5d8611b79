"""
Unit catalog loading.

Catalog files are CSV with a header row and 12 columns:

    Name, Cost, Move, Armor, Health, Attacks, Damage, Rate, Range, Width,
    Alignment, Specials

The first ``base_units`` rows of the unit file form the comparison base;
the rest are the units under assessment. Solos come from a separate file.
"""

from __future__ import annotations
import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from bookofwar.config import ConfigError
from bookofwar.units import UnitKind, UnitType


class CatalogError(ValueError):
    """Malformed catalog file."""


def load_unit_types(path: Union[str, Path], kind: UnitKind = 'unit') -> list[UnitType]:
    """Read unit type records from a CSV file.

    Raises:
        CatalogError: naming the file and line of the first bad row.
    """
    path = Path(path)
    types = []
    with open(path, newline='', encoding='utf-8') as f:
        reader = csv.reader(f, skipinitialspace=True)
        try:
            next(reader, None)  # Header
            for row in reader:
                if not row or not ''.join(row).strip():
                    continue
                try:
                    types.append(UnitType.from_row(row, kind))
                except ValueError as e:
                    raise CatalogError(f"{path}:{reader.line_num}: {e}") from e
        except UnicodeDecodeError as e:
            raise CatalogError(f"{path}: not valid UTF-8 text: {e}") from e
    return types


@dataclass(frozen=True)
class Catalog:
    """Loaded unit and solo types."""
    units: tuple[UnitType, ...]
    solos: tuple[UnitType, ...] = ()

    @classmethod
    def load(
        cls,
        units_path: Union[str, Path],
        solos_path: Optional[Union[str, Path]] = None,
    ) -> Catalog:
        units = load_unit_types(units_path, 'unit')
        solos = load_unit_types(solos_path, 'solo') if solos_path else []
        return cls(tuple(units), tuple(solos))

    @property
    def all_types(self) -> tuple[UnitType, ...]:
        return self.units + self.solos

    def base_units(self, count: int) -> list[UnitType]:
        """First `count` units: the comparison base."""
        if not 1 <= count <= len(self.units):
            raise ConfigError(
                f"base unit count must be within 1..{len(self.units)}, got {count}"
            )
        return list(self.units[:count])

    def assessed_units(self, base_count: int) -> list[UnitType]:
        """Units after the base."""
        self.base_units(base_count)
        return list(self.units[base_count:])

    def select(self, number: int) -> UnitType:
        """Type by 1-based number (units first, then solos)."""
        all_types = self.all_types
        if not 1 <= number <= len(all_types):
            raise ConfigError(f"unit number must be within 1..{len(all_types)}, got {number}")
        return all_types[number - 1]
