"""
Book of War Special Abilities

Typed, parameterized tags attached to a unit type.
Descriptors in the catalog look like ``Flight (24)`` or ``Pikes``;
several are joined with ``", "`` and ``-`` means none.

## Categories

- **Breath weapons**: FireBreath, VoltBreath, ColdBreath, AcidBreath,
  PoisonBreath, MultiBreath. Parameter is the damage per breath.
- **Spell casting**: Spells (param = death-spell charges), Wand
  (param = fireball damage), WeatherControl.
- **Control required**: Animated, Conjured. These creatures rout when
  their controlling leader is lost.
"""

from __future__ import annotations
import re
from dataclasses import dataclass


# All recognized special types, in catalog order
SPECIAL_TYPES = (
    'Pikes', 'Shields', 'Mounts', 'SplitMove', 'MoraleBonus',
    'WoodsCover', 'LightWeakness', 'GiantClass', 'GiantDodging',
    'ShotBonus', 'MeleeShot', 'NoRainShot', 'BigStones', 'DamageBonus',
    'Invisibility', 'Detection', 'Teleport', 'Regeneration',
    'Flight', 'Swimming', 'SweepAttack', 'SilverToHit', 'MagicToHit',
    'Spells', 'Wand', 'MagicResistance', 'WeatherControl', 'Whirlwind',
    'FireBreath', 'VoltBreath', 'ColdBreath', 'AcidBreath', 'PoisonBreath',
    'MultiBreath', 'FireImmunity', 'VoltImmunity', 'ColdImmunity', 'AcidImmunity',
    'PoisonImmunity', 'FireVulnerability', 'MissileWard', 'Fear',
    'Fearless', 'Animated', 'Conjured',
)

BREATH_TYPES = frozenset({
    'FireBreath', 'VoltBreath', 'ColdBreath', 'AcidBreath', 'PoisonBreath', 'MultiBreath',
})
SPELL_TYPES = frozenset({'Spells', 'Wand', 'WeatherControl'})
CONTROL_TYPES = frozenset({'Animated', 'Conjured'})

# Element carried by each single-element breath, and the matching immunity
BREATH_ELEMENTS = {
    'FireBreath': 'Fire',
    'VoltBreath': 'Volt',
    'ColdBreath': 'Cold',
    'AcidBreath': 'Acid',
    'PoisonBreath': 'Poison',
}
ELEMENTS = ('Fire', 'Volt', 'Cold', 'Acid', 'Poison')

_DESCRIPTOR = re.compile(r"(\w+)( \((-?\d+)\))?")


@dataclass(frozen=True)
class SpecialAbility:
    """One special ability with its (possibly zero) parameter."""
    type: str
    param: int = 0

    @property
    def is_breath_weapon(self) -> bool:
        return self.type in BREATH_TYPES

    @property
    def is_spell_casting(self) -> bool:
        return self.type in SPELL_TYPES

    @property
    def is_control_required(self) -> bool:
        return self.type in CONTROL_TYPES

    def __str__(self) -> str:
        if self.param != 0:
            return f"{self.type} ({self.param})"
        return self.type


def parse_special(text: str) -> SpecialAbility:
    """Parse a single descriptor such as ``MoraleBonus (2)``.

    Raises:
        ValueError: on an unknown type name or malformed descriptor.
    """
    m = _DESCRIPTOR.fullmatch(text.strip())
    if m is None:
        raise ValueError(f"Invalid special ability format: {text!r}")
    name = m.group(1)
    if name not in SPECIAL_TYPES:
        raise ValueError(f"Unknown special type: {text!r}")
    param = int(m.group(3)) if m.group(3) is not None else 0
    return SpecialAbility(name, param)


def parse_specials(text: str) -> tuple[SpecialAbility, ...]:
    """Parse a comma-separated descriptor list (``-`` or empty for none)."""
    text = text.strip()
    if text in ('', '-'):
        return ()
    return tuple(parse_special(s) for s in text.split(', '))


def format_specials(specials: tuple[SpecialAbility, ...]) -> str:
    """Inverse of parse_specials."""
    if not specials:
        return '-'
    return ', '.join(str(s) for s in specials)


def breath_element(breath_type: str) -> str | None:
    """Element of a single-element breath (None for MultiBreath)."""
    return BREATH_ELEMENTS.get(breath_type)
