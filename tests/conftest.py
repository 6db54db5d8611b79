"""Shared fixtures: scripted dice and a few plain unit types."""

import pytest

from bookofwar.specials import parse_specials
from bookofwar.units import UnitType, solo_type


class ScriptedRng:
    """Random source that replays fixed d6 rolls and uniform draws.

    Running out of script fails the test, so a test also pins down
    exactly how many random draws the engine makes.
    """

    def __init__(self, dice=(), uniforms=()):
        self.dice = list(dice)
        self.uniforms = list(uniforms)

    def randint(self, a, b):
        assert self.dice, "dice script exhausted"
        value = self.dice.pop(0)
        assert a <= value <= b
        return value

    def random(self):
        assert self.uniforms, "uniform script exhausted"
        return self.uniforms.pop(0)

    def choice(self, seq):
        return seq[0]

    def shuffle(self, seq):
        pass


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture
def footmen():
    return UnitType('Footmen', 5, 12, 4, 1, 1, 1, 0, 0, 3)


@pytest.fixture
def pikemen():
    return UnitType('Pikemen', 8, 9, 5, 1, 1, 1, 0, 0, 3, specials=parse_specials('Pikes'))


@pytest.fixture
def archers():
    return UnitType('Archers', 6, 12, 4, 1, 1, 1, 1, 18, 3)


@pytest.fixture
def hero():
    return solo_type(UnitType('Hero', 10, 12, 6, 4, 4, 1, 0, 0, 3, alignment='Lawful'))


@pytest.fixture
def dragon():
    return solo_type(UnitType(
        'Dragon', 150, 9, 7, 10, 3, 4, 0, 0, 12, alignment='Chaotic',
        specials=parse_specials('FireBreath (10), Flight (24), Fear (2), FireImmunity'),
    ))


@pytest.fixture
def wizard():
    return solo_type(UnitType('Wizard', 30, 12, 3, 6, 1, 1, 0, 0, 3, specials=parse_specials('Spells (2)')))
