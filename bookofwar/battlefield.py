"""
Book of War Battlefield

Per-game context: one terrain type across the whole field, one weather
category, the separation between the two formations, and contact flags.

Terrain percents match coverage of an entire table:

    roll < 1   Gulley
    roll < 3   Rough
    roll < 9   Hill
    roll < 17  Woods
    roll < 20  Marsh
    roll < 22  Stream
    otherwise  Open

Pond is impassable and never rolled.
"""

from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Literal

Terrain = Literal['Open', 'Gulley', 'Rough', 'Hill', 'Woods', 'Marsh', 'Stream', 'Pond']
Weather = Literal['Sunny', 'Cloudy', 'Rainy']


# (upper bound of percentile roll, terrain)
TERRAIN_TABLE: tuple[tuple[int, Terrain], ...] = (
    (1, 'Gulley'),
    (3, 'Rough'),
    (9, 'Hill'),
    (17, 'Woods'),
    (20, 'Marsh'),
    (22, 'Stream'),
)

# Movement cost per inch
TERRAIN_MOVE_COST: dict[Terrain, int] = {
    'Open': 1,
    'Pond': 1,
    'Gulley': 2,  # Assume uphill
    'Hill': 2,
    'Rough': 2,
    'Woods': 2,
    'Marsh': 3,
    'Stream': 4,
}

# Terrain that blocks line of sight for missiles
SHOT_BLOCKING_TERRAIN = frozenset({'Woods', 'Gulley'})

MIN_START_DISTANCE = 25
START_DISTANCE_SPREAD = 25


def roll_terrain(rng: random.Random, terrain_multiplier: float = 1.0) -> Terrain:
    """Roll the uniform terrain for a battle."""
    roll = int(rng.random() / terrain_multiplier * 100)
    for bound, terrain in TERRAIN_TABLE:
        if roll < bound:
            return terrain
    return 'Open'


def roll_weather(rng: random.Random) -> Weather:
    """Roll weather on 2d6."""
    roll = rng.randint(1, 6) + rng.randint(1, 6)
    if roll <= 7:
        return 'Sunny'
    if roll <= 9:
        return 'Cloudy'
    return 'Rainy'


def roll_distance(rng: random.Random) -> int:
    """Initial separation, 25-49 inches."""
    return MIN_START_DISTANCE + int(rng.random() * START_DISTANCE_SPREAD)


@dataclass
class Battlefield:
    """Terrain, weather and separation for one game."""
    terrain: Terrain = 'Open'
    weather: Weather = 'Cloudy'
    distance: int = MIN_START_DISTANCE
    in_contact: bool = False
    pikes_interrupt: bool = False
    weather_controlled: bool = False

    @classmethod
    def create_random(cls, rng: random.Random, terrain_multiplier: float = 1.0) -> Battlefield:
        terrain = roll_terrain(rng, terrain_multiplier)
        weather = roll_weather(rng)
        return cls(terrain=terrain, weather=weather, distance=roll_distance(rng))

    @property
    def is_open(self) -> bool:
        return self.terrain == 'Open'

    @property
    def is_raining(self) -> bool:
        return self.weather == 'Rainy'

    @property
    def is_sunny(self) -> bool:
        return self.weather == 'Sunny'

    @property
    def permits_shots(self) -> bool:
        """Does terrain permit missile fire?"""
        return self.terrain not in SHOT_BLOCKING_TERRAIN

    @property
    def move_cost(self) -> int:
        return TERRAIN_MOVE_COST[self.terrain]

    def close(self, inches: int) -> int:
        """Reduce separation (never below zero); returns the new distance."""
        assert inches > 0
        assert self.distance > 0
        self.distance = max(0, self.distance - inches)
        return self.distance

    def retreat(self, inches: int) -> int:
        """Bounded step back, only used by split-move shooters."""
        assert not self.in_contact
        if inches > 0:
            self.distance += inches
        return self.distance
