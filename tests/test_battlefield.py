"""Tests for bookofwar.battlefield module."""

import random

import pytest
from bookofwar.battlefield import (
    Battlefield, roll_terrain, roll_weather, roll_distance,
)


class TestTerrainRoll:
    """Test the terrain table."""

    @pytest.mark.parametrize('draw,terrain', [
        (0.005, 'Gulley'),
        (0.02, 'Rough'),
        (0.05, 'Hill'),
        (0.15, 'Woods'),
        (0.19, 'Marsh'),
        (0.21, 'Stream'),
        (0.22, 'Open'),
        (0.99, 'Open'),
    ])
    def test_table(self, scripted_rng, draw, terrain):
        """Should map percentile rolls onto the terrain table."""
        assert roll_terrain(scripted_rng(uniforms=[draw])) == terrain

    def test_multiplier_scales_roll(self, scripted_rng):
        """Should scale the terrain roll by the multiplier."""
        # 0.30 / 2.0 -> 15 -> Woods
        assert roll_terrain(scripted_rng(uniforms=[0.30]), 2.0) == 'Woods'

    def test_pond_never_rolled(self):
        """Should never roll a pond."""
        rng = random.Random(7)
        assert all(roll_terrain(rng) != 'Pond' for _ in range(500))


class TestWeatherRoll:
    """Test 2d6 weather."""

    @pytest.mark.parametrize('dice,weather', [
        ([1, 1], 'Sunny'),
        ([3, 4], 'Sunny'),
        ([4, 4], 'Cloudy'),
        ([4, 5], 'Cloudy'),
        ([5, 5], 'Rainy'),
        ([6, 6], 'Rainy'),
    ])
    def test_weather(self, scripted_rng, dice, weather):
        """Should map dice onto the weather table."""
        assert roll_weather(scripted_rng(dice=dice)) == weather


class TestDistance:
    """Test starting separation."""

    def test_range(self, scripted_rng):
        """Should roll a starting distance from 25 to 49."""
        assert roll_distance(scripted_rng(uniforms=[0.0])) == 25
        assert roll_distance(scripted_rng(uniforms=[0.999])) == 49

    def test_create_random(self, scripted_rng):
        """Should roll terrain, weather and distance together."""
        field = Battlefield.create_random(scripted_rng(dice=[6, 6], uniforms=[0.5, 0.4]))
        assert field.terrain == 'Open'
        assert field.weather == 'Rainy'
        assert field.distance == 35
        assert not field.in_contact


class TestBattlefield:
    """Test field state helpers."""

    def test_close_floors_at_zero(self):
        """Should close the distance without going below zero."""
        field = Battlefield(distance=5)
        assert field.close(3) == 2
        assert field.close(10) == 0

    def test_close_needs_positive_move(self):
        """Should reject a non-positive move."""
        with pytest.raises(AssertionError):
            Battlefield(distance=5).close(0)

    def test_close_from_zero_rejected(self):
        """Should reject closing when already in contact."""
        with pytest.raises(AssertionError):
            Battlefield(distance=0).close(1)

    def test_retreat(self):
        """Should open the distance on retreat."""
        field = Battlefield(distance=10)
        assert field.retreat(3) == 13

    def test_retreat_in_contact_rejected(self):
        """Should reject a retreat from contact."""
        with pytest.raises(AssertionError):
            Battlefield(distance=0, in_contact=True).retreat(3)

    def test_shots_blocked(self):
        """Should block shots in woods and gulleys."""
        assert not Battlefield(terrain='Woods').permits_shots
        assert not Battlefield(terrain='Gulley').permits_shots
        assert Battlefield(terrain='Hill').permits_shots

    @pytest.mark.parametrize('terrain,cost', [
        ('Open', 1), ('Pond', 1), ('Hill', 2), ('Woods', 2), ('Marsh', 3), ('Stream', 4),
    ])
    def test_move_cost(self, terrain, cost):
        """Should charge each terrain its movement cost."""
        assert Battlefield(terrain=terrain).move_cost == cost

    def test_weather_flags(self):
        """Should expose weather and terrain flags."""
        assert Battlefield(weather='Rainy').is_raining
        assert Battlefield(weather='Sunny').is_sunny
        assert Battlefield(terrain='Open').is_open
