"""Tests for bookofwar.battle module.

Most cases run on scripted dice so every roll is accounted for.
"""

import random
from dataclasses import replace

import pytest
from bookofwar.battle import Battle, closest_multiple
from bookofwar.battlefield import Battlefield
from bookofwar.config import SimConfig
from bookofwar.specials import parse_specials
from bookofwar.units import Unit, UnitType, solo_type


def make_unit(battle, unit_type, figures):
    unit = Unit.from_type(unit_type)
    battle.prepare_unit(unit, figures)
    if unit.leader is not None:
        battle.prepare_unit(unit.leader, 1)
    return unit


def row_type(row, kind='unit'):
    return UnitType.from_row(row.split(';'), kind)


OGRES = UnitType('Ogres', 15, 9, 5, 4, 1, 1, 0, 0, 6)
LONGBOWS = UnitType('Longbowmen', 9, 12, 4, 1, 1, 1, 1, 21, 3)
WALLS = UnitType('Walls', 5, 12, 8, 1, 1, 1, 0, 0, 3)
CAVALRY = row_type('Light Cavalry;9;24;4;2;1;1;0;0;4;N;Mounts')
WIGHTS = row_type('Wights;30;12;5;3;1;1;0;0;3;C;SilverToHit, Fearless')
SKIRMISHERS = row_type('Skirmishers;5;12;4;1;1;1;1;12;3;N;SplitMove')
SKELETONS = row_type('Skeletons;4;12;5;1;1;1;0;0;3;C;Fearless, Animated')
AIR_ELEMENTAL = row_type('Air Elemental;80;9;8;8;1;2;0;0;6;N;'
                         'Whirlwind (1), Flight (36), MagicToHit, Conjured', 'solo')


@pytest.fixture
def field_battle(scripted_rng):
    """Battle factory on a given field with scripted dice."""
    def factory(dice=(), uniforms=(), config=None, **field):
        battle = Battle(config, rng=scripted_rng(dice=dice, uniforms=uniforms))
        battle.field = Battlefield(**field)
        return battle
    return factory


class TestMeleeAttack:
    """Test single melee attacks."""

    def test_hit_kills(self, field_battle, footmen):
        """Should remove a figure on a hit."""
        battle = field_battle(dice=[4], distance=0)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, footmen, 1)
        battle.melee_attack(a, d)
        assert d.figures == 0
        assert battle.rng.dice == []

    def test_miss(self, field_battle, footmen):
        """Should leave the defender intact on a miss."""
        battle = field_battle(dice=[3], distance=0)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, footmen, 1)
        battle.melee_attack(a, d)
        assert d.figures == 1

    def test_immune_defender_takes_nothing(self, field_battle, footmen):
        """Should roll no dice against an immune defender."""
        battle = field_battle(distance=0)
        a = make_unit(battle, footmen, 5)
        d = make_unit(battle, WIGHTS, 5)
        battle.melee_attack(a, d)
        assert d.figures == 5

    def test_leader_adds_attack(self, field_battle, footmen, hero):
        """Should add the leader's attacks to the unit's."""
        battle = field_battle(dice=[4], distance=0, in_contact=True)
        host = make_unit(battle, footmen.with_leader(hero), 1)
        enemy = make_unit(battle, footmen, 10)
        battle.one_turn_melee(host, enemy)
        # One kill by the footman, four auto-hits by the hero
        assert enemy.figures == 5


class TestGameFlow:
    """Test initiative, turns and winners."""

    def test_first_side_wins(self, field_battle, footmen):
        """Should declare the first side the winner when the second falls."""
        battle = field_battle(dice=[1, 4], distance=0)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, footmen, 1)
        result = battle.fight(a, d)
        assert result.winner == 0
        assert result.turns == 1
        assert result.figures == (1, 0)

    def test_initiative_to_second_side(self, field_battle, footmen):
        """Should let the second side act first on winning initiative."""
        battle = field_battle(dice=[4, 4], distance=0)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, footmen, 1)
        result = battle.fight(a, d)
        assert result.winner == 1
        assert result.turns == 1

    def test_exchange(self, field_battle, footmen):
        """Should trade blows until one side is gone."""
        battle = field_battle(dice=[1, 3, 4], distance=0)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, footmen, 1)
        result = battle.fight(a, d)
        assert result.winner == 1
        assert result.turns == 2
        assert battle.field.in_contact

    def test_narration(self, scripted_rng, footmen):
        """Should send narration lines to the callback."""
        lines = []
        battle = Battle(rng=scripted_rng(dice=[1, 4]), log_callback=lines.append)
        battle.field = Battlefield(distance=0)
        battle.fight(make_unit(battle, footmen, 1), make_unit(battle, footmen, 1))
        assert any('attack' in line for line in lines)
        assert lines[-1].startswith('* WINNER *')

    def test_turn_limit(self):
        """Should decide the game at the turn cap."""
        battle = Battle(SimConfig(max_turns=10), seed=3)
        battle.field = Battlefield(distance=0)
        a = make_unit(battle, WALLS, 5)
        d = make_unit(battle, WALLS, 5)
        result = battle.fight(a, d)
        assert result.turns == 10
        assert result.winner in (0, 1)
        assert result.figures == (5, 5)

        d.remove_figures(2)
        assert battle.decide_at_turn_limit(a, d) is a

    def test_lone_leader_keeps_side_alive(self, field_battle, footmen, hero):
        """Should keep a side alive while its leader stands."""
        battle = field_battle(distance=0)
        host = make_unit(battle, footmen.with_leader(hero), 5)
        host.rout()
        assert battle.combatant(host) is host.leader
        assert battle.check_winner(make_unit(battle, footmen, 1), host) is None


class TestMorale:
    """Test end-of-turn morale."""

    def _shaken(self, battle, unit_type):
        unit = make_unit(battle, unit_type, 10)
        unit.take_damage(5)
        return unit

    def test_exact_threshold_holds(self, field_battle, footmen):
        """Should hold when the roll meets the threshold."""
        battle = field_battle(dice=[3, 4])
        unit = self._shaken(battle, footmen)
        battle.check_morale(unit)
        assert not unit.routed
        assert unit.figures == 5

    def test_one_below_routs(self, field_battle, footmen):
        """Should rout when the roll is one short."""
        battle = field_battle(dice=[3, 3])
        unit = self._shaken(battle, footmen)
        battle.check_morale(unit)
        assert unit.routed
        assert unit.figures == 0

    def test_lawful_bonus(self, field_battle, footmen):
        """Should give lawful units a morale bonus."""
        battle = field_battle(dice=[3, 3])
        unit = self._shaken(battle, replace(footmen, alignment='Lawful'))
        battle.check_morale(unit)
        assert not unit.routed

    def test_leader_bonus(self, field_battle, footmen, hero):
        """Should add the leader's morale bonus."""
        battle = field_battle(dice=[3, 3])
        unit = self._shaken(battle, footmen.with_leader(hero))
        battle.check_morale(unit)
        assert not unit.routed

    def test_no_losses_no_check(self, field_battle, footmen):
        """Should skip morale when no figures were lost."""
        battle = field_battle()
        unit = make_unit(battle, footmen, 10)
        battle.check_morale(unit)
        assert not unit.routed

    def test_fearless_exempt(self, field_battle):
        """Should never check morale for fearless units."""
        battle = field_battle()
        unit = self._shaken(battle, SKELETONS)
        battle.check_morale(unit)
        assert not unit.routed


class TestPikes:
    """Test the pike interrupt on first contact."""

    def test_interrupt_kills_attacker(self, field_battle, footmen, pikemen):
        """Should let pikes strike a charging attacker first."""
        battle = field_battle(dice=[4], uniforms=[0.5], distance=5)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, pikemen, 1)
        battle.one_turn_melee(a, d)
        assert a.figures == 0
        assert d.figures == 1
        assert battle.field.in_contact
        assert not battle.field.pikes_interrupt

    def test_flanked(self, field_battle, footmen, pikemen):
        """Should skip the interrupt when the pikes are flanked."""
        battle = field_battle(dice=[5], uniforms=[0.1], distance=5)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, pikemen, 1)
        battle.one_turn_melee(a, d)
        assert d.figures == 0

    def test_no_interrupt_in_rain(self, field_battle, footmen, pikemen):
        """Should skip the interrupt in rain."""
        battle = field_battle(dice=[5], weather='Rainy', distance=5)
        a = make_unit(battle, footmen, 1)
        d = make_unit(battle, pikemen, 1)
        battle.one_turn_melee(a, d)
        assert d.figures == 0

    def test_double_damage(self, field_battle, pikemen):
        """Should deal double damage with a pike interrupt."""
        battle = field_battle(dice=[5], uniforms=[0.5], distance=0)
        a = make_unit(battle, OGRES, 2)
        d = make_unit(battle, pikemen, 1)
        battle.check_pike_interrupt(a, d)
        assert a.figures == 2
        assert a.damage_taken == 2


class TestRanged:
    """Test missile movement and fire."""

    def test_half_move_out_of_range(self, field_battle, archers, footmen):
        """Should half move when the target is out of range."""
        battle = field_battle(distance=30)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, footmen, 5)
        battle.one_turn(a, d)
        assert battle.field.distance == 24

    def test_half_move_then_half_fire(self, field_battle, archers, footmen):
        """Should half move and fire at half rate."""
        battle = field_battle(dice=[4, 1, 6, 6], distance=24)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, footmen, 5)
        battle.one_turn(a, d)
        assert battle.field.distance == 18
        assert d.figures == 4
        assert not d.routed

    def test_in_range_full_fire(self, field_battle, archers, footmen):
        """Should fire at full rate without moving when in range."""
        battle = field_battle(dice=[4, 4, 4, 4, 6, 6], distance=10)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, footmen, 5)
        battle.one_turn(a, d)
        assert battle.field.distance == 10
        assert d.figures == 1

    def test_outranged_closes_full_speed(self, field_battle, archers):
        """Should close at full speed when outranged."""
        battle = field_battle(distance=40)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, LONGBOWS, 4)
        battle.one_turn(a, d)
        assert battle.field.distance == 28

    def test_split_move_falls_back(self, field_battle, footmen):
        """Should fall back after shooting with split move."""
        battle = field_battle(dice=[1], distance=18)
        a = make_unit(battle, SKIRMISHERS, 2)
        d = make_unit(battle, footmen, 5)
        battle.one_turn(a, d)
        assert battle.field.distance == 15

    def test_woods_block_shots(self, field_battle, archers, footmen):
        """Should not shoot in woods."""
        battle = field_battle(terrain='Woods', distance=30)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, footmen, 5)
        assert battle.min_distance_to_shoot(a, d) == 0
        battle.one_turn(a, d)
        assert battle.field.distance == 24

    def test_hopeless_target_not_shot(self, field_battle, archers):
        """Should not shoot a target it cannot hurt."""
        battle = field_battle(distance=30)
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, WALLS, 4)
        assert battle.min_distance_to_shoot(a, d) == 0

    def test_range_penalty_halves_range_at_six(self, field_battle, archers):
        """Should shorten the useful range when the range penalty is on."""
        battle = field_battle(distance=30, config=SimConfig(use_range_penalty=True))
        a = make_unit(battle, archers, 4)
        d = make_unit(battle, replace(WALLS, armor=6), 4)
        assert battle.min_distance_to_shoot(a, d) == 9


class TestMovement:
    """Test move rates by terrain and ability."""

    def test_open(self, field_battle, footmen):
        """Should move the full allowance on open ground."""
        battle = field_battle()
        assert battle.get_move(make_unit(battle, footmen, 1)) == 12

    @pytest.mark.parametrize('terrain,move', [('Hill', 6), ('Marsh', 4), ('Stream', 3)])
    def test_terrain_cost(self, field_battle, footmen, terrain, move):
        """Should divide the move by the terrain cost."""
        battle = field_battle(terrain=terrain)
        assert battle.get_move(make_unit(battle, footmen, 1)) == move

    def test_mounts_doubled_cost(self, field_battle):
        """Should double terrain cost for mounts."""
        battle = field_battle(terrain='Hill')
        assert battle.get_move(make_unit(battle, CAVALRY, 1)) == 6

    def test_flight_ignores_terrain(self, field_battle, dragon):
        """Should fly at full speed over any terrain."""
        battle = field_battle(terrain='Marsh')
        assert battle.get_move(make_unit(battle, dragon, 1)) == 24

    def test_swimming(self, field_battle):
        """Should move swimmers through a stream faster than walkers."""
        battle = field_battle(terrain='Stream')
        swimmers = row_type('Lizardmen;6;12;5;1;1;1;0;0;3;N;Swimming')
        assert battle.get_move(make_unit(battle, swimmers, 1)) == 6

    def test_teleport_closes_gap(self, field_battle):
        """Should teleport straight into contact."""
        battle = field_battle(distance=37)
        blinkers = row_type('Blink Dogs;10;12;5;1;1;1;0;0;3;N;Teleport')
        assert battle.get_move(make_unit(battle, blinkers, 1)) == 37

    def test_at_least_one(self, field_battle):
        """Should always move at least one inch."""
        battle = field_battle(terrain='Stream')
        slow = UnitType('Zombies', 2, 3, 4, 1, 1, 1, 0, 0, 3)
        assert battle.get_move(make_unit(battle, slow, 1)) == 1


class TestContactGeometry:
    """Test figures in contact and melee dice."""

    def test_narrow_defender(self, field_battle, footmen):
        """Should limit attackers by the defender's frontage."""
        battle = field_battle(distance=0)
        a = make_unit(battle, footmen, 10)
        a.set_files(10)
        assert battle.figures_in_contact(a, make_unit(battle, footmen, 1)) == 1
        assert battle.figures_in_contact(a, make_unit(battle, OGRES, 2)) == 4

    def test_engaged_uses_perimeter(self, field_battle, footmen):
        """Should count the perimeter once engaged."""
        battle = field_battle(distance=0, in_contact=True)
        a = make_unit(battle, footmen, 10)
        a.set_files(10)
        assert battle.figures_in_contact(a, make_unit(battle, OGRES, 2)) == 10

    def test_small_target_cap(self, field_battle, footmen, hero):
        """Should cap attackers against a small target."""
        battle = field_battle(distance=0, in_contact=True)
        a = make_unit(battle, footmen, 10)
        assert battle.figures_in_contact(a, make_unit(battle, hero, 1)) == 1

    def test_pikes_halved_in_woods(self, field_battle, pikemen, footmen):
        """Should halve pike attacks in woods."""
        battle = field_battle(terrain='Woods', distance=0)
        a = make_unit(battle, pikemen, 4)
        assert battle.melee_attack_dice(a, make_unit(battle, footmen, 4), 4) == 2

    def test_charge_bonus(self, field_battle, footmen):
        """Should add the charge bonus on first contact."""
        battle = field_battle(distance=0, config=SimConfig(use_charge_bonus=True))
        a = make_unit(battle, CAVALRY, 4)
        assert battle.melee_attack_dice(a, make_unit(battle, footmen, 4), 4) == 6

    def test_sweep_attack(self, field_battle, footmen):
        """Should add sweep dice against 1-health targets only."""
        battle = field_battle(distance=0)
        sweepers = row_type('Giants;50;12;5;8;2;2;0;0;8;N;SweepAttack (3)')
        a = make_unit(battle, sweepers, 2)
        assert battle.melee_attack_dice(a, make_unit(battle, footmen, 4), 2) == 6
        assert battle.melee_attack_dice(a, make_unit(battle, OGRES, 4), 2) == 4


class TestImmunity:
    """Test categorical immunities."""

    def test_silver(self, field_battle, footmen):
        """Should make SilverToHit defenders immune to weak attackers."""
        battle = field_battle()
        d = make_unit(battle, WIGHTS, 3)
        assert battle.is_attack_immune(make_unit(battle, footmen, 3), d, ranged=False)
        assert not battle.is_attack_immune(make_unit(battle, OGRES, 3), d, ranged=False)

    def test_silver_weapons_bypass(self, field_battle, footmen, archers):
        """Should let weak troops hit SilverToHit defenders once silver is bought."""
        battle = field_battle(config=SimConfig(use_silver_weapons=True))
        d = make_unit(battle, WIGHTS, 3)
        assert not battle.is_attack_immune(make_unit(battle, footmen, 3), d, ranged=False)
        assert not battle.is_attack_immune(make_unit(battle, archers, 3), d, ranged=True)

    def test_magic(self, field_battle, wizard):
        """Should make MagicToHit defenders immune to non-magical attackers."""
        battle = field_battle()
        d = make_unit(battle, AIR_ELEMENTAL, 1)
        assert battle.is_attack_immune(make_unit(battle, OGRES, 3), d, ranged=False)
        assert not battle.is_attack_immune(make_unit(battle, wizard, 1), d, ranged=False)
        assert not battle.is_attack_immune(make_unit(battle, AIR_ELEMENTAL, 1), d, ranged=False)

    def test_invisible(self, field_battle, footmen):
        """Should protect invisible defenders from attackers without detection."""
        battle = field_battle()
        d = make_unit(battle, footmen, 3)
        d.visible = False
        assert battle.is_attack_immune(make_unit(battle, footmen, 3), d, ranged=False)
        seers = row_type('Elves;10;12;5;1;1;1;1;21;3;L;Detection')
        assert not battle.is_attack_immune(make_unit(battle, seers, 3), d, ranged=True)

    def test_invisible_until_attacking(self, field_battle, footmen):
        """Should reveal an invisible attacker once it attacks."""
        battle = field_battle(dice=[1], distance=0)
        ghosts = row_type('Ghosts;10;12;5;1;1;1;0;0;3;C;Invisibility')
        a = make_unit(battle, ghosts, 1)
        assert not a.visible
        battle.melee_attack(a, make_unit(battle, footmen, 1))
        assert a.visible

    def test_missile_ward(self, field_battle, archers):
        """Should ward off missiles but not melee."""
        battle = field_battle()
        warded = row_type('Wardens;10;12;5;1;1;1;0;0;3;N;MissileWard')
        d = make_unit(battle, warded, 3)
        a = make_unit(battle, archers, 3)
        assert battle.is_attack_immune(a, d, ranged=True)
        assert not battle.is_attack_immune(a, d, ranged=False)


class TestBreathAndWhirlwind:
    """Test area attacks at contact."""

    def test_breath_then_melee(self, field_battle, dragon, footmen):
        """Should breathe first and melee afterwards."""
        battle = field_battle(distance=0)
        a = make_unit(battle, dragon, 1)
        d = make_unit(battle, footmen, 20)
        battle.melee_attack(a, d)
        # 4 x 2 figures under the breath, then 3 auto-hits
        assert d.figures == 9
        assert a.charges == 2

    def test_breath_immunity(self, field_battle, dragon, footmen):
        """Should do no breath damage to immune targets."""
        battle = field_battle(distance=0)
        a = make_unit(battle, dragon, 1)
        salamanders = replace(footmen, specials=parse_specials('FireImmunity'))
        d = make_unit(battle, salamanders, 20)
        battle.melee_attack(a, d)
        assert d.figures == 17
        assert a.charges == 2

    def test_magic_resistance(self, field_battle, dragon, footmen):
        """Should let magic resistance shield part of a unit from breath."""
        battle = field_battle(uniforms=[0.3], distance=0)
        a = make_unit(battle, dragon, 1)
        d = make_unit(battle, replace(footmen, specials=parse_specials('MagicResistance (50)')), 20)
        battle.melee_attack(a, d)
        assert d.figures == 17

    def test_solo_save_halves(self, field_battle, hero):
        """Should halve breath damage on a successful save."""
        battle = field_battle(dice=[4, 3])
        d = make_unit(battle, hero, 1)
        assert battle.magic_area_damage(d, 6, 'Fire') == 3
        assert battle.magic_area_damage(d, 6, 'Fire') == 4

    def test_fire_vulnerability(self, field_battle):
        """Should double fire damage against vulnerable targets."""
        battle = field_battle()
        d = make_unit(battle, replace(OGRES, specials=parse_specials('FireVulnerability')), 2)
        assert battle.magic_area_damage(d, 1, 'Fire') == 2
        assert battle.magic_area_damage(d, 1, 'Cold') == 1

    def test_multi_breath_skips_immune_elements(self, field_battle, footmen):
        """Should pick an element the target is not immune to."""
        battle = field_battle()
        hydra = solo_type(row_type('Hydra;100;9;6;10;3;2;0;0;12;C;MultiBreath (6)'))
        d = make_unit(battle, replace(footmen, specials=parse_specials('FireImmunity')), 5)
        assert battle.choose_breath_element(make_unit(battle, hydra, 1), d) == 'Volt'

    def test_whirlwind(self, field_battle, footmen):
        """Should sweep figures away with a whirlwind."""
        battle = field_battle(distance=0)
        a = make_unit(battle, AIR_ELEMENTAL, 1)
        d = make_unit(battle, footmen, 10)
        battle.melee_attack(a, d)
        # One swept away, one struck down
        assert d.figures == 8
        assert a.charges == 0

    def test_whirlwind_spares_heavy_figures(self, field_battle):
        """Should spare figures too heavy for the whirlwind."""
        battle = field_battle(distance=0)
        a = make_unit(battle, AIR_ELEMENTAL, 1)
        d = make_unit(battle, OGRES, 3)
        battle.melee_attack(a, d)
        assert d.figures == 3
        assert d.damage_taken == 2


class TestFear:
    """Test fear checks at first contact."""

    def test_fear_routs(self, field_battle, dragon, footmen):
        """Should rout a unit that fails its fear check."""
        battle = field_battle(dice=[4, 5])
        d = make_unit(battle, footmen, 10)
        battle.check_fear(make_unit(battle, dragon, 1), d)
        assert d.routed

    def test_fear_saved_once(self, field_battle, dragon, footmen):
        """Should check fear only once per game."""
        battle = field_battle(dice=[5, 5])
        a = make_unit(battle, dragon, 1)
        d = make_unit(battle, footmen, 10)
        battle.check_fear(a, d)
        assert d.fear_saved
        assert not d.routed
        battle.check_fear(a, d)
        assert battle.rng.dice == []


class TestCasters:
    """Test spell choices."""

    def test_death_spell(self, field_battle, wizard, footmen):
        """Should slay figures with the death spell."""
        battle = field_battle(distance=10)
        a = make_unit(battle, wizard, 1)
        d = make_unit(battle, footmen, 10)
        assert battle.one_turn_caster(a, d)
        assert d.figures == 6
        assert a.charges == 1

    def test_nothing_in_range(self, field_battle, wizard, footmen):
        """Should cast nothing when no target is in range."""
        battle = field_battle(distance=20)
        a = make_unit(battle, wizard, 1)
        assert not battle.one_turn_caster(a, make_unit(battle, footmen, 10))
        assert a.charges == 2

    def test_terrain_spell_against_mounts(self, field_battle, wizard):
        """Should raise hampering terrain against mounted foes."""
        battle = field_battle(distance=20)
        a = make_unit(battle, wizard, 1)
        assert battle.one_turn_caster(a, make_unit(battle, CAVALRY, 10))
        assert battle.field.terrain == 'Marsh'
        assert a.charges == 1

    def test_weather_control_once(self, field_battle, archers):
        """Should change the weather only once."""
        battle = field_battle(distance=30)
        witch = solo_type(row_type('Weather Witch;30;12;3;6;1;1;0;0;3;N;WeatherControl'))
        a = make_unit(battle, witch, 1)
        d = make_unit(battle, archers, 10)
        assert battle.one_turn_caster(a, d)
        assert battle.field.weather == 'Rainy'
        assert not battle.one_turn_caster(a, d)

    def test_weather_control_sun_vs_light_weakness(self, field_battle):
        """Should bring sun against light-weak foes."""
        battle = field_battle(distance=30)
        witch = solo_type(row_type('Weather Witch;30;12;3;6;1;1;0;0;3;N;WeatherControl'))
        orcs = row_type('Orcs;3;9;5;1;1;1;0;0;3;C;LightWeakness')
        assert battle.one_turn_caster(make_unit(battle, witch, 1), make_unit(battle, orcs, 10))
        assert battle.field.weather == 'Sunny'

    def test_wand(self, field_battle, footmen):
        """Should fire the wand at targets in range."""
        battle = field_battle(dice=[4, 5], distance=20)
        mage = solo_type(row_type('Mage;20;12;3;4;1;1;0;0;3;N;Wand (6)'))
        a = make_unit(battle, mage, 1)
        d = make_unit(battle, footmen, 10)
        assert battle.one_turn_caster(a, d)
        assert d.figures == 9

    def test_wand_skips_fire_immune(self, field_battle, footmen):
        """Should not waste the wand on fire-immune targets."""
        battle = field_battle(distance=20)
        mage = solo_type(row_type('Mage;20;12;3;4;1;1;0;0;3;N;Wand (6)'))
        d = make_unit(battle, replace(footmen, specials=parse_specials('FireImmunity')), 10)
        assert not battle.one_turn_caster(make_unit(battle, mage, 1), d)

    def test_control_lost_with_leader(self, field_battle, wizard):
        """Should lose controlled troops when the caster falls."""
        battle = field_battle()
        side = make_unit(battle, SKELETONS.with_leader(wizard), 10)
        side.leader.rout()
        battle.check_control(side)
        assert side.routed


class TestSetup:
    """Test budget-driven setup."""

    def test_budget_and_figures(self, field_battle, footmen, pikemen):
        """Should buy figures from a shared rolled budget."""
        battle = field_battle(uniforms=[0.5])
        u1, u2 = Unit.from_type(footmen), Unit.from_type(pikemen)
        assert battle.init_units_by_budget(u1, u2) == 75
        assert u1.figures == 15
        assert u1.files == 5
        assert u2.figures == 9

    def test_leader_bought_first(self, field_battle, footmen, hero):
        """Should buy the leader before the figures."""
        battle = field_battle(uniforms=[0.5])
        u1, u2 = Unit.from_type(footmen.with_leader(hero)), Unit.from_type(footmen)
        battle.init_units_by_budget(u1, u2)
        assert u1.leader.figures == 1
        assert u1.figures == 13
        assert u2.figures == 15

    def test_unaffordable_leader_absent(self, field_battle, footmen, hero):
        """Should leave out a leader the budget cannot cover."""
        battle = field_battle(uniforms=[0.5])
        u1 = Unit.from_type(footmen.with_leader(hero.with_cost(80)))
        battle.init_units_by_budget(u1, Unit.from_type(footmen))
        assert u1.leader.figures == 0
        assert not u1.has_leader
        assert u1.figures == 15

    def test_expensive_unit_scales_budget(self, field_battle, dragon, footmen):
        """Should scale the budget for a unit costlier than the band."""
        battle = field_battle(uniforms=[0.5])
        u1, u2 = Unit.from_type(dragon), Unit.from_type(footmen)
        assert battle.init_units_by_budget(u1, u2) == 150
        assert u1.figures == 1
        assert u2.figures == 30
        assert u1.charges == 3

    def test_pack_budget(self, field_battle, footmen, pikemen):
        """Should pack the budget to a multiple of the pricier unit."""
        battle = field_battle(uniforms=[0.5], config=SimConfig(pack_budget_to_max=True))
        u1, u2 = Unit.from_type(footmen), Unit.from_type(pikemen)
        assert battle.init_units_by_budget(u1, u2) == 72
        assert u1.figures == 14
        assert u2.figures == 9

    def test_at_least_one_figure(self, field_battle, footmen):
        """Should always buy at least one figure."""
        battle = field_battle(uniforms=[0.0])
        giant = UnitType('Giant', 99, 12, 5, 8, 2, 2, 0, 0, 8)
        u1 = Unit.from_type(giant)
        battle.init_units_by_budget(u1, Unit.from_type(footmen))
        assert u1.figures == 1

    def test_silver_weapons_raise_figure_cost(self, field_battle, footmen, archers):
        """Should charge +1 per melee figure and +2 per missile figure for silver."""
        battle = field_battle(uniforms=[0.5], config=SimConfig(use_silver_weapons=True))
        u1, u2 = Unit.from_type(footmen), Unit.from_type(archers)
        assert battle.init_units_by_budget(u1, u2) == 75
        assert battle.figure_cost(u1) == 6
        assert battle.figure_cost(u2) == 8
        assert u1.figures == 13
        assert u2.figures == 9

    def test_silver_weapons_skip_strong_troops(self, field_battle, footmen):
        """Should not charge silver to SilverToHit or 4-health troops."""
        battle = field_battle(config=SimConfig(use_silver_weapons=True))
        assert battle.figure_cost(Unit.from_type(WIGHTS)) == 30
        assert battle.figure_cost(Unit.from_type(OGRES)) == 15
        assert field_battle().figure_cost(Unit.from_type(footmen)) == 5

    def test_closest_multiple(self):
        """Should round to the closest positive multiple."""
        assert closest_multiple(8, 75) == 72
        assert closest_multiple(40, 75) == 80
        assert closest_multiple(40, 10) == 40


class TestPlay:
    """Test whole games on a real random source."""

    def test_game_ends(self, footmen, archers):
        """Should finish every game with a winner."""
        battle = Battle(seed=11)
        for _ in range(20):
            result = battle.play(Unit.from_type(footmen), Unit.from_type(archers))
            assert result.winner in (0, 1)
            assert result.turns >= 1

    def test_seeded_games_repeat(self, footmen, pikemen):
        """Should repeat a game for the same seed."""
        r1 = Battle(seed=5).play(Unit.from_type(footmen), Unit.from_type(pikemen))
        r2 = Battle(seed=5).play(Unit.from_type(footmen), Unit.from_type(pikemen))
        assert r1 == r2

    def test_rng_shared_with_caller(self, footmen):
        """Should draw from a generator the caller supplies."""
        rng = random.Random(1)
        battle = Battle(rng=rng)
        assert battle.rng is rng
