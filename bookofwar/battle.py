"""
Book of War Battle Engine

Plays one game between two formations to a win/loss outcome:
- Setup: terrain, weather, separation, budget, figures and frontage
- Initiative and alternating single-side turns
- Movement (melee closing, ranged stand-off), melee and missile attacks
- Morale, regeneration, control loss
- Special abilities: breath weapons, spells, wands, weather control,
  fear auras, whirlwinds, pike interrupts

A side is its base Unit plus any embedded leader. When the base formation
is destroyed or routed, a surviving leader fights on alone; the side is
beaten only when neither remains.
"""

from __future__ import annotations
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional

from bookofwar.battlefield import Battlefield, Terrain, Weather
from bookofwar.config import SimConfig
from bookofwar.specials import ELEMENTS, breath_element
from bookofwar.units import Unit, frontage_files, plural


# Game log callback type
GameLogCallback = Callable[[str], None]

# Target for morale check success
MORALE_TARGET = 9

# To-hit immunity thresholds (attacker health below these cannot harm)
SILVER_HEALTH_THRESHOLD = 4
MAGIC_HEALTH_THRESHOLD = 6

# Pike to-hit bonus applies against figures at least this wide (inches)
LARGE_FIGURE_WIDTH = 1.5

# Flyers at least this fast get around to the rear
REAR_ATTACK_MIN_FLY = 15

# Spells
DEATH_SPELL_RANGE = 12
DEATH_SPELL_MAX_HEALTH = 8
DEATH_SPELL_BASE = 4
TERRAIN_SPELL_RANGE = 24
WAND_RANGE = 24
WAND_SHOTS_PER_FIGURE = 2
WAND_DEFAULT_DAMAGE = 6

# Breath area per breathing figure (inches)
BREATH_AREA_WIDTH = 3.0
BREATH_AREA_LENGTH = 2.0

# Whirlwinds only sweep away light figures
WHIRLWIND_MAX_HEALTH = 2

# Solo save vs. magical area damage (d6, halves damage)
SAVE_TARGET = 4


@dataclass
class GameResult:
    """Outcome of a single game."""
    winner: int  # 0 = first-named unit, 1 = second-named unit
    turns: int
    figures: tuple[int, int]  # Base figures left on each side
    terrain: Terrain
    weather: Weather
    budget: int


def closest_multiple(num: int, target: int) -> int:
    """Closest multiple of num to target (at least num)."""
    q = target // num
    if q == 0:
        return num
    lower = q * num
    upper = (q + 1) * num
    return lower if target - lower <= upper - target else upper


class Battle:
    """Battle engine for one game at a time.

    The engine owns its Battlefield and random source; the two Units are
    set up fresh by `play` (or by the caller, for hand-built positions).
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        log_callback: Optional[GameLogCallback] = None,
    ):
        self.config = config if config is not None else SimConfig()
        if rng is None:
            rng = random.Random(seed) if seed is not None else random.Random()
        self.rng = rng
        self.log_callback = log_callback
        self.field = Battlefield()
        self.budget = 0
        self.turns = 0
        self._start_strength = (0, 0)

    def report(self, msg: str) -> None:
        """Narrate a detail (only when a log callback is attached)."""
        if self.log_callback is not None:
            self.log_callback(msg)

    def d6(self) -> int:
        return self.rng.randint(1, 6)

    # ========================================================================
    # GAME FLOW
    # ========================================================================

    def play(self, unit1: Unit, unit2: Unit) -> GameResult:
        """Set up and play out one game."""
        self.init_battlefield()
        self.init_units_by_budget(unit1, unit2)
        return self.fight(unit1, unit2)

    def fight(self, unit1: Unit, unit2: Unit) -> GameResult:
        """Initiative and turn loop on already set-up units."""
        self.turns = 0
        self._start_strength = (_strength(unit1), _strength(unit2))
        sides = ((unit1, unit2), (unit2, unit1))

        # Initiative for unit2 to start
        idx = 1 if self.d6() > 3 else 0

        while True:
            attacker, defender = sides[idx]
            self.one_turn(attacker, defender)
            winner = self.check_winner(attacker, defender)
            if winner is not None:
                break
            if self.turns >= self.config.max_turns:
                winner = self.decide_at_turn_limit(unit1, unit2)
                break
            idx = 1 - idx

        self.report(f"* WINNER *: {winner}")
        return GameResult(
            winner=0 if winner is unit1 else 1,
            turns=self.turns,
            figures=(unit1.figures, unit2.figures),
            terrain=self.field.terrain,
            weather=self.field.weather,
            budget=self.budget,
        )

    def check_winner(self, attacker: Unit, defender: Unit) -> Optional[Unit]:
        """Winning side after a turn, or None while both fight on."""
        if defender.is_totally_beaten:
            return attacker
        if attacker.is_totally_beaten:
            return defender
        return None

    def decide_at_turn_limit(self, unit1: Unit, unit2: Unit) -> Unit:
        """Side keeping the larger share of its figures wins; coin flip on ties."""
        s1, s2 = self._start_strength
        r1 = _strength(unit1) / s1 if s1 else 0.0
        r2 = _strength(unit2) / s2 if s2 else 0.0
        self.report(f"Turn limit reached ({self.turns} turns)")
        if r1 != r2:
            return unit1 if r1 > r2 else unit2
        return unit1 if self.rng.randint(0, 1) == 0 else unit2

    # ========================================================================
    # SETUP
    # ========================================================================

    def init_battlefield(self) -> None:
        """Randomize terrain, weather and distance."""
        self.field = Battlefield.create_random(self.rng, self.config.terrain_multiplier)
        self.report(f"Terrain: {self.field.terrain}")
        self.report(f"Weather: {self.field.weather}")
        self.report(f"Distance: {self.field.distance}")

    def init_units_by_budget(self, unit1: Unit, unit2: Unit) -> int:
        """Pick a random budget and buy both sides; returns the budget."""
        cfg = self.config
        spread = cfg.budget_max - cfg.budget_min
        budget = cfg.budget_min + int(self.rng.random() * spread)

        # Scale up when a figure costs more than the whole nominal band
        max_cost = max(unit1.cost, unit2.cost)
        if max_cost > cfg.budget_max:
            budget *= math.ceil(max_cost / cfg.budget_max)

        if cfg.pack_budget_to_max:
            budget = closest_multiple(max_cost, budget)

        self.budget = budget
        self.init_unit(unit1, budget)
        self.init_unit(unit2, budget)
        self.report(f"Budget: {budget}")
        self.report(f"Units: {_side_str(unit1)} vs. {_side_str(unit2)}")
        return budget

    def init_unit(self, unit: Unit, budget: int) -> None:
        """Buy any leader first, then as many figures as the budget rounds to."""
        if unit.leader is not None:
            leader = unit.leader
            if budget >= leader.cost:
                self.prepare_unit(leader, 1)
                budget -= leader.cost
            else:
                self.prepare_unit(leader, 0)

        figures = max(1, int(budget / self.figure_cost(unit) + 0.5))
        self.prepare_unit(unit, figures)

    def figure_cost(self, unit: Unit) -> int:
        """Price per figure, with silver weapons for weak troops when enabled."""
        cost = unit.cost
        if (self.config.use_silver_weapons
                and unit.health < SILVER_HEALTH_THRESHOLD
                and not unit.has_special('SilverToHit')):
            cost += 2 if unit.has_missiles else 1
        return cost

    def prepare_unit(self, unit: Unit, figures: int) -> None:
        """Set figures, frontage, visibility and charges."""
        unit.set_figures(figures)
        if figures > 0:
            unit.set_files(frontage_files(figures))
        invisible = (unit.has_special('Invisibility')
                     or (unit.has_special('WoodsCover') and self.field.terrain == 'Woods'))
        unit.visible = not invisible
        unit.refresh_charges()

    # ========================================================================
    # TURN STRUCTURE
    # ========================================================================

    def combatant(self, side: Unit) -> Unit:
        """The figure group acting for a side (lone leader once the base is gone)."""
        if side.is_beaten and side.has_leader:
            return side.leader
        return side

    def one_turn(self, side1: Unit, side2: Unit) -> None:
        """Play out one turn of action for side1 against side2."""
        self.turns += 1
        attacker = self.combatant(side1)
        defender = self.combatant(side2)

        side2.clear_figs_lost_in_turn()
        if side2.leader is not None:
            side2.leader.clear_figs_lost_in_turn()

        # Action by fixed priority
        acted = False
        if attacker is side1 and side1.has_leader and side1.leader.type.is_caster:
            acted = self.one_turn_caster(side1.leader, defender)
        if not acted and attacker.type.is_caster:
            acted = self.one_turn_caster(attacker, defender)
        if not acted:
            if self.can_shoot(attacker, defender):
                self.one_turn_ranged(attacker, defender)
            else:
                self.one_turn_melee(attacker, defender)

        # End of turn
        self.check_morale(defender)
        if defender.has_special('Regeneration'):
            defender.regenerate()
        self.check_control(side1)
        self.check_control(side2)

    def can_shoot(self, attacker: Unit, defender: Unit) -> bool:
        return (self.field.distance > 0
                and attacker.has_missiles
                and not attacker.has_special('MeleeShot')
                and self.min_distance_to_shoot(attacker, defender) > 0)

    def check_control(self, side: Unit) -> None:
        """Rout conjured/animated figures whose controller is gone."""
        leader = side.leader
        if leader is None:
            return
        if side.type.requires_control and leader.is_beaten and not side.is_beaten:
            self.report(f"{side} lose their controller and disperse")
            side.rout()
        if leader.type.requires_control and side.is_beaten and not leader.is_beaten:
            self.report(f"{leader} loses its controller and disperses")
            leader.rout()

    # ========================================================================
    # MOVEMENT
    # ========================================================================

    def get_move(self, unit: Unit) -> int:
        """Maximum move this turn, including terrain (at least 1 inch)."""
        if unit.has_special('Teleport'):
            return max(1, self.field.distance)
        if unit.fly_move > 0:
            return unit.fly_move

        cost = self.field.move_cost
        if cost > 1 and unit.has_special('Mounts'):
            cost *= 2
        if unit.has_special('Swimming') and self.field.terrain == 'Stream':
            cost = 2
        return max(1, unit.move // cost)

    def move_forward(self, unit: Unit, move: int) -> None:
        assert move > 0
        self.field.close(move)
        self.report(f"{unit} move to dist. {self.field.distance}")

    def retreat(self, unit: Unit, move: int) -> None:
        if move > 0:
            self.field.retreat(move)
            self.report(f"{unit} fall back to dist. {self.field.distance}")

    def can_rear_attack(self, unit: Unit) -> bool:
        """Fast flyers and teleporters strike from behind automatically."""
        return unit.has_special('Teleport') or unit.fly_move >= REAR_ATTACK_MIN_FLY

    def one_turn_melee(self, attacker: Unit, defender: Unit) -> None:
        """Close to contact, widen frontage, and attack."""
        f = self.field

        if f.distance > 0:
            self.move_forward(attacker, min(self.get_move(attacker), f.distance))
        elif attacker.ranks > 1 and attacker.total_width < defender.perimeter:
            new_files = min(attacker.files + 6, attacker.figures)
            if new_files != attacker.files:
                attacker.set_files(new_files)
                self.report(f"{attacker} expand frontage to {new_files} files")

        if f.distance == 0:
            if not f.in_contact:
                self.check_fear(attacker, defender)
                if not attacker.is_beaten and not defender.is_beaten:
                    self.check_pike_interrupt(attacker, defender)
            if not attacker.is_beaten and not defender.is_beaten:
                self.melee_attack(attacker, defender)
                if (attacker.has_leader and not attacker.leader.type.is_caster
                        and not defender.is_beaten):
                    self.melee_attack(attacker.leader, defender)
            f.in_contact = True

    def one_turn_ranged(self, attacker: Unit, defender: Unit) -> None:
        """Stand-off shooting: keep or win the first shot where possible."""
        f = self.field
        min_dist = self.min_distance_to_shoot(attacker, defender)
        enemy_dist = self.min_distance_to_shoot(defender, attacker)
        move = self.get_move(attacker)

        # Already in range: full rate, no move
        if f.distance <= min_dist:
            self.ranged_attack(attacker, defender, full_rate=True)
            return

        gap = f.distance - min_dist

        # Outranged: close at full speed, no shot
        if min_dist < enemy_dist:
            self.move_forward(attacker, min(move, gap))

        # Half-move to range and shoot at half rate
        elif move // 2 > 0:
            self.move_forward(attacker, min(move // 2, gap))
            if f.distance <= min_dist:
                self.ranged_attack(attacker, defender, full_rate=False)
                if attacker.has_special('SplitMove') and not attacker.is_beaten:
                    self.retreat(attacker, move // 4)

        # Too slow to split the move
        else:
            self.move_forward(attacker, min(move, gap))

    # ========================================================================
    # CONTACT EVENTS
    # ========================================================================

    def is_pike_available(self, unit: Unit) -> bool:
        """Can this unit make the special pike attack right now?"""
        f = self.field
        return (unit.has_special('Pikes')
                and f.is_open
                and not f.is_raining
                and not f.in_contact)

    def check_pike_interrupt(self, attacker: Unit, defender: Unit) -> None:
        """Pike-armed defender strikes first on initial contact."""
        if (self.is_pike_available(defender)
                and not self.can_rear_attack(attacker)
                and not self.rng.random() < self.config.pike_flanking_chance):
            self.report("** PIKES INTERRUPT ATTACK **")
            self.field.pikes_interrupt = True
            attacker.clear_figs_lost_in_turn()
            self.melee_attack(defender, attacker)
            self.check_morale(attacker)
            self.field.pikes_interrupt = False

    def check_fear(self, attacker: Unit, defender: Unit) -> None:
        """Fear auras force an immediate check on first contact."""
        if attacker.has_special('Fear'):
            self.fear_check(defender, attacker.special_param('Fear'))
        if defender.has_special('Fear'):
            self.fear_check(attacker, defender.special_param('Fear'))

    def fear_check(self, unit: Unit, penalty: int) -> None:
        if unit.fear_saved or unit.type.fearless or unit.is_beaten:
            return
        check = self.d6() + self.d6() + unit.health + self.misc_morale_bonus(unit) - penalty
        self.report(f"Fear check ({unit}): {check}")
        if check >= MORALE_TARGET:
            unit.fear_saved = True
        else:
            self.report(f"{unit} flee in *FEAR*")
            unit.rout()

    # ========================================================================
    # ATTACKS
    # ========================================================================

    def make_visible(self, unit: Unit) -> None:
        """An invisible attacker gives itself away."""
        if not unit.visible:
            unit.visible = True
            self.report(f"{unit} become visible!")

    def can_see(self, attacker: Unit, defender: Unit) -> bool:
        return defender.visible or attacker.has_special('Detection')

    def is_attack_immune(self, attacker: Unit, defender: Unit, ranged: bool) -> bool:
        """Is the defender categorically immune to this attack?"""
        if not self.can_see(attacker, defender):
            return True
        if ranged and defender.has_special('MissileWard'):
            return True
        if (defender.has_special('SilverToHit')
                and not self.config.use_silver_weapons
                and attacker.health < SILVER_HEALTH_THRESHOLD
                and not attacker.has_special('SilverToHit')
                and not attacker.has_special('MagicToHit')):
            return True
        if (defender.has_special('MagicToHit')
                and attacker.health < MAGIC_HEALTH_THRESHOLD
                and not attacker.has_special('MagicToHit')):
            return True
        return False

    def min_distance_to_shoot(self, attacker: Unit, defender: Unit) -> int:
        """Largest distance with any chance to hit (0 = melee only)."""
        f = self.field
        if not attacker.has_missiles or not f.permits_shots:
            return 0
        if attacker.has_special('NoRainShot') and f.is_raining:
            return 0
        if self.is_attack_immune(attacker, defender, ranged=True):
            return 0
        if attacker.type.auto_hits:
            return attacker.range
        base_to_hit = (defender.armor - attacker.health // 3
                       - self.misc_attack_bonus(attacker, defender, ranged=True))
        if base_to_hit > 6:
            return 0
        if base_to_hit == 6 and self.config.use_range_penalty:
            return attacker.range // 2
        return attacker.range

    def figures_in_contact(self, attacker: Unit, defender: Unit) -> int:
        """Attacking figures that reach the defender's exposed edge."""
        wraps = self.field.in_contact or self.can_rear_attack(attacker)
        atk_width = attacker.total_width
        def_width = defender.perimeter if wraps else defender.total_width
        if atk_width <= def_width:
            figs = attacker.files
        else:
            figs = math.ceil(def_width / attacker.fig_width)
        if defender.type.small_target:
            figs = min(figs, defender.figures)
        return max(figs, 1)

    def melee_attack_dice(self, attacker: Unit, defender: Unit, figs_atk: int) -> int:
        """Count melee attack dice (with special modifiers)."""
        f = self.field

        # Sweeping attacks against light troops
        if (attacker.has_special('SweepAttack')
                and defender.type.sweepable and defender.health == 1):
            return max(figs_atk * attacker.special_param('SweepAttack'), 1)

        dice = figs_atk * attacker.attacks
        bad_ground = not f.is_open or f.is_raining

        # Mounts and pikes get half dice in bad terrain or rain
        if bad_ground and (attacker.has_special('Mounts') or attacker.has_special('Pikes')):
            dice //= 2

        # Mounted charge (+50%) on first contact in good going
        if (self.config.use_charge_bonus
                and not f.in_contact
                and attacker.has_special('Mounts')
                and not bad_ground):
            dice += dice // 2

        return max(dice, 1)

    def misc_attack_bonus(self, attacker: Unit, defender: Unit, ranged: bool) -> int:
        """Contextual to-hit modifiers."""
        f = self.field
        bonus = 0

        # Pikes vs. large targets
        if (not ranged and self.is_pike_available(attacker)
                and (defender.has_special('Mounts') or defender.fig_width >= LARGE_FIGURE_WIDTH)):
            bonus += 1

        # Orcs & goblins in sunlight
        if attacker.has_special('LightWeakness') and f.is_sunny:
            bonus -= 1

        # Solo figures swarmed in normal melee
        if not ranged and defender.type.small_target and not attacker.type.small_target:
            bonus += 1

        if ranged and f.is_raining:
            bonus -= 1

        # Mounted units mostly attack at half listed health
        if attacker.has_special('Mounts'):
            if attacker.attacks >= 4:  # elephants
                if ranged:
                    bonus -= 2
            else:
                bonus -= attacker.health // 3 - attacker.health // 2 // 3

        if ranged and attacker.has_special('ShotBonus'):
            bonus += 1

        # Small folk dodge giants
        if attacker.has_special('GiantClass') and defender.has_special('GiantDodging'):
            bonus -= 1

        if (self.config.use_shield_bonus and defender.has_special('Shields')
                and (ranged or attacker.has_special('Pikes'))):
            bonus -= 1

        # Rear attack on first contact
        if not ranged and not f.in_contact and self.can_rear_attack(attacker):
            bonus += 1

        return bonus

    def roll_hits(self, attacker: Unit, defender: Unit, dice: int, bonus: int) -> int:
        """Roll to-hit dice; auto-hitters skip the roll."""
        if attacker.type.auto_hits:
            return dice
        target = defender.armor - attacker.health // 3 - bonus
        return sum(1 for _ in range(dice) if self.d6() >= target)

    def confirm_hits(self, defender: Unit, hits: int) -> int:
        """Missile hits on small targets need a chance-in-six confirm by width."""
        chance = min(6, max(1, defender.type.width))
        return sum(1 for _ in range(hits) if self.d6() <= chance)

    def apply_damage(self, attacker: Unit, defender: Unit, points: int, ranged: bool) -> int:
        """Apply damage from an attack and report; returns figures killed."""
        verb = ' shoot ' if ranged else ' attack '
        start = f"{attacker}{verb}{defender}: "
        killed = defender.take_damage(points)
        self.report(f"{start}{killed} fig{plural(killed)} killed")
        return killed

    def melee_attack(self, attacker: Unit, defender: Unit) -> None:
        """Play out one melee attack."""
        assert attacker.figures > 0
        self.make_visible(attacker)

        if self.is_attack_immune(attacker, defender, ranged=False):
            self.report(f"{defender} unharmed by {attacker}")
            return

        # Shoot in melee (e.g., elephant archers)
        if attacker.has_special('MeleeShot') and self.min_distance_to_shoot(attacker, defender) > 0:
            self.ranged_attack(attacker, defender, full_rate=False)
            if defender.is_beaten:
                return

        figs_atk = self.figures_in_contact(attacker, defender)

        if attacker.type.breath_type is not None and attacker.charges > 0:
            self.breath_attack(attacker, defender, figs_atk)
            if defender.is_beaten:
                return

        if attacker.has_special('Whirlwind') and attacker.charges > 0:
            self.whirlwind_attack(attacker, defender)
            if defender.is_beaten:
                return

        dice = self.melee_attack_dice(attacker, defender, figs_atk)
        bonus = self.misc_attack_bonus(attacker, defender, ranged=False)
        hits = self.roll_hits(attacker, defender, dice, bonus)

        per_hit = attacker.damage + attacker.special_param('DamageBonus')
        if self.field.pikes_interrupt:
            per_hit *= 2
        if self.config.use_damage_ceiling:
            per_hit = min(per_hit, defender.health)
        self.apply_damage(attacker, defender, hits * per_hit, ranged=False)

    def ranged_attack(self, attacker: Unit, defender: Unit, full_rate: bool) -> None:
        """Play out one missile attack."""
        assert attacker.figures > 0
        self.make_visible(attacker)

        if self.is_attack_immune(attacker, defender, ranged=True):
            return

        f = self.field
        if f.distance > attacker.range:
            return

        # Shooting in melee uses the front rank only
        figs_atk = attacker.files if f.distance == 0 else attacker.figures
        dice = figs_atk * attacker.rate
        if not full_rate:
            dice //= 2

        range_mod = 0
        if self.config.use_range_penalty and f.distance > attacker.range // 2:
            range_mod = -1

        bonus = self.misc_attack_bonus(attacker, defender, ranged=True) + range_mod
        hits = self.roll_hits(attacker, defender, dice, bonus)
        if defender.type.small_target:
            hits = self.confirm_hits(defender, hits)

        per_hit = attacker.damage + (1 if attacker.has_special('BigStones') else 0)
        if self.config.use_damage_ceiling:
            per_hit = min(per_hit, defender.health)
        self.apply_damage(attacker, defender, hits * per_hit, ranged=True)

    # ========================================================================
    # MORALE
    # ========================================================================

    def check_morale(self, unit: Unit) -> None:
        """End-of-turn morale check (routs the unit on failure)."""
        if unit.figures == 0 or unit.figs_lost_in_turn == 0:
            return
        if unit.type.fearless or unit.routed:
            return

        roll = self.d6() + self.d6()
        rate_of_loss = unit.figures // unit.figs_lost_in_turn
        check = roll + unit.health + rate_of_loss + self.misc_morale_bonus(unit)
        self.report(f"Morale check ({unit}): {check}")
        if check < MORALE_TARGET:
            self.report(f"{unit} are *ROUTED*")
            unit.rout()

    def misc_morale_bonus(self, unit: Unit) -> int:
        bonus = 0
        if unit.has_special('MoraleBonus'):
            bonus += unit.special_param('MoraleBonus') or 1

        if self.field.is_sunny and unit.has_special('LightWeakness'):
            bonus -= 1

        # Leadership
        if unit.has_leader:
            bonus += 1

        if unit.alignment == 'Lawful':
            bonus += 1
        elif unit.alignment == 'Chaotic':
            bonus -= 1

        # Extra ranks
        if self.config.use_optional_morale_mods:
            bonus += min(unit.ranks, unit.files) - 1

        return bonus

    # ========================================================================
    # MAGIC & BREATH
    # ========================================================================

    def resists_magic(self, unit: Unit) -> bool:
        """Magic resistance (param percent) negates a whole magical effect."""
        pct = unit.special_param('MagicResistance')
        if pct > 0 and self.rng.random() * 100 < pct:
            self.report(f"{unit} resist the magic")
            return True
        return False

    def is_element_immune(self, unit: Unit, element: str) -> bool:
        return unit.has_special(f"{element}Immunity")

    def magic_area_damage(self, target: Unit, damage: int, element: Optional[str]) -> int:
        """Damage to one target figure from a magical area effect."""
        if element is not None:
            if self.is_element_immune(target, element):
                return 0
            if element == 'Fire' and target.has_special('FireVulnerability'):
                damage *= 2
        if target.type.gets_saves and self.d6() >= SAVE_TARGET:
            damage //= 2
        return max(0, min(damage, target.health))

    def area_figures(self, target: Unit, width: float, length: float) -> int:
        """Target figures covered by an area of the given size."""
        across = min(int(width / target.fig_width), target.files)
        deep = min(int(length / target.fig_length), target.ranks)
        return max(1, across * deep)

    def choose_breath_element(self, breather: Unit, target: Unit) -> Optional[str]:
        """Element for this breath, or None if the target is immune."""
        breath = breather.type.breath_type
        if breath == 'MultiBreath':
            options = [e for e in ELEMENTS if not self.is_element_immune(target, e)]
            return self.rng.choice(options) if options else None
        element = breath_element(breath)
        if self.is_element_immune(target, element):
            return None
        return element

    def breath_attack(self, breather: Unit, target: Unit, figs_atk: int) -> None:
        """One charge of breath over the target formation."""
        assert breather.charges > 0
        breather.charges -= 1
        self.report(f"* {breather.name.upper()} BREATH ATTACK *")
        if self.resists_magic(target):
            return
        element = self.choose_breath_element(breather, target)
        if element is None:
            self.report(f"{target} immune to breath")
            return

        damage = breather.special_param(breather.type.breath_type)
        figs_hit = self.area_figures(target, BREATH_AREA_WIDTH, BREATH_AREA_LENGTH)
        total = 0
        for _ in range(figs_atk * figs_hit):
            total += self.magic_area_damage(target, damage, element)
        self.apply_damage(breather, target, total, ranged=True)

    def whirlwind_attack(self, elemental: Unit, target: Unit) -> None:
        """One-shot sweep of light figures."""
        assert elemental.charges > 0
        elemental.charges -= 1
        self.report("* WHIRLWIND *")
        if not target.type.sweepable or target.health > WHIRLWIND_MAX_HEALTH:
            return
        swept = elemental.figures * max(1, elemental.special_param('Whirlwind'))
        killed = target.remove_figures(swept)
        self.report(f"{elemental} sweep away {killed} fig{plural(killed)}")

    def spell_hits(self, target: Unit) -> bool:
        """Accuracy band for a missile spell by target depth (+/-1 inch scatter)."""
        depth = target.fig_length * target.ranks
        if depth <= 0.0:
            return False
        if depth <= 1.0:
            return self.d6() <= 2
        if depth <= 2.0:
            return self.d6() <= 4
        return True

    def one_turn_caster(self, caster: Unit, target: Unit) -> bool:
        """Cast the most useful spell; False when nothing is worth casting."""
        if caster.has_special('WeatherControl') and self.cast_weather_control(caster, target):
            return True
        if caster.has_special('Spells') and caster.charges > 0:
            if self.cast_terrain_spell(caster, target):
                return True
            if self.cast_death_spell(caster, target):
                return True
        if caster.has_special('Wand') and self.wand_attack(caster, target):
            return True
        return False

    def _own_side(self, caster: Unit) -> Unit:
        if caster.host is not None and not caster.host.is_beaten:
            return caster.host
        return caster

    @staticmethod
    def rain_thirst(unit: Unit) -> int:
        """How much a unit suffers when it rains."""
        thirst = 0
        if unit.has_missiles:
            thirst += 1
        if unit.has_special('NoRainShot'):
            thirst += 1
        if unit.has_special('Mounts'):
            thirst += 1
        if unit.has_special('Pikes'):
            thirst += 1
        return thirst

    def desired_weather(self, own: Unit, enemy: Unit) -> Optional[Weather]:
        if self.rain_thirst(enemy) > self.rain_thirst(own):
            return 'Rainy'
        own_weak = own.has_special('LightWeakness')
        enemy_weak = enemy.has_special('LightWeakness')
        if enemy_weak and not own_weak:
            return 'Sunny'
        if own_weak and not enemy_weak:
            return 'Cloudy'
        return None

    def cast_weather_control(self, caster: Unit, target: Unit) -> bool:
        """Change the weather once per game if it helps."""
        if self.field.weather_controlled:
            return False
        wanted = self.desired_weather(self._own_side(caster), target)
        if wanted is None or wanted == self.field.weather:
            return False
        self.field.weather = wanted
        self.field.weather_controlled = True
        self.report(f"* {caster.name.upper()} CONTROLS WEATHER: {wanted} *")
        return True

    def cast_terrain_spell(self, caster: Unit, target: Unit) -> bool:
        """Turn open ground to mud against mounts and pikes."""
        f = self.field
        if not f.is_open or f.in_contact or f.distance == 0 or f.distance > TERRAIN_SPELL_RANGE:
            return False
        own = self._own_side(caster)

        def hurt_by_mud(u: Unit) -> bool:
            return u.has_special('Mounts') or u.has_special('Pikes')

        if not hurt_by_mud(target) or hurt_by_mud(own):
            return False
        caster.charges -= 1
        f.terrain = 'Marsh'
        self.report(f"* {caster.name.upper()} TURNS GROUND TO MUD *")
        return True

    def cast_death_spell(self, caster: Unit, target: Unit) -> bool:
        """Area death spell against low-health formations in range."""
        if self.field.distance > DEATH_SPELL_RANGE:
            return False
        if target.health > DEATH_SPELL_MAX_HEALTH or target.type.small_target:
            return False
        if not self.can_see(caster, target):
            return False
        caster.charges -= 1
        self.make_visible(caster)
        self.report(f"* {caster.name.upper()} DEATH SPELL *")
        if self.resists_magic(target):
            return True
        damage = caster.figures * (DEATH_SPELL_BASE + caster.ranks // 3)
        self.apply_damage(caster, target, damage, ranged=True)
        return True

    def wand_attack(self, caster: Unit, target: Unit) -> bool:
        """Two wand fireballs per figure within range."""
        if self.field.distance > WAND_RANGE or not self.can_see(caster, target):
            return False
        if self.is_element_immune(target, 'Fire'):
            return False
        self.make_visible(caster)
        self.report(f"* {caster.name.upper()} WAND FIREBALLS *")
        if self.resists_magic(target):
            return True
        damage = caster.special_param('Wand') or WAND_DEFAULT_DAMAGE
        total = 0
        for _ in range(caster.figures * WAND_SHOTS_PER_FIGURE):
            if self.spell_hits(target):
                total += self.magic_area_damage(target, damage, 'Fire')
        self.apply_damage(caster, target, total, ranged=True)
        return True


def _strength(side: Unit) -> int:
    """Figures left on a side, leader included."""
    total = side.figures
    if side.leader is not None:
        total += side.leader.figures
    return total


def _side_str(side: Unit) -> str:
    if side.leader is not None and side.leader.figures > 0:
        return f"{side} led by {side.leader.name}"
    return str(side)
