"""
PTCG Rules Engine - Combat (combat.py)

Attack legality, the confusion check, attack effect dispatch and the damage
pipeline:

    base damage (printed, or an effect override)
      -> weakness (x multiplier; Fairy Zone rewrites the defender's weakness)
      -> resistance (minus value, floored at 0)
      -> place damage -> secondary effects -> knockout check

Attack effects are looked up in dispatch tables keyed by AttackEffect.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict

from ptcg import actions
from ptcg.decisions import Procedure, make_options, request_selection
from ptcg.models import (
    AbilityEffect,
    ActionResult,
    AttackDefinition,
    AttackEffect,
    CreatureInstance,
    PlayerState,
    PokemonType,
    StatusCondition,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


# ============================================================================
# 1. EFFECT TABLES
# ============================================================================

def _self_counters_x30(engine: "GameEngine", attack: AttackDefinition,
                       attacker: CreatureInstance, defender: CreatureInstance) -> int:
    """30 damage for each damage counter on the attacker."""
    return attacker.damage_counters(engine.config.damage_counter) * 30


def _bench_20_plus(engine: "GameEngine", attack: AttackDefinition,
                   attacker: CreatureInstance, defender: CreatureInstance) -> int:
    """20 plus 20 for each benched creature (both players)."""
    return 20 + 20 * actions.total_bench_count(engine)


def _inflict_confusion(engine: "GameEngine", attacker: CreatureInstance, defender: CreatureInstance) -> None:
    actions.set_status(engine, defender, StatusCondition.CONFUSION)
    logger.info(f"[Status] {defender.card.display_name()} is now Confused")


# Replace the printed damage
DAMAGE_OVERRIDES: Dict[AttackEffect, Callable[..., int]] = {
    AttackEffect.SELF_COUNTERS_X30: _self_counters_x30,
    AttackEffect.BENCH_20_PLUS: _bench_20_plus,
}

# Applied after damage is placed, before the knockout check
SECONDARY_EFFECTS: Dict[AttackEffect, Callable[..., None]] = {
    AttackEffect.INFLICT_CONFUSION: _inflict_confusion,
}

COPY_EFFECTS = (AttackEffect.COPY_ATTACK, AttackEffect.COPY_RANDOM_ATTACK)


# ============================================================================
# 2. COMBAT SYSTEM
# ============================================================================

class CombatSystem:

    def __init__(self, engine: "GameEngine"):
        self.engine = engine

    # ------------------------------------------------------------------------
    # Legality
    # ------------------------------------------------------------------------

    def attack_disabled_reason(self, player: PlayerState, attack_index: int = 0) -> str:
        """
        Why the player's Active cannot use the given attack right now.

        Returns:
            Empty string if the attack is legal
        """
        active = player.active
        if active is None:
            return "no active creature"
        if player.attacked_this_turn:
            return "already attacked this turn"
        state = self.engine.state
        if player.index == state.first_player_index and state.turn_count == 1:
            return "first player cannot attack on the first turn"
        if active.status == StatusCondition.PARALYSIS:
            return "paralyzed"
        if active.status == StatusCondition.SLEEP:
            return "asleep"
        if not 0 <= attack_index < len(active.card.attacks):
            return "no attack defined"

        attack = active.card.attacks[attack_index]
        if self.engine.energy.count_total_energy(active) < attack.energy_cost:
            return "insufficient energy"
        return ""

    def can_attack(self, player: PlayerState, attack_index: int = 0) -> bool:
        return self.attack_disabled_reason(player, attack_index) == ""

    # ------------------------------------------------------------------------
    # Damage pipeline
    # ------------------------------------------------------------------------

    def effective_weakness(self, attacker: CreatureInstance, defender: CreatureInstance) -> PokemonType:
        """Defender's weakness, rewritten to Fairy while Fairy Zone is in play on the attacker's side."""
        owner = self.engine.state.get_player(attacker.owner_index)
        for creature in owner.all_creatures():
            if creature.card.get_ability(AbilityEffect.FAIRY_ZONE) is not None:
                return PokemonType.FAIRY
        return defender.card.weakness

    def calculate_damage(self, attacker: CreatureInstance, defender: CreatureInstance, base_damage: int) -> int:
        """
        Apply weakness then resistance to base damage.

        Args:
            attacker: Attacking creature
            defender: Defending creature
            base_damage: Damage before modifiers

        Returns:
            Final damage (never negative)
        """
        damage = max(0, base_damage)
        if damage == 0:
            return 0

        attacker_type = attacker.card.type
        weakness = self.effective_weakness(attacker, defender)
        if weakness != PokemonType.COLORLESS and weakness == attacker_type:
            damage *= defender.card.weakness_multiplier
            logger.debug(f"[Damage] weakness x{defender.card.weakness_multiplier} -> {damage}")

        if defender.card.has_resistance and defender.card.resistance == attacker_type:
            damage = max(0, damage - defender.card.resistance_value)
            logger.debug(f"[Damage] resistance -{defender.card.resistance_value} -> {damage}")

        return damage

    def base_damage(self, attack: AttackDefinition, attacker: CreatureInstance, defender: CreatureInstance) -> int:
        override = DAMAGE_OVERRIDES.get(attack.effect)
        if override is not None:
            return override(self.engine, attack, attacker, defender)
        return attack.base_damage

    # ------------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------------

    def perform_attack(self, player: PlayerState, attack_index: int = 0) -> Procedure:
        """
        Resolve an attack by the player's Active against the opponent's Active.

        Legality is checked by the caller. Yields decision requests for
        copy effects and knockout promotion.
        """
        opponent = self.engine.state.opponent_of(player.index)
        attacker = player.active
        defender = opponent.active
        if attacker is None:
            return ActionResult.fail("no active creature")
        if defender is None:
            return ActionResult.fail("opponent has no active creature")

        attack = attacker.card.attacks[attack_index]
        player.attacked_this_turn = True
        logger.info(f"[Attack] {attacker.card.display_name()} uses {attack.name}")

        if attacker.status == StatusCondition.CONFUSION and not actions.coin_flip(self.engine):
            actions.apply_damage(self.engine, attacker, self.engine.config.confusion_self_damage)
            logger.info(f"[Attack] {attacker.card.display_name()} hurt itself in its confusion")
            yield from self.engine.check_knockout(player, attacker)
            return ActionResult.ok("attack failed due to confusion")

        if attack.effect in COPY_EFFECTS:
            return (yield from self._copy_attack(player, attacker, defender, attack))

        if attack.clears_status:
            actions.clear_status(self.engine, attacker)

        damage = self.calculate_damage(attacker, defender, self.base_damage(attack, attacker, defender))
        actions.apply_damage(self.engine, defender, damage)
        logger.info(f"[Attack] {attack.name} deals {damage} to {defender.card.display_name()}")

        secondary = SECONDARY_EFFECTS.get(attack.effect)
        if secondary is not None:
            secondary(self.engine, attacker, defender)

        yield from self.engine.check_knockout(opponent, defender)
        return ActionResult.ok()

    def _copy_attack(self, player: PlayerState, attacker: CreatureInstance,
                     defender: CreatureInstance, attack: AttackDefinition) -> Procedure:
        """Use one of the defender's attacks, picked at random or by the attacking player."""
        candidates = list(defender.card.attacks)
        if not candidates:
            logger.info(f"[Attack] {defender.card.display_name()} has no attacks to copy")
            return ActionResult.ok("nothing to copy")

        if attack.effect == AttackEffect.COPY_RANDOM_ATTACK:
            copied = candidates[self.engine.rng.randrange(len(candidates))]
        else:
            copied = yield request_selection(
                player.index,
                f"{attack.name}: choose an attack to copy",
                make_options(candidates, label=lambda a: f"{a.name} ({a.base_damage})"),
                source=attack.name,
            )
            if copied is None:
                return ActionResult.fail("no attack selected")

        if copied.clears_status:
            actions.clear_status(self.engine, attacker)

        damage = self.calculate_damage(attacker, defender, self.base_damage(copied, attacker, defender))
        actions.apply_damage(self.engine, defender, damage)
        logger.info(f"[Attack] {attack.name} copies {copied.name} for {damage} damage")

        opponent = self.engine.state.opponent_of(player.index)
        yield from self.engine.check_knockout(opponent, defender)
        return ActionResult.ok()
