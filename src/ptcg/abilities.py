"""
PTCG Rules Engine - Ability Logic (abilities.py)

Every ability is registered in ABILITY_LOGIC under its AbilityEffect id:

    AbilityEffect.RESTART: {
        "check": restart_check,     # (engine, player, creature) -> reason ("" = usable)
        "effect": restart_effect,   # generator (engine, player, creature, target) -> ActionResult
    }

Passive abilities have no "effect" entry; they are read directly by the
rule systems (Fairy Zone is applied in combat.py).
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from ptcg import actions
from ptcg.decisions import Procedure, make_options, request_selection, run_effect
from ptcg.models import (
    AbilityEffect,
    ActionResult,
    CreatureInstance,
    EnergyCard,
    PlayerState,
    PokemonType,
    TrainerCard,
    TrainerType,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


# ============================================================================
# RESTART (Mew ex) - draw until you have 3 cards in hand
# ============================================================================

def restart_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    if len(player.hand) >= engine.config.restart_hand_target:
        return f"hand already has {engine.config.restart_hand_target} or more cards"
    if not player.deck:
        return "deck is empty"
    return ""


def restart_effect(engine: "GameEngine", player: PlayerState, creature: CreatureInstance,
                   target: Optional[CreatureInstance] = None) -> ActionResult:
    # Capped at the deck size
    amount = min(engine.config.restart_hand_target - len(player.hand), len(player.deck))
    if not engine.draw(player, amount):
        return ActionResult.fail("deck out")
    logger.info(f"[Ability] Restart: {player.name} drew {amount}")
    return ActionResult.ok()


# ============================================================================
# MYSTERIOUS TAIL (Mew) - look at the top 6, take an Item
# ============================================================================

def mysterious_tail_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    if not player.is_active(creature):
        return "must be in the Active Spot"
    if not player.deck:
        return "deck is empty"
    return ""


def mysterious_tail_effect(engine: "GameEngine", player: PlayerState, creature: CreatureInstance,
                           target: Optional[CreatureInstance] = None) -> Procedure:
    depth = min(engine.config.mysterious_tail_depth, len(player.deck))
    items = [c for c in player.deck[:depth]
             if isinstance(c, TrainerCard) and c.trainer_type == TrainerType.ITEM]

    chosen = None
    if items:
        chosen = yield request_selection(
            player.index, "Mysterious Tail: choose an Item to put into your hand",
            make_options(items), source="Mysterious Tail",
        )

    if chosen is not None:
        actions.move_card(engine, player, chosen, "deck", "hand")
        logger.info(f"[Ability] Mysterious Tail: took {chosen.name}")
    else:
        logger.info(f"[Ability] Mysterious Tail: no Item among the top {depth}")
    actions.shuffle_deck(engine, player)
    return ActionResult.ok()


# ============================================================================
# REFINEMENT (Kirlia) - discard 1, draw 2
# ============================================================================

def refinement_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    if not player.hand:
        return "no card in hand to discard"
    if len(player.deck) < 2:
        return "not enough cards in deck"
    return ""


def refinement_effect(engine: "GameEngine", player: PlayerState, creature: CreatureInstance,
                      target: Optional[CreatureInstance] = None) -> Procedure:
    card = yield request_selection(
        player.index, "Refinement: choose a card to discard",
        make_options(player.hand), source="Refinement",
    )
    if card is None:
        return ActionResult.fail("no card selected")

    actions.move_card(engine, player, card, "hand", "discard")
    if not engine.draw(player, 2):
        return ActionResult.fail("deck out")
    logger.info(f"[Ability] Refinement: discarded {card.name}, drew 2")
    return ActionResult.ok()


# ============================================================================
# PSYCHIC EMBRACE (Gardevoir ex) - Psychic Energy from discard, 20 damage
# ============================================================================

def _embrace_targets(engine: "GameEngine", player: PlayerState):
    return [c for c in player.all_creatures() if engine.energy.can_psychic_embrace(player, c)]


def psychic_embrace_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    if not any(actions.is_basic_psychic_energy(c) for c in player.discard):
        return "no Basic Psychic Energy in discard"
    if not _embrace_targets(engine, player):
        return "no Psychic Pokémon can take the energy"
    return ""


def psychic_embrace_effect(engine: "GameEngine", player: PlayerState, creature: CreatureInstance,
                           target: Optional[CreatureInstance] = None) -> Procedure:
    if target is None:
        target = yield request_selection(
            player.index, "Psychic Embrace: choose a Psychic Pokémon",
            make_options(_embrace_targets(engine, player)), source="Psychic Embrace",
        )
    return engine.energy.psychic_embrace(player, target)


# ============================================================================
# ADRENA-BRAIN (Munkidori) - move up to 3 damage counters to the opponent
# ============================================================================

def _damaged_creatures(engine: "GameEngine", player: PlayerState):
    unit = engine.config.damage_counter
    return [c for c in player.all_creatures() if c.current_damage >= unit]


def adrena_brain_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    has_darkness = any(isinstance(e, EnergyCard) and e.provides_type == PokemonType.DARKNESS
                       for e in creature.attached_energies)
    if not has_darkness:
        return "no Darkness Energy attached"
    if not _damaged_creatures(engine, player):
        return "none of your Pokémon have damage counters"
    if not engine.state.opponent_of(player.index).has_any_in_play():
        return "opponent has no Pokémon in play"
    return ""


def adrena_brain_effect(engine: "GameEngine", player: PlayerState, creature: CreatureInstance,
                        target: Optional[CreatureInstance] = None) -> Procedure:
    unit = engine.config.damage_counter
    opponent = engine.state.opponent_of(player.index)

    source = yield request_selection(
        player.index, "Adrena-Brain: move damage counters from",
        make_options(_damaged_creatures(engine, player)), source="Adrena-Brain",
    )
    if source is None:
        return ActionResult.fail("no source selected")

    most = min(3, source.damage_counters(unit))
    counters = yield request_selection(
        player.index, "Adrena-Brain: how many damage counters?",
        make_options(range(most, 0, -1), label=lambda n: f"{n} counter(s)"), source="Adrena-Brain",
    )
    if counters is None:
        return ActionResult.fail("no amount selected")

    if target is None:
        target = yield request_selection(
            player.index, "Adrena-Brain: move them to",
            make_options(opponent.all_creatures()), source="Adrena-Brain",
        )
    if target is None:
        return ActionResult.fail("no target selected")
    if opponent.find_creature(target.instance_id) is None:
        return ActionResult.fail("target is not an opponent's Pokémon")

    moved = actions.move_damage(engine, source, target, counters * unit)
    logger.info(f"[Ability] Adrena-Brain: moved {moved} damage from {source.card.display_name()} "
                f"to {target.card.display_name()}")
    yield from engine.check_knockout(opponent, target)
    return ActionResult.ok()


# ============================================================================
# FAIRY ZONE (Lillie's Clefairy ex) - passive
# ============================================================================

def fairy_zone_check(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> str:
    return "passive ability cannot be activated"


# ============================================================================
# REGISTRY
# ============================================================================

ABILITY_LOGIC: Dict[AbilityEffect, Dict[str, Any]] = {
    AbilityEffect.RESTART: {
        "check": restart_check,
        "effect": restart_effect,
    },
    AbilityEffect.MYSTERIOUS_TAIL: {
        "check": mysterious_tail_check,
        "effect": mysterious_tail_effect,
    },
    AbilityEffect.REFINEMENT: {
        "check": refinement_check,
        "effect": refinement_effect,
    },
    AbilityEffect.PSYCHIC_EMBRACE: {
        "check": psychic_embrace_check,
        "effect": psychic_embrace_effect,
    },
    AbilityEffect.ADRENA_BRAIN: {
        "check": adrena_brain_check,
        "effect": adrena_brain_effect,
    },
    AbilityEffect.FAIRY_ZONE: {
        "check": fairy_zone_check,
    },
}


# ============================================================================
# ABILITY SYSTEM
# ============================================================================

class AbilitySystem:
    """Validates activations and routes them through ABILITY_LOGIC."""

    def __init__(self, engine: "GameEngine"):
        self.engine = engine

    def ability_disabled_reason(self, player: PlayerState, creature: Optional[CreatureInstance],
                                effect: AbilityEffect) -> str:
        if creature is None:
            return "no creature selected"
        if player.find_creature(creature.instance_id) is None:
            return "creature is not in play"
        ability = creature.card.get_ability(effect)
        if ability is None:
            return f"{creature.card.display_name()} has no such ability"
        if ability.once_per_turn and creature.has_used_ability(effect):
            return "ability already used this turn"
        logic = ABILITY_LOGIC.get(effect)
        if logic is None:
            return "ability is not implemented"
        return logic["check"](self.engine, player, creature)

    def can_use_ability(self, player: PlayerState, creature: Optional[CreatureInstance],
                        effect: AbilityEffect) -> bool:
        return self.ability_disabled_reason(player, creature, effect) == ""

    def use_ability(self, player: PlayerState, creature: CreatureInstance, effect: AbilityEffect,
                    target: Optional[CreatureInstance] = None) -> Procedure:
        """
        Resolve an activated ability. The once-per-turn flag is set only on success.

        Args:
            player: Owner of the creature
            creature: Creature whose ability is used
            effect: Ability id
            target: Optional preselected target (Psychic Embrace, Adrena-Brain)
        """
        reason = self.ability_disabled_reason(player, creature, effect)
        if reason:
            return ActionResult.fail(reason)

        ability = creature.card.get_ability(effect)
        logger.info(f"[Ability] {creature.card.display_name()} uses {ability.name}")
        result = yield from run_effect(ABILITY_LOGIC[effect]["effect"](self.engine, player, creature, target))
        if result.success and ability.once_per_turn:
            creature.abilities_used.add(effect)
        return result
