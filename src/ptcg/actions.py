"""
PTCG Rules Engine - Action Primitives (actions.py)
Atomic state-modification functions used by the engine and its rule systems.

These are the "vocabulary" of the game: drawing, shuffling, moving cards
between zones, placing damage, setting status. Each primitive mutates the
engine's current state in place and publishes the matching event. None of
them check rule legality; callers do that first.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from ptcg.errors import DeckOutError
from ptcg.events import EventType
from ptcg.models import (
    Card,
    CreatureInstance,
    EnergyCard,
    PlayerState,
    PokemonCard,
    PokemonType,
    StatusCondition,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


# ============================================================================
# 1. DECK MANIPULATION
# ============================================================================

def draw_cards(engine: "GameEngine", player: PlayerState, amount: int = 1) -> List[Card]:
    """
    Draw cards from the top of the deck into the hand.

    The draw is all-or-nothing: if the deck holds fewer than ``amount``
    cards nothing is drawn.

    Args:
        engine: Game engine
        player: Player drawing
        amount: Number of cards to draw

    Returns:
        The drawn cards

    Raises:
        DeckOutError: If the deck has insufficient cards
    """
    if amount <= 0:
        return []
    if len(player.deck) < amount:
        raise DeckOutError(player.index, amount, len(player.deck))

    drawn = player.deck[:amount]
    del player.deck[:amount]
    player.hand.extend(drawn)
    engine.events.emit(EventType.ZONE_CHANGED, player.index,
                       from_zone="deck", to_zone="hand", count=amount)
    return drawn


def shuffle_deck(engine: "GameEngine", player: PlayerState) -> None:
    """Shuffle in place using the engine's seeded RNG."""
    engine.rng.shuffle(player.deck)
    engine.events.emit(EventType.ZONE_CHANGED, player.index,
                       from_zone="deck", to_zone="deck", shuffled=True)


def shuffle_hand_into_deck(engine: "GameEngine", player: PlayerState) -> int:
    """Put the whole hand into the deck and shuffle. Returns how many cards moved."""
    count = len(player.hand)
    player.deck.extend(player.hand)
    player.hand.clear()
    shuffle_deck(engine, player)
    return count


def coin_flip(engine: "GameEngine") -> bool:
    """Flip a coin. True = heads."""
    heads = engine.rng.random() < 0.5
    engine.events.emit(EventType.COIN_FLIPPED, None, heads=heads)
    return heads


# ============================================================================
# 2. ZONE MOVEMENT
# ============================================================================

def take_card(zone: List[Card], card: Card) -> Card:
    """
    Remove a specific card object from a zone.

    Identity is preferred over equality so that, with duplicates in the
    zone, the exact copy a decision pointed at is the one removed.

    Raises:
        ValueError: If the card is not in the zone
    """
    for i, candidate in enumerate(zone):
        if candidate is card:
            return zone.pop(i)
    zone.remove(card)
    return card


def move_card(engine: "GameEngine", player: PlayerState, card: Card,
              from_zone: str, to_zone: str) -> None:
    """
    Move one card between two of a player's card zones.

    Args:
        engine: Game engine
        player: Owner of both zones
        card: Card object to move
        from_zone: Attribute name of the source zone ("hand", "deck", ...)
        to_zone: Attribute name of the destination zone
    """
    take_card(getattr(player, from_zone), card)
    getattr(player, to_zone).append(card)
    engine.events.emit(EventType.ZONE_CHANGED, player.index,
                       from_zone=from_zone, to_zone=to_zone, card_id=card.id)


def discard_creature(engine: "GameEngine", player: PlayerState, creature: CreatureInstance) -> None:
    """
    Remove a creature from play and put every card it is made of
    (stages, energies, tool) into its owner's discard pile.
    """
    if player.is_active(creature):
        player.active = None
    else:
        index = player.bench_index_of(creature)
        if index >= 0:
            player.bench.pop(index)

    player.discard.extend(creature.all_cards())
    engine.events.emit(EventType.ZONE_CHANGED, player.index, from_zone="board", to_zone="discard",
                       card_id=creature.card.id, instance_id=creature.instance_id)


def put_into_play(engine: "GameEngine", player: PlayerState, card: PokemonCard,
                  as_active: bool = False) -> Optional[CreatureInstance]:
    """
    Create a creature instance for a Basic card already removed from its zone.

    Args:
        engine: Game engine
        player: Owner
        card: Basic Pokémon card
        as_active: Place in the Active Spot instead of the bench

    Returns:
        The new instance, or None if the bench was full
    """
    if as_active:
        if player.active is not None:
            return None
    elif len(player.bench) >= engine.config.max_bench_size:
        return None

    creature = CreatureInstance(card=card, owner_index=player.index)
    if as_active:
        player.active = creature
    else:
        player.bench.append(creature)

    engine.events.emit(EventType.ZONE_CHANGED, player.index, to_zone="active" if as_active else "bench",
                       card_id=card.id, instance_id=creature.instance_id)
    return creature


def switch_active(engine: "GameEngine", player: PlayerState, bench_index: int,
                  old_active_to_front: bool = False) -> CreatureInstance:
    """
    Move a benched creature into the Active Spot.

    The previous Active takes the vacated bench slot, or goes to the front
    of the bench when ``old_active_to_front`` is set (gust effects).
    The creature leaving the Active Spot loses its status condition.

    Returns:
        The new Active
    """
    incoming = player.bench.pop(bench_index)
    outgoing = player.active
    if outgoing is not None:
        outgoing.clear_status()
        player.bench.insert(0 if old_active_to_front else bench_index, outgoing)
    player.active = incoming

    engine.events.emit(EventType.ACTIVE_CHANGED, player.index, instance_id=incoming.instance_id,
                       previous=outgoing.instance_id if outgoing else None)
    return incoming


def attach_energy_card(engine: "GameEngine", creature: CreatureInstance, energy: EnergyCard) -> None:
    creature.attached_energies.append(energy)
    engine.events.emit(EventType.ENERGY_ATTACHED, creature.owner_index,
                       instance_id=creature.instance_id, card_id=energy.id)


# ============================================================================
# 3. DAMAGE & STATUS
# ============================================================================

def apply_damage(engine: "GameEngine", target: CreatureInstance, amount: int) -> int:
    """
    Place damage on a creature. Negative amounts are treated as zero.

    Knockouts are not processed here; the caller runs the knockout check.

    Returns:
        Damage actually placed
    """
    amount = max(0, amount)
    if amount == 0:
        return 0
    target.current_damage += amount
    logger.debug(f"[Damage] {target.card.display_name()} takes {amount} "
                 f"({target.remaining_hp}/{target.max_hp} HP left)")
    engine.events.emit(EventType.DAMAGE_CHANGED, target.owner_index,
                       instance_id=target.instance_id, amount=amount, total=target.current_damage)
    return amount


def move_damage(engine: "GameEngine", source: CreatureInstance, target: CreatureInstance, amount: int) -> int:
    """Move damage from one creature to another, never more than the source carries."""
    amount = max(0, min(amount, source.current_damage))
    source.current_damage -= amount
    engine.events.emit(EventType.DAMAGE_CHANGED, source.owner_index,
                       instance_id=source.instance_id, amount=-amount, total=source.current_damage)
    apply_damage(engine, target, amount)
    return amount


def set_status(engine: "GameEngine", target: CreatureInstance, status: StatusCondition) -> None:
    """Replace the creature's status condition (only one at a time)."""
    target.status = status
    target.paralysis_turns = engine.config.paralysis_turns if status == StatusCondition.PARALYSIS else 0
    engine.events.emit(EventType.STATUS_CHANGED, target.owner_index,
                       instance_id=target.instance_id, status=status.value)


def clear_status(engine: "GameEngine", target: CreatureInstance) -> None:
    if target.status == StatusCondition.NONE:
        return
    target.clear_status()
    engine.events.emit(EventType.STATUS_CHANGED, target.owner_index,
                       instance_id=target.instance_id, status=StatusCondition.NONE.value)


# ============================================================================
# 4. QUERIES
# ============================================================================

def total_bench_count(engine: "GameEngine") -> int:
    """Benched creatures across both players."""
    return sum(len(p.bench) for p in engine.state.players)


def is_basic_psychic_energy(card: Card) -> bool:
    return isinstance(card, EnergyCard) and card.is_basic and card.provides_type == PokemonType.PSYCHIC
