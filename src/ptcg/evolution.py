"""
PTCG Rules Engine - Evolution (evolution.py)

Normal evolution (Basic -> Stage 1 -> Stage 2) and the Rare Candy fast
track (Basic -> Stage 2). Evolving replaces the creature instance in place:
damage, energies, tool and time in play carry over, status is cleared and
the previous card is kept underneath. Once-per-turn ability usage carries
over too, so evolving does not refresh an ability already used this turn.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ptcg import actions
from ptcg.events import EventType
from ptcg.models import (
    ActionResult,
    CreatureInstance,
    PlayerState,
    PokemonCard,
    Stage,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


class EvolutionSystem:

    def __init__(self, engine: "GameEngine"):
        self.engine = engine

    # ========================================================================
    # Legality
    # ========================================================================

    @staticmethod
    def can_evolve(target: Optional[CreatureInstance], card: Optional[PokemonCard]) -> bool:
        """
        Structural check for a normal evolution: the card is a Stage 1/2 that
        names the target, and the target has been in play since an earlier turn.
        """
        if target is None or card is None:
            return False
        if card.stage not in (Stage.STAGE_1, Stage.STAGE_2):
            return False
        if card.evolves_from != target.card.name:
            return False
        return target.turns_in_play > 0

    def can_evolve_fast_track(self, target: Optional[CreatureInstance], card: Optional[PokemonCard]) -> bool:
        """
        Basic -> Stage 2 skipping Stage 1. When the catalog knows the Stage 1
        named by the Stage 2, that Stage 1 must evolve from the target.
        """
        if target is None or card is None:
            return False
        if not target.card.is_basic or card.stage != Stage.STAGE_2:
            return False
        if target.was_played_this_turn or not card.evolves_from:
            return False

        catalog = self.engine.catalog
        if catalog is not None:
            middle = catalog.find_by_name(card.evolves_from, stage=Stage.STAGE_1)
            if middle is not None and middle.evolves_from != target.card.name:
                return False
        return True

    def evolve_disabled_reason(self, player: PlayerState, target: Optional[CreatureInstance],
                               card: Optional[PokemonCard], via_fast_track: bool = False) -> str:
        """Empty string when the evolution is legal right now."""
        if target is None:
            return "no target selected"
        if card is None or not isinstance(card, PokemonCard):
            return "not a Pokémon card"
        if player.find_creature(target.instance_id) is None:
            return "target is not in play"
        if card not in player.hand:
            return "evolution card not in hand"
        if self.engine.state.turn_count <= 1:
            return "cannot evolve during a player's first turn"
        if target.evolved_this_turn:
            return "already evolved this turn"

        if via_fast_track:
            if not self.can_evolve_fast_track(target, card):
                return f"{card.display_name()} cannot fast-track from {target.card.display_name()}"
        elif not self.can_evolve(target, card):
            if target.turns_in_play <= 0:
                return "creature entered play this turn"
            return f"{card.display_name()} does not evolve from {target.card.display_name()}"
        return ""

    # ========================================================================
    # Perform
    # ========================================================================

    def evolve(self, player: PlayerState, target: CreatureInstance, card: PokemonCard,
               via_fast_track: bool = False) -> ActionResult:
        """
        Evolve ``target`` into ``card`` (taken from the player's hand).

        Args:
            player: Owner of the target
            target: Creature in play being evolved
            card: Evolution card in hand
            via_fast_track: Rare Candy path (Basic straight to Stage 2)

        Returns:
            ActionResult
        """
        reason = self.evolve_disabled_reason(player, target, card, via_fast_track)
        if reason:
            return ActionResult.fail(reason)

        actions.take_card(player.hand, card)
        evolved = CreatureInstance(
            card=card,
            owner_index=target.owner_index,
            current_damage=target.current_damage,
            turns_in_play=target.turns_in_play,
            was_played_this_turn=False,
            evolved_this_turn=True,
            attached_energies=list(target.attached_energies),
            attached_tool=target.attached_tool,
            previous_stages=list(target.previous_stages) + [target.card],
            abilities_used=set(target.abilities_used),
        )

        if player.is_active(target):
            player.active = evolved
        else:
            player.bench[player.bench_index_of(target)] = evolved

        self.engine.events.emit(EventType.EVOLVED, player.index, instance_id=evolved.instance_id,
                                previous_instance_id=target.instance_id, card_id=card.id)
        logger.info(f"[Evolve] {player.name}: {target.card.display_name()} -> {card.display_name()}"
                    f"{' (fast track)' if via_fast_track else ''}")
        return ActionResult.ok()
