"""
PTCG Rules Engine - Energy, Retreat & Tools (energy.py)

Manual energy attachment (once per turn), energy counting with the
Reversal Energy special case, retreat cost payment, Psychic Embrace
acceleration from the discard pile, and Pokémon Tool attachment.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ptcg import actions
from ptcg.events import EventType
from ptcg.models import (
    ActionResult,
    CreatureInstance,
    EnergyCard,
    EnergyEffect,
    PlayerState,
    PokemonType,
    StatusCondition,
    TrainerCard,
    TrainerEffect,
    TrainerType,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)


class EnergySystem:
    """Energy and retreat rules. Always reads the engine's live state."""

    def __init__(self, engine: "GameEngine"):
        self.engine = engine

    # ========================================================================
    # Counting
    # ========================================================================

    def count_energy(self, creature: CreatureInstance, energy_type: PokemonType) -> int:
        """
        Energy units of one type attached to a creature.

        Basic energy of the requested type counts its provided amount.
        Reversal Energy counts 2 while its owner has more Prize cards
        remaining than the opponent.
        """
        total = 0
        for energy in creature.attached_energies:
            if energy.is_basic and energy.provides_type == energy_type:
                total += energy.provides_amount
            elif energy.effect == EnergyEffect.REVERSAL and self._is_behind(creature.owner_index):
                total += 2
        return total

    @staticmethod
    def count_total_energy(creature: CreatureInstance) -> int:
        """Number of attached energy cards (what attack costs are checked against)."""
        return len(creature.attached_energies)

    def _is_behind(self, owner_index: int) -> bool:
        state = self.engine.state
        owner = state.get_player(owner_index)
        return len(owner.prizes) > len(state.opponent_of(owner_index).prizes)

    # ========================================================================
    # Manual attachment
    # ========================================================================

    def attach_energy_from_hand(self, player: PlayerState, target: Optional[CreatureInstance],
                                energy: Optional[EnergyCard] = None) -> ActionResult:
        """
        Attach an energy card from hand to one of the player's creatures.

        Args:
            player: Attaching player
            target: Creature receiving the energy
            energy: Specific energy card in hand; the first one found if omitted

        Returns:
            ActionResult; on success the once-per-turn flag is set
        """
        if player.energy_attached_this_turn:
            return ActionResult.fail("energy already attached this turn")
        if target is None:
            return ActionResult.fail("no target selected")
        if player.find_creature(target.instance_id) is None:
            return ActionResult.fail("target is not in play")

        if energy is None:
            energy = next((c for c in player.hand if isinstance(c, EnergyCard)), None)
            if energy is None:
                return ActionResult.fail("no energy card in hand")
        elif not isinstance(energy, EnergyCard):
            return ActionResult.fail("not an energy card")
        elif energy not in player.hand:
            return ActionResult.fail("energy not in hand")

        actions.take_card(player.hand, energy)
        actions.attach_energy_card(self.engine, target, energy)
        player.energy_attached_this_turn = True
        logger.info(f"[Energy] {player.name} attached {energy.display_name()} to {target.card.display_name()}")
        return ActionResult.ok()

    # ========================================================================
    # Retreat
    # ========================================================================

    def retreat_cost(self, creature: CreatureInstance) -> int:
        """Printed retreat cost, reduced by 1 for Basics while Beach Court is in play."""
        cost = creature.card.retreat_cost
        stadium = self.engine.state.stadium
        if stadium is not None and stadium.card.effect == TrainerEffect.BEACH_COURT and creature.card.is_basic:
            cost -= 1
        return max(0, cost)

    def retreat_disabled_reason(self, player: PlayerState) -> str:
        """Empty string when the player's Active may retreat."""
        active = player.active
        if active is None:
            return "no active creature"
        if not player.bench:
            return "no benched creature"
        if player.retreated_this_turn:
            return "already retreated this turn"
        if active.status == StatusCondition.PARALYSIS:
            return "paralyzed"
        if active.status == StatusCondition.SLEEP:
            return "asleep"
        if self.count_total_energy(active) < self.retreat_cost(active):
            return "insufficient energy"
        return ""

    def pay_retreat_cost(self, player: PlayerState, creature: CreatureInstance) -> ActionResult:
        """Discard energies from the front of the attachment list to cover the retreat cost."""
        cost = self.retreat_cost(creature)
        if self.count_total_energy(creature) < cost:
            return ActionResult.fail("insufficient energy")

        paid = creature.attached_energies[:cost]
        del creature.attached_energies[:cost]
        player.discard.extend(paid)
        if paid:
            self.engine.events.emit(EventType.ZONE_CHANGED, player.index, from_zone="attached",
                                    to_zone="discard", count=len(paid))
        return ActionResult.ok()

    def retreat(self, player: PlayerState, bench_index: int) -> ActionResult:
        """
        Pay the retreat cost and swap the Active with a benched creature.

        Args:
            player: Retreating player
            bench_index: Bench slot of the incoming creature

        Returns:
            ActionResult
        """
        reason = self.retreat_disabled_reason(player)
        if reason:
            return ActionResult.fail(reason)
        if not 0 <= bench_index < len(player.bench):
            return ActionResult.fail("invalid bench position")

        outgoing = player.active
        paid = self.pay_retreat_cost(player, outgoing)
        if not paid:
            return paid

        actions.switch_active(self.engine, player, bench_index)
        player.retreated_this_turn = True
        logger.info(f"[Retreat] {player.name}: {outgoing.card.display_name()} -> "
                    f"{player.active.card.display_name()}")
        return ActionResult.ok()

    # ========================================================================
    # Psychic Embrace (energy acceleration from discard)
    # ========================================================================

    def psychic_embrace_disabled_reason(self, player: PlayerState, target: Optional[CreatureInstance]) -> str:
        if target is None:
            return "no target selected"
        if player.find_creature(target.instance_id) is None:
            return "target is not in play"
        if target.card.type != PokemonType.PSYCHIC:
            return "target is not a Psychic Pokémon"
        if not any(actions.is_basic_psychic_energy(c) for c in player.discard):
            return "no Basic Psychic Energy in discard"
        if target.current_damage + self.engine.config.psychic_embrace_damage >= target.max_hp:
            return "target would be knocked out"
        return ""

    def can_psychic_embrace(self, player: PlayerState, target: Optional[CreatureInstance]) -> bool:
        return self.psychic_embrace_disabled_reason(player, target) == ""

    def psychic_embrace(self, player: PlayerState, target: CreatureInstance) -> ActionResult:
        """
        Attach the most recently discarded Basic Psychic Energy to a Psychic
        creature, then place 20 damage on it. Never knocks the target out.
        """
        reason = self.psychic_embrace_disabled_reason(player, target)
        if reason:
            return ActionResult.fail(reason)

        energy = next(c for c in reversed(player.discard) if actions.is_basic_psychic_energy(c))
        actions.take_card(player.discard, energy)
        actions.attach_energy_card(self.engine, target, energy)
        actions.apply_damage(self.engine, target, self.engine.config.psychic_embrace_damage)
        logger.info(f"[Psychic Embrace] {target.card.display_name()} now has "
                    f"{self.count_total_energy(target)} energy, {target.remaining_hp} HP left")
        return ActionResult.ok()

    # ========================================================================
    # Tools
    # ========================================================================

    def attach_tool(self, player: PlayerState, target: Optional[CreatureInstance],
                    tool: Optional[TrainerCard] = None) -> ActionResult:
        """Attach a Pokémon Tool from hand. One tool per creature."""
        if target is None:
            return ActionResult.fail("no target selected")
        if player.find_creature(target.instance_id) is None:
            return ActionResult.fail("target is not in play")
        if target.attached_tool is not None:
            return ActionResult.fail("already has a tool")

        if tool is None:
            tool = next((c for c in player.hand
                         if isinstance(c, TrainerCard) and c.trainer_type == TrainerType.TOOL), None)
            if tool is None:
                return ActionResult.fail("no tool in hand")
        elif not isinstance(tool, TrainerCard) or tool.trainer_type != TrainerType.TOOL:
            return ActionResult.fail("not a tool")
        elif tool not in player.hand:
            return ActionResult.fail("tool not in hand")

        actions.take_card(player.hand, tool)
        target.attached_tool = tool
        self.engine.events.emit(EventType.TOOL_ATTACHED, player.index,
                                instance_id=target.instance_id, card_id=tool.id)
        logger.info(f"[Tool] {tool.name} attached to {target.card.display_name()} (max HP {target.max_hp})")
        return ActionResult.ok()
