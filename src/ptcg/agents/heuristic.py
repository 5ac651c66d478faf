"""
PTCG Rules Engine - Heuristic Agent

Fixed-priority turn script. Each step re-checks legality through the
engine's rule systems and is skipped when it does not apply:

 1. promote       - fill an empty Active Spot from the bench
 2. refill_hand   - Restart
 3. search_top    - Mysterious Tail
 4. bench_basics  - bench every Basic in hand
 5. evolve        - along the evolution priority chain
 6. refinement    - Refinement
 7. attach_energy - manual attachment to the Active
 8. accelerate    - Psychic Embrace onto the Active until its first attack is paid
 9. move_damage   - Adrena-Brain
10. attack        - strongest legal attack
11. end_turn

All choices inside effects are answered by AutoResolver (first options).
"""

from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence, Tuple

from ptcg.agents.base import PlayerAgent
from ptcg.models import AbilityEffect, ActionResult, EnergyCard, PlayerState, PokemonCard

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

DEFAULT_EVOLUTION_PRIORITY = [("Ralts", "Kirlia"), ("Kirlia", "Gardevoir")]

TurnStep = Tuple[str, ActionResult]


class HeuristicAgent(PlayerAgent):
    """
    Scripted AI.

    Example:
        >>> bot = HeuristicAgent(name="Bot")
        >>> bot.on_game_start(engine, 1)
        >>> bot.play_turn(engine)
    """

    STEPS = (
        "promote",
        "refill_hand",
        "search_top",
        "bench_basics",
        "evolve",
        "refinement",
        "attach_energy",
        "accelerate",
        "move_damage",
        "attack",
        "end_turn",
    )

    def __init__(self, name: str = "HeuristicAgent",
                 evolution_priority: Optional[Sequence[Tuple[str, str]]] = None):
        super().__init__(name)
        self.evolution_priority: List[Tuple[str, str]] = list(evolution_priority or DEFAULT_EVOLUTION_PRIORITY)
        self._turn: Optional[Iterator[TurnStep]] = None

    # ========================================================================
    # Driving
    # ========================================================================

    def play_turn(self, engine: "GameEngine") -> ActionResult:
        """
        Run the turn script to the end, or until another seat must decide.

        A suspended turn resumes where it stopped on the next call, once the
        pending decision has been resolved.
        """
        if self._turn is None:
            self._turn = self.iter_turn(engine)

        result = ActionResult.ok()
        for _, result in self._turn:
            if result.is_pending:
                return result
        self._turn = None
        return result

    def iter_turn(self, engine: "GameEngine") -> Iterator[TurnStep]:
        """Yield (step name, result) after every operation the script performs."""
        for step in self.STEPS:
            if not self._is_my_turn(engine):
                return
            for result in getattr(self, f"_step_{step}")(engine):
                yield step, result
                while engine.pending_decision is not None:
                    yield step, ActionResult.awaiting(engine.pending_decision)

    def _is_my_turn(self, engine: "GameEngine") -> bool:
        state = engine.state
        return not state.is_game_over() and state.current_player_index == self.player_index

    def _me(self, engine: "GameEngine") -> PlayerState:
        return engine.state.get_player(self.player_index)

    # ========================================================================
    # Steps
    # ========================================================================

    def _step_promote(self, engine: "GameEngine") -> Iterator[ActionResult]:
        me = self._me(engine)
        if me.active is None and me.bench:
            yield engine.promote_from_bench(self.player_index, 0)

    def _use_ability_everywhere(self, engine: "GameEngine", effect: AbilityEffect) -> Iterator[ActionResult]:
        for creature in self._me(engine).all_creatures():
            if engine.abilities.can_use_ability(self._me(engine), creature, effect):
                yield engine.use_ability(self.player_index, creature, effect)

    def _step_refill_hand(self, engine: "GameEngine") -> Iterator[ActionResult]:
        yield from self._use_ability_everywhere(engine, AbilityEffect.RESTART)

    def _step_search_top(self, engine: "GameEngine") -> Iterator[ActionResult]:
        yield from self._use_ability_everywhere(engine, AbilityEffect.MYSTERIOUS_TAIL)

    def _step_bench_basics(self, engine: "GameEngine") -> Iterator[ActionResult]:
        me = self._me(engine)
        while len(me.bench) < engine.config.max_bench_size and me.has_basic_in_hand():
            result = engine.play_basic_to_bench(self.player_index)
            yield result
            if not result.success:
                return
            me = self._me(engine)

    def _step_evolve(self, engine: "GameEngine") -> Iterator[ActionResult]:
        for from_name, to_name in self.evolution_priority:
            for creature in self._me(engine).all_creatures():
                if creature.card.name != from_name:
                    continue
                me = self._me(engine)
                card = next((c for c in me.hand
                             if isinstance(c, PokemonCard) and c.name == to_name
                             and engine.evolution.evolve_disabled_reason(me, creature, c) == ""), None)
                if card is not None:
                    yield engine.evolve(self.player_index, creature, card)

    def _step_refinement(self, engine: "GameEngine") -> Iterator[ActionResult]:
        yield from self._use_ability_everywhere(engine, AbilityEffect.REFINEMENT)

    def _step_attach_energy(self, engine: "GameEngine") -> Iterator[ActionResult]:
        me = self._me(engine)
        if me.active is None or me.energy_attached_this_turn:
            return
        if any(isinstance(c, EnergyCard) for c in me.hand):
            yield engine.attach_energy(self.player_index, me.active)

    def _step_accelerate(self, engine: "GameEngine") -> Iterator[ActionResult]:
        while True:
            me = self._me(engine)
            active = me.active
            if active is None or not active.card.attacks:
                return
            if engine.energy.count_total_energy(active) >= active.card.attacks[0].energy_cost:
                return
            if not engine.energy.can_psychic_embrace(me, active):
                return

            source = next((c for c in me.all_creatures()
                           if engine.abilities.can_use_ability(me, c, AbilityEffect.PSYCHIC_EMBRACE)), None)
            if source is None:
                return
            result = engine.use_ability(self.player_index, source, AbilityEffect.PSYCHIC_EMBRACE, target=active)
            yield result
            if not result.success:
                return

    def _step_move_damage(self, engine: "GameEngine") -> Iterator[ActionResult]:
        yield from self._use_ability_everywhere(engine, AbilityEffect.ADRENA_BRAIN)

    def _step_attack(self, engine: "GameEngine") -> Iterator[ActionResult]:
        me = self._me(engine)
        if me.active is None or engine.state.opponent_of(self.player_index).active is None:
            return
        legal = [i for i in range(len(me.active.card.attacks)) if engine.combat.can_attack(me, i)]
        if legal:
            best = max(legal, key=lambda i: me.active.card.attacks[i].base_damage)
            yield engine.attack(self.player_index, best)

    def _step_end_turn(self, engine: "GameEngine") -> Iterator[ActionResult]:
        yield engine.end_turn()
