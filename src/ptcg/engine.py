"""
PTCG Rules Engine - Turn Controller (engine.py)
The "Referee" - owns the game state and every rule component, validates each
player operation, and runs it to completion or to the next decision point.

One GameEngine per game. Components (energy, evolution, combat, abilities,
trainers) receive the engine as their context and always read
``engine.state``; nothing is global.
"""

import logging
import random
from typing import Any, Iterable, List, Optional, Sequence, Union

from ptcg import actions
from ptcg.abilities import AbilitySystem
from ptcg.combat import CombatSystem
from ptcg.config import EngineConfig
from ptcg.decisions import (
    DecisionManager,
    DecisionResolver,
    InteractiveResolver,
    Procedure,
    make_options,
    request_selection,
    run_effect,
)
from ptcg.energy import EnergySystem
from ptcg.errors import DeckOutError
from ptcg.events import EventBus, EventType
from ptcg.evolution import EvolutionSystem
from ptcg.models import (
    AbilityEffect,
    ActionResult,
    Card,
    CreatureInstance,
    DecisionRequest,
    EnergyCard,
    GamePhase,
    GameState,
    PlayerState,
    PokemonCard,
    StatusCondition,
    TrainerCard,
    WinReason,
)
from ptcg.trainers import TrainerSystem

logger = logging.getLogger(__name__)

DeckSpec = Sequence[Union[str, Card]]


class GameEngine:
    """
    Runs one two-player game.

    Core Responsibilities:
    1. start_game() - shuffle, deal, mulligans, opening Actives, prizes
    2. start_turn() / end_turn() - turn structure and between-turn status
    3. Player operations - attach, evolve, retreat, attack, abilities, trainers
    4. Knockouts and win detection after every operation
    5. Decision points - suspend for humans, resume or roll back
    """

    def __init__(
        self,
        catalog=None,
        config: Optional[EngineConfig] = None,
        random_seed: Optional[int] = None,
        player_names: Sequence[str] = ("Player 1", "Player 2"),
        human_players: Iterable[int] = (),
    ):
        """
        Args:
            catalog: CardCatalog used to resolve deck ids and evolution chains
            config: Rule constants (defaults to EngineConfig())
            random_seed: Seed for shuffles and coin flips (deterministic replay)
            player_names: Display names for seats 0 and 1
            human_players: Seat indices whose decisions suspend for external input
        """
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.random_seed = random_seed
        self.rng = random.Random(random_seed)

        self.events = EventBus()
        self.decisions = DecisionManager(self.events)

        humans = set(human_players)
        self.state = GameState(players=[
            PlayerState(index=i, name=player_names[i], is_ai=i not in humans) for i in range(2)
        ])
        for index in humans:
            self.decisions.set_resolver(index, InteractiveResolver())

        self.energy = EnergySystem(self)
        self.evolution = EvolutionSystem(self)
        self.combat = CombatSystem(self)
        self.abilities = AbilitySystem(self)
        self.trainers = TrainerSystem(self)

    # ========================================================================
    # 1. SETUP
    # ========================================================================

    def start_game(self, deck1: DeckSpec, deck2: DeckSpec) -> ActionResult:
        """
        Set up both players and start the first turn.

        Args:
            deck1: Seat 0's deck, as card ids or card definitions
            deck2: Seat 1's deck

        Returns:
            ActionResult; failure means setup was aborted (win reason setup_failed)

        Raises:
            CatalogIntegrityError: If a card id is unknown
        """
        state = self.state
        for player, deck in zip(state.players, (deck1, deck2)):
            player.deck = self._resolve_deck(deck)
            player.hand, player.discard, player.lost_zone, player.prizes = [], [], [], []
            player.active, player.bench = None, []
            player.mulligans_given = 0
            player.reset_turn_flags()
            actions.shuffle_deck(self, player)

        state.phase = GamePhase.SETUP
        state.stadium = None
        state.winner_index, state.win_reason = -1, None

        try:
            for player in state.players:
                actions.draw_cards(self, player, self.config.hand_size)
            for player in state.players:
                if not self._resolve_mulligans(player):
                    return self._abort_setup(f"{player.name} exceeded {self.config.max_mulligans} mulligans")
            for player in state.players:
                self._place_opening_active(player)
                player.prizes = player.deck[:self.config.prize_count]
                del player.deck[:self.config.prize_count]
        except DeckOutError as e:
            return self._abort_setup(str(e))

        state.first_player_index = self.rng.randrange(2)
        state.current_player_index = state.first_player_index
        state.turn_count = 1
        logger.info(f"[Setup] {state.current_player().name} goes first")

        self.start_turn()
        return ActionResult.ok()

    def _resolve_deck(self, deck: DeckSpec) -> List[Card]:
        cards = []
        for entry in deck:
            if isinstance(entry, str):
                if self.catalog is None:
                    raise ValueError("Decks given as card ids need a catalog")
                cards.append(self.catalog.lookup(entry))
            else:
                cards.append(entry)
        return cards

    def _resolve_mulligans(self, player: PlayerState) -> bool:
        """Redraw until the hand holds a Basic. False if the mulligan limit is hit."""
        opponent = self.state.opponent_of(player.index)
        while not player.has_basic_in_hand():
            if player.mulligans_given >= self.config.max_mulligans:
                return False
            player.mulligans_given += 1
            logger.info(f"[Mulligan] {player.name} has no Basic (mulligan #{player.mulligans_given})")

            actions.shuffle_hand_into_deck(self, player)
            actions.draw_cards(self, player, self.config.hand_size)
            if opponent.deck:
                actions.draw_cards(self, opponent, 1)
        return True

    def _abort_setup(self, reason: str) -> ActionResult:
        self.state.win_reason = WinReason.SETUP_FAILED
        logger.warning(f"[Setup] aborted: {reason}")
        self.events.emit(EventType.GAME_OVER, None, winner=-1, reason=WinReason.SETUP_FAILED.value)
        return ActionResult.fail(f"setup failed: {reason}")

    def choose_opening_active(self, player: PlayerState) -> Optional[PokemonCard]:
        """Opening Basic by the configured priority list, else the first Basic in hand."""
        basics = [c for c in player.hand if isinstance(c, PokemonCard) and c.is_basic]
        for card_id in self.config.opening_priority:
            for card in basics:
                if card.id == card_id:
                    return card
        return basics[0] if basics else None

    def _place_opening_active(self, player: PlayerState) -> None:
        card = self.choose_opening_active(player)
        actions.take_card(player.hand, card)
        actions.put_into_play(self, player, card, as_active=True)
        logger.info(f"[Setup] {player.name} opens with {card.display_name()}")

    # ========================================================================
    # 2. TURN STRUCTURE
    # ========================================================================

    def start_turn(self) -> None:
        """Reset the current player's turn state, run the draw phase and enter the main phase."""
        state = self.state
        player = state.current_player()
        player.reset_turn_flags()
        for creature in player.all_creatures():
            creature.on_new_turn()

        self._set_phase(GamePhase.DRAW)
        self.events.emit(EventType.TURN_STARTED, player.index, turn=state.turn_count)
        logger.info(f"=== Turn {state.turn_count} - {player.name} ===")

        if not state.is_first_players_first_turn():
            if not self.draw(player, 1):
                return
        self._set_phase(GamePhase.MAIN)

    def end_turn(self) -> ActionResult:
        """Run between-turn checks, pass control and start the next turn."""
        reason = self._base_rejection()
        if not reason and self.state.phase != GamePhase.MAIN:
            reason = "not in main phase"
        if reason:
            return self._reject(reason)
        return self._execute("end turn", self._end_turn_procedure())

    def _end_turn_procedure(self) -> Procedure:
        state = self.state
        player = state.current_player()
        self._set_phase(GamePhase.END)

        yield from self._between_turns(player)
        if state.is_game_over():
            return ActionResult.ok("game over")

        self.events.emit(EventType.TURN_ENDED, player.index, turn=state.turn_count)
        state.current_player_index = 1 - state.current_player_index
        if state.current_player_index == state.first_player_index:
            state.turn_count += 1
        self.start_turn()
        return ActionResult.ok()

    def _between_turns(self, player: PlayerState) -> Procedure:
        """Poison, Burn, Sleep and Paralysis on the ending player's Active, then a knockout check."""
        active = player.active
        if active is None:
            return
        name = active.card.display_name()

        if active.status == StatusCondition.POISON:
            actions.apply_damage(self, active, self.config.poison_damage)
            logger.info(f"[Status] {name} took {self.config.poison_damage} poison damage")

        if active.status == StatusCondition.BURN and actions.coin_flip(self):
            actions.apply_damage(self, active, self.config.burn_damage)
            logger.info(f"[Status] {name} took {self.config.burn_damage} burn damage")

        if active.status == StatusCondition.SLEEP:
            if actions.coin_flip(self):
                actions.clear_status(self, active)
                logger.info(f"[Status] {name} woke up")
            else:
                logger.info(f"[Status] {name} is still asleep")

        if active.status == StatusCondition.PARALYSIS:
            active.paralysis_turns -= 1
            if active.paralysis_turns <= 0:
                actions.clear_status(self, active)
                logger.info(f"[Status] {name} is no longer paralyzed")

        yield from self.check_knockout(player, active)

    def _set_phase(self, phase: GamePhase) -> None:
        self.state.phase = phase
        self.events.emit(EventType.PHASE_CHANGED, self.state.current_player_index, phase=phase.value)

    # ========================================================================
    # 3. DRAW, KNOCKOUT & WIN DETECTION
    # ========================================================================

    def draw(self, player: PlayerState, amount: int = 1) -> bool:
        """
        Draw for a rule or an effect. A deck that cannot cover the whole draw
        loses the game and nothing is drawn.

        Returns:
            True if the cards were drawn
        """
        try:
            actions.draw_cards(self, player, amount)
        except DeckOutError as e:
            logger.info(f"[Draw] {e}")
            self.set_winner(1 - player.index, WinReason.DECK_OUT)
            return False
        return True

    def set_winner(self, player_index: int, reason: WinReason) -> None:
        """Record the result. The first result recorded stands."""
        state = self.state
        if state.is_game_over():
            return
        state.winner_index = player_index
        state.win_reason = reason
        logger.info(f"=== {state.get_player(player_index).name} WINS ({reason.value}) ===")
        self.events.emit(EventType.GAME_OVER, player_index, winner=player_index, reason=reason.value)

    def check_knockout(self, owner: PlayerState, creature: Optional[CreatureInstance]) -> Procedure:
        """Knock the creature out if its damage reached its HP and it is still in play."""
        if creature is None or not creature.is_knocked_out:
            return
        if owner.find_creature(creature.instance_id) is None:
            return
        yield from self._knockout(owner, creature)

    def _sweep_knockouts(self) -> Procedure:
        """Knock out every creature left at or past its HP, current player first."""
        state = self.state
        for index in (state.current_player_index, 1 - state.current_player_index):
            owner = state.get_player(index)
            for creature in list(owner.all_creatures()):
                if state.is_game_over():
                    return
                yield from self.check_knockout(owner, creature)

    def knockout_creature(self, owner_index: int, creature: CreatureInstance) -> ActionResult:
        """Knock a creature out regardless of its damage (rule hook for effects and tests)."""
        reason = self._base_rejection()
        if reason:
            return self._reject(reason)
        owner = self.state.get_player(owner_index)
        live = owner.find_creature(creature.instance_id)
        if live is None:
            return self._reject("creature is not in play")
        return self._execute("knockout", self._knockout(owner, live))

    def _knockout(self, owner: PlayerState, creature: CreatureInstance) -> Procedure:
        state = self.state
        taker = state.opponent_of(owner.index)
        was_active = owner.is_active(creature)

        logger.info(f"[Knockout] {owner.name}'s {creature.card.display_name()} is knocked out")
        actions.discard_creature(self, owner, creature)
        self.events.emit(EventType.KNOCKOUT, owner.index, instance_id=creature.instance_id,
                         card_id=creature.card.id, was_active=was_active)

        prizes = min(2 if creature.card.is_ex else 1, len(taker.prizes))
        for _ in range(prizes):
            taker.hand.append(taker.prizes.pop())
        if prizes:
            self.events.emit(EventType.PRIZE_TAKEN, taker.index, count=prizes, remaining=len(taker.prizes))
            logger.info(f"[Knockout] {taker.name} takes {prizes} prize(s), {len(taker.prizes)} left")

        if not taker.prizes:
            self.set_winner(taker.index, WinReason.PRIZE_ZERO)
            return
        if was_active and not owner.bench:
            self.set_winner(taker.index, WinReason.NO_CREATURES)
            return
        if was_active:
            yield from self._promote_after_knockout(owner)

    def _promote_after_knockout(self, player: PlayerState) -> Procedure:
        choice = yield request_selection(
            player.index, "Choose a new Active Pokémon", make_options(player.bench),
            source="Knockout", cancellable=False,
        )
        index = player.bench_index_of(choice) if choice is not None else 0
        actions.switch_active(self, player, max(index, 0))
        logger.info(f"[Knockout] {player.name} promotes {player.active.card.display_name()}")

    # ========================================================================
    # 4. PLAYER OPERATIONS
    # ========================================================================

    def play_basic_to_bench(self, player_index: int, card: Optional[PokemonCard] = None) -> ActionResult:
        """Put a Basic from hand onto the bench (the first Basic in hand if none given)."""
        player, reason = self._acting_player(player_index)
        if reason:
            return self._reject(reason)
        if card is None:
            card = next((c for c in player.hand if isinstance(c, PokemonCard) and c.is_basic), None)
            if card is None:
                return self._reject("no Basic Pokémon in hand")
        if not isinstance(card, PokemonCard) or not card.is_basic:
            return self._reject("not a Basic Pokémon")
        if card not in player.hand:
            return self._reject("card not in hand")
        if len(player.bench) >= self.config.max_bench_size:
            return self._reject("bench is full")

        actions.take_card(player.hand, card)
        actions.put_into_play(self, player, card)
        logger.info(f"[Bench] {player.name} benches {card.display_name()}")
        return ActionResult.ok()

    def promote_from_bench(self, player_index: int, bench_index: int = 0) -> ActionResult:
        """Fill an empty Active Spot from the bench."""
        reason = self._base_rejection()
        if reason:
            return self._reject(reason)
        player = self.state.get_player(player_index)
        if player.active is not None:
            return self._reject("active spot is occupied")
        if not player.bench:
            return self._reject("no benched creature")
        if not 0 <= bench_index < len(player.bench):
            return self._reject("invalid bench position")
        actions.switch_active(self, player, bench_index)
        return ActionResult.ok()

    def attach_energy(self, player_index: int, target: Optional[CreatureInstance],
                      energy: Optional[EnergyCard] = None) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if reason:
            return self._reject(reason)
        return self._logged(self.energy.attach_energy_from_hand(player, self._live(target), energy))

    def attach_tool(self, player_index: int, target: Optional[CreatureInstance],
                    tool: Optional[TrainerCard] = None) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if reason:
            return self._reject(reason)
        return self._logged(self.energy.attach_tool(player, self._live(target), tool))

    def evolve(self, player_index: int, target: Optional[CreatureInstance], card: PokemonCard) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if reason:
            return self._reject(reason)
        result = self.evolution.evolve(player, self._live(target), card)
        if not result.success:
            return self._logged(result)
        # Evolving off a Basic drops Basic-only HP bonuses
        return self._execute("evolve", run_effect(result))

    def retreat(self, player_index: int, bench_index: int) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if reason:
            return self._reject(reason)
        return self._logged(self.energy.retreat(player, bench_index))

    def attack(self, player_index: int, attack_index: int = 0) -> ActionResult:
        """Attack with the Active. The turn does not end automatically."""
        player, reason = self._acting_player(player_index)
        if not reason:
            reason = self.combat.attack_disabled_reason(player, attack_index)
        if not reason and self.state.opponent_of(player_index).active is None:
            reason = "opponent has no active creature"
        if reason:
            return self._reject(reason)
        return self._execute("attack", self.combat.perform_attack(player, attack_index))

    def use_ability(self, player_index: int, creature: Optional[CreatureInstance], effect: AbilityEffect,
                    target: Optional[CreatureInstance] = None) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if not reason:
            reason = self.abilities.ability_disabled_reason(player, self._live(creature), effect)
        if reason:
            return self._reject(reason)
        return self._execute(f"ability {effect.value}",
                             self.abilities.use_ability(player, self._live(creature), effect, self._live(target)))

    def play_trainer(self, player_index: int, card: TrainerCard) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if not reason:
            reason = self.trainers.trainer_disabled_reason(player, card)
        if reason:
            return self._reject(reason)
        return self._execute(f"play {card.name}", self.trainers.play_trainer(player, card))

    def use_stadium(self, player_index: int) -> ActionResult:
        player, reason = self._acting_player(player_index)
        if not reason:
            reason = self.trainers.stadium_disabled_reason(player)
        if reason:
            return self._reject(reason)
        return self._execute("stadium", self.trainers.use_stadium(player))

    # ========================================================================
    # 5. DECISIONS
    # ========================================================================

    @property
    def pending_decision(self) -> Optional[DecisionRequest]:
        return self.decisions.pending

    def set_resolver(self, player_index: int, resolver: DecisionResolver) -> None:
        self.decisions.set_resolver(player_index, resolver)
        self.state.get_player(player_index).is_ai = not resolver.interactive

    def resolve_decision(self, answer: Any) -> ActionResult:
        """
        Answer the pending request and continue the suspended operation.

        Args:
            answer: Option index (select), list of indices (multi-select) or bool (confirm)

        Raises:
            DecisionError: If nothing is pending or the answer does not fit the request
        """
        return self.decisions.resolve(answer)

    def cancel_decision(self) -> ActionResult:
        """Abort the suspended operation and restore the state from before it started."""
        return self.decisions.cancel()

    def _execute(self, name: str, procedure: Procedure) -> ActionResult:
        snapshot = self.state.clone() if self.decisions.has_interactive() else None
        rng_state = self.rng.getstate() if snapshot is not None else None
        result = self.decisions.start(name, self._settle(procedure), snapshot,
                                      lambda s: self._restore(s, rng_state))
        if not result.success and not result.is_pending:
            logger.debug(f"[Engine] {name} failed: {result.reason}")
        return result

    def _settle(self, procedure: Procedure) -> Procedure:
        """Run an operation, then remove anything it left knocked out."""
        result = yield from run_effect(procedure)
        if result.success:
            yield from self._sweep_knockouts()
        return result

    def _restore(self, snapshot: GameState, rng_state: Any) -> None:
        """Swap the snapshot back in and rewind the RNG so replays stay in step."""
        self.state = snapshot
        self.rng.setstate(rng_state)
        self.events.emit(EventType.STATE_RESTORED, None)

    # ========================================================================
    # 6. HELPERS
    # ========================================================================

    def _base_rejection(self) -> str:
        if self.state.is_game_over():
            return "game over"
        if self.decisions.pending is not None:
            return "awaiting decision"
        return ""

    def _acting_player(self, player_index: int):
        """The player if they may act in the main phase now, plus a rejection reason."""
        reason = self._base_rejection()
        if not reason and self.state.phase != GamePhase.MAIN:
            reason = "not in main phase"
        if not reason and player_index != self.state.current_player_index:
            reason = "not your turn"
        return self.state.get_player(player_index), reason

    def _live(self, creature: Optional[CreatureInstance]) -> Optional[CreatureInstance]:
        """Map a possibly stale creature reference (e.g. from before a rollback) onto the live state."""
        if creature is None:
            return None
        return self.state.find_creature(creature.instance_id) or creature

    @staticmethod
    def _reject(reason: str) -> ActionResult:
        logger.debug(f"[Engine] rejected: {reason}")
        return ActionResult.fail(reason)

    @staticmethod
    def _logged(result: ActionResult) -> ActionResult:
        if not result.success:
            logger.debug(f"[Engine] rejected: {result.reason}")
        return result
