"""
PTCG Rules Engine - Trainer Logic (trainers.py)

Supporters, Items, Tools and Stadiums. Every trainer effect is registered in
TRAINER_LOGIC under its TrainerEffect id:

    TrainerEffect.NEST_BALL: {
        "check": nest_ball_check,     # (engine, player, others) -> reason ("" = playable)
        "effect": nest_ball_effect,   # (engine, player, card) -> ActionResult, or a generator
    }

``others`` is the hand without the card being played, so costs like
"discard 2 other cards" are checked against what will actually be left.

Effects gather every decision first and only then move cards, so a
cancelled decision never leaves a half-resolved card behind.
Activated Stadium effects live in STADIUM_LOGIC.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ptcg import actions
from ptcg.decisions import (
    Procedure,
    make_options,
    request_multi_selection,
    request_selection,
    run_effect,
)
from ptcg.events import EventType
from ptcg.models import (
    ActionResult,
    Card,
    CreatureInstance,
    EnergyCard,
    PlayerState,
    PokemonCard,
    StadiumInPlay,
    TrainerCard,
    TrainerEffect,
    TrainerType,
)

if TYPE_CHECKING:
    from ptcg.engine import GameEngine

logger = logging.getLogger(__name__)

LEVEL_BALL_MAX_HP = 90


def hand_without(player: PlayerState, card: Card) -> List[Card]:
    """The player's hand minus one copy (this exact object) of ``card``."""
    others = list(player.hand)
    actions.take_card(others, card)
    return others


def _is_item(card: Card) -> bool:
    return isinstance(card, TrainerCard) and card.trainer_type == TrainerType.ITEM


def _is_tool(card: Card) -> bool:
    return isinstance(card, TrainerCard) and card.trainer_type == TrainerType.TOOL


def _is_basic_pokemon(card: Card) -> bool:
    return isinstance(card, PokemonCard) and card.is_basic


def _gust(engine: "GameEngine", opponent: PlayerState, target: CreatureInstance) -> None:
    """Switch a benched opponent creature into the Active Spot; the old Active goes to the front of the bench."""
    index = opponent.bench_index_of(target)
    actions.switch_active(engine, opponent, index, old_active_to_front=True)
    logger.info(f"[Trainer] {target.card.display_name()} was pulled into the Active Spot")


# ============================================================================
# 1. SUPPORTERS
# ============================================================================

def research_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    return ""


def research_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> ActionResult:
    """Professor's Research: discard your hand and draw 7."""
    discarded = len(player.hand)
    player.discard.extend(player.hand)
    player.hand.clear()
    engine.events.emit(EventType.ZONE_CHANGED, player.index, from_zone="hand", to_zone="discard", count=discarded)
    if not engine.draw(player, 7):
        return ActionResult.fail("deck out")
    logger.info(f"[Trainer] Research: discarded {discarded}, drew 7")
    return ActionResult.ok()


def iono_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    return ""


def iono_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> ActionResult:
    """Iono: each player shuffles their hand into their deck, then draws a card for each remaining Prize."""
    order = [player, engine.state.opponent_of(player.index)]
    for each in order:
        actions.shuffle_hand_into_deck(engine, each)
    for each in order:
        if not engine.draw(each, len(each.prizes)):
            return ActionResult.fail("deck out")
    logger.info(f"[Trainer] Iono: hands refreshed to {len(order[0].hand)} / {len(order[1].hand)}")
    return ActionResult.ok()


def boss_orders_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not engine.state.opponent_of(player.index).bench:
        return "opponent has no benched Pokémon"
    return ""


def boss_orders_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Boss's Orders: switch in 1 of your opponent's Benched Pokémon."""
    opponent = engine.state.opponent_of(player.index)
    target = yield request_selection(
        player.index, "Boss's Orders: choose your opponent's new Active",
        make_options(opponent.bench), source=card.name,
    )
    if target is None:
        return ActionResult.fail("no target selected")
    _gust(engine, opponent, target)
    return ActionResult.ok()


def pepper_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not any(_is_item(c) for c in player.deck):
        return "no Item card in deck"
    return ""


def pepper_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Pepper: search for an Item and a Pokémon Tool."""
    item = yield request_selection(
        player.index, "Pepper: choose an Item", make_options([c for c in player.deck if _is_item(c)]),
        source=card.name,
    )
    if item is None:
        return ActionResult.fail("no Item selected")

    tools = yield request_multi_selection(
        player.index, "Pepper: choose a Pokémon Tool (optional)",
        make_options([c for c in player.deck if _is_tool(c)]), max_picks=1, source=card.name,
    )

    for found in [item] + list(tools):
        actions.move_card(engine, player, found, "deck", "hand")
    actions.shuffle_deck(engine, player)
    logger.info(f"[Trainer] Pepper: took {', '.join(c.name for c in [item] + list(tools))}")
    return ActionResult.ok()


# ============================================================================
# 2. ITEMS
# ============================================================================

def nest_ball_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if len(player.bench) >= engine.config.max_bench_size:
        return "bench is full"
    if not any(_is_basic_pokemon(c) for c in player.deck):
        return "no Basic Pokémon in deck"
    return ""


def nest_ball_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Nest Ball: put a Basic Pokémon from your deck onto your Bench."""
    basic = yield request_selection(
        player.index, "Nest Ball: choose a Basic Pokémon for your Bench",
        make_options([c for c in player.deck if _is_basic_pokemon(c)]), source=card.name,
    )
    if basic is None:
        return ActionResult.fail("no Pokémon selected")

    actions.take_card(player.deck, basic)
    actions.put_into_play(engine, player, basic)
    actions.shuffle_deck(engine, player)
    logger.info(f"[Trainer] Nest Ball: benched {basic.display_name()}")
    return ActionResult.ok()


def level_ball_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not any(isinstance(c, PokemonCard) and c.base_hp <= LEVEL_BALL_MAX_HP for c in player.deck):
        return f"no Pokémon with {LEVEL_BALL_MAX_HP} HP or less in deck"
    return ""


def level_ball_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Level Ball: search for a Pokémon with 90 HP or less."""
    found = yield request_selection(
        player.index, "Level Ball: choose a Pokémon with 90 HP or less",
        make_options([c for c in player.deck if isinstance(c, PokemonCard) and c.base_hp <= LEVEL_BALL_MAX_HP]),
        source=card.name,
    )
    if found is None:
        return ActionResult.fail("no Pokémon selected")
    actions.move_card(engine, player, found, "deck", "hand")
    actions.shuffle_deck(engine, player)
    return ActionResult.ok()


def ultra_ball_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if len(others) < 2:
        return "need 2 other cards in hand to discard"
    return ""


def ultra_ball_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Ultra Ball: discard 2 cards, then search for any Pokémon."""
    costs = yield request_multi_selection(
        player.index, "Ultra Ball: choose 2 cards to discard", make_options(player.hand),
        max_picks=2, min_picks=2, source=card.name,
    )
    if len(costs) != 2:
        return ActionResult.fail("must discard 2 cards")

    found = yield request_selection(
        player.index, "Ultra Ball: choose a Pokémon",
        make_options([c for c in player.deck if isinstance(c, PokemonCard)]), source=card.name,
    )

    for cost in costs:
        actions.move_card(engine, player, cost, "hand", "discard")
    if found is not None:
        actions.move_card(engine, player, found, "deck", "hand")
    actions.shuffle_deck(engine, player)
    logger.info(f"[Trainer] Ultra Ball: found {found.display_name() if found else 'nothing'}")
    return ActionResult.ok()


def _rare_candy_pairs(engine: "GameEngine", player: PlayerState, others: List[Card]):
    stage2s = [c for c in others if isinstance(c, PokemonCard)]
    pairs = []
    for basic in player.all_creatures():
        for stage2 in stage2s:
            if engine.evolution.evolve_disabled_reason(player, basic, stage2, via_fast_track=True) == "":
                pairs.append((basic, stage2))
    return pairs


def rare_candy_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if engine.state.turn_count <= 1:
        return "cannot evolve during a player's first turn"
    if not _rare_candy_pairs(engine, player, others):
        return "no Basic Pokémon can evolve with a Stage 2 in hand"
    return ""


def rare_candy_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Rare Candy: evolve a Basic straight into a matching Stage 2 from hand."""
    pairs = _rare_candy_pairs(engine, player, player.hand)

    basics = []
    for basic, _ in pairs:
        if all(b.instance_id != basic.instance_id for b in basics):
            basics.append(basic)
    basic = yield request_selection(
        player.index, "Rare Candy: choose a Basic Pokémon", make_options(basics), source=card.name,
    )
    if basic is None:
        return ActionResult.fail("no Pokémon selected")

    stage2 = yield request_selection(
        player.index, f"Rare Candy: choose a Stage 2 for {basic.card.display_name()}",
        make_options([s for b, s in pairs if b.instance_id == basic.instance_id]), source=card.name,
    )
    if stage2 is None:
        return ActionResult.fail("no Stage 2 selected")

    return engine.evolution.evolve(player, basic, stage2, via_fast_track=True)


def earthen_vessel_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not others:
        return "need another card in hand to discard"
    return ""


def earthen_vessel_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Earthen Vessel: discard a card, search for up to 2 Basic Psychic Energy."""
    cost = yield request_selection(
        player.index, "Earthen Vessel: choose a card to discard", make_options(player.hand), source=card.name,
    )
    if cost is None:
        return ActionResult.fail("no card selected")

    energies = yield request_multi_selection(
        player.index, "Earthen Vessel: choose up to 2 Basic Psychic Energy",
        make_options([c for c in player.deck if actions.is_basic_psychic_energy(c)]),
        max_picks=2, source=card.name,
    )

    actions.move_card(engine, player, cost, "hand", "discard")
    for energy in energies:
        actions.move_card(engine, player, energy, "deck", "hand")
    actions.shuffle_deck(engine, player)
    logger.info(f"[Trainer] Earthen Vessel: found {len(energies)} energy")
    return ActionResult.ok()


def escape_rope_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not player.bench and not engine.state.opponent_of(player.index).bench:
        return "neither player has a benched Pokémon"
    return ""


def escape_rope_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Escape Rope: each player switches their Active (opponent first)."""
    opponent = engine.state.opponent_of(player.index)

    theirs = None
    if opponent.bench:
        theirs = yield request_selection(
            opponent.index, "Escape Rope: choose your new Active", make_options(opponent.bench),
            source=card.name, cancellable=False,
        )
    mine = None
    if player.bench:
        mine = yield request_selection(
            player.index, "Escape Rope: choose your new Active", make_options(player.bench), source=card.name,
        )

    if theirs is not None:
        actions.switch_active(engine, opponent, opponent.bench_index_of(theirs))
    if mine is not None:
        actions.switch_active(engine, player, player.bench_index_of(mine))
    return ActionResult.ok()


def _super_rod_targets(player: PlayerState) -> List[Card]:
    return [c for c in player.discard
            if isinstance(c, PokemonCard) or (isinstance(c, EnergyCard) and c.is_basic)]


def super_rod_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not _super_rod_targets(player):
        return "no Pokémon or Basic Energy in discard"
    return ""


def super_rod_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Super Rod: shuffle up to 3 Pokémon and/or Basic Energy from the discard into the deck."""
    chosen = yield request_multi_selection(
        player.index, "Super Rod: choose up to 3 cards", make_options(_super_rod_targets(player)),
        max_picks=3, min_picks=1, source=card.name,
    )
    if not chosen:
        return ActionResult.fail("no card selected")

    for returned in chosen:
        actions.move_card(engine, player, returned, "discard", "deck")
    actions.shuffle_deck(engine, player)
    logger.info(f"[Trainer] Super Rod: returned {len(chosen)} card(s)")
    return ActionResult.ok()


def counter_catcher_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    opponent = engine.state.opponent_of(player.index)
    if len(player.prizes) <= len(opponent.prizes):
        return "you must have more Prize cards remaining than your opponent"
    if not opponent.bench:
        return "opponent has no benched Pokémon"
    return ""


def counter_catcher_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Counter Catcher: while behind on Prizes, switch in 1 of your opponent's Benched Pokémon."""
    opponent = engine.state.opponent_of(player.index)
    target = yield request_selection(
        player.index, "Counter Catcher: choose your opponent's new Active",
        make_options(opponent.bench), source=card.name,
    )
    if target is None:
        return ActionResult.fail("no target selected")
    _gust(engine, opponent, target)
    return ActionResult.ok()


def _lost_vacuum_targets(engine: "GameEngine") -> List[Any]:
    state = engine.state
    targets: List[Any] = []
    if state.stadium is not None:
        targets.append(state.stadium)
    for each in state.players:
        targets.extend(c for c in each.all_creatures() if c.attached_tool is not None)
    return targets


def _lost_vacuum_label(target: Any) -> str:
    if isinstance(target, StadiumInPlay):
        return f"{target.card.name} (Stadium)"
    return f"{target.attached_tool.name} on {target.card.display_name()}"


def lost_vacuum_check(engine: "GameEngine", player: PlayerState, others: List[Card]) -> str:
    if not others:
        return "need another card in hand to discard"
    if not _lost_vacuum_targets(engine):
        return "no Stadium or Pokémon Tool in play"
    return ""


def lost_vacuum_effect(engine: "GameEngine", player: PlayerState, card: TrainerCard) -> Procedure:
    """Lost Vacuum: discard a card, then put a Stadium or a Pokémon Tool in play into the Lost Zone."""
    cost = yield request_selection(
        player.index, "Lost Vacuum: choose a card to discard", make_options(player.hand), source=card.name,
    )
    if cost is None:
        return ActionResult.fail("no card selected")

    target = yield request_selection(
        player.index, "Lost Vacuum: choose a Stadium or Tool",
        make_options(_lost_vacuum_targets(engine), label=_lost_vacuum_label), source=card.name,
    )
    if target is None:
        return ActionResult.fail("no target selected")

    label = _lost_vacuum_label(target)
    actions.move_card(engine, player, cost, "hand", "discard")
    state = engine.state
    if isinstance(target, StadiumInPlay):
        state.get_player(target.owner_index).lost_zone.append(target.card)
        state.stadium = None
        engine.events.emit(EventType.STADIUM_CHANGED, target.owner_index, card_id=None)
    else:
        tool = target.attached_tool
        target.attached_tool = None
        state.get_player(target.owner_index).lost_zone.append(tool)
        engine.events.emit(EventType.ZONE_CHANGED, target.owner_index, from_zone="attached",
                           to_zone="lost_zone", card_id=tool.id)
    logger.info(f"[Trainer] Lost Vacuum: {label} sent to the Lost Zone")
    return ActionResult.ok()


# ============================================================================
# 3. STADIUMS (ACTIVATED EFFECTS)
# ============================================================================

def _artazon_targets(player: PlayerState) -> List[PokemonCard]:
    return [c for c in player.deck if _is_basic_pokemon(c) and not c.is_ex]


def artazon_check(engine: "GameEngine", player: PlayerState) -> str:
    if len(player.bench) >= engine.config.max_bench_size:
        return "bench is full"
    if not _artazon_targets(player):
        return "no Basic Pokémon (non-ex) in deck"
    return ""


def artazon_effect(engine: "GameEngine", player: PlayerState) -> Procedure:
    """Artazon: once per turn, put a Basic Pokémon that isn't a Pokémon ex from your deck onto your Bench."""
    basic = yield request_selection(
        player.index, "Artazon: choose a Basic Pokémon for your Bench",
        make_options(_artazon_targets(player)), source="Artazon",
    )
    if basic is None:
        return ActionResult.fail("no Pokémon selected")
    actions.take_card(player.deck, basic)
    actions.put_into_play(engine, player, basic)
    actions.shuffle_deck(engine, player)
    return ActionResult.ok()


# ============================================================================
# 4. REGISTRIES
# ============================================================================

TRAINER_LOGIC: Dict[TrainerEffect, Dict[str, Any]] = {
    TrainerEffect.RESEARCH: {"check": research_check, "effect": research_effect},
    TrainerEffect.IONO: {"check": iono_check, "effect": iono_effect},
    TrainerEffect.BOSS_ORDERS: {"check": boss_orders_check, "effect": boss_orders_effect},
    TrainerEffect.PEPPER: {"check": pepper_check, "effect": pepper_effect},
    TrainerEffect.NEST_BALL: {"check": nest_ball_check, "effect": nest_ball_effect},
    TrainerEffect.LEVEL_BALL: {"check": level_ball_check, "effect": level_ball_effect},
    TrainerEffect.ULTRA_BALL: {"check": ultra_ball_check, "effect": ultra_ball_effect},
    TrainerEffect.RARE_CANDY: {"check": rare_candy_check, "effect": rare_candy_effect},
    TrainerEffect.EARTHEN_VESSEL: {"check": earthen_vessel_check, "effect": earthen_vessel_effect},
    TrainerEffect.ESCAPE_ROPE: {"check": escape_rope_check, "effect": escape_rope_effect},
    TrainerEffect.SUPER_ROD: {"check": super_rod_check, "effect": super_rod_effect},
    TrainerEffect.COUNTER_CATCHER: {"check": counter_catcher_check, "effect": counter_catcher_effect},
    TrainerEffect.LOST_VACUUM: {"check": lost_vacuum_check, "effect": lost_vacuum_effect},
}

STADIUM_LOGIC: Dict[TrainerEffect, Dict[str, Any]] = {
    TrainerEffect.ARTAZON: {"check": artazon_check, "effect": artazon_effect},
}


# ============================================================================
# 5. TRAINER SYSTEM
# ============================================================================

class TrainerSystem:
    """Validates trainer plays and routes them through TRAINER_LOGIC."""

    def __init__(self, engine: "GameEngine"):
        self.engine = engine

    def trainer_disabled_reason(self, player: PlayerState, card: Optional[Card]) -> str:
        """Empty string when the card can be played right now."""
        if not isinstance(card, TrainerCard):
            return "not a trainer card"
        if card not in player.hand:
            return "card not in hand"

        state = self.engine.state
        if card.trainer_type == TrainerType.SUPPORTER:
            if player.supporter_used_this_turn:
                return "supporter already used this turn"
            if player.index == state.first_player_index and state.turn_count == 1:
                return "first player cannot play a supporter on the first turn"
        elif card.trainer_type == TrainerType.STADIUM:
            if state.stadium is not None and state.stadium.card.name == card.name:
                return "same stadium already in play"
            if player.stadium_used_this_turn:
                return "stadium already played this turn"
            return ""
        elif card.trainer_type == TrainerType.TOOL:
            if not any(c.attached_tool is None for c in player.all_creatures()):
                return "no Pokémon can hold a tool"
            return ""

        logic = TRAINER_LOGIC.get(card.effect)
        if logic is None:
            return "card is not implemented"
        return logic["check"](self.engine, player, hand_without(player, card))

    def can_play_trainer(self, player: PlayerState, card: Optional[Card]) -> bool:
        return self.trainer_disabled_reason(player, card) == ""

    def play_trainer(self, player: PlayerState, card: TrainerCard) -> Procedure:
        """
        Play a trainer card from hand.

        Supporters and Items go to the discard pile before their effect
        resolves and return to hand if the effect fails. Stadiums go into
        play; Tools ask for a creature to attach to.
        """
        reason = self.trainer_disabled_reason(player, card)
        if reason:
            return ActionResult.fail(reason)

        if card.trainer_type == TrainerType.STADIUM:
            return self._play_stadium(player, card)
        if card.trainer_type == TrainerType.TOOL:
            return (yield from self._play_tool(player, card))

        logger.info(f"[Trainer] {player.name} plays {card.name}")
        actions.move_card(self.engine, player, card, "hand", "discard")
        result = yield from run_effect(TRAINER_LOGIC[card.effect]["effect"](self.engine, player, card))

        if not result.success:
            if not self.engine.state.is_game_over():
                actions.move_card(self.engine, player, card, "discard", "hand")
            return result
        if card.trainer_type == TrainerType.SUPPORTER:
            player.supporter_used_this_turn = True
        return result

    def _play_tool(self, player: PlayerState, card: TrainerCard) -> Procedure:
        target = yield request_selection(
            player.index, f"{card.name}: choose a Pokémon",
            make_options([c for c in player.all_creatures() if c.attached_tool is None]), source=card.name,
        )
        return self.engine.energy.attach_tool(player, target, card)

    def _play_stadium(self, player: PlayerState, card: TrainerCard) -> ActionResult:
        state = self.engine.state
        previous = state.stadium
        actions.take_card(player.hand, card)
        if previous is not None:
            state.get_player(previous.owner_index).discard.append(previous.card)
        state.stadium = StadiumInPlay(card=card, owner_index=player.index)
        player.stadium_used_this_turn = True

        self.engine.events.emit(EventType.STADIUM_CHANGED, player.index, card_id=card.id,
                                replaced=previous.card.id if previous else None)
        logger.info(f"[Stadium] {player.name} plays {card.name}"
                    f"{f' (replacing {previous.card.name})' if previous else ''}")
        return ActionResult.ok()

    # ------------------------------------------------------------------------
    # Activated stadium effects
    # ------------------------------------------------------------------------

    def stadium_disabled_reason(self, player: PlayerState) -> str:
        stadium = self.engine.state.stadium
        if stadium is None:
            return "no stadium in play"
        logic = STADIUM_LOGIC.get(stadium.card.effect)
        if logic is None:
            return f"{stadium.card.name} has no activated effect"
        if player.stadium_effect_used_this_turn:
            return "stadium effect already used this turn"
        return logic["check"](self.engine, player)

    def use_stadium(self, player: PlayerState) -> Procedure:
        reason = self.stadium_disabled_reason(player)
        if reason:
            return ActionResult.fail(reason)

        stadium = self.engine.state.stadium
        logger.info(f"[Stadium] {player.name} uses {stadium.card.name}")
        result = yield from run_effect(STADIUM_LOGIC[stadium.card.effect]["effect"](self.engine, player))
        if result.success:
            player.stadium_effect_used_this_turn = True
        return result
