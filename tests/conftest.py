"""
Pytest configuration and fixtures.
Provides reusable engines and board builders for all tests.
"""

import sys
sys.path.insert(0, 'src')

import pytest
from typing import List, Optional, Sequence

from ptcg.cards import load_standard_catalog
from ptcg.engine import GameEngine
from ptcg.models import CreatureInstance, GamePhase, StatusCondition


# ============================================================================
# BOARD BUILDER
# ============================================================================

class Board:
    """
    Places cards straight into an engine's state, bypassing start_game().

    All methods take catalog ids and return what they created.
    """

    def __init__(self, engine: GameEngine):
        self.engine = engine

    def card(self, card_id: str):
        return self.engine.catalog.lookup(card_id)

    def player(self, index: int):
        return self.engine.state.get_player(index)

    def creature(self, index: int, card_id: str, damage: int = 0, energies: Sequence[str] = (),
                 tool: Optional[str] = None, turns_in_play: int = 1,
                 status: StatusCondition = StatusCondition.NONE) -> CreatureInstance:
        return CreatureInstance(
            card=self.card(card_id),
            owner_index=index,
            current_damage=damage,
            turns_in_play=turns_in_play,
            was_played_this_turn=turns_in_play == 0,
            attached_energies=[self.card(e) for e in energies],
            attached_tool=self.card(tool) if tool else None,
            status=status,
        )

    def active(self, index: int, card_id: str, **kwargs) -> CreatureInstance:
        creature = self.creature(index, card_id, **kwargs)
        self.player(index).active = creature
        return creature

    def bench(self, index: int, card_id: str, **kwargs) -> CreatureInstance:
        creature = self.creature(index, card_id, **kwargs)
        self.player(index).bench.append(creature)
        return creature

    def hand(self, index: int, *card_ids: str) -> List:
        cards = [self.card(c) for c in card_ids]
        self.player(index).hand.extend(cards)
        return cards

    def deck(self, index: int, *card_ids: str) -> List:
        """Put cards on top of the deck, first id on top."""
        cards = [self.card(c) for c in card_ids]
        self.player(index).deck[0:0] = cards
        return cards

    def discard(self, index: int, *card_ids: str) -> List:
        cards = [self.card(c) for c in card_ids]
        self.player(index).discard.extend(cards)
        return cards

    def prizes(self, index: int, count: int, card_id: str = "BasicDarkness") -> List:
        cards = [self.card(card_id) for _ in range(count)]
        self.player(index).prizes = cards
        return cards


# ============================================================================
# FIXTURES: Catalog & Engines
# ============================================================================

@pytest.fixture(scope="session")
def catalog():
    """The built-in card library."""
    return load_standard_catalog()


def _main_phase_engine(catalog, **kwargs) -> GameEngine:
    """
    Engine in the middle of a game.

    Starting conditions:
    - Turn 2, Player 0's turn (Player 0 went first), Main Phase
    - 20 Basic Psychic Energy in each deck, 6 prizes each
    - Empty hands and boards
    """
    engine = GameEngine(catalog=catalog, random_seed=42, **kwargs)
    state = engine.state
    state.turn_count = 2
    state.first_player_index = 0
    state.current_player_index = 0
    state.phase = GamePhase.MAIN
    psychic = catalog.lookup("BasicPsychic")
    darkness = catalog.lookup("BasicDarkness")
    for player in state.players:
        player.deck = [psychic] * 20
        player.prizes = [darkness] * 6
    return engine


@pytest.fixture
def engine(catalog):
    """Automated engine (both seats resolved by AutoResolver)."""
    return _main_phase_engine(catalog)


@pytest.fixture
def human_engine(catalog):
    """Same as ``engine`` but both seats are human: decisions suspend."""
    return _main_phase_engine(catalog, human_players=(0, 1))


@pytest.fixture
def board(engine):
    return Board(engine)


@pytest.fixture
def human_board(human_engine):
    return Board(human_engine)


@pytest.fixture
def battle(board):
    """
    Both players have an Active and a benched creature.

    Setup:
    - Player 0: Ralts Active, Mew on the bench
    - Player 1: Munkidori Active, Drifloon on the bench
    """
    board.active(0, "Ralts")
    board.bench(0, "Mew")
    board.active(1, "Munkidori")
    board.bench(1, "Drifloon")
    return board
