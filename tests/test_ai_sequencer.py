"""
Heuristic agent turn script and full automated matches.
"""

import pytest

from ptcg.agents import HeuristicAgent, PlayerAgent
from ptcg.cards import build_deck
from ptcg.decisions import InteractiveResolver, make_options, request_selection
from ptcg.engine import GameEngine
from ptcg.main import MatchResult, play_match, run_simulation
from ptcg.models import ActionResult, WinReason


@pytest.fixture
def agent(engine):
    bot = HeuristicAgent(name="Bot")
    bot.on_game_start(engine, 0)
    return bot


def ids(cards):
    return [c.id for c in cards]


# ============================================================================
# TURN SCRIPT
# ============================================================================

class TestTurnScript:

    def test_benches_every_basic(self, engine, board, agent):
        board.active(0, "Drifloon")
        board.active(1, "Munkidori")
        board.hand(0, "Ralts", "Mew", "Iono")

        agent.play_turn(engine)

        assert [c.card.id for c in board.player(0).bench] == ["Ralts", "Mew"]
        assert ids(board.player(0).hand) == ["Iono"]

    def test_ends_the_turn(self, engine, board, agent):
        board.active(0, "Drifloon")
        board.active(1, "Munkidori")

        result = agent.play_turn(engine)

        assert result.success, result.reason
        assert engine.state.current_player_index == 1

    def test_evolves_along_priority(self, engine, board, agent):
        board.active(0, "Ralts")
        board.active(1, "Munkidori")
        board.hand(0, "Kirlia")

        agent.play_turn(engine)

        assert board.player(0).active.card.id == "Kirlia"

    def test_skips_creatures_that_just_entered_play(self, engine, board, agent):
        board.active(0, "Drifloon")
        board.active(1, "Munkidori")
        board.hand(0, "Ralts", "Kirlia")

        agent.play_turn(engine)

        assert board.player(0).bench[0].card.id == "Ralts"
        assert ids(board.player(0).hand) == ["Kirlia"]

    def test_attaches_and_attacks(self, engine, board, agent):
        board.active(0, "Mew", energies=["BasicPsychic"])
        defender = board.active(1, "Ralts")
        board.hand(0, "BasicPsychic")

        agent.play_turn(engine)

        assert len(board.player(0).active.attached_energies) == 2
        assert defender.current_damage == 30

    def test_accelerates_with_psychic_embrace(self, engine, board, agent):
        kirlia = board.active(0, "Kirlia")
        board.bench(0, "GardevoirEX")
        board.discard(0, "BasicPsychic", "BasicPsychic", "BasicPsychic")
        defender = board.active(1, "Munkidori")

        agent.play_turn(engine)

        assert len(kirlia.attached_energies) == 3
        assert kirlia.current_damage == 60
        assert defender.current_damage == 30

    def test_refills_hand_with_restart(self, engine, board, agent):
        board.active(0, "MewEX")
        board.active(1, "Munkidori")

        agent.play_turn(engine)

        # 3 from Restart, then the Basic Psychic gets attached
        assert len(board.player(0).hand) == 2

    def test_restart_never_decks_itself_out(self, engine, board, agent):
        board.active(0, "MewEX")
        board.active(1, "Munkidori")
        board.player(0).deck = [board.card("BasicPsychic")]

        agent.play_turn(engine)

        assert not engine.state.is_game_over()
        assert board.player(0).deck == []
        assert len(board.player(0).active.attached_energies) == 1

    def test_promotes_into_empty_active(self, engine, board, agent):
        board.bench(0, "Mew")
        board.active(1, "Munkidori")

        agent.play_turn(engine)

        assert board.player(0).active.card.id == "Mew"

    def test_waits_for_its_turn(self, engine, board, agent):
        engine.state.current_player_index = 1
        board.active(0, "Drifloon")
        board.hand(0, "Ralts")

        agent.play_turn(engine)

        assert board.player(0).bench == []
        assert engine.state.current_player_index == 1

    def test_every_step_is_legal(self, engine, board, agent):
        board.active(0, "Ralts", energies=["BasicPsychic"])
        board.bench(0, "Munkidori", energies=["BasicDarkness"], damage=0)
        board.bench(0, "Mew", damage=30)
        board.active(1, "Drifloon")
        board.hand(0, "Kirlia", "Ralts", "BasicPsychic", "Iono")

        steps = list(agent.iter_turn(engine))

        for step, result in steps:
            assert result.success, f"{step}: {result.reason}"
        assert [s for s, _ in steps][-1] == "end_turn"

    def test_suspends_on_opponent_decision(self, engine, board, agent):
        engine.set_resolver(1, InteractiveResolver())
        board.active(0, "Mew", energies=["BasicPsychic"])
        board.hand(0, "BasicPsychic")
        board.active(1, "Ralts", damage=60)
        board.bench(1, "Drifloon")
        board.bench(1, "Mew")

        result = agent.play_turn(engine)

        assert result.is_pending
        assert engine.pending_decision.player_index == 1
        assert engine.state.current_player_index == 0

        engine.resolve_decision(1)
        result = agent.play_turn(engine)

        assert result.success, result.reason
        assert board.player(1).active.card.id == "Mew"
        assert engine.state.current_player_index == 1


# ============================================================================
# MATCHES
# ============================================================================

class StuckAgent(PlayerAgent):
    """Always reports a decision that nobody will answer."""

    def play_turn(self, engine):
        return ActionResult.awaiting(request_selection(self.player_index, "Stuck", make_options([1, 2])))


class TestMatches:

    def test_full_game_every_operation_legal(self, catalog):
        engine = GameEngine(catalog=catalog, random_seed=5)
        assert engine.start_game(build_deck(catalog), build_deck(catalog)).success
        agents = [HeuristicAgent(name="A"), HeuristicAgent(name="B")]
        for index, bot in enumerate(agents):
            bot.on_game_start(engine, index)

        while not engine.state.is_game_over() and engine.state.turn_count <= 100:
            bot = agents[engine.state.current_player_index]
            for step, result in bot.iter_turn(engine):
                assert result.success or engine.state.is_game_over(), f"{step}: {result.reason}"

    def test_play_match_reports_result(self, catalog):
        engine = GameEngine(catalog=catalog, random_seed=9)
        engine.start_game(build_deck(catalog), build_deck(catalog))

        result = play_match(engine, [HeuristicAgent(), HeuristicAgent()], max_turns=60)

        assert isinstance(result, MatchResult)
        assert result.turns <= 61
        assert result.seed == 9
        if result.winner_index >= 0:
            assert result.win_reason in {r.value for r in WinReason}

    def test_turn_limit_is_a_draw(self, catalog):
        engine = GameEngine(catalog=catalog, random_seed=9)
        engine.start_game(build_deck(catalog), build_deck(catalog))

        result = play_match(engine, [HeuristicAgent(), HeuristicAgent()], max_turns=1)

        assert result.winner_index == -1
        assert result.win_reason is None

    def test_unanswerable_decision_raises(self, engine):
        with pytest.raises(RuntimeError):
            play_match(engine, [StuckAgent(), StuckAgent()])

    def test_simulation_is_deterministic(self):
        first = run_simulation(2, seed=3, max_turns=40)
        second = run_simulation(2, seed=3, max_turns=40)

        assert len(first) == 2
        assert [r.seed for r in first] == [3, 4]
        assert first == second
