"""
Decision points: resolvers, suspension, resumption and rollback.
"""

import pytest

from ptcg.decisions import (
    AutoResolver,
    DecisionManager,
    InteractiveResolver,
    ScriptedResolver,
    make_options,
    request_confirmation,
    request_multi_selection,
    request_selection,
    run_effect,
)
from ptcg.errors import DecisionError
from ptcg.events import EventBus, EventType
from ptcg.models import ActionResult


def pick_one(options=(1, 2, 3), **kwargs):
    value = yield request_selection(0, "Pick one", make_options(options), **kwargs)
    return ActionResult.ok(str(value))


def pick_many(max_picks=2, min_picks=0):
    values = yield request_multi_selection(0, "Pick some", make_options(["a", "b", "c"]),
                                           max_picks=max_picks, min_picks=min_picks)
    return ActionResult.ok(",".join(values))


def confirm():
    answer = yield request_confirmation(0, "Sure?")
    return ActionResult.ok(str(answer))


def start(manager, procedure, snapshot=None, restore=lambda s: None):
    return manager.start("test", procedure, snapshot, restore)


@pytest.fixture
def manager():
    return DecisionManager(EventBus())


@pytest.fixture
def human_manager():
    manager = DecisionManager(EventBus())
    manager.set_resolver(0, InteractiveResolver())
    return manager


# ============================================================================
# AUTOMATED RESOLUTION
# ============================================================================

class TestAutoResolver:

    def test_select_takes_first(self, manager):
        assert start(manager, pick_one()).reason == "1"

    def test_multi_takes_first_max_picks(self, manager):
        assert start(manager, pick_many(max_picks=2)).reason == "a,b"

    def test_confirm_answers_yes(self, manager):
        assert start(manager, confirm()).reason == "True"

    def test_runs_synchronously(self, manager):
        result = start(manager, pick_one())
        assert not result.is_pending
        assert manager.pending is None

    def test_scripted_then_fallback(self, manager):
        manager.set_resolver(0, ScriptedResolver([2]))

        assert start(manager, pick_one()).reason == "3"
        assert start(manager, pick_one()).reason == "1", "Falls back to the first option"

    def test_scripted_multi_and_confirm(self, manager):
        manager.set_resolver(0, ScriptedResolver([[2, 0], False]))

        assert start(manager, pick_many()).reason == "c,a"
        assert start(manager, confirm()).reason == "False"

    def test_scripted_answers_queued_later(self, manager):
        script = ScriptedResolver()
        manager.set_resolver(0, script)
        script.push(1, 2)

        assert start(manager, pick_one()).reason == "2"
        assert start(manager, pick_one()).reason == "3"
        assert not script.answers

    def test_interactive_resolver_never_answers_directly(self):
        request = request_selection(0, "Pick", make_options([1]))
        with pytest.raises(DecisionError):
            InteractiveResolver().resolve(request)

    def test_plain_results_pass_through(self, manager):
        assert start(manager, run_effect(ActionResult.fail("nope"))).reason == "nope"
        assert start(manager, run_effect(True)).success
        assert start(manager, run_effect(None)).success
        assert start(manager, run_effect(False)).reason == "effect failed"


# ============================================================================
# SUSPENSION
# ============================================================================

class TestSuspension:

    def test_interactive_seat_suspends(self, human_manager):
        result = start(human_manager, pick_one())

        assert result.is_pending
        assert not result.success
        assert result.reason == "awaiting decision"
        assert result.pending.prompt == "Pick one"
        assert human_manager.pending is result.pending

    def test_resume_with_answer(self, human_manager):
        start(human_manager, pick_one())

        result = human_manager.resolve(2)

        assert result.success
        assert result.reason == "3"
        assert human_manager.pending is None

    def test_other_seat_still_automated(self, human_manager):
        def opponent_picks():
            value = yield request_selection(1, "Opponent picks", make_options(["x", "y"]))
            return ActionResult.ok(value)

        assert start(human_manager, opponent_picks()).reason == "x"

    def test_empty_options_never_suspend(self, human_manager):
        def nothing_to_pick():
            single = yield request_selection(0, "Pick", [])
            many = yield request_multi_selection(0, "Pick some", [], max_picks=2)
            return ActionResult.ok(f"{single}/{many}")

        assert start(human_manager, nothing_to_pick()).reason == "None/[]"

    def test_one_procedure_at_a_time(self, human_manager):
        start(human_manager, pick_one())
        with pytest.raises(DecisionError):
            start(human_manager, pick_one())

    def test_requested_event(self, human_manager):
        start(human_manager, pick_one())
        requested = human_manager.events.events_of(EventType.DECISION_REQUESTED)
        assert len(requested) == 1
        assert requested[0].player_index == 0

    def test_exception_clears_in_flight(self, manager):
        def broken():
            yield request_selection(0, "Pick", make_options([1]))
            raise ValueError("boom")

        with pytest.raises(ValueError):
            start(manager, broken())
        assert manager.in_flight_name is None


class TestAnswerValidation:

    def test_nothing_pending(self, human_manager):
        with pytest.raises(DecisionError):
            human_manager.resolve(0)
        with pytest.raises(DecisionError):
            human_manager.cancel()

    @pytest.mark.parametrize("answer", [3, -1, "0", True, None])
    def test_bad_selection(self, human_manager, answer):
        start(human_manager, pick_one())
        with pytest.raises(DecisionError):
            human_manager.resolve(answer)
        assert human_manager.pending is not None, "A bad answer leaves the request pending"

    @pytest.mark.parametrize("answer", [[0, 0], [0, 1, 2], [5]])
    def test_bad_multi_selection(self, human_manager, answer):
        start(human_manager, pick_many(max_picks=2))
        with pytest.raises(DecisionError):
            human_manager.resolve(answer)

    def test_min_picks(self, human_manager):
        start(human_manager, pick_many(max_picks=2, min_picks=2))
        with pytest.raises(DecisionError):
            human_manager.resolve([1])
        assert human_manager.resolve([1, 0]).reason == "b,a"

    def test_confirm_needs_bool(self, human_manager):
        start(human_manager, confirm())
        with pytest.raises(DecisionError):
            human_manager.resolve(1)
        assert human_manager.resolve(False).reason == "False"

    def test_on_resolved_fires_once(self, human_manager):
        seen = []
        start(human_manager, pick_one(on_resolved=seen.append))

        human_manager.resolve(1)

        assert seen == [2]


class TestCancel:

    def test_cancel_restores_snapshot(self, human_manager):
        restored = []
        result = start(human_manager, pick_one(), snapshot="before", restore=restored.append)
        assert result.is_pending

        cancelled = human_manager.cancel()

        assert cancelled.reason == "cancelled"
        assert restored == ["before"]
        assert human_manager.pending is None

    def test_cancel_closes_procedure(self, human_manager):
        closed = []

        def tracked():
            try:
                yield request_selection(0, "Pick", make_options([1, 2]))
            finally:
                closed.append(True)

        start(human_manager, tracked())
        human_manager.cancel()

        assert closed == [True]

    def test_not_cancellable(self, human_manager):
        start(human_manager, pick_one(cancellable=False))

        result = human_manager.cancel()

        assert result.reason == "decision cannot be cancelled"
        assert human_manager.pending is not None

    def test_resolved_event_marks_cancel(self, human_manager):
        start(human_manager, pick_one())
        human_manager.cancel()
        resolved = human_manager.events.events_of(EventType.DECISION_RESOLVED)
        assert resolved[-1].payload["cancelled"] is True

    def test_error_restores_snapshot(self, human_manager):
        restored = []

        def broken():
            yield request_selection(0, "Pick", make_options([1, 2]))
            raise RuntimeError("boom")

        start(human_manager, broken(), snapshot="before", restore=restored.append)

        with pytest.raises(RuntimeError):
            human_manager.resolve(0)

        assert restored == ["before"]
        assert human_manager.pending is None


# ============================================================================
# ENGINE INTEGRATION
# ============================================================================

class TestEngineDecisions:

    def test_trainer_suspends_for_human(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, = human_board.hand(0, "NestBall")
        human_board.deck(0, "Mew", "Drifloon")

        result = human_engine.play_trainer(0, nest_ball)

        assert result.is_pending
        request = human_engine.pending_decision
        assert request.player_index == 0
        assert [o.value.id for o in request.options] == ["Mew", "Drifloon"]
        assert request.options[0].label.startswith("Mew")

    def test_operations_rejected_while_pending(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, _ = human_board.hand(0, "NestBall", "BasicPsychic")
        human_board.deck(0, "Mew")
        human_engine.play_trainer(0, nest_ball)

        assert human_engine.attach_energy(0, human_board.player(0).active).reason == "awaiting decision"
        assert human_engine.end_turn().reason == "awaiting decision"
        assert human_engine.play_basic_to_bench(0).reason == "awaiting decision"

    def test_resolve_finishes_trainer(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, = human_board.hand(0, "NestBall")
        human_board.deck(0, "Mew", "Drifloon")
        human_engine.play_trainer(0, nest_ball)

        result = human_engine.resolve_decision(1)

        player = human_board.player(0)
        assert result.success, result.reason
        assert [c.card.id for c in player.bench] == ["Drifloon"]
        assert [c.id for c in player.discard] == ["NestBall"]

    def test_cancel_rolls_trainer_back(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, = human_board.hand(0, "NestBall")
        human_board.deck(0, "Mew")
        deck_before = len(human_board.player(0).deck)
        human_engine.play_trainer(0, nest_ball)

        result = human_engine.cancel_decision()

        player = human_board.player(0)
        assert result.reason == "cancelled"
        assert [c.id for c in player.hand] == ["NestBall"]
        assert player.discard == []
        assert player.bench == []
        assert len(player.deck) == deck_before
        assert human_engine.pending_decision is None
        assert human_engine.events.events_of(EventType.STATE_RESTORED)

    def test_cancel_rewinds_rng(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, = human_board.hand(0, "NestBall")
        human_board.deck(0, "Mew")
        rng_before = human_engine.rng.getstate()
        human_engine.play_trainer(0, nest_ball)
        human_engine.rng.shuffle(human_board.player(0).deck)

        human_engine.cancel_decision()

        assert human_engine.rng.getstate() == rng_before

    def test_operations_allowed_after_cancel(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        nest_ball, = human_board.hand(0, "NestBall")
        human_board.deck(0, "Mew")
        human_engine.play_trainer(0, nest_ball)
        human_engine.cancel_decision()

        assert human_engine.end_turn().success

    def test_knockout_promotion_not_cancellable(self, human_engine, human_board):
        human_board.active(0, "Mew", energies=["BasicPsychic", "BasicPsychic"])
        human_board.active(1, "Ralts", damage=60)
        human_board.bench(1, "Drifloon")
        human_board.bench(1, "Mew")

        result = human_engine.attack(0, 0)

        assert result.is_pending
        assert human_engine.pending_decision.player_index == 1
        assert human_engine.cancel_decision().reason == "decision cannot be cancelled"

        assert human_engine.resolve_decision(1).success
        assert human_board.player(1).active.card.id == "Mew"
        assert len(human_board.player(0).prizes) == 5

    def test_escape_rope_asks_opponent_first(self, human_engine, human_board):
        human_board.active(0, "Ralts")
        human_board.bench(0, "Mew")
        human_board.active(1, "Munkidori")
        human_board.bench(1, "Drifloon")
        rope, = human_board.hand(0, "EscapeRope")

        human_engine.play_trainer(0, rope)

        request = human_engine.pending_decision
        assert request.player_index == 1
        assert not request.cancellable

        human_engine.resolve_decision(0)
        assert human_engine.pending_decision.player_index == 0
        assert human_engine.resolve_decision(0).success
        assert human_board.player(1).active.card.id == "Drifloon"
        assert human_board.player(0).active.card.id == "Mew"

    def test_set_resolver_marks_seat(self, engine):
        engine.set_resolver(1, InteractiveResolver())
        assert not engine.state.get_player(1).is_ai
        engine.set_resolver(1, AutoResolver())
        assert engine.state.get_player(1).is_ai

    def test_only_the_human_seat_suspends(self, engine, board):
        engine.set_resolver(1, InteractiveResolver())
        board.active(0, "Ralts")
        nest_ball, = board.hand(0, "NestBall")
        board.deck(0, "Mew")

        assert engine.play_trainer(0, nest_ball).success
