"""
Ability dispatch: Restart, Mysterious Tail, Refinement, Psychic Embrace,
Adrena-Brain and the passive Fairy Zone.
"""

from ptcg.abilities import ABILITY_LOGIC
from ptcg.decisions import ScriptedResolver
from ptcg.models import AbilityEffect


class TestAbilityDispatch:

    def test_every_activated_ability_is_registered(self):
        for effect in AbilityEffect:
            assert effect in ABILITY_LOGIC, f"{effect.value} has no dispatch entry"
            assert "check" in ABILITY_LOGIC[effect]

    def test_creature_without_the_ability(self, engine, battle):
        ralts = battle.player(0).active
        result = engine.use_ability(0, ralts, AbilityEffect.RESTART)
        assert result.reason == "Ralts has no such ability"

    def test_opponents_creature(self, engine, board):
        board.active(0, "Ralts")
        mew_ex = board.active(1, "MewEX")
        result = engine.use_ability(0, mew_ex, AbilityEffect.RESTART)
        assert result.reason == "creature is not in play"

    def test_not_your_turn(self, engine, board):
        mew_ex = board.active(1, "MewEX")
        assert engine.use_ability(1, mew_ex, AbilityEffect.RESTART).reason == "not your turn"

    def test_passive_ability(self, engine, board):
        clefairy = board.active(0, "LilliesClefairyEX")
        result = engine.use_ability(0, clefairy, AbilityEffect.FAIRY_ZONE)
        assert result.reason == "passive ability cannot be activated"


class TestRestart:

    def test_draws_up_to_three(self, engine, board):
        mew_ex = board.active(0, "MewEX")
        board.hand(0, "Iono")

        result = engine.use_ability(0, mew_ex, AbilityEffect.RESTART)

        assert result.success, result.reason
        assert len(board.player(0).hand) == 3
        assert mew_ex.has_used_ability(AbilityEffect.RESTART)

    def test_once_per_turn(self, engine, board):
        mew_ex = board.active(0, "MewEX")
        engine.use_ability(0, mew_ex, AbilityEffect.RESTART)
        board.player(0).hand.clear()

        result = engine.use_ability(0, mew_ex, AbilityEffect.RESTART)

        assert result.reason == "ability already used this turn"

    def test_needs_a_small_hand(self, engine, board):
        mew_ex = board.active(0, "MewEX")
        board.hand(0, "Iono", "Boss", "NestBall")
        assert engine.use_ability(0, mew_ex, AbilityEffect.RESTART).reason == "hand already has 3 or more cards"

    def test_draws_only_what_the_deck_holds(self, engine, board):
        mew_ex = board.active(0, "MewEX")
        board.player(0).deck = [board.card("Ralts")]

        result = engine.use_ability(0, mew_ex, AbilityEffect.RESTART)

        assert result.success, result.reason
        assert not engine.state.is_game_over()
        assert [c.id for c in board.player(0).hand] == ["Ralts"]
        assert board.player(0).deck == []

    def test_needs_a_card_in_deck(self, engine, board):
        mew_ex = board.active(0, "MewEX")
        board.player(0).deck = []

        result = engine.use_ability(0, mew_ex, AbilityEffect.RESTART)

        assert result.reason == "deck is empty"
        assert not engine.state.is_game_over()


class TestMysteriousTail:

    def test_takes_an_item_from_the_top_six(self, engine, board):
        mew = board.active(0, "Mew")
        board.deck(0, "BasicPsychic", "Iono", "NestBall", "BasicPsychic")
        deck_size = len(board.player(0).deck)

        result = engine.use_ability(0, mew, AbilityEffect.MYSTERIOUS_TAIL)

        assert result.success, result.reason
        assert [c.id for c in board.player(0).hand] == ["NestBall"], "Supporters are not Items"
        assert len(board.player(0).deck) == deck_size - 1

    def test_looks_no_deeper_than_six(self, engine, board):
        mew = board.active(0, "Mew")
        board.deck(0, *(["BasicPsychic"] * 6 + ["UltraBall"]))

        result = engine.use_ability(0, mew, AbilityEffect.MYSTERIOUS_TAIL)

        assert result.success
        assert board.player(0).hand == []
        assert mew.has_used_ability(AbilityEffect.MYSTERIOUS_TAIL)

    def test_active_only(self, engine, board):
        board.active(0, "Ralts")
        mew = board.bench(0, "Mew")
        assert engine.use_ability(0, mew, AbilityEffect.MYSTERIOUS_TAIL).reason == "must be in the Active Spot"

    def test_chosen_item(self, engine, board):
        mew = board.active(0, "Mew")
        board.deck(0, "NestBall", "UltraBall")
        engine.set_resolver(0, ScriptedResolver([1]))

        engine.use_ability(0, mew, AbilityEffect.MYSTERIOUS_TAIL)

        assert [c.id for c in board.player(0).hand] == ["UltraBall"]


class TestRefinement:

    def test_discard_one_draw_two(self, engine, board):
        kirlia = board.active(0, "Kirlia")
        board.hand(0, "Iono", "Boss")

        result = engine.use_ability(0, kirlia, AbilityEffect.REFINEMENT)

        assert result.success, result.reason
        player = board.player(0)
        assert [c.id for c in player.discard] == ["Iono"]
        assert len(player.hand) == 3
        assert [c.id for c in player.hand][:1] == ["Boss"]

    def test_chosen_discard(self, engine, board):
        kirlia = board.active(0, "Kirlia")
        board.hand(0, "Iono", "Boss")
        engine.set_resolver(0, ScriptedResolver([1]))

        engine.use_ability(0, kirlia, AbilityEffect.REFINEMENT)

        assert [c.id for c in board.player(0).discard] == ["Boss"]

    def test_needs_a_card_in_hand(self, engine, board):
        kirlia = board.active(0, "Kirlia")
        assert engine.use_ability(0, kirlia, AbilityEffect.REFINEMENT).reason == "no card in hand to discard"

    def test_needs_two_cards_in_deck(self, engine, board):
        kirlia = board.active(0, "Kirlia")
        board.hand(0, "Iono")
        board.player(0).deck = [board.card("Ralts")]
        assert engine.use_ability(0, kirlia, AbilityEffect.REFINEMENT).reason == "not enough cards in deck"


class TestPsychicEmbrace:

    def test_preselected_target(self, engine, board):
        ralts = board.active(0, "Ralts")
        gardevoir = board.bench(0, "GardevoirEX")
        board.discard(0, "BasicPsychic", "BasicPsychic")

        result = engine.use_ability(0, gardevoir, AbilityEffect.PSYCHIC_EMBRACE, target=ralts)

        assert result.success, result.reason
        assert len(ralts.attached_energies) == 1
        assert ralts.current_damage == 20
        assert gardevoir.attached_energies == []

    def test_usable_repeatedly(self, engine, board):
        gardevoir = board.active(0, "GardevoirEX")
        board.discard(0, "BasicPsychic", "BasicPsychic", "BasicPsychic")

        for _ in range(3):
            assert engine.use_ability(0, gardevoir, AbilityEffect.PSYCHIC_EMBRACE).success

        assert len(gardevoir.attached_energies) == 3
        assert gardevoir.current_damage == 60
        assert not gardevoir.has_used_ability(AbilityEffect.PSYCHIC_EMBRACE)

    def test_skips_targets_that_would_be_knocked_out(self, engine, board):
        board.active(0, "Ralts", damage=50)
        gardevoir = board.bench(0, "GardevoirEX")
        board.discard(0, "BasicPsychic")

        engine.use_ability(0, gardevoir, AbilityEffect.PSYCHIC_EMBRACE)

        assert len(gardevoir.attached_energies) == 1, "Only eligible targets are offered"

    def test_needs_energy_in_discard(self, engine, board):
        gardevoir = board.active(0, "GardevoirEX")
        result = engine.use_ability(0, gardevoir, AbilityEffect.PSYCHIC_EMBRACE)
        assert result.reason == "no Basic Psychic Energy in discard"

    def test_invalid_preselected_target(self, engine, board):
        munkidori = board.active(0, "Munkidori")
        gardevoir = board.bench(0, "GardevoirEX")
        board.discard(0, "BasicPsychic")

        result = engine.use_ability(0, gardevoir, AbilityEffect.PSYCHIC_EMBRACE, target=munkidori)

        assert result.reason == "target is not a Psychic Pokémon"
        assert len(board.player(0).discard) == 1


class TestAdrenaBrain:

    def test_moves_three_counters(self, engine, board):
        ralts = board.active(0, "Ralts", damage=30)
        munkidori = board.bench(0, "Munkidori", energies=["BasicDarkness"])
        mew = board.active(1, "Mew")

        result = engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN)

        assert result.success, result.reason
        assert ralts.current_damage == 0
        assert mew.current_damage == 30
        assert munkidori.has_used_ability(AbilityEffect.ADRENA_BRAIN)

    def test_scripted_amount_and_target(self, engine, board):
        board.active(0, "Ralts", damage=50)
        munkidori = board.bench(0, "Munkidori", energies=["BasicDarkness"])
        mew = board.active(1, "Mew")
        drifloon = board.bench(1, "Drifloon")
        engine.set_resolver(0, ScriptedResolver([0, 2, 1]))

        engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN)

        assert board.player(0).active.current_damage == 40
        assert drifloon.current_damage == 10
        assert mew.current_damage == 0

    def test_moved_damage_can_knock_out(self, engine, board):
        board.active(0, "Ralts", damage=30)
        munkidori = board.bench(0, "Munkidori", energies=["BasicDarkness"])
        board.active(1, "Mew", damage=50)
        board.bench(1, "Drifloon")

        engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN)

        assert board.player(1).active.card.id == "Drifloon"
        assert len(board.player(0).prizes) == 5

    def test_needs_darkness_energy(self, engine, board):
        board.active(0, "Ralts", damage=30)
        munkidori = board.bench(0, "Munkidori", energies=["BasicPsychic"])
        board.active(1, "Mew")
        assert engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN).reason == "no Darkness Energy attached"

    def test_needs_damage_to_move(self, engine, board):
        munkidori = board.active(0, "Munkidori", energies=["BasicDarkness"])
        board.active(1, "Mew")
        result = engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN)
        assert result.reason == "none of your Pokémon have damage counters"

    def test_own_creature_is_not_a_target(self, engine, board):
        ralts = board.active(0, "Ralts", damage=30)
        munkidori = board.bench(0, "Munkidori", energies=["BasicDarkness"])
        board.active(1, "Mew")

        result = engine.use_ability(0, munkidori, AbilityEffect.ADRENA_BRAIN, target=ralts)

        assert result.reason == "target is not an opponent's Pokémon"
        assert ralts.current_damage == 30
        assert not munkidori.has_used_ability(AbilityEffect.ADRENA_BRAIN), "Flag is set only on success"
