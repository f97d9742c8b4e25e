"""
Unit tests for the RulesEngine.
"""

import random

import pytest

from engine.championship import Bracket, KnockoutRound, Match, Phase, SetResult
from engine.exceptions import BracketError
from engine.rules import RulesEngine


class TestSetValidation:
    """Tests for single-set validity."""

    @pytest.mark.parametrize("p1,p2,expected", [
        (11, 9, True),
        (11, 10, False),
        (10, 8, False),
        (12, 10, True),
        (15, 13, True),
        (0, 0, False),
        (11, 11, False),
        (11, 0, True),
        (3, 11, True),
        (14, 10, False),
        (-1, 11, False),
        (11, -3, False),
        (100, 98, False),
    ])
    def test_set_validity_table(self, p1, p2, expected):
        """Boundary cases of the 11-point, win-by-2 rule."""
        assert RulesEngine.is_valid_set(SetResult(p1, p2)) is expected

    def test_validate_set_returns_message(self):
        """Invalid sets explain why."""
        valid, message = RulesEngine.validate_set(10, 8)

        assert not valid
        assert "11" in message

    def test_validate_set_deuce_message(self):
        """A deuce set with the wrong margin mentions the deuce rule."""
        valid, message = RulesEngine.validate_set(14, 10)

        assert not valid
        assert "10-10" in message

    def test_valid_set_has_empty_message(self):
        """Valid sets have no message."""
        assert RulesEngine.validate_set(11, 7) == (True, "")

    def test_set_winner(self):
        """Set winner is the higher valid score; invalid sets have none."""
        assert RulesEngine.set_winner(SetResult(11, 4)) == "player1"
        assert RulesEngine.set_winner(SetResult(10, 12)) == "player2"
        assert RulesEngine.set_winner(SetResult(11, 11)) is None


class TestMatchWinner:
    """Tests for best-of-N match decisions."""

    @pytest.mark.parametrize("best_of,needed", [(3, 2), (5, 3), (7, 4)])
    def test_sets_to_win(self, best_of, needed):
        """Best of 3/5/7 needs 2/3/4 sets."""
        assert RulesEngine.sets_to_win(best_of) == needed

    def test_player1_wins_in_three(self):
        """Three straight valid sets decide a best-of-5."""
        sets = [SetResult(11, 9), SetResult(11, 8), SetResult(11, 7)]

        assert RulesEngine.get_match_winner(sets, 5, "p1", "p2") == "p1"

    def test_undecided_after_two_sets(self):
        """Leading 2-0 in a best-of-5 is not yet a win."""
        sets = [SetResult(9, 11), SetResult(8, 11)]

        assert RulesEngine.get_match_winner(sets, 5, "p1", "p2") is None

    def test_no_sets_is_undecided(self):
        """A match with no sets has no winner."""
        assert RulesEngine.get_match_winner([], 5, "p1", "p2") is None

    def test_invalid_set_not_counted(self):
        """An invalid set counts for neither side."""
        sets = [SetResult(11, 5), SetResult(11, 11), SetResult(11, 6)]

        assert RulesEngine.get_match_winner(sets, 5, "p1", "p2") is None
        assert RulesEngine.count_sets(sets) == (2, 0)

    def test_player2_wins_best_of_three(self):
        """Player 2 wins a best-of-3 from a set down."""
        sets = [SetResult(11, 6), SetResult(9, 11), SetResult(12, 14)]

        assert RulesEngine.get_match_winner(sets, 3, "p1", "p2") == "p2"

    def test_resolve_winner_walkover(self):
        """Walkovers short-circuit set evaluation."""
        match = Match(id="m", player1_id="p1", player2_id="p2", phase=Phase.GROUPS,
                      is_walkover=True, walkover_winner_id="p2")

        assert RulesEngine.resolve_winner(match, 5) == "p2"


class TestMatchSetValidation:
    """Tests for whole set-list validation."""

    def test_partial_match_is_valid(self):
        """An unfinished set list is accepted."""
        valid, _ = RulesEngine.validate_match_sets([SetResult(11, 3)], 5)

        assert valid

    def test_invalid_set_rejected(self):
        """Any invalid set rejects the list."""
        valid, message = RulesEngine.validate_match_sets([SetResult(11, 3), SetResult(11, 10)], 5)

        assert not valid
        assert message.startswith("Set 2")

    def test_set_after_decision_rejected(self):
        """No set may follow the deciding one."""
        sets = [SetResult(11, 3)] * 3 + [SetResult(3, 11)]
        valid, message = RulesEngine.validate_match_sets(sets, 5)

        assert not valid
        assert "decided" in message

    def test_unknown_format_rejected(self):
        """Only best of 3, 5 and 7 exist."""
        valid, _ = RulesEngine.validate_match_sets([], 4)

        assert not valid


class TestChampionshipConfig:
    """Tests for championship settings validation."""

    def test_recommended_config_is_clean(self):
        """Recommended settings produce no errors or warnings."""
        report = RulesEngine.validate_championship_config(16, 4, 2, 5, 5, True)

        assert report.is_valid
        assert report.warnings == []

    def test_spots_must_be_below_group_size(self):
        """Qualification spots equal to the group size is an error."""
        report = RulesEngine.validate_championship_config(16, 4, 4, 5, 5, True)

        assert not report.is_valid

    def test_group_size_out_of_range(self):
        """Groups of 6 are not allowed."""
        report = RulesEngine.validate_championship_config(18, 6, 2, 5, 5, True)

        assert not report.is_valid

    def test_too_few_qualifiers(self):
        """Settings that qualify fewer than 4 athletes are rejected."""
        report = RulesEngine.validate_championship_config(6, 3, 1, 5, 5, True)

        assert not report.is_valid
        assert any("qualify only 2" in e for e in report.errors)

    def test_warnings_for_non_recommended_choices(self):
        """Best of 3 and no third place only warn."""
        report = RulesEngine.validate_championship_config(16, 4, 2, 3, 3, False)

        assert report.is_valid
        assert len(report.warnings) == 3


class TestSeedingValidation:
    """Tests for seed number checks."""

    @pytest.mark.parametrize("count,recommended", [(4, 0), (8, 2), (16, 4), (31, 4), (32, 8)])
    def test_recommended_seeds(self, count, recommended):
        """Recommended seeds scale with the field."""
        assert RulesEngine.recommended_seeds(count) == recommended

    def test_dense_seeds_valid(self):
        """Seeds 1..k are valid."""
        report = RulesEngine.validate_seeding(16, [2, 1, 3, 4])

        assert report.is_valid
        assert report.warnings == []

    def test_gap_in_seeds(self):
        """Seeds 1 and 3 without 2 is an error."""
        report = RulesEngine.validate_seeding(16, [1, 3])

        assert not report.is_valid

    def test_duplicate_seeds(self):
        """Duplicate seed numbers are an error."""
        report = RulesEngine.validate_seeding(16, [1, 1])

        assert not report.is_valid

    def test_missing_seed_number(self):
        """A seeded athlete without a number is an error."""
        report = RulesEngine.validate_seeding(8, [1, None])

        assert not report.is_valid

    def test_seed_count_warning(self):
        """Too few seeds for the field only warns."""
        report = RulesEngine.validate_seeding(32, [1, 2])

        assert report.is_valid
        assert report.warnings


class TestBracketStructure:
    """Tests for bracket sizing and round naming."""

    @pytest.mark.parametrize("count,size", [(4, 4), (5, 8), (7, 8), (8, 8), (9, 16), (16, 16)])
    def test_bracket_size(self, count, size):
        """Smallest power of two, never below 4."""
        assert RulesEngine.bracket_size(count) == size

    def test_bracket_size_minimum_two(self):
        """Second-division brackets may be as small as 2."""
        assert RulesEngine.bracket_size(2, minimum=2) == 2
        assert RulesEngine.bracket_size(3, minimum=2) == 4

    @pytest.mark.parametrize("size,round_", [
        (2, KnockoutRound.FINAL),
        (4, KnockoutRound.SEMI_FINAL),
        (8, KnockoutRound.QUARTER_FINAL),
        (16, KnockoutRound.ROUND_OF_16),
        (32, KnockoutRound.ROUND_OF_32),
        (128, KnockoutRound.ROUND_OF_128),
    ])
    def test_round_for_size(self, size, round_):
        """First-round names follow the bracket depth."""
        assert RulesEngine.round_for_size(size) == round_

    def test_oversized_bracket_rejected(self):
        """Draws beyond the name table raise."""
        with pytest.raises(BracketError):
            RulesEngine.round_for_size(256)

    def test_structure_for_six(self):
        """Six qualifiers: 8-draw, 2 byes, quarters to final."""
        structure = RulesEngine.bracket_structure(6)

        assert structure.size == 8
        assert structure.byes == 2
        assert [r.round for r in structure.rounds] == [
            KnockoutRound.QUARTER_FINAL, KnockoutRound.SEMI_FINAL, KnockoutRound.FINAL,
        ]
        assert [r.matches for r in structure.rounds] == [4, 2, 1]

    def test_second_division_label(self):
        """Second-division rounds carry a suffix."""
        assert KnockoutRound.ROUND_OF_16.label(Bracket.SECOND_DIVISION) == "Oitavas 2ª Div"
        assert KnockoutRound.FINAL.label() == "Final"


class TestKnockoutMatchValidation:
    """Tests for knockout draw integrity checks."""

    def _match(self, match_id, p1, p2, round_=KnockoutRound.SEMI_FINAL):
        return Match(id=match_id, player1_id=p1, player2_id=p2, phase=Phase.KNOCKOUT,
                     bracket=Bracket.MAIN, round=round_)

    def test_sound_draw(self):
        """Distinct players produce no problems."""
        matches = [self._match("m1", "a", "b"), self._match("m2", "c", "d")]

        assert RulesEngine.validate_knockout_matches(matches) == []

    def test_missing_and_self_play(self):
        """Missing players and self-play are reported."""
        matches = [self._match("m1", "a", ""), self._match("m2", "c", "c")]

        problems = RulesEngine.validate_knockout_matches(matches)
        assert len(problems) == 2

    def test_double_booking(self):
        """An athlete twice in one round is reported."""
        matches = [self._match("m1", "a", "b"), self._match("m2", "a", "d")]

        problems = RulesEngine.validate_knockout_matches(matches)
        assert len(problems) == 1
        assert "twice" in problems[0]


class TestRandomResults:
    """Tests for simulated results."""

    @pytest.mark.parametrize("best_of", [3, 5, 7])
    def test_random_result_is_decided_and_valid(self, best_of):
        """Every simulated result is valid and ends exactly when decided."""
        rng = random.Random(42)
        for _ in range(20):
            result = RulesEngine.random_match_result(best_of, rng)

            assert all(RulesEngine.is_valid_set(s) for s in result.sets)
            assert RulesEngine.validate_match_sets(result.sets, best_of)[0]
            assert RulesEngine.get_match_winner(result.sets, best_of, "p1", "p2") is not None
