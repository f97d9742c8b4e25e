"""
Tests for pydantic input schemas.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from engine.exceptions import ChampionshipValidationError
from models.schemas import AthleteCreate, ManualGroup, MatchResult, SetScore, TournamentConfig


class TestTournamentConfig:
    """Tests for championship settings."""

    def test_defaults(self):
        """Defaults follow the recommended format."""
        config = TournamentConfig(name="Cup", date=date(2026, 1, 1))

        assert config.group_size == 4
        assert config.groups_best_of == 5
        assert config.knockout_best_of == 5
        assert config.has_third_place

    @pytest.mark.parametrize("field,value", [
        ("group_size", 2),
        ("group_size", 6),
        ("groups_best_of", 7),
        ("knockout_best_of", 4),
        ("qualification_spots_per_group", 0),
        ("name", "   "),
    ])
    def test_rejected_values(self, field, value):
        """Out-of-range settings are rejected."""
        data = {"name": "Cup", "date": date(2026, 1, 1), field: value}

        with pytest.raises(ValidationError):
            TournamentConfig(**data)

    def test_field_errors_converted(self):
        """Pydantic errors become field-level championship errors."""
        with pytest.raises(ValidationError) as exc_info:
            TournamentConfig(name="Cup", date=date(2026, 1, 1), group_size=9)

        error = ChampionshipValidationError.from_pydantic(exc_info.value)

        assert error.errors[0].field == "group_size"
        assert not error.errors[0].message.startswith("Value error")


class TestAthleteCreate:
    """Tests for athlete registration."""

    def test_name_trimmed(self):
        """Names are stripped."""
        assert AthleteCreate(name="  Ana ").name == "Ana"

    def test_seed_number_requires_flag(self):
        """Unseeded athletes cannot carry a seed number."""
        with pytest.raises(ValidationError):
            AthleteCreate(name="Ana", seed_number=2)

    def test_seed_limit(self):
        """Seed numbers stop at 16."""
        with pytest.raises(ValidationError):
            AthleteCreate(name="Ana", is_seeded=True, seed_number=17)


class TestMatchResult:
    """Tests for result submissions."""

    def test_invalid_set_rejected(self):
        """Sets are checked against the scoring rules."""
        with pytest.raises(ValidationError):
            SetScore(player1_score=11, player2_score=10)

    def test_negative_score_rejected(self):
        """Scores cannot be negative."""
        with pytest.raises(ValidationError):
            SetScore(player1_score=-1, player2_score=11)

    def test_walkover_needs_winner(self):
        """A walkover without a winner is rejected."""
        with pytest.raises(ValidationError):
            MatchResult(match_id="m1", is_walkover=True)

    def test_winner_without_walkover_rejected(self):
        """A walkover winner only makes sense for walkovers."""
        with pytest.raises(ValidationError):
            MatchResult(match_id="m1", walkover_winner_id="p1")

    def test_defaults(self):
        """No sets and no timeouts by default."""
        result = MatchResult(match_id="m1")

        assert result.sets == []
        assert not result.timeouts.player1


class TestManualGroup:
    """Tests for manual group input."""

    def test_minimum_members(self):
        """Groups need two athletes."""
        with pytest.raises(ValidationError):
            ManualGroup(name="Group A", athlete_ids=["a01"])
