"""
Pydantic schemas for data validation.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import RULES
from engine.rules import RulesEngine


def _clean_name(v: str) -> str:
    if not v.strip():
        raise ValueError("Name cannot be empty")
    return v.strip()


# ============ Championship Schemas ============

class TournamentConfig(BaseModel):
    """Schema for creating a championship."""
    name: str = Field(..., min_length=1, max_length=200)
    date: date
    group_size: int = 4
    qualification_spots_per_group: int = Field(2, ge=1)
    groups_best_of: int = RULES.default_groups_best_of
    knockout_best_of: int = RULES.default_knockout_best_of
    has_third_place: bool = True
    has_repechage: bool = False

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("group_size")
    @classmethod
    def valid_group_size(cls, v: int) -> int:
        if v not in RULES.group_size_options:
            raise ValueError(
                f"Group size must be between {min(RULES.group_size_options)} "
                f"and {max(RULES.group_size_options)}"
            )
        return v

    @field_validator("groups_best_of")
    @classmethod
    def valid_groups_best_of(cls, v: int) -> int:
        if v not in RULES.groups_best_of_options:
            raise ValueError("Group matches must be best of 3 or 5")
        return v

    @field_validator("knockout_best_of")
    @classmethod
    def valid_knockout_best_of(cls, v: int) -> int:
        if v not in RULES.best_of_options:
            raise ValueError("Knockout matches must be best of 3, 5 or 7")
        return v

    @model_validator(mode="after")
    def spots_below_group_size(self) -> "TournamentConfig":
        if self.qualification_spots_per_group >= self.group_size:
            raise ValueError("Qualification spots must be fewer than the group size")
        return self


class ChampionshipSummary(BaseModel):
    """Schema for listing stored championships."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    event_date: date
    status: str
    total_athletes: int
    total_matches: int
    completed_matches: int
    updated_at: datetime


# ============ Athlete Schemas ============

class AthleteCreate(BaseModel):
    """Schema for registering an athlete."""
    name: str = Field(..., min_length=1, max_length=200)
    is_seeded: bool = False
    seed_number: Optional[int] = Field(None, ge=1, le=RULES.max_seeds)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return _clean_name(v)

    @model_validator(mode="after")
    def seed_number_matches_flag(self) -> "AthleteCreate":
        if self.is_seeded and self.seed_number is None:
            raise ValueError("Seeded athletes need a seed number")
        if not self.is_seeded and self.seed_number is not None:
            raise ValueError("Only seeded athletes can have a seed number")
        return self


class AthleteUpdate(BaseModel):
    """Schema for changing an athlete's name or seeding."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    is_seeded: Optional[bool] = None
    seed_number: Optional[int] = Field(None, ge=1, le=RULES.max_seeds)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v) if v is not None else v


# ============ Match Result Schemas ============

class SetScore(BaseModel):
    """Schema for one set score."""
    player1_score: int = Field(..., ge=0, le=RULES.max_set_score)
    player2_score: int = Field(..., ge=0, le=RULES.max_set_score)

    @model_validator(mode="after")
    def valid_set(self) -> "SetScore":
        valid, message = RulesEngine.validate_set(self.player1_score, self.player2_score)
        if not valid:
            raise ValueError(message)
        return self


class Timeouts(BaseModel):
    """Timeouts called in a match, one per player."""
    player1: bool = False
    player2: bool = False


class MatchResult(BaseModel):
    """
    Schema for submitting a match result.

    Replaces the match's previous sets, timeouts and walkover state.
    """
    match_id: str
    sets: list[SetScore] = Field(default_factory=list)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    is_walkover: bool = False
    walkover_winner_id: Optional[str] = None

    @model_validator(mode="after")
    def walkover_has_winner(self) -> "MatchResult":
        if self.is_walkover and not self.walkover_winner_id:
            raise ValueError("A walkover needs a winner")
        if not self.is_walkover and self.walkover_winner_id:
            raise ValueError("Only walkovers can name a walkover winner")
        return self


# ============ Group Schemas ============

class ManualGroup(BaseModel):
    """Schema for one manually assembled group."""
    name: str = Field(..., min_length=1, max_length=50)
    athlete_ids: list[str] = Field(..., min_length=RULES.min_group_members)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return _clean_name(v)
