"""
TopSpin Tournament Engine

Core tournament logic: rules, standings, seeding and knockout progression.
This module contains no GUI or database dependencies.
"""

from engine.championship import (
    Athlete,
    Bracket,
    Bye,
    Championship,
    ChampionshipStatus,
    Group,
    GroupStanding,
    KnockoutRound,
    Match,
    Phase,
    SetResult,
)
from engine.exceptions import (
    BracketError,
    ChampionshipNotFoundError,
    ChampionshipStateError,
    ChampionshipValidationError,
    MatchNotFoundError,
    TournamentError,
)
from engine.knockout import KnockoutBracket, check_and_generate_next_round
from engine.rules import RulesEngine
from engine.standings import calculate_group_standings

__all__ = [
    "Athlete",
    "Bracket",
    "Bye",
    "Championship",
    "ChampionshipStatus",
    "Group",
    "GroupStanding",
    "KnockoutRound",
    "Match",
    "Phase",
    "SetResult",
    "BracketError",
    "ChampionshipNotFoundError",
    "ChampionshipStateError",
    "ChampionshipValidationError",
    "MatchNotFoundError",
    "TournamentError",
    "KnockoutBracket",
    "check_and_generate_next_round",
    "RulesEngine",
    "calculate_group_standings",
]
