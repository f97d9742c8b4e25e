"""
Shared fixtures and builders for the test suite.
"""

import os
from datetime import date

import pytest

# Signals are emitted without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from engine.championship import Athlete, Championship, Match, SetResult  # noqa: E402


def make_athletes(count: int, seeds: int = 0) -> list[Athlete]:
    """Athletes a01..aNN; the first `seeds` are seeded 1..seeds."""
    return [
        Athlete(
            id=f"a{i:02d}",
            name=f"Athlete {i:02d}",
            is_seeded=i <= seeds,
            seed_number=i if i <= seeds else None,
        )
        for i in range(1, count + 1)
    ]


def make_championship(**overrides) -> Championship:
    settings = {
        "id": "champ-1",
        "name": "Open Cup",
        "date": date(2026, 5, 10),
        "group_size": 4,
        "qualification_spots_per_group": 2,
        "groups_best_of": 5,
        "knockout_best_of": 5,
        "has_third_place": True,
        "has_repechage": False,
    }
    settings.update(overrides)
    return Championship(**settings)


def straight_sets(player1_wins: bool = True, sets_to_win: int = 3) -> list[SetResult]:
    """A clean sweep, e.g. 11-5 11-5 11-5."""
    if player1_wins:
        return [SetResult(11, 5) for _ in range(sets_to_win)]
    return [SetResult(5, 11) for _ in range(sets_to_win)]


def complete(match: Match, winner_id: str, sets_to_win: int = 3) -> Match:
    """Mark a match won by `winner_id` in straight sets."""
    match.sets = straight_sets(winner_id == match.player1_id, sets_to_win)
    match.winner_id = winner_id
    match.is_completed = True
    return match


@pytest.fixture
def athletes():
    return make_athletes(8)


@pytest.fixture
def championship():
    return make_championship()
