"""
Group standings.

Standings are derived state: they are rebuilt from the group's completed
matches on every call, never patched incrementally.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config import RULES
from engine.championship import Group, GroupStanding, Match
from engine.rules import RulesEngine

logger = logging.getLogger(__name__)


@dataclass
class HeadToHeadRecord:
    """Results of one athlete against a set of rivals."""
    wins: int = 0
    sets_diff: int = 0
    points_diff: int = 0


def _match_winner(match: Match, best_of: int) -> Optional[str]:
    return RulesEngine.resolve_winner(match, best_of)


def _set_totals(match: Match) -> tuple[int, int, int, int]:
    """Sets and rally points won by (player1, player2) over all valid sets."""
    p1_sets, p2_sets = RulesEngine.count_sets(match.sets)
    p1_points = sum(s.player1_score for s in match.sets)
    p2_points = sum(s.player2_score for s in match.sets)
    return p1_sets, p2_sets, p1_points, p2_points


def calculate_group_standings(group: Group, best_of: int = RULES.default_groups_best_of) -> list[GroupStanding]:
    """
    Compute ranked standings for a group.

    Tiebreaker order:
    1. League points (desc)
    2. Sets difference (desc)
    3. Rally points difference (desc)
    4. Head-to-head among the athletes still tied: wins, then sets
       difference, then points difference
    5. Name (asc)
    """
    standings = {a.id: GroupStanding(athlete_id=a.id, athlete=a) for a in group.athletes}
    completed = [m for m in group.matches if m.is_completed and m.is_valid]

    for match in completed:
        winner_id = _match_winner(match, best_of)
        home = standings.get(match.player1_id)
        away = standings.get(match.player2_id)
        if home is None or away is None or winner_id is None:
            logger.warning("Skipping match %s: players or winner not in group %s", match.id, group.name)
            continue

        home.matches += 1
        away.matches += 1
        winner, loser = (home, away) if winner_id == match.player1_id else (away, home)
        winner.wins += 1
        winner.points += RULES.points_for_win
        loser.losses += 1
        loser.points += RULES.points_for_loss

        if not match.is_walkover:
            p1_sets, p2_sets, p1_points, p2_points = _set_totals(match)
            home.sets_won += p1_sets
            home.sets_lost += p2_sets
            away.sets_won += p2_sets
            away.sets_lost += p1_sets
            home.points_won += p1_points
            home.points_lost += p2_points
            away.points_won += p2_points
            away.points_lost += p1_points

    ranked = sorted(
        standings.values(),
        key=lambda s: (-s.points, -s.sets_diff, -s.points_diff, s.athlete.name),
    )
    ranked = _apply_head_to_head_tiebreakers(ranked, completed, best_of)

    for position, standing in enumerate(ranked, start=1):
        standing.position = position
        standing.qualified = position <= group.qualification_spots

    return ranked


def _primary_key(standing: GroupStanding) -> tuple[int, int, int]:
    return standing.points, standing.sets_diff, standing.points_diff


def _apply_head_to_head_tiebreakers(standings: list[GroupStanding], matches: list[Match],
                                    best_of: int) -> list[GroupStanding]:
    """Re-order runs of athletes level on every overall criterion."""
    if len(standings) <= 1:
        return standings

    result = []
    i = 0
    while i < len(standings):
        tied = [standings[i]]
        j = i + 1
        while j < len(standings) and _primary_key(standings[j]) == _primary_key(standings[i]):
            tied.append(standings[j])
            j += 1

        if len(tied) == 1:
            result.append(tied[0])
        else:
            result.extend(_sort_by_head_to_head(tied, matches, best_of))
        i = j

    return result


def head_to_head(athlete_id: str, rival_ids: set[str], matches: list[Match],
                 best_of: int) -> HeadToHeadRecord:
    """Aggregate an athlete's completed results against the given rivals."""
    record = HeadToHeadRecord()
    for match in matches:
        if not match.involves(athlete_id):
            continue
        opponent = match.player2_id if match.player1_id == athlete_id else match.player1_id
        if opponent not in rival_ids:
            continue

        if _match_winner(match, best_of) == athlete_id:
            record.wins += 1
        if match.is_walkover:
            continue

        p1_sets, p2_sets, p1_points, p2_points = _set_totals(match)
        sign = 1 if match.player1_id == athlete_id else -1
        record.sets_diff += sign * (p1_sets - p2_sets)
        record.points_diff += sign * (p1_points - p2_points)
    return record


def _sort_by_head_to_head(tied: list[GroupStanding], matches: list[Match],
                          best_of: int) -> list[GroupStanding]:
    """Sort tied athletes by their results among themselves, then by name."""
    tied_ids = {s.athlete_id for s in tied}
    records = {
        s.athlete_id: head_to_head(s.athlete_id, tied_ids - {s.athlete_id}, matches, best_of)
        for s in tied
    }
    logger.debug("Head-to-head tiebreak between %s", sorted(s.athlete.name for s in tied))

    return sorted(
        tied,
        key=lambda s: (
            -records[s.athlete_id].wins,
            -records[s.athlete_id].sets_diff,
            -records[s.athlete_id].points_diff,
            s.athlete.name,
        ),
    )
