"""
Rules Engine - Enforces table-tennis scoring rules.

Validates set scores (11 points, win by 2, deuce from 10-10), decides
match winners for best-of-N formats and checks championship settings
before a tournament is created.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from config import RULES
from engine.championship import KnockoutRound, Match, SetResult
from engine.exceptions import BracketError

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of a settings check: hard errors plus recommendations."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class RoundInfo:
    """One round of a bracket preview."""
    round: KnockoutRound
    matches: int


@dataclass(frozen=True)
class BracketStructure:
    """Shape of a knockout draw for a given number of qualifiers."""
    athletes: int
    size: int
    byes: int
    rounds: tuple[RoundInfo, ...]


@dataclass(frozen=True)
class SimulatedResult:
    """A randomly generated, rule-valid match result."""
    sets: list[SetResult]
    timeouts: tuple[bool, bool]


class RulesEngine:
    """
    Table-tennis rules.

    Every method is a pure function of its arguments; undecided matches
    return None rather than raising.
    """

    # ============ Sets ============

    @staticmethod
    def validate_set(player1_score: int, player2_score: int) -> tuple[bool, str]:
        """
        Validate a single set score.

        Returns:
            (is_valid, message); message is empty when the set is valid
        """
        if player1_score < 0 or player2_score < 0:
            return False, "Scores cannot be negative"
        if player1_score > RULES.max_set_score or player2_score > RULES.max_set_score:
            return False, f"Scores cannot exceed {RULES.max_set_score}"
        if player1_score == 0 and player2_score == 0:
            return False, "At least one point must be scored"

        high = max(player1_score, player2_score)
        low = min(player1_score, player2_score)
        diff = high - low

        if high < RULES.points_to_win:
            return False, f"Winner must reach at least {RULES.points_to_win} points"
        if diff < RULES.min_difference:
            return False, f"A set must be won by at least {RULES.min_difference} points"

        # Deuce: play continues until exactly two points apart
        if low >= RULES.deuce_threshold and diff != RULES.min_difference:
            return False, (
                f"From {RULES.deuce_threshold}-{RULES.deuce_threshold} the set ends "
                f"exactly {RULES.min_difference} points apart"
            )

        return True, ""

    @staticmethod
    def is_valid_set(set_result: SetResult) -> bool:
        """Check a set against the table-tennis validity rule."""
        valid, _ = RulesEngine.validate_set(set_result.player1_score, set_result.player2_score)
        return valid

    @staticmethod
    def set_winner(set_result: SetResult) -> Optional[str]:
        """
        Determine who took a set.

        Returns:
            "player1", "player2", or None for an invalid set
        """
        if not RulesEngine.is_valid_set(set_result):
            return None
        return "player1" if set_result.player1_score > set_result.player2_score else "player2"

    # ============ Matches ============

    @staticmethod
    def sets_to_win(best_of: int) -> int:
        """Sets needed to take a best-of-N match (3 -> 2, 5 -> 3, 7 -> 4)."""
        return math.ceil((best_of + 1) / 2)

    @staticmethod
    def count_sets(sets: Iterable[SetResult]) -> tuple[int, int]:
        """Tally valid sets won by each side; invalid sets are ignored."""
        p1_sets = p2_sets = 0
        for set_result in sets:
            winner = RulesEngine.set_winner(set_result)
            if winner == "player1":
                p1_sets += 1
            elif winner == "player2":
                p2_sets += 1
        return p1_sets, p2_sets

    @staticmethod
    def get_match_winner(sets: Sequence[SetResult], best_of: int,
                         player1_id: str, player2_id: str) -> Optional[str]:
        """
        Determine the match winner from its sets.

        Invalid sets are excluded from the tally. Returns the winning
        player's id, or None while the match is undecided.
        """
        needed = RulesEngine.sets_to_win(best_of)
        p1_sets, p2_sets = RulesEngine.count_sets(sets)

        if p1_sets >= needed:
            return player1_id
        if p2_sets >= needed:
            return player2_id
        return None

    @staticmethod
    def resolve_winner(match: Match, best_of: int) -> Optional[str]:
        """Winner of a match, honouring walkovers and stored winners."""
        if match.is_walkover:
            return match.walkover_winner_id
        if match.winner_id:
            return match.winner_id
        return RulesEngine.get_match_winner(match.sets, best_of, match.player1_id, match.player2_id)

    @staticmethod
    def validate_match_sets(sets: Sequence[SetResult], best_of: int) -> tuple[bool, str]:
        """
        Validate a submitted set list.

        Every set must be valid, and no set may follow the one that
        decided the match.
        """
        if best_of not in RULES.best_of_options:
            return False, f"Invalid match format: best of {best_of}"

        needed = RulesEngine.sets_to_win(best_of)
        p1_sets = p2_sets = 0
        for index, set_result in enumerate(sets, start=1):
            if p1_sets >= needed or p2_sets >= needed:
                return False, f"Set {index} was played after the match was decided"

            valid, message = RulesEngine.validate_set(
                set_result.player1_score, set_result.player2_score
            )
            if not valid:
                return False, f"Set {index}: {message}"

            if set_result.player1_score > set_result.player2_score:
                p1_sets += 1
            else:
                p2_sets += 1

        return True, ""

    # ============ Championship settings ============

    @staticmethod
    def projected_qualifiers(athlete_count: int, group_size: int, spots_per_group: int) -> int:
        """Number of athletes the group stage will send to the knockout."""
        if group_size <= 0:
            return 0
        return math.ceil(athlete_count / group_size) * spots_per_group

    @staticmethod
    def validate_championship_config(athlete_count: int, group_size: int,
                                     qualification_spots_per_group: int,
                                     groups_best_of: int, knockout_best_of: int,
                                     has_third_place: bool) -> ValidationReport:
        """Check championship settings; warnings flag non-recommended choices."""
        report = ValidationReport()

        if group_size not in RULES.group_size_options:
            report.errors.append(
                f"Groups must have between {min(RULES.group_size_options)} "
                f"and {max(RULES.group_size_options)} athletes"
            )
        if qualification_spots_per_group < 1:
            report.errors.append("At least one athlete must qualify per group")
        if qualification_spots_per_group >= group_size:
            report.errors.append("Qualification spots must be fewer than the group size")

        if groups_best_of not in RULES.groups_best_of_options:
            report.errors.append(
                "Invalid group format. Use best of "
                + ", ".join(str(n) for n in RULES.groups_best_of_options)
            )
        if knockout_best_of not in RULES.best_of_options:
            report.errors.append(
                "Invalid knockout format. Use best of "
                + ", ".join(str(n) for n in RULES.best_of_options)
            )

        if athlete_count:
            qualifiers = RulesEngine.projected_qualifiers(
                athlete_count, group_size, qualification_spots_per_group
            )
            if qualifiers < RULES.min_athletes_for_knockout:
                report.errors.append(
                    f"Settings qualify only {qualifiers} athletes; "
                    f"the knockout needs at least {RULES.min_athletes_for_knockout}"
                )

        if groups_best_of != RULES.default_groups_best_of:
            report.warnings.append(
                f"Best of {RULES.default_groups_best_of} is recommended for groups"
            )
        if knockout_best_of != RULES.default_knockout_best_of:
            report.warnings.append(
                f"Best of {RULES.default_knockout_best_of} is recommended for the knockout"
            )
        if not has_third_place:
            report.warnings.append("A third-place match is recommended")

        return report

    @staticmethod
    def recommended_seeds(athlete_count: int) -> int:
        """Recommended number of seeded athletes for a field size."""
        if athlete_count >= 32:
            return 8
        if athlete_count >= 16:
            return 4
        if athlete_count >= 8:
            return 2
        return 0

    @staticmethod
    def validate_seeding(athlete_count: int, seed_numbers: Sequence[Optional[int]]) -> ValidationReport:
        """
        Check the seed numbers of the seeded athletes.

        Seed numbers must be present, unique and dense from 1.
        """
        report = ValidationReport()
        seeded = len(seed_numbers)

        if seeded > RULES.max_seeds:
            report.errors.append(f"No more than {RULES.max_seeds} seeds are allowed")
        if seeded > athlete_count:
            report.errors.append("There cannot be more seeds than athletes")

        if any(n is None for n in seed_numbers):
            report.errors.append("Every seeded athlete needs a seed number")
        numbers = [n for n in seed_numbers if n is not None]
        if len(numbers) != len(set(numbers)):
            report.errors.append("Seed numbers must be unique")
        elif numbers and sorted(numbers) != list(range(1, len(numbers) + 1)):
            report.errors.append(f"Seed numbers must run from 1 to {len(numbers)} without gaps")

        recommended = RulesEngine.recommended_seeds(athlete_count)
        if recommended and seeded != recommended:
            report.warnings.append(
                f"{recommended} seeds are recommended for {athlete_count} athletes (currently {seeded})"
            )

        return report

    # ============ Brackets ============

    @staticmethod
    def bracket_size(count: int, minimum: int = RULES.min_main_bracket_size) -> int:
        """Smallest power of two holding `count` athletes, never below `minimum`."""
        size = minimum
        while size < count:
            size *= 2
        return size

    @staticmethod
    def round_for_size(size: int) -> KnockoutRound:
        """First-round name for a bracket of `size` slots."""
        depth = int(math.log2(size))
        knockout_round = KnockoutRound.for_depth(depth)
        if knockout_round is None:
            raise BracketError(f"Bracket of {size} athletes is larger than the supported draw")
        return knockout_round

    @staticmethod
    def bracket_structure(athlete_count: int) -> BracketStructure:
        """Preview the rounds a main draw of `athlete_count` qualifiers will play."""
        size = RulesEngine.bracket_size(athlete_count)
        rounds = []
        knockout_round = RulesEngine.round_for_size(size)
        matches = size // 2
        while knockout_round is not None:
            rounds.append(RoundInfo(knockout_round, matches))
            knockout_round = knockout_round.next_round
            matches //= 2
        return BracketStructure(
            athletes=athlete_count,
            size=size,
            byes=max(size - athlete_count, 0),
            rounds=tuple(rounds),
        )

    @staticmethod
    def validate_knockout_matches(matches: Sequence[Match]) -> list[str]:
        """
        Report structural problems in a list of knockout matches.

        Returns a list of messages; an empty list means the draw is sound.
        """
        problems = []
        scheduled: dict[tuple, set[str]] = {}

        for match in matches:
            if not match.player1_id or not match.player2_id:
                problems.append(f"Match {match.id}: players not defined")
                continue
            if match.player1_id == match.player2_id:
                problems.append(f"Match {match.id}: athlete cannot play against themselves")
                continue

            key = (match.bracket, match.round)
            seen = scheduled.setdefault(key, set())
            for player_id in (match.player1_id, match.player2_id):
                if player_id in seen:
                    problems.append(
                        f"Match {match.id}: athlete {player_id} is scheduled twice in {match.round_label}"
                    )
                seen.add(player_id)

            if match.is_walkover and match.walkover_winner_id not in (match.player1_id, match.player2_id):
                problems.append(f"Match {match.id}: walkover winner is not one of the players")
            if match.winner_id and not match.involves(match.winner_id):
                problems.append(f"Match {match.id}: winner is not one of the players")

        return problems

    # ============ Simulation ============

    @staticmethod
    def random_set(player1_wins: bool, rng: random.Random) -> SetResult:
        """A random valid set won by the given side; about one in five goes to deuce."""
        if rng.random() > 0.8:
            extra = rng.randint(1, 3)
            winner, loser = 11 + extra, 9 + extra
        else:
            winner, loser = 11, rng.randint(0, 9)
        if player1_wins:
            return SetResult(winner, loser)
        return SetResult(loser, winner)

    @staticmethod
    def random_match_result(best_of: int, rng: Optional[random.Random] = None) -> SimulatedResult:
        """Generate a complete, rule-valid match result."""
        rng = rng or random.Random()
        needed = RulesEngine.sets_to_win(best_of)
        sets = []
        p1_sets = p2_sets = 0

        while p1_sets < needed and p2_sets < needed:
            player1_wins = rng.random() > 0.5
            sets.append(RulesEngine.random_set(player1_wins, rng))
            if player1_wins:
                p1_sets += 1
            else:
                p2_sets += 1

        timeouts = (rng.random() > 0.7, rng.random() > 0.7)
        return SimulatedResult(sets=sets, timeouts=timeouts)
