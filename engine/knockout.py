"""
Knockout round advancement.

Each bracket is a small state machine over its rounds:

    NOT_STARTED -> IN_PROGRESS <-> ROUND_COMPLETE -> FINISHED

When every match of the current round is complete the next round is
synthesized from its advancers (match winners plus bye athletes), pairing
position 2p against 2p+1. The main bracket's Final is accompanied by a
third-place match between the two semifinal losers.

Advancement re-scans the whole bracket on every call and never generates
a round that already exists.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from engine.championship import (
    Athlete,
    Bracket,
    Bye,
    Championship,
    ChampionshipStatus,
    KnockoutRound,
    Match,
    Phase,
    new_id,
)
from engine.exceptions import BracketError
from engine.rules import RulesEngine

logger = logging.getLogger(__name__)


class BracketState(enum.Enum):
    """Progress of one knockout bracket."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ROUND_COMPLETE = "round_complete"
    FINISHED = "finished"


@dataclass
class RoundProgress:
    """Completion of one generated round."""
    round: KnockoutRound
    label: str
    total: int
    completed: int
    byes: int = 0


@dataclass
class BracketSummary:
    """Read-only view of a bracket for reports."""
    bracket: Bracket
    state: BracketState
    rounds: list[RoundProgress] = field(default_factory=list)
    champion: Optional[Athlete] = None
    runner_up: Optional[Athlete] = None
    third_place: Optional[Athlete] = None


class KnockoutBracket:
    """
    Round progression for one bracket of a championship.

    Operates directly on the championship's knockout match and bye lists.
    """

    def __init__(self, championship: Championship, bracket: Bracket):
        self.championship = championship
        self.bracket = bracket
        self.best_of = championship.knockout_best_of

    @property
    def has_third_place(self) -> bool:
        return self.bracket == Bracket.MAIN and self.championship.has_third_place

    # ============ Queries ============

    def matches(self, knockout_round: Optional[KnockoutRound] = None) -> list[Match]:
        matches = self.championship.bracket_matches(self.bracket)
        if knockout_round is not None:
            matches = [m for m in matches if m.round == knockout_round]
        return sorted(matches, key=lambda m: m.position)

    def byes(self, knockout_round: KnockoutRound) -> list[Bye]:
        return [b for b in self.championship.bracket_byes(self.bracket) if b.round == knockout_round]

    def rounds(self) -> list[KnockoutRound]:
        """Generated rounds, earliest first; the third-place round is excluded."""
        present = {m.round for m in self.matches()} | {b.round for b in self.championship.bracket_byes(self.bracket)}
        present.discard(KnockoutRound.THIRD_PLACE)
        present.discard(None)
        return sorted(present, key=lambda r: r.depth, reverse=True)

    @property
    def current_round(self) -> Optional[KnockoutRound]:
        rounds = self.rounds()
        return rounds[-1] if rounds else None

    def is_round_complete(self, knockout_round: KnockoutRound) -> bool:
        return all(m.is_completed for m in self.matches(knockout_round))

    def third_place_match(self) -> Optional[Match]:
        matches = self.matches(KnockoutRound.THIRD_PLACE)
        return matches[0] if matches else None

    @property
    def state(self) -> BracketState:
        current = self.current_round
        if current is None:
            return BracketState.NOT_STARTED
        if not self.is_round_complete(current):
            return BracketState.IN_PROGRESS
        if current != KnockoutRound.FINAL:
            return BracketState.ROUND_COMPLETE

        third_place = self.third_place_match()
        if third_place is not None and not third_place.is_completed:
            return BracketState.IN_PROGRESS
        if self.has_third_place and third_place is None and self._third_place_pending():
            return BracketState.ROUND_COMPLETE
        return BracketState.FINISHED

    def winner(self, match: Match) -> Optional[str]:
        return RulesEngine.resolve_winner(match, self.best_of)

    def advancers(self, knockout_round: KnockoutRound) -> dict[int, str]:
        """Athlete id moving on from each position of a completed round."""
        advancing = {b.position: b.athlete_id for b in self.byes(knockout_round)}
        for match in self.matches(knockout_round):
            winner_id = self.winner(match)
            if winner_id:
                advancing[match.position] = winner_id
        return advancing

    def is_locked(self, match: Match) -> bool:
        """True once the match's round has fed a generated round."""
        if match.round is None:
            return False
        next_round = match.round.next_round
        if next_round is None:
            return False
        if self.matches(next_round) or self.byes(next_round):
            return True
        return match.round == KnockoutRound.SEMI_FINAL and self.third_place_match() is not None

    # ============ Advancement ============

    def advance(self) -> list[Match]:
        """
        Synthesize every round that is now due.

        Returns the newly created matches; an empty list when nothing
        changed.
        """
        created: list[Match] = []
        while self.state == BracketState.ROUND_COMPLETE:
            current = self.current_round
            if current == KnockoutRound.FINAL:
                third_place = self._generate_third_place()
                if third_place is None:
                    break
                created.append(third_place)
                continue

            new_matches, new_byes = self._generate_next_round(current)
            if not new_matches and not new_byes:
                logger.warning("No advancers from %s", current.label(self.bracket))
                break
            created.extend(new_matches)

            if current == KnockoutRound.SEMI_FINAL and self.has_third_place:
                third_place = self._generate_third_place()
                if third_place is not None:
                    created.append(third_place)

        return created

    def _athlete(self, athlete_id: str, source: list[Match]) -> Athlete:
        for match in source:
            if match.player1_id == athlete_id and match.player1:
                return match.player1
            if match.player2_id == athlete_id and match.player2:
                return match.player2
        return self.championship.get_athlete(athlete_id)

    def _new_match(self, athlete1: Athlete, athlete2: Athlete,
                   knockout_round: KnockoutRound, position: int) -> Match:
        return Match(
            id=new_id(),
            player1_id=athlete1.id,
            player2_id=athlete2.id,
            player1=athlete1,
            player2=athlete2,
            phase=Phase.KNOCKOUT,
            bracket=self.bracket,
            round=knockout_round,
            position=position,
        )

    def _generate_next_round(self, current: KnockoutRound) -> tuple[list[Match], list[Bye]]:
        """Pair the advancers of `current` into the following round."""
        next_round = current.next_round
        if next_round is None:
            raise BracketError(f"{current.label(self.bracket)} has no following round")

        advancing = self.advancers(current)
        source = self.matches(current)
        positions = 2 ** (next_round.depth - 1)
        matches, byes = [], []

        for position in range(positions):
            first = advancing.get(2 * position)
            second = advancing.get(2 * position + 1)
            if first and second:
                matches.append(self._new_match(
                    self._athlete(first, source), self._athlete(second, source), next_round, position
                ))
            elif first or second:
                byes.append(Bye(self.bracket, next_round, position, first or second))
                logger.info("Athlete %s receives a bye in %s", first or second, next_round.label(self.bracket))

        self.championship.knockout_matches.extend(matches)
        self.championship.byes.extend(byes)
        logger.info(
            "Generated %s: %d matches, %d byes",
            next_round.label(self.bracket), len(matches), len(byes),
        )
        return matches, byes

    def _semifinal_losers(self) -> list[str]:
        losers = []
        for match in self.matches(KnockoutRound.SEMI_FINAL):
            winner_id = self.winner(match)
            if match.is_completed and winner_id:
                losers.append(match.player2_id if winner_id == match.player1_id else match.player1_id)
        return losers

    def _third_place_pending(self) -> bool:
        semis = self.matches(KnockoutRound.SEMI_FINAL)
        return len(semis) == 2 and all(m.is_completed for m in semis)

    def _generate_third_place(self) -> Optional[Match]:
        """Pair the two semifinal losers; at most one third-place match exists."""
        if not self.has_third_place or self.third_place_match() is not None:
            return None

        losers = self._semifinal_losers()
        if len(losers) < 2:
            logger.warning("Third-place match skipped: %d semifinal losers", len(losers))
            return None

        source = self.matches(KnockoutRound.SEMI_FINAL)
        match = self._new_match(
            self._athlete(losers[0], source), self._athlete(losers[1], source),
            KnockoutRound.THIRD_PLACE, 0,
        )
        self.championship.knockout_matches.append(match)
        logger.info("Generated %s", match.round_label)
        return match

    # ============ Results ============

    def final_match(self) -> Optional[Match]:
        finals = self.matches(KnockoutRound.FINAL)
        return finals[0] if finals else None

    def champion_id(self) -> Optional[str]:
        final = self.final_match()
        if final is not None:
            return self.winner(final) if final.is_completed else None
        byes = self.byes(KnockoutRound.FINAL)
        return byes[0].athlete_id if byes else None

    def summary(self) -> BracketSummary:
        summary = BracketSummary(bracket=self.bracket, state=self.state)
        rounds = self.rounds()
        if self.third_place_match() is not None:
            rounds.append(KnockoutRound.THIRD_PLACE)

        for knockout_round in rounds:
            matches = self.matches(knockout_round)
            summary.rounds.append(RoundProgress(
                round=knockout_round,
                label=knockout_round.label(self.bracket),
                total=len(matches),
                completed=sum(1 for m in matches if m.is_completed),
                byes=len(self.byes(knockout_round)),
            ))

        final = self.final_match()
        champion_id = self.champion_id()
        if champion_id:
            summary.champion = self._athlete(champion_id, self.matches())
        if final is not None and final.is_completed and champion_id:
            runner_up_id = final.player2_id if champion_id == final.player1_id else final.player1_id
            summary.runner_up = self._athlete(runner_up_id, [final])

        third_place = self.third_place_match()
        if third_place is not None and third_place.is_completed:
            third_id = self.winner(third_place)
            if third_id:
                summary.third_place = self._athlete(third_id, [third_place])
        return summary


def check_and_generate_next_round(championship: Championship) -> list[Match]:
    """
    Advance every bracket and flip the championship to completed when due.

    Safe to call after every knockout result: rounds that already exist
    are never generated again.
    """
    created: list[Match] = []
    for bracket in Bracket:
        created.extend(KnockoutBracket(championship, bracket).advance())

    if created:
        championship.touch()
    check_completion(championship)
    return created


def check_completion(championship: Championship) -> bool:
    """Mark the championship completed once the main Final is decided."""
    if championship.status != ChampionshipStatus.KNOCKOUT:
        return championship.status == ChampionshipStatus.COMPLETED

    main = KnockoutBracket(championship, Bracket.MAIN)
    if main.champion_id() is None:
        return False

    championship.transition_to(ChampionshipStatus.COMPLETED)
    logger.info("Championship %s completed", championship.name)
    return True
