"""
Championship Service - the mutation API over one championship.

Every change to a championship goes through this object: roster edits,
group generation, result submission, knockout generation and reset.
Input is validated before anything is mutated, so a rejected call leaves
the aggregate untouched.
"""

import functools
import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from pydantic import ValidationError
from PySide6.QtCore import QObject, Signal

from engine import knockout, seeding
from engine.championship import (
    Athlete,
    Bracket,
    Championship,
    ChampionshipStatus,
    Match,
    Phase,
    SetResult,
    TimeoutsUsed,
    new_id,
)
from engine.exceptions import (
    BracketError,
    ChampionshipStateError,
    ChampionshipValidationError,
    FieldError,
)
from engine.knockout import BracketSummary, KnockoutBracket
from engine.rules import RulesEngine, ValidationReport
from engine.standings import calculate_group_standings
from models.schemas import AthleteCreate, AthleteUpdate, ManualGroup, MatchResult, TournamentConfig
from services.event_bus import EventBus

logger = logging.getLogger(__name__)


def _parse(schema, data):
    """Validate raw input against a schema, raising the engine's validation error."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ChampionshipValidationError.from_pydantic(e) from e


def _mutation(method):
    """Run a mutating method under the championship lock and stamp the change."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            result = method(self, *args, **kwargs)
            self.championship.touch()
            self.championship_updated.emit()
            if self.event_bus:
                self.event_bus.championship_updated.emit(self.championship.id)
            return result
    return wrapper


@dataclass
class TournamentStats:
    """Progress counters for a championship."""
    total_athletes: int
    total_matches: int
    completed_matches: int
    completion_percentage: float
    total_groups: int
    groups_completed: int
    groups_phase_complete: bool
    knockout_phase_started: bool
    group_matches: int
    group_matches_completed: int
    knockout_matches: int
    knockout_matches_completed: int
    main_knockout_matches: int
    second_division_matches: int


class ChampionshipService(QObject):
    """
    Owns one championship and applies every mutation to it.

    Signals are emitted after a mutation has been fully applied; the
    optional EventBus receives the same notifications.
    """

    # Signals
    championship_updated = Signal()
    status_changed = Signal(str)            # new status
    match_completed = Signal(dict)          # match dict
    standings_updated = Signal(str)         # group_id
    round_generated = Signal(list)          # [match dict, ...]
    championship_completed = Signal(str)    # championship_id

    def __init__(self, championship: Championship, event_bus: Optional[EventBus] = None,
                 rng: Optional[random.Random] = None):
        super().__init__()
        self.championship = championship
        self.event_bus = event_bus
        self.rng = rng or random.Random()
        self._lock = threading.RLock()

    @classmethod
    def create(cls, config: Union[TournamentConfig, dict], event_bus: Optional[EventBus] = None,
               rng: Optional[random.Random] = None) -> "ChampionshipService":
        """Create a new championship from its settings."""
        config = _parse(TournamentConfig, config)
        championship = Championship(
            id=new_id(),
            name=config.name,
            date=config.date,
            group_size=config.group_size,
            qualification_spots_per_group=config.qualification_spots_per_group,
            groups_best_of=config.groups_best_of,
            knockout_best_of=config.knockout_best_of,
            has_third_place=config.has_third_place,
            has_repechage=config.has_repechage,
        )
        logger.info("Created championship %s (%s)", championship.name, championship.id)

        service = cls(championship, event_bus=event_bus, rng=rng)
        if event_bus:
            event_bus.championship_created.emit(championship.to_dict())
        return service

    def snapshot(self) -> dict:
        """Read-only snapshot of the whole aggregate."""
        return self.championship.to_dict()

    # ============ Status ============

    def _require_status(self, *allowed: ChampionshipStatus) -> None:
        if self.championship.status not in allowed:
            raise ChampionshipStateError(
                f"Not allowed while the championship is {self.championship.status.value}"
            )

    def _advance_status(self, new_status: ChampionshipStatus) -> None:
        self.championship.transition_to(new_status)
        self._emit_status()

    def _emit_status(self) -> None:
        status = self.championship.status.value
        logger.info("Championship %s is now %s", self.championship.name, status)
        self.status_changed.emit(status)
        if self.event_bus:
            self.event_bus.status_changed.emit(self.championship.id, status)

        if self.championship.status == ChampionshipStatus.COMPLETED:
            self.championship_completed.emit(self.championship.id)
            if self.event_bus:
                self.event_bus.championship_completed.emit(self.championship.id)

    def validate_config(self) -> ValidationReport:
        """Check the settings against the current roster size."""
        c = self.championship
        return RulesEngine.validate_championship_config(
            athlete_count=c.total_athletes,
            group_size=c.group_size,
            qualification_spots_per_group=c.qualification_spots_per_group,
            groups_best_of=c.groups_best_of,
            knockout_best_of=c.knockout_best_of,
            has_third_place=c.has_third_place,
        )

    def validate_seeding(self) -> ValidationReport:
        seeded = [a for a in self.championship.athletes if a.is_seeded]
        return RulesEngine.validate_seeding(
            self.championship.total_athletes, [a.seed_number for a in seeded]
        )

    # ============ Roster ============

    def _check_seed_available(self, seed_number: Optional[int], exclude_id: Optional[str] = None) -> None:
        if seed_number is None:
            return
        for athlete in self.championship.athletes:
            if athlete.id != exclude_id and athlete.is_seeded and athlete.seed_number == seed_number:
                raise ChampionshipValidationError.single(
                    "seed_number", f"Seed {seed_number} is already taken by {athlete.name}"
                )

    def _assigned_ids(self) -> set[str]:
        return {a.id for g in self.championship.groups for a in g.athletes}

    def unassigned_athletes(self) -> list[Athlete]:
        """Athletes registered after the groups were drawn."""
        assigned = self._assigned_ids()
        return [a for a in self.championship.athletes if a.id not in assigned]

    @_mutation
    def add_athlete(self, data: Union[AthleteCreate, dict]) -> Athlete:
        """Register an athlete; late registrations are allowed during the group stage."""
        data = _parse(AthleteCreate, data)
        self._require_status(ChampionshipStatus.CREATED, ChampionshipStatus.GROUPS)
        self._check_seed_available(data.seed_number)

        athlete = Athlete(
            id=new_id(),
            name=data.name,
            is_seeded=data.is_seeded,
            seed_number=data.seed_number,
        )
        self.championship.athletes.append(athlete)
        logger.info("Added athlete %s", athlete.name)

        if self.event_bus:
            self.event_bus.athlete_added.emit(athlete.to_dict())
        return athlete

    @_mutation
    def update_athlete(self, athlete_id: str, data: Union[AthleteUpdate, dict]) -> Athlete:
        """Change an athlete's name or seeding."""
        data = _parse(AthleteUpdate, data)
        athlete = self.championship.get_athlete(athlete_id)

        name = data.name if data.name is not None else athlete.name
        is_seeded = data.is_seeded if data.is_seeded is not None else athlete.is_seeded
        if data.seed_number is not None:
            seed_number = data.seed_number
        else:
            seed_number = athlete.seed_number if is_seeded else None

        if is_seeded and seed_number is None:
            raise ChampionshipValidationError.single("seed_number", "Seeded athletes need a seed number")
        if not is_seeded and data.seed_number is not None:
            raise ChampionshipValidationError.single(
                "seed_number", "Only seeded athletes can have a seed number"
            )
        if (is_seeded != athlete.is_seeded or seed_number != athlete.seed_number) \
                and self.championship.status != ChampionshipStatus.CREATED:
            raise ChampionshipStateError("Seeding cannot change once groups are drawn")
        self._check_seed_available(seed_number if is_seeded else None, exclude_id=athlete.id)

        athlete.name = name
        athlete.is_seeded = is_seeded
        athlete.seed_number = seed_number if is_seeded else None
        self._refresh_athlete_references(athlete)
        logger.info("Updated athlete %s", athlete.name)

        if self.event_bus:
            self.event_bus.athlete_updated.emit(athlete.to_dict())
        return athlete

    def _refresh_athlete_references(self, athlete: Athlete) -> None:
        """Point group members, match snapshots and standings at the updated athlete."""
        for group in self.championship.groups:
            group.athletes = [athlete if a.id == athlete.id else a for a in group.athletes]
            for standing in group.standings:
                if standing.athlete_id == athlete.id:
                    standing.athlete = athlete
        for match in self.championship.all_matches():
            if match.player1_id == athlete.id:
                match.player1 = athlete
            if match.player2_id == athlete.id:
                match.player2 = athlete

    @_mutation
    def remove_athlete(self, athlete_id: str) -> None:
        """Remove an athlete who has not been drawn into a group."""
        athlete = self.championship.get_athlete(athlete_id)
        if athlete.id in self._assigned_ids():
            raise ChampionshipStateError(f"{athlete.name} is already in a group")
        self._require_status(ChampionshipStatus.CREATED, ChampionshipStatus.GROUPS)

        self.championship.athletes.remove(athlete)
        logger.info("Removed athlete %s", athlete.name)

        if self.event_bus:
            self.event_bus.athlete_removed.emit(athlete.id)

    # ============ Groups ============

    def _check_ready_for_groups(self) -> None:
        self._require_status(ChampionshipStatus.CREATED)
        errors = self.validate_config().errors + self.validate_seeding().errors
        if errors:
            raise ChampionshipValidationError([FieldError("", e) for e in errors])

    def _start_groups(self, groups) -> None:
        self.championship.groups = groups
        for group in groups:
            self._recalculate_group(group)
        self._advance_status(ChampionshipStatus.GROUPS)
        if self.event_bus:
            self.event_bus.groups_generated.emit(len(groups))

    @_mutation
    def generate_groups(self) -> list:
        """Draw the roster into groups and schedule every group match."""
        self._check_ready_for_groups()
        groups = seeding.generate_groups(
            self.championship.athletes,
            self.championship.group_size,
            self.championship.qualification_spots_per_group,
        )
        self._start_groups(groups)
        return groups

    @_mutation
    def create_manual_groups(self, groups: Sequence[Union[ManualGroup, dict]]) -> list:
        """Accept an explicit athlete-to-group assignment."""
        manual = [_parse(ManualGroup, g) for g in groups]
        self._check_ready_for_groups()
        built = seeding.create_manual_groups(
            self.championship.athletes,
            [(g.name, g.athlete_ids) for g in manual],
            self.championship.qualification_spots_per_group,
        )
        self._start_groups(built)
        return built

    @_mutation
    def distribute_remaining_athletes(self) -> list:
        """Spread late registrations over the existing groups."""
        self._require_status(ChampionshipStatus.GROUPS)
        remaining = self.unassigned_athletes()
        if not remaining:
            raise ChampionshipValidationError.single("athletes", "Every athlete already has a group")
        if len(remaining) >= 3:
            raise ChampionshipValidationError.single(
                "athletes", f"{len(remaining)} unassigned athletes are too many to distribute"
            )

        changed = seeding.distribute_remaining_athletes(self.championship.groups, remaining, self.rng)
        for group in changed:
            self._recalculate_group(group)
        return changed

    def _recalculate_group(self, group) -> None:
        group.standings = calculate_group_standings(group, self.championship.groups_best_of)
        was_completed = group.is_completed
        group.refresh_completion()

        self.standings_updated.emit(group.id)
        if self.event_bus:
            self.event_bus.standings_updated.emit(group.id)
            if group.is_completed and not was_completed:
                self.event_bus.group_completed.emit(group.id)

    # ============ Results ============

    def _check_editable(self, match: Match) -> None:
        status = self.championship.status
        if match.phase == Phase.GROUPS:
            if status != ChampionshipStatus.GROUPS:
                raise ChampionshipStateError("Group results are closed")
            return

        self._require_status(ChampionshipStatus.KNOCKOUT, ChampionshipStatus.COMPLETED)
        bracket = KnockoutBracket(self.championship, match.bracket)
        if match.is_completed and bracket.is_locked(match):
            raise BracketError(f"{match.round_label} result is locked: the next round is already drawn")
        if status == ChampionshipStatus.COMPLETED and match.bracket == Bracket.MAIN \
                and not match.is_third_place:
            raise ChampionshipStateError("The main bracket is already decided")

    def _validate_result(self, match: Match, result: MatchResult) -> list[SetResult]:
        if result.is_walkover:
            if not match.involves(result.walkover_winner_id):
                raise ChampionshipValidationError.single(
                    "walkover_winner_id", "The walkover winner must be one of the players"
                )
            return []

        sets = [SetResult(s.player1_score, s.player2_score) for s in result.sets]
        valid, message = RulesEngine.validate_match_sets(sets, self.championship.best_of_for(match))
        if not valid:
            raise ChampionshipValidationError.single("sets", message)
        return sets

    @_mutation
    def update_match_result(self, result: Union[MatchResult, dict]) -> Match:
        """
        Replace a match's result.

        Sets, timeouts and walkover state are overwritten together. A
        partial set list leaves the match in progress.
        """
        result = _parse(MatchResult, result)
        match = self.championship.find_match(result.match_id)
        if not match.is_valid:
            raise ChampionshipValidationError.single("match_id", "An athlete cannot play against themselves")
        self._check_editable(match)
        sets = self._validate_result(match, result)

        match.sets = sets
        match.is_walkover = result.is_walkover
        match.walkover_winner_id = result.walkover_winner_id if result.is_walkover else None
        match.timeouts_used = TimeoutsUsed(result.timeouts.player1, result.timeouts.player2)
        match.winner_id = None
        match.winner_id = RulesEngine.resolve_winner(match, self.championship.best_of_for(match))
        match.is_completed = match.winner_id is not None
        match.completed_at = datetime.now(timezone.utc) if match.is_completed else None
        logger.info(
            "Result for match %s: %s (%s)",
            match.id, "walkover" if match.is_walkover else f"{len(sets)} sets",
            "completed" if match.is_completed else "in progress",
        )

        if match.phase == Phase.GROUPS:
            self._recalculate_group(self.championship.find_group(match))
        else:
            self._advance_knockout()

        if match.is_completed:
            self.match_completed.emit(match.to_dict())
        if self.event_bus:
            self.event_bus.emit_match(match)
        return match

    def set_walkover(self, match_id: str, winner_id: str) -> Match:
        """Award a match without play."""
        return self.update_match_result({
            "match_id": match_id, "is_walkover": True, "walkover_winner_id": winner_id,
        })

    def fill_groups_with_random_results(self, rng: Optional[random.Random] = None) -> int:
        """Complete every open group match with a random valid result."""
        rng = rng or self.rng
        filled = 0
        with self._lock:
            self._require_status(ChampionshipStatus.GROUPS)
            for match in self.championship.group_matches():
                if match.is_completed or not match.is_valid:
                    continue
                simulated = RulesEngine.random_match_result(self.championship.groups_best_of, rng)
                self.update_match_result(MatchResult(
                    match_id=match.id,
                    sets=[{"player1_score": s.player1_score, "player2_score": s.player2_score}
                          for s in simulated.sets],
                    timeouts={"player1": simulated.timeouts[0], "player2": simulated.timeouts[1]},
                ))
                filled += 1
        logger.info("Filled %d group matches with random results", filled)
        return filled

    # ============ Knockout ============

    def qualified_athletes(self) -> list[Athlete]:
        """Qualifiers in draw order."""
        return seeding.order_qualifiers(self.championship.groups)

    def eliminated_athletes(self) -> list[Athlete]:
        return seeding.eliminated_athletes(self.championship.groups)

    def can_generate_knockout(self) -> bool:
        return (
            self.championship.status == ChampionshipStatus.GROUPS
            and self.championship.is_group_stage_complete
            and not self.unassigned_athletes()
        )

    @_mutation
    def generate_knockout(self) -> list[Match]:
        """Draw the main bracket (and the second division when enabled)."""
        self._require_status(ChampionshipStatus.GROUPS)
        if not self.championship.is_group_stage_complete:
            raise ChampionshipStateError("Every group match must be completed first")
        if self.unassigned_athletes():
            raise ChampionshipStateError("Some athletes have not been placed in a group")

        main_matches, main_byes = seeding.generate_main_knockout_matches(self.qualified_athletes())
        matches, byes = list(main_matches), list(main_byes)
        if self.championship.has_repechage:
            second_matches, second_byes = seeding.generate_second_division_matches(
                self.eliminated_athletes(), self.rng
            )
            matches.extend(second_matches)
            byes.extend(second_byes)

        self.championship.knockout_matches.extend(matches)
        self.championship.byes.extend(byes)
        self._advance_status(ChampionshipStatus.KNOCKOUT)
        if self.event_bus:
            self.event_bus.knockout_generated.emit(len(matches))

        self._advance_knockout()
        return matches

    def _advance_knockout(self) -> None:
        previous = self.championship.status
        created = knockout.check_and_generate_next_round(self.championship)
        if created:
            payload = [m.to_dict() for m in created]
            self.round_generated.emit(payload)
            if self.event_bus:
                self.event_bus.round_generated.emit(payload)
        if self.championship.status != previous:
            self._emit_status()

    def bracket_summary(self, bracket: Bracket = Bracket.MAIN) -> BracketSummary:
        return KnockoutBracket(self.championship, bracket).summary()

    def validate_knockout(self) -> list[str]:
        return RulesEngine.validate_knockout_matches(self.championship.knockout_matches)

    # ============ Reports ============

    def statistics(self) -> TournamentStats:
        c = self.championship
        group_matches = [m for m in c.group_matches() if m.is_valid]
        knockout_matches = [m for m in c.knockout_matches if m.is_valid]
        total = c.total_matches
        completed = c.completed_matches

        return TournamentStats(
            total_athletes=c.total_athletes,
            total_matches=total,
            completed_matches=completed,
            completion_percentage=round(completed / total * 100, 1) if total else 0.0,
            total_groups=len(c.groups),
            groups_completed=sum(1 for g in c.groups if g.is_completed),
            groups_phase_complete=c.is_group_stage_complete,
            knockout_phase_started=bool(knockout_matches),
            group_matches=len(group_matches),
            group_matches_completed=sum(1 for m in group_matches if m.is_completed),
            knockout_matches=len(knockout_matches),
            knockout_matches_completed=sum(1 for m in knockout_matches if m.is_completed),
            main_knockout_matches=sum(1 for m in knockout_matches if m.bracket == Bracket.MAIN),
            second_division_matches=sum(
                1 for m in knockout_matches if m.bracket == Bracket.SECOND_DIVISION
            ),
        )

    # ============ Reset ============

    @_mutation
    def reset(self) -> None:
        """Wipe groups and brackets; roster and settings are kept."""
        self.championship.reset()
        logger.info("Championship %s reset", self.championship.name)
        self.status_changed.emit(self.championship.status.value)
        if self.event_bus:
            self.event_bus.championship_reset.emit(self.championship.id)
