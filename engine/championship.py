"""
Championship aggregate state.

The entity graph every other engine module reads and writes:
Championship -> Groups -> Matches, plus the knockout match list and the
byes recorded for each bracket. Knockout matches live in their own
collection and are told apart by a typed bracket/round discriminator.

Status progresses forward only:
created -> groups -> knockout -> completed
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from engine.exceptions import (
    AthleteNotFoundError,
    ChampionshipStateError,
    MatchNotFoundError,
)


def new_id() -> str:
    """Generate a unique entity identifier."""
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ChampionshipStatus(enum.Enum):
    """Championship lifecycle states."""
    CREATED = "created"
    GROUPS = "groups"
    KNOCKOUT = "knockout"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        return list(ChampionshipStatus).index(self)


class Phase(enum.Enum):
    """Competition phase a match belongs to."""
    GROUPS = "groups"
    KNOCKOUT = "knockout"


class Bracket(enum.Enum):
    """Knockout brackets sharing the knockout match list."""
    MAIN = "main"
    SECOND_DIVISION = "second_division"

    @property
    def suffix(self) -> str:
        """Display suffix appended to round names."""
        return " 2ª Div" if self == Bracket.SECOND_DIVISION else ""


class KnockoutRound(enum.Enum):
    """Knockout rounds, named by the CBTM convention."""
    ROUND_OF_128 = "Sessenta-e-quatro-avos"
    ROUND_OF_64 = "Trinta-e-dois-avos"
    ROUND_OF_32 = "Décimo-sextos"
    ROUND_OF_16 = "Oitavas"
    QUARTER_FINAL = "Quartas"
    SEMI_FINAL = "Semifinal"
    FINAL = "Final"
    THIRD_PLACE = "3º Lugar"

    @property
    def depth(self) -> int:
        """Rounds left including this one (Final = 1); third place shares the Final's depth."""
        return _ROUND_DEPTHS[self]

    @property
    def next_round(self) -> Optional["KnockoutRound"]:
        """Round fed by this round's winners, or None after the Final."""
        if self in (KnockoutRound.FINAL, KnockoutRound.THIRD_PLACE):
            return None
        return KnockoutRound.for_depth(self.depth - 1)

    @classmethod
    def for_depth(cls, depth: int) -> Optional["KnockoutRound"]:
        """Round name for log2(bracket size); None if outside the name table."""
        for knockout_round, round_depth in _ROUND_DEPTHS.items():
            if round_depth == depth and knockout_round != cls.THIRD_PLACE:
                return knockout_round
        return None

    def label(self, bracket: "Bracket" = Bracket.MAIN) -> str:
        """Display name, e.g. "Oitavas 2ª Div"."""
        return f"{self.value}{bracket.suffix}"


_ROUND_DEPTHS = {
    KnockoutRound.ROUND_OF_128: 7,
    KnockoutRound.ROUND_OF_64: 6,
    KnockoutRound.ROUND_OF_32: 5,
    KnockoutRound.ROUND_OF_16: 4,
    KnockoutRound.QUARTER_FINAL: 3,
    KnockoutRound.SEMI_FINAL: 2,
    KnockoutRound.FINAL: 1,
    KnockoutRound.THIRD_PLACE: 1,
}


@dataclass
class Athlete:
    """A registered athlete."""
    id: str
    name: str
    is_seeded: bool = False
    seed_number: Optional[int] = None  # 1-based, dense among seeded athletes
    is_virtual: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_seeded": self.is_seeded,
            "seed_number": self.seed_number,
            "is_virtual": self.is_virtual,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Athlete":
        return cls(
            id=data["id"],
            name=data["name"],
            is_seeded=data.get("is_seeded", False),
            seed_number=data.get("seed_number"),
            is_virtual=data.get("is_virtual", False),
        )


@dataclass(frozen=True)
class SetResult:
    """Score of a single set."""
    player1_score: int
    player2_score: int

    def to_dict(self) -> dict:
        return {"player1_score": self.player1_score, "player2_score": self.player2_score}

    @classmethod
    def from_dict(cls, data: dict) -> "SetResult":
        return cls(player1_score=data["player1_score"], player2_score=data["player2_score"])


@dataclass
class TimeoutsUsed:
    """Whether each player has called their timeout."""
    player1: bool = False
    player2: bool = False


@dataclass
class Match:
    """
    A match between two athletes.

    Created empty when a group or bracket round is generated; its result
    (sets, walkover, timeouts) is replaced wholesale on each submission.
    """
    id: str
    player1_id: str
    player2_id: str
    phase: Phase
    player1: Optional[Athlete] = None
    player2: Optional[Athlete] = None
    group_id: Optional[str] = None

    # Knockout only
    bracket: Optional[Bracket] = None
    round: Optional[KnockoutRound] = None
    position: int = 0

    # Result
    sets: list[SetResult] = field(default_factory=list)
    winner_id: Optional[str] = None
    is_completed: bool = False
    is_walkover: bool = False
    walkover_winner_id: Optional[str] = None
    timeouts_used: TimeoutsUsed = field(default_factory=TimeoutsUsed)

    created_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def is_third_place(self) -> bool:
        return self.round == KnockoutRound.THIRD_PLACE

    @property
    def round_label(self) -> Optional[str]:
        if self.round is None:
            return None
        return self.round.label(self.bracket or Bracket.MAIN)

    @property
    def is_valid(self) -> bool:
        """Both players set and distinct."""
        return bool(self.player1_id) and bool(self.player2_id) and self.player1_id != self.player2_id

    @property
    def loser_id(self) -> Optional[str]:
        if not self.winner_id:
            return None
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id

    def involves(self, athlete_id: str) -> bool:
        return athlete_id in (self.player1_id, self.player2_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "player1": self.player1.to_dict() if self.player1 else None,
            "player2": self.player2.to_dict() if self.player2 else None,
            "phase": self.phase.value,
            "group_id": self.group_id,
            "bracket": self.bracket.value if self.bracket else None,
            "round": self.round.value if self.round else None,
            "position": self.position,
            "is_third_place": self.is_third_place,
            "sets": [s.to_dict() for s in self.sets],
            "winner_id": self.winner_id,
            "is_completed": self.is_completed,
            "is_walkover": self.is_walkover,
            "walkover_winner_id": self.walkover_winner_id,
            "timeouts_used": {
                "player1": self.timeouts_used.player1,
                "player2": self.timeouts_used.player2,
            },
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        timeouts = data.get("timeouts_used") or {}
        return cls(
            id=data["id"],
            player1_id=data["player1_id"],
            player2_id=data["player2_id"],
            player1=Athlete.from_dict(data["player1"]) if data.get("player1") else None,
            player2=Athlete.from_dict(data["player2"]) if data.get("player2") else None,
            phase=Phase(data["phase"]),
            group_id=data.get("group_id"),
            bracket=Bracket(data["bracket"]) if data.get("bracket") else None,
            round=KnockoutRound(data["round"]) if data.get("round") else None,
            position=data.get("position", 0),
            sets=[SetResult.from_dict(s) for s in data.get("sets", [])],
            winner_id=data.get("winner_id"),
            is_completed=data.get("is_completed", False),
            is_walkover=data.get("is_walkover", False),
            walkover_winner_id=data.get("walkover_winner_id"),
            timeouts_used=TimeoutsUsed(
                player1=timeouts.get("player1", False),
                player2=timeouts.get("player2", False),
            ),
            created_at=_parse_dt(data.get("created_at")) or _now(),
            completed_at=_parse_dt(data.get("completed_at")),
        )


@dataclass
class GroupStanding:
    """Derived standing of one athlete within a group."""
    athlete_id: str
    athlete: Athlete
    matches: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    points_won: int = 0
    points_lost: int = 0
    position: int = 0
    qualified: bool = False

    @property
    def sets_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def points_diff(self) -> int:
        return self.points_won - self.points_lost

    def to_dict(self) -> dict:
        return {
            "athlete_id": self.athlete_id,
            "athlete": self.athlete.to_dict(),
            "matches": self.matches,
            "wins": self.wins,
            "losses": self.losses,
            "points": self.points,
            "sets_won": self.sets_won,
            "sets_lost": self.sets_lost,
            "sets_diff": self.sets_diff,
            "points_won": self.points_won,
            "points_lost": self.points_lost,
            "points_diff": self.points_diff,
            "position": self.position,
            "qualified": self.qualified,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GroupStanding":
        return cls(
            athlete_id=data["athlete_id"],
            athlete=Athlete.from_dict(data["athlete"]),
            matches=data.get("matches", 0),
            wins=data.get("wins", 0),
            losses=data.get("losses", 0),
            points=data.get("points", 0),
            sets_won=data.get("sets_won", 0),
            sets_lost=data.get("sets_lost", 0),
            points_won=data.get("points_won", 0),
            points_lost=data.get("points_lost", 0),
            position=data.get("position", 0),
            qualified=data.get("qualified", False),
        )


@dataclass
class Group:
    """A round-robin group."""
    id: str
    name: str
    qualification_spots: int
    athletes: list[Athlete] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    standings: list[GroupStanding] = field(default_factory=list)
    is_completed: bool = False

    def refresh_completion(self) -> None:
        """A group is complete once every one of its matches is."""
        self.is_completed = bool(self.matches) and all(m.is_completed for m in self.matches)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "qualification_spots": self.qualification_spots,
            "athletes": [a.to_dict() for a in self.athletes],
            "matches": [m.to_dict() for m in self.matches],
            "standings": [s.to_dict() for s in self.standings],
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        return cls(
            id=data["id"],
            name=data["name"],
            qualification_spots=data["qualification_spots"],
            athletes=[Athlete.from_dict(a) for a in data.get("athletes", [])],
            matches=[Match.from_dict(m) for m in data.get("matches", [])],
            standings=[GroupStanding.from_dict(s) for s in data.get("standings", [])],
            is_completed=data.get("is_completed", False),
        )


@dataclass(frozen=True)
class Bye:
    """An athlete advancing from a bracket slot without an opponent."""
    bracket: Bracket
    round: KnockoutRound
    position: int
    athlete_id: str

    def to_dict(self) -> dict:
        return {
            "bracket": self.bracket.value,
            "round": self.round.value,
            "position": self.position,
            "athlete_id": self.athlete_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bye":
        return cls(
            bracket=Bracket(data["bracket"]),
            round=KnockoutRound(data["round"]),
            position=data["position"],
            athlete_id=data["athlete_id"],
        )


@dataclass
class Championship:
    """
    Root aggregate for one tournament.

    Match counters are derived from the live match lists on every read so
    they can never drift from the matches themselves.
    """
    id: str
    name: str
    date: date
    group_size: int
    qualification_spots_per_group: int
    groups_best_of: int
    knockout_best_of: int
    has_third_place: bool = True
    has_repechage: bool = False

    athletes: list[Athlete] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    knockout_matches: list[Match] = field(default_factory=list)
    byes: list[Bye] = field(default_factory=list)

    status: ChampionshipStatus = ChampionshipStatus.CREATED
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # ---- Roster ----

    @property
    def total_athletes(self) -> int:
        return len(self.athletes)

    def get_athlete(self, athlete_id: str) -> Athlete:
        for athlete in self.athletes:
            if athlete.id == athlete_id:
                return athlete
        raise AthleteNotFoundError(athlete_id)

    # ---- Matches ----

    def group_matches(self) -> list[Match]:
        return [m for g in self.groups for m in g.matches]

    def all_matches(self) -> list[Match]:
        return self.group_matches() + list(self.knockout_matches)

    def bracket_matches(self, bracket: Bracket) -> list[Match]:
        return [m for m in self.knockout_matches if m.bracket == bracket]

    def bracket_byes(self, bracket: Bracket) -> list[Bye]:
        return [b for b in self.byes if b.bracket == bracket]

    @property
    def total_matches(self) -> int:
        return sum(1 for m in self.all_matches() if m.is_valid)

    @property
    def completed_matches(self) -> int:
        return sum(1 for m in self.all_matches() if m.is_valid and m.is_completed)

    def find_match(self, match_id: str) -> Match:
        for match in self.all_matches():
            if match.id == match_id:
                return match
        raise MatchNotFoundError(match_id)

    def find_group(self, match: Match) -> Optional[Group]:
        for group in self.groups:
            if match in group.matches:
                return group
        return None

    def best_of_for(self, match: Match) -> int:
        return self.groups_best_of if match.phase == Phase.GROUPS else self.knockout_best_of

    @property
    def is_group_stage_complete(self) -> bool:
        return bool(self.groups) and all(g.is_completed for g in self.groups)

    # ---- Status ----

    def transition_to(self, new_status: ChampionshipStatus) -> None:
        """Move the status forward exactly one step."""
        if new_status.order != self.status.order + 1:
            raise ChampionshipStateError(
                f"Cannot move championship from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        self.touch()

    def reset(self) -> None:
        """Wipe groups, knockout matches and byes; keep roster and config."""
        for group in self.groups:
            group.matches = []
            group.standings = []
            group.is_completed = False
        self.groups = []
        self.knockout_matches = []
        self.byes = []
        self.status = ChampionshipStatus.CREATED
        self.touch()

    def touch(self) -> None:
        self.updated_at = _now()

    # ---- Snapshot ----

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat(),
            "group_size": self.group_size,
            "qualification_spots_per_group": self.qualification_spots_per_group,
            "groups_best_of": self.groups_best_of,
            "knockout_best_of": self.knockout_best_of,
            "has_third_place": self.has_third_place,
            "has_repechage": self.has_repechage,
            "athletes": [a.to_dict() for a in self.athletes],
            "total_athletes": self.total_athletes,
            "groups": [g.to_dict() for g in self.groups],
            "knockout_matches": [m.to_dict() for m in self.knockout_matches],
            "byes": [b.to_dict() for b in self.byes],
            "status": self.status.value,
            "total_matches": self.total_matches,
            "completed_matches": self.completed_matches,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Championship":
        return cls(
            id=data["id"],
            name=data["name"],
            date=date.fromisoformat(data["date"]),
            group_size=data["group_size"],
            qualification_spots_per_group=data["qualification_spots_per_group"],
            groups_best_of=data["groups_best_of"],
            knockout_best_of=data["knockout_best_of"],
            has_third_place=data.get("has_third_place", True),
            has_repechage=data.get("has_repechage", False),
            athletes=[Athlete.from_dict(a) for a in data.get("athletes", [])],
            groups=[Group.from_dict(g) for g in data.get("groups", [])],
            knockout_matches=[Match.from_dict(m) for m in data.get("knockout_matches", [])],
            byes=[Bye.from_dict(b) for b in data.get("byes", [])],
            status=ChampionshipStatus(data.get("status", "created")),
            created_at=_parse_dt(data.get("created_at")) or _now(),
            updated_at=_parse_dt(data.get("updated_at")) or _now(),
        )
