"""
Exceptions raised by the tournament engine.

Validation errors describe bad user input and carry field-level messages.
Not-found and state errors describe caller or data-integrity bugs.
"""

from dataclasses import dataclass


# ========== Base Exception ==========


class TournamentError(Exception):
    """Base exception for all tournament engine errors."""

    pass


# ========== Validation ==========


@dataclass(frozen=True)
class FieldError:
    """A single human-readable problem with one input field."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message


class ChampionshipValidationError(TournamentError, ValueError):
    """Raised when input is rejected before any state is mutated.

    Carries one or more FieldError entries so callers can point the user
    at every offending field at once.
    """

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))

    @classmethod
    def single(cls, field: str, message: str) -> "ChampionshipValidationError":
        return cls([FieldError(field, message)])

    @classmethod
    def from_pydantic(cls, exc) -> "ChampionshipValidationError":
        """Convert a pydantic ValidationError into field-level errors."""
        errors = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()))
            message = err.get("msg", "invalid value")
            # pydantic prefixes messages raised from validators
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.append(FieldError(field, message))
        return cls(errors)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]


# ========== Not Found ==========


class NotFoundError(TournamentError, LookupError):
    """Base exception for references that do not resolve."""

    pass


class MatchNotFoundError(NotFoundError):
    """Raised when a match id does not exist in the championship."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f"Match not found: {match_id}")


class AthleteNotFoundError(NotFoundError):
    """Raised when an athlete id is not on the roster."""

    def __init__(self, athlete_id: str):
        self.athlete_id = athlete_id
        super().__init__(f"Athlete not found: {athlete_id}")


class ChampionshipNotFoundError(NotFoundError):
    """Raised when a championship cannot be loaded."""

    def __init__(self, championship_id: str):
        self.championship_id = championship_id
        super().__init__(f"Championship not found: {championship_id}")


# ========== State / Structure ==========


class ChampionshipStateError(TournamentError, RuntimeError):
    """Raised when an operation is not allowed in the current status."""

    pass


class BracketError(TournamentError):
    """Raised when a knockout bracket cannot be built or changed."""

    pass
