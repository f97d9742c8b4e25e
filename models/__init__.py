"""
TopSpin Database Models

SQLAlchemy ORM models and pydantic input schemas.
"""

from models.base import Base, engine, SessionLocal, get_session, init_db, make_engine
from models.championship import ChampionshipRecord
from models.schemas import (
    AthleteCreate,
    AthleteUpdate,
    ChampionshipSummary,
    ManualGroup,
    MatchResult,
    SetScore,
    Timeouts,
    TournamentConfig,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_session",
    "init_db",
    "make_engine",
    "ChampionshipRecord",
    "AthleteCreate",
    "AthleteUpdate",
    "ChampionshipSummary",
    "ManualGroup",
    "MatchResult",
    "SetScore",
    "Timeouts",
    "TournamentConfig",
]
