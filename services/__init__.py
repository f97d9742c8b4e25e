"""
TopSpin Services

Application services for championship management, events and storage.
"""

from services.event_bus import EventBus
from services.championship_service import ChampionshipService, TournamentStats
from services.repository import ChampionshipRepository

__all__ = ["EventBus", "ChampionshipService", "TournamentStats", "ChampionshipRepository"]
