"""
Championship repository.

Stores championship snapshots through SQLAlchemy. The engine stays
unaware of storage; this layer only moves whole aggregates in and out.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from engine.championship import Championship
from engine.exceptions import ChampionshipNotFoundError
from models.base import SessionLocal, get_session
from models.championship import ChampionshipRecord
from models.schemas import ChampionshipSummary
from services.event_bus import EventBus

logger = logging.getLogger(__name__)


class ChampionshipRepository:
    """Save, load, list and delete championships."""

    def __init__(self, session_factory: sessionmaker = SessionLocal,
                 event_bus: Optional[EventBus] = None):
        self.session_factory = session_factory
        self.event_bus = event_bus

    def _report(self, error: SQLAlchemyError) -> None:
        logger.error("Database error: %s", error)
        if self.event_bus:
            self.event_bus.database_error.emit(str(error))

    def save(self, championship: Championship) -> None:
        """Insert or overwrite the stored snapshot."""
        try:
            with get_session(self.session_factory) as session:
                record = session.get(ChampionshipRecord, championship.id)
                if record is None:
                    record = ChampionshipRecord(id=championship.id)
                    session.add(record)
                record.update_from_championship(championship)
        except SQLAlchemyError as e:
            self._report(e)
            raise
        logger.info("Saved championship %s", championship.id)
        if self.event_bus:
            self.event_bus.system_message.emit("info", f"Championship '{championship.name}' saved")

    def autosave(self, service) -> None:
        """Save the service's championship after every change it makes."""
        def on_updated():
            try:
                self.save(service.championship)
            except SQLAlchemyError:
                # Already logged and reported on the event bus
                pass

        service.championship_updated.connect(on_updated)
        logger.info("Autosave enabled for championship %s", service.championship.id)

    def load(self, championship_id: str) -> Championship:
        """Rebuild a stored championship."""
        with get_session(self.session_factory) as session:
            record = session.get(ChampionshipRecord, championship_id)
            if record is None:
                raise ChampionshipNotFoundError(championship_id)
            return record.to_championship()

    def list_all(self) -> list[ChampionshipSummary]:
        """Stored championships, most recently updated first."""
        with get_session(self.session_factory) as session:
            records = session.scalars(
                select(ChampionshipRecord).order_by(ChampionshipRecord.updated_at.desc())
            ).all()
            return [ChampionshipSummary.model_validate(r) for r in records]

    def delete(self, championship_id: str) -> None:
        with get_session(self.session_factory) as session:
            record = session.get(ChampionshipRecord, championship_id)
            if record is None:
                raise ChampionshipNotFoundError(championship_id)
            session.delete(record)
        logger.info("Deleted championship %s", championship_id)
