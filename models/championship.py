"""
Championship model for persistence.

The full aggregate (roster, groups, matches, standings, knockout brackets)
is stored as a JSON snapshot; summary columns are kept alongside it for
listing without decoding the snapshot.
"""

import json
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from engine.championship import Championship
from models.base import Base


class ChampionshipRecord(Base):
    """
    A stored championship.

    Status: created -> groups -> knockout -> completed
    """
    __tablename__ = "championships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Summary
    status: Mapped[str] = mapped_column(String(20), default="created")
    total_athletes: Mapped[int] = mapped_column(Integer, default=0)
    total_matches: Mapped[int] = mapped_column(Integer, default=0)
    completed_matches: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc)
    )

    # Aggregate snapshot (JSON)
    snapshot_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ChampionshipRecord(id={self.id}, name='{self.name}', status={self.status})>"

    @property
    def snapshot(self) -> dict:
        """Get the aggregate snapshot."""
        if self.snapshot_json:
            return json.loads(self.snapshot_json)
        return {}

    @snapshot.setter
    def snapshot(self, value: dict) -> None:
        """Set the aggregate snapshot."""
        self.snapshot_json = json.dumps(value, ensure_ascii=False)

    def update_from_championship(self, championship: Championship) -> None:
        """Copy the aggregate's state into this record."""
        self.id = championship.id
        self.name = championship.name
        self.event_date = championship.date
        self.status = championship.status.value
        self.total_athletes = championship.total_athletes
        self.total_matches = championship.total_matches
        self.completed_matches = championship.completed_matches
        self.created_at = championship.created_at
        self.updated_at = championship.updated_at
        self.snapshot = championship.to_dict()

    def to_championship(self) -> Championship:
        """Rebuild the aggregate from the stored snapshot."""
        return Championship.from_dict(self.snapshot)
