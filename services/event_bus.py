"""
Event Bus - Central signal hub for inter-module communication.

Presentation and persistence layers connect to this single object rather
than to the championship service directly.
"""

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Central signal hub for TopSpin.

    The EventBus acts as a mediator between application components:
    - ChampionshipService emits championship events
    - Views listen and refresh standings and brackets
    - The repository reports saves and database errors

    Usage:
        # In ChampionshipService
        self.event_bus.match_updated.emit(match_data)

        # In a standings view
        self.event_bus.standings_updated.connect(self._on_standings_updated)
    """

    # ============ Championship Lifecycle ============
    championship_created = Signal(dict)     # Championship snapshot dict
    championship_updated = Signal(str)      # championship_id
    championship_reset = Signal(str)        # championship_id
    status_changed = Signal(str, str)       # championship_id, new status
    championship_completed = Signal(str)    # championship_id

    # ============ Roster ============
    athlete_added = Signal(dict)            # Athlete dict
    athlete_updated = Signal(dict)          # Athlete dict
    athlete_removed = Signal(str)           # athlete_id

    # ============ Groups ============
    groups_generated = Signal(int)          # number of groups
    standings_updated = Signal(str)         # group_id
    group_completed = Signal(str)           # group_id

    # ============ Matches ============
    match_updated = Signal(dict)            # Match dict
    knockout_generated = Signal(int)        # number of first-round matches
    round_generated = Signal(list)          # [match dict, ...]

    # ============ System Events ============
    database_error = Signal(str)            # Database error message
    system_message = Signal(str, str)       # (level, message) - e.g., ("info", "Championship saved")

    def __init__(self):
        super().__init__()

    def emit_match(self, match) -> None:
        """Convenience method to emit a match update."""
        self.match_updated.emit(match.to_dict())
