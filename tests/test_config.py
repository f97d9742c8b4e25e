"""
Tests for application configuration.
"""

import logging

from config import PATHS, RULES, configure_logging


class TestConfig:
    """Tests for settings and logging setup."""

    def test_database_in_data_dir(self):
        """The database lives in the user data directory."""
        assert PATHS.database.parent == PATHS.data_dir
        assert PATHS.database.name == "topspin.db"

    def test_rule_constants(self):
        """Scoring constants match table-tennis law."""
        assert RULES.points_to_win == 11
        assert RULES.min_difference == 2
        assert RULES.points_for_win == 3

    def test_configure_logging_console_only(self):
        """Console logging installs a single stream handler at the given level."""
        configure_logging(level=logging.DEBUG, log_to_file=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)
