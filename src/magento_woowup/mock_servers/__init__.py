"""Mock WoowUp API server for testing."""

from .app import WoowUpStore, create_app, create_mock_app

__all__ = ["WoowUpStore", "create_app", "create_mock_app"]
