"""WoowUp API client and reconciler."""

from .reconciler import WoowUpReconciler
from .woowup_client import WoowUpClient

__all__ = ["WoowUpClient", "WoowUpReconciler"]
