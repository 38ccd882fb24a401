"""Magento 1 to WoowUp sync."""

__version__ = "1.0.0"
