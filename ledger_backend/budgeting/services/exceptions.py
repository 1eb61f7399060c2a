# budgeting/services/exceptions.py

from __future__ import annotations


class BudgetError(Exception):
    """Raised when a budget operation cannot be performed."""
