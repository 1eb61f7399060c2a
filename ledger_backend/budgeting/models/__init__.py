# budgeting/models/__init__.py

from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetLine, BudgetStatus

__all__ = [
    "MONTH_FIELDS",
    "Budget",
    "BudgetLine",
    "BudgetStatus",
]
