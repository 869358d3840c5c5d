"""Database models package."""

from financy.models.base import Base
from financy.models.user import User
from financy.models.category import Category
from financy.models.expense import Expense
from financy.models.income import Income
from financy.models.budget import Budget
from financy.models.goal import SavingsGoal, GoalEntry

__all__ = [
    "Base",
    "User",
    "Category",
    "Expense",
    "Income",
    "Budget",
    "SavingsGoal",
    "GoalEntry",
]
