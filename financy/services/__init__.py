"""Services package."""

from financy.services.budget_service import BudgetService
from financy.services.budget_wizard_service import BudgetWizardService
from financy.services.category_service import CategoryService
from financy.services.expense_service import ExpenseService
from financy.services.goal_service import GoalService
from financy.services.income_service import IncomeService

__all__ = [
    "BudgetService",
    "BudgetWizardService",
    "CategoryService",
    "ExpenseService",
    "GoalService",
    "IncomeService",
]
