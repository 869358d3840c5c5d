"""Schemas package."""

from financy.schemas.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseFilters,
    Pagination,
    PaginatedExpenseResponse,
    PaymentMethod,
    ExpenseSource,
)

__all__ = [
    "ExpenseCreate",
    "ExpenseUpdate",
    "ExpenseResponse",
    "ExpenseFilters",
    "Pagination",
    "PaginatedExpenseResponse",
    "PaymentMethod",
    "ExpenseSource",
]
