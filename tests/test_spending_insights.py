"""Tests for spending insights."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from financy.schemas.records import ExpenseRow
from financy.services.spending_insights import (
    CategorySpending,
    compute_insights,
    find_atypical_expenses,
    insight_windows,
    month_end,
)

FOOD = uuid4()
FUN = uuid4()
RENT = uuid4()


def expense(amount: str, day: date, category_id=FOOD, name="Food") -> ExpenseRow:
    return ExpenseRow(
        id=uuid4(),
        amount=Decimal(amount),
        date=day,
        description="test",
        category_id=category_id,
        category_name=name if category_id else None,
    )


def spending(category_id, total: str) -> CategorySpending:
    return CategorySpending(
        category_id=category_id,
        category_name="x",
        category_icon=None,
        category_color=None,
        total_spending=Decimal(total),
    )


class TestWindows:
    """Test window boundaries."""

    def test_month_end(self):
        assert month_end(date(2024, 2, 10)) == date(2024, 2, 29)
        assert month_end(date(2025, 12, 31)) == date(2025, 12, 31)

    def test_windows_for_mid_month(self):
        windows = insight_windows(date(2025, 4, 17))

        assert windows.last_month_start == date(2025, 3, 1)
        assert windows.last_month_end == date(2025, 3, 31)
        assert windows.quarter_start == date(2025, 1, 1)
        assert windows.quarter_end == date(2025, 3, 31)

    def test_windows_across_year(self):
        windows = insight_windows(date(2025, 1, 5))

        assert windows.last_month_start == date(2024, 12, 1)
        assert windows.quarter_start == date(2024, 10, 1)
        assert windows.quarter_end == date(2024, 12, 31)


class TestComputeInsights:
    """Test per-category aggregation."""

    def test_groups_and_shares(self):
        windows = insight_windows(date(2025, 4, 5))
        rows = [
            expense("300", date(2025, 3, 2)),
            expense("100", date(2025, 3, 20), FUN, "Entertainment"),
            expense("150", date(2025, 1, 10)),
            expense("150", date(2025, 2, 10)),
            # Current month, outside both windows
            expense("999", date(2025, 4, 2)),
        ]
        insights = compute_insights(rows, windows)

        assert insights.total_last_month == Decimal("400")
        assert [c.category_id for c in insights.last_month] == [FOOD, FUN]
        assert insights.last_month[0].percentage == pytest.approx(75.0)
        assert insights.last_month[0].transaction_count == 1

        # Quarter: food 600, fun 100 over three months
        food_avg = next(c for c in insights.quarter_average if c.category_id == FOOD)
        assert food_avg.total_spending == Decimal("200")
        assert food_avg.transaction_count == 3
        assert insights.total_quarter_average == Decimal("700") / 3

    def test_uncategorised_counts_toward_total_only(self):
        windows = insight_windows(date(2025, 4, 5))
        rows = [
            expense("50", date(2025, 3, 3)),
            expense("50", date(2025, 3, 4), category_id=None),
        ]
        insights = compute_insights(rows, windows)

        assert insights.total_last_month == Decimal("100")
        assert len(insights.last_month) == 1
        assert insights.last_month[0].percentage == pytest.approx(50.0)

    def test_empty_windows(self):
        insights = compute_insights([], insight_windows(date(2025, 4, 5)))

        assert insights.last_month == []
        assert insights.atypical_expenses == []
        assert insights.total_last_month == Decimal(0)

    def test_detects_atypical_increase(self):
        windows = insight_windows(date(2025, 4, 5))
        rows = [
            expense("100", date(2025, 1, 10)),
            expense("100", date(2025, 2, 10)),
            expense("400", date(2025, 3, 10)),
        ]
        insights = compute_insights(rows, windows)

        # Quarter average 200, last month 400: +100%
        assert len(insights.atypical_expenses) == 1
        atypical = insights.atypical_expenses[0]
        assert atypical.percentage_increase == pytest.approx(100.0)
        assert atypical.is_significant is True


class TestAtypicalExpenses:
    """Test atypical thresholds."""

    def test_zero_quarter_average_never_atypical(self):
        last_month = {FOOD: spending(FOOD, "5000")}
        quarter = {FOOD: spending(FOOD, "0")}

        assert find_atypical_expenses(last_month, quarter) == []

    def test_missing_from_quarter_never_atypical(self):
        assert find_atypical_expenses({FOOD: spending(FOOD, "5000")}, {}) == []

    def test_exactly_25_percent_excluded(self):
        last_month = {FOOD: spending(FOOD, "125")}
        quarter = {FOOD: spending(FOOD, "100")}

        assert find_atypical_expenses(last_month, quarter) == []

    def test_exactly_50_percent_not_significant(self):
        last_month = {FOOD: spending(FOOD, "150")}
        quarter = {FOOD: spending(FOOD, "100")}

        result = find_atypical_expenses(last_month, quarter)

        assert len(result) == 1
        assert result[0].percentage_increase == pytest.approx(50.0)
        assert result[0].is_significant is False

    def test_sorted_by_increase(self):
        last_month = {
            FOOD: spending(FOOD, "130"),
            FUN: spending(FUN, "300"),
            RENT: spending(RENT, "160"),
        }
        quarter = {
            FOOD: spending(FOOD, "100"),
            FUN: spending(FUN, "100"),
            RENT: spending(RENT, "100"),
        }

        result = find_atypical_expenses(last_month, quarter)

        assert [a.category_id for a in result] == [FUN, RENT, FOOD]
        assert [a.is_significant for a in result] == [True, True, False]
