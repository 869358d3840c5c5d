"""Goal progress calculation from a goal and its ledger of entries."""

import math
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from financy.schemas.records import GoalEntryRecord, GoalRecord

# Monthly pacing uses a fixed 30-day month, not calendar months
DAYS_PER_MONTH = 30

SECONDS_PER_DAY = 24 * 60 * 60


class GoalStatus(str, Enum):
    """Goal lifecycle status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class GoalProgress:
    """Derived goal progress, recomputed on every read."""

    current_amount: Decimal
    percentage: float
    remaining_amount: Decimal
    days_remaining: Optional[int]
    daily_target: Optional[Decimal]
    monthly_target: Optional[Decimal]
    on_track: bool
    status: GoalStatus


@dataclass(frozen=True)
class GoalInsight:
    """Goal with its derived amount, progress and latest entries."""

    goal: GoalRecord
    current_amount: Decimal
    progress: GoalProgress
    recent_entries: List[GoalEntryRecord] = field(default_factory=list)


@dataclass(frozen=True)
class GoalStats:
    """Aggregate counters over all of a user's goals."""

    total_goals: int
    achieved_goals: int
    in_progress_goals: int
    overdue_goals: int
    total_saved: Decimal
    total_target: Decimal


def sum_entries(entries: Iterable[GoalEntryRecord]) -> Decimal:
    """Net amount of a goal ledger (contributions minus withdrawals)."""
    return sum((entry.amount for entry in entries), Decimal(0))


def days_until(target_date: date_type, now: datetime) -> Optional[int]:
    """Whole days (rounded up) until midnight of target_date.

    Returns None once the target date is no longer strictly in the future.
    """
    target = datetime.combine(target_date, time.min, tzinfo=now.tzinfo)
    if target <= now:
        return None
    return math.ceil((target - now).total_seconds() / SECONDS_PER_DAY)


def compute_progress(
    goal: GoalRecord,
    entries: Sequence[GoalEntryRecord],
    target_date: date_type,
    now: datetime,
) -> GoalProgress:
    """Compute progress for a goal.

    Args:
        goal: Goal record (only target_amount is used)
        entries: All entries of the goal
        target_date: Date the goal should be reached by
        now: Reference instant; naive or aware, matching how dates are compared

    Returns:
        GoalProgress
    """
    target_amount = goal.target_amount
    current_amount = sum_entries(entries)

    raw_percentage = (
        float(current_amount / target_amount * 100) if target_amount > 0 else 0.0
    )
    percentage = max(0.0, min(raw_percentage, 100.0))
    # Net withdrawals never push the remaining amount above the target itself
    remaining_amount = max(Decimal(0), target_amount - max(current_amount, Decimal(0)))

    days_remaining = days_until(target_date, now)

    daily_target: Optional[Decimal] = None
    monthly_target: Optional[Decimal] = None
    if days_remaining and days_remaining > 0 and remaining_amount > 0:
        daily_target = remaining_amount / days_remaining
        monthly_target = remaining_amount * DAYS_PER_MONTH / days_remaining

    if percentage >= 100:
        status = GoalStatus.ACHIEVED
    elif percentage > 0:
        status = GoalStatus.OVERDUE if days_remaining is None else GoalStatus.IN_PROGRESS
    elif days_remaining is None:
        status = GoalStatus.OVERDUE
    else:
        status = GoalStatus.NOT_STARTED

    # Compares the required pace against remaining/days, which is the same number.
    # Kept as-is until a historical contribution rate is defined.
    on_track = status == GoalStatus.ACHIEVED or (
        days_remaining is not None
        and days_remaining > 0
        and daily_target is not None
        and daily_target <= remaining_amount / max(days_remaining, 1)
    )

    return GoalProgress(
        current_amount=current_amount,
        percentage=percentage,
        remaining_amount=remaining_amount,
        days_remaining=days_remaining,
        daily_target=daily_target,
        monthly_target=monthly_target,
        on_track=on_track,
        status=status,
    )


def build_goal_insight(
    goal: GoalRecord,
    entries: Sequence[GoalEntryRecord],
    now: datetime,
    recent_limit: int,
) -> GoalInsight:
    """Combine a goal with its progress and most recent entries.

    Args:
        goal: Goal record
        entries: All entries of the goal, in any order
        now: Reference instant
        recent_limit: How many of the newest entries to keep

    Returns:
        GoalInsight
    """
    progress = compute_progress(goal, entries, goal.target_date, now)
    newest_first = sorted(entries, key=lambda e: (e.date, e.created_at), reverse=True)
    return GoalInsight(
        goal=goal,
        current_amount=progress.current_amount,
        progress=progress,
        recent_entries=newest_first[:recent_limit],
    )


def compute_goal_stats(insights: Sequence[GoalInsight]) -> GoalStats:
    """Aggregate goal counts by status and saved/target totals."""
    statuses = [insight.progress.status for insight in insights]
    return GoalStats(
        total_goals=len(insights),
        achieved_goals=statuses.count(GoalStatus.ACHIEVED),
        in_progress_goals=statuses.count(GoalStatus.IN_PROGRESS),
        overdue_goals=statuses.count(GoalStatus.OVERDUE),
        total_saved=sum((i.current_amount for i in insights), Decimal(0)),
        total_target=sum((i.goal.target_amount for i in insights), Decimal(0)),
    )
