# splitledger/services/dashboard_service.py
"""Per-user totals across every group the user belongs to."""
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from splitledger.errors import ValidationError
from splitledger.models.clock import utcnow
from splitledger.models.expense import Expense, ExpenseShare
from splitledger.models.group import GroupMember
from splitledger.services.balance_service import aggregate_pairwise, load_ledger

THIS_MONTH = "this_month"
THIS_YEAR = "this_year"
ALL_TIME = "all_time"
DURATIONS = (THIS_MONTH, THIS_YEAR, ALL_TIME)


def period_start(duration: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """First instant of ``duration`` in UTC, or None for all time."""
    duration = duration or ALL_TIME
    if duration not in DURATIONS:
        raise ValidationError(f"unknown duration {duration!r}", details={"allowed": list(DURATIONS)})
    now = now or utcnow()
    if duration == THIS_MONTH:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if duration == THIS_YEAR:
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


def summarize_debts(pairs: Dict[int, int]) -> Dict[str, int]:
    owed = [v for v in pairs.values() if v > 0]
    owes = [v for v in pairs.values() if v < 0]
    return {
        "total_owed": sum(owed),
        "no_of_people_owing": len(owed),
        "total_owes": -sum(owes),
        "no_of_people_owed": len(owes),
    }


def net_by_counterparty(session: Session, user_id: int) -> Dict[int, int]:
    group_ids = session.exec(select(GroupMember.group_id).where(GroupMember.user_id == user_id)).all()
    totals: Dict[int, int] = {}
    for group_id in group_ids:
        entries, settlements = load_ledger(session, group_id)
        for other, amount in aggregate_pairwise(user_id, entries, settlements).items():
            totals[other] = totals.get(other, 0) + amount
    return totals


def total_spendings(session: Session, user_id: int, since: Optional[datetime]) -> int:
    query = (
        select(func.coalesce(func.sum(ExpenseShare.amount), 0))
        .join(Expense, Expense.id == ExpenseShare.expense_id)
        .where(ExpenseShare.user_id == user_id)
    )
    if since is not None:
        query = query.where(Expense.created_at >= since)
    return int(session.exec(query).one())


def user_dashboard(session: Session, user_id: int, duration: Optional[str] = None) -> Dict[str, int]:
    since = period_start(duration)
    data = summarize_debts(net_by_counterparty(session, user_id))
    data["total_spendings"] = total_spendings(session, user_id, since)
    return data
