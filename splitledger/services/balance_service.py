# splitledger/services/balance_service.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from sqlmodel import Session, select

from splitledger.errors import IntegrityError
from splitledger.models.expense import Expense, ExpenseShare
from splitledger.models.settlement import Settlement
from splitledger.services.membership import list_member_ids

# (expense, shares of that expense)
LedgerEntry = Tuple[Expense, List[ExpenseShare]]


def load_ledger(session: Session, group_id: int) -> Tuple[List[LedgerEntry], List[Settlement]]:
    expenses = session.exec(select(Expense).where(Expense.group_id == group_id).order_by(Expense.id)).all()
    shares = session.exec(
        select(ExpenseShare)
        .join(Expense, Expense.id == ExpenseShare.expense_id)
        .where(Expense.group_id == group_id)
        .order_by(ExpenseShare.expense_id, ExpenseShare.position)
    ).all()
    by_expense = defaultdict(list)
    for sh in shares:
        by_expense[sh.expense_id].append(sh)
    settlements = session.exec(
        select(Settlement).where(Settlement.group_id == group_id).order_by(Settlement.id)
    ).all()
    return [(e, by_expense[e.id]) for e in expenses], list(settlements)


def aggregate_balances(member_ids: Iterable[int], entries: Iterable[LedgerEntry],
                       settlements: Iterable[Settlement]) -> Dict[int, int]:
    """Net balance per member: positive is owed money, negative owes money.

    Every id in ``member_ids`` is reported, 0 when it has no activity.
    """
    nets = {uid: 0 for uid in member_ids}
    for e, shares in entries:
        nets[e.payer_id] = nets.get(e.payer_id, 0) + e.total_amount
        for sh in shares:
            nets[sh.user_id] = nets.get(sh.user_id, 0) - sh.amount
    for st in settlements:
        nets[st.from_user_id] = nets.get(st.from_user_id, 0) + st.amount
        nets[st.to_user_id] = nets.get(st.to_user_id, 0) - st.amount
    return nets


def aggregate_pairwise(member_id: int, entries: Iterable[LedgerEntry],
                       settlements: Iterable[Settlement]) -> Dict[int, int]:
    """Balance of ``member_id`` against each counterparty it shares records with.

    Positive means the counterparty owes ``member_id``. Only expenses paid by one
    of the two and shared by the other, and settlements between the two, count.
    """
    pairs: Dict[int, int] = {}
    for e, shares in entries:
        for sh in shares:
            if sh.user_id == e.payer_id:
                continue
            if e.payer_id == member_id:
                pairs[sh.user_id] = pairs.get(sh.user_id, 0) + sh.amount
            elif sh.user_id == member_id:
                pairs[e.payer_id] = pairs.get(e.payer_id, 0) - sh.amount
    for st in settlements:
        if st.from_user_id == member_id:
            pairs[st.to_user_id] = pairs.get(st.to_user_id, 0) + st.amount
        elif st.to_user_id == member_id:
            pairs[st.from_user_id] = pairs.get(st.from_user_id, 0) - st.amount
    return pairs


def assert_zero_sum(group_id: int, nets: Dict[int, int]) -> None:
    total = sum(nets.values())
    if total != 0:
        logging.error("group %s balances sum to %s instead of 0: %s", group_id, total, nets)
        raise IntegrityError(f"balances of group {group_id} do not sum to zero", details={"sum": total})


def compute_group_balances(session: Session, group_id: int) -> Dict[int, int]:
    entries, settlements = load_ledger(session, group_id)
    nets = aggregate_balances(list_member_ids(session, group_id), entries, settlements)
    assert_zero_sum(group_id, nets)
    return nets


def compute_pairwise_balances(session: Session, group_id: int, member_id: int) -> Dict[int, int]:
    entries, settlements = load_ledger(session, group_id)
    return aggregate_pairwise(member_id, entries, settlements)
