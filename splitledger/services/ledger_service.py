# splitledger/services/ledger_service.py
"""Balance-affecting writes. Each runs inside the mutation gate's transaction."""
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from sqlmodel import Session, select

from splitledger.errors import NotFoundError, PermissionDenied, ValidationError
from splitledger.models import activity
from splitledger.models.activity import Activity
from splitledger.models.clock import utcnow
from splitledger.models.expense import Expense, ExpenseIn, ExpenseShare
from splitledger.models.settlement import Settlement, SettlementIn
from splitledger.services.idempotency import MutationGate
from splitledger.services.membership import get_group, list_member_ids
from splitledger.services.validation import validate_expense, validate_settlement

CREATE_EXPENSE = "expense.create"
REPLACE_EXPENSE = "expense.replace"
DELETE_EXPENSE = "expense.delete"
CREATE_SETTLEMENT = "settlement.create"


@dataclass
class Mutation:
    action: str
    group_id: int
    actor_id: int
    data: Optional[Any] = None
    expense_id: Optional[int] = None

    @property
    def scope(self) -> str:
        scope = f"{self.action}:group={self.group_id}"
        if self.expense_id is not None:
            scope += f":expense={self.expense_id}"
        return scope


def record_activity(session: Session, kind: str, group_id: int, user_id: int, details: Dict[str, Any]) -> None:
    session.add(Activity(type=kind, group_id=group_id, user_id=user_id, details=jsonable_encoder(details)))


def get_expense(session: Session, group_id: int, expense_id: int) -> Expense:
    e = session.get(Expense, expense_id)
    if not e or e.group_id != group_id:
        raise NotFoundError(f"expense {expense_id} not found")
    return e


def get_shares(session: Session, expense_id: int) -> List[ExpenseShare]:
    return list(session.exec(
        select(ExpenseShare).where(ExpenseShare.expense_id == expense_id).order_by(ExpenseShare.position)
    ).all())


def expense_to_dict(e: Expense, shares: List[ExpenseShare]) -> Dict[str, Any]:
    data = e.model_dump()
    data["shares"] = [{"user_id": sh.user_id, "amount": sh.amount} for sh in shares]
    return data


def _write_shares(session: Session, expense_id: int, shares: List[Tuple[int, int]]) -> List[ExpenseShare]:
    rows = [ExpenseShare(expense_id=expense_id, user_id=uid, amount=amt, position=pos)
            for pos, (uid, amt) in enumerate(shares)]
    session.add_all(rows)
    return rows


def create_expense(session: Session, group_id: int, payload: ExpenseIn, actor_id: int) -> Tuple[int, Dict[str, Any]]:
    get_group(session, group_id)
    shares = validate_expense(payload, list_member_ids(session, group_id))

    e = Expense(group_id=group_id, payer_id=payload.payer_id, total_amount=payload.total_amount,
                description=payload.description or "")
    session.add(e)
    session.flush()
    rows = _write_shares(session, e.id, shares)
    session.flush()

    record_activity(session, activity.EXPENSE_CREATE, group_id, actor_id, {
        "expense_id": e.id, "description": e.description, "amount": e.total_amount,
    })
    logging.info("expense %s created in group %s: %s paid %s", e.id, group_id, e.payer_id, e.total_amount)
    return 201, {"expense": expense_to_dict(e, rows)}


def replace_expense(session: Session, group_id: int, expense_id: int, payload: ExpenseIn,
                    actor_id: int) -> Tuple[int, Dict[str, Any]]:
    get_group(session, group_id)
    e = get_expense(session, group_id, expense_id)
    shares = validate_expense(payload, list_member_ids(session, group_id))

    for sh in get_shares(session, expense_id):
        session.delete(sh)
    e.payer_id = payload.payer_id
    e.total_amount = payload.total_amount
    e.description = payload.description or ""
    e.updated_at = utcnow()
    session.add(e)
    session.flush()
    rows = _write_shares(session, e.id, shares)
    session.flush()

    record_activity(session, activity.EXPENSE_UPDATE, group_id, actor_id, {
        "expense_id": e.id, "description": e.description, "amount": e.total_amount,
    })
    logging.info("expense %s replaced in group %s", e.id, group_id)
    return 200, {"expense": expense_to_dict(e, rows)}


def delete_expense(session: Session, group_id: int, expense_id: int, actor_id: int) -> Tuple[int, Dict[str, Any]]:
    get_group(session, group_id)
    e = get_expense(session, group_id, expense_id)
    shares = get_shares(session, expense_id)
    deleted = expense_to_dict(e, shares)
    for sh in shares:
        session.delete(sh)
    session.delete(e)
    session.flush()

    record_activity(session, activity.EXPENSE_DELETE, group_id, actor_id, {
        "expense_id": expense_id, "description": deleted["description"], "amount": deleted["total_amount"],
    })
    logging.info("expense %s deleted from group %s", expense_id, group_id)
    return 200, {"message": "Expense deleted successfully", "deleted": deleted}


def create_settlement(session: Session, group_id: int, payload: SettlementIn,
                      actor_id: int) -> Tuple[int, Dict[str, Any]]:
    get_group(session, group_id)
    if actor_id not in (payload.from_user_id, payload.to_user_id):
        raise PermissionDenied("you can't settle transactions for others")
    validate_settlement(payload, list_member_ids(session, group_id))

    st = Settlement(group_id=group_id, from_user_id=payload.from_user_id,
                    to_user_id=payload.to_user_id, amount=payload.amount)
    session.add(st)
    session.flush()

    record_activity(session, activity.SETTLEMENT_CREATE, group_id, actor_id, {
        "settlement_id": st.id, "from_user_id": st.from_user_id,
        "to_user_id": st.to_user_id, "amount": st.amount,
    })
    logging.info("settlement %s in group %s: %s paid %s %s", st.id, group_id,
                 st.from_user_id, st.to_user_id, st.amount)
    return 201, {"settlement": st.model_dump()}


def build_op(mutation: Mutation):
    if mutation.action == CREATE_EXPENSE:
        return partial(create_expense, group_id=mutation.group_id, payload=mutation.data,
                       actor_id=mutation.actor_id)
    if mutation.action == REPLACE_EXPENSE:
        return partial(replace_expense, group_id=mutation.group_id, expense_id=mutation.expense_id,
                       payload=mutation.data, actor_id=mutation.actor_id)
    if mutation.action == DELETE_EXPENSE:
        return partial(delete_expense, group_id=mutation.group_id, expense_id=mutation.expense_id,
                       actor_id=mutation.actor_id)
    if mutation.action == CREATE_SETTLEMENT:
        return partial(create_settlement, group_id=mutation.group_id, payload=mutation.data,
                       actor_id=mutation.actor_id)
    raise ValidationError(f"unknown mutation {mutation.action!r}")


def mutate(engine, key: Optional[str], mutation: Mutation) -> Tuple[int, Dict[str, Any]]:
    """Apply ``mutation`` exactly once per idempotency ``key``; returns ``(status, body)``."""
    op = build_op(mutation)
    return MutationGate(engine).execute(key, mutation.scope, op, actor_id=mutation.actor_id)
