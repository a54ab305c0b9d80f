from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from typing import Optional
from sqlalchemy import func
from sqlmodel import Session, select

from splitledger.auth import require_group_member, require_user
from splitledger.config import config
from splitledger.db import get_engine
from splitledger.models.expense import Expense, ExpenseIn
from splitledger.services import ledger_service
from splitledger.services.ledger_service import Mutation, expense_to_dict, get_expense, get_shares

router = APIRouter()


@router.get("/groups/{group_id}/expenses")
def list_expenses(group_id: int, limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
                  offset: int = Query(0, ge=0), current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "view expenses")
    with Session(engine) as s:
        expenses = s.exec(
            select(Expense).where(Expense.group_id == group_id)
            .order_by(Expense.created_at.desc(), Expense.id.desc()).offset(offset).limit(limit)
        ).all()
        total = s.exec(select(func.count()).select_from(Expense).where(Expense.group_id == group_id)).one()
        rows = [expense_to_dict(e, get_shares(s, e.id)) for e in expenses]
    return {"expenses": rows, "pagination": {"limit": limit, "offset": offset, "total": total}}


@router.get("/groups/{group_id}/expenses/{expense_id}")
def view_expense(group_id: int, expense_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "view expenses")
    with Session(engine) as s:
        e = get_expense(s, group_id, expense_id)
        return {"expense": expense_to_dict(e, get_shares(s, expense_id))}


@router.post("/groups/{group_id}/expenses")
def add_expense(group_id: int, payload: ExpenseIn, idempotency_key: Optional[str] = Header(None),
                current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "add expenses")
    status, body = ledger_service.mutate(engine, idempotency_key, Mutation(
        action=ledger_service.CREATE_EXPENSE, group_id=group_id, actor_id=current_user["id"], data=payload))
    return JSONResponse(body, status_code=status)


@router.put("/groups/{group_id}/expenses/{expense_id}")
def replace_expense(group_id: int, expense_id: int, payload: ExpenseIn, idempotency_key: Optional[str] = Header(None),
                    current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "edit expenses")
    status, body = ledger_service.mutate(engine, idempotency_key, Mutation(
        action=ledger_service.REPLACE_EXPENSE, group_id=group_id, actor_id=current_user["id"],
        data=payload, expense_id=expense_id))
    return JSONResponse(body, status_code=status)


@router.delete("/groups/{group_id}/expenses/{expense_id}")
def delete_expense(group_id: int, expense_id: int, idempotency_key: Optional[str] = Header(None),
                   current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "delete expenses")
    status, body = ledger_service.mutate(engine, idempotency_key, Mutation(
        action=ledger_service.DELETE_EXPENSE, group_id=group_id, actor_id=current_user["id"],
        expense_id=expense_id))
    return JSONResponse(body, status_code=status)
