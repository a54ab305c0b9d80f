from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from typing import Optional
from sqlmodel import Session, select

from splitledger.auth import require_group_member, require_user
from splitledger.db import get_engine
from splitledger.models.settlement import Settlement, SettlementIn
from splitledger.services import ledger_service
from splitledger.services.ledger_service import Mutation

router = APIRouter()


@router.get("/groups/{group_id}/settlements")
def list_settlements(group_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "view settlements")
    with Session(engine) as s:
        rows = s.exec(select(Settlement).where(Settlement.group_id == group_id).order_by(Settlement.id)).all()
        return {"settlements": [st.model_dump() for st in rows]}


@router.post("/groups/{group_id}/settlements")
def add_settlement(group_id: int, payload: SettlementIn, idempotency_key: Optional[str] = Header(None),
                   current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "add settlements")
    status, body = ledger_service.mutate(engine, idempotency_key, Mutation(
        action=ledger_service.CREATE_SETTLEMENT, group_id=group_id, actor_id=current_user["id"], data=payload))
    return JSONResponse(body, status_code=status)
