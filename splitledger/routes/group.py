from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session, select
from typing import Optional

from splitledger.auth import require_group_member, require_user
from splitledger.config import config
from splitledger.db import UnitOfWork, get_engine
from splitledger.errors import NotFoundError, ValidationError
from splitledger.models import activity
from splitledger.models.activity import Activity
from splitledger.models.group import Group, GroupCreate, GroupMember, MemberAdd
from splitledger.models.user import User
from splitledger.services.balance_service import compute_group_balances, compute_pairwise_balances
from splitledger.services.ledger_service import record_activity
from splitledger.services.membership import get_group, is_group_member
from splitledger.services.settlement_service import suggest_settlements

router = APIRouter()


@router.post("/groups", status_code=201)
def create_group(payload: GroupCreate, current_user = Depends(require_user), engine = Depends(get_engine)):
    with UnitOfWork(engine) as uow:
        s = uow.session
        g = Group(name=payload.name, description=payload.description or "", owner_id=current_user["id"])
        s.add(g); s.flush()
        s.add(GroupMember(group_id=g.id, user_id=current_user["id"]))
        record_activity(s, activity.GROUP_CREATE, g.id, current_user["id"], {"name": g.name})
        s.flush()
        body = g.model_dump()
    return {"group": body}


@router.get("/groups")
def list_groups(current_user = Depends(require_user), engine = Depends(get_engine)):
    with Session(engine) as s:
        groups = s.exec(
            select(Group).join(GroupMember, Group.id == GroupMember.group_id)
            .where(GroupMember.user_id == current_user["id"]).order_by(Group.id)
        ).all()
        return {"groups": [g.model_dump() for g in groups]}


@router.get("/groups/{group_id}")
def view_group(group_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    group = require_group_member(engine, group_id, current_user["id"])
    return {"group": group.model_dump()}


@router.get("/groups/{group_id}/members")
def list_members(group_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "see members of this group")
    with Session(engine) as s:
        members = s.exec(
            select(User).join(GroupMember, User.id == GroupMember.user_id)
            .where(GroupMember.group_id == group_id).order_by(User.id)
        ).all()
        return {"members": [{"id": m.id, "name": m.name, "email": m.email} for m in members]}


@router.post("/groups/{group_id}/members", status_code=201)
def add_member(group_id: int, payload: MemberAdd, response: Response, current_user = Depends(require_user),
               engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "add members")
    with UnitOfWork(engine) as uow:
        s = uow.session
        if payload.user_id is not None:
            user = s.get(User, payload.user_id)
            if not user:
                raise NotFoundError(f"user {payload.user_id} not found")
        elif payload.name and payload.name.strip():
            user = User(name=payload.name.strip())
            s.add(user); s.flush()
        else:
            raise ValidationError("user_id or name is required")

        if is_group_member(s, group_id, user.id):
            response.status_code = 200
            return {"status": "already_member", "member": {"id": user.id, "name": user.name}}
        s.add(GroupMember(group_id=group_id, user_id=user.id))
        record_activity(s, activity.MEMBER_JOIN, group_id, user.id, {"name": user.name, "added_by": current_user["id"]})
        body = {"status": "joined", "member": {"id": user.id, "name": user.name}}
    return body


@router.delete("/groups/{group_id}/members/{member_id}")
def remove_member(group_id: int, member_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "remove members")
    if member_id == current_user["id"]:
        raise ValidationError("You can't remove yourself.")
    with UnitOfWork(engine) as uow:
        s = uow.session
        gm = s.exec(select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == member_id)).first()
        if not gm:
            raise NotFoundError("Member not found in this group")
        open_debts = {str(k): v for k, v in compute_pairwise_balances(s, group_id, member_id).items() if v != 0}
        if open_debts:
            raise ValidationError("You can't remove the member until all debts are cleared.", details=open_debts)
        s.delete(gm)
        record_activity(s, activity.MEMBER_LEAVE, group_id, member_id, {"removed_by": current_user["id"]})
    return {"message": "Member successfully removed", "member_id": member_id}


@router.patch("/groups/{group_id}/simplify-debts")
def toggle_simplify_debts(group_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"], "simplify payments")
    with UnitOfWork(engine) as uow:
        s = uow.session
        g = get_group(s, group_id)
        g.simplify_debts = not g.simplify_debts
        s.add(g)
        record_activity(s, activity.GROUP_SIMPLIFY_DEBTS, group_id, current_user["id"], {"simplify_debts": g.simplify_debts})
        s.flush()
        body = g.model_dump()
    return {"group": body}


@router.get("/groups/{group_id}/balances")
def group_balances(group_id: int, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"])
    with Session(engine) as s:
        nets = compute_group_balances(s, group_id)
    return {"balances": [{"user_id": uid, "amount": amt} for uid, amt in sorted(nets.items())]}


@router.get("/groups/{group_id}/debts")
def group_debts(group_id: int, mode: Optional[str] = None, current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"])
    with Session(engine) as s:
        debts = suggest_settlements(s, group_id, current_user["id"], mode)
    return {"debts": debts}


@router.get("/groups/{group_id}/activity")
def group_activity(group_id: int, limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
                   offset: int = Query(0, ge=0), current_user = Depends(require_user), engine = Depends(get_engine)):
    require_group_member(engine, group_id, current_user["id"])
    with Session(engine) as s:
        rows = s.exec(
            select(Activity).where(Activity.group_id == group_id)
            .order_by(Activity.id.desc()).offset(offset).limit(limit)
        ).all()
        return {"activities": [a.model_dump() for a in rows]}
