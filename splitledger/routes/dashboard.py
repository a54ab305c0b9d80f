from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, select
from typing import Optional

from splitledger.auth import require_user
from splitledger.config import config
from splitledger.db import get_engine
from splitledger.models.activity import Activity
from splitledger.models.group import Group, GroupMember
from splitledger.models.user import User
from splitledger.services.dashboard_service import user_dashboard

router = APIRouter()


@router.get("/dashboard")
def dashboard(duration: Optional[str] = None, current_user = Depends(require_user), engine = Depends(get_engine)):
    with Session(engine) as s:
        data = user_dashboard(s, current_user["id"], duration)
    return {"data": data}


@router.get("/activities")
def recent_activities(limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
                      offset: int = Query(0, ge=0), current_user = Depends(require_user),
                      engine = Depends(get_engine)):
    # activity from every group the caller is currently in, newest first
    with Session(engine) as s:
        my_groups = select(GroupMember.group_id).where(GroupMember.user_id == current_user["id"])
        rows = s.exec(
            select(Activity, Group.name, User.name)
            .join(Group, Group.id == Activity.group_id)
            .join(User, User.id == Activity.user_id)
            .where(Activity.group_id.in_(my_groups))
            .order_by(Activity.id.desc()).offset(offset).limit(limit)
        ).all()
        total = s.exec(select(func.count()).select_from(Activity).where(Activity.group_id.in_(my_groups))).one()
        activities = []
        for a, group_name, user_name in rows:
            item = a.model_dump()
            item["group"] = {"name": group_name}
            item["user"] = {"name": user_name}
            activities.append(item)
    return {"activities": activities, "pagination": {"limit": limit, "offset": offset, "total": total}}
