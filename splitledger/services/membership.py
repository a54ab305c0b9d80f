from typing import List
from sqlmodel import Session, select
from splitledger.errors import NotFoundError
from splitledger.models.group import Group, GroupMember


def get_group(session: Session, group_id: int) -> Group:
    group = session.get(Group, group_id)
    if not group:
        raise NotFoundError(f"group {group_id} not found")
    return group


def is_group_member(session: Session, group_id: int, user_id: int) -> bool:
    member = session.exec(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None


def list_member_ids(session: Session, group_id: int) -> List[int]:
    return list(session.exec(
        select(GroupMember.user_id).where(GroupMember.group_id == group_id).order_by(GroupMember.user_id)
    ).all())
