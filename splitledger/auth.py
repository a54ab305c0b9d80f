from fastapi import Request, HTTPException
from sqlmodel import Session

from splitledger.errors import PermissionDenied
from splitledger.services.membership import get_group, is_group_member


def require_user(request: Request):
    """The signed-in user stored in the session cookie by the login front end."""
    user = request.session.get("user")
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def require_group_member(engine, group_id: int, user_id: int, action: str = "view this group"):
    with Session(engine) as s:
        group = get_group(s, group_id)
        if not is_group_member(s, group_id, user_id):
            raise PermissionDenied(f"You are not a member of this group. You can't {action}.")
        return group
