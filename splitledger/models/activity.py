from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel
from splitledger.models.clock import utcnow

EXPENSE_CREATE = "expense.create"
EXPENSE_UPDATE = "expense.update"
EXPENSE_DELETE = "expense.delete"
SETTLEMENT_CREATE = "settlement.create"
GROUP_CREATE = "group.create"
GROUP_SIMPLIFY_DEBTS = "group.simplify_debts"
MEMBER_JOIN = "member.join"
MEMBER_LEAVE = "member.leave"

class Activity(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id")
    group_id: int = Field(foreign_key="group.id", index=True)
    type: str
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
