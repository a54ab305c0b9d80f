from datetime import datetime
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel
from splitledger.models.clock import utcnow

class Group(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = ""
    owner_id: int = Field(foreign_key="user.id")
    # picks the settlement view: True -> simplified transfers, False -> direct pairwise debts
    simplify_debts: bool = False
    created_at: datetime = Field(default_factory=utcnow)

class GroupMember(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)

class GroupCreate(SQLModel):
    name: str = Field(min_length=3, max_length=50)
    description: Optional[str] = Field(default="", max_length=255)

class MemberAdd(SQLModel):
    user_id: Optional[int] = None
    name: Optional[str] = None
