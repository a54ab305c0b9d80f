from datetime import datetime
from typing import Optional
from pydantic import StrictInt
from sqlmodel import Field, SQLModel
from splitledger.models.clock import utcnow

class Settlement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    from_user_id: int = Field(foreign_key="user.id")
    to_user_id: int = Field(foreign_key="user.id")
    amount: int
    created_at: datetime = Field(default_factory=utcnow)

class SettlementIn(SQLModel):
    from_user_id: StrictInt
    to_user_id: StrictInt
    amount: StrictInt
