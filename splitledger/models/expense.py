from datetime import datetime
from typing import List, Optional
from pydantic import StrictInt
from sqlmodel import Field, SQLModel
from splitledger.models.clock import utcnow

class Expense(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    payer_id: int = Field(foreign_key="user.id")
    # minor units (cents); never a float
    total_amount: int
    description: Optional[str] = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

class ExpenseShare(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    expense_id: int = Field(foreign_key="expense.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    amount: int
    # declared order of the share within its expense
    position: int = 0

class ShareIn(SQLModel):
    user_id: StrictInt
    amount: StrictInt

class ExpenseIn(SQLModel):
    """Body of an expense create/replace.

    Either ``shares`` lists every member's amount, or ``participants`` names
    the members and the total is split evenly among them.
    """
    description: Optional[str] = Field(default="", max_length=255)
    total_amount: StrictInt
    payer_id: StrictInt
    shares: Optional[List[ShareIn]] = None
    participants: Optional[List[StrictInt]] = None
