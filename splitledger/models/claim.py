from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel
from splitledger.models.clock import utcnow

PENDING = "PENDING"
DONE = "DONE"

class MutationClaim(SQLModel, table=True):
    # the primary key is what makes concurrent inserts of one key race safely
    key: str = Field(primary_key=True, max_length=255)
    scope: str
    actor_id: Optional[int] = None
    # identifies the attempt holding the claim; a reaped and re-claimed key gets a new one
    owner: str = Field(default_factory=lambda: uuid4().hex, max_length=32)
    status: str = PENDING
    result_status: Optional[int] = None
    result_body: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, index=True)
    completed_at: Optional[datetime] = None
