from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from splitledger.auth import require_user
from splitledger.db import get_engine, init_db
from splitledger.main import app
from splitledger.models.expense import ExpenseIn
from splitledger.models.group import Group, GroupMember
from splitledger.models.settlement import SettlementIn
from splitledger.models.user import User
from splitledger.services import ledger_service
from splitledger.services.ledger_service import Mutation


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed(engine):
    """Alice, Bob and Carol share a group; Dave exists but is not a member."""
    with Session(engine) as s:
        users = [User(name=n) for n in ("Alice", "Bob", "Carol", "Dave")]
        s.add_all(users)
        s.commit()
        for u in users:
            s.refresh(u)
        g = Group(name="Trip", owner_id=users[0].id)
        s.add(g)
        s.commit()
        s.refresh(g)
        for u in users[:3]:
            s.add(GroupMember(group_id=g.id, user_id=u.id))
        s.commit()
        return SimpleNamespace(group_id=g.id, alice=users[0].id, bob=users[1].id,
                               carol=users[2].id, dave=users[3].id)


@pytest.fixture
def add_expense(engine, seed):
    counter = {"n": 0}

    def _add(payer, total, shares=None, participants=None, key=None, actor=None):
        counter["n"] += 1
        payload = ExpenseIn(
            description="test expense", total_amount=total, payer_id=payer,
            shares=[{"user_id": u, "amount": a} for u, a in shares] if shares is not None else None,
            participants=participants,
        )
        return ledger_service.mutate(engine, key or f"expense-{counter['n']}", Mutation(
            action=ledger_service.CREATE_EXPENSE, group_id=seed.group_id,
            actor_id=actor or payer, data=payload))
    return _add


@pytest.fixture
def add_settlement(engine, seed):
    counter = {"n": 0}

    def _add(from_id, to_id, amount, key=None):
        counter["n"] += 1
        payload = SettlementIn(from_user_id=from_id, to_user_id=to_id, amount=amount)
        return ledger_service.mutate(engine, key or f"settlement-{counter['n']}", Mutation(
            action=ledger_service.CREATE_SETTLEMENT, group_id=seed.group_id,
            actor_id=from_id, data=payload))
    return _add


@pytest.fixture
def client(engine, seed):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[require_user] = lambda: {"id": seed.alice, "name": "Alice"}
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    def _login(user_id):
        app.dependency_overrides[require_user] = lambda: {"id": user_id}
    return _login
