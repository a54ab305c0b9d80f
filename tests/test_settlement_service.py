import pytest
from sqlmodel import Session

from splitledger.errors import IntegrityError, ValidationError
from splitledger.models.group import Group
from splitledger.services.settlement_service import (
    DIRECT,
    PAYABLE,
    RECEIVABLE,
    SIMPLIFIED,
    Transfer,
    perspective,
    simplify,
    suggest_settlements,
)


def apply(nets, transfers):
    left = dict(nets)
    for t in transfers:
        left[t.from_id] += t.amount
        left[t.to_id] -= t.amount
    return left


def test_two_person_debt_is_one_transfer():
    assert simplify({1: 500, 2: -500}) == [Transfer(from_id=2, to_id=1, amount=500)]


def test_settled_balances_need_no_transfers():
    assert simplify({}) == []
    assert simplify({1: 0, 2: 0}) == []


def test_largest_debtor_pays_largest_creditor_first():
    nets = {1: -300, 2: -200, 3: 100, 4: 400}
    transfers = simplify(nets)
    assert transfers == [
        Transfer(from_id=1, to_id=4, amount=300),
        Transfer(from_id=2, to_id=4, amount=100),
        Transfer(from_id=2, to_id=3, amount=100),
    ]
    assert all(v == 0 for v in apply(nets, transfers).values())


def test_ties_are_broken_by_member_id():
    assert simplify({3: 100, 2: -50, 1: -50}) == [
        Transfer(from_id=1, to_id=3, amount=50),
        Transfer(from_id=2, to_id=3, amount=50),
    ]


def test_can_route_between_members_who_never_transacted():
    # 1 owes 2, 2 owes 3: simplified view has 1 pay 3 directly
    assert simplify({1: -100, 2: 0, 3: 100}) == [Transfer(from_id=1, to_id=3, amount=100)]


def test_input_is_not_modified():
    nets = {1: 250, 2: -100, 3: -150}
    simplify(nets)
    assert nets == {1: 250, 2: -100, 3: -150}


@pytest.mark.parametrize("nets", [{1: 100, 2: -99}, {1: 100}, {1: -1}])
def test_balances_that_do_not_net_to_zero_fail_loudly(nets):
    with pytest.raises(IntegrityError):
        simplify(nets)


def test_perspective_signs_and_labels():
    transfers = [Transfer(2, 1, 500), Transfer(3, 2, 40), Transfer(3, 4, 10)]
    assert perspective(transfers, 2) == [
        {"counterparty_id": 1, "amount": -500, "direction": PAYABLE},
        {"counterparty_id": 3, "amount": 40, "direction": RECEIVABLE},
    ]
    assert perspective(transfers, 5) == []


@pytest.fixture
def scenario_d(seed, add_expense):
    add_expense(seed.alice, 300, participants=[seed.alice, seed.bob, seed.carol])
    add_expense(seed.bob, 90, participants=[seed.bob, seed.carol])
    return seed


def test_simplified_suggestions_for_debtor(engine, scenario_d):
    seed = scenario_d
    with Session(engine) as s:
        debts = suggest_settlements(s, seed.group_id, seed.carol, SIMPLIFIED)
    assert debts == [{"counterparty_id": seed.alice, "amount": -145, "direction": PAYABLE}]


def test_simplified_suggestions_for_creditor(engine, scenario_d):
    seed = scenario_d
    with Session(engine) as s:
        debts = suggest_settlements(s, seed.group_id, seed.alice, SIMPLIFIED)
    assert debts == [
        {"counterparty_id": seed.carol, "amount": 145, "direction": RECEIVABLE},
        {"counterparty_id": seed.bob, "amount": 55, "direction": RECEIVABLE},
    ]


def test_direct_suggestions_follow_pairwise_balances(engine, scenario_d):
    seed = scenario_d
    with Session(engine) as s:
        debts = suggest_settlements(s, seed.group_id, seed.bob, DIRECT)
    assert debts == [
        {"counterparty_id": seed.alice, "amount": -100, "direction": PAYABLE},
        {"counterparty_id": seed.carol, "amount": 45, "direction": RECEIVABLE},
    ]


def test_mode_defaults_to_group_setting(engine, scenario_d):
    seed = scenario_d
    with Session(engine) as s:
        assert len(suggest_settlements(s, seed.group_id, seed.carol)) == 2

        g = s.get(Group, seed.group_id)
        g.simplify_debts = True
        s.add(g)
        s.commit()
        assert len(suggest_settlements(s, seed.group_id, seed.carol)) == 1


def test_unknown_mode_is_rejected(engine, seed):
    with Session(engine) as s:
        with pytest.raises(ValidationError):
            suggest_settlements(s, seed.group_id, seed.alice, "cheapest")
