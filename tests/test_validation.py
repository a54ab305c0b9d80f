import pytest

from splitledger.errors import ValidationError
from splitledger.models.expense import ExpenseIn
from splitledger.models.settlement import SettlementIn
from splitledger.services.validation import validate_expense, validate_settlement

MEMBERS = [1, 2, 3]


def expense(total, shares=None, participants=None, payer=1):
    return ExpenseIn(
        total_amount=total, payer_id=payer,
        shares=[{"user_id": u, "amount": a} for u, a in shares] if shares is not None else None,
        participants=participants,
    )


def test_valid_expense_keeps_declared_order():
    shares = validate_expense(expense(1000, [(2, 600), (1, 400)]), MEMBERS)
    assert shares == [(2, 600), (1, 400)]


def test_share_sum_one_short_is_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_expense(expense(1000, [(1, 500), (2, 499)]), MEMBERS)
    assert exc.value.details == {"total_amount": 1000, "share_sum": 999}


def test_share_for_non_member_is_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_expense(expense(1000, [(1, 500), (9, 500)]), MEMBERS)
    assert exc.value.details == {"user_ids": [9]}


def test_payer_must_be_member():
    with pytest.raises(ValidationError):
        validate_expense(expense(1000, [(1, 500), (2, 500)], payer=9), MEMBERS)


@pytest.mark.parametrize("total", [0, -100])
def test_total_must_be_positive(total):
    with pytest.raises(ValidationError):
        validate_expense(expense(total, [(1, total)]), MEMBERS)


def test_zero_share_is_allowed():
    assert validate_expense(expense(1000, [(1, 1000), (2, 0)]), MEMBERS) == [(1, 1000), (2, 0)]


def test_negative_share_is_rejected():
    with pytest.raises(ValidationError):
        validate_expense(expense(1000, [(1, 1100), (2, -100)]), MEMBERS)


def test_member_listed_twice_is_rejected():
    with pytest.raises(ValidationError):
        validate_expense(expense(1000, [(1, 500), (1, 500)]), MEMBERS)


def test_participants_are_split_evenly():
    assert validate_expense(expense(100, participants=[1, 2, 3]), MEMBERS) == [(1, 34), (2, 33), (3, 33)]


def test_shares_and_participants_are_exclusive():
    with pytest.raises(ValidationError):
        validate_expense(expense(100, [(1, 100)], participants=[1]), MEMBERS)
    with pytest.raises(ValidationError):
        validate_expense(expense(100), MEMBERS)
    with pytest.raises(ValidationError):
        validate_expense(expense(100, []), MEMBERS)


def test_settlement_with_self_is_rejected():
    with pytest.raises(ValidationError):
        validate_settlement(SettlementIn(from_user_id=1, to_user_id=1, amount=100), MEMBERS)


@pytest.mark.parametrize("amount", [0, -5])
def test_settlement_amount_must_be_positive(amount):
    with pytest.raises(ValidationError):
        validate_settlement(SettlementIn(from_user_id=1, to_user_id=2, amount=amount), MEMBERS)


def test_settlement_parties_must_be_members():
    with pytest.raises(ValidationError):
        validate_settlement(SettlementIn(from_user_id=1, to_user_id=9, amount=100), MEMBERS)
    validate_settlement(SettlementIn(from_user_id=1, to_user_id=2, amount=100), MEMBERS)
