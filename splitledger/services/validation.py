"""Write-time checks run before anything reaches the ledger."""
from typing import Iterable, List, Tuple

from splitledger.errors import ValidationError
from splitledger.models.expense import ExpenseIn
from splitledger.models.settlement import SettlementIn
from splitledger.services.amounts import require_non_negative, require_positive, split_evenly


def resolve_shares(payload: ExpenseIn) -> List[Tuple[int, int]]:
    """Return the expense's shares as ``(user_id, amount)`` pairs in declared order."""
    if payload.shares is not None and payload.participants is not None:
        raise ValidationError("give either shares or participants, not both")
    if payload.shares is not None:
        return [(s.user_id, s.amount) for s in payload.shares]
    if payload.participants is not None:
        if not payload.participants:
            raise ValidationError("at least one person must be involved in the split")
        amounts = split_evenly(require_positive(payload.total_amount, "total_amount"), len(payload.participants))
        return list(zip(payload.participants, amounts))
    raise ValidationError("shares or participants are required")


def validate_expense(payload: ExpenseIn, member_ids: Iterable[int]) -> List[Tuple[int, int]]:
    members = set(member_ids)
    total = require_positive(payload.total_amount, "total_amount")
    shares = resolve_shares(payload)
    if not shares:
        raise ValidationError("at least one person must be involved in the split")

    seen = set()
    for user_id, amount in shares:
        require_non_negative(amount, "share amount")
        if user_id in seen:
            raise ValidationError(f"user {user_id} appears more than once in the split")
        seen.add(user_id)

    share_sum = sum(amount for _, amount in shares)
    if share_sum != total:
        raise ValidationError(
            f"total amount ({total}) does not equal the sum of shares ({share_sum})",
            details={"total_amount": total, "share_sum": share_sum},
        )

    outsiders = sorted((seen | {payload.payer_id}) - members)
    if outsiders:
        raise ValidationError("one or more users are not in this group", details={"user_ids": outsiders})
    return shares


def validate_settlement(payload: SettlementIn, member_ids: Iterable[int]) -> None:
    members = set(member_ids)
    require_positive(payload.amount, "amount")
    if payload.from_user_id == payload.to_user_id:
        raise ValidationError("you can't settle transactions with yourself")
    outsiders = sorted({payload.from_user_id, payload.to_user_id} - members)
    if outsiders:
        raise ValidationError("one or more users are not in this group", details={"user_ids": outsiders})
