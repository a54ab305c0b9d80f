"""Integer minor-unit helpers.

Every amount in the ledger is an ``int`` count of the currency's smallest
unit (cents, paise). Nothing here accepts or produces a float.
"""
from typing import List

from splitledger.errors import ValidationError


def is_minor_units(value) -> bool:
    # bool is an int subclass but never a valid amount
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive(value, field: str) -> int:
    if not is_minor_units(value) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer amount in minor units")
    return value


def require_non_negative(value, field: str) -> int:
    if not is_minor_units(value) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer amount in minor units")
    return value


def split_evenly(total: int, count: int) -> List[int]:
    """Split ``total`` into ``count`` integer parts that sum to it exactly.

    The remainder goes one unit at a time to the first parts in order:
    ``split_evenly(100, 3) == [34, 33, 33]``.
    """
    require_positive(total, "total_amount")
    if count <= 0:
        raise ValidationError("at least one participant is required to split an expense")
    base, remainder = divmod(total, count)
    return [base + 1 if i < remainder else base for i in range(count)]
