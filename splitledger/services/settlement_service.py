# splitledger/services/settlement_service.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlmodel import Session

from splitledger.errors import IntegrityError, ValidationError
from splitledger.services.balance_service import compute_group_balances, compute_pairwise_balances
from splitledger.services.membership import get_group

SIMPLIFIED = "simplified"
DIRECT = "direct"
MODES = (SIMPLIFIED, DIRECT)

PAYABLE = "PAYABLE"
RECEIVABLE = "RECEIVABLE"


@dataclass(frozen=True)
class Transfer:
    from_id: int
    to_id: int
    amount: int


def simplify(nets: Dict[int, int]) -> List[Transfer]:
    """Greedy debtor/creditor matching that zeroes every balance.

    Largest debtor pays largest creditor the smaller of the two remainders,
    repeatedly. Produces at most ``debtors + creditors - 1`` transfers; it is
    not guaranteed to be the smallest possible set.
    """
    debtors = sorted(((uid, amt) for uid, amt in nets.items() if amt < 0), key=lambda x: (x[1], x[0]))
    creditors = sorted(((uid, amt) for uid, amt in nets.items() if amt > 0), key=lambda x: (-x[1], x[0]))

    owed = [-amt for _, amt in debtors]
    due = [amt for _, amt in creditors]
    i = j = 0
    transfers = []
    while i < len(debtors) and j < len(creditors):
        pay = min(owed[i], due[j])
        transfers.append(Transfer(from_id=debtors[i][0], to_id=creditors[j][0], amount=pay))
        owed[i] -= pay
        due[j] -= pay
        if owed[i] == 0:
            i += 1
        if due[j] == 0:
            j += 1

    if i != len(debtors) or j != len(creditors):
        left = {uid: -owed[k] for k, (uid, _) in enumerate(debtors) if owed[k]}
        left.update({uid: due[k] for k, (uid, _) in enumerate(creditors) if due[k]})
        logging.error("debt simplification left unmatched balances: %s", left)
        raise IntegrityError("balances do not net to zero", details={"unmatched": {str(k): v for k, v in left.items()}})
    return transfers


def perspective(transfers: List[Transfer], member_id: int) -> List[dict]:
    """Keep the transfers touching ``member_id``, signed from its point of view."""
    out = []
    for t in transfers:
        if t.from_id == member_id:
            out.append({"counterparty_id": t.to_id, "amount": -t.amount, "direction": PAYABLE})
        elif t.to_id == member_id:
            out.append({"counterparty_id": t.from_id, "amount": t.amount, "direction": RECEIVABLE})
    return out


def suggest_settlements(session: Session, group_id: int, member_id: int, mode: Optional[str] = None) -> List[dict]:
    if mode is None:
        mode = SIMPLIFIED if get_group(session, group_id).simplify_debts else DIRECT
    elif mode not in MODES:
        raise ValidationError(f"unknown settlement mode {mode!r}; expected one of {', '.join(MODES)}")
    else:
        get_group(session, group_id)

    if mode == SIMPLIFIED:
        return perspective(simplify(compute_group_balances(session, group_id)), member_id)

    debts = []
    for other, amount in sorted(compute_pairwise_balances(session, group_id, member_id).items()):
        if amount == 0:
            continue
        debts.append({
            "counterparty_id": other,
            "amount": amount,
            "direction": RECEIVABLE if amount > 0 else PAYABLE,
        })
    return debts
