"""
services/settlement_service.py — Recording settlements.

A settlement is how a caller acts on a suggested transaction from
simplify_service: once the debtor has paid the creditor in the real world,
record_settlement() stores that fact and the next balance computation nets it.
No money is moved here.

Rules enforced here:
  SELF_SETTLEMENT (422)        — from_member_id must differ from to_member_id
  PAYER_NOT_MEMBER (422)       — from_member_id must belong to the group
  RECIPIENT_NOT_MEMBER (422)   — to_member_id must belong to the group
  OVERPAYMENT warning          — amount exceeds what the payer currently owes
                                 the group; recorded anyway (pre-payment is valid)

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from settleup.app.errors import AppError, ErrorCode, WarningCode
from settleup.app.models.settlement import Settlement
from settleup.app.services import balance_service, ledger_service
from settleup.app.services.money import ZERO

logger = logging.getLogger(__name__)


def _outstanding_debt(member_id: int, snapshot: ledger_service.LedgerSnapshot) -> Decimal:
    """What member_id currently owes the group (0.00 if they are owed or settled)."""
    balances = balance_service.compute_balances(
        snapshot.members,
        snapshot.expenses,
        snapshot.splits_by_expense,
        snapshot.settlements,
    )
    balance = next(
        (b["balance"] for b in balances if b["member_id"] == member_id),
        ZERO,
    )
    return -balance if balance < ZERO else ZERO


def record_settlement(
        group_id: int,
        data: dict,
        session: Session,
) -> tuple[Settlement, list[dict]]:
    """
    Records a payment from one member to another.

    Args:
        group_id: The group this settlement belongs to.
        data:     Validated dict from RecordSettlementSchema.
                  Keys: from_member_id (int), to_member_id (int), amount (Decimal).

    Returns:
        (Settlement, warnings) where warnings is a list of warning dicts.

    Raises:
        AppError(GROUP_NOT_FOUND, 404)
        AppError(SELF_SETTLEMENT, 422)
        AppError(PAYER_NOT_MEMBER, 422)
        AppError(RECIPIENT_NOT_MEMBER, 422)
    """
    ledger_service.get_group_or_404(group_id, session)

    from_member_id: int = data["from_member_id"]
    to_member_id: int = data["to_member_id"]
    amount: Decimal = data["amount"]

    if from_member_id == to_member_id:
        raise AppError(
            ErrorCode.SELF_SETTLEMENT,
            "A member cannot settle with themselves.",
            422,
            field="to_member_id",
        )

    snapshot = ledger_service.load_snapshot(group_id, session)
    member_ids = {m.id for m in snapshot.members}

    if from_member_id not in member_ids:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"Member {from_member_id} is not a member of group {group_id}.",
            422,
            field="from_member_id",
        )
    if to_member_id not in member_ids:
        raise AppError(
            ErrorCode.RECIPIENT_NOT_MEMBER,
            f"Member {to_member_id} is not a member of group {group_id}.",
            422,
            field="to_member_id",
        )

    warnings: list[dict] = []
    current_debt = _outstanding_debt(from_member_id, snapshot)
    if amount > current_debt:
        warnings.append({
            "code": WarningCode.OVERPAYMENT,
            "message": (
                f"Settlement of {amount} exceeds the {current_debt} member "
                f"{from_member_id} currently owes. Recording anyway — "
                f"pre-payment is valid."
            ),
        })

    settlement = Settlement(
        group_id=group_id,
        from_member_id=from_member_id,
        to_member_id=to_member_id,
        amount=amount,
    )
    session.add(settlement)
    session.flush()

    logger.info(
        "Recorded settlement %s in group %s: %s -> %s, %s",
        settlement.id,
        group_id,
        from_member_id,
        to_member_id,
        amount,
    )
    return settlement, warnings


def list_settlements(group_id: int, session: Session) -> list[Settlement]:
    """Returns all settlements for a group, newest first."""
    ledger_service.get_group_or_404(group_id, session)
    return ledger_service.list_settlements(group_id, session)
