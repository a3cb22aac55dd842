"""
services/balance_service.py — Balance computation.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.

    balance[m] =  sum(expense.amount    where expense.paid_by_member_id == m)
                - sum(split.amount      where split.member_id == m)
                + sum(settlement.amount where settlement.from_member_id == m)
                - sum(settlement.amount where settlement.to_member_id == m)

Positive = the group owes the member (creditor).
Negative = the member owes the group (debtor).

Layer rules:
  - compute_balances() is pure: no Flask, no session, no I/O. It reads only
    its arguments and returns new objects, so it is safe to call
    concurrently.
  - summarise_ledger() chains balances → simplify_service for one snapshot
    and turns skipped records into response warnings.
  - get_balance_response() is the only function here that takes a session;
    it loads a snapshot through ledger_service and delegates the maths.

Tolerant aggregation:
  Records that reference a member outside the group, or carry a non-finite
  amount, are skipped rather than raised. Each skip is logged and handed to
  the optional `on_skip` hook so operators can see inconsistent data.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal

from sqlalchemy.orm import Session

from settleup.app.errors import WarningCode
from settleup.app.services import ledger_service, simplify_service, split_service
from settleup.app.services.money import (
    ZERO,
    allocate_cents,
    finite_decimal_or_none,
    is_negligible,
    to_cents,
)

logger = logging.getLogger(__name__)

SkipHook = Callable[[dict], None]


def _report_skip(
        on_skip: SkipHook | None,
        kind: str,
        record,
        reason: str,
        member_id=None,
) -> None:
    skipped = {
        "kind": kind,
        "record_id": getattr(record, "id", None),
        "member_id": member_id,
        "reason": reason,
    }
    logger.warning(
        "Skipping %s %s in balance computation: %s (member_id=%s)",
        kind,
        skipped["record_id"],
        reason,
        member_id,
    )
    if on_skip is not None:
        on_skip(skipped)


# ── Core algorithm ─────────────────────────────────────────────────────────

def compute_balances(
        members: Iterable,
        expenses: Iterable,
        splits_by_expense: Mapping | None,
        settlements: Iterable,
        on_skip: SkipHook | None = None,
) -> list[dict]:
    """
    Canonical balance computation for one group.

    Args:
        members:           objects with `id` and `name`.
        expenses:          objects with `id`, `amount`, `paid_by_member_id`.
        splits_by_expense: {expense_id: [objects with `member_id`, `amount`]}.
                           Splits keyed by an expense not in `expenses` are ignored.
        settlements:       objects with `from_member_id`, `to_member_id`, `amount`.
        on_skip:           optional callback receiving one dict per skipped record
                           ({"kind", "record_id", "member_id", "reason"}).

    Returns:
        [{"member_id", "member_name", "balance": Decimal}] — one entry per
        member, ordered alphabetically by name (case-insensitive; ties keep
        the input order). Totals are kept at full precision; anything below
        one cent in magnitude is reported as Decimal("0.00") and the rest is
        rounded with money.allocate_cents(), so the rounded balances add up
        to the rounded group total.

    Skips (never raises):
      - expense with a non-finite amount (its splits are skipped with it)
      - expense payer not in `members` (the splits are still debited)
      - split member not in `members`, or split amount non-finite
      - settlement with either party not in `members`, or amount non-finite
    """
    names: dict = {}
    for member in members:
        # First occurrence wins when the same id is listed twice.
        names.setdefault(member.id, member.name)

    totals: dict = {member_id: Decimal("0") for member_id in names}
    splits_by_expense = splits_by_expense or {}

    # Step 1 + 2: credit payers, debit split participants.
    for expense in expenses:
        amount = finite_decimal_or_none(expense.amount)
        if amount is None:
            _report_skip(on_skip, "expense", expense, "non-finite amount")
            continue

        if expense.paid_by_member_id in totals:
            totals[expense.paid_by_member_id] += amount
        else:
            _report_skip(
                on_skip, "expense", expense, "payer is not a group member",
                member_id=expense.paid_by_member_id,
            )

        for split in splits_by_expense.get(expense.id, ()):
            split_amount = finite_decimal_or_none(split.amount)
            if split_amount is None:
                _report_skip(
                    on_skip, "split", split, "non-finite amount",
                    member_id=split.member_id,
                )
            elif split.member_id not in totals:
                _report_skip(
                    on_skip, "split", split, "member is not a group member",
                    member_id=split.member_id,
                )
            else:
                totals[split.member_id] -= split_amount

    # Step 3: net settlements. The payer gains credit, the recipient loses it.
    for settlement in settlements:
        amount = finite_decimal_or_none(settlement.amount)
        if amount is None:
            _report_skip(on_skip, "settlement", settlement, "non-finite amount")
            continue

        unknown = next(
            (
                mid for mid in (settlement.from_member_id, settlement.to_member_id)
                if mid not in totals
            ),
            None,
        )
        if unknown is not None:
            _report_skip(
                on_skip, "settlement", settlement, "party is not a group member",
                member_id=unknown,
            )
            continue

        totals[settlement.from_member_id] += amount
        totals[settlement.to_member_id]   -= amount

    # Round once, over the whole group, so the cents still sum to zero.
    rounded = dict(zip(totals, allocate_cents(list(totals.values()))))

    ordered = sorted(names.items(), key=lambda item: str(item[1]).casefold())
    return [
        {
            "member_id": member_id,
            "member_name": name,
            "balance": rounded[member_id],
        }
        for member_id, name in ordered
    ]


def balance_sum(balances: Iterable[dict]) -> Decimal:
    """Sum of all balances. Zero (within one cent) for consistent ledgers."""
    return sum((b["balance"] for b in balances), ZERO)


# ── Response builders ──────────────────────────────────────────────────────

def _skip_warning(skipped: dict) -> dict:
    subject = skipped["kind"].capitalize()
    if skipped["record_id"] is not None:
        subject = f"{subject} {skipped['record_id']}"
    if skipped["member_id"] is not None:
        subject = f"{subject} (member {skipped['member_id']})"
    return {
        "code": WarningCode.ORPHANED_RECORD,
        "message": f"{subject} was left out of the balances: {skipped['reason']}.",
    }


def summarise_ledger(snapshot: ledger_service.LedgerSnapshot) -> tuple[dict, list[dict]]:
    """
    Runs the full pipeline on one snapshot: balances, then simplification.

    Returns:
        (payload, warnings)
        payload  = {"balances", "transactions", "savings", "balance_sum"}
        warnings = ORPHANED_RECORD per skipped record, UNBALANCED_EXPENSE per
                   expense whose splits miss its amount, and BALANCE_SUM_NONZERO
                   when either left the zero-sum invariant broken.
    """
    skipped: list[dict] = []
    balances = compute_balances(
        snapshot.members,
        snapshot.expenses,
        snapshot.splits_by_expense,
        snapshot.settlements,
        on_skip=skipped.append,
    )
    simplified = simplify_service.simplify_debts(balances)

    warnings = [_skip_warning(s) for s in skipped]

    for expense_id in split_service.find_unbalanced_expenses(
            snapshot.expenses, snapshot.splits_by_expense,
    ):
        warnings.append({
            "code": WarningCode.UNBALANCED_EXPENSE,
            "message": f"Splits of expense {expense_id} do not add up to its amount.",
        })

    total = balance_sum(balances)
    if not is_negligible(total):
        logger.error("Balance integrity check failed: sum was %s", total)
        warnings.append({
            "code": WarningCode.BALANCE_SUM_NONZERO,
            "message": (
                f"Balances sum to {to_cents(total)} instead of 0.00. "
                f"The ledger has inconsistent data."
            ),
        })

    payload = {
        "balances": balances,
        "transactions": simplified["transactions"],
        "savings": simplified["savings"],
        "balance_sum": to_cents(total),
    }
    return payload, warnings


def get_balance_response(group_id: int, session: Session) -> tuple[dict, list[dict]]:
    """
    Builds the payload for GET /groups/:id/balances.

    Same shape as summarise_ledger(), plus "group_id".

    Raises:
        AppError(GROUP_NOT_FOUND, 404) -- group does not exist.
    """
    ledger_service.get_group_or_404(group_id, session)
    snapshot = ledger_service.load_snapshot(group_id, session)

    payload, warnings = summarise_ledger(snapshot)
    if warnings:
        logger.info("Group %s balances returned with %d warning(s)", group_id, len(warnings))
    return {"group_id": group_id, **payload}, warnings
