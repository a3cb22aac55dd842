"""
services/simplify_service.py — Greedy minimum cash flow debt simplification.

Turns the balances produced by balance_service.compute_balances() into an
ordered list of suggested payments that zero every balance.

Algorithm (largest creditor ↔ largest debtor):
  1. Creditors: balance >= +0.01.  Debtors: balance <= -0.01.
     Everyone else is already settled.
  2. Sort creditors by balance, debtors by |balance|, both descending.
     The sort is stable, so equal balances keep their input order.
  3. Walk both lists with one cursor each. Each step pays
     min(creditor remaining, debtor remaining) from the debtor to the
     creditor and advances every cursor whose remaining balance fell
     below one cent.

The transaction count is at most creditors + debtors - 1 and at most
creditors × debtors. It is not a guaranteed global minimum.

Pure and stateless: reads only its argument, returns new objects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from settleup.app.services.money import TOLERANCE, finite_decimal_or_none

logger = logging.getLogger(__name__)


def _parties(balances: Iterable[dict]) -> tuple[list[tuple], list[tuple]]:
    """
    Splits balances into (creditors, debtors), each a list of
    (member_id, member_name, outstanding) with outstanding > 0, unsorted.
    """
    creditors: list[tuple] = []
    debtors: list[tuple] = []

    for entry in balances:
        amount = finite_decimal_or_none(entry.get("balance"))
        if amount is None:
            logger.warning(
                "Ignoring member %s with non-finite balance %r",
                entry.get("member_id"),
                entry.get("balance"),
            )
            continue

        party = (entry.get("member_id"), entry.get("member_name"))
        if amount >= TOLERANCE:
            creditors.append((*party, amount))
        elif amount <= -TOLERANCE:
            debtors.append((*party, -amount))

    return creditors, debtors


def count_parties(balances: Iterable[dict]) -> tuple[int, int]:
    """Returns (creditor_count, debtor_count) using the one-cent threshold."""
    creditors, debtors = _parties(balances)
    return len(creditors), len(debtors)


def naive_transaction_count(balances: Iterable[dict]) -> int:
    """Cost if every debtor paid every creditor separately: creditors × debtors."""
    creditor_count, debtor_count = count_parties(balances)
    return creditor_count * debtor_count


def simplify_debts(balances: Iterable[dict]) -> dict:
    """
    Args:
        balances: [{"member_id", "member_name", "balance"}] as returned by
                  compute_balances(). Only "balance" is required.

    Returns:
        {
          "transactions": [{"from", "from_member_id", "to", "to_member_id", "amount"}],
          "savings": int,
        }
        "from"/"to" are member names; "amount" is a Decimal > 0.
        savings = max(0, creditors × debtors - len(transactions)).
        An empty transaction list means everyone is already settled.
    """
    creditors, debtors = _parties(balances)
    creditors.sort(key=lambda x: x[2], reverse=True)
    debtors.sort(key=lambda x: x[2], reverse=True)

    transactions: list[dict] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        cid, cname, credit = creditors[i]
        did, dname, debt = debtors[j]

        transfer = min(credit, debt)
        if transfer >= TOLERANCE:
            transactions.append({
                "from": dname,
                "from_member_id": did,
                "to": cname,
                "to_member_id": cid,
                "amount": transfer,
            })
            credit -= transfer
            debt -= transfer
            creditors[i] = (cid, cname, credit)
            debtors[j] = (did, dname, debt)

        # Sub-cent dust counts as settled; both cursors may move at once.
        if credit < TOLERANCE:
            i += 1
        if debt < TOLERANCE:
            j += 1

    naive = len(creditors) * len(debtors)
    savings = max(0, naive - len(transactions))

    logger.debug(
        "Simplified %d creditor(s) / %d debtor(s) into %d transaction(s), savings=%d",
        len(creditors),
        len(debtors),
        len(transactions),
        savings,
    )

    return {"transactions": transactions, "savings": savings}
