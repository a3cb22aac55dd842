"""
Unit tests for balance_service.summarise_ledger and get_balance_response.

These tests avoid Flask and real DB access. Snapshots are built from
SimpleNamespace rows; the loader functions are patched where a session is needed.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from settleup.app.errors import AppError, ErrorCode, WarningCode
from settleup.app.services import balance_service
from settleup.app.services.ledger_service import LedgerSnapshot


def _snapshot(expenses=(), splits=None, settlements=()) -> LedgerSnapshot:
    return LedgerSnapshot(
        members=[
            SimpleNamespace(id=1, name="Alice"),
            SimpleNamespace(id=2, name="Bob"),
            SimpleNamespace(id=3, name="Carol"),
        ],
        expenses=list(expenses),
        splits_by_expense=splits or {},
        settlements=list(settlements),
    )


def _expense(expense_id, paid_by, amount):
    return SimpleNamespace(id=expense_id, paid_by_member_id=paid_by, amount=Decimal(amount))


def _split(member_id, amount, split_id=None):
    return SimpleNamespace(id=split_id, member_id=member_id, amount=Decimal(amount))


def _codes(warnings: list[dict]) -> list[str]:
    return [w["code"] for w in warnings]


# ── summarise_ledger ───────────────────────────────────────────────────────

def test_summarise_consistent_ledger():
    snapshot = _snapshot(
        expenses=[_expense(10, 1, "30.00")],
        splits={10: [_split(1, "10.00"), _split(2, "10.00"), _split(3, "10.00")]},
    )

    payload, warnings = balance_service.summarise_ledger(snapshot)

    assert warnings == []
    assert payload["balance_sum"] == Decimal("0.00")
    assert [(b["member_name"], b["balance"]) for b in payload["balances"]] == [
        ("Alice", Decimal("20.00")),
        ("Bob",   Decimal("-10.00")),
        ("Carol", Decimal("-10.00")),
    ]
    assert [(t["from"], t["to"], t["amount"]) for t in payload["transactions"]] == [
        ("Bob",   "Alice", Decimal("10.00")),
        ("Carol", "Alice", Decimal("10.00")),
    ]
    assert payload["savings"] == 0


def test_summarise_empty_ledger():
    payload, warnings = balance_service.summarise_ledger(LedgerSnapshot())

    assert payload == {
        "balances": [],
        "transactions": [],
        "savings": 0,
        "balance_sum": Decimal("0.00"),
    }
    assert warnings == []


def test_orphaned_split_becomes_warning():
    snapshot = _snapshot(
        expenses=[_expense(10, 1, "30.00")],
        splits={10: [_split(1, "10.00"), _split(2, "10.00"), _split(99, "10.00", split_id=55)]},
    )

    payload, warnings = balance_service.summarise_ledger(snapshot)

    assert _codes(warnings) == [WarningCode.ORPHANED_RECORD, WarningCode.BALANCE_SUM_NONZERO]
    assert "Split 55 (member 99)" in warnings[0]["message"]
    assert payload["balance_sum"] == Decimal("10.00")


def test_unbalanced_expense_becomes_warning():
    snapshot = _snapshot(
        expenses=[_expense(10, 1, "30.00")],
        splits={10: [_split(2, "10.00"), _split(3, "10.00")]},
    )

    payload, warnings = balance_service.summarise_ledger(snapshot)

    assert _codes(warnings) == [WarningCode.UNBALANCED_EXPENSE, WarningCode.BALANCE_SUM_NONZERO]
    assert "expense 10" in warnings[0]["message"]
    # Rows are still counted as stored.
    balances = {b["member_id"]: b["balance"] for b in payload["balances"]}
    assert balances[1] == Decimal("30.00")


def test_orphaned_settlement_keeps_zero_sum():
    snapshot = _snapshot(
        settlements=[SimpleNamespace(id=4, from_member_id=1, to_member_id=42, amount=Decimal("5.00"))],
    )

    payload, warnings = balance_service.summarise_ledger(snapshot)

    assert _codes(warnings) == [WarningCode.ORPHANED_RECORD]
    assert payload["balance_sum"] == Decimal("0.00")


def test_settlement_clears_suggested_transaction():
    snapshot = _snapshot(
        expenses=[_expense(10, 1, "30.00")],
        splits={10: [_split(1, "10.00"), _split(2, "10.00"), _split(3, "10.00")]},
        settlements=[SimpleNamespace(id=1, from_member_id=2, to_member_id=1, amount=Decimal("10.00"))],
    )

    payload, _ = balance_service.summarise_ledger(snapshot)

    assert [(t["from"], t["to"], t["amount"]) for t in payload["transactions"]] == [
        ("Carol", "Alice", Decimal("10.00")),
    ]


# ── get_balance_response ───────────────────────────────────────────────────

def test_get_balance_response_raises_group_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        balance_service.get_balance_response(group_id=404, session=session)

    assert exc_info.value.code == ErrorCode.GROUP_NOT_FOUND


@patch("settleup.app.services.balance_service.ledger_service.load_snapshot")
@patch("settleup.app.services.balance_service.ledger_service.get_group_or_404")
def test_get_balance_response_adds_group_id(mock_get_group, mock_load):
    session = MagicMock()
    mock_load.return_value = _snapshot(
        expenses=[_expense(10, 2, "8.00")],
        splits={10: [_split(1, "4.00"), _split(2, "4.00")]},
    )

    result, warnings = balance_service.get_balance_response(group_id=5, session=session)

    mock_get_group.assert_called_once_with(5, session)
    mock_load.assert_called_once_with(5, session)
    assert result["group_id"] == 5
    assert set(result) == {"group_id", "balances", "transactions", "savings", "balance_sum"}
    assert result["transactions"][0]["from_member_id"] == 1
    assert result["transactions"][0]["to_member_id"] == 2
    assert warnings == []
