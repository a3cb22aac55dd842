"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against an in-memory SQLite database (TestingConfig default).
    Set TEST_DATABASE_URL to run the same suite against PostgreSQL.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) seed the ledger directly through the ORM,
because groups, members and expenses have no HTTP endpoints:
  - make_group(app, ...)       → group id
  - add_member(app, ...)       → member id
  - make_expense(app, ...)     → expense id
  - make_settlement(app, ...)  → settlement id
  - record_settlement(client, ...) → HTTP response of POST /groups/:id/settlements

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import text

from settleup.app import create_app
from settleup.app.extensions import db as _db
from settleup.app.models.expense import Expense
from settleup.app.models.group import Group
from settleup.app.models.member import Member
from settleup.app.models.settlement import Settlement
from settleup.app.models.split import ExpenseSplit
from settleup.app.services import split_service


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children before parents.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        for table in ("expense_splits", "settlements", "expenses", "members", "groups"):
            _db.session.execute(text(f"DELETE FROM {table}"))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_group(app, name: str = "Test Group") -> int:
    with app.app_context():
        group = Group(name=name)
        _db.session.add(group)
        _db.session.commit()
        return group.id


def add_member(app, group_id: int, name: str) -> int:
    with app.app_context():
        member = Member(group_id=group_id, name=name)
        _db.session.add(member)
        _db.session.commit()
        return member.id


def _stored_config(method: split_service.SplitVariant) -> dict | None:
    """The JSON map an Expense row keeps for percentage / amount splits."""
    shares = getattr(method, "percentages", None) or getattr(method, "amounts", None)
    if shares is None:
        return None
    return {str(mid): str(value) for mid, value in shares.items()}


def make_expense(
    app,
    group_id: int,
    paid_by_member_id: int,
    amount: str,
    method: split_service.SplitVariant | None = None,
    splits: dict | None = None,
    description: str = "Test expense",
) -> int:
    """
    Stores an expense with its split rows.

    Pass either `method` (rows computed by split_service.compute_splits) or
    `splits` ({member_id: amount}, stored as-is even when they do not add up,
    so inconsistent ledgers can be built).
    """
    if method is not None:
        rows = split_service.compute_splits(amount, method, payer_id=paid_by_member_id)
    else:
        method = split_service.FixedAmountSplit({mid: amt for mid, amt in (splits or {}).items()})
        rows = [{"member_id": mid, "amount": Decimal(amt)} for mid, amt in (splits or {}).items()]

    with app.app_context():
        expense = Expense(
            group_id=group_id,
            paid_by_member_id=paid_by_member_id,
            description=description,
            amount=Decimal(amount),
            split_method=method.method,
            split_config=_stored_config(method),
        )
        expense.splits = [
            ExpenseSplit(member_id=row["member_id"], amount=row["amount"]) for row in rows
        ]
        _db.session.add(expense)
        _db.session.commit()
        return expense.id


def make_settlement(app, group_id: int, from_member_id: int, to_member_id: int, amount: str) -> int:
    """Inserts a settlement row directly, bypassing the membership checks."""
    with app.app_context():
        settlement = Settlement(
            group_id=group_id,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            amount=Decimal(amount),
        )
        _db.session.add(settlement)
        _db.session.commit()
        return settlement.id


def record_settlement(client, group_id: int, from_member_id: int, to_member_id: int, amount):
    """POSTs a settlement. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/settlements",
        json={
            "from_member_id": from_member_id,
            "to_member_id": to_member_id,
            "amount": amount,
        },
    )


def get_balances(client, group_id: int) -> dict:
    """GETs balances and returns the full response body (data + warnings)."""
    resp = client.get(f"/api/v1/groups/{group_id}/balances")
    assert resp.status_code == 200, f"get_balances failed: {resp.get_json()}"
    return resp.get_json()
