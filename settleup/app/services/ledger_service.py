"""
services/ledger_service.py — Read access to a group's ledger.

These helpers are the ONLY sanctioned way to load ledger rows for balance
purposes. The balance calculator itself never touches the database; it is
handed the rows these functions return.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives group_id (int) and session (SQLAlchemy Session) as arguments.
  - Returns ORM rows (or plain containers of them).

Consistency:
  load_snapshot() reads all four collections through the same session, so a
  caller that wraps it in one transaction gets a consistent view.

snapshot_from_payload() builds the same LedgerSnapshot from a caller-supplied
JSON payload, for the stateless POST /settle endpoint.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from types import SimpleNamespace

from sqlalchemy import select
from sqlalchemy.orm import Session

from settleup.app.errors import AppError, ErrorCode
from settleup.app.models.expense import Expense, SplitMethod
from settleup.app.models.group import Group
from settleup.app.models.member import Member
from settleup.app.models.settlement import Settlement
from settleup.app.models.split import ExpenseSplit
from settleup.app.services import split_service


@dataclass
class LedgerSnapshot:
    """Everything compute_balances() needs for one group."""

    members: list[Member] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    splits_by_expense: dict[int, list[ExpenseSplit]] = field(default_factory=dict)
    settlements: list[Settlement] = field(default_factory=list)


def get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def list_members(group_id: int, session: Session) -> list[Member]:
    """Returns the group's members in listing order (name, then id)."""
    stmt = (
        select(Member)
        .where(Member.group_id == group_id)
        .order_by(Member.name, Member.id)
    )
    return list(session.execute(stmt).scalars().all())


def list_expenses(group_id: int, session: Session) -> list[Expense]:
    """Returns the group's expenses, newest first."""
    stmt = (
        select(Expense)
        .where(Expense.group_id == group_id)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def list_splits(expense_id: int, session: Session) -> list[ExpenseSplit]:
    """Returns the splits of a single expense."""
    stmt = (
        select(ExpenseSplit)
        .where(ExpenseSplit.expense_id == expense_id)
        .order_by(ExpenseSplit.id)
    )
    return list(session.execute(stmt).scalars().all())


def list_splits_by_expense(group_id: int, session: Session) -> dict[int, list[ExpenseSplit]]:
    """
    Batched form of list_splits(): one query for every split of the group,
    keyed by expense_id. Expenses without splits have no key.
    """
    stmt = (
        select(ExpenseSplit)
        .join(Expense, ExpenseSplit.expense_id == Expense.id)
        .where(Expense.group_id == group_id)
        .order_by(ExpenseSplit.expense_id, ExpenseSplit.id)
    )
    grouped: dict[int, list[ExpenseSplit]] = defaultdict(list)
    for split in session.execute(stmt).scalars().all():
        grouped[split.expense_id].append(split)
    return dict(grouped)


def list_settlements(group_id: int, session: Session) -> list[Settlement]:
    """Returns the group's settlements, newest first."""
    stmt = (
        select(Settlement)
        .where(Settlement.group_id == group_id)
        .order_by(Settlement.created_at.desc(), Settlement.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def load_snapshot(group_id: int, session: Session) -> LedgerSnapshot:
    """Reads members, expenses, splits and settlements of a group in one go."""
    return LedgerSnapshot(
        members=list_members(group_id, session),
        expenses=list_expenses(group_id, session),
        splits_by_expense=list_splits_by_expense(group_id, session),
        settlements=list_settlements(group_id, session),
    )


# ── Caller-supplied snapshots ──────────────────────────────────────────────

def snapshot_from_payload(data: dict) -> LedgerSnapshot:
    """
    Builds a LedgerSnapshot from a validated LedgerSnapshotSchema payload,
    without touching the database.

    Expenses that carry `split_method` instead of explicit `splits` get their
    rows from split_service.compute_splits(). An equal split without
    `participant_ids` is shared by every member.

    Raises:
        AppError from split_service when a split configuration is invalid.
    """
    members = [SimpleNamespace(id=m["id"], name=m["name"]) for m in data["members"]]
    all_member_ids = [m.id for m in members]

    expenses = []
    splits_by_expense: dict[int, list] = {}
    for raw in data.get("expenses", []):
        expense = SimpleNamespace(
            id=raw["id"],
            amount=raw["amount"],
            paid_by_member_id=raw["paid_by_member_id"],
        )
        expenses.append(expense)

        if "splits" in raw:
            rows = raw["splits"]
        else:
            participants = raw.get("participant_ids")
            if participants is None and raw["split_method"] == SplitMethod.EQUAL:
                participants = all_member_ids
            method = split_service.split_method_from_config(
                raw["split_method"],
                raw.get("split_config"),
                member_ids=participants,
            )
            rows = split_service.compute_splits(
                expense.amount, method, payer_id=expense.paid_by_member_id,
            )

        splits_by_expense[expense.id] = [
            SimpleNamespace(id=None, member_id=r["member_id"], amount=r["amount"])
            for r in rows
        ]

    settlements = [
        SimpleNamespace(
            id=position,
            from_member_id=s["from_member_id"],
            to_member_id=s["to_member_id"],
            amount=s["amount"],
        )
        for position, s in enumerate(data.get("settlements", []), start=1)
    ]

    return LedgerSnapshot(
        members=members,
        expenses=expenses,
        splits_by_expense=splits_by_expense,
        settlements=settlements,
    )
