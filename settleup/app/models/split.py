"""
models/split.py — ExpenseSplit table definition.

One row per (expense, member) pair that owes part of the expense.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float. Zero is allowed: a member can
    be listed with 0% in a percentage split.
  - expense_id is ON DELETE CASCADE — splits are owned by their expense.
  - member_id is ON DELETE RESTRICT — cannot delete a member who owes a split.
  - UNIQUE(expense_id, member_id) prevents the same member appearing twice.

Split conservation (sum(splits.amount) == expense.amount within 0.01) is
checked by split_service.require_split_conservation, not here.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settleup.app.extensions import db


class ExpenseSplit(db.Model):
    __tablename__ = "expense_splits"

    __table_args__ = (
        UniqueConstraint("expense_id", "member_id", name="uq_expense_splits_expense_member"),
        CheckConstraint("amount >= 0", name="ck_expense_splits_amount_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["Expense"] = relationship(  # noqa: F821
        "Expense",
        back_populates="splits",
    )

    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ExpenseSplit id={self.id} "
            f"expense_id={self.expense_id} "
            f"member_id={self.member_id} "
            f"amount={self.amount}>"
        )
