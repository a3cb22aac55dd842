"""
schemas/ledger_schema.py — Marshmallow schema for POST /settle.

The body is a complete ledger snapshot supplied by the caller:

    {
      "members":     [{"id": 1, "name": "Alice"}, ...],
      "expenses":    [{"id": 10, "amount": "30.00", "paid_by_member_id": 1,
                       "splits": [{"member_id": 1, "amount": "10.00"}, ...]},
                      {"id": 11, "amount": "20.00", "paid_by_member_id": 2,
                       "split_method": "percentage",
                       "split_config": {"1": "25", "2": "75"}}],
      "settlements": [{"from_member_id": 2, "to_member_id": 1, "amount": "5.00"}]
    }

This is the input boundary, so it is strict about numbers: every amount must
be finite, non-negative (positive for expenses and settlements) and have at
most 2 decimal places.

It is deliberately NOT strict about references: a split or settlement that
names a member missing from `members` is accepted here and reported as an
ORPHANED_RECORD warning by the balance calculator.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from settleup.app.errors import ErrorCode
from settleup.app.models.expense import SplitMethod


def _validate_precision(value: Decimal) -> None:
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_positive_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    _validate_precision(value)


def _validate_non_negative_amount(value: Decimal) -> None:
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")
    _validate_precision(value)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class MemberInputSchema(Schema):
    id = fields.Int(required=True, strict=True)
    name = fields.Str(
        required=True,
        validate=[validate.Length(max=100), _validate_non_empty_after_trim],
    )


class SplitInputSchema(Schema):
    member_id = fields.Int(required=True, strict=True)
    amount = fields.Decimal(required=True, validate=_validate_non_negative_amount)


class ExpenseInputSchema(Schema):
    """
    One expense. Either `splits` (explicit rows) or `split_method` must be
    given. With only `split_method`, the rows are computed by split_service:
      equal      — among `participant_ids`, or every member when omitted
      percentage — from `split_config` {member_id: percent}
      amount     — from `split_config` {member_id: amount}
    """

    id = fields.Int(required=True, strict=True)
    amount = fields.Decimal(required=True, validate=_validate_positive_amount)
    paid_by_member_id = fields.Int(required=True, strict=True)

    splits = fields.List(fields.Nested(SplitInputSchema))

    split_method = fields.Str(
        validate=validate.OneOf(
            [m.value for m in SplitMethod],
            error=ErrorCode.INVALID_SPLIT_METHOD,
        ),
    )
    split_config = fields.Dict(keys=fields.Str(), values=fields.Raw(), allow_none=True)
    participant_ids = fields.List(fields.Int(strict=True))

    @validates_schema
    def _splits_or_method(self, data, **kwargs):
        if "splits" not in data and "split_method" not in data:
            raise ValidationError(
                "Missing data for required field: provide splits or split_method.",
                field_name="splits",
            )


class SettlementInputSchema(Schema):
    from_member_id = fields.Int(required=True, strict=True)
    to_member_id = fields.Int(required=True, strict=True)
    amount = fields.Decimal(required=True, validate=_validate_positive_amount)


class LedgerSnapshotSchema(Schema):
    """POST /settle — a full ledger snapshot for one group."""

    members = fields.List(fields.Nested(MemberInputSchema), required=True)
    expenses = fields.List(fields.Nested(ExpenseInputSchema), load_default=list)
    settlements = fields.List(fields.Nested(SettlementInputSchema), load_default=list)

    @validates_schema
    def _unique_ids(self, data, **kwargs):
        member_ids = [m["id"] for m in data.get("members", [])]
        if len(set(member_ids)) != len(member_ids):
            raise ValidationError(ErrorCode.DUPLICATE_MEMBER, field_name="members")

        expense_ids = [e["id"] for e in data.get("expenses", [])]
        if len(set(expense_ids)) != len(expense_ids):
            raise ValidationError(
                "The same expense id appears more than once.",
                field_name="expenses",
            )
