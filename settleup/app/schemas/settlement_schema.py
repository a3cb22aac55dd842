"""
schemas/settlement_schema.py — Marshmallow schema for settlement endpoints.

Validation responsibility:
  - This file: field types, decimal precision, positive amount.
  - services/settlement_service.py:
      - SELF_SETTLEMENT      (422)
      - PAYER_NOT_MEMBER     (422) — requires DB membership lookup
      - RECIPIENT_NOT_MEMBER (422) — requires DB membership lookup
      - GROUP_NOT_FOUND      (404) — requires DB lookup
      - OVERPAYMENT warning  (201) — requires current balance

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate

from settleup.app.errors import ErrorCode


def _validate_monetary_amount(value: Decimal) -> None:
    """
    Validates a monetary Decimal value:
      - Must be strictly greater than zero.
      - Must have at most 2 decimal places.

    Input with more than 2 decimal places is REJECTED (INVALID_AMOUNT_PRECISION)
    — never rounded. NaN and infinity are rejected by fields.Decimal itself.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3 → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class RecordSettlementSchema(Schema):
    """
    POST /groups/:id/settlements

    Usually the body is a transaction suggested by GET /groups/:id/balances,
    accepted as-is: {"from_member_id", "to_member_id", "amount"}.
    """

    from_member_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0 — integers only
        validate=validate.Range(
            min=1,
            error="from_member_id must be a positive integer.",
        ),
    )

    to_member_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(
            min=1,
            error="to_member_id must be a positive integer.",
        ),
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )
