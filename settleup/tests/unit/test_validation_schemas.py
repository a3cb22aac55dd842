"""
tests/unit/test_validation_schemas.py — Unit tests for the marshmallow schemas.

What this file proves:
  - Every schema accepts valid input without raising
  - Every schema rejects invalid input with the correct ValidationError
  - Field-level rules (type, strict integers, enum, decimal precision) live in schemas
  - Cross-entity rules (membership, orphaned references) are NOT enforced here
  - Error codes raised as messages match the constants in errors.py

Unit test constraints:
  - No database, no Flask application context.
    Schemas inherit from marshmallow.Schema directly (not ma.Schema), which is
    why they can be instantiated without an app context.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from marshmallow import ValidationError

from settleup.app.errors import ErrorCode
from settleup.app.schemas.ledger_schema import (
    ExpenseInputSchema,
    LedgerSnapshotSchema,
    SplitInputSchema,
)
from settleup.app.schemas.settlement_schema import RecordSettlementSchema


def _snapshot(**overrides) -> dict:
    body = {
        "members": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
        "expenses": [{
            "id": 10,
            "amount": "30.00",
            "paid_by_member_id": 1,
            "splits": [
                {"member_id": 1, "amount": "15.00"},
                {"member_id": 2, "amount": "15.00"},
            ],
        }],
        "settlements": [{"from_member_id": 2, "to_member_id": 1, "amount": "5.00"}],
    }
    body.update(overrides)
    return body


# ═══════════════════════════════════════════════════════════════════════════
# LedgerSnapshotSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestLedgerSnapshotSchema:

    def _load(self, data: dict):
        return LedgerSnapshotSchema().load(data)

    def test_valid_payload(self):
        result = self._load(_snapshot())

        assert [m["name"] for m in result["members"]] == ["Alice", "Bob"]
        assert result["expenses"][0]["amount"] == Decimal("30.00")
        assert isinstance(result["settlements"][0]["amount"], Decimal)

    def test_expenses_and_settlements_default_to_empty(self):
        result = self._load({"members": [{"id": 1, "name": "Alice"}]})

        assert result["expenses"] == []
        assert result["settlements"] == []

    def test_empty_group_is_valid(self):
        assert self._load({"members": []})["members"] == []

    def test_members_required(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"expenses": []})
        assert "members" in exc_info.value.messages

    def test_duplicate_member_ids_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(_snapshot(members=[{"id": 1, "name": "A"}, {"id": 1, "name": "B"}]))
        assert exc_info.value.messages["members"] == [ErrorCode.DUPLICATE_MEMBER]

    def test_duplicate_expense_ids_rejected(self):
        expense = {"id": 5, "amount": "1.00", "paid_by_member_id": 1, "splits": []}
        with pytest.raises(ValidationError) as exc_info:
            self._load(_snapshot(expenses=[expense, dict(expense)]))
        assert "expenses" in exc_info.value.messages

    def test_orphaned_references_are_accepted(self):
        """Unknown member ids are the balance calculator's concern, not the schema's."""
        result = self._load(_snapshot(
            settlements=[{"from_member_id": 99, "to_member_id": 1, "amount": "5.00"}],
        ))
        assert result["settlements"][0]["from_member_id"] == 99

    def test_blank_member_name_rejected(self):
        with pytest.raises(ValidationError):
            self._load(_snapshot(members=[{"id": 1, "name": "   "}]))

    def test_member_id_must_be_integer(self):
        with pytest.raises(ValidationError):
            self._load(_snapshot(members=[{"id": "1", "name": "Alice"}]))

    @pytest.mark.parametrize("amount", ["0", "-5.00", "NaN", "Infinity"])
    def test_settlement_amount_must_be_positive_and_finite(self, amount):
        with pytest.raises(ValidationError):
            self._load(_snapshot(
                settlements=[{"from_member_id": 2, "to_member_id": 1, "amount": amount}],
            ))


# ═══════════════════════════════════════════════════════════════════════════
# ExpenseInputSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestExpenseInputSchema:

    def _load(self, data: dict):
        return ExpenseInputSchema().load(data)

    def test_explicit_splits(self):
        result = self._load({
            "id": 1, "amount": "9.99", "paid_by_member_id": 1,
            "splits": [{"member_id": 1, "amount": "9.99"}],
        })
        assert result["splits"][0]["amount"] == Decimal("9.99")

    def test_split_method_with_config(self):
        result = self._load({
            "id": 1, "amount": "10.00", "paid_by_member_id": 1,
            "split_method": "percentage",
            "split_config": {"1": "25", "2": "75"},
        })
        assert result["split_method"] == "percentage"
        assert result["split_config"] == {"1": "25", "2": "75"}

    def test_equal_with_participants(self):
        result = self._load({
            "id": 1, "amount": "10.00", "paid_by_member_id": 1,
            "split_method": "equal", "participant_ids": [1, 2],
        })
        assert result["participant_ids"] == [1, 2]

    def test_splits_or_method_required(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"id": 1, "amount": "10.00", "paid_by_member_id": 1})
        message = exc_info.value.messages["splits"][0]
        assert message.startswith("Missing data for required field")

    def test_unknown_split_method(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({
                "id": 1, "amount": "10.00", "paid_by_member_id": 1,
                "split_method": "shares",
            })
        assert exc_info.value.messages["split_method"] == [ErrorCode.INVALID_SPLIT_METHOD]

    def test_three_decimal_places_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({
                "id": 1, "amount": "10.005", "paid_by_member_id": 1,
                "splits": [],
            })
        assert exc_info.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    @pytest.mark.parametrize("amount", ["0.00", "-1.00"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            self._load({
                "id": 1, "amount": amount, "paid_by_member_id": 1,
                "splits": [],
            })
        assert "amount" in exc_info.value.messages


class TestSplitInputSchema:

    def test_zero_share_allowed(self):
        result = SplitInputSchema().load({"member_id": 3, "amount": "0"})
        assert result["amount"] == Decimal("0")

    def test_negative_share_rejected(self):
        with pytest.raises(ValidationError):
            SplitInputSchema().load({"member_id": 3, "amount": "-0.01"})


# ═══════════════════════════════════════════════════════════════════════════
# RecordSettlementSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestRecordSettlementSchema:

    def _load(self, data: dict):
        return RecordSettlementSchema().load(data)

    def test_valid_payload(self):
        result = self._load({"from_member_id": 2, "to_member_id": 1, "amount": "25.50"})

        assert result == {"from_member_id": 2, "to_member_id": 1, "amount": Decimal("25.50")}

    def test_numeric_json_amount_accepted(self):
        result = self._load({"from_member_id": 2, "to_member_id": 1, "amount": 12.5})
        assert result["amount"] == Decimal("12.5")

    @pytest.mark.parametrize("field", ["from_member_id", "to_member_id", "amount"])
    def test_required_fields(self, field):
        data = {"from_member_id": 2, "to_member_id": 1, "amount": "5.00"}
        del data[field]
        with pytest.raises(ValidationError) as exc_info:
            self._load(data)
        assert field in exc_info.value.messages

    def test_member_id_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"from_member_id": 0, "to_member_id": 1, "amount": "5.00"})
        assert "from_member_id" in exc_info.value.messages

    def test_float_member_id_rejected(self):
        with pytest.raises(ValidationError):
            self._load({"from_member_id": 2.0, "to_member_id": 1, "amount": "5.00"})

    def test_precision_rejected_not_rounded(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"from_member_id": 2, "to_member_id": 1, "amount": "5.001"})
        assert exc_info.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError):
            self._load({"from_member_id": 2, "to_member_id": 1, "amount": "0"})
