"""
services/split_service.py — Split methods and cent-exact split computation.

A split method is one of three tagged variants, each validated when it is
constructed:

    EqualSplit(member_ids)
    PercentageSplit({member_id: percent})      percents sum to 100 (±0.01)
    FixedAmountSplit({member_id: amount})      amounts sum to the expense (±0.01)

compute_splits() turns (amount, method) into [{"member_id", "amount"}] rows
whose sum is exactly the expense amount:
  - every share is rounded DOWN to the cent;
  - the leftover cents go to the payer when they participate, otherwise to
    the participant with the largest share (first one on ties).

split_method_from_config() rebuilds a variant from what an Expense row stores
(`split_method` tag + raw `split_config` map), e.g. when re-populating an edit.

Layer rules:
  - No Flask imports, no session. Raises AppError on invalid input.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import ClassVar, Union

from settleup.app.errors import AppError, ErrorCode
from settleup.app.models.expense import SplitMethod
from settleup.app.services.money import (
    CENT,
    TOLERANCE,
    ZERO,
    finite_decimal_or_none,
)

HUNDRED = Decimal("100")


# ── Validation helpers ─────────────────────────────────────────────────────

def _require_participants(member_ids: Iterable) -> tuple:
    ids = tuple(member_ids)
    if not ids:
        raise AppError(
            ErrorCode.EMPTY_SPLIT,
            "A split needs at least one participant.",
            422,
            field="split_config",
        )
    if len(set(ids)) != len(ids):
        raise AppError(
            ErrorCode.DUPLICATE_MEMBER,
            "The same member appears more than once in the split.",
            400,
            field="split_config",
        )
    return ids


def _parse_share(member_id, value, label: str) -> Decimal:
    share = finite_decimal_or_none(value)
    if share is None or share < ZERO:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"{label} for member {member_id} must be a non-negative number.",
            400,
            field="split_config",
        )
    return share


def _require_positive_amount(amount) -> Decimal:
    value = finite_decimal_or_none(amount)
    if value is None or value <= ZERO:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "Expense amount must be a number greater than zero.",
            400,
            field="amount",
        )
    if value.as_tuple().exponent < -2:
        raise AppError(
            ErrorCode.INVALID_AMOUNT_PRECISION,
            "Amount must have at most 2 decimal places.",
            400,
            field="amount",
        )
    return value


# ── Split method variants ──────────────────────────────────────────────────

@dataclass(frozen=True)
class EqualSplit:
    member_ids: tuple

    method: ClassVar[SplitMethod] = SplitMethod.EQUAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "member_ids", _require_participants(self.member_ids))


@dataclass(frozen=True)
class PercentageSplit:
    percentages: Mapping = field(hash=False)

    method: ClassVar[SplitMethod] = SplitMethod.PERCENTAGE

    def __post_init__(self) -> None:
        ids = _require_participants(self.percentages.keys())
        parsed = {
            mid: _parse_share(mid, self.percentages[mid], "Percentage")
            for mid in ids
        }
        total = sum(parsed.values(), ZERO)
        if abs(total - HUNDRED) >= TOLERANCE:
            raise AppError(
                ErrorCode.PERCENTAGE_SUM_MISMATCH,
                f"Percentages add up to {total}, expected 100.",
                422,
                field="split_config",
            )
        object.__setattr__(self, "percentages", parsed)

    @property
    def member_ids(self) -> tuple:
        return tuple(self.percentages)


@dataclass(frozen=True)
class FixedAmountSplit:
    amounts: Mapping = field(hash=False)

    method: ClassVar[SplitMethod] = SplitMethod.AMOUNT

    def __post_init__(self) -> None:
        ids = _require_participants(self.amounts.keys())
        parsed = {}
        for mid in ids:
            share = _parse_share(mid, self.amounts[mid], "Amount")
            if share.as_tuple().exponent < -2:
                raise AppError(
                    ErrorCode.INVALID_AMOUNT_PRECISION,
                    f"Amount for member {mid} must have at most 2 decimal places.",
                    400,
                    field="split_config",
                )
            parsed[mid] = share
        object.__setattr__(self, "amounts", parsed)

    @property
    def member_ids(self) -> tuple:
        return tuple(self.amounts)


SplitVariant = Union[EqualSplit, PercentageSplit, FixedAmountSplit]


# ── Construction from stored configuration ─────────────────────────────────

def _normalise_member_key(key):
    """split_config is JSON, so member ids come back as strings."""
    if isinstance(key, str) and key.strip().lstrip("-").isdigit():
        return int(key)
    return key


def split_method_from_config(
        method,
        config: Mapping | None,
        member_ids: Iterable | None = None,
) -> SplitVariant:
    """
    Builds a split variant from a stored (split_method, split_config) pair.

    Args:
        method:     SplitMethod or its string value.
        config:     raw {member_id: value} map; ignored for equal splits.
        member_ids: participating members. For percentage/amount splits,
                    members missing from `config` get 0; when omitted, the
                    keys of `config` are the participants.

    Raises:
        AppError(INVALID_SPLIT_METHOD, 400) -- unknown method tag.
        Any validation error of the variant itself.
    """
    try:
        split_method = SplitMethod(method)
    except ValueError:
        raise AppError(
            ErrorCode.INVALID_SPLIT_METHOD,
            f"'{method}' is not a valid split method. "
            f"Valid values: {', '.join(m.value for m in SplitMethod)}.",
            400,
            field="split_method",
        )

    raw = {_normalise_member_key(k): v for k, v in (config or {}).items()}
    participants = list(member_ids) if member_ids is not None else list(raw)

    if split_method is SplitMethod.EQUAL:
        return EqualSplit(participants)

    shares = {mid: raw.get(mid, 0) for mid in participants}
    if split_method is SplitMethod.PERCENTAGE:
        return PercentageSplit(shares)
    return FixedAmountSplit(shares)


# ── Split computation ──────────────────────────────────────────────────────

def _assign_leftover(
        splits: list[dict],
        leftover: Decimal,
        payer_id,
        weights: Mapping,
) -> None:
    if leftover == ZERO:
        return
    receiver = next((s for s in splits if s["member_id"] == payer_id), None)
    if receiver is None:
        receiver = max(splits, key=lambda s: weights[s["member_id"]])
    receiver["amount"] += leftover


def compute_splits(amount, method: SplitVariant, payer_id=None) -> list[dict]:
    """
    Canonical split computation for an expense.

    Args:
        amount:   positive expense amount with at most 2 decimal places.
        method:   EqualSplit | PercentageSplit | FixedAmountSplit.
        payer_id: member who paid; receives leftover cents when participating.

    Returns:
        [{"member_id", "amount": Decimal}] in participant order,
        with sum(amounts) == amount.

    Raises:
        AppError(INVALID_FIELD / INVALID_AMOUNT_PRECISION, 400) -- bad amount.
        AppError(SPLIT_SUM_MISMATCH, 422) -- fixed amounts do not add up.
    """
    total = _require_positive_amount(amount)

    if isinstance(method, FixedAmountSplit):
        splits = [{"member_id": mid, "amount": amt} for mid, amt in method.amounts.items()]
        require_split_conservation(total, splits)
        return splits

    if isinstance(method, EqualSplit):
        weights = {mid: Decimal(1) for mid in method.member_ids}
    elif isinstance(method, PercentageSplit):
        weights = dict(method.percentages)
    else:
        raise AppError(
            ErrorCode.INVALID_SPLIT_METHOD,
            f"Unsupported split method {type(method).__name__}.",
            400,
            field="split_method",
        )

    weight_total = sum(weights.values(), ZERO)
    splits = [
        {
            "member_id": mid,
            "amount": (total * weight / weight_total).quantize(CENT, rounding=ROUND_DOWN),
        }
        for mid, weight in weights.items()
    ]
    leftover = total - sum((s["amount"] for s in splits), ZERO)
    _assign_leftover(splits, leftover, payer_id, weights)

    # Must always hold; a failure here is a programming error.
    computed = sum((s["amount"] for s in splits), ZERO)
    if computed != total:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Split computation produced sum {computed} for amount {total}. "
            f"This is a bug, please report it.",
            500,
        )
    return splits


# ── Split conservation ─────────────────────────────────────────────────────

def _split_amount(split) -> Decimal:
    value = split["amount"] if isinstance(split, Mapping) else split.amount
    return finite_decimal_or_none(value) or ZERO


def splits_conserve_amount(amount, splits: Iterable) -> bool:
    """True when sum(split amounts) is within one cent of `amount`."""
    expected = finite_decimal_or_none(amount)
    if expected is None:
        return False
    total = sum((_split_amount(s) for s in splits), ZERO)
    return abs(total - expected) < TOLERANCE


def require_split_conservation(amount, splits: Iterable) -> None:
    """Raises SPLIT_SUM_MISMATCH (422) unless the splits add up to `amount`."""
    splits = list(splits)
    if not splits_conserve_amount(amount, splits):
        total = sum((_split_amount(s) for s in splits), ZERO)
        raise AppError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Split amounts ({total}) do not equal expense amount ({amount}).",
            422,
            field="splits",
        )


def find_unbalanced_expenses(expenses: Iterable, splits_by_expense: Mapping) -> list:
    """
    Returns the ids of expenses whose stored splits do not add up to the
    expense amount. Expenses with a non-finite amount are left to compute_balances. Never raises.
    """
    splits_by_expense = splits_by_expense or {}
    return [
        expense.id
        for expense in expenses
        if finite_decimal_or_none(expense.amount) is not None
        and not splits_conserve_amount(expense.amount, splits_by_expense.get(expense.id, ()))
    ]
