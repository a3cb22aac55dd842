"""
errors.py — AppError base class, error and warning code registries.

Every error returned by the SettleUp API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - The balance calculator and debt simplifier never raise for inconsistent
    ledger data; they report it through WarningCode instead.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which input field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_METHOD       = "INVALID_SPLIT_METHOD"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    EMPTY_SPLIT                = "EMPTY_SPLIT"
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    RECIPIENT_NOT_MEMBER       = "RECIPIENT_NOT_MEMBER"
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # A split or settlement referenced a member outside the group, or carried
    # a non-finite amount. The record was left out of the balances.
    ORPHANED_RECORD     = "ORPHANED_RECORD"

    # Sum of balances is not zero (within 0.01). Only possible when records
    # were skipped or an expense is unbalanced; balances are still returned.
    BALANCE_SUM_NONZERO = "BALANCE_SUM_NONZERO"

    # An expense whose stored splits do not add up to its amount (±0.01).
    # Its rows are still counted as stored.
    UNBALANCED_EXPENSE  = "UNBALANCED_EXPENSE"

    # Settlement amount exceeds the payer's outstanding debt to the group.
    # Still recorded — pre-payment is valid.
    OVERPAYMENT         = "OVERPAYMENT"
