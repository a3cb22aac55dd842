"""
routes/balances.py — Balance route handlers.

Layer rules:
  - Parse input, call ONE service, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (url_prefix=/api/v1):
  GET  /groups/:id/balances  → 200  balances + simplified transactions for a stored group
  POST /settle               → 200  same result for a caller-supplied ledger snapshot
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from settleup.app.extensions import db
from settleup.app.schemas.ledger_schema import LedgerSnapshotSchema
from settleup.app.services import balance_service, ledger_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/groups/<int:group_id>/balances", methods=["GET"])
def get_balances(group_id: int):
    """
    GET /groups/:id/balances

    Response data:
      balances      [{member_id, member_name, balance}]  alphabetical by name
      transactions  [{from, from_member_id, to, to_member_id, amount}]
      savings       int — naive creditors × debtors count minus len(transactions)
      balance_sum   "0.00" for a consistent ledger

    Inconsistent ledger rows never fail the request; they are reported in
    `warnings` (ORPHANED_RECORD, UNBALANCED_EXPENSE, BALANCE_SUM_NONZERO).
    """
    result, warnings = balance_service.get_balance_response(
        group_id=group_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": warnings}), 200


@balances_bp.route("/settle", methods=["POST"])
def settle_snapshot():
    """
    POST /settle — stateless balance computation and simplification.

    Nothing is read from or written to the database. See ledger_schema.py
    for the body format.
    """
    data = LedgerSnapshotSchema().load(request.get_json(force=True) or {})
    snapshot = ledger_service.snapshot_from_payload(data)
    result, warnings = balance_service.summarise_ledger(snapshot)
    return jsonify({"data": result, "warnings": warnings}), 200
