"""
routes/settlements.py — Settlement route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Special: record_settlement returns (Settlement, warnings[]).
  If warnings is non-empty (e.g. OVERPAYMENT), the route includes them in the
  response envelope: {"data": {...}, "warnings": [{"code": "OVERPAYMENT", ...}]}.
  The HTTP status is still 201 — overpayment does NOT block the request.

Endpoints (url_prefix=/api/v1/groups):
  POST   /groups/:id/settlements  → 201  record a payment (e.g. an accepted transaction)
  GET    /groups/:id/settlements  → 200  list all settlements for a group
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from settleup.app.extensions import db
from settleup.app.models.settlement import Settlement
from settleup.app.schemas.settlement_schema import RecordSettlementSchema
from settleup.app.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_settlement(s: Settlement) -> dict:
    """Converts a Settlement ORM object to a plain dict for JSON output."""
    return {
        "id": s.id,
        "group_id": s.group_id,
        "from_member_id": s.from_member_id,
        "to_member_id": s.to_member_id,
        "amount": str(s.amount),  # Decimal → string, never a JS number
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


# ── Route handlers ─────────────────────────────────────────────────────────

@settlements_bp.route("/<int:group_id>/settlements", methods=["POST"])
def record_settlement(group_id: int):
    """
    POST /groups/:id/settlements — Record a payment between two members.

    The caller re-fetches GET /groups/:id/balances afterwards to see the
    settlement netted into the balances.
    """
    data = RecordSettlementSchema().load(request.get_json(force=True) or {})
    settlement, warnings = settlement_service.record_settlement(
        group_id=group_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_settlement(settlement), "warnings": warnings}), 201


@settlements_bp.route("/<int:group_id>/settlements", methods=["GET"])
def list_settlements(group_id: int):
    """GET /groups/:id/settlements — List all settlements for a group, newest first."""
    settlements = settlement_service.list_settlements(
        group_id=group_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_settlement(s) for s in settlements],
        "warnings": [],
    }), 200
