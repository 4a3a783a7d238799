"""REST API endpoints for the reporting chain (leadership) engine."""

import logging

from flask import Blueprint, jsonify, request

from ..models.position import Position
from ..models.reporting_edge import ReportingEdge
from ..services.eligibility import Candidate
from ..services.leadership_errors import (
    AlreadyClosed,
    InvariantViolation,
    LeadershipError,
    NotFound,
    ScopeError,
    SelfReportError,
    ValidationError,
)
from ..services.leadership_service import LeadershipService

logger = logging.getLogger(__name__)

leadership_bp = Blueprint("leadership", __name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (SelfReportError, 400),
    (NotFound, 404),
    (ScopeError, 403),
    (AlreadyClosed, 409),
    (InvariantViolation, 409),
)


def _error_response(error: LeadershipError):
    status = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status = code
            break
    body = {"error": str(error), "code": error.code}
    if isinstance(error, InvariantViolation):
        body["rule"] = error.rule
    return jsonify(body), status


def _position_dict(position: Position | None) -> dict | None:
    if position is None:
        return None
    return {
        "position_id": position.id,
        "scope_id": position.scope_id,
        "full_name": position.full_name,
        "title": position.title,
        "affiliation": position.affiliation,
        "active": position.active,
    }


def _edge_dict(edge: ReportingEdge) -> dict:
    return {
        "edge_id": edge.id,
        "child_position_id": edge.child_position_id,
        "parent_position_id": edge.parent_position_id,
        "start_date": edge.start_date.isoformat(),
        "end_date": edge.end_date.isoformat() if edge.end_date else None,
        "active": edge.end_date is None,
        "created_at": edge.created_at.isoformat() if edge.created_at else None,
        "created_by": edge.created_by,
        "updated_at": edge.updated_at.isoformat() if edge.updated_at else None,
        "updated_by": edge.updated_by,
    }


def _candidate_dict(candidate: Candidate) -> dict:
    return {
        "position_id": candidate.position_id,
        "label": candidate.label,
        "full_name": candidate.name,
        "title": candidate.title,
        "affiliation": candidate.affiliation,
    }


# --- Reads ---


@leadership_bp.route("/api/positions/<position_id>/leader", methods=["GET"])
def api_current_leader(position_id: str):
    """Current leader of a position.

    Returns:
        200: {position_id, leader, edge} (leader and edge are null for a root)
        404: Position not found
    """
    service = LeadershipService()
    try:
        service.get_position(position_id)
        edge = service.current_edge_of(position_id)
        leader = service.current_parent_of(position_id)
    except LeadershipError as e:
        return _error_response(e)

    return jsonify({
        "position_id": position_id,
        "leader": _position_dict(leader),
        "edge": _edge_dict(edge) if edge else None,
    }), 200


@leadership_bp.route("/api/positions/<position_id>/leadership/history", methods=["GET"])
def api_leadership_history(position_id: str):
    """Reporting history of a position, newest start_date first."""
    service = LeadershipService()
    try:
        service.get_position(position_id)
        entries = service.history_for(position_id)
    except LeadershipError as e:
        return _error_response(e)

    return jsonify({
        "position_id": position_id,
        "active_edge_count": sum(1 for e in entries if e.is_active),
        "history": [
            {**_edge_dict(entry.edge), "relation": entry.relation}
            for entry in entries
        ],
    }), 200


@leadership_bp.route("/api/positions/<position_id>/leadership/eligible", methods=["GET"])
def api_eligible_leaders(position_id: str):
    """Positions eligible to become the position's new leader."""
    service = LeadershipService()
    try:
        result = service.eligible_parents(position_id)
    except LeadershipError as e:
        return _error_response(e)

    return jsonify({
        "position_id": position_id,
        "tier": result.tier,
        "candidates": [_candidate_dict(c) for c in result.candidates],
    }), 200


@leadership_bp.route("/api/leadership", methods=["GET"])
def api_leadership_listing():
    """Org-wide leadership listing, active edges first.

    Query params:
        scope (optional): restrict to children in this scope
    """
    scope_id = request.args.get("scope") or None
    service = LeadershipService()
    try:
        edges = service.leadership_listing(scope_id)
        positions = service.positions_by_id(
            {e.child_position_id for e in edges} | {e.parent_position_id for e in edges}
        )
    except Exception:
        logger.exception("Failed to list leadership edges")
        return jsonify({"error": "Failed to list leadership edges"}), 500

    result = []
    for edge in edges:
        child = positions.get(edge.child_position_id)
        parent = positions.get(edge.parent_position_id)
        result.append({
            **_edge_dict(edge),
            "child_full_name": child.full_name if child else None,
            "parent_full_name": parent.full_name if parent else None,
        })
    return jsonify(result), 200


# --- Writes ---


@leadership_bp.route("/api/positions/<position_id>/leader", methods=["POST"])
def api_set_leader(position_id: str):
    """Set a position's leader from an effective date.

    Accepts JSON:
        - parent_position_id (required)
        - effective_date (required): YYYY-MM-DD
        - actor (optional): who made the change
        - scope (optional): organisation scope both positions must belong to

    Returns:
        201: New edge opened
        200: Same leader re-selected, nothing changed
        400/403/404/409: Typed engine error
    """
    data = request.get_json(silent=True) or {}
    service = LeadershipService()
    try:
        change = service.set_leader(
            position_id,
            data.get("parent_position_id"),
            data.get("effective_date"),
            actor=data.get("actor"),
            scope_id=data.get("scope"),
        )
    except LeadershipError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error setting leader for {position_id}")
        return jsonify({"error": f"Server error: {e}"}), 500

    return jsonify({
        "child_position_id": change.child_position_id,
        "parent_position_id": change.parent_position_id,
        "effective_date": change.effective_date.isoformat(),
        "changed": change.changed,
        "closed_edge_id": change.closed_edge_id,
        "opened_edge_id": change.opened_edge_id,
    }), 201 if change.changed else 200


@leadership_bp.route("/api/positions/<position_id>/leader/end", methods=["POST"])
def api_end_leadership(position_id: str):
    """End a position's reporting line without naming a new leader."""
    data = request.get_json(silent=True) or {}
    service = LeadershipService()
    try:
        change = service.end_leadership(
            position_id,
            data.get("effective_date"),
            actor=data.get("actor"),
            scope_id=data.get("scope"),
        )
    except LeadershipError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error ending leadership for {position_id}")
        return jsonify({"error": f"Server error: {e}"}), 500

    return jsonify({
        "child_position_id": change.child_position_id,
        "parent_position_id": change.parent_position_id,
        "effective_date": change.effective_date.isoformat(),
        "changed": change.changed,
        "closed_edge_id": change.closed_edge_id,
    }), 200


@leadership_bp.route("/api/leadership/edges/<edge_id>", methods=["PATCH"])
def api_correct_edge(edge_id: str):
    """Administrative correction of an edge's dates.

    Accepts JSON with ``start_date`` and/or ``end_date`` and optional ``actor``.
    """
    data = request.get_json(silent=True) or {}
    service = LeadershipService()
    try:
        edge = service.correct_edge(
            edge_id,
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            actor=data.get("actor"),
        )
    except LeadershipError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error correcting edge {edge_id}")
        return jsonify({"error": f"Server error: {e}"}), 500

    return jsonify(_edge_dict(edge)), 200
