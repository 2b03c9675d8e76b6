from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.pipeline.context import get_pipeline
from app.pipeline.ledger import assign, require_evaluation
from app.pipeline.progression import update_status
from app.pipeline.reconcile import reconcile
from app.pipeline.scheduling import assign_interviewer, parse_interviewers, parse_mode, reschedule
from app.utils.errors import InvalidInput
from app.utils.serialize import to_public
from app.utils.validators import parse_id_csv, require_json, to_object_id

evaluations_bp = Blueprint("evaluations", __name__)


@evaluations_bp.post("")
def create():
    body = require_json()
    ev = assign(
        get_pipeline(),
        body.get("roundId"),
        body.get("applicationId"),
        to_object_id(body.get("evaluatorId"), field="evaluatorId"),
    )
    return jsonify({"success": True, "data": to_public(ev)}), 201


@evaluations_bp.get("")
def list_reconciled():
    ids = parse_id_csv(request.args.get("applicationIds"), field="applicationId")
    if not ids:
        raise InvalidInput("applicationIds is required")
    items = reconcile(get_pipeline(), ids)
    return jsonify({"success": True, "data": {"items": to_public(items)}})


@evaluations_bp.get("/<evaluation_id>")
def get_one(evaluation_id: str):
    return jsonify({"success": True, "data": to_public(require_evaluation(get_pipeline(), evaluation_id))})


@evaluations_bp.patch("/<evaluation_id>/schedule")
def schedule(evaluation_id: str):
    ctx = get_pipeline()
    # 404 for an unknown evaluation wins over a malformed body.
    require_evaluation(ctx, evaluation_id)
    body = require_json()
    ev = assign_interviewer(
        ctx,
        evaluation_id,
        interviewers=parse_interviewers(body.get("interviewers") or body.get("interviewer")),
        scheduled_at=body.get("scheduledAt"),
        mode=parse_mode(body),
        evaluator_id=body.get("evaluatorId") or None,
        reporting_time=body.get("reportingTime"),
    )
    return jsonify({"success": True, "data": to_public(ev)})


@evaluations_bp.patch("/<evaluation_id>/status")
def status(evaluation_id: str):
    body = require_json()
    kwargs = {k: body[k] for k in ("notes", "feedback", "score") if k in body}
    ev = update_status(get_pipeline(), evaluation_id, body.get("status"), **kwargs)
    return jsonify({"success": True, "data": to_public(ev)})


@evaluations_bp.post("/<evaluation_id>/reschedule")
def reschedule_one(evaluation_id: str):
    return jsonify({"success": True, "data": to_public(reschedule(get_pipeline(), evaluation_id))})
