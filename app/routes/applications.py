from __future__ import annotations

from flask import Blueprint, jsonify

from app.pipeline.applications import pipeline_board, update_application_status
from app.pipeline.context import get_pipeline
from app.utils.serialize import to_public
from app.utils.validators import require_json

applications_bp = Blueprint("applications", __name__)


@applications_bp.patch("/<application_id>/status")
def status(application_id: str):
    body = require_json()
    application = update_application_status(
        get_pipeline(),
        application_id,
        body.get("status"),
        notes=body.get("notes"),
        current_round=body.get("currentRound"),
    )
    return jsonify({"success": True, "data": to_public(application)})


@applications_bp.get("/company/<company_id>/pipeline")
def board(company_id: str):
    items = pipeline_board(get_pipeline(), company_id)
    return jsonify({"success": True, "data": {"items": to_public(items)}})
