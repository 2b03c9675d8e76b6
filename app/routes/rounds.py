from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.pipeline.context import get_pipeline
from app.pipeline.mcq import get_mcq_response, list_mcq_responses, submit_mcq
from app.pipeline.rounds import (
    activate_round,
    archive_round,
    create_round,
    delete_round,
    list_rounds,
    require_round,
    update_round,
)
from app.utils.errors import NotFound
from app.utils.serialize import to_public
from app.utils.validators import parse_bool, require_json

rounds_bp = Blueprint("rounds", __name__)


@rounds_bp.post("")
def create():
    rnd = create_round(get_pipeline(), require_json())
    return jsonify({"success": True, "data": to_public(rnd)}), 201


@rounds_bp.get("/job/<job_id>")
def by_job(job_id: str):
    include_archived = parse_bool(request.args.get("includeArchived"))
    items = list_rounds(get_pipeline(), job_id, include_archived=include_archived)
    return jsonify({"success": True, "data": {"items": to_public(items)}})


@rounds_bp.get("/<round_id>")
def get_one(round_id: str):
    return jsonify({"success": True, "data": to_public(require_round(get_pipeline(), round_id))})


@rounds_bp.patch("/<round_id>")
def update(round_id: str):
    rnd = update_round(get_pipeline(), round_id, require_json())
    return jsonify({"success": True, "data": to_public(rnd)})


@rounds_bp.delete("/<round_id>")
def delete(round_id: str):
    delete_round(get_pipeline(), round_id)
    return jsonify({"success": True, "data": {"id": round_id}})


@rounds_bp.patch("/<round_id>/archive")
def archive(round_id: str):
    return jsonify({"success": True, "data": to_public(archive_round(get_pipeline(), round_id))})


@rounds_bp.patch("/<round_id>/activate")
def activate(round_id: str):
    return jsonify({"success": True, "data": to_public(activate_round(get_pipeline(), round_id))})


@rounds_bp.post("/<round_id>/mcq")
def mcq_submit(round_id: str):
    body = require_json()
    resp = submit_mcq(get_pipeline(), round_id, body.get("applicationId"), body.get("answers"))
    return jsonify({"success": True, "data": to_public(resp)}), 201


@rounds_bp.get("/<round_id>/mcq")
def mcq_list(round_id: str):
    items = list_mcq_responses(get_pipeline(), round_id)
    return jsonify({"success": True, "data": {"items": to_public(items)}})


@rounds_bp.get("/<round_id>/mcq/<application_id>")
def mcq_get(round_id: str, application_id: str):
    resp = get_mcq_response(get_pipeline(), round_id, application_id)
    if not resp:
        raise NotFound("MCQ response not found")
    return jsonify({"success": True, "data": to_public(resp)})
