from __future__ import annotations

import logging
from typing import Any, Optional

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from app.pipeline.constants import APPLICATIONS, MCQ_RESPONSES
from app.pipeline.rounds import get_round
from app.utils.errors import Conflict, InvalidInput, NotFound
from app.utils.validators import to_object_id

log = logging.getLogger(__name__)


def score_answers(questions: list[dict[str, Any]], answers: list[int]) -> tuple[list[bool], float]:
    is_correct = [int(a) == int(q.get("correctAnswer")) for q, a in zip(questions, answers)]
    score = 100 * sum(is_correct) / len(questions)
    return is_correct, score


def _parse_answers(raw: Any) -> list[int]:
    if not isinstance(raw, list):
        raise InvalidInput("answers must be a list of option indices")
    out: list[int] = []
    for i, a in enumerate(raw):
        if isinstance(a, bool) or not isinstance(a, int):
            raise InvalidInput("answers must be integers", details={"index": i})
        out.append(a)
    return out


def submit_mcq(ctx, round_id: Any, application_id: Any, answers: Any) -> dict[str, Any]:
    rnd = get_round(ctx, round_id)
    if not rnd or str(rnd.get("type") or "") != "MCQ" or not rnd.get("mcqQuestions"):
        raise NotFound("MCQ round not found", details={"roundId": str(round_id)})

    app_id = to_object_id(application_id, field="applicationId")
    application = ctx.store.get(APPLICATIONS, app_id)
    if not application:
        raise NotFound("Application not found", details={"applicationId": str(app_id)})

    if ctx.store.find_one(MCQ_RESPONSES, {"roundId": rnd["_id"], "applicationId": app_id}):
        raise Conflict("MCQ answers already submitted for this round")

    questions = rnd["mcqQuestions"]
    parsed = _parse_answers(answers)
    if len(parsed) != len(questions):
        raise InvalidInput(
            "Number of answers does not match number of questions",
            details={"expected": len(questions), "received": len(parsed)},
        )

    is_correct, score = score_answers(questions, parsed)
    now = ctx.now()
    doc = {
        "roundId": rnd["_id"],
        "applicationId": app_id,
        "candidateId": application.get("candidateId"),
        "answers": parsed,
        "isCorrect": is_correct,
        "score": score,
        "isSubmitted": True,
        "submittedAt": now,
    }
    try:
        resp = ctx.store.insert(MCQ_RESPONSES, doc)
    except DuplicateKeyError as e:
        raise Conflict("MCQ answers already submitted for this round") from e

    log.info("mcq submitted round=%s application=%s score=%.2f", rnd["_id"], app_id, score)
    return resp


def get_mcq_response(ctx, round_id: Any, application_id: Any) -> Optional[dict[str, Any]]:
    return ctx.store.find_one(
        MCQ_RESPONSES,
        {
            "roundId": to_object_id(round_id, field="roundId"),
            "applicationId": to_object_id(application_id, field="applicationId"),
        },
    )


def list_mcq_responses(ctx, round_id: Any) -> list[dict[str, Any]]:
    return ctx.store.find(
        MCQ_RESPONSES,
        {"roundId": to_object_id(round_id, field="roundId")},
        sort=[("submittedAt", ASCENDING)],
    )
