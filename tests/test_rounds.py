from __future__ import annotations

import pytest

from app.pipeline.ledger import assign
from app.pipeline.rounds import (
    archive_round,
    create_round,
    delete_round,
    find_next_round,
    list_rounds,
    update_round,
)
from app.utils.errors import Conflict, InvalidInput, NotFound


def test_orders_are_gapless_from_zero(ctx, seed):
    job = seed.job(seed.company())
    orders = [create_round(ctx, {"jobId": str(job["_id"]), "name": f"R{i}"})["order"] for i in range(3)]
    assert orders == [0, 1, 2]

    other = seed.job(seed.company("Other"))
    assert create_round(ctx, {"jobId": other["_id"], "name": "First"})["order"] == 0


def test_create_round_defaults_and_validation(ctx, seed):
    job = seed.job(seed.company())
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "  Screen  "})
    assert rnd["name"] == "Screen"
    assert rnd["type"] == "INTERVIEW"
    assert rnd["isArchived"] is False
    assert rnd["interviewers"] == []

    with pytest.raises(InvalidInput):
        create_round(ctx, {"jobId": job["_id"], "name": ""})
    with pytest.raises(InvalidInput):
        create_round(ctx, {"jobId": job["_id"], "name": "X", "type": "POTLUCK"})
    with pytest.raises(NotFound):
        create_round(ctx, {"jobId": "65a000000000000000000000", "name": "X"})


def test_mcq_question_answer_key_must_index_options(ctx, seed):
    job = seed.job(seed.company())
    with pytest.raises(InvalidInput):
        create_round(
            ctx,
            {
                "jobId": job["_id"],
                "name": "Quiz",
                "type": "MCQ",
                "mcqQuestions": [{"question": "2+2", "options": ["3", "4"], "correctAnswer": 2}],
            },
        )


def test_next_round_skips_archived_and_inactive(ctx, seed):
    job = seed.job(seed.company())
    r0 = create_round(ctx, {"jobId": job["_id"], "name": "R0"})
    r1 = create_round(ctx, {"jobId": job["_id"], "name": "R1"})
    r2 = create_round(ctx, {"jobId": job["_id"], "name": "R2", "isActive": False})
    r3 = create_round(ctx, {"jobId": job["_id"], "name": "R3"})
    archive_round(ctx, r1["_id"])

    nxt = find_next_round(ctx, job["_id"], r0["order"])
    assert nxt["_id"] == r3["_id"]
    assert find_next_round(ctx, job["_id"], r3["order"]) is None
    assert r2["isActive"] is False


def test_list_rounds_hides_archived_by_default(ctx, seed):
    job = seed.job(seed.company())
    create_round(ctx, {"jobId": job["_id"], "name": "R0"})
    r1 = create_round(ctx, {"jobId": job["_id"], "name": "R1"})
    archive_round(ctx, r1["_id"])

    assert [r["name"] for r in list_rounds(ctx, job["_id"])] == ["R0"]
    assert [r["name"] for r in list_rounds(ctx, job["_id"], include_archived=True)] == ["R0", "R1"]


def test_update_round_cannot_change_job(ctx, seed):
    job = seed.job(seed.company())
    other = seed.job(seed.company("Other"))
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "R0"})

    with pytest.raises(InvalidInput):
        update_round(ctx, rnd["_id"], {"jobId": str(other["_id"])})

    updated = update_round(ctx, rnd["_id"], {"name": "Renamed"})
    assert updated["name"] == "Renamed"
    assert updated["version"] == 2


def test_delete_round_in_use_is_conflict(ctx, seed):
    job = seed.job(seed.company())
    application = seed.application(job)
    used = create_round(ctx, {"jobId": job["_id"], "name": "Used"})
    unused = create_round(ctx, {"jobId": job["_id"], "name": "Unused"})
    assign(ctx, used["_id"], application["_id"], None)

    with pytest.raises(Conflict):
        delete_round(ctx, used["_id"])

    delete_round(ctx, unused["_id"])
    assert [r["name"] for r in list_rounds(ctx, job["_id"])] == ["Used"]


def test_next_round_visits_rounds_sharing_an_order(ctx, seed):
    job = seed.job(seed.company())
    a = create_round(ctx, {"jobId": job["_id"], "name": "A", "order": 1})
    b = create_round(ctx, {"jobId": job["_id"], "name": "B", "order": 1})
    c = create_round(ctx, {"jobId": job["_id"], "name": "C", "order": 2})

    assert find_next_round(ctx, job["_id"], 1, a["_id"])["_id"] == b["_id"]
    assert find_next_round(ctx, job["_id"], 1, b["_id"])["_id"] == c["_id"]
    assert find_next_round(ctx, job["_id"], 0)["_id"] == a["_id"]


def test_is_active_strings_are_parsed(ctx, seed):
    job = seed.job(seed.company())
    off = create_round(ctx, {"jobId": job["_id"], "name": "Off", "isActive": "false"})
    on = create_round(ctx, {"jobId": job["_id"], "name": "On", "isActive": "true"})
    assert off["isActive"] is False
    assert on["isActive"] is True
