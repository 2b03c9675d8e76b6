from __future__ import annotations

from datetime import timedelta

import pytest

from app.pipeline.applications import pipeline_board, update_application_status
from app.pipeline.constants import EVALUATIONS
from app.pipeline.ledger import assign
from app.pipeline.reconcile import reconcile
from app.pipeline.rounds import create_round
from app.pipeline.scheduling import reschedule


@pytest.fixture()
def job(seed):
    return seed.job(seed.company())


def _set_scheduled(ctx, ev, when):
    ev["scheduledAt"] = when
    ctx.store.save(EVALUATIONS, ev)


def test_past_pending_becomes_missed(ctx, seed, job):
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "Call"})
    application = seed.application(job)
    ev = assign(ctx, rnd["_id"], application["_id"], None)
    _set_scheduled(ctx, ev, ctx.now() - timedelta(days=1))

    out = reconcile(ctx, [application["_id"]])
    assert [e["status"] for e in out] == ["MISSED"]
    assert ctx.store.get(EVALUATIONS, ev["_id"])["status"] == "MISSED"

    # Second pass is a no-op.
    again = reconcile(ctx, [application["_id"]])
    assert [e["status"] for e in again] == ["MISSED"]
    assert again[0]["version"] == out[0]["version"]


def test_rescheduling_is_not_re_marked(ctx, seed, job):
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "Call"})
    application = seed.application(job)
    ev = assign(ctx, rnd["_id"], application["_id"], None)
    _set_scheduled(ctx, ev, ctx.now() - timedelta(days=1))

    reconcile(ctx, [application["_id"]])
    assert reschedule(ctx, ev["_id"])["status"] == "RESCHEDULING"
    assert [e["status"] for e in reconcile(ctx, [application["_id"]])] == ["RESCHEDULING"]


def test_future_or_unscheduled_pending_is_left_alone(ctx, seed, job, clock):
    r0 = create_round(ctx, {"jobId": job["_id"], "name": "Later"})
    r1 = create_round(ctx, {"jobId": job["_id"], "name": "Unscheduled"})
    application = seed.application(job)
    ev = assign(ctx, r0["_id"], application["_id"], None)
    assign(ctx, r1["_id"], application["_id"], None)
    _set_scheduled(ctx, ev, ctx.now() + timedelta(hours=2))

    assert [e["status"] for e in reconcile(ctx, [application["_id"]])] == ["PENDING", "PENDING"]

    clock.advance(hours=3)
    statuses = {e["roundId"]: e["status"] for e in reconcile(ctx, [application["_id"]])}
    assert statuses == {r0["_id"]: "MISSED", r1["_id"]: "PENDING"}


def test_round_time_is_used_when_evaluation_has_none(ctx, seed, job):
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "Group", "scheduling": {"date": "2026-01-14", "time": "11:00"}})
    application = seed.application(job)
    assign(ctx, rnd["_id"], application["_id"], None)

    assert [e["status"] for e in reconcile(ctx, [application["_id"]])] == ["MISSED"]


def test_missing_evaluation_is_created_once(ctx, seed, job):
    r0 = create_round(ctx, {"jobId": job["_id"], "name": "R0"})
    r1 = create_round(ctx, {"jobId": job["_id"], "name": "R1"})
    application = seed.application(job)
    assign(ctx, r0["_id"], application["_id"], None)

    update_application_status(ctx, application["_id"], "shortlisted", current_round=str(r1["_id"]))
    assert ctx.store.count(EVALUATIONS, {"roundId": r1["_id"]}) == 0

    out = reconcile(ctx, [application["_id"]])
    assert sorted(e["roundId"] for e in out) == sorted([r0["_id"], r1["_id"]])

    again = reconcile(ctx, [str(application["_id"]), application["_id"]])
    assert len(again) == 2
    assert ctx.store.count(EVALUATIONS, {"applicationId": application["_id"]}) == 2


def test_dangling_current_round_is_skipped(ctx, seed, job):
    from bson import ObjectId

    application = seed.application(job, currentRound=ObjectId())
    assert reconcile(ctx, [application["_id"]]) == []


def test_results_follow_input_order(ctx, seed, job):
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "R0"})
    a1 = seed.application(job, email="one@example.com")
    a2 = seed.application(job, email="two@example.com")
    assign(ctx, rnd["_id"], a1["_id"], None)
    assign(ctx, rnd["_id"], a2["_id"], None)

    out = reconcile(ctx, [a2["_id"], a1["_id"]])
    assert [e["applicationId"] for e in out] == [a2["_id"], a1["_id"]]


def test_pipeline_board_groups_by_application(ctx, seed, job):
    rnd = create_round(ctx, {"jobId": job["_id"], "name": "R0"})
    a1 = seed.application(job, email="one@example.com", currentRound=rnd["_id"])
    a2 = seed.application(job, email="two@example.com")

    board = pipeline_board(ctx, job["companyId"])
    assert [row["applicationId"] for row in board] == [a1["_id"], a2["_id"]]
    assert [e["roundId"] for e in board[0]["evaluations"]] == [rnd["_id"]]
    assert board[1]["evaluations"] == []


def test_round_scheduled_at_is_used_before_date_strings(ctx, seed, job):
    past = create_round(
        ctx,
        {
            "jobId": job["_id"],
            "name": "Past",
            "scheduledAt": "2026-01-14T09:00:00Z",
            "scheduling": {"date": "2026-02-01", "time": "09:00"},
        },
    )
    future = create_round(
        ctx,
        {
            "jobId": job["_id"],
            "name": "Future",
            "scheduledAt": "2026-02-01T09:00:00Z",
            "scheduling": {"date": "2026-01-01", "time": "09:00"},
        },
    )
    application = seed.application(job)
    assign(ctx, past["_id"], application["_id"], None)
    assign(ctx, future["_id"], application["_id"], None)

    statuses = {e["roundId"]: e["status"] for e in reconcile(ctx, [application["_id"]])}
    assert statuses == {past["_id"]: "MISSED", future["_id"]: "PENDING"}
