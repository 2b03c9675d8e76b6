from __future__ import annotations

import pytest

from app.pipeline.constants import EVALUATIONS
from app.utils.errors import Conflict


def test_save_with_stale_version_is_conflict(ctx):
    doc = ctx.store.insert(EVALUATIONS, {"roundId": "r", "applicationId": "a", "status": "PENDING"})
    reader_one = ctx.store.get(EVALUATIONS, doc["_id"])
    reader_two = ctx.store.get(EVALUATIONS, doc["_id"])

    reader_one["status"] = "SCHEDULED"
    ctx.store.save(EVALUATIONS, reader_one)
    assert reader_one["version"] == 2

    reader_two["notes"] = "late edit"
    with pytest.raises(Conflict):
        ctx.store.save(EVALUATIONS, reader_two)

    stored = ctx.store.get(EVALUATIONS, doc["_id"])
    assert stored["status"] == "SCHEDULED"
    assert "notes" not in stored


def test_update_bumps_version(ctx):
    doc = ctx.store.insert(EVALUATIONS, {"roundId": "r", "applicationId": "a"})
    updated = ctx.store.update(EVALUATIONS, doc["_id"], {"status": "MISSED"})
    assert updated["version"] == 2
    assert updated["status"] == "MISSED"
