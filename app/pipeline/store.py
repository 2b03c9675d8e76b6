from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from app.utils.datetime import utc_now
from app.utils.errors import Conflict


class DocumentStore:
    """Thin document-store capability over a PyMongo database.

    Every write stamps ``updatedAt`` and bumps ``version``. ``save`` is a full
    record replace that only lands when the stored version still matches the
    one the caller read, so a concurrent writer is detected instead of
    silently overwritten.
    """

    def __init__(self, db, *, clock: Callable[[], datetime] = utc_now):
        self._db = db
        self._clock = clock

    @property
    def db(self):
        return self._db

    def get(self, collection: str, doc_id: Any) -> Optional[dict[str, Any]]:
        if doc_id is None:
            return None
        return self._db[collection].find_one({"_id": doc_id})

    def find_one(
        self, collection: str, query: dict[str, Any], *, sort: list[tuple[str, int]] | None = None
    ) -> Optional[dict[str, Any]]:
        return self._db[collection].find_one(query, sort=sort)

    def find(
        self,
        collection: str,
        query: dict[str, Any],
        *,
        sort: list[tuple[str, int]] | None = None,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(query)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def count(self, collection: str, query: dict[str, Any]) -> int:
        return int(self._db[collection].count_documents(query))

    def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        now = self._clock()
        doc.setdefault("_id", ObjectId())
        doc.setdefault("createdAt", now)
        doc["updatedAt"] = now
        doc["version"] = 1
        self._db[collection].insert_one(doc)
        return doc

    def save(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        expected = doc.get("version")
        query: dict[str, Any] = {"_id": doc["_id"]}
        if expected is None:
            query["version"] = {"$exists": False}
        else:
            query["version"] = expected

        new_doc = dict(doc)
        new_doc["updatedAt"] = self._clock()
        new_doc["version"] = int(expected or 0) + 1

        res = self._db[collection].replace_one(query, new_doc)
        if res.matched_count != 1:
            raise Conflict(
                f"{collection} record was modified concurrently",
                details={"id": str(doc["_id"]), "version": expected},
            )
        doc.update(new_doc)
        return doc

    def update(self, collection: str, doc_id: Any, patch: dict[str, Any]) -> Optional[dict[str, Any]]:
        fields = dict(patch)
        fields["updatedAt"] = self._clock()
        return self._db[collection].find_one_and_update(
            {"_id": doc_id},
            {"$set": fields, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )

    def delete(self, collection: str, doc_id: Any) -> bool:
        res = self._db[collection].delete_one({"_id": doc_id})
        return res.deleted_count == 1
