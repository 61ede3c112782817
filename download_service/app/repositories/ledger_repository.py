from __future__ import annotations

from pymongo import DESCENDING
from pymongo.database import Database

from common.mongo.types import from_object_id

from .documents.ledger_document import PointsLedgerDocument
from .interfaces import PointsLedgerRepositoryInterface, Session
from ..models.ledger import PointsLedgerEntry


class PointsLedgerRepository(PointsLedgerRepositoryInterface):
    """points_ledger 컬렉션 (append-only). 수정/삭제 메서드는 두지 않는다."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["points_ledger"]

    def append(
        self, entry: PointsLedgerEntry, session: Session = None
    ) -> PointsLedgerEntry:
        doc = PointsLedgerDocument.from_domain(entry)
        result = self._col.insert_one(
            doc.model_dump(by_alias=True, exclude_none=True), session=session
        )
        return entry.model_copy(update={"id": from_object_id(result.inserted_id)})

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[PointsLedgerEntry], int]:
        query = {"account_id": account_id}
        total = self._col.count_documents(query)
        cursor = (
            self._col.find(query)
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        items = [PointsLedgerDocument.model_validate(doc).to_domain() for doc in cursor]
        return items, total

    def sum_by_account(self, account_id: str) -> int:
        pipeline = [
            {"$match": {"account_id": account_id}},
            {"$group": {"_id": None, "total": {"$sum": "$delta"}}},
        ]
        for doc in self._col.aggregate(pipeline):
            return int(doc["total"])
        return 0
