"""일일 구매 기록(daily_purchases) 레포지토리.

(account_id, file_id, purchase_date) 에 유니크 인덱스가 걸려 있으며,
같은 키로 두 번 기록하면 행을 새로 만들지 않고 병합한다.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .documents.purchase_document import PurchaseDocument
from .interfaces import PurchaseRepositoryInterface, Session
from ..models.purchase import PurchaseRecord


class PurchaseRepository(PurchaseRepositoryInterface):
    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["daily_purchases"]

    @staticmethod
    def _key(account_id: str, file_id: str, purchase_date: date) -> dict[str, Any]:
        return {
            "account_id": account_id,
            "file_id": file_id,
            "purchase_date": purchase_date.isoformat(),
        }

    def find(
        self,
        account_id: str,
        file_id: str,
        purchase_date: date,
        session: Session = None,
    ) -> PurchaseRecord | None:
        doc = self._col.find_one(
            self._key(account_id, file_id, purchase_date), session=session
        )
        if doc is None:
            return None
        return PurchaseDocument.model_validate(doc).to_domain()

    def count_by_account(self, account_id: str, since: date | None = None) -> int:
        query: dict[str, Any] = {"account_id": account_id}
        if since is not None:
            # "YYYY-MM-DD" 문자열은 사전순 비교가 날짜 순서와 같다.
            query["purchase_date"] = {"$gte": since.isoformat()}
        return self._col.count_documents(query)

    def record_or_merge(
        self, record: PurchaseRecord, session: Session = None
    ) -> PurchaseRecord:
        """upsert 로 기록한다.

        - points_cost / quota_cost: $max (필드별 최댓값)
        - cost_type: $set (나중 값으로 덮어쓰기)
        - 나머지: $setOnInsert
        """

        data = PurchaseDocument.from_domain(record).to_mongo_record()
        key = self._key(record.account_id, record.file_id, record.purchase_date)
        update = {
            "$max": {
                "points_cost": data["points_cost"],
                "quota_cost": data["quota_cost"],
                "updated_at": data["updated_at"],
            },
            "$set": {"cost_type": record.cost_type.value},
            "$setOnInsert": {
                "resource_id": data["resource_id"],
                "created_at": data["created_at"],
            },
        }

        try:
            doc = self._col.find_one_and_update(
                key,
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER,
                session=session,
            )
        except DuplicateKeyError:
            # 트랜잭션 안에서는 서버가 이미 트랜잭션을 abort 했으므로 같은 세션으로
            # 재시도할 수 없다. 호출자가 트랜잭션 전체를 다시 실행해야 한다.
            if session is not None:
                raise
            # 동시 upsert 경합에서 진 쪽: 이제 행이 존재하므로 병합만 수행한다.
            doc = self._col.find_one_and_update(
                key,
                update,
                return_document=ReturnDocument.AFTER,
            )

        return PurchaseDocument.model_validate(doc).to_domain()
