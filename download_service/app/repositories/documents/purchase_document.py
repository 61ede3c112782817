from __future__ import annotations

from common.mongo.types import BaseDocument, MongoDate, from_object_id

from ...models.cost_plan import CostType
from ...models.purchase import PurchaseRecord


class PurchaseDocument(BaseDocument):
    """MongoDB daily_purchases 컬렉션 도큐먼트 모델.

    purchase_date 는 영업일 기준 "YYYY-MM-DD" 문자열로 저장된다.
    """

    account_id: str
    file_id: str
    resource_id: str
    purchase_date: MongoDate
    cost_type: CostType
    points_cost: int = 0
    quota_cost: int = 0

    @classmethod
    def from_domain(cls, record: PurchaseRecord) -> "PurchaseDocument":
        data = record.model_dump(exclude={"id"})
        return cls.model_validate(data)

    def to_domain(self) -> PurchaseRecord:
        return PurchaseRecord(
            id=from_object_id(self.id),
            account_id=self.account_id,
            file_id=self.file_id,
            resource_id=self.resource_id,
            purchase_date=self.purchase_date,
            cost_type=self.cost_type,
            points_cost=self.points_cost,
            quota_cost=self.quota_cost,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
