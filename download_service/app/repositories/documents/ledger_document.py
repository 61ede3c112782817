from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.mongo.types import MongoDateTime, PyObjectId, from_object_id

from ...models.ledger import PointsLedgerEntry


class PointsLedgerDocument(BaseModel):
    """MongoDB points_ledger 컬렉션 도큐먼트 모델.

    append-only 라서 updated_at 을 두지 않는다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    account_id: str
    delta: int
    reason: str
    resource_id: Optional[str] = None
    file_id: Optional[str] = None
    created_at: MongoDateTime

    @classmethod
    def from_domain(cls, entry: PointsLedgerEntry) -> "PointsLedgerDocument":
        return cls.model_validate(entry.model_dump(exclude={"id"}))

    def to_domain(self) -> PointsLedgerEntry:
        return PointsLedgerEntry(
            id=from_object_id(self.id),
            account_id=self.account_id,
            delta=self.delta,
            reason=self.reason,
            resource_id=self.resource_id,
            file_id=self.file_id,
            created_at=self.created_at,
        )
