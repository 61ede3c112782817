"""포인트 원장 모델 (append-only).

계정의 points_balance 는 항상 해당 계정 원장 delta 합계와 같아야 한다.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PointsLedgerEntry(BaseModel):
    id: str | None = None
    account_id: str
    delta: int  # 차감은 음수, 적립은 양수
    reason: str
    resource_id: str | None = None
    file_id: str | None = None
    created_at: datetime


class ReconciliationResult(BaseModel):
    account_id: str
    points_balance: int
    ledger_sum: int

    @property
    def consistent(self) -> bool:
        return self.points_balance == self.ledger_sum
