"""일일 구매 기록 (idempotency record) 모델.

(account_id, file_id, purchase_date) 당 최대 1건이며, 오늘 날짜의 기록이 있으면
같은 파일 재다운로드는 무료다.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from .cost_plan import CostType


class PurchaseRecord(BaseModel):
    id: str | None = None
    account_id: str
    file_id: str
    resource_id: str
    purchase_date: date
    cost_type: CostType
    points_cost: int = 0
    quota_cost: int = 0
    created_at: datetime
    updated_at: datetime


def merge_purchase_records(
    existing: PurchaseRecord, incoming: PurchaseRecord
) -> PurchaseRecord:
    """같은 키에 대한 두 기록을 합친다.

    - points_cost / quota_cost 는 필드별 최댓값
    - cost_type 은 나중 값(incoming)으로 덮어쓴다
    - id / created_at 은 기존 행을 유지한다

    비용 필드는 max 이므로 순서와 횟수에 무관하다. 실제 과금은 계정 행의
    원자적 차감이 담당하며, 이 병합은 기록 행의 중복만 막는다.
    """

    return existing.model_copy(
        update={
            "cost_type": incoming.cost_type,
            "points_cost": max(existing.points_cost, incoming.points_cost),
            "quota_cost": max(existing.quota_cost, incoming.quota_cost),
            "updated_at": max(existing.updated_at, incoming.updated_at),
        }
    )
