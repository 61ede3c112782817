"""(계정, 파일, 영업일) 단위 과금 기록.

오늘 날짜 기록이 있으면 같은 파일의 재다운로드는 무료다. 실제 차감은
계정 행의 원자적 업데이트가 담당하고, 이 기록은 행 자체의 중복만 막는다.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from ..models.cost_plan import CostType
from ..models.purchase import PurchaseRecord
from ..repositories.interfaces import PurchaseRepositoryInterface, Session


class IdempotencyLedger:
    def __init__(self, purchase_repo: PurchaseRepositoryInterface) -> None:
        self._purchase_repo = purchase_repo

    def find(
        self,
        account_id: str,
        file_id: str,
        today: date,
        session: Session = None,
    ) -> PurchaseRecord | None:
        return self._purchase_repo.find(account_id, file_id, today, session=session)

    def record_or_merge(
        self,
        *,
        account_id: str,
        file_id: str,
        resource_id: str,
        today: date,
        cost_type: CostType,
        points_cost: int,
        quota_cost: int,
        session: Session = None,
    ) -> PurchaseRecord:
        now = datetime.now(timezone.utc)
        record = PurchaseRecord(
            account_id=account_id,
            file_id=file_id,
            resource_id=resource_id,
            purchase_date=today,
            cost_type=cost_type,
            points_cost=points_cost,
            quota_cost=quota_cost,
            created_at=now,
            updated_at=now,
        )
        return self._purchase_repo.record_or_merge(record, session=session)
