"""포인트 결제 수익 분배.

작성자 몫 = floor(결제 포인트 * (1 - 플랫폼 수수료율)).
본인 파일을 본인이 결제한 경우에는 분배하지 않는다.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal

from ..models.file_policy import FilePolicy
from ..models.ledger import PointsLedgerEntry
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    PointsLedgerRepositoryInterface,
    Session,
)


logger = logging.getLogger(__name__)


class RevenueSplitter:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        ledger_repo: PointsLedgerRepositoryInterface,
        fee_rate: float,
    ) -> None:
        if not 0.0 <= fee_rate <= 1.0:
            raise ValueError(f"fee_rate must be within [0, 1]: {fee_rate}")
        self._account_repo = account_repo
        self._ledger_repo = ledger_repo
        # 0.1 같은 값의 이진 부동소수 오차로 floor 가 1 작아지지 않도록 Decimal 로 계산한다.
        self._fee_rate = Decimal(str(fee_rate))

    def author_share(self, points_charged: int) -> int:
        if points_charged <= 0:
            return 0
        return math.floor(Decimal(points_charged) * (Decimal(1) - self._fee_rate))

    def split(
        self,
        points_charged: int,
        author_id: str | None,
        payer_id: str,
        file: FilePolicy,
        session: Session = None,
    ) -> int:
        """작성자에게 몫을 적립하고 원장에 기록한 뒤 적립액을 반환한다.

        결제 트랜잭션 안에서만 호출된다.
        """

        if author_id is None or author_id == payer_id:
            return 0

        credit = self.author_share(points_charged)
        if credit <= 0:
            return 0

        updated = self._account_repo.add_points(author_id, credit, session=session)
        if updated is None:
            # 작성자 계정이 없으면 원장만 남기면 잔액/원장 불일치가 생긴다.
            logger.warning(
                "author account missing, revenue share skipped",
                extra={"account_id": author_id, "file_id": file.file_id},
            )
            return 0

        self._ledger_repo.append(
            PointsLedgerEntry(
                account_id=author_id,
                delta=credit,
                reason=f"file sale income: {file.name}",
                resource_id=file.resource_id,
                file_id=file.file_id,
                created_at=datetime.now(timezone.utc),
            ),
            session=session,
        )
        return credit
