"""포인트 잔액/원장 정합성 점검.

계정 points_balance 는 언제나 해당 계정 원장 delta 합계와 같아야 한다.
"""

from __future__ import annotations

import logging

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database

from ..exceptions import AccountNotFound
from ..models.ledger import ReconciliationResult
from ..repositories.account_repository import AccountRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    PointsLedgerRepositoryInterface,
)
from ..repositories.ledger_repository import PointsLedgerRepository


logger = logging.getLogger(__name__)


class ReconciliationService:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        ledger_repo: PointsLedgerRepositoryInterface,
    ) -> None:
        self._account_repo = account_repo
        self._ledger_repo = ledger_repo

    def reconcile(self, account_id: str) -> ReconciliationResult:
        account = self._account_repo.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)

        result = ReconciliationResult(
            account_id=account_id,
            points_balance=account.points_balance,
            ledger_sum=self._ledger_repo.sum_by_account(account_id),
        )
        if not result.consistent:
            logger.error(
                "points balance does not match ledger: balance=%d ledger=%d",
                result.points_balance,
                result.ledger_sum,
                extra={"account_id": account_id},
            )
        return result


def get_reconciliation_service(
    db: Database = Depends(get_database),
) -> ReconciliationService:
    """FastAPI DI용 ReconciliationService 팩토리."""

    return ReconciliationService(AccountRepository(db), PointsLedgerRepository(db))
