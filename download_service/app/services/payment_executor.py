"""비용 계획 실행기.

모든 차감 단계(쿼터/레거시 횟수/포인트, 원장 기록, 수익 분배, 구매 기록)는
하나의 트랜잭션 안에서 실행된다. 어느 단계든 실패하면 전체가 롤백된다.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from pymongo.errors import PyMongoError

from ..exceptions import InsufficientBalance, PaymentFailure
from ..models.account import Account
from ..models.cost_plan import (
    NO_CHARGE_PLANS,
    POINTS_PLANS,
    QUOTA_PLANS,
    CostPlan,
    DownloadCount,
    DownloadedToday,
    points_cost,
    quota_cost,
)
from ..models.entitlement import DenialCode, PaymentReceipt
from ..models.file_policy import FilePolicy
from ..models.ledger import PointsLedgerEntry
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    PointsLedgerRepositoryInterface,
    Session,
    TransactionRunnerInterface,
)
from .idempotency_ledger import IdempotencyLedger
from .quota_tracker import QuotaTracker
from .revenue_splitter import RevenueSplitter


logger = logging.getLogger(__name__)


class PaymentExecutor:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        ledger_repo: PointsLedgerRepositoryInterface,
        ledger: IdempotencyLedger,
        quota_tracker: QuotaTracker,
        splitter: RevenueSplitter,
        tx_runner: TransactionRunnerInterface,
    ) -> None:
        self._account_repo = account_repo
        self._ledger_repo = ledger_repo
        self._ledger = ledger
        self._quota_tracker = quota_tracker
        self._splitter = splitter
        self._tx_runner = tx_runner

    def execute(
        self,
        file: FilePolicy,
        account: Account,
        plan: CostPlan,
        today: date,
    ) -> PaymentReceipt:
        """plan 을 적용한다. 실패하면 PaymentFailure (하위 타입 포함) 를 던진다."""

        if isinstance(plan, NO_CHARGE_PLANS):
            return PaymentReceipt(plan=plan)

        def _callback(session: Session) -> PaymentReceipt:
            return self._apply(file, account, plan, today, session)

        try:
            return self._tx_runner.run(_callback)
        except PaymentFailure:
            raise
        except PyMongoError as exc:
            logger.exception(
                "payment transaction aborted by storage error",
                extra={"account_id": account.account_id, "file_id": file.file_id},
            )
            raise PaymentFailure(f"payment transaction failed: {exc}") from exc

    def _apply(
        self,
        file: FilePolicy,
        account: Account,
        plan: CostPlan,
        today: date,
        session: Session,
    ) -> PaymentReceipt:
        # 평가 이후 같은 (계정, 파일) 요청이 먼저 커밋했다면 다시 과금하지 않는다.
        if self._ledger.find(account.account_id, file.file_id, today, session=session):
            return PaymentReceipt(plan=DownloadedToday())

        receipt = PaymentReceipt(plan=plan)

        if isinstance(plan, QUOTA_PLANS):
            updated, quota = self._quota_tracker.consume(account, today, session=session)
            receipt = PaymentReceipt(
                plan=plan,
                quota=quota,
                points_balance=updated.points_balance,
                legacy_download_credits=updated.legacy_download_credits,
            )

        elif isinstance(plan, DownloadCount):
            updated = self._account_repo.consume_legacy_credits(
                account.account_id, plan.cost, session=session
            )
            if updated is None:
                raise InsufficientBalance(
                    "download credits would go negative",
                    DenialCode.INSUFFICIENT_CREDITS,
                )
            receipt = PaymentReceipt(
                plan=plan,
                points_balance=updated.points_balance,
                legacy_download_credits=updated.legacy_download_credits,
            )

        elif isinstance(plan, POINTS_PLANS):
            updated = self._account_repo.deduct_points(
                account.account_id, plan.cost, session=session
            )
            if updated is None:
                raise InsufficientBalance(
                    "points balance would go negative",
                    DenialCode.INSUFFICIENT_POINTS,
                )
            self._ledger_repo.append(
                PointsLedgerEntry(
                    account_id=account.account_id,
                    delta=-plan.cost,
                    reason=f"download file: {file.name}",
                    resource_id=file.resource_id,
                    file_id=file.file_id,
                    created_at=datetime.now(timezone.utc),
                ),
                session=session,
            )
            author_credit = self._splitter.split(
                plan.cost,
                file.author_id,
                account.account_id,
                file,
                session=session,
            )
            receipt = PaymentReceipt(
                plan=plan,
                points_charged=plan.cost,
                author_credit=author_credit,
                points_balance=updated.points_balance,
                legacy_download_credits=updated.legacy_download_credits,
            )

        else:
            raise PaymentFailure(f"unsupported cost plan: {plan!r}")

        self._ledger.record_or_merge(
            account_id=account.account_id,
            file_id=file.file_id,
            resource_id=file.resource_id,
            today=today,
            cost_type=plan.cost_type,
            points_cost=points_cost(plan),
            quota_cost=quota_cost(plan),
            session=session,
        )
        return receipt
