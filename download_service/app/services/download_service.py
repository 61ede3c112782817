"""다운로드 권한 평가 + 결제 경계 서비스.

모든 실패(권한 거부, 결제 실패, 설정 오류, 존재하지 않는 계정/파일)는 여기서
DownloadOutcome 으로 변환되어 반환된다. 호출자는 예외를 처리할 필요가 없다.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from fastapi import Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_client, get_database
from common.schemas.pagination import normalize_page

from ..clock import BusinessClock
from ..config import AppConfig, get_app_config
from ..exceptions import (
    AccountNotFound,
    FileNotFound,
    PaymentFailure,
    PermissionDenied,
)
from ..models.account import Account
from ..models.cost_plan import DownloadedToday, is_chargeable, points_cost, quota_cost
from ..models.entitlement import (
    DenialCode,
    DownloadOutcome,
    ResourceDownloadOutcome,
    Verdict,
)
from ..models.file_policy import FilePolicy
from ..models.ledger import PointsLedgerEntry
from ..models.quota import QuotaStatus
from ..models.stats import DownloadStats
from ..repositories.account_repository import AccountRepository
from ..repositories.file_repository import FilePolicyRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    FilePolicyRepositoryInterface,
    PointsLedgerRepositoryInterface,
    PurchaseRepositoryInterface,
    TransactionRunnerInterface,
    VipLevelRepositoryInterface,
)
from ..repositories.ledger_repository import PointsLedgerRepository
from ..repositories.purchase_repository import PurchaseRepository
from ..repositories.transaction_runner import MongoTransactionRunner
from ..repositories.vip_level_repository import VipLevelRepository
from .entitlement_evaluator import EntitlementEvaluator
from .idempotency_ledger import IdempotencyLedger
from .payment_executor import PaymentExecutor
from .quota_tracker import QuotaTracker
from .revenue_splitter import RevenueSplitter


logger = logging.getLogger(__name__)


class DownloadService:
    def __init__(
        self,
        *,
        clock: BusinessClock,
        account_repo: AccountRepositoryInterface,
        file_repo: FilePolicyRepositoryInterface,
        purchase_repo: PurchaseRepositoryInterface,
        ledger_repo: PointsLedgerRepositoryInterface,
        quota_tracker: QuotaTracker,
        evaluator: EntitlementEvaluator,
        executor: PaymentExecutor,
    ) -> None:
        self._clock = clock
        self._account_repo = account_repo
        self._file_repo = file_repo
        self._purchase_repo = purchase_repo
        self._ledger_repo = ledger_repo
        self._quota_tracker = quota_tracker
        self._evaluator = evaluator
        self._executor = executor

    # -------- evaluate-and-charge --------

    def evaluate_and_charge(self, file_id: str, account_id: str) -> DownloadOutcome:
        """파일 하나에 대한 권한 평가 후, 허용이면 비용 계획을 실행한다."""

        today = self._clock.today()
        try:
            file, account = self._resolve(file_id, account_id)
        except FileNotFound:
            return _not_found(DenialCode.FILE_NOT_FOUND, "file not found", file_id)
        except AccountNotFound:
            return _not_found(DenialCode.ACCOUNT_NOT_FOUND, "account not found", file_id)

        return self._charge(file, account, today)

    def preview(self, file_id: str, account_id: str) -> DownloadOutcome:
        """평가만 수행하고 과금하지 않는다."""

        today = self._clock.today()
        try:
            file, account = self._resolve(file_id, account_id)
        except FileNotFound:
            return _not_found(DenialCode.FILE_NOT_FOUND, "file not found", file_id)
        except AccountNotFound:
            return _not_found(DenialCode.ACCOUNT_NOT_FOUND, "account not found", file_id)

        verdict = self._evaluator.evaluate(file, account, today)
        if not verdict.allowed:
            return _denied(file, verdict)

        plan = verdict.plan
        return DownloadOutcome(
            allowed=True,
            reason=verdict.reason,
            cost_type=plan.cost_type,
            cost=plan.cost,
            remaining_quota=self._remaining_quota(account, today, verdict.quota),
            file_id=file.file_id,
            resource_id=file.resource_id,
            author_id=file.author_id,
            points_cost=points_cost(plan),
            quota_cost=quota_cost(plan),
        )

    def download_resource(
        self, resource_id: str, account_id: str
    ) -> ResourceDownloadOutcome:
        """리소스의 활성 파일 전체를 파일별로 독립 과금한다.

        파일마다 트랜잭션과 구매 기록이 따로 있으므로 한 파일의 거부가
        다른 파일의 과금에 영향을 주지 않는다.
        """

        today = self._clock.today()

        if not self._file_repo.resource_exists(resource_id):
            return ResourceDownloadOutcome(
                resource_id=resource_id,
                error_code=DenialCode.FILE_NOT_FOUND,
                reason="resource not found",
            )

        account = self._account_repo.get(account_id)
        if account is None:
            return ResourceDownloadOutcome(
                resource_id=resource_id,
                error_code=DenialCode.ACCOUNT_NOT_FOUND,
                reason="account not found",
            )

        files = self._file_repo.list_active_by_resource(resource_id)
        results: list[DownloadOutcome] = []
        for file in files:
            # 이전 파일의 과금이 반영된 최신 계정 상태로 평가한다.
            latest = self._account_repo.get(account_id)
            if latest is None:
                results.append(
                    _not_found(
                        DenialCode.ACCOUNT_NOT_FOUND, "account not found", file.file_id
                    )
                )
                continue
            results.append(self._charge(file, latest, today, count_resource=False))

        # 리소스 다운로드 수는 과금된 파일이 하나라도 있으면 1 만 늘린다.
        if any(r.charged for r in results):
            self._increment_resource_download_count(resource_id)

        latest = self._account_repo.get(account_id) or account
        logger.info(
            "resource download processed: %d/%d files",
            sum(1 for r in results if r.allowed),
            len(results),
            extra={"account_id": account_id, "resource_id": resource_id},
        )
        return ResourceDownloadOutcome(
            resource_id=resource_id,
            results=results,
            remaining_quota=self._remaining_quota(latest, today, None),
        )

    # -------- read-only --------

    def quota_status(self, account_id: str) -> QuotaStatus:
        account = self._get_account(account_id)
        _, status = self._quota_tracker.current_quota(account, self._clock.today())
        return status

    def points_history(
        self, account_id: str, page: int = 1, page_size: int = 20
    ) -> tuple[list[PointsLedgerEntry], int]:
        """포인트 원장 조회 (최신순)."""

        self._get_account(account_id)
        page, page_size = normalize_page(page, page_size)
        return self._ledger_repo.list_by_account(account_id, page, page_size)

    def download_stats(self, account_id: str) -> DownloadStats:
        """오늘 쿼터 현황과 오늘/이번 주/이번 달/전체 과금 다운로드 수."""

        account = self._get_account(account_id)
        today = self._clock.today()
        _, quota = self._quota_tracker.current_quota(account, today)

        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)
        count = self._purchase_repo.count_by_account
        return DownloadStats(
            quota=quota,
            today=count(account_id, since=today),
            this_week=count(account_id, since=week_start),
            this_month=count(account_id, since=month_start),
            total=count(account_id),
            reset_at=self._clock.next_reset_at(),
        )

    # -------- internals --------

    def _resolve(self, file_id: str, account_id: str) -> tuple[FilePolicy, Account]:
        file = self._file_repo.get(file_id)
        if file is None:
            raise FileNotFound(file_id)
        return file, self._get_account(account_id)

    def _get_account(self, account_id: str) -> Account:
        account = self._account_repo.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    def _charge(
        self,
        file: FilePolicy,
        account: Account,
        today: date,
        *,
        count_resource: bool = True,
    ) -> DownloadOutcome:
        verdict = self._evaluator.evaluate(file, account, today)
        try:
            if not verdict.allowed:
                raise PermissionDenied(
                    verdict.code or DenialCode.CONFIGURATION_ERROR, verdict.reason
                )
            receipt = self._executor.execute(file, account, verdict.plan, today)
        except PermissionDenied as exc:
            logger.info(
                "download denied: %s",
                exc.reason,
                extra={
                    "account_id": account.account_id,
                    "file_id": file.file_id,
                    "error_code": exc.code.value,
                },
            )
            return _denied(file, verdict)
        except PaymentFailure as exc:
            logger.warning(
                "payment failed: %s",
                exc,
                extra={
                    "account_id": account.account_id,
                    "file_id": file.file_id,
                    "error_code": exc.code.value,
                },
            )
            return DownloadOutcome(
                allowed=False,
                reason=str(exc),
                error_code=exc.code,
                remaining_quota=self._remaining_quota(account, today, None),
                file_id=file.file_id,
                resource_id=file.resource_id,
                payment_failed=True,
            )

        plan = receipt.plan
        charged = is_chargeable(plan)
        if charged:
            self._increment_download_count(file, count_resource=count_resource)
            logger.info(
                "download charged",
                extra={
                    "account_id": account.account_id,
                    "file_id": file.file_id,
                    "resource_id": file.resource_id,
                    "cost_type": plan.cost_type.value,
                    "cost": plan.cost,
                },
            )

        return DownloadOutcome(
            allowed=True,
            reason="already downloaded today"
            if isinstance(plan, DownloadedToday)
            else verdict.reason,
            cost_type=plan.cost_type,
            cost=plan.cost,
            remaining_quota=self._remaining_quota(account, today, receipt.quota),
            file_id=file.file_id,
            resource_id=file.resource_id,
            author_id=file.author_id,
            author_credit=receipt.author_credit,
            points_cost=points_cost(plan),
            quota_cost=quota_cost(plan),
            charged=charged,
        )

    def _remaining_quota(
        self, account: Account, today: date, quota: QuotaStatus | None
    ) -> int | None:
        if quota is not None:
            return quota.remaining
        latest = self._account_repo.get(account.account_id) or account
        _, status = self._quota_tracker.current_quota(latest, today)
        return status.remaining

    def _increment_download_count(
        self, file: FilePolicy, *, count_resource: bool
    ) -> None:
        # 결제 트랜잭션 밖에서 수행한다. 실패해도 과금은 유지된다.
        try:
            self._file_repo.increment_file_download_count(file.file_id)
            if count_resource:
                self._file_repo.increment_resource_download_count(file.resource_id)
        except PyMongoError:
            logger.exception(
                "failed to increment download count",
                extra={"file_id": file.file_id, "resource_id": file.resource_id},
            )

    def _increment_resource_download_count(self, resource_id: str) -> None:
        try:
            self._file_repo.increment_resource_download_count(resource_id)
        except PyMongoError:
            logger.exception(
                "failed to increment resource download count",
                extra={"resource_id": resource_id},
            )


def _not_found(code: DenialCode, reason: str, file_id: str) -> DownloadOutcome:
    return DownloadOutcome(allowed=False, reason=reason, error_code=code, file_id=file_id)


def _denied(file: FilePolicy, verdict: Verdict) -> DownloadOutcome:
    return DownloadOutcome(
        allowed=False,
        reason=verdict.reason,
        error_code=verdict.code,
        remaining_quota=verdict.quota.remaining if verdict.quota else None,
        file_id=file.file_id,
        resource_id=file.resource_id,
    )


def build_download_service(
    *,
    clock: BusinessClock,
    account_repo: AccountRepositoryInterface,
    file_repo: FilePolicyRepositoryInterface,
    vip_level_repo: VipLevelRepositoryInterface,
    purchase_repo: PurchaseRepositoryInterface,
    ledger_repo: PointsLedgerRepositoryInterface,
    tx_runner: TransactionRunnerInterface,
    fee_rate: float,
) -> DownloadService:
    """레포지토리 구현체로부터 평가기/실행기를 조립한다 (테스트에서도 사용)."""

    ledger = IdempotencyLedger(purchase_repo)
    quota_tracker = QuotaTracker(account_repo, vip_level_repo)
    splitter = RevenueSplitter(account_repo, ledger_repo, fee_rate)
    evaluator = EntitlementEvaluator(ledger, quota_tracker, vip_level_repo)
    executor = PaymentExecutor(
        account_repo=account_repo,
        ledger_repo=ledger_repo,
        ledger=ledger,
        quota_tracker=quota_tracker,
        splitter=splitter,
        tx_runner=tx_runner,
    )
    return DownloadService(
        clock=clock,
        account_repo=account_repo,
        file_repo=file_repo,
        purchase_repo=purchase_repo,
        ledger_repo=ledger_repo,
        quota_tracker=quota_tracker,
        evaluator=evaluator,
        executor=executor,
    )


def get_download_service(
    db: Database = Depends(get_database),
    config: AppConfig = Depends(get_app_config),
) -> DownloadService:
    """FastAPI DI용 DownloadService 팩토리."""

    download = config.download
    return build_download_service(
        clock=BusinessClock(download.zone),
        account_repo=AccountRepository(db, download.default_daily_quota_limit),
        file_repo=FilePolicyRepository(db),
        vip_level_repo=VipLevelRepository(db),
        purchase_repo=PurchaseRepository(db),
        ledger_repo=PointsLedgerRepository(db),
        tx_runner=MongoTransactionRunner(get_client()),
        fee_rate=download.platform_fee_rate,
    )
