"""다운로드 권한 평가기.

파일 가격 정책과 계정 상태로부터 허용/거부 판정과 비용 계획(cost plan)을 만든다.
판정 순서는 아래와 같으며 처음 일치하는 규칙이 이긴다. 순서를 바꾸면 누가
과금되는지가 달라지므로 바꾸지 않는다.

1. 오늘 이미 과금됨            → 허용, DownloadedToday(0)
2. 비활성/삭제된 파일          → 거부
3. 포인트/VIP 요구 없음 (무료) → VIP: 일일 쿼터 → 레거시 횟수, 비 VIP: 레거시 횟수
4. 포인트 + VIP 요구           → VIP 등급이 우선. 등급 충족 시 일일 쿼터만 사용
5. VIP 요구만                  → 4 와 동일 (포인트 검사 없음)
6. 포인트 요구만               → VIP 할인 적용 후 포인트 잔액 검사
7. 그 외                       → 설정 오류로 거부 (fail closed)
"""

from __future__ import annotations

import logging
from datetime import date

from ..exceptions import ConfigurationError
from ..models.account import Account
from ..models.cost_plan import (
    DailyLimit,
    DownloadCount,
    DownloadedToday,
    Points,
    VipDiscountedPoints,
    VipDownloadCount,
)
from ..models.entitlement import DenialCode, Verdict
from ..models.file_policy import FilePolicy
from ..models.vip_level import FULL_PRICE_RATE
from ..repositories.interfaces import Session, VipLevelRepositoryInterface
from .idempotency_ledger import IdempotencyLedger
from .quota_tracker import QuotaTracker


logger = logging.getLogger(__name__)


UNRESOLVABLE_PRICING = "unresolvable pricing configuration"


def discounted_points(required_points: int, discount_rate: int) -> int:
    """ceil(required_points * discount_rate / 10) 을 정수 연산으로 계산한다."""

    return -(-required_points * discount_rate // FULL_PRICE_RATE)


class EntitlementEvaluator:
    def __init__(
        self,
        ledger: IdempotencyLedger,
        quota_tracker: QuotaTracker,
        vip_level_repo: VipLevelRepositoryInterface,
    ) -> None:
        self._ledger = ledger
        self._quota_tracker = quota_tracker
        self._vip_level_repo = vip_level_repo

    def discount_rate(self, vip_level: int) -> int:
        """VIP 등급의 포인트 할인율 (0~10, 10 = 정가)."""

        if vip_level <= 0:
            return FULL_PRICE_RATE

        vip = self._vip_level_repo.get(vip_level)
        if vip is None or not vip.is_active:
            logger.warning(
                "vip level %s missing or inactive, charging full price", vip_level
            )
            return FULL_PRICE_RATE

        rate = vip.points_discount_rate
        if not 0 <= rate <= FULL_PRICE_RATE:
            raise ConfigurationError(
                f"points_discount_rate out of range for vip level {vip_level}: {rate}"
            )
        return rate

    def evaluate(
        self,
        file: FilePolicy,
        account: Account,
        today: date,
        session: Session = None,
    ) -> Verdict:
        try:
            return self._decide(file, account, today, session)
        except ConfigurationError as exc:
            logger.error(
                "pricing configuration error: %s",
                exc,
                extra={
                    "account_id": account.account_id,
                    "file_id": file.file_id,
                    "error_code": DenialCode.CONFIGURATION_ERROR.value,
                },
            )
            return Verdict.deny(DenialCode.CONFIGURATION_ERROR, UNRESOLVABLE_PRICING)

    def _decide(
        self,
        file: FilePolicy,
        account: Account,
        today: date,
        session: Session,
    ) -> Verdict:
        # 1. 오늘 이미 과금된 파일은 무료
        if self._ledger.find(account.account_id, file.file_id, today, session=session):
            return Verdict.allow(DownloadedToday(), reason="already downloaded today")

        # 2. 비활성 파일
        if not file.is_available:
            return Verdict.deny(DenialCode.FILE_UNAVAILABLE, "file unavailable")

        if file.required_points < 0 or file.required_vip_level < 0:
            raise ConfigurationError(
                f"negative pricing on file {file.file_id}: "
                f"points={file.required_points}, vip={file.required_vip_level}"
            )

        needs_points = file.required_points > 0
        needs_vip = file.required_vip_level > 0

        # 3. 무료 파일
        if not needs_points and not needs_vip:
            return self._free_file(account, today, session)

        # 4, 5. VIP 요구 파일 (포인트 요구 여부와 무관하게 VIP 규칙이 우선)
        if needs_vip:
            return self._vip_file(file, account, today, session)

        # 6. 포인트 요구만
        if needs_points:
            return self._points_file(file, account)

        # 7.
        raise ConfigurationError(f"unhandled pricing policy on file {file.file_id}")

    def _free_file(self, account: Account, today: date, session: Session) -> Verdict:
        if account.is_vip:
            account, quota = self._quota_tracker.current_quota(
                account, today, session=session
            )
            if quota.can_consume:
                return Verdict.allow(DailyLimit(), reason="vip daily quota", quota=quota)
            if account.legacy_download_credits > 0:
                return Verdict.allow(
                    DownloadCount(), reason="download credits", quota=quota
                )
            return Verdict.deny(
                DenialCode.QUOTA_EXHAUSTED,
                "daily quota and download credits exhausted",
                quota=quota,
            )

        # 비 VIP 는 일일 쿼터 권한이 없다.
        if account.legacy_download_credits > 0:
            return Verdict.allow(DownloadCount(), reason="download credits")
        return Verdict.deny(
            DenialCode.INSUFFICIENT_CREDITS, "insufficient download credits"
        )

    def _vip_file(
        self, file: FilePolicy, account: Account, today: date, session: Session
    ) -> Verdict:
        if account.vip_level < file.required_vip_level:
            return Verdict.deny(
                DenialCode.INSUFFICIENT_VIP_LEVEL,
                f"vip level {file.required_vip_level} required",
            )

        # VIP 전용 파일은 레거시 횟수로 대체하지 않는다.
        account, quota = self._quota_tracker.current_quota(
            account, today, session=session
        )
        if not quota.can_consume:
            return Verdict.deny(
                DenialCode.QUOTA_EXHAUSTED, "daily quota exhausted", quota=quota
            )
        return Verdict.allow(
            VipDownloadCount(required_vip_level=file.required_vip_level),
            reason="vip daily quota",
            quota=quota,
        )

    def _points_file(self, file: FilePolicy, account: Account) -> Verdict:
        rate = self.discount_rate(account.vip_level)
        cost = discounted_points(file.required_points, rate)

        if account.points_balance < cost:
            return Verdict.deny(
                DenialCode.INSUFFICIENT_POINTS,
                f"insufficient points: {cost} required",
            )

        if account.is_vip:
            return Verdict.allow(
                VipDiscountedPoints(
                    cost=cost,
                    original=file.required_points,
                    vip_level=account.vip_level,
                    discount_rate=rate,
                ),
                reason="vip discounted points",
            )
        return Verdict.allow(
            Points(cost=cost, original=file.required_points), reason="points"
        )
