"""권한 평가/결제 결과 모델."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .cost_plan import CostPlan, CostType, Free
from .quota import QuotaStatus


class DenialCode(StrEnum):
    FILE_NOT_FOUND = "file_not_found"
    ACCOUNT_NOT_FOUND = "account_not_found"
    FILE_UNAVAILABLE = "file_unavailable"
    INSUFFICIENT_VIP_LEVEL = "insufficient_vip_level"
    INSUFFICIENT_POINTS = "insufficient_points"
    QUOTA_EXHAUSTED = "quota_exhausted"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    CONFIGURATION_ERROR = "configuration_error"
    PAYMENT_FAILED = "payment_failed"


@dataclass(frozen=True, slots=True)
class Verdict:
    """권한 평가 결과. 허용이면 plan 이 실제 차감 내용을 담는다."""

    allowed: bool
    plan: CostPlan
    reason: str
    code: DenialCode | None = None
    quota: QuotaStatus | None = None

    @classmethod
    def allow(
        cls, plan: CostPlan, reason: str = "allowed", quota: QuotaStatus | None = None
    ) -> "Verdict":
        return cls(allowed=True, plan=plan, reason=reason, quota=quota)

    @classmethod
    def deny(
        cls, code: DenialCode, reason: str, quota: QuotaStatus | None = None
    ) -> "Verdict":
        return cls(allowed=False, plan=Free(), reason=reason, code=code, quota=quota)


@dataclass(frozen=True, slots=True)
class PaymentReceipt:
    """결제 실행 결과."""

    plan: CostPlan
    points_charged: int = 0
    author_credit: int = 0
    quota: QuotaStatus | None = None
    points_balance: int | None = None
    legacy_download_credits: int | None = None


@dataclass(slots=True)
class DownloadOutcome:
    """evaluate-and-charge 경계에서 호출자에게 돌려주는 구조화된 결과."""

    allowed: bool
    reason: str
    cost_type: CostType | None = None
    cost: int = 0
    remaining_quota: int | None = None
    error_code: DenialCode | None = None
    file_id: str | None = None
    resource_id: str | None = None
    author_id: str | None = None
    author_credit: int = 0
    points_cost: int = 0
    quota_cost: int = 0
    charged: bool = False
    # 평가 후 실행 단계에서 실패 (잔액/쿼터 변경, 트랜잭션 충돌). 재시도 가능.
    payment_failed: bool = False


@dataclass(slots=True)
class ResourceDownloadOutcome:
    """리소스 단위(파일 여러 개) 다운로드 결과."""

    resource_id: str
    results: list[DownloadOutcome] = field(default_factory=list)
    remaining_quota: int | None = None
    # 리소스/계정 자체를 찾지 못한 경우에만 채워진다 (파일별 실패는 results 에 있다).
    error_code: DenialCode | None = None
    reason: str | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.allowed)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def has_error(self) -> bool:
        return self.error_code is not None or any(not r.allowed for r in self.results)
