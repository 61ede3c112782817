from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from ...models.entitlement import DownloadOutcome


class DownloadResultResponse(BaseModel):
    """evaluate-and-charge / preview 응답."""

    allowed: bool
    reason: str
    cost_type: str | None = None
    cost: int = 0
    remaining_quota: int | None = None
    error_code: str | None = None
    file_id: str | None = None
    resource_id: str | None = None
    author_credit: int = 0
    charged: bool = False

    @classmethod
    def from_outcome(cls, outcome: DownloadOutcome) -> "DownloadResultResponse":
        return cls(
            allowed=outcome.allowed,
            reason=outcome.reason,
            cost_type=outcome.cost_type.value if outcome.cost_type else None,
            cost=outcome.cost,
            remaining_quota=outcome.remaining_quota,
            error_code=outcome.error_code.value if outcome.error_code else None,
            file_id=outcome.file_id,
            resource_id=outcome.resource_id,
            author_credit=outcome.author_credit,
            charged=outcome.charged,
        )


class ResourceDownloadResponse(BaseModel):
    """리소스 일괄 다운로드 응답."""

    resource_id: str
    results: list[DownloadResultResponse]
    success_count: int
    total_count: int
    has_error: bool
    remaining_quota: int | None = None


class QuotaResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    can_consume: bool


class PointsLedgerItemResponse(BaseModel):
    id: str | None
    delta: int
    reason: str
    resource_id: str | None
    file_id: str | None
    created_at: datetime


class ReconciliationResponse(BaseModel):
    account_id: str
    points_balance: int
    ledger_sum: int
    consistent: bool


class DownloadStatsResponse(BaseModel):
    """계정 다운로드 통계 응답."""

    quota: QuotaResponse
    today: int
    this_week: int
    this_month: int
    total: int
    reset_at: datetime
