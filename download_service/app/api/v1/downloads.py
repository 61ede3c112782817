"""다운로드 권한/결제 내부 API 라우터.

Gateway 가 인증을 마친 뒤 account_id 를 path 로 넘겨 호출한다.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated

from confluent_kafka import KafkaException
from fastapi import APIRouter, Depends, HTTPException, status

from common.eventbus.config import is_kafka_enabled
from common.eventbus.helpers import wrap_domain_event
from common.eventbus.kafka import get_kafka_event_bus
from common.eventbus.topics import TOPIC_DOWNLOAD
from common.events.download import DownloadChargedEvent, DownloadEventType
from common.schemas.pagination import PaginatedResponse, normalize_page

from ..schemas.downloads import (
    DownloadResultResponse,
    DownloadStatsResponse,
    PointsLedgerItemResponse,
    QuotaResponse,
    ReconciliationResponse,
    ResourceDownloadResponse,
)
from ...exceptions import AccountNotFound
from ...models.entitlement import DenialCode, DownloadOutcome
from ...services.download_service import DownloadService, get_download_service
from ...services.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/downloads", tags=["downloads"])

_NOT_FOUND_CODES = {DenialCode.FILE_NOT_FOUND, DenialCode.ACCOUNT_NOT_FOUND}


# -------- Endpoints --------


@router.post("/{account_id}/files/{file_id}")
def download_file(
    account_id: str,
    file_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
) -> DownloadResultResponse:
    """파일 다운로드 권한 평가 + 과금. 거부 403, 결제 실패 409, 미존재 404."""
    outcome = download_service.evaluate_and_charge(file_id, account_id)
    if not outcome.allowed:
        raise HTTPException(
            status_code=_error_status(outcome),
            detail={
                "code": outcome.error_code.value
                if outcome.error_code
                else DenialCode.PAYMENT_FAILED.value,
                "message": outcome.reason,
            },
        )

    if outcome.charged:
        _publish_download_charged_event(account_id, outcome)

    return DownloadResultResponse.from_outcome(outcome)


@router.get("/{account_id}/files/{file_id}/entitlement")
def preview_file(
    account_id: str,
    file_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
) -> DownloadResultResponse:
    """과금 없이 다운로드 가능 여부만 조회."""
    outcome = download_service.preview(file_id, account_id)
    return DownloadResultResponse.from_outcome(outcome)


@router.post("/{account_id}/resources/{resource_id}")
def download_resource(
    account_id: str,
    resource_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
) -> ResourceDownloadResponse:
    """리소스의 활성 파일 전체 다운로드 (파일별 독립 과금)."""
    result = download_service.download_resource(resource_id, account_id)
    if result.error_code is not None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": result.error_code.value, "message": result.reason},
        )

    for outcome in result.results:
        if outcome.charged:
            _publish_download_charged_event(account_id, outcome)

    return ResourceDownloadResponse(
        resource_id=result.resource_id,
        results=[DownloadResultResponse.from_outcome(r) for r in result.results],
        success_count=result.success_count,
        total_count=result.total_count,
        has_error=result.has_error,
        remaining_quota=result.remaining_quota,
    )


@router.get("/{account_id}/quota")
def get_quota(
    account_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
) -> QuotaResponse:
    """오늘 일일 쿼터 현황."""
    try:
        quota = download_service.quota_status(account_id)
    except AccountNotFound:
        raise _account_not_found()
    return QuotaResponse.model_validate(quota.model_dump())


@router.get("/{account_id}/stats")
def get_download_stats(
    account_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
) -> DownloadStatsResponse:
    """오늘 쿼터 + 오늘/이번 주/이번 달/전체 다운로드 수."""
    try:
        stats = download_service.download_stats(account_id)
    except AccountNotFound:
        raise _account_not_found()
    return DownloadStatsResponse(
        quota=QuotaResponse.model_validate(stats.quota.model_dump()),
        today=stats.today,
        this_week=stats.this_week,
        this_month=stats.this_month,
        total=stats.total,
        reset_at=stats.reset_at,
    )


@router.get("/{account_id}/points/history")
def get_points_history(
    account_id: str,
    download_service: Annotated[DownloadService, Depends(get_download_service)],
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResponse[PointsLedgerItemResponse]:
    """포인트 원장 조회 (최신순)."""
    page, page_size = normalize_page(page, page_size)
    try:
        items, total = download_service.points_history(account_id, page, page_size)
    except AccountNotFound:
        raise _account_not_found()
    return PaginatedResponse(
        items=[
            PointsLedgerItemResponse(
                id=entry.id,
                delta=entry.delta,
                reason=entry.reason,
                resource_id=entry.resource_id,
                file_id=entry.file_id,
                created_at=entry.created_at,
            )
            for entry in items
        ],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{account_id}/points/reconciliation")
def get_points_reconciliation(
    account_id: str,
    reconciliation_service: Annotated[
        ReconciliationService, Depends(get_reconciliation_service)
    ],
) -> ReconciliationResponse:
    """포인트 잔액과 원장 합계 일치 여부."""
    try:
        result = reconciliation_service.reconcile(account_id)
    except AccountNotFound:
        raise _account_not_found()
    return ReconciliationResponse(
        account_id=result.account_id,
        points_balance=result.points_balance,
        ledger_sum=result.ledger_sum,
        consistent=result.consistent,
    )


# -------- Helpers --------


def _error_status(outcome: DownloadOutcome) -> int:
    if outcome.error_code in _NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    if outcome.payment_failed:
        return status.HTTP_409_CONFLICT
    return status.HTTP_403_FORBIDDEN


def _account_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "code": DenialCode.ACCOUNT_NOT_FOUND.value,
            "message": "account not found",
        },
    )


# -------- Event Publishing Helpers --------


def _publish_download_charged_event(account_id: str, outcome: DownloadOutcome) -> None:
    """download.charged 이벤트 발행. 실패해도 이미 커밋된 과금은 유지한다.

    producer 설정 오류(RuntimeError)도 요청을 실패시키지 않고 로그만 남긴다.
    """
    if not is_kafka_enabled():
        return

    event = DownloadChargedEvent(
        id=str(uuid.uuid4()),
        type=DownloadEventType.DOWNLOAD_CHARGED,
        timestamp=datetime.now(timezone.utc).isoformat(),
        source="download-service",
        version="1.0",
        account_id=account_id,
        file_id=outcome.file_id or "",
        resource_id=outcome.resource_id or "",
        cost_type=outcome.cost_type.value if outcome.cost_type else "",
        points_cost=outcome.points_cost,
        quota_cost=outcome.quota_cost,
        author_id=outcome.author_id,
        author_credit=outcome.author_credit,
        remaining_quota=outcome.remaining_quota,
    )
    try:
        bus = get_kafka_event_bus()
        bus.publish(TOPIC_DOWNLOAD.base, wrap_domain_event(event))
    except (KafkaException, BufferError, RuntimeError):
        logger.exception(
            "failed to publish download.charged event",
            extra={"account_id": account_id, "file_id": outcome.file_id},
        )
