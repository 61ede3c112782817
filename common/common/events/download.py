"""다운로드 결제 관련 이벤트 정의."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Self


class DownloadEventType:
    """다운로드 이벤트 타입 상수."""

    DOWNLOAD_CHARGED = "download.charged"


@dataclass(slots=True)
class DownloadChargedEvent:
    """유료 다운로드 과금 완료 이벤트.

    결제 트랜잭션이 커밋된 뒤 발행되며, 알림/감사 로그 싱크가 소비한다.
    points_cost 는 지불자 기준 차감 포인트(양수), author_credit 은 작성자 적립 포인트다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    account_id: str
    file_id: str
    resource_id: str
    cost_type: str
    points_cost: int
    quota_cost: int
    author_id: str | None
    author_credit: int
    remaining_quota: int | None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        remaining = data.get("remaining_quota")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            account_id=str(data["account_id"]),
            file_id=str(data["file_id"]),
            resource_id=str(data["resource_id"]),
            cost_type=str(data["cost_type"]),
            points_cost=int(data.get("points_cost", 0)),
            quota_cost=int(data.get("quota_cost", 0)),
            author_id=data.get("author_id"),
            author_credit=int(data.get("author_credit", 0)),
            remaining_quota=int(remaining) if remaining is not None else None,
        )
