"""계정 도메인 모델.

계정 자체는 계정/인증 서비스가 소유하고, 이 서비스는 경제 관련 필드
(포인트 잔액, 레거시 다운로드 횟수, 일일 쿼터)만 변경한다.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class Account(BaseModel):
    """요청 시점의 계정 스냅샷.

    인증 게이트웨이가 넘겨준 account_id 로 조회하며, 평가기/결제 실행기에
    명시적인 파라미터로 전달된다 (요청 전역 상태 없음).
    """

    account_id: str
    points_balance: int = Field(default=0, ge=0)
    vip_level: int = Field(default=0, ge=0)
    legacy_download_credits: int = Field(default=0, ge=0)
    daily_quota_used: int = Field(default=0, ge=0)
    daily_quota_limit: int = Field(default=0, ge=0)
    quota_last_reset_date: date | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_vip(self) -> bool:
        return self.vip_level > 0
