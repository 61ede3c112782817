from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from .quota import QuotaStatus


class DownloadStats(BaseModel):
    """계정별 다운로드 통계.

    카운트는 과금된 (파일, 영업일) 구매 기록 수다. 같은 날 재다운로드는 새 기록을
    남기지 않으므로 한 번만 센다. 주 단위는 월요일 시작이다.
    """

    quota: QuotaStatus
    today: int
    this_week: int
    this_month: int
    total: int
    reset_at: datetime
