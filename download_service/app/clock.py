from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


class BusinessClock:
    """영업일(달력 날짜) 계산기.

    일일 쿼터/구매 기록의 "오늘" 은 서버 로컬 시간이 아니라 설정된 타임존 기준이다.
    """

    def __init__(self, tz: ZoneInfo) -> None:
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()

    def next_reset_at(self) -> datetime:
        """다음 영업일 0시. 일일 쿼터가 다시 채워지는 시각이다."""
        return datetime.combine(self.today() + timedelta(days=1), time.min, tzinfo=self._tz)
