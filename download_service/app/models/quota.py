from __future__ import annotations

from pydantic import BaseModel


class QuotaStatus(BaseModel):
    """일일 다운로드 쿼터 현황."""

    used: int
    limit: int
    remaining: int
    can_consume: bool

    @classmethod
    def of(cls, used: int, limit: int) -> "QuotaStatus":
        remaining = max(0, limit - used)
        return cls(used=used, limit=limit, remaining=remaining, can_consume=remaining > 0)
