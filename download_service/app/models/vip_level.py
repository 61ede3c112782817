from __future__ import annotations

from pydantic import BaseModel


FULL_PRICE_RATE = 10  # 0~10 스케일, 10 = 정가


class VipLevel(BaseModel):
    """VIP 등급 설정 (읽기 전용, VIP 관리 서비스 소유).

    points_discount_rate 는 0~10 스케일이며 값이 작을수록 싸다 (8 → 20% 할인).
    """

    level: int
    name: str = ""
    daily_download_limit: int = 0
    points_discount_rate: int = FULL_PRICE_RATE
    is_active: bool = True
