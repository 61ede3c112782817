from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.mongo.types import PyObjectId

from ...models.vip_level import FULL_PRICE_RATE, VipLevel


class VipLevelDocument(BaseModel):
    """MongoDB vip_levels 컬렉션 도큐먼트 모델 (읽기 전용)."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    level: int
    name: str = ""
    daily_download_limit: int = 0
    points_discount_rate: int = FULL_PRICE_RATE
    is_active: bool = True

    def to_domain(self) -> VipLevel:
        return VipLevel(
            level=self.level,
            name=self.name,
            daily_download_limit=self.daily_download_limit,
            points_discount_rate=self.points_discount_rate,
            is_active=self.is_active,
        )
