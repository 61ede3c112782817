"""비용 계획(cost plan) 타입.

권한 평가 결과로 "진행하면 무엇을 차감할지" 를 나타내는 닫힌 variant 집합이다.
각 variant 는 자기에게 필요한 필드만 가진다.

    Free | DownloadedToday | DailyLimit | DownloadCount
         | VipDownloadCount | Points | VipDiscountedPoints

cost_type 문자열 값은 daily_purchases 테이블과 download.charged 이벤트에 그대로
저장되므로 바꾸면 안 된다.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Union


class CostType(StrEnum):
    FREE = "free"
    DOWNLOADED_TODAY = "downloaded_today"
    DAILY_LIMIT = "daily_limit"
    DOWNLOAD_COUNT = "download_count"
    VIP_DOWNLOAD_COUNT = "vip_download_count"
    POINTS = "points"
    VIP_DISCOUNTED_POINTS = "vip_discounted_points"


@dataclass(frozen=True, slots=True)
class Free:
    """아무것도 차감하지 않는 계획."""

    cost_type: ClassVar[CostType] = CostType.FREE
    cost: int = 0


@dataclass(frozen=True, slots=True)
class DownloadedToday:
    """오늘 이미 과금된 (계정, 파일) 조합. 재다운로드는 무료."""

    cost_type: ClassVar[CostType] = CostType.DOWNLOADED_TODAY
    cost: int = 0


@dataclass(frozen=True, slots=True)
class DailyLimit:
    """무료 파일을 VIP 일일 쿼터 1회로 다운로드."""

    cost_type: ClassVar[CostType] = CostType.DAILY_LIMIT
    cost: int = 1


@dataclass(frozen=True, slots=True)
class DownloadCount:
    """레거시 다운로드 횟수(평생 잔액)에서 차감."""

    cost_type: ClassVar[CostType] = CostType.DOWNLOAD_COUNT
    cost: int = 1


@dataclass(frozen=True, slots=True)
class VipDownloadCount:
    """VIP 요구 파일을 일일 쿼터 1회로 다운로드."""

    cost_type: ClassVar[CostType] = CostType.VIP_DOWNLOAD_COUNT
    cost: int = 1
    required_vip_level: int = 0


@dataclass(frozen=True, slots=True)
class Points:
    """포인트 결제 (할인 없음)."""

    cost_type: ClassVar[CostType] = CostType.POINTS
    cost: int
    original: int


@dataclass(frozen=True, slots=True)
class VipDiscountedPoints:
    """VIP 할인이 적용된 포인트 결제."""

    cost_type: ClassVar[CostType] = CostType.VIP_DISCOUNTED_POINTS
    cost: int
    original: int
    vip_level: int
    discount_rate: int


CostPlan = Union[
    Free,
    DownloadedToday,
    DailyLimit,
    DownloadCount,
    VipDownloadCount,
    Points,
    VipDiscountedPoints,
]

QUOTA_PLANS = (DailyLimit, VipDownloadCount)
POINTS_PLANS = (Points, VipDiscountedPoints)
NO_CHARGE_PLANS = (Free, DownloadedToday)


def points_cost(plan: CostPlan) -> int:
    """계획이 차감할 포인트."""
    if isinstance(plan, POINTS_PLANS):
        return plan.cost
    return 0


def quota_cost(plan: CostPlan) -> int:
    """계획이 차감할 다운로드 단위 (일일 쿼터 또는 레거시 횟수)."""
    if isinstance(plan, QUOTA_PLANS) or isinstance(plan, DownloadCount):
        return plan.cost
    return 0


def is_chargeable(plan: CostPlan) -> bool:
    return not isinstance(plan, NO_CHARGE_PLANS)
