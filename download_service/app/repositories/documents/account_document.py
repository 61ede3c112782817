from __future__ import annotations

from typing import Optional

from common.mongo.types import BaseDocument, MongoDate

from ...models.account import Account


class AccountDocument(BaseDocument):
    """MongoDB accounts 컬렉션 도큐먼트 모델 (경제 관련 필드만 매핑)."""

    account_id: str
    points_balance: int = 0
    vip_level: int = 0
    legacy_download_credits: int = 0
    daily_quota_used: int = 0
    daily_quota_limit: Optional[int] = None
    quota_last_reset_date: Optional[MongoDate] = None

    def to_domain(self, default_daily_limit: int = 0) -> Account:
        return Account(
            account_id=self.account_id,
            points_balance=self.points_balance,
            vip_level=self.vip_level,
            legacy_download_credits=self.legacy_download_credits,
            daily_quota_used=self.daily_quota_used,
            daily_quota_limit=(
                self.daily_quota_limit
                if self.daily_quota_limit is not None
                else default_daily_limit
            ),
            quota_last_reset_date=self.quota_last_reset_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
