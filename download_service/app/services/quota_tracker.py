"""일일 다운로드 쿼터 추적기.

- 계정의 daily_quota_used / quota_last_reset_date 만 다룬다.
- 외부 자정 리셋 잡이 아직 돌지 않았을 수 있으므로, 새 날짜에 처음 접근할 때
  지연 리셋(lazy reset)을 수행한다. 리셋은 항상 읽기/소비보다 먼저 일어난다.
"""

from __future__ import annotations

import logging
from datetime import date

from ..exceptions import AccountNotFound, QuotaExhausted
from ..models.account import Account
from ..models.quota import QuotaStatus
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    Session,
    VipLevelRepositoryInterface,
)


logger = logging.getLogger(__name__)


class QuotaTracker:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        vip_level_repo: VipLevelRepositoryInterface,
    ) -> None:
        self._account_repo = account_repo
        self._vip_level_repo = vip_level_repo

    def effective_limit(self, account: Account) -> int:
        """계정 한도와 VIP 등급 한도 중 큰 값을 일일 한도로 쓴다."""

        limit = account.daily_quota_limit
        if account.is_vip:
            vip = self._vip_level_repo.get(account.vip_level)
            if vip is not None and vip.is_active:
                limit = max(limit, vip.daily_download_limit)
        return limit

    def reset(self, account: Account, today: date, session: Session = None) -> Account:
        """오늘 아직 리셋되지 않았다면 쿼터를 0 으로 되돌린 계정을 반환한다."""

        if account.quota_last_reset_date == today:
            return account

        reset = self._account_repo.reset_daily_quota(
            account.account_id, today, session=session
        )
        if reset is not None:
            logger.info(
                "daily quota lazily reset",
                extra={"account_id": account.account_id},
            )
            return reset

        # 다른 요청이 먼저 리셋했다. 최신 행을 다시 읽는다.
        latest = self._account_repo.get(account.account_id, session=session)
        if latest is None:
            raise AccountNotFound(account.account_id)
        return latest

    def current_quota(
        self, account: Account, today: date, session: Session = None
    ) -> tuple[Account, QuotaStatus]:
        """리셋을 먼저 적용한 계정과 그 쿼터 현황을 함께 반환한다."""

        account = self.reset(account, today, session=session)
        status = QuotaStatus.of(account.daily_quota_used, self.effective_limit(account))
        return account, status

    def consume(
        self, account: Account, today: date, session: Session = None
    ) -> tuple[Account, QuotaStatus]:
        """쿼터 1회를 원자적으로 소비한다. 남은 쿼터가 없으면 QuotaExhausted."""

        account, status = self.current_quota(account, today, session=session)
        if not status.can_consume:
            raise QuotaExhausted("daily download quota exhausted")

        updated = self._account_repo.consume_quota(
            account.account_id, today, status.limit, session=session
        )
        if updated is None:
            # 평가 이후 다른 요청이 마지막 쿼터를 가져갔다.
            raise QuotaExhausted("daily download quota exhausted")

        return updated, QuotaStatus.of(updated.daily_quota_used, status.limit)
