"""계정 레포지토리 구현체.

계정 행은 계정 서비스가 소유하며, 여기서는 경제 관련 필드만 조건부 단일 문서
업데이트로 변경한다. 조건이 맞지 않으면 아무것도 바꾸지 않고 None 을 반환하므로
잔액/쿼터가 음수가 되는 일은 없다.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database

from .documents.account_document import AccountDocument
from .interfaces import AccountRepositoryInterface, Session
from ..models.account import Account


class AccountRepository(AccountRepositoryInterface):
    """accounts 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database, default_daily_limit: int = 0) -> None:
        self._db = database
        self._col = database["accounts"]
        self._default_daily_limit = default_daily_limit

    def _to_domain(self, doc: dict[str, Any] | None) -> Account | None:
        if doc is None:
            return None
        return AccountDocument.model_validate(doc).to_domain(self._default_daily_limit)

    def _update(
        self,
        filter_: dict[str, Any],
        update: dict[str, Any],
        session: Session,
    ) -> Account | None:
        update.setdefault("$set", {})["updated_at"] = datetime.now(timezone.utc)
        doc = self._col.find_one_and_update(
            filter_,
            update,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._to_domain(doc)

    def get(self, account_id: str, session: Session = None) -> Account | None:
        doc = self._col.find_one({"account_id": account_id}, session=session)
        return self._to_domain(doc)

    def reset_daily_quota(
        self, account_id: str, today: date, session: Session = None
    ) -> Account | None:
        # 조건부 업데이트라서 자정을 넘긴 동시 요청 두 개가 리셋해도 한 번만 적용된다.
        return self._update(
            {
                "account_id": account_id,
                "quota_last_reset_date": {"$ne": today.isoformat()},
            },
            {
                "$set": {
                    "daily_quota_used": 0,
                    "quota_last_reset_date": today.isoformat(),
                }
            },
            session,
        )

    def consume_quota(
        self, account_id: str, today: date, limit: int, session: Session = None
    ) -> Account | None:
        return self._update(
            {
                "account_id": account_id,
                "quota_last_reset_date": today.isoformat(),
                "daily_quota_used": {"$lt": limit},
            },
            {"$inc": {"daily_quota_used": 1}},
            session,
        )

    def consume_legacy_credits(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:
        return self._update(
            {"account_id": account_id, "legacy_download_credits": {"$gte": amount}},
            {"$inc": {"legacy_download_credits": -amount}},
            session,
        )

    def deduct_points(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:
        return self._update(
            {"account_id": account_id, "points_balance": {"$gte": amount}},
            {"$inc": {"points_balance": -amount}},
            session,
        )

    def add_points(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:
        return self._update(
            {"account_id": account_id},
            {"$inc": {"points_balance": amount}},
            session,
        )
