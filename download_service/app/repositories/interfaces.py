from __future__ import annotations

from datetime import date
from typing import Any, Callable, Protocol, TypeVar

from ..models.account import Account
from ..models.file_policy import FilePolicy
from ..models.ledger import PointsLedgerEntry
from ..models.purchase import PurchaseRecord
from ..models.vip_level import VipLevel


T = TypeVar("T")

# 트랜잭션 세션. Mongo 구현에서는 pymongo ClientSession, 테스트 fake 에서는 None 이다.
Session = Any


class AccountRepositoryInterface(Protocol):
    """accounts 컬렉션의 경제 관련 필드에 대한 계약.

    차감 계열 메서드는 모두 "조건부 단일 문서 업데이트" 이며, 조건이 맞지 않으면
    아무것도 바꾸지 않고 None 을 반환한다. 잔액/쿼터가 음수가 되는 일은 없다.
    """

    def get(
        self, account_id: str, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def reset_daily_quota(
        self, account_id: str, today: date, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        """quota_last_reset_date != today 인 경우에만 쿼터를 0 으로 되돌린다.

        이번 호출로 리셋이 일어났으면 갱신된 계정을, 이미 오늘 리셋된 상태면 None 을 반환한다.
        """
        ...

    def consume_quota(
        self, account_id: str, today: date, limit: int, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        """daily_quota_used < limit 인 경우에만 1 증가시킨다."""
        ...

    def consume_legacy_credits(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def deduct_points(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def add_points(
        self, account_id: str, amount: int, session: Session = None
    ) -> Account | None:  # pragma: no cover - Protocol
        ...


class FilePolicyRepositoryInterface(Protocol):
    """resource_files / resources 컬렉션 읽기 계약 (download_count 증가만 예외)."""

    def get(self, file_id: str) -> FilePolicy | None:  # pragma: no cover - Protocol
        ...

    def list_active_by_resource(
        self, resource_id: str
    ) -> list[FilePolicy]:  # pragma: no cover - Protocol
        ...

    def resource_exists(self, resource_id: str) -> bool:  # pragma: no cover - Protocol
        ...

    def increment_file_download_count(
        self, file_id: str
    ) -> None:  # pragma: no cover - Protocol
        ...

    def increment_resource_download_count(
        self, resource_id: str
    ) -> None:  # pragma: no cover - Protocol
        """일괄 다운로드는 과금된 파일 수와 무관하게 리소스당 1회만 증가시킨다."""
        ...


class VipLevelRepositoryInterface(Protocol):
    def get(self, level: int) -> VipLevel | None:  # pragma: no cover - Protocol
        ...


class PurchaseRepositoryInterface(Protocol):
    """daily_purchases (idempotency record) 계약.

    (account_id, file_id, purchase_date) 조합당 1건만 존재한다.
    """

    def find(
        self,
        account_id: str,
        file_id: str,
        purchase_date: date,
        session: Session = None,
    ) -> PurchaseRecord | None:  # pragma: no cover - Protocol
        ...

    def record_or_merge(
        self, record: PurchaseRecord, session: Session = None
    ) -> PurchaseRecord:  # pragma: no cover - Protocol
        """없으면 생성하고, 있으면 비용 필드는 max, cost_type 은 덮어써서 병합한다."""
        ...

    def count_by_account(
        self, account_id: str, since: date | None = None
    ) -> int:  # pragma: no cover - Protocol
        """since 가 주어지면 purchase_date >= since 인 기록만 센다."""
        ...


class PointsLedgerRepositoryInterface(Protocol):
    """points_ledger (append-only) 계약."""

    def append(
        self, entry: PointsLedgerEntry, session: Session = None
    ) -> PointsLedgerEntry:  # pragma: no cover - Protocol
        ...

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[PointsLedgerEntry], int]:  # pragma: no cover - Protocol
        ...

    def sum_by_account(self, account_id: str) -> int:  # pragma: no cover - Protocol
        ...


class TransactionRunnerInterface(Protocol):
    """callback 을 하나의 all-or-nothing 단위로 실행한다.

    callback 은 세션을 인자로 받으며, 예외가 발생하면 그 안의 모든 쓰기가 취소된다.
    """

    def run(
        self, callback: Callable[[Session], T]
    ) -> T:  # pragma: no cover - Protocol
        ...
