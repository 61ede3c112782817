from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from download_service.app.exceptions import AccountNotFound
from download_service.app.models.cost_plan import CostType
from download_service.app.models.entitlement import DenialCode
from download_service.app.models.purchase import PurchaseRecord
from download_service.app.services.reconciliation_service import ReconciliationService
from download_service.tests.fakes import (
    TODAY,
    DownloadFixture,
    FailingAuthorCreditLedger,
    InMemoryStore,
    add_account,
    add_file,
    add_vip_level,
    build_fixture,
)


def test_free_file_vip_consumes_last_quota_unit() -> None:
    """(a) 무료 파일, VIP, 9/10 사용 → DailyLimit(1), 10/10."""
    fixture = build_fixture()
    add_vip_level(fixture.store, 1, daily_download_limit=10)
    add_account(fixture.store, "acc-1", vip_level=1, daily_quota_used=9)
    add_file(fixture.store, "file-1")

    outcome = fixture.service.evaluate_and_charge("file-1", "acc-1")

    assert outcome.allowed is True
    assert outcome.cost_type == CostType.DAILY_LIMIT
    assert outcome.cost == 1
    assert outcome.remaining_quota == 0
    assert outcome.charged is True
    assert fixture.store.accounts["acc-1"].daily_quota_used == 10


def test_repeat_download_same_day_is_free() -> None:
    """(d) 같은 날 같은 파일 재요청 → DownloadedToday(0)."""
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=300)
    add_account(fixture.store, "author-1")
    add_file(fixture.store, "file-1", required_points=100)

    first = fixture.service.evaluate_and_charge("file-1", "acc-1")
    second = fixture.service.evaluate_and_charge("file-1", "acc-1")
    third = fixture.service.evaluate_and_charge("file-1", "acc-1")

    assert first.cost_type == CostType.POINTS
    assert first.cost == 100
    for outcome in (second, third):
        assert outcome.allowed is True
        assert outcome.cost_type == CostType.DOWNLOADED_TODAY
        assert outcome.cost == 0
        assert outcome.charged is False
    assert fixture.store.accounts["acc-1"].points_balance == 200
    assert fixture.store.files["file-1"].download_count == 1
    assert fixture.store.resources["res-1"]["download_count"] == 1


def test_repeat_download_next_day_is_charged_again() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=300)
    add_file(fixture.store, "file-1", required_points=100)

    fixture.service.evaluate_and_charge("file-1", "acc-1")
    fixture.clock.current = TODAY + timedelta(days=1)
    outcome = fixture.service.evaluate_and_charge("file-1", "acc-1")

    assert outcome.cost_type == CostType.POINTS
    assert fixture.store.accounts["acc-1"].points_balance == 100


def test_vip_discounted_points_split_with_author() -> None:
    """(e) VIP 3 할인율 8, 수수료 0.2 → 지불 80, 작성자 64."""
    fixture = build_fixture(fee_rate=0.2)
    add_vip_level(fixture.store, 3, points_discount_rate=8)
    add_account(fixture.store, "payer-1", vip_level=3, points_balance=500)
    add_account(fixture.store, "author-1", points_balance=10)
    add_file(fixture.store, "file-1", author_id="author-1", required_points=100)

    outcome = fixture.service.evaluate_and_charge("file-1", "payer-1")

    assert outcome.allowed is True
    assert outcome.cost_type == CostType.VIP_DISCOUNTED_POINTS
    assert outcome.cost == 80
    assert outcome.author_credit == 64
    assert fixture.store.accounts["payer-1"].points_balance == 420
    assert fixture.store.accounts["author-1"].points_balance == 74


def test_author_downloading_own_file_gets_no_credit() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "author-1", points_balance=100)
    add_file(fixture.store, "file-1", author_id="author-1", required_points=100)

    outcome = fixture.service.evaluate_and_charge("file-1", "author-1")

    assert outcome.allowed is True
    assert outcome.author_credit == 0
    assert fixture.store.accounts["author-1"].points_balance == 0


def test_balances_always_reconcile_with_ledger() -> None:
    fixture = build_fixture(fee_rate=0.15)
    add_vip_level(fixture.store, 2, points_discount_rate=7, daily_download_limit=3)
    add_account(fixture.store, "payer-1", vip_level=2, points_balance=1000)
    add_account(fixture.store, "payer-2", points_balance=77)
    add_account(fixture.store, "author-1", points_balance=3)
    for i, points in enumerate((33, 100, 1, 250, 0)):
        add_file(fixture.store, f"file-{i}", author_id="author-1", required_points=points)
    reconciliation = ReconciliationService(fixture.account_repo, fixture.ledger_repo)

    for i in range(5):
        for payer in ("payer-1", "payer-2", "author-1"):
            fixture.service.evaluate_and_charge(f"file-{i}", payer)
            for account_id in ("payer-1", "payer-2", "author-1"):
                assert reconciliation.reconcile(account_id).consistent is True


def test_concurrent_charges_with_one_quota_unit_left() -> None:
    fixture = build_fixture()
    add_vip_level(fixture.store, 1, daily_download_limit=10)
    add_account(fixture.store, "acc-1", vip_level=1, daily_quota_used=9)
    file_ids = [f"file-{i}" for i in range(10)]
    for file_id in file_ids:
        add_file(fixture.store, file_id, required_vip_level=1)

    with ThreadPoolExecutor(max_workers=10) as pool:
        outcomes = list(
            pool.map(
                lambda file_id: fixture.service.evaluate_and_charge(file_id, "acc-1"),
                file_ids,
            )
        )

    allowed = [o for o in outcomes if o.allowed]
    denied = [o for o in outcomes if not o.allowed]
    assert len(allowed) == 1
    assert len(denied) == len(file_ids) - 1
    assert all(o.error_code == DenialCode.QUOTA_EXHAUSTED for o in denied)
    assert fixture.store.accounts["acc-1"].daily_quota_used == 10


def test_unknown_file_and_account() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1")
    add_file(fixture.store, "file-1")

    missing_file = fixture.service.evaluate_and_charge("nope", "acc-1")
    missing_account = fixture.service.evaluate_and_charge("file-1", "nope")

    assert missing_file.allowed is False
    assert missing_file.error_code == DenialCode.FILE_NOT_FOUND
    assert missing_account.allowed is False
    assert missing_account.error_code == DenialCode.ACCOUNT_NOT_FOUND


def test_storage_failure_is_returned_as_payment_failure() -> None:
    store = InMemoryStore()
    fixture = build_fixture(store=store, ledger_repo=FailingAuthorCreditLedger(store))
    add_account(store, "payer-1", points_balance=100)
    add_account(store, "author-1")
    add_file(store, "file-1", author_id="author-1", required_points=100)

    outcome = fixture.service.evaluate_and_charge("file-1", "payer-1")

    assert outcome.allowed is False
    assert outcome.payment_failed is True
    assert outcome.error_code == DenialCode.PAYMENT_FAILED
    assert store.accounts["payer-1"].points_balance == 100
    assert store.files["file-1"].download_count == 0


def test_preview_never_charges() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=100)
    add_file(fixture.store, "file-1", required_points=60)

    outcome = fixture.service.preview("file-1", "acc-1")

    assert outcome.allowed is True
    assert outcome.cost_type == CostType.POINTS
    assert outcome.cost == 60
    assert outcome.charged is False
    assert fixture.store.accounts["acc-1"].points_balance == 100
    assert fixture.store.purchases == {}


def test_download_resource_charges_each_file_independently() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=150, legacy_download_credits=1)
    add_file(fixture.store, "file-a", required_points=100)
    add_file(fixture.store, "file-b", required_points=100)  # 잔액 부족
    add_file(fixture.store, "file-c")  # 레거시 횟수 사용
    add_file(fixture.store, "file-d", is_active=False)  # 제외

    result = fixture.service.download_resource("res-1", "acc-1")

    assert result.total_count == 3
    assert result.success_count == 2
    assert result.has_error is True
    by_file = {r.file_id: r for r in result.results}
    assert by_file["file-a"].cost_type == CostType.POINTS
    assert by_file["file-b"].error_code == DenialCode.INSUFFICIENT_POINTS
    assert by_file["file-c"].cost_type == CostType.DOWNLOAD_COUNT
    account = fixture.store.accounts["acc-1"]
    assert account.points_balance == 50
    assert account.legacy_download_credits == 0


def test_download_resource_counts_resource_once_per_batch() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", legacy_download_credits=3)
    for file_id in ("file-a", "file-b", "file-c"):
        add_file(fixture.store, file_id)

    result = fixture.service.download_resource("res-1", "acc-1")

    assert result.success_count == 3
    assert all(r.charged for r in result.results)
    assert fixture.store.resources["res-1"]["download_count"] == 1
    for file_id in ("file-a", "file-b", "file-c"):
        assert fixture.store.files[file_id].download_count == 1


def test_download_resource_without_charges_does_not_count_resource() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1")
    add_file(fixture.store, "file-a", required_points=100)

    result = fixture.service.download_resource("res-1", "acc-1")

    assert result.success_count == 0
    assert fixture.store.resources["res-1"]["download_count"] == 0


def test_download_resource_unknown_resource() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1")

    result = fixture.service.download_resource("missing", "acc-1")

    assert result.error_code == DenialCode.FILE_NOT_FOUND
    assert result.results == []
    assert result.has_error is True


def test_quota_status_applies_lazy_reset() -> None:
    fixture = build_fixture()
    add_account(
        fixture.store,
        "acc-1",
        daily_quota_used=4,
        daily_quota_limit=5,
        quota_last_reset_date=TODAY - timedelta(days=2),
    )

    quota = fixture.service.quota_status("acc-1")

    assert quota.used == 0
    assert quota.limit == 5
    assert quota.remaining == 5


def test_quota_status_unknown_account() -> None:
    fixture = build_fixture()

    with pytest.raises(AccountNotFound):
        fixture.service.quota_status("nope")


def test_points_history_is_newest_first_and_paginated() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=1000)
    for i in range(3):
        add_file(fixture.store, f"file-{i}", required_points=10 * (i + 1))
        fixture.service.evaluate_and_charge(f"file-{i}", "acc-1")

    items, total = fixture.service.points_history("acc-1", page=1, page_size=2)
    rest, _ = fixture.service.points_history("acc-1", page=2, page_size=2)
    fallback, _ = fixture.service.points_history("acc-1", page=0, page_size=1000)

    assert total == 4  # 충전 1 + 결제 3
    assert [e.delta for e in items] == [-30, -20]
    assert [e.delta for e in rest] == [-10, 1000]
    assert len(fallback) == 4


def _seed_purchase(
    fixture: DownloadFixture, account_id: str, file_id: str, day: date
) -> None:
    now = datetime.now(timezone.utc)
    fixture.store.purchases[(account_id, file_id, day)] = PurchaseRecord(
        account_id=account_id,
        file_id=file_id,
        resource_id="res-1",
        purchase_date=day,
        cost_type=CostType.POINTS,
        points_cost=10,
        created_at=now,
        updated_at=now,
    )


def test_download_stats_counts_purchases_by_period() -> None:
    fixture = build_fixture()
    wednesday = date(2024, 5, 22)
    fixture.clock.current = wednesday
    add_vip_level(fixture.store, 1, daily_download_limit=10)
    add_account(fixture.store, "acc-1", vip_level=1, quota_last_reset_date=wednesday)
    add_file(fixture.store, "file-today")
    fixture.service.evaluate_and_charge("file-today", "acc-1")

    _seed_purchase(fixture, "acc-1", "file-mon", date(2024, 5, 20))
    _seed_purchase(fixture, "acc-1", "file-sun", date(2024, 5, 19))
    _seed_purchase(fixture, "acc-1", "file-first", date(2024, 5, 1))
    _seed_purchase(fixture, "acc-1", "file-april", date(2024, 4, 30))
    _seed_purchase(fixture, "acc-2", "file-mon", date(2024, 5, 22))

    stats = fixture.service.download_stats("acc-1")

    assert stats.today == 1
    assert stats.this_week == 2  # 월요일 시작
    assert stats.this_month == 4
    assert stats.total == 5
    assert stats.quota.used == 1
    assert stats.quota.remaining == 9
    assert stats.reset_at == datetime(2024, 5, 23, tzinfo=ZoneInfo("Asia/Shanghai"))


def test_download_stats_counts_repeat_download_once() -> None:
    fixture = build_fixture()
    add_account(fixture.store, "acc-1", points_balance=100)
    add_file(fixture.store, "file-1", required_points=50)

    fixture.service.evaluate_and_charge("file-1", "acc-1")
    fixture.service.evaluate_and_charge("file-1", "acc-1")

    stats = fixture.service.download_stats("acc-1")

    assert stats.today == 1
    assert stats.total == 1


def test_download_stats_unknown_account() -> None:
    fixture = build_fixture()

    with pytest.raises(AccountNotFound):
        fixture.service.download_stats("nope")
