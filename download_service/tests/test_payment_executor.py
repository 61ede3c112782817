from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from download_service.app.exceptions import (
    InsufficientBalance,
    PaymentFailure,
    QuotaExhausted,
)
from download_service.app.models.cost_plan import (
    CostType,
    DailyLimit,
    DownloadCount,
    DownloadedToday,
    Free,
    Points,
    VipDownloadCount,
)
from download_service.app.models.entitlement import DenialCode
from download_service.tests.fakes import (
    TODAY,
    FailingAuthorCreditLedger,
    InMemoryStore,
    add_account,
    add_file,
    add_vip_level,
    build_engine,
    build_fixture,
)


def test_no_charge_plans_are_noop() -> None:
    fixture = build_fixture()
    account = add_account(fixture.store, "acc-1")
    file = add_file(fixture.store, "file-1")
    _, executor = build_engine(fixture)

    for plan in (DownloadedToday(), Free()):
        receipt = executor.execute(file, account, plan, TODAY)
        assert receipt.plan == plan

    assert fixture.tx_runner.runs == 0
    assert fixture.store.purchases == {}


def test_quota_plan_consumes_quota_and_records_purchase() -> None:
    fixture = build_fixture()
    add_vip_level(fixture.store, 1, daily_download_limit=10)
    account = add_account(fixture.store, "acc-1", vip_level=1, daily_quota_used=9)
    file = add_file(fixture.store, "file-1")
    _, executor = build_engine(fixture)

    receipt = executor.execute(file, account, DailyLimit(), TODAY)

    assert receipt.quota is not None
    assert receipt.quota.used == 10
    assert receipt.quota.remaining == 0
    assert fixture.store.accounts["acc-1"].daily_quota_used == 10
    record = fixture.store.purchases[("acc-1", "file-1", TODAY)]
    assert record.cost_type == CostType.DAILY_LIMIT
    assert record.quota_cost == 1
    assert record.points_cost == 0


def test_download_count_plan_decrements_legacy_credits() -> None:
    fixture = build_fixture()
    account = add_account(fixture.store, "acc-1", legacy_download_credits=2)
    file = add_file(fixture.store, "file-1")
    _, executor = build_engine(fixture)

    receipt = executor.execute(file, account, DownloadCount(), TODAY)

    assert receipt.legacy_download_credits == 1
    assert fixture.store.accounts["acc-1"].legacy_download_credits == 1
    record = fixture.store.purchases[("acc-1", "file-1", TODAY)]
    assert record.cost_type == CostType.DOWNLOAD_COUNT


def test_download_count_plan_fails_when_credits_ran_out() -> None:
    fixture = build_fixture()
    account = add_account(fixture.store, "acc-1", legacy_download_credits=1)
    file = add_file(fixture.store, "file-1")
    _, executor = build_engine(fixture)
    # 평가 이후 다른 요청이 마지막 횟수를 썼다.
    fixture.store.accounts["acc-1"] = account.model_copy(
        update={"legacy_download_credits": 0}
    )

    with pytest.raises(InsufficientBalance) as exc_info:
        executor.execute(file, account, DownloadCount(), TODAY)

    assert exc_info.value.code == DenialCode.INSUFFICIENT_CREDITS
    assert fixture.store.accounts["acc-1"].legacy_download_credits == 0
    assert fixture.store.purchases == {}


def test_points_plan_moves_points_and_appends_ledger() -> None:
    fixture = build_fixture(fee_rate=0.10)
    account = add_account(fixture.store, "payer-1", points_balance=150)
    add_account(fixture.store, "author-1")
    file = add_file(fixture.store, "file-1", author_id="author-1", required_points=100)
    _, executor = build_engine(fixture)

    receipt = executor.execute(file, account, Points(cost=100, original=100), TODAY)

    assert receipt.points_charged == 100
    assert receipt.author_credit == 90
    assert fixture.store.accounts["payer-1"].points_balance == 50
    assert fixture.store.accounts["author-1"].points_balance == 90
    payer_entry, author_entry = fixture.store.ledger[-2:]
    assert payer_entry.account_id == "payer-1"
    assert payer_entry.delta == -100
    assert payer_entry.reason == "download file: file-1.zip"
    assert author_entry.account_id == "author-1"
    assert author_entry.delta == 90
    record = fixture.store.purchases[("payer-1", "file-1", TODAY)]
    assert record.cost_type == CostType.POINTS
    assert record.points_cost == 100
    assert record.quota_cost == 0


def test_points_plan_fails_when_balance_changed_after_evaluation() -> None:
    fixture = build_fixture()
    account = add_account(fixture.store, "payer-1", points_balance=100)
    file = add_file(fixture.store, "file-1", required_points=100)
    _, executor = build_engine(fixture)
    fixture.store.accounts["payer-1"] = account.model_copy(update={"points_balance": 40})

    with pytest.raises(InsufficientBalance) as exc_info:
        executor.execute(file, account, Points(cost=100, original=100), TODAY)

    assert exc_info.value.code == DenialCode.INSUFFICIENT_POINTS
    assert fixture.store.accounts["payer-1"].points_balance == 40


def test_storage_failure_rolls_back_every_step() -> None:
    store = InMemoryStore()
    fixture = build_fixture(store=store, ledger_repo=FailingAuthorCreditLedger(store))
    account = add_account(store, "payer-1", points_balance=100)
    add_account(store, "author-1", points_balance=5)
    file = add_file(store, "file-1", author_id="author-1", required_points=100)
    ledger_before = list(store.ledger)
    _, executor = build_engine(fixture)

    with pytest.raises(PaymentFailure) as exc_info:
        executor.execute(file, account, Points(cost=100, original=100), TODAY)

    assert exc_info.value.code == DenialCode.PAYMENT_FAILED
    assert fixture.tx_runner.aborts == 1
    assert store.accounts["payer-1"].points_balance == 100
    assert store.accounts["author-1"].points_balance == 5
    assert store.ledger == ledger_before
    assert store.purchases == {}


def test_second_execution_for_same_file_and_day_is_not_charged() -> None:
    fixture = build_fixture()
    account = add_account(fixture.store, "payer-1", points_balance=300)
    file = add_file(fixture.store, "file-1", required_points=100)
    _, executor = build_engine(fixture)
    plan = Points(cost=100, original=100)

    executor.execute(file, account, plan, TODAY)
    # 두 요청이 모두 평가를 통과한 뒤 차례로 실행된 경우
    receipt = executor.execute(file, account, plan, TODAY)

    assert isinstance(receipt.plan, DownloadedToday)
    assert fixture.store.accounts["payer-1"].points_balance == 200
    assert len(fixture.store.purchases) == 1


def test_concurrent_executions_with_one_quota_unit_left_charge_exactly_once() -> None:
    fixture = build_fixture()
    add_vip_level(fixture.store, 1, daily_download_limit=10)
    account = add_account(fixture.store, "acc-1", vip_level=1, daily_quota_used=9)
    files = [
        add_file(fixture.store, f"file-{i}", required_vip_level=1) for i in range(8)
    ]
    evaluator, executor = build_engine(fixture)

    # 모두 평가를 먼저 통과시킨 뒤 (check-then-act 경합 재현) 동시에 실행한다.
    verdicts = [evaluator.evaluate(f, account, TODAY) for f in files]
    assert all(v.allowed for v in verdicts)
    assert all(isinstance(v.plan, VipDownloadCount) for v in verdicts)

    def _run(index: int) -> str:
        try:
            executor.execute(files[index], account, verdicts[index].plan, TODAY)
        except QuotaExhausted:
            return "exhausted"
        return "charged"

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_run, range(len(files))))

    assert results.count("charged") == 1
    assert results.count("exhausted") == len(files) - 1
    assert fixture.store.accounts["acc-1"].daily_quota_used == 10
    assert len(fixture.store.purchases) == 1
