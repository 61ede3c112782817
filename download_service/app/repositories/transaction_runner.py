from __future__ import annotations

from typing import Callable, TypeVar

from pymongo import MongoClient

from common.mongo.transaction import run_in_transaction

from .interfaces import Session, TransactionRunnerInterface


T = TypeVar("T")


class MongoTransactionRunner(TransactionRunnerInterface):
    """MongoDB 멀티 도큐먼트 트랜잭션으로 callback 을 실행한다."""

    def __init__(self, client: MongoClient, max_commit_time_ms: int | None = None) -> None:
        self._client = client
        self._max_commit_time_ms = max_commit_time_ms

    def run(self, callback: Callable[[Session], T]) -> T:
        return run_in_transaction(
            self._client, callback, max_commit_time_ms=self._max_commit_time_ms
        )
