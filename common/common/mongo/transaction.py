"""MongoDB 멀티 도큐먼트 트랜잭션 헬퍼."""

from __future__ import annotations

from typing import Callable, TypeVar

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.read_concern import ReadConcern
from pymongo.read_preferences import ReadPreference
from pymongo.write_concern import WriteConcern

from .config import get_tx_max_commit_ms


T = TypeVar("T")


def run_in_transaction(
    client: MongoClient,
    callback: Callable[[ClientSession], T],
    *,
    max_commit_time_ms: int | None = None,
) -> T:
    """callback 을 하나의 트랜잭션 안에서 실행하고 그 반환값을 돌려준다.

    - ``ClientSession.with_transaction`` 을 사용하므로 TransientTransactionError
      (write conflict 등) 발생 시 callback 전체가 자동으로 재실행된다.
    - callback 에서 그 외 예외가 발생하면 트랜잭션은 abort 되고 예외는 그대로 전파된다.
    - callback 은 재실행될 수 있으므로 트랜잭션 밖의 부수효과를 가져서는 안 된다.
    """

    if max_commit_time_ms is None:
        max_commit_time_ms = get_tx_max_commit_ms()

    with client.start_session() as session:
        return session.with_transaction(
            callback,
            read_concern=ReadConcern("snapshot"),
            write_concern=WriteConcern("majority"),
            read_preference=ReadPreference.PRIMARY,
            max_commit_time_ms=max_commit_time_ms,
        )
