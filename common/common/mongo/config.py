from __future__ import annotations

import os


MONGO_URI_ENV = "MONGO_URI"
MONGO_DB_NAME_ENV = "MONGO_DB_NAME"
MONGO_TX_MAX_COMMIT_MS_ENV = "MONGO_TX_MAX_COMMIT_MS"

DEFAULT_TX_MAX_COMMIT_MS = 5000


def get_mongo_uri() -> str:
    """MongoDB 연결 URI 를 반환한다.

    환경 변수에서만 읽으며, 없으면 기동 시점에 바로 실패하도록 RuntimeError 를 발생시킨다.
    트랜잭션을 사용하므로 URI 는 replica set(또는 mongos)을 가리켜야 한다.
    """

    value = os.getenv(MONGO_URI_ENV)
    if not value:
        raise RuntimeError(
            f"{MONGO_URI_ENV} environment variable is required for MongoDB",
        )
    return value


def get_mongo_db_name() -> str | None:
    """사용할 데이터베이스 이름. 비어 있으면 None (URI 기본 DB 사용)."""

    value = os.getenv(MONGO_DB_NAME_ENV, "").strip()
    return value or None


def get_tx_max_commit_ms() -> int:
    """트랜잭션 커밋 최대 대기 시간(ms).

    요청 타임아웃보다 길게 커밋을 기다리지 않도록 상한을 둔다.
    """

    raw = os.getenv(MONGO_TX_MAX_COMMIT_MS_ENV, "").strip()
    if not raw:
        return DEFAULT_TX_MAX_COMMIT_MS
    try:
        value = int(raw)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"{MONGO_TX_MAX_COMMIT_MS_ENV} must be an integer value, got: {raw!r}"
        ) from exc
    if value <= 0:
        return DEFAULT_TX_MAX_COMMIT_MS
    return value
