from __future__ import annotations

import logging
import threading
from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import ConfigurationError, PyMongoError

from .config import get_mongo_db_name, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def _connect(uri: str) -> MongoClient:
    client = MongoClient(uri)
    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        client.close()
        raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc
    return client


def _select_database(client: MongoClient, db_name: str | None) -> Database:
    """MONGO_DB_NAME 이 있으면 그 DB, 없으면 URI 에 포함된 기본 DB 를 쓴다."""

    if db_name:
        return client[db_name]
    try:
        return client.get_default_database()
    except ConfigurationError as exc:
        raise RuntimeError(
            "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
        ) from exc


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    최초 호출 시 ping 으로 연결을 검증하고 다운로드/결제 컬렉션 인덱스를 만든다.
    실패하면 클라이언트를 닫고 RuntimeError 또는 원래 예외를 그대로 올린다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        client = _connect(get_mongo_uri())
        try:
            db = _select_database(client, get_mongo_db_name())
            ensure_indexes(db)
        except (RuntimeError, PyMongoError):
            logger.exception("MongoDB initialization failed")
            client.close()
            raise

        _client, _db = client, db
        logger.info("MongoDB connected and indexes ensured (db=%s)", db.name)
        return _client


def close_client() -> None:
    """프로세스 종료 시 전역 클라이언트를 닫는다."""

    global _client, _db

    with _lock:
        if _client is not None:
            _client.close()
        _client, _db = None, None


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert _db is not None  # get_client 실패 시 이미 예외가 발생했어야 한다.
    return _db


def ensure_indexes(db: Database) -> None:
    """다운로드 권한/결제 처리에 필요한 인덱스를 생성한다.

    create_index 는 같은 정의로 여러 번 호출해도 안전하다(idempotent).
    트랜잭션 안에서는 컬렉션/인덱스를 만들 수 없으므로 기동 시점에 미리 만들어 둔다.
    """

    db["accounts"].create_index(
        [("account_id", ASCENDING)],
        name="uniq_account_id",
        unique=True,
    )

    files = db["resource_files"]
    files.create_index(
        [("file_id", ASCENDING)],
        name="uniq_file_id",
        unique=True,
    )
    files.create_index(
        [("resource_id", ASCENDING), ("sort_order", ASCENDING)],
        name="idx_resource_sort_order",
    )

    db["resources"].create_index(
        [("resource_id", ASCENDING)],
        name="uniq_resource_id",
        unique=True,
    )

    db["vip_levels"].create_index(
        [("level", ASCENDING)],
        name="uniq_level",
        unique=True,
    )

    # (account, file, day) 당 1건: 동시 upsert 가 중복 행을 만들지 못하게 한다.
    purchases = db["daily_purchases"]
    purchases.create_index(
        [
            ("account_id", ASCENDING),
            ("file_id", ASCENDING),
            ("purchase_date", ASCENDING),
        ],
        name="uniq_account_file_date",
        unique=True,
    )
    purchases.create_index(
        [("account_id", ASCENDING), ("purchase_date", ASCENDING)],
        name="idx_account_date",
    )

    db["points_ledger"].create_index(
        [("account_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_account_created_at_desc",
    )
