from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_serializers import PlainSerializer
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def ensure_utc_datetime(value: datetime) -> datetime:
    """datetime 을 UTC 로 정규화한다. naive 값은 UTC 로 간주한다."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_date(value: Any) -> Any:
    """Mongo 에 "YYYY-MM-DD" 문자열로 저장된 달력 날짜를 date 로 변환한다.

    BSON 에는 시간 없는 날짜 타입이 없어서 영업일(calendar day)은 문자열로 저장한다.
    datetime 이 들어오면 날짜 부분만 사용한다.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def to_iso_date(value: date) -> str:
    return value.isoformat()


def to_object_id(value: Any) -> ObjectId:
    """str, ObjectId 등을 MongoDB ObjectId 로 변환한다."""

    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise TypeError("ObjectId cannot be None")
    return ObjectId(str(value))


def from_object_id(value: Optional[ObjectId]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


PyObjectId = Annotated[ObjectId, BeforeValidator(to_object_id)]
MongoDateTime = Annotated[datetime, BeforeValidator(ensure_utc_datetime)]
MongoDate = Annotated[
    date,
    BeforeValidator(parse_iso_date),
    PlainSerializer(to_iso_date, return_type=str),
]


class BaseDocument(BaseModel):
    """MongoDB 도큐먼트 공통 베이스 모델.

    - ObjectId 같은 임의 타입을 허용한다.
    - ``_id`` alias 로 직렬화/역직렬화한다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: MongoDateTime
    updated_at: MongoDateTime

    def to_mongo_record(self) -> dict[str, Any]:
        """insert 에 사용할 dict. ``_id=None`` 은 제거해 Mongo 가 ObjectId 를 생성하게 한다."""

        return self.model_dump(by_alias=True, exclude_none=True)

