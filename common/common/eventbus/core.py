from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any


# 컨슈머 쪽 재시도 스케줄(초). 발행 측에서는 max_retry 상한으로만 쓴다.
RetryDelays: list[float] = [
    60.0,
    300.0,
    600.0,
    1800.0,
    3600.0,
]


@dataclass(slots=True)
class Event:
    """Kafka 로 발행하는 이벤트 envelope.

    payload 는 JSON 직렬화 가능한 dict 이며, 바이트 인코딩은 encode() 가 담당한다.
    """

    id: str
    payload: Any
    retry: int = 0
    max_retry: int = 0
    last_error: str | None = None

    def __post_init__(self) -> None:
        if self.max_retry <= 0 or self.max_retry > len(RetryDelays):
            self.max_retry = len(RetryDelays)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def encode(self) -> bytes:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str).encode(
            "utf-8"
        )

    def key(self) -> bytes:
        """파티션 키. 같은 이벤트 id 는 같은 파티션으로 간다."""
        return self.id.encode("utf-8")


@dataclass(frozen=True, slots=True)
class Topic:
    base: str

    def dlq(self) -> str:
        return f"{self.base}.dlq"
