from __future__ import annotations

import time
import uuid
from dataclasses import asdict, is_dataclass
from typing import Any, Mapping

from .core import Event


def new_json_event(
    payload: Mapping[str, Any],
    *,
    event_id: str | None = None,
) -> Event:
    """payload dict 를 envelope 로 감싼다. event_id 가 없으면 나노초 타임스탬프를 쓴다."""

    if not event_id:
        event_id = str(time.time_ns())
    return Event(id=event_id, payload=dict(payload))


def wrap_domain_event(event: Any) -> Event:
    """id 필드를 가진 이벤트 dataclass 를 envelope 로 감싼다.

    envelope id 는 도메인 이벤트 id 와 같게 맞춰서, 컨슈머가 어느 쪽으로도 중복 제거할 수 있게 한다.
    """

    if not is_dataclass(event) or isinstance(event, type):
        raise TypeError(f"dataclass instance required, got {type(event)!r}")

    payload = asdict(event)
    event_id = str(payload.get("id") or uuid.uuid4())
    return new_json_event(payload, event_id=event_id)
