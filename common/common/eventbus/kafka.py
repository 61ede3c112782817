from __future__ import annotations

import logging
import threading
from typing import Optional

from confluent_kafka import Producer

from .config import get_brokers, get_message_max_bytes
from .core import Event

logger = logging.getLogger(__name__)


class KafkaEventBus:
    """confluent-kafka Producer 기반 이벤트 발행기.

    다운로드 서비스는 이벤트를 발행만 하고, 소비는 알림/감사 로그 싱크 쪽에서 한다.
    """

    def __init__(self, brokers: str, *, message_max_bytes: int | None = None) -> None:
        conf: dict[str, object] = {"bootstrap.servers": brokers}
        if message_max_bytes is not None:
            conf["message.max.bytes"] = message_max_bytes
        self._producer = Producer(conf)
        self._brokers = brokers

    def close(self) -> None:
        self._producer.flush()

    def publish(self, topic: str, event: Event) -> None:
        def _delivery_callback(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error("failed to deliver message to %s: %s", msg.topic(), err)

        self._producer.produce(
            topic=topic,
            value=event.encode(),
            key=event.key(),
            callback=_delivery_callback,
        )
        # 전달 콜백만 처리하고 블로킹하지 않는다.
        self._producer.poll(0)


_bus: Optional[KafkaEventBus] = None
_bus_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus:
    """프로세스 전역 KafkaEventBus 싱글톤을 반환한다."""

    global _bus

    if _bus is not None:
        return _bus

    with _bus_lock:
        if _bus is None:
            _bus = KafkaEventBus(
                get_brokers(),
                message_max_bytes=get_message_max_bytes(),
            )
    return _bus


def close_kafka_event_bus() -> None:
    global _bus

    with _bus_lock:
        if _bus is not None:
            _bus.close()
            _bus = None
