from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.eventbus.kafka import close_kafka_event_bus
from common.logger import setup_logger
from common.mongo.client import close_client
from common.middleware.request_trace import RequestTraceMiddleware

from .api.health import router as health_router
from .api.v1 import api_router
from .config import get_app_config


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    # 잘못된 설정은 첫 요청이 아니라 기동 시점에 드러나게 한다.
    get_app_config()
    yield
    close_kafka_event_bus()
    close_client()


def create_app() -> FastAPI:
    setup_logger("download-service")
    app = FastAPI(
        title="Resource Hub Download Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("DOWNLOAD_SERVICE_PORT", "8004"))
    uvicorn.run(
        "download_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
