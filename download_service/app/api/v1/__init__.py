from fastapi import APIRouter

from .downloads import router as downloads_router

api_router = APIRouter()
api_router.include_router(
    downloads_router
)  # prefix는 router 파일 내부에서 정의되어 있음 (/downloads)
