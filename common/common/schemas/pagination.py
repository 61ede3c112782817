"""페이지네이션 공통 스키마."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginatedResponse(BaseModel, Generic[T]):
    """목록 응답 공통 envelope."""

    items: list[T]
    total: int
    page: int
    page_size: int


def normalize_page(page: int, page_size: int) -> tuple[int, int]:
    """page 는 1 이상, page_size 는 1~MAX_PAGE_SIZE 범위로 보정한다."""

    if page <= 0:
        page = 1
    if page_size <= 0 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return page, page_size
