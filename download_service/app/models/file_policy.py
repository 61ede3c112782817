"""파일 단위 다운로드 가격 정책 모델."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FilePolicy(BaseModel):
    """리소스에 속한 개별 파일과 그 가격 정책.

    - required_points == 0 이면 포인트 요구 없음
    - required_vip_level == 0 이면 VIP 요구 없음
    - 한 번의 권한 평가 동안에는 변하지 않는 값으로 취급한다.

    음수 값은 리소스 관리 쪽 설정 오류이며 평가기에서 fail closed 로 처리하므로
    여기서는 범위 검증을 하지 않는다.
    """

    file_id: str
    resource_id: str
    author_id: str | None = None
    name: str
    is_active: bool = True
    deleted_at: datetime | None = None
    required_points: int = 0
    required_vip_level: int = 0
    download_count: int = 0

    @property
    def is_available(self) -> bool:
        return self.is_active and self.deleted_at is None
