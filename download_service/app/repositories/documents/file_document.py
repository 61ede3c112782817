from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.mongo.types import PyObjectId

from ...models.file_policy import FilePolicy


class ResourceFileDocument(BaseModel):
    """MongoDB resource_files 컬렉션 도큐먼트 모델.

    리소스 관리 서비스가 소유하는 컬렉션이라 created_at 등의 존재를 가정하지 않는다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    file_id: str
    resource_id: str
    author_id: Optional[str] = None
    name: str = ""
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    required_points: int = 0
    required_vip_level: int = 0
    download_count: int = 0
    sort_order: int = 0

    def to_domain(self, resource_author_id: Optional[str] = None) -> FilePolicy:
        return FilePolicy(
            file_id=self.file_id,
            resource_id=self.resource_id,
            # 파일에 작성자가 없으면 소유 리소스의 작성자를 따른다.
            author_id=self.author_id or resource_author_id,
            name=self.name,
            is_active=self.is_active,
            deleted_at=self.deleted_at,
            required_points=self.required_points,
            required_vip_level=self.required_vip_level,
            download_count=self.download_count,
        )
