from __future__ import annotations

from typing import Optional

from pymongo import ASCENDING
from pymongo.database import Database

from .documents.file_document import ResourceFileDocument
from .interfaces import FilePolicyRepositoryInterface
from ..models.file_policy import FilePolicy


class FilePolicyRepository(FilePolicyRepositoryInterface):
    """resource_files / resources 컬렉션 읽기 레이어.

    파일 작성자가 비어 있으면 소유 리소스의 author_id 를 사용한다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["resource_files"]
        self._resources = database["resources"]

    def _resource_author(self, resource_id: str) -> Optional[str]:
        doc = self._resources.find_one(
            {"resource_id": resource_id}, projection={"author_id": 1}
        )
        if doc is None:
            return None
        return doc.get("author_id")

    def get(self, file_id: str) -> FilePolicy | None:
        doc = self._col.find_one({"file_id": file_id})
        if doc is None:
            return None
        file_doc = ResourceFileDocument.model_validate(doc)
        author_id = None
        if not file_doc.author_id:
            author_id = self._resource_author(file_doc.resource_id)
        return file_doc.to_domain(author_id)

    def list_active_by_resource(self, resource_id: str) -> list[FilePolicy]:
        cursor = self._col.find(
            {"resource_id": resource_id, "is_active": True, "deleted_at": None},
            sort=[("sort_order", ASCENDING)],
        )
        author_id = self._resource_author(resource_id)
        return [
            ResourceFileDocument.model_validate(doc).to_domain(author_id)
            for doc in cursor
        ]

    def resource_exists(self, resource_id: str) -> bool:
        return self._resources.count_documents({"resource_id": resource_id}, limit=1) > 0

    def increment_file_download_count(self, file_id: str) -> None:
        self._col.update_one({"file_id": file_id}, {"$inc": {"download_count": 1}})

    def increment_resource_download_count(self, resource_id: str) -> None:
        self._resources.update_one(
            {"resource_id": resource_id}, {"$inc": {"download_count": 1}}
        )
