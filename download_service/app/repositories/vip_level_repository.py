from __future__ import annotations

from pymongo.database import Database

from .documents.vip_level_document import VipLevelDocument
from .interfaces import VipLevelRepositoryInterface
from ..models.vip_level import VipLevel


class VipLevelRepository(VipLevelRepositoryInterface):
    """vip_levels 컬렉션 읽기 전용 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["vip_levels"]

    def get(self, level: int) -> VipLevel | None:
        doc = self._col.find_one({"level": level})
        if doc is None:
            return None
        return VipLevelDocument.model_validate(doc).to_domain()
