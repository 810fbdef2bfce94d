from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from tradapi.models.catalog import Manufacturer, ManufacturerKeyword
from tradapi.repositories.base import BaseRepository
from tradapi.schemas.catalog import ManufacturerRecord


class ManufacturerRepository(BaseRepository[Manufacturer, ManufacturerRecord]):
    def __init__(self, db: Session):
        super().__init__(Manufacturer, ManufacturerRecord, db)

    def find_by_identifier(self, lower_query: str, raw_query: str) -> Optional[ManufacturerRecord]:
        """
        Indexed match on any public handle.

        shop_id and slug are stored lowercase and matched against the lowered
        query; id and tradinta_id are case-sensitive and matched exactly.
        """
        self._ensure_clean_session()
        row = (
            self.db.query(Manufacturer)
            .filter(
                or_(
                    Manufacturer.shop_id == lower_query,
                    Manufacturer.slug == lower_query,
                    Manufacturer.id == raw_query,
                    Manufacturer.tradinta_id == raw_query,
                )
            )
            .order_by(Manufacturer.id)
            .first()
        )
        return self._to_schema(row)

    def find_by_keyword(self, keyword: str) -> Optional[ManufacturerRecord]:
        self._ensure_clean_session()
        row = (
            self.db.query(Manufacturer)
            .join(ManufacturerKeyword, ManufacturerKeyword.manufacturer_id == Manufacturer.id)
            .filter(ManufacturerKeyword.keyword == keyword)
            .order_by(Manufacturer.id)
            .first()
        )
        return self._to_schema(row)

    def list_ids(self, after_id: Optional[str] = None, limit: int = 100) -> List[str]:
        self._ensure_clean_session()
        query = self.db.query(Manufacturer.id)
        if after_id is not None:
            query = query.filter(Manufacturer.id > after_id)
        return [row.id for row in query.order_by(Manufacturer.id).limit(limit).all()]

    def set_rating(self, manufacturer_id: str, rating: float, review_count: int) -> bool:
        """Overwrite the aggregate rating; flushed, not committed"""
        self._ensure_clean_session()
        updated = (
            self.db.query(Manufacturer)
            .filter(Manufacturer.id == manufacturer_id)
            .update(
                {Manufacturer.rating: rating, Manufacturer.review_count: review_count},
                synchronize_session=False,
            )
        )
        return bool(updated)
