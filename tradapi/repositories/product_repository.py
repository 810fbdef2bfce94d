from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from tradapi.models.catalog import Manufacturer, Product
from tradapi.repositories.base import BaseRepository
from tradapi.schemas.catalog import ManufacturerRecord, ProductRecord
from tradapi.utils.rating_math import rolling_average


class ProductRepository(BaseRepository[Product, ProductRecord]):
    def __init__(self, db: Session):
        super().__init__(Product, ProductRecord, db)

    def _find_product(self, manufacturer_id: str, product_id: str) -> Optional[Product]:
        # populate_existing so a retry after rollback sees the committed row
        return (
            self.db.query(Product)
            .populate_existing()
            .filter(Product.id == product_id, Product.manufacturer_id == manufacturer_id)
            .first()
        )

    def apply_review(
        self, manufacturer_id: str, product_id: str, rating: int
    ) -> Optional[ProductRecord]:
        """
        Fold one rating into the product's running average and flush.

        The flush issues UPDATE ... WHERE version = <read version>; a concurrent
        writer makes it raise StaleDataError. Commit is left to the caller.

        Returns:
            ProductRecord with the new values, or None if the product does not exist
        """
        self._ensure_clean_session()
        product = self._find_product(manufacturer_id, product_id)
        if product is None:
            return None

        new_count, new_avg = rolling_average(product.rating, product.review_count, rating)
        product.review_count = new_count
        product.rating = new_avg
        self.db.flush()
        return self._to_schema(product)

    def list_catalog(
        self,
        category: Optional[str] = None,
        product_ids: Optional[Sequence[str]] = None,
    ) -> List[Tuple[ProductRecord, ManufacturerRecord]]:
        """
        Published products joined with their manufacturer, newest first.

        Only the cheap indexed filters are pushed into SQL; ranking filters run
        in the discovery service.
        """
        self._ensure_clean_session()
        query = (
            self.db.query(Product, Manufacturer)
            .join(Manufacturer, Product.manufacturer_id == Manufacturer.id)
            .filter(Product.status == "published")
        )
        if category and category != "all":
            query = query.filter(Product.category == category)
        if product_ids is not None:
            if not product_ids:
                return []
            query = query.filter(Product.id.in_(list(set(product_ids))))

        rows = query.order_by(Product.created_at.desc(), Product.id).all()
        return [
            (ProductRecord.model_validate(product), ManufacturerRecord.model_validate(manufacturer))
            for product, manufacturer in rows
        ]

    def get_rating_totals(self, manufacturer_id: str) -> List[Tuple[float, int]]:
        """(rating, review_count) of every product the manufacturer owns"""
        self._ensure_clean_session()
        rows = (
            self.db.query(Product.rating, Product.review_count)
            .filter(Product.manufacturer_id == manufacturer_id)
            .all()
        )
        return [(row.rating or 0.0, row.review_count or 0) for row in rows]
