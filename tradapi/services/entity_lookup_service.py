import logging
from typing import Optional

from tradapi.config import Settings
from tradapi.database.connection import Database
from tradapi.repositories.manufacturer_repository import ManufacturerRepository
from tradapi.schemas.catalog import ManufacturerRecord
from tradapi.schemas.discovery import ModerationInfo, ProductWithRanking, SearchOptions
from tradapi.services.discovery_service import DiscoveryService

logger = logging.getLogger(__name__)

ENTITY_PRODUCT = "product"
ENTITY_MANUFACTURER = "manufacturer"


def manufacturer_to_entity(seller: ManufacturerRecord) -> ProductWithRanking:
    """Render a manufacturer in the product-shaped lookup result"""
    return ProductWithRanking(
        id=seller.id,
        name=seller.shop_name or "Unnamed Shop",
        image_url=seller.logo_url,
        trad_rank=seller.rating or 0,
        manufacturer_id=seller.id,
        manufacturer_name=seller.shop_name,
        manufacturer_slug=seller.slug,
        manufacturer_location=seller.location,
        slug=seller.slug,
        shop_id=seller.shop_id,
        rating=seller.rating,
        review_count=seller.review_count,
        is_verified=seller.is_verified,
        moderation=ModerationInfo(is_demoted=seller.is_demoted, seller_demoted=seller.is_demoted),
    )


class EntityLookupService:
    """
    Resolve a free-text query to a single product or manufacturer.

    Used by moderation tools: an unknown entity, a disabled store and a failed
    read all come back as None.
    """

    def __init__(self, database: Database, discovery: DiscoveryService, settings: Settings):
        self.database = database
        self.discovery = discovery
        self.settings = settings

    def lookup_entity(self, entity_type: str, query: str) -> Optional[ProductWithRanking]:
        if not query or not query.strip():
            return None
        if not self.database.available:
            logger.warning("Entity lookup requested while the store is disabled")
            return None

        try:
            if entity_type == ENTITY_PRODUCT:
                return self._lookup_product(query)
            if entity_type == ENTITY_MANUFACTURER:
                return self._lookup_manufacturer(query)
        except Exception:
            logger.exception(f"Error looking up {entity_type} '{query}'")
            return None

        logger.info(f"Unknown entity type for lookup: {entity_type}")
        return None

    def _lookup_product(self, query: str) -> Optional[ProductWithRanking]:
        lower = query.lower()
        result = self.discovery.get_ranked_products(
            SearchOptions(search_query=lower, limit=self.settings.LOOKUP_SEARCH_LIMIT)
        )
        if not isinstance(result.products, list):
            return None

        for product in result.products:
            if product.id.lower() == lower or lower in (product.name or "").lower():
                return product
        return None

    def _lookup_manufacturer(self, query: str) -> Optional[ProductWithRanking]:
        lower = query.lower()
        with self.database.session() as db:
            repo = ManufacturerRepository(db)
            seller = repo.find_by_identifier(lower, query)
            if seller is None:
                seller = repo.find_by_keyword(lower)

        if seller is None:
            return None
        return manufacturer_to_entity(seller)
