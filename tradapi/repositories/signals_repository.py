"""
Ranking signals repository

Everything the discovery engine reads besides the catalog itself: active
sponsorship plans, pinned ad slots, unresolved moderation reports and the
requesting user's follows and wishlist.
"""

from datetime import datetime
from typing import Dict, List, Sequence, Set

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from tradapi.models.catalog import (
    AdSlot,
    MarketingPlan,
    ProductReport,
    UserFollow,
    WishlistItem,
)
from tradapi.schemas.catalog import AdSlotRecord


class SignalsRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_active_ad_slots(self, now: datetime) -> List[AdSlotRecord]:
        rows = (
            self.db.query(AdSlot)
            .filter(or_(AdSlot.expires_at.is_(None), AdSlot.expires_at > now))
            .all()
        )
        return [AdSlotRecord.model_validate(row) for row in rows]

    def get_marketing_plan_ids(self) -> Set[str]:
        return {row.id for row in self.db.query(MarketingPlan.id).all()}

    def count_unresolved_reports(self, product_ids: Sequence[str]) -> Dict[str, int]:
        if not product_ids:
            return {}
        rows = (
            self.db.query(ProductReport.product_id, func.count(ProductReport.id))
            .filter(
                ProductReport.product_id.in_(list(product_ids)),
                ProductReport.status != "resolved",
            )
            .group_by(ProductReport.product_id)
            .all()
        )
        return {product_id: int(count) for product_id, count in rows}

    def get_followed_manufacturer_ids(self, user_id: str) -> Set[str]:
        rows = self.db.query(UserFollow.manufacturer_id).filter(UserFollow.user_id == user_id).all()
        return {row.manufacturer_id for row in rows}

    def get_wishlisted_product_ids(self, user_id: str) -> Set[str]:
        rows = self.db.query(WishlistItem.product_id).filter(WishlistItem.user_id == user_id).all()
        return {row.product_id for row in rows}
