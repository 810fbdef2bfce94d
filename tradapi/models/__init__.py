from .base import Base, BaseModel
from .points import PointsLedgerEvent
from .catalog import (
    AdSlot,
    Manufacturer,
    ManufacturerKeyword,
    MarketingPlan,
    Product,
    ProductReport,
    UserFollow,
    WishlistItem,
)
from .referral import LinkClick, Shortlink
from .platform import PlatformSetting

__all__ = [
    "Base",
    "BaseModel",
    "PointsLedgerEvent",
    "AdSlot",
    "Manufacturer",
    "ManufacturerKeyword",
    "MarketingPlan",
    "Product",
    "ProductReport",
    "UserFollow",
    "WishlistItem",
    "LinkClick",
    "Shortlink",
    "PlatformSetting",
]
