# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .points_repository import PointsRepository
from .product_repository import ProductRepository
from .manufacturer_repository import ManufacturerRepository
from .signals_repository import SignalsRepository
from .platform_repository import PlatformSettingsRepository
from .shortlink_repository import LinkClickRepository, ShortlinkRepository

__all__ = [
    "BaseRepository",
    "PointsRepository",
    "ProductRepository",
    "ManufacturerRepository",
    "SignalsRepository",
    "PlatformSettingsRepository",
    "ShortlinkRepository",
    "LinkClickRepository",
]
