"""
Catalog models

Manufacturers (sellers), their products, and the signals the discovery engine
reads when ranking: sponsorship plans, pinned ad slots, moderation reports and
per-user follows/wishlists.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import PrimaryKeyConstraint

from tradapi.models.base import BaseModel


class Manufacturer(BaseModel):
    __tablename__ = "manufacturers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_name: Mapped[Optional[str]] = mapped_column(Text)

    # Public handles; shop_id and slug are stored lowercase
    shop_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    slug: Mapped[Optional[str]] = mapped_column(String(128), index=True)
    tradinta_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)

    logo_url: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(Text)
    lead_time: Mapped[Optional[str]] = mapped_column(String(64))
    moq: Mapped[Optional[int]] = mapped_column(Integer)

    # Maintained by the batch recomputation job, never by the review path
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    verification_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="Unsubmitted"
    )
    is_suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_demoted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    marketing_plan_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("marketing_plans.id")
    )
    plan_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    keywords: Mapped[List["ManufacturerKeyword"]] = relationship(
        back_populates="manufacturer", cascade="all, delete-orphan"
    )


class ManufacturerKeyword(BaseModel):
    """Precomputed lowercase search keywords, one row per keyword"""

    __tablename__ = "manufacturer_keywords"
    __table_args__ = (
        PrimaryKeyConstraint("manufacturer_id", "keyword", name="pk_manufacturer_keywords"),
    )

    manufacturer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False
    )
    keyword: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    manufacturer: Mapped["Manufacturer"] = relationship(back_populates="keywords")


class Product(BaseModel):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    manufacturer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("manufacturers.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)

    price: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False))
    retail_price: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False))
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    moq: Mapped[Optional[int]] = mapped_column(Integer)

    category: Mapped[Optional[str]] = mapped_column(String(128), index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(128))
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    search_keywords: Mapped[Optional[list]] = mapped_column(JSON)

    # Running mean of exactly review_count ratings
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # published | draft | archived
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    list_on_direct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Admin shadow-ban flag
    is_demoted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Optimistic concurrency token for the rating read-modify-write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}


class MarketingPlan(BaseModel):
    __tablename__ = "marketing_plans"

    # lift | flow | surge
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class AdSlot(BaseModel):
    __tablename__ = "ad_slots"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    pinned_entity_ids: Mapped[Optional[list]] = mapped_column(JSON)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class ProductReport(BaseModel):
    __tablename__ = "product_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reason: Mapped[Optional[str]] = mapped_column(Text)
    # open | resolved
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")


class UserFollow(BaseModel):
    __tablename__ = "user_follows"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "manufacturer_id", name="pk_user_follows"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    manufacturer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False
    )


class WishlistItem(BaseModel):
    __tablename__ = "wishlist_items"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "product_id", name="pk_wishlist_items"),
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
