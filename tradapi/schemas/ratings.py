from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewSubmission(BaseModel):
    """
    Body of POST /api/reviews.

    Every field is optional at the schema level so that a missing field can be
    answered with the 400 contract of the endpoint instead of FastAPI's 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    review_id: Optional[Any] = Field(None, alias="reviewId")
    product_id: Optional[Any] = Field(None, alias="productId")
    manufacturer_id: Optional[Any] = Field(None, alias="manufacturerId")
    rating: Optional[Any] = None

    def missing_fields(self) -> List[str]:
        missing = []
        for name in ("review_id", "product_id", "manufacturer_id"):
            if not getattr(self, name):
                missing.append(name)
        if self.rating is None:
            missing.append("rating")
        return missing


class ProductRatingResponse(BaseModel):
    product_id: str
    manufacturer_id: str
    rating: float
    review_count: int
    attempts: int = Field(1, description="Transaction attempts used")


class ManufacturerRatingResponse(BaseModel):
    manufacturer_id: str
    rating: float
    review_count: int
    product_count: int


class RatingRecomputeReport(BaseModel):
    processed: int = 0
    failed: int = 0
    failed_ids: List[str] = Field(default_factory=list)
