from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tradapi.config import Settings
from tradapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from tradapi.repositories.manufacturer_repository import ManufacturerRepository
from tradapi.repositories.platform_repository import PlatformSettingsRepository
from tradapi.repositories.product_repository import ProductRepository
from tradapi.schemas.ratings import (
    ManufacturerRatingResponse,
    ProductRatingResponse,
    RatingRecomputeReport,
    ReviewSubmission,
)
from tradapi.services.points_ledger_service import PointsLedgerService
from tradapi.utils.rating_math import weighted_mean

logger = logging.getLogger(__name__)

FIVE_STAR_REASON = "FIVE_STAR_REVIEW_RECEIVED"
FIVE_STAR_POINTS_KEY = "sellerFiveStarReviewPoints"


class RatingService:
    """리뷰 평점 집계 서비스"""

    def __init__(self, db: Session, ledger: PointsLedgerService, settings: Settings):
        self.db = db
        self.ledger = ledger
        self.settings = settings
        self.product_repo = ProductRepository(db)
        self.manufacturer_repo = ManufacturerRepository(db)
        self.platform_repo = PlatformSettingsRepository(db)

    def record_review(self, submission: ReviewSubmission) -> ProductRatingResponse:
        """
        Fold a new review into its product's average rating.

        The read-modify-write runs under the product's version check. A
        concurrent update turns the flush into StaleDataError; the attempt is
        rolled back and replayed against the fresh row.

        Raises:
            ValidationError: rating is not an integer from 1 to 5
            NotFoundError: no such product under the given manufacturer
            ConflictError: retries exhausted
        """
        rating = submission.rating
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("rating must be an integer from 1 to 5", {"rating": rating})

        manufacturer_id = str(submission.manufacturer_id)
        product_id = str(submission.product_id)
        review_id = str(submission.review_id)
        max_attempts = max(1, self.settings.RATING_MAX_ATTEMPTS)

        record = None
        attempts = 0
        while attempts < max_attempts:
            attempts += 1
            try:
                record = self.product_repo.apply_review(manufacturer_id, product_id, rating)
                if record is None:
                    self.db.rollback()
                    raise NotFoundError(
                        "Product not found",
                        {"manufacturer_id": manufacturer_id, "product_id": product_id},
                    )
                self.db.commit()
                break
            except StaleDataError:
                self.db.rollback()
                record = None
                logger.warning(
                    f"Rating conflict on product {product_id} (attempt {attempts}/{max_attempts})"
                )
            except SQLAlchemyError:
                self.db.rollback()
                raise

        if record is None:
            raise ConflictError(
                "Product rating was updated concurrently, please retry",
                {"product_id": product_id, "attempts": attempts},
            )

        logger.info(
            f"Review {review_id} applied to product {product_id}: "
            f"rating={record.rating:.3f} count={record.review_count}"
        )

        if rating == 5:
            self._award_five_star_bonus(manufacturer_id, product_id, review_id)

        return ProductRatingResponse(
            product_id=product_id,
            manufacturer_id=manufacturer_id,
            rating=record.rating,
            review_count=record.review_count,
            attempts=attempts,
        )

    def _five_star_points(self) -> Optional[int]:
        configured = self.platform_repo.get_points_config().get(FIVE_STAR_POINTS_KEY)
        if configured is None:
            return self.settings.DEFAULT_FIVE_STAR_REVIEW_POINTS
        points = int(configured)
        return points if points > 0 else None

    def _award_five_star_bonus(self, manufacturer_id: str, product_id: str, review_id: str) -> None:
        # the review is already committed; a failed bonus must not undo it
        try:
            points = self._five_star_points()
            if points is None:
                logger.info(f"Five-star bonus disabled, skipping review {review_id}")
                return
            self.ledger.award_points(
                manufacturer_id,
                points,
                FIVE_STAR_REASON,
                {"productId": product_id, "reviewId": review_id},
            )
        except Exception:
            logger.exception(f"Failed to award five-star points for review {review_id}")

    # ------------------------------------------------------------------
    # Manufacturer aggregates
    # ------------------------------------------------------------------

    def _recompute(self, manufacturer_id: str) -> ManufacturerRatingResponse:
        totals = self.product_repo.get_rating_totals(manufacturer_id)
        rating, review_count = weighted_mean(totals)
        self.manufacturer_repo.set_rating(manufacturer_id, rating, review_count)
        return ManufacturerRatingResponse(
            manufacturer_id=manufacturer_id,
            rating=rating,
            review_count=review_count,
            product_count=len(totals),
        )

    def recompute_manufacturer_rating(self, manufacturer_id: str) -> ManufacturerRatingResponse:
        """제조사 평점을 상품 평점의 리뷰 수 가중 평균으로 재계산"""
        if self.manufacturer_repo.get_by_id(manufacturer_id) is None:
            raise NotFoundError("Manufacturer not found", {"manufacturer_id": manufacturer_id})

        try:
            result = self._recompute(manufacturer_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            f"Recomputed manufacturer {manufacturer_id}: "
            f"rating={result.rating:.3f} reviews={result.review_count}"
        )
        return result

    def recompute_all_manufacturer_ratings(self, batch_size: Optional[int] = None) -> RatingRecomputeReport:
        """
        Walk every manufacturer in id order, one batch of ids at a time.

        Each manufacturer commits on its own; one that fails is logged,
        counted and rolled back while the job carries on.
        """
        batch_size = batch_size or self.settings.RATING_RECOMPUTE_BATCH_SIZE
        report = RatingRecomputeReport()
        last_id = None

        while True:
            ids = self.manufacturer_repo.list_ids(after_id=last_id, limit=batch_size)
            if not ids:
                break

            for manufacturer_id in ids:
                try:
                    self._recompute(manufacturer_id)
                    self.db.commit()
                    report.processed += 1
                except SQLAlchemyError:
                    self.db.rollback()
                    logger.exception(f"Failed to recompute rating for manufacturer {manufacturer_id}")
                    report.failed += 1
                    report.failed_ids.append(manufacturer_id)

            last_id = ids[-1]
            logger.info(f"Rating recompute batch done up to {last_id} ({report.processed} processed)")

        return report
