import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from tradapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from tradapi.models import Manufacturer, Product
from tradapi.repositories.product_repository import ProductRepository
from tradapi.schemas.ratings import ReviewSubmission
from tradapi.services.rating_service import FIVE_STAR_REASON, RatingService
from tradapi.utils.rating_math import rolling_average, weighted_mean


def _review(rating, product_id="p1", manufacturer_id="m1", review_id="r1"):
    return ReviewSubmission(
        review_id=review_id, product_id=product_id, manufacturer_id=manufacturer_id, rating=rating
    )


@pytest.fixture
def ledger():
    return Mock()


@pytest.fixture
def rating_service(session, ledger, settings):
    return RatingService(db=session, ledger=ledger, settings=settings)


@pytest.fixture
def catalog(seed):
    seed.manufacturer("m1")
    seed.product("p1", rating=4.0, review_count=1)
    return seed


def _product(database, product_id="p1"):
    with database.session() as db:
        return db.get(Product, product_id)


class TestRatingMath:
    def test_rolling_average_from_empty(self):
        assert rolling_average(0, 0, 4) == (1, 4.0)

    def test_rolling_average_uses_totals(self):
        count, avg = rolling_average(4.0, 1, 5)

        assert count == 2
        assert avg == pytest.approx(4.5)

    def test_weighted_mean_skips_unreviewed(self):
        assert weighted_mean([(4.0, 2), (5.0, 1), (0.0, 0)]) == (pytest.approx(13 / 3), 3)
        assert weighted_mean([]) == (0.0, 0)


class TestRecordReview:
    """리뷰 평점 반영 테스트"""

    def test_review_updates_running_average(self, catalog, rating_service, database):
        # When
        result = rating_service.record_review(_review(5))

        # Then
        assert result.review_count == 2
        assert result.rating == pytest.approx(4.5)
        assert result.attempts == 1
        stored = _product(database)
        assert stored.review_count == 2
        assert stored.rating == pytest.approx(4.5)

    def test_sequential_reviews_equal_plain_mean(self, seed, rating_service, database):
        seed.manufacturer("m1")
        seed.product("p1")
        ratings = [5, 3, 4, 1, 2]

        for i, value in enumerate(ratings):
            rating_service.record_review(_review(value, review_id=f"r{i}"))

        stored = _product(database)
        assert stored.review_count == len(ratings)
        assert stored.rating == pytest.approx(sum(ratings) / len(ratings))

    def test_concurrent_update_is_retried(self, catalog, rating_service, database):
        """다른 트랜잭션이 먼저 커밋하면 재시도 후 두 리뷰 모두 반영"""
        original_find = ProductRepository._find_product
        calls = {"count": 0}

        def racing_find(repo, manufacturer_id, product_id):
            product = original_find(repo, manufacturer_id, product_id)
            calls["count"] += 1
            if calls["count"] == 1:
                # a competing review commits between our read and our write
                with database.session_scope() as other:
                    ProductRepository(other).apply_review(manufacturer_id, product_id, 2)
            return product

        with patch.object(ProductRepository, "_find_product", racing_find):
            result = rating_service.record_review(_review(5))

        assert result.attempts == 2
        assert result.review_count == 3
        assert result.rating == pytest.approx((4 + 2 + 5) / 3)
        stored = _product(database)
        assert stored.review_count == 3
        assert stored.rating == pytest.approx((4 + 2 + 5) / 3)

    def test_parallel_reviews_are_all_counted(self, catalog, database, settings):
        """N개의 리뷰가 동시에 들어와도 모두 반영되고 평균이 정확해야 함"""
        # Given
        ratings = [5, 1, 3, 4, 2, 5, 5, 1]
        patient = settings.model_copy(update={"RATING_MAX_ATTEMPTS": 100})
        barrier = threading.Barrier(len(ratings))

        def submit(index):
            db = database.session()
            try:
                service = RatingService(db=db, ledger=Mock(), settings=patient)
                barrier.wait(timeout=5)
                return service.record_review(_review(ratings[index], review_id=f"r{index}"))
            finally:
                db.close()

        # When
        with ThreadPoolExecutor(max_workers=len(ratings)) as pool:
            results = list(pool.map(submit, range(len(ratings))))

        # Then
        assert sorted(r.review_count for r in results) == list(range(2, len(ratings) + 2))
        stored = _product(database)
        assert stored.review_count == 1 + len(ratings)
        assert stored.rating == pytest.approx((4.0 + sum(ratings)) / (1 + len(ratings)))

    def test_retries_exhausted_raises_conflict(self, ledger, settings):
        db = Mock()
        service = RatingService(db=db, ledger=ledger, settings=settings)
        service.product_repo = Mock()
        service.product_repo.apply_review.side_effect = StaleDataError("version mismatch")

        with pytest.raises(ConflictError):
            service.record_review(_review(5))

        assert service.product_repo.apply_review.call_count == settings.RATING_MAX_ATTEMPTS
        assert db.rollback.call_count == settings.RATING_MAX_ATTEMPTS
        db.commit.assert_not_called()
        ledger.award_points.assert_not_called()

    def test_store_error_is_not_retried(self, ledger, settings):
        db = Mock()
        service = RatingService(db=db, ledger=ledger, settings=settings)
        service.product_repo = Mock()
        service.product_repo.apply_review.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O"))

        with pytest.raises(OperationalError):
            service.record_review(_review(4))

        assert service.product_repo.apply_review.call_count == 1
        db.rollback.assert_called_once()

    def test_missing_product_raises_not_found(self, catalog, rating_service, ledger):
        with pytest.raises(NotFoundError):
            rating_service.record_review(_review(5, product_id="nope"))

        ledger.award_points.assert_not_called()

    def test_product_is_scoped_to_its_manufacturer(self, catalog, rating_service, database):
        catalog.manufacturer("m2")

        with pytest.raises(NotFoundError):
            rating_service.record_review(_review(5, manufacturer_id="m2"))

        assert _product(database).review_count == 1

    @pytest.mark.parametrize("rating", [0, 6, 4.5, True, "5"])
    def test_invalid_rating_has_no_side_effects(self, catalog, rating_service, database, ledger, rating):
        with pytest.raises(ValidationError):
            rating_service.record_review(_review(rating))

        assert _product(database).review_count == 1
        ledger.award_points.assert_not_called()


class TestFiveStarBonus:
    """5점 리뷰 판매자 보너스 테스트"""

    def test_default_bonus(self, catalog, rating_service, ledger):
        rating_service.record_review(_review(5))

        ledger.award_points.assert_called_once_with(
            "m1", 10, FIVE_STAR_REASON, {"productId": "p1", "reviewId": "r1"}
        )

    def test_configured_bonus(self, catalog, rating_service, ledger):
        catalog.setting("points_config", {"sellerFiveStarReviewPoints": 25})

        rating_service.record_review(_review(5))

        assert ledger.award_points.call_args.args[1] == 25

    def test_disabled_bonus(self, catalog, rating_service, ledger):
        catalog.setting("points_config", {"sellerFiveStarReviewPoints": 0})

        rating_service.record_review(_review(5))

        ledger.award_points.assert_not_called()

    def test_no_bonus_below_five_stars(self, catalog, rating_service, ledger):
        rating_service.record_review(_review(4))

        ledger.award_points.assert_not_called()

    def test_bonus_failure_does_not_fail_review(self, catalog, rating_service, ledger, database):
        ledger.award_points.side_effect = RuntimeError("ledger down")

        with patch("tradapi.services.rating_service.logger") as mock_logger:
            result = rating_service.record_review(_review(5))

        assert result.review_count == 2
        assert _product(database).review_count == 2
        mock_logger.exception.assert_called_once()


class TestManufacturerRecompute:
    """제조사 평점 재계산 테스트"""

    def test_recompute_weighted_by_review_count(self, seed, rating_service, database):
        seed.manufacturer("m1")
        seed.product("p1", rating=4.0, review_count=2)
        seed.product("p2", rating=5.0, review_count=1)
        seed.product("p3")

        result = rating_service.recompute_manufacturer_rating("m1")

        assert result.rating == pytest.approx(13 / 3)
        assert result.review_count == 3
        assert result.product_count == 3
        with database.session() as db:
            stored = db.get(Manufacturer, "m1")
            assert stored.rating == pytest.approx(13 / 3)
            assert stored.review_count == 3

    def test_recompute_without_reviews_is_zero(self, seed, rating_service):
        seed.manufacturer("m1", rating=4.9, review_count=12)

        result = rating_service.recompute_manufacturer_rating("m1")

        assert result.rating == 0
        assert result.review_count == 0

    def test_recompute_unknown_manufacturer(self, rating_service):
        with pytest.raises(NotFoundError):
            rating_service.recompute_manufacturer_rating("ghost")

    def test_recompute_all_in_batches(self, seed, rating_service, database):
        for manufacturer_id in ("m1", "m2", "m3"):
            seed.manufacturer(manufacturer_id)
            seed.product(f"{manufacturer_id}-p", manufacturer_id=manufacturer_id, rating=3.0, review_count=2)

        report = rating_service.recompute_all_manufacturer_ratings(batch_size=2)

        assert report.processed == 3
        assert report.failed == 0
        with database.session() as db:
            assert all(m.rating == pytest.approx(3.0) for m in db.query(Manufacturer).all())

    def test_recompute_all_continues_after_failure(self, seed, rating_service):
        seed.manufacturer("m1")
        seed.manufacturer("m2")
        original = rating_service._recompute

        def flaky(manufacturer_id):
            if manufacturer_id == "m1":
                raise OperationalError("UPDATE", {}, Exception("locked"))
            return original(manufacturer_id)

        with patch.object(rating_service, "_recompute", side_effect=flaky):
            report = rating_service.recompute_all_manufacturer_ratings(batch_size=10)

        assert report.processed == 1
        assert report.failed == 1
        assert report.failed_ids == ["m1"]
