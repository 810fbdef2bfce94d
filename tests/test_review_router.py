from unittest.mock import patch

import pytest
from sqlalchemy.orm.exc import StaleDataError

from tradapi.models import PointsLedgerEvent, Product


@pytest.fixture
def catalog(seed):
    seed.manufacturer("m1")
    seed.product("p1", rating=4.0, review_count=1)
    return seed


def _body(**overrides):
    body = {"reviewId": "r1", "productId": "p1", "manufacturerId": "m1", "rating": 5}
    body.update(overrides)
    return body


class TestReviewSubmission:
    """POST /api/reviews 테스트"""

    def test_success_updates_rating_and_awards_seller(self, client, catalog, dispatcher, database):
        # When
        response = client.post("/api/reviews", json=_body())

        # Then
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Ratings updated successfully."

        assert dispatcher.drain(timeout=5)
        with database.session() as db:
            product = db.get(Product, "p1")
            assert product.review_count == 2
            assert product.rating == pytest.approx(4.5)
            events = db.query(PointsLedgerEvent).filter(PointsLedgerEvent.user_id == "m1").all()
            assert len(events) == 1
            assert events[0].points == 10
            assert events[0].reason_code == "FIVE_STAR_REVIEW_RECEIVED"
            assert events[0].event_metadata == {"productId": "p1", "reviewId": "r1"}

    def test_four_stars_awards_nothing(self, client, catalog, dispatcher, database):
        response = client.post("/api/reviews", json=_body(rating=4))

        assert response.status_code == 200
        assert dispatcher.drain(timeout=5)
        with database.session() as db:
            assert db.query(PointsLedgerEvent).count() == 0

    @pytest.mark.parametrize("missing", ["reviewId", "productId", "manufacturerId", "rating"])
    def test_missing_field(self, client, catalog, database, missing):
        body = _body()
        del body[missing]

        response = client.post("/api/reviews", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields."}
        with database.session() as db:
            assert db.get(Product, "p1").review_count == 1

    def test_null_field(self, client, catalog):
        response = client.post("/api/reviews", json=_body(productId=None))

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields."}

    def test_empty_body(self, client):
        response = client.post("/api/reviews")

        assert response.status_code == 400

    @pytest.mark.parametrize("rating", [0, 6, 3.5])
    def test_invalid_rating(self, client, catalog, database, rating):
        response = client.post("/api/reviews", json=_body(rating=rating))

        assert response.status_code == 400
        with database.session() as db:
            assert db.get(Product, "p1").review_count == 1

    def test_unknown_product_is_internal_error(self, client, catalog):
        response = client.post("/api/reviews", json=_body(productId="ghost"))

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to update ratings.", "details": "Product not found"}

    def test_retries_exhausted_is_internal_error(self, client, catalog, database, settings):
        """동시 수정 재시도가 모두 실패하면 500"""
        with patch(
            "tradapi.services.rating_service.ProductRepository.apply_review",
            side_effect=StaleDataError("version mismatch"),
        ) as mock_apply:
            response = client.post("/api/reviews", json=_body())

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to update ratings.",
            "details": "Product rating was updated concurrently, please retry",
        }
        assert mock_apply.call_count == settings.RATING_MAX_ATTEMPTS
        with database.session() as db:
            assert db.get(Product, "p1").review_count == 1

    def test_internal_error(self, client, catalog):
        with patch(
            "tradapi.routers.review_router.RatingService.record_review",
            side_effect=RuntimeError("boom"),
        ):
            response = client.post("/api/reviews", json=_body())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to update ratings.", "details": "boom"}
