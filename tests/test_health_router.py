def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "store_available": True, "background_pending": 0}


def test_health_check_without_store(disabled_client):
    response = disabled_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["store_available"] is False


def test_points_need_store(disabled_client):
    response = disabled_client.get("/points/u1/balance")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "STORE_001"


def test_discovery_degrades_to_empty_page(disabled_client):
    response = disabled_client.get("/discovery/products")

    assert response.status_code == 200
    assert response.json() == {"products": [], "total_count": 0, "total_pages": 0}


def test_lookup_degrades_to_null(disabled_client):
    response = disabled_client.get("/discovery/lookup", params={"entity_type": "manufacturer", "q": "acme"})

    assert response.status_code == 200
    assert response.json() == {"entity": None}


def test_review_without_store_is_internal_error(disabled_client):
    response = disabled_client.post(
        "/api/reviews",
        json={"reviewId": "r1", "productId": "p1", "manufacturerId": "m1", "rating": 5},
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to update ratings."
