from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from tradapi.schemas.discovery import PaginatedProducts, ProductWithRanking
from tradapi.services.discovery_service import DiscoveryService
from tradapi.services.entity_lookup_service import EntityLookupService


@pytest.fixture
def lookup(database, settings):
    discovery = DiscoveryService(database=database, settings=settings)
    return EntityLookupService(database=database, discovery=discovery, settings=settings)


class TestProductLookup:
    """상품 조회 테스트"""

    def test_matches_name_substring(self, seed, lookup):
        seed.manufacturer("m1")
        seed.product("p1", name="Kraft Paper Bag")
        seed.product("p2", name="Steel Drum")

        entity = lookup.lookup_entity("product", "PAPER")

        assert entity is not None
        assert entity.id == "p1"
        assert entity.manufacturer_name == "Shop m1"

    def test_no_match(self, seed, lookup):
        seed.manufacturer("m1")
        seed.product("p1", name="Kraft Paper Bag")

        assert lookup.lookup_entity("product", "glass") is None

    def test_searches_with_lowered_query_and_lookup_limit(self, database, settings):
        discovery = Mock()
        discovery.get_ranked_products.return_value = PaginatedProducts(
            products=[
                ProductWithRanking(id="other", name="Jerrycan"),
                ProductWithRanking(id="SKU-9", name="Something"),
            ]
        )
        service = EntityLookupService(database=database, discovery=discovery, settings=settings)

        entity = service.lookup_entity("product", "SKU-9")

        options = discovery.get_ranked_products.call_args.args[0]
        assert options.search_query == "sku-9"
        assert options.limit == settings.LOOKUP_SEARCH_LIMIT
        assert entity.id == "SKU-9"


class TestManufacturerLookup:
    """제조사 조회 테스트"""

    @pytest.mark.parametrize("query", ["acme-ke", "ACME-KE", "acme-tools", "mfr-001", "TRD-42"])
    def test_matches_any_handle(self, seed, lookup, query):
        seed.manufacturer(
            "mfr-001",
            shop_name="Acme Tools",
            shop_id="acme-ke",
            slug="acme-tools",
            tradinta_id="TRD-42",
            logo_url="https://cdn.example.com/acme.png",
            rating=4.2,
        )

        entity = lookup.lookup_entity("manufacturer", query)

        assert entity is not None
        assert entity.id == "mfr-001"
        assert entity.name == "Acme Tools"
        assert entity.image_url == "https://cdn.example.com/acme.png"
        assert entity.trad_rank == pytest.approx(4.2)
        assert entity.shop_id == "acme-ke"
        assert entity.manufacturer_slug == "acme-tools"

    def test_id_match_is_case_sensitive(self, seed, lookup):
        seed.manufacturer("MfrX", shop_id="x-shop", slug="x-shop")

        assert lookup.lookup_entity("manufacturer", "mfrx") is None

    def test_falls_back_to_keywords(self, seed, lookup):
        seed.manufacturer("m1", shop_name=None, keywords=["jua kali", "metalwork"])

        entity = lookup.lookup_entity("manufacturer", "MetalWork")

        assert entity.id == "m1"
        assert entity.name == "Unnamed Shop"
        assert entity.trad_rank == 0

    def test_moderation_flags(self, seed, lookup):
        seed.manufacturer("m1", is_demoted=True)

        entity = lookup.lookup_entity("manufacturer", "m1")

        assert entity.moderation.seller_demoted is True


class TestLookupFallbacks:
    def test_unknown_entity_type(self, seed, lookup):
        seed.manufacturer("m1")

        assert lookup.lookup_entity("order", "m1") is None

    def test_disabled_store(self, disabled_database, settings):
        service = EntityLookupService(
            database=disabled_database,
            discovery=DiscoveryService(database=disabled_database, settings=settings),
            settings=settings,
        )

        assert service.lookup_entity("manufacturer", "m1") is None
        assert service.lookup_entity("product", "box") is None

    def test_store_error(self, seed, lookup):
        seed.manufacturer("m1")

        with patch(
            "tradapi.services.entity_lookup_service.ManufacturerRepository.find_by_identifier",
            side_effect=OperationalError("SELECT", {}, Exception("timeout")),
        ):
            assert lookup.lookup_entity("manufacturer", "m1") is None

    def test_numeric_keyword_does_not_break_product_lookup(self, seed, lookup):
        seed.manufacturer("m1")
        seed.product("p1", name="Desk Lamp", search_keywords=["lamp", 2024])

        entity = lookup.lookup_entity("product", "lamp")

        assert entity is not None
        assert entity.id == "p1"
        assert entity.search_keywords == ["lamp", "2024"]

    def test_unexpected_error_is_logged_not_raised(self, seed, lookup):
        seed.manufacturer("m1")

        with patch(
            "tradapi.services.entity_lookup_service.ManufacturerRepository.find_by_identifier",
            side_effect=ValueError("bad row"),
        ), patch("tradapi.services.entity_lookup_service.logger") as mock_logger:
            assert lookup.lookup_entity("manufacturer", "m1") is None

        mock_logger.exception.assert_called_once()
