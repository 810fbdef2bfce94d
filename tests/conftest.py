from datetime import datetime, timedelta, timezone

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from tradapi.config import Settings
from tradapi.containers import Container
from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.database.connection import Database
from tradapi.main import create_app
from tradapi.models import (
    AdSlot,
    Manufacturer,
    ManufacturerKeyword,
    MarketingPlan,
    PlatformSetting,
    Product,
    ProductReport,
    Shortlink,
    UserFollow,
    WishlistItem,
)

INTERNAL_TOKEN = "test-internal-token"
BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    """파일 기반 SQLite 테스트 설정"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'tradapi.db'}",
        SERVICE_ACCOUNT_BASE64=None,
        AUTH_TOKEN=INTERNAL_TOKEN,
    )


@pytest.fixture
def disabled_settings():
    """저장소 자격 증명이 없는 설정"""
    return Settings(_env_file=None, DATABASE_URL=None, SERVICE_ACCOUNT_BASE64=None, AUTH_TOKEN=INTERNAL_TOKEN)


@pytest.fixture
def database(settings):
    db = Database.from_settings(settings)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def disabled_database():
    return Database(None)


@pytest.fixture
def dispatcher():
    dispatcher = BackgroundDispatcher(max_workers=2, max_pending=100)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def session(database):
    db = database.session()
    yield db
    db.close()


@pytest.fixture
def container(settings, database, dispatcher):
    container = Container()
    container.core.config.override(providers.Object(settings))
    container.core.database.override(providers.Object(database))
    container.core.dispatcher.override(providers.Object(dispatcher))
    yield container
    container.unwire()


@pytest.fixture
def client(container):
    app = create_app(container)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {INTERNAL_TOKEN}"}


# ----------------------------------------------------------------------
# Seed helpers
# ----------------------------------------------------------------------


@pytest.fixture
def seed(database):
    """
    Insert catalog rows directly.

    Products get strictly decreasing created_at in insertion order unless
    one is given, so the first inserted product is the newest.
    """

    class Seeder:
        def __init__(self):
            self._product_seq = 0

        def _add(self, *rows):
            with database.session_scope() as db:
                for row in rows:
                    db.add(row)
            return rows[0] if len(rows) == 1 else rows

        def manufacturer(self, id="m1", keywords=(), **kwargs):
            defaults = {
                "shop_name": f"Shop {id}",
                "shop_id": f"shop-{id}",
                "slug": f"shop-{id}",
                "verification_status": "Verified",
            }
            defaults.update(kwargs)
            self._add(Manufacturer(id=id, **defaults))
            for keyword in keywords:
                self._add(ManufacturerKeyword(manufacturer_id=id, keyword=keyword))
            return id

        def product(self, id, manufacturer_id="m1", **kwargs):
            self._product_seq += 1
            defaults = {
                "name": f"Product {id}",
                "slug": f"product-{id}",
                "price": 100.0,
                "status": "published",
                "category": "packaging",
                "created_at": BASE_TIME - timedelta(minutes=self._product_seq),
            }
            defaults.update(kwargs)
            self._add(Product(id=id, manufacturer_id=manufacturer_id, **defaults))
            return id

        def plan(self, id, name=None):
            self._add(MarketingPlan(id=id, name=name or id.title()))

        def ad_slot(self, id, pinned, type="product", expires_at=None):
            self._add(AdSlot(id=id, type=type, pinned_entity_ids=pinned, expires_at=expires_at))

        def report(self, product_id, status="open"):
            self._add(ProductReport(product_id=product_id, status=status))

        def follow(self, user_id, manufacturer_id):
            self._add(UserFollow(user_id=user_id, manufacturer_id=manufacturer_id))

        def wishlist(self, user_id, product_id):
            self._add(WishlistItem(user_id=user_id, product_id=product_id))

        def setting(self, key, value):
            self._add(PlatformSetting(key=key, value=value))

        def shortlink(self, id, destination_url, partner_id="partner-1", **kwargs):
            self._add(Shortlink(id=id, destination_url=destination_url, partner_id=partner_id, **kwargs))
            return id

    return Seeder()


@pytest.fixture
def disabled_client(disabled_settings, disabled_database, dispatcher):
    """자격 증명 없이 기동된 앱"""
    container = Container()
    container.core.config.override(providers.Object(disabled_settings))
    container.core.database.override(providers.Object(disabled_database))
    container.core.dispatcher.override(providers.Object(dispatcher))
    with TestClient(create_app(container)) as test_client:
        yield test_client
    container.unwire()
