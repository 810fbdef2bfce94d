"""
데모 카탈로그 시드 스크립트
제조사, 상품, 마케팅 플랜, 포인트 설정, 파트너 단축 링크를 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tradapi.config import get_settings
from tradapi.database.connection import Database
from tradapi.models import (
    Manufacturer,
    ManufacturerKeyword,
    MarketingPlan,
    PlatformSetting,
    Product,
    Shortlink,
)


def seed_plans_and_settings(db):
    """마케팅 플랜 및 플랫폼 설정 시드"""
    for plan_id, name in [("lift", "Lift"), ("flow", "Flow"), ("surge", "Surge")]:
        if db.get(MarketingPlan, plan_id) is None:
            db.add(MarketingPlan(id=plan_id, name=name))

    if db.get(PlatformSetting, "points_config") is None:
        db.add(PlatformSetting(key="points_config", value={"sellerFiveStarReviewPoints": 10}))


def seed_catalog(db):
    """기본 제조사/상품 시드"""
    default_manufacturers = [
        {
            "id": "acme-packaging",
            "shop_name": "Acme Packaging Ltd",
            "shop_id": "SHOP-0001",
            "slug": "acme-packaging",
            "location": "Nairobi",
            "lead_time": "7 days",
            "verification_status": "Verified",
            "marketing_plan_id": "flow",
            "keywords": ["packaging", "cartons"],
        },
        {
            "id": "rift-hardware",
            "shop_name": "Rift Valley Hardware",
            "shop_id": "SHOP-0002",
            "slug": "rift-hardware",
            "location": "Nakuru",
            "lead_time": "14 days",
            "verification_status": "Pending",
            "keywords": ["hardware"],
        },
    ]
    default_products = [
        ("acme-carton-box", "acme-packaging", "Corrugated Carton Box", "packaging", 45.0, 100),
        ("acme-kraft-bag", "acme-packaging", "Kraft Paper Bag", "packaging", 12.5, 500),
        ("rift-steel-bolt", "rift-hardware", "Galvanised Steel Bolt", "hardware", 8.0, 1000),
        ("rift-door-hinge", "rift-hardware", "Heavy Duty Door Hinge", "hardware", 150.0, 50),
    ]

    for data in default_manufacturers:
        data = dict(data)
        keywords = data.pop("keywords")
        if db.get(Manufacturer, data["id"]) is not None:
            continue
        db.add(Manufacturer(**data))
        db.flush()
        for keyword in keywords:
            db.add(ManufacturerKeyword(manufacturer_id=data["id"], keyword=keyword))

    for product_id, manufacturer_id, name, category, price, moq in default_products:
        if db.get(Product, product_id) is not None:
            continue
        db.add(
            Product(
                id=product_id,
                manufacturer_id=manufacturer_id,
                name=name,
                slug=product_id,
                category=category,
                price=price,
                moq=moq,
                stock=1000,
                status="published",
                search_keywords=[category],
            )
        )

    return len(default_manufacturers), len(default_products)


def seed_shortlinks(db):
    """파트너 단축 링크 시드"""
    if db.get(Shortlink, "demo001") is None:
        db.add(
            Shortlink(
                id="demo001",
                destination_url="/products/acme-carton-box",
                partner_id="demo-partner",
                campaign="launch",
            )
        )


def main():
    """메인 실행 함수"""
    print("🌱 데모 데이터 시드 시작...")
    print()

    database = Database.from_settings(get_settings())
    if not database.available:
        print("❌ 저장소 자격 증명이 없습니다")
        return

    try:
        database.create_all()
        with database.session_scope() as db:
            seed_plans_and_settings(db)
            manufacturers, products = seed_catalog(db)
            seed_shortlinks(db)
        print(f"✅ 제조사 {manufacturers}개, 상품 {products}개 시드 완료")
        print("🔗 단축 링크: /l/demo001")
    except Exception as e:
        print(f"❌ 시드 데이터 생성 실패: {str(e)}")
        raise
    finally:
        database.dispose()

    print()
    print("🎉 모든 시드 데이터 생성이 완료되었습니다!")


if __name__ == "__main__":
    main()
