import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tradapi.config import get_settings
from tradapi.database.connection import Database


def init_db():
    """데이터베이스 초기화"""
    settings = get_settings()
    database = Database.from_settings(settings)
    if not database.available:
        print("Database initialization skipped: no store credential configured")
        return

    try:
        # 테이블 생성
        database.create_all()
        print(f"Database initialized successfully ({database.engine.url.get_backend_name()})")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise
    finally:
        database.dispose()


if __name__ == "__main__":
    init_db()
