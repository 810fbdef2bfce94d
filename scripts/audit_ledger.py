"""
포인트 원장 무결성 검증 스크립트
저장된 모든 이벤트 해시를 재계산하고 불일치가 있으면 0이 아닌 코드로 종료
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse

from tradapi.config import get_settings
from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.database.connection import Database
from tradapi.logging_config import setup_logging
from tradapi.services.points_ledger_service import PointsLedgerService


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify points ledger event hashes")
    parser.add_argument("--user-id", help="Only verify one user's events")
    parser.add_argument("--batch-size", type=int, default=None)
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    database = Database.from_settings(settings)
    if not database.available:
        print("❌ No store credential configured")
        return 2

    dispatcher = BackgroundDispatcher(max_workers=1, max_pending=1)
    try:
        ledger = PointsLedgerService(database=database, dispatcher=dispatcher)
        report = ledger.audit_ledger(
            user_id=args.user_id,
            batch_size=args.batch_size or settings.LEDGER_AUDIT_BATCH_SIZE,
        )
    finally:
        dispatcher.shutdown()
        database.dispose()

    print(f"📒 검증한 이벤트: {report.checked_count}")
    if report.status == "OK":
        print("✅ 원장 해시 일치")
        return 0

    print(f"❌ 불일치 이벤트 {report.mismatch_count}개:")
    for event_id in report.mismatched_event_ids:
        print(f"   - {event_id}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
