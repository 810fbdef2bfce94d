"""
Points ledger repository

Insert and read paths only. Ledger events form the permanent audit trail,
so this repository deliberately has no update or delete method.
"""

from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from tradapi.models.points import PointsLedgerEvent as PointsLedgerEventModel
from tradapi.repositories.base import BaseRepository
from tradapi.schemas.points import PointsLedgerEventSchema


class PointsRepository(BaseRepository[PointsLedgerEventModel, PointsLedgerEventSchema]):
    def __init__(self, db: Session):
        super().__init__(PointsLedgerEventModel, PointsLedgerEventSchema, db)

    def insert_event(self, event: Dict[str, Any]) -> Optional[PointsLedgerEventSchema]:
        """
        Append one ledger event.

        Args:
            event: payload fields plus event_hash and issued_by; created_at is
                left to the server default
        """
        return self.create(
            commit=True,
            event_id=event["event_id"],
            user_id=event["user_id"],
            points=event["points"],
            action=event["action"],
            reason_code=event["reason_code"],
            event_metadata=event["metadata"],
            timestamp=event["timestamp"],
            event_hash=event["event_hash"],
            issued_by=event["issued_by"],
        )

    def get_user_balance(self, user_id: str) -> int:
        self._ensure_clean_session()
        total = (
            self.db.query(func.coalesce(func.sum(self.model_class.points), 0))
            .filter(self.model_class.user_id == user_id)
            .scalar()
        )
        return int(total or 0)

    def get_user_events(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> Tuple[List[PointsLedgerEventSchema], int]:
        """Newest-first page of a user's events and the user's total event count"""
        self._ensure_clean_session()
        base_query = self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id
        )
        total_count = base_query.count()
        rows = (
            base_query.order_by(
                desc(self.model_class.created_at), desc(self.model_class.timestamp)
            )
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._to_schema(row) for row in rows], total_count

    def has_event(self, user_id: str, reason_code: str) -> bool:
        self._ensure_clean_session()
        return (
            self.db.query(self.model_class.event_id)
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.reason_code == reason_code,
            )
            .first()
            is not None
        )

    def iter_event_batches(
        self, user_id: Optional[str] = None, batch_size: int = 500
    ) -> Iterator[List[PointsLedgerEventSchema]]:
        """Keyset-paginated walk over the ledger ordered by event_id"""
        self._ensure_clean_session()
        last_id: Optional[str] = None
        while True:
            query = self.db.query(self.model_class)
            if user_id is not None:
                query = query.filter(self.model_class.user_id == user_id)
            if last_id is not None:
                query = query.filter(self.model_class.event_id > last_id)
            rows = query.order_by(self.model_class.event_id).limit(batch_size).all()
            if not rows:
                return
            yield [self._to_schema(row) for row in rows]
            last_id = rows[-1].event_id

    # ------------------------------------------------------------------
    # Analytics aggregates
    # ------------------------------------------------------------------

    def get_total_points(self) -> int:
        self._ensure_clean_session()
        total = self.db.query(
            func.coalesce(func.sum(self.model_class.points), 0)
        ).scalar()
        return int(total or 0)

    def count_users_with_points(self) -> int:
        self._ensure_clean_session()
        return int(
            self.db.query(func.count(func.distinct(self.model_class.user_id))).scalar()
            or 0
        )

    def get_top_earners(self, limit: int = 10) -> List[Tuple[str, int]]:
        self._ensure_clean_session()
        total = func.sum(self.model_class.points).label("total_points")
        rows = (
            self.db.query(self.model_class.user_id, total)
            .group_by(self.model_class.user_id)
            .order_by(desc(total), self.model_class.user_id)
            .limit(limit)
            .all()
        )
        return [(row.user_id, int(row.total_points)) for row in rows]

    def get_points_by_reason(self) -> List[Tuple[str, int]]:
        self._ensure_clean_session()
        total = func.sum(self.model_class.points).label("total_points")
        rows = (
            self.db.query(self.model_class.reason_code, total)
            .group_by(self.model_class.reason_code)
            .order_by(desc(total))
            .all()
        )
        return [(row.reason_code, int(row.total_points)) for row in rows]

    def get_points_since(self, since: datetime) -> List[Tuple[datetime, int]]:
        self._ensure_clean_session()
        rows = (
            self.db.query(self.model_class.created_at, self.model_class.points)
            .filter(self.model_class.created_at >= since)
            .all()
        )
        return [(row.created_at, int(row.points)) for row in rows]
