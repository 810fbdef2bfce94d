"""
Points ledger service

Awards are append-only events. Each event carries a SHA-256 hash over its
canonical payload (fixed key order: event_id, user_id, points, action,
reason_code, metadata, timestamp) so an auditor can recompute it later.

Writing is fire-and-forget: award_points builds and hashes the event, hands
the insert to the background dispatcher and returns. A failed insert is
logged and lost (best-effort delivery); it never reaches the caller.

The hash is tamper-evidence only. It is neither signed nor chained to the
previous event, so anyone able to rewrite a row can rewrite its hash too.
"""

import hashlib
import json
import logging
import secrets
import string
from collections import defaultdict
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Dict, Iterator, Mapping, Optional

from sqlalchemy.orm import Session

from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.core.exceptions import ValidationError
from tradapi.database.connection import Database
from tradapi.repositories.points_repository import PointsRepository
from tradapi.schemas.points import (
    DayPoints,
    LedgerAuditReport,
    PointsAnalyticsResponse,
    PointsBalanceResponse,
    PointsLedgerEntry,
    PointsLedgerEventSchema,
    PointsLedgerResponse,
    ReasonPoints,
    TopEarner,
)
from tradapi.utils.timezone_utils import get_utc_now, iso_millis, to_utc

logger = logging.getLogger(__name__)

AWARD_ACTION = "award"
SYSTEM_ISSUER = "system"

EVENT_ID_ALPHABET = string.ascii_letters + string.digits
EVENT_ID_LENGTH = 20

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEK_ORDER = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def generate_event_id() -> str:
    return "".join(secrets.choice(EVENT_ID_ALPHABET) for _ in range(EVENT_ID_LENGTH))


def build_event_payload(
    event_id: str,
    user_id: str,
    points: int,
    reason_code: str,
    metadata: Mapping[str, Any],
    timestamp: str,
    action: str = AWARD_ACTION,
) -> Dict[str, Any]:
    """Canonical payload; insertion order is the hashing order"""
    return {
        "event_id": event_id,
        "user_id": user_id,
        "points": points,
        "action": action,
        "reason_code": reason_code,
        "metadata": dict(metadata),
        "timestamp": timestamp,
    }


def compute_event_hash(payload: Mapping[str, Any]) -> str:
    """sha256 hex digest of the compact JSON serialization of the payload"""
    serialized = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def verify_event(event: PointsLedgerEventSchema) -> bool:
    """Recompute the hash from the stored fields and compare"""
    payload = build_event_payload(
        event_id=event.event_id,
        user_id=event.user_id,
        points=event.points,
        reason_code=event.reason_code,
        metadata=event.event_metadata or {},
        timestamp=event.timestamp,
        action=event.action,
    )
    return secrets.compare_digest(compute_event_hash(payload), event.event_hash)


def format_reason(reason_code: str) -> str:
    """FIVE_STAR_REVIEW_RECEIVED -> Five Star Review Received"""
    return reason_code.replace("_", " ").title()


class PointsLedgerService:
    """포인트 원장 서비스 - award, read, audit"""

    def __init__(self, database: Database, dispatcher: BackgroundDispatcher):
        self.database = database
        self.dispatcher = dispatcher

    @contextmanager
    def _repo(self) -> Iterator[PointsRepository]:
        db: Session = self.database.session()
        try:
            yield PointsRepository(db)
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Award
    # ------------------------------------------------------------------

    def award_points(
        self,
        user_id: str,
        points: int,
        reason_code: str,
        metadata: Optional[Mapping[str, Any]] = None,
        issued_by: str = SYSTEM_ISSUER,
    ) -> str:
        """
        Record a points award without waiting for it to be stored.

        Args:
            user_id: subject of the award
            points: whole number of points
            reason_code: machine-readable reason, e.g. FIVE_STAR_REVIEW_RECEIVED
            metadata: audit context such as {"productId": ..., "reviewId": ...}
            issued_by: provenance tag

        Returns:
            str: the generated event_id

        Raises:
            ValidationError: malformed arguments (raised before anything is queued)
        """
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValidationError("points must be an integer", {"points": repr(points)})
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("user_id must be a non-empty string")
        if not isinstance(reason_code, str) or not reason_code.strip():
            raise ValidationError("reason_code must be a non-empty string")
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, Mapping):
            raise ValidationError("metadata must be a mapping")

        event_id = generate_event_id()
        payload = build_event_payload(
            event_id=event_id,
            user_id=user_id,
            points=points,
            reason_code=reason_code,
            metadata=metadata,
            timestamp=iso_millis(),
        )
        try:
            event_hash = compute_event_hash(payload)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"metadata is not JSON serializable: {e}")

        event = {**payload, "event_hash": event_hash, "issued_by": issued_by}

        if not self.database.available:
            logger.error(
                f"Failed to award points for {reason_code}: store unavailable (event {event_id} dropped)"
            )
            return event_id

        queued = self.dispatcher.submit(
            f"award_points:{reason_code}:{event_id}", self._persist_event, event
        )
        if not queued:
            logger.error(f"Failed to award points for {reason_code}: event {event_id} dropped")
        else:
            logger.info(f"Queued {points} points for user {user_id} ({reason_code}, event {event_id})")
        return event_id

    def _persist_event(self, event: Dict[str, Any]) -> None:
        with self.database.session_scope() as db:
            PointsRepository(db).insert_event(event)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user_balance(self, user_id: str) -> PointsBalanceResponse:
        with self._repo() as repo:
            balance = repo.get_user_balance(user_id)
        logger.info(f"Retrieved balance for user {user_id}: {balance}")
        return PointsBalanceResponse(user_id=user_id, balance=balance)

    def get_user_ledger(self, user_id: str, limit: int = 50, offset: int = 0) -> PointsLedgerResponse:
        if limit > 100:
            limit = 100

        with self._repo() as repo:
            events, total_count = repo.get_user_events(user_id, limit=limit, offset=offset)
            balance = repo.get_user_balance(user_id)

        entries = [
            PointsLedgerEntry(
                event_id=event.event_id,
                points=event.points,
                reason_code=event.reason_code,
                metadata=event.event_metadata or {},
                timestamp=event.timestamp,
                issued_by=event.issued_by,
            )
            for event in events
        ]
        return PointsLedgerResponse(
            balance=balance,
            entries=entries,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def has_award(self, user_id: str, reason_code: str) -> bool:
        with self._repo() as repo:
            return repo.has_event(user_id, reason_code)

    def get_analytics(self, top_n: int = 10) -> PointsAnalyticsResponse:
        week_ago = get_utc_now() - timedelta(days=7)

        with self._repo() as repo:
            total_points = repo.get_total_points()
            users_with_points = repo.count_users_with_points()
            top_earners = repo.get_top_earners(top_n)
            by_reason_raw = repo.get_points_by_reason()
            recent = repo.get_points_since(week_ago)

        by_reason: Dict[str, int] = defaultdict(int)
        for reason_code, points in by_reason_raw:
            by_reason[format_reason(reason_code)] += points

        by_day = {day: 0 for day in WEEK_ORDER}
        for created_at, points in recent:
            if created_at is None:
                continue
            by_day[WEEKDAY_NAMES[to_utc(created_at).weekday()]] += points

        return PointsAnalyticsResponse(
            total_points_awarded=total_points,
            total_users_with_points=users_with_points,
            top_earners=[TopEarner(user_id=u, total_points=p) for u, p in top_earners],
            points_by_reason=sorted(
                (ReasonPoints(reason=r, points=p) for r, p in by_reason.items()),
                key=lambda item: item.points,
                reverse=True,
            ),
            points_by_day_of_week=[DayPoints(day=d, points=by_day[d]) for d in WEEK_ORDER],
        )

    # ------------------------------------------------------------------
    # Integrity audit
    # ------------------------------------------------------------------

    def audit_ledger(self, user_id: Optional[str] = None, batch_size: int = 500) -> LedgerAuditReport:
        """
        Recompute every stored event hash.

        Mismatches are logged as warnings and returned; nothing is modified.
        """
        checked = 0
        mismatched = []
        with self._repo() as repo:
            for batch in repo.iter_event_batches(user_id=user_id, batch_size=batch_size):
                for event in batch:
                    checked += 1
                    if not verify_event(event):
                        mismatched.append(event.event_id)
                        logger.warning(
                            f"Ledger integrity mismatch: event {event.event_id} (user {event.user_id})"
                        )

        status = "MISMATCH" if mismatched else "OK"
        logger.info(f"Ledger audit finished: {checked} checked, {len(mismatched)} mismatched")
        return LedgerAuditReport(
            status=status,
            user_id=user_id,
            checked_count=checked,
            mismatch_count=len(mismatched),
            mismatched_event_ids=mismatched,
            verified_at=iso_millis(),
        )
