"""
Points ledger data model

Append-only event log of point awards. Every row carries a SHA-256 hash over
its canonical payload so an auditor can recompute it and flag tampering.
Rows are never updated or deleted: there is no updated_at column and the
repository exposes no update/delete path.
"""

from sqlalchemy import BigInteger, Column, DateTime, Index, JSON, String, Text, func

from tradapi.models.base import Base


class PointsLedgerEvent(Base):
    __tablename__ = "points_ledger_events"
    __table_args__ = (
        Index("ix_points_ledger_user_reason", "user_id", "reason_code"),
    )

    # Generated at write time, part of the hashed payload
    event_id = Column(String(64), primary_key=True)

    user_id = Column(String(128), nullable=False, index=True)

    # Signed amount; only positive awards are issued today
    points = Column(BigInteger, nullable=False)

    action = Column(String(32), nullable=False, default="award")

    # Machine-readable reason, e.g. FIVE_STAR_REVIEW_RECEIVED
    reason_code = Column(String(128), nullable=False, index=True)

    # "metadata" is reserved on declarative classes, so the attribute differs
    # from the column name. Plain JSON (not JSONB) keeps key order for hashing.
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # ISO-8601 string captured when the payload was built; hashed
    timestamp = Column(String(40), nullable=False)

    # Storage time assigned by the server; not hashed
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    event_hash = Column(String(64), nullable=False)

    issued_by = Column(Text, nullable=False, default="system")
