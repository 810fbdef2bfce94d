"""
Referral attribution models

Shortlinks map a public code to a destination plus the partner that owns the
attribution. Every resolution appends a LinkClick; clicks from the legacy
/track endpoint have no short_link_id.
"""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text, func

from tradapi.models.base import Base, BaseModel


class Shortlink(BaseModel):
    __tablename__ = "shortlinks"

    # The public code used in /l/{id}
    id = Column(String(32), primary_key=True)
    destination_url = Column(Text)
    partner_id = Column(String(128), index=True)
    campaign = Column(String(128))
    # Only ever incremented
    click_count = Column(BigInteger, nullable=False, default=0, server_default="0")


class LinkClick(Base):
    __tablename__ = "link_clicks"

    id = Column(String(32), primary_key=True)
    referrer_id = Column(String(128), index=True)
    short_link_id = Column(String(32), ForeignKey("shortlinks.id"), index=True)
    target_url = Column(Text, nullable=False)
    campaign = Column(String(128))
    user_agent = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
