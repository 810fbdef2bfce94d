from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tradapi.models.referral import LinkClick, Shortlink
from tradapi.repositories.base import BaseRepository
from tradapi.schemas.referral import ShortlinkResponse


class ShortlinkRepository(BaseRepository[Shortlink, ShortlinkResponse]):
    def __init__(self, db: Session):
        super().__init__(Shortlink, ShortlinkResponse, db)

    def exists(self, link_id: str) -> bool:
        self._ensure_clean_session()
        return self.db.query(Shortlink.id).filter(Shortlink.id == link_id).first() is not None

    def increment_clicks(self, link_id: str, commit: bool = True) -> bool:
        """Atomic server-side increment, safe under concurrent resolutions"""
        self._ensure_clean_session()
        updated = (
            self.db.query(Shortlink)
            .filter(Shortlink.id == link_id)
            .update({Shortlink.click_count: Shortlink.click_count + 1}, synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return bool(updated)

    def list_by_partner(self, partner_id: str) -> List[ShortlinkResponse]:
        return self.find_all(
            filters={"partner_id": partner_id},
            order_by=Shortlink.created_at.desc(),
        )

    def total_clicks_for_partner(self, partner_id: str) -> int:
        self._ensure_clean_session()
        total = (
            self.db.query(func.coalesce(func.sum(Shortlink.click_count), 0))
            .filter(Shortlink.partner_id == partner_id)
            .scalar()
        )
        return int(total or 0)


class LinkClickRepository:
    """Append-only click log"""

    def __init__(self, db: Session):
        self.db = db

    def add_click(
        self,
        click_id: str,
        referrer_id: Optional[str],
        target_url: str,
        user_agent: str = "",
        short_link_id: Optional[str] = None,
        campaign: Optional[str] = None,
        commit: bool = True,
    ) -> None:
        self.db.add(
            LinkClick(
                id=click_id,
                referrer_id=referrer_id,
                short_link_id=short_link_id,
                target_url=target_url,
                campaign=campaign,
                user_agent=user_agent or "",
            )
        )
        if commit:
            self.db.commit()
