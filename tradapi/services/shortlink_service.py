"""
Shortlink redirects and partner attribution

Growth partners share short codes (/l/<code>) or the legacy
/track?ref=<partner>&url=<path> form. Resolving a link always produces a
redirect target; click accounting happens in the background so that a slow
or broken store never delays the visitor.
"""

import logging
import secrets
import string
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tradapi.config import Settings
from tradapi.core.dispatcher import BackgroundDispatcher
from tradapi.core.exceptions import ConflictError, ValidationError
from tradapi.database.connection import Database
from tradapi.repositories.shortlink_repository import LinkClickRepository, ShortlinkRepository
from tradapi.schemas.referral import (
    PartnerShortlinksResponse,
    ShortlinkResolution,
    ShortlinkResponse,
)

logger = logging.getLogger(__name__)

# nanoid's URL-safe alphabet
URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"
CLICK_ID_LENGTH = 21
MAX_CODE_ATTEMPTS = 5


def generate_code(length: int) -> str:
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(length))


def expand_destination(destination: str, request_url: str) -> Optional[str]:
    """Resolve a stored destination against the request URL; None unless http(s)"""
    try:
        url = urljoin(request_url, destination.strip())
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return url


def with_ref(url: str, ref: str) -> str:
    """Append ref=<partner> unless the query already names one"""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if any(key == "ref" for key, _ in query):
        return url
    query.append(("ref", ref))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class ShortlinkService:
    """단축 링크 리다이렉트 및 파트너 링크 관리"""

    def __init__(self, database: Database, dispatcher: BackgroundDispatcher, settings: Settings):
        self.database = database
        self.dispatcher = dispatcher
        self.settings = settings

    # ------------------------------------------------------------------
    # Redirects
    # ------------------------------------------------------------------

    def resolve(self, link_id: str, request_url: str, user_agent: str = "") -> ShortlinkResolution:
        """
        Work out where /l/<link_id> should send the visitor.

        Raises:
            ValidationError: blank link id
        """
        if not link_id or not link_id.strip():
            raise ValidationError("Link ID is missing")

        home = urljoin(request_url, "/")

        if not self.database.available:
            logger.warning(f"Shortlink {link_id} requested while the store is disabled")
            return ShortlinkResolution(location=home)

        try:
            with self.database.session() as db:
                link = ShortlinkRepository(db).get_by_id(link_id)
        except SQLAlchemyError as e:
            logger.error(f"Error processing shortlink {link_id}: {str(e)}")
            return ShortlinkResolution(location=home)

        if link is None:
            logger.info(f"Shortlink not found: {link_id}")
            return ShortlinkResolution(location=urljoin(request_url, self.settings.SHORTLINK_NOT_FOUND_PATH))

        destination = expand_destination(link.destination_url, request_url) if link.destination_url else None
        if destination is None:
            logger.warning(f"Shortlink {link_id} has no usable destination: {link.destination_url!r}")
            return ShortlinkResolution(location=home, found=True)

        self.dispatcher.submit(
            f"shortlink_click:{link_id}",
            self._record_click,
            link_id=link_id,
            referrer_id=link.partner_id,
            target_url=link.destination_url,
            user_agent=user_agent,
            campaign=link.campaign,
        )
        return ShortlinkResolution(location=destination, partner_id=link.partner_id, found=True)

    def track_legacy(
        self, ref: Optional[str], url: Optional[str], request_url: str, user_agent: str = ""
    ) -> ShortlinkResolution:
        """Deprecated /track?ref=&url= form, kept for links already in circulation"""
        home = urljoin(request_url, "/")
        if not ref or not url:
            return ShortlinkResolution(location=home)

        destination = expand_destination(url, request_url)
        if destination is None:
            logger.warning(f"Legacy track link with unusable url {url!r} (ref {ref})")
            return ShortlinkResolution(location=home, partner_id=ref, found=True)

        if self.database.available:
            self.dispatcher.submit(
                f"legacy_click:{ref}",
                self._record_click,
                link_id=None,
                referrer_id=ref,
                target_url=url,
                user_agent=user_agent,
            )
        return ShortlinkResolution(location=with_ref(destination, ref), partner_id=ref, found=True)

    def _record_click(
        self,
        link_id: Optional[str],
        referrer_id: Optional[str],
        target_url: str,
        user_agent: str = "",
        campaign: Optional[str] = None,
    ) -> None:
        with self.database.session_scope() as db:
            if link_id is not None:
                ShortlinkRepository(db).increment_clicks(link_id, commit=False)
            LinkClickRepository(db).add_click(
                click_id=generate_code(CLICK_ID_LENGTH),
                referrer_id=referrer_id,
                target_url=target_url,
                user_agent=user_agent,
                short_link_id=link_id,
                campaign=campaign,
                commit=False,
            )

    # ------------------------------------------------------------------
    # Partner link management
    # ------------------------------------------------------------------

    def create_shortlink(
        self, partner_id: str, destination_url: str, campaign: Optional[str] = None
    ) -> ShortlinkResponse:
        destination_url = destination_url.strip()
        if not destination_url.startswith("/") and urlsplit(destination_url).scheme not in ("http", "https"):
            raise ValidationError(
                "destination_url must be a site-relative path or an http(s) URL",
                {"destination_url": destination_url},
            )

        with self.database.session() as db:
            repo = ShortlinkRepository(db)
            for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
                code = generate_code(self.settings.SHORTLINK_CODE_LENGTH)
                if repo.exists(code):
                    continue
                try:
                    link = repo.create(
                        id=code,
                        destination_url=destination_url,
                        partner_id=partner_id,
                        campaign=campaign,
                        click_count=0,
                    )
                except IntegrityError:
                    logger.warning(f"Shortlink code collision on insert (attempt {attempt})")
                    continue
                logger.info(f"Created shortlink {code} for partner {partner_id}")
                return link

        raise ConflictError("Could not allocate a unique shortlink code")

    def list_partner_shortlinks(self, partner_id: str) -> PartnerShortlinksResponse:
        with self.database.session() as db:
            repo = ShortlinkRepository(db)
            links = repo.list_by_partner(partner_id)
            total_clicks = repo.total_clicks_for_partner(partner_id)
        return PartnerShortlinksResponse(
            partner_id=partner_id, shortlinks=links, total_clicks=total_clicks
        )
