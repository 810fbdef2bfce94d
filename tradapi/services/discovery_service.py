"""
Discovery engine

Fetches the published catalog, applies the hard filters, scores every
surviving product and returns one page sorted by trad_rank.

Scores are recomputed on every request and never stored.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

from tradapi.config import Settings
from tradapi.database.connection import Database
from tradapi.repositories.product_repository import ProductRepository
from tradapi.repositories.signals_repository import SignalsRepository
from tradapi.schemas.catalog import AdSlotRecord, ManufacturerRecord, ProductRecord
from tradapi.schemas.discovery import (
    ModerationInfo,
    PaginatedProducts,
    ProductWithRanking,
    SearchOptions,
)
from tradapi.utils.timezone_utils import get_utc_now, to_iso_string, to_utc

logger = logging.getLogger(__name__)


# --- Scoring weights ---
MANUAL_OVERRIDE = 20000
SPONSORSHIP_LIFT = 2000
SPONSORSHIP_FLOW = 5000
SPONSORSHIP_SURGE = 10000
VERIFIED_SELLER = 500
RATING = 50  # per star
REVIEW_COUNT = 1  # per review
HAS_FOLLOW = 200
IN_WISHLIST = 100
DEMOTION_PENALTY = -5000
UNRESOLVED_REPORT = -100  # per report

PLAN_BOOSTS = {
    "lift": SPONSORSHIP_LIFT,
    "flow": SPONSORSHIP_FLOW,
    "surge": SPONSORSHIP_SURGE,
}


def plan_boost(plan_id: str) -> int:
    """Unknown plan ids rank like the entry tier"""
    return PLAN_BOOSTS.get(plan_id, SPONSORSHIP_LIFT)


def pinned_product_ids(ad_slots: List[AdSlotRecord]) -> Set[str]:
    """Ids pinned by product ad slots; entries are {"id": ...} objects or bare ids"""
    pinned = set()
    for slot in ad_slots:
        if slot.type != "product" or not isinstance(slot.pinned_entity_ids, list):
            continue
        for entry in slot.pinned_entity_ids:
            if isinstance(entry, dict) and entry.get("id"):
                pinned.add(str(entry["id"]))
            elif isinstance(entry, str):
                pinned.add(entry)
    return pinned


@dataclass
class RankingSignals:
    """Everything besides the catalog that feeds the score"""

    pinned_ids: Set[str] = field(default_factory=set)
    plan_ids: Set[str] = field(default_factory=set)
    report_counts: Dict[str, int] = field(default_factory=dict)
    followed_ids: Set[str] = field(default_factory=set)
    wishlisted_ids: Set[str] = field(default_factory=set)
    personalised: bool = False


class DiscoveryService:
    """상품 탐색/랭킹 서비스"""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.settings = settings

    def _normalize_options(self, options: Union[None, str, SearchOptions]) -> SearchOptions:
        if options is None:
            return SearchOptions(
                limit=self.settings.DISCOVERY_DEFAULT_LIMIT,
                moq_range=self.settings.DISCOVERY_MOQ_RANGE,
            )
        if isinstance(options, str):
            # bare user id: personalised feed, no filters
            return SearchOptions(
                user_id=options,
                limit=self.settings.DISCOVERY_DEFAULT_LIMIT,
                moq_range=self.settings.DISCOVERY_MOQ_RANGE,
            )
        return options

    def get_ranked_products(self, options: Union[None, str, SearchOptions] = None) -> PaginatedProducts:
        """
        Filter, score, sort and paginate the catalog.

        Args:
            options: None, a user id for a personalised unfiltered feed, or SearchOptions

        Returns:
            PaginatedProducts: always carries a list, empty when the store is
            disabled or a read fails
        """
        opts = self._normalize_options(options)

        if not self.database.available:
            logger.warning("Discovery requested while the store is disabled; returning empty page")
            return PaginatedProducts()

        try:
            with self.database.session() as db:
                catalog = ProductRepository(db).list_catalog(
                    category=opts.category, product_ids=opts.product_ids
                )
                candidates = [
                    (product, seller) for product, seller in catalog if self._passes_filters(product, seller, opts)
                ]
                signals = self._load_signals(SignalsRepository(db), [p.id for p, _ in candidates], opts.user_id)
            ranked = [self._rank(product, seller, signals) for product, seller in candidates]
        except Exception:
            logger.exception("Error fetching ranked products")
            return PaginatedProducts()

        # sorted() is stable, ties keep catalog order (newest first)
        ranked = sorted(ranked, key=lambda item: item.trad_rank, reverse=True)

        total_count = len(ranked)
        limit = min(opts.limit, self.settings.DISCOVERY_MAX_LIMIT)
        total_pages = math.ceil(total_count / limit)
        start = (opts.page - 1) * limit

        logger.info(
            f"Ranked {total_count} products (page {opts.page}/{total_pages}, "
            f"query='{opts.search_query}', category={opts.category})"
        )
        return PaginatedProducts(
            products=ranked[start:start + limit],
            total_count=total_count,
            total_pages=total_pages,
        )

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    @staticmethod
    def _passes_filters(product: ProductRecord, seller: ManufacturerRecord, opts: SearchOptions) -> bool:
        if seller.is_suspended:
            return False
        if product.status != "published":
            return False
        if opts.is_direct and not product.list_on_direct:
            return False
        if opts.category and opts.category != "all" and product.category != opts.category:
            return False
        if opts.verified_only and not seller.is_verified:
            return False

        if opts.is_direct and product.retail_price:
            price = product.retail_price
        else:
            price = product.price or 0
        if opts.min_price is not None and price < opts.min_price:
            return False
        if opts.max_price is not None and price > opts.max_price:
            return False

        if opts.moq is not None and not opts.is_direct:
            product_moq = product.moq or 1
            lower_bound = max(0, opts.moq - opts.moq_range)
            upper_bound = opts.moq + opts.moq_range
            if product_moq < lower_bound or product_moq > upper_bound:
                return False

        if opts.rating is not None and (product.rating or 0) < opts.rating:
            return False

        if opts.search_query:
            needle = opts.search_query.lower()
            name_hit = needle in (product.name or "").lower()
            keyword_hit = any(needle in str(kw).lower() for kw in (product.search_keywords or []))
            if not (name_hit or keyword_hit):
                return False

        return True

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _load_signals(self, repo: SignalsRepository, product_ids: List[str], user_id: Optional[str]) -> RankingSignals:
        signals = RankingSignals(
            pinned_ids=pinned_product_ids(repo.get_active_ad_slots(get_utc_now())),
            plan_ids=repo.get_marketing_plan_ids(),
            report_counts=repo.count_unresolved_reports(product_ids),
        )
        if user_id:
            signals.personalised = True
            signals.followed_ids = repo.get_followed_manufacturer_ids(user_id)
            signals.wishlisted_ids = repo.get_wishlisted_product_ids(user_id)
        return signals

    @staticmethod
    def _active_plan(seller: ManufacturerRecord, plan_ids: Set[str]) -> Optional[str]:
        if not seller.marketing_plan_id or seller.marketing_plan_id not in plan_ids:
            return None
        if seller.plan_expires_at and to_utc(seller.plan_expires_at) < get_utc_now():
            return None
        return seller.marketing_plan_id

    def _rank(self, product: ProductRecord, seller: ManufacturerRecord, signals: RankingSignals) -> ProductWithRanking:
        trad_rank = 0.0
        is_sponsored = False

        if product.id in signals.pinned_ids:
            trad_rank += MANUAL_OVERRIDE
            is_sponsored = True

        plan_id = self._active_plan(seller, signals.plan_ids)
        if plan_id:
            trad_rank += plan_boost(plan_id)
            is_sponsored = True

        if seller.is_verified:
            trad_rank += VERIFIED_SELLER
        trad_rank += (product.rating or 0) * RATING
        trad_rank += (product.review_count or 0) * REVIEW_COUNT

        if product.is_demoted:
            trad_rank += DEMOTION_PENALTY
        if seller.is_demoted:
            trad_rank += DEMOTION_PENALTY

        report_count = signals.report_counts.get(product.id, 0)
        trad_rank += report_count * UNRESOLVED_REPORT

        if signals.personalised:
            if seller.id in signals.followed_ids:
                trad_rank += HAS_FOLLOW
            if product.id in signals.wishlisted_ids:
                trad_rank += IN_WISHLIST

        data: Dict[str, Any] = product.model_dump(exclude={"created_at", "updated_at", "is_demoted"})
        data["search_keywords"] = [str(kw) for kw in (product.search_keywords or [])]
        return ProductWithRanking(
            **data,
            created_at=to_iso_string(product.created_at),
            updated_at=to_iso_string(product.updated_at),
            trad_rank=trad_rank,
            is_sponsored=is_sponsored,
            manufacturer_name=seller.shop_name,
            manufacturer_slug=seller.slug,
            manufacturer_location=seller.location,
            lead_time=seller.lead_time,
            is_verified=seller.is_verified,
            shop_id=seller.shop_id,
            moderation=ModerationInfo(
                is_demoted=product.is_demoted,
                seller_demoted=seller.is_demoted,
                unresolved_reports=report_count,
            ),
        )
