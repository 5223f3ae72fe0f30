"""
Publish - Converting a Completed Draft into a Development Listing

Single source of truth for turning wizard state into a storage-safe listing
payload, plus the in-memory publisher used by the web layer and tests.

Rules:
1. Trim all strings; empty string becomes None
2. Aggregate pricing, rental, and auction terms across active unit types
3. Drop editor-only fields (current phase, inactive config blocks)
4. Re-check aggregate consistency before anything is stored
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from core.wizard.errors import PublishFailedError
from core.wizard.repository import (
    DevelopmentRecord,
    DevelopmentRepository,
    get_development_repository,
)
from core.wizard.sanitize import sanitize
from core.wizard.schema import Nature, TransactionType, UnitType
from core.wizard.validation import parse_date


logger = logging.getLogger(__name__)


# =============================================================================
# Publish Results
# =============================================================================


@dataclass(frozen=True)
class PublishSuccess:
    """The draft was published and is now closed."""

    result: Any
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    ok = True


@dataclass(frozen=True)
class PublishBlocked:
    """The publish gate refused the draft. Nothing was sent."""

    errors: tuple[str, ...]

    ok = False

    def to_dict(self) -> dict:
        return {"ok": False, "errors": list(self.errors)}


class Publisher(Protocol):
    """Collaborator that turns a canonical draft into a live development."""

    async def publish(self, draft: dict, *, draft_id: Optional[int] = None) -> Any:
        ...


# =============================================================================
# Normalization Utilities
# =============================================================================


def empty_to_none(value: Any) -> Optional[str]:
    """Trim strings; empty or missing values become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _min_positive(values: list[float]) -> Optional[float]:
    positive = [v for v in values if v > 0]
    return min(positive) if positive else None


def _max_positive(values: list[float]) -> Optional[float]:
    positive = [v for v in values if v > 0]
    return max(positive) if positive else None


def _media_urls(items: list[dict]) -> list[str]:
    urls = []
    for item in items:
        url = empty_to_none(item.get("url"))
        if url and url not in urls:
            urls.append(url)
    return urls


def compute_auction_range(units: list[UnitType]) -> dict:
    """
    Compute the development-level auction window and minimum bids.

    Returns:
        Dictionary with earliest start, latest end, lowest starting bid,
        and lowest reserve across unit types
    """
    starts = [(parse_date(u.auction_start_date), u.auction_start_date) for u in units]
    ends = [(parse_date(u.auction_end_date), u.auction_end_date) for u in units]
    starts = [pair for pair in starts if pair[0] is not None]
    ends = [pair for pair in ends if pair[0] is not None]

    return {
        "auctionStartDate": min(starts)[1] if starts else None,
        "auctionEndDate": max(ends)[1] if ends else None,
        "startingBidFrom": _min_positive([u.starting_bid for u in units]),
        "reservePriceFrom": _min_positive([u.reserve_price for u in units]),
    }


# =============================================================================
# Main Normalization
# =============================================================================


def normalize_for_publish(draft: Any) -> dict:
    """
    Convert a draft into a storage-safe development listing.

    Args:
        draft: Draft or raw draft payload (sanitized first)

    Returns:
        Listing dictionary ready for storage
    """
    draft = sanitize(draft)
    data = draft.development_data
    location = data.location
    units = [unit for unit in draft.unit_types if unit.is_active]
    transaction = draft.transaction_type

    listing = {
        "name": empty_to_none(data.name),
        "description": empty_to_none(data.description),
        "developmentType": draft.development_type.value,
        "transactionType": transaction.value,
        "classificationType": empty_to_none(draft.classification.type),
        "subType": empty_to_none(draft.classification.sub_type),
        "ownershipType": empty_to_none(draft.classification.ownership),
        "nature": data.nature.value,
        "parentDevelopmentId": (
            empty_to_none(data.parent_development_id) if data.nature == Nature.PHASE else None
        ),
        "configuration": draft.active_config.to_dict(),

        # Location
        "address": empty_to_none(location.address),
        "suburb": empty_to_none(location.suburb),
        "city": empty_to_none(location.city),
        "province": empty_to_none(location.province),
        "postalCode": empty_to_none(location.postal_code),
        "latitude": empty_to_none(location.latitude),
        "longitude": empty_to_none(location.longitude),

        # Content
        "amenities": list(data.amenities) or None,
        "highlights": list(data.highlights) or None,
        "images": _media_urls(
            ([data.media.hero_image] if data.media.hero_image else []) + data.media.photos
        ),
        "videos": _media_urls(data.media.videos),
        "documents": _media_urls(data.media.documents),

        # Pricing (only the terms of the active transaction mode are set)
        "priceFrom": None,
        "priceTo": None,
        "monthlyRentFrom": None,
        "monthlyRentTo": None,
        "auctionStartDate": None,
        "auctionEndDate": None,
        "startingBidFrom": None,
        "reservePriceFrom": None,

        # Inventory
        "totalUnits": sum(unit.total_units for unit in units),
        "availableUnits": sum(unit.available_units for unit in units),
        "unitTypes": [unit.to_dict() for unit in units],

        # Finalisation
        "salesTeamIds": list(draft.finalisation.sales_team_ids),
        "marketingCompany": empty_to_none(draft.finalisation.marketing_company),
        "isPublished": True,
    }

    if transaction == TransactionType.FOR_RENT:
        listing["monthlyRentFrom"] = _min_positive([u.monthly_rent_from for u in units])
        listing["monthlyRentTo"] = _max_positive([u.monthly_rent_to for u in units])
    elif transaction == TransactionType.AUCTION:
        listing.update(compute_auction_range(units))
    else:
        listing["priceFrom"] = _min_positive([u.price_from for u in units])
        listing["priceTo"] = _max_positive([u.price_to for u in units])

    return listing


def check_listing(listing: dict) -> list[str]:
    """
    Consistency checks on a normalized listing.

    Returns:
        List of problems (empty if the listing is consistent)
    """
    problems: list[str] = []

    if not listing.get("name"):
        problems.append("Development name is required")
    if not listing.get("city") or not listing.get("province"):
        problems.append("City and province are required")

    price_from, price_to = listing.get("priceFrom"), listing.get("priceTo")
    if price_from is not None and price_to is not None and price_from > price_to:
        problems.append("priceFrom cannot exceed priceTo")

    rent_from, rent_to = listing.get("monthlyRentFrom"), listing.get("monthlyRentTo")
    if rent_from is not None and rent_to is not None and rent_from > rent_to:
        problems.append("monthlyRentFrom cannot exceed monthlyRentTo")

    start = parse_date(listing.get("auctionStartDate"))
    end = parse_date(listing.get("auctionEndDate"))
    if start is not None and end is not None and end <= start:
        problems.append("Auction end date must be after the start date")

    bid, reserve = listing.get("startingBidFrom"), listing.get("reservePriceFrom")
    if bid is not None and reserve is not None and reserve < bid:
        problems.append("Reserve price cannot be less than the starting bid")

    return problems


# =============================================================================
# In-Memory Publisher
# =============================================================================


class InMemoryPublisher:
    """
    Publisher backed by the development repository.

    Usage:
        publisher = InMemoryPublisher()
        outcome = await session.publish(publisher)
    """

    def __init__(self, repository: Optional[DevelopmentRepository] = None):
        self._repository = repository or get_development_repository()

    async def publish(self, draft: dict, *, draft_id: Optional[int] = None) -> DevelopmentRecord:
        """
        Normalize and store the draft as a development.

        Raises:
            PublishFailedError: If the normalized listing is inconsistent
                (not retryable without editing the draft)
        """
        listing = normalize_for_publish(draft)
        problems = check_listing(listing)
        if problems:
            raise PublishFailedError("; ".join(problems), retryable=False)

        record = self._repository.create(listing, draft_id=draft_id)
        logger.info("Published development %s from draft %s", record.development_id, draft_id)
        return record
