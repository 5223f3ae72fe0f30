"""
Draft Sanitizer - Total Boundary Between Client State and Storage

Converts an arbitrary, possibly malformed client draft into a canonical,
fully-defaulted Draft. This is a total function: every input, however
malformed, produces a valid Draft. No exceptions are raised here; validation
belongs to the phase validator.

Steps:
1. Deep strip of non-serializable values (binary blobs, file handles, cycles)
2. Field-by-field coercion (strings, numbers, lists, booleans, clamped ints)
3. Media normalization (legacy aliases, hero promotion)
4. Unit type normalization (ids, defaults, paired "to" values)
5. Nature normalization (strict allow-list)
"""

from __future__ import annotations

import io
import math
import uuid
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Final, Iterable, Optional, TypeVar

from core.wizard.schema import (
    DEVELOPMENT_TYPE_ALIASES,
    TOTAL_PHASES,
    AuctionStatus,
    Classification,
    CommercialConfig,
    DevelopmentData,
    DevelopmentType,
    Draft,
    Finalisation,
    LandConfig,
    Location,
    MediaBundle,
    Nature,
    ParkingType,
    ResidentialConfig,
    TransactionType,
    UnitType,
)


E = TypeVar("E", bound=Enum)

_DROPPED: Final = object()

# Media field aliases, in priority order
HERO_ALIASES: Final[tuple[str, ...]] = ("heroImage", "hero", "primary")
PHOTO_ALIASES: Final[tuple[str, ...]] = ("photos", "gallery")

# Legacy numeric parking values ("1", "2") mean open bays
PARKING_ALIASES: Final[dict[str, ParkingType]] = {
    "1": ParkingType.OPEN,
    "2": ParkingType.OPEN,
}

TRUE_STRINGS: Final[frozenset[str]] = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS: Final[frozenset[str]] = frozenset({"false", "0", "no", "off", ""})


# =============================================================================
# Step 1 - Deep Strip
# =============================================================================


def _is_binary(value: Any) -> bool:
    """Check for binary blobs and file handles."""
    if isinstance(value, (bytes, bytearray, memoryview, io.IOBase)):
        return True
    return callable(getattr(value, "read", None))


def _strip(value: Any, path: frozenset = frozenset()) -> Any:
    if _is_binary(value):
        return _DROPPED
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else _DROPPED
    if isinstance(value, Enum):
        return _strip(value.value, path)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return _strip(float(value), path)
    if not isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return _DROPPED
    # Containers already on the recursion path are cycles
    if id(value) in path:
        return _DROPPED
    path = path | {id(value)}
    if isinstance(value, Mapping):
        stripped = {}
        for key, item in value.items():
            clean = _strip(item, path)
            if clean is not _DROPPED:
                stripped[str(key)] = clean
        return stripped
    items = [_strip(item, path) for item in value]
    return [clean for clean in items if clean is not _DROPPED]


def deep_strip(value: Any) -> Any:
    """
    Recursively remove non-serializable values.

    Only JSON-safe values survive: mappings are rebuilt key by key, lists,
    tuples and sets become filtered lists, non-finite floats and unknown
    objects are dropped, and containers that refer back to themselves are
    cut. None is preserved. A top-level dropped value becomes None.
    """
    clean = _strip(value)
    return None if clean is _DROPPED else clean


# =============================================================================
# Step 2 - Coercion Helpers
# =============================================================================


def _tidy_number(number: float) -> float:
    """Collapse integral floats to int so canonical numbers compare cleanly."""
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def coerce_str(value: Any, default: str = "") -> str:
    """Coerce to string. None and containers fall back to default."""
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        return str(_tidy_number(value))
    return str(value)


def coerce_number(value: Any, default: Any = 0) -> Any:
    """Parse a number. Non-finite or unparseable input falls back to default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _tidy_number(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
        return _tidy_number(number) if math.isfinite(number) else default
    return default


def coerce_list(value: Any, default: Optional[Iterable[Any]] = None) -> list:
    """Coerce to list. Non-list input falls back to default (empty list)."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return list(default) if default is not None else []


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Coerce to bool, accepting common string and numeric spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return default


def clamp_int(
    value: Any,
    minimum: int,
    maximum: Optional[int] = None,
    default: int = 0,
) -> int:
    """Floor then clamp into [minimum, maximum]; non-finite input gives default."""
    number = coerce_number(value, None)
    if number is None:
        return default
    result = max(minimum, math.floor(number))
    if maximum is not None:
        result = min(maximum, result)
    return result


def coerce_str_list(value: Any) -> list[str]:
    """Coerce to a list of non-empty strings, dropping duplicates."""
    result: list[str] = []
    for item in coerce_list(value):
        text = coerce_str(item).strip()
        if text and text not in result:
            result.append(text)
    return result


def coerce_enum(
    enum_cls: type[E],
    value: Any,
    default: E,
    aliases: Optional[Mapping[str, E]] = None,
) -> E:
    """Map a value onto a closed enum; unknown values give default."""
    if isinstance(value, enum_cls):
        return value
    text = coerce_str(value).strip().lower()
    try:
        return enum_cls(text)
    except ValueError:
        if aliases and text in aliases:
            return aliases[text]
        return default


def _non_negative(value: Any, default: Any = 0) -> Any:
    return max(0, coerce_number(value, default))


def _first_present(data: Mapping, keys: Iterable[str]) -> Any:
    """Get the first value among keys that is not None."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    text = coerce_str(value).strip()
    return text or None


# =============================================================================
# Step 3 - Media Normalization
# =============================================================================


def _media_item(value: Any) -> Optional[dict]:
    """Media items are JSON objects; bare URLs are wrapped."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        return {"url": value.strip()}
    return None


def _media_list(value: Any) -> list[dict]:
    return [item for item in map(_media_item, coerce_list(value)) if item is not None]


def is_featured_media(item: Mapping) -> bool:
    """Check whether a media item is flagged as the primary image."""
    return (
        coerce_bool(item.get("isPrimary"))
        or coerce_bool(item.get("featured"))
        or item.get("category") == "featured"
    )


def normalize_media(raw: Any) -> MediaBundle:
    """
    Normalize media fields into the canonical bundle.

    Accepts legacy aliases for hero and photos. When no hero is set, the
    first featured photo (or the first photo) is promoted and removed from
    the photo list.
    """
    data = _as_dict(deep_strip(raw))

    hero = _media_item(_first_present(data, HERO_ALIASES))
    photos = _media_list(_first_present(data, PHOTO_ALIASES))
    videos = _media_list(data.get("videos"))
    documents = _media_list(data.get("documents"))

    if hero is None and photos:
        index = next((i for i, photo in enumerate(photos) if is_featured_media(photo)), 0)
        hero = photos.pop(index)
    if hero is not None and hero.get("id") is not None:
        photos = [photo for photo in photos if photo.get("id") != hero["id"]]

    return MediaBundle(
        hero_image=hero,
        photos=photos,
        videos=videos,
        documents=documents,
    )


# =============================================================================
# Step 4 - Unit Type Normalization
# =============================================================================


def generate_unit_id() -> str:
    """Generate a unique unit type ID."""
    return f"unit-{uuid.uuid4().hex[:12]}"


def _unit_amenities(value: Any) -> list[str]:
    # Older drafts split amenities into inherited and unit-specific lists
    if isinstance(value, Mapping):
        return coerce_str_list(coerce_list(value.get("standard")) + coerce_list(value.get("additional")))
    return coerce_str_list(value)


def normalize_unit_type(raw: Any, index: int = 0) -> UnitType:
    """
    Normalize a single unit type entry.

    Synthesizes an id when absent. Paired "to" values default to their
    "from" value, and available units default to total units.
    """
    data = _as_dict(deep_strip(raw))

    unit_id = coerce_str(data.get("id")).strip() or generate_unit_id()

    price_from = _non_negative(_first_present(data, ("priceFrom", "basePriceFrom")))
    price_to_raw = _first_present(data, ("priceTo", "basePriceTo"))
    price_to = _non_negative(price_to_raw, price_from)

    rent_from = _non_negative(data.get("monthlyRentFrom"))
    rent_to = _non_negative(data.get("monthlyRentTo"), rent_from)

    parking_raw = _first_present(data, ("parkingType", "parking"))
    parking_type = coerce_enum(ParkingType, parking_raw, ParkingType.NONE, PARKING_ALIASES)
    bays_default = 0
    if parking_type != ParkingType.NONE:
        bays_default = max(0, math.floor(coerce_number(parking_raw, 0)))

    total_units = clamp_int(data.get("totalUnits"), 0, default=0)

    return UnitType(
        id=unit_id,
        name=coerce_str(data.get("name")),
        bedrooms=clamp_int(data.get("bedrooms"), 0, default=0),
        bathrooms=_non_negative(data.get("bathrooms")),
        parking_type=parking_type,
        parking_bays=clamp_int(data.get("parkingBays"), 0, default=bays_default),
        unit_size=_non_negative(data.get("unitSize")),
        yard_size=_non_negative(data.get("yardSize")),
        price_from=price_from,
        price_to=price_to,
        monthly_rent_from=rent_from,
        monthly_rent_to=rent_to,
        lease_term=coerce_str(data.get("leaseTerm")),
        is_furnished=coerce_bool(data.get("isFurnished")),
        deposit_required=coerce_bool(data.get("depositRequired")),
        starting_bid=_non_negative(data.get("startingBid")),
        reserve_price=_non_negative(data.get("reservePrice")),
        auction_start_date=_optional_str(data.get("auctionStartDate")),
        auction_end_date=_optional_str(data.get("auctionEndDate")),
        auction_status=coerce_enum(AuctionStatus, data.get("auctionStatus"), AuctionStatus.SCHEDULED),
        total_units=total_units,
        available_units=clamp_int(data.get("availableUnits"), 0, default=total_units),
        amenities=_unit_amenities(data.get("amenities")),
        display_order=clamp_int(data.get("displayOrder"), 0, default=index),
        is_active=coerce_bool(data.get("isActive"), True),
    )


def normalize_unit_types(raw: Any) -> list[UnitType]:
    """Normalize every unit type, re-issuing duplicate ids."""
    units: list[UnitType] = []
    seen: set[str] = set()
    for index, entry in enumerate(coerce_list(raw)):
        unit = normalize_unit_type(entry, index)
        if unit.id in seen:
            unit.id = generate_unit_id()
        seen.add(unit.id)
        units.append(unit)
    return units


# =============================================================================
# Step 5 - Nature Normalization
# =============================================================================


def normalize_nature(value: Any) -> Nature:
    """Only the literal "phase" is a phase; everything else is new."""
    if value == Nature.PHASE.value or value is Nature.PHASE:
        return Nature.PHASE
    return Nature.NEW


# =============================================================================
# Block Normalizers
# =============================================================================


def _development_type(data: Mapping, classification: Mapping) -> DevelopmentType:
    raw = data.get("developmentType")
    if raw is None:
        # Older drafts only carried the type inside classification
        raw = classification.get("type")
    return coerce_enum(DevelopmentType, raw, DevelopmentType.RESIDENTIAL, DEVELOPMENT_TYPE_ALIASES)


def _location(raw: Any) -> Location:
    data = _as_dict(raw)
    return Location(
        address=coerce_str(data.get("address")),
        city=coerce_str(data.get("city")),
        province=coerce_str(data.get("province")),
        suburb=coerce_str(data.get("suburb")),
        postal_code=coerce_str(data.get("postalCode")),
        latitude=coerce_str(data.get("latitude")),
        longitude=coerce_str(data.get("longitude")),
    )


def _development_data(raw: Any, overview: Mapping) -> DevelopmentData:
    data = _as_dict(raw)
    # Older drafts kept content in a separate overview block
    return DevelopmentData(
        name=coerce_str(data.get("name")),
        description=coerce_str(_first_present(data, ("description",)) or overview.get("description")),
        nature=normalize_nature(data.get("nature")),
        parent_development_id=coerce_str(data.get("parentDevelopmentId")),
        location=_location(data.get("location")),
        amenities=coerce_str_list(_first_present(data, ("amenities",)) or overview.get("amenities")),
        highlights=coerce_str_list(_first_present(data, ("highlights",)) or overview.get("highlights")),
        media=normalize_media(data.get("media")),
    )


def _classification(data: Mapping) -> Classification:
    return Classification(
        type=coerce_str(data.get("type")),
        sub_type=coerce_str(data.get("subType")),
        ownership=coerce_str(data.get("ownership")),
    )


def _residential_config(raw: Any) -> ResidentialConfig:
    data = _as_dict(raw)
    return ResidentialConfig(
        residential_type=coerce_str(data.get("residentialType")),
        community_types=coerce_str_list(data.get("communityTypes")),
        security_features=coerce_str_list(data.get("securityFeatures")),
    )


def _commercial_config(raw: Any) -> CommercialConfig:
    data = _as_dict(raw)
    return CommercialConfig(
        commercial_type=coerce_str(data.get("commercialType")),
        features=coerce_str_list(data.get("features")),
    )


def _land_config(raw: Any) -> LandConfig:
    data = _as_dict(raw)
    return LandConfig(
        land_type=coerce_str(data.get("landType")),
        infrastructure=coerce_str_list(data.get("infrastructure")),
    )


def _finalisation(raw: Any) -> Finalisation:
    data = _as_dict(raw)
    return Finalisation(
        sales_team_ids=coerce_str_list(data.get("salesTeamIds")),
        marketing_company=coerce_str(data.get("marketingCompany")),
        is_published=coerce_bool(data.get("isPublished")),
    )


# =============================================================================
# Entry Point
# =============================================================================


def sanitize(raw: Any) -> Draft:
    """
    Convert any input into a canonical Draft.

    Never raises. sanitize(sanitize(x)) == sanitize(x) for any x.

    Args:
        raw: Client draft payload (mapping, Draft, or anything else)

    Returns:
        Fully populated canonical Draft
    """
    if isinstance(raw, Draft):
        raw = raw.to_dict()

    data = _as_dict(deep_strip(raw))
    classification = _as_dict(data.get("classification"))
    development = _as_dict(data.get("developmentData"))
    overview = _as_dict(data.get("overview"))

    transaction_raw = _first_present(data, ("transactionType",))
    if transaction_raw is None:
        transaction_raw = development.get("transactionType")

    return Draft(
        current_phase=clamp_int(data.get("currentPhase"), 1, TOTAL_PHASES, default=1),
        development_type=_development_type(data, classification),
        transaction_type=coerce_enum(TransactionType, transaction_raw, TransactionType.FOR_SALE),
        classification=_classification(classification),
        residential_config=_residential_config(data.get("residentialConfig")),
        commercial_config=_commercial_config(data.get("commercialConfig")),
        land_config=_land_config(data.get("landConfig")),
        development_data=_development_data(development, overview),
        unit_types=normalize_unit_types(data.get("unitTypes")),
        finalisation=_finalisation(data.get("finalisation")),
    )
