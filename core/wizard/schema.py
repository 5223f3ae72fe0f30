"""
Development Wizard Schema - Canonical Draft Shape

Defines the canonical draft structure persisted by the development wizard.
Every field has a well-typed default so downstream code can assume a fully
populated draft once it has passed through the sanitizer.

Principles:
- Closed enums for every closed domain (type, nature, parking, transaction)
- Wire format is the client JSON shape (camelCase keys)
- Media items stay loose JSON objects
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Optional, Union


# =============================================================================
# Enums
# =============================================================================


class DevelopmentType(Enum):
    """Top-level category of a development."""

    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    MIXED = "mixed"
    LAND = "land"


class Nature(Enum):
    """Whether the development is new or a phase of an existing one."""

    NEW = "new"
    PHASE = "phase"


class ParkingType(Enum):
    """Parking offered with a unit type."""

    NONE = "none"
    OPEN = "open"
    COVERED = "covered"
    CARPORT = "carport"
    GARAGE = "garage"


class TransactionType(Enum):
    """How units in the development are transacted."""

    FOR_SALE = "for_sale"
    FOR_RENT = "for_rent"
    AUCTION = "auction"


class AuctionStatus(Enum):
    """Lifecycle of an auctioned unit type."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    SOLD = "sold"
    PASSED_IN = "passed_in"
    WITHDRAWN = "withdrawn"


class DraftStatus(Enum):
    """Lifecycle of a draft inside an editing session."""

    EDITING = "editing"
    PUBLISHED = "published"  # Terminal - converted to a live development
    DISCARDED = "discarded"  # Terminal - user chose to start fresh


# =============================================================================
# Phases
# =============================================================================


@dataclass(frozen=True)
class WizardPhase:
    """A single sequential step of the wizard."""

    number: int
    key: str
    label: str
    description: str = ""


PHASES: Final[tuple[WizardPhase, ...]] = (
    WizardPhase(1, "developmentType", "Development Type", "Select the category of your development"),
    WizardPhase(2, "classification", "Classification", "Type, sub-type and ownership model"),
    WizardPhase(3, "configuration", "Configuration", "Type-specific configuration"),
    WizardPhase(4, "identity", "Identity", "Name, location, and description"),
    WizardPhase(5, "media", "Media", "Photos, videos, and documents"),
    WizardPhase(6, "units", "Unit Types", "Define unit templates and inventory"),
    WizardPhase(7, "finalisation", "Finalisation", "Sales team, marketing, and publish"),
)

TOTAL_PHASES: Final[int] = len(PHASES)

# Legacy values accepted for development type
DEVELOPMENT_TYPE_ALIASES: Final[dict[str, DevelopmentType]] = {
    "mixed_use": DevelopmentType.MIXED,
    "mixed-use": DevelopmentType.MIXED,
}


def get_phase(number: int) -> Optional[WizardPhase]:
    """Get phase descriptor by number."""
    for phase in PHASES:
        if phase.number == number:
            return phase
    return None


# =============================================================================
# Nested Blocks
# =============================================================================


@dataclass
class Location:
    """Street-level location of a development."""

    address: str = ""
    city: str = ""
    province: str = ""
    suburb: str = ""
    postal_code: str = ""
    latitude: str = ""
    longitude: str = ""

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "city": self.city,
            "province": self.province,
            "suburb": self.suburb,
            "postalCode": self.postal_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass
class MediaBundle:
    """
    Classified development media.

    The hero image is never duplicated inside photos.
    """

    hero_image: Optional[dict] = None
    photos: list[dict] = field(default_factory=list)
    videos: list[dict] = field(default_factory=list)
    documents: list[dict] = field(default_factory=list)

    @property
    def image_count(self) -> int:
        """Count hero plus photos."""
        return (1 if self.hero_image else 0) + len(self.photos)

    def all_items(self) -> list[dict]:
        """Flatten hero, photos, videos, and documents into one list."""
        items = [self.hero_image] if self.hero_image else []
        return items + self.photos + self.videos + self.documents

    def to_dict(self) -> dict:
        return {
            "heroImage": self.hero_image,
            "photos": list(self.photos),
            "videos": list(self.videos),
            "documents": list(self.documents),
        }


@dataclass
class DevelopmentData:
    """Identity block: name, nature, location, content, and media."""

    name: str = ""
    description: str = ""
    nature: Nature = Nature.NEW
    parent_development_id: str = ""  # Only meaningful for phases
    location: Location = field(default_factory=Location)
    amenities: list[str] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    media: MediaBundle = field(default_factory=MediaBundle)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "nature": self.nature.value,
            "parentDevelopmentId": self.parent_development_id,
            "location": self.location.to_dict(),
            "amenities": list(self.amenities),
            "highlights": list(self.highlights),
            "media": self.media.to_dict(),
        }


@dataclass
class Classification:
    """Classification: type, sub-type, and ownership model."""

    type: str = ""
    sub_type: str = ""
    ownership: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "subType": self.sub_type,
            "ownership": self.ownership,
        }


@dataclass
class ResidentialConfig:
    """Configuration used by residential and mixed developments."""

    residential_type: str = ""
    community_types: list[str] = field(default_factory=list)
    security_features: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "residentialType": self.residential_type,
            "communityTypes": list(self.community_types),
            "securityFeatures": list(self.security_features),
        }


@dataclass
class CommercialConfig:
    """Configuration used by commercial developments."""

    commercial_type: str = ""
    features: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "commercialType": self.commercial_type,
            "features": list(self.features),
        }


@dataclass
class LandConfig:
    """Configuration used by land developments."""

    land_type: str = ""
    infrastructure: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "landType": self.land_type,
            "infrastructure": list(self.infrastructure),
        }


TypeConfig = Union[ResidentialConfig, CommercialConfig, LandConfig]


# =============================================================================
# Unit Type
# =============================================================================


@dataclass
class UnitType:
    """
    A sellable or rentable unit configuration within a development.

    Commercial terms are read according to the draft's transaction type:
    sale prices, monthly rent, or auction terms.
    """

    id: str
    name: str = ""

    # === PHYSICAL ===
    bedrooms: int = 0
    bathrooms: float = 0
    parking_type: ParkingType = ParkingType.NONE
    parking_bays: int = 0
    unit_size: float = 0  # m2
    yard_size: float = 0  # m2

    # === SALE ===
    price_from: float = 0
    price_to: float = 0

    # === RENTAL ===
    monthly_rent_from: float = 0
    monthly_rent_to: float = 0
    lease_term: str = ""
    is_furnished: bool = False
    deposit_required: bool = False

    # === AUCTION ===
    starting_bid: float = 0
    reserve_price: float = 0
    auction_start_date: Optional[str] = None
    auction_end_date: Optional[str] = None
    auction_status: AuctionStatus = AuctionStatus.SCHEDULED

    # === INVENTORY ===
    total_units: int = 0
    available_units: int = 0

    amenities: list[str] = field(default_factory=list)
    display_order: int = 0
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "parkingType": self.parking_type.value,
            "parkingBays": self.parking_bays,
            "unitSize": self.unit_size,
            "yardSize": self.yard_size,
            "priceFrom": self.price_from,
            "priceTo": self.price_to,
            "monthlyRentFrom": self.monthly_rent_from,
            "monthlyRentTo": self.monthly_rent_to,
            "leaseTerm": self.lease_term,
            "isFurnished": self.is_furnished,
            "depositRequired": self.deposit_required,
            "startingBid": self.starting_bid,
            "reservePrice": self.reserve_price,
            "auctionStartDate": self.auction_start_date,
            "auctionEndDate": self.auction_end_date,
            "auctionStatus": self.auction_status.value,
            "totalUnits": self.total_units,
            "availableUnits": self.available_units,
            "amenities": list(self.amenities),
            "displayOrder": self.display_order,
            "isActive": self.is_active,
        }


# =============================================================================
# Finalisation
# =============================================================================


@dataclass
class Finalisation:
    """Sales team assignment and marketing details."""

    sales_team_ids: list[str] = field(default_factory=list)
    marketing_company: str = ""
    is_published: bool = False

    def to_dict(self) -> dict:
        return {
            "salesTeamIds": list(self.sales_team_ids),
            "marketingCompany": self.marketing_company,
            "isPublished": self.is_published,
        }


# =============================================================================
# Draft
# =============================================================================


@dataclass
class Draft:
    """
    Canonical development wizard draft.

    Exactly one type-specific config block is semantically active, selected
    by development_type. The other blocks are retained but ignored.
    """

    current_phase: int = 1
    development_type: DevelopmentType = DevelopmentType.RESIDENTIAL
    transaction_type: TransactionType = TransactionType.FOR_SALE
    classification: Classification = field(default_factory=Classification)
    residential_config: ResidentialConfig = field(default_factory=ResidentialConfig)
    commercial_config: CommercialConfig = field(default_factory=CommercialConfig)
    land_config: LandConfig = field(default_factory=LandConfig)
    development_data: DevelopmentData = field(default_factory=DevelopmentData)
    unit_types: list[UnitType] = field(default_factory=list)
    finalisation: Finalisation = field(default_factory=Finalisation)

    @property
    def is_land(self) -> bool:
        """Land developments sell plots and skip unit-type requirements."""
        return self.development_type == DevelopmentType.LAND

    @property
    def active_config(self) -> TypeConfig:
        """Get the config block selected by development_type."""
        if self.development_type == DevelopmentType.COMMERCIAL:
            return self.commercial_config
        if self.development_type == DevelopmentType.LAND:
            return self.land_config
        return self.residential_config

    def get_unit_type(self, unit_id: str) -> Optional[UnitType]:
        """Get unit type by id."""
        for unit in self.unit_types:
            if unit.id == unit_id:
                return unit
        return None

    def to_dict(self) -> dict:
        """Convert draft to its canonical JSON shape."""
        return {
            "currentPhase": self.current_phase,
            "developmentType": self.development_type.value,
            "transactionType": self.transaction_type.value,
            "classification": self.classification.to_dict(),
            "residentialConfig": self.residential_config.to_dict(),
            "commercialConfig": self.commercial_config.to_dict(),
            "landConfig": self.land_config.to_dict(),
            "developmentData": self.development_data.to_dict(),
            "unitTypes": [unit.to_dict() for unit in self.unit_types],
            "finalisation": self.finalisation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Draft":
        """Create a canonical draft from arbitrary client data."""
        # Lazy import to avoid circular dependency
        from core.wizard.sanitize import sanitize

        return sanitize(data)
