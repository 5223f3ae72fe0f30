"""
Development Wizard - Draft Engine for Multi-Phase Development Listings

Developers build a development listing over several sequential phases.
Drafts are autosaved continuously and published only once complete.

Principles:
1. Every persisted draft is canonical (sanitized, fully defaulted)
2. The newest save attempt always wins over older ones
3. Validation is advisory until publish, then it is a hard gate
4. Published and discarded drafts are closed for editing
"""

from core.wizard.schema import (
    DevelopmentType,
    Nature,
    ParkingType,
    TransactionType,
    AuctionStatus,
    DraftStatus,
    WizardPhase,
    PHASES,
    TOTAL_PHASES,
    get_phase,
    Location,
    MediaBundle,
    DevelopmentData,
    Classification,
    ResidentialConfig,
    CommercialConfig,
    LandConfig,
    UnitType,
    Finalisation,
    Draft,
)
from core.wizard.errors import (
    WizardError,
    PhaseTransitionError,
    DraftClosedError,
    PublishFailedError,
    DraftNotFoundError,
    UnitTypeNotFoundError,
)
from core.wizard.sanitize import (
    sanitize,
    deep_strip,
    normalize_media,
    normalize_unit_type,
    normalize_nature,
)
from core.wizard.storage import (
    KeyValueStore,
    MemoryStore,
    JsonFileStore,
)
from core.wizard.autosave import (
    AutoSaveController,
    AutoSaveStatus,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_STORAGE_KEY,
)
from core.wizard.validation import (
    PhaseValidationResult,
    validate_phase,
    validate_for_publish,
)
from core.wizard.repository import (
    DraftRecord,
    DraftRepository,
    DraftSaver,
    DevelopmentRecord,
    DevelopmentRepository,
    get_draft_repository,
    get_development_repository,
    reset_repositories,
)
from core.wizard.publish import (
    PublishSuccess,
    PublishBlocked,
    InMemoryPublisher,
    normalize_for_publish,
)
from core.wizard.session import WizardSession

__all__ = [
    # Schema
    "DevelopmentType",
    "Nature",
    "ParkingType",
    "TransactionType",
    "AuctionStatus",
    "DraftStatus",
    "WizardPhase",
    "PHASES",
    "TOTAL_PHASES",
    "get_phase",
    "Location",
    "MediaBundle",
    "DevelopmentData",
    "Classification",
    "ResidentialConfig",
    "CommercialConfig",
    "LandConfig",
    "UnitType",
    "Finalisation",
    "Draft",
    # Errors
    "WizardError",
    "PhaseTransitionError",
    "DraftClosedError",
    "PublishFailedError",
    "DraftNotFoundError",
    "UnitTypeNotFoundError",
    # Sanitizer
    "sanitize",
    "deep_strip",
    "normalize_media",
    "normalize_unit_type",
    "normalize_nature",
    # Storage
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    # Autosave
    "AutoSaveController",
    "AutoSaveStatus",
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_STORAGE_KEY",
    # Validation
    "PhaseValidationResult",
    "validate_phase",
    "validate_for_publish",
    # Repository
    "DraftRecord",
    "DraftRepository",
    "DraftSaver",
    "DevelopmentRecord",
    "DevelopmentRepository",
    "get_draft_repository",
    "get_development_repository",
    "reset_repositories",
    # Publish
    "PublishSuccess",
    "PublishBlocked",
    "InMemoryPublisher",
    "normalize_for_publish",
    # Session
    "WizardSession",
]
