"""
Draft Repository - Storage for Wizard Drafts and Published Developments

Drafts are stored as canonical JSON alongside listing metadata (name,
progress, current step) for the drafts dashboard. Published developments
are stored separately, keyed by integer id.

This is an in-memory implementation with optional JSON file persistence.
Production should use a persistent database.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from core.wizard.errors import DraftNotFoundError
from core.wizard.sanitize import sanitize
from core.wizard.schema import TOTAL_PHASES, Draft, get_phase
from utils.formatting import format_currency, format_percent


logger = logging.getLogger(__name__)


UNTITLED_DRAFT_NAME = "Untitled development"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return _now()
    return datetime.fromisoformat(value)


def _progress(phase: int) -> int:
    """Percentage of phases reached."""
    return round(phase / TOTAL_PHASES * 100)


# =============================================================================
# Draft Record
# =============================================================================


@dataclass
class DraftRecord:
    """
    A persisted wizard draft.

    draft_data always holds the canonical (sanitized) draft.
    """

    draft_id: int
    draft_data: dict
    developer_id: Optional[int] = None
    brand_profile_id: Optional[int] = None
    draft_name: str = UNTITLED_DRAFT_NAME
    progress: int = 0
    current_step: int = 1
    created_at: datetime = field(default_factory=_now)
    last_modified: datetime = field(default_factory=_now)

    @property
    def draft(self) -> Draft:
        """Get the draft as a canonical Draft object."""
        return Draft.from_dict(self.draft_data)

    def to_summary(self) -> dict:
        """
        Get listing summary for the drafts dashboard.

        Returns:
            Dictionary with name, progress, step label, and headline price
        """
        draft = self.draft
        phase = get_phase(self.current_step)
        prices = [unit.price_from for unit in draft.unit_types if unit.price_from > 0]

        return {
            "id": self.draft_id,
            "draftName": self.draft_name,
            "developmentType": draft.development_type.value,
            "progress": self.progress,
            "progressLabel": format_percent(self.progress, decimals=0),
            "currentStep": self.current_step,
            "currentStepLabel": phase.label if phase else "",
            "priceFromLabel": format_currency(int(min(prices)), "ZAR") if prices else None,
            "unitTypeCount": len(draft.unit_types),
            "lastModified": self.last_modified.isoformat(),
            "createdAt": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict:
        """Convert record to dictionary."""
        return {
            "id": self.draft_id,
            "developerId": self.developer_id,
            "brandProfileId": self.brand_profile_id,
            "draftName": self.draft_name,
            "draftData": self.draft_data,
            "progress": self.progress,
            "currentStep": self.current_step,
            "createdAt": self.created_at.isoformat(),
            "lastModified": self.last_modified.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DraftRecord":
        """Create record from dictionary."""
        return cls(
            draft_id=int(data["id"]),
            draft_data=sanitize(data.get("draftData")).to_dict(),
            developer_id=data.get("developerId"),
            brand_profile_id=data.get("brandProfileId"),
            draft_name=data.get("draftName") or UNTITLED_DRAFT_NAME,
            progress=int(data.get("progress", 0)),
            current_step=int(data.get("currentStep", 1)),
            created_at=_parse_timestamp(data.get("createdAt")),
            last_modified=_parse_timestamp(data.get("lastModified")),
        )


# =============================================================================
# Draft Repository
# =============================================================================


class DraftRepository:
    """
    Repository for wizard drafts.

    Every save passes through the sanitizer, so stored drafts are always
    canonical regardless of what the client sent.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._drafts: dict[int, DraftRecord] = {}
        self._next_id = 1
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "drafts": [record.to_dict() for record in self._drafts.values()],
            "next_id": self._next_id,
            "saved_at": _now().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for entry in data.get("drafts", []):
                record = DraftRecord.from_dict(entry)
                self._drafts[record.draft_id] = record
            self._next_id = max(
                int(data.get("next_id", 1)),
                max(self._drafts, default=0) + 1,
            )
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load draft repository data from %s: %s", self._persist_path, e)

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def save(
        self,
        draft_data: Any,
        draft_id: Optional[int] = None,
        developer_id: Optional[int] = None,
        brand_profile_id: Optional[int] = None,
    ) -> DraftRecord:
        """
        Create or update a draft.

        Args:
            draft_data: Raw draft payload (sanitized before storage)
            draft_id: Existing draft id to update, or None to create
            developer_id: Owning developer
            brand_profile_id: Brand profile the draft is created under

        Returns:
            The stored DraftRecord

        Raises:
            DraftNotFoundError: If draft_id is given but unknown
        """
        draft = sanitize(draft_data)
        canonical = draft.to_dict()
        name = draft.development_data.name.strip() or UNTITLED_DRAFT_NAME

        if draft_id is None:
            record = DraftRecord(
                draft_id=self._next_id,
                draft_data=canonical,
                developer_id=developer_id,
                brand_profile_id=brand_profile_id,
                draft_name=name,
                progress=_progress(draft.current_phase),
                current_step=draft.current_phase,
            )
            self._drafts[record.draft_id] = record
            self._next_id += 1
            logger.info("Created draft %s", record.draft_id)
        else:
            record = self._drafts.get(draft_id)
            if record is None:
                raise DraftNotFoundError(draft_id)
            record.draft_data = canonical
            record.draft_name = name
            record.progress = _progress(draft.current_phase)
            record.current_step = draft.current_phase
            record.last_modified = _now()
            if developer_id is not None:
                record.developer_id = developer_id
            if brand_profile_id is not None:
                record.brand_profile_id = brand_profile_id
            logger.debug("Updated draft %s at phase %s", draft_id, draft.current_phase)

        self._save_to_file()
        return record

    def get(self, draft_id: int) -> Optional[DraftRecord]:
        """
        Get a draft by id.

        Returns:
            DraftRecord if found, None otherwise
        """
        return self._drafts.get(draft_id)

    def require(self, draft_id: int) -> DraftRecord:
        """
        Get a draft by id or raise.

        Raises:
            DraftNotFoundError: If the draft does not exist
        """
        record = self._drafts.get(draft_id)
        if record is None:
            raise DraftNotFoundError(draft_id)
        return record

    def delete(self, draft_id: int) -> bool:
        """
        Delete a draft.

        Returns:
            True if deleted, False if not found
        """
        if draft_id in self._drafts:
            del self._drafts[draft_id]
            self._save_to_file()
            logger.info("Deleted draft %s", draft_id)
            return True
        return False

    # =========================================================================
    # Query Operations
    # =========================================================================

    def list_drafts(self, developer_id: Optional[int] = None) -> list[DraftRecord]:
        """Get drafts, most recently modified first."""
        records = [
            record for record in self._drafts.values()
            if developer_id is None or record.developer_id == developer_id
        ]
        return sorted(records, key=lambda record: record.last_modified, reverse=True)

    def count(self) -> int:
        """Get total number of drafts."""
        return len(self._drafts)


class DraftSaver:
    """
    Autosave sink that upserts into a DraftRepository.

    The first save creates the draft; later saves update the same id.

    Usage:
        saver = DraftSaver(get_draft_repository(), developer_id=7)
        controller = AutoSaveController(on_save=saver)
    """

    def __init__(
        self,
        repository: DraftRepository,
        draft_id: Optional[int] = None,
        developer_id: Optional[int] = None,
        brand_profile_id: Optional[int] = None,
    ):
        self.repository = repository
        self.draft_id = draft_id
        self.developer_id = developer_id
        self.brand_profile_id = brand_profile_id

    async def __call__(self, payload: Any) -> None:
        record = self.repository.save(
            payload,
            draft_id=self.draft_id,
            developer_id=self.developer_id,
            brand_profile_id=self.brand_profile_id,
        )
        self.draft_id = record.draft_id


# =============================================================================
# Published Developments
# =============================================================================


@dataclass
class DevelopmentRecord:
    """A development created from a published draft."""

    development_id: int
    listing: dict
    draft_id: Optional[int] = None
    published_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        """Convert record to dictionary."""
        return {
            "id": self.development_id,
            "draftId": self.draft_id,
            "listing": self.listing,
            "publishedAt": self.published_at.isoformat(),
        }


class DevelopmentRepository:
    """In-memory store of published developments."""

    def __init__(self) -> None:
        self._developments: dict[int, DevelopmentRecord] = {}
        self._next_id = 1

    def create(self, listing: dict, draft_id: Optional[int] = None) -> DevelopmentRecord:
        """
        Store a published development listing.

        Args:
            listing: Normalized publish payload
            draft_id: Draft the development was published from

        Returns:
            New DevelopmentRecord
        """
        record = DevelopmentRecord(
            development_id=self._next_id,
            listing=listing,
            draft_id=draft_id,
        )
        self._developments[record.development_id] = record
        self._next_id += 1
        return record

    def get(self, development_id: int) -> Optional[DevelopmentRecord]:
        """Get development by id."""
        return self._developments.get(development_id)

    def list_all(self) -> list[DevelopmentRecord]:
        """Get all developments."""
        return list(self._developments.values())

    def count(self) -> int:
        """Get total number of developments."""
        return len(self._developments)


# =============================================================================
# Singleton Instances
# =============================================================================

_draft_repository: Optional[DraftRepository] = None
_development_repository: Optional[DevelopmentRepository] = None


def get_draft_repository(persist_path: Optional[str] = None) -> DraftRepository:
    """
    Get the draft repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)

    Returns:
        DraftRepository instance
    """
    global _draft_repository
    if _draft_repository is None:
        _draft_repository = DraftRepository(persist_path or "data/drafts.json")
    return _draft_repository


def get_development_repository() -> DevelopmentRepository:
    """Get the development repository singleton."""
    global _development_repository
    if _development_repository is None:
        _development_repository = DevelopmentRepository()
    return _development_repository


def reset_repositories() -> None:
    """Reset the singleton instances (for testing)."""
    global _draft_repository, _development_repository
    _draft_repository = None
    _development_repository = None
