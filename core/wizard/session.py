"""
Wizard Session - Per-Editor Draft State Machine

Owns one draft for the lifetime of an editing session. Every mutation goes
through the sanitizer, so the session's draft is always canonical, and every
mutation is reported to an attached autosave controller.

Lifecycle:
    editing -> published  (terminal)
    editing -> discarded  (terminal)

Navigation:
- Backward moves are always allowed
- Forward moves go one phase at a time and only past a valid phase
- Resuming a saved draft lands directly on its saved phase
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional, Union

from core.wizard.autosave import AutoSaveController
from core.wizard.errors import (
    DraftClosedError,
    PhaseTransitionError,
    PublishFailedError,
    UnitTypeNotFoundError,
    WizardError,
)
from core.wizard.publish import Publisher, PublishBlocked, PublishSuccess
from core.wizard.sanitize import coerce_enum, generate_unit_id, is_featured_media, sanitize
from core.wizard.schema import (
    DEVELOPMENT_TYPE_ALIASES,
    TOTAL_PHASES,
    DevelopmentType,
    Draft,
    DraftStatus,
    Nature,
    UnitType,
)
from core.wizard.validation import (
    PhaseValidationResult,
    validate_for_publish,
    validate_phase,
)


logger = logging.getLogger(__name__)

PublishOutcome = Union[PublishSuccess, PublishBlocked]

# Media "type" values that route an item away from photos
VIDEO_TYPES = frozenset({"video"})
DOCUMENT_TYPES = frozenset({"document", "pdf", "brochure", "floorplan"})


def _camel(key: str) -> str:
    """Convert snake_case keys to the wire's camelCase. camelCase passes through."""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _merge(block: dict, updates: Mapping) -> None:
    for key, value in updates.items():
        block[_camel(key)] = value


def _generate_media_id() -> str:
    return f"media-{uuid.uuid4().hex[:12]}"


def _as_hero(item: dict) -> dict:
    return {**item, "isPrimary": True, "category": "featured"}


def _as_gallery_photo(item: dict) -> dict:
    demoted = {**item, "isPrimary": False, "category": "general"}
    demoted.pop("featured", None)
    return demoted


class WizardSession:
    """
    Editing session for a single development draft.

    Usage:
        session = WizardSession.resume(saved_payload, draft_id=12)
        session.attach_autosave(controller)
        session.set_classification(type="commercial")
        session.next_phase()
    """

    def __init__(
        self,
        draft: Optional[Draft] = None,
        draft_id: Optional[int] = None,
        enabled_types: Optional[Iterable[DevelopmentType]] = None,
    ):
        """
        Initialise session.

        Args:
            draft: Starting draft (sanitized). Defaults to an empty draft.
            draft_id: Persistent id of the draft, if it has been saved
            enabled_types: Development types whose workflow is available
        """
        self._draft = sanitize(draft) if draft is not None else Draft()
        self.draft_id = draft_id
        self._enabled_types = tuple(enabled_types) if enabled_types is not None else None
        self._status = DraftStatus.EDITING
        self._autosave: Optional[AutoSaveController] = None
        self._publishing = False

    @classmethod
    def resume(
        cls,
        raw: Any,
        draft_id: Optional[int] = None,
        enabled_types: Optional[Iterable[DevelopmentType]] = None,
    ) -> "WizardSession":
        """Resume a saved draft at its saved phase."""
        return cls(sanitize(raw), draft_id=draft_id, enabled_types=enabled_types)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def draft(self) -> Draft:
        """Get a copy of the canonical draft."""
        return copy.deepcopy(self._draft)

    @property
    def status(self) -> DraftStatus:
        return self._status

    @property
    def current_phase(self) -> int:
        return self._draft.current_phase

    @property
    def is_closed(self) -> bool:
        """Check if the session has reached a terminal state."""
        return self._status != DraftStatus.EDITING

    @property
    def autosave(self) -> Optional[AutoSaveController]:
        return self._autosave

    def attach_autosave(self, controller: AutoSaveController) -> None:
        """Report every subsequent mutation to the controller."""
        self._autosave = controller

    def to_payload(self) -> dict:
        """Get the canonical JSON payload."""
        return self._draft.to_dict()

    # =========================================================================
    # Internal
    # =========================================================================

    def _ensure_editing(self) -> None:
        if self.is_closed:
            raise DraftClosedError(self._status.value)

    def _update(self, mutate: Callable[[dict], Any]) -> Any:
        """
        Apply a mutation to the wire payload, re-sanitize, and notify autosave.

        The draft only changes once autosave has accepted the new payload, so
        a session with autosave attached must be mutated inside a running
        event loop; otherwise RuntimeError is raised and the draft is kept.
        """
        self._ensure_editing()
        payload = self._draft.to_dict()
        result = mutate(payload)
        draft = sanitize(payload)
        if self._autosave is not None:
            self._autosave.schedule(draft.to_dict())
        self._draft = draft
        return result

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_phase(self, phase: Optional[int] = None) -> PhaseValidationResult:
        """Validate a phase (defaults to the current phase)."""
        number = self.current_phase if phase is None else phase
        return validate_phase(self._draft, number, self._enabled_types)

    def validate_for_publish(self) -> PhaseValidationResult:
        return validate_for_publish(self._draft, self._enabled_types)

    # =========================================================================
    # Navigation
    # =========================================================================

    def set_phase(self, phase: int) -> int:
        """
        Move to a phase.

        Args:
            phase: Target phase number

        Returns:
            The new current phase

        Raises:
            PhaseTransitionError: For unknown phases, forward skips, or
                forward moves past an invalid phase
        """
        self._ensure_editing()
        current = self.current_phase

        if isinstance(phase, bool) or not isinstance(phase, int) or not 1 <= phase <= TOTAL_PHASES:
            raise PhaseTransitionError(current, phase, [f"Unknown phase: {phase}"])
        if phase == current:
            return current

        if phase > current:
            if phase != current + 1:
                raise PhaseTransitionError(current, phase)
            result = self.validate_phase(current)
            if not result.is_valid:
                raise PhaseTransitionError(current, phase, result.errors)

        self._update(lambda payload: payload.__setitem__("currentPhase", phase))
        logger.debug("Draft %s moved from phase %s to %s", self.draft_id, current, phase)
        return phase

    def next_phase(self) -> int:
        return self.set_phase(self.current_phase + 1)

    def previous_phase(self) -> int:
        return self.set_phase(max(1, self.current_phase - 1))

    # =========================================================================
    # Type & Classification
    # =========================================================================

    def set_development_type(self, development_type: Union[DevelopmentType, str]) -> None:
        """Set the development type. Switching to land clears unit types."""
        value = coerce_enum(
            DevelopmentType, development_type, DevelopmentType.RESIDENTIAL, DEVELOPMENT_TYPE_ALIASES
        )

        def mutate(payload: dict) -> None:
            payload["developmentType"] = value.value
            if value == DevelopmentType.LAND:
                payload["unitTypes"] = []

        self._update(mutate)

    def set_transaction_type(self, transaction_type: Any) -> None:
        self._update(lambda payload: payload.__setitem__("transactionType", transaction_type))

    def set_classification(self, **updates: Any) -> None:
        """
        Update classification fields (type, sub_type, ownership).

        Changing the type resets the sub-type unless one is supplied. A type
        that names a development type also sets the development type, and
        switching to land clears unit types.
        """

        def mutate(payload: dict) -> None:
            block = payload["classification"]
            previous_type = block.get("type")
            _merge(block, updates)
            new_type = block.get("type")
            if new_type == previous_type:
                return
            if "subType" not in {_camel(key) for key in updates}:
                block["subType"] = ""
            development_type = coerce_enum(DevelopmentType, new_type, None, DEVELOPMENT_TYPE_ALIASES)
            if development_type is not None:
                payload["developmentType"] = development_type.value
                if development_type == DevelopmentType.LAND:
                    payload["unitTypes"] = []

        self._update(mutate)

    def set_residential_config(self, **updates: Any) -> None:
        self._update(lambda payload: _merge(payload["residentialConfig"], updates))

    def set_commercial_config(self, **updates: Any) -> None:
        self._update(lambda payload: _merge(payload["commercialConfig"], updates))

    def set_land_config(self, **updates: Any) -> None:
        self._update(lambda payload: _merge(payload["landConfig"], updates))

    # =========================================================================
    # Identity
    # =========================================================================

    def set_identity(self, **updates: Any) -> None:
        """Update name, description, nature, or parent development."""

        def mutate(payload: dict) -> None:
            block = payload["developmentData"]
            _merge(block, updates)
            # A new development has no parent
            if block.get("nature") != Nature.PHASE.value:
                block["parentDevelopmentId"] = ""

        self._update(mutate)

    def set_location(self, **updates: Any) -> None:
        self._update(lambda payload: _merge(payload["developmentData"]["location"], updates))

    def _add_to_list(self, key: str, value: str) -> None:
        self._update(lambda payload: payload["developmentData"][key].append(value))

    def _remove_from_list(self, key: str, value: str) -> None:
        def mutate(payload: dict) -> None:
            items = payload["developmentData"][key]
            payload["developmentData"][key] = [item for item in items if item != value]

        self._update(mutate)

    def add_highlight(self, highlight: str) -> None:
        self._add_to_list("highlights", highlight)

    def remove_highlight(self, highlight: str) -> None:
        self._remove_from_list("highlights", highlight)

    def add_amenity(self, amenity: str) -> None:
        self._add_to_list("amenities", amenity)

    def remove_amenity(self, amenity: str) -> None:
        self._remove_from_list("amenities", amenity)

    # =========================================================================
    # Media
    # =========================================================================

    def add_media(self, item: Union[dict, str]) -> str:
        """
        Add a media item, routed by its "type" to photos, videos, or documents.

        A photo flagged as primary (or featured) replaces the hero, and the
        previous hero moves to the front of photos. The first photo becomes
        the hero when none is set.

        Args:
            item: Media object (or bare URL)

        Returns:
            The item's id (generated if absent)
        """
        entry = {"url": item} if isinstance(item, str) else dict(item)
        entry.setdefault("id", _generate_media_id())
        kind = str(entry.get("type", "")).lower()

        def mutate(payload: dict) -> None:
            block = payload["developmentData"]["media"]
            if kind in VIDEO_TYPES:
                block["videos"].append(entry)
            elif kind in DOCUMENT_TYPES:
                block["documents"].append(entry)
            elif is_featured_media(entry) or not block.get("heroImage"):
                self._promote(block, entry)
            else:
                block["photos"].append({**entry, "isPrimary": False})

        self._update(mutate)
        return entry["id"]

    @staticmethod
    def _promote(block: dict, photo: dict) -> None:
        previous = block.get("heroImage")
        if previous:
            block["photos"].insert(0, _as_gallery_photo(previous))
        block["heroImage"] = _as_hero(photo)

    def remove_media(self, media_id: str) -> bool:
        """
        Remove a media item from every list.

        Removing the hero promotes the next photo.

        Returns:
            True if an item was removed
        """
        media = self._draft.development_data.media
        if not any(item.get("id") == media_id for item in media.all_items()):
            return False

        def mutate(payload: dict) -> None:
            block = payload["developmentData"]["media"]
            for key in ("photos", "videos", "documents"):
                block[key] = [item for item in block[key] if item.get("id") != media_id]
            hero = block.get("heroImage")
            if hero and hero.get("id") == media_id:
                block["heroImage"] = _as_hero(block["photos"].pop(0)) if block["photos"] else None

        self._update(mutate)
        return True

    def set_primary_image(self, media_id: str) -> bool:
        """
        Promote a photo to hero. The previous hero moves to the front of photos.

        Returns:
            True if the photo was found
        """
        photos = self._draft.development_data.media.photos
        index = next((i for i, photo in enumerate(photos) if photo.get("id") == media_id), None)
        if index is None:
            return False

        def mutate(payload: dict) -> None:
            block = payload["developmentData"]["media"]
            self._promote(block, block["photos"].pop(index))

        self._update(mutate)
        return True

    # =========================================================================
    # Unit Types
    # =========================================================================

    def _unit_index(self, unit_id: str) -> int:
        for index, unit in enumerate(self._draft.unit_types):
            if unit.id == unit_id:
                return index
        raise UnitTypeNotFoundError(unit_id)

    def add_unit_type(self, **fields: Any) -> UnitType:
        """Add a unit type. Returns the canonical unit."""
        entry: dict = {}
        _merge(entry, fields)
        entry["id"] = entry.get("id") or generate_unit_id()
        entry.setdefault("displayOrder", len(self._draft.unit_types))

        self._update(lambda payload: payload["unitTypes"].append(entry))
        return copy.deepcopy(self._draft.unit_types[-1])

    def update_unit_type(self, unit_id: str, **updates: Any) -> UnitType:
        """
        Update fields on a unit type.

        Raises:
            UnitTypeNotFoundError: If the unit type does not exist
        """
        index = self._unit_index(unit_id)
        updates.pop("id", None)
        self._update(lambda payload: _merge(payload["unitTypes"][index], updates))
        return copy.deepcopy(self._draft.unit_types[index])

    def remove_unit_type(self, unit_id: str) -> bool:
        try:
            index = self._unit_index(unit_id)
        except UnitTypeNotFoundError:
            return False
        self._update(lambda payload: payload["unitTypes"].pop(index))
        return True

    def duplicate_unit_type(self, unit_id: str) -> UnitType:
        """
        Copy a unit type under a new id, appended at the end.

        Raises:
            UnitTypeNotFoundError: If the unit type does not exist
        """
        source = self._draft.unit_types[self._unit_index(unit_id)].to_dict()
        source["id"] = generate_unit_id()
        source["name"] = f"{source['name']} (Copy)".strip()
        source["displayOrder"] = len(self._draft.unit_types)

        self._update(lambda payload: payload["unitTypes"].append(source))
        return copy.deepcopy(self._draft.unit_types[-1])

    # =========================================================================
    # Finalisation
    # =========================================================================

    def set_finalisation(self, **updates: Any) -> None:
        updates.pop("is_published", None)
        updates.pop("isPublished", None)
        self._update(lambda payload: _merge(payload["finalisation"], updates))

    # =========================================================================
    # Terminal Transitions
    # =========================================================================

    def discard(self) -> None:
        """
        Discard the draft ("start fresh").

        Raises:
            DraftClosedError: If the draft was already published
        """
        if self._status == DraftStatus.DISCARDED:
            return
        self._ensure_editing()
        if self._autosave is not None:
            self._autosave.cancel()
        self._status = DraftStatus.DISCARDED
        logger.info("Draft %s discarded", self.draft_id)

    async def publish(self, publisher: Publisher) -> PublishOutcome:
        """
        Run the publish gate and hand the draft to the publisher.

        Args:
            publisher: Collaborator with an async publish(draft, draft_id=...)

        Returns:
            PublishSuccess, or PublishBlocked with the gate's errors

        Raises:
            DraftClosedError: If the draft is already published or discarded
            PublishFailedError: If the publisher fails; the draft is unchanged
        """
        self._ensure_editing()
        if self._publishing:
            raise WizardError("Publish already in progress")

        gate = self.validate_for_publish()
        if not gate.is_valid:
            logger.info("Publish blocked for draft %s: %d errors", self.draft_id, len(gate.errors))
            return PublishBlocked(errors=gate.errors)

        self._publishing = True
        try:
            result = await publisher.publish(self.to_payload(), draft_id=self.draft_id)
        except PublishFailedError as e:
            logger.warning("Publish failed for draft %s: %s", self.draft_id, e)
            raise
        except Exception as e:
            logger.warning("Publish failed for draft %s: %s", self.draft_id, e)
            raise PublishFailedError(f"Publish failed: {e}", retryable=True) from e
        finally:
            self._publishing = False

        if self._autosave is not None:
            self._autosave.cancel()
        self._draft.finalisation.is_published = True
        self._status = DraftStatus.PUBLISHED
        logger.info("Draft %s published", self.draft_id)
        return PublishSuccess(result=result)
