"""
Developer Draft Routes - Web API for the Development Wizard

Drafts are saved continuously by the wizard's autosave and listed on the
developer's drafts dashboard. Publishing runs the full publish gate.

Access Control:
- Drafts are scoped by developerId when one is supplied
- Stored drafts are always canonical; clients may send partial state
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from core.wizard import (
    DevelopmentType,
    DraftNotFoundError,
    InMemoryPublisher,
    PhaseTransitionError,
    PublishBlocked,
    PublishFailedError,
    WizardSession,
    get_draft_repository,
)
from core.wizard.sanitize import coerce_enum
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/developer", tags=["developer"])


# =============================================================================
# Request Models
# =============================================================================


class SaveDraftRequest(BaseModel):
    """Autosave / explicit save payload from the wizard."""

    id: Optional[int] = None
    developerId: Optional[int] = None
    brandProfileId: Optional[int] = None
    draftData: Any = None


class SetPhaseRequest(BaseModel):
    """Phase navigation request."""

    phase: int


# =============================================================================
# Helpers
# =============================================================================


def enabled_development_types() -> list[DevelopmentType]:
    """Development types enabled by configuration. Unknown names are ignored."""
    types = []
    for name in Config.load().enabled_development_types:
        value = coerce_enum(DevelopmentType, name, None)
        if value is not None and value not in types:
            types.append(value)
    return types


def load_session(draft_id: int) -> WizardSession:
    """
    Resume an editing session for a stored draft.

    Raises:
        HTTPException(404) if the draft does not exist
    """
    record = get_draft_repository().get(draft_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return WizardSession.resume(
        record.draft_data,
        draft_id=draft_id,
        enabled_types=enabled_development_types(),
    )


# =============================================================================
# Draft CRUD
# =============================================================================


@router.post("/drafts")
async def save_draft(request: SaveDraftRequest):
    """
    Create or update a draft.

    The payload is sanitized before storage, so partial or malformed wizard
    state never fails to save.
    """
    repo = get_draft_repository()
    try:
        record = repo.save(
            request.draftData,
            draft_id=request.id,
            developer_id=request.developerId,
            brand_profile_id=request.brandProfileId,
        )
    except DraftNotFoundError:
        raise HTTPException(status_code=404, detail="Draft not found")

    return {
        "id": record.draft_id,
        "lastModified": record.last_modified.isoformat(),
        "progress": record.progress,
    }


@router.get("/drafts")
async def list_drafts(
    developerId: Optional[int] = Query(None, description="Only drafts owned by this developer"),
):
    """List drafts for the drafts dashboard, most recent first."""
    repo = get_draft_repository()
    return {"drafts": [record.to_summary() for record in repo.list_drafts(developerId)]}


@router.get("/drafts/{draft_id}")
async def get_draft(draft_id: int):
    """Get a stored draft."""
    record = get_draft_repository().get(draft_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return record.to_dict()


@router.delete("/drafts/{draft_id}")
async def delete_draft(draft_id: int):
    """Delete a draft ("start fresh")."""
    if not get_draft_repository().delete(draft_id):
        raise HTTPException(status_code=404, detail="Draft not found")
    return {"success": True}


# =============================================================================
# Phases
# =============================================================================


@router.get("/drafts/{draft_id}/phases/{phase}")
async def validate_draft_phase(draft_id: int, phase: int):
    """Validate one phase of a stored draft."""
    session = load_session(draft_id)
    return session.validate_phase(phase).to_dict()


@router.post("/drafts/{draft_id}/phase")
async def set_draft_phase(draft_id: int, request: SetPhaseRequest):
    """
    Move a stored draft to another phase.

    Backward moves always succeed. Forward moves go one phase at a time and
    require the current phase to be valid.
    """
    session = load_session(draft_id)
    try:
        session.set_phase(request.phase)
    except PhaseTransitionError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "errors": list(e.errors)},
        )

    record = get_draft_repository().save(session.to_payload(), draft_id=draft_id)
    return {"id": draft_id, "currentPhase": record.current_step, "progress": record.progress}


# =============================================================================
# Publish
# =============================================================================


@router.post("/drafts/{draft_id}/publish")
async def publish_draft(draft_id: int):
    """
    Publish a draft as a development.

    Blocked drafts return 400 with the gate's errors. On success the draft
    is removed and the new development is returned.
    """
    session = load_session(draft_id)
    try:
        outcome = await session.publish(InMemoryPublisher())
    except PublishFailedError as e:
        status_code = 502 if e.retryable else 400
        raise HTTPException(
            status_code=status_code,
            detail={"message": str(e), "retryable": e.retryable},
        )

    if isinstance(outcome, PublishBlocked):
        raise HTTPException(status_code=400, detail=outcome.to_dict())

    get_draft_repository().delete(draft_id)
    logger.info("Draft %s published as development %s", draft_id, outcome.result.development_id)
    return {"success": True, "development": outcome.result.to_dict()}
