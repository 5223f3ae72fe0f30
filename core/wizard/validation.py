"""
Phase Validation - Completeness Rules for the Development Wizard

Each phase has a fixed rule set evaluated against the canonical draft.
Rules are pure: no side effects, no network calls.

Principles:
- Validation failures are non-fatal and correctable
- Error messages are written in plain English for developer-facing display
- Land developments sell plots, so unit-type rules do not apply to them
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from core.wizard.schema import (
    TOTAL_PHASES,
    DevelopmentType,
    Draft,
    Nature,
    TransactionType,
    UnitType,
)


# Listing content minimums
MIN_HIGHLIGHTS = 3
MIN_DESCRIPTION_LENGTH = 50


# =============================================================================
# Validation Result
# =============================================================================


@dataclass(frozen=True)
class PhaseValidationResult:
    """Outcome of validating one phase, or the whole draft for publish."""

    is_valid: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors: Iterable[str]) -> "PhaseValidationResult":
        unique = _dedupe(errors)
        return cls(is_valid=not unique, errors=unique)

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
        }


def _dedupe(errors: Iterable[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for error in errors:
        if error not in seen:
            seen.append(error)
    return tuple(seen)


def _blank(value: str) -> bool:
    return not value or not value.strip()


def parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # Compare naive and aware timestamps on the same footing
    return parsed.replace(tzinfo=None)


# =============================================================================
# Phase Rules
# =============================================================================


def _development_type_rules(draft: Draft, enabled_types: frozenset[DevelopmentType]) -> list[str]:
    if draft.development_type not in enabled_types:
        return [f"The {draft.development_type.value} development workflow is not available yet"]
    return []


def _classification_rules(draft: Draft) -> list[str]:
    if _blank(draft.classification.type):
        return ["Classification type is required"]
    return []


def _configuration_rules(draft: Draft) -> list[str]:
    if draft.development_type == DevelopmentType.COMMERCIAL:
        if _blank(draft.commercial_config.commercial_type):
            return ["Commercial type is required"]
    elif draft.development_type == DevelopmentType.LAND:
        if _blank(draft.land_config.land_type):
            return ["Land type is required"]
    elif _blank(draft.residential_config.residential_type):
        return ["Residential type is required"]
    return []


def _identity_rules(draft: Draft) -> list[str]:
    errors: list[str] = []
    data = draft.development_data

    if _blank(data.name):
        errors.append("Development name is required")
    if _blank(data.location.address):
        errors.append("Location address is required")
    if _blank(data.location.city):
        errors.append("City is required")
    if _blank(data.location.province):
        errors.append("Province is required")
    if data.nature == Nature.PHASE and _blank(data.parent_development_id):
        errors.append("Please select the parent development for this phase")
    if len(data.highlights) < MIN_HIGHLIGHTS:
        errors.append(f"Add at least {MIN_HIGHLIGHTS} highlights")
    if len(data.description.strip()) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")

    return errors


def _media_rules(draft: Draft) -> list[str]:
    if draft.development_data.media.image_count == 0:
        return ["At least one image is required"]
    return []


def _unit_type_rules(unit: UnitType, transaction_type: TransactionType) -> list[str]:
    errors: list[str] = []
    label = unit.name.strip() or "Unnamed unit type"

    if _blank(unit.name):
        errors.append("Every unit type needs a name")

    if transaction_type == TransactionType.FOR_RENT:
        if unit.monthly_rent_from <= 0:
            errors.append(f"{label}: monthly rent is required")
        if unit.monthly_rent_to < unit.monthly_rent_from:
            errors.append(f"{label}: maximum rent cannot be less than minimum rent")
    elif transaction_type == TransactionType.AUCTION:
        if unit.starting_bid <= 0:
            errors.append(f"{label}: starting bid is required")
        if unit.reserve_price and unit.reserve_price < unit.starting_bid:
            errors.append(f"{label}: reserve price cannot be less than the starting bid")
        start = parse_date(unit.auction_start_date)
        end = parse_date(unit.auction_end_date)
        if unit.auction_start_date and start is None:
            errors.append(f"{label}: auction start date is not a valid date")
        if unit.auction_end_date and end is None:
            errors.append(f"{label}: auction end date is not a valid date")
        if start is not None and end is not None and end <= start:
            errors.append(f"{label}: auction must end after it starts")
    else:
        if unit.price_from <= 0:
            errors.append(f"{label}: price is required")
        if unit.price_to < unit.price_from:
            errors.append(f"{label}: maximum price cannot be less than minimum price")

    if unit.available_units > unit.total_units:
        errors.append(f"{label}: available units cannot exceed total units")

    return errors


def _units_rules(draft: Draft) -> list[str]:
    if draft.is_land:
        return []
    if not draft.unit_types:
        return ["At least one unit type is required"]
    errors: list[str] = []
    for unit in draft.unit_types:
        errors.extend(_unit_type_rules(unit, draft.transaction_type))
    return errors


def _finalisation_rules(draft: Draft) -> list[str]:
    if not draft.finalisation.sales_team_ids:
        return ["Assign at least one sales team member"]
    return []


_RULES: dict[int, Callable[[Draft], list[str]]] = {
    2: _classification_rules,
    3: _configuration_rules,
    4: _identity_rules,
    5: _media_rules,
    6: _units_rules,
    7: _finalisation_rules,
}


# =============================================================================
# Validation Functions
# =============================================================================


def validate_phase(
    draft: Draft,
    phase: int,
    enabled_types: Optional[Iterable[DevelopmentType]] = None,
) -> PhaseValidationResult:
    """
    Validate a single wizard phase.

    Args:
        draft: Canonical draft
        phase: Phase number (1..TOTAL_PHASES)
        enabled_types: Development types whose workflow is available.
            Defaults to every type.

    Returns:
        PhaseValidationResult for the phase
    """
    if not isinstance(phase, int) or isinstance(phase, bool) or not 1 <= phase <= TOTAL_PHASES:
        return PhaseValidationResult(is_valid=False, errors=(f"Unknown phase: {phase}",))

    if phase == 1:
        enabled = frozenset(enabled_types) if enabled_types is not None else frozenset(DevelopmentType)
        return PhaseValidationResult.from_errors(_development_type_rules(draft, enabled))

    return PhaseValidationResult.from_errors(_RULES[phase](draft))


def validate_for_publish(
    draft: Draft,
    enabled_types: Optional[Iterable[DevelopmentType]] = None,
) -> PhaseValidationResult:
    """
    Validate the whole draft before publishing.

    Aggregates every phase plus cross-phase rules. Publish proceeds only when
    the returned error list is empty.

    Args:
        draft: Canonical draft
        enabled_types: Development types whose workflow is available

    Returns:
        PhaseValidationResult covering the whole draft
    """
    enabled = list(enabled_types) if enabled_types is not None else None
    errors: list[str] = []

    for phase in range(1, TOTAL_PHASES + 1):
        errors.extend(validate_phase(draft, phase, enabled).errors)

    # === Cross-phase rules ===
    if not draft.is_land and not draft.unit_types:
        errors.append("At least one unit type is required")
    if draft.finalisation.is_published:
        errors.append("This development has already been published")

    return PhaseValidationResult.from_errors(errors)
