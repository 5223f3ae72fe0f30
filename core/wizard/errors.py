"""
Wizard Exceptions

Sanitization never raises. These cover navigation, terminal-state, publish,
and lookup failures.
"""

from __future__ import annotations

from typing import Sequence


class WizardError(Exception):
    """Base class for development wizard errors."""

    pass


class PhaseTransitionError(WizardError):
    """Raised when a phase change is not permitted."""

    def __init__(self, from_phase: int, to_phase: int, errors: Sequence[str] = ()):
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.errors = tuple(errors)
        detail = "; ".join(self.errors) if self.errors else "phases must be completed in order"
        super().__init__(f"Cannot move from phase {from_phase} to {to_phase}: {detail}")


class DraftClosedError(WizardError):
    """Raised when a published or discarded draft is modified."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Draft is {status} and can no longer be edited")


class PublishFailedError(WizardError):
    """Raised when the publish collaborator fails. The draft is left untouched."""

    def __init__(self, message: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message)


class DraftNotFoundError(WizardError, KeyError):
    """Raised when a draft id is unknown to the repository."""

    def __init__(self, draft_id: int):
        self.draft_id = draft_id
        super().__init__(f"Draft {draft_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class UnitTypeNotFoundError(WizardError, KeyError):
    """Raised when a unit type id is unknown to the draft."""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Unit type {unit_id} not found")

    def __str__(self) -> str:
        return self.args[0]
