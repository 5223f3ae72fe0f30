"""
Development Listings - Core Business Logic

This module provides the development wizard pipeline:
1. Sanitization (canonical draft shape)
2. Autosave (debounced, single-flight, newest attempt wins)
3. Phase Validation (per-phase completeness rules)
4. Publish Gate (whole-draft validation, then listing normalization)
"""

from .wizard import (
    Draft,
    DevelopmentType,
    TransactionType,
    DraftStatus,
    PHASES,
    TOTAL_PHASES,
    sanitize,
    AutoSaveController,
    AutoSaveStatus,
    validate_phase,
    validate_for_publish,
    WizardSession,
    InMemoryPublisher,
)

__all__ = [
    "Draft",
    "DevelopmentType",
    "TransactionType",
    "DraftStatus",
    "PHASES",
    "TOTAL_PHASES",
    "sanitize",
    "AutoSaveController",
    "AutoSaveStatus",
    "validate_phase",
    "validate_for_publish",
    "WizardSession",
    "InMemoryPublisher",
]
