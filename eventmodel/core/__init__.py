"""Core types shared across eventmodel: schema models, errors and locking."""

from .errors import (
    EventModelError,
    DuplicateIdError,
    UnknownReferenceError,
    TypeMismatchError,
    InvalidTransitionError,
    CycleError,
    CompositionError,
    DisconnectedElementError,
    SchemaViolationError,
    ReferencedElementError,
    FieldValidationError,
    AsymmetricDependencyError,
    SequencingError,
    error_from_issue,
    raise_for_issues,
)
from .locking import ReadWriteLock

__all__ = [
    "EventModelError",
    "DuplicateIdError",
    "UnknownReferenceError",
    "TypeMismatchError",
    "InvalidTransitionError",
    "CycleError",
    "CompositionError",
    "DisconnectedElementError",
    "SchemaViolationError",
    "ReferencedElementError",
    "FieldValidationError",
    "AsymmetricDependencyError",
    "SequencingError",
    "error_from_issue",
    "raise_for_issues",
    "ReadWriteLock",
]
