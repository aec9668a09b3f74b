"""Error taxonomy for the event model engine.

Every structural problem has one exception class and one issue category.
Validators report ValidationIssues; the builder and deserializer turn the
first ERROR issue into the matching exception via error_from_issue().
"""

from __future__ import annotations

from .models.validation import Severity, ValidationIssue


class EventModelError(Exception):
    """Base class for all event model errors."""

    category = "MODEL"
    severity = Severity.ERROR

    def __init__(
        self,
        message: str,
        *,
        location: str = "",
        suggestion: str | None = None,
        issues: list[ValidationIssue] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.location = location
        self.suggestion = suggestion
        self.issues = issues if issues is not None else [self.to_issue()]

    def to_issue(self) -> ValidationIssue:
        return ValidationIssue(
            severity=self.severity,
            category=self.category,
            location=self.location,
            message=self.message,
            suggestion=self.suggestion,
        )

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class DuplicateIdError(EventModelError):
    """Raised when an id collides with one already in the model."""

    category = "DUPLICATE_ID"


class UnknownReferenceError(EventModelError):
    """Raised when a dependency, linkedId or slice id points nowhere."""

    category = "UNKNOWN_REFERENCE"


class TypeMismatchError(EventModelError):
    """Raised when a declared elementType disagrees with the referenced element."""

    category = "TYPE_MISMATCH"


class InvalidTransitionError(EventModelError):
    """Raised when an edge's (source type, target type) pair is not allowed."""

    category = "INVALID_TRANSITION"


class CycleError(EventModelError):
    """Raised when an edge would close a cycle in the dependency graph."""

    category = "CYCLE"


class CompositionError(EventModelError):
    """Raised when a slice has the wrong count or placement of elements."""

    category = "COMPOSITION"


class DisconnectedElementError(EventModelError):
    """Raised when a committed slice holds an element without dependencies."""

    category = "DISCONNECTED"


class SchemaViolationError(EventModelError):
    """Raised when input does not conform to the persisted JSON shape."""

    category = "SCHEMA"


class ReferencedElementError(EventModelError):
    """Raised when removing an element that is still referenced."""

    category = "REFERENCED"


class FieldValidationError(EventModelError):
    """Raised when a field has an empty or duplicate name or illegal subfields."""

    category = "FIELD"


class AsymmetricDependencyError(EventModelError):
    """Raised when an edge is not mirrored on the other endpoint."""

    category = "ASYMMETRIC"


class SequencingError(EventModelError):
    """Screen placement does not follow the expected slice sequence.

    Non-fatal: collected into commit warnings instead of being raised.
    """

    category = "SEQUENCING"
    severity = Severity.WARNING


ERROR_CLASSES: dict[str, type[EventModelError]] = {
    cls.category: cls
    for cls in (
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
    )
}


def error_from_issue(
    issue: ValidationIssue, issues: list[ValidationIssue] | None = None
) -> EventModelError:
    """Build the exception matching an issue's category."""
    cls = ERROR_CLASSES.get(issue.category, EventModelError)
    return cls(
        issue.message,
        location=issue.location,
        suggestion=issue.suggestion,
        issues=issues,
    )


def raise_for_issues(issues: list[ValidationIssue]) -> None:
    """Raise the exception for the first ERROR issue, if any."""
    errors = [i for i in issues if i.severity == Severity.ERROR]
    if errors:
        raise error_from_issue(errors[0], issues=errors)
