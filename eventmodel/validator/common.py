"""Common utilities shared across validation modules."""

from ..core.models import Dependency, DependencyType, ElementType, Severity, ValidationIssue


def ValidationError(
    category: str,
    location: str,
    message: str,
    suggestion: str | None = None,
) -> ValidationIssue:
    """Create an ERROR-level validation issue."""
    return ValidationIssue(
        severity=Severity.ERROR,
        category=category,
        location=location,
        message=message,
        suggestion=suggestion,
    )


def ValidationWarning(
    category: str,
    location: str,
    message: str,
    suggestion: str | None = None,
) -> ValidationIssue:
    """Create a WARNING-level validation issue."""
    return ValidationIssue(
        severity=Severity.WARNING,
        category=category,
        location=location,
        message=message,
        suggestion=suggestion,
    )


def edge_types(
    owner_type: ElementType, dep: Dependency
) -> tuple[ElementType, ElementType]:
    """(source type, target type) of the edge a dependency declares."""
    if dep.type == DependencyType.OUTBOUND:
        return owner_type, dep.element_type
    return dep.element_type, owner_type


def edge_location(element_id: str, index: int) -> str:
    return f"{element_id}.dependencies[{index}]"
