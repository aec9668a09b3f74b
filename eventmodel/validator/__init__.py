"""Type rule engine for event models.

All checks are pure functions over a model snapshot; nothing here mutates the
model or raises for a rule violation.

Module structure:
- rules.py: composition, transition and step-link tables
- structural.py: ERROR checks that hold at all times
- composition.py: commit-time checks per slice (SEQUENCING is a WARNING)
"""

from typing import Iterable

from ..config import RulesConfig
from ..core.models import (
    EventModel,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from ..store import index_model
from .composition import run_commit_checks
from .rules import (
    ALLOWED_TRANSITIONS,
    COMPOSITION_RULES,
    SCREEN_PREDECESSOR,
    SPEC_STEP_TARGETS,
    CountRange,
    allowed_transitions,
    automation_feeds,
)
from .structural import check_fields, run_structural_checks


def validate_model(
    model: EventModel,
    rules: RulesConfig | None = None,
    committed: Iterable[str] | None = None,
) -> ValidationResult:
    """
    Validate an EventModel for structural and composition correctness.

    Args:
        model: The model to validate
        rules: Rule switches (defaults apply when None)
        committed: Ids of slices to run commit checks on; None means every slice

    Returns:
        ValidationResult with errors and warnings

    Example:
        >>> result = validate_model(model)
        >>> if not result.valid:
        ...     for err in result.errors:
        ...         print(f"ERROR: {err}")
    """
    result = ValidationResult()

    # Structural checks (ERROR level)
    result.issues.extend(run_structural_checks(model, rules))

    # Commit checks (ERROR level, SEQUENCING is WARNING)
    objects, _owners, _duplicates = index_model(model)
    elements = objects["element"]
    ordered = model.ordered_slices()
    selected = set(committed) if committed is not None else None
    for s in ordered:
        if selected is not None and s.id not in selected:
            continue
        result.issues.extend(run_commit_checks(s, ordered, elements, rules))

    return result


def validate_slice(
    model: EventModel, slice_id: str, rules: RulesConfig | None = None
) -> ValidationResult:
    """Commit checks for one slice, without the model-wide structural checks.

    Raises:
        KeyError: If the model has no slice with that id.
    """
    objects, _owners, _duplicates = index_model(model)
    if slice_id not in objects["slice"]:
        raise KeyError(slice_id)
    ordered = model.ordered_slices()
    return ValidationResult(
        issues=run_commit_checks(
            objects["slice"][slice_id], ordered, objects["element"], rules
        )
    )


__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "validate_model",
    "validate_slice",
    "run_structural_checks",
    "run_commit_checks",
    "check_fields",
    "ALLOWED_TRANSITIONS",
    "COMPOSITION_RULES",
    "SCREEN_PREDECESSOR",
    "SPEC_STEP_TARGETS",
    "CountRange",
    "allowed_transitions",
    "automation_feeds",
]
