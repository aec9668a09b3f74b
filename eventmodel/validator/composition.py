"""Commit-time checks for a single slice.

Intermediate builder states may break these rules; they are enforced when a
slice is committed and for every slice of a deserialized model.
"""

from typing import Mapping

from ..config import RulesConfig
from ..core.models import (
    ELEMENT_ARRAYS,
    Element,
    Slice,
    ValidationIssue,
)
from .common import ValidationError, ValidationWarning
from .rules import COMPOSITION_RULES, SCREEN_PREDECESSOR, automation_feeds


def run_commit_checks(
    s: Slice,
    ordered_slices: list[Slice],
    elements: Mapping[str, Element],
    rules: RulesConfig | None = None,
) -> list[ValidationIssue]:
    """Run composition, feed, connectivity and sequencing checks on a slice."""
    rules = rules or RulesConfig()
    issues: list[ValidationIssue] = []
    issues.extend(check_composition(s))
    issues.extend(check_automation_feed(s, elements, rules))
    if rules.require_connected_elements:
        issues.extend(check_connected(s))
    if rules.sequencing_warnings:
        issues.extend(check_sequencing(s, previous_slice(s, ordered_slices)))
    return issues


def previous_slice(s: Slice, ordered_slices: list[Slice]) -> Slice | None:
    """The slice immediately before s by index."""
    previous = None
    for other in ordered_slices:
        if other.index >= s.index:
            break
        previous = other
    return previous


def check_composition(s: Slice) -> list[ValidationIssue]:
    """Element counts per type must match the table for the slice type."""
    issues = []
    table = COMPOSITION_RULES[s.slice_type]
    counts = s.counts()
    for element_type, allowed in table.items():
        count = counts[element_type]
        if not allowed.allows(count):
            array = ELEMENT_ARRAYS[element_type]
            issues.append(
                ValidationError(
                    category="COMPOSITION",
                    location=f"slices[{s.id}].{array}",
                    message=(
                        f"{s.slice_type.value} slice '{s.id}' has {count} {array}, "
                        f"expected {allowed.describe()}"
                    ),
                )
            )
    return issues


def check_automation_feed(
    s: Slice, elements: Mapping[str, Element], rules: RulesConfig
) -> list[ValidationIssue]:
    """Each processor needs an INBOUND edge from an allowed feed type."""
    issues = []
    feeds = automation_feeds(rules)
    for processor in s.processors:
        fed = any(
            dep.element_type in feeds and dep.id in elements
            for dep in processor.inbound()
        )
        if not fed:
            issues.append(
                ValidationError(
                    category="COMPOSITION",
                    location=f"slices[{s.id}].processors[{processor.id}]",
                    message=f"Processor '{processor.id}' is not fed by a read model",
                    suggestion="Add an INBOUND dependency from a READMODEL",
                )
            )
    return issues


def check_connected(s: Slice) -> list[ValidationIssue]:
    """Elements of a committed slice must have at least one dependency."""
    return [
        ValidationError(
            category="DISCONNECTED",
            location=f"slices[{s.id}].{element.id}",
            message=f"{element.type.value} '{element.id}' has no dependencies",
            suggestion="Connect it to the rest of the model or remove it",
        )
        for element in s.elements()
        if not element.dependencies
    ]


def check_sequencing(s: Slice, previous: Slice | None) -> list[ValidationIssue]:
    """A screen requires the preceding slice to be of the complementary type."""
    if not s.screens:
        return []
    required = SCREEN_PREDECESSOR[s.slice_type]
    if required is None:
        return []
    if previous is not None and previous.slice_type == required:
        return []

    found = (
        f"'{previous.id}' is {previous.slice_type.value}"
        if previous is not None
        else "there is no preceding slice"
    )
    return [
        ValidationWarning(
            category="SEQUENCING",
            location=f"slices[{s.id}].screens",
            message=(
                f"Screen in {s.slice_type.value} slice '{s.id}' expects a "
                f"preceding {required.value} slice, but {found}"
            ),
        )
    ]
