"""Structural validation checks.

These checks produce ERROR severity issues. They hold for every model at all
times, committed or not:

- Unique ids per kind and distinct slice indexes
- Element placement (array matches element type)
- Field names and subfield typing
- Dependency references, declared types, transitions and symmetry
- Acyclicity of the dependency graph
- Specification links and step typing
"""

from typing import Mapping

from ..config import RulesConfig
from ..core.models import (
    ELEMENT_ARRAYS,
    DependencyType,
    Element,
    EventModel,
    Field,
    FieldType,
    SliceType,
    Slice,
    Specification,
    ValidationIssue,
)
from ..graph import DependencyGraph
from ..store import index_model
from .common import ValidationError, edge_location, edge_types
from .rules import SPEC_STEP_TARGETS, allowed_transitions


# =============================================================================
# Main Entry Point
# =============================================================================


def run_structural_checks(
    model: EventModel, rules: RulesConfig | None = None
) -> list[ValidationIssue]:
    """Run all structural (ERROR) checks on a model."""
    issues: list[ValidationIssue] = []

    objects, _owners, duplicates = index_model(model)
    elements: dict[str, Element] = objects["element"]

    for dup in duplicates:
        issues.append(
            ValidationError(
                category="DUPLICATE_ID",
                location=dup.location,
                message=f"{dup.kind} id '{dup.id}' is defined more than once",
                suggestion=f"Give each {dup.kind} a unique id",
            )
        )
    issues.extend(check_slice_indexes(model))

    for s in model.slices:
        issues.extend(check_placement(s))
        for element in s.elements():
            issues.extend(
                check_fields(element.fields, f"{element.id}.fields", owner=element.id)
            )
        for table in s.tables:
            issues.extend(
                check_fields(table.fields, f"{table.id}.fields", owner=table.id)
            )

    for s in model.slices:
        for element in s.elements():
            issues.extend(check_dependencies(element, elements, rules))

    issues.extend(check_acyclic(elements.values()))

    for s in model.slices:
        for spec in s.specifications:
            issues.extend(check_specification(spec, s, elements))

    return issues


# =============================================================================
# Ids and placement
# =============================================================================


def check_slice_indexes(model: EventModel) -> list[ValidationIssue]:
    """Slice indexes form a strict order, so no two slices may share one."""
    issues = []
    seen: dict[int, str] = {}
    for s in model.slices:
        if s.index in seen:
            issues.append(
                ValidationError(
                    category="DUPLICATE_ID",
                    location=f"slices[{s.id}].index",
                    message=(
                        f"Slice index {s.index} is used by both "
                        f"'{seen[s.index]}' and '{s.id}'"
                    ),
                    suggestion="Give each slice a distinct index",
                )
            )
        else:
            seen[s.index] = s.id
    return issues


def check_placement(s: Slice) -> list[ValidationIssue]:
    """Every element sits in the slice array for its type."""
    issues = []
    for element_type, array in ELEMENT_ARRAYS.items():
        for element in getattr(s, array):
            if element.type != element_type:
                issues.append(
                    ValidationError(
                        category="COMPOSITION",
                        location=f"slices[{s.id}].{array}",
                        message=(
                            f"{element.type.value} element '{element.id}' is listed "
                            f"under {array}"
                        ),
                        suggestion=f"Move it to {ELEMENT_ARRAYS[element.type]}",
                    )
                )
    return issues


# =============================================================================
# Fields
# =============================================================================


def check_fields(
    fields: list[Field], location: str, owner: str | None = None
) -> list[ValidationIssue]:
    """Check names and subfield typing of a field list, recursively."""
    issues = []
    seen: set[str] = set()
    for i, f in enumerate(fields):
        field_loc = f"{location}[{i}]"
        if not f.name.strip():
            issues.append(
                ValidationError(
                    category="FIELD",
                    location=field_loc,
                    message="Field name is empty",
                )
            )
        elif f.name in seen:
            issues.append(
                ValidationError(
                    category="FIELD",
                    location=field_loc,
                    message=f"Duplicate field name '{f.name}'"
                    + (f" on '{owner}'" if owner else ""),
                )
            )
        seen.add(f.name)

        if f.subfields:
            if f.type != FieldType.CUSTOM:
                issues.append(
                    ValidationError(
                        category="FIELD",
                        location=field_loc,
                        message=(
                            f"Field '{f.name}' has subfields but type "
                            f"{f.type.value}"
                        ),
                        suggestion="Fields with subfields must have type Custom",
                    )
                )
            issues.extend(
                check_fields(f.subfields, f"{field_loc}.subfields", owner=f.name)
            )
    return issues


# =============================================================================
# Dependencies
# =============================================================================


def check_dependencies(
    element: Element,
    elements: Mapping[str, Element],
    rules: RulesConfig | None = None,
) -> list[ValidationIssue]:
    """Check every dependency declared on one element.

    Per edge: the other end exists, has the declared type, the edge is not
    declared twice, the type pair is an allowed transition, and the other end
    declares the mirrored edge.
    """
    issues = []
    transitions = allowed_transitions(rules)
    seen: set[tuple[str, DependencyType]] = set()

    for i, dep in enumerate(element.dependencies):
        location = edge_location(element.id, i)

        key = (dep.id, dep.type)
        if key in seen:
            issues.append(
                ValidationError(
                    category="DUPLICATE_ID",
                    location=location,
                    message=(
                        f"{dep.type.value} edge to '{dep.id}' is declared more "
                        "than once"
                    ),
                )
            )
            continue
        seen.add(key)

        other = elements.get(dep.id)
        if other is None:
            issues.append(
                ValidationError(
                    category="UNKNOWN_REFERENCE",
                    location=location,
                    message=f"Dependency points to unknown element '{dep.id}'",
                )
            )
            continue

        if other.type != dep.element_type:
            issues.append(
                ValidationError(
                    category="TYPE_MISMATCH",
                    location=location,
                    message=(
                        f"Dependency declares '{dep.id}' as "
                        f"{dep.element_type.value} but it is {other.type.value}"
                    ),
                    suggestion=f"Set elementType to {other.type.value}",
                )
            )
            continue

        source, target = edge_types(element.type, dep)
        if (source, target) not in transitions:
            issues.append(
                ValidationError(
                    category="INVALID_TRANSITION",
                    location=location,
                    message=(
                        f"Edge {source.value} -> {target.value} is not an "
                        "allowed transition"
                    ),
                )
            )
            continue

        opposite = (
            DependencyType.INBOUND
            if dep.type == DependencyType.OUTBOUND
            else DependencyType.OUTBOUND
        )
        if other.find_dependency(element.id, opposite) is None:
            issues.append(
                ValidationError(
                    category="ASYMMETRIC",
                    location=location,
                    message=(
                        f"{dep.type.value} edge to '{dep.id}' has no "
                        f"{opposite.value} edge back on '{dep.id}'"
                    ),
                    suggestion=f"Add the {opposite.value} dependency on '{dep.id}'",
                )
            )
    return issues


def check_acyclic(elements) -> list[ValidationIssue]:
    """The graph of OUTBOUND edges must not contain a cycle."""
    cycle = DependencyGraph.from_elements(elements).find_cycle()
    if cycle is None:
        return []
    return [
        ValidationError(
            category="CYCLE",
            location=cycle[0],
            message="Dependency cycle: " + " -> ".join(cycle),
            suggestion="Remove one of the edges on the cycle",
        )
    ]


# =============================================================================
# Specifications
# =============================================================================


def check_specification(
    spec: Specification, owner: Slice, elements: Mapping[str, Element]
) -> list[ValidationIssue]:
    """Check links, step typing and step ids of one specification."""
    issues = []
    location = f"slices[{owner.id}].specifications[{spec.id}]"

    if spec.linked_id not in elements:
        issues.append(
            ValidationError(
                category="UNKNOWN_REFERENCE",
                location=f"{location}.linkedId",
                message=f"Specification links to unknown element '{spec.linked_id}'",
            )
        )

    if owner.slice_type == SliceType.STATE_VIEW and spec.when:
        issues.append(
            ValidationError(
                category="COMPOSITION",
                location=f"{location}.when",
                message=(
                    f"Specification '{spec.id}' of STATE_VIEW slice "
                    f"'{owner.id}' has a when step"
                ),
                suggestion="State view scenarios use given and then only",
            )
        )

    step_ids: set[str] = set()
    for section, i, step in spec.steps():
        step_loc = f"{location}.{section}[{i}]"

        if step.id in step_ids:
            issues.append(
                ValidationError(
                    category="DUPLICATE_ID",
                    location=step_loc,
                    message=f"Step id '{step.id}' is used twice in '{spec.id}'",
                )
            )
        step_ids.add(step.id)

        issues.extend(check_fields(step.fields, f"{step_loc}.fields", owner=step.id))

        if step.linked_id is None:
            continue
        expected = SPEC_STEP_TARGETS[step.type]
        if expected is None:
            issues.append(
                ValidationError(
                    category="TYPE_MISMATCH",
                    location=f"{step_loc}.linkedId",
                    message=f"{step.type.value} step must not link to an element",
                )
            )
            continue
        target = elements.get(step.linked_id)
        if target is None:
            issues.append(
                ValidationError(
                    category="UNKNOWN_REFERENCE",
                    location=f"{step_loc}.linkedId",
                    message=f"Step links to unknown element '{step.linked_id}'",
                )
            )
        elif target.type != expected:
            issues.append(
                ValidationError(
                    category="TYPE_MISMATCH",
                    location=f"{step_loc}.linkedId",
                    message=(
                        f"{step.type.value} step links to {target.type.value} "
                        f"'{step.linked_id}', expected {expected.value}"
                    ),
                )
            )
    return issues
