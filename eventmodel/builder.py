"""Builder: the single mutation surface of an event model.

Every mutating call runs as a transaction. It works on a deep copy of the
current model, checks the invariants the call can affect, re-runs the
structural checks on the result and only then swaps the copy in. A failed
call raises and leaves the model exactly as it was.

Slices start open. commit_slice() enforces the composition rules and marks
the slice committed; later additions to a committed slice reopen it.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from pydantic import ValidationError as PydanticValidationError

from .config import RulesConfig
from .core.errors import (
    CycleError,
    DuplicateIdError,
    EventModelError,
    InvalidTransitionError,
    SchemaViolationError,
    SequencingError,
    TypeMismatchError,
    UnknownReferenceError,
    error_from_issue,
    raise_for_issues,
)
from .core.locking import ReadWriteLock
from .core.models import (
    ELEMENT_ARRAYS,
    STRICT_SHAPE,
    Dependency,
    DependencyType,
    Element,
    EventModel,
    Slice,
    SliceType,
    Specification,
    Table,
    ValidationResult,
)
from .graph import DependencyGraph
from .serialization import deserialize, schema_issues, serialize, to_json
from .store import ModelStore
from .validator import run_commit_checks, run_structural_checks, validate_model
from .validator.common import edge_types
from .validator.rules import allowed_transitions
from .validator.structural import check_fields

logger = logging.getLogger(__name__)


# =============================================================================
# Results
# =============================================================================


@dataclass
class CommitResult:
    """Outcome of a successful commit_slice() call."""

    slice_id: str
    warnings: list[SequencingError] = field(default_factory=list)


@dataclass
class RemovalResult:
    """What a remove_element() call took out of the model.

    removed_edges holds (element id, dependency id, direction) for every edge
    dropped from a remaining element.
    """

    element_id: str
    removed_edges: list[tuple[str, str, str]] = field(default_factory=list)
    removed_steps: list[str] = field(default_factory=list)
    removed_specifications: list[str] = field(default_factory=list)
    reopened_slices: list[str] = field(default_factory=list)


@dataclass
class _Staged:
    """Working state of one transaction."""

    store: ModelStore
    committed: set[str]

    def reopen(self, slice_id: str) -> bool:
        if slice_id in self.committed:
            self.committed.discard(slice_id)
            logger.debug("Reopened slice %s", slice_id)
            return True
        return False


def _coerce(cls, payload):
    """Accept a model instance or its persisted dict form."""
    if isinstance(payload, cls):
        return payload.model_copy(deep=True)
    try:
        return cls.model_validate(payload, context={STRICT_SHAPE: True})
    except PydanticValidationError as exc:
        issues = schema_issues(exc)
        raise SchemaViolationError(
            f"Invalid {cls.__name__}: {issues[0].message}",
            location=issues[0].location,
            issues=issues,
        ) from exc


# =============================================================================
# Builder
# =============================================================================


class ModelBuilder:
    """Owns one event model and applies atomic, validated mutations to it.

    Examples:
        builder = ModelBuilder()
        builder.add_slice("s1", "Add Item", "STATE_CHANGE", index=1)
        builder.add_element("s1", {"id": "c1", "title": "Add Item to Cart",
                                   "type": "COMMAND", "fields": [], "dependencies": []})
        result = builder.commit_slice("s1")
    """

    def __init__(
        self,
        model: EventModel | None = None,
        rules: RulesConfig | None = None,
    ):
        self.rules = rules or RulesConfig()
        store = ModelStore(model.model_copy(deep=True) if model is not None else None)
        raise_for_issues(run_structural_checks(store.model, self.rules))
        self._store = store
        self._committed: set[str] = set()
        self._lock = ReadWriteLock()

    @classmethod
    def from_serialized(
        cls,
        data: dict[str, Any] | str | bytes,
        rules: RulesConfig | None = None,
    ) -> "ModelBuilder":
        """Load a persisted model; every slice of it counts as committed."""
        model = deserialize(data, rules)
        builder = cls(model, rules)
        builder._committed = {s.id for s in model.slices}
        return builder

    @contextmanager
    def _transaction(self, action: str) -> Iterator[_Staged]:
        with self._lock.write_locked():
            staged = _Staged(store=self._store.copy(), committed=set(self._committed))
            try:
                yield staged
                raise_for_issues(run_structural_checks(staged.store.model, self.rules))
            except EventModelError as exc:
                logger.warning("Rolled back %s: %s", action, exc)
                raise
            self._store = staged.store
            self._committed = staged.committed

    # ── Mutations ──

    def add_slice(
        self,
        slice_id: str,
        title: str,
        slice_type: SliceType | str,
        index: int,
        **extra: Any,
    ) -> Slice:
        """Add an empty slice.

        extra takes optional slice attributes (status, context, actors,
        aggregates, comments, screen_images). Elements, tables and
        specifications are added through their own calls.
        """
        content = set(ELEMENT_ARRAYS.values()) | {"tables", "specifications"}
        passed = sorted(content.intersection(extra))
        if passed:
            raise SchemaViolationError(
                f"add_slice does not take {', '.join(passed)}; add them separately",
                location=f"slices[{slice_id}]",
            )
        repeated = sorted(
            {"id", "title", "index", "slice_type", "sliceType"}.intersection(extra)
        )
        if repeated:
            raise SchemaViolationError(
                f"add_slice takes {', '.join(repeated)} only as named arguments",
                location=f"slices[{slice_id}]",
            )

        with self._transaction(f"add_slice({slice_id})") as staged:
            if staged.store.index_in_use(index):
                raise DuplicateIdError(
                    f"Slice index {index} is already in use",
                    location=f"slices[{slice_id}].index",
                )
            try:
                new_slice = Slice(
                    id=slice_id,
                    title=title,
                    slice_type=slice_type,
                    index=index,
                    **extra,
                )
            except PydanticValidationError as exc:
                issues = schema_issues(exc)
                raise SchemaViolationError(
                    f"Invalid slice: {issues[0].message}",
                    location=f"slices[{slice_id}]",
                    issues=issues,
                ) from exc
            staged.store.insert_slice(new_slice)
            logger.debug(
                "Added %s slice %s at index %d",
                new_slice.slice_type.value,
                slice_id,
                index,
            )
        return new_slice.model_copy(deep=True)

    def add_element(self, slice_id: str, element: Element | dict[str, Any]) -> Element:
        """Define an element in a slice.

        Dependencies in the payload are applied one by one, in declared order,
        exactly as add_dependency() would apply them.
        """
        element = _coerce(Element, element)
        dependencies = list(element.dependencies)
        element.dependencies = []

        with self._transaction(f"add_element({element.id})") as staged:
            store = staged.store
            store.require_slice(slice_id)
            raise_for_issues(
                check_fields(element.fields, f"{element.id}.fields", owner=element.id)
            )
            store.insert_element(slice_id, element)
            for dep in dependencies:
                self._link(store, element.id, dep)
            staged.reopen(slice_id)
            logger.debug(
                "Added %s %s to slice %s with %d dependencies",
                element.type.value,
                element.id,
                slice_id,
                len(dependencies),
            )
            added = store.require_element(element.id).model_copy(deep=True)
        return added

    def add_dependency(
        self, element_id: str, dependency: Dependency | dict[str, Any]
    ) -> Dependency:
        """Declare an edge on an element and mirror it on the other endpoint.

        Raises:
            UnknownReferenceError: Either endpoint does not exist.
            TypeMismatchError: elementType differs from the other endpoint's type.
            DuplicateIdError: The element already declares this edge.
            CycleError: The edge would close a cycle.
            InvalidTransitionError: The type pair is not an allowed transition.
        """
        dependency = _coerce(Dependency, dependency)
        with self._transaction(f"add_dependency({element_id} -> {dependency.id})") as staged:
            self._link(staged.store, element_id, dependency)
        return dependency.model_copy(deep=True)

    def _link(self, store: ModelStore, element_id: str, dep: Dependency) -> None:
        element = store.require_element(element_id)
        location = f"{element_id}.dependencies"

        other = store.get_element(dep.id)
        if other is None:
            raise UnknownReferenceError(
                f"Dependency points to unknown element '{dep.id}'", location=location
            )
        if other.type != dep.element_type:
            raise TypeMismatchError(
                f"Dependency declares '{dep.id}' as {dep.element_type.value} "
                f"but it is {other.type.value}",
                location=location,
                suggestion=f"Set elementType to {other.type.value}",
            )
        if element.find_dependency(dep.id, dep.type) is not None:
            raise DuplicateIdError(
                f"{dep.type.value} edge to '{dep.id}' already exists on '{element_id}'",
                location=location,
            )

        if dep.type == DependencyType.OUTBOUND:
            source, target = element_id, dep.id
        else:
            source, target = dep.id, element_id
        graph = DependencyGraph.from_elements(store.elements())
        if graph.would_create_cycle(source, target):
            closing = graph.path(target, source) or [target]
            raise CycleError(
                f"Edge {source} -> {target} would close the cycle "
                + " -> ".join([source] + closing),
                location=location,
            )

        source_type, target_type = edge_types(element.type, dep)
        if (source_type, target_type) not in allowed_transitions(self.rules):
            raise InvalidTransitionError(
                f"Edge {source_type.value} -> {target_type.value} "
                f"({source} -> {target}) is not an allowed transition",
                location=location,
            )

        element.dependencies.append(dep.model_copy(deep=True))
        mirror = dep.mirrored(element)
        if other.find_dependency(element_id, mirror.type) is None:
            other.dependencies.append(mirror)
        logger.debug("Linked %s -> %s", source, target)

    def add_specification(
        self, slice_id: str, specification: Specification | dict[str, Any]
    ) -> Specification:
        specification = _coerce(Specification, specification)
        with self._transaction(f"add_specification({specification.id})") as staged:
            staged.store.insert_specification(slice_id, specification)
            staged.reopen(slice_id)
            logger.debug(
                "Added specification %s to slice %s", specification.id, slice_id
            )
        return specification.model_copy(deep=True)

    def add_table(self, slice_id: str, table: Table | dict[str, Any]) -> Table:
        table = _coerce(Table, table)
        with self._transaction(f"add_table({table.id})") as staged:
            raise_for_issues(
                check_fields(table.fields, f"{table.id}.fields", owner=table.id)
            )
            staged.store.insert_table(slice_id, table)
            staged.reopen(slice_id)
            logger.debug("Added table %s to slice %s", table.id, slice_id)
        return table.model_copy(deep=True)

    def remove_element(self, element_id: str, cascade: bool = False) -> RemovalResult:
        """Remove an element.

        Without cascade the element must be unreferenced, otherwise
        ReferencedElementError names the referrers. With cascade, every edge
        naming the element, every step linked to it and every specification
        linked to it go too. Slices whose contents changed are reopened.
        """
        result = RemovalResult(element_id=element_id)
        with self._transaction(f"remove_element({element_id})") as staged:
            store = staged.store
            if not cascade:
                owner = store.remove_element(element_id)
            else:
                self._cascade(staged, element_id, result)
                owner = store.detach_element(element_id)
            if staged.reopen(owner.id):
                result.reopened_slices.append(owner.id)
            logger.debug(
                "Removed element %s (cascade=%s): %d edges, %d steps, %d specifications",
                element_id,
                cascade,
                len(result.removed_edges),
                len(result.removed_steps),
                len(result.removed_specifications),
            )
        return result

    def _cascade(self, staged: _Staged, element_id: str, result: RemovalResult) -> None:
        store = staged.store
        store.require_element(element_id)

        def reopened(slice_id: str) -> None:
            if staged.reopen(slice_id):
                result.reopened_slices.append(slice_id)

        for element in list(store.elements()):
            if element.id == element_id:
                continue
            kept = [d for d in element.dependencies if d.id != element_id]
            if len(kept) == len(element.dependencies):
                continue
            for dep in element.dependencies:
                if dep.id == element_id:
                    result.removed_edges.append((element.id, dep.id, dep.type.value))
            element.dependencies = kept
            reopened(store.owner_of(element.id).id)

        for spec in list(store.specifications()):
            if spec.linked_id == element_id:
                owner = store.detach_specification(spec.id)
                result.removed_specifications.append(spec.id)
                if owner is not None:
                    reopened(owner.id)
                continue
            touched = False
            for section in ("given", "when", "then"):
                steps = getattr(spec, section)
                kept_steps = [s for s in steps if s.linked_id != element_id]
                if len(kept_steps) != len(steps):
                    result.removed_steps.extend(
                        s.id for s in steps if s.linked_id == element_id
                    )
                    setattr(spec, section, kept_steps)
                    touched = True
            if touched:
                owner = store.specification_owner(spec.id)
                if owner is not None:
                    reopened(owner.id)

    def commit_slice(self, slice_id: str) -> CommitResult:
        """Enforce the composition rules on a slice and mark it committed.

        Sequencing problems do not block the commit; they come back as
        warnings on the result.
        """
        with self._lock.write_locked():
            store = self._store
            target = store.require_slice(slice_id)
            issues = run_commit_checks(
                target, store.ordered_slices(), store.element_map(), self.rules
            )
            try:
                raise_for_issues(issues)
            except EventModelError as exc:
                logger.warning("Commit of slice %s rejected: %s", slice_id, exc)
                raise

            warnings = []
            for issue in issues:
                if issue.category == SequencingError.category:
                    warning = error_from_issue(issue)
                    warnings.append(warning)
                    logger.warning("Slice %s: %s", slice_id, warning)
            self._committed.add(slice_id)

        logger.info("Committed slice %s with %d warning(s)", slice_id, len(warnings))
        return CommitResult(slice_id=slice_id, warnings=warnings)

    # ── Queries ──

    def slices(self) -> list[Slice]:
        """Slices in index order (copies)."""
        with self._lock.read_locked():
            return [s.model_copy(deep=True) for s in self._store.ordered_slices()]

    def get_slice(self, slice_id: str) -> Slice | None:
        with self._lock.read_locked():
            s = self._store.get_slice(slice_id)
            return s.model_copy(deep=True) if s is not None else None

    def get_element(self, element_id: str) -> Element | None:
        with self._lock.read_locked():
            element = self._store.get_element(element_id)
            return element.model_copy(deep=True) if element is not None else None

    def dependency_graph(self) -> dict[str, list[str]]:
        """Adjacency mapping element id -> ids it feeds."""
        with self._lock.read_locked():
            return DependencyGraph.from_elements(self._store.elements()).to_adjacency()

    def has_path(self, source: str, target: str) -> bool:
        with self._lock.read_locked():
            graph = DependencyGraph.from_elements(self._store.elements())
            return graph.has_path(source, target)

    def committed_slices(self) -> list[str]:
        """Ids of committed slices in index order."""
        with self._lock.read_locked():
            return [
                s.id for s in self._store.ordered_slices() if s.id in self._committed
            ]

    def is_committed(self, slice_id: str) -> bool:
        with self._lock.read_locked():
            return slice_id in self._committed

    def validate(self) -> ValidationResult:
        """Structural checks plus commit checks on the committed slices."""
        with self._lock.read_locked():
            return validate_model(self._store.model, self.rules, self._committed)

    def snapshot(self) -> EventModel:
        """Deep copy of the current model."""
        with self._lock.read_locked():
            return self._store.model.model_copy(deep=True)

    def serialize(self) -> dict[str, Any]:
        with self._lock.read_locked():
            return serialize(self._store.model)

    def to_json(self, indent: int | None = 2) -> str:
        with self._lock.read_locked():
            return to_json(self._store.model, indent=indent)
