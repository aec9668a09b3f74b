"""Id-indexed stores over an EventModel.

ModelStore keeps dict indexes from id to slice, element, specification and
table, plus the slice that defines each of them. Slices stay the single
owner of their objects; the indexes only point into them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from ..core.errors import (
    DuplicateIdError,
    ReferencedElementError,
    UnknownReferenceError,
)
from ..core.models import (
    Element,
    EventModel,
    Slice,
    Specification,
    Table,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reference:
    """Something that points at an element id."""

    kind: str  # "dependency", "specification" or "step"
    owner_id: str  # element or specification holding the reference
    location: str

    def __str__(self) -> str:
        return f"{self.kind} at {self.location}"


@dataclass(frozen=True)
class Duplicate:
    kind: str
    id: str
    location: str


def index_model(
    model: EventModel,
) -> tuple[dict[str, dict[str, Any]], dict[str, dict[str, str]], list[Duplicate]]:
    """Index every id-bearing object of a model.

    Returns (objects, owners, duplicates) where objects and owners are keyed by
    kind ("slice", "element", "specification", "table"). The first definition
    of an id wins; later ones are reported as duplicates.
    """
    objects: dict[str, dict[str, Any]] = {
        "slice": {},
        "element": {},
        "specification": {},
        "table": {},
    }
    owners: dict[str, dict[str, str]] = {
        "element": {},
        "specification": {},
        "table": {},
    }
    duplicates: list[Duplicate] = []

    def _add(kind: str, obj_id: str, obj: Any, owner: str | None, location: str):
        if obj_id in objects[kind]:
            duplicates.append(Duplicate(kind=kind, id=obj_id, location=location))
            return
        objects[kind][obj_id] = obj
        if owner is not None:
            owners[kind][obj_id] = owner

    for s in model.slices:
        _add("slice", s.id, s, None, f"slices[{s.id}]")
        for element in s.elements():
            _add("element", element.id, element, s.id, f"slices[{s.id}].{element.id}")
        for spec in s.specifications:
            _add(
                "specification",
                spec.id,
                spec,
                s.id,
                f"slices[{s.id}].specifications[{spec.id}]",
            )
        for table in s.tables:
            _add("table", table.id, table, s.id, f"slices[{s.id}].tables[{table.id}]")

    return objects, owners, duplicates


class ModelStore:
    """Id-indexed view over one EventModel.

    Construction fails with DuplicateIdError if any id is defined twice.
    """

    def __init__(self, model: EventModel | None = None):
        self.model = model if model is not None else EventModel()
        self.reindex()

    def reindex(self) -> None:
        objects, owners, duplicates = index_model(self.model)
        if duplicates:
            dup = duplicates[0]
            raise DuplicateIdError(
                f"{dup.kind} id '{dup.id}' is defined more than once",
                location=dup.location,
            )
        self._slices: dict[str, Slice] = objects["slice"]
        self._elements: dict[str, Element] = objects["element"]
        self._specifications: dict[str, Specification] = objects["specification"]
        self._tables: dict[str, Table] = objects["table"]
        self._element_owner = owners["element"]
        self._specification_owner = owners["specification"]
        self._table_owner = owners["table"]

    def copy(self) -> "ModelStore":
        """Deep copy of the model with fresh indexes."""
        return ModelStore(self.model.model_copy(deep=True))

    # ── Lookups ──

    def ordered_slices(self) -> list[Slice]:
        return self.model.ordered_slices()

    def get_slice(self, slice_id: str) -> Slice | None:
        return self._slices.get(slice_id)

    def require_slice(self, slice_id: str) -> Slice:
        s = self._slices.get(slice_id)
        if s is None:
            raise UnknownReferenceError(
                f"Unknown slice '{slice_id}'", location=f"slices[{slice_id}]"
            )
        return s

    def get_element(self, element_id: str) -> Element | None:
        return self._elements.get(element_id)

    def require_element(self, element_id: str) -> Element:
        element = self._elements.get(element_id)
        if element is None:
            raise UnknownReferenceError(
                f"Unknown element '{element_id}'", location=element_id
            )
        return element

    def owner_of(self, element_id: str) -> Slice:
        """Slice that defines an element."""
        self.require_element(element_id)
        return self._slices[self._element_owner[element_id]]

    def specification_owner(self, spec_id: str) -> Slice | None:
        owner = self._specification_owner.get(spec_id)
        return self._slices[owner] if owner is not None else None

    def elements(self) -> Iterator[Element]:
        return iter(self._elements.values())

    def element_map(self) -> dict[str, Element]:
        return dict(self._elements)

    def specifications(self) -> Iterator[Specification]:
        return iter(self._specifications.values())

    def index_in_use(self, index: int) -> bool:
        return any(s.index == index for s in self._slices.values())

    # ── Insertion ──

    def insert_slice(self, new_slice: Slice) -> Slice:
        if new_slice.id in self._slices:
            raise DuplicateIdError(
                f"Slice id '{new_slice.id}' already exists",
                location=f"slices[{new_slice.id}]",
            )
        self.model.slices.append(new_slice)
        self.reindex()
        return new_slice

    def insert_element(self, slice_id: str, element: Element) -> Element:
        target = self.require_slice(slice_id)
        if element.id in self._elements:
            owner = self._element_owner[element.id]
            raise DuplicateIdError(
                f"Element id '{element.id}' is already defined in slice '{owner}'",
                location=f"slices[{slice_id}].{element.id}",
            )
        target.array_for(element.type).append(element)
        self._elements[element.id] = element
        self._element_owner[element.id] = slice_id
        return element

    def insert_table(self, slice_id: str, table: Table) -> Table:
        target = self.require_slice(slice_id)
        if table.id in self._tables:
            raise DuplicateIdError(
                f"Table id '{table.id}' already exists",
                location=f"slices[{slice_id}].tables[{table.id}]",
            )
        target.tables.append(table)
        self._tables[table.id] = table
        self._table_owner[table.id] = slice_id
        return table

    def insert_specification(self, slice_id: str, spec: Specification) -> Specification:
        target = self.require_slice(slice_id)
        if spec.id in self._specifications:
            raise DuplicateIdError(
                f"Specification id '{spec.id}' already exists",
                location=f"slices[{slice_id}].specifications[{spec.id}]",
            )
        target.specifications.append(spec)
        self._specifications[spec.id] = spec
        self._specification_owner[spec.id] = slice_id
        return spec

    # ── References and removal ──

    def referrers(self, element_id: str) -> list[Reference]:
        """Everything outside the element itself that points at element_id."""
        refs: list[Reference] = []
        for element in self._elements.values():
            if element.id == element_id:
                continue
            for i, dep in enumerate(element.dependencies):
                if dep.id == element_id:
                    refs.append(
                        Reference(
                            kind="dependency",
                            owner_id=element.id,
                            location=f"{element.id}.dependencies[{i}]",
                        )
                    )
        for spec in self._specifications.values():
            if spec.linked_id == element_id:
                refs.append(
                    Reference(
                        kind="specification",
                        owner_id=spec.id,
                        location=f"{spec.id}.linkedId",
                    )
                )
            for section, i, step in spec.steps():
                if step.linked_id == element_id:
                    refs.append(
                        Reference(
                            kind="step",
                            owner_id=spec.id,
                            location=f"{spec.id}.{section}[{i}].linkedId",
                        )
                    )
        return refs

    def remove_element(self, element_id: str) -> Slice:
        """Remove an unreferenced element; returns the slice that defined it."""
        self.require_element(element_id)
        refs = self.referrers(element_id)
        if refs:
            raise ReferencedElementError(
                f"Element '{element_id}' is still referenced by "
                + ", ".join(str(r) for r in refs),
                location=element_id,
                suggestion="Remove the referring edges/specifications first or use cascade",
            )
        return self.detach_element(element_id)

    def detach_element(self, element_id: str) -> Slice:
        """Drop an element from its slice without reference checks."""
        owner = self.owner_of(element_id)
        element = self._elements.pop(element_id)
        del self._element_owner[element_id]
        array = owner.array_for(element.type)
        array[:] = [e for e in array if e.id != element_id]
        logger.debug("Detached element %s from slice %s", element_id, owner.id)
        return owner

    def detach_specification(self, spec_id: str) -> Slice | None:
        owner = self.specification_owner(spec_id)
        if owner is None:
            return None
        owner.specifications[:] = [s for s in owner.specifications if s.id != spec_id]
        del self._specifications[spec_id]
        del self._specification_owner[spec_id]
        return owner
