"""Event model schema for eventmodel.

An EventModel is an ordered list of slices. Each slice bundles typed elements
(commands, events, read models, screens, processors) together with tables,
Given/When/Then specifications, actors and aggregate names.

This module contains:
- Enums: SliceType, ElementType, DependencyType, FieldType, Cardinality,
  SpecStepType, SliceStatus, ElementContext
- Leaf objects: Field, Dependency, Actor, Table, ScreenImage, Comment
- Elements: Element
- Scenarios: SpecificationStep, Specification
- Structure: Slice, EventModel

Python attributes are snake_case; the persisted shape uses camelCase keys.
Required keys are always considered "set" so that dumping with
``exclude_unset=True`` keeps them while leaving absent optional keys out.
Scalar attributes use pydantic strict types so wrongly typed values are
rejected instead of coerced; enums still accept their string values.
"""

from enum import Enum
from typing import Any, ClassVar, Iterator

from pydantic import (
    BaseModel,
    ConfigDict,
    Field as PydanticField,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationInfo,
    model_validator,
)
from pydantic.alias_generators import to_camel


# Validation context flag: reject snake_case keys and require persisted keys.
STRICT_SHAPE = "strict_shape"


# =============================================================================
# Enums
# =============================================================================


class SliceType(str, Enum):
    STATE_CHANGE = "STATE_CHANGE"
    STATE_VIEW = "STATE_VIEW"
    AUTOMATION = "AUTOMATION"


class ElementType(str, Enum):
    COMMAND = "COMMAND"
    EVENT = "EVENT"
    READMODEL = "READMODEL"
    SCREEN = "SCREEN"
    AUTOMATION = "AUTOMATION"


class DependencyType(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class FieldType(str, Enum):
    STRING = "String"
    BOOLEAN = "Boolean"
    DOUBLE = "Double"
    DECIMAL = "Decimal"
    LONG = "Long"
    CUSTOM = "Custom"
    DATE = "Date"
    DATE_TIME = "DateTime"
    UUID = "UUID"
    INT = "Int"


class Cardinality(str, Enum):
    SINGLE = "Single"
    LIST = "List"


class SpecStepType(str, Enum):
    SPEC_EVENT = "SPEC_EVENT"
    SPEC_COMMAND = "SPEC_COMMAND"
    SPEC_READMODEL = "SPEC_READMODEL"
    SPEC_ERROR = "SPEC_ERROR"


class SliceStatus(str, Enum):
    CREATED = "Created"
    DONE = "Done"
    IN_PROGRESS = "InProgress"
    BLOCKED = "Blocked"
    ASSIGNED = "Assigned"
    PLANNED = "Planned"
    REVIEW = "Review"


class ElementContext(str, Enum):
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


# =============================================================================
# Base
# =============================================================================


class SchemaModel(BaseModel):
    """Base for every persisted object.

    REQUIRED_FIELDS names the attributes whose keys must appear in the
    persisted form. They are always marked as set after construction.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def check_persisted_shape(cls, data: Any, info: ValidationInfo) -> Any:
        if not (info.context and info.context.get(STRICT_SHAPE)):
            return data
        if not isinstance(data, dict):
            return data

        keys = {cls.persisted_key(name) for name in cls.model_fields}
        unknown = sorted(str(k) for k in data if k not in keys)
        if unknown:
            raise ValueError(f"unknown key(s): {', '.join(unknown)}")

        missing = [
            cls.persisted_key(name)
            for name in cls.REQUIRED_FIELDS
            if cls.persisted_key(name) not in data
        ]
        if missing:
            raise ValueError(f"missing required key(s): {', '.join(missing)}")
        return data

    def model_post_init(self, __context: Any) -> None:
        self.__pydantic_fields_set__.update(self.REQUIRED_FIELDS)

    @classmethod
    def persisted_key(cls, name: str) -> str:
        """Persisted (camelCase) key for a Python attribute name."""
        return cls.model_fields[name].alias or name


# =============================================================================
# Leaf objects
# =============================================================================


class Field(SchemaModel):
    """A typed, example-bearing attribute of an element, table or step.

    Fields nest through ``subfields``; a field with subfields must be Custom.
    """

    REQUIRED_FIELDS = ("name", "type")

    name: StrictStr
    type: FieldType
    example: Any = None
    subfields: list["Field"] = PydanticField(default_factory=list)
    mapping: StrictStr | None = None
    optional: StrictBool = False
    technical_attribute: StrictBool = False
    generated: StrictBool = False
    id_attribute: StrictBool = False
    schema_: StrictStr | None = PydanticField(default=None, alias="schema")
    cardinality: Cardinality = Cardinality.SINGLE


class Dependency(SchemaModel):
    """Directed edge descriptor attached to an element.

    OUTBOUND on A naming B: "A feeds B, and B is of type element_type".
    INBOUND on B naming A: "B is fed by A, and A is of type element_type".
    """

    REQUIRED_FIELDS = ("id", "type", "title", "element_type")

    id: StrictStr
    type: DependencyType
    title: StrictStr
    element_type: ElementType

    def mirrored(self, owner: "Element") -> "Dependency":
        """The edge the other endpoint must declare for this one to be symmetric."""
        return Dependency(
            id=owner.id,
            type=(
                DependencyType.INBOUND
                if self.type == DependencyType.OUTBOUND
                else DependencyType.OUTBOUND
            ),
            title=owner.title,
            element_type=owner.type,
        )


class Actor(SchemaModel):
    REQUIRED_FIELDS = ("name",)

    name: StrictStr
    auth_required: StrictBool = False


class Table(SchemaModel):
    """A persisted table shape referenced by a slice."""

    REQUIRED_FIELDS = ("id", "title", "fields")

    id: StrictStr
    title: StrictStr
    fields: list[Field] = PydanticField(default_factory=list)


class ScreenImage(SchemaModel):
    REQUIRED_FIELDS = ("id", "title")

    id: StrictStr
    title: StrictStr
    url: StrictStr | None = None


class Comment(SchemaModel):
    REQUIRED_FIELDS = ("description",)

    description: StrictStr


# =============================================================================
# Elements
# =============================================================================


class Element(SchemaModel):
    """A typed node of the model graph (command, event, read model, screen, processor)."""

    REQUIRED_FIELDS = ("id", "title", "type", "fields", "dependencies")

    group_id: StrictStr | None = None
    id: StrictStr
    tags: list[StrictStr] = PydanticField(default_factory=list)
    domain: StrictStr | None = None
    model_context: StrictStr | None = None
    context: ElementContext | None = None
    slice: StrictStr | None = None
    title: StrictStr
    fields: list[Field] = PydanticField(default_factory=list)
    type: ElementType
    description: StrictStr | None = None
    aggregate: StrictStr | None = None
    aggregate_dependencies: list[StrictStr] = PydanticField(default_factory=list)
    dependencies: list[Dependency] = PydanticField(default_factory=list)
    api_endpoint: StrictStr | None = None
    service: StrictStr | None = None
    creates_aggregate: StrictBool = False
    triggers: list[StrictStr] = PydanticField(default_factory=list)
    sketched: StrictBool = False
    prototype: dict[str, Any] | None = None
    list_element: StrictBool = False

    def outbound(self) -> list[Dependency]:
        return [d for d in self.dependencies if d.type == DependencyType.OUTBOUND]

    def inbound(self) -> list[Dependency]:
        return [d for d in self.dependencies if d.type == DependencyType.INBOUND]

    def find_dependency(
        self, target_id: str, direction: DependencyType
    ) -> Dependency | None:
        for dep in self.dependencies:
            if dep.id == target_id and dep.type == direction:
                return dep
        return None


# =============================================================================
# Specifications
# =============================================================================


class SpecificationStep(SchemaModel):
    """One Given/When/Then row of a specification."""

    REQUIRED_FIELDS = ("id", "title", "type", "fields")

    id: StrictStr
    title: StrictStr
    type: SpecStepType
    fields: list[Field] = PydanticField(default_factory=list)
    linked_id: StrictStr | None = None
    examples: list[Any] = PydanticField(default_factory=list)
    tags: list[StrictStr] = PydanticField(default_factory=list)
    index: StrictInt | None = None
    spec_row: StrictInt | None = None
    expect_empty_list: StrictBool = False


class Specification(SchemaModel):
    """Given/When/Then scenario validating a slice against its elements."""

    REQUIRED_FIELDS = ("id", "title", "given", "when", "then", "linked_id")

    id: StrictStr
    slice_name: StrictStr | None = None
    vertical: StrictBool = False
    title: StrictStr
    given: list[SpecificationStep] = PydanticField(default_factory=list)
    when: list[SpecificationStep] = PydanticField(default_factory=list)
    then: list[SpecificationStep] = PydanticField(default_factory=list)
    comments: list[Comment] = PydanticField(default_factory=list)
    linked_id: StrictStr

    def steps(self) -> Iterator[tuple[str, int, SpecificationStep]]:
        """Iterate (section, position, step) over given, when and then."""
        for section in ("given", "when", "then"):
            for i, step in enumerate(getattr(self, section)):
                yield section, i, step


# =============================================================================
# Slices
# =============================================================================

# Slice array holding each element type
ELEMENT_ARRAYS: dict[ElementType, str] = {
    ElementType.COMMAND: "commands",
    ElementType.EVENT: "events",
    ElementType.READMODEL: "readmodels",
    ElementType.SCREEN: "screens",
    ElementType.AUTOMATION: "processors",
}


class Slice(SchemaModel):
    """One business-process step: a typed bundle of elements."""

    REQUIRED_FIELDS = (
        "id",
        "index",
        "title",
        "slice_type",
        "commands",
        "events",
        "readmodels",
        "screens",
        "processors",
        "tables",
        "specifications",
        "actors",
        "aggregates",
    )

    id: StrictStr
    status: SliceStatus | None = None
    index: StrictInt
    title: StrictStr
    context: StrictStr | None = None
    commands: list[Element] = PydanticField(default_factory=list)
    events: list[Element] = PydanticField(default_factory=list)
    readmodels: list[Element] = PydanticField(default_factory=list)
    screens: list[Element] = PydanticField(default_factory=list)
    screen_images: list[ScreenImage] = PydanticField(default_factory=list)
    processors: list[Element] = PydanticField(default_factory=list)
    tables: list[Table] = PydanticField(default_factory=list)
    specifications: list[Specification] = PydanticField(default_factory=list)
    actors: list[Actor] = PydanticField(default_factory=list)
    aggregates: list[StrictStr] = PydanticField(default_factory=list)
    slice_type: SliceType
    comments: list[Comment] = PydanticField(default_factory=list)

    def elements(self) -> Iterator[Element]:
        """Iterate all elements defined in this slice, array by array."""
        for array in ELEMENT_ARRAYS.values():
            yield from getattr(self, array)

    def array_for(self, element_type: ElementType) -> list[Element]:
        return getattr(self, ELEMENT_ARRAYS[element_type])

    def counts(self) -> dict[ElementType, int]:
        return {t: len(getattr(self, a)) for t, a in ELEMENT_ARRAYS.items()}


# =============================================================================
# Root
# =============================================================================


class EventModel(SchemaModel):
    """Root of an event model: an ordered sequence of slices."""

    REQUIRED_FIELDS = ("slices",)

    slices: list[Slice] = PydanticField(default_factory=list)

    def ordered_slices(self) -> list[Slice]:
        """Slices sorted by index (stable on ties)."""
        return sorted(self.slices, key=lambda s: s.index)

    def get_slice(self, slice_id: str) -> Slice | None:
        for s in self.slices:
            if s.id == slice_id:
                return s
        return None

    def summary(self) -> str:
        """Get a text summary of the model."""
        lines = [f"Slices: {len(self.slices)}", ""]
        for s in self.ordered_slices():
            counts = ", ".join(
                f"{len(getattr(s, array))} {array}"
                for array in ELEMENT_ARRAYS.values()
                if getattr(s, array)
            )
            lines.append(
                f"  {s.index}. {s.title} ({s.slice_type.value})"
                + (f" - {counts}" if counts else "")
            )
        return "\n".join(lines)
