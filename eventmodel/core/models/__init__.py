"""All Pydantic models for eventmodel.

- event_model.py: the persisted event model (slices, elements, fields,
  dependencies, specifications)
- validation.py: validation issues and results
"""

from .event_model import (
    # Enums
    SliceType,
    ElementType,
    DependencyType,
    FieldType,
    Cardinality,
    SpecStepType,
    SliceStatus,
    ElementContext,
    # Leaf objects
    Field,
    Dependency,
    Actor,
    Table,
    ScreenImage,
    Comment,
    # Elements
    Element,
    # Specifications
    SpecificationStep,
    Specification,
    # Structure
    Slice,
    EventModel,
    ELEMENT_ARRAYS,
    STRICT_SHAPE,
)

from .validation import (
    Severity,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "SliceType",
    "ElementType",
    "DependencyType",
    "FieldType",
    "Cardinality",
    "SpecStepType",
    "SliceStatus",
    "ElementContext",
    "Field",
    "Dependency",
    "Actor",
    "Table",
    "ScreenImage",
    "Comment",
    "Element",
    "SpecificationStep",
    "Specification",
    "Slice",
    "EventModel",
    "ELEMENT_ARRAYS",
    "STRICT_SHAPE",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
]
