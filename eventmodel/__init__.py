"""eventmodel: structural integrity engine for Event Modeling documents.

An event model is a sequence of typed slices built from commands, events,
read models, screens and processors joined by directional dependencies.
This package validates such models, applies atomic edits through
ModelBuilder and reads and writes the canonical JSON form.
"""

__version__ = "0.1.0"

from .builder import CommitResult, ModelBuilder, RemovalResult
from .config import EventModelConfig, RulesConfig
from .core.errors import (
    AsymmetricDependencyError,
    CompositionError,
    CycleError,
    DisconnectedElementError,
    DuplicateIdError,
    EventModelError,
    FieldValidationError,
    InvalidTransitionError,
    ReferencedElementError,
    SchemaViolationError,
    SequencingError,
    TypeMismatchError,
    UnknownReferenceError,
)
from .core.models import (
    Dependency,
    DependencyType,
    Element,
    ElementType,
    EventModel,
    Field,
    Slice,
    SliceType,
    Specification,
    SpecificationStep,
    Table,
    ValidationResult,
)
from .serialization import deserialize, load_model, save_model, serialize, to_json
from .validator import validate_model

__all__ = [
    "__version__",
    "ModelBuilder",
    "CommitResult",
    "RemovalResult",
    "EventModelConfig",
    "RulesConfig",
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
    "EventModel",
    "Slice",
    "SliceType",
    "Element",
    "ElementType",
    "Dependency",
    "DependencyType",
    "Field",
    "Specification",
    "SpecificationStep",
    "Table",
    "ValidationResult",
    "serialize",
    "deserialize",
    "to_json",
    "load_model",
    "save_model",
    "validate_model",
]
