"""Id-indexed element, slice, specification and table stores."""

from .model_store import Duplicate, ModelStore, Reference, index_model

__all__ = [
    "Duplicate",
    "ModelStore",
    "Reference",
    "index_model",
]
