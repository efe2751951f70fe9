"""Cross-document reference resolution over the project's FHIR resources."""

from .facts import strip_version
from .index import (
    CrossReferenceResolver,
    ResourceEntry,
    ResourceIndex,
    ResourceKind,
    find_resource_roots,
)

__all__ = [
    "CrossReferenceResolver",
    "ResourceEntry",
    "ResourceIndex",
    "ResourceKind",
    "find_resource_roots",
    "strip_version",
]
