"""The parsed package descriptor and its assembly."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .config import DEFAULT_REGISTRY
from .deps import extract_dependencies
from .model import Dependency, GroupVersionKind, PackageType
from .objects import TypedObject
from .validators import DuplicatePolicy, SchemaValidator, build_validators


@dataclass(frozen=True)
class ParsedPackage:
    """A validated, dependency-extracted, schema-indexed package."""
    meta: TypedObject
    objects: Tuple[TypedObject, ...]
    package_type: PackageType
    dependencies: Tuple[Dependency, ...]
    schema_index: Mapping[GroupVersionKind, SchemaValidator]
    name: str  # Package name as a dependency would reference it
    registry: str
    repo: str
    version: str
    digest: str  # "sha256:<hex>", or "" when unknown

    def validator_for(self, gvk: GroupVersionKind) -> Optional[SchemaValidator]:
        return self.schema_index.get(gvk)

    def gvks(self) -> Tuple[GroupVersionKind, ...]:
        """Indexed (group, version, kind) keys in insertion order."""
        return tuple(self.schema_index)


def derive_package_name(registry: str, repo: str, default_registry: str = DEFAULT_REGISTRY) -> str:
    """Return the package name we'd expect to see in a dependency reference.

    Packages on the default registry are named by repository alone.
    """
    if registry != default_registry:
        return f"{registry}/{repo}"
    return repo


def finalize(
    registry: str,
    repo: str,
    version: str,
    digest: str,
    meta: TypedObject,
    objects: Tuple[TypedObject, ...],
    package_type: PackageType,
    duplicate_schemas: DuplicatePolicy = "overwrite",
    default_registry: str = DEFAULT_REGISTRY,
) -> ParsedPackage:
    """Extract dependencies, build the schema index and assemble the package.

    Raises:
        MarshalError: from dependency extraction or the schema build
    """
    deps = extract_dependencies(meta)
    index = build_validators(list(objects), duplicate_schemas=duplicate_schemas)
    return ParsedPackage(
        meta=meta,
        objects=tuple(objects),
        package_type=package_type,
        dependencies=tuple(deps),
        schema_index=MappingProxyType(index),
        name=derive_package_name(registry, repo, default_registry),
        registry=registry,
        repo=repo,
        version=version,
        digest=digest,
    )
