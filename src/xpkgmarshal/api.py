"""Public API for xpkgmarshal.

High-level functions that marshal package artifacts and return complete,
structured results. Callers should use these instead of importing from
_internal.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from xpkgmarshal.codes import MarshalCode
from xpkgmarshal.kernel.config import DEFAULT_REGISTRY, MarshalerConfig
from xpkgmarshal.kernel.marshaler import Marshaler
from xpkgmarshal.kernel.model import GroupVersionKind
from xpkgmarshal.kernel.objects import split_api_version
from xpkgmarshal.kernel.package import ParsedPackage
from xpkgmarshal.kernel.validators import SchemaValidationResult, SchemaViolation
from xpkgmarshal._internal.io.fs import OsFileSystem
from xpkgmarshal._internal.io.image import OCILayoutImage


def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


class DependencySummary(BaseModel):
    package: str
    type: str  # "Provider" | "Configuration"
    constraints: str


class PackageSummary(BaseModel):
    """JSON-friendly view of a ParsedPackage."""
    name: str
    registry: str
    repo: str
    version: str
    digest: str
    package_type: str  # "Provider" | "Configuration"
    meta_name: Optional[str] = None
    object_count: int
    dependencies: List[DependencySummary] = Field(default_factory=list)  # Declaration order
    schemas: List[str] = Field(default_factory=list)  # Sorted "group/version, Kind=kind" keys


def marshal_directory(
    path: Union[str, os.PathLike, Path],
    registry: str = DEFAULT_REGISTRY,
    repo: Optional[str] = None,
    config: Optional[MarshalerConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> ParsedPackage:
    """
    Marshal a package directory named "<dir>@<version>".

    Args:
        path: Package directory; its name must carry the version after "@"
        registry: Registry the package belongs to
        repo: Repository path (defaults to the directory name before "@")
        config: Marshaler configuration
        logger: Logger for diagnostic records

    Returns:
        ParsedPackage

    Raises:
        MarshalError: If any stage fails
    """
    path = _normalize_path(path)
    if repo is None:
        repo = path.name.split("@")[0]
    marshaler = Marshaler(config=config, logger=logger)
    return marshaler.from_dir(OsFileSystem(), path.as_posix(), registry, repo)


def marshal_image_layout(
    layout_dir: Union[str, os.PathLike, Path],
    registry: str,
    repo: str,
    version: str,
    config: Optional[MarshalerConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> ParsedPackage:
    """
    Marshal a package image stored as an OCI image layout directory.

    Raises:
        MarshalError: If any stage fails
    """
    marshaler = Marshaler(config=config, logger=logger)
    return marshaler.from_image(registry, repo, version, OCILayoutImage(_normalize_path(layout_dir)))


def summarize(pkg: ParsedPackage) -> PackageSummary:
    """Build a PackageSummary from a ParsedPackage."""
    return PackageSummary(
        name=pkg.name,
        registry=pkg.registry,
        repo=pkg.repo,
        version=pkg.version,
        digest=pkg.digest,
        package_type=pkg.package_type.value,
        meta_name=pkg.meta.metadata.name,
        object_count=len(pkg.objects),
        dependencies=[
            DependencySummary(package=d.package, type=d.type.value, constraints=d.constraints)
            for d in pkg.dependencies
        ],
        schemas=sorted(str(gvk) for gvk in pkg.schema_index),
    )


def validate_resource(pkg: ParsedPackage, document: Dict[str, Any]) -> SchemaValidationResult:
    """
    Validate a resource document against the package's schema for its GVK.

    A document whose apiVersion/kind the package does not define produces a
    failed result rather than an exception.
    """
    api_version = document.get("apiVersion") if isinstance(document, dict) else None
    kind = document.get("kind") if isinstance(document, dict) else None
    if not isinstance(api_version, str) or not isinstance(kind, str):
        return SchemaValidationResult(
            ok=False,
            errors=[SchemaViolation(path="", message="document must have string apiVersion and kind")],
        )

    group, version = split_api_version(api_version)
    gvk = GroupVersionKind(group, version, kind)
    validator = pkg.validator_for(gvk)
    if validator is None:
        return SchemaValidationResult(
            ok=False,
            errors=[SchemaViolation(
                path="",
                message=f"[{MarshalCode.UNKNOWN_OBJECT_TYPE.value}] no schema for {gvk} in package {pkg.name}",
            )],
        )
    return validator.validate(document)
