"""xpkgmarshal: marshal package artifacts into validated, schema-indexed descriptors."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("xpkg-marshal")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from xpkgmarshal.api import (
    marshal_directory,
    marshal_image_layout,
    summarize,
    validate_resource,
    PackageSummary,
)
from xpkgmarshal.codes import MarshalCode, MarshalError
from xpkgmarshal.kernel.config import MarshalerConfig
from xpkgmarshal.kernel.marshaler import Marshaler
from xpkgmarshal.kernel.model import Dependency, GroupVersionKind, PackageType
from xpkgmarshal.kernel.package import ParsedPackage

__all__ = [
    "__version__",
    "marshal_directory",
    "marshal_image_layout",
    "summarize",
    "validate_resource",
    "PackageSummary",
    "MarshalCode",
    "MarshalError",
    "MarshalerConfig",
    "Marshaler",
    "Dependency",
    "GroupVersionKind",
    "PackageType",
    "ParsedPackage",
]
