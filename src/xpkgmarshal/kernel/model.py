"""Value types shared across the marshaling pipeline."""

from dataclasses import dataclass
from enum import Enum


class PackageType(str, Enum):
    """Kind of package, derived from the package meta object."""
    PROVIDER = "Provider"
    CONFIGURATION = "Configuration"


@dataclass(frozen=True)
class GroupVersionKind:
    """Three-part identifier of a typed resource schema."""
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


@dataclass(frozen=True)
class Dependency:
    """A normalized package dependency, as consumed by a resolver."""
    package: str  # Package reference, e.g. "xpkg.upbound.io/crossplane/provider-aws"
    type: PackageType
    constraints: str  # Version constraint, e.g. ">=v0.1.0"
