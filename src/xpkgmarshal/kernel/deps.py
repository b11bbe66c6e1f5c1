"""Extract a package's declared dependencies into the shape a resolver consumes."""

from typing import List

from xpkgmarshal.codes import MarshalCode, MarshalError
from .model import Dependency, PackageType
from .objects import ConfigurationMeta, MetaDependency, ProviderMeta, TypedObject

ERR_NOT_A_PACKAGE = "failed to convert meta to package"


def convert_dependency(dep: MetaDependency) -> Dependency:
    """Convert a declared dependency into a typed, normalized dependency.

    The provider/configuration union is enforced when the meta object is
    decoded, so exactly one reference is set here.
    """
    if dep.provider is not None:
        return Dependency(package=dep.provider, type=PackageType.PROVIDER, constraints=dep.version)
    return Dependency(package=dep.configuration, type=PackageType.CONFIGURATION, constraints=dep.version)


def extract_dependencies(meta: TypedObject) -> List[Dependency]:
    """Return the meta object's dependencies in declaration order.

    No deduplication is performed.

    Raises:
        MarshalError: DEPENDENCY_CONVERSION_FAILURE if the meta object is not
            a Provider or Configuration manifest
    """
    if not isinstance(meta, (ProviderMeta, ConfigurationMeta)):
        raise MarshalError(
            MarshalCode.DEPENDENCY_CONVERSION_FAILURE,
            f"{ERR_NOT_A_PACKAGE}: {meta.describe()}"
        )
    return [convert_dependency(d) for d in meta.spec.dependsOn]
