"""Package classification and structural linting.

The meta object's kind picks the package type and the linter. Linters only
check structure: the meta kind, a well-formed Crossplane version constraint,
and which object kinds a package of that type may carry. Schema content is
checked later by the validator builder.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from xpkgmarshal.codes import MarshalCode, MarshalError
from .model import PackageType
from .objects import (
    COMPOSITION_KIND,
    CONFIGURATION_KIND,
    CRD_GROUP,
    CRD_KIND,
    PROVIDER_KIND,
    XRD_GROUP,
    XRD_KIND,
    ConfigurationMeta,
    ProviderMeta,
    TypedObject,
)
from .parser import GenericPackage

logger = logging.getLogger(__name__)

ERR_NOT_EXACTLY_ONE_META = "not exactly one package meta type"
ERR_LINT_PACKAGE = "failed to lint package"

# Single comparison: optional operator, then a (possibly partial or wildcard) version
_VERSION = (
    r"v?(?:0|[1-9]\d*|[xX*])"
    r"(?:\.(?:0|[1-9]\d*|[xX*]))?"
    r"(?:\.(?:0|[1-9]\d*|[xX*]))?"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?"
)
_COMPARISON = rf"(?:=|!=|>=|=>|<=|=<|>|<|~>|~|\^)?\s*{_VERSION}"
_RANGE = rf"{_VERSION}\s+-\s+{_VERSION}"
_TERM = rf"(?:{_RANGE}|{_COMPARISON})"
_AND = rf"{_TERM}(?:\s*,\s*{_TERM}|\s+{_TERM})*"
CONSTRAINT_RE = re.compile(rf"^\s*{_AND}(?:\s*\|\|\s*{_AND})*\s*$")


class LintError(ValueError):
    """Raised by a linter with its specific complaint."""
    pass


MetaCheck = Callable[[TypedObject], None]
ObjectCheck = Callable[[TypedObject], None]


def is_valid_constraint(constraint: str) -> bool:
    """Check a semantic version constraint such as ">=v1.2.0, <v2.0.0"."""
    return bool(constraint) and CONSTRAINT_RE.match(constraint) is not None


def is_provider(meta: TypedObject) -> None:
    if not isinstance(meta, ProviderMeta):
        raise LintError(f"package meta must be a {PROVIDER_KIND}, got {meta.describe()}")


def is_configuration(meta: TypedObject) -> None:
    if not isinstance(meta, ConfigurationMeta):
        raise LintError(f"package meta must be a {CONFIGURATION_KIND}, got {meta.describe()}")


def package_valid_semver(meta: TypedObject) -> None:
    """The Crossplane version constraint, when declared, must parse."""
    spec = getattr(meta, "spec", None)
    crossplane = getattr(spec, "crossplane", None)
    if crossplane is None:
        return
    if not is_valid_constraint(crossplane.version):
        raise LintError(f"invalid Crossplane version constraint {crossplane.version!r}")


def is_crd(obj: TypedObject) -> None:
    if obj.group != CRD_GROUP or obj.kind != CRD_KIND:
        raise LintError(f"object is not a {CRD_KIND}: {obj.describe()}")


def is_xrd_or_composition(obj: TypedObject) -> None:
    if obj.group != XRD_GROUP or obj.kind not in (XRD_KIND, COMPOSITION_KIND):
        raise LintError(
            f"object is not a {XRD_KIND} or {COMPOSITION_KIND}: {obj.describe()}"
        )


@dataclass
class PackageLinter:
    """Runs meta checks against the single meta object and object checks
    against every body object, stopping at the first complaint."""
    name: str
    meta_checks: List[MetaCheck] = field(default_factory=list)
    object_checks: List[ObjectCheck] = field(default_factory=list)

    def lint(self, pkg: GenericPackage) -> None:
        if len(pkg.meta) != 1:
            raise LintError(f"{ERR_NOT_EXACTLY_ONE_META}: found {len(pkg.meta)}")
        for check in self.meta_checks:
            check(pkg.meta[0])
        for obj in pkg.objects:
            for check in self.object_checks:
                check(obj)


def new_provider_linter() -> PackageLinter:
    return PackageLinter(
        name="provider",
        meta_checks=[is_provider, package_valid_semver],
        object_checks=[is_crd],
    )


def new_configuration_linter() -> PackageLinter:
    return PackageLinter(
        name="configuration",
        meta_checks=[is_configuration, package_valid_semver],
        object_checks=[is_xrd_or_composition],
    )


def classify(meta: TypedObject) -> Tuple[PackageType, PackageLinter]:
    """Pick the package type and linter from the meta object's kind.

    Any kind other than Configuration is treated as a Provider.
    """
    if meta.kind == CONFIGURATION_KIND:
        return PackageType.CONFIGURATION, new_configuration_linter()
    return PackageType.PROVIDER, new_provider_linter()


def classify_and_lint(
    pkg: GenericPackage,
    log: Optional[logging.Logger] = None,
) -> Tuple[TypedObject, PackageType]:
    """Classify a decoded package and run the matching linter.

    Returns:
        The single meta object and the package type.

    Raises:
        MarshalError: NOT_EXACTLY_ONE_META or LINT_FAILURE
    """
    log = log or logger
    if len(pkg.meta) != 1:
        raise MarshalError(
            MarshalCode.NOT_EXACTLY_ONE_META,
            f"{ERR_NOT_EXACTLY_ONE_META}: found {len(pkg.meta)}"
        )

    meta = pkg.meta[0]
    pkg_type, linter = classify(meta)
    log.debug("Classified package as %s, linting with %s linter", pkg_type.value, linter.name)
    try:
        linter.lint(pkg)
    except LintError as e:
        raise MarshalError(MarshalCode.LINT_FAILURE, f"{ERR_LINT_PACKAGE}: {e}") from e
    return meta, pkg_type
