"""Tests for package classification and linting."""

import pytest

from xpkgmarshal.codes import MarshalCode, MarshalError
from xpkgmarshal.kernel.lint import classify, classify_and_lint, is_valid_constraint
from xpkgmarshal.kernel.model import PackageType
from xpkgmarshal.kernel.parser import PackageParser
from builders import composition, configuration_meta, crd_v1, crd_v1beta1, dump, provider_meta, xrd


def _decode(*docs):
    return PackageParser().parse(dump(*docs))


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("Configuration", PackageType.CONFIGURATION),
        ("Provider", PackageType.PROVIDER),
        ("Function", PackageType.PROVIDER),
    ],
)
def test_classify_defaults_to_provider(kind, expected):
    doc = {"apiVersion": "meta.pkg.crossplane.io/v1beta1", "kind": kind}
    meta = _decode(doc).meta[0]

    pkg_type, linter = classify(meta)

    assert pkg_type == expected
    assert linter.name == expected.value.lower()


def test_provider_package_lints():
    pkg = _decode(provider_meta(crossplane=">=v1.6.0-0"), crd_v1(), crd_v1beta1(versions=["v1"]))

    meta, pkg_type = classify_and_lint(pkg)

    assert pkg_type == PackageType.PROVIDER
    assert meta is pkg.meta[0]


def test_configuration_package_lints():
    pkg = _decode(configuration_meta(crossplane="v1.x"), xrd(), composition())

    _, pkg_type = classify_and_lint(pkg)

    assert pkg_type == PackageType.CONFIGURATION


def test_package_with_no_body_objects_lints():
    _, pkg_type = classify_and_lint(_decode(provider_meta()))

    assert pkg_type == PackageType.PROVIDER


@pytest.mark.parametrize("count", [0, 2])
def test_not_exactly_one_meta(count):
    docs = [provider_meta(name=f"p{i}") for i in range(count)] + [crd_v1()]

    with pytest.raises(MarshalError) as excinfo:
        classify_and_lint(_decode(*docs))

    assert excinfo.value.code == MarshalCode.NOT_EXACTLY_ONE_META
    assert "not exactly one package meta type" in excinfo.value.message


@pytest.mark.parametrize(
    "docs, fragment",
    [
        ([provider_meta(), xrd()], "not a CustomResourceDefinition"),
        ([configuration_meta(), crd_v1()], "not a CompositeResourceDefinition or Composition"),
        ([provider_meta(crossplane="not a version")], "invalid Crossplane version constraint"),
        ([{"apiVersion": "meta.pkg.crossplane.io/v1beta1", "kind": "Function"}], "must be a Provider"),
    ],
)
def test_lint_failures(docs, fragment):
    with pytest.raises(MarshalError) as excinfo:
        classify_and_lint(_decode(*docs))

    assert excinfo.value.code == MarshalCode.LINT_FAILURE
    assert excinfo.value.message.startswith("failed to lint package")
    assert fragment in excinfo.value.message


@pytest.mark.parametrize(
    "constraint",
    [">=v1.6.0-0", "v1.1.x", "1.2.3", ">=1.0.0, <2.0.0", "^1.2", "~1.2.3", "1.0 - 2.0", ">=v1.0.0 || 0.x", "*"],
)
def test_valid_constraints(constraint):
    assert is_valid_constraint(constraint)


@pytest.mark.parametrize("constraint", ["", "latest", ">=", "v1.2.3.4", "1.0 ||"])
def test_invalid_constraints(constraint):
    assert not is_valid_constraint(constraint)
