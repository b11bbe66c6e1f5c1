"""Tests for package name derivation and the assembled package descriptor."""

import dataclasses

import pytest

from xpkgmarshal.kernel.lint import classify_and_lint
from xpkgmarshal.kernel.model import GroupVersionKind, PackageType
from xpkgmarshal.kernel.package import derive_package_name, finalize
from xpkgmarshal.kernel.parser import PackageParser
from builders import crd_v1, dump, provider_meta


@pytest.mark.parametrize(
    "registry, repo, expected",
    [
        ("index.docker.io", "crossplane/provider-aws", "crossplane/provider-aws"),
        ("xpkg.upbound.io", "crossplane/provider-aws", "xpkg.upbound.io/crossplane/provider-aws"),
        ("docker.io", "crossplane/provider-aws", "docker.io/crossplane/provider-aws"),
        ("", "provider-aws", "/provider-aws"),
    ],
)
def test_derive_package_name(registry, repo, expected):
    assert derive_package_name(registry, repo) == expected


def test_derive_package_name_custom_default():
    assert derive_package_name("xpkg.upbound.io", "a/b", default_registry="xpkg.upbound.io") == "a/b"


def _finalized(**kwargs):
    pkg = PackageParser().parse(dump(provider_meta(depends_on=[{"provider": "a/b", "version": ">=v1"}]), crd_v1()))
    meta, pkg_type = classify_and_lint(pkg)
    return finalize("index.docker.io", "acme/p", "v1.0.0", "sha256:abc", meta, tuple(pkg.objects), pkg_type, **kwargs)


def test_finalize_assembles_package():
    parsed = _finalized()

    assert parsed.package_type == PackageType.PROVIDER
    assert parsed.name == "acme/p"
    assert parsed.registry == "index.docker.io"
    assert parsed.repo == "acme/p"
    assert parsed.version == "v1.0.0"
    assert parsed.digest == "sha256:abc"
    assert [d.package for d in parsed.dependencies] == ["a/b"]
    assert len(parsed.objects) == 1
    assert parsed.gvks() == (GroupVersionKind("example.org", "v1", "Widget"),)
    assert parsed.validator_for(GroupVersionKind("example.org", "v2", "Widget")) is None


def test_parsed_package_is_immutable():
    parsed = _finalized()

    with pytest.raises(dataclasses.FrozenInstanceError):
        parsed.name = "other"
    with pytest.raises(TypeError):
        parsed.schema_index[GroupVersionKind("a", "v1", "B")] = None
    assert isinstance(parsed.dependencies, tuple)
    assert isinstance(parsed.objects, tuple)
