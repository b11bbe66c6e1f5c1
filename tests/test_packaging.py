"""Packaging regression tests.

Tests that verify the source layout the wheel is built from.
"""

from pathlib import Path


def test_source_layout():
    """Test that the package and its subpackages live under src/."""
    here = Path(__file__).resolve().parent
    repo_root = here.parent
    src_pkg = repo_root / "src" / "xpkgmarshal"

    assert src_pkg.exists(), "xpkgmarshal package should exist in src/"
    for sub in ("kernel", "_internal", "_internal/io"):
        assert (src_pkg / sub / "__init__.py").exists(), f"xpkgmarshal/{sub} should be a package"

    # Fixtures are test data, not packaged
    assert not (repo_root / "src" / "fixtures").exists()


def test_import_boundary():
    """Test that the package and kernel import from the installed location."""
    import xpkgmarshal
    import xpkgmarshal.kernel  # noqa: F401

    assert xpkgmarshal.__version__ in ("0.1.0", "dev")
    assert Path(xpkgmarshal.__file__).parent.name == "xpkgmarshal"
