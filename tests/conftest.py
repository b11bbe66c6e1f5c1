"""Pytest configuration for tests.

No sys.path hacks - tests import from the installed xpkgmarshal package.
Manifest and image builders live in builders.py next to this file.
"""

import pytest
from pathlib import Path

HERE = Path(__file__).resolve().parent
FIXTURES = HERE.parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Root of the on-disk fixtures."""
    return FIXTURES


@pytest.fixture
def provider_dir(fixtures_dir) -> Path:
    """Provider package directory with a digest marker file."""
    return fixtures_dir / "packages" / "provider-nop@v0.2.1"


@pytest.fixture
def configuration_dir(fixtures_dir) -> Path:
    """Configuration package directory without a digest marker."""
    return fixtures_dir / "packages" / "configuration-platform@v1.0.0"
