"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add repo root to path (for 'ecomkit.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from ecomkit.models import AssetRole, GenerationMode, GenerationRequest, SourceAsset  # noqa: E402
from fakes import image_bytes  # noqa: E402


@pytest.fixture
def primary_asset():
    return SourceAsset(data=image_bytes(64, 48), media_type="image/png", role=AssetRole.PRIMARY)


@pytest.fixture
def make_request(primary_asset):
    """Factory for valid object-mode requests, overridable per test."""

    def _make(**overrides):
        fields = dict(
            mode=GenerationMode.OBJECT,
            primary=primary_asset,
            pack_size=5,
            category="Headphones",
            style="Clean Studio",
        )
        fields.update(overrides)
        return GenerationRequest(**fields)

    return _make
