"""
Shared pytest fixtures and configuration for all tests.
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Add src directory to path so imports work without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pantry.box import Box  # noqa: E402
from pantry.factory import create_file_box  # noqa: E402
from pantry.registry import BoxRegistry  # noqa: E402

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\xff\xff?\x00\x05\xfe\x02\xfe\xa7V\xbd\xfa"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def png_bytes() -> bytes:
    """A valid 1x1 PNG image."""
    return PNG_BYTES


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def local_box(storage_dir: Path) -> Box:
    return create_file_box(storage_dir)


@pytest.fixture
def registry(local_box: Box, tmp_path: Path) -> BoxRegistry:
    """Registry with the default local box and a second local box named 'archive'."""
    archive_dir = tmp_path / "archive"
    archive_dir.mkdir()

    registry = BoxRegistry(default_box="local")
    registry.add_box("local", local_box)
    registry.add_box("archive", lambda: create_file_box(archive_dir))
    return registry


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
