"""Tests for the box registry."""

import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pantry.box import Box
from pantry.config import Settings
from pantry.exceptions import ConfigurationException
from pantry.factory import create_file_box
from pantry.registry import BoxRegistry, create_registry


class TestBoxRegistry:
    def test_default_box(self, registry: BoxRegistry):
        assert registry.box() is registry.box("local")
        assert registry.box(None) is registry.box("local")

    def test_named_box(self, registry: BoxRegistry, tmp_path: Path):
        archive = registry.box("archive")

        assert archive.resolve_path("a.txt") == f"file://{tmp_path / 'archive' / 'a.txt'}"

    def test_unknown_box(self, registry: BoxRegistry):
        with pytest.raises(ConfigurationException, match="Pantry box 'nope' doesn't exist"):
            registry.box("nope")

    def test_empty_name_is_not_the_default(self, registry: BoxRegistry):
        with pytest.raises(ConfigurationException):
            registry.box("")

    def test_factory_runs_once(self, tmp_path: Path):
        factory = MagicMock(side_effect=lambda: create_file_box(tmp_path))
        registry = BoxRegistry()
        registry.add_box("local", factory)

        factory.assert_not_called()
        first = registry.box()
        second = registry.box("local")

        assert first is second
        factory.assert_called_once()

    def test_factory_runs_once_across_threads(self, tmp_path: Path):
        calls = []

        def slow_factory() -> Box:
            calls.append(1)
            time.sleep(0.05)
            return create_file_box(tmp_path)

        registry = BoxRegistry()
        registry.add_box("local", slow_factory)

        results: list[Box] = []
        threads = [
            threading.Thread(target=lambda: results.append(registry.box())) for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(box is results[0] for box in results)

    def test_failed_factory_is_retried(self, tmp_path: Path):
        factory = MagicMock(
            side_effect=[ConfigurationException("not yet"), create_file_box(tmp_path)]
        )
        registry = BoxRegistry()
        registry.add_box("local", factory)

        with pytest.raises(ConfigurationException):
            registry.box()

        assert isinstance(registry.box(), Box)

    def test_add_box_replaces(self, registry: BoxRegistry, tmp_path: Path):
        replacement = create_file_box(tmp_path / "other")

        registry.add_box("archive", replacement)

        assert registry.box("archive") is replacement

    def test_names_and_contains(self, registry: BoxRegistry):
        assert registry.names() == ["local", "archive"]
        assert "archive" in registry
        assert "nope" not in registry


class TestCreateRegistry:
    def test_standard_boxes(self, tmp_path: Path):
        registry = create_registry(Settings(storage_path=str(tmp_path)))

        assert registry.default_box == "local"
        assert set(registry.names()) == {"local", "s3", "do"}
        assert registry.box().resolve_path("a.txt") == f"file://{tmp_path / 'a.txt'}"

    def test_custom_default_name(self, tmp_path: Path):
        registry = create_registry(Settings(default_box="disk", storage_path=str(tmp_path)))

        assert registry.box() is registry.box("disk")

    def test_cloud_box_without_credentials_fails_on_access(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        for name in ("AWS_ACCESS_KEY_ID", "DO_ACCESS_KEY_ID"):
            monkeypatch.delenv(name, raising=False)
        registry = create_registry(Settings(_env_file=None, storage_path=str(tmp_path)))

        with pytest.raises(ConfigurationException):
            registry.box("s3")
        with pytest.raises(ConfigurationException):
            registry.box("do")

    def test_s3_box_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "key")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
        monkeypatch.setenv("AWS_BUCKET", "uploads")

        registry = create_registry(Settings())

        assert (
            registry.box("s3").resolve_path("a.txt")
            == "s3://s3.us-west-2.amazonaws.com/uploads/a.txt"
        )

    def test_boxes_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MEDIA_SECRET", "from-env")
        config_file = tmp_path / "boxes.yaml"
        config_file.write_text(
            f"""
pantry:
  default_box: media
  boxes:
    media:
      type: spaces
      config:
        access_key: key
        secret_key: ${{MEDIA_SECRET}}
        region: nyc3
        bucket: media
        publicly_visible: true
    scratch:
      type: local
      config:
        base_path: {tmp_path / "scratch"}
"""
        )

        registry = create_registry(Settings(boxes_config_path=str(config_file)))

        assert registry.default_box == "media"
        media = registry.box()
        assert media.publicly_visible is True
        assert media.driver.secret_key == "from-env"
        assert registry.box("scratch").resolve_path("a") == f"file://{tmp_path / 'scratch' / 'a'}"

    def test_missing_default_box(self, tmp_path: Path):
        config_file = tmp_path / "boxes.yaml"
        config_file.write_text("pantry:\n  default_box: missing\n")

        with pytest.raises(ConfigurationException, match="Default box 'missing'"):
            create_registry(Settings(boxes_config_path=str(config_file)))

    def test_unset_credential_fails_on_first_access(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.delenv("PANTRY_TEST_MEDIA_KEY", raising=False)
        config_file = tmp_path / "boxes.yaml"
        config_file.write_text(
            """
pantry:
  boxes:
    media:
      type: s3
      config:
        access_key: ${PANTRY_TEST_MEDIA_KEY}
        secret_key: secret
        region: us-east-1
        bucket: media
"""
        )

        registry = create_registry(
            Settings(storage_path=str(tmp_path), boxes_config_path=str(config_file))
        )

        assert isinstance(registry.box(), Box)
        with pytest.raises(ConfigurationException, match="PANTRY_TEST_MEDIA_KEY"):
            registry.box("media")

        monkeypatch.setenv("PANTRY_TEST_MEDIA_KEY", "key")
        assert registry.box("media").driver.access_key == "key"
