"""Tests for box factory functions."""

from pathlib import Path

import pytest

from pantry.config import Settings
from pantry.drivers.local import LocalDriver
from pantry.drivers.s3 import S3Driver
from pantry.exceptions import ConfigurationException
from pantry.factory import (
    create_box,
    create_file_box,
    create_object_store_box,
    create_s3_box_from_settings,
    create_spaces_box,
    create_spaces_box_from_settings,
)
from pantry.resolvers import LocalPathResolver, ObjectStorePathResolver, SpacesPathResolver


def test_create_file_box(tmp_path: Path):
    box = create_file_box(tmp_path)

    assert isinstance(box.driver, LocalDriver)
    assert isinstance(box.resolver, LocalPathResolver)
    assert box.publicly_visible is False


def test_file_box_cannot_be_public(tmp_path: Path):
    with pytest.raises(ConfigurationException):
        create_file_box(tmp_path, publicly_visible=True)


def test_create_object_store_box():
    box = create_object_store_box("key", "secret", region="us-west-2", bucket="uploads")

    assert isinstance(box.driver, S3Driver)
    assert type(box.resolver) is ObjectStorePathResolver
    assert box.resolve_path("a.txt") == "s3://s3.us-west-2.amazonaws.com/uploads/a.txt"


def test_create_spaces_box():
    box = create_spaces_box("key", "secret", region="nyc3", bucket="media", publicly_visible=True)

    assert isinstance(box.resolver, SpacesPathResolver)
    assert box.publicly_visible is True
    assert box.resolve_path("a.png") == "s3://media.nyc3.digitaloceanspaces.com/a.png"


@pytest.mark.parametrize(
    "access_key,secret_key",
    [(None, "secret"), ("key", None), ("", "")],
)
def test_object_store_box_requires_credentials(access_key, secret_key):
    with pytest.raises(ConfigurationException):
        create_object_store_box(access_key, secret_key, region="us-west-2", bucket="uploads")


def test_create_box_local(tmp_path: Path):
    box = create_box("local", {"base_path": str(tmp_path)})

    assert box.resolve_path("a.txt") == f"file://{tmp_path / 'a.txt'}"


@pytest.mark.parametrize("box_type", ["spaces", "do"])
def test_create_box_spaces_aliases(box_type):
    box = create_box(
        box_type, {"access_key": "k", "secret_key": "s", "region": "ams3", "bucket": "b"}
    )

    assert isinstance(box.resolver, SpacesPathResolver)


def test_create_box_string_flags():
    box = create_box(
        "s3",
        {
            "access_key": "k",
            "secret_key": "s",
            "url": "localhost:9000/dev",
            "publicly_visible": "true",
            "use_ssl": "false",
        },
    )

    assert box.publicly_visible is True
    assert box.driver.use_ssl is False


def test_create_box_unknown_type():
    with pytest.raises(ConfigurationException, match="Unknown box type"):
        create_box("ftp", {})


def test_s3_box_from_settings():
    settings = Settings(
        aws_access_key_id="key",
        aws_secret_access_key="secret",
        aws_default_region="eu-west-1",
        aws_bucket="files",
        aws_default_visibility=True,
    )

    box = create_s3_box_from_settings(settings)

    assert box.publicly_visible is True
    assert box.resolve_path("x") == "s3://s3.eu-west-1.amazonaws.com/files/x"


def test_spaces_box_from_settings_without_credentials():
    with pytest.raises(ConfigurationException):
        create_spaces_box_from_settings(Settings(do_default_region="nyc3", do_bucket="b"))
