"""Factory for creating boxes from arguments, settings and box definitions."""

from pathlib import Path
from typing import Any

from .box import Box
from .config import Settings
from .drivers.local import LocalDriver
from .drivers.s3 import S3Driver
from .exceptions import ConfigurationException
from .resolvers import LocalPathResolver, ObjectStorePathResolver, SpacesPathResolver

BOX_TYPES = ("local", "s3", "spaces")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _require_credentials(kind: str, access_key: str | None, secret_key: str | None) -> None:
    if not access_key:
        raise ConfigurationException(f"{kind} box requires an access key")
    if not secret_key:
        raise ConfigurationException(f"{kind} box requires a secret key")


def create_file_box(base_path: str | Path, publicly_visible: bool = False) -> Box:
    """Create a box storing files below ``base_path`` on the local filesystem.

    Raises:
        ConfigurationException: If public visibility is requested, which a
            local filesystem cannot provide
    """
    if publicly_visible:
        raise ConfigurationException("Local file boxes cannot be publicly visible")
    return Box(resolver=LocalPathResolver(Path(base_path)), driver=LocalDriver())


def create_object_store_box(
    access_key: str | None,
    secret_key: str | None,
    region: str | None = None,
    bucket: str | None = None,
    url: str | None = None,
    publicly_visible: bool = False,
    use_ssl: bool = True,
) -> Box:
    """Create an S3 box.

    Either ``url`` (an explicit endpoint, e.g. ``minio.local:9000/bucket``)
    or both ``region`` and ``bucket`` must be given.
    """
    _require_credentials("S3", access_key, secret_key)
    return Box(
        resolver=ObjectStorePathResolver(region=region, bucket=bucket, url=url),
        driver=S3Driver(access_key, secret_key, region=region, use_ssl=use_ssl),
        publicly_visible=publicly_visible,
    )


def create_spaces_box(
    access_key: str | None,
    secret_key: str | None,
    region: str | None = None,
    bucket: str | None = None,
    url: str | None = None,
    publicly_visible: bool = False,
    use_ssl: bool = True,
) -> Box:
    """Create a DigitalOcean Spaces box. Same options as :func:`create_object_store_box`."""
    _require_credentials("Spaces", access_key, secret_key)
    return Box(
        resolver=SpacesPathResolver(region=region, bucket=bucket, url=url),
        driver=S3Driver(access_key, secret_key, region=region, use_ssl=use_ssl),
        publicly_visible=publicly_visible,
    )


def create_box(box_type: str, config: dict[str, Any]) -> Box:
    """Create a box from a type name and a configuration mapping.

    Args:
        box_type: One of 'local', 's3', 'spaces' ('do' is accepted for 'spaces')
        config: Box configuration dictionary

    Raises:
        ConfigurationException: If the type is unknown or the configuration is invalid
    """
    if box_type == "local":
        return create_file_box(
            base_path=config.get("base_path", "storage/app/web"),
            publicly_visible=_as_bool(config.get("publicly_visible", False)),
        )

    if box_type in ("s3", "spaces", "do"):
        create = create_object_store_box if box_type == "s3" else create_spaces_box
        return create(
            access_key=config.get("access_key"),
            secret_key=config.get("secret_key"),
            region=config.get("region"),
            bucket=config.get("bucket"),
            url=config.get("url"),
            publicly_visible=_as_bool(config.get("publicly_visible", False)),
            use_ssl=_as_bool(config.get("use_ssl", True)),
        )

    raise ConfigurationException(
        f"Unknown box type: {box_type} (expected one of {', '.join(BOX_TYPES)})"
    )


def create_local_box_from_settings(settings: Settings) -> Box:
    return create_file_box(settings.storage_path)


def create_s3_box_from_settings(settings: Settings) -> Box:
    """Build the ``s3`` box from the ``AWS_*`` settings."""
    return create_object_store_box(
        access_key=settings.aws_access_key_id,
        secret_key=settings.aws_secret_access_key,
        region=settings.aws_default_region,
        bucket=settings.aws_bucket,
        url=settings.aws_url,
        publicly_visible=settings.aws_default_visibility,
    )


def create_spaces_box_from_settings(settings: Settings) -> Box:
    """Build the ``do`` box from the ``DO_*`` settings."""
    return create_spaces_box(
        access_key=settings.do_access_key_id,
        secret_key=settings.do_secret_access_key,
        region=settings.do_default_region,
        bucket=settings.do_bucket,
        url=settings.do_url,
        publicly_visible=settings.do_default_visibility,
    )
