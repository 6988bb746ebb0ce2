"""S3-compatible object storage driver (AWS S3, DigitalOcean Spaces, MinIO)."""

import mimetypes
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import BackendException, NotFoundException
from ..logging import get_logger
from ..resolvers import OBJECT_STORE_SCHEME, SPACES_DOMAIN
from .base import Driver, FileSelector, select_all

logger = get_logger(__name__)

DEFAULT_REGION = "us-east-1"
PUBLIC_READ_ACL = "public-read"
ALL_USERS_URI = "http://acs.amazonaws.com/groups/global/AllUsers"
DELETE_BATCH_SIZE = 1000

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_AWS_PATH_STYLE = re.compile(r"^s3[.-](?P<region>[a-z0-9-]+)\.amazonaws\.com$")
_AWS_VIRTUAL_HOSTED = re.compile(r"^(?P<bucket>.+)\.s3[.-](?P<region>[a-z0-9-]+)\.amazonaws\.com$")
_SPACES_VIRTUAL_HOSTED = re.compile(
    r"^(?P<bucket>[^.]+)\.(?P<region>[^.]+)\." + re.escape(SPACES_DOMAIN) + "$"
)


@dataclass(frozen=True)
class ObjectLocation:
    """A resolved object-store location split into its addressing parts."""

    endpoint: str
    bucket: str
    key: str
    region: str | None = None

    @property
    def prefix(self) -> str:
        """Key prefix used when the location names a folder."""
        return self.key.rstrip("/") + "/" if self.key else ""


def parse_location(location: str) -> ObjectLocation:
    """Split an ``s3://`` location into endpoint, bucket and key.

    Virtual-hosted hosts (``<bucket>.<region>.digitaloceanspaces.com`` and
    ``<bucket>.s3.<region>.amazonaws.com``) carry the bucket in the host name;
    every other host is treated as path-style, ``<host>/<bucket>/<key>``.
    """
    scheme = f"{OBJECT_STORE_SCHEME}://"
    if not location.startswith(scheme):
        raise BackendException(f"Not an object store location: {location}")

    host, _, remainder = location[len(scheme) :].partition("/")

    match = _SPACES_VIRTUAL_HOSTED.match(host)
    if match:
        return ObjectLocation(
            endpoint=host[len(match["bucket"]) + 1 :],
            bucket=match["bucket"],
            key=remainder,
            region=match["region"],
        )

    match = _AWS_VIRTUAL_HOSTED.match(host)
    if match:
        return ObjectLocation(
            endpoint=host[len(match["bucket"]) + 1 :],
            bucket=match["bucket"],
            key=remainder,
            region=match["region"],
        )

    bucket, _, key = remainder.partition("/")
    if not bucket:
        raise BackendException(f"Object store location has no bucket: {location}")

    match = _AWS_PATH_STYLE.match(host)
    return ObjectLocation(
        endpoint=host,
        bucket=bucket,
        key=key,
        region=match["region"] if match else None,
    )


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class S3Driver(Driver):
    """Object storage through boto3 with a static access key and secret."""

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: str | None = None,
        use_ssl: bool = True,
    ):
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.use_ssl = use_ssl

        self._session: Any | None = None
        self._clients: dict[tuple[str, str], Any] = {}
        self._lock = threading.Lock()

    def _get_session(self) -> Any:
        """Get or create the boto3 session."""
        if self._session is None:
            self._session = boto3.session.Session(
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
            )
        return self._session

    def _client(self, location: ObjectLocation) -> Any:
        """Return the S3 client for the location's endpoint, creating it once."""
        region = location.region or self.region or DEFAULT_REGION
        cache_key = (location.endpoint, region)
        with self._lock:
            client = self._clients.get(cache_key)
            if client is None:
                scheme = "https" if self.use_ssl else "http"
                client = self._get_session().client(
                    "s3",
                    endpoint_url=f"{scheme}://{location.endpoint}",
                    config=Config(
                        region_name=region,
                        retries={"max_attempts": 3, "mode": "standard"},
                        max_pool_connections=50,
                    ),
                )
                self._clients[cache_key] = client
        return client

    @contextmanager
    def _translate_errors(self, action: str, location: str) -> Iterator[None]:
        try:
            yield
        except ClientError as e:
            if _is_missing(e):
                raise NotFoundException(location) from e
            logger.error(f"S3 {action} failed", location=location, error=str(e))
            raise BackendException(f"S3 {action} failed: {e}") from e
        except BotoCoreError as e:
            logger.error(f"S3 {action} failed", location=location, error=str(e))
            raise BackendException(f"S3 {action} failed: {e}") from e

    def _head(self, target: ObjectLocation, location: str) -> dict[str, Any] | None:
        try:
            with self._translate_errors("head", location):
                return self._client(target).head_object(Bucket=target.bucket, Key=target.key)
        except NotFoundException:
            return None

    def _list_keys(self, target: ObjectLocation, location: str) -> list[str]:
        keys: list[str] = []
        with self._translate_errors("list", location):
            paginator = self._client(target).get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=target.bucket, Prefix=target.prefix):
                keys.extend(item["Key"] for item in page.get("Contents", []))
        return keys

    @staticmethod
    def _content_type(key: str) -> str:
        return mimetypes.guess_type(key)[0] or "application/octet-stream"

    def exists(self, location: str) -> bool:
        target = parse_location(location)
        if target.key and self._head(target, location) is not None:
            return True
        # A key prefix with objects below it counts as an existing folder
        with self._translate_errors("list", location):
            response = self._client(target).list_objects_v2(
                Bucket=target.bucket, Prefix=target.prefix, MaxKeys=1
            )
        return response.get("KeyCount", 0) > 0

    def read(self, location: str) -> bytes:
        body = self.open(location)
        try:
            with self._translate_errors("download", location):
                return body.read()
        finally:
            body.close()

    def open(self, location: str) -> BinaryIO:
        target = parse_location(location)
        with self._translate_errors("download", location):
            response = self._client(target).get_object(Bucket=target.bucket, Key=target.key)
        return response["Body"]

    def write(self, location: str, content: bytes) -> None:
        target = parse_location(location)
        with self._translate_errors("upload", location):
            self._client(target).put_object(
                Bucket=target.bucket,
                Key=target.key,
                Body=content,
                ContentType=self._content_type(target.key),
            )
        logger.debug("Uploaded object", location=location, size=len(content))

    def write_stream(self, location: str, stream: BinaryIO) -> None:
        target = parse_location(location)
        with self._translate_errors("upload", location):
            # upload_fileobj switches to multipart uploads for large streams
            self._client(target).upload_fileobj(
                stream,
                target.bucket,
                target.key,
                ExtraArgs={"ContentType": self._content_type(target.key)},
            )
        logger.debug("Streamed object", location=location)

    def append(self, location: str, data: bytes) -> None:
        # Object stores have no append mode; rewrite the whole object
        exists = self._head(parse_location(location), location) is not None
        existing = self.read(location) if exists else b""
        self.write(location, existing + data)

    def _is_public(self, target: ObjectLocation, location: str) -> bool:
        """Whether the object grants READ to everyone (the ``public-read`` ACL)."""
        with self._translate_errors("acl lookup", location):
            response = self._client(target).get_object_acl(Bucket=target.bucket, Key=target.key)
        return any(
            grant.get("Grantee", {}).get("URI") == ALL_USERS_URI
            and grant.get("Permission") in ("READ", "FULL_CONTROL")
            for grant in response.get("Grants", [])
        )

    def touch(self, location: str) -> None:
        target = parse_location(location)
        head = self._head(target, location)
        if head is None:
            self.write(location, b"")
            return

        # A copy gets the default private ACL unless one is passed along
        extra = {"ACL": PUBLIC_READ_ACL} if self._is_public(target, location) else {}

        # Copying an object onto itself with replaced metadata refreshes LastModified
        with self._translate_errors("touch", location):
            self._client(target).copy_object(
                Bucket=target.bucket,
                Key=target.key,
                CopySource={"Bucket": target.bucket, "Key": target.key},
                MetadataDirective="REPLACE",
                ContentType=head.get("ContentType") or self._content_type(target.key),
                Metadata=head.get("Metadata", {}),
                **extra,
            )

    def delete(self, location: str) -> None:
        target = parse_location(location)
        with self._translate_errors("delete", location):
            self._client(target).delete_object(Bucket=target.bucket, Key=target.key)

    def delete_tree(self, location: str) -> None:
        target = parse_location(location)
        keys = self._list_keys(target, location)
        if target.key and self._head(target, location) is not None:
            keys.append(target.key)

        client = self._client(target)
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            with self._translate_errors("delete", location):
                client.delete_objects(
                    Bucket=target.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
        logger.debug("Deleted objects", location=location, count=len(keys))

    def _copy_pairs(
        self, source: str, target: str, selector: FileSelector
    ) -> list[tuple[str, str]]:
        src = parse_location(source)
        dst = parse_location(target)

        if src.key and self._head(src, source) is not None:
            name = src.key.rsplit("/", 1)[-1]
            return [(src.key, dst.key)] if selector(name) else []

        keys = self._list_keys(src, source)
        if not keys:
            raise NotFoundException(source)

        pairs = []
        for key in keys:
            relative = key[len(src.prefix) :]
            if selector(relative):
                pairs.append((key, dst.prefix + relative))
        return pairs

    def _copy_object(
        self,
        src: ObjectLocation,
        dst: ObjectLocation,
        source_key: str,
        target_key: str,
        public: bool,
        location: str,
    ) -> None:
        source = replace(src, key=source_key)
        if public or self._is_public(source, location):
            extra = {"ACL": PUBLIC_READ_ACL}
        else:
            extra = {}
        with self._translate_errors("copy", location):
            self._client(dst).copy_object(
                Bucket=dst.bucket,
                Key=target_key,
                CopySource={"Bucket": src.bucket, "Key": source_key},
                **extra,
            )

    def copy(
        self,
        source: str,
        target: str,
        selector: FileSelector = select_all,
        public: bool = False,
    ) -> None:
        src = parse_location(source)
        dst = parse_location(target)
        for source_key, target_key in self._copy_pairs(source, target, selector):
            self._copy_object(src, dst, source_key, target_key, public, source)

    def move(self, source: str, target: str, public: bool = False) -> None:
        src = parse_location(source)
        dst = parse_location(target)
        for source_key, target_key in self._copy_pairs(source, target, select_all):
            self._copy_object(src, dst, source_key, target_key, public, source)
            with self._translate_errors("move", source):
                self._client(src).delete_object(Bucket=src.bucket, Key=source_key)

    def make_public(self, location: str) -> None:
        target = parse_location(location)
        with self._translate_errors("acl update", location):
            self._client(target).put_object_acl(
                Bucket=target.bucket, Key=target.key, ACL=PUBLIC_READ_ACL
            )
        logger.info("Made object public", location=location)
