"""Path-resolution strategies.

A resolver turns a logical, backend-independent path into the full location
URI a driver understands. Resolvers are pure: the same path always maps to
the same location for a given resolver.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .exceptions import ConfigurationException

OBJECT_STORE_SCHEME = "s3"
SPACES_DOMAIN = "digitaloceanspaces.com"


class PathResolver(Protocol):
    def __call__(self, path: str) -> str: ...


@dataclass(frozen=True)
class LocalPathResolver:
    """Resolves paths under a base directory to ``file://`` URIs."""

    base_path: Path

    def __call__(self, path: str) -> str:
        return f"file://{os.path.abspath(Path(self.base_path) / path.lstrip('/'))}"


@dataclass(frozen=True)
class ObjectStorePathResolver:
    """Resolves paths to S3 locations.

    An explicit endpoint ``url`` wins over region and bucket. Without it the
    AWS path-style host is used: ``s3://s3.<region>.amazonaws.com/<bucket>/<path>``.
    """

    region: str | None = None
    bucket: str | None = None
    url: str | None = None

    def __post_init__(self):
        if not self.url and not (self.region and self.bucket):
            raise ConfigurationException(
                f"{type(self).__name__} requires either an endpoint url or both region and bucket"
            )

    def __call__(self, path: str) -> str:
        if self.url:
            return f"{OBJECT_STORE_SCHEME}://{self.url}/{path}"
        return self._without_url(path)

    def _without_url(self, path: str) -> str:
        return f"{OBJECT_STORE_SCHEME}://s3.{self.region}.amazonaws.com/{self.bucket}/{path}"


@dataclass(frozen=True)
class SpacesPathResolver(ObjectStorePathResolver):
    """DigitalOcean Spaces: one subdomain per bucket, ``<bucket>.<region>.<SPACES_DOMAIN>``."""

    def _without_url(self, path: str) -> str:
        return f"{OBJECT_STORE_SCHEME}://{self.bucket}.{self.region}.{SPACES_DOMAIN}/{path}"
