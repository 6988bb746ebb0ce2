"""Backend drivers used by boxes."""

from .base import Driver, FileSelector, select_all
from .local import LocalDriver
from .s3 import S3Driver

__all__ = ["Driver", "FileSelector", "select_all", "LocalDriver", "S3Driver"]
