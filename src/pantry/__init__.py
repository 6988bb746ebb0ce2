"""
Pantry: file storage boxes for local disks, S3 and DigitalOcean Spaces
"""

__version__ = "0.1.0"

from .box import Box
from .config import Settings, settings
from .drivers.base import select_all
from .exceptions import (
    BackendException,
    ConfigurationException,
    NotFoundException,
    PantryException,
    StreamConsumedException,
)
from .factory import create_box, create_file_box, create_object_store_box, create_spaces_box
from .logging import configure_logging, get_logger
from .registry import BoxRegistry, create_registry
from .uploads import (
    UploadedFile,
    store_all,
    store_all_in,
    store_all_publicly,
    store_all_publicly_in,
)

__all__ = [
    "__version__",
    "configure_logging",
    "get_logger",
    # Boxes
    "Box",
    "select_all",
    "create_box",
    "create_file_box",
    "create_object_store_box",
    "create_spaces_box",
    # Registry and configuration
    "BoxRegistry",
    "create_registry",
    "Settings",
    "settings",
    # Uploads
    "UploadedFile",
    "store_all",
    "store_all_in",
    "store_all_publicly",
    "store_all_publicly_in",
    # Exceptions
    "PantryException",
    "ConfigurationException",
    "NotFoundException",
    "BackendException",
    "StreamConsumedException",
]
