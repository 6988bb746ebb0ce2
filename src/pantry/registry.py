"""Named, lazily constructed boxes."""

from __future__ import annotations

import threading
from collections.abc import Callable
from functools import partial
from pathlib import Path

from .box import Box
from .config import BoxDefinition, Settings, expand_env, load_boxes_file
from .exceptions import ConfigurationException
from .factory import (
    create_box,
    create_local_box_from_settings,
    create_s3_box_from_settings,
    create_spaces_box_from_settings,
)
from .logging import get_logger

logger = get_logger(__name__)

BoxFactory = Callable[[], Box]


class _LazyBox:
    """Builds its box on first access, exactly once."""

    def __init__(self, factory: BoxFactory):
        self._factory = factory
        self._box: Box | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._box is not None

    def get(self) -> Box:
        if self._box is None:
            with self._lock:
                if self._box is None:
                    self._box = self._factory()
        return self._box


class BoxRegistry:
    """A collection of named boxes with one default."""

    def __init__(self, default_box: str = "local"):
        self.default_box = default_box
        self._boxes: dict[str, _LazyBox] = {}

    def add_box(self, name: str, box: BoxFactory | Box) -> None:
        """Register or replace a box. Factories run on first access only."""
        factory = (lambda: box) if isinstance(box, Box) else box
        self._boxes[name] = _LazyBox(factory)

    def box(self, name: str | None = None) -> Box:
        """Return the box registered as ``name``, or the default box.

        Raises:
            ConfigurationException: If no box with that name exists, or if
                building it fails because of missing configuration
        """
        box_name = self.default_box if name is None else name
        entry = self._boxes.get(box_name)
        if entry is None:
            raise ConfigurationException(f"Pantry box '{box_name}' doesn't exist")

        if not entry.initialized:
            logger.debug("Initializing box", box=box_name)
        return entry.get()

    def names(self) -> list[str]:
        return list(self._boxes)

    def __contains__(self, name: object) -> bool:
        return name in self._boxes


def _build_definition(definition: BoxDefinition) -> Box:
    return create_box(definition.type, expand_env(definition.config))


def _register_definitions(registry: BoxRegistry, definitions: dict[str, BoxDefinition]) -> None:
    for name, definition in definitions.items():
        registry.add_box(name, partial(_build_definition, definition))
        logger.info("Registered box", box=name, type=definition.type)


def create_registry(settings: Settings | None = None) -> BoxRegistry:
    """Create the standard registry.

    Registers the local box under the configured default name plus the
    ``s3`` and ``do`` boxes built from environment credentials. Boxes
    declared in ``settings.boxes_config_path`` are added on top and may
    override those.
    """
    if settings is None:
        from .config import settings as global_settings

        settings = global_settings

    registry = BoxRegistry(default_box=settings.default_box)
    registry.add_box(settings.default_box, partial(create_local_box_from_settings, settings))
    registry.add_box("s3", partial(create_s3_box_from_settings, settings))
    registry.add_box("do", partial(create_spaces_box_from_settings, settings))

    if settings.boxes_config_path:
        boxes_file = load_boxes_file(Path(settings.boxes_config_path))
        _register_definitions(registry, boxes_file.boxes)
        if boxes_file.default_box:
            registry.default_box = boxes_file.default_box

    if registry.default_box not in registry:
        raise ConfigurationException(
            f"Default box '{registry.default_box}' is not defined"
        )

    logger.info(
        "Created box registry",
        default_box=registry.default_box,
        boxes=registry.names(),
    )
    return registry
