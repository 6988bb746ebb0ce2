"""FastAPI integration: registry registration and upload extraction.

Usage::

    configure_logging(debug=settings.debug)

    app = FastAPI()
    pantry.web.register(app)

    @app.post("/avatars")
    async def upload_avatar(
        request: Request, registry: BoxRegistry = Depends(get_pantry)
    ) -> dict:
        form = await request.form()
        avatar = form_file(form, "avatar", registry)
        return {"location": avatar.store_publicly("avatars")}
"""

from collections.abc import Callable

from fastapi import FastAPI, Request
from starlette.datastructures import FormData, UploadFile

from .box import Box
from .exceptions import ConfigurationException
from .logging import get_logger
from .registry import BoxRegistry, create_registry
from .uploads import UploadedFile

logger = get_logger(__name__)


def register(app: FastAPI, registry: BoxRegistry | None = None) -> BoxRegistry:
    """Bind a box registry to ``app.state.pantry`` unless one is already bound.

    Returns:
        The registry the application ends up using
    """
    existing = getattr(app.state, "pantry", None)
    if existing is not None:
        return existing

    app.state.pantry = registry if registry is not None else create_registry()
    logger.info("Registered pantry", boxes=app.state.pantry.names())
    return app.state.pantry


def get_pantry(request: Request) -> BoxRegistry:
    """FastAPI dependency returning the application's box registry."""
    registry = getattr(request.app.state, "pantry", None)
    if registry is None:
        raise ConfigurationException("Pantry is not registered on this application")
    return registry


def pantry_box(name: str | None = None) -> Callable[[Request], Box]:
    """Build a FastAPI dependency that returns the box ``name`` (default box if None)."""

    def dependency(request: Request) -> Box:
        return get_pantry(request).box(name)

    return dependency


def uploaded_file(upload: UploadFile, registry: BoxRegistry) -> UploadedFile:
    """Wrap a Starlette upload so it can be stored in a box."""
    return UploadedFile(
        content_stream=upload.file,
        content_type=upload.content_type or "application/octet-stream",
        filename=upload.filename or "",
        size=upload.size or 0,
        registry=registry,
    )


def form_files(form: FormData, name: str, registry: BoxRegistry) -> list[UploadedFile]:
    """Return all files submitted under the form field ``name``."""
    return [
        uploaded_file(value, registry)
        for value in form.getlist(name)
        if isinstance(value, UploadFile)
    ]


def form_file(form: FormData, name: str, registry: BoxRegistry) -> UploadedFile | None:
    """Return the first file submitted under ``name``, or None."""
    files = form_files(form, name, registry)
    return files[0] if files else None
