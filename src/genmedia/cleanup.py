"""Best-effort release of remote assets."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from genmedia._http import NOT_FOUND
from genmedia.providers._errors import extract_status_code

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from genmedia.models import RemoteAsset
    from genmedia.providers.base import MediaBackend
    from genmedia.uploads import AssetUploader

log = logging.getLogger(__name__)


async def cleanup(
    backend: MediaBackend,
    asset: RemoteAsset | str | None,
    *,
    logger: logging.Logger | None = None,
) -> bool:
    """Delete *asset* from the service; never raises.

    Accepts the asset or its name. Returns True when the delete call
    succeeded. An absent reference makes no remote call. Cancellation still
    propagates.
    """
    logger = logger or log
    name = asset if isinstance(asset, str) else getattr(asset, "name", None)
    if not name:
        return False

    try:
        await backend.delete_file(name)
    except Exception as e:
        if extract_status_code(e) == NOT_FOUND:
            logger.warning("File %s not found; it may have already been deleted", name)
        else:
            logger.warning("Failed to delete file %s: %s", name, e)
        return False
    logger.info("Deleted file %s", name)
    return True


@asynccontextmanager
async def managed_asset(
    uploader: AssetUploader, path: str | Path, *, display_name: str | None = None
) -> AsyncIterator[RemoteAsset]:
    """Upload *path*, yield the ACTIVE asset, and always clean it up on exit.

    Once the upload call returns, the file is released even when it never
    becomes ACTIVE.
    """
    asset = await uploader.send(path, display_name=display_name)
    try:
        yield await uploader.ready(asset)
    finally:
        await cleanup(uploader.backend, asset)
