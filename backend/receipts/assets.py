"""
Loading of the images drawn on receipts (company logo, signature).

Each asset is a filesystem path or an http(s) URL. Both are loaded
concurrently and decoded with Pillow. A failing asset resolves to None and
the receipt is drawn without it; it never fails the render.
"""
import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from PIL import Image
from reportlab.lib.utils import ImageReader

from .exceptions import AssetLoadError

logger = logging.getLogger('backend.receipts')

DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class AssetSources:
    logo: Optional[str] = None
    signature: Optional[str] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class LoadedAssets:
    logo: Optional[ImageReader] = None
    signature: Optional[ImageReader] = None


def read_asset(source, timeout=DEFAULT_TIMEOUT) -> bytes:
    """Raw bytes of an asset from a URL, a path, or bytes passed through"""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    source = str(source)
    if source.startswith(('http://', 'https://')):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AssetLoadError(f'Failed to download {source}: {e}') from e
        return response.content

    try:
        with open(source, 'rb') as fh:
            return fh.read()
    except OSError as e:
        raise AssetLoadError(f'Failed to read {source}: {e}') from e


def decode_image(data: bytes) -> ImageReader:
    """Decode image bytes with Pillow into something reportlab can draw"""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise AssetLoadError(f'Not a readable image: {e}') from e

    if image.mode not in ('RGB', 'RGBA', 'L'):
        image = image.convert('RGBA')
    return ImageReader(image)


def _load_asset_sync(source, timeout) -> ImageReader:
    return decode_image(read_asset(source, timeout))


async def load_asset(source, timeout=DEFAULT_TIMEOUT) -> Optional[ImageReader]:
    """Load one asset, or None when it is not configured or cannot be loaded"""
    if not source:
        return None
    try:
        return await asyncio.to_thread(_load_asset_sync, source, timeout)
    except AssetLoadError as e:
        logger.warning(f'Receipt asset unavailable, drawing without it: {e}')
        return None


async def load_assets(sources: Optional[AssetSources]) -> LoadedAssets:
    """Load logo and signature concurrently; waits for both to settle."""
    if sources is None:
        return LoadedAssets()

    results = await asyncio.gather(
        load_asset(sources.logo, sources.timeout),
        load_asset(sources.signature, sources.timeout),
        return_exceptions=True,
    )

    loaded = []
    for name, result in zip(('logo', 'signature'), results):
        if isinstance(result, Exception):
            logger.warning(f'Unexpected error loading receipt {name}: {result}')
            result = None
        loaded.append(result)

    return LoadedAssets(logo=loaded[0], signature=loaded[1])
